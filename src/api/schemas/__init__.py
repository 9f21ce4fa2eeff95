"""
API Schemas package.

Pydantic models for request/response validation.
"""

from .jobs import (
    JobParameterResponse,
    JobResponse,
    JobListResponse,
    JobDeleteResponse,
    JobLogResponse,
    JobLogListResponse,
    JobLogDeleteResponse,
    JobEmailRequest,
    JobEmailResponse,
    JobEmailListResponse,
)

__all__ = [
    "JobParameterResponse",
    "JobResponse",
    "JobListResponse",
    "JobDeleteResponse",
    "JobLogResponse",
    "JobLogListResponse",
    "JobLogDeleteResponse",
    "JobEmailRequest",
    "JobEmailResponse",
    "JobEmailListResponse",
]
