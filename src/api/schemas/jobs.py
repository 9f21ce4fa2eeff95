"""
Job API schemas.

Request bodies reuse the job document format (camelCase keys) from
src.scheduler.serialization; responses are snake_case.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from src.scheduler import (
    JobDefinition,
    JobEmailDefinition,
    JobLogDefinition,
    JobParameterDefinition,
)


# =============================================================================
# Job Schemas
# =============================================================================


class JobParameterResponse(BaseModel):
    """Response representing a job parameter."""

    name: str
    type: Optional[str] = None
    default_value: Optional[str] = None
    choices: Optional[List[str]] = None
    description: Optional[str] = None

    @classmethod
    def from_entity(cls, parameter: JobParameterDefinition) -> "JobParameterResponse":
        return cls(
            name=parameter.name,
            type=parameter.type,
            default_value=parameter.default_value,
            choices=parameter.choices,
            description=parameter.description,
        )


class JobResponse(BaseModel):
    """Response representing a job definition."""

    name: str = Field(..., description="Unique job name")
    group: Optional[str] = Field(default=None, description="Job group")
    handler_class: Optional[str] = None
    handler_ref: Optional[str] = None
    engine_type: Optional[str] = None
    description: Optional[str] = None
    schedule_expression: Optional[str] = Field(default=None, description="Cron expression")
    singleton: bool = False
    enabled: bool = True
    status: Optional[str] = Field(default=None, description="Rollup status (FINISHED/FAILED)")
    message: Optional[str] = Field(default=None, description="Last failure message")
    executed_at: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    parameters: List[JobParameterResponse] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, job: JobDefinition) -> "JobResponse":
        return cls(
            name=job.name,
            group=job.group,
            handler_class=job.handler_class,
            handler_ref=job.handler_ref,
            engine_type=job.engine_type,
            description=job.description,
            schedule_expression=job.schedule_expression,
            singleton=job.singleton,
            enabled=job.enabled,
            status=job.status.value if job.status else None,
            message=job.message,
            executed_at=job.executed_at,
            created_by=job.created_by,
            created_at=job.created_at,
            parameters=[JobParameterResponse.from_entity(p) for p in job.parameters],
        )


class JobListResponse(BaseModel):
    """Response for job list endpoint."""

    jobs: List[JobResponse] = Field(default_factory=list)
    total: int = Field(..., description="Total number of jobs")


class JobDeleteResponse(BaseModel):
    """Response from job deletion."""

    name: str
    success: bool
    message: Optional[str] = None


# =============================================================================
# Job Log Schemas
# =============================================================================


class JobLogResponse(BaseModel):
    """Response representing an execution log row."""

    id: int
    job_name: str
    handler: Optional[str] = None
    status: str
    triggered_id: Optional[int] = Field(default=None, description="Id of the TRIGGERED row")
    triggered_at: str
    finished_at: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def from_entity(cls, log: JobLogDefinition) -> "JobLogResponse":
        return cls(
            id=log.id,
            job_name=log.job_name,
            handler=log.handler,
            status=log.status.value,
            triggered_id=log.triggered_id,
            triggered_at=log.triggered_at,
            finished_at=log.finished_at,
            message=log.message,
        )


class JobLogListResponse(BaseModel):
    """Response for job logs endpoint."""

    logs: List[JobLogResponse] = Field(default_factory=list)
    total: int


class JobLogDeleteResponse(BaseModel):
    """Response from log clear / sweep."""

    deleted: int


# =============================================================================
# Watcher Schemas
# =============================================================================


class JobEmailRequest(BaseModel):
    """Request to add a watcher address (validated by the service)."""

    email: str = Field(..., description="Watcher e-mail address")


class JobEmailResponse(BaseModel):
    """Response representing a watcher address."""

    id: int
    job_name: str
    email: str

    @classmethod
    def from_entity(cls, email: JobEmailDefinition) -> "JobEmailResponse":
        return cls(id=email.id, job_name=email.job_name, email=email.email)


class JobEmailListResponse(BaseModel):
    """Response for watcher list endpoint."""

    emails: List[JobEmailResponse] = Field(default_factory=list)
    total: int
