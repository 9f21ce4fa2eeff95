"""
Jobs router for job definition, execution log and watcher APIs.

Endpoints:
- GET /jobs - List jobs
- POST /jobs - Create or update a job from a job document
- GET /jobs/{name} - Get job details with parameters
- DELETE /jobs/{name} - Remove job definition (logs/watchers kept)
- GET /jobs/{name}/logs - Latest execution logs, newest first
- DELETE /jobs/{name}/logs - Clear all logs of a job
- POST /jobs/logs/sweep - Delete logs past the retention horizon
- GET /jobs/{name}/emails - List watcher addresses
- POST /jobs/{name}/emails - Add watcher address
- DELETE /jobs/emails/{email_id} - Remove watcher address

Handlers are plain functions: the scheduler core does blocking SQLite I/O,
so FastAPI runs them in its threadpool.
"""

import logging

from fastapi import APIRouter, HTTPException, status

from src.scheduler import (
    InvalidEmailError,
    InvalidOperationError,
    JobNotFoundError,
    SchedulerError,
)
from src.scheduler.serialization import JobDocument

from ..schemas.jobs import (
    JobDeleteResponse,
    JobEmailListResponse,
    JobEmailRequest,
    JobEmailResponse,
    JobListResponse,
    JobLogDeleteResponse,
    JobLogListResponse,
    JobLogResponse,
    JobResponse,
)
from .._scheduler_state import get_scheduler_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _storage_failure(action: str, error: SchedulerError) -> HTTPException:
    logger.error(f"Failed to {action}: {error}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}: {error}",
    )


# =============================================================================
# Maintenance (static paths first)
# =============================================================================


@router.post("/logs/sweep", response_model=JobLogDeleteResponse)
def sweep_job_logs():
    """Delete execution logs older than the retention horizon."""
    service = get_scheduler_service()
    try:
        deleted = service.delete_old_job_logs()
    except SchedulerError as e:
        raise _storage_failure("sweep job logs", e)
    return JobLogDeleteResponse(deleted=deleted)


@router.delete("/emails/{email_id}", response_model=JobDeleteResponse)
def remove_job_email(email_id: int):
    """Remove a watcher address by id."""
    service = get_scheduler_service()
    try:
        removed = service.remove_job_email(email_id)
    except SchedulerError as e:
        raise _storage_failure("remove watcher", e)

    if not removed:
        raise HTTPException(status_code=404, detail=f"Watcher not found: {email_id}")
    return JobDeleteResponse(name=str(email_id), success=True, message="Watcher removed")


# =============================================================================
# Jobs
# =============================================================================


@router.get("", response_model=JobListResponse)
def list_jobs():
    """List all job definitions."""
    service = get_scheduler_service()
    try:
        jobs = service.get_jobs()
    except SchedulerError as e:
        raise _storage_failure("list jobs", e)
    return JobListResponse(jobs=[JobResponse.from_entity(job) for job in jobs], total=len(jobs))


@router.post("", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
def create_or_update_job(document: JobDocument):
    """
    Create or update a job from a job document.

    The group is always set to the user-defined group. Parameters are
    reconciled: the stored set becomes exactly the submitted set.
    """
    service = get_scheduler_service()
    try:
        job = service.create_or_update_job(document.to_definition())
    except InvalidOperationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SchedulerError as e:
        raise _storage_failure("save job", e)
    return JobResponse.from_entity(job)


@router.get("/{name}", response_model=JobResponse)
def get_job(name: str):
    """Get a job definition with its parameters."""
    service = get_scheduler_service()
    try:
        job = service.get_job(name)
    except SchedulerError as e:
        raise _storage_failure("get job", e)

    if job is None:
        raise HTTPException(status_code=404, detail=str(JobNotFoundError(name)))
    return JobResponse.from_entity(job)


@router.delete("/{name}", response_model=JobDeleteResponse)
def remove_job(name: str):
    """Remove a job definition. Logs and watchers are kept."""
    service = get_scheduler_service()
    try:
        removed = service.remove_job(name)
    except SchedulerError as e:
        raise _storage_failure("remove job", e)

    if not removed:
        raise HTTPException(status_code=404, detail=str(JobNotFoundError(name)))
    return JobDeleteResponse(name=name, success=True, message="Job removed")


# =============================================================================
# Execution Logs
# =============================================================================


@router.get("/{name}/logs", response_model=JobLogListResponse)
def get_job_logs(name: str):
    """Latest execution logs of a job, newest first. Unknown jobs have none."""
    service = get_scheduler_service()
    try:
        logs = service.get_job_logs(name)
    except SchedulerError as e:
        raise _storage_failure("get job logs", e)
    return JobLogListResponse(logs=[JobLogResponse.from_entity(log) for log in logs], total=len(logs))


@router.delete("/{name}/logs", response_model=JobLogDeleteResponse)
def clear_job_logs(name: str):
    """Delete every execution log of a job."""
    service = get_scheduler_service()
    try:
        deleted = service.clear_job_logs(name)
    except SchedulerError as e:
        raise _storage_failure("clear job logs", e)
    return JobLogDeleteResponse(deleted=deleted)


# =============================================================================
# Watchers
# =============================================================================


@router.get("/{name}/emails", response_model=JobEmailListResponse)
def get_job_emails(name: str):
    """List watcher addresses of a job."""
    service = get_scheduler_service()
    try:
        emails = service.get_job_emails(name)
    except SchedulerError as e:
        raise _storage_failure("list watchers", e)
    return JobEmailListResponse(
        emails=[JobEmailResponse.from_entity(email) for email in emails],
        total=len(emails),
    )


@router.post("/{name}/emails", response_model=JobEmailResponse, status_code=status.HTTP_201_CREATED)
def add_job_email(name: str, request: JobEmailRequest):
    """Add a watcher address to a job."""
    service = get_scheduler_service()
    try:
        email = service.add_job_email(name, request.email)
    except InvalidEmailError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except SchedulerError as e:
        raise _storage_failure("add watcher", e)
    return JobEmailResponse.from_entity(email)
