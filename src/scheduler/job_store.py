"""
Job Store.

Create, read, update and delete job definitions. Every create-or-update
reconciles the job's parameters in the same transaction and detects
enabled-flag edges, which produce ENABLE / DISABLE notifications.
"""

import logging
import os
from typing import Callable, Iterable, Optional

from .entities import (
    JobDefinition,
    JobParameterDefinition,
    now_iso,
)
from .errors import InvalidOperationError, JobNotFoundError
from .notifications import NotificationEvent, NotificationPolicy
from .persistence import PersistenceAdapter
from .serialization import parse_job, serialize_job


logger = logging.getLogger(__name__)


def default_principal() -> str:
    """Acting principal when none is supplied."""
    return os.getenv("SCHEDULER_PRINCIPAL", "system")


class JobStore:
    """
    Job definition CRUD.

    Name is the unique identity of a job. created_at / created_by are
    stamped once and survive every later update.
    """

    def __init__(
        self,
        persistence: PersistenceAdapter,
        notifications: NotificationPolicy,
        principal_provider: Optional[Callable[[], str]] = None,
        clock: Callable[[], str] = now_iso,
    ):
        """
        Args:
            persistence: Storage
            notifications: Policy used for ENABLE / DISABLE notifications
            principal_provider: Returns the acting user name
            clock: Returns the current time as an ISO string
        """
        self.persistence = persistence
        self.notifications = notifications
        self.principal_provider = principal_provider or default_principal
        self.clock = clock

    def create_job(
        self,
        name: str,
        group: str,
        handler_class: Optional[str],
        handler_ref: Optional[str],
        engine_type: Optional[str],
        description: Optional[str],
        schedule_expression: Optional[str],
        singleton: bool = False,
        parameters: Iterable[JobParameterDefinition] = (),
        enabled: bool = True,
    ) -> JobDefinition:
        """Build a job definition and persist it via create_or_update_job()."""
        job = JobDefinition(
            name=name,
            group=group,
            handler_class=handler_class,
            handler_ref=handler_ref,
            engine_type=engine_type,
            description=description,
            schedule_expression=schedule_expression,
            singleton=singleton,
            enabled=enabled,
            created_by=self.principal_provider(),
            created_at=self.clock(),
        )
        job.set_parameters(list(parameters))
        return self.create_or_update_job(job)

    def create_or_update_job(self, job: JobDefinition) -> JobDefinition:
        """
        Insert or update a job and reconcile its parameters.

        On update, an enabled true->false flip sends DISABLE and a
        false->true flip sends ENABLE.

        Returns:
            The persisted definition with its stored parameters

        Raises:
            InvalidOperationError: If the name is empty
            SchedulerError: On storage failure
        """
        if not job.name or not job.name.strip():
            raise InvalidOperationError("Job name must not be empty")

        if job.created_at is None:
            job.created_at = self.clock()
        if job.created_by is None:
            job.created_by = self.principal_provider()

        saved, previous = self.persistence.save_job(job)

        if previous is None:
            logger.info(f"Created job {saved.name} ({len(saved.parameters)} parameters)")
            return saved

        logger.debug(f"Updated job {saved.name}")
        if previous.enabled and not saved.enabled:
            self.notifications.notify(saved, NotificationEvent.DISABLE)
        elif not previous.enabled and saved.enabled:
            self.notifications.notify(saved, NotificationEvent.ENABLE)

        return saved

    def get_job(self, name: str) -> Optional[JobDefinition]:
        """Get a job with its parameters, or None if absent."""
        return self.persistence.get_job(name)

    def get_jobs(self) -> list[JobDefinition]:
        """List all jobs."""
        return self.persistence.list_jobs()

    def get_job_parameters(self, name: str) -> list[JobParameterDefinition]:
        return self.persistence.get_job_parameters(name)

    def remove_job(self, name: str) -> bool:
        """
        Delete a job definition and its parameters.

        Logs and watcher e-mails are not touched.
        """
        removed = self.persistence.delete_job(name)
        if removed:
            logger.info(f"Removed job {name}")
        return removed

    def update_job(
        self,
        name: str,
        group: str,
        handler_class: Optional[str],
        handler_ref: Optional[str],
        engine_type: Optional[str],
        description: Optional[str],
        schedule_expression: Optional[str],
        singleton: bool = False,
        parameters: Iterable[JobParameterDefinition] = (),
        enabled: Optional[bool] = None,
    ) -> JobDefinition:
        """
        Overlay new field values on an existing job and replace its parameters.

        Args:
            enabled: New enabled flag, or None to keep the stored one

        Raises:
            JobNotFoundError: If the job does not exist
        """
        job = self.get_job(name)
        if job is None:
            raise JobNotFoundError(name)

        job.group = group
        job.handler_class = handler_class
        job.handler_ref = handler_ref
        job.engine_type = engine_type
        job.description = description
        job.schedule_expression = schedule_expression
        job.singleton = singleton
        if enabled is not None:
            job.enabled = enabled
        job.set_parameters(list(parameters))

        return self.create_or_update_job(job)

    def exists_job(self, name: str) -> bool:
        return self.persistence.job_exists(name)

    def parse_job(self, content: str | bytes) -> JobDefinition:
        return parse_job(content)

    def serialize_job(self, job: JobDefinition) -> str:
        return serialize_job(job)
