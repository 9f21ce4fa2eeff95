"""
Execution Log Recorder.

Appends immutable log rows for job executions and maintains the job's
rollup status:

    job_triggered()  -> TRIGGERED row; its id is the correlation id
    job_finished()   -> FINISHED row; rollup FINISHED, NORMAL on transition
    job_failed()     -> FAILED row;   rollup FAILED,   ERROR on transition
    job_logged*()    -> LOGGED / ERROR / WARN / INFO rows, no rollup effect

Notifications fire only when the rollup status changes value. Repeated
FINISHED or repeated FAILED events stay silent.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from .entities import JobLogDefinition, JobStatus, normalize_iso, now_iso
from .errors import InvalidOperationError
from .notifications import NotificationEvent, NotificationPolicy
from .persistence import PersistenceAdapter


logger = logging.getLogger(__name__)

# Maximum rows returned by get_job_logs()
JOB_LOGS_LIMIT = 1000


class ExecutionLogRecorder:
    """Records execution events and drives transition notifications."""

    def __init__(
        self,
        persistence: PersistenceAdapter,
        notifications: NotificationPolicy,
        clock: Callable[[], str] = now_iso,
    ):
        self.persistence = persistence
        self.notifications = notifications
        self.clock = clock

    # =========================================================================
    # Lifecycle Events
    # =========================================================================

    def job_triggered(self, name: str, handler: Optional[str]) -> JobLogDefinition:
        """
        Record that a job execution started.

        Returns:
            The TRIGGERED row; pass its id as triggered_id to the matching
            job_finished() / job_failed() call
        """
        log = self.persistence.insert_job_log(
            JobLogDefinition(
                job_name=name,
                handler=handler,
                status=JobStatus.TRIGGERED,
                triggered_at=self.clock(),
            )
        )
        logger.debug(f"Job {name} triggered (log id={log.id})")
        return log

    def job_finished(
        self,
        name: str,
        handler: Optional[str],
        triggered_id: Optional[int],
        triggered_at: str | datetime,
    ) -> JobLogDefinition:
        """Record a successful execution; notifies on recovery from another status."""
        log = self._record_terminal(
            name, handler, JobStatus.FINISHED, triggered_id, triggered_at, None
        )
        self._update_rollup(log, message="", event=NotificationEvent.NORMAL)
        return log

    def job_failed(
        self,
        name: str,
        handler: Optional[str],
        triggered_id: Optional[int],
        triggered_at: str | datetime,
        message: Optional[str],
    ) -> JobLogDefinition:
        """Record a failed execution; notifies on transition into FAILED."""
        log = self._record_terminal(
            name, handler, JobStatus.FAILED, triggered_id, triggered_at, message
        )
        self._update_rollup(log, message=message, event=NotificationEvent.ERROR)
        return log

    # =========================================================================
    # Free-form Logs
    # =========================================================================

    def job_logged(self, name: str, handler: Optional[str], message: Optional[str]) -> JobLogDefinition:
        return self._log(name, handler, message, JobStatus.LOGGED)

    def job_logged_error(self, name: str, handler: Optional[str], message: Optional[str]) -> JobLogDefinition:
        return self._log(name, handler, message, JobStatus.ERROR)

    def job_logged_warning(self, name: str, handler: Optional[str], message: Optional[str]) -> JobLogDefinition:
        return self._log(name, handler, message, JobStatus.WARN)

    def job_logged_info(self, name: str, handler: Optional[str], message: Optional[str]) -> JobLogDefinition:
        return self._log(name, handler, message, JobStatus.INFO)

    def get_job_logs(self, name: str) -> list[JobLogDefinition]:
        """Latest logs of a job, newest first (empty for unknown jobs)."""
        return self.persistence.list_job_logs(name, limit=JOB_LOGS_LIMIT)

    # =========================================================================
    # Internals
    # =========================================================================

    def _log(
        self,
        name: str,
        handler: Optional[str],
        message: Optional[str],
        severity: JobStatus,
    ) -> JobLogDefinition:
        return self.persistence.insert_job_log(
            JobLogDefinition(
                job_name=name,
                handler=handler,
                status=severity,
                triggered_at=self.clock(),
                message=message,
            )
        )

    def _record_terminal(
        self,
        name: str,
        handler: Optional[str],
        status: JobStatus,
        triggered_id: Optional[int],
        triggered_at: str | datetime,
        message: Optional[str],
    ) -> JobLogDefinition:
        try:
            triggered_at = normalize_iso(triggered_at)
        except ValueError as e:
            raise InvalidOperationError(f"Invalid triggered_at {triggered_at!r}: {e}") from e

        return self.persistence.insert_job_log(
            JobLogDefinition(
                job_name=name,
                handler=handler,
                status=status,
                triggered_id=triggered_id,
                triggered_at=triggered_at,
                finished_at=self.clock(),
                message=message,
            )
        )

    def _update_rollup(
        self,
        log: JobLogDefinition,
        message: Optional[str],
        event: NotificationEvent,
    ) -> None:
        """Set the job's rollup status from a terminal row, notify on change."""
        result = self.persistence.update_job_rollup(
            log.job_name, log.status, message, log.finished_at
        )
        if result is None:
            logger.warning(
                f"{log.status.value} event recorded for unknown job {log.job_name}; "
                f"rollup status not updated"
            )
            return

        job, previous_status = result
        if previous_status == log.status:
            logger.debug(f"Job {job.name} still {log.status.value}, no notification")
            return

        logger.info(
            f"Job {job.name} status changed: "
            f"{previous_status.value if previous_status else None} -> {log.status.value}"
        )
        self.notifications.notify(job, event)
