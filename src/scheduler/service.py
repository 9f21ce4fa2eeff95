"""
Scheduler Core Service - main entry point of the job-state engine.

This service wires and fronts all components:
- PersistenceAdapter (storage)
- JobStore (job definitions + parameter reconciliation)
- ExecutionLogRecorder (execution events + rollup status)
- NotificationPolicy (transition e-mails)
- WatcherRegistry (per-job recipients)
- RetentionSweeper (log purge)

Usage:
    config = SchedulerConfig.from_env()
    service = SchedulerCoreService.create(config.db_path, config)
    service.start()   # periodic log retention
    log = service.job_triggered("nightly-report", "reports/nightly.js")
    service.job_finished("nightly-report", "reports/nightly.js", log.id, log.triggered_at)
    service.stop()
"""

import logging
from pathlib import Path
from typing import Callable, Iterable, Optional

from src.infra.mailer import MailTransport, SmtpMailTransport
from src.infra.templates import TemplateEngineRegistry

from .config import SchedulerConfig
from .entities import (
    JobDefinition,
    JobEmailDefinition,
    JobLogDefinition,
    JobParameterDefinition,
)
from .job_log import ExecutionLogRecorder
from .job_store import JobStore
from .notifications import NotificationPolicy
from .persistence import PersistenceAdapter
from .retention import RetentionSweeper
from .watchers import WatcherRegistry


logger = logging.getLogger(__name__)


class SchedulerCoreService:
    """
    Facade over the scheduler core components.

    Provides:
    - Component initialization and wiring
    - Periodic retention start / stop
    - One method per core operation
    """

    def __init__(
        self,
        config: SchedulerConfig,
        persistence: PersistenceAdapter,
        notifications: NotificationPolicy,
        job_store: JobStore,
        recorder: ExecutionLogRecorder,
        watchers: WatcherRegistry,
        sweeper: RetentionSweeper,
    ):
        """
        Initialize SchedulerCoreService with all components.

        Use SchedulerCoreService.create() for convenient construction.
        """
        self.config = config
        self.persistence = persistence
        self.notifications = notifications
        self.job_store = job_store
        self.recorder = recorder
        self.watchers = watchers
        self.sweeper = sweeper

    @classmethod
    def create(
        cls,
        db_path: str | Path,
        config: Optional[SchedulerConfig] = None,
        mail_transport: Optional[MailTransport] = None,
        principal_provider: Optional[Callable[[], str]] = None,
        template_registry: Optional[TemplateEngineRegistry] = None,
    ) -> "SchedulerCoreService":
        """
        Create a SchedulerCoreService with all components wired together.

        Args:
            db_path: Path to SQLite database (parent directory is created)
            config: Settings; defaults to SchedulerConfig()
            mail_transport: Transport for notifications; when omitted an SMTP
                transport is built if config.smtp_host is set
            principal_provider: Returns the acting user name for created_by
            template_registry: Template engines; defaults to the built-ins

        Returns:
            Configured SchedulerCoreService
        """
        config = config or SchedulerConfig()

        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        persistence = PersistenceAdapter(db_path)

        if mail_transport is None and config.smtp_host:
            mail_transport = SmtpMailTransport(
                host=config.smtp_host,
                port=config.smtp_port,
                user=config.smtp_user,
                password=config.smtp_password,
                starttls=config.smtp_starttls,
            )

        notifications = NotificationPolicy(
            persistence=persistence,
            config=config,
            mail_transport=mail_transport,
            template_registry=template_registry,
        )
        job_store = JobStore(
            persistence=persistence,
            notifications=notifications,
            principal_provider=principal_provider,
        )
        recorder = ExecutionLogRecorder(persistence=persistence, notifications=notifications)
        watchers = WatcherRegistry(persistence)
        sweeper = RetentionSweeper(persistence, retention_hours=config.logs_retention_hours)

        return cls(
            config=config,
            persistence=persistence,
            notifications=notifications,
            job_store=job_store,
            recorder=recorder,
            watchers=watchers,
            sweeper=sweeper,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self, interval_seconds: Optional[float] = None) -> None:
        """Start the periodic retention sweep."""
        interval = interval_seconds or self.config.sweep_interval_seconds
        self.sweeper.start(interval)
        logger.info("Scheduler core started")

    def stop(self, timeout: float = 30.0) -> None:
        """Stop the periodic sweep and run a final cleanup."""
        self.sweeper.stop(timeout=timeout)
        self.cleanup()
        logger.info("Scheduler core stopped")

    @property
    def is_running(self) -> bool:
        return self.sweeper.is_running()

    def cleanup(self) -> int:
        return self.sweeper.cleanup()

    # =========================================================================
    # Jobs
    # =========================================================================

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
        return self.job_store.create_job(
            name, group, handler_class, handler_ref, engine_type, description,
            schedule_expression, singleton, parameters, enabled,
        )

    def create_or_update_job(self, job: JobDefinition) -> JobDefinition:
        return self.job_store.create_or_update_job(job)

    def get_job(self, name: str) -> Optional[JobDefinition]:
        return self.job_store.get_job(name)

    def get_jobs(self) -> list[JobDefinition]:
        return self.job_store.get_jobs()

    def remove_job(self, name: str) -> bool:
        return self.job_store.remove_job(name)

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
        return self.job_store.update_job(
            name, group, handler_class, handler_ref, engine_type, description,
            schedule_expression, singleton, parameters, enabled,
        )

    def exists_job(self, name: str) -> bool:
        return self.job_store.exists_job(name)

    def get_job_parameters(self, name: str) -> list[JobParameterDefinition]:
        return self.job_store.get_job_parameters(name)

    def parse_job(self, content: str | bytes) -> JobDefinition:
        return self.job_store.parse_job(content)

    def serialize_job(self, job: JobDefinition) -> str:
        return self.job_store.serialize_job(job)

    # =========================================================================
    # Execution Logs
    # =========================================================================

    def job_triggered(self, name: str, handler: Optional[str]) -> JobLogDefinition:
        return self.recorder.job_triggered(name, handler)

    def job_finished(self, name, handler, triggered_id, triggered_at) -> JobLogDefinition:
        return self.recorder.job_finished(name, handler, triggered_id, triggered_at)

    def job_failed(self, name, handler, triggered_id, triggered_at, message) -> JobLogDefinition:
        return self.recorder.job_failed(name, handler, triggered_id, triggered_at, message)

    def job_logged(self, name: str, handler: Optional[str], message: Optional[str]) -> JobLogDefinition:
        return self.recorder.job_logged(name, handler, message)

    def job_logged_error(self, name: str, handler: Optional[str], message: Optional[str]) -> JobLogDefinition:
        return self.recorder.job_logged_error(name, handler, message)

    def job_logged_warning(self, name: str, handler: Optional[str], message: Optional[str]) -> JobLogDefinition:
        return self.recorder.job_logged_warning(name, handler, message)

    def job_logged_info(self, name: str, handler: Optional[str], message: Optional[str]) -> JobLogDefinition:
        return self.recorder.job_logged_info(name, handler, message)

    def get_job_logs(self, name: str) -> list[JobLogDefinition]:
        return self.recorder.get_job_logs(name)

    def clear_job_logs(self, name: str) -> int:
        return self.sweeper.clear_job_logs(name)

    def delete_old_job_logs(self) -> int:
        return self.sweeper.delete_old_job_logs()

    # =========================================================================
    # Watchers
    # =========================================================================

    def get_job_emails(self, name: str) -> list[JobEmailDefinition]:
        return self.watchers.get_job_emails(name)

    def add_job_email(self, name: str, email: str) -> JobEmailDefinition:
        return self.watchers.add_job_email(name, email)

    def remove_job_email(self, email_id: int) -> bool:
        return self.watchers.remove_job_email(email_id)
