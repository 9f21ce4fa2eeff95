"""
Scheduler Test Fixtures.

Base fixtures:
  - Empty database
  - Mocked clock at fixed time
  - Recording mail transport (no network)

Per-test fixtures:
  - Job factory
  - Log factory with explicit ages for retention tests
"""

import sqlite3
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Generator, Optional, Sequence

import pytest

from src.infra.mailer import MailTransportError
from src.scheduler import (
    ExecutionLogRecorder,
    JobDefinition,
    JobLogDefinition,
    JobStatus,
    JobStore,
    NotificationPolicy,
    PersistenceAdapter,
    RetentionSweeper,
    SchedulerConfig,
    SchedulerCoreService,
    WatcherRegistry,
)
from src.scheduler.entities import to_iso


# Fixed time for deterministic tests
FIXED_DATETIME = datetime(2026, 1, 1, 0, 0, 0)

SENDER = "scheduler@example.com"
GLOBAL_RECIPIENT = "ops@example.com"


class MockClock:
    """
    Mock clock for deterministic time control.

    - Starts at fixed epoch
    - Advances only when explicitly ticked
    """

    def __init__(self, start_time: datetime = FIXED_DATETIME):
        self._current = start_time

    def now(self) -> datetime:
        return self._current

    def now_iso(self) -> str:
        return to_iso(self._current)

    def tick(self, seconds: int = 1) -> None:
        """Advance time by specified seconds."""
        self._current += timedelta(seconds=seconds)

    def set(self, time: datetime) -> None:
        """Set time to specific value."""
        self._current = time


class RecordingMailTransport:
    """
    Mail transport that records messages instead of sending them.

    Set fail_with to an exception to simulate a transport failure.
    """

    def __init__(self):
        self.sent: list[dict] = []
        self.fail_with: Optional[Exception] = None

    def send(
        self,
        sender: str,
        to: Sequence[str],
        cc: Optional[Sequence[str]],
        bcc: Optional[Sequence[str]],
        subject: str,
        parts: list[dict],
    ) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(
            {
                "sender": sender,
                "to": list(to),
                "subject": subject,
                "body": parts[0]["text"],
                "parts": parts,
            }
        )

    @property
    def subjects(self) -> list[str]:
        return [message["subject"] for message in self.sent]


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def temp_db_path() -> Generator[str, None, None]:
    """Create a temporary database file."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name

    yield db_path

    # Cleanup
    Path(db_path).unlink(missing_ok=True)
    # Also cleanup WAL and SHM files
    Path(f"{db_path}-wal").unlink(missing_ok=True)
    Path(f"{db_path}-shm").unlink(missing_ok=True)


@pytest.fixture
def persistence(temp_db_path: str) -> PersistenceAdapter:
    """Create a fresh PersistenceAdapter with empty database."""
    return PersistenceAdapter(temp_db_path)


@pytest.fixture
def drop_table(temp_db_path: str) -> Callable[[str], None]:
    """Drop a table behind the adapter's back."""

    def _drop(table: str) -> None:
        conn = sqlite3.connect(temp_db_path)
        try:
            conn.execute(f"DROP TABLE IF EXISTS {table}")
            conn.commit()
        finally:
            conn.close()

    return _drop


# =============================================================================
# Component Fixtures
# =============================================================================


@pytest.fixture
def mock_clock() -> MockClock:
    """Create a mock clock at fixed time."""
    return MockClock()


@pytest.fixture
def mail_transport() -> RecordingMailTransport:
    return RecordingMailTransport()


@pytest.fixture
def config() -> SchedulerConfig:
    """Settings with a sender, one global recipient and a job URL base."""
    return SchedulerConfig(
        email_sender=SENDER,
        email_recipients=(GLOBAL_RECIPIENT,),
        email_recipients_line=GLOBAL_RECIPIENT,
        email_url_scheme="http",
        email_url_host="scheduler.local",
        email_url_port="8080",
    )


@pytest.fixture
def notifications(
    persistence: PersistenceAdapter,
    config: SchedulerConfig,
    mail_transport: RecordingMailTransport,
) -> NotificationPolicy:
    return NotificationPolicy(persistence, config, mail_transport=mail_transport)


@pytest.fixture
def job_store(
    persistence: PersistenceAdapter,
    notifications: NotificationPolicy,
    mock_clock: MockClock,
) -> JobStore:
    return JobStore(
        persistence,
        notifications,
        principal_provider=lambda: "alice",
        clock=mock_clock.now_iso,
    )


@pytest.fixture
def recorder(
    persistence: PersistenceAdapter,
    notifications: NotificationPolicy,
    mock_clock: MockClock,
) -> ExecutionLogRecorder:
    return ExecutionLogRecorder(persistence, notifications, clock=mock_clock.now_iso)


@pytest.fixture
def watchers(persistence: PersistenceAdapter) -> WatcherRegistry:
    return WatcherRegistry(persistence)


@pytest.fixture
def sweeper(persistence: PersistenceAdapter, mock_clock: MockClock) -> RetentionSweeper:
    """Sweeper with the default one week horizon."""
    return RetentionSweeper(persistence, retention_hours=24 * 7, clock=mock_clock.now)


@pytest.fixture
def service(
    temp_db_path: str,
    config: SchedulerConfig,
    mail_transport: RecordingMailTransport,
) -> Generator[SchedulerCoreService, None, None]:
    """Fully wired service over the temp database."""
    svc = SchedulerCoreService.create(
        temp_db_path,
        config,
        mail_transport=mail_transport,
        principal_provider=lambda: "alice",
    )
    yield svc
    if svc.is_running:
        svc.stop(timeout=5.0)


# =============================================================================
# Factory Fixtures
# =============================================================================


@pytest.fixture
def create_job(job_store: JobStore) -> Callable:
    """
    Factory fixture for creating jobs.

    Returns a function that creates jobs with specified parameters.
    """

    def _create(
        name: str = "nightly-report",
        enabled: bool = True,
        parameters: Optional[list[tuple[str, str]]] = None,
    ) -> JobDefinition:
        job = JobDefinition(
            name=name,
            handler_ref=f"jobs/{name}.js",
            engine_type="javascript",
            schedule_expression="0 0 2 * * ?",
            enabled=enabled,
        )
        for param_name, default in parameters or []:
            job.add_parameter(param_name, default_value=default)
        return job_store.create_or_update_job(job)

    return _create


@pytest.fixture
def create_log(persistence: PersistenceAdapter, mock_clock: MockClock) -> Callable:
    """Factory fixture for log rows triggered a given age before the clock."""

    def _create(
        job_name: str = "nightly-report",
        age: timedelta = timedelta(0),
        status: JobStatus = JobStatus.LOGGED,
    ) -> JobLogDefinition:
        return persistence.insert_job_log(
            JobLogDefinition(
                job_name=job_name,
                handler=f"jobs/{job_name}.js",
                status=status,
                triggered_at=to_iso(mock_clock.now() - age),
            )
        )

    return _create


@pytest.fixture
def failing_transport(mail_transport: RecordingMailTransport) -> RecordingMailTransport:
    mail_transport.fail_with = MailTransportError("connection refused")
    return mail_transport
