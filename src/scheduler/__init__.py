"""
Job Scheduler Core Module.

Job lifecycle, execution-log and transition-notification engine:
- Job definitions with reconciled parameter sets
- Append-only execution logs correlated by triggered id
- Rollup status with transition-only e-mail notifications
- Per-job watcher addresses
- Time-based log retention
"""

from .entities import (
    JobStatus,
    JobDefinition,
    JobParameterDefinition,
    JobLogDefinition,
    JobEmailDefinition,
    JOB_GROUP_INTERNAL,
    JOB_GROUP_DEFINED,
    FILE_EXTENSION_JOB,
    JOB_PARAMETER_HANDLER,
    JOB_PARAMETER_ENGINE,
)
from .errors import (
    SchedulerError,
    InvalidOperationError,
    JobNotFoundError,
    InvalidEmailError,
)
from .config import SchedulerConfig
from .persistence import PersistenceAdapter
from .notifications import NotificationEvent, NotificationPolicy
from .job_store import JobStore
from .job_log import ExecutionLogRecorder
from .watchers import WatcherRegistry, is_valid_email
from .retention import RetentionSweeper
from .serialization import JobDocument, JobParameterDocument, parse_job, serialize_job
from .service import SchedulerCoreService

__all__ = [
    # Entities
    "JobStatus",
    "JobDefinition",
    "JobParameterDefinition",
    "JobLogDefinition",
    "JobEmailDefinition",
    "JOB_GROUP_INTERNAL",
    "JOB_GROUP_DEFINED",
    "FILE_EXTENSION_JOB",
    "JOB_PARAMETER_HANDLER",
    "JOB_PARAMETER_ENGINE",
    # Errors
    "SchedulerError",
    "InvalidOperationError",
    "JobNotFoundError",
    "InvalidEmailError",
    # Config
    "SchedulerConfig",
    # Persistence
    "PersistenceAdapter",
    # Notifications
    "NotificationEvent",
    "NotificationPolicy",
    # Components
    "JobStore",
    "ExecutionLogRecorder",
    "WatcherRegistry",
    "is_valid_email",
    "RetentionSweeper",
    # Serialization
    "JobDocument",
    "JobParameterDocument",
    "parse_job",
    "serialize_job",
    # Service
    "SchedulerCoreService",
]
