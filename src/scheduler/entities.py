"""
Scheduler Domain Entities.

- JobDefinition: A named, schedulable unit of work
- JobParameterDefinition: A declared parameter owned by a job
- JobLogDefinition: Immutable execution event (triggered/finished/failed/logged)
- JobEmailDefinition: Watcher address for transition notifications

Timestamps are UTC ISO-8601 strings with a fixed width, so they sort and
compare correctly as text inside SQLite.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


JOB_GROUP_INTERNAL = "dirigible-internal"
JOB_GROUP_DEFINED = "dirigible-defined"
FILE_EXTENSION_JOB = ".job"
JOB_PARAMETER_HANDLER = "dirigible-job-handler"
JOB_PARAMETER_ENGINE = "dirigible-engine-type"

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


class JobStatus(str, Enum):
    """
    Execution log status values.

    FINISHED and FAILED are terminal and drive the job rollup status.
    LOGGED, ERROR, WARN and INFO are free-form log levels.
    """

    TRIGGERED = "TRIGGERED"
    FINISHED = "FINISHED"
    FAILED = "FAILED"
    LOGGED = "LOGGED"
    ERROR = "ERROR"
    WARN = "WARN"
    INFO = "INFO"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.FINISHED, JobStatus.FAILED)


def to_iso(value: datetime) -> str:
    """
    Format a datetime as a fixed-width UTC ISO string.

    Naive values are taken as UTC; aware values are converted first.
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime(ISO_FORMAT)


def normalize_iso(value: str | datetime) -> str:
    """Bring a datetime or ISO string into the stored timestamp format."""
    if isinstance(value, datetime):
        return to_iso(value)
    return to_iso(from_iso(value))


def from_iso(value: str) -> datetime:
    """Parse a timestamp produced by to_iso (also accepts plain isoformat)."""
    try:
        return datetime.strptime(value, ISO_FORMAT)
    except ValueError:
        return datetime.fromisoformat(value.rstrip("Z"))


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def now_iso() -> str:
    """Get current time as ISO format string."""
    return to_iso(utcnow())


@dataclass
class JobParameterDefinition:
    """
    Parameter declared by a job.

    Identity is (job_name, name). The stored set for a job always mirrors
    the set passed on the last create or update of that job.
    """

    name: str
    job_name: Optional[str] = None
    type: str = "string"
    default_value: Optional[str] = None
    choices: Optional[list[str]] = None
    description: Optional[str] = None

    @property
    def key(self) -> tuple[Optional[str], str]:
        return (self.job_name, self.name)


@dataclass
class JobDefinition:
    """
    Named, schedulable unit of work.

    Mutability rules:
    - name: Immutable identity
    - created_by, created_at: Write-once (set at first insert)
    - status, message, executed_at: Rollup of the latest terminal event
    """

    name: str
    group: str = JOB_GROUP_DEFINED
    handler_class: Optional[str] = None
    handler_ref: Optional[str] = None
    engine_type: Optional[str] = None
    description: Optional[str] = None
    schedule_expression: Optional[str] = None
    singleton: bool = False
    enabled: bool = True
    status: Optional[JobStatus] = None
    message: Optional[str] = None
    executed_at: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    parameters: list[JobParameterDefinition] = field(default_factory=list)

    def add_parameter(
        self,
        name: str,
        type: str = "string",
        default_value: Optional[str] = None,
        choices: Optional[list[str]] = None,
        description: Optional[str] = None,
    ) -> JobParameterDefinition:
        """
        Add a parameter owned by this job.

        A parameter with the same name replaces the earlier one in place.
        """
        parameter = JobParameterDefinition(
            name=name,
            job_name=self.name,
            type=type,
            default_value=default_value,
            choices=list(choices) if choices is not None else None,
            description=description,
        )
        for index, existing in enumerate(self.parameters):
            if existing.name == name:
                self.parameters[index] = parameter
                return parameter
        self.parameters.append(parameter)
        return parameter

    def set_parameters(self, parameters: list[JobParameterDefinition]) -> None:
        """Replace the parameter set, re-stamping ownership to this job."""
        self.parameters = []
        for parameter in parameters:
            self.add_parameter(
                parameter.name,
                parameter.type,
                parameter.default_value,
                parameter.choices,
                parameter.description,
            )


@dataclass
class JobLogDefinition:
    """
    Immutable execution event.

    triggered_id is the id of the originating TRIGGERED row for terminal
    events, and None for TRIGGERED and free-form log rows.
    """

    job_name: str
    handler: Optional[str]
    status: JobStatus
    triggered_at: str
    id: Optional[int] = None
    triggered_id: Optional[int] = None
    finished_at: Optional[str] = None
    message: Optional[str] = None


@dataclass
class JobEmailDefinition:
    """Watcher address registered for one job."""

    job_name: str
    email: str
    id: Optional[int] = None
