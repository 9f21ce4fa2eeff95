"""
Scheduler configuration.

SchedulerConfig is built once at process start (usually via from_env()
after python-dotenv has loaded .env) and passed to SchedulerCoreService.create().
It is immutable, so tests can construct variants directly.

Environment variables:
    SCHEDULER_LOGS_RETENTION_PERIOD     Log retention horizon in hours (default 168)
    SCHEDULER_EMAIL_SENDER              From address; notifications are off without it
    SCHEDULER_EMAIL_RECIPIENTS          Comma-separated global recipient list
    SCHEDULER_EMAIL_SUBJECT_<EVENT>     Subject template, "%s" is the job name
    SCHEDULER_EMAIL_TEMPLATE_<EVENT>    Body template path
    SCHEDULER_EMAIL_URL_SCHEME/HOST/PORT  Base URL used inside bodies
    SCHEDULER_TEMPLATE_ENGINE           Template engine name (default "jinja2")
    SCHEDULER_SMTP_HOST/PORT/USER/PASSWORD/STARTTLS  Mail transport
    SCHEDULER_DB_PATH                   SQLite database path
    SCHEDULER_SWEEP_INTERVAL_SECONDS    Retention sweep period
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from .watchers import is_valid_email


logger = logging.getLogger(__name__)

DEFAULT_LOGS_RETENTION_HOURS = 24 * 7
DEFAULT_SWEEP_INTERVAL_SECONDS = 3600.0
DEFAULT_DB_PATH = "data/scheduler.db"

DEFAULT_EMAIL_SUBJECT_ERROR = "Job execution failed: [%s]"
DEFAULT_EMAIL_SUBJECT_NORMAL = "Job execution is back to normal: [%s]"
DEFAULT_EMAIL_SUBJECT_ENABLE = "Job execution has been enabled: [%s]"
DEFAULT_EMAIL_SUBJECT_DISABLE = "Job execution has been disabled: [%s]"

ENV_PREFIX = "SCHEDULER_"


@dataclass(frozen=True)
class SchedulerConfig:
    """Immutable scheduler settings."""

    logs_retention_hours: int = DEFAULT_LOGS_RETENTION_HOURS

    email_sender: Optional[str] = None
    email_recipients: tuple[str, ...] = ()
    # Raw configured recipient line, kept to report misconfiguration
    email_recipients_line: Optional[str] = None

    email_subject_error: str = DEFAULT_EMAIL_SUBJECT_ERROR
    email_subject_normal: str = DEFAULT_EMAIL_SUBJECT_NORMAL
    email_subject_enable: str = DEFAULT_EMAIL_SUBJECT_ENABLE
    email_subject_disable: str = DEFAULT_EMAIL_SUBJECT_DISABLE

    email_template_error: Optional[str] = None
    email_template_normal: Optional[str] = None
    email_template_enable: Optional[str] = None
    email_template_disable: Optional[str] = None

    email_url_scheme: Optional[str] = None
    email_url_host: Optional[str] = None
    email_url_port: Optional[str] = None

    template_engine: str = "jinja2"

    smtp_host: Optional[str] = None
    smtp_port: int = 25
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = field(default=None, repr=False)
    smtp_starttls: bool = False

    db_path: str = DEFAULT_DB_PATH
    sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SchedulerConfig":
        """
        Build configuration from environment variables.

        Args:
            environ: Mapping to read instead of os.environ (for tests)

        Returns:
            SchedulerConfig
        """
        env = os.environ if environ is None else environ

        def get(name: str, default: Optional[str] = None) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            if value is None or value.strip() == "":
                return default
            return value.strip()

        recipients_line = get("EMAIL_RECIPIENTS")

        return cls(
            logs_retention_hours=parse_retention_hours(get("LOGS_RETENTION_PERIOD")),
            email_sender=get("EMAIL_SENDER"),
            email_recipients=parse_recipients(recipients_line),
            email_recipients_line=recipients_line,
            email_subject_error=get("EMAIL_SUBJECT_ERROR", DEFAULT_EMAIL_SUBJECT_ERROR),
            email_subject_normal=get("EMAIL_SUBJECT_NORMAL", DEFAULT_EMAIL_SUBJECT_NORMAL),
            email_subject_enable=get("EMAIL_SUBJECT_ENABLE", DEFAULT_EMAIL_SUBJECT_ENABLE),
            email_subject_disable=get("EMAIL_SUBJECT_DISABLE", DEFAULT_EMAIL_SUBJECT_DISABLE),
            email_template_error=get("EMAIL_TEMPLATE_ERROR"),
            email_template_normal=get("EMAIL_TEMPLATE_NORMAL"),
            email_template_enable=get("EMAIL_TEMPLATE_ENABLE"),
            email_template_disable=get("EMAIL_TEMPLATE_DISABLE"),
            email_url_scheme=get("EMAIL_URL_SCHEME"),
            email_url_host=get("EMAIL_URL_HOST"),
            email_url_port=get("EMAIL_URL_PORT"),
            template_engine=get("TEMPLATE_ENGINE", "jinja2"),
            smtp_host=get("SMTP_HOST"),
            smtp_port=int(get("SMTP_PORT", "25")),
            smtp_user=get("SMTP_USER"),
            smtp_password=get("SMTP_PASSWORD"),
            smtp_starttls=get("SMTP_STARTTLS", "false").lower() == "true",
            db_path=get("DB_PATH", DEFAULT_DB_PATH),
            sweep_interval_seconds=float(
                get("SWEEP_INTERVAL_SECONDS", str(DEFAULT_SWEEP_INTERVAL_SECONDS))
            ),
        )


def parse_retention_hours(value: Optional[str]) -> int:
    """Parse the retention horizon, falling back to one week when unusable."""
    if value is None:
        return DEFAULT_LOGS_RETENTION_HOURS
    try:
        hours = int(value)
    except ValueError:
        hours = -1
    if hours <= 0:
        logger.warning(
            f"{ENV_PREFIX}LOGS_RETENTION_PERIOD is not correctly set ({value!r}), "
            f"so it will be backed up to a week timeframe (24x7)"
        )
        return DEFAULT_LOGS_RETENTION_HOURS
    return hours


def parse_recipients(line: Optional[str]) -> tuple[str, ...]:
    """
    Parse a comma-separated recipient list.

    If any entry is not a valid address the whole list is discarded.
    """
    if not line:
        return ()
    recipients = tuple(part.strip() for part in line.split(",") if part.strip())
    for candidate in recipients:
        if not is_valid_email(candidate):
            logger.warning(
                f"{ENV_PREFIX}EMAIL_RECIPIENTS contains invalid e-mail address: {candidate}"
            )
            return ()
    return recipients
