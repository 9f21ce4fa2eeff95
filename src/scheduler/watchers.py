"""
Watcher Registry.

Per-job e-mail addresses that receive transition notifications. Addresses
are validated with pydantic's EmailStr (backed by email-validator) before
anything is written.
"""

import logging

from pydantic import EmailStr, TypeAdapter, ValidationError

from .entities import JobEmailDefinition
from .errors import InvalidEmailError
from .persistence import PersistenceAdapter


logger = logging.getLogger(__name__)

_email_adapter = TypeAdapter(EmailStr)


def is_valid_email(value: str) -> bool:
    """Check an e-mail address format (no deliverability lookup)."""
    if not isinstance(value, str) or not value:
        return False
    try:
        _email_adapter.validate_python(value)
    except ValidationError:
        return False
    return True


class WatcherRegistry:
    """Add, list and remove watcher addresses of jobs."""

    def __init__(self, persistence: PersistenceAdapter):
        self.persistence = persistence

    def get_job_emails(self, name: str) -> list[JobEmailDefinition]:
        """List all watcher addresses for a job (empty for unknown jobs)."""
        return self.persistence.list_job_emails(name)

    def add_job_email(self, name: str, email: str) -> JobEmailDefinition:
        """
        Register a watcher address for a job.

        Raises:
            InvalidEmailError: If the address is malformed (nothing is written)
        """
        if not is_valid_email(email):
            raise InvalidEmailError(email)

        definition = self.persistence.insert_job_email(
            JobEmailDefinition(job_name=name, email=email)
        )
        logger.info(f"Added watcher {email} to job {name} (id={definition.id})")
        return definition

    def remove_job_email(self, email_id: int) -> bool:
        """Remove a watcher address by id. Returns False if nothing was removed."""
        removed = self.persistence.delete_job_email(email_id)
        if removed:
            logger.info(f"Removed watcher id={email_id}")
        return removed
