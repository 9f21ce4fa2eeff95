"""
Scheduler-specific exceptions.

Every storage failure surfaces as SchedulerError (the original sqlite3 error
is chained as __cause__). Validation failures are raised before any write.
"""


class SchedulerError(Exception):
    """Base exception for all scheduler errors, and the storage fault type."""
    pass


class InvalidOperationError(SchedulerError):
    """
    Raised when an operation is called with unusable input.

    Examples:
    - Creating a job with an empty name
    - Parsing a malformed job document
    """
    pass


class JobNotFoundError(SchedulerError):
    """Raised when an operation requires a job that does not exist."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Job not found: {name}")


class InvalidEmailError(SchedulerError):
    """Raised when a watcher or recipient e-mail address is malformed."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"e-mail provided is not valid: {email}")
