"""
Persistence Adapter for the Job Scheduler.

SQLite storage for the four scheduler record kinds:
- jobs: JobDefinition (key: name)
- job_parameters: JobParameterDefinition (key: job_name + name)
- job_logs: JobLogDefinition (key: autoincrement id)
- job_emails: JobEmailDefinition (key: autoincrement id)

Every public method is a short-lived unit of work: it opens its own
connection, commits or rolls back, and closes the connection on every exit
path. sqlite3 errors are wrapped into SchedulerError.

The adapter exposes one method per query the scheduler needs (save_job,
update_job_rollup, insert_job_log, delete_job_logs_before, ...) rather
than a generic find / query / insert / update / delete gateway; each
method owns its SQL and its transaction boundary.

Provides:
- Atomic job save + parameter reconciliation
- Atomic rollup status compare-and-set
- Timestamp-bounded log retention deletes
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Tuple

from .entities import (
    JobDefinition,
    JobParameterDefinition,
    JobLogDefinition,
    JobEmailDefinition,
    JobStatus,
)
from .errors import SchedulerError, InvalidOperationError


logger = logging.getLogger(__name__)

# Seconds a writer waits on a locked database before failing
BUSY_TIMEOUT_SECONDS = 30.0


SCHEMA = {
    "jobs": (
        """
        CREATE TABLE IF NOT EXISTS jobs (
            name TEXT PRIMARY KEY,
            job_group TEXT,
            handler_class TEXT,
            handler_ref TEXT,
            engine_type TEXT,
            description TEXT,
            schedule_expression TEXT,
            singleton INTEGER NOT NULL DEFAULT 0,
            enabled INTEGER NOT NULL DEFAULT 1,
            status TEXT,
            message TEXT,
            executed_at TEXT,
            created_by TEXT,
            created_at TEXT
        )
        """,
    ),
    "job_parameters": (
        """
        CREATE TABLE IF NOT EXISTS job_parameters (
            job_name TEXT NOT NULL,
            name TEXT NOT NULL,
            type TEXT,
            default_value TEXT,
            choices TEXT,
            description TEXT,
            PRIMARY KEY (job_name, name)
        )
        """,
    ),
    "job_logs": (
        """
        CREATE TABLE IF NOT EXISTS job_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            job_name TEXT NOT NULL,
            handler TEXT,
            status TEXT NOT NULL,
            triggered_id INTEGER,
            triggered_at TEXT NOT NULL,
            finished_at TEXT,
            message TEXT
        )
        """,
        """
        CREATE INDEX IF NOT EXISTS idx_job_logs_name_triggered
        ON job_logs (job_name, triggered_at DESC)
        """,
        """
        CREATE INDEX IF NOT EXISTS idx_job_logs_triggered_at
        ON job_logs (triggered_at)
        """,
    ),
    "job_emails": (
        """
        CREATE TABLE IF NOT EXISTS job_emails (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            job_name TEXT NOT NULL,
            email TEXT NOT NULL
        )
        """,
        """
        CREATE INDEX IF NOT EXISTS idx_job_emails_job_name
        ON job_emails (job_name)
        """,
    ),
}


class PersistenceAdapter:
    """
    SQLite-based persistence for all job-related records.

    - Abstracts SQLite storage
    - CRUD operations for jobs, parameters, logs, e-mails
    - Does NOT send notifications or decide status transitions
    - Does NOT validate beyond schema constraints
    """

    def __init__(self, db_path: str | Path):
        """
        Initialize persistence adapter.

        Args:
            db_path: Path to SQLite database file. Each operation opens its
                own connection, so ":memory:" is not supported.
        """
        if str(db_path) == ":memory:":
            raise InvalidOperationError("An on-disk database path is required")
        self.db_path = str(db_path)
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection with WAL mode enabled."""
        try:
            conn = sqlite3.connect(self.db_path, timeout=BUSY_TIMEOUT_SECONDS)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
        except sqlite3.Error as e:
            raise SchedulerError(f"Cannot open scheduler database {self.db_path}: {e}") from e
        return conn

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for read-only database access."""
        conn = self._get_connection()
        try:
            yield conn
        except sqlite3.Error as e:
            raise SchedulerError(f"Storage read failed: {e}") from e
        finally:
            conn.close()

    @contextmanager
    def _transaction(self, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        """
        Context manager for database transactions.

        Args:
            immediate: Take the write lock up front (BEGIN IMMEDIATE), so a
                read-compare-write inside the block cannot interleave with
                another writer.
        """
        conn = self._get_connection()
        try:
            if immediate:
                conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise SchedulerError(f"Storage write failed: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._transaction() as conn:
            for statements in SCHEMA.values():
                for statement in statements:
                    conn.execute(statement)

    def ensure_schema(self, table: str) -> None:
        """
        Create a table (and its indexes) if it does not exist.

        Lets maintenance operations tolerate a database whose tables were
        dropped after startup.
        """
        if table not in SCHEMA:
            raise InvalidOperationError(f"Unknown scheduler table: {table}")
        with self._transaction() as conn:
            for statement in SCHEMA[table]:
                conn.execute(statement)

    # =========================================================================
    # Job Operations
    # =========================================================================

    def get_job(self, name: str) -> Optional[JobDefinition]:
        """Get a job by name, with its parameters attached."""
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM jobs WHERE name = ?",
                (name,),
            ).fetchone()
            if row is None:
                return None
            job = self._row_to_job(row)
            job.parameters = self._select_parameters(conn, name)
        return job

    def list_jobs(self) -> list[JobDefinition]:
        """List all jobs ordered by name (parameters not attached)."""
        with self._connection() as conn:
            rows = conn.execute("SELECT * FROM jobs ORDER BY name").fetchall()
        return [self._row_to_job(row) for row in rows]

    def job_exists(self, name: str) -> bool:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT 1 FROM jobs WHERE name = ?",
                (name,),
            ).fetchone()
        return row is not None

    def save_job(self, job: JobDefinition) -> Tuple[JobDefinition, Optional[JobDefinition]]:
        """
        Insert or update a job and reconcile its parameters atomically.

        created_at and created_by of an existing row are never overwritten;
        the returned definition carries the stored values. The stored
        status, message and executed_at are always kept on update, read
        under the same write lock, so a stale definition cannot revert a
        terminal event recorded after it was loaded.

        Returns:
            (saved job with parameters, previous stored job or None)
        """
        with self._transaction(immediate=True) as conn:
            row = conn.execute(
                "SELECT * FROM jobs WHERE name = ?",
                (job.name,),
            ).fetchone()
            previous = self._row_to_job(row) if row is not None else None

            if previous is None:
                conn.execute(
                    """
                    INSERT INTO jobs
                    (name, job_group, handler_class, handler_ref, engine_type, description,
                     schedule_expression, singleton, enabled, status, message, executed_at,
                     created_by, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        job.name,
                        job.group,
                        job.handler_class,
                        job.handler_ref,
                        job.engine_type,
                        job.description,
                        job.schedule_expression,
                        1 if job.singleton else 0,
                        1 if job.enabled else 0,
                        job.status.value if job.status else None,
                        job.message,
                        job.executed_at,
                        job.created_by,
                        job.created_at,
                    ),
                )
            else:
                job.created_by = previous.created_by or job.created_by
                job.created_at = previous.created_at or job.created_at
                # Rollup is owned by update_job_rollup
                job.status = previous.status
                job.message = previous.message
                job.executed_at = previous.executed_at
                conn.execute(
                    """
                    UPDATE jobs SET
                        job_group = ?, handler_class = ?, handler_ref = ?, engine_type = ?,
                        description = ?, schedule_expression = ?, singleton = ?, enabled = ?,
                        status = ?, message = ?, executed_at = ?, created_by = ?, created_at = ?
                    WHERE name = ?
                    """,
                    (
                        job.group,
                        job.handler_class,
                        job.handler_ref,
                        job.engine_type,
                        job.description,
                        job.schedule_expression,
                        1 if job.singleton else 0,
                        1 if job.enabled else 0,
                        job.status.value if job.status else None,
                        job.message,
                        job.executed_at,
                        job.created_by,
                        job.created_at,
                        job.name,
                    ),
                )

            job.parameters = self.reconcile_parameters(conn, job.name, job.parameters)

        return job, previous

    def update_job_rollup(
        self,
        name: str,
        status: JobStatus,
        message: Optional[str],
        executed_at: Optional[str],
    ) -> Optional[Tuple[JobDefinition, Optional[JobStatus]]]:
        """
        Set a job's rollup status and return the status it replaced.

        Read and write happen under one write lock, so two terminal events
        racing on the same job each observe the status the other left.

        Returns:
            (updated job, previous status), or None if the job does not exist
        """
        with self._transaction(immediate=True) as conn:
            row = conn.execute(
                "SELECT * FROM jobs WHERE name = ?",
                (name,),
            ).fetchone()
            if row is None:
                return None

            job = self._row_to_job(row)
            previous_status = job.status

            conn.execute(
                "UPDATE jobs SET status = ?, message = ?, executed_at = ? WHERE name = ?",
                (status.value, message, executed_at, name),
            )

            job.status = status
            job.message = message
            job.executed_at = executed_at
            job.parameters = self._select_parameters(conn, name)

        return job, previous_status

    def delete_job(self, name: str) -> bool:
        """
        Delete a job and its parameters.

        Logs and e-mails are left in place.

        Returns:
            True if a job row was deleted
        """
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM jobs WHERE name = ?", (name,))
            conn.execute("DELETE FROM job_parameters WHERE job_name = ?", (name,))
        return cursor.rowcount > 0

    def _row_to_job(self, row: sqlite3.Row) -> JobDefinition:
        """Convert a database row to a JobDefinition."""
        return JobDefinition(
            name=row["name"],
            group=row["job_group"],
            handler_class=row["handler_class"],
            handler_ref=row["handler_ref"],
            engine_type=row["engine_type"],
            description=row["description"],
            schedule_expression=row["schedule_expression"],
            singleton=bool(row["singleton"]),
            enabled=bool(row["enabled"]),
            status=JobStatus(row["status"]) if row["status"] else None,
            message=row["message"],
            executed_at=row["executed_at"],
            created_by=row["created_by"],
            created_at=row["created_at"],
        )

    # =========================================================================
    # Parameter Reconciliation
    # =========================================================================

    def get_job_parameters(self, job_name: str) -> list[JobParameterDefinition]:
        """List the stored parameters of a job."""
        with self._connection() as conn:
            return self._select_parameters(conn, job_name)

    def reconcile_parameters(
        self,
        conn: sqlite3.Connection,
        job_name: str,
        parameters: list[JobParameterDefinition],
    ) -> list[JobParameterDefinition]:
        """
        Make the stored parameter set of a job mirror the desired set.

        1. Upsert every desired parameter by (job_name, name)
        2. Delete stored parameters whose name is not desired

        Duplicate names in the desired set collapse, the later one wins.
        An empty desired set deletes every stored parameter of the job.

        Args:
            conn: Connection of the enclosing transaction
            job_name: Owning job
            parameters: Desired parameter set

        Returns:
            The stored parameter set after reconciliation
        """
        desired: dict[str, JobParameterDefinition] = {}
        for parameter in parameters:
            parameter.job_name = job_name
            desired[parameter.name] = parameter

        for parameter in desired.values():
            values = (
                parameter.type,
                parameter.default_value,
                json.dumps(parameter.choices) if parameter.choices is not None else None,
                parameter.description,
                job_name,
                parameter.name,
            )
            existing = conn.execute(
                "SELECT 1 FROM job_parameters WHERE job_name = ? AND name = ?",
                (job_name, parameter.name),
            ).fetchone()
            if existing is None:
                conn.execute(
                    """
                    INSERT INTO job_parameters
                    (type, default_value, choices, description, job_name, name)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    values,
                )
            else:
                conn.execute(
                    """
                    UPDATE job_parameters
                    SET type = ?, default_value = ?, choices = ?, description = ?
                    WHERE job_name = ? AND name = ?
                    """,
                    values,
                )

        for stored in self._select_parameters(conn, job_name):
            if stored.name not in desired:
                conn.execute(
                    "DELETE FROM job_parameters WHERE job_name = ? AND name = ?",
                    (job_name, stored.name),
                )
                logger.debug(f"Removed parameter {stored.name} from job {job_name}")

        return self._select_parameters(conn, job_name)

    def _select_parameters(
        self, conn: sqlite3.Connection, job_name: str
    ) -> list[JobParameterDefinition]:
        rows = conn.execute(
            "SELECT * FROM job_parameters WHERE job_name = ? ORDER BY rowid",
            (job_name,),
        ).fetchall()
        return [
            JobParameterDefinition(
                name=row["name"],
                job_name=row["job_name"],
                type=row["type"],
                default_value=row["default_value"],
                choices=json.loads(row["choices"]) if row["choices"] is not None else None,
                description=row["description"],
            )
            for row in rows
        ]

    # =========================================================================
    # Job Log Operations
    # =========================================================================

    def insert_job_log(self, log: JobLogDefinition) -> JobLogDefinition:
        """Append a log row; the generated id is set on the returned record."""
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO job_logs
                (job_name, handler, status, triggered_id, triggered_at, finished_at, message)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    log.job_name,
                    log.handler,
                    log.status.value,
                    log.triggered_id,
                    log.triggered_at,
                    log.finished_at,
                    log.message,
                ),
            )
            log.id = cursor.lastrowid
        return log

    def get_job_log(self, log_id: int) -> Optional[JobLogDefinition]:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM job_logs WHERE id = ?",
                (log_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_job_log(row)

    def list_job_logs(self, job_name: str, limit: int = 1000) -> list[JobLogDefinition]:
        """List a job's logs, newest triggered_at first."""
        with self._connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM job_logs
                WHERE job_name = ?
                ORDER BY triggered_at DESC, id DESC
                LIMIT ?
                """,
                (job_name, limit),
            ).fetchall()
        return [self._row_to_job_log(row) for row in rows]

    def delete_job_logs_before(self, cutoff: str) -> int:
        """
        Delete log rows triggered strictly before the cutoff.

        Returns:
            Number of rows deleted
        """
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM job_logs WHERE triggered_at < ?",
                (cutoff,),
            )
        return cursor.rowcount

    def delete_job_logs(self, job_name: str) -> int:
        """Delete every log row of a job. Returns the number of rows deleted."""
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM job_logs WHERE job_name = ?",
                (job_name,),
            )
        return cursor.rowcount

    def _row_to_job_log(self, row: sqlite3.Row) -> JobLogDefinition:
        """Convert a database row to a JobLogDefinition."""
        return JobLogDefinition(
            id=row["id"],
            job_name=row["job_name"],
            handler=row["handler"],
            status=JobStatus(row["status"]),
            triggered_id=row["triggered_id"],
            triggered_at=row["triggered_at"],
            finished_at=row["finished_at"],
            message=row["message"],
        )

    # =========================================================================
    # Job E-mail Operations
    # =========================================================================

    def insert_job_email(self, email: JobEmailDefinition) -> JobEmailDefinition:
        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO job_emails (job_name, email) VALUES (?, ?)",
                (email.job_name, email.email),
            )
            email.id = cursor.lastrowid
        return email

    def list_job_emails(self, job_name: str) -> list[JobEmailDefinition]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM job_emails WHERE job_name = ? ORDER BY id",
                (job_name,),
            ).fetchall()
        return [
            JobEmailDefinition(id=row["id"], job_name=row["job_name"], email=row["email"])
            for row in rows
        ]

    def delete_job_email(self, email_id: int) -> bool:
        """Delete a watcher address by id. Returns True if a row was deleted."""
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM job_emails WHERE id = ?", (email_id,))
        return cursor.rowcount > 0
