"""
Retention Sweeper.

Deletes execution log rows older than the retention horizon. Runs on demand,
periodically on a background thread, and once more at shutdown.

The delete is bounded by a cutoff computed before the statement runs, so a
sweep never removes rows recorded after it started and needs no locking
against the Execution Log Recorder.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from .entities import to_iso, utcnow
from .persistence import PersistenceAdapter


logger = logging.getLogger(__name__)

LOGS_TABLE = "job_logs"


class RetentionSweeper:
    """Time-based purge of execution logs."""

    def __init__(
        self,
        persistence: PersistenceAdapter,
        retention_hours: int,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            persistence: Storage
            retention_hours: Maximum age of a log row
            clock: Returns the current naive UTC datetime
        """
        self.persistence = persistence
        self.retention_hours = retention_hours
        self.clock = clock

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    def cutoff(self) -> str:
        """Rows triggered before this timestamp are past the horizon."""
        return to_iso(self.clock() - timedelta(hours=self.retention_hours))

    def delete_old_job_logs(self) -> int:
        """
        Delete log rows older than the retention horizon.

        Idempotent: nothing past the horizon means nothing is deleted.

        Returns:
            Number of rows deleted
        """
        cutoff = self.cutoff()
        self.persistence.ensure_schema(LOGS_TABLE)
        deleted = self.persistence.delete_job_logs_before(cutoff)
        if deleted:
            logger.info(f"Deleted {deleted} job log(s) triggered before {cutoff}")
        return deleted

    def clear_job_logs(self, name: str) -> int:
        """Delete every log row of one job, regardless of age."""
        self.persistence.ensure_schema(LOGS_TABLE)
        deleted = self.persistence.delete_job_logs(name)
        logger.info(f"Cleared {deleted} log(s) of job {name}")
        return deleted

    def cleanup(self) -> int:
        """Shutdown hook."""
        return self.delete_old_job_logs()

    # =========================================================================
    # Periodic Sweep
    # =========================================================================

    def start(self, interval_seconds: float) -> None:
        """Start sweeping every interval_seconds on a daemon thread."""
        if self.is_running():
            raise RuntimeError("Retention sweeper already started")

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._sweep_loop,
            args=(interval_seconds,),
            name="job-log-retention",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float = 30.0) -> None:
        """Stop the sweep loop."""
        if self._thread is None:
            return

        self._stop_event.set()
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.warning("Retention sweeper thread did not stop within timeout")
        self._thread = None

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _sweep_loop(self, interval_seconds: float) -> None:
        logger.info(
            f"Retention sweeper started (horizon={self.retention_hours}h, "
            f"interval={interval_seconds}s)"
        )

        while not self._stop_event.is_set():
            try:
                self.delete_old_job_logs()
            except Exception as e:
                logger.error(f"Error in retention sweep: {e}", exc_info=True)
            self._stop_event.wait(interval_seconds)

        logger.info("Retention sweeper stopped")
