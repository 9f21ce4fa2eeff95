"""
Scheduler state management for API integration.

Provides singleton access to the SchedulerCoreService instance.
Initialized during FastAPI lifespan.

Usage:
    from ._scheduler_state import get_scheduler_service, init_scheduler_service

    # In lifespan:
    init_scheduler_service(config)

    # In routers:
    service = get_scheduler_service()
"""

from typing import Optional

from src.scheduler import SchedulerConfig
from src.scheduler.service import SchedulerCoreService


# Global scheduler service instance
_scheduler_service: Optional[SchedulerCoreService] = None


def init_scheduler_service(
    config: SchedulerConfig,
    start_sweeper: bool = True,
) -> SchedulerCoreService:
    """
    Initialize the scheduler service singleton.

    Called during FastAPI lifespan startup.

    Args:
        config: Scheduler settings (config.db_path is the database)
        start_sweeper: Whether to start the periodic log retention sweep

    Returns:
        Initialized SchedulerCoreService
    """
    global _scheduler_service

    if _scheduler_service is not None:
        return _scheduler_service

    _scheduler_service = SchedulerCoreService.create(config.db_path, config)
    if start_sweeper:
        _scheduler_service.start()

    return _scheduler_service


def set_scheduler_service(service: Optional[SchedulerCoreService]) -> None:
    """Install a prebuilt service (tests) or clear the singleton."""
    global _scheduler_service
    _scheduler_service = service


def get_scheduler_service() -> SchedulerCoreService:
    """
    Get the scheduler service singleton.

    Raises:
        RuntimeError: If scheduler service not initialized
    """
    if _scheduler_service is None:
        raise RuntimeError(
            "Scheduler service not initialized. "
            "Ensure init_scheduler_service() is called during startup."
        )

    return _scheduler_service


def shutdown_scheduler_service() -> None:
    """
    Shutdown the scheduler service.

    Called during FastAPI lifespan shutdown. Stops the sweeper, which runs
    a final retention cleanup.
    """
    global _scheduler_service

    if _scheduler_service is not None:
        _scheduler_service.stop()
        _scheduler_service = None
