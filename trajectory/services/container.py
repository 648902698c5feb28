"""
Service Container - Dependency Injection Container

Simple DI container for managing service instances and their dependencies.
Uses lazy loading to only instantiate services when first accessed.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Simple dependency injection container for services.

    Services are lazy-loaded on first access via properties.
    Infrastructure dependencies (db, coach_client) are injected.
    """

    # Infrastructure dependencies (injected)
    db: object  # Database instance
    coach_client: Optional[object] = None  # CoachClient (created by CoachService if omitted)

    # Services (lazy-loaded via properties)
    _completion_service: Optional[object] = field(default=None, init=False, repr=False)
    _progress_service: Optional[object] = field(default=None, init=False, repr=False)
    _coach_service: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def completion_service(self):
        """Get HabitCompletionService instance (lazy-loaded)"""
        if self._completion_service is None:
            from trajectory.services.completion_service import HabitCompletionService
            self._completion_service = HabitCompletionService(self.db)
            logger.debug("HabitCompletionService instantiated")
        return self._completion_service

    @property
    def progress_service(self):
        """Get ProgressService instance (lazy-loaded)"""
        if self._progress_service is None:
            from trajectory.services.progress_service import ProgressService
            self._progress_service = ProgressService(self.db)
            logger.debug("ProgressService instantiated")
        return self._progress_service

    @property
    def coach_service(self):
        """Get CoachService instance (lazy-loaded)"""
        if self._coach_service is None:
            from trajectory.services.coach_service import CoachService
            self._coach_service = CoachService(self.db, self.coach_client)
            logger.debug("CoachService instantiated")
        return self._coach_service


# Global container instance (initialized in the API lifespan)
_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """
    Get the global service container.

    Raises:
        RuntimeError: If container not initialized (call init_container first)
    """
    if _container is None:
        raise RuntimeError(
            "Service container not initialized. "
            "Call init_container() during application startup before using services."
        )
    return _container


def init_container(db: object, coach_client: Optional[object] = None) -> ServiceContainer:
    """
    Initialize the global service container.

    Args:
        db: Database instance
        coach_client: Optional CoachClient (tests inject a fake)

    Returns:
        ServiceContainer: The initialized container
    """
    global _container

    _container = ServiceContainer(db=db, coach_client=coach_client)
    logger.info("Service container initialized")
    return _container


def reset_container() -> None:
    """Drop the global container (used by tests)"""
    global _container
    _container = None
