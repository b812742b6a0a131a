"""
Service Container - Dependency Injection Container

Holds the storage backends and lazily builds the engine and service on top
of them.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

from achievement_engine.gamification.catalog import AchievementCatalog
from achievement_engine.storage import AchievementStorage, ActivityHistoryProvider

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Simple dependency injection container for the achievement engine.

    Storage backends are injected; the engine and service are lazy-loaded on
    first access via properties.
    """

    storage: AchievementStorage
    activity: ActivityHistoryProvider
    catalog: Optional[AchievementCatalog] = None

    _engine: Optional[object] = field(default=None, init=False, repr=False)
    _achievement_service: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def engine(self):
        """Get AchievementEngine instance (lazy-loaded)"""
        if self._engine is None:
            from achievement_engine.gamification.engine import AchievementEngine
            self._engine = AchievementEngine(self.storage, self.activity, catalog=self.catalog)
            logger.debug("AchievementEngine instantiated")
        return self._engine

    @property
    def achievement_service(self):
        """Get AchievementService instance (lazy-loaded)"""
        if self._achievement_service is None:
            from achievement_engine.services.achievement_service import AchievementService
            self._achievement_service = AchievementService(self.engine)
            logger.debug("AchievementService instantiated")
        return self._achievement_service


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
            "Call init_container() before using services."
        )
    return _container


def init_container(
    storage: AchievementStorage,
    activity: ActivityHistoryProvider,
    catalog: Optional[AchievementCatalog] = None
) -> ServiceContainer:
    """
    Initialize the global service container.

    Args:
        storage: AchievementStorage backend
        activity: ActivityHistoryProvider backend
        catalog: Catalog to seed (defaults to PREDEFINED_ACHIEVEMENTS)

    Returns:
        ServiceContainer: The initialized container
    """
    global _container

    _container = ServiceContainer(storage=storage, activity=activity, catalog=catalog)

    logger.info("Service container initialized")
    return _container


def reset_container() -> None:
    """Drop the global container (tests, shutdown)"""
    global _container
    _container = None
