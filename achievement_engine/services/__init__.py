"""
Service Layer Package

- AchievementService: application event hooks, summaries, backfill
- ServiceContainer: wires storage, engine and service together
"""

from achievement_engine.services.achievement_service import AchievementService
from achievement_engine.services.container import (
    ServiceContainer,
    get_container,
    init_container,
    reset_container,
)

__all__ = [
    "AchievementService",
    "ServiceContainer",
    "get_container",
    "init_container",
    "reset_container",
]
