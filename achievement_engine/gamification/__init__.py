"""
Achievement engine

Rule evaluation over a user's sessions, tasks and goals:
- Requirement evaluators and the special condition registry
- Progress tracking for cumulative requirements
- Catalog of achievement definitions
- Award engine with at-most-once awarding
"""

from achievement_engine.gamification.catalog import AchievementCatalog, PREDEFINED_ACHIEVEMENTS
from achievement_engine.gamification.conditions import (
    DEFAULT_REGISTRY,
    ActivitySnapshot,
    ActivitySource,
    ConditionRegistry,
    EvaluationResult,
)
from achievement_engine.gamification.engine import AchievementEngine
from achievement_engine.gamification.evaluators import evaluate_requirement, longest_streak
from achievement_engine.gamification.memory_store import InMemoryAchievementStore
from achievement_engine.gamification.progress_tracker import ProgressTracker, calculate_progress_percentage

__all__ = [
    "AchievementCatalog",
    "PREDEFINED_ACHIEVEMENTS",
    "DEFAULT_REGISTRY",
    "ActivitySnapshot",
    "ActivitySource",
    "ConditionRegistry",
    "EvaluationResult",
    "AchievementEngine",
    "evaluate_requirement",
    "longest_streak",
    "InMemoryAchievementStore",
    "ProgressTracker",
    "calculate_progress_percentage",
]
