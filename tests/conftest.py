"""Global test fixtures for achievement engine tests"""
import pytest

from achievement_engine.gamification.catalog import AchievementCatalog
from achievement_engine.gamification.engine import AchievementEngine
from achievement_engine.gamification.memory_store import InMemoryAchievementStore
from achievement_engine.models.achievement import AchievementCategory, RequirementType
from tests.helpers import single_achievement


# ============================================================================
# User Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "user-123"


# ============================================================================
# Catalog Fixtures
# ============================================================================

@pytest.fixture
def five_sessions_catalog():
    """Catalog with a single 'complete 5 sessions' milestone"""
    return AchievementCatalog([
        single_achievement(
            "five_sessions",
            AchievementCategory.SESSION_MILESTONES,
            RequirementType.SESSION_COUNT,
            5
        )
    ])


# ============================================================================
# Engine Fixtures
# ============================================================================

@pytest.fixture
def store():
    """Empty in-memory store (storage + activity history)"""
    return InMemoryAchievementStore()


@pytest.fixture
def engine(store):
    """Engine over the predefined catalog"""
    return AchievementEngine(store, store)


@pytest.fixture
def make_engine(store):
    """Build an engine over a custom catalog"""
    def _make(catalog, **kwargs):
        return AchievementEngine(store, store, catalog=catalog, **kwargs)
    return _make
