"""Unit tests for the in-memory store (achievement_engine/gamification/memory_store.py)"""
import asyncio
import pytest

from achievement_engine.gamification.memory_store import InMemoryAchievementStore
from achievement_engine.models.achievement import AchievementCategory, AchievementNotification, RequirementType
from achievement_engine.storage import AchievementStorage, ActivityHistoryProvider
from tests.helpers import make_session, single_achievement, utc


def test_implements_storage_protocols():
    store = InMemoryAchievementStore()

    assert isinstance(store, AchievementStorage)
    assert isinstance(store, ActivityHistoryProvider)


@pytest.mark.asyncio
async def test_award_insert_if_absent():
    store = InMemoryAchievementStore()

    first = await store.award_achievement("user-1", "first_session", 10)
    second = await store.award_achievement("user-1", "first_session", 10)

    assert first is not None
    assert first.progress == 100
    assert first.metadata == {"points": 10}
    assert second is None
    assert len(await store.get_user_achievements("user-1")) == 1


@pytest.mark.asyncio
async def test_award_writes_notification_only_on_insert():
    store = InMemoryAchievementStore()

    def notification():
        return AchievementNotification(user_id="user-1", achievement_id="first_session")

    await store.award_achievement("user-1", "first_session", 10, notification=notification())
    await store.award_achievement("user-1", "first_session", 10, notification=notification())

    assert len(await store.get_notifications("user-1")) == 1


@pytest.mark.asyncio
async def test_concurrent_awards_single_winner():
    store = InMemoryAchievementStore()

    results = await asyncio.gather(*[
        store.award_achievement("user-1", "first_session", 10) for _ in range(10)
    ])

    assert sum(1 for r in results if r is not None) == 1


@pytest.mark.asyncio
async def test_awards_scoped_per_user():
    store = InMemoryAchievementStore()

    await store.award_achievement("user-1", "first_session", 10)
    await store.award_achievement("user-2", "first_session", 10)

    assert len(await store.get_user_achievements("user-1")) == 1
    assert len(await store.get_user_achievements("user-2")) == 1


@pytest.mark.asyncio
async def test_set_achievement_visibility():
    store = InMemoryAchievementStore()
    await store.award_achievement("user-1", "first_session", 10)

    assert await store.set_achievement_visibility("user-1", "first_session", False) is True
    assert await store.set_achievement_visibility("user-1", "never_earned", False) is False

    user_achievements = await store.get_user_achievements("user-1")
    assert user_achievements[0].is_visible is False


@pytest.mark.asyncio
async def test_achievements_by_category():
    store = InMemoryAchievementStore()
    await store.create_achievement(
        single_achievement("a", AchievementCategory.SESSION_MILESTONES, RequirementType.SESSION_COUNT, 1)
    )
    await store.create_achievement(
        single_achievement("b", AchievementCategory.TASK_COMPLETION, RequirementType.TASK_COMPLETION, 1)
    )

    milestones = await store.get_achievements_by_category(AchievementCategory.SESSION_MILESTONES)

    assert [a.id for a in milestones] == ["a"]
    assert (await store.get_achievement_by_id("b")).category == AchievementCategory.TASK_COMPLETION
    assert await store.get_achievement_by_id("missing") is None


@pytest.mark.asyncio
async def test_end_session():
    store = InMemoryAchievementStore()
    session = make_session(utc(2024, 1, 1), ended=False)
    store.add_session("user-1", session)

    ended = store.end_session("user-1", session.id, utc(2024, 1, 1, 18))

    sessions = await store.get_user_sessions("user-1")
    assert sessions == [ended]
    assert ended.duration_seconds == 6 * 3600


def test_end_unknown_session():
    store = InMemoryAchievementStore()

    with pytest.raises(KeyError):
        store.end_session("user-1", "missing", utc(2024, 1, 1))


@pytest.mark.asyncio
async def test_activity_returns_copies():
    store = InMemoryAchievementStore()
    store.add_session("user-1", make_session(utc(2024, 1, 1)))

    sessions = await store.get_user_sessions("user-1")
    sessions.clear()

    assert len(await store.get_user_sessions("user-1")) == 1
    assert await store.get_tasks("nobody") == []
    assert await store.get_goals("nobody") == []
