"""
Integration tests for end-to-end achievement workflows

Drives the engine through the service layer against the in-memory store,
the way the tracking application calls it.
"""
import pytest

from achievement_engine.gamification.catalog import AchievementCatalog
from achievement_engine.gamification.engine import AchievementEngine
from achievement_engine.gamification.memory_store import InMemoryAchievementStore
from achievement_engine.models.achievement import (
    AchievementCategory,
    NotificationType,
    RequirementType,
)
from achievement_engine.models.activity import TaskStatus
from achievement_engine.services.achievement_service import AchievementService
from tests.helpers import make_goal, make_session, make_task, single_achievement, utc


USER_ID = "user-42"


@pytest.fixture
def store():
    return InMemoryAchievementStore()


def build_service(store, catalog=None, **kwargs):
    return AchievementService(AchievementEngine(store, store, catalog=catalog, **kwargs))


# ============================================================================
# Session Milestone Workflow
# ============================================================================

@pytest.mark.asyncio
async def test_fifth_session_earns_milestone(store):
    """Four sessions leave progress at 4/5; the fifth awards and notifies once"""
    catalog = AchievementCatalog([
        single_achievement("five_sessions", AchievementCategory.SESSION_MILESTONES, RequirementType.SESSION_COUNT, 5)
    ])
    service = build_service(store, catalog)

    for day in range(1, 5):
        session = make_session(utc(2024, 4, day), user_id=USER_ID)
        store.add_session(USER_ID, session)
        assert await service.on_session_end(USER_ID, session) == []

    progress = await store.get_achievement_progress(USER_ID, "five_sessions")
    assert progress.current_value == 4
    assert progress.target_value == 5
    assert progress.is_completed is False

    fifth = make_session(utc(2024, 4, 5), user_id=USER_ID)
    store.add_session(USER_ID, fifth)
    awarded = await service.on_session_end(USER_ID, fifth)

    assert [ua.achievement_id for ua in awarded] == ["five_sessions"]
    notifications = await store.get_notifications(USER_ID)
    assert len(notifications) == 1
    assert notifications[0].type == NotificationType.EARNED

    progress = await store.get_achievement_progress(USER_ID, "five_sessions")
    assert progress.current_value == 5
    assert progress.is_completed is True


@pytest.mark.asyncio
async def test_session_lifecycle_start_then_end(store):
    """A session counts for special achievements on start, for milestones on end"""
    service = build_service(store)
    session = make_session(utc(2024, 12, 25, 6), ended=False, user_id=USER_ID)
    store.add_session(USER_ID, session)

    started = await service.on_session_start(USER_ID, session)
    assert "holiday_spirit" in {ua.achievement_id for ua in started}
    assert not await service.engine.has_achievement(USER_ID, "first_session")

    # Still active: nothing completed yet
    assert await service.on_session_end(USER_ID) == []

    ended = store.end_session(USER_ID, session.id, utc(2024, 12, 26, 7))
    finished = await service.on_session_end(USER_ID, ended)

    ids = {ua.achievement_id for ua in finished}
    assert {"first_session", "one_day_session"} <= ids


# ============================================================================
# Special Achievement Workflow
# ============================================================================

@pytest.mark.asyncio
async def test_before_8am_counts_only_early_sessions(store):
    catalog = AchievementCatalog([
        single_achievement(
            "early_bird", AchievementCategory.SPECIAL_ACHIEVEMENTS, RequirementType.SPECIAL_CONDITION, 5,
            condition="sessions_before_8am"
        )
    ])
    service = build_service(store, catalog)
    store.add_session(USER_ID, make_session(utc(2024, 4, 1, 7), user_id=USER_ID))
    store.add_session(USER_ID, make_session(utc(2024, 4, 2, 9), user_id=USER_ID))

    awarded = await service.on_session_start(USER_ID)

    assert awarded == []
    progress = await store.get_achievement_progress(USER_ID, "early_bird")
    assert progress.current_value == 1
    assert progress.target_value == 5

    for day in range(3, 6):
        store.add_session(USER_ID, make_session(utc(2024, 4, day, 7), user_id=USER_ID))
    assert await service.on_session_start(USER_ID) == []
    progress = await store.get_achievement_progress(USER_ID, "early_bird")
    assert progress.current_value == 4

    store.add_session(USER_ID, make_session(utc(2024, 4, 6, 6, 30), user_id=USER_ID))
    awarded = await service.on_session_start(USER_ID)

    assert [ua.achievement_id for ua in awarded] == ["early_bird"]


@pytest.mark.asyncio
async def test_early_sessions_in_user_timezone(store):
    """11:00 UTC is 07:00 in New York during daylight saving time"""
    catalog = AchievementCatalog([
        single_achievement(
            "early_bird", AchievementCategory.SPECIAL_ACHIEVEMENTS, RequirementType.SPECIAL_CONDITION, 1,
            condition="sessions_before_8am"
        )
    ])
    store.add_session(USER_ID, make_session(utc(2024, 7, 1, 11), user_id=USER_ID))

    utc_service = build_service(store, catalog)
    assert await utc_service.on_session_start(USER_ID) == []

    ny_service = build_service(store, catalog, timezone="America/New_York")
    assert len(await ny_service.on_session_start(USER_ID)) == 1


# ============================================================================
# Task and Goal Workflows
# ============================================================================

@pytest.mark.asyncio
async def test_task_approval_workflow(store):
    service = build_service(store)

    for _ in range(9):
        store.add_task(USER_ID, make_task(TaskStatus.APPROVED))
    store.add_task(USER_ID, make_task(TaskStatus.REJECTED))

    awarded = await service.on_task_approved(USER_ID)

    assert {"first_task", "perfect_record"} <= {ua.achievement_id for ua in awarded}


@pytest.mark.asyncio
async def test_goal_workflow_per_event_conditions(store):
    service = build_service(store)

    modest = make_goal(86400 * 3, 86400)
    store.add_goal(USER_ID, modest)
    first = await service.on_goal_completed(USER_ID, modest)
    assert {ua.achievement_id for ua in first} == {"first_goal", "overachiever"}

    exact = make_goal(86400 * 2, 86400 * 2)
    store.add_goal(USER_ID, exact)
    second = await service.on_goal_completed(USER_ID, exact)
    assert {ua.achievement_id for ua in second} == {"precision"}

    progress = await store.get_achievement_progress(USER_ID, "ten_goals")
    assert progress.current_value == 2


# ============================================================================
# Full Check Workflow
# ============================================================================

@pytest.mark.asyncio
async def test_full_check_backfills_then_is_idempotent(store):
    service = build_service(store)
    for day in range(1, 11):
        store.add_session(USER_ID, make_session(utc(2024, 5, day), user_id=USER_ID))
    store.add_task(USER_ID, make_task(TaskStatus.COMPLETED))

    awarded = await service.engine.perform_full_check(USER_ID)

    ids = {ua.achievement_id for ua in awarded}
    assert {"first_session", "ten_sessions", "streak_3_days", "streak_7_days", "first_task"} <= ids
    notifications_after_backfill = len(await store.get_notifications(USER_ID))
    assert notifications_after_backfill == len(awarded)

    # User now holds everything they qualify for
    assert await service.engine.perform_full_check(USER_ID) == []
    assert len(await store.get_notifications(USER_ID)) == notifications_after_backfill


@pytest.mark.asyncio
async def test_users_are_isolated(store):
    service = build_service(store)
    store.add_session("user-a", make_session(utc(2024, 5, 1), user_id="user-a"))

    await service.on_session_end("user-a")
    awarded_b = await service.on_session_end("user-b")

    assert awarded_b == []
    assert await store.get_user_achievements("user-b") == []
    assert await store.get_notifications("user-b") == []
