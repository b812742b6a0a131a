"""Unit tests for the achievement engine (achievement_engine/gamification/engine.py)"""
import asyncio
import pytest
from unittest.mock import AsyncMock, patch

from achievement_engine.exceptions import EvaluationError, QueryError, RecordNotFoundError, ValidationError
from achievement_engine.gamification.catalog import AchievementCatalog
from achievement_engine.models.achievement import (
    Achievement,
    AchievementCategory,
    NotificationType,
    RequirementType,
)
from achievement_engine.models.activity import TaskStatus
from tests.helpers import make_goal, make_session, make_task, single_achievement, utc


def add_sessions(store, user_id, days, hour=12):
    for day in days:
        store.add_session(user_id, make_session(utc(2024, 1, day, hour), user_id=user_id))


# ============================================================================
# Initialization Tests
# ============================================================================

@pytest.mark.asyncio
async def test_initialize_seeds_empty_storage(engine, store):
    await engine.initialize()

    achievements = await store.get_all_achievements()
    assert len(achievements) == len(engine.catalog)
    assert engine.initialized is True


@pytest.mark.asyncio
async def test_initialize_runs_once(engine, store):
    with patch.object(store, 'create_achievement', AsyncMock(wraps=store.create_achievement)) as create:
        await engine.initialize()
        await engine.initialize()

        assert create.await_count == len(engine.catalog)


@pytest.mark.asyncio
async def test_initialize_skips_seed_when_storage_has_achievements(engine, store):
    """Existing storage is left alone entirely, no partial merge"""
    existing = single_achievement("legacy", AchievementCategory.SESSION_MILESTONES, RequirementType.SESSION_COUNT, 1)
    await store.create_achievement(existing)

    await engine.initialize()

    achievements = await store.get_all_achievements()
    assert [a.id for a in achievements] == ["legacy"]


@pytest.mark.asyncio
async def test_concurrent_initialize_seeds_once(engine, store):
    with patch.object(store, 'create_achievement', AsyncMock(wraps=store.create_achievement)) as create:
        await asyncio.gather(engine.initialize(), engine.initialize(), engine.initialize())

        assert create.await_count == len(engine.catalog)


# ============================================================================
# Session Event Tests
# ============================================================================

@pytest.mark.asyncio
async def test_session_end_awards_milestone(make_engine, store, five_sessions_catalog, test_user_id):
    engine = make_engine(five_sessions_catalog)
    add_sessions(store, test_user_id, range(1, 6))

    awarded = await engine.process_session_event(test_user_id, "session_end")

    assert [ua.achievement_id for ua in awarded] == ["five_sessions"]
    assert awarded[0].user_id == test_user_id


@pytest.mark.asyncio
async def test_award_is_idempotent(make_engine, store, five_sessions_catalog, test_user_id):
    """Re-processing the same history never awards twice"""
    engine = make_engine(five_sessions_catalog)
    add_sessions(store, test_user_id, range(1, 6))

    first = await engine.process_session_event(test_user_id, "session_end")
    second = await engine.process_session_event(test_user_id, "session_end")

    assert len(first) == 1
    assert second == []
    assert len(await store.get_user_achievements(test_user_id)) == 1
    assert len(await store.get_notifications(test_user_id)) == 1


@pytest.mark.asyncio
async def test_concurrent_events_award_once(make_engine, store, five_sessions_catalog, test_user_id):
    engine = make_engine(five_sessions_catalog)
    add_sessions(store, test_user_id, range(1, 6))

    results = await asyncio.gather(*[
        engine.process_session_event(test_user_id, "session_end") for _ in range(5)
    ])

    assert sum(len(r) for r in results) == 1
    assert len(await store.get_notifications(test_user_id)) == 1


@pytest.mark.asyncio
async def test_user_locks_released_after_passes(engine, store, test_user_id):
    await asyncio.gather(
        engine.process_session_event(test_user_id, "session_end"),
        engine.process_session_event("user-456", "session_end"),
        engine.perform_full_check(test_user_id),
    )
    await engine.award_achievement(test_user_id, "first_session")

    assert engine._user_locks == {}
    assert engine._lock_holders == {}


@pytest.mark.asyncio
async def test_session_end_merges_triggering_session(make_engine, store, five_sessions_catalog, test_user_id):
    """The session passed with the event counts even if history hasn't caught up"""
    engine = make_engine(five_sessions_catalog)
    add_sessions(store, test_user_id, range(1, 5))
    latest = make_session(utc(2024, 1, 5), user_id=test_user_id)

    awarded = await engine.process_session_event(test_user_id, "session_end", latest)

    assert len(awarded) == 1


@pytest.mark.asyncio
async def test_session_end_replaces_stored_active_copy(make_engine, store, five_sessions_catalog, test_user_id):
    """Storage still holds the finished session as active"""
    engine = make_engine(five_sessions_catalog)
    add_sessions(store, test_user_id, range(1, 5))
    active = make_session(utc(2024, 1, 5), ended=False, user_id=test_user_id)
    store.add_session(test_user_id, active)
    ended = active.model_copy(update={"end_time": utc(2024, 1, 5, 13)})

    awarded = await engine.process_session_event(test_user_id, "session_end", ended)

    assert [ua.achievement_id for ua in awarded] == ["five_sessions"]


@pytest.mark.asyncio
async def test_session_start_evaluates_special_achievements(engine, store, test_user_id):
    for day in range(1, 6):
        store.add_session(test_user_id, make_session(utc(2024, 2, day, 6), ended=False))

    awarded = await engine.process_session_event(test_user_id, "session_start")

    assert "early_riser" in {ua.achievement_id for ua in awarded}
    # Session milestones are not part of session_start
    assert not await engine.has_achievement(test_user_id, "first_session")


@pytest.mark.asyncio
async def test_active_session_not_counted_for_milestone(make_engine, store, five_sessions_catalog, test_user_id):
    engine = make_engine(five_sessions_catalog)
    add_sessions(store, test_user_id, range(1, 5))
    store.add_session(test_user_id, make_session(utc(2024, 1, 5), ended=False))

    awarded = await engine.process_session_event(test_user_id, "session_end")

    assert awarded == []
    progress = await store.get_achievement_progress(test_user_id, "five_sessions")
    assert progress.current_value == 4


@pytest.mark.asyncio
async def test_unknown_session_event_ignored(engine, test_user_id):
    assert await engine.process_session_event(test_user_id, "session_paused") == []


# ============================================================================
# Task / Goal Event Tests
# ============================================================================

@pytest.mark.asyncio
async def test_task_completed_awards_first_task(engine, store, test_user_id):
    store.add_task(test_user_id, make_task(TaskStatus.COMPLETED))

    awarded = await engine.process_task_event(test_user_id, "task_completed")

    assert {ua.achievement_id for ua in awarded} == {"first_task"}


@pytest.mark.asyncio
async def test_task_approved_counts_as_completion(engine, store, test_user_id):
    store.add_task(test_user_id, make_task(TaskStatus.APPROVED))

    awarded = await engine.process_task_event(test_user_id, "task_approved")

    assert "first_task" in {ua.achievement_id for ua in awarded}


@pytest.mark.asyncio
async def test_task_rejected_does_not_evaluate(engine, store, test_user_id):
    store.add_task(test_user_id, make_task(TaskStatus.COMPLETED))

    with patch.object(store, 'get_tasks', AsyncMock(wraps=store.get_tasks)) as get_tasks:
        awarded = await engine.process_task_event(test_user_id, "task_rejected")

        assert awarded == []
        get_tasks.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_task_event_ignored(engine, test_user_id):
    assert await engine.process_task_event(test_user_id, "task_exploded") == []


@pytest.mark.asyncio
async def test_goal_completed_uses_triggering_goal(engine, store, test_user_id):
    goal = make_goal(86400 * 1.5, 86400)
    store.add_goal(test_user_id, goal)

    awarded = await engine.process_goal_event(test_user_id, "goal_completed", goal)

    assert {ua.achievement_id for ua in awarded} == {"first_goal", "overachiever"}


@pytest.mark.asyncio
async def test_goal_precision(engine, store, test_user_id):
    goal = make_goal(86400 + 600, 86400)
    store.add_goal(test_user_id, goal)

    awarded = await engine.process_goal_event(test_user_id, "goal_completed", goal)

    assert {ua.achievement_id for ua in awarded} == {"first_goal", "precision"}


@pytest.mark.asyncio
async def test_per_event_goal_condition_has_no_progress(engine, store, test_user_id):
    goal = make_goal(100, 100)
    store.add_goal(test_user_id, goal)

    await engine.process_goal_event(test_user_id, "goal_completed", goal)

    assert await store.get_achievement_progress(test_user_id, "overachiever") is None
    ten_goals = await store.get_achievement_progress(test_user_id, "ten_goals")
    assert ten_goals.current_value == 1
    assert ten_goals.target_value == 10


@pytest.mark.asyncio
async def test_unknown_goal_event_ignored(engine, test_user_id):
    assert await engine.process_goal_event(test_user_id, "goal_abandoned") == []


# ============================================================================
# Notification Tests
# ============================================================================

@pytest.mark.asyncio
async def test_award_creates_earned_notification(make_engine, store, five_sessions_catalog, test_user_id):
    engine = make_engine(five_sessions_catalog)
    add_sessions(store, test_user_id, range(1, 6))

    await engine.process_session_event(test_user_id, "session_end")

    notifications = await store.get_notifications(test_user_id)
    assert len(notifications) == 1
    assert notifications[0].type == NotificationType.EARNED
    assert notifications[0].achievement_id == "five_sessions"
    assert notifications[0].title == "Achievement Unlocked!"
    assert notifications[0].message == 'You\'ve earned the "Five Sessions" achievement!'
    assert notifications[0].is_read is False


# ============================================================================
# Edge Case Tests
# ============================================================================

@pytest.mark.asyncio
async def test_achievement_without_requirements_never_awarded(make_engine, store, test_user_id):
    empty = Achievement(
        id="free_lunch",
        name="Free Lunch",
        description="No requirements",
        category=AchievementCategory.SESSION_MILESTONES,
        requirements=[]
    )
    engine = make_engine(AchievementCatalog([empty]))
    add_sessions(store, test_user_id, range(1, 3))

    assert await engine.process_session_event(test_user_id, "session_end") == []
    assert await engine.perform_full_check(test_user_id) == []
    assert await engine.award_achievement(test_user_id, "free_lunch") is None


@pytest.mark.asyncio
async def test_inactive_achievement_skipped(make_engine, store, test_user_id):
    inactive = single_achievement(
        "retired", AchievementCategory.SESSION_MILESTONES, RequirementType.SESSION_COUNT, 1
    ).model_copy(update={"is_active": False})
    engine = make_engine(AchievementCatalog([inactive]))
    add_sessions(store, test_user_id, [1])

    assert await engine.process_session_event(test_user_id, "session_end") == []


@pytest.mark.asyncio
async def test_storage_error_is_swallowed(engine, store, test_user_id):
    """A failing store never breaks the triggering operation"""
    await engine.initialize()
    add_sessions(store, test_user_id, range(1, 6))

    with patch.object(store, 'get_user_achievements', AsyncMock(side_effect=QueryError("boom"))):
        awarded = await engine.process_session_event(test_user_id, "session_end")

    assert awarded == []


@pytest.mark.asyncio
async def test_award_failure_is_swallowed_and_retried_later(make_engine, store, five_sessions_catalog, test_user_id):
    engine = make_engine(five_sessions_catalog)
    add_sessions(store, test_user_id, range(1, 6))

    with patch.object(store, 'award_achievement', AsyncMock(side_effect=RuntimeError("db down"))):
        assert await engine.process_session_event(test_user_id, "session_end") == []

    assert await store.get_notifications(test_user_id) == []

    awarded = await engine.process_session_event(test_user_id, "session_end")
    assert len(awarded) == 1


@pytest.mark.asyncio
async def test_progress_failure_after_award_still_returns_award(make_engine, store, five_sessions_catalog, test_user_id):
    engine = make_engine(five_sessions_catalog)
    add_sessions(store, test_user_id, range(1, 6))

    with patch.object(store, 'update_achievement_progress', AsyncMock(side_effect=RuntimeError("db down"))):
        awarded = await engine.process_session_event(test_user_id, "session_end")

    assert [ua.achievement_id for ua in awarded] == ["five_sessions"]
    assert len(await store.get_user_achievements(test_user_id)) == 1
    assert len(await store.get_notifications(test_user_id)) == 1


@pytest.mark.asyncio
async def test_full_check_strict_reraises(engine, store, test_user_id):
    await engine.initialize()

    with patch.object(store, 'get_achievements_by_category', AsyncMock(side_effect=QueryError("boom"))):
        with pytest.raises(QueryError):
            await engine.perform_full_check(test_user_id, strict=True)


@pytest.mark.asyncio
async def test_full_check_strict_wraps_unexpected_errors(engine, store, test_user_id):
    await engine.initialize()

    with patch.object(store, 'get_user_sessions', AsyncMock(side_effect=RuntimeError("socket closed"))):
        with pytest.raises(EvaluationError) as exc_info:
            await engine.perform_full_check(test_user_id, strict=True)

    assert exc_info.value.event_type == "full_check"
    assert isinstance(exc_info.value.cause, RuntimeError)


@pytest.mark.asyncio
async def test_full_check_new_user_awards_nothing(engine, test_user_id):
    assert await engine.perform_full_check(test_user_id) == []


@pytest.mark.asyncio
async def test_full_check_awards_across_categories(engine, store, test_user_id):
    add_sessions(store, test_user_id, range(1, 4), hour=7)
    store.add_task(test_user_id, make_task(TaskStatus.APPROVED))
    store.add_goal(test_user_id, make_goal(10, 10))

    awarded = await engine.perform_full_check(test_user_id)

    ids = {ua.achievement_id for ua in awarded}
    assert {"first_session", "streak_3_days", "first_task", "first_goal"} <= ids
    # Per-event goal conditions need the triggering goal
    assert "overachiever" not in ids


# ============================================================================
# Direct Award Tests
# ============================================================================

@pytest.mark.asyncio
async def test_direct_award(engine, test_user_id):
    user_achievement = await engine.award_achievement(test_user_id, "first_session")

    assert user_achievement.achievement_id == "first_session"
    assert await engine.has_achievement(test_user_id, "first_session")
    assert await engine.award_achievement(test_user_id, "first_session") is None


@pytest.mark.asyncio
async def test_direct_award_unknown_achievement(engine, test_user_id):
    with pytest.raises(RecordNotFoundError):
        await engine.award_achievement(test_user_id, "does_not_exist")


@pytest.mark.asyncio
async def test_direct_award_rejects_blank_user(engine, store):
    with pytest.raises(ValidationError):
        await engine.award_achievement("  ", "first_session")

    assert await store.get_notifications("  ") == []
