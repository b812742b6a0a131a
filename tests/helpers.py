"""Activity and catalog factories shared by unit and integration tests"""
from datetime import datetime, timedelta, timezone
from itertools import count

from achievement_engine.models.achievement import (
    Achievement,
    AchievementCategory,
    Requirement,
    RequirementType,
)
from achievement_engine.models.activity import Goal, Session, Task, TaskStatus

_ids = count(1)


def utc(year, month, day, hour=12, minute=0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def make_session(start: datetime, hours: float = 1, ended: bool = True, user_id: str = "user-123") -> Session:
    """Session starting at `start`; ended sessions last `hours`"""
    return Session(
        id=f"session-{next(_ids)}",
        user_id=user_id,
        start_time=start,
        end_time=start + timedelta(hours=hours) if ended else None
    )


def make_task(status: TaskStatus = TaskStatus.COMPLETED, **kwargs) -> Task:
    return Task(id=f"task-{next(_ids)}", status=status, **kwargs)


def make_goal(current_value: float, target_value: float, is_completed: bool = True) -> Goal:
    return Goal(
        id=f"goal-{next(_ids)}",
        current_value=current_value,
        target_value=target_value,
        is_completed=is_completed
    )


def single_achievement(
    id: str,
    category: AchievementCategory,
    type: RequirementType,
    value: float,
    condition: str = None,
    points: int = 10
) -> Achievement:
    return Achievement(
        id=id,
        name=id.replace("_", " ").title(),
        description=f"Test achievement {id}",
        category=category,
        points=points,
        requirements=[Requirement(type=type, value=value, condition=condition)]
    )
