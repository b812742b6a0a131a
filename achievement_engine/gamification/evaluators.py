"""
Requirement Evaluators

Pure functions turning (requirement, activity) into an EvaluationResult.
No storage access happens here; the engine loads history and passes it in.

Rules shared by every evaluator:
- Empty activity yields current_value = 0 and is never satisfied
- Sessions without an end_time are excluded from count, duration and streak
  evaluators (an active session is not a completed one)
- Thresholds use >= (exactly hitting the target satisfies it)
"""

from datetime import timedelta
from typing import Callable, Dict, Iterable, List, Optional, Set
import logging

from achievement_engine.gamification.conditions import (
    DEFAULT_REGISTRY,
    NOT_SATISFIED,
    ActivitySnapshot,
    ActivitySource,
    ConditionRegistry,
    EvaluationResult,
)
from achievement_engine.models.achievement import Requirement, RequirementType
from achievement_engine.models.activity import Session, TaskStatus
from achievement_engine.utils.datetime_helpers import TimezoneLike, local_date

logger = logging.getLogger(__name__)

# Statuses that mean the task's work is done
COMPLETED_TASK_STATUSES = frozenset([TaskStatus.COMPLETED, TaskStatus.APPROVED])


def _threshold(current: float, requirement: Requirement) -> EvaluationResult:
    return EvaluationResult(
        current_value=current,
        is_satisfied=current > 0 and current >= requirement.value
    )


def completed_sessions(sessions: Iterable[Session]) -> List[Session]:
    """Sessions that have ended"""
    return [s for s in sessions if s.end_time is not None]


def longest_streak(sessions: Iterable[Session], tz: TimezoneLike = None) -> int:
    """
    Longest run of consecutive calendar days with at least one completed session

    Start dates are deduplicated by local day, sorted, then scanned.
    Sessions on Jan 1, 2, 3 and 5 give a streak of 3.
    """
    days = sorted({local_date(s.start_time, tz) for s in completed_sessions(sessions)})
    if not days:
        return 0

    best = current = 1
    for previous, day in zip(days, days[1:]):
        if day - previous == timedelta(days=1):
            current += 1
            best = max(best, current)
        else:
            current = 1
    return best


# ==========================================
# Evaluators by requirement type
# ==========================================

def evaluate_session_count(requirement: Requirement, activity: ActivitySnapshot) -> EvaluationResult:
    return _threshold(len(completed_sessions(activity.sessions)), requirement)


def evaluate_session_duration(requirement: Requirement, activity: ActivitySnapshot) -> EvaluationResult:
    """Longest single completed session, in seconds"""
    durations = [s.duration_seconds for s in completed_sessions(activity.sessions)]
    return _threshold(max(durations, default=0), requirement)


def evaluate_streak_days(requirement: Requirement, activity: ActivitySnapshot) -> EvaluationResult:
    return _threshold(longest_streak(activity.sessions, activity.timezone), requirement)


def evaluate_goal_completion(requirement: Requirement, activity: ActivitySnapshot) -> EvaluationResult:
    return _threshold(sum(1 for g in activity.goals if g.is_completed), requirement)


def evaluate_task_completion(requirement: Requirement, activity: ActivitySnapshot) -> EvaluationResult:
    return _threshold(
        sum(1 for t in activity.tasks if t.status in COMPLETED_TASK_STATUSES),
        requirement
    )


Evaluator = Callable[[Requirement, ActivitySnapshot], EvaluationResult]

EVALUATORS: Dict[RequirementType, Evaluator] = {
    RequirementType.SESSION_COUNT: evaluate_session_count,
    RequirementType.SESSION_DURATION: evaluate_session_duration,
    RequirementType.STREAK_DAYS: evaluate_streak_days,
    RequirementType.GOAL_COMPLETION: evaluate_goal_completion,
    RequirementType.TASK_COMPLETION: evaluate_task_completion,
}

REQUIREMENT_SOURCES: Dict[RequirementType, ActivitySource] = {
    RequirementType.SESSION_COUNT: ActivitySource.SESSIONS,
    RequirementType.SESSION_DURATION: ActivitySource.SESSIONS,
    RequirementType.STREAK_DAYS: ActivitySource.SESSIONS,
    RequirementType.GOAL_COMPLETION: ActivitySource.GOALS,
    RequirementType.TASK_COMPLETION: ActivitySource.TASKS,
}


def evaluate_special_condition(
    requirement: Requirement,
    activity: ActivitySnapshot,
    registry: ConditionRegistry = DEFAULT_REGISTRY
) -> EvaluationResult:
    """Dispatch on requirement.condition; unknown conditions never satisfy"""
    condition = registry.get(requirement.condition)
    if condition is None:
        logger.warning(f"Unknown special condition '{requirement.condition}', treating as not satisfied")
        return NOT_SATISFIED
    return condition.evaluate(requirement, activity)


def evaluate_requirement(
    requirement: Requirement,
    activity: ActivitySnapshot,
    registry: ConditionRegistry = DEFAULT_REGISTRY
) -> EvaluationResult:
    """
    Evaluate a single requirement

    Args:
        requirement: Requirement from the catalog
        activity: History loaded for this pass
        registry: Special condition registry

    Returns:
        EvaluationResult(current_value, is_satisfied)
    """
    if requirement.type == RequirementType.SPECIAL_CONDITION:
        return evaluate_special_condition(requirement, activity, registry)
    return EVALUATORS[requirement.type](requirement, activity)


def evaluate_requirements(
    requirements: List[Requirement],
    activity: ActivitySnapshot,
    registry: ConditionRegistry = DEFAULT_REGISTRY
) -> List[EvaluationResult]:
    return [evaluate_requirement(r, activity, registry) for r in requirements]


def all_satisfied(results: List[EvaluationResult]) -> bool:
    """An empty requirement list is never satisfied"""
    return bool(results) and all(r.is_satisfied for r in results)


def requirement_source(
    requirement: Requirement,
    registry: ConditionRegistry = DEFAULT_REGISTRY
) -> Optional[ActivitySource]:
    """Which activity feed a requirement reads, None for unknown conditions"""
    if requirement.type == RequirementType.SPECIAL_CONDITION:
        condition = registry.get(requirement.condition)
        return condition.source if condition else None
    return REQUIREMENT_SOURCES[requirement.type]


def required_sources(
    requirements: Iterable[Requirement],
    registry: ConditionRegistry = DEFAULT_REGISTRY
) -> Set[ActivitySource]:
    sources = {requirement_source(r, registry) for r in requirements}
    sources.discard(None)
    return sources


def is_cumulative(requirement: Requirement, registry: ConditionRegistry = DEFAULT_REGISTRY) -> bool:
    """Whether progress toward this requirement accumulates across events"""
    if requirement.type != RequirementType.SPECIAL_CONDITION:
        return True
    condition = registry.get(requirement.condition)
    return condition is not None and condition.cumulative
