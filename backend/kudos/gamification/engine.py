"""
Pure gamification rules: points, streak transitions and achievement unlocks.

Nothing in here touches the database or the wall clock. Callers pass "now" and
"today" in, which keeps every rule deterministic.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional

from kudos.domain.entities import Achievement, PointEntry, Task
from kudos.domain.values import AchievementType, new_id, utcnow

TASK_COMPLETED_REASON = "task_completed"


def points_for_completion(task: Task, now: Optional[datetime] = None) -> PointEntry:
    """Ledger entry awarded for completing ``task``"""
    return PointEntry(
        id=new_id(),
        user_id=task.user_id,
        amount=task.priority_value.get_points(),
        reason=TASK_COMPLETED_REASON,
        task_id=task.id,
        created_at=now or task.completed_at or utcnow(),
    )


def offsetting_entry(entry: PointEntry, reason: str, now: Optional[datetime] = None) -> PointEntry:
    """Correction for ``entry``: ledger rows are never edited, they are cancelled out"""
    return PointEntry(
        id=new_id(),
        user_id=entry.user_id,
        amount=-entry.amount,
        reason=reason,
        task_id=entry.task_id,
        created_at=now or utcnow(),
    )


@dataclass(frozen=True)
class StreakUpdate:
    current_streak: int
    longest_streak: int
    last_active_date: date
    changed: bool


def advance_streak(
    current_streak: int,
    longest_streak: int,
    last_active_date: Optional[date],
    today: date,
) -> StreakUpdate:
    """Streak counters after activity on ``today``.

    Activity on the day after ``last_active_date`` extends the streak, a repeat on
    the same day changes nothing, and anything else starts over at 1. A ``today``
    before ``last_active_date`` (clock skew) counts as a same-day repeat.
    """
    if last_active_date is not None and today <= last_active_date:
        return StreakUpdate(current_streak, max(longest_streak, current_streak), last_active_date, False)

    if last_active_date is not None and today - last_active_date == timedelta(days=1):
        current = current_streak + 1
    else:
        current = 1

    return StreakUpdate(
        current_streak=current,
        longest_streak=max(longest_streak, current),
        last_active_date=today,
        changed=True,
    )


@dataclass(frozen=True)
class ProgressSnapshot:
    """What the achievement rules get to look at after a completion"""

    total_completed: int
    current_streak: int


@dataclass(frozen=True)
class AchievementRule:
    type: AchievementType
    title: str
    description: str
    icon: str
    predicate: Callable[[ProgressSnapshot], bool]

    def is_met(self, snapshot: ProgressSnapshot) -> bool:
        return self.predicate(snapshot)


def _completed_at_least(count: int) -> Callable[[ProgressSnapshot], bool]:
    return lambda snapshot: snapshot.total_completed >= count


def _streak_at_least(days: int) -> Callable[[ProgressSnapshot], bool]:
    return lambda snapshot: snapshot.current_streak >= days


ACHIEVEMENT_RULES: Dict[AchievementType, AchievementRule] = {
    rule.type: rule
    for rule in (
        AchievementRule(AchievementType.FIRST_TASK, "First Step", "Complete your first task", "🌱",
                        _completed_at_least(1)),
        AchievementRule(AchievementType.COMPLETE_10, "Getting Things Done", "Complete 10 tasks", "✅",
                        _completed_at_least(10)),
        AchievementRule(AchievementType.COMPLETE_50, "Task Master", "Complete 50 tasks", "🏅",
                        _completed_at_least(50)),
        AchievementRule(AchievementType.COMPLETE_100, "Centurion", "Complete 100 tasks", "🏆",
                        _completed_at_least(100)),
        AchievementRule(AchievementType.STREAK_3, "On a Roll", "Stay active 3 days in a row", "🔥",
                        _streak_at_least(3)),
        AchievementRule(AchievementType.STREAK_7, "Week Warrior", "Stay active 7 days in a row", "📅",
                        _streak_at_least(7)),
        AchievementRule(AchievementType.STREAK_30, "Unstoppable", "Stay active 30 days in a row", "💎",
                        _streak_at_least(30)),
    )
}

_unruled = set(AchievementType) - set(ACHIEVEMENT_RULES)
if _unruled:
    raise RuntimeError(f"Achievement types without a rule: {sorted(t.value for t in _unruled)}")


def evaluate_achievements(
    snapshot: ProgressSnapshot,
    already_unlocked: Iterable[AchievementType],
) -> List[AchievementType]:
    """Achievement types earned by ``snapshot`` that are not unlocked yet, in catalog order"""
    unlocked = set(already_unlocked)
    return [
        rule.type
        for rule in ACHIEVEMENT_RULES.values()
        if rule.type not in unlocked and rule.is_met(snapshot)
    ]


def build_achievement(user_id: str, achievement_type: AchievementType,
                      now: Optional[datetime] = None) -> Achievement:
    rule = ACHIEVEMENT_RULES[achievement_type]
    return Achievement(
        id=new_id(),
        user_id=user_id,
        type=rule.type,
        title=rule.title,
        description=rule.description,
        icon=rule.icon,
        unlocked_at=now or utcnow(),
    )
