"""Praise messages shown after a task is completed."""
import random
from typing import List, Optional, Sequence

from kudos.domain.entities import Achievement, Settings, Streak, Task
from kudos.domain.values import Priority

PRAISE_BY_PRIORITY = {
    Priority.LOW: (
        "Nice! Every little step counts.",
        "One more off the list.",
        "Small wins add up.",
    ),
    Priority.MEDIUM: (
        "Great job getting that done!",
        "Solid progress, keep it going.",
        "Done and dusted!",
    ),
    Priority.HIGH: (
        "Impressive, that was a big one!",
        "You tackled something important today.",
        "Excellent work on a high-priority task!",
    ),
    Priority.URGENT: (
        "Crisis averted. You're a hero!",
        "Urgent task crushed. Outstanding!",
        "That took focus. Well done!",
    ),
}


def compose_praise(
    task: Task,
    points_awarded: int,
    streak: Streak,
    new_achievements: Sequence[Achievement],
    settings: Optional[Settings] = None,
    rng: Optional[random.Random] = None,
) -> List[str]:
    """Messages for one completion, filtered by the user's praise toggles"""
    rng = rng or random.Random()
    messages = []

    if settings is None or settings.praise_on_complete:
        messages.append(rng.choice(PRAISE_BY_PRIORITY[task.priority]))

    if settings is None or settings.show_points:
        messages.append(f"+{points_awarded} points")

    if (settings is None or settings.show_streak) and streak.current_streak > 1:
        if streak.current_streak == streak.longest_streak:
            messages.append(f"{streak.current_streak}-day streak, your best yet!")
        else:
            messages.append(f"{streak.current_streak}-day streak!")

    if settings is None or settings.show_achievements:
        for achievement in new_achievements:
            messages.append(f"Achievement unlocked: {achievement.title}")

    return messages
