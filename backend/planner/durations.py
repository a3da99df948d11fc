"""Estimated study minutes per goal.

The default policy is a small lookup table keyed by goal type and learner
level. Callers may inject any ``(goal, level) -> minutes`` callable instead;
``resolve_duration`` applies the scheduling floor on top of whichever rule is
in use.
"""

from __future__ import annotations

from typing import Callable, Dict

from .study_plan import Goal, LearnerLevel

DurationRule = Callable[[Goal, LearnerLevel], int]

MINUTES_PER_PAGE: Dict[LearnerLevel, int] = {
    "beginner": 5,
    "intermediate": 3,
    "advanced": 2,
}
MINUTES_PER_QUESTION: Dict[LearnerLevel, int] = {
    "beginner": 4,
    "intermediate": 3,
    "advanced": 2,
}
PAGE_BASED_TYPES = frozenset({"material", "law", "summary"})

NON_LESSON_FALLBACK_MINUTES = 15
FALLBACK_MINUTES = 30


def default_duration_rule(goal: Goal, level: LearnerLevel) -> int:
    if goal.type == "lesson":
        if goal.sub_lessons:
            return sum(sub.duration_minutes for sub in goal.sub_lessons)
        return goal.duration_minutes or 0
    if goal.duration_minutes:
        return goal.duration_minutes
    if goal.type in PAGE_BASED_TYPES and goal.pages:
        return goal.pages * MINUTES_PER_PAGE.get(level, MINUTES_PER_PAGE["beginner"])
    if goal.type == "questions" and goal.question_count:
        return goal.question_count * MINUTES_PER_QUESTION.get(level, MINUTES_PER_QUESTION["beginner"])
    return 0


def resolve_duration(goal: Goal, level: LearnerLevel, rule: DurationRule = default_duration_rule) -> int:
    """Minutes to charge for ``goal``; always positive so allocation always progresses."""
    minutes = rule(goal, level)
    if minutes <= 0 and goal.type != "lesson":
        minutes = NON_LESSON_FALLBACK_MINUTES
    if minutes <= 0:
        minutes = FALLBACK_MINUTES
    return minutes


__all__ = [
    "DurationRule",
    "FALLBACK_MINUTES",
    "MINUTES_PER_PAGE",
    "MINUTES_PER_QUESTION",
    "NON_LESSON_FALLBACK_MINUTES",
    "default_duration_rule",
    "resolve_duration",
]
