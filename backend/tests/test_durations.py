from __future__ import annotations

from planner.durations import (
    FALLBACK_MINUTES,
    NON_LESSON_FALLBACK_MINUTES,
    default_duration_rule,
    resolve_duration,
)
from planner.study_plan import Goal, SubLesson


def test_lesson_duration_sums_sub_lessons() -> None:
    goal = Goal(
        id="lesson",
        type="lesson",
        title="Intro",
        duration_minutes=999,
        sub_lessons=[
            SubLesson(id="a", title="Part A", duration_minutes=20),
            SubLesson(id="b", title="Part B", duration_minutes=25),
        ],
    )

    assert resolve_duration(goal, "beginner") == 45


def test_lesson_without_sub_lessons_uses_its_own_duration() -> None:
    goal = Goal(id="lesson", type="lesson", title="Intro", duration_minutes=40)

    assert resolve_duration(goal, "advanced") == 40


def test_page_based_goals_scale_with_level() -> None:
    goal = Goal(id="pdf", type="material", title="Chapter 1", pages=10)

    assert default_duration_rule(goal, "beginner") == 50
    assert default_duration_rule(goal, "intermediate") == 30
    assert default_duration_rule(goal, "advanced") == 20


def test_question_goals_scale_with_level() -> None:
    goal = Goal(id="quiz", type="questions", title="Drill", question_count=20)

    assert resolve_duration(goal, "beginner") == 80
    assert resolve_duration(goal, "intermediate") == 60
    assert resolve_duration(goal, "advanced") == 40


def test_explicit_duration_wins_for_non_lesson_goals() -> None:
    goal = Goal(id="law", type="law", title="Statute", pages=100, duration_minutes=25)

    assert resolve_duration(goal, "beginner") == 25


def test_missing_data_falls_back_to_floor() -> None:
    review = Goal(id="review", type="review", title="Review")
    lesson = Goal(id="lesson", type="lesson", title="Empty lesson")

    assert resolve_duration(review, "beginner") == NON_LESSON_FALLBACK_MINUTES
    assert resolve_duration(lesson, "beginner") == FALLBACK_MINUTES


def test_custom_rule_gets_the_same_floor() -> None:
    goal = Goal(id="summary", type="summary", title="Notes", pages=4)

    assert resolve_duration(goal, "beginner", lambda goal, level: 0) == NON_LESSON_FALLBACK_MINUTES
    assert resolve_duration(goal, "beginner", lambda goal, level: 7) == 7


def test_negative_rule_output_is_floored() -> None:
    summary = Goal(id="summary", type="summary", title="Notes")
    lesson = Goal(id="lesson", type="lesson", title="Intro")

    assert resolve_duration(summary, "beginner", lambda goal, level: -20) == NON_LESSON_FALLBACK_MINUTES
    assert resolve_duration(lesson, "beginner", lambda goal, level: -5) == FALLBACK_MINUTES
