"""Scoring for simulated exams."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Mapping, Optional

from .study_plan import Exam, ExamAttempt

logger = logging.getLogger(__name__)

DEFAULT_PASS_PERCENT = 50.0
DEFAULT_QUESTION_VALUE = 1.0


def exam_total_points(exam: Exam) -> float:
    total = sum(exam.question_values.values())
    return total or float(exam.total_questions)


def score_answers(exam: Exam, answers: Mapping[int, Optional[str]]) -> float:
    """Sum question values for right answers; wrong answers cost their value when penalised."""
    score = 0.0
    for number in range(1, exam.total_questions + 1):
        answer = answers.get(number)
        if not answer:
            continue
        value = exam.question_values.get(number) or DEFAULT_QUESTION_VALUE
        if answer == exam.correct_answers.get(number):
            score += value
        elif exam.has_penalty:
            score -= value
    return max(score, 0.0)


def grade_exam_attempt(
    exam: Exam,
    answers: Mapping[int, Optional[str]],
    learner_id: str,
    *,
    attempt_id: Optional[str] = None,
    submitted_at: Optional[datetime] = None,
) -> ExamAttempt:
    score = score_answers(exam, answers)
    total = exam_total_points(exam)
    percent = (score / total) * 100 if total > 0 else 0.0
    threshold = exam.min_total_percent or DEFAULT_PASS_PERCENT
    attempt = ExamAttempt(
        id=attempt_id or str(uuid.uuid4()),
        learner_id=learner_id,
        exam_id=exam.id,
        submitted_at=submitted_at or datetime.now(timezone.utc),
        answers=dict(answers),
        score=score,
        is_approved=percent >= threshold,
    )
    logger.debug(
        "Graded exam %s for %s: %.2f/%.2f (%.1f%%, approved=%s)",
        exam.id,
        learner_id,
        score,
        total,
        percent,
        attempt.is_approved,
    )
    return attempt


__all__ = [
    "DEFAULT_PASS_PERCENT",
    "exam_total_points",
    "grade_exam_attempt",
    "score_answers",
]
