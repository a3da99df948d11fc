"""Read-only projections over a generated agenda."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from .study_plan import Agenda, ExamAttempt, ScheduledItem, StudyPlan


class CoverageBreakdown(BaseModel):
    discipline_id: str
    discipline_name: str
    total_topics: int = 0
    completed_topics: int = 0
    percentage: int = 0


class SyllabusCoverage(BaseModel):
    total_topics: int = 0
    completed_topics: int = 0
    percentage: int = 0
    disciplines: List[CoverageBreakdown] = Field(default_factory=list)


def mark_completion(
    agenda: Agenda,
    completed_goal_ids: Iterable[str],
    attempts: Iterable[ExamAttempt] = (),
) -> Agenda:
    """Return a copy of ``agenda`` with completion flags taken from progress."""
    completed_goals = set(completed_goal_ids)
    attempted_exams = {attempt.exam_id for attempt in attempts}
    marked: Agenda = {}
    for day, items in agenda.items():
        marked[day] = [
            item.model_copy(
                update={
                    "completed": item.goal_id in (attempted_exams if item.is_exam else completed_goals),
                }
            )
            for item in items
        ]
    return marked


def overdue_items(agenda: Agenda, today: date) -> List[ScheduledItem]:
    cutoff = today.isoformat()
    return [
        item
        for day in sorted(agenda)
        if day < cutoff
        for item in agenda[day]
        if not item.completed
    ]


def week_dates(anchor: date) -> List[str]:
    """ISO dates of the Sunday-to-Saturday week containing ``anchor``."""
    sunday = anchor - timedelta(days=(anchor.weekday() + 1) % 7)
    return [(sunday + timedelta(days=offset)).isoformat() for offset in range(7)]


def agenda_window(agenda: Agenda, start: date, days: Optional[int] = None) -> Agenda:
    first = start.isoformat()
    last = (start + timedelta(days=days)).isoformat() if days is not None else None
    return {
        day: list(items)
        for day, items in sorted(agenda.items())
        if day >= first and (last is None or day < last)
    }


def summarize_agenda(agenda: Agenda) -> Dict[str, Any]:
    if not agenda:
        return {
            "day_count": 0,
            "item_count": 0,
            "total_minutes": 0,
            "first_date": None,
            "last_date": None,
        }
    days = sorted(agenda)
    items = [item for day in days for item in agenda[day]]
    return {
        "day_count": len(days),
        "item_count": len(items),
        "total_minutes": sum(item.duration for item in items),
        "first_date": days[0],
        "last_date": days[-1],
    }


def _percentage(completed: int, total: int) -> int:
    return round(completed / total * 100) if total > 0 else 0


def syllabus_coverage(plan: StudyPlan, completed_goal_ids: Iterable[str]) -> SyllabusCoverage:
    """A topic counts as covered once every goal it links to is complete."""
    completed = set(completed_goal_ids)
    breakdowns: List[CoverageBreakdown] = []
    for discipline in plan.syllabus:
        done = 0
        for topic in discipline.topics:
            linked = [goal_id for goal_id in topic.links.values() if goal_id]
            if linked and all(goal_id in completed for goal_id in linked):
                done += 1
        total = len(discipline.topics)
        breakdowns.append(
            CoverageBreakdown(
                discipline_id=discipline.id,
                discipline_name=discipline.name,
                total_topics=total,
                completed_topics=done,
                percentage=_percentage(done, total),
            )
        )
    total_topics = sum(entry.total_topics for entry in breakdowns)
    completed_topics = sum(entry.completed_topics for entry in breakdowns)
    return SyllabusCoverage(
        total_topics=total_topics,
        completed_topics=completed_topics,
        percentage=_percentage(completed_topics, total_topics),
        disciplines=breakdowns,
    )


__all__ = [
    "CoverageBreakdown",
    "SyllabusCoverage",
    "agenda_window",
    "mark_completion",
    "overdue_items",
    "summarize_agenda",
    "syllabus_coverage",
    "week_dates",
]
