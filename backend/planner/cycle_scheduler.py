"""Day-by-day agenda generation driven by study cycles.

The scheduler walks a plan's cycles in order, visiting each cycle item in
turn. Discipline items consume goals from a per-discipline queue (every goal
of the discipline, flattened across its subjects) while exam items occupy the
remainder of a day. Three cursors survive from one day to the next: the
current cycle, the current item inside that cycle and one pointer per
discipline queue. A visit cut short by the daily budget resumes the next
available day exactly where it stopped.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import AbstractSet, Collection, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .cache import agenda_cache, fingerprint_inputs
from .config import Settings, get_settings
from .durations import DurationRule, default_duration_rule, resolve_duration
from .planner_store import planner_store
from .study_plan import (
    Agenda,
    Cycle,
    CycleItem,
    Exam,
    ExamAttempt,
    Goal,
    LearnerLevel,
    PlanConfig,
    Routine,
    ScheduledItem,
    StudyPlan,
)
from .telemetry import emit_event

logger = logging.getLogger(__name__)


DEFAULT_HORIZON_DAYS = 90
DEFAULT_MAX_DAILY_ITERATIONS = 500
EXAM_MINUTES_PER_QUESTION = 3
EXAM_MIN_REMAINING_MINUTES = 60
EXAM_DISCIPLINE_LABEL = "Assessment"


@dataclass(frozen=True)
class QueuedGoal:
    """A goal paired with the subject and discipline it was queued under."""

    goal: Goal
    subject_id: str
    subject_name: str
    discipline_id: str
    discipline_name: str


@dataclass
class _SchedulerState:
    cycle_index: int = 0
    item_index: int = 0
    pointers: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class _RunContext:
    plan: StudyPlan
    level: LearnerLevel
    queues: Mapping[str, Sequence[QueuedGoal]]
    completed_goals: AbstractSet[str]
    completed_exams: AbstractSet[str]
    exams: Mapping[str, Exam]


def build_discipline_queues(plan: StudyPlan) -> Dict[str, List[QueuedGoal]]:
    queues: Dict[str, List[QueuedGoal]] = {}
    for discipline in plan.disciplines:
        queue: List[QueuedGoal] = []
        for subject in sorted(discipline.subjects, key=lambda subject: subject.order):
            for goal in sorted(subject.goals, key=lambda goal: goal.order):
                queue.append(
                    QueuedGoal(
                        goal=goal,
                        subject_id=subject.id,
                        subject_name=subject.name,
                        discipline_id=discipline.id,
                        discipline_name=discipline.name,
                    )
                )
        queues[discipline.id] = queue
    return queues


def expand_cycle_items(cycle: Cycle, plan: StudyPlan) -> List[CycleItem]:
    """Replace folder items with one discipline item per member discipline."""
    expanded: List[CycleItem] = []
    for item in cycle.items:
        if item.kind != "folder":
            expanded.append(item)
            continue
        members = sorted(
            (discipline for discipline in plan.disciplines if discipline.folder_id == item.folder_id),
            key=lambda discipline: discipline.order,
        )
        expanded.extend(
            CycleItem(discipline_id=discipline.id, subjects_count=item.subjects_count)
            for discipline in members
        )
    return expanded


def is_cycle_exhausted(
    cycle: Optional[Cycle],
    plan: StudyPlan,
    queues: Mapping[str, Sequence[QueuedGoal]],
    pointers: Mapping[str, int],
    completed_exam_ids: Collection[str],
) -> bool:
    """True when no item of ``cycle`` has work left at the current pointers."""
    if cycle is None:
        return True
    for item in expand_cycle_items(cycle, plan):
        if item.kind == "exam":
            if item.exam_id not in completed_exam_ids:
                return False
        elif item.kind == "discipline":
            queue = queues.get(item.discipline_id or "", ())
            if pointers.get(item.discipline_id or "", 0) < len(queue):
                return False
    return True


class CycleScheduler:
    """Allocates plan content onto calendar days within a fixed horizon."""

    def __init__(
        self,
        *,
        horizon_days: int = DEFAULT_HORIZON_DAYS,
        max_daily_iterations: int = DEFAULT_MAX_DAILY_ITERATIONS,
        exam_minutes_per_question: int = EXAM_MINUTES_PER_QUESTION,
        exam_min_remaining_minutes: int = EXAM_MIN_REMAINING_MINUTES,
        duration_rule: DurationRule = default_duration_rule,
    ) -> None:
        self._horizon_days = max(horizon_days, 1)
        self._max_daily_iterations = max(max_daily_iterations, 1)
        self._exam_minutes_per_question = max(exam_minutes_per_question, 0)
        self._exam_min_remaining_minutes = max(exam_min_remaining_minutes, 0)
        self._duration_rule = duration_rule

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: object) -> "CycleScheduler":
        options: Dict[str, object] = {
            "horizon_days": settings.horizon_days,
            "max_daily_iterations": settings.max_daily_iterations,
            "exam_minutes_per_question": settings.exam_minutes_per_question,
            "exam_min_remaining_minutes": settings.exam_min_remaining_minutes,
        }
        options.update(overrides)
        return cls(**options)  # type: ignore[arg-type]

    @property
    def horizon_days(self) -> int:
        return self._horizon_days

    def build_agenda(
        self,
        plan: StudyPlan,
        routine: Routine,
        start_date: date,
        completed_goal_ids: Iterable[str] = (),
        level: LearnerLevel = "beginner",
        is_paused: bool = False,
        exams: Iterable[Exam] = (),
        attempts: Iterable[ExamAttempt] = (),
    ) -> Agenda:
        if is_paused or not plan.cycles or not routine.has_availability():
            return {}

        context = _RunContext(
            plan=plan,
            level=level,
            queues=build_discipline_queues(plan),
            completed_goals=frozenset(completed_goal_ids),
            completed_exams=frozenset(attempt.exam_id for attempt in attempts),
            exams={exam.id: exam for exam in exams},
        )
        state = _SchedulerState(pointers={discipline.id: 0 for discipline in plan.disciplines})

        if plan.cycle_system == "continuous":
            while state.cycle_index < len(plan.cycles) and self._cycle_exhausted(context, state):
                state.cycle_index += 1

        agenda: Agenda = {}
        for offset in range(self._horizon_days):
            day = start_date + timedelta(days=offset)
            minutes = routine.minutes_for(day)
            if minutes <= 0:
                continue
            day_items = self._allocate_day(context, state, day, minutes)
            if day_items:
                agenda[day.isoformat()] = day_items
        return agenda

    def _cycle_exhausted(self, context: _RunContext, state: _SchedulerState, index: Optional[int] = None) -> bool:
        cycles = context.plan.cycles
        position = state.cycle_index if index is None else index
        cycle = cycles[position] if 0 <= position < len(cycles) else None
        return is_cycle_exhausted(cycle, context.plan, context.queues, state.pointers, context.completed_exams)

    def _all_cycles_exhausted(self, context: _RunContext, state: _SchedulerState) -> bool:
        return all(self._cycle_exhausted(context, state, index) for index in range(len(context.plan.cycles)))

    def _allocate_day(
        self,
        context: _RunContext,
        state: _SchedulerState,
        day: date,
        minutes: int,
    ) -> List[ScheduledItem]:
        plan = context.plan
        rotating = plan.cycle_system == "rotating"
        items: List[ScheduledItem] = []
        remaining = minutes

        for _ in range(self._max_daily_iterations):
            if remaining <= 0:
                break

            if state.cycle_index >= len(plan.cycles):
                if not rotating or self._all_cycles_exhausted(context, state):
                    break
                state.cycle_index = 0

            cycle = plan.cycles[state.cycle_index]
            active_items = expand_cycle_items(cycle, plan)

            if state.item_index >= len(active_items):
                # Continuous cycles are revisited until drained; rotating ones get one pass per round.
                if rotating or self._cycle_exhausted(context, state):
                    state.cycle_index += 1
                state.item_index = 0
                continue

            item = active_items[state.item_index]
            if item.kind == "exam":
                remaining, stop = self._visit_exam(context, state, item, day, items, remaining)
            else:
                remaining, stop = self._visit_discipline(context, state, cycle, item, day, items, remaining)
            if stop:
                break
        else:
            if remaining > 0:
                logger.warning(
                    "Allocation for %s in plan %s stopped after %d iterations with %d minutes left; "
                    "check the plan for cycle items that can never be scheduled.",
                    day.isoformat(),
                    plan.id,
                    self._max_daily_iterations,
                    remaining,
                )
                emit_event(
                    "daily_iteration_cap_reached",
                    plan_id=plan.id,
                    date=day,
                    iterations=self._max_daily_iterations,
                    remaining_minutes=remaining,
                    cycle_index=state.cycle_index,
                    item_index=state.item_index,
                )
        return items

    def _visit_exam(
        self,
        context: _RunContext,
        state: _SchedulerState,
        item: CycleItem,
        day: date,
        items: List[ScheduledItem],
        remaining: int,
    ) -> Tuple[int, bool]:
        exam_id = item.exam_id or ""
        exam = context.exams.get(exam_id)
        if exam_id in context.completed_exams or exam is None:
            state.item_index += 1
            return remaining, False
        if items and remaining <= self._exam_min_remaining_minutes:
            return 0, True
        items.append(
            ScheduledItem(
                unique_id=f"{day.isoformat()}_exam_{exam.id}",
                date=day,
                goal_id=exam.id,
                goal_type="exam",
                title=f"Exam: {exam.title}",
                discipline_name=EXAM_DISCIPLINE_LABEL,
                subject_name=f"{exam.total_questions} questions",
                duration=exam.total_questions * self._exam_minutes_per_question,
                exam=exam,
            )
        )
        state.item_index += 1
        # An exam owns the rest of the day regardless of its estimate.
        return 0, False

    def _visit_discipline(
        self,
        context: _RunContext,
        state: _SchedulerState,
        cycle: Cycle,
        item: CycleItem,
        day: date,
        items: List[ScheduledItem],
        remaining: int,
    ) -> Tuple[int, bool]:
        discipline_id = item.discipline_id or ""
        queue = context.queues.get(discipline_id, ())
        pointer = state.pointers.get(discipline_id, 0)
        if pointer >= len(queue):
            state.item_index += 1
            return remaining, False

        subjects_advanced = 0
        last_subject_id: Optional[str] = None
        placed = False
        while subjects_advanced < item.subjects_count and pointer < len(queue):
            queued = queue[pointer]
            if queued.goal.id in context.completed_goals:
                pointer += 1
                continue
            duration = resolve_duration(queued.goal, context.level, self._duration_rule)
            if remaining < duration and items:
                remaining = 0
                break
            items.append(self._goal_item(day, cycle, queued, duration))
            if queued.subject_id != last_subject_id:
                subjects_advanced += 1
                last_subject_id = queued.subject_id
            remaining -= duration
            placed = True
            pointer += 1
        state.pointers[discipline_id] = pointer

        if subjects_advanced >= item.subjects_count or pointer >= len(queue):
            state.item_index += 1
            return remaining, False
        return remaining, not placed and remaining <= 0

    @staticmethod
    def _goal_item(day: date, cycle: Cycle, queued: QueuedGoal, duration: int) -> ScheduledItem:
        goal = queued.goal
        return ScheduledItem(
            unique_id=f"{day.isoformat()}_{cycle.id}_{queued.discipline_id}_{goal.id}",
            date=day,
            goal_id=goal.id,
            goal_type=goal.type,
            title=goal.title,
            discipline_name=queued.discipline_name,
            subject_name=queued.subject_name,
            duration=duration,
            cycle_id=cycle.id,
            discipline_id=queued.discipline_id,
            original_goal=goal,
        )


def generate_agenda_for_learner(learner_id: str, *, today: Optional[date] = None) -> Agenda:
    """Build the agenda for the learner's current plan from the stored snapshot."""
    learner = planner_store.get_learner(learner_id)
    if learner is None:
        raise LookupError(f"Learner '{learner_id}' was not found.")
    if not learner.current_plan_id:
        raise LookupError(f"Learner '{learner_id}' has no active study plan.")
    plan = planner_store.get_plan(learner.current_plan_id)
    if plan is None:
        raise LookupError(f"Study plan '{learner.current_plan_id}' was not found.")

    settings = get_settings()
    config = learner.plan_configs.get(plan.id) or PlanConfig(start_date=today or date.today())
    exams = planner_store.list_exams()
    attempts = planner_store.attempts_for(learner.id)
    completed_goal_ids = sorted(set(learner.progress.completed_goal_ids))
    level = learner.level or settings.default_level
    fingerprint = fingerprint_inputs(
        plan,
        learner.routine,
        config,
        completed_goal_ids,
        level,
        exams,
        sorted({attempt.exam_id for attempt in attempts}),
        settings.model_dump(),
    )

    if settings.agenda_cache_enabled:
        cached = agenda_cache.get(learner.id, fingerprint)
        if cached is not None:
            emit_event(
                "agenda_generation",
                learner_id=learner.id,
                plan_id=plan.id,
                status="cached",
                **_agenda_metrics(cached),
            )
            return cached

    scheduler = CycleScheduler.from_settings(settings)
    start = time.perf_counter()
    try:
        agenda = scheduler.build_agenda(
            plan,
            learner.routine,
            config.start_date,
            completed_goal_ids,
            level,
            config.is_paused,
            exams,
            attempts,
        )
    except Exception as exc:  # noqa: BLE001
        emit_event(
            "agenda_generation",
            learner_id=learner.id,
            plan_id=plan.id,
            status="error",
            error=str(exc),
            exception_type=exc.__class__.__name__,
        )
        logger.exception("Failed to generate agenda for %s", learner.id)
        raise
    duration_ms = (time.perf_counter() - start) * 1000.0

    if config.is_paused:
        status = "paused"
    elif not agenda:
        status = "empty"
    else:
        status = "success"
    emit_event(
        "agenda_generation",
        learner_id=learner.id,
        plan_id=plan.id,
        status=status,
        cycle_system=plan.cycle_system,
        start_date=config.start_date,
        horizon_days=scheduler.horizon_days,
        duration_ms=round(duration_ms, 2),
        **_agenda_metrics(agenda),
    )
    if settings.agenda_cache_enabled:
        agenda_cache.set(learner.id, fingerprint, agenda)
    return agenda


def _agenda_metrics(agenda: Agenda) -> Dict[str, int]:
    return {
        "day_count": len(agenda),
        "item_count": sum(len(items) for items in agenda.values()),
        "total_minutes": sum(item.duration for items in agenda.values() for item in items),
    }


__all__ = [
    "CycleScheduler",
    "QueuedGoal",
    "build_discipline_queues",
    "expand_cycle_items",
    "generate_agenda_for_learner",
    "is_cycle_exhausted",
]
