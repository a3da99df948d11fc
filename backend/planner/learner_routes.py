"""Learner-centric REST endpoints: agenda, progress and plan actions."""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query, Response, status
from pydantic import BaseModel, Field

from .agenda_views import (
    SyllabusCoverage,
    agenda_window,
    mark_completion,
    overdue_items,
    summarize_agenda,
    syllabus_coverage,
    week_dates,
)
from .config import get_settings
from .cycle_scheduler import generate_agenda_for_learner
from .exam_grading import grade_exam_attempt
from .plan_actions import (
    apply_plan_action,
    record_study_time,
    save_routine,
    switch_plan,
    toggle_goal_completion,
)
from .planner_store import planner_store
from .study_plan import ExamAttempt, Learner, LearnerLevel, Routine, ScheduledItem
from .telemetry import emit_event

router = APIRouter(prefix="/api/learners", tags=["learners"])
logger = logging.getLogger(__name__)


class AgendaSummary(BaseModel):
    day_count: int = 0
    item_count: int = 0
    total_minutes: int = 0
    first_date: Optional[str] = None
    last_date: Optional[str] = None


class AgendaPayload(BaseModel):
    learner_id: str
    plan_id: str
    start_date: Optional[date] = None
    is_paused: bool = False
    days: Dict[str, List[ScheduledItem]] = Field(default_factory=dict)
    summary: AgendaSummary = Field(default_factory=AgendaSummary)


class PlanActionRequest(BaseModel):
    action: str = Field(..., min_length=1)


class CurrentPlanRequest(BaseModel):
    plan_id: str = Field(..., min_length=1)


class RoutineRequest(BaseModel):
    routine: Routine
    level: Optional[LearnerLevel] = None


class StudyTimeRequest(BaseModel):
    seconds: int = Field(..., ge=0)
    goal_id: Optional[str] = None
    completed: bool = False


class ExamSubmission(BaseModel):
    answers: Dict[int, Optional[str]] = Field(default_factory=dict)


def _today(value: Optional[date]) -> date:
    return value or date.today()


def _require_learner(learner_id: str) -> Learner:
    learner = planner_store.get_learner(learner_id)
    if learner is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Learner '{learner_id}' was not found.",
        )
    return learner


def _marked_agenda(learner: Learner, today: date) -> Dict[str, List[ScheduledItem]]:
    try:
        agenda = generate_agenda_for_learner(learner.id, today=today)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return mark_completion(
        agenda,
        learner.progress.completed_goal_ids,
        planner_store.attempts_for(learner.id),
    )


@router.put("/{learner_id}", response_model=Learner, status_code=status.HTTP_200_OK)
def put_learner(learner_id: str, learner: Learner) -> Learner:
    if learner.id != learner_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Learner id in the path ('{learner_id}') does not match the payload ('{learner.id}').",
        )
    return planner_store.upsert_learner(learner)


@router.get("/{learner_id}", response_model=Learner, status_code=status.HTTP_200_OK)
def get_learner(learner_id: str) -> Learner:
    return _require_learner(learner_id)


@router.delete("/{learner_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_learner(learner_id: str) -> Response:
    if not planner_store.delete_learner(learner_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Learner '{learner_id}' was not found.",
        )
    logger.info("Deleted learner %s and their exam attempts", learner_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{learner_id}/agenda", response_model=AgendaPayload, status_code=status.HTTP_200_OK)
def get_agenda(
    learner_id: str,
    start: Optional[date] = Query(
        default=None,
        description="First date of the returned window. Defaults to the whole horizon.",
    ),
    day_span: Optional[int] = Query(
        default=None,
        ge=1,
        le=366,
        description="Number of calendar days to include starting at `start`.",
    ),
    today: Optional[date] = Query(default=None, description="Override for the current date."),
) -> AgendaPayload:
    learner = _require_learner(learner_id)
    current_day = _today(today)
    agenda = _marked_agenda(learner, current_day)
    if start is not None:
        agenda = agenda_window(agenda, start, day_span)
    config = learner.plan_configs.get(learner.current_plan_id or "")
    return AgendaPayload(
        learner_id=learner.id,
        plan_id=learner.current_plan_id or "",
        start_date=config.start_date if config else current_day,
        is_paused=config.is_paused if config else False,
        days=agenda,
        summary=AgendaSummary(**summarize_agenda(agenda)),
    )


@router.get(
    "/{learner_id}/agenda/week",
    response_model=Dict[str, List[ScheduledItem]],
    status_code=status.HTTP_200_OK,
)
def get_week(
    learner_id: str,
    anchor: Optional[date] = Query(default=None, description="Any date inside the requested week."),
    today: Optional[date] = Query(default=None, description="Override for the current date."),
) -> Dict[str, List[ScheduledItem]]:
    learner = _require_learner(learner_id)
    current_day = _today(today)
    agenda = _marked_agenda(learner, current_day)
    return {day: agenda.get(day, []) for day in week_dates(anchor or current_day)}


@router.get("/{learner_id}/agenda/overdue", response_model=List[ScheduledItem], status_code=status.HTTP_200_OK)
def get_overdue(
    learner_id: str,
    today: Optional[date] = Query(default=None, description="Override for the current date."),
) -> List[ScheduledItem]:
    learner = _require_learner(learner_id)
    current_day = _today(today)
    return overdue_items(_marked_agenda(learner, current_day), current_day)


@router.get("/{learner_id}/coverage", response_model=SyllabusCoverage, status_code=status.HTTP_200_OK)
def get_coverage(learner_id: str) -> SyllabusCoverage:
    learner = _require_learner(learner_id)
    plan = planner_store.get_plan(learner.current_plan_id) if learner.current_plan_id else None
    if plan is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Learner '{learner_id}' has no active study plan.",
        )
    return syllabus_coverage(plan, learner.progress.completed_goal_ids)


@router.post("/{learner_id}/goals/{goal_id}/toggle", response_model=Learner, status_code=status.HTTP_200_OK)
def toggle_goal(learner_id: str, goal_id: str) -> Learner:
    learner = toggle_goal_completion(_require_learner(learner_id), goal_id)
    stored = planner_store.upsert_learner(learner)
    emit_event(
        "goal_completion_toggled",
        learner_id=stored.id,
        goal_id=goal_id,
        completed=goal_id in stored.progress.completed_goal_ids,
    )
    return stored


@router.post("/{learner_id}/plan-action", response_model=Learner, status_code=status.HTTP_200_OK)
def post_plan_action(
    learner_id: str,
    payload: PlanActionRequest,
    today: Optional[date] = Query(default=None),
) -> Learner:
    learner = _require_learner(learner_id)
    if not learner.current_plan_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Learner '{learner_id}' has no active study plan.",
        )
    try:
        updated = apply_plan_action(learner, learner.current_plan_id, payload.action, _today(today))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    stored = planner_store.upsert_learner(updated)
    emit_event(
        "plan_action",
        learner_id=stored.id,
        plan_id=stored.current_plan_id,
        action=payload.action,
    )
    return stored


@router.post("/{learner_id}/current-plan", response_model=Learner, status_code=status.HTTP_200_OK)
def post_current_plan(
    learner_id: str,
    payload: CurrentPlanRequest,
    today: Optional[date] = Query(default=None),
) -> Learner:
    learner = _require_learner(learner_id)
    if planner_store.get_plan(payload.plan_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Study plan '{payload.plan_id}' was not found.",
        )
    stored = planner_store.upsert_learner(switch_plan(learner, payload.plan_id, _today(today)))
    logger.info("Learner %s switched from plan %s to %s", learner.id, learner.current_plan_id, payload.plan_id)
    return stored


@router.put("/{learner_id}/routine", response_model=Learner, status_code=status.HTTP_200_OK)
def put_routine(
    learner_id: str,
    payload: RoutineRequest,
    today: Optional[date] = Query(default=None),
) -> Learner:
    learner = _require_learner(learner_id)
    level = payload.level or learner.level or get_settings().default_level
    updated = save_routine(learner, payload.routine, level, _today(today))
    return planner_store.upsert_learner(updated)


@router.post("/{learner_id}/study-time", response_model=Learner, status_code=status.HTTP_200_OK)
def post_study_time(learner_id: str, payload: StudyTimeRequest) -> Learner:
    learner = _require_learner(learner_id)
    updated = record_study_time(
        learner,
        payload.seconds,
        goal_id=payload.goal_id,
        completed=payload.completed,
    )
    return planner_store.upsert_learner(updated)


@router.post(
    "/{learner_id}/exams/{exam_id}/attempts",
    response_model=ExamAttempt,
    status_code=status.HTTP_201_CREATED,
)
def post_exam_attempt(learner_id: str, exam_id: str, payload: ExamSubmission) -> ExamAttempt:
    learner = _require_learner(learner_id)
    exam = planner_store.get_exam(exam_id)
    if exam is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Exam '{exam_id}' was not found.",
        )
    previous = planner_store.attempts_for(learner.id, exam_id)
    attempt = grade_exam_attempt(
        exam,
        payload.answers,
        learner.id,
        attempt_id=previous[-1].id if previous else None,
    )
    stored = planner_store.record_attempt(attempt)
    emit_event(
        "exam_attempt_graded",
        learner_id=learner.id,
        exam_id=exam.id,
        score=stored.score,
        is_approved=stored.is_approved,
        resubmission=bool(previous),
    )
    return stored
