"""REST endpoints for managing study plans and the exam catalog."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, HTTPException, status

from .planner_store import planner_store
from .study_plan import Exam, StudyPlan

router = APIRouter(prefix="/api", tags=["plans"])
logger = logging.getLogger(__name__)


def _ensure_matching_id(path_id: str, body_id: str, label: str) -> None:
    if path_id != body_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{label} id in the path ('{path_id}') does not match the payload ('{body_id}').",
        )


@router.put("/plans/{plan_id}", response_model=StudyPlan, status_code=status.HTTP_200_OK)
def put_plan(plan_id: str, plan: StudyPlan) -> StudyPlan:
    _ensure_matching_id(plan_id, plan.id, "Plan")
    stored = planner_store.upsert_plan(plan)
    logger.info("Plan %s saved with %d cycles (%s)", stored.id, len(stored.cycles), stored.cycle_system)
    return stored


@router.get("/plans/{plan_id}", response_model=StudyPlan, status_code=status.HTTP_200_OK)
def get_plan(plan_id: str) -> StudyPlan:
    plan = planner_store.get_plan(plan_id)
    if plan is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Study plan '{plan_id}' was not found.",
        )
    return plan


@router.get("/plans", response_model=List[StudyPlan], status_code=status.HTTP_200_OK)
def list_plans() -> List[StudyPlan]:
    return planner_store.list_plans()


@router.put("/exams/{exam_id}", response_model=Exam, status_code=status.HTTP_200_OK)
def put_exam(exam_id: str, exam: Exam) -> Exam:
    _ensure_matching_id(exam_id, exam.id, "Exam")
    return planner_store.upsert_exam(exam)


@router.get("/exams", response_model=List[Exam], status_code=status.HTTP_200_OK)
def list_exams() -> List[Exam]:
    return planner_store.list_exams()
