"""Process-local store for plans, exams, learners and exam attempts."""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional

from .cache import agenda_cache
from .study_plan import Exam, ExamAttempt, Learner, StudyPlan

logger = logging.getLogger(__name__)


def _normalize_id(value: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise ValueError("Identifiers cannot be empty.")
    return normalized


class PlannerStore:
    """Thread-safe in-memory snapshot of everything the scheduler reads.

    Every read returns a deep copy so callers can mutate results freely.
    Writes that change what a learner's agenda depends on drop the cached
    agenda for the affected learners.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._plans: Dict[str, StudyPlan] = {}
        self._exams: Dict[str, Exam] = {}
        self._learners: Dict[str, Learner] = {}
        self._attempts: Dict[str, List[ExamAttempt]] = {}

    def get_plan(self, plan_id: str) -> Optional[StudyPlan]:
        with self._lock:
            plan = self._plans.get(_normalize_id(plan_id))
            return plan.model_copy(deep=True) if plan else None

    def list_plans(self) -> List[StudyPlan]:
        with self._lock:
            return [plan.model_copy(deep=True) for plan in self._plans.values()]

    def upsert_plan(self, plan: StudyPlan) -> StudyPlan:
        clone = plan.model_copy(deep=True)
        clone.id = _normalize_id(clone.id)
        with self._lock:
            self._plans[clone.id] = clone
            affected = [learner.id for learner in self._learners.values() if learner.current_plan_id == clone.id]
        for learner_id in affected:
            agenda_cache.invalidate(learner_id)
        logger.debug("Stored plan %s (%d disciplines, %d cycles)", clone.id, len(clone.disciplines), len(clone.cycles))
        return clone.model_copy(deep=True)

    def get_exam(self, exam_id: str) -> Optional[Exam]:
        with self._lock:
            exam = self._exams.get(_normalize_id(exam_id))
            return exam.model_copy(deep=True) if exam else None

    def list_exams(self) -> List[Exam]:
        with self._lock:
            return [exam.model_copy(deep=True) for exam in self._exams.values()]

    def upsert_exam(self, exam: Exam) -> Exam:
        clone = exam.model_copy(deep=True)
        clone.id = _normalize_id(clone.id)
        with self._lock:
            self._exams[clone.id] = clone
        agenda_cache.clear()
        return clone.model_copy(deep=True)

    def get_learner(self, learner_id: str) -> Optional[Learner]:
        with self._lock:
            learner = self._learners.get(_normalize_id(learner_id))
            return learner.model_copy(deep=True) if learner else None

    def upsert_learner(self, learner: Learner) -> Learner:
        clone = learner.model_copy(deep=True)
        clone.id = _normalize_id(clone.id)
        with self._lock:
            self._learners[clone.id] = clone
        agenda_cache.invalidate(clone.id)
        return clone.model_copy(deep=True)

    def delete_learner(self, learner_id: str) -> bool:
        normalized = _normalize_id(learner_id)
        with self._lock:
            removed = self._learners.pop(normalized, None)
            self._attempts.pop(normalized, None)
        agenda_cache.invalidate(normalized)
        return removed is not None

    def record_attempt(self, attempt: ExamAttempt) -> ExamAttempt:
        clone = attempt.model_copy(deep=True)
        learner_id = _normalize_id(clone.learner_id)
        with self._lock:
            attempts = self._attempts.setdefault(learner_id, [])
            attempts[:] = [existing for existing in attempts if existing.id != clone.id]
            attempts.append(clone)
        agenda_cache.invalidate(learner_id)
        return clone.model_copy(deep=True)

    def attempts_for(self, learner_id: str, exam_id: Optional[str] = None) -> List[ExamAttempt]:
        with self._lock:
            attempts = self._attempts.get(_normalize_id(learner_id), [])
            return [
                attempt.model_copy(deep=True)
                for attempt in attempts
                if exam_id is None or attempt.exam_id == exam_id
            ]

    def clear(self) -> None:
        with self._lock:
            self._plans.clear()
            self._exams.clear()
            self._learners.clear()
            self._attempts.clear()
        agenda_cache.clear()


planner_store = PlannerStore()

__all__ = ["PlannerStore", "planner_store"]
