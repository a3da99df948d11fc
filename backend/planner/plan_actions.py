"""Learner-facing plan transitions: pausing, rescheduling, switching and progress."""

from __future__ import annotations

import logging
from datetime import date
from typing import Literal, Optional, get_args

from .study_plan import Learner, LearnerLevel, PlanConfig, Routine

logger = logging.getLogger(__name__)

PlanAction = Literal["pause", "reschedule", "restart"]
PLAN_ACTIONS = frozenset(get_args(PlanAction))


def toggle_goal_completion(learner: Learner, goal_id: str) -> Learner:
    updated = learner.model_copy(deep=True)
    completed = updated.progress.completed_goal_ids
    if goal_id in completed:
        updated.progress.completed_goal_ids = [existing for existing in completed if existing != goal_id]
    else:
        completed.append(goal_id)
    return updated


def apply_plan_action(learner: Learner, plan_id: str, action: str, today: date) -> Learner:
    """Apply ``pause``, ``reschedule`` or ``restart`` to the learner's config for ``plan_id``.

    ``pause`` toggles the pause flag, ``reschedule`` moves the start date to
    ``today`` so overdue goals are redistributed, and ``restart`` also wipes
    completed goals.
    """
    if action not in PLAN_ACTIONS:
        raise ValueError(f"Unsupported plan action '{action}'.")
    updated = learner.model_copy(deep=True)
    config = updated.plan_configs.get(plan_id) or PlanConfig(start_date=today)

    if action == "restart":
        updated.progress.completed_goal_ids = []
        config = PlanConfig(start_date=today, is_paused=False)
    elif action == "pause":
        config = config.model_copy(update={"is_paused": not config.is_paused})
    else:
        config = PlanConfig(start_date=today, is_paused=False)

    updated.plan_configs[plan_id] = config
    logger.info("Applied plan action %s for learner %s on plan %s", action, learner.id, plan_id)
    return updated


def switch_plan(learner: Learner, plan_id: str, today: date) -> Learner:
    """Pause the current plan and activate ``plan_id``, keeping all progress."""
    if plan_id == learner.current_plan_id:
        return learner.model_copy(deep=True)
    updated = learner.model_copy(deep=True)
    previous = updated.current_plan_id
    if previous:
        previous_config = updated.plan_configs.get(previous) or PlanConfig(start_date=today)
        updated.plan_configs[previous] = previous_config.model_copy(update={"is_paused": True})
    target = updated.plan_configs.get(plan_id)
    if target is None:
        updated.plan_configs[plan_id] = PlanConfig(start_date=today)
    else:
        updated.plan_configs[plan_id] = target.model_copy(update={"is_paused": False})
    updated.current_plan_id = plan_id
    return updated


def save_routine(learner: Learner, routine: Routine, level: LearnerLevel, today: date) -> Learner:
    updated = learner.model_copy(deep=True)
    updated.routine = routine.model_copy(deep=True)
    updated.level = level
    if updated.current_plan_id and updated.current_plan_id not in updated.plan_configs:
        updated.plan_configs[updated.current_plan_id] = PlanConfig(start_date=today)
    return updated


def record_study_time(
    learner: Learner,
    seconds: int,
    *,
    goal_id: Optional[str] = None,
    completed: bool = False,
) -> Learner:
    if seconds < 0:
        raise ValueError("Study time cannot be negative.")
    updated = learner.model_copy(deep=True)
    progress = updated.progress
    progress.total_study_seconds += seconds
    if updated.current_plan_id:
        plan_id = updated.current_plan_id
        progress.plan_study_seconds[plan_id] = progress.plan_study_seconds.get(plan_id, 0) + seconds
    if completed and goal_id and goal_id not in progress.completed_goal_ids:
        progress.completed_goal_ids.append(goal_id)
    return updated


__all__ = [
    "PLAN_ACTIONS",
    "PlanAction",
    "apply_plan_action",
    "record_study_time",
    "save_routine",
    "switch_plan",
    "toggle_goal_completion",
]
