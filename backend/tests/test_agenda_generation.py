from __future__ import annotations

from datetime import date
from typing import List

import pytest

from planner.cache import AgendaCache, agenda_cache, fingerprint_inputs
from planner.config import get_settings
from planner.cycle_scheduler import generate_agenda_for_learner
from planner.planner_store import planner_store
from planner.study_plan import (
    Cycle,
    CycleItem,
    Discipline,
    Exam,
    ExamAttempt,
    Goal,
    Learner,
    LearnerProgress,
    PlanConfig,
    Routine,
    StudyPlan,
    Subject,
)
from planner.telemetry import TelemetryEvent, clear_listeners, register_listener

MONDAY = date(2024, 1, 1)


@pytest.fixture(autouse=True)
def _clean_state():
    planner_store.clear()
    clear_listeners()
    get_settings.cache_clear()
    yield
    planner_store.clear()
    clear_listeners()
    get_settings.cache_clear()


def _seed(*, is_paused: bool = False) -> None:
    goals = [Goal(id=f"g{index}", title=f"Goal {index}", duration_minutes=30, order=index) for index in range(4)]
    planner_store.upsert_plan(
        StudyPlan(
            id="plan-1",
            name="Plan",
            disciplines=[Discipline(id="math", name="Math", subjects=[Subject(id="s", name="Algebra", goals=goals)])],
            cycles=[Cycle(id="c1", items=[CycleItem(discipline_id="math"), CycleItem(exam_id="exam-1")])],
        )
    )
    planner_store.upsert_exam(Exam(id="exam-1", title="Mock", total_questions=10))
    planner_store.upsert_learner(
        Learner(
            id="ana",
            routine=Routine(days={"monday": 60, "wednesday": 60}),
            current_plan_id="plan-1",
            plan_configs={"plan-1": PlanConfig(start_date=MONDAY, is_paused=is_paused)},
        )
    )


def _events() -> List[TelemetryEvent]:
    events: List[TelemetryEvent] = []
    register_listener(events.append)
    return events


def test_generation_reports_metrics() -> None:
    _seed()
    events = _events()

    agenda = generate_agenda_for_learner("ana")

    assert agenda
    event = events[-1]
    assert event.name == "agenda_generation"
    assert event.payload["status"] == "success"
    assert event.payload["learner_id"] == "ana"
    assert event.payload["plan_id"] == "plan-1"
    assert event.payload["cycle_system"] == "continuous"
    assert event.payload["start_date"] == MONDAY.isoformat()
    assert event.payload["horizon_days"] == 90
    assert event.payload["day_count"] == len(agenda)
    assert event.payload["item_count"] == sum(len(items) for items in agenda.values())
    assert event.payload["duration_ms"] >= 0


def test_second_generation_is_served_from_cache() -> None:
    _seed()
    events = _events()

    first = generate_agenda_for_learner("ana")
    second = generate_agenda_for_learner("ana")

    assert first == second
    assert [event.payload["status"] for event in events] == ["success", "cached"]
    assert agenda_cache.cached_learners() == ["ana"]


def test_progress_change_invalidates_cached_agenda() -> None:
    _seed()
    events = _events()
    first = generate_agenda_for_learner("ana")

    learner = planner_store.get_learner("ana")
    learner.progress = LearnerProgress(completed_goal_ids=["g0"])
    planner_store.upsert_learner(learner)
    second = generate_agenda_for_learner("ana")

    assert [event.payload["status"] for event in events] == ["success", "success"]
    assert "g0" in {item.goal_id for items in first.values() for item in items}
    assert "g0" not in {item.goal_id for items in second.values() for item in items}


def test_exam_attempt_removes_exam_from_agenda() -> None:
    _seed()
    before = generate_agenda_for_learner("ana")

    planner_store.record_attempt(ExamAttempt(id="a1", learner_id="ana", exam_id="exam-1"))
    after = generate_agenda_for_learner("ana")

    assert any(item.is_exam for items in before.values() for item in items)
    assert not any(item.is_exam for items in after.values() for item in items)


def test_paused_plan_reports_paused_status() -> None:
    _seed(is_paused=True)
    events = _events()

    assert generate_agenda_for_learner("ana") == {}
    assert events[-1].payload["status"] == "paused"


def test_cache_can_be_disabled(monkeypatch) -> None:
    monkeypatch.setenv("PLANNER_AGENDA_CACHE", "false")
    get_settings.cache_clear()
    _seed()
    events = _events()

    generate_agenda_for_learner("ana")
    generate_agenda_for_learner("ana")

    assert [event.payload["status"] for event in events] == ["success", "success"]
    assert agenda_cache.cached_learners() == []


def test_horizon_follows_settings(monkeypatch) -> None:
    monkeypatch.setenv("PLANNER_HORIZON_DAYS", "3")
    get_settings.cache_clear()
    _seed()

    agenda = generate_agenda_for_learner("ana")

    assert list(agenda) == [MONDAY.isoformat(), date(2024, 1, 3).isoformat()]


def test_learner_level_falls_back_to_configured_default(monkeypatch) -> None:
    monkeypatch.setenv("PLANNER_DEFAULT_LEVEL", "advanced")
    get_settings.cache_clear()
    reading = Goal(id="pdf", type="material", title="Chapter", pages=10)
    planner_store.upsert_plan(
        StudyPlan(
            id="plan-1",
            name="Plan",
            disciplines=[Discipline(id="law", name="Law", subjects=[Subject(id="s", name="Codes", goals=[reading])])],
            cycles=[Cycle(id="c1", items=[CycleItem(discipline_id="law")])],
        )
    )
    learner = Learner(
        id="ana",
        routine=Routine(days={"monday": 60}),
        current_plan_id="plan-1",
        plan_configs={"plan-1": PlanConfig(start_date=MONDAY)},
    )
    planner_store.upsert_learner(learner)

    unset = generate_agenda_for_learner("ana")
    planner_store.upsert_learner(learner.model_copy(update={"level": "beginner"}))
    explicit = generate_agenda_for_learner("ana")

    assert unset[MONDAY.isoformat()][0].duration == 20
    assert explicit[MONDAY.isoformat()][0].duration == 50


def test_missing_learner_or_plan_raises_lookup_error() -> None:
    with pytest.raises(LookupError):
        generate_agenda_for_learner("nobody")

    planner_store.upsert_learner(Learner(id="bia"))
    with pytest.raises(LookupError):
        generate_agenda_for_learner("bia")

    planner_store.upsert_learner(Learner(id="bia", current_plan_id="ghost"))
    with pytest.raises(LookupError):
        generate_agenda_for_learner("bia")


def test_agenda_cache_checks_fingerprint_and_copies() -> None:
    cache = AgendaCache()
    key = fingerprint_inputs({"a": 1}, ["x"])

    cache.set(" ana ", key, {})

    assert cache.get("ana", key) == {}
    assert cache.get("ana", fingerprint_inputs({"a": 2}, ["x"])) is None
    assert key == fingerprint_inputs({"a": 1}, ["x"])
    cache.invalidate("ana")
    assert cache.get("ana", key) is None


def test_learner_ids_differing_in_case_keep_separate_cache_entries() -> None:
    cache = AgendaCache()
    key = fingerprint_inputs({"a": 1})

    cache.set("Ana", key, {})
    cache.set("ana", key, {})
    cache.invalidate("ana")

    assert cache.get("Ana", key) == {}
    assert cache.get("ana", key) is None
    assert cache.cached_learners() == ["Ana"]


def test_store_returns_copies() -> None:
    _seed()

    learner = planner_store.get_learner("ana")
    learner.progress.completed_goal_ids.append("g1")

    assert planner_store.get_learner("ana").progress.completed_goal_ids == []
    assert planner_store.get_plan("missing") is None
    with pytest.raises(ValueError):
        planner_store.get_learner("   ")


def test_record_attempt_replaces_same_id() -> None:
    planner_store.record_attempt(ExamAttempt(id="a1", learner_id="ana", exam_id="exam-1", score=1))
    planner_store.record_attempt(ExamAttempt(id="a1", learner_id="ana", exam_id="exam-1", score=3))
    planner_store.record_attempt(ExamAttempt(id="a2", learner_id="ana", exam_id="exam-2"))

    attempts = planner_store.attempts_for("ana", "exam-1")

    assert [(attempt.id, attempt.score) for attempt in attempts] == [("a1", 3.0)]
    assert len(planner_store.attempts_for("ana")) == 2
    assert planner_store.delete_learner("ana") is False
    assert planner_store.attempts_for("ana") == []
