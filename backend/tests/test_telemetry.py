from __future__ import annotations

import json
import logging
from datetime import date

import pytest

from planner.config import get_settings
from planner.logging_config import configure_logging
from planner.telemetry import TelemetryEvent, clear_listeners, emit_event, register_listener


def teardown_function() -> None:
    clear_listeners()
    get_settings.cache_clear()


def test_emit_event_notifies_listeners_and_logs(caplog) -> None:
    events = []
    register_listener(events.append)

    with caplog.at_level(logging.INFO, logger="planner.telemetry"):
        emit_event("agenda_generation", learner_id="ana", start_date=date(2024, 1, 1))

    assert events == [
        TelemetryEvent(name="agenda_generation", payload={"learner_id": "ana", "start_date": "2024-01-01"})
    ]
    record = caplog.records[-1]
    assert record.getMessage().startswith("TELEMETRY ")
    logged = json.loads(record.getMessage()[len("TELEMETRY "):])
    assert logged == {"event": "agenda_generation", "learner_id": "ana", "start_date": "2024-01-01"}


def test_failing_listener_does_not_block_others(caplog) -> None:
    received = []

    def broken(event: TelemetryEvent) -> None:
        raise RuntimeError("boom")

    register_listener(broken)
    register_listener(received.append)

    with caplog.at_level(logging.ERROR, logger="planner.telemetry"):
        emit_event("plan_action", action="pause")

    assert [event.name for event in received] == ["plan_action"]
    assert any("Telemetry listener failed" in record.getMessage() for record in caplog.records)


def test_quiet_telemetry_flag(monkeypatch) -> None:
    monkeypatch.setenv("PLANNER_QUIET_TELEMETRY", "1")

    configure_logging()

    assert logging.getLogger("planner.telemetry").level == logging.WARNING
    logging.getLogger("planner.telemetry").setLevel(logging.NOTSET)


def test_settings_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("PLANNER_HORIZON_DAYS", "30")
    monkeypatch.setenv("PLANNER_DEFAULT_LEVEL", "advanced")
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.horizon_days == 30
    assert settings.default_level == "advanced"
    assert settings.max_daily_iterations == 500


def test_invalid_settings_raise_runtime_error(monkeypatch) -> None:
    monkeypatch.setenv("PLANNER_HORIZON_DAYS", "0")
    get_settings.cache_clear()

    with pytest.raises(RuntimeError):
        get_settings()
