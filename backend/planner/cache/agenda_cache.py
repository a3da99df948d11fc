"""Process-local cache of the last agenda generated per learner."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import RLock
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from ..study_plan import Agenda


def _normalize_learner_id(learner_id: str) -> str:
    normalized = learner_id.strip()
    if not normalized:
        raise ValueError("Learner id cannot be empty when caching agendas.")
    return normalized


def fingerprint_inputs(*parts: Any) -> str:
    """Stable digest of the scheduler inputs; any change yields a new key."""
    hasher = hashlib.sha256()
    for part in parts:
        if isinstance(part, BaseModel):
            encoded = part.model_dump_json()
        else:
            encoded = json.dumps(_jsonable(part), sort_keys=True, default=str)
        hasher.update(encoded.encode("utf-8"))
        hasher.update(b"\x1f")
    return hasher.hexdigest()


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted(_jsonable(item) for item in value)
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    return value


def _copy_agenda(agenda: Agenda) -> Agenda:
    return {day: [item.model_copy(deep=True) for item in items] for day, items in agenda.items()}


@dataclass
class _AgendaEntry:
    fingerprint: str
    agenda: Agenda
    cached_at: datetime


class AgendaCache:
    """Keeps one agenda per learner, valid only for the inputs it was built from."""

    def __init__(self) -> None:
        self._entries: Dict[str, _AgendaEntry] = {}
        self._lock = RLock()

    def get(self, learner_id: str, fingerprint: str) -> Optional[Agenda]:
        key = _normalize_learner_id(learner_id)
        with self._lock:
            entry = self._entries.get(key)
        if entry is None or entry.fingerprint != fingerprint:
            return None
        return _copy_agenda(entry.agenda)

    def set(self, learner_id: str, fingerprint: str, agenda: Agenda) -> None:
        key = _normalize_learner_id(learner_id)
        entry = _AgendaEntry(
            fingerprint=fingerprint,
            agenda=_copy_agenda(agenda),
            cached_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self._entries[key] = entry

    def invalidate(self, learner_id: str) -> None:
        key = _normalize_learner_id(learner_id)
        with self._lock:
            self._entries.pop(key, None)

    def cached_learners(self) -> List[str]:
        with self._lock:
            return sorted(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


agenda_cache = AgendaCache()

__all__ = ["AgendaCache", "agenda_cache", "fingerprint_inputs"]
