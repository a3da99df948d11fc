"""Cache helpers for generated agendas."""

from .agenda_cache import AgendaCache, agenda_cache, fingerprint_inputs

__all__ = ["AgendaCache", "agenda_cache", "fingerprint_inputs"]
