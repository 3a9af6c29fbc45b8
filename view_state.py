"""Per-view UI state, owned explicitly instead of living in module globals."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import MutableMapping


@dataclass
class AccordionState:
    """Which section of an accordion is open, plus per-day notes drafts.

    Only one section is open at a time; toggling the open one closes it.
    """
    open_key: str = ""
    notes: dict[str, str] = field(default_factory=dict)

    def is_open(self, key: str) -> bool:
        return self.open_key == key

    def toggle(self, key: str):
        self.open_key = "" if self.open_key == key else key

    def open(self, key: str):
        self.open_key = key

    def set_note(self, date: str, notes: str):
        self.notes[date] = notes

    def note_for(self, date: str) -> str:
        return self.notes.get(date, "")

    @classmethod
    def from_session(cls, session_state: MutableMapping, key: str, **defaults) -> "AccordionState":
        """Fetch the state stored under ``key``, creating it on first use."""
        state = session_state.get(key)
        if not isinstance(state, cls):
            state = cls(**defaults)
            session_state[key] = state
        return state
