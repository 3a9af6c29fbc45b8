"""Tests for accordion view state."""

from view_state import AccordionState


class TestAccordionState:
    def test_single_open_section(self):
        state = AccordionState()
        state.toggle("Q1 2024")
        assert state.is_open("Q1 2024")
        state.toggle("Q4 2023")
        assert state.is_open("Q4 2023")
        assert not state.is_open("Q1 2024")

    def test_toggle_open_section_closes_it(self):
        state = AccordionState(open_key="Q1 2024")
        state.toggle("Q1 2024")
        assert state.open_key == ""

    def test_notes_drafts(self):
        state = AccordionState()
        assert state.note_for("2024-02-12") == ""
        state.set_note("2024-02-12", "sized down after 2 losses")
        assert state.note_for("2024-02-12") == "sized down after 2 losses"

    def test_from_session_creates_once(self):
        session = {}
        first = AccordionState.from_session(session, "quarters", open_key="Q1 2024")
        first.toggle("Q2 2024")
        again = AccordionState.from_session(session, "quarters", open_key="Q1 2024")
        assert again is first
        assert again.open_key == "Q2 2024"

    def test_from_session_replaces_foreign_value(self):
        session = {"quarters": "stale"}
        state = AccordionState.from_session(session, "quarters")
        assert isinstance(session["quarters"], AccordionState)
        assert state.open_key == ""
