"""Tests for the SQLite store: daily logs, base data, notes, backups."""

from __future__ import annotations

import pytest

import config
from db import (
    StoreError, add_daily_log, clear_all_days, delete_daily_log, delete_note,
    export_backup, get_all_days, get_base_data, get_daily_log_summary, get_day, get_db,
    get_note, get_notes_in_range, get_notes_map, import_backup, record_upload,
    upsert_note, validate_date,
)
from models import AnalysisRecord, DayRecord, Headline


def _day(date: str, pnl=0.0, trades=0, wins=0, losses=0) -> DayRecord:
    return DayRecord(date=date, analysis=AnalysisRecord(headline=Headline(pnl, trades, wins, losses)))


class TestValidateDate:
    def test_accepts_plain_date(self):
        assert validate_date("2024-02-12") == "2024-02-12"

    @pytest.mark.parametrize("bad", ["2024-2-12", "2024-02-12T00:00:00", "", "02/12/2024", None])
    def test_rejects_other_shapes(self, bad):
        with pytest.raises(ValueError):
            validate_date(bad)

    @pytest.mark.parametrize("bad", ["2024-02-30", "2023-02-29", "2024-13-01", "2024-00-10", "2024-04-31"])
    def test_rejects_impossible_calendar_days(self, bad):
        with pytest.raises(ValueError):
            validate_date(bad)

    def test_accepts_leap_day(self):
        assert validate_date("2024-02-29") == "2024-02-29"

    def test_rejects_non_ascii_digits(self):
        with pytest.raises(ValueError):
            validate_date("２０２４-02-12")


class TestDailyLogs:
    def test_add_and_read_back(self, tmp_db):
        add_daily_log(_day("2024-02-12", 150, 10, 6, 4))
        day = get_day("2024-02-12")
        assert day is not None
        assert day.analysis.headline.total_pnl == 150
        assert day.added_at

    def test_same_date_overwrites(self, tmp_db):
        add_daily_log(_day("2024-02-12", 150))
        add_daily_log(_day("2024-02-12", -20))
        days = get_all_days()
        assert len(days) == 1
        assert days[0].analysis.headline.total_pnl == -20

    def test_all_days_newest_first(self, tmp_db):
        for d in ["2024-02-13", "2024-03-01", "2024-02-12"]:
            add_daily_log(_day(d))
        assert [d.date for d in get_all_days()] == ["2024-03-01", "2024-02-13", "2024-02-12"]

    def test_rejects_bad_date(self, tmp_db):
        with pytest.raises(ValueError):
            add_daily_log(_day("Feb 12"))

    def test_delete_and_clear(self, tmp_db):
        add_daily_log(_day("2024-02-12"))
        add_daily_log(_day("2024-02-13"))
        assert delete_daily_log("2024-02-12") is True
        assert delete_daily_log("2024-02-12") is False
        assert clear_all_days() == 1
        assert get_all_days() == []

    def test_record_upload_sets_base_data(self, tmp_db):
        assert get_base_data() is None
        record_upload(_day("2024-02-12", 42, 3, 2, 1), user_id=1)
        base = get_base_data()
        assert base["date"] == "2024-02-12"
        assert base["analysis"]["headline"]["totalPnl"] == 42

    def test_summary_names_uploader(self, tmp_db):
        record_upload(_day("2024-02-12", 42, 3, 2, 1), user_id=1)
        add_daily_log(_day("2024-02-13"))
        summary = get_daily_log_summary()
        assert summary["date"].tolist() == ["2024-02-13", "2024-02-12"]
        assert summary.loc[summary["date"] == "2024-02-12", "added_by"].iloc[0] == "admin@test.local"

    def test_unopenable_database_raises_store_error(self, tmp_path, monkeypatch):
        # A directory cannot be opened as a database file.
        monkeypatch.setattr(config, "DB_PATH", str(tmp_path))
        with pytest.raises(StoreError):
            get_all_days()

    def test_sqlite_error_during_read_raises_store_error(self, tmp_db):
        add_daily_log(_day("2024-02-12"))
        with get_db() as conn:
            conn.execute("DROP TABLE daily_logs")
        with pytest.raises(StoreError, match="no such table"):
            get_all_days()
        with pytest.raises(StoreError):
            get_day("2024-02-12")

    def test_sqlite_error_during_write_raises_store_error(self, tmp_db):
        with get_db() as conn:
            conn.execute("DROP TABLE notes")
        with pytest.raises(StoreError):
            upsert_note("2024-02-12", "x")

    def test_failed_block_rolls_back(self, tmp_db):
        with pytest.raises(StoreError):
            with get_db() as conn:
                conn.execute(
                    "INSERT INTO notes (date, notes, last_modified) VALUES (?, ?, ?)",
                    ("2024-02-12", "x", "t"),
                )
                conn.execute("SELECT * FROM missing_table")
        assert get_note("2024-02-12").notes == ""

    def test_value_error_passes_through_unchanged(self, tmp_db):
        with pytest.raises(ValueError, match="boom"):
            with get_db():
                raise ValueError("boom")


class TestNotes:
    def test_missing_note_is_empty(self, tmp_db):
        note = get_note("2024-02-12")
        assert note.notes == ""
        assert note.date == "2024-02-12"

    def test_upsert_overwrites(self, tmp_db):
        upsert_note("2024-02-12", "first")
        upsert_note("2024-02-12", "second")
        assert get_note("2024-02-12").notes == "second"

    def test_range_newest_first_inclusive(self, tmp_db):
        for d in ["2024-02-10", "2024-02-12", "2024-02-14", "2024-02-20"]:
            upsert_note(d, f"note {d}")
        notes = get_notes_in_range("2024-02-12", "2024-02-20")
        assert [n.date for n in notes] == ["2024-02-20", "2024-02-14", "2024-02-12"]

    def test_range_rejects_bad_dates(self, tmp_db):
        with pytest.raises(ValueError):
            get_notes_in_range("2024-2-1", "2024-02-20")

    def test_notes_map_spans_days(self, tmp_db):
        upsert_note("2024-02-12", "a")
        upsert_note("2024-02-14", "b")
        upsert_note("2024-03-01", "outside")
        days = [_day("2024-02-14"), _day("2024-02-12")]
        assert get_notes_map(days) == {"2024-02-12": "a", "2024-02-14": "b"}
        assert get_notes_map([]) == {}

    def test_delete(self, tmp_db):
        upsert_note("2024-02-12", "x")
        assert delete_note("2024-02-12") is True
        assert delete_note("2024-02-12") is False


class TestBackup:
    def test_export_import_restores_everything(self, tmp_db):
        add_daily_log(_day("2024-02-12", 150, 10, 6, 4))
        upsert_note("2024-02-12", "good day")
        payload = export_backup()

        clear_all_days()
        delete_note("2024-02-12")

        assert import_backup(payload) == (1, 1)
        assert get_day("2024-02-12").analysis.headline.wins == 6
        assert get_note("2024-02-12").notes == "good day"

    def test_invalid_entry_writes_nothing(self, tmp_db):
        payload = {
            "days": [
                _day("2024-02-12", 10).to_dict(),
                {"date": "not-a-date", "analysis": {"headline": {}}},
            ],
            "notes": [],
        }
        with pytest.raises(ValueError):
            import_backup(payload)
        assert get_all_days() == []

    def test_day_without_analysis_rejected(self, tmp_db):
        with pytest.raises(ValueError, match="date and analysis"):
            import_backup({"days": [{"date": "2024-02-12"}]})

    def test_non_object_rejected(self, tmp_db):
        with pytest.raises(ValueError):
            import_backup([1, 2, 3])

    def test_impossible_calendar_date_rejected(self, tmp_db):
        payload = {"days": [{"date": "2024-02-30", "analysis": {"headline": {"totalPnl": 5}}}]}
        with pytest.raises(ValueError):
            import_backup(payload)
        assert get_all_days() == []

    def test_trade_without_id_is_value_error(self, tmp_db):
        payload = {"days": [{"date": "2025-03-10", "analysis": {"tradeList": [{"pnl": 1}]}}]}
        with pytest.raises(ValueError, match="2025-03-10"):
            import_backup(payload)
        assert get_all_days() == []

    @pytest.mark.parametrize("analysis", [
        {"headline": {"totalPnl": 1}, "tradeList": [{"id": "x"}]},
        {"headline": {"totalPnl": 1}, "tradeList": [{"id": 1, "pnl": "lots"}]},
        {"headline": {"totalPnl": 1}, "tradeList": "not a list of trades"},
        {"headline": {"totalPnl": 1}, "sessions": {"morning": {"trades": "many"}}},
    ])
    def test_malformed_analysis_is_value_error(self, tmp_db, analysis):
        with pytest.raises(ValueError):
            import_backup({"days": [{"date": "2025-03-10", "analysis": analysis}]})

    def test_bad_note_after_good_days_writes_nothing(self, tmp_db):
        payload = {
            "days": [_day("2024-02-12", 10).to_dict()],
            "notes": [{"date": "2024-02-31", "notes": "x"}],
        }
        with pytest.raises(ValueError):
            import_backup(payload)
        assert get_all_days() == []

    def test_store_failure_mid_import_rolls_back(self, tmp_db):
        with get_db() as conn:
            conn.execute("DROP TABLE notes")
        payload = {
            "days": [_day("2024-02-12", 10).to_dict()],
            "notes": [{"date": "2024-02-12", "notes": "x"}],
        }
        with pytest.raises(StoreError):
            import_backup(payload)
        assert get_all_days() == []
