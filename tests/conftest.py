"""Shared fixtures: a throwaway SQLite database per test."""

from __future__ import annotations

import pytest

import config


@pytest.fixture()
def tmp_db(tmp_path, monkeypatch):
    """Point the store at a fresh database file and create the schema."""
    db_path = str(tmp_path / "test.db")
    monkeypatch.setattr(config, "DB_PATH", db_path)
    monkeypatch.setattr(config, "DEFAULT_ADMIN_EMAIL", "admin@test.local")
    monkeypatch.setattr(config, "DEFAULT_ADMIN_PASSWORD", "adminpass")

    from db import init_db

    init_db()
    return db_path
