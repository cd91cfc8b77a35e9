from __future__ import annotations

from pathlib import Path

from franchisehub.infrastructure.stores.sqlalchemy_db import _sqlite_path, create_db_engine


def test_create_db_engine_creates_parent_dir_for_relative_sqlite(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    assert not (tmp_path / "data").exists()

    engine = create_db_engine("sqlite:///data/nested/franchisehub.db")
    try:
        assert (tmp_path / "data" / "nested").is_dir()
        with engine.connect() as conn:
            conn.exec_driver_sql("select 1")
    finally:
        engine.dispose()


def test_memory_and_non_sqlite_urls_have_no_path():
    assert _sqlite_path("sqlite:///:memory:") is None
    assert _sqlite_path("postgresql+psycopg://fh@db/franchisehub") is None
    assert _sqlite_path("sqlite:////var/lib/fh.db") == "/var/lib/fh.db"
