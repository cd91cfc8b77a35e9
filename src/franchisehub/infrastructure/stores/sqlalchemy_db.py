from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session


DEFAULT_DB_URL = "sqlite:///data/franchisehub.db"


def get_db_url() -> str:
    return os.getenv("FRANCHISEHUB_DB_URL") or DEFAULT_DB_URL


def _sqlite_path(db_url: str) -> Optional[str]:
    # sqlite:///relative/path.db or sqlite:////abs/path.db
    if not db_url.startswith("sqlite:///"):
        return None
    path = db_url[len("sqlite:///"):]
    if path in ("", ":memory:") or path.startswith("file:"):
        return None
    return path


def _ensure_sqlite_parent_dir(db_url: str) -> None:
    path = _sqlite_path(db_url)
    if path is None:
        return
    Path(path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)


def create_db_engine(db_url: Optional[str] = None, *, echo: bool = False) -> Engine:
    url = db_url or get_db_url()
    _ensure_sqlite_parent_dir(url)
    connect_args = {}
    if url.startswith("sqlite:"):
        connect_args = {"check_same_thread": False}
    return create_engine(url, future=True, pool_pre_ping=True, echo=echo, connect_args=connect_args)


def create_session_factory(engine: Engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True, expire_on_commit=False)


class SessionProvider:
    """Light wrapper to create/close SQLAlchemy sessions."""

    def __init__(self, db_url: Optional[str] = None, *, echo: bool = False):
        self.db_url = db_url or get_db_url()
        self.engine = create_db_engine(self.db_url, echo=echo)
        self._factory = create_session_factory(self.engine)

    def session(self) -> Session:
        return self._factory()

    def dispose(self) -> None:
        self.engine.dispose()
