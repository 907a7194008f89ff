from __future__ import annotations

from contextlib import contextmanager
from collections.abc import Generator
from typing import Any

from flask import Flask, current_app, g
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

ENGINE_KEY = "sqlalchemy_engine"
SESSIONMAKER_KEY = "sqlalchemy_sessionmaker"

# Postgres pool sizing for a couple of gunicorn workers.
_POSTGRES_POOL = {"pool_recycle": 1800, "pool_size": 5, "max_overflow": 10, "pool_timeout": 30}


def engine_options(db_url: str) -> dict[str, Any]:
    opts: dict[str, Any] = {"future": True, "pool_pre_ping": True}
    if db_url.startswith("postgres"):
        opts.update(_POSTGRES_POOL)
    return opts


def init_db(app: Flask) -> None:
    """Build the engine and session factory once per app and park them in `app.extensions`."""
    db_url = app.config["DATABASE_URL"]
    engine = create_engine(db_url, **engine_options(db_url))
    app.extensions[ENGINE_KEY] = engine
    # Records are read back after commit, so keep loaded attributes alive.
    app.extensions[SESSIONMAKER_KEY] = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def db_session(app: Flask | None = None) -> Session:
    """The session bound to the current request; created on first use."""
    s = g.get("db_session")
    if s is None:
        s = (app or current_app).extensions[SESSIONMAKER_KEY]()
        g.db_session = s
    return s


def teardown_db_session(_exc: BaseException | None) -> None:
    s = g.pop("db_session", None)
    if s is not None:
        s.close()


@contextmanager
def session_scope(app: Flask) -> Generator[Session, None, None]:
    """Standalone unit of work for scripts and tests."""
    with app.extensions[SESSIONMAKER_KEY]() as s:
        with s.begin():
            yield s
