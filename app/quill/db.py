from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager

from flask import Flask, current_app, g
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from app.quill.config import is_production

logger = logging.getLogger(__name__)

# Pool sizing for server databases; sqlite keeps SQLAlchemy's defaults.
_POOL_OPTIONS = {
    "pool_recycle": 1800,
    "pool_size": 5,
    "max_overflow": 10,
    "pool_timeout": 30,
}


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # sqlite ignores ON DELETE CASCADE unless this is set on every connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _log_checkout(dbapi_connection, connection_record, connection_proxy) -> None:
    logger.debug("DB connection checkout from pool")


def make_engine(db_url: str, *, env: str | None = None) -> Engine:
    is_sqlite = make_url(db_url).get_backend_name() == "sqlite"
    options: dict[str, object] = {"future": True, "pool_pre_ping": True}
    if not is_sqlite:
        options.update(_POOL_OPTIONS)
    engine = create_engine(db_url, **options)
    if is_sqlite:
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    if not is_production(env):
        event.listen(engine, "checkout", _log_checkout)
    return engine


def init_db(app: Flask) -> None:
    engine = make_engine(app.config["DATABASE_URL"], env=app.config.get("ENV"))
    app.extensions["sqlalchemy_engine"] = engine
    app.extensions["sqlalchemy_sessionmaker"] = sessionmaker(
        bind=engine,
        class_=Session,
        autoflush=False,
        expire_on_commit=False,
    )


def db_session() -> Session:
    """Session for the current request, opened on first use and closed at teardown."""
    s: Session | None = g.get("db_session")
    if s is None:
        s = current_app.extensions["sqlalchemy_sessionmaker"]()
        g.db_session = s
    return s


def teardown_db_session(exc: BaseException | None) -> None:
    s: Session | None = g.pop("db_session", None)
    if s is None:
        return
    if exc is not None:
        s.rollback()
    s.close()


@contextmanager
def session_scope(app: Flask) -> Generator[Session, None, None]:
    """Session outside a request (scripts, tests): commit on success, roll back on error."""
    s: Session = app.extensions["sqlalchemy_sessionmaker"]()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
