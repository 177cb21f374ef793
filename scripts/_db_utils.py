from __future__ import annotations

import os
from contextlib import contextmanager

from dotenv import load_dotenv
from sqlalchemy.orm import Session

from app.quill.config import build_database_url, load_settings
from app.quill.db import make_engine


def resolve_database_url(db_url: str | None = None) -> str:
    """Explicit argument, else DATABASE_URL / DB_* from the environment (.env honoured)."""
    if db_url and db_url.strip():
        return db_url.strip()
    load_dotenv()
    return build_database_url(load_settings())


@contextmanager
def script_session(db_url: str):
    engine = make_engine(db_url, env=os.environ.get("ENV"))
    s = Session(bind=engine, autoflush=False, expire_on_commit=False)
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()
