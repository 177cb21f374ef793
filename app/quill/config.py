from __future__ import annotations

import os
from dataclasses import dataclass

from sqlalchemy.engine import URL


class ConfigError(RuntimeError):
    pass


# DB_CONNECTION name -> (SQLAlchemy driver, default port)
_DRIVERS = {
    "mysql": ("mysql+pymysql", 3306),
    "pgsql": ("postgresql+psycopg2", 5432),
    "postgres": ("postgresql+psycopg2", 5432),
    "postgresql": ("postgresql+psycopg2", 5432),
}


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    db_connection: str
    db_host: str
    db_port: str
    db_database: str
    db_username: str
    db_password: str

    posts_per_page: int
    log_level: str


PRODUCTION_ENVS = ("prod", "production")


def is_production(env: str | None) -> bool:
    return (env or "").strip().lower() in PRODUCTION_ENVS


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def load_settings() -> Settings:
    per_page_raw = _getenv("POSTS_PER_PAGE", "10")
    try:
        posts_per_page = int(per_page_raw)
    except ValueError as e:
        raise ConfigError(f"POSTS_PER_PAGE must be an integer, got {per_page_raw!r}") from e
    if posts_per_page < 1:
        raise ConfigError("POSTS_PER_PAGE must be at least 1.")

    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", ""),
        db_connection=_getenv("DB_CONNECTION", "sqlite").lower(),
        db_host=_getenv("DB_HOST", "127.0.0.1"),
        db_port=_getenv("DB_PORT", ""),
        db_database=_getenv("DB_DATABASE", "quillboard.db"),
        db_username=_getenv("DB_USERNAME", ""),
        db_password=os.environ.get("DB_PASSWORD") or "",
        posts_per_page=posts_per_page,
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
    )


def build_database_url(s: Settings) -> str:
    """
    Resolve the SQLAlchemy URL.

    An explicit DATABASE_URL always wins; otherwise the URL is composed from the
    DB_CONNECTION/DB_HOST/DB_PORT/DB_DATABASE/DB_USERNAME/DB_PASSWORD variables.
    """
    if s.database_url:
        return s.database_url

    if s.db_connection == "sqlite":
        return f"sqlite:///{s.db_database}"

    if s.db_connection not in _DRIVERS:
        raise ConfigError(
            f"Unsupported DB_CONNECTION {s.db_connection!r}. Use one of: sqlite, {', '.join(sorted(_DRIVERS))}"
        )
    driver, default_port = _DRIVERS[s.db_connection]

    port = default_port
    if s.db_port:
        try:
            port = int(s.db_port)
        except ValueError as e:
            raise ConfigError(f"DB_PORT must be an integer, got {s.db_port!r}") from e

    url = URL.create(
        drivername=driver,
        username=s.db_username or None,
        password=s.db_password or None,
        host=s.db_host or None,
        port=port,
        database=s.db_database or None,
    )
    return url.render_as_string(hide_password=False)


def load_config() -> dict:
    s = load_settings()
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": build_database_url(s),
        "POSTS_PER_PAGE": s.posts_per_page,
        "LOG_LEVEL": s.log_level,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production(s.env),  # Require HTTPS in production
    }
