#!/usr/bin/env python3
"""
Container entry point: run the release step, then replace this process with gunicorn.

PORT (default 8080) and WEB_CONCURRENCY (default 2) come from the environment.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

DEFAULT_PORT = 8080


def resolve_port(raw: str | None) -> int:
    raw = (raw or "").strip()
    if not raw:
        return DEFAULT_PORT
    try:
        port = int(raw)
    except ValueError:
        raise SystemExit(f"Invalid PORT {raw!r}: expected an integer 1-65535.")
    if not 1 <= port <= 65535:
        raise SystemExit(f"Invalid PORT {raw!r}: expected an integer 1-65535.")
    return port


def gunicorn_argv(port: int, workers: str) -> list[str]:
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", workers,
        "--timeout", "60",
        "--preload",
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main() -> None:
    port = resolve_port(os.environ.get("PORT"))
    workers = (os.environ.get("WEB_CONCURRENCY") or "").strip() or "2"

    from scripts import release

    try:
        release.run_release()
    except Exception as e:
        raise SystemExit(f"Release failed: {e}")

    print(f"Starting gunicorn on 0.0.0.0:{port} with {workers} workers", flush=True)
    argv = gunicorn_argv(port, workers)
    os.execvp(argv[0], argv)


if __name__ == "__main__":
    main()
