"""CSRF protection: one random token per session, echoed back by every unsafe request."""
from __future__ import annotations

import secrets

from flask import Request, session

CSRF_SESSION_KEY = "csrf_token"
CSRF_FORM_FIELD = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"


def ensure_csrf_token() -> str:
    return session.setdefault(CSRF_SESSION_KEY, secrets.token_urlsafe(32))


def _submitted_token(req: Request) -> str | None:
    # header (fetch/API clients), then form field, then JSON body
    token = req.headers.get(CSRF_HEADER) or req.form.get(CSRF_FORM_FIELD)
    if not token and req.is_json:
        body = req.get_json(silent=True)
        if isinstance(body, dict):
            token = body.get(CSRF_FORM_FIELD)
    return str(token) if token else None


def validate_csrf(req: Request) -> bool:
    expected = session.get(CSRF_SESSION_KEY)
    submitted = _submitted_token(req)
    if not expected or not submitted:
        return False
    return secrets.compare_digest(submitted, str(expected))
