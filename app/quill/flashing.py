from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from flask import flash, session

_ERRORS_KEY = "_errors"
_OLD_INPUT_KEY = "_old_input"

# Never echo these back into a re-rendered form.
_NEVER_FLASH = frozenset({"csrf_token", "password", "_method"})

# The session lives in a signed cookie (browsers drop anything over ~4 KB), so
# old input is only remembered while it stays small. Sizes are JSON-encoded lengths.
OLD_INPUT_FIELD_LIMIT = 1024
OLD_INPUT_TOTAL_LIMIT = 1536


def flash_errors(errors: Mapping[str, list[str]]) -> None:
    """Flash every validation message and keep per-field errors for the next page."""
    for msgs in errors.values():
        for m in msgs:
            flash(m, "danger")
    session[_ERRORS_KEY] = {k: list(v) for k, v in errors.items()}


def flash_old_input(data: Mapping[str, Any]) -> None:
    """
    Remember submitted strings so the form can repopulate.

    Values over OLD_INPUT_FIELD_LIMIT, or that would push the total past
    OLD_INPUT_TOTAL_LIMIT, are left out; the form then falls back to its default.
    """
    old: dict[str, str] = {}
    used = 0
    for k in data.keys():
        if k in _NEVER_FLASH:
            continue
        v = data.get(k)
        if not isinstance(v, str):
            continue
        size = len(json.dumps(v))
        if size > OLD_INPUT_FIELD_LIMIT or used + size > OLD_INPUT_TOTAL_LIMIT:
            continue
        old[k] = v
        used += size
    session[_OLD_INPUT_KEY] = old


def pop_form_state() -> tuple[dict[str, list[str]], dict[str, str]]:
    """Read and clear flashed errors/old input (one-shot, like flash messages)."""
    errors = session.pop(_ERRORS_KEY, None) or {}
    old = session.pop(_OLD_INPUT_KEY, None) or {}
    return errors, old
