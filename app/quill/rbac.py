from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import abort, g, jsonify, redirect, request, url_for

from app.quill.models import User


def user_has_permission(user: User | None, permission_key: str) -> bool:
    return user is not None and user.has_permission(permission_key)


def require_permission(permission_key: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            # Unauthenticated → redirect to login.
            if not user or not user.is_active:
                nxt = request.full_path or request.path
                # Avoid trailing '?' from full_path when there is no query string.
                if nxt.endswith("?"):
                    nxt = nxt[:-1]
                return redirect(url_for("auth.login_get", next=nxt))
            # Authenticated but unauthorized → 403
            if not user_has_permission(user, permission_key):
                g.missing_permission = permission_key
                abort(403)
            return fn(*args, **kwargs)

        return wrapped

    return decorator


def require_api_permission(permission_key: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """JSON flavour of require_permission: 401/403 bodies instead of redirects."""

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            if not user or not user.is_active:
                return jsonify({"message": "Unauthenticated."}), 401
            if not user_has_permission(user, permission_key):
                return jsonify({"message": "This action is unauthorized.", "permission": permission_key}), 403
            return fn(*args, **kwargs)

        return wrapped

    return decorator
