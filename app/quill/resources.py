"""
Resource routes: map the conventional CRUD actions of a controller onto URLs.

    index    GET        /posts
    create   GET        /posts/create
    store    POST       /posts
    show     GET        /posts/<id>
    edit     GET        /posts/<id>/edit
    update   PUT/PATCH  /posts/<id>
    destroy  DELETE     /posts/<id>

HTML forms can only send GET/POST, so MethodOverrideMiddleware lets a POST
carry `_method=PUT|PATCH|DELETE` in the query string (or the
X-HTTP-Method-Override header).
"""
from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from urllib.parse import parse_qs

from flask import Blueprint

ACTIONS = ("index", "create", "store", "show", "edit", "update", "destroy")
API_ACTIONS = ("index", "store", "show", "update", "destroy")


class MethodOverrideMiddleware:
    allowed_methods = frozenset({"PUT", "PATCH", "DELETE"})

    def __init__(self, app):
        self.app = app

    def __call__(self, environ, start_response):
        if environ.get("REQUEST_METHOD", "").upper() == "POST":
            method = environ.get("HTTP_X_HTTP_METHOD_OVERRIDE", "")
            if not method:
                qs = parse_qs(environ.get("QUERY_STRING", ""))
                method = (qs.get("_method") or [""])[0]
            method = method.strip().upper()
            if method in self.allowed_methods:
                environ["REQUEST_METHOD"] = method
        return self.app(environ, start_response)


def resource_actions(
    only: Iterable[str] | None = None,
    except_: Iterable[str] | None = None,
    *,
    api: bool = False,
) -> list[str]:
    base = API_ACTIONS if api else ACTIONS
    for names in (only, except_):
        unknown = sorted(set(names or ()) - set(base))
        if unknown:
            raise ValueError(f"Unknown resource action(s): {', '.join(unknown)}")
    actions = [a for a in base if only is None or a in set(only)]
    return [a for a in actions if a not in set(except_ or ())]


def _routes(name: str, param: str) -> dict[str, tuple[str, list[str]]]:
    collection = f"/{name.strip('/')}"
    member = f"{collection}/<int:{param}>"
    return {
        "index": (collection, ["GET"]),
        "create": (f"{collection}/create", ["GET"]),
        "store": (collection, ["POST"]),
        "show": (member, ["GET"]),
        "edit": (f"{member}/edit", ["GET"]),
        "update": (member, ["PUT", "PATCH"]),
        "destroy": (member, ["DELETE"]),
    }


def register_resource(
    bp: Blueprint,
    name: str,
    controller: Any,
    *,
    only: Iterable[str] | None = None,
    except_: Iterable[str] | None = None,
    param: str = "id",
    api: bool = False,
) -> list[str]:
    """
    Register `controller`'s actions on `bp`. Endpoints are named after the
    actions, so url_for("<blueprint>.show", id=1) works.
    """
    actions = resource_actions(only, except_, api=api)
    routes = _routes(name, param)
    for action in actions:
        view = getattr(controller, action)  # AttributeError if the controller lacks the action
        rule, methods = routes[action]
        bp.add_url_rule(rule, endpoint=action, view_func=view, methods=methods)
    return actions


def register_api_resource(bp: Blueprint, name: str, controller: Any, **kwargs: Any) -> list[str]:
    return register_resource(bp, name, controller, api=True, **kwargs)
