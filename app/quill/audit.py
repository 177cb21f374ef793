from __future__ import annotations

import json
from typing import Any

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.quill.models import AuditEvent, User


def _request_origin() -> tuple[str | None, str | None]:
    if not has_request_context():
        return None, None
    return g.get("request_id"), request.remote_addr


def record_event(
    s: Session,
    action: str,
    *,
    actor: User | None = None,
    entity: Any = None,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> AuditEvent:
    """
    Add an AuditEvent to `s`; the caller commits it with the change it describes.

    `entity` is a mapped object (its class name and id are recorded). Pass
    `entity_type`/`entity_id` instead when there is no row, e.g. a failed login.
    Works outside a request too (scripts), without request id or client ip.
    """
    if entity is not None:
        entity_type = entity_type or type(entity).__name__
        entity_id = entity_id or str(entity.id)
    request_id, client_ip = _request_origin()

    ev = AuditEvent(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_user_id=actor.id if actor else None,
        actor_user_email=actor.email if actor else None,
        request_id=request_id,
        client_ip=client_ip,
        reason=reason,
        metadata_json=json.dumps(metadata, sort_keys=True, default=str) if metadata else None,
    )
    s.add(ev)
    return ev
