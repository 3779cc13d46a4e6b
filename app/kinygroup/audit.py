from typing import Any

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.kinygroup.models import AuditEvent, User


def record_event(
    s: Session,
    *,
    actor: User | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | int | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    """
    Append-only audit event helper. Works outside a request (seed scripts).
    """
    in_request = has_request_context()
    rid = request_id or (getattr(g, "request_id", None) if in_request else None)
    ev = AuditEvent(
        request_id=rid,
        client_ip=request.remote_addr if in_request else None,
        actor_user_id=actor.id if actor else None,
        actor_user_email=actor.email if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        reason=reason,
        metadata_json=metadata or None,
    )
    s.add(ev)
    return ev
