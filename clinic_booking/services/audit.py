"""Append-only audit logging."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Mapping

from flask import request
from flask_login import current_user

from clinic_booking.models import AuditEvent
from clinic_booking.services.database import get_session, unit_of_work

SENSITIVE_KEYS = {"notes", "note", "password", "token", "diagnosis", "details"}


def _sanitize_meta(meta: Mapping[str, Any] | None) -> dict[str, Any]:
    cleaned: dict[str, Any] = {}
    if not meta:
        return cleaned
    for key, value in meta.items():
        key_lower = key.lower()
        if key_lower in SENSITIVE_KEYS:
            cleaned[key] = "[redacted]"
        else:
            cleaned[key] = value
    return cleaned


def write_event(
    actor_user_id: str | None,
    action: str,
    *,
    entity: str | None = None,
    entity_id: str | None = None,
    result: str = "ok",
    meta: Mapping[str, Any] | None = None,
) -> None:
    # Call after the business unit of work has finished; this commits on its own.
    payload = json.dumps(_sanitize_meta(meta), ensure_ascii=False)
    session = get_session()
    with unit_of_work(session):
        session.add(
            AuditEvent(
                actor_user_id=actor_user_id,
                action=action,
                entity=entity,
                entity_id=entity_id,
                ts=datetime.now(timezone.utc).isoformat(),
                result=result,
                meta_json_redacted=payload,
            )
        )


def _actor_id() -> str | None:
    if current_user and current_user.is_authenticated:
        return current_user.id
    return None


def audit_action(
    action: str,
    *,
    entity: str | None = None,
    entity_id: str | None = None,
    meta: Mapping[str, Any] | None = None,
) -> None:
    data = {"path": request.path}
    data.update(meta or {})
    write_event(_actor_id(), action, entity=entity, entity_id=entity_id, meta=data)


def audit_denied(action: str, *, reason: str) -> None:
    write_event(_actor_id(), action, result="denied", meta={"reason": reason, "path": request.path})


def audit_rate_limit(scope: str) -> None:
    write_event(_actor_id(), "rate_limit", meta={"scope": scope, "path": request.path}, result="blocked")
