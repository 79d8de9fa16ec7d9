from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session
from starlette.requests import Request

from app.core.hashing import canonical_dumps, sha256_hex
from app.models.audit_log import AuditLogRecord
from app.policies.rbac import Principal


class AuditAction:
    # Project lifecycle
    PROJECT_CREATED = "PROJECT_CREATED"
    PROJECT_UPDATED = "PROJECT_UPDATED"
    PROJECT_DELETED = "PROJECT_DELETED"
    PROJECT_PUBLISHED = "PROJECT_PUBLISHED"
    PROJECT_BIDDING_OPENED = "PROJECT_BIDDING_OPENED"
    PROJECT_CANCELLED = "PROJECT_CANCELLED"

    # Bids
    BID_SUBMITTED = "BID_SUBMITTED"
    BID_AWARDED = "BID_AWARDED"
    BID_REJECTED = "BID_REJECTED"

    # Delivery
    PROJECT_DELIVERED = "PROJECT_DELIVERED"
    DELIVERY_ACCEPTED = "DELIVERY_ACCEPTED"
    DELIVERY_REJECTED = "DELIVERY_REJECTED"
    MERCHANT_RATED = "MERCHANT_RATED"


def _json_safe(value: Any) -> Any:
    """
    Convert payload into JSON-safe structure for the JSON column.
    """
    if isinstance(value, Decimal):
        return str(value)  # preserve precision
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


def _payload_hash(payload: Dict[str, Any]) -> str:
    return sha256_hex(canonical_dumps(payload))


def audit_event(
    db: Session,
    *,
    request: Request,
    principal: Principal,
    project_id: uuid.UUID,
    action: str,
    payload_summary: Dict[str, Any],
    status: str = "ok",
    ref_id: Optional[str] = None,
) -> AuditLogRecord:
    """
    Append-only audit record insert.

    payload_summary MUST be safe: do not include competing merchants' bid prices.
    """
    rid = getattr(request.state, "request_id", None) or "missing"
    summary = _json_safe(payload_summary)

    row = AuditLogRecord(
        request_id=rid,
        route=str(request.url.path),
        method=request.method,
        actor_user_id=principal.user_id,
        actor_role=principal.role.value,
        project_id=project_id,
        action=action,
        status=status,
        payload_hash=_payload_hash(summary),
        payload_summary_json=summary,
        ref_id=ref_id,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def list_project_audit(db: Session, project_id: uuid.UUID) -> List[AuditLogRecord]:
    return list(
        db.execute(
            select(AuditLogRecord)
            .where(AuditLogRecord.project_id == project_id)
            .order_by(AuditLogRecord.created_at.asc())
        )
        .scalars()
        .all()
    )
