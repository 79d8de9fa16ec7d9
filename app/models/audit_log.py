from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, Index, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, JSONType, utcnow


class AuditLogRecord(Base):
    """
    Audit trail record for project/bid lifecycle actions.
    - Append-only (never UPDATE)
    - Stores request-id, actor, project, action, payload hash, and safe payload summary.
    """
    __tablename__ = "audit_log_records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    # Correlation
    request_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    route: Mapped[str] = mapped_column(String(256), nullable=False)
    method: Mapped[str] = mapped_column(String(16), nullable=False)

    # Actor (user id + role as string)
    actor_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    actor_role: Mapped[str] = mapped_column(String(32), nullable=False)

    project_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    # What happened
    action: Mapped[str] = mapped_column(String(96), nullable=False)  # e.g., BID_AWARDED
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="ok")

    # Payload traceability (hash + safe summary)
    payload_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    payload_summary_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    # Optional result reference id (bid id, etc.)
    ref_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    __table_args__ = (
        Index("ix_audit_project", "project_id"),
        Index("ix_audit_action", "action"),
        Index("ix_audit_created", "created_at"),
    )
