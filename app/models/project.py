# /app/models/project.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    false,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, JSONType, utcnow
from app.models.enums import ProjectStatus


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    title: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # user ids come from the identity token; the users mirror may lag behind it
    customer_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    category_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ProjectStatus.DRAFT.value
    )
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    archived: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    # ── award (written only by the award state machine) ──
    assigned_merchant_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    # no FK: bids reference projects, and the cycle is not worth the DDL ordering
    awarded_bid_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    agreed_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    accepted_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    execution_started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    execution_due_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # ── delivery ──
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    delivery_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    delivery_files: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    platform_commission_pct: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    platform_commission: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    merchant_earnings: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)

    # ── customer rating of the merchant ──
    rating_value: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    rating_comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    rating_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    rated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # ── commercial / builder fields (opaque to the award flow) ──
    ptype: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    psubtype: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    type: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    material: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    color: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    width: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    height: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    length: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    quantity: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    price_per_meter: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    total: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    selected_acc: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)
    accessories: Mapped[List[Dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    measurement_mode: Mapped[str] = mapped_column(String(32), nullable=False, default="area_wh")
    is_custom_product: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    custom_product_details: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    items: Mapped[List[Dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    bids = relationship(
        "Bid",
        back_populates="project",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_projects_status_created", "status", "created_at"),
    )
