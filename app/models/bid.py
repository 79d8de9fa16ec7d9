#app/models/bid.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, utcnow
from app.models.enums import BidStatus

UQ_BID_PROJECT_MERCHANT = "uq_bid_project_merchant"


class Bid(Base):
    __tablename__ = "bids"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    merchant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    days: Mapped[int] = mapped_column(Integer, nullable=False)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=BidStatus.pending.value
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    project = relationship("Project", back_populates="bids")

    __table_args__ = (
        # a merchant may hold one bid per project
        UniqueConstraint("project_id", "merchant_id", name=UQ_BID_PROJECT_MERCHANT),
        Index("ix_bids_project_created", "project_id", "created_at"),
        Index("ix_bids_merchant_created", "merchant_id", "created_at"),
    )
