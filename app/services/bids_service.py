#app/services/bids_service.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import case, distinct, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import (
    DuplicateBidError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from app.db.base import utcnow
from app.models.bid import Bid, UQ_BID_PROJECT_MERCHANT
from app.models.enums import BIDDABLE_STATUSES, BidStatus, ProjectStatus
from app.models.project import Project
from app.models.user import User
from app.services.user_directory import UserDirectory

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    # psycopg2 exposes pgcode, psycopg 3 exposes sqlstate
    if getattr(orig, "pgcode", None) == "23505" or getattr(orig, "sqlstate", None) == "23505":
        return True
    text = str(orig if orig is not None else exc)
    return UQ_BID_PROJECT_MERCHANT in text or "UNIQUE constraint failed" in text


@dataclass(frozen=True)
class MerchantTrackRecord:
    accepted_count: int = 0
    completed_count: int = 0

    @property
    def rating(self) -> float:
        if self.accepted_count <= 0:
            return 0.0
        ratio = self.completed_count / self.accepted_count
        return round(max(0.0, min(5.0, ratio * 5)), 2)


@dataclass(frozen=True)
class BidView:
    bid: Bid
    merchant: Optional[User]
    track: MerchantTrackRecord


# ---------------------------------------------------------------------
# service
# ---------------------------------------------------------------------


class BidRegistry:
    """
    Stores bids per project. One bid per (project, merchant); a bid's
    project and merchant never change after creation.
    """

    def get(self, db: Session, bid_id: uuid.UUID) -> Bid:
        bid = db.get(Bid, bid_id)
        if not bid:
            raise NotFoundError("Bid not found")
        return bid

    def _get_project(self, db: Session, project_id: uuid.UUID) -> Project:
        project = db.get(Project, project_id)
        if not project:
            raise NotFoundError("Project not found")
        return project

    def _existing(self, db: Session, project_id: uuid.UUID, merchant_id: uuid.UUID) -> Optional[Bid]:
        return db.execute(
            select(Bid).where(Bid.project_id == project_id, Bid.merchant_id == merchant_id)
        ).scalar_one_or_none()

    # -----------------------------------------------------------------
    # writes
    # -----------------------------------------------------------------

    def create_bid(
        self,
        db: Session,
        *,
        project_id: uuid.UUID,
        merchant_id: uuid.UUID,
        price: Decimal,
        days: int,
        message: Optional[str] = None,
    ) -> Bid:
        if price is None or Decimal(price) <= 0:
            raise ValidationError(errors=[{"field": "price", "message": "price must be greater than 0"}])
        if days is None or int(days) < 1:
            raise ValidationError(errors=[{"field": "days", "message": "days must be at least 1"}])

        project = self._get_project(db, project_id)
        if ProjectStatus(project.status) not in BIDDABLE_STATUSES:
            raise InvalidTransitionError(
                f"Project is not open for bidding (status is {project.status})."
            )

        if self._existing(db, project_id, merchant_id) is not None:
            logger.info(
                "duplicate bid rejected",
                extra={"project_id": str(project_id), "merchant_id": str(merchant_id)},
            )
            raise DuplicateBidError()

        now = utcnow()
        bid = Bid(
            project_id=project_id,
            merchant_id=merchant_id,
            price=Decimal(price),
            days=int(days),
            message=message,
            status=BidStatus.pending.value,
            created_at=now,
            updated_at=now,
        )
        db.add(bid)
        try:
            db.commit()
        except IntegrityError as e:
            # lost the race against a concurrent submission from the same merchant
            db.rollback()
            if _is_unique_violation(e):
                logger.info(
                    "duplicate bid rejected by constraint",
                    extra={"project_id": str(project_id), "merchant_id": str(merchant_id)},
                )
                raise DuplicateBidError() from e
            raise PersistenceError("Failed to submit bid") from e
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError("Failed to submit bid") from e

        db.refresh(bid)
        logger.info(
            "bid submitted",
            extra={"bid_id": str(bid.id), "project_id": str(project_id), "merchant_id": str(merchant_id)},
        )
        return bid

    # -----------------------------------------------------------------
    # reads
    # -----------------------------------------------------------------

    def merchant_track_records(
        self, db: Session, merchant_ids: Iterable[uuid.UUID]
    ) -> Dict[uuid.UUID, MerchantTrackRecord]:
        """
        Accepted = distinct projects where the merchant's bid was accepted;
        completed = those projects that reached Completed.
        """
        ids = {m for m in merchant_ids if m is not None}
        if not ids:
            return {}

        completed_project = case(
            (Project.status == ProjectStatus.COMPLETED.value, Project.id),
            else_=None,
        )
        rows = db.execute(
            select(
                Bid.merchant_id,
                func.count(distinct(Bid.project_id)),
                func.count(distinct(completed_project)),
            )
            .join(Project, Project.id == Bid.project_id)
            .where(Bid.merchant_id.in_(ids), Bid.status == BidStatus.accepted.value)
            .group_by(Bid.merchant_id)
        ).all()

        return {
            mid: MerchantTrackRecord(accepted_count=int(acc or 0), completed_count=int(done or 0))
            for mid, acc, done in rows
        }

    def list_for_project(self, db: Session, project_id: uuid.UUID) -> List[BidView]:
        self._get_project(db, project_id)

        bids = list(
            db.execute(
                select(Bid)
                .where(Bid.project_id == project_id)
                .order_by(Bid.created_at.desc())
            )
            .scalars()
            .all()
        )

        merchant_ids = [b.merchant_id for b in bids]
        merchants = UserDirectory().cards(db, merchant_ids)
        tracks = self.merchant_track_records(db, merchant_ids)

        return [
            BidView(
                bid=b,
                merchant=merchants.get(b.merchant_id),
                track=tracks.get(b.merchant_id, MerchantTrackRecord()),
            )
            for b in bids
        ]

    def list_for_merchant(self, db: Session, merchant_id: uuid.UUID) -> List[Tuple[Bid, Project]]:
        rows = db.execute(
            select(Bid, Project)
            .join(Project, Project.id == Bid.project_id)
            .where(Bid.merchant_id == merchant_id)
            .order_by(Bid.created_at.desc())
        ).all()
        return [(b, p) for b, p in rows]
