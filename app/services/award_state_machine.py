# app/services/award_state_machine.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, FrozenSet, List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.errors import (
    AppError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from app.db.base import utcnow
from app.models.bid import Bid
from app.models.enums import BIDDABLE_STATUSES, BidStatus, ProjectStatus
from app.models.project import Project
from app.models.user import User
from app.policies.rbac import Principal, is_owner_or_admin
from app.services.user_directory import UserDirectory

logger = logging.getLogger(__name__)


S = ProjectStatus

# Every status change goes through this table.
TRANSITIONS: Dict[ProjectStatus, FrozenSet[ProjectStatus]] = {
    S.DRAFT: frozenset({S.PUBLISHED, S.CANCELLED}),
    S.PUBLISHED: frozenset({S.IN_BIDDING, S.IN_PROGRESS, S.CANCELLED}),
    S.IN_BIDDING: frozenset({S.IN_PROGRESS, S.CANCELLED}),
    S.IN_PROGRESS: frozenset({S.DELIVERED, S.CANCELLED}),
    S.DELIVERED: frozenset({S.COMPLETED, S.IN_PROGRESS}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
}


def can_transition(current: ProjectStatus, target: ProjectStatus) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


# ---------------------------------------------------------------------
# execution window
# ---------------------------------------------------------------------


def resolve_duration_days(bid_days: Optional[int], project_days: Optional[int]) -> Optional[int]:
    """
    The bid's proposed days win; the project's requested days are the
    fallback; with neither there is no duration (no due date is invented).
    """
    for candidate in (bid_days, project_days):
        if candidate is not None and int(candidate) > 0:
            return int(candidate)
    return None


def execution_window(
    started_at: datetime, bid_days: Optional[int], project_days: Optional[int]
) -> Tuple[datetime, Optional[datetime]]:
    days = resolve_duration_days(bid_days, project_days)
    due_at = started_at + timedelta(days=days) if days is not None else None
    return started_at, due_at


def compute_commission(price: Decimal, pct: float) -> Tuple[Decimal, Decimal]:
    """
    Returns (platform commission, merchant earnings), commission rounded
    half-up to whole currency units.
    """
    price = Decimal(price or 0)
    commission = (price * Decimal(str(pct))).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    commission = max(Decimal("0"), commission)
    earnings = max(Decimal("0"), price - commission)
    return commission, earnings


@dataclass
class AwardResult:
    project: Project
    bid: Bid
    merchant: Optional[User]


# ---------------------------------------------------------------------
# state machine
# ---------------------------------------------------------------------


class ProjectAwardStateMachine:
    """
    Owns Project.status, the award fields and Bid.status.

    Draft -> Published|InBidding -> InProgress -> Delivered -> Completed,
    with Cancelled reachable from any non-terminal state before delivery.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    # ─────────────────────────────────────────────
    # INTERNAL READ HELPERS
    # ─────────────────────────────────────────────

    def _get_project(self, db: Session, project_id: uuid.UUID, *, for_update: bool = False) -> Project:
        stmt = select(Project).where(Project.id == project_id)
        if for_update:
            stmt = stmt.with_for_update()
        proj = db.execute(stmt).scalar_one_or_none()
        if not proj:
            raise NotFoundError("Project not found")
        return proj

    def _get_bid(self, db: Session, bid_id: uuid.UUID) -> Bid:
        bid = db.get(Bid, bid_id)
        if not bid:
            raise NotFoundError("Bid not found")
        return bid

    # ─────────────────────────────────────────────
    # GUARDS
    # ─────────────────────────────────────────────

    def _assert_owner(self, principal: Principal, project: Project) -> None:
        if not is_owner_or_admin(principal, project.customer_id):
            raise ForbiddenError()

    def _assert_assigned_merchant(self, principal: Principal, project: Project) -> None:
        if not is_owner_or_admin(principal, project.assigned_merchant_id):
            raise ForbiddenError()

    def _move(self, project: Project, target: ProjectStatus, *, action: str) -> None:
        current = ProjectStatus(project.status)
        if not can_transition(current, target):
            raise InvalidTransitionError(f"Cannot {action} when project status is {current.value}")
        project.status = target.value
        project.updated_at = utcnow()

    def _commit(self, db: Session, what: str) -> None:
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Failed to {what}") from e

    def _simple_transition(
        self,
        db: Session,
        *,
        project_id: uuid.UUID,
        principal: Principal,
        target: ProjectStatus,
        action: str,
    ) -> Project:
        project = self._get_project(db, project_id)
        self._assert_owner(principal, project)
        self._move(project, target, action=action)
        self._commit(db, action)
        db.refresh(project)
        return project

    # ─────────────────────────────────────────────
    # PRE-AWARD LIFECYCLE
    # ─────────────────────────────────────────────

    def publish(self, db: Session, *, project_id: uuid.UUID, principal: Principal) -> Project:
        return self._simple_transition(
            db, project_id=project_id, principal=principal, target=S.PUBLISHED, action="publish project"
        )

    def open_bidding(self, db: Session, *, project_id: uuid.UUID, principal: Principal) -> Project:
        return self._simple_transition(
            db, project_id=project_id, principal=principal, target=S.IN_BIDDING, action="open bidding"
        )

    def cancel(self, db: Session, *, project_id: uuid.UUID, principal: Principal) -> Project:
        return self._simple_transition(
            db, project_id=project_id, principal=principal, target=S.CANCELLED, action="cancel project"
        )

    # ─────────────────────────────────────────────
    # AWARD
    # ─────────────────────────────────────────────

    def select_bid(
        self,
        db: Session,
        *,
        project_id: uuid.UUID,
        bid_id: uuid.UUID,
        principal: Principal,
    ) -> AwardResult:
        bid = self._get_bid(db, bid_id)
        # existence check before the mismatch check so a bad project id reads as 404 Project
        self._get_project(db, project_id)
        if bid.project_id != project_id:
            raise NotFoundError("Bid not found for this project")
        return self._award(db, bid=bid, principal=principal)

    def accept_bid(self, db: Session, *, bid_id: uuid.UUID, principal: Principal) -> AwardResult:
        bid = self._get_bid(db, bid_id)
        return self._award(db, bid=bid, principal=principal)

    def _award(self, db: Session, *, bid: Bid, principal: Principal) -> AwardResult:
        """
        Single transaction: reject the other bids, accept this one, move the
        project to InProgress with its execution window. The project row is
        locked first so a concurrent award waits and then fails the status
        guard instead of overwriting.
        """
        try:
            project = self._get_project(db, bid.project_id, for_update=True)
            self._assert_owner(principal, project)

            current = ProjectStatus(project.status)
            if current not in BIDDABLE_STATUSES:
                raise InvalidTransitionError(
                    f"Cannot accept bid when project status is {current.value}"
                )

            now = utcnow()

            db.execute(
                update(Bid)
                .where(Bid.project_id == project.id, Bid.id != bid.id)
                .values(status=BidStatus.rejected.value, updated_at=now)
                .execution_options(synchronize_session="fetch")
            )
            bid.status = BidStatus.accepted.value
            bid.updated_at = now

            started_at, due_at = execution_window(now, bid.days, project.days)

            self._move(project, S.IN_PROGRESS, action="accept bid")
            project.assigned_merchant_id = bid.merchant_id
            project.awarded_bid_id = bid.id
            project.agreed_price = bid.price
            project.accepted_days = resolve_duration_days(bid.days, project.days)
            project.execution_started_at = started_at
            project.execution_due_at = due_at

            db.commit()
        except AppError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError("Failed to accept bid") from e

        db.refresh(project)
        db.refresh(bid)

        logger.info(
            "bid awarded",
            extra={
                "project_id": str(project.id),
                "bid_id": str(bid.id),
                "merchant_id": str(bid.merchant_id),
                "execution_due_at": project.execution_due_at.isoformat() if project.execution_due_at else None,
            },
        )

        merchant = UserDirectory().cards(db, [bid.merchant_id]).get(bid.merchant_id)
        return AwardResult(project=project, bid=bid, merchant=merchant)

    def reject_bid(self, db: Session, *, bid_id: uuid.UUID, principal: Principal) -> Bid:
        bid = self._get_bid(db, bid_id)
        project = self._get_project(db, bid.project_id)
        self._assert_owner(principal, project)

        if bid.status == BidStatus.accepted.value:
            raise InvalidTransitionError("An accepted bid cannot be rejected")

        if bid.status != BidStatus.rejected.value:
            bid.status = BidStatus.rejected.value
            bid.updated_at = utcnow()
            self._commit(db, "reject bid")
            db.refresh(bid)
        return bid

    # ─────────────────────────────────────────────
    # DELIVERY SUB-FLOW
    # ─────────────────────────────────────────────

    def deliver(
        self,
        db: Session,
        *,
        project_id: uuid.UUID,
        principal: Principal,
        note: Optional[str] = None,
        files: Optional[List[str]] = None,
    ) -> Project:
        project = self._get_project(db, project_id)
        self._assert_assigned_merchant(principal, project)
        self._move(project, S.DELIVERED, action="deliver")

        project.delivered_at = utcnow()
        project.delivery_note = note or ""
        project.delivery_files = list(files or [])
        self._commit(db, "deliver project")
        db.refresh(project)
        logger.info("project delivered", extra={"project_id": str(project.id)})
        return project

    def accept_delivery(self, db: Session, *, project_id: uuid.UUID, principal: Principal) -> Project:
        project = self._get_project(db, project_id)
        self._assert_owner(principal, project)
        self._move(project, S.COMPLETED, action="accept delivery")

        pct = project.platform_commission_pct
        if pct is None:
            pct = self.settings.platform_commission_pct
        commission, earnings = compute_commission(project.agreed_price or Decimal("0"), pct)

        project.completed_at = utcnow()
        project.platform_commission_pct = pct
        project.platform_commission = commission
        project.merchant_earnings = earnings
        self._commit(db, "accept delivery")
        db.refresh(project)
        logger.info(
            "delivery accepted",
            extra={"project_id": str(project.id), "commission": str(commission)},
        )
        return project

    def reject_delivery(
        self,
        db: Session,
        *,
        project_id: uuid.UUID,
        principal: Principal,
        reason: Optional[str] = None,
    ) -> Project:
        project = self._get_project(db, project_id)
        self._assert_owner(principal, project)
        self._move(project, S.IN_PROGRESS, action="reject delivery")

        prefix = f"{project.delivery_note}\n" if project.delivery_note else ""
        project.delivery_note = f"{prefix}Rejected by customer: {reason or 'No reason provided'}"
        self._commit(db, "reject delivery")
        db.refresh(project)
        return project

    def rate_merchant(
        self,
        db: Session,
        *,
        project_id: uuid.UUID,
        principal: Principal,
        value: int,
        comment: Optional[str] = None,
    ) -> Project:
        project = self._get_project(db, project_id)
        self._assert_owner(principal, project)

        if project.status != S.COMPLETED.value:
            raise InvalidTransitionError("Project must be completed before rating")
        if value is None or not 1 <= int(value) <= 5:
            raise ValidationError("Invalid rating value")

        project.rating_value = int(value)
        project.rating_comment = (comment or "").strip()
        project.rating_by = principal.user_uuid
        project.rated_at = utcnow()
        project.updated_at = project.rated_at
        self._commit(db, "rate merchant")
        db.refresh(project)
        return project
