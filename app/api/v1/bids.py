#app/api/v1/bids.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.v1.presenters import bid_resp, bid_view_resp, merchant_bid_resp, project_resp
from app.core.auth_deps import get_current_principal, require_roles
from app.core.ids import parse_uuid
from app.core.rate_limit import enforce_bid_rate_limit
from app.db.session import get_db
from app.models.enums import UserRole
from app.policies.rbac import ACTION_SUBMIT_BID, Principal, require_action
from app.schemas.bids import BidCreateRequest, BidResponse
from app.services.audit_service import AuditAction, audit_event
from app.services.award_state_machine import AwardResult, ProjectAwardStateMachine
from app.services.bids_service import BidRegistry
from app.services.user_directory import UserDirectory

router = APIRouter(prefix="/Projects")

customer_or_admin = require_roles(UserRole.CUSTOMER, UserRole.ADMIN)
merchant_or_admin = require_roles(UserRole.MERCHANT, UserRole.ADMIN)


def _award_body(db: Session, result: AwardResult) -> dict:
    p = result.project
    users = UserDirectory().cards(db, [p.customer_id, p.assigned_merchant_id])
    return {
        "success": True,
        "message": "Bid accepted",
        "data": {
            "project": project_resp(p, users),
            "bid": bid_resp(result.bid, result.merchant),
        },
    }


def _audit_award(db: Session, request: Request, principal: Principal, result: AwardResult) -> None:
    audit_event(
        db,
        request=request,
        principal=principal,
        project_id=result.project.id,
        action=AuditAction.BID_AWARDED,
        payload_summary={
            "event": "BID_AWARDED",
            "bidId": result.bid.id,
            "merchantId": result.bid.merchant_id,
            "executionDueAt": result.project.execution_due_at,
        },
        ref_id=str(result.bid.id),
    )


# merchant's own bids; fixed path declared ahead of the parameterised ones
@router.get("/bids/merchant/my-bids", response_model=List[BidResponse])
def my_bids(
    db: Session = Depends(get_db),
    principal: Principal = Depends(merchant_or_admin),
):
    rows = BidRegistry().list_for_merchant(db, principal.user_uuid)
    return [merchant_bid_resp(b, p) for b, p in rows]


@router.get("/{projectId}/bids", response_model=List[BidResponse])
def list_bids(
    projectId: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    pid = parse_uuid(projectId, "projectId")
    return [bid_view_resp(v) for v in BidRegistry().list_for_project(db, pid)]


@router.post(
    "/{projectId}/bids",
    status_code=201,
    response_model=BidResponse,
    dependencies=[Depends(enforce_bid_rate_limit)],
)
def submit_bid(
    request: Request,
    projectId: str,
    body: BidCreateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(merchant_or_admin),
):
    require_action(principal, ACTION_SUBMIT_BID)
    pid = parse_uuid(projectId, "projectId")

    bid = BidRegistry().create_bid(
        db,
        project_id=pid,
        merchant_id=principal.user_uuid,
        price=body.price,
        days=body.days,
        message=body.message,
    )

    # amounts stay out of the audit summary
    audit_event(
        db,
        request=request,
        principal=principal,
        project_id=pid,
        action=AuditAction.BID_SUBMITTED,
        payload_summary={"event": "BID_SUBMITTED", "bidId": bid.id},
        ref_id=str(bid.id),
    )

    merchant = UserDirectory().cards(db, [bid.merchant_id]).get(bid.merchant_id)
    return bid_resp(bid, merchant)


@router.post("/{projectId}/select-bid/{bidId}")
def select_bid(
    request: Request,
    projectId: str,
    bidId: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(customer_or_admin),
):
    pid = parse_uuid(projectId, "projectId")
    bid_id = parse_uuid(bidId, "bidId")

    result = ProjectAwardStateMachine().select_bid(db, project_id=pid, bid_id=bid_id, principal=principal)
    _audit_award(db, request, principal, result)
    return _award_body(db, result)


@router.post("/bids/{bidId}/accept")
def accept_bid(
    request: Request,
    bidId: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(customer_or_admin),
):
    bid_id = parse_uuid(bidId, "bidId")

    result = ProjectAwardStateMachine().accept_bid(db, bid_id=bid_id, principal=principal)
    _audit_award(db, request, principal, result)
    return _award_body(db, result)


@router.post("/bids/{bidId}/reject")
def reject_bid(
    request: Request,
    bidId: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(customer_or_admin),
):
    bid_id = parse_uuid(bidId, "bidId")

    bid = ProjectAwardStateMachine().reject_bid(db, bid_id=bid_id, principal=principal)
    audit_event(
        db,
        request=request,
        principal=principal,
        project_id=bid.project_id,
        action=AuditAction.BID_REJECTED,
        payload_summary={"event": "BID_REJECTED", "bidId": bid.id},
        ref_id=str(bid.id),
    )
    return {"success": True, "message": "Bid rejected", "data": bid_resp(bid)}
