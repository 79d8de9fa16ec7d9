#app/api/v1/delivery.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.v1.presenters import project_resp
from app.core.auth_deps import require_roles
from app.core.ids import parse_uuid
from app.db.session import get_db
from app.models.enums import UserRole
from app.models.project import Project
from app.policies.rbac import (
    ACTION_DELIVER_PROJECT,
    ACTION_REVIEW_DELIVERY,
    Principal,
    require_action,
)
from app.schemas.delivery import DeliverRequest, RateMerchantRequest, RejectDeliveryRequest
from app.services.audit_service import AuditAction, audit_event
from app.services.award_state_machine import ProjectAwardStateMachine
from app.services.user_directory import UserDirectory

router = APIRouter(prefix="/Projects")

customer_or_admin = require_roles(UserRole.CUSTOMER, UserRole.ADMIN)
merchant_or_admin = require_roles(UserRole.MERCHANT, UserRole.ADMIN)


def _ok(db: Session, p: Project, message: str) -> dict:
    users = UserDirectory().cards(db, [p.customer_id, p.assigned_merchant_id])
    return {"success": True, "message": message, "data": project_resp(p, users)}


@router.post("/{projectId}/deliver")
def deliver(
    request: Request,
    projectId: str,
    body: DeliverRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(merchant_or_admin),
):
    require_action(principal, ACTION_DELIVER_PROJECT)
    pid = parse_uuid(projectId, "projectId")

    p = ProjectAwardStateMachine().deliver(
        db, project_id=pid, principal=principal, note=body.note, files=body.files
    )
    audit_event(
        db,
        request=request,
        principal=principal,
        project_id=pid,
        action=AuditAction.PROJECT_DELIVERED,
        payload_summary={"event": "PROJECT_DELIVERED", "files": len(body.files)},
    )
    return _ok(db, p, "Project delivered")


@router.post("/{projectId}/accept-delivery")
def accept_delivery(
    request: Request,
    projectId: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(customer_or_admin),
):
    require_action(principal, ACTION_REVIEW_DELIVERY)
    pid = parse_uuid(projectId, "projectId")

    p = ProjectAwardStateMachine().accept_delivery(db, project_id=pid, principal=principal)
    audit_event(
        db,
        request=request,
        principal=principal,
        project_id=pid,
        action=AuditAction.DELIVERY_ACCEPTED,
        payload_summary={
            "event": "DELIVERY_ACCEPTED",
            "platformCommission": p.platform_commission,
            "merchantEarnings": p.merchant_earnings,
        },
    )
    return _ok(db, p, "Delivery accepted")


@router.post("/{projectId}/reject-delivery")
def reject_delivery(
    request: Request,
    projectId: str,
    body: RejectDeliveryRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(customer_or_admin),
):
    require_action(principal, ACTION_REVIEW_DELIVERY)
    pid = parse_uuid(projectId, "projectId")

    p = ProjectAwardStateMachine().reject_delivery(
        db, project_id=pid, principal=principal, reason=body.reason
    )
    audit_event(
        db,
        request=request,
        principal=principal,
        project_id=pid,
        action=AuditAction.DELIVERY_REJECTED,
        payload_summary={"event": "DELIVERY_REJECTED"},
    )
    return _ok(db, p, "Delivery rejected")


@router.post("/{projectId}/rate-merchant")
def rate_merchant(
    request: Request,
    projectId: str,
    body: RateMerchantRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(customer_or_admin),
):
    pid = parse_uuid(projectId, "projectId")

    p = ProjectAwardStateMachine().rate_merchant(
        db, project_id=pid, principal=principal, value=body.value, comment=body.comment
    )
    audit_event(
        db,
        request=request,
        principal=principal,
        project_id=pid,
        action=AuditAction.MERCHANT_RATED,
        payload_summary={"event": "MERCHANT_RATED", "value": body.value},
    )
    return _ok(db, p, "Merchant rated")
