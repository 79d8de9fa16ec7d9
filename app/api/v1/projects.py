# app/api/v1/projects.py
from __future__ import annotations

from typing import Iterable, List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.api.v1.presenters import project_resp
from app.core.auth_deps import get_current_principal, require_roles
from app.core.config import get_settings
from app.core.errors import ForbiddenError
from app.core.ids import parse_uuid
from app.db.session import get_db
from app.models.enums import UserRole
from app.models.project import Project
from app.policies.rbac import Principal, is_owner_or_admin
from app.schemas.projects import (
    ProjectCreateRequest,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdateRequest,
)
from app.services.audit_service import AuditAction, audit_event, list_project_audit
from app.services.award_state_machine import ProjectAwardStateMachine
from app.services.projects_service import ProjectsService
from app.services.user_directory import UserDirectory

router = APIRouter(prefix="/Projects")

customer_or_admin = require_roles(UserRole.CUSTOMER, UserRole.ADMIN)
merchant_or_admin = require_roles(UserRole.MERCHANT, UserRole.ADMIN)


def _with_users(db: Session, projects: Iterable[Project]) -> List[dict]:
    projects = list(projects)
    ids = [p.customer_id for p in projects] + [p.assigned_merchant_id for p in projects]
    users = UserDirectory().cards(db, ids)
    return [project_resp(p, users) for p in projects]


def _one(db: Session, p: Project) -> dict:
    return _with_users(db, [p])[0]


# ---------------------------------------------------------------------
# QUERY SURFACE
# ---------------------------------------------------------------------


@router.get("", response_model=ProjectListResponse)
def list_projects(
    page: int = Query(default=1, ge=1),
    pageSize: int = Query(default=20, ge=1, le=100),
    query: Optional[str] = Query(default=None, max_length=200),
    sortBy: Optional[str] = Query(default=None),
    sortDirection: Literal["asc", "desc"] = Query(default="desc"),
    db: Session = Depends(get_db),
):
    result = ProjectsService().list(
        db,
        page=page,
        page_size=pageSize,
        query=query,
        sort_by=sortBy,
        sort_direction=sortDirection,
    )
    return {
        "items": _with_users(db, result.items),
        "totalCount": result.total_count,
        "page": result.page,
        "pageSize": result.page_size,
    }


@router.get("/open", response_model=List[ProjectResponse])
def list_open_projects(db: Session = Depends(get_db)):
    rows = ProjectsService().list_open(db, limit=get_settings().open_projects_limit)
    return _with_users(db, rows)


@router.get("/customer/my-projects", response_model=List[ProjectResponse])
def my_projects(
    db: Session = Depends(get_db),
    principal: Principal = Depends(customer_or_admin),
):
    rows = ProjectsService().list_for_customer(db, principal.user_uuid)
    return _with_users(db, rows)


@router.get("/vendor/assigned", response_model=List[ProjectResponse])
def assigned_to_me(
    db: Session = Depends(get_db),
    principal: Principal = Depends(merchant_or_admin),
):
    rows = ProjectsService().list_assigned_for_merchant(db, principal.user_uuid)
    return _with_users(db, rows)


# ---------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------


@router.post("", status_code=201, response_model=ProjectResponse)
def create_project(
    request: Request,
    body: ProjectCreateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(customer_or_admin),
):
    p = ProjectsService().create(db, principal=principal, fields=body.model_dump(exclude_unset=True))

    audit_event(
        db,
        request=request,
        principal=principal,
        project_id=p.id,
        action=AuditAction.PROJECT_CREATED,
        payload_summary={"event": "PROJECT_CREATED", "projectId": p.id, "title": p.title},
        ref_id=str(p.id),
    )
    return _one(db, p)


@router.put("/{projectId}", response_model=ProjectResponse)
def update_project(
    request: Request,
    projectId: str,
    body: ProjectUpdateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(customer_or_admin),
):
    pid = parse_uuid(projectId, "projectId")
    fields = body.model_dump(exclude_unset=True)
    p = ProjectsService().update(db, project_id=pid, principal=principal, fields=fields)

    audit_event(
        db,
        request=request,
        principal=principal,
        project_id=pid,
        action=AuditAction.PROJECT_UPDATED,
        payload_summary={"event": "PROJECT_UPDATED", "fields": sorted(fields)},
        ref_id=str(pid),
    )
    return _one(db, p)


@router.delete("/{projectId}")
def delete_project(
    request: Request,
    projectId: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(customer_or_admin),
):
    pid = parse_uuid(projectId, "projectId")
    ProjectsService().delete(db, project_id=pid, principal=principal)

    audit_event(
        db,
        request=request,
        principal=principal,
        project_id=pid,
        action=AuditAction.PROJECT_DELETED,
        payload_summary={"event": "PROJECT_DELETED"},
        ref_id=str(pid),
    )
    return {"success": True}


# ---------------------------------------------------------------------
# PRE-AWARD LIFECYCLE
# ---------------------------------------------------------------------


@router.post("/{projectId}/publish")
def publish_project(
    request: Request,
    projectId: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(customer_or_admin),
):
    pid = parse_uuid(projectId, "projectId")
    p = ProjectAwardStateMachine().publish(db, project_id=pid, principal=principal)
    audit_event(
        db,
        request=request,
        principal=principal,
        project_id=pid,
        action=AuditAction.PROJECT_PUBLISHED,
        payload_summary={"event": "PROJECT_PUBLISHED", "status": p.status},
    )
    return {"success": True, "message": "Project published", "data": _one(db, p)}


@router.post("/{projectId}/open-bidding")
def open_bidding(
    request: Request,
    projectId: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(customer_or_admin),
):
    pid = parse_uuid(projectId, "projectId")
    p = ProjectAwardStateMachine().open_bidding(db, project_id=pid, principal=principal)
    audit_event(
        db,
        request=request,
        principal=principal,
        project_id=pid,
        action=AuditAction.PROJECT_BIDDING_OPENED,
        payload_summary={"event": "PROJECT_BIDDING_OPENED", "status": p.status},
    )
    return {"success": True, "message": "Bidding opened", "data": _one(db, p)}


@router.post("/{projectId}/cancel")
def cancel_project(
    request: Request,
    projectId: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(customer_or_admin),
):
    pid = parse_uuid(projectId, "projectId")
    p = ProjectAwardStateMachine().cancel(db, project_id=pid, principal=principal)
    audit_event(
        db,
        request=request,
        principal=principal,
        project_id=pid,
        action=AuditAction.PROJECT_CANCELLED,
        payload_summary={"event": "PROJECT_CANCELLED"},
    )
    return {"success": True, "message": "Project cancelled", "data": _one(db, p)}


@router.get("/{projectId}/audit")
def project_audit(
    projectId: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    pid = parse_uuid(projectId, "projectId")
    p = ProjectsService().get_or_404(db, pid)
    if not is_owner_or_admin(principal, p.customer_id):
        raise ForbiddenError()

    rows = list_project_audit(db, pid)
    return [
        {
            "action": r.action,
            "actorUserId": r.actor_user_id,
            "actorRole": r.actor_role,
            "status": r.status,
            "refId": r.ref_id,
            "requestId": r.request_id,
            "payloadHash": r.payload_hash,
            "summary": r.payload_summary_json,
            "createdAt": r.created_at.isoformat() if r.created_at else None,
        }
        for r in rows
    ]


# get by id stays last so it does not shadow the fixed paths above
@router.get("/{projectId}", response_model=ProjectResponse)
def get_project(
    projectId: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    pid = parse_uuid(projectId, "projectId")
    p = ProjectsService().get_or_404(db, pid)
    return _one(db, p)
