# app/services/projects_service.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from app.db.base import utcnow
from app.models.enums import BIDDABLE_STATUSES, EDITABLE_STATUSES, ProjectStatus
from app.models.project import Project
from app.policies.rbac import ACTION_CREATE_PROJECT, Principal, is_owner_or_admin, require_action

logger = logging.getLogger(__name__)


# wire name -> column attribute, for the fields a customer may write
WRITABLE_FIELDS: Dict[str, str] = {
    "title": "title",
    "description": "description",
    "categoryId": "category_id",
    "ptype": "ptype",
    "psubtype": "psubtype",
    "type": "type",
    "material": "material",
    "color": "color",
    "width": "width",
    "height": "height",
    "length": "length",
    "quantity": "quantity",
    "days": "days",
    "pricePerMeter": "price_per_meter",
    "total": "total",
    "selectedAcc": "selected_acc",
    "accessories": "accessories",
    "measurementMode": "measurement_mode",
    "isCustomProduct": "is_custom_product",
    "customProductDetails": "custom_product_details",
    "items": "items",
}

# root fields that fall back to the first builder item when not sent explicitly
ITEM_FALLBACK_FIELDS = (
    "ptype",
    "psubtype",
    "type",
    "material",
    "color",
    "width",
    "height",
    "length",
    "quantity",
    "days",
    "pricePerMeter",
    "total",
    "selectedAcc",
    "accessories",
)

SORTABLE_FIELDS = {
    "createdAt": Project.created_at,
    "updatedAt": Project.updated_at,
    "title": Project.title,
    "status": Project.status,
    "total": Project.total,
    "views": Project.views,
    "executionDueAt": Project.execution_due_at,
}

NON_NULL_DEFAULTS = {
    "selected_acc": list,
    "accessories": list,
    "items": list,
    "measurement_mode": lambda: "area_wh",
    "is_custom_product": lambda: False,
}


def _like_pattern(raw: str) -> str:
    escaped = raw.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _with_item_fallbacks(fields: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(fields)
    items = out.get("items") or []
    main = items[0] if items and isinstance(items[0], dict) else {}
    for key in ITEM_FALLBACK_FIELDS:
        if out.get(key) is None and main.get(key) is not None:
            out[key] = main[key]
    # ptype and type are kept in sync for older clients
    if out.get("ptype") is None and out.get("type") is not None:
        out["ptype"] = out["type"]
    if out.get("type") is None and out.get("ptype") is not None:
        out["type"] = out["ptype"]
    return out


def _apply_fields(project: Project, fields: Dict[str, Any]) -> None:
    for wire, attr in WRITABLE_FIELDS.items():
        if wire not in fields:
            continue
        value = fields[wire]
        if value is None and attr in NON_NULL_DEFAULTS:
            value = NON_NULL_DEFAULTS[attr]()
        setattr(project, attr, value)


@dataclass
class ProjectPage:
    items: List[Project]
    total_count: int
    page: int
    page_size: int


class ProjectsService:
    # ---------------------------
    # READS
    # ---------------------------

    def get(self, db: Session, project_id: uuid.UUID) -> Optional[Project]:
        return db.get(Project, project_id)

    def get_or_404(self, db: Session, project_id: uuid.UUID) -> Project:
        p = self.get(db, project_id)
        if not p:
            raise NotFoundError("Project not found")
        return p

    def list(
        self,
        db: Session,
        *,
        page: int = 1,
        page_size: int = 20,
        query: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_direction: str = "desc",
    ) -> ProjectPage:
        if page < 1 or page_size < 1:
            raise ValidationError("page and pageSize must be positive")

        conditions = []
        if query:
            pattern = _like_pattern(query)
            conditions.append(
                or_(
                    Project.title.ilike(pattern, escape="\\"),
                    Project.description.ilike(pattern, escape="\\"),
                )
            )

        if sort_by:
            column = SORTABLE_FIELDS.get(sort_by)
            if column is None:
                raise ValidationError(
                    f"Unsupported sortBy '{sort_by}'",
                    errors=[{"field": "sortBy", "message": f"one of {sorted(SORTABLE_FIELDS)}"}],
                )
        else:
            column = Project.created_at
        order = column.asc() if sort_direction == "asc" else column.desc()

        stmt = select(Project)
        count_stmt = select(func.count()).select_from(Project)
        if conditions:
            stmt = stmt.where(*conditions)
            count_stmt = count_stmt.where(*conditions)
        stmt = stmt.order_by(order, Project.id).offset((page - 1) * page_size).limit(page_size)

        items = list(db.execute(stmt).scalars().all())
        total = int(db.execute(count_stmt).scalar_one())
        return ProjectPage(items=items, total_count=total, page=page, page_size=page_size)

    def list_open(self, db: Session, *, limit: int = 200) -> List[Project]:
        return list(
            db.execute(
                select(Project)
                .where(Project.status.in_([s.value for s in BIDDABLE_STATUSES]))
                .order_by(Project.created_at.desc())
                .limit(limit)
            )
            .scalars()
            .all()
        )

    def list_for_customer(self, db: Session, customer_id: uuid.UUID) -> List[Project]:
        return list(
            db.execute(
                select(Project)
                .where(Project.customer_id == customer_id)
                .order_by(Project.created_at.desc())
            )
            .scalars()
            .all()
        )

    def list_assigned_for_merchant(self, db: Session, merchant_id: uuid.UUID) -> List[Project]:
        return list(
            db.execute(
                select(Project)
                .where(
                    Project.assigned_merchant_id == merchant_id,
                    Project.status.in_(
                        [ProjectStatus.IN_PROGRESS.value, ProjectStatus.DELIVERED.value]
                    ),
                )
                .order_by(Project.created_at.desc())
            )
            .scalars()
            .all()
        )

    # ---------------------------
    # MUTATIONS
    # ---------------------------

    def create(self, db: Session, *, principal: Principal, fields: Dict[str, Any]) -> Project:
        require_action(principal, ACTION_CREATE_PROJECT)

        now = utcnow()
        p = Project(
            customer_id=principal.user_uuid,
            status=ProjectStatus.DRAFT.value,
            views=0,
            created_at=now,
            updated_at=now,
        )
        _apply_fields(p, _with_item_fallbacks(fields))

        db.add(p)
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError("Failed to create project") from e
        db.refresh(p)
        logger.info("project created", extra={"project_id": str(p.id), "customer_id": principal.user_id})
        return p

    def update(
        self,
        db: Session,
        *,
        project_id: uuid.UUID,
        principal: Principal,
        fields: Dict[str, Any],
    ) -> Project:
        p = self.get_or_404(db, project_id)
        if not is_owner_or_admin(principal, p.customer_id):
            raise ForbiddenError()
        if ProjectStatus(p.status) not in EDITABLE_STATUSES:
            raise InvalidTransitionError(
                f"Project can no longer be edited (status is {p.status})."
            )

        unknown = set(fields) - set(WRITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields not editable: {sorted(unknown)}")
        if "title" in fields and not fields["title"]:
            raise ValidationError(errors=[{"field": "title", "message": "title cannot be empty"}])

        _apply_fields(p, fields)
        p.updated_at = utcnow()
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError("Failed to update project") from e
        db.refresh(p)
        return p

    def delete(self, db: Session, *, project_id: uuid.UUID, principal: Principal) -> None:
        p = self.get_or_404(db, project_id)
        if not is_owner_or_admin(principal, p.customer_id):
            raise ForbiddenError()

        db.delete(p)
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError("Failed to delete project") from e
        logger.info("project deleted", extra={"project_id": str(project_id), "actor": principal.user_id})
