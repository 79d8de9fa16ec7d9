#app/policies/rbac.py
from __future__ import annotations
from dataclasses import dataclass
import uuid
from typing import Optional, Set

from app.core.errors import ForbiddenError
from app.models.enums import UserRole


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: UserRole
    display_name: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def user_uuid(self) -> uuid.UUID:
        return uuid.UUID(self.user_id)


# --- Core action constants ---
ACTION_CREATE_PROJECT = "CREATE_PROJECT"
ACTION_MANAGE_PROJECT = "MANAGE_PROJECT"
ACTION_SUBMIT_BID = "SUBMIT_BID"
ACTION_DELIVER_PROJECT = "DELIVER_PROJECT"
ACTION_REVIEW_DELIVERY = "REVIEW_DELIVERY"

_CUSTOMER_ACTIONS = {ACTION_CREATE_PROJECT, ACTION_MANAGE_PROJECT, ACTION_REVIEW_DELIVERY}
_MERCHANT_ACTIONS = {ACTION_SUBMIT_BID, ACTION_DELIVER_PROJECT}


def allowed_actions(role: UserRole) -> Set[str]:
    """
    Pure RBAC: which actions a role may attempt.
    Ownership of the concrete project is checked separately.
    """

    if role == UserRole.ADMIN:
        return _CUSTOMER_ACTIONS | _MERCHANT_ACTIONS

    if role == UserRole.CUSTOMER:
        return set(_CUSTOMER_ACTIONS)

    if role == UserRole.MERCHANT:
        return set(_MERCHANT_ACTIONS)

    if role in (UserRole.TECHNICIAN, UserRole.WORKER, UserRole.USER):
        return set()

    raise ValueError(f"Unhandled role: {role!r}")


def require_action(principal: Principal, action: str) -> None:
    if action not in allowed_actions(principal.role):
        raise ForbiddenError(
            f"Role {principal.role.value} not permitted for action {action}."
        )


def is_owner_or_admin(principal: Principal, owner_id: Optional[object]) -> bool:
    if principal.is_admin:
        return True
    return owner_id is not None and str(owner_id) == principal.user_id
