#app/core/auth_deps.py
from __future__ import annotations

import uuid
from typing import Callable

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.security import decode_token
from app.models.enums import UserRole
from app.policies.rbac import Principal

bearer = HTTPBearer(auto_error=True)


def get_current_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials = Depends(bearer),
) -> Principal:
    """
    Canonical authentication dependency.

    Guarantees:
    - JWT is valid and not expired
    - sub is a user UUID
    - role is a valid UserRole
    """

    try:
        payload = decode_token(creds.credentials)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid or expired token.")

    user_id = payload.get("sub") or payload.get("user_id")
    role = payload.get("role")
    display_name = payload.get("display_name") or "Unknown"

    if not role or not user_id:
        raise HTTPException(status_code=401, detail="Token missing required claims.")

    try:
        user_id = str(uuid.UUID(str(user_id)))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid subject in token.")

    try:
        role_enum = UserRole(role)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid role in token.")

    principal = Principal(
        user_id=user_id,
        role=role_enum,
        display_name=str(display_name),
    )

    # Make principal available to downstream middleware / handlers
    request.state.principal = principal

    return principal


def require_roles(*roles: UserRole) -> Callable[..., Principal]:
    """
    Route-level role gate, e.g. ``Depends(require_roles(UserRole.MERCHANT, UserRole.ADMIN))``.
    """
    allowed = frozenset(roles)

    def _dep(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed:
            raise HTTPException(
                status_code=403,
                detail=f"Role {principal.role.value} is not permitted for this action.",
            )
        return principal

    return _dep
