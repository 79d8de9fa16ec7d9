#app/api/v1/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.auth_deps import get_current_principal
from app.db.session import get_db
from app.models.user import User
from app.policies.rbac import Principal

from sqlalchemy.orm import Session

router = APIRouter(prefix="/auth")


# tokens are issued by the identity service; this only echoes what was verified
@router.get("/me")
def get_me(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    user = db.get(User, principal.user_uuid)
    return {
        "user_id": principal.user_id,
        "role": principal.role.value,
        "display_name": principal.display_name,
        "email": user.email if user else None,
        "company_name": user.company_name if user else None,
    }
