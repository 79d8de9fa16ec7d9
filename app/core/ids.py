from __future__ import annotations

import uuid

from app.core.errors import ValidationError


def parse_uuid(raw: str, field: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(raw))
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be UUID.", errors=[{"field": field, "message": "invalid UUID"}])
