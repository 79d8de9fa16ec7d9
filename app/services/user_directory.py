# app/services/user_directory.py
from __future__ import annotations

import uuid
from typing import Dict, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.user import User


class UserDirectory:
    """
    Read-time joins against the users mirror. Results are never written
    back onto projects or bids.
    """

    def cards(self, db: Session, ids: Iterable[Optional[uuid.UUID]]) -> Dict[uuid.UUID, User]:
        wanted = {i for i in ids if i is not None}
        if not wanted:
            return {}
        rows = db.execute(select(User).where(User.id.in_(wanted))).scalars().all()
        return {u.id: u for u in rows}
