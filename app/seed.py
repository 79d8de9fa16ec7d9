import uuid
from decimal import Decimal

from sqlalchemy.orm import Session

from app.core.security import create_access_token
from app.db.base import utcnow
from app.db.session import SessionLocal
from app.models.bid import Bid
from app.models.enums import BidStatus, ProjectStatus, UserRole
from app.models.project import Project
from app.models.user import User


SEED_USERS = [
    ("Dev Customer", "customer@example.com", UserRole.CUSTOMER),
    ("Dev Merchant", "merchant@example.com", UserRole.MERCHANT),
    ("Second Merchant", "merchant2@example.com", UserRole.MERCHANT),
    ("Dev Admin", "admin@example.com", UserRole.ADMIN),
]


def _user(db: Session, name: str, email: str, role: UserRole) -> User:
    u = db.query(User).filter(User.email == email).one_or_none()
    if u is None:
        u = User(id=uuid.uuid4(), name=name, email=email, role=role.value)
        db.add(u)
        db.commit()
    return u


def seed():
    db: Session = SessionLocal()

    users = {email: _user(db, name, email, role) for name, email, role in SEED_USERS}
    customer = users["customer@example.com"]
    merchants = [users["merchant@example.com"], users["merchant2@example.com"]]

    now = utcnow()
    projects = [
        ("Kitchen cabinets", ProjectStatus.DRAFT, 14),
        ("Aluminium windows", ProjectStatus.PUBLISHED, 10),
        ("Office partition", ProjectStatus.IN_BIDDING, 0),
    ]
    for title, status, days in projects:
        p = Project(
            id=uuid.uuid4(),
            customer_id=customer.id,
            title=title,
            description=f"Seed project: {title.lower()}",
            status=status.value,
            days=days,
            created_at=now,
            updated_at=now,
        )
        db.add(p)
        db.commit()

        if status is ProjectStatus.DRAFT:
            continue

        for i, m in enumerate(merchants):
            db.add(
                Bid(
                    project_id=p.id,
                    merchant_id=m.id,
                    price=Decimal("1500.00") + Decimal(i * 250),
                    days=7 + i * 3,
                    message=f"Offer from {m.name}",
                    status=BidStatus.pending.value,
                )
            )
        db.commit()

    # dev tokens, same shape as the identity service issues
    for u in users.values():
        token = create_access_token(
            subject=str(u.id),
            claims={"role": u.role, "display_name": u.name},
        )
        print(f"{u.role:<9} {u.email:<24} {token}")

    db.close()

if __name__ == "__main__":
    seed()
