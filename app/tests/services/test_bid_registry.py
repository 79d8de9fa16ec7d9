import uuid
from decimal import Decimal

import pytest
from sqlalchemy import select

from app.core.errors import DuplicateBidError, InvalidTransitionError, NotFoundError, ValidationError
from app.models.bid import Bid
from app.models.enums import BidStatus, ProjectStatus, UserRole
from app.services.bids_service import BidRegistry, MerchantTrackRecord


def test_submit_bid_on_open_project(db, make_user, make_project):
    customer = make_user(UserRole.CUSTOMER)
    merchant = make_user(UserRole.MERCHANT)
    project = make_project(customer, ProjectStatus.IN_BIDDING)

    bid = BidRegistry().create_bid(
        db, project_id=project.id, merchant_id=merchant.id, price=Decimal("1200.50"), days=12
    )

    assert bid.status == BidStatus.pending.value
    assert bid.project_id == project.id
    assert bid.merchant_id == merchant.id
    assert Decimal(bid.price) == Decimal("1200.50")
    assert bid.days == 12


def test_published_project_accepts_bids(db, make_user, make_project):
    customer = make_user(UserRole.CUSTOMER)
    merchant = make_user(UserRole.MERCHANT)
    project = make_project(customer, ProjectStatus.PUBLISHED)

    bid = BidRegistry().create_bid(db, project_id=project.id, merchant_id=merchant.id, price=500, days=3)
    assert bid.id is not None


def test_duplicate_bid_rejected_and_first_bid_kept(db, make_user, make_project):
    customer = make_user(UserRole.CUSTOMER)
    merchant = make_user(UserRole.MERCHANT)
    project = make_project(customer)
    registry = BidRegistry()

    first = registry.create_bid(db, project_id=project.id, merchant_id=merchant.id, price=1000, days=10)

    with pytest.raises(DuplicateBidError) as exc:
        registry.create_bid(db, project_id=project.id, merchant_id=merchant.id, price=800, days=5)
    assert exc.value.status_code == 409

    rows = db.execute(select(Bid).where(Bid.project_id == project.id)).scalars().all()
    assert len(rows) == 1
    assert rows[0].id == first.id
    assert Decimal(rows[0].price) == Decimal("1000")
    assert rows[0].days == 10


def test_same_merchant_may_bid_on_different_projects(db, make_user, make_project):
    customer = make_user(UserRole.CUSTOMER)
    merchant = make_user(UserRole.MERCHANT)
    p1 = make_project(customer)
    p2 = make_project(customer)
    registry = BidRegistry()

    registry.create_bid(db, project_id=p1.id, merchant_id=merchant.id, price=1000, days=10)
    registry.create_bid(db, project_id=p2.id, merchant_id=merchant.id, price=1000, days=10)

    assert len(registry.list_for_merchant(db, merchant.id)) == 2


@pytest.mark.parametrize(
    "price,days",
    [(0, 5), (-10, 5), (100, 0), (100, -1)],
)
def test_invalid_price_or_days(db, make_user, make_project, price, days):
    customer = make_user(UserRole.CUSTOMER)
    merchant = make_user(UserRole.MERCHANT)
    project = make_project(customer)

    with pytest.raises(ValidationError):
        BidRegistry().create_bid(db, project_id=project.id, merchant_id=merchant.id, price=price, days=days)

    assert db.execute(select(Bid)).scalars().all() == []


@pytest.mark.parametrize(
    "status",
    [ProjectStatus.DRAFT, ProjectStatus.IN_PROGRESS, ProjectStatus.COMPLETED, ProjectStatus.CANCELLED],
)
def test_project_not_open_for_bidding(db, make_user, make_project, status):
    customer = make_user(UserRole.CUSTOMER)
    merchant = make_user(UserRole.MERCHANT)
    project = make_project(customer, status)

    with pytest.raises(InvalidTransitionError):
        BidRegistry().create_bid(db, project_id=project.id, merchant_id=merchant.id, price=100, days=2)


def test_bid_on_missing_project(db, make_user):
    merchant = make_user(UserRole.MERCHANT)
    with pytest.raises(NotFoundError):
        BidRegistry().create_bid(db, project_id=uuid.uuid4(), merchant_id=merchant.id, price=100, days=2)


def test_list_for_project_newest_first_with_merchant_details(db, make_user, make_project):
    customer = make_user(UserRole.CUSTOMER)
    m1 = make_user(UserRole.MERCHANT, name="Alpha Works")
    m2 = make_user(UserRole.MERCHANT, name="Beta Build")
    project = make_project(customer)
    registry = BidRegistry()

    registry.create_bid(db, project_id=project.id, merchant_id=m1.id, price=1000, days=10)
    registry.create_bid(db, project_id=project.id, merchant_id=m2.id, price=900, days=8)

    views = registry.list_for_project(db, project.id)
    assert [v.merchant.name for v in views] == ["Beta Build", "Alpha Works"]
    assert all(v.track == MerchantTrackRecord() for v in views)


def test_list_for_missing_project(db):
    with pytest.raises(NotFoundError):
        BidRegistry().list_for_project(db, uuid.uuid4())


def test_merchant_track_record(db, make_user, make_project, make_bid):
    customer = make_user(UserRole.CUSTOMER)
    merchant = make_user(UserRole.MERCHANT)
    done = make_project(customer, ProjectStatus.COMPLETED)
    running = make_project(customer, ProjectStatus.IN_PROGRESS)
    lost = make_project(customer, ProjectStatus.IN_PROGRESS)

    make_bid(done, merchant, status=BidStatus.accepted)
    make_bid(running, merchant, status=BidStatus.accepted)
    make_bid(lost, merchant, status=BidStatus.rejected)

    track = BidRegistry().merchant_track_records(db, [merchant.id])[merchant.id]
    assert track.accepted_count == 2
    assert track.completed_count == 1
    assert track.rating == 2.5


def test_track_record_rating_without_history():
    assert MerchantTrackRecord().rating == 0.0
    assert MerchantTrackRecord(accepted_count=3, completed_count=3).rating == 5.0


def test_get_bid(db, make_user, make_project, make_bid):
    bid = make_bid(make_project(make_user(UserRole.CUSTOMER)), make_user(UserRole.MERCHANT))
    registry = BidRegistry()

    assert registry.get(db, bid.id).id == bid.id
    with pytest.raises(NotFoundError):
        registry.get(db, uuid.uuid4())


def test_list_for_merchant_newest_first(db, make_user, make_project):
    customer = make_user(UserRole.CUSTOMER)
    merchant = make_user(UserRole.MERCHANT)
    projects = [make_project(customer, title=t) for t in ("oldest", "middle", "newest")]
    registry = BidRegistry()

    for p in projects:
        registry.create_bid(db, project_id=p.id, merchant_id=merchant.id, price=100, days=2)

    rows = registry.list_for_merchant(db, merchant.id)
    assert [p.title for _, p in rows] == ["newest", "middle", "oldest"]
    assert all(b.merchant_id == merchant.id for b, _ in rows)


def test_bid_from_merchant_missing_from_mirror(db, make_user, make_project):
    project = make_project(make_user(UserRole.CUSTOMER))
    merchant_id = uuid.uuid4()

    bid = BidRegistry().create_bid(db, project_id=project.id, merchant_id=merchant_id, price=250, days=4)

    assert bid.merchant_id == merchant_id
    views = BidRegistry().list_for_project(db, project.id)
    assert views[0].merchant is None
