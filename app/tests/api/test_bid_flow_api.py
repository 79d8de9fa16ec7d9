from app.core.config import get_settings
from app.models.enums import UserRole

BASE = "/api/Projects"


def _open_project(client, headers, **body):
    r = client.post(BASE, json={"title": "Kitchen", "days": 14, **body}, headers=headers)
    assert r.status_code == 201
    pid = r.json()["id"]
    assert client.post(f"{BASE}/{pid}/publish", headers=headers).status_code == 200
    assert client.post(f"{BASE}/{pid}/open-bidding", headers=headers).status_code == 200
    return pid


def test_bid_award_delivery_flow(client, make_user, headers_for):
    customer = make_user(UserRole.CUSTOMER)
    m1 = make_user(UserRole.MERCHANT, name="First Fitters")
    m2 = make_user(UserRole.MERCHANT, name="Second Studio")
    hc, h1, h2 = headers_for(customer), headers_for(m1), headers_for(m2)

    pid = _open_project(client, hc)
    assert pid in [p["id"] for p in client.get(f"{BASE}/open").json()]

    r1 = client.post(f"{BASE}/{pid}/bids", json={"price": 1000, "days": 10}, headers=h1)
    assert r1.status_code == 201
    assert r1.json()["status"] == "pending"
    assert r1.json()["merchantName"] == "First Fitters"

    r2 = client.post(f"{BASE}/{pid}/bids", json={"price": 1500, "days": 7, "message": "Fast"}, headers=h2)
    assert r2.status_code == 201
    winner = r2.json()["id"]

    listed = client.get(f"{BASE}/{pid}/bids", headers=hc).json()
    assert [b["merchantName"] for b in listed] == ["Second Studio", "First Fitters"]
    assert listed[0]["merchantAcceptedProjects"] == 0
    assert listed[0]["merchantRating"] == 0.0

    r = client.post(f"{BASE}/{pid}/select-bid/{winner}", headers=hc)
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["message"] == "Bid accepted"
    project = body["data"]["project"]
    assert project["status"] == "InProgress"
    assert project["assignedMerchantId"] == str(m2.id)
    assert project["merchantName"] == "Second Studio"
    assert project["agreedPrice"] == 1500.0
    assert project["acceptedDays"] == 7
    assert project["executionDueAt"] is not None
    assert body["data"]["bid"]["status"] == "accepted"

    # the project left the open list
    assert pid not in [p["id"] for p in client.get(f"{BASE}/open").json()]

    mine = {b["id"]: b for b in client.get(f"{BASE}/bids/merchant/my-bids", headers=h1).json()}
    assert mine[r1.json()["id"]]["status"] == "rejected"
    assert mine[r1.json()["id"]]["projectTitle"] == "Kitchen"

    assigned = client.get(f"{BASE}/vendor/assigned", headers=h2).json()
    assert [p["id"] for p in assigned] == [pid]
    assert client.get(f"{BASE}/vendor/assigned", headers=h1).json() == []

    # a losing merchant cannot deliver
    assert client.post(f"{BASE}/{pid}/deliver", json={}, headers=h1).status_code == 403

    r = client.post(f"{BASE}/{pid}/deliver", json={"note": "Fitted", "files": ["x.jpg"]}, headers=h2)
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "Delivered"

    r = client.post(f"{BASE}/{pid}/accept-delivery", headers=hc)
    assert r.status_code == 200
    done = r.json()["data"]
    assert done["status"] == "Completed"
    assert done["platformCommission"] == 150.0
    assert done["merchantEarnings"] == 1350.0

    r = client.post(f"{BASE}/{pid}/rate-merchant", json={"value": 5, "comment": "Great"}, headers=hc)
    assert r.status_code == 200
    assert r.json()["data"]["rating"]["value"] == 5

    audit = client.get(f"{BASE}/{pid}/audit", headers=hc)
    assert audit.status_code == 200
    actions = [a["action"] for a in audit.json()]
    for expected in (
        "PROJECT_CREATED",
        "PROJECT_PUBLISHED",
        "BID_SUBMITTED",
        "BID_AWARDED",
        "PROJECT_DELIVERED",
        "DELIVERY_ACCEPTED",
        "MERCHANT_RATED",
    ):
        assert expected in actions
    assert client.get(f"{BASE}/{pid}/audit", headers=h2).status_code == 403


def test_duplicate_bid_is_conflict(client, make_user, headers_for):
    hc = headers_for(make_user(UserRole.CUSTOMER))
    hm = headers_for(make_user(UserRole.MERCHANT))
    pid = _open_project(client, hc)

    assert client.post(f"{BASE}/{pid}/bids", json={"price": 900, "days": 5}, headers=hm).status_code == 201

    r = client.post(f"{BASE}/{pid}/bids", json={"price": 700, "days": 3}, headers=hm)
    assert r.status_code == 409
    assert r.json() == {
        "success": False,
        "message": "You have already submitted a bid for this project.",
    }

    listed = client.get(f"{BASE}/{pid}/bids", headers=hc).json()
    assert len(listed) == 1
    assert listed[0]["price"] == 900.0


def test_bid_validation_errors(client, make_user, headers_for):
    hc = headers_for(make_user(UserRole.CUSTOMER))
    hm = headers_for(make_user(UserRole.MERCHANT))
    pid = _open_project(client, hc)

    r = client.post(f"{BASE}/{pid}/bids", json={"price": 0, "days": 5}, headers=hm)
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "price"

    r = client.post(f"{BASE}/{pid}/bids", json={"price": 10, "days": 0}, headers=hm)
    assert r.status_code == 400


def test_customer_cannot_bid_and_draft_is_closed(client, make_user, headers_for):
    hc = headers_for(make_user(UserRole.CUSTOMER))
    hm = headers_for(make_user(UserRole.MERCHANT))
    draft = client.post(BASE, json={"title": "Draft"}, headers=hc).json()["id"]

    assert client.post(f"{BASE}/{draft}/bids", json={"price": 10, "days": 1}, headers=hc).status_code == 403

    r = client.post(f"{BASE}/{draft}/bids", json={"price": 10, "days": 1}, headers=hm)
    assert r.status_code == 409
    assert r.json()["success"] is False


def test_second_award_conflicts(client, make_user, headers_for):
    hc = headers_for(make_user(UserRole.CUSTOMER))
    ha = headers_for(make_user(UserRole.MERCHANT))
    hb = headers_for(make_user(UserRole.MERCHANT))
    pid = _open_project(client, hc)
    a = client.post(f"{BASE}/{pid}/bids", json={"price": 100, "days": 2}, headers=ha).json()["id"]
    b = client.post(f"{BASE}/{pid}/bids", json={"price": 120, "days": 3}, headers=hb).json()["id"]

    assert client.post(f"{BASE}/bids/{a}/accept", headers=hc).status_code == 200

    r = client.post(f"{BASE}/bids/{b}/accept", headers=hc)
    assert r.status_code == 409
    assert r.json()["message"] == "Cannot accept bid when project status is InProgress"

    r = client.post(f"{BASE}/bids/{a}/reject", headers=hc)
    assert r.status_code == 409


def test_select_bid_from_other_project(client, make_user, headers_for):
    hc = headers_for(make_user(UserRole.CUSTOMER))
    hm = headers_for(make_user(UserRole.MERCHANT))
    p1 = _open_project(client, hc)
    p2 = _open_project(client, hc, title="Bathroom")
    bid = client.post(f"{BASE}/{p2}/bids", json={"price": 100, "days": 2}, headers=hm).json()["id"]

    r = client.post(f"{BASE}/{p1}/select-bid/{bid}", headers=hc)
    assert r.status_code == 404
    assert r.json()["message"] == "Bid not found for this project"

    assert client.get(f"{BASE}/{p2}", headers=hc).json()["status"] == "InBidding"


def test_non_owner_cannot_award(client, make_user, headers_for):
    hc = headers_for(make_user(UserRole.CUSTOMER))
    stranger = headers_for(make_user(UserRole.CUSTOMER))
    hm = headers_for(make_user(UserRole.MERCHANT))
    pid = _open_project(client, hc)
    bid = client.post(f"{BASE}/{pid}/bids", json={"price": 100, "days": 2}, headers=hm).json()["id"]

    r = client.post(f"{BASE}/{pid}/select-bid/{bid}", headers=stranger)
    assert r.status_code == 403
    assert client.get(f"{BASE}/{pid}", headers=hc).json()["status"] == "InBidding"


def test_bid_submission_is_rate_limited(client, make_user, headers_for):
    hc = headers_for(make_user(UserRole.CUSTOMER))
    hm = headers_for(make_user(UserRole.MERCHANT))
    pid = _open_project(client, hc)

    capacity = get_settings().bid_rate_limit_capacity
    statuses = [
        client.post(f"{BASE}/{pid}/bids", json={"price": 100, "days": 2}, headers=hm).status_code
        for _ in range(capacity + 2)
    ]

    assert statuses[0] == 201
    assert 429 in statuses
    last = client.post(f"{BASE}/{pid}/bids", json={"price": 100, "days": 2}, headers=hm)
    assert last.status_code == 429
    assert last.headers["Retry-After"] == "60"
    assert last.json()["success"] is False
