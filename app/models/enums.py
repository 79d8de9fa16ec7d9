#app/models/enums.py
from __future__ import annotations
from enum import Enum


class UserRole(str, Enum):
    USER = "User"
    ADMIN = "Admin"
    MERCHANT = "Merchant"
    WORKER = "Worker"
    TECHNICIAN = "Technician"
    CUSTOMER = "Customer"


class ProjectStatus(str, Enum):
    DRAFT = "Draft"
    PUBLISHED = "Published"
    IN_BIDDING = "InBidding"
    IN_PROGRESS = "InProgress"
    DELIVERED = "Delivered"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class BidStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"


# statuses in which merchants may submit bids and a bid may be awarded
BIDDABLE_STATUSES = frozenset({ProjectStatus.PUBLISHED, ProjectStatus.IN_BIDDING})

# statuses in which the customer may still edit the commercial fields
EDITABLE_STATUSES = frozenset(
    {ProjectStatus.DRAFT, ProjectStatus.PUBLISHED, ProjectStatus.IN_BIDDING}
)
