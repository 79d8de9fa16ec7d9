# app/api/v1/presenters.py
from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from app.models.bid import Bid
from app.models.project import Project
from app.models.user import User
from app.services.bids_service import BidView, MerchantTrackRecord


def _iso(dt):
    return dt.isoformat() if dt else None


def _id(v) -> Optional[str]:
    return str(v) if v is not None else None


def _num(v):
    if v is None:
        return None
    if isinstance(v, Decimal):
        return float(v)
    return v


def project_resp(p: Project, users: Optional[Mapping[uuid.UUID, User]] = None) -> Dict[str, Any]:
    users = users or {}
    customer = users.get(p.customer_id)
    merchant = users.get(p.assigned_merchant_id) if p.assigned_merchant_id else None
    rating = None
    if p.rating_value is not None:
        rating = {
            "value": p.rating_value,
            "comment": p.rating_comment or "",
            "by": _id(p.rating_by),
            "at": _iso(p.rated_at),
        }
    return {
        "id": str(p.id),
        "title": p.title,
        "description": p.description,
        "customerId": str(p.customer_id),
        "customerName": customer.name if customer else None,
        "customerEmail": customer.email if customer else None,
        "categoryId": p.category_id,
        "status": p.status,
        "views": p.views,
        "archived": bool(p.archived),
        # award
        "assignedMerchantId": _id(p.assigned_merchant_id),
        "merchantName": merchant.name if merchant else None,
        "merchantEmail": merchant.email if merchant else None,
        "awardedBidId": _id(p.awarded_bid_id),
        "agreedPrice": _num(p.agreed_price),
        "acceptedDays": p.accepted_days,
        "executionStartedAt": _iso(p.execution_started_at),
        "executionDueAt": _iso(p.execution_due_at),
        # delivery
        "deliveredAt": _iso(p.delivered_at),
        "deliveryNote": p.delivery_note,
        "deliveryFiles": list(p.delivery_files or []),
        "completedAt": _iso(p.completed_at),
        "platformCommission": _num(p.platform_commission),
        "merchantEarnings": _num(p.merchant_earnings),
        "rating": rating,
        # commercial
        "ptype": p.ptype,
        "psubtype": p.psubtype,
        "type": p.type,
        "material": p.material,
        "color": p.color,
        "width": p.width,
        "height": p.height,
        "length": p.length,
        "quantity": p.quantity,
        "days": p.days,
        "pricePerMeter": p.price_per_meter,
        "total": p.total,
        "selectedAcc": list(p.selected_acc or []),
        "accessories": list(p.accessories or []),
        "measurementMode": p.measurement_mode,
        "isCustomProduct": bool(p.is_custom_product),
        "customProductDetails": p.custom_product_details,
        "items": list(p.items or []),
        "createdAt": _iso(p.created_at),
        "updatedAt": _iso(p.updated_at),
    }


def bid_resp(
    b: Bid,
    merchant: Optional[User] = None,
    track: Optional[MerchantTrackRecord] = None,
) -> Dict[str, Any]:
    out = {
        "id": str(b.id),
        "projectId": str(b.project_id),
        "merchantId": str(b.merchant_id),
        "price": _num(b.price),
        "days": b.days,
        "message": b.message,
        "status": b.status,
        "createdAt": _iso(b.created_at),
        "merchantName": (merchant.name or "") if merchant else "",
        "merchantProfilePicture": merchant.profile_picture if merchant else None,
    }
    if track is not None:
        out["merchantAcceptedProjects"] = track.accepted_count
        out["merchantCompletedProjects"] = track.completed_count
        out["merchantRating"] = track.rating
    return out


def bid_view_resp(v: BidView) -> Dict[str, Any]:
    return bid_resp(v.bid, v.merchant, v.track)


def merchant_bid_resp(b: Bid, p: Project) -> Dict[str, Any]:
    out = bid_resp(b)
    out.pop("merchantName", None)
    out.pop("merchantProfilePicture", None)
    out["projectTitle"] = p.title
    out["projectStatus"] = p.status
    return out
