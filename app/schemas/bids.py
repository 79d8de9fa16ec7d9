from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BidCreateRequest(BaseModel):
    """
    Merchant bid on a project. ``price`` is the single canonical amount field.
    """

    model_config = ConfigDict(extra="forbid")

    price: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    days: int = Field(..., ge=1, description="proposed duration in days")
    message: Optional[str] = Field(default=None, max_length=2000)


class BidResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    projectId: str
    merchantId: str
    price: float
    days: int
    message: Optional[str] = None
    status: str
    createdAt: Optional[str] = None
