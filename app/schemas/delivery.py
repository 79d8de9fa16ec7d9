from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DeliverRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    note: Optional[str] = Field(default=None, max_length=5000)
    files: List[str] = Field(default_factory=list, max_length=50)


class RejectDeliveryRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reason: Optional[str] = Field(default=None, max_length=2000)


class RateMerchantRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    value: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=2000)
