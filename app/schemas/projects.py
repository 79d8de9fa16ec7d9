#app/schemas/projects.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Accessory(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    ar: Optional[str] = None
    en: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)


class ProjectFields(BaseModel):
    """
    Commercial/builder fields a customer may set.
    Status and award fields are absent: only the award
    state machine writes those.
    """

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, max_length=256)
    description: Optional[str] = Field(default=None, max_length=10000)
    categoryId: Optional[str] = Field(default=None, max_length=64)

    ptype: Optional[str] = Field(default=None, max_length=128)
    psubtype: Optional[str] = Field(default=None, max_length=128)
    type: Optional[str] = Field(default=None, max_length=128)
    material: Optional[str] = Field(default=None, max_length=128)
    color: Optional[str] = Field(default=None, max_length=64)
    width: Optional[float] = Field(default=None, ge=0)
    height: Optional[float] = Field(default=None, ge=0)
    length: Optional[float] = Field(default=None, ge=0)
    quantity: Optional[float] = Field(default=None, ge=0)
    days: Optional[int] = Field(default=None, ge=0, description="requested duration in days")
    pricePerMeter: Optional[float] = Field(default=None, ge=0)
    total: Optional[float] = Field(default=None, ge=0)
    selectedAcc: Optional[List[str]] = None
    accessories: Optional[List[Accessory]] = None

    measurementMode: Optional[str] = Field(default=None, max_length=32)
    isCustomProduct: Optional[bool] = None
    customProductDetails: Optional[Dict[str, Any]] = None

    items: Optional[List[Dict[str, Any]]] = None


class ProjectCreateRequest(ProjectFields):
    pass


class ProjectUpdateRequest(ProjectFields):
    title: Optional[str] = Field(default=None, min_length=1, max_length=256)

    @field_validator("title")
    @classmethod
    def _title_not_null(cls, v: Optional[str]) -> str:
        # omitted keeps the current title; an explicit null would clear it
        if v is None:
            raise ValueError("title cannot be empty")
        return v


class ProjectResponse(BaseModel):
    """
    Wire shape of a project. Owner/merchant names are joined at read time.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    customerId: str
    customerName: Optional[str] = None
    customerEmail: Optional[str] = None
    status: str

    assignedMerchantId: Optional[str] = None
    merchantName: Optional[str] = None
    merchantEmail: Optional[str] = None
    awardedBidId: Optional[str] = None
    agreedPrice: Optional[float] = None
    acceptedDays: Optional[int] = None
    executionStartedAt: Optional[str] = None
    executionDueAt: Optional[str] = None

    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class ProjectListResponse(BaseModel):
    items: List[ProjectResponse]
    totalCount: int
    page: int
    pageSize: int
