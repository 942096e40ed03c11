"""Inventory transfer schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from pydantic import BaseModel, Field

from ledgerlink.models.transfer import TransferStatus


class TransferItemIn(BaseModel):
    """A transfer line: exactly one of inventory_item_id / recipe_id."""

    inventory_item_id: Optional[int] = None
    recipe_id: Optional[int] = None
    quantity: Decimal


class TransferCreate(BaseModel):
    from_store_id: int
    to_store_id: int
    items: List[TransferItemIn] = []
    notes: Optional[str] = Field(None, max_length=2000)


class TransferItemsReplace(BaseModel):
    items: List[TransferItemIn]


class TransferApprove(BaseModel):
    driver_id: Optional[int] = None
    new_driver_name: Optional[str] = None
    new_driver_email: Optional[str] = None
    items: Optional[List[TransferItemIn]] = None
    notes: Optional[str] = None


class TransferReject(BaseModel):
    notes: Optional[str] = None


class TransferItemResponse(BaseModel):
    id: int
    inventory_item_id: Optional[int] = None
    recipe_id: Optional[int] = None
    quantity: Decimal
    is_requested: bool

    model_config = {"from_attributes": True}


class TransferResponse(BaseModel):
    id: int
    from_store_id: int
    to_store_id: int
    status: TransferStatus
    requested_by: Optional[int] = None
    approved_by: Optional[int] = None
    driver_id: Optional[int] = None
    requested_at: Optional[datetime] = None
    received_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    notes: Optional[str] = None
    items: List[TransferItemResponse] = []

    model_config = {"from_attributes": True}


class TransferCountResponse(BaseModel):
    org_id: int
    count: int
