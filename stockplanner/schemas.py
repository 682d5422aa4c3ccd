from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ProductCreate(BaseModel):
    sku: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=200)
    stock: int = 0
    reorder_point: int = 0
    lead_time_days: int | None = Field(default=None, ge=0)
    image_url: str | None = None
    supplier_id: int | None = None


class ProductUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    reorder_point: int | None = None
    lead_time_days: int | None = Field(default=None, ge=0)
    image_url: str | None = None
    supplier_id: int | None = None


class StockUpdate(BaseModel):
    stock: int


class ImageUpdate(BaseModel):
    product_id: int | None = None
    sku: str | None = None
    image_url: str | None

    @model_validator(mode="after")
    def _needs_key(self):
        if self.product_id is None and not self.sku:
            raise ValueError("product_id or sku is required")
        return self


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sku: str
    name: str
    stock: int
    reorder_point: int
    lead_time_days: int | None
    image_url: str | None
    supplier_id: int | None
    created_at: datetime | None


class SaleCreate(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
    sold_at: date | None = None


class SaleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    quantity: int
    sold_at: date


class SupplierCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    lead_time_days: int = Field(default=30, ge=0)


class SupplierOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    lead_time_days: int
    created_at: datetime | None


class PurchaseOrderLineIn(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)


class PurchaseOrderCreate(BaseModel):
    product_id: int | None = None
    quantity: int | None = Field(default=None, gt=0)
    supplier_id: int | None = None
    items: list[PurchaseOrderLineIn] = Field(default_factory=list)
    expected_date: date | None = None
    status: Literal["draft", "open"] = "open"


class SuggestedOrderCreate(BaseModel):
    product_id: int
    target_days: int | None = Field(default=None, ge=1)
    days: int | None = Field(default=None, ge=1, le=365)


class PurchaseOrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    quantity: int


class PurchaseOrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: str
    supplier_id: int | None
    product_id: int | None
    quantity: int | None
    expected_date: date | None
    created_at: datetime | None
    received_at: datetime | None
    items: list[PurchaseOrderItemOut] = []
