from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


# ── Sale types ──────────────────────────────────────────────

class SaleTypeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    commission: Decimal = Field(ge=0, le=100, decimal_places=2)


class SaleTypeUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    commission: Decimal | None = Field(default=None, ge=0, le=100, decimal_places=2)


class SaleTypeOut(BaseModel):
    id: int
    name: str
    commission: Decimal

    model_config = {"from_attributes": True}


# ── Sales ───────────────────────────────────────────────────

class SaleItem(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)


class SaleCreate(BaseModel):
    """Register a sale and take its products out of the warehouse's stock."""
    gross_amount: int = Field(gt=0)
    warehouse_id: int
    sale_type_id: int
    products: list[SaleItem] = Field(min_length=1)


class SaleUpdate(BaseModel):
    """Correct a recorded sale. Products and warehouse never change."""
    gross_amount: int | None = Field(default=None, gt=0)
    sale_type_id: int | None = None
    date: datetime | None = None


class SaleOut(BaseModel):
    id: int
    gross_amount: int
    net_amount: int | None
    date: datetime
    warehouse_id: int
    sale_type_id: int
    sale_type: SaleTypeOut | None = None

    model_config = {"from_attributes": True}
