from pydantic import BaseModel, Field


class ProductTypeOut(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}


class ProductCreate(BaseModel):
    name: str = Field(min_length=1)
    product_type_id: int
    stock: int = Field(default=0, ge=0)
    min_stock: int = Field(default=0, ge=0)
    warehouse_id: int


class ProductUpdate(BaseModel):
    """A product never moves between warehouses."""
    name: str | None = Field(default=None, min_length=1)
    product_type_id: int | None = None
    stock: int | None = Field(default=None, ge=0)
    min_stock: int | None = Field(default=None, ge=0)


class ProductOut(BaseModel):
    id: int
    name: str
    product_type_id: int
    stock: int
    min_stock: int
    warehouse_id: int

    model_config = {"from_attributes": True}
