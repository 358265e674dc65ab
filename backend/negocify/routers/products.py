"""Warehouse-scoped product routes.

Reading a warehouse's products needs any role there; changing them needs
"administrador" in the product's warehouse.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from negocify.auth.deps import get_current_principal, require_warehouse_role
from negocify.auth.permissions import ROLE_ADMIN
from negocify.auth.principal import Principal
from negocify.database import get_db
from negocify.middleware.exceptions import ResourceNotFoundError
from negocify.models.product import Product, ProductType
from negocify.models.warehouse import Warehouse
from negocify.schemas.product import ProductCreate, ProductOut, ProductTypeOut, ProductUpdate

router = APIRouter()


async def _get_product(db: AsyncSession, product_id: int) -> Product:
    product = await db.get(Product, product_id)
    if product is None:
        raise ResourceNotFoundError("Product", product_id)
    return product


async def _ensure_product_type(db: AsyncSession, product_type_id: int) -> None:
    if await db.get(ProductType, product_type_id) is None:
        raise ResourceNotFoundError("Product type", product_type_id)


@router.get("/types", response_model=list[ProductTypeOut])
async def list_product_types(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    result = await db.execute(select(ProductType).order_by(ProductType.name))
    return result.scalars().all()


@router.get("/", response_model=list[ProductOut])
async def list_products(
    warehouse_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_warehouse_role(principal, [], warehouse_id)

    result = await db.execute(
        select(Product).where(Product.warehouse_id == warehouse_id).order_by(Product.name)
    )
    return result.scalars().all()


@router.post("/", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
async def create_product(
    body: ProductCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_warehouse_role(principal, {ROLE_ADMIN}, body.warehouse_id)
    if await db.get(Warehouse, body.warehouse_id) is None:
        raise ResourceNotFoundError("Warehouse", body.warehouse_id)
    await _ensure_product_type(db, body.product_type_id)

    product = Product(**body.model_dump())
    db.add(product)
    await db.flush()
    return product


@router.put("/{product_id}", response_model=ProductOut)
async def update_product(
    product_id: int,
    body: ProductUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    product = await _get_product(db, product_id)
    require_warehouse_role(principal, {ROLE_ADMIN}, product.warehouse_id)

    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if "product_type_id" in changes:
        await _ensure_product_type(db, changes["product_type_id"])
    for field, value in changes.items():
        setattr(product, field, value)

    await db.flush()
    return product


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    product = await _get_product(db, product_id)
    require_warehouse_role(principal, {ROLE_ADMIN}, product.warehouse_id)

    await db.delete(product)
    await db.flush()
