"""Warehouse-scoped sale routes.

  GET    /warehouse/{warehouse_id}  any role in the warehouse
  GET    /{sale_id}                 any role in the sale's warehouse
  POST   /                          "administrador" or "empleado" in the warehouse
  PUT    /{sale_id}                 "administrador" in the sale's warehouse
  DELETE /{sale_id}                 "administrador" in the sale's warehouse
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from negocify.auth.deps import get_current_principal, require_warehouse_role
from negocify.auth.permissions import ROLE_ADMIN, ROLE_EMPLOYEE
from negocify.auth.principal import Principal
from negocify.database import get_db
from negocify.middleware.exceptions import ResourceNotFoundError
from negocify.models.sale import Sale
from negocify.schemas.common import PaginatedResponse
from negocify.schemas.sale import SaleCreate, SaleOut, SaleUpdate
from negocify.services.sales import create_sale, update_sale

router = APIRouter()

SELLER_ROLES = {ROLE_ADMIN, ROLE_EMPLOYEE}


async def _get_sale(db: AsyncSession, sale_id: int) -> Sale:
    sale = await db.get(Sale, sale_id)
    if sale is None:
        raise ResourceNotFoundError("Sale", sale_id)
    return sale


@router.get("/warehouse/{warehouse_id}", response_model=PaginatedResponse[SaleOut])
async def list_warehouse_sales(
    warehouse_id: int,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_warehouse_role(principal, [], warehouse_id)

    total = await db.scalar(
        select(func.count(Sale.id)).where(Sale.warehouse_id == warehouse_id)
    ) or 0
    result = await db.execute(
        select(Sale)
        .where(Sale.warehouse_id == warehouse_id)
        .order_by(Sale.date.desc(), Sale.id.desc())
        .limit(limit)
        .offset(offset)
    )
    items = [SaleOut.model_validate(sale) for sale in result.scalars().all()]

    return PaginatedResponse(items=items, total=total, limit=limit, offset=offset)


@router.get("/{sale_id}", response_model=SaleOut)
async def get_sale(
    sale_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    sale = await _get_sale(db, sale_id)
    require_warehouse_role(principal, [], sale.warehouse_id)
    return sale


@router.post("/", response_model=SaleOut, status_code=status.HTTP_201_CREATED)
async def register_sale(
    body: SaleCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_warehouse_role(principal, SELLER_ROLES, body.warehouse_id)
    return await create_sale(db, body)


@router.put("/{sale_id}", response_model=SaleOut)
async def correct_sale(
    sale_id: int,
    body: SaleUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    sale = await _get_sale(db, sale_id)
    require_warehouse_role(principal, {ROLE_ADMIN}, sale.warehouse_id)
    return await update_sale(db, sale, body)


@router.delete("/{sale_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_sale(
    sale_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    sale = await _get_sale(db, sale_id)
    require_warehouse_role(principal, {ROLE_ADMIN}, sale.warehouse_id)

    await db.delete(sale)
    await db.flush()
