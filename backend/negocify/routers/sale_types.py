"""Sale types (payment channels) are shared by every warehouse.

Anyone authenticated can read them; only administrators change them.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from negocify.auth.deps import get_current_principal, require_any_admin
from negocify.auth.principal import Principal
from negocify.database import get_db
from negocify.middleware.exceptions import ResourceInUseError, ResourceNotFoundError
from negocify.models.sale import Sale, SaleType
from negocify.schemas.sale import SaleTypeCreate, SaleTypeOut, SaleTypeUpdate

router = APIRouter()


async def _get_sale_type(db: AsyncSession, sale_type_id: int) -> SaleType:
    sale_type = await db.get(SaleType, sale_type_id)
    if sale_type is None:
        raise ResourceNotFoundError("Sale type", sale_type_id)
    return sale_type


@router.get("/", response_model=list[SaleTypeOut])
async def list_sale_types(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    result = await db.execute(select(SaleType).order_by(SaleType.name))
    return result.scalars().all()


@router.get("/{sale_type_id}", response_model=SaleTypeOut)
async def get_sale_type(
    sale_type_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return await _get_sale_type(db, sale_type_id)


@router.post("/", response_model=SaleTypeOut, status_code=status.HTTP_201_CREATED)
async def create_sale_type(
    body: SaleTypeCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_any_admin),
):
    sale_type = SaleType(name=body.name, commission=body.commission)
    db.add(sale_type)
    await db.flush()
    return sale_type


@router.put("/{sale_type_id}", response_model=SaleTypeOut)
async def update_sale_type(
    sale_type_id: int,
    body: SaleTypeUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_any_admin),
):
    sale_type = await _get_sale_type(db, sale_type_id)
    if body.name is not None:
        sale_type.name = body.name
    if body.commission is not None:
        sale_type.commission = body.commission
    await db.flush()
    return sale_type


@router.delete("/{sale_type_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_sale_type(
    sale_type_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_any_admin),
):
    sale_type = await _get_sale_type(db, sale_type_id)

    sale_count = await db.scalar(
        select(func.count(Sale.id)).where(Sale.sale_type_id == sale_type_id)
    )
    if sale_count:
        raise ResourceInUseError("Sale type", sale_type_id, details={"sales": sale_count})

    await db.delete(sale_type)
    await db.flush()
