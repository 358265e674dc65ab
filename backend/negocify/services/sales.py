"""Sale registration and correction.

Creating a sale:
  - Validates the sale type and that every product belongs to the warehouse
  - Locks the product rows (SELECT ... FOR UPDATE, in id order) so two
    concurrent sales can't both pass the stock check on the same quantity
  - Computes the net amount: gross without VAT, minus the sale type's
    commission on the gross
  - Decrements stock and records the sale

Updating a sale changes its type, gross amount or date and recomputes the
net amount; stock stays as it is.
"""

import logging
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from negocify.config import settings
from negocify.middleware.exceptions import (
    BusinessLogicError,
    InsufficientStockError,
    ResourceNotFoundError,
)
from negocify.models.product import Product
from negocify.models.sale import Sale, SaleType
from negocify.schemas.sale import SaleCreate, SaleUpdate

logger = logging.getLogger(__name__)


def compute_net_amount(gross_amount: int, commission_pct: Decimal, vat_rate: float) -> int:
    """round(gross / (1 + VAT) - gross * commission%), halves rounded up."""
    gross = Decimal(gross_amount)
    net = gross / (Decimal(1) + Decimal(str(vat_rate))) - gross * Decimal(commission_pct) / 100
    return int(net.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _checked_net_amount(gross_amount: int, sale_type: SaleType) -> int:
    net_amount = compute_net_amount(gross_amount, sale_type.commission or 0, settings.vat_rate)
    if net_amount < 0:
        raise BusinessLogicError(
            f"Net amount would be negative ({net_amount}); check gross amount and commission",
            error_code="NEGATIVE_NET_AMOUNT",
            details={
                "gross_amount": gross_amount,
                "vat_rate": settings.vat_rate,
                "commission": str(sale_type.commission),
            },
        )
    return net_amount


def _requested_quantities(body: SaleCreate) -> dict[int, int]:
    quantities: dict[int, int] = {}
    for item in body.products:
        quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity
    return quantities


def lock_products_stmt(warehouse_id: int, product_ids: Iterable[int]) -> Select:
    """SELECT ... FOR UPDATE on the warehouse's products, in id order.

    A consistent lock order keeps two sales on overlapping products from
    deadlocking each other.
    """
    return (
        select(Product)
        .where(
            Product.id.in_(list(product_ids)),
            Product.warehouse_id == warehouse_id,
        )
        .order_by(Product.id)
        .with_for_update()
    )


async def create_sale(db: AsyncSession, body: SaleCreate) -> Sale:
    """Record a sale and decrement stock. Returns the flushed Sale.

    Raises:
        ResourceNotFoundError   unknown sale type, or products not in the warehouse
        InsufficientStockError  a product has less stock than requested
        BusinessLogicError      the computed net amount is negative
    """
    sale_type = await db.get(SaleType, body.sale_type_id)
    if sale_type is None:
        raise ResourceNotFoundError("Sale type", body.sale_type_id)

    quantities = _requested_quantities(body)

    # ── Lock stock rows for the rest of the transaction ─────────
    result = await db.execute(lock_products_stmt(body.warehouse_id, quantities))
    products = result.scalars().all()

    missing = sorted(set(quantities) - {p.id for p in products})
    if missing:
        raise ResourceNotFoundError(
            f"Products in warehouse {body.warehouse_id}",
            ", ".join(str(pid) for pid in missing),
        )

    for product in products:
        if product.stock < quantities[product.id]:
            raise InsufficientStockError(
                product_id=product.id,
                product_name=product.name,
                stock=product.stock,
                requested=quantities[product.id],
            )

    net_amount = _checked_net_amount(body.gross_amount, sale_type)

    sale = Sale(
        gross_amount=body.gross_amount,
        net_amount=net_amount,
        warehouse_id=body.warehouse_id,
        sale_type_id=sale_type.id,
        sale_type=sale_type,
    )
    db.add(sale)

    for product in products:
        product.stock -= quantities[product.id]

    await db.flush()

    logger.info(
        f"Sale {sale.id} recorded in warehouse {body.warehouse_id}",
        extra={"sale_id": sale.id, "warehouse_id": body.warehouse_id},
    )
    return sale


async def update_sale(db: AsyncSession, sale: Sale, body: SaleUpdate) -> Sale:
    """Change a sale's type, gross amount or date.

    The net amount is recomputed whenever the gross amount or the sale type
    changes. Stock is not touched.
    """
    sale_type = sale.sale_type
    if body.sale_type_id is not None and body.sale_type_id != sale.sale_type_id:
        sale_type = await db.get(SaleType, body.sale_type_id)
        if sale_type is None:
            raise ResourceNotFoundError("Sale type", body.sale_type_id)

    gross_amount = body.gross_amount if body.gross_amount is not None else sale.gross_amount
    if sale_type is not sale.sale_type or gross_amount != sale.gross_amount:
        sale.net_amount = _checked_net_amount(gross_amount, sale_type)
        sale.gross_amount = gross_amount
        sale.sale_type = sale_type
        sale.sale_type_id = sale_type.id

    if body.date is not None:
        sale.date = body.date

    await db.flush()
    return sale
