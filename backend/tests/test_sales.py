"""Tests for sale registration, stock locking and the warehouse-scoped
product/sale routes."""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy.dialects import postgresql

from negocify.database import async_session
from negocify.middleware.exceptions import (
    BusinessLogicError,
    InsufficientStockError,
    ResourceNotFoundError,
)
from negocify.models import Product, Sale, SaleType
from negocify.schemas.sale import SaleCreate, SaleItem
from negocify.services import sales as sales_service
from negocify.services.sales import compute_net_amount, create_sale


def sale_body(seed, quantity=1, gross_amount=11900, sale_type_id=None, product_id=None,
              warehouse_id=None):
    return SaleCreate(
        gross_amount=gross_amount,
        warehouse_id=warehouse_id or seed.central_id,
        sale_type_id=sale_type_id or seed.cash_id,
        products=[SaleItem(product_id=product_id or seed.product_id, quantity=quantity)],
    )


async def current_stock(product_id: int) -> int:
    async with async_session() as session:
        product = await session.get(Product, product_id)
        return product.stock


# ── Net amount ───────────────────────────────────────────────────

@pytest.mark.unit
class TestComputeNetAmount:

    def test_without_commission(self):
        assert compute_net_amount(11900, Decimal("0"), 0.19) == 10000

    def test_with_card_commission(self):
        # 11900 / 1.19 - 11900 * 2.95% = 10000 - 351.05
        assert compute_net_amount(11900, Decimal("2.95"), 0.19) == 9649

    def test_below_half_rounds_down(self):
        # 119 / 1.19 - 119 * 0.5% = 100 - 0.595 = 99.405
        assert compute_net_amount(119, Decimal("0.50"), 0.19) == 99

    def test_half_rounds_up(self):
        # 100 / 1 - 100 * 0.5% = 99.5
        assert compute_net_amount(100, Decimal("0.50"), 0) == 100


# ── create_sale ──────────────────────────────────────────────────

@pytest.mark.asyncio
class TestCreateSale:

    async def test_records_sale_and_decrements_stock(self, db_session, seed):
        sale = await create_sale(db_session, sale_body(seed, quantity=2, sale_type_id=seed.card_id))
        await db_session.commit()

        assert sale.id is not None
        assert sale.net_amount == 9649
        assert sale.sale_type.name == "Tarjeta"
        assert await current_stock(seed.product_id) == 3

    async def test_whole_stock_can_be_sold(self, db_session, seed):
        await create_sale(db_session, sale_body(seed, quantity=5))
        await db_session.commit()

        assert await current_stock(seed.product_id) == 0

    async def test_insufficient_stock(self, db_session, seed):
        with pytest.raises(InsufficientStockError) as exc_info:
            await create_sale(db_session, sale_body(seed, quantity=6))

        assert exc_info.value.details == {"product_id": seed.product_id, "stock": 5, "requested": 6}

    async def test_repeated_product_lines_are_summed(self, db_session, seed):
        body = SaleCreate(
            gross_amount=1000,
            warehouse_id=seed.central_id,
            sale_type_id=seed.cash_id,
            products=[
                SaleItem(product_id=seed.product_id, quantity=3),
                SaleItem(product_id=seed.product_id, quantity=3),
            ],
        )
        with pytest.raises(InsufficientStockError):
            await create_sale(db_session, body)

    async def test_product_from_another_warehouse(self, db_session, seed):
        body = sale_body(seed, product_id=seed.norte_product_id)

        with pytest.raises(ResourceNotFoundError):
            await create_sale(db_session, body)

    async def test_unknown_sale_type(self, db_session, seed):
        with pytest.raises(ResourceNotFoundError):
            await create_sale(db_session, sale_body(seed, sale_type_id=9999))

    async def test_negative_net_amount(self, db_session, seed):
        greedy = SaleType(name="Usura", commission=Decimal("100.00"))
        db_session.add(greedy)
        await db_session.flush()

        with pytest.raises(BusinessLogicError) as exc_info:
            await create_sale(db_session, sale_body(seed, gross_amount=100, sale_type_id=greedy.id))

        assert exc_info.value.error_code == "NEGATIVE_NET_AMOUNT"


@pytest.mark.concurrency
@pytest.mark.asyncio
class TestConcurrentSales:

    async def test_stock_rows_are_locked(self, db_session, seed, monkeypatch):
        issued = []
        build_stmt = sales_service.lock_products_stmt

        def recording_stmt(warehouse_id, product_ids):
            stmt = build_stmt(warehouse_id, product_ids)
            issued.append(stmt)
            return stmt

        monkeypatch.setattr(sales_service, "lock_products_stmt", recording_stmt)
        await create_sale(db_session, sale_body(seed, quantity=1))

        assert len(issued) == 1
        sql = str(issued[0].compile(dialect=postgresql.dialect()))
        assert "FOR UPDATE" in sql
        assert "ORDER BY producto.id" in sql

    async def test_only_one_of_two_full_stock_sales_succeeds(self, seed):
        """SQLite serializes whole transactions (BEGIN IMMEDIATE), so this shows
        the outcome but not the row lock itself; see test_stock_rows_are_locked.
        """
        async def attempt() -> str:
            async with async_session() as session:
                try:
                    await create_sale(session, sale_body(seed, quantity=5))
                    await session.commit()
                    return "sold"
                except InsufficientStockError:
                    await session.rollback()
                    return "insufficient"

        outcomes = await asyncio.gather(attempt(), attempt())

        assert sorted(outcomes) == ["insufficient", "sold"]
        assert await current_stock(seed.product_id) == 0

        async with async_session() as session:
            sales = (await session.execute(Sale.__table__.select())).all()
        assert len(sales) == 1


# ── Sale routes ──────────────────────────────────────────────────

@pytest.mark.api
@pytest.mark.asyncio
class TestSaleEndpoints:

    def _payload(self, seed, warehouse_id=None, product_id=None, quantity=1):
        return {
            "gross_amount": 11900,
            "warehouse_id": warehouse_id or seed.central_id,
            "sale_type_id": seed.cash_id,
            "products": [{"product_id": product_id or seed.product_id, "quantity": quantity}],
        }

    async def test_employee_sells_in_own_warehouse(self, client, seed, headers):
        response = await client.post("/api/sales/", json=self._payload(seed), headers=headers["clerk"])

        assert response.status_code == 201
        data = response.json()
        assert data["net_amount"] == 10000
        assert data["sale_type"]["name"] == "Efectivo"
        assert await current_stock(seed.product_id) == 4

    async def test_employee_cannot_sell_elsewhere(self, client, seed, headers):
        response = await client.post(
            "/api/sales/",
            json=self._payload(seed, warehouse_id=seed.norte_id, product_id=seed.norte_product_id),
            headers=headers["clerk"],
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "PERMISSION_DENIED"
        assert await current_stock(seed.norte_product_id) == 10

    async def test_role_is_per_warehouse(self, client, seed, headers):
        # manager is only "empleado" in Norte, which is enough to sell
        response = await client.post(
            "/api/sales/",
            json=self._payload(seed, warehouse_id=seed.norte_id, product_id=seed.norte_product_id),
            headers=headers["manager"],
        )

        assert response.status_code == 201

    async def test_system_admin_sells_anywhere(self, client, seed, headers):
        response = await client.post(
            "/api/sales/", json=self._payload(seed), headers=headers["sysadmin"]
        )

        assert response.status_code == 201

    async def test_user_without_roles_is_denied(self, client, seed, headers):
        response = await client.post(
            "/api/sales/", json=self._payload(seed), headers=headers["outsider"]
        )

        assert response.status_code == 403

    async def test_insufficient_stock_rolls_back(self, client, seed, headers):
        response = await client.post(
            "/api/sales/", json=self._payload(seed, quantity=9), headers=headers["clerk"]
        )

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "INSUFFICIENT_STOCK"
        assert error["details"]["stock"] == 5
        assert await current_stock(seed.product_id) == 5

    async def test_list_and_get_sales(self, client, seed, headers):
        for _ in range(3):
            await client.post("/api/sales/", json=self._payload(seed), headers=headers["clerk"])

        response = await client.get(
            f"/api/sales/warehouse/{seed.central_id}?limit=2", headers=headers["clerk"]
        )
        assert response.status_code == 200
        page = response.json()
        assert page["total"] == 3
        assert len(page["items"]) == 2

        sale_id = page["items"][0]["id"]
        assert (await client.get(f"/api/sales/{sale_id}", headers=headers["clerk"])).status_code == 200
        assert (await client.get(f"/api/sales/{sale_id}", headers=headers["outsider"])).status_code == 403

    async def test_list_requires_role_in_warehouse(self, client, seed, headers):
        response = await client.get(
            f"/api/sales/warehouse/{seed.norte_id}", headers=headers["clerk"]
        )

        assert response.status_code == 403

    async def test_only_administrador_deletes_sales(self, client, seed, headers):
        created = await client.post(
            "/api/sales/", json=self._payload(seed), headers=headers["clerk"]
        )
        sale_id = created.json()["id"]

        denied = await client.delete(f"/api/sales/{sale_id}", headers=headers["clerk"])
        assert denied.status_code == 403

        deleted = await client.delete(f"/api/sales/{sale_id}", headers=headers["manager"])
        assert deleted.status_code == 204

        missing = await client.get(f"/api/sales/{sale_id}", headers=headers["manager"])
        assert missing.status_code == 404

    async def test_requires_authentication(self, client, seed):
        response = await client.post("/api/sales/", json=self._payload(seed))

        assert response.status_code == 401

    async def _record_sale(self, client, seed, headers) -> int:
        created = await client.post(
            "/api/sales/", json=self._payload(seed), headers=headers["clerk"]
        )
        assert created.status_code == 201
        return created.json()["id"]

    async def test_administrador_corrects_sale(self, client, seed, headers):
        sale_id = await self._record_sale(client, seed, headers)

        response = await client.put(
            f"/api/sales/{sale_id}",
            json={"sale_type_id": seed.card_id, "date": "2026-01-15T10:30:00"},
            headers=headers["manager"],
        )

        assert response.status_code == 200
        data = response.json()
        assert data["sale_type_id"] == seed.card_id
        assert data["sale_type"]["name"] == "Tarjeta"
        assert data["net_amount"] == 9649
        assert data["date"].startswith("2026-01-15T10:30:00")
        assert await current_stock(seed.product_id) == 4

    async def test_new_gross_amount_recomputes_net(self, client, seed, headers):
        sale_id = await self._record_sale(client, seed, headers)

        response = await client.put(
            f"/api/sales/{sale_id}", json={"gross_amount": 23800}, headers=headers["manager"]
        )

        assert response.status_code == 200
        assert response.json()["gross_amount"] == 23800
        assert response.json()["net_amount"] == 20000

    async def test_employee_cannot_correct_sale(self, client, seed, headers):
        sale_id = await self._record_sale(client, seed, headers)

        response = await client.put(
            f"/api/sales/{sale_id}", json={"gross_amount": 1}, headers=headers["clerk"]
        )

        assert response.status_code == 403
        stored = await client.get(f"/api/sales/{sale_id}", headers=headers["clerk"])
        assert stored.json()["gross_amount"] == 11900

    async def test_correction_with_unknown_sale_type(self, client, seed, headers):
        sale_id = await self._record_sale(client, seed, headers)

        response = await client.put(
            f"/api/sales/{sale_id}", json={"sale_type_id": 9999}, headers=headers["manager"]
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "RESOURCE_NOT_FOUND"

    async def test_correcting_unknown_sale(self, client, seed, headers):
        response = await client.put(
            "/api/sales/424242", json={"gross_amount": 100}, headers=headers["sysadmin"]
        )

        assert response.status_code == 404


# ── Sale type routes ─────────────────────────────────────────────

@pytest.mark.api
@pytest.mark.asyncio
class TestSaleTypeEndpoints:

    async def test_anyone_authenticated_can_list(self, client, seed, headers):
        response = await client.get("/api/sale-types/", headers=headers["outsider"])

        assert response.status_code == 200
        assert [t["name"] for t in response.json()] == ["Efectivo", "Tarjeta"]

    async def test_employee_cannot_create(self, client, seed, headers):
        response = await client.post(
            "/api/sale-types/",
            json={"name": "Transferencia", "commission": "0.50"},
            headers=headers["clerk"],
        )

        assert response.status_code == 403

    async def test_warehouse_admin_can_create_and_update(self, client, seed, headers):
        created = await client.post(
            "/api/sale-types/",
            json={"name": "Transferencia", "commission": "0.50"},
            headers=headers["manager"],
        )
        assert created.status_code == 201

        updated = await client.put(
            f"/api/sale-types/{created.json()['id']}",
            json={"commission": "0.75"},
            headers=headers["manager"],
        )
        assert updated.status_code == 200
        assert Decimal(updated.json()["commission"]) == Decimal("0.75")

    async def test_commission_out_of_range(self, client, seed, headers):
        response = await client.post(
            "/api/sale-types/",
            json={"name": "Raro", "commission": "150"},
            headers=headers["sysadmin"],
        )

        assert response.status_code == 422

    async def test_unused_sale_type_can_be_deleted(self, client, seed, headers):
        response = await client.delete(f"/api/sale-types/{seed.card_id}", headers=headers["manager"])

        assert response.status_code == 204

    async def test_sale_type_in_use_cannot_be_deleted(self, client, seed, headers):
        await client.post(
            "/api/sales/",
            json={
                "gross_amount": 11900,
                "warehouse_id": seed.central_id,
                "sale_type_id": seed.cash_id,
                "products": [{"product_id": seed.product_id, "quantity": 1}],
            },
            headers=headers["clerk"],
        )

        response = await client.delete(f"/api/sale-types/{seed.cash_id}", headers=headers["manager"])

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "RESOURCE_IN_USE"
        assert error["details"] == {"sales": 1}


# ── Product routes ───────────────────────────────────────────────

@pytest.mark.api
@pytest.mark.asyncio
class TestProductEndpoints:

    def _payload(self, seed, warehouse_id):
        return {
            "name": "Galletas",
            "product_type_id": seed.product_type_id,
            "stock": 20,
            "min_stock": 5,
            "warehouse_id": warehouse_id,
        }

    async def test_employee_lists_own_warehouse(self, client, seed, headers):
        response = await client.get(
            f"/api/products/?warehouse_id={seed.central_id}", headers=headers["clerk"]
        )

        assert response.status_code == 200
        assert [p["id"] for p in response.json()] == [seed.product_id]

    async def test_employee_cannot_list_other_warehouse(self, client, seed, headers):
        response = await client.get(
            f"/api/products/?warehouse_id={seed.norte_id}", headers=headers["clerk"]
        )

        assert response.status_code == 403

    async def test_employee_cannot_create(self, client, seed, headers):
        response = await client.post(
            "/api/products/", json=self._payload(seed, seed.central_id), headers=headers["clerk"]
        )

        assert response.status_code == 403

    async def test_admin_creates_in_own_warehouse_only(self, client, seed, headers):
        created = await client.post(
            "/api/products/", json=self._payload(seed, seed.central_id), headers=headers["manager"]
        )
        assert created.status_code == 201
        assert created.json()["stock"] == 20

        elsewhere = await client.post(
            "/api/products/", json=self._payload(seed, seed.norte_id), headers=headers["manager"]
        )
        assert elsewhere.status_code == 403

    async def test_update_checks_product_warehouse(self, client, seed, headers):
        own = await client.put(
            f"/api/products/{seed.product_id}", json={"stock": 50}, headers=headers["manager"]
        )
        assert own.status_code == 200
        assert own.json()["stock"] == 50

        other = await client.put(
            f"/api/products/{seed.norte_product_id}", json={"stock": 50}, headers=headers["manager"]
        )
        assert other.status_code == 403

    async def test_delete(self, client, seed, headers):
        response = await client.delete(f"/api/products/{seed.product_id}", headers=headers["manager"])

        assert response.status_code == 204

    async def test_product_types(self, client, seed, headers):
        response = await client.get("/api/products/types", headers=headers["outsider"])

        assert response.status_code == 200
        assert response.json()[0]["name"] == "Bebidas"
