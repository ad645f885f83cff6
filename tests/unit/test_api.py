# tests/unit/test_api.py
"""HTTP layer: routing, envelopes and error mapping, services on in-memory stores."""
from datetime import UTC, datetime

import pytest

from config.settings import settings
from src.main import app
from src.rs_catalog.api.router import get_catalog_service
from src.rs_catalog.application.service import CatalogApplicationService
from src.rs_coupon.api.router import get_coupon_service
from src.rs_coupon.application.service import CouponApplicationService
from src.rs_order.api.router import get_order_service
from src.rs_order.application.service import OrderApplicationService

NOW = datetime(2025, 1, 1, 14, 0, tzinfo=UTC)
BASE = "/api/v1/restaurants/r1"

ORDER_BODY = {
    "channel": "dine_in",
    "table_id": "T7",
    "items": [
        {"product_id": "burger", "name": "Burger", "qty": 1, "unit_price": 2890},
        {"product_id": "soda", "name": "Soda", "qty": 1, "unit_price": 590},
    ],
}


@pytest.fixture
def stores(make_store):
    """One store per (tenant, collection), created on first use."""
    created: dict[tuple[str, str], object] = {}

    def get(tenant: str, collection: str):
        key = (tenant, collection)
        if key not in created:
            created[key] = make_store(collection)
        return created[key]

    return get


@pytest.fixture(autouse=True)
def overrides(stores):
    clock = lambda: NOW  # noqa: E731

    def coupon_service(restaurant_id: str) -> CouponApplicationService:
        return CouponApplicationService(stores(restaurant_id, "coupons"), clock=clock)

    def order_service(restaurant_id: str) -> OrderApplicationService:
        return OrderApplicationService(
            stores(restaurant_id, "orders"), coupon_service(restaurant_id), clock=clock
        )

    def catalog_service(restaurant_id: str) -> CatalogApplicationService:
        return CatalogApplicationService(stores(restaurant_id, "products"))

    app.dependency_overrides[get_coupon_service] = coupon_service
    app.dependency_overrides[get_order_service] = order_service
    app.dependency_overrides[get_catalog_service] = catalog_service
    yield
    app.dependency_overrides.clear()


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestOrderRoutes:
    @pytest.mark.asyncio
    async def test_create_and_get(self, client):
        resp = await client.post(f"{BASE}/orders", json=ORDER_BODY)
        assert resp.status_code == 201
        body = resp.json()
        assert body["code"] == 0
        assert body["request_id"] == resp.headers["x-request-id"]
        order = body["data"]
        assert order["amounts"]["total"] == 3828
        assert order["status"] == "placed"

        got = await client.get(f"{BASE}/orders/{order['id']}")
        assert got.json()["data"]["id"] == order["id"]

    @pytest.mark.asyncio
    async def test_tenants_are_isolated(self, client):
        created = (await client.post(f"{BASE}/orders", json=ORDER_BODY)).json()["data"]
        resp = await client.get(f"/api/v1/restaurants/r2/orders/{created['id']}")
        assert resp.status_code == 404
        assert resp.json()["error_type"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_client_amounts_ignored(self, client):
        body = {**ORDER_BODY, "amounts": {"total": 1}}
        resp = await client.post(f"{BASE}/orders", json=body)
        assert resp.json()["data"]["amounts"]["total"] == 3828

    @pytest.mark.asyncio
    async def test_empty_items_is_validation_error(self, client):
        resp = await client.post(f"{BASE}/orders", json={**ORDER_BODY, "items": []})
        assert resp.status_code == 422
        body = resp.json()
        assert body["code"] == 1001
        assert body["error_type"] == "VALIDATION"
        assert "items" in body["message"]

    @pytest.mark.asyncio
    async def test_status_flow_and_conflict(self, client):
        order_id = (await client.post(f"{BASE}/orders", json=ORDER_BODY)).json()["data"]["id"]
        ok = await client.patch(f"{BASE}/orders/{order_id}/status", json={"status": "confirmed"})
        assert ok.json()["data"]["status"] == "confirmed"

        bad = await client.patch(f"{BASE}/orders/{order_id}/status", json={"status": "closed"})
        assert bad.status_code == 409
        assert bad.json()["error_type"] == "CONFLICT"

    @pytest.mark.asyncio
    async def test_unknown_status_value(self, client):
        order_id = (await client.post(f"{BASE}/orders", json=ORDER_BODY)).json()["data"]["id"]
        resp = await client.patch(f"{BASE}/orders/{order_id}/status", json={"status": "shipped"})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_cancel_with_and_without_body(self, client):
        a = (await client.post(f"{BASE}/orders", json=ORDER_BODY)).json()["data"]["id"]
        b = (await client.post(f"{BASE}/orders", json=ORDER_BODY)).json()["data"]["id"]
        with_reason = await client.post(f"{BASE}/orders/{a}/cancel", json={"reason": "no stock"})
        assert with_reason.json()["data"]["cancel_reason"] == "no stock"
        bare = await client.post(f"{BASE}/orders/{b}/cancel")
        assert bare.json()["data"]["status"] == "canceled"

    @pytest.mark.asyncio
    async def test_payment(self, client):
        order_id = (await client.post(f"{BASE}/orders", json=ORDER_BODY)).json()["data"]["id"]
        resp = await client.post(
            f"{BASE}/orders/{order_id}/payments", json={"method": "pix", "amount": 3828}
        )
        assert resp.json()["data"]["amount_paid"] == 3828

        bad = await client.post(
            f"{BASE}/orders/{order_id}/payments", json={"method": "pix", "amount": 0}
        )
        assert bad.status_code == 422

    @pytest.mark.asyncio
    async def test_list_and_cursor(self, client):
        for _ in range(3):
            await client.post(f"{BASE}/orders", json=ORDER_BODY)
        page = (await client.get(f"{BASE}/orders", params={"limit": 2})).json()["data"]
        assert page["total"] == 3
        assert page["has_next"] is True

        first = (await client.get(f"{BASE}/orders/cursor", params={"limit": 2})).json()["data"]
        assert first["has_more"] is True
        rest = (
            await client.get(
                f"{BASE}/orders/cursor", params={"limit": 2, "cursor": first["next_cursor"]}
            )
        ).json()["data"]
        assert len(rest["items"]) == 1
        assert rest["has_more"] is False

    @pytest.mark.asyncio
    async def test_mixed_offset_date_range(self, client):
        await client.post(f"{BASE}/orders", json=ORDER_BODY)
        params = {"date_from": "2024-01-01T00:00:00", "date_to": "2025-12-31T00:00:00Z"}
        resp = await client.get(f"{BASE}/orders", params=params)
        assert resp.status_code == 200
        assert resp.json()["data"]["total"] == 1

        inverted = {"date_from": "2025-12-31T00:00:00", "date_to": "2024-01-01T00:00:00Z"}
        bad = await client.get(f"{BASE}/orders", params=inverted)
        assert bad.status_code == 422
        assert bad.json()["error_type"] == "VALIDATION"

    @pytest.mark.asyncio
    async def test_bad_cursor(self, client):
        resp = await client.get(f"{BASE}/orders/cursor", params={"cursor": "garbage!"})
        assert resp.status_code == 422
        assert resp.json()["code"] == 1005

    @pytest.mark.asyncio
    async def test_limit_out_of_range(self, client):
        resp = await client.get(f"{BASE}/orders", params={"limit": 500})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_active_recent_attention_analytics(self, client):
        await client.post(f"{BASE}/orders", json=ORDER_BODY)
        for path in ("active", "recent", "attention", "analytics"):
            resp = await client.get(f"{BASE}/orders/{path}")
            assert resp.status_code == 200, path
        analytics = (await client.get(f"{BASE}/orders/analytics")).json()["data"]
        assert analytics["total_orders"] == 1
        assert analytics["total_revenue_display"] == "R$ 38.28"

    @pytest.mark.asyncio
    async def test_analytics_mixed_offset_range(self, client):
        await client.post(f"{BASE}/orders", json=ORDER_BODY)
        params = {"date_from": "2024-01-01T00:00:00", "date_to": "2025-12-31T00:00:00Z"}
        resp = await client.get(f"{BASE}/orders/analytics", params=params)
        assert resp.status_code == 200
        assert resp.json()["data"]["total_orders"] == 1

        inverted = {"date_from": "2025-12-31T00:00:00", "date_to": "2024-01-01T00:00:00Z"}
        bad = await client.get(f"{BASE}/orders/analytics", params=inverted)
        assert bad.status_code == 422
        assert bad.json()["code"] == 1001


class TestCouponRoutes:
    @pytest.mark.asyncio
    async def test_create_then_apply(self, client):
        created = await client.post(f"{BASE}/coupons", json={
            "code": "save10", "type": "percent", "value": 10,
            "valid_from": "2024-01-01T00:00:00Z", "valid_to": "2025-12-31T00:00:00Z",
        })
        assert created.status_code == 201
        assert created.json()["data"]["code"] == "SAVE10"

        check = (await client.post(
            f"{BASE}/coupons/validate", json={"code": "save10", "subtotal": 3480}
        )).json()["data"]
        assert check["valid"] is True
        assert check["discount"] == 348

        order = (await client.post(
            f"{BASE}/orders", json={**ORDER_BODY, "coupon_code": "save10"}
        )).json()["data"]
        assert order["amounts"]["discounts"] == 348

    @pytest.mark.asyncio
    async def test_create_with_mixed_offsets(self, client):
        body = {"code": "naive1", "type": "fixed", "value": 500,
                "valid_from": "2024-01-01T00:00:00", "valid_to": "2025-12-31T00:00:00Z"}
        created = await client.post(f"{BASE}/coupons", json=body)
        assert created.status_code == 201

        inverted = {**body, "code": "naive2", "valid_from": "2026-01-01T00:00:00"}
        bad = await client.post(f"{BASE}/coupons", json=inverted)
        assert bad.status_code == 422
        assert bad.json()["error_type"] == "VALIDATION"

    @pytest.mark.asyncio
    async def test_short_code_is_not_found(self, client):
        resp = await client.post(f"{BASE}/coupons/validate", json={"code": "X", "subtotal": 100})
        assert resp.status_code == 200
        assert resp.json()["data"]["result"] == "NOT_FOUND"
        assert resp.json()["data"]["valid"] is False

    @pytest.mark.asyncio
    async def test_rejected_coupon_on_order(self, client):
        resp = await client.post(f"{BASE}/orders", json={**ORDER_BODY, "coupon_code": "NOPE"})
        assert resp.status_code == 422
        assert resp.json()["code"] == 3002


class TestCatalogRoutes:
    @pytest.mark.asyncio
    async def test_list_toggle_reorder(self, client, stores):
        products = stores("r1", "products")
        pid = products.seed({
            "name": "Fries", "description": "", "category": "sides",
            "price": 1290, "available": True, "position": 0,
        })
        listing = (await client.get(f"{BASE}/products", params={"available": "true"})).json()
        assert listing["data"]["items"][0]["id"] == pid

        flag = (await client.post(f"{BASE}/products/{pid}/highlight")).json()["data"]
        assert flag["value"] is True
        special = (await client.post(f"{BASE}/products/{pid}/day-special")).json()["data"]
        assert special["flag"] == "isDaySpecial"

        moved = await client.put(
            f"{BASE}/products/positions", json={"updates": [{"id": pid, "position": 3}]}
        )
        assert moved.json()["data"]["updated"] == 1

    @pytest.mark.asyncio
    async def test_missing_product(self, client):
        resp = await client.post(f"{BASE}/products/ghost/highlight")
        assert resp.status_code == 404
        assert resp.json()["code"] == 4001


class TestErrorMapping:
    @pytest.mark.asyncio
    async def test_store_error_detail_hidden(self, client, stores, monkeypatch):
        monkeypatch.setattr(settings, "DEBUG", False)
        stores("r1", "orders").fail_on = "count"
        resp = await client.get(f"{BASE}/orders")
        assert resp.status_code == 503
        body = resp.json()
        assert body["error_type"] == "STORE_ERROR"
        assert "simulated outage" not in body["message"]

    @pytest.mark.asyncio
    async def test_store_error_detail_in_debug(self, client, stores, monkeypatch):
        monkeypatch.setattr(settings, "DEBUG", True)
        stores("r1", "orders").fail_on = "count"
        resp = await client.get(f"{BASE}/orders")
        assert "simulated outage" in resp.json()["message"]

    @pytest.mark.asyncio
    async def test_unhandled_exception_is_internal(self, client, monkeypatch):
        monkeypatch.setattr(settings, "DEBUG", False)

        async def boom(self):
            raise RuntimeError("secret stack detail")

        monkeypatch.setattr(OrderApplicationService, "find_active", boom)
        resp = await client.get(f"{BASE}/orders/active")
        assert resp.status_code == 500
        body = resp.json()
        assert body["error_type"] == "INTERNAL"
        assert "secret" not in body["message"]
