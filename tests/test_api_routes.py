from decimal import Decimal
from uuid import uuid4

from agrotrace.core.deps import get_chain_recorder
from agrotrace.main import app
from agrotrace.services.blockchain import ChainRecordResult


class FakeRecorder:
    """Connected recorder that always succeeds."""

    is_connected = True

    async def record_batch_on_chain(self, batch_id, chain_args):
        return ChainRecordResult(success=True, tx_hash="0xabc123", batch_id="7")


def _processing_payload(**overrides):
    payload = {
        "farmer_id": "F1",
        "processor_id": "P1",
        "batch": {"id": "BTH-1", "name": "Lot 1", "quantity": 20, "farmer_name": "Green Farm"},
        "total_amount": "200.00",
        "delivery": {"address": "Mill Rd 4"},
    }
    payload.update(overrides)
    return payload


class TestOrderRoutes:
    def test_create_processing_order(self, client):
        """Processing orders are created pending"""
        response = client.post("/api/v1/orders/processing", json=_processing_payload())

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["status"] == "pending"
        assert body["data"]["farmer_id"] == "F1"
        assert Decimal(body["data"]["total_amount"]) == Decimal("200")

    def test_consumer_checkout_returns_one_order_per_line(self, client):
        payload = {
            "distributor_id": "D1",
            "consumer_id": "C1",
            "items": [
                {"id": "PRD-1", "name": "Flour", "quantity": 2, "price": "3.50"},
                {"id": "PRD-2", "name": "Chips", "quantity": 1, "price": "1.00"},
            ],
            "payment_reference": "PAY-1",
        }
        response = client.post("/api/v1/orders/consumer", json=payload)

        assert response.status_code == 201
        orders = response.json()["data"]
        assert [o["status"] for o in orders] == ["confirmed", "confirmed"]
        assert [Decimal(o["total_amount"]) for o in orders] == [Decimal("7"), Decimal("1")]

    def test_consumer_checkout_needs_items(self, client):
        response = client.post("/api/v1/orders/consumer", json={"distributor_id": "D1", "consumer_id": "C1", "items": []})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "validation_error"

    def test_user_orders_by_role(self, client):
        client.post("/api/v1/orders/processing", json=_processing_payload())

        farmer = client.get("/api/v1/orders/users/F1", params={"role": "farmer"}).json()["data"]
        processor = client.get("/api/v1/orders/users/P1", params={"role": "processor"}).json()["data"]

        assert farmer["incoming"] == []
        assert len(farmer["outgoing"]) == 1
        assert len(processor["incoming"]) == 1
        assert processor["outgoing"] == []

    def test_invalid_role_is_rejected(self, client):
        response = client.get("/api/v1/orders/users/F1", params={"role": "auditor"})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "validation_error"

    def test_status_update_and_statistics(self, client):
        order_id = client.post("/api/v1/orders/processing", json=_processing_payload()).json()["data"]["id"]

        response = client.patch(
            f"/api/v1/orders/{order_id}/status",
            json={"status": "delivered", "extra": {"inspection": "passed"}},
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "delivered"
        assert response.json()["data"]["details"] == {"inspection": "passed"}

        stats = client.get("/api/v1/orders/users/F1/statistics", params={"role": "farmer"}).json()["data"]
        assert stats["total"] == 1
        assert stats["delivered"] == 1
        assert Decimal(stats["total_revenue"]) == Decimal("200")

    def test_tracking_generates_number_when_missing(self, client):
        order_id = client.post("/api/v1/orders/processing", json=_processing_payload()).json()["data"]["id"]

        response = client.post(f"/api/v1/orders/{order_id}/tracking", json={"estimated_delivery": "2026-12-01"})

        data = response.json()["data"]
        assert data["status"] == "shipped"
        assert data["tracking_number"].startswith("TRK-")
        assert data["estimated_delivery"] == "2026-12-01"

    def test_get_order_not_found(self, client):
        response = client.get(f"/api/v1/orders/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["success"] is False
        assert response.json()["error"]["code"] == "http_error"

    def test_status_update_not_found(self, client):
        response = client.patch(f"/api/v1/orders/{uuid4()}/status", json={"status": "shipped"})
        assert response.status_code == 404


class TestInventoryRoutes:
    def _init(self, client, item_id="BTH-1", qty=100):
        return client.post("/api/v1/inventory/items", json={
            "item_id": item_id, "item_type": "batch", "initial_quantity": qty,
            "owner_id": "F1", "owner_role": "farmer",
        })

    def test_stock_lifecycle(self, client):
        assert self._init(client).status_code == 201

        reserved = client.post("/api/v1/inventory/BTH-1/reserve", json={"quantity": 30, "order_id": "ORD-1"})
        assert reserved.json()["data"]["available_quantity"] == 70

        client.post("/api/v1/inventory/BTH-1/release", json={"quantity": 30, "order_id": "ORD-1"})
        sold = client.post("/api/v1/inventory/BTH-1/sale", json={"quantity": 20, "buyer_id": "P1"}).json()["data"]
        assert sold["current_quantity"] == 80
        assert sold["sold_quantity"] == 20
        assert sold["low_stock_alert"] is False

        available = client.get("/api/v1/inventory/BTH-1/available").json()["data"]
        assert available["available_quantity"] == 80

    def test_add_stock_to_untracked_item_is_404(self, client):
        response = client.post("/api/v1/inventory/NOPE/add", json={"quantity": 5})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "http_error"

    def test_untracked_item_has_nothing_available(self, client):
        data = client.get("/api/v1/inventory/NOPE/available").json()["data"]
        assert data["available_quantity"] == 0

    def test_user_views(self, client):
        self._init(client, "BTH-1", 100)
        self._init(client, "BTH-2", 4)

        items = client.get("/api/v1/inventory/users/F1", params={"role": "farmer"}).json()["data"]
        low = client.get("/api/v1/inventory/users/F1/low-stock", params={"role": "farmer"}).json()["data"]
        stats = client.get("/api/v1/inventory/users/F1/stats", params={"role": "farmer"}).json()["data"]

        assert len(items) == 2
        assert [i["item_id"] for i in low] == ["BTH-2"]
        assert stats["total_current_stock"] == 104
        assert stats["low_stock_items"] == 1

    def test_sync_endpoint(self, client):
        client.post("/api/v1/catalog/batches", json={"farmer_id": "F9", "quantity": 40, "record_on_chain": False})

        first = client.post("/api/v1/inventory/sync").json()["data"]
        second = client.post("/api/v1/inventory/sync").json()["data"]

        assert first == {"items_created": 1, "sales_applied": 0}
        assert second == {"items_created": 0, "sales_applied": 0}


class TestNotificationRoutes:
    def test_refresh_creates_alerts_and_reports_interval(self, client):
        client.post("/api/v1/inventory/items", json={
            "item_id": "BTH-1", "item_type": "batch", "initial_quantity": 3,
            "owner_id": "F1", "owner_role": "farmer",
        })

        first = client.post("/api/v1/notifications/users/F1/refresh", params={"role": "farmer"}).json()["data"]
        second = client.post("/api/v1/notifications/users/F1/refresh", params={"role": "farmer"}).json()["data"]

        assert [n["type"] for n in first["created"]] == ["low_stock"]
        assert first["unread"] == 1
        assert first["refresh_interval"] == 30
        assert second["created"] == []

    def test_read_delete_and_unread_count(self, client):
        client.post("/api/v1/inventory/items", json={
            "item_id": "BTH-1", "item_type": "batch", "initial_quantity": 0,
            "owner_id": "F1", "owner_role": "farmer",
        })
        client.post("/api/v1/notifications/users/F1/refresh", params={"role": "farmer"})
        [notification] = client.get("/api/v1/notifications/users/F1").json()["data"]
        assert notification["priority"] == "urgent"

        assert client.post(f"/api/v1/notifications/{notification['id']}/read").status_code == 200
        assert client.get("/api/v1/notifications/users/F1/unread-count").json()["data"]["unread"] == 0

        assert client.delete(f"/api/v1/notifications/{notification['id']}").status_code == 200
        assert client.delete(f"/api/v1/notifications/{notification['id']}").status_code == 404

    def test_mark_all_read(self, client):
        for item_id in ("BTH-1", "BTH-2"):
            client.post("/api/v1/inventory/items", json={
                "item_id": item_id, "item_type": "batch", "initial_quantity": 1,
                "owner_id": "F1", "owner_role": "farmer",
            })
        client.post("/api/v1/notifications/users/F1/refresh", params={"role": "farmer"})

        response = client.post("/api/v1/notifications/users/F1/read-all")

        assert response.json()["data"] == {"updated": 2}
        stats = client.get("/api/v1/notifications/users/F1/stats").json()["data"]
        assert stats["total"] == 2
        assert stats["unread"] == 0

    def test_settings_round_trip(self, client):
        defaults = client.get("/api/v1/notifications/users/U1/settings").json()["data"]
        assert defaults["email_notifications"] is False

        updated = client.patch("/api/v1/notifications/users/U1/settings", json={"email_notifications": True}).json()["data"]
        assert updated["email_notifications"] is True
        assert updated["push_notifications"] is True


class TestCatalogRoutes:
    def test_batch_saved_locally_without_wallet(self, client):
        response = client.post("/api/v1/catalog/batches", json={"farmer_id": "F1", "quantity": 50})

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["batch"]["farmer_id"] == "F1"
        assert data["chain"]["success"] is False
        assert data["chain"]["reason"] == "wallet_not_connected"
        assert data["chain"]["local_only"] is True

    def test_batch_recorded_with_connected_recorder(self, client):
        app.dependency_overrides[get_chain_recorder] = lambda: FakeRecorder()

        response = client.post("/api/v1/catalog/batches", json={"farmer_id": "F1", "quantity": 50})

        data = response.json()["data"]
        assert data["chain"]["success"] is True
        assert data["batch"]["chain_tx_hash"] == "0xabc123"
        assert data["chain"]["explorer_url"].endswith("/tx/0xabc123")

    def test_retry_chain_recording_for_missing_batch(self, client):
        response = client.post("/api/v1/catalog/batches/BTH-NOPE/chain", json={})
        assert response.status_code == 404

    def test_product_needs_an_owner(self, client):
        response = client.post("/api/v1/catalog/products", json={"name": "Flour", "quantity": 3})
        assert response.status_code == 400

    def test_products_filtered_by_owner(self, client):
        client.post("/api/v1/catalog/products", json={"name": "Flour", "processor_id": "P1", "quantity": 3})
        client.post("/api/v1/catalog/products", json={"name": "Chips", "distributor_id": "D1", "quantity": 9})

        products = client.get("/api/v1/catalog/products", params={"processor_id": "P1"}).json()["data"]

        assert [p["name"] for p in products] == ["Flour"]

    def test_batch_trace_starts_with_created_event(self, client):
        batch_id = client.post("/api/v1/catalog/batches", json={"farmer_id": "F1", "quantity": 50}).json()["data"]["batch"]["id"]

        added = client.post(f"/api/v1/catalog/batches/{batch_id}/trace", json={
            "event_type": "received", "user_id": "P1", "user_role": "processor", "location": "Mill",
        })
        assert added.status_code == 201

        trace = client.get(f"/api/v1/catalog/batches/{batch_id}/trace").json()["data"]
        assert [e["event_type"] for e in trace] == ["created", "received"]
        assert trace[1]["location"] == "Mill"

        summary = client.get(f"/api/v1/catalog/batches/{batch_id}/trace/summary").json()["data"]
        assert summary["participating_roles"] == ["farmer", "processor"]

    def test_role_cannot_add_foreign_event_type(self, client):
        batch_id = client.post("/api/v1/catalog/batches", json={"farmer_id": "F1", "quantity": 50}).json()["data"]["batch"]["id"]

        response = client.post(f"/api/v1/catalog/batches/{batch_id}/trace", json={
            "event_type": "processed", "user_id": "C1", "user_role": "consumer",
        })

        assert response.status_code == 403
        assert "not authorized" in response.json()["error"]["message"]
        assert len(client.get(f"/api/v1/catalog/batches/{batch_id}/trace").json()["data"]) == 1

    def test_trace_for_missing_batch_is_404(self, client):
        assert client.get("/api/v1/catalog/batches/BTH-NOPE/trace").status_code == 404
        response = client.post("/api/v1/catalog/batches/BTH-NOPE/trace", json={
            "event_type": "harvested", "user_id": "F1", "user_role": "farmer",
        })
        assert response.status_code == 404

    def test_verify_and_qr(self, client):
        batch_id = client.post("/api/v1/catalog/batches", json={"farmer_id": "F1", "quantity": 50}).json()["data"]["batch"]["id"]
        [event] = client.get(f"/api/v1/catalog/batches/{batch_id}/trace").json()["data"]

        verified = client.post(f"/api/v1/catalog/trace/{event['id']}/verify",
                               json={"verifier_id": "D1", "verifier_role": "distributor"}).json()["data"]
        qr = client.get(f"/api/v1/catalog/batches/{batch_id}/trace/qr").json()["data"]

        assert verified["verified"] is True
        assert verified["verified_by"] == "D1"
        assert qr["verify_url"].endswith(f"/verify/{batch_id}")
        assert qr["summary"]["current_stage"] == "created"
        missing = client.post(f"/api/v1/catalog/trace/{uuid4()}/verify",
                              json={"verifier_id": "D1", "verifier_role": "distributor"})
        assert missing.status_code == 404
