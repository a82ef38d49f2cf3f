"""Integration tests for the vendor, product, worker and maintenance endpoints."""

from grocery.catalog.product import Product
from grocery.order.state_machine import OrderStatus
from grocery.workforce.worker import Worker
from protean import current_domain


def _submit(client, name="Mama Nkechi's Pantry"):
    response = client.post(
        "/vendors",
        json={"store_name": name, "category": "African", "contact_email": "nkechi@example.com", "postcode": "SE15 4QL"},
    )
    assert response.status_code == 201
    return response.json()["vendor_id"]


class TestVendorAPI:
    def test_approve_and_list(self, client):
        vendor_id = _submit(client)
        _submit(client, "Still Pending")

        response = client.put(
            f"/vendors/{vendor_id}/decision",
            json={"decision": "Approve", "note": "Documents verified"},
            headers={"X-Actor-Role": "Admin"},
        )
        assert response.json() == {"status": "approved"}

        orderable = client.get("/vendors", params={"orderable": True}).json()
        assert [v["vendor_id"] for v in orderable] == [vendor_id]
        assert len(client.get("/vendors").json()) == 2

    def test_vendor_cannot_approve_itself(self, client):
        vendor_id = _submit(client)
        response = client.put(
            f"/vendors/{vendor_id}/decision",
            json={"decision": "Approve"},
            headers={"X-Actor-Role": "Vendor", "X-Actor-Id": vendor_id},
        )
        assert response.status_code == 403
        assert response.json()["code"] == "ACTOR_NOT_AUTHORIZED"

    def test_suspend_pending_vendor_is_invalid(self, client):
        vendor_id = _submit(client)
        response = client.put(
            f"/vendors/{vendor_id}/suspend",
            json={"reason": "Complaint"},
            headers={"X-Actor-Role": "Admin"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_STATE"

    def test_profile_update(self, client):
        vendor_id = _submit(client)
        response = client.put(
            f"/vendors/{vendor_id}/profile",
            json={"store_name": "Nkechi's"},
            headers={"X-Actor-Role": "Vendor", "X-Actor-Id": vendor_id},
        )
        assert response.status_code == 200
        assert client.get("/vendors").json()[0]["store_name"] == "Nkechi's"


class TestProductAPI:
    def test_add_reprice_and_deactivate(self, client, store):
        response = client.post(
            "/products",
            json={"vendor_id": store.vendor_id, "name": "Egusi", "unit": "bag", "unit_price": 5.0},
        )
        assert response.status_code == 201
        product_id = response.json()["product_id"]

        client.put(f"/products/{product_id}/price", json={"unit_price": 5.5})
        client.put(f"/products/{product_id}/deactivate")

        product = current_domain.repository_for(Product).get(product_id)
        assert product.unit_price == 5.5
        assert product.is_active is False


class TestWorkerAPI:
    def test_register_and_go_online(self, client, store):
        response = client.post(
            "/workers",
            json={"role": "Picker", "name": "Bisi", "store_ids": [store.vendor_id]},
        )
        assert response.status_code == 201
        worker_id = response.json()["worker_id"]

        assert client.put(f"/workers/{worker_id}/online", json={"store_id": store.vendor_id}).json() == {
            "status": "online"
        }
        assert current_domain.repository_for(Worker).get(worker_id).is_online

        client.put(f"/workers/{worker_id}/offline")
        assert not current_domain.repository_for(Worker).get(worker_id).is_online


class TestMaintenanceAPI:
    def test_dispatch_sweep(self, client, marketplace, store, three_item_order):
        marketplace.walk_to(three_item_order, OrderStatus.VENDOR_ACCEPTED)
        response = client.post("/maintenance/dispatch-sweep")
        assert response.json() == {
            "pickers_assigned": 1,
            "riders_assigned": 0,
            "reassigned": 0,
            "waiting": 0,
            "failed": 0,
        }

    def test_expiry_with_nothing_overdue(self, client):
        assert client.post("/maintenance/expire-substitutions").json() == {"expired_count": 0}

    def test_configure_payment(self, client, payment_gateway):
        response = client.post("/maintenance/payment/configure", json={"should_succeed": False})
        assert response.json() == {"status": "configured"}
        assert payment_gateway.should_succeed is False
