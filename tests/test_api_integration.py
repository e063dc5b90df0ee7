"""
API Integration Tests
End-to-end testing of API endpoints with real HTTP requests
"""

import pytest
from fastapi.testclient import TestClient
from datetime import timedelta

from conftest import NOW

API = "/api/v1"


@pytest.fixture
def sale_payload(customer, supplier):
    return {
        "customer_id": customer.id,
        "supplier_id": supplier.id,
        "items": [
            {"product_id": 501, "product_name": "Basmati Rice 5kg", "quantity": 2,
             "unit_price": "50.00", "actual_price": "42.00"}
        ],
        "amount_paid": "40.00",
        "payment_method": "cash",
    }


@pytest.fixture
def created_sale(client: TestClient, sale_payload):
    response = client.post(f"{API}/sales", json=sale_payload)
    assert response.status_code == 201
    return response.json()["sale"]


def _recovery_payload(sale, amount, **extra):
    payload = {
        "customer_id": sale["customer_id"],
        "sale_id": sale["id"],
        "amount": amount,
        "payment_method": "cash",
        "received_by": "counter-1",
    }
    payload.update(extra)
    return payload


class TestSystemAPI:
    """Test system endpoints"""

    def test_health_check(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] in ["healthy", "degraded"]
        assert "version" in data

    def test_system_info(self, client: TestClient):
        response = client.get("/info")

        assert response.status_code == 200
        data = response.json()
        assert data["business_settings"]["default_due_days"] == 30


class TestSalesAPI:
    """Test sale endpoints"""

    def test_create_sale(self, client: TestClient, sale_payload):
        response = client.post(f"{API}/sales", json=sale_payload)

        assert response.status_code == 201
        data = response.json()
        sale = data["sale"]
        assert sale["sale_number"] == "SALE-000001"
        assert sale["grand_total"] == "100.00"
        assert sale["outstanding_amount"] == "60.00"
        assert sale["recovery_status"] == "partially_paid"
        assert sale["customer"]["name"] == "Ayesha Traders"
        assert len(sale["items"]) == 1
        assert data["price_history_recorded"] is True
        assert data["warnings"] == []

    def test_create_sale_unknown_customer(self, client: TestClient, sale_payload):
        response = client.post(f"{API}/sales", json={**sale_payload, "customer_id": 999})

        assert response.status_code == 404
        data = response.json()
        assert data["error"] == "not_found"
        assert data["type"] == "NotFoundError"

    def test_create_sale_without_items(self, client: TestClient, sale_payload):
        response = client.post(f"{API}/sales", json={**sale_payload, "items": []})
        assert response.status_code == 422

    def test_get_sale(self, client: TestClient, created_sale):
        response = client.get(f"{API}/sales/{created_sale['id']}")

        assert response.status_code == 200
        assert response.json()["sale_number"] == created_sale["sale_number"]

    def test_get_missing_sale(self, client: TestClient):
        response = client.get(f"{API}/sales/12345")
        assert response.status_code == 404

    def test_list_sales_uses_camel_case_pagination(self, client: TestClient, sale_payload):
        for _ in range(3):
            client.post(f"{API}/sales", json=sale_payload)

        response = client.get(f"{API}/sales", params={"page": 1, "limit": 2})

        assert response.status_code == 200
        data = response.json()
        assert len(data["data"]) == 2
        assert data["currentPage"] == 1
        assert data["totalPages"] == 2
        assert data["totalCount"] == 3
        assert data["hasMore"] is True

    def test_update_notes(self, client: TestClient, created_sale):
        response = client.patch(f"{API}/sales/{created_sale['id']}/notes", json={"notes": "Call before delivery"})

        assert response.status_code == 200
        data = response.json()
        assert data["notes"] == "Call before delivery"
        assert data["grand_total"] == "100.00"

    def test_sales_statistics(self, client: TestClient, sale_payload):
        for _ in range(2):
            client.post(f"{API}/sales", json=sale_payload)

        response = client.get(f"{API}/sales/statistics")

        assert response.status_code == 200
        data = response.json()
        assert data["total_sales"] == 2
        assert data["total_revenue"] == "200.00"
        assert data["avg_sale_value"] == "100.00"
        assert data["total_profit"] == "32.00"
        assert data["avg_profit_margin"] == "16.00"
        assert data["top_customers"][0]["customer"]["name"] == "Ayesha Traders"
        assert data["top_customers"][0]["total_sales"] == 2
        assert data["daily_sales"] == [
            {"date": "2024-03-15", "total_sales": 2, "total_revenue": "200.00", "total_profit": "32.00"}
        ]

    def test_sales_statistics_empty_range(self, client: TestClient, created_sale):
        response = client.get(f"{API}/sales/statistics", params={
            "start_date": "2024-01-01T00:00:00", "end_date": "2024-01-31T00:00:00"
        })

        assert response.status_code == 200
        assert response.json()["total_sales"] == 0

    def test_sales_statistics_reversed_range(self, client: TestClient):
        response = client.get(f"{API}/sales/statistics", params={
            "start_date": "2024-02-01T00:00:00", "end_date": "2024-01-01T00:00:00"
        })
        assert response.status_code == 400

    def test_price_history(self, client: TestClient, created_sale):
        response = client.get(f"{API}/sales/price-history/{created_sale['customer_id']}/501")

        assert response.status_code == 200
        history = response.json()
        assert len(history) == 1
        assert history[0]["price"] == "50.00"


class TestRecoveryAPI:
    """Test recovery endpoints"""

    def test_recovery_flow(self, client: TestClient, created_sale):
        response = client.post(f"{API}/recovery", json=_recovery_payload(created_sale, "60.00"))

        assert response.status_code == 201
        recovery = response.json()
        assert recovery["status"] == "confirmed"
        assert recovery["sale"]["sale_number"] == created_sale["sale_number"]

        sale = client.get(f"{API}/sales/{created_sale['id']}").json()
        assert sale["outstanding_amount"] == "0.00"
        assert sale["recovery_status"] == "fully_paid"

        response = client.put(f"{API}/recovery/{recovery['id']}/status", json={"status": "cancelled"})
        assert response.status_code == 200

        sale = client.get(f"{API}/sales/{created_sale['id']}").json()
        assert sale["total_recovered"] == "0.00"
        assert sale["outstanding_amount"] == "60.00"

    def test_over_recovery_is_400(self, client: TestClient, created_sale):
        response = client.post(f"{API}/recovery", json=_recovery_payload(created_sale, "70.00"))

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "validation_error"
        assert "cannot exceed outstanding amount" in data["detail"]

    def test_zero_amount_is_422(self, client: TestClient, created_sale):
        response = client.post(f"{API}/recovery", json=_recovery_payload(created_sale, "0"))
        assert response.status_code == 422

    def test_invalid_status_is_422(self, client: TestClient, created_sale):
        recovery = client.post(f"{API}/recovery", json=_recovery_payload(created_sale, "10.00")).json()

        response = client.put(f"{API}/recovery/{recovery['id']}/status", json={"status": "refunded"})
        assert response.status_code == 422

    def test_get_recovery(self, client: TestClient, created_sale):
        recovery = client.post(f"{API}/recovery", json=_recovery_payload(created_sale, "5.00")).json()

        response = client.get(f"{API}/recovery/{recovery['id']}")
        assert response.status_code == 200
        assert response.json()["received_by"] == "counter-1"

        assert client.get(f"{API}/recovery/9999").status_code == 404

    def test_list_recoveries(self, client: TestClient, created_sale):
        client.post(f"{API}/recovery", json=_recovery_payload(created_sale, "10.00"))

        response = client.get(f"{API}/recovery")

        assert response.status_code == 200
        data = response.json()
        assert data["totalCount"] == 1
        assert data["data"][0]["amount"] == "10.00"


class TestLedgerViewsAPI:
    """Test ledger view endpoints"""

    def test_outstanding_and_fully_paid(self, client: TestClient, created_sale, make_legacy_sale):
        make_legacy_sale(100, 100, "paid")

        outstanding = client.get(f"{API}/recovery/outstanding").json()
        fully_paid = client.get(f"{API}/recovery/fully-paid").json()

        assert [s["id"] for s in outstanding["data"]] == [created_sale["id"]]
        assert fully_paid["totalCount"] == 1
        assert fully_paid["data"][0]["is_legacy"] is True

    def test_overdue(self, client: TestClient, make_legacy_sale):
        legacy = make_legacy_sale(100, 0, sale_date=NOW - timedelta(days=33))

        response = client.get(f"{API}/recovery/overdue")

        assert response.status_code == 200
        data = response.json()
        assert data[0]["id"] == legacy.id
        assert data[0]["days_overdue"] == 3
        assert data[0]["recovery_status"] == "overdue"

    def test_sale_history(self, client: TestClient, created_sale):
        client.post(f"{API}/recovery", json=_recovery_payload(created_sale, "10.00"))

        response = client.get(f"{API}/recovery/sale/{created_sale['id']}/history")

        assert response.status_code == 200
        assert len(response.json()) == 1

    def test_customer_summary(self, client: TestClient, created_sale):
        client.post(f"{API}/recovery", json=_recovery_payload(created_sale, "15.00"))

        response = client.get(f"{API}/recovery/customer/{created_sale['customer_id']}/summary")

        assert response.status_code == 200
        data = response.json()
        assert data["recovery_stats"]["total_recovered"] == "15.00"
        assert data["total_outstanding"] == "45.00"
        assert len(data["outstanding_sales"]) == 1

    def test_customer_summary_unknown(self, client: TestClient):
        response = client.get(f"{API}/recovery/customer/999/summary")
        assert response.status_code == 404

    def test_dashboard_summary(self, client: TestClient, created_sale):
        response = client.get(f"{API}/recovery/dashboard-summary")

        assert response.status_code == 200
        stats = response.json()["stats"]
        assert stats["total_sales"] == 1
        assert stats["partially_paid_sales"] == 1
        assert stats["total_outstanding"] == "60.00"


class TestMaintenanceAPI:
    """Test backfill and overdue marking endpoints"""

    def test_migrate_existing_sales(self, client: TestClient, make_legacy_sale):
        make_legacy_sale(100, 30, "partial")

        dry = client.post(f"{API}/recovery/migrate-existing-sales", params={"dry_run": True}).json()
        assert dry == {"total_processed": 1, "updated": 0, "dry_run": True}

        first = client.post(f"{API}/recovery/migrate-existing-sales").json()
        second = client.post(f"{API}/recovery/migrate-existing-sales").json()

        assert first["updated"] == 1
        assert second["total_processed"] == 0

    def test_mark_overdue(self, client: TestClient, created_sale):
        response = client.post(f"{API}/recovery/mark-overdue")

        assert response.status_code == 200
        assert response.json() == {"marked": 0}
