"""Tests for the FastAPI application."""
import pytest
from fastapi.testclient import TestClient

from print_orders.config import Settings
from print_orders.web.app import create_app

OWNER = {"X-User-Id": "u1"}


@pytest.fixture
def client(tmp_path):
    app = create_app(Settings(database_path=str(tmp_path / "web.sqlite3")))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def catalog(client):
    filament = client.post(
        "/api/filaments",
        json={"title": "Black PLA", "brand": "Prusament", "price_per_kilo": 20.0},
        headers=OWNER,
    ).json()
    product = client.post(
        "/api/products",
        json={"title": "Figurine", "parts": [{"label": "Body", "required_mass": 10.0}], "price": 5.0},
        headers=OWNER,
    ).json()
    return {"filament": filament, "product": product}


def _new_order(client, title="Gifts"):
    response = client.post("/api/orders", json={"title": title}, headers=OWNER)
    assert response.status_code == 201
    return response.json()


class TestOrderApi:

    def test_compose_and_aggregate(self, client, catalog):
        order = _new_order(client)
        response = client.post(
            f"/api/orders/{order['id']}/pieces",
            json={"product_id": catalog["product"]["id"], "quantity": 2},
        )
        assert response.status_code == 201
        response = client.put(
            f"/api/orders/{order['id']}/pieces/0/parts/0/material",
            json={"material_id": catalog["filament"]["id"]},
        )
        body = response.json()
        totals = body["totals_by_material"][catalog["filament"]["id"]]
        assert totals["total_mass"] == pytest.approx(20.0)
        assert totals["total_cost"] == pytest.approx(0.4)
        assert body["revenue"] == pytest.approx(10.0)
        assert body["status"] == "Not Started"

    def test_progress_and_status_commands(self, client, catalog):
        order = _new_order(client)
        client.post(
            f"/api/orders/{order['id']}/pieces",
            json={"product_id": catalog["product"]["id"], "quantity": 2},
        )
        body = client.put(
            f"/api/orders/{order['id']}/pieces/0/printed", json={"count": 5}
        ).json()
        assert body["status"] == "Printed"
        assert body["printed_counts_by_index"] == {"0": 2}

        conflict = client.post(f"/api/orders/{order['id']}/restore")
        assert conflict.status_code == 409

        assert client.post(f"/api/orders/{order['id']}/mark-done").json()["status"] == "Done"
        assert client.post(f"/api/orders/{order['id']}/restore").json()["status"] == "Printed"

    def test_validation_errors(self, client, catalog):
        order = _new_order(client)
        response = client.put(
            f"/api/orders/{order['id']}/pieces/3/quantity", json={"quantity": 1}
        )
        assert response.status_code == 422
        response = client.post(f"/api/orders/{order['id']}/pieces", json={
            "product_id": catalog["product"]["id"], "quantity": 0,
        })
        assert response.status_code == 422

    def test_submit_reports_problems(self, client, catalog):
        order = _new_order(client)
        client.post(
            f"/api/orders/{order['id']}/pieces",
            json={"product_id": catalog["product"]["id"]},
        )
        response = client.post(f"/api/orders/{order['id']}/submit")
        assert response.status_code == 422
        assert response.json()["problems"] == [
            "Please select a filament for all parts in Figurine"
        ]

    def test_missing_order(self, client):
        assert client.get("/api/orders/nope").status_code == 404

    def test_requires_user(self, client):
        response = client.post("/api/orders", json={"title": "Anonymous"})
        assert response.status_code == 401

    def test_listing_hides_deleted(self, client):
        kept = _new_order(client, "Kept")
        dropped = _new_order(client, "Dropped")
        assert client.delete(f"/api/orders/{dropped['id']}").json()["hidden"] is True
        listed = client.get("/api/orders", headers=OWNER).json()
        assert [order["id"] for order in listed] == [kept["id"]]
        statistics = client.get("/api/orders/statistics", headers=OWNER).json()
        assert statistics["order_count"] == 1


class TestOverviewPage:

    def test_renders_orders(self, client):
        _new_order(client, "Shown on page")
        response = client.get("/", params={"owner": "u1"})
        assert response.status_code == 200
        assert "Shown on page" in response.text

    def test_form_actions_redirect(self, client, catalog):
        order = _new_order(client)
        client.post(
            f"/api/orders/{order['id']}/pieces",
            json={"product_id": catalog["product"]["id"], "quantity": 2},
        )
        response = client.post(
            f"/orders/{order['id']}/pieces/0/count",
            data={"count": "1", "owner": "u1"},
            follow_redirects=False,
        )
        assert response.status_code == 303
        assert response.headers["location"] == "/?owner=u1"
        assert client.get(f"/api/orders/{order['id']}").json()["status"] == "Printing"

        client.post(f"/orders/{order['id']}/done", data={"owner": "u1"})
        assert client.get(f"/api/orders/{order['id']}").json()["status"] == "Done"

    def test_invalid_count_leaves_progress(self, client, catalog):
        order = _new_order(client)
        client.post(
            f"/api/orders/{order['id']}/pieces",
            json={"product_id": catalog["product"]["id"], "quantity": 3},
        )
        client.post(
            f"/orders/{order['id']}/pieces/0/count",
            data={"count": "2", "owner": "u1"},
        )
        response = client.post(
            f"/orders/{order['id']}/pieces/0/count",
            data={"count": "2.5", "owner": "u1"},
            follow_redirects=False,
        )
        assert response.status_code == 422
        body = client.get(f"/api/orders/{order['id']}").json()
        assert body["printed_counts_by_index"] == {"0": 2}
        assert body["status"] == "Printing"
