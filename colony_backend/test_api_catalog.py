"""
colony_backend/test_api_catalog.py

Property and booking endpoint tests.

Run: pytest colony_backend/test_api_catalog.py -v
"""

import pytest

from conftest import plot_payload


class TestProperties:

    def test_create_requires_existing_colony(self, client, manager_headers):
        resp = client.post(
            "/api/v1/properties",
            json={"name": "Green Valley Phase 2", "colony": "a" * 24},
            headers=manager_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Colony not found"

    def test_create_defaults(self, client, colony, manager_headers):
        resp = client.post(
            "/api/v1/properties",
            json={"name": "Green Valley Phase 2", "colony": colony["id"], "facilities": ["Club house"]},
            headers=manager_headers,
        )
        assert resp.status_code == 201
        prop = resp.json()["data"]["property"]
        assert prop["category"] == "Residential"
        assert prop["status"] == "active"
        assert prop["facilities"] == ["Club house"]
        assert prop["media"]["moreImages"] == []

    def test_invalid_category(self, client, colony, manager_headers):
        resp = client.post(
            "/api/v1/properties",
            json={"name": "Bad", "colony": colony["id"], "category": "Industrial"},
            headers=manager_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "category"

    def test_media_update_appends_more_images(self, client, colony, admin_headers):
        prop = client.post(
            "/api/v1/properties",
            json={
                "name": "Riverside",
                "colony": colony["id"],
                "media": {"mainPicture": "/uploads/properties/main.jpg", "moreImages": ["/uploads/properties/1.jpg"]},
            },
            headers=admin_headers,
        ).json()["data"]["property"]

        resp = client.put(
            f"/api/v1/properties/{prop['id']}",
            json={"media": {"moreImages": ["/uploads/properties/2.jpg"], "noc": "/uploads/properties/noc.pdf"}},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        media = resp.json()["data"]["property"]["media"]
        assert media["mainPicture"] == "/uploads/properties/main.jpg"
        assert media["noc"] == "/uploads/properties/noc.pdf"
        assert media["moreImages"] == ["/uploads/properties/1.jpg", "/uploads/properties/2.jpg"]

    def test_list_by_colony_and_delete(self, client, store, colony, admin_headers, buyer_headers):
        store.properties.insert({"name": "One", "colony": colony["id"], "status": "active"})
        store.properties.insert({"name": "Other", "colony": "b" * 24, "status": "active"})

        resp = client.get("/api/v1/properties", params={"colony": colony["id"]}, headers=buyer_headers)
        props = resp.json()["data"]["properties"]
        assert [p["name"] for p in props] == ["One"]

        assert client.delete(f"/api/v1/properties/{props[0]['id']}", headers=buyer_headers).status_code == 403
        assert client.delete(f"/api/v1/properties/{props[0]['id']}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/v1/properties/{props[0]['id']}", headers=buyer_headers).status_code == 404


class TestBookings:

    @pytest.fixture
    def plot(self, client, colony, admin_headers):
        return client.post(
            "/api/v1/plots", json=plot_payload(colony["id"]), headers=admin_headers,
        ).json()["data"]["plot"]

    def test_booking_appends_history(self, client, store, plot, buyer, agent_headers):
        resp = client.post(
            "/api/v1/bookings",
            json={"plot": plot["id"], "customer": buyer["id"], "amount": 50000, "notes": "Token paid"},
            headers=agent_headers,
        )
        assert resp.status_code == 201
        booking = resp.json()["data"]["booking"]
        assert booking["status"] == "pending"
        assert booking["colony"] == plot["colony"]
        assert "bookingDate" in booking

        history = store.plots.get(plot["id"])["bookingHistory"]
        assert len(history) == 1
        assert history[0]["action"] == "booked"
        assert history[0]["user"] == buyer["id"]
        assert history[0]["notes"] == "Token paid"

    def test_booking_leaves_plot_status_and_counters(self, client, store, colony, plot, buyer, agent_headers):
        client.post(
            "/api/v1/bookings",
            json={"plot": plot["id"], "customer": buyer["id"]},
            headers=agent_headers,
        )
        assert store.plots.get(plot["id"])["status"] == "available"
        assert store.colonies.get(colony["id"])["availablePlots"] == 1

    def test_sold_plot_cannot_be_booked(self, client, store, plot, buyer, agent_headers):
        store.plots.update(plot["id"], {"status": "sold"})
        resp = client.post(
            "/api/v1/bookings",
            json={"plot": plot["id"], "customer": buyer["id"]},
            headers=agent_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Plot is already sold"

    def test_unknown_customer(self, client, plot, agent_headers):
        resp = client.post(
            "/api/v1/bookings",
            json={"plot": plot["id"], "customer": "c" * 24},
            headers=agent_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Customer not found"

    def test_negative_amount_rejected(self, client, plot, buyer, agent_headers):
        resp = client.post(
            "/api/v1/bookings",
            json={"plot": plot["id"], "customer": buyer["id"], "amount": -5},
            headers=agent_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["message"] == "Booking amount cannot be negative"

    def test_cancel_records_history_once(self, client, store, plot, buyer, agent_headers):
        booking = client.post(
            "/api/v1/bookings",
            json={"plot": plot["id"], "customer": buyer["id"]},
            headers=agent_headers,
        ).json()["data"]["booking"]

        for _ in range(2):
            resp = client.put(
                f"/api/v1/bookings/{booking['id']}",
                json={"status": "cancelled"},
                headers=agent_headers,
            )
            assert resp.status_code == 200

        actions = [h["action"] for h in store.plots.get(plot["id"])["bookingHistory"]]
        assert actions == ["booked", "cancelled"]

    def test_list_and_get(self, client, plot, buyer, agent_headers, buyer_headers):
        booking = client.post(
            "/api/v1/bookings",
            json={"plot": plot["id"], "customer": buyer["id"], "status": "confirmed"},
            headers=agent_headers,
        ).json()["data"]["booking"]

        resp = client.get("/api/v1/bookings", params={"status": "confirmed"}, headers=buyer_headers)
        assert [b["id"] for b in resp.json()["data"]["bookings"]] == [booking["id"]]

        resp = client.get(f"/api/v1/bookings/{booking['id']}", headers=buyer_headers)
        assert resp.json()["data"]["booking"]["plot"] == plot["id"]

    def test_buyer_cannot_book(self, client, plot, buyer, buyer_headers):
        resp = client.post(
            "/api/v1/bookings",
            json={"plot": plot["id"], "customer": buyer["id"]},
            headers=buyer_headers,
        )
        assert resp.status_code == 403
