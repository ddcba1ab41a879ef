"""
colony_backend/test_api_plots.py

Plot endpoint tests.

Tests cover:
- Permission enforcement on writes
- Aggregate validation errors
- Price derivation on create and update
- Counter recompute after create/delete, and staleness after a status update
- Public per-colony listing filters

Run: pytest colony_backend/test_api_plots.py -v
"""

import json

import pytest

from conftest import plot_payload

from colony_backend.counters import ColonyCounters, empty_counters


def _counters(store, colony_id):
    colony = store.colonies.get(colony_id)
    return {k: colony[k] for k in ("totalPlots", "availablePlots", "soldPlots", "blockedPlots")}


class TestPlotCreate:

    def test_create_requires_token(self, client, colony):
        resp = client.post("/api/v1/plots", json=plot_payload(colony["id"]))
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "message": "Not authorized, no token"}

    def test_create_requires_permission(self, client, colony, agent_headers):
        resp = client.post("/api/v1/plots", json=plot_payload(colony["id"]), headers=agent_headers)
        assert resp.status_code == 403
        assert resp.json()["message"] == "User role Agent is not authorized to access this route"

    def test_create_derives_price_and_recomputes(self, client, store, colony, admin_headers):
        resp = client.post(
            "/api/v1/plots",
            json=plot_payload(colony["id"], totalPrice=1),
            headers=admin_headers,
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "Plot created successfully"
        plot = body["data"]["plot"]
        assert plot["totalPrice"] == 1800000.0
        assert plot["status"] == "available"
        assert plot["bookingHistory"] == []
        assert len(plot["id"]) == 24

        assert _counters(store, colony["id"]) == {
            "totalPlots": 1, "availablePlots": 1, "soldPlots": 0, "blockedPlots": 0,
        }

    def test_fractional_price_rounds_to_paise(self, client, colony, admin_headers):
        resp = client.post(
            "/api/v1/plots",
            json=plot_payload(colony["id"], area=1234.5, pricePerSqFt=1999.99),
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["data"]["plot"]["totalPrice"] == 2468987.66

    def test_create_reports_every_violation(self, client, colony, admin_headers):
        resp = client.post(
            "/api/v1/plots",
            json=plot_payload(colony["id"], area=10, pricePerSqFt=50, facing="up"),
            headers=admin_headers,
        )
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["message"] == "Validation failed"
        fields = {e["field"]: e for e in body["errors"]}
        assert set(fields) == {"area", "pricePerSqFt", "facing"}
        assert fields["area"]["message"] == "Area must be between 50 and 100,000 square feet"
        assert fields["area"]["rejectedValue"] == 10
        assert fields["area"]["location"] == "body"

    def test_missing_required_fields(self, client, admin_headers):
        resp = client.post("/api/v1/plots", json={}, headers=admin_headers)
        assert resp.status_code == 400
        fields = {e["field"] for e in resp.json()["errors"]}
        assert {"plotNumber", "colony", "area", "pricePerSqFt", "facing"} <= fields

    def test_unknown_colony(self, client, admin_headers):
        resp = client.post("/api/v1/plots", json=plot_payload("a" * 24), headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Colony not found"

    def test_duplicate_plot_number_in_colony(self, client, colony, admin_headers):
        first = client.post("/api/v1/plots", json=plot_payload(colony["id"]), headers=admin_headers)
        assert first.status_code == 201
        second = client.post("/api/v1/plots", json=plot_payload(colony["id"]), headers=admin_headers)
        assert second.status_code == 400
        assert second.json()["message"] == "Plot number already exists in this colony"

    def test_same_plot_number_in_another_colony(self, client, store, colony, admin, admin_headers):
        other = store.colonies.insert({
            "name": "Hill Top",
            "address": "Katol Road, Nagpur",
            "status": "active",
            "createdBy": admin["id"],
            **empty_counters(),
        })
        first = client.post("/api/v1/plots", json=plot_payload(colony["id"]), headers=admin_headers)
        second = client.post("/api/v1/plots", json=plot_payload(other["id"]), headers=admin_headers)
        assert first.status_code == 201
        assert second.status_code == 201
        assert second.json()["data"]["plot"]["plotNumber"] == "A-1"
        assert store.plots.count({"plotNumber": "A-1"}) == 2

    @pytest.mark.parametrize("overrides, field", [
        ({"area": "NaN"}, "area"),
        ({"pricePerSqFt": "nan"}, "pricePerSqFt"),
        ({"roadWidth": "Infinity"}, "roadWidth"),
        ({"dimensions": {"length": "inf", "width": 30}}, "dimensions.length"),
    ])
    def test_non_finite_numbers_rejected(self, client, store, colony, admin_headers, overrides, field):
        resp = client.post(
            "/api/v1/plots",
            json=plot_payload(colony["id"], **overrides),
            headers=admin_headers,
        )
        assert resp.status_code == 400
        body = resp.json()
        assert body["message"] == "Validation failed"
        assert field in {e["field"] for e in body["errors"]}
        assert store.plots.count() == 0

    def test_non_finite_json_literals_rejected(self, client, store, colony, admin_headers):
        raw = json.dumps(plot_payload(colony["id"], area=float("nan"), dimensions={"length": float("inf")}))
        resp = client.post(
            "/api/v1/plots",
            content=raw,
            headers={**admin_headers, "Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        errors = {e["field"]: e for e in resp.json()["errors"]}
        assert {"area", "dimensions.length"} <= set(errors)
        assert errors["area"]["rejectedValue"] == "nan"
        assert errors["dimensions.length"]["rejectedValue"] == "inf"
        assert store.plots.count() == 0

    def test_plot_number_with_slash_survives_sanitization(self, client, colony, admin_headers):
        resp = client.post(
            "/api/v1/plots",
            json=plot_payload(colony["id"], plotNumber="B-12/3"),
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["data"]["plot"]["plotNumber"] == "B-12/3"

    def test_counter_fields_in_body_are_ignored(self, client, store, colony, admin_headers):
        resp = client.post(
            "/api/v1/plots",
            json=plot_payload(colony["id"], totalPlots=99),
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert "totalPlots" not in resp.json()["data"]["plot"]

    def test_recompute_failure_does_not_fail_create(self, client, store, colony, admin_headers, monkeypatch):
        def broken(self, colony_id):
            raise RuntimeError("colony write failed")

        monkeypatch.setattr(ColonyCounters, "recompute", broken)
        resp = client.post("/api/v1/plots", json=plot_payload(colony["id"]), headers=admin_headers)
        assert resp.status_code == 201
        assert store.plots.count({"colony": colony["id"]}) == 1
        assert _counters(store, colony["id"])["totalPlots"] == 0


class TestPlotUpdate:

    @pytest.fixture
    def plot(self, client, colony, admin_headers):
        resp = client.post("/api/v1/plots", json=plot_payload(colony["id"]), headers=admin_headers)
        return resp.json()["data"]["plot"]

    def test_price_rederived_from_merged_fields(self, client, plot, admin_headers):
        resp = client.put(f"/api/v1/plots/{plot['id']}", json={"area": 1000}, headers=admin_headers)
        assert resp.status_code == 200
        updated = resp.json()["data"]["plot"]
        assert updated["area"] == 1000
        assert updated["pricePerSqFt"] == 1500
        assert updated["totalPrice"] == 1500000.0

    def test_status_update_leaves_counters_stale(self, client, store, colony, plot, admin_headers):
        resp = client.put(f"/api/v1/plots/{plot['id']}", json={"status": "sold"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["plot"]["status"] == "sold"

        counters = _counters(store, colony["id"])
        assert counters["availablePlots"] == 1
        assert counters["soldPlots"] == 0

        # The next create refreshes the snapshot
        client.post("/api/v1/plots", json=plot_payload(colony["id"], plotNumber="A-2"), headers=admin_headers)
        assert _counters(store, colony["id"]) == {
            "totalPlots": 2, "availablePlots": 1, "soldPlots": 1, "blockedPlots": 0,
        }

    def test_renumber_into_existing_number_conflicts(self, client, colony, plot, admin_headers):
        client.post("/api/v1/plots", json=plot_payload(colony["id"], plotNumber="A-2"), headers=admin_headers)
        resp = client.put(f"/api/v1/plots/{plot['id']}", json={"plotNumber": "A-2"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Plot number already exists in this colony"

    def test_keeping_own_number_is_allowed(self, client, plot, admin_headers):
        resp = client.put(
            f"/api/v1/plots/{plot['id']}",
            json={"plotNumber": "A-1", "corner": True},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["plot"]["corner"] is True

    def test_invalid_update_rejected(self, client, plot, admin_headers):
        resp = client.put(
            f"/api/v1/plots/{plot['id']}",
            json={"status": "gone", "roadWidth": 500},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert {e["field"] for e in resp.json()["errors"]} == {"status", "roadWidth"}

    @pytest.mark.parametrize("changes, field", [
        ({"pricePerSqFt": "nan"}, "pricePerSqFt"),
        ({"area": "-Infinity"}, "area"),
        ({"dimensions": {"length": "Infinity"}}, "dimensions.length"),
    ])
    def test_non_finite_update_rejected(self, client, store, plot, admin_headers, changes, field):
        resp = client.put(f"/api/v1/plots/{plot['id']}", json=changes, headers=admin_headers)
        assert resp.status_code == 400
        assert field in {e["field"] for e in resp.json()["errors"]}
        stored = store.plots.get(plot["id"])
        assert stored["pricePerSqFt"] == 1500
        assert stored["totalPrice"] == 1800000.0

    def test_update_unknown_plot(self, client, admin_headers):
        resp = client.put(f"/api/v1/plots/{'b' * 24}", json={"area": 900}, headers=admin_headers)
        assert resp.status_code == 404
        assert resp.json()["message"] == "Plot not found"

    def test_malformed_id(self, client, admin_headers):
        resp = client.put("/api/v1/plots/not-an-id", json={"area": 900}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["message"] == "Invalid ID format"


class TestPlotDelete:

    def test_delete_recomputes(self, client, store, colony, admin_headers):
        plot = client.post(
            "/api/v1/plots", json=plot_payload(colony["id"]), headers=admin_headers,
        ).json()["data"]["plot"]

        resp = client.delete(f"/api/v1/plots/{plot['id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "message": "Plot deleted successfully", "data": None}
        assert store.plots.get(plot["id"]) is None
        assert _counters(store, colony["id"])["totalPlots"] == 0

    def test_sold_plot_cannot_be_deleted(self, client, store, colony, admin_headers):
        plot = client.post(
            "/api/v1/plots", json=plot_payload(colony["id"], status="sold"), headers=admin_headers,
        ).json()["data"]["plot"]

        resp = client.delete(f"/api/v1/plots/{plot['id']}", headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Cannot delete sold plot"
        assert store.plots.get(plot["id"]) is not None

    def test_delete_missing(self, client, admin_headers):
        resp = client.delete(f"/api/v1/plots/{'c' * 24}", headers=admin_headers)
        assert resp.status_code == 404


class TestPlotReads:

    @pytest.fixture
    def plots(self, client, colony, admin_headers):
        specs = [
            ("C-3", 1000, 1000, "north", "available"),
            ("A-1", 2000, 1000, "east", "available"),
            ("B-2", 1500, 2000, "east", "blocked"),
        ]
        for number, area, rate, facing, status in specs:
            client.post(
                "/api/v1/plots",
                json=plot_payload(colony["id"], plotNumber=number, area=area,
                                  pricePerSqFt=rate, facing=facing, status=status),
                headers=admin_headers,
            )

    def test_public_listing_sorted_by_plot_number(self, client, colony, plots):
        resp = client.get(f"/api/v1/plots/colony/{colony['id']}")
        assert resp.status_code == 200
        numbers = [p["plotNumber"] for p in resp.json()["data"]["plots"]]
        assert numbers == ["A-1", "B-2", "C-3"]

    def test_public_listing_filters(self, client, colony, plots):
        resp = client.get(
            f"/api/v1/plots/colony/{colony['id']}",
            params={"facing": "east", "minPrice": 2500000},
        )
        numbers = [p["plotNumber"] for p in resp.json()["data"]["plots"]]
        assert numbers == ["B-2"]

        resp = client.get(f"/api/v1/plots/colony/{colony['id']}", params={"maxArea": 1500, "status": "available"})
        assert [p["plotNumber"] for p in resp.json()["data"]["plots"]] == ["C-3"]

    def test_public_listing_rejects_negative_bounds(self, client, colony):
        resp = client.get(f"/api/v1/plots/colony/{colony['id']}", params={"minArea": -1})
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["location"] == "query"

    def test_paginated_list(self, client, colony, plots, buyer_headers):
        resp = client.get("/api/v1/plots", params={"limit": 2, "page": 2}, headers=buyer_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["pagination"] == {"current": 2, "pages": 2, "total": 3}
        assert len(body["data"]["plots"]) == 1

    def test_list_search(self, client, colony, plots, buyer_headers):
        resp = client.get("/api/v1/plots", params={"search": "b-"}, headers=buyer_headers)
        assert [p["plotNumber"] for p in resp.json()["data"]["plots"]] == ["B-2"]

    def test_get_single_plot_is_public(self, client, colony, plots, store):
        plot = store.plots.find_one({"plotNumber": "A-1"})
        resp = client.get(f"/api/v1/plots/{plot['id']}")
        assert resp.status_code == 200
        assert resp.json()["data"]["plot"]["totalPrice"] == 2000000.0
