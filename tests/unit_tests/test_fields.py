"""Tests for the /api/fields endpoints."""

from tests.mocks.models import FOOTBALL_SIX_CREATE, TENNIS_CREATE, TUESDAY


class TestCatalogue:
    def test_create_and_get(self, client):
        resp = client.post("/api/fields", json=FOOTBALL_SIX_CREATE)
        assert resp.status_code == 201
        field = resp.json()
        assert field["football_format"] == "six_a_side"

        resp = client.get(f"/api/fields/{field['id']}")
        assert resp.status_code == 200
        assert resp.json()["name"] == "Terrain 6"

    def test_list_filters_inactive_and_sport(self, client):
        client.post("/api/fields", json=FOOTBALL_SIX_CREATE)
        client.post("/api/fields", json={**TENNIS_CREATE, "active": False})

        assert [f["name"] for f in client.get("/api/fields").json()] == ["Terrain 6"]
        assert client.get("/api/fields", params={"sport": "tennis"}).json() == []
        assert len(client.get("/api/fields/all").json()) == 2

    def test_update(self, client):
        field_id = client.post("/api/fields", json=FOOTBALL_SIX_CREATE).json()["id"]
        resp = client.put(
            f"/api/fields/{field_id}",
            json={**FOOTBALL_SIX_CREATE, "name": "Terrain 8", "football_format": None},
        )
        assert resp.status_code == 200
        assert resp.json()["football_format"] == "seven_or_eight_a_side"

    def test_unknown_field(self, client):
        resp = client.get("/api/fields/999")
        assert resp.status_code == 404
        assert resp.json()["code"] == "field_not_found"

    def test_invalid_body(self, client):
        resp = client.post("/api/fields", json={**FOOTBALL_SIX_CREATE, "sport": "squash"})
        assert resp.status_code == 422

    def test_staff_only_writes(self, unauthed_client):
        resp = unauthed_client.post("/api/fields", json=FOOTBALL_SIX_CREATE)
        assert resp.status_code == 401


class TestSlotsAndPrices:
    def test_slot_board(self, client):
        field_id = client.post("/api/fields", json=FOOTBALL_SIX_CREATE).json()["id"]
        resp = client.get(f"/api/fields/{field_id}/slots", params={"date": TUESDAY.isoformat()})
        assert resp.status_code == 200
        data = resp.json()
        assert data["duration"] == 1.5
        assert data["slots"][0]["start_time"] == "16:00"
        assert data["slots"][0]["end_time"] == "17:30"
        assert all(s["available"] for s in data["slots"])

    def test_saturday_board_opens_at_ten(self, client):
        field_id = client.post("/api/fields", json=FOOTBALL_SIX_CREATE).json()["id"]
        resp = client.get(f"/api/fields/{field_id}/slots", params={"date": "2026-03-14"})
        assert resp.json()["slots"][0]["start_time"] == "10:00"

    def test_availability(self, client):
        field_id = client.post("/api/fields", json=FOOTBALL_SIX_CREATE).json()["id"]
        resp = client.get(
            f"/api/fields/{field_id}/availability",
            params={"date": TUESDAY.isoformat(), "start": "20:00"},
        )
        assert resp.status_code == 200
        assert resp.json()["available"] is True

    def test_availability_of_invalid_slot(self, client):
        field_id = client.post("/api/fields", json=FOOTBALL_SIX_CREATE).json()["id"]
        resp = client.get(
            f"/api/fields/{field_id}/availability",
            params={"date": TUESDAY.isoformat(), "start": "12:00"},
        )
        assert resp.status_code == 422
        assert resp.json()["code"] == "invalid_slot"

    def test_price(self, client):
        field_id = client.post("/api/fields", json=TENNIS_CREATE).json()["id"]
        resp = client.get(
            f"/api/fields/{field_id}/price", params={"start": "17:30", "duration": 2.5}
        )
        assert resp.status_code == 200
        assert resp.json()["price"] == 55

    def test_price_rejects_unoffered_duration(self, client):
        field_id = client.post("/api/fields", json=TENNIS_CREATE).json()["id"]
        resp = client.get(
            f"/api/fields/{field_id}/price", params={"start": "17:00", "duration": 4}
        )
        assert resp.status_code == 422
        assert resp.json()["code"] == "invalid_duration"

    def test_planning(self, client):
        field_id = client.post("/api/fields", json=FOOTBALL_SIX_CREATE).json()["id"]
        resp = client.get(
            f"/api/fields/{field_id}/planning",
            params={"start": TUESDAY.isoformat(), "days": 3},
        )
        assert resp.status_code == 200
        assert len(resp.json()["days"]) == 3
