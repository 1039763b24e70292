"""Tests for the /api/stats endpoint."""

from tests.mocks.models import FOOTBALL_SIX_CREATE, TENNIS_CREATE, reservation_body


class TestStats:
    def test_revenue_per_sport(self, client):
        football = client.post("/api/fields", json=FOOTBALL_SIX_CREATE).json()["id"]
        tennis = client.post("/api/fields", json=TENNIS_CREATE).json()["id"]
        client.post("/api/reservations", json=reservation_body(field_id=football))
        client.post(
            "/api/reservations",
            json=reservation_body(field_id=tennis, start_time="10:00", duration=2),
        )

        resp = client.get(
            "/api/stats", params={"date_from": "2026-03-01", "date_to": "2026-03-31"}
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["total_reservations"] == 2
        assert data["total_revenue"] == 100
        assert data["average_revenue"] == 50
        assert [s["sport"] for s in data["by_sport"]] == ["football", "tennis"]

    def test_empty_range(self, client):
        resp = client.get(
            "/api/stats", params={"date_from": "2026-01-01", "date_to": "2026-01-31"}
        )
        assert resp.json()["total_reservations"] == 0
        assert resp.json()["average_revenue"] == 0

    def test_inverted_range(self, client):
        resp = client.get(
            "/api/stats", params={"date_from": "2026-03-31", "date_to": "2026-03-01"}
        )
        assert resp.status_code == 400
