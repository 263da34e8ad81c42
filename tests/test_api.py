import pytest
from fastapi.testclient import TestClient

from ict_booking import main

BOOKING = {
    "student_name": "Aisyah",
    "date": "2026-01-15",
    "start_time": "08:00",
    "end_time": "10:00",
    "class_name": "4 Ibnu Sina",
    "location": "Makmal Komputer",
    "purpose": "Coding club",
    "equipment_id": "chromebook",
    "asset_codes": ["CHR-1", "CHR-2"],
}


@pytest.fixture
def client(monkeypatch, controller):
    monkeypatch.setattr(main, "build_controller", lambda settings: controller)
    with TestClient(main.app) as test_client:
        yield test_client


def submit(client, **overrides):
    response = client.post("/api/bookings", json={**BOOKING, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


class TestEquipmentEndpoints:

    def test_equipment_lists_codes_and_remaining_stock(self, client):
        equipment = {item["id"]: item for item in client.get("/api/equipment").json()}
        assert equipment["chromebook"]["limit_per_booking"] == 5
        assert equipment["drone"]["asset_codes"] == ["DRN-1"]
        assert equipment["laptop"]["remaining"] == 21

    def test_options(self, client):
        data = client.get("/api/options").json()
        assert data["classes"]
        assert data["locations"]

    def test_availability_reports_held_codes(self, client):
        submit(client)
        response = client.get("/api/availability", params={
            "equipment_id": "chromebook", "date": "2026-01-15", "start_time": "09:00", "end_time": "11:00",
        })
        assert response.status_code == 200
        data = response.json()
        assert data["unavailable"] == ["CHR-1", "CHR-2"]
        assert "CHR-1" not in data["available"]

    def test_availability_for_unknown_equipment_is_bad_request(self, client):
        response = client.get("/api/availability", params={"equipment_id": "microscope"})
        assert response.status_code == 400

    def test_toggle_past_limit_is_bad_request(self, client):
        response = client.post("/api/selection/toggle", json={
            "equipment_id": "chromebook",
            "selected": ["CHR-1", "CHR-2", "CHR-3", "CHR-4", "CHR-5"],
            "code": "CHR-6",
        })
        assert response.status_code == 400

    def test_toggle_adds_code(self, client):
        response = client.post("/api/selection/toggle", json={
            "equipment_id": "chromebook", "selected": ["CHR-1"], "code": "CHR-4",
        })
        assert response.json() == {"selected": ["CHR-1", "CHR-4"], "quantity": 2}


class TestBookingEndpoints:

    def test_submit_creates_pending_booking(self, client):
        data = submit(client)
        assert data["status"] == "PENDING"
        assert data["quantity"] == 2
        assert data["day"] == "Khamis"

    def test_submit_without_codes_is_bad_request(self, client):
        response = client.post("/api/bookings", json={**BOOKING, "asset_codes": []})
        assert response.status_code == 400
        assert client.get("/api/bookings").json() == []

    def test_list_filters_by_status(self, client):
        booking = submit(client)
        submit(client, student_name="Hakim", start_time="12:00", end_time="13:00")
        client.post(f"/api/bookings/{booking['id']}/reject")

        rejected = client.get("/api/bookings", params={"status": "REJECTED"}).json()
        assert [b["id"] for b in rejected] == [booking["id"]]
        assert len(client.get("/api/bookings", params={"search": "hakim"}).json()) == 1

    def test_approve_and_return(self, client):
        booking = submit(client)
        approved = client.post(f"/api/bookings/{booking['id']}/approve", json={"admin_name": "Cikgu Rahim"})
        assert approved.json()["approved_by"] == "Cikgu Rahim"

        returned = client.post(f"/api/bookings/{booking['id']}/return")
        assert returned.status_code == 200
        assert returned.json()["returned_at"] == "12:30 PM, 15/01/2026"

    def test_approve_with_blank_name_is_bad_request(self, client):
        booking = submit(client)
        response = client.post(f"/api/bookings/{booking['id']}/approve", json={"admin_name": " "})
        assert response.status_code == 400

    def test_return_from_pending_is_bad_request(self, client):
        booking = submit(client)
        assert client.post(f"/api/bookings/{booking['id']}/return").status_code == 400

    def test_unknown_booking_is_not_found(self, client):
        assert client.post("/api/bookings/nope/reject").status_code == 404
        assert client.delete("/api/bookings/nope").status_code == 404

    def test_draft_then_submit(self, client):
        response = client.post("/api/bookings/draft", json={**BOOKING, "asset_codes": []})
        assert response.status_code == 201
        draft = response.json()
        assert draft["status"] == "DRAFT"
        assert client.post(f"/api/bookings/{draft['id']}/submit").status_code == 400

    def test_delete(self, client):
        booking = submit(client)
        assert client.delete(f"/api/bookings/{booking['id']}").status_code == 204
        assert client.get("/api/bookings").json() == []

    def test_refresh_reloads_from_adapter(self, client, adapter):
        adapter.records["remote1"] = {"id": "remote1", "date": "2026-02-01", "status": "APPROVED",
                                      "equipmentId": "drone", "assetCodes": ["DRN-1"]}
        assert client.post("/api/bookings/refresh").json() == {"count": 1}
        assert [b["id"] for b in client.get("/api/bookings").json()] == ["remote1"]


class TestAdminEndpoints:

    def test_admin_view_groups_bookings(self, client):
        pending = submit(client)
        data = client.get("/api/admin/bookings").json()
        assert [b["id"] for b in data["pending"]] == [pending["id"]]
        assert data["in_use"] == []
        assert data["history"] == []

    def test_dashboard(self, client):
        booking = submit(client)
        client.post(f"/api/bookings/{booking['id']}/approve", json={"admin_name": "Admin"})
        data = client.get("/api/dashboard", params={"year": 2026}).json()
        assert data["total_bookings"] == 1
        assert data["approved_bookings"] == 1
        assert data["monthly_usage"][0]["bookings"] == 1

    def test_sync_failures_starts_empty(self, client):
        assert client.get("/api/sync/failures").json()["failures"] == []


class TestWebSocket:

    def test_ping(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_text('{"type": "ping"}')
            assert websocket.receive_json() == {"type": "pong"}

    def test_invalid_message(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_text("not json")
            assert websocket.receive_json()["type"] == "error"

    def test_non_object_message_keeps_the_socket_open(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_text("[1]")
            assert websocket.receive_json()["type"] == "error"
            websocket.send_text('{"type": "ping"}')
            assert websocket.receive_json() == {"type": "pong"}
