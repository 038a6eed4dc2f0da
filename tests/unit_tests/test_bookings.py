"""Tests for the /api/bookings endpoints."""

import pytest

from courtbook.errors import TransientWriteError
from courtbook.services.booking_service import booking_service

DAY = "2099-05-04"


def _book(client, court_id, start="09:00", end="10:30", day=DAY, **extra):
    return client.post(
        "/api/bookings",
        json={"court_id": court_id, "date": day, "start_time": start, "end_time": end, **extra},
    )


@pytest.fixture()
def booking(client, court) -> dict:
    resp = _book(client, court["id"], coach_id="coach-anna")
    assert resp.status_code == 201
    return resp.json()


@pytest.fixture()
def no_advisory_check(monkeypatch):
    """Skip the service's pre-write check so only the database guards the write."""
    async def _skip(*args, **kwargs):
        return None

    monkeypatch.setattr(booking_service, "_ensure_no_conflict", _skip)


class TestCreateBooking:
    def test_create_booking(self, client, court):
        resp = _book(client, court["id"], player_id="player-1", notes="Bring balls")
        assert resp.status_code == 201
        data = resp.json()
        assert data["court_id"] == court["id"]
        assert data["date"] == DAY
        assert data["start_time"] == "09:00"
        assert data["booking_type"] == "rental"
        assert data["status"] == "confirmed"
        assert data["is_recurring"] is False

    def test_overlap_rejected(self, client, court, booking):
        resp = _book(client, court["id"], start="10:00", end="11:00")
        assert resp.status_code == 409
        detail = resp.json()["detail"]
        assert detail["code"] == "court_conflict"
        assert detail["message"] == "Court is already booked from 09:00 to 10:30"
        assert detail["details"]["conflicting_booking_id"] == booking["id"]

    def test_back_to_back_allowed(self, client, court, booking):
        resp = _book(client, court["id"], start="10:30", end="11:30")
        assert resp.status_code == 201

    def test_same_time_other_court_allowed(self, client, court, other_court, booking):
        resp = _book(client, other_court["id"])
        assert resp.status_code == 201

    def test_coach_double_booked(self, client, other_court, booking):
        resp = _book(client, other_court["id"], start="10:00", end="11:00", coach_id="coach-anna")
        assert resp.status_code == 409
        detail = resp.json()["detail"]
        assert detail["code"] == "coach_conflict"
        assert detail["message"].startswith("Coach is already teaching")

    def test_cancelled_slot_can_be_rebooked(self, client, court, booking):
        resp = client.post(f"/api/bookings/{booking['id']}/cancel")
        assert resp.status_code == 200
        assert _book(client, court["id"]).status_code == 201

    def test_unknown_court(self, client):
        resp = _book(client, "00000000-0000-0000-0000-000000000099")
        assert resp.status_code == 404

    def test_inactive_court(self, client):
        closed = client.post("/api/courts", json={"name": "Closed", "is_active": False}).json()
        resp = _book(client, closed["id"])
        assert resp.status_code == 409
        assert resp.json()["detail"]["code"] == "court_inactive"

    def test_end_before_start(self, client, court):
        resp = _book(client, court["id"], start="11:00", end="10:00")
        assert resp.status_code == 422

    def test_bad_time_format(self, client, court):
        resp = _book(client, court["id"], start="9:00")
        assert resp.status_code == 422


class TestAuthoritativeConstraint:
    def test_overlap_rejected_without_advisory_check(
        self, client, court, booking, no_advisory_check
    ):
        resp = _book(client, court["id"], start="10:00", end="11:00")
        assert resp.status_code == 409
        assert resp.json()["detail"]["code"] == "booking_overlap"

    def test_update_rejected_without_advisory_check(
        self, client, court, booking, no_advisory_check
    ):
        second = _book(client, court["id"], start="11:00", end="12:00").json()
        resp = client.patch(f"/api/bookings/{second['id']}", json={"start_time": "10:00"})
        assert resp.status_code == 409
        assert resp.json()["detail"]["code"] == "booking_overlap"

    def test_transient_failure_returns_503(self, client, court, monkeypatch):
        async def _locked(*args, **kwargs):
            raise TransientWriteError()

        monkeypatch.setattr("courtbook.db.create_booking", _locked)
        resp = _book(client, court["id"])
        assert resp.status_code == 503
        assert "retry" in resp.json()["detail"]["message"]


class TestGetAndListBookings:
    def test_get_booking(self, client, booking):
        resp = client.get(f"/api/bookings/{booking['id']}")
        assert resp.status_code == 200
        assert resp.json()["coach_id"] == "coach-anna"

    def test_get_booking_not_found(self, client):
        resp = client.get("/api/bookings/00000000-0000-0000-0000-000000000099")
        assert resp.status_code == 404
        assert resp.json()["detail"]["code"] == "BookingNotFoundError"

    def test_list_bookings_in_range(self, client, court):
        _book(client, court["id"], start="12:00", end="13:00")
        _book(client, court["id"], start="08:00", end="09:00")
        _book(client, court["id"], day="2099-06-01")

        resp = client.get("/api/bookings", params={"date_from": DAY, "date_to": DAY})
        assert resp.status_code == 200
        data = resp.json()
        assert data["meta"]["total_items"] == 2
        assert [b["start_time"] for b in data["items"]] == ["08:00", "12:00"]

    def test_list_bookings_filters(self, client, court, other_court, booking):
        _book(client, other_court["id"], booking_type="private_lesson")
        params = {"date_from": DAY, "date_to": DAY}

        resp = client.get("/api/bookings", params={**params, "court_id": other_court["id"]})
        assert resp.json()["meta"]["total_items"] == 1

        resp = client.get("/api/bookings", params={**params, "coach_id": "coach-anna"})
        assert [b["id"] for b in resp.json()["items"]] == [booking["id"]]

        resp = client.get("/api/bookings", params={**params, "booking_type": "private_lesson"})
        assert resp.json()["items"][0]["court_id"] == other_court["id"]

    def test_list_excludes_cancelled_on_request(self, client, booking):
        client.post(f"/api/bookings/{booking['id']}/cancel")
        params = {"date_from": DAY, "date_to": DAY}

        resp = client.get("/api/bookings", params={**params, "status": "cancelled"})
        assert resp.json()["meta"]["total_items"] == 1

        resp = client.get("/api/bookings", params={**params, "include_cancelled": False})
        assert resp.json()["meta"]["total_items"] == 0

    def test_list_pagination(self, client, court):
        for hour in range(8, 13):
            _book(client, court["id"], start=f"{hour:02d}:00", end=f"{hour:02d}:30")
        resp = client.get(
            "/api/bookings",
            params={"date_from": DAY, "date_to": DAY, "page": 2, "page_size": 2},
        )
        data = resp.json()
        assert data["meta"]["total_pages"] == 3
        assert [b["start_time"] for b in data["items"]] == ["10:00", "11:00"]

    def test_list_inverted_range(self, client):
        resp = client.get("/api/bookings", params={"date_from": "2099-05-05", "date_to": DAY})
        assert resp.status_code == 422


class TestUpdateBooking:
    def test_move_booking(self, client, booking):
        resp = client.patch(
            f"/api/bookings/{booking['id']}",
            json={"start_time": "14:00", "end_time": "15:00"},
        )
        assert resp.status_code == 200
        assert resp.json()["start_time"] == "14:00"

    def test_extend_over_own_slot(self, client, booking):
        resp = client.patch(f"/api/bookings/{booking['id']}", json={"end_time": "11:00"})
        assert resp.status_code == 200
        assert resp.json()["end_time"] == "11:00"

    def test_move_into_conflict(self, client, court, booking):
        second = _book(client, court["id"], start="11:00", end="12:00").json()
        resp = client.patch(f"/api/bookings/{second['id']}", json={"start_time": "10:00"})
        assert resp.status_code == 409
        assert resp.json()["detail"]["code"] == "court_conflict"

    def test_inverted_times(self, client, booking):
        resp = client.patch(f"/api/bookings/{booking['id']}", json={"end_time": "08:00"})
        assert resp.status_code == 422

    def test_notes_only(self, client, booking):
        resp = client.patch(f"/api/bookings/{booking['id']}", json={"notes": "Moved indoors"})
        assert resp.status_code == 200
        assert resp.json()["notes"] == "Moved indoors"

    def test_update_missing_booking(self, client):
        resp = client.patch(
            "/api/bookings/00000000-0000-0000-0000-000000000099", json={"notes": "x"}
        )
        assert resp.status_code == 404


class TestCancelAndDelete:
    def test_cancel(self, client, booking):
        resp = client.post(f"/api/bookings/{booking['id']}/cancel")
        assert resp.status_code == 200
        assert resp.json()["status"] == "cancelled"

    def test_delete(self, client, booking):
        resp = client.delete(f"/api/bookings/{booking['id']}")
        assert resp.status_code == 204
        assert client.get(f"/api/bookings/{booking['id']}").status_code == 404

    def test_delete_missing(self, client):
        resp = client.delete("/api/bookings/00000000-0000-0000-0000-000000000099")
        assert resp.status_code == 404


class TestConflictCheck:
    def _check(self, client, court_id, start, end, **extra):
        return client.get(
            "/api/bookings/conflicts",
            params={"court_id": court_id, "date": DAY, "start_time": start, "end_time": end, **extra},
        )

    def test_free_slot(self, client, court, booking):
        resp = self._check(client, court["id"], "10:30", "11:30")
        assert resp.status_code == 200
        assert resp.json()["has_conflict"] is False

    def test_court_conflict(self, client, court, booking):
        resp = self._check(client, court["id"], "10:00", "11:00")
        data = resp.json()
        assert data["has_conflict"] is True
        assert data["conflict_type"] == "court"
        assert data["message"] == "Court is already booked from 09:00 to 10:30"
        assert data["conflicting_booking_id"] == booking["id"]

    def test_coach_conflict(self, client, other_court, booking):
        resp = self._check(client, other_court["id"], "10:00", "11:00", coach_id="coach-anna")
        data = resp.json()
        assert data["has_conflict"] is True
        assert data["conflict_type"] == "coach"

    def test_excluding_booking_being_edited(self, client, court, booking):
        resp = self._check(
            client, court["id"], "09:30", "11:00", exclude_booking_id=booking["id"]
        )
        assert resp.json()["has_conflict"] is False

    def test_inverted_times(self, client, court):
        resp = self._check(client, court["id"], "11:00", "10:00")
        assert resp.status_code == 422
