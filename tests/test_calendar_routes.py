"""Tests for the /api/calendar session-backed picker endpoints."""

from datetime import date, timedelta

import pytest
from conftest import at

from skydesk.calendar_picker import ERR_SELECTION_NOT_FOUND


@pytest.fixture
def route(make_flight):
    base = date.today() + timedelta(days=10)
    days = {
        "out1": base,
        "out_full": base + timedelta(days=2),
        "back": base + timedelta(days=5),
    }
    make_flight("SD100", departure=at(days["out1"]), price=120)
    make_flight("SD101", departure=at(days["out_full"]), price=95, seats=0)
    make_flight("SD200", origin="CAP", destination="PAP", departure=at(days["back"]), price=130)
    return days


def _cell(snapshot, which, day):
    for c in snapshot[which]["days"]:
        if c["date"] == day.isoformat():
            return c
    raise AssertionError(f"{day} not visible in {which} calendar")


def test_open_roundtrip_preselects_dates(client, route):
    resp = client.post("/api/calendar/open", json={
        "from": "PAP",
        "to": "CAP",
        "tripType": "roundtrip",
        "departureDate": route["out1"].isoformat(),
        "returnDate": route["back"].isoformat(),
    })
    assert resp.status_code == 200
    cal = resp.get_json()["calendar"]
    assert cal["status"] == "ready"
    assert cal["departure"]["selected_date"] == route["out1"].isoformat()
    assert cal["return"]["selected_date"] == route["back"].isoformat()
    assert cal["can_apply"]
    assert _cell(cal, "departure", route["out1"])["price"] == 120


def test_open_with_unknown_date_is_not_found(client, route):
    resp = client.post("/api/calendar/open", json={
        "from": "PAP",
        "to": "CAP",
        "departureDate": (route["out1"] + timedelta(days=1)).isoformat(),
    })
    cal = resp.get_json()["calendar"]
    assert cal["status"] == "not_found"
    assert cal["error"] == ERR_SELECTION_NOT_FOUND


def test_open_validation_error(client):
    resp = client.post("/api/calendar/open", json={"from": "PAP"})
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["error"] == "validation_error"
    assert any(d["field"] == "to" for d in body["details"])


def test_no_calendar_open(client):
    assert client.get("/api/calendar").status_code == 404
    assert client.post("/api/calendar/apply").status_code == 404


def test_select_and_apply_oneway(client, route):
    client.post("/api/calendar/open", json={
        "from": "PAP",
        "to": "CAP",
        "departureDate": route["out1"].isoformat(),
    })
    cal = client.get("/api/calendar").get_json()["calendar"]

    full = _cell(cal, "departure", route["out_full"]) if route["out_full"].month == route["out1"].month else None
    if full is not None:
        resp = client.post("/api/calendar/departure", json={"index": full["index"]})
        assert resp.get_json()["ok"] is False

    resp = client.post("/api/calendar/apply")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["departure"]["date"] == route["out1"].isoformat()
    assert body["departure"]["index"] == 0
    assert body["return"] is None

    # applying discards the picker
    assert client.get("/api/calendar").status_code == 404


def test_select_return_before_departure_reports_error(client, make_flight, route):
    early_back = route["out1"] - timedelta(days=1)
    make_flight("SD201", origin="CAP", destination="PAP", departure=at(early_back))
    client.post("/api/calendar/open", json={
        "from": "PAP",
        "to": "CAP",
        "tripType": "roundtrip",
        "departureDate": route["out1"].isoformat(),
        "returnDate": early_back.isoformat(),
    })
    cal = client.get("/api/calendar").get_json()["calendar"]
    # the stored return precedes the departure, so nothing can be applied yet
    assert not cal["can_apply"]

    nav = client.post("/api/calendar/navigate", json={"calendar": "return", "direction": "next"})
    nav = client.post("/api/calendar/navigate", json={"calendar": "return", "direction": "prev"})
    cal = nav.get_json()["calendar"]
    cell = _cell(cal, "return", early_back)
    resp = client.post("/api/calendar/return", json={"index": cell["index"]})
    body = resp.get_json()
    assert body["ok"] is False
    assert body["calendar"]["error"] == "Return date cannot be before departure date"

    resp = client.post("/api/calendar/apply")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_selection"


def test_bad_navigation_and_index(client, route):
    client.post("/api/calendar/open", json={"from": "PAP", "to": "CAP"})
    assert client.post("/api/calendar/navigate", json={"direction": "sideways"}).status_code == 400
    assert client.post("/api/calendar/departure", json={}).status_code == 400


def test_cancel(client, route):
    client.post("/api/calendar/open", json={"from": "PAP", "to": "CAP"})
    assert client.post("/api/calendar/cancel").get_json() == {"ok": True}
    assert client.get("/api/calendar").status_code == 404
