"""Tests for the flight table, search/export and location endpoints."""

import csv
import io
from datetime import date, timedelta
from unittest.mock import MagicMock

from conftest import at, passenger, ticket_payload

from skydesk.flights import EXPORT_COLUMNS
from skydesk.services import PDF


def flight_body(locations, number="SD300", **extra):
    departure = at(date.today() + timedelta(days=20))
    body = {
        "flight_number": number,
        "type": "plane",
        "airline": "Test Air",
        "tail_number": "HH-ABC",
        "departure_location_id": locations["PAP"],
        "arrival_location_id": locations["CAP"],
        "departure_time": departure.isoformat(),
        "arrival_time": (departure + timedelta(minutes=45)).isoformat(),
        "price": 130.5,
        "seats_available": 19,
    }
    body.update(extra)
    return body


class TestLocations:
    def test_list_is_public(self, client, locations):
        codes = [loc["code"] for loc in client.get("/api/locations").get_json()["locations"]]
        assert sorted(codes) == ["CAP", "PAP"]

    def test_add(self, admin_client, locations):
        resp = admin_client.post("/api/locations", json={"name": "Jacmel Airport", "code": "jak", "city": "Jacmel"})
        assert resp.status_code == 201
        assert resp.get_json()["location"]["code"] == "JAK"

        dup = admin_client.post("/api/locations", json={"name": "Again", "code": "JAK"})
        assert dup.status_code == 409


class TestFlightCrud:
    def test_add_flight(self, admin_client, locations):
        resp = admin_client.post("/api/addflighttable", json=flight_body(locations))
        assert resp.status_code == 201
        flight = resp.get_json()["flight"]
        assert flight["flight_number"] == "SD300"
        assert flight["from"] == "Toussaint Louverture (PAP)"
        assert flight["toCity"] == "Cap-Haitien"

    def test_duplicate_number(self, admin_client, locations):
        admin_client.post("/api/addflighttable", json=flight_body(locations))
        assert admin_client.post("/api/addflighttable", json=flight_body(locations)).status_code == 409

    def test_arrival_before_departure(self, admin_client, locations):
        body = flight_body(locations)
        body["arrival_time"] = body["departure_time"]
        resp = admin_client.post("/api/addflighttable", json=body)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "validation_error"

    def test_unknown_location(self, admin_client, locations):
        resp = admin_client.post("/api/addflighttable", json=flight_body(locations, arrival_location_id=999))
        assert resp.status_code == 400

    def test_agent_forbidden(self, agent_client, locations):
        assert agent_client.post("/api/addflighttable", json=flight_body(locations)).status_code == 403

    def test_update(self, admin_client, locations, make_flight):
        flight_id = make_flight("SD100")
        resp = admin_client.put(
            f"/api/updateflight/{flight_id}", json=flight_body(locations, number="SD100", seats_available=3)
        )
        assert resp.status_code == 200
        assert resp.get_json()["flight"]["seats_available"] == 3
        assert admin_client.put("/api/updateflight/999", json=flight_body(locations)).status_code == 404

    def test_delete(self, admin_client, make_flight):
        flight_id = make_flight("SD100")
        assert admin_client.delete(f"/api/deleteflights/{flight_id}").status_code == 200
        assert admin_client.delete(f"/api/deleteflights/{flight_id}").status_code == 404

    def test_delete_with_bookings(self, admin_client, make_flight):
        flight_id = make_flight("SD100")
        admin_client.post("/api/create-ticket", json=ticket_payload(flight_id))
        assert admin_client.delete(f"/api/deleteflights/{flight_id}").status_code == 409


class TestFlightQueries:
    def test_table_by_type(self, agent_client, make_flight):
        make_flight("SD100")
        make_flight("HC100", type="helico")
        planes = agent_client.get("/api/flighttable?type=plane").get_json()["flights"]
        helicos = agent_client.get("/api/flighttable?type=helico").get_json()["flights"]
        assert [f["flight_number"] for f in planes] == ["SD100"]
        assert [f["flight_number"] for f in helicos] == ["HC100"]
        assert agent_client.get("/api/flighttable?type=boat").status_code == 400

    def test_table_requires_login(self, client, locations):
        assert client.get("/api/flighttable").status_code == 401

    def test_search(self, agent_client, make_flight):
        day = date.today() + timedelta(days=4)
        make_flight("SD100", departure=at(day))
        make_flight("SD101", departure=at(day + timedelta(days=1)))
        make_flight("XX900", departure=at(day))

        by_number = agent_client.get("/api/flight-search?flightNumber=sd10").get_json()["flights"]
        assert {f["flight_number"] for f in by_number} == {"SD100", "SD101"}

        by_day = agent_client.get(f"/api/flight-search?date={day.isoformat()}").get_json()["flights"]
        assert {f["flight_number"] for f in by_day} == {"SD100", "XX900"}

        by_tail = agent_client.get("/api/flight-search?tailNumber=HH-XX900").get_json()["flights"]
        assert [f["flight_number"] for f in by_tail] == ["XX900"]

        assert agent_client.get("/api/flight-search?date=tomorrow").status_code == 400

    def test_export_csv(self, agent_client, make_flight):
        make_flight("SD100", price=99)
        resp = agent_client.get("/api/flight-export")
        assert resp.mimetype == "text/csv"
        assert "attachment" in resp.headers["Content-Disposition"]

        rows = list(csv.reader(io.StringIO(resp.get_data(as_text=True))))
        assert rows[0] == EXPORT_COLUMNS
        assert rows[1][0] == "SD100"
        assert rows[1][4] == "Toussaint Louverture (PAP)"
        assert rows[1][8] == "99.00"

    def test_by_number(self, client, make_flight):
        make_flight("SD100")
        assert client.get("/api/flights/SD100").get_json()["flight"]["flight_number"] == "SD100"
        assert client.get("/api/flights/NOPE").status_code == 404

    def test_passengers(self, admin_client, make_flight):
        flight_id = make_flight("SD100")
        ref = admin_client.post("/api/create-ticket", json=ticket_payload(flight_id)).get_json()["bookingReference"]
        body = admin_client.get(f"/api/flights/{flight_id}/passengers").get_json()
        assert body["passengers"][0]["full_name"] == "Mr Marie Joseph"
        assert body["passengers"][0]["booking_reference"] == ref

    def test_cancelled_bookings_leave_the_manifest(self, app, admin_client, make_flight):
        flight_id = make_flight("SD100")
        gone = admin_client.post("/api/create-ticket", json=ticket_payload(flight_id)).get_json()["bookingReference"]
        kept_payload = ticket_payload(flight_id, passengers=[passenger(first="Jean", last="Pierre")], unpaid="pending")
        kept = admin_client.post("/api/create-ticket", json=kept_payload).get_json()["bookingReference"]
        admin_client.patch(f"/api/booking/{gone}/payment-status", json={"paymentStatus": "cancelled"})

        rows = admin_client.get(f"/api/flights/{flight_id}/passengers").get_json()["passengers"]
        assert [r["booking_reference"] for r in rows] == [kept]

        renderer = MagicMock()
        renderer.render.return_value = b"%PDF-1.7"
        app.extensions[PDF] = renderer
        admin_client.get(f"/api/generate/{flight_id}/passengers-list")
        html = renderer.render.call_args.args[0]
        assert "Jean Pierre" in html
        assert "pending" in html
        assert "Marie Joseph" not in html

        # cancelled bookings still block deletion
        assert admin_client.delete(f"/api/deleteflights/{flight_id}").status_code == 409

    def test_passenger_list_pdf(self, app, admin_client, make_flight):
        flight_id = make_flight("SD100")
        admin_client.post("/api/create-ticket", json=ticket_payload(flight_id))
        renderer = MagicMock()
        renderer.render.return_value = b"%PDF-1.7"
        app.extensions[PDF] = renderer

        resp = admin_client.get(f"/api/generate/{flight_id}/passengers-list")
        assert resp.status_code == 200
        assert resp.mimetype == "application/pdf"
        assert "passengers-SD100.pdf" in resp.headers["Content-Disposition"]
        assert "Marie Joseph" in renderer.render.call_args.args[0]
