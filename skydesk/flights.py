import csv
import io
import logging
from datetime import date, datetime, time, timedelta

from flask import Blueprint, Response, jsonify, request, send_file
from flask_login import login_required
from playwright.sync_api import Error as PlaywrightError
from sqlalchemy import or_

from . import db
from .auth import admin_required
from .models import FLIGHT_TYPES, Booking, Flight, Location
from .schemas import FlightIn, LocationIn
from .services import PDF, service
from .tickets import render_passenger_list_html

logger = logging.getLogger(__name__)

flights_bp = Blueprint("flights", __name__, url_prefix="/api")

EXPORT_COLUMNS = [
    "Flight Number",
    "Type",
    "Airline",
    "Tail Number",
    "From",
    "To",
    "Departure",
    "Arrival",
    "Price",
    "Seats Available",
]


def _filtered_flights():
    """Flights matching ?flightNumber=&tailNumber=&date= (all optional)."""
    number = (request.args.get("flightNumber") or "").strip()
    tail = (request.args.get("tailNumber") or "").strip()
    day_raw = (request.args.get("date") or "").strip()
    flight_type = (request.args.get("type") or "").strip()

    q = Flight.query
    if number:
        q = q.filter(Flight.flight_number.ilike(f"%{number}%"))
    if tail:
        q = q.filter(Flight.tail_number.ilike(f"%{tail}%"))
    if flight_type in FLIGHT_TYPES:
        q = q.filter(Flight.type == flight_type)
    if day_raw:
        day = date.fromisoformat(day_raw)
        start = datetime.combine(day, time.min)
        q = q.filter(Flight.departure_time >= start, Flight.departure_time < start + timedelta(days=1))
    return q.order_by(Flight.departure_time.asc()).all()


def _bookings_on(flight: Flight, include_cancelled: bool = False):
    q = Booking.query.filter(or_(Booking.flight_id == flight.id, Booking.return_flight_id == flight.id))
    if not include_cancelled:
        q = q.filter(Booking.payment_status != "cancelled")
    return q.order_by(Booking.created_at.asc()).all()


def _check_locations(form: FlightIn):
    for loc_id in (form.departure_location_id, form.arrival_location_id):
        if db.session.get(Location, loc_id) is None:
            return jsonify({"ok": False, "error": f"Unknown location {loc_id}"}), 400
    return None


def _flight_number_taken(number: str, exclude_id=None) -> bool:
    q = Flight.query.filter(Flight.flight_number == number)
    if exclude_id is not None:
        q = q.filter(Flight.id != exclude_id)
    return q.first() is not None


# ---- Locations ----

@flights_bp.get("/locations")
def list_locations():
    locations = Location.query.order_by(Location.name.asc()).all()
    return jsonify({"locations": [loc.to_dict() for loc in locations]})


@flights_bp.post("/locations")
@admin_required
def add_location():
    form = LocationIn.model_validate(request.get_json(silent=True) or {})
    if Location.query.filter_by(code=form.code).first():
        return jsonify({"ok": False, "error": f"Location {form.code} already exists"}), 409
    loc = Location(name=form.name, code=form.code, city=form.city, country=form.country)
    db.session.add(loc)
    db.session.commit()
    logger.info("location %s added", loc.code)
    return jsonify({"ok": True, "location": loc.to_dict()}), 201


# ---- Flight table ----

@flights_bp.get("/flighttable")
@login_required
def flight_table():
    flight_type = request.args.get("type") or "plane"
    if flight_type not in FLIGHT_TYPES:
        return jsonify({"ok": False, "error": f"type must be one of {', '.join(FLIGHT_TYPES)}"}), 400
    flights = Flight.query.filter_by(type=flight_type).order_by(Flight.departure_time.asc()).all()
    return jsonify({"flights": [f.to_dict() for f in flights]})


@flights_bp.post("/addflighttable")
@admin_required
def add_flight():
    form = FlightIn.model_validate(request.get_json(silent=True) or {})
    bad_location = _check_locations(form)
    if bad_location:
        return bad_location
    if _flight_number_taken(form.flight_number):
        return jsonify({"ok": False, "error": f"Flight {form.flight_number} already exists"}), 409

    flight = Flight(**form.model_dump())
    db.session.add(flight)
    db.session.commit()
    logger.info("flight %s added", flight.flight_number)
    return jsonify({"ok": True, "flight": flight.to_dict()}), 201


@flights_bp.put("/updateflight/<int:flight_id>")
@admin_required
def update_flight(flight_id: int):
    flight = db.session.get(Flight, flight_id)
    if flight is None:
        return jsonify({"ok": False, "error": "Flight not found"}), 404

    form = FlightIn.model_validate(request.get_json(silent=True) or {})
    bad_location = _check_locations(form)
    if bad_location:
        return bad_location
    if _flight_number_taken(form.flight_number, exclude_id=flight.id):
        return jsonify({"ok": False, "error": f"Flight {form.flight_number} already exists"}), 409

    for key, value in form.model_dump().items():
        setattr(flight, key, value)
    db.session.commit()
    logger.info("flight %s updated", flight.flight_number)
    return jsonify({"ok": True, "flight": flight.to_dict()})


@flights_bp.delete("/deleteflights/<int:flight_id>")
@admin_required
def delete_flight(flight_id: int):
    flight = db.session.get(Flight, flight_id)
    if flight is None:
        return jsonify({"ok": False, "error": "Flight not found"}), 404
    if _bookings_on(flight, include_cancelled=True):
        return jsonify({"ok": False, "error": "Flight has bookings and cannot be deleted"}), 409

    db.session.delete(flight)
    db.session.commit()
    logger.info("flight %s deleted", flight.flight_number)
    return jsonify({"ok": True})


@flights_bp.get("/flight-search")
@login_required
def flight_search():
    try:
        flights = _filtered_flights()
    except ValueError:
        return jsonify({"ok": False, "error": "date must be YYYY-MM-DD"}), 400
    return jsonify({"flights": [f.to_dict() for f in flights]})


@flights_bp.get("/flight-export")
@login_required
def flight_export():
    try:
        flights = _filtered_flights()
    except ValueError:
        return jsonify({"ok": False, "error": "date must be YYYY-MM-DD"}), 400

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(EXPORT_COLUMNS)
    for f in flights:
        writer.writerow([
            f.flight_number,
            f.type,
            f.airline,
            f.tail_number or "",
            f.departure_location.label,
            f.arrival_location.label,
            f.departure_time.strftime("%Y-%m-%d %H:%M"),
            f.arrival_time.strftime("%Y-%m-%d %H:%M"),
            f"{f.price:.2f}",
            f.seats_available,
        ])

    csv_data = output.getvalue()
    output.close()

    resp = Response(csv_data, mimetype="text/csv")
    resp.headers["Content-Disposition"] = "attachment; filename=flights.csv"
    return resp


@flights_bp.get("/flights/<string:flight_number>")
def flight_by_number(flight_number: str):
    flight = Flight.query.filter_by(flight_number=flight_number).first()
    if flight is None:
        return jsonify({"ok": False, "error": "Flight not found"}), 404
    return jsonify({"ok": True, "flight": flight.to_dict()})


@flights_bp.get("/flights/<int:flight_id>/passengers")
@login_required
def flight_passengers(flight_id: int):
    flight = db.session.get(Flight, flight_id)
    if flight is None:
        return jsonify({"ok": False, "error": "Flight not found"}), 404

    passengers = []
    for booking in _bookings_on(flight):
        for p in booking.passengers:
            row = p.to_dict()
            row["booking_reference"] = booking.booking_reference
            row["payment_status"] = booking.payment_status
            passengers.append(row)
    return jsonify({"flight": flight.to_dict(), "passengers": passengers})


@flights_bp.get("/generate/<int:flight_id>/passengers-list")
@login_required
def passenger_list_pdf(flight_id: int):
    flight = db.session.get(Flight, flight_id)
    if flight is None:
        return jsonify({"ok": False, "error": "Flight not found"}), 404

    html = render_passenger_list_html(flight, _bookings_on(flight))
    try:
        pdf = service(PDF).render(html)
    except PlaywrightError as exc:
        logger.error("passenger list PDF for %s failed: %s", flight.flight_number, exc)
        return jsonify({"ok": False, "error": "PDF generation failed"}), 502

    return send_file(
        io.BytesIO(pdf),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=f"passengers-{flight.flight_number}.pdf",
    )
