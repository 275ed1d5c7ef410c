import io
import logging
import os
import secrets

from flask import Blueprint, Response, jsonify, request, send_file, send_from_directory
from flask_login import current_user, login_required
from playwright.sync_api import Error as PlaywrightError
from sqlalchemy import func, or_

from . import db
from .auth import admin_required
from .calendar_picker import ERR_RETURN_BEFORE_DEPARTURE
from .models import Booking, Flight, Passenger, utcnow
from .notifications import notify
from .schemas import PassengerIn, PaymentStatusIn, TicketRequest
from .services import MAILER, PDF, PRINTER, SMS, service
from .tickets import receipt_from_booking, render_email_html, render_ticket_html

logger = logging.getLogger(__name__)

booking_bp = Blueprint("booking", __name__)


def booking_reference(flight_id: int) -> str:
    stamp = utcnow().strftime("%Y%m%d%H%M%S")
    return f"BK-{flight_id}-{stamp}-{secrets.token_hex(2).upper()}"


def _seat_problem(flight: Flight, needed: int):
    if flight.seats_available <= 0:
        return f"No seats available on flight {flight.flight_number}"
    if flight.seats_available < needed:
        return f"Not enough seats available on flight {flight.flight_number}"
    return None


def _already_booked(flight: Flight, p: PassengerIn):
    """Existing passenger with the same name (and birth date, when known) on this flight."""
    q = (
        db.session.query(Passenger)
        .join(Booking, Passenger.booking_id == Booking.id)
        .filter(or_(Booking.flight_id == flight.id, Booking.return_flight_id == flight.id))
        .filter(Booking.payment_status != "cancelled")
        .filter(func.lower(Passenger.first_name) == p.first_name.lower())
        .filter(func.lower(Passenger.last_name) == p.last_name.lower())
    )
    if p.date_of_birth:
        q = q.filter(or_(Passenger.date_of_birth == p.date_of_birth, Passenger.date_of_birth.is_(None)))
    return q.first()


def _same_person(a: PassengerIn, b: PassengerIn) -> bool:
    if (a.first_name.lower(), a.last_name.lower()) != (b.first_name.lower(), b.last_name.lower()):
        return False
    return not (a.date_of_birth and b.date_of_birth and a.date_of_birth != b.date_of_birth)


def _get_booking(reference: str):
    return Booking.query.filter_by(booking_reference=reference).first()


def _not_found():
    return jsonify({"success": False, "message": "Booking not found"}), 404


@booking_bp.post("/api/create-ticket")
@admin_required
def create_ticket():
    form = TicketRequest.model_validate(request.get_json(silent=True) or {})

    flight = db.session.get(Flight, form.flight_id)
    if flight is None:
        return jsonify({"success": False, "message": "Flight not found"}), 404

    return_flight = None
    if form.is_round_trip:
        return_flight = Flight.query.filter_by(flight_number=form.return_flight_number).first()
        if return_flight is None:
            return jsonify({"success": False, "message": "Return flight not found"}), 404
        if return_flight.departure_time < flight.departure_time:
            return jsonify({"success": False, "message": ERR_RETURN_BEFORE_DEPARTURE}), 400

    needed = len(form.passengers)
    for leg in (flight, return_flight):
        if leg is None:
            continue
        problem = _seat_problem(leg, needed)
        if problem:
            return jsonify({"success": False, "message": problem}), 400

    seen = []
    for p in form.passengers:
        for other in seen:
            if _same_person(p, other):
                return jsonify({
                    "success": False,
                    "message": f"{p.first_name} {p.last_name} is listed more than once",
                }), 409
        seen.append(p)
        for leg in (flight, return_flight):
            if leg is not None and _already_booked(leg, p):
                return jsonify({
                    "success": False,
                    "message": f"{p.first_name} {p.last_name} already has a booking on flight {leg.flight_number}",
                }), 409

    booking = Booking(
        booking_reference=booking_reference(flight.id),
        flight_id=flight.id,
        return_flight_id=return_flight.id if return_flight else None,
        total_price=form.total_price,
        currency=form.currency.lower(),
        exchange_rate=form.exchange_rate,
        payment_method=form.payment_method,
        payment_status=form.payment_status,
        contact_email=form.contact_info.email,
        contact_phone=form.contact_info.phone,
        company_name=form.company_name,
        external_reference=form.reference_number,
        created_by_id=current_user.id,
    )
    for p in form.passengers:
        booking.passengers.append(Passenger(**p.model_dump()))

    flight.seats_available -= needed
    if return_flight is not None:
        return_flight.seats_available -= needed

    db.session.add(booking)
    db.session.commit()
    logger.info("booking %s created for %d passenger(s) on %s", booking.booking_reference, needed, flight.flight_number)

    notify(
        f"New booking {booking.booking_reference} on flight {flight.flight_number}",
        type="booking",
        booking_reference=booking.booking_reference,
    )

    subject = f"Your e-ticket - Booking ID: {booking.booking_reference}"
    email_sent = service(MAILER).send(booking.contact_email, subject, render_email_html(booking))
    sms_sent = service(SMS).send(
        booking.contact_phone,
        f"Booking {booking.booking_reference} confirmed on flight {flight.flight_number}.",
    )

    return jsonify({
        "success": True,
        "bookingReference": booking.booking_reference,
        "totalPrice": booking.total_price,
        "paymentStatus": booking.payment_status,
        "emailSent": email_sent,
        "smsSent": sms_sent,
    }), 201


@booking_bp.get("/api/booking/<reference>")
@login_required
def booking_detail(reference: str):
    booking = _get_booking(reference)
    if booking is None:
        return _not_found()
    return jsonify({"success": True, "booking": booking.to_dict()})


@booking_bp.get("/api/booking/<reference>/ticket")
@login_required
def ticket_html(reference: str):
    booking = _get_booking(reference)
    if booking is None:
        return _not_found()
    return Response(render_ticket_html(booking), mimetype="text/html")


@booking_bp.get("/api/booking/<reference>/ticket.pdf")
@login_required
def ticket_pdf(reference: str):
    booking = _get_booking(reference)
    if booking is None:
        return _not_found()
    try:
        pdf = service(PDF).render(render_ticket_html(booking))
    except PlaywrightError as exc:
        logger.error("ticket PDF for %s failed: %s", reference, exc)
        return jsonify({"success": False, "message": "PDF generation failed"}), 502
    return send_file(
        io.BytesIO(pdf),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=f"ticket-{booking.booking_reference}.pdf",
    )


@booking_bp.post("/api/booking/<reference>/print")
@login_required
def print_receipt(reference: str):
    booking = _get_booking(reference)
    if booking is None:
        return _not_found()
    result = service(PRINTER).print_receipt(receipt_from_booking(booking))
    # a missing printer is reported, not treated as a server error
    return jsonify(result.to_dict())


@booking_bp.get("/api/printer/status")
@login_required
def printer_status():
    printer = service(PRINTER)
    return jsonify({"mode": printer.mode, "connected": printer.check_connection()})


@booking_bp.get("/receipts/<path:filename>")
@login_required
def saved_receipt(filename: str):
    return send_from_directory(os.path.abspath(service(PRINTER).receipts_dir), filename)


@booking_bp.patch("/api/booking/<reference>/payment-status")
@admin_required
def update_payment_status(reference: str):
    booking = _get_booking(reference)
    if booking is None:
        return _not_found()
    form = PaymentStatusIn.model_validate(request.get_json(silent=True) or {})

    previous = booking.payment_status
    legs = [leg for leg in (booking.flight, booking.return_flight) if leg is not None]
    needed = len(booking.passengers)
    if form.payment_status == "cancelled" and previous != "cancelled":
        for leg in legs:
            leg.seats_available += needed
    elif previous == "cancelled" and form.payment_status != "cancelled":
        # reinstating takes the seats again
        for leg in legs:
            problem = _seat_problem(leg, needed)
            if problem:
                return jsonify({"success": False, "message": problem}), 400
        for leg in legs:
            leg.seats_available -= needed
    booking.payment_status = form.payment_status
    db.session.commit()
    logger.info("booking %s payment status %s -> %s", reference, previous, form.payment_status)

    if previous != form.payment_status:
        notify(
            f"Booking {reference} is now {form.payment_status}",
            type="payment",
            booking_reference=reference,
        )
    return jsonify({"success": True, "booking": booking.to_dict()})
