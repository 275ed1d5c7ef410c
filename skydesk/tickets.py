import base64
import io
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

import qrcode
from flask import current_app, render_template

from .models import Booking, Flight


@dataclass
class TicketLeg:
    label: str
    label_fr: str
    airline: str
    flight_number: str
    dep_name: str
    dep_code: str
    arr_name: str
    arr_code: str
    departure: str
    arrival: str
    price: float


@dataclass
class Receipt:
    booking_reference: str
    issued_at: datetime
    passengers: List[str]
    legs: List[TicketLeg]
    total_price: float
    currency: str = "usd"
    payment_method: str = "card"
    payment_status: str = "confirmed"
    contact_email: Optional[str] = None
    brand: str = "SkyDesk Airways"
    notes: List[str] = field(default_factory=list)


def format_when(value: Optional[datetime]) -> str:
    if not value:
        return "N/A"
    return value.strftime("%a, %d %b %Y %H:%M")


def qr_data_uri(text: str) -> str:
    """PNG QR code for ``text`` as a data: URI, ready for an <img> tag."""
    buf = io.BytesIO()
    qrcode.make(text).save(buf)
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def _leg(flight: Flight, outbound: bool) -> TicketLeg:
    dep, arr = flight.departure_location, flight.arrival_location
    return TicketLeg(
        label="Outbound Flight" if outbound else "Return Flight",
        label_fr="Vol aller" if outbound else "Vol retour",
        airline=flight.airline,
        flight_number=flight.flight_number,
        dep_name=dep.name if dep else "",
        dep_code=dep.code if dep else "",
        arr_name=arr.name if arr else "",
        arr_code=arr.code if arr else "",
        departure=format_when(flight.departure_time),
        arrival=format_when(flight.arrival_time),
        price=flight.price,
    )


def booking_legs(booking: Booking) -> List[TicketLeg]:
    legs = [_leg(booking.flight, outbound=True)]
    if booking.return_flight is not None:
        legs.append(_leg(booking.return_flight, outbound=False))
    return legs


def _brand() -> str:
    return current_app.config.get("BRAND_NAME", "SkyDesk Airways")


def ticket_context(booking: Booking, with_qr: bool = True) -> dict:
    return {
        "brand": _brand(),
        "booking": booking,
        "reference": booking.booking_reference,
        "passengers": booking.passengers,
        "legs": booking_legs(booking),
        "qr_code": qr_data_uri(booking.booking_reference) if with_qr else None,
        "currency": (booking.currency or "usd").upper(),
    }


def render_ticket_html(booking: Booking) -> str:
    """Bilingual (English/French) e-ticket used for the PDF and the browser view."""
    return render_template("tickets/eticket.html", **ticket_context(booking))


def render_email_html(booking: Booking) -> str:
    # mail clients drop data: URIs, so the email carries no QR code
    return render_template("tickets/email.html", **ticket_context(booking, with_qr=False))


def receipt_from_booking(booking: Booking) -> Receipt:
    return Receipt(
        booking_reference=booking.booking_reference,
        issued_at=datetime.now(),
        passengers=[p.full_name for p in booking.passengers],
        legs=booking_legs(booking),
        total_price=booking.total_price,
        currency=booking.currency or "usd",
        payment_method=booking.payment_method,
        payment_status=booking.payment_status,
        contact_email=booking.contact_email,
        brand=_brand(),
    )


def render_receipt_html(receipt: Receipt) -> str:
    return render_template("tickets/receipt.html", receipt=receipt, currency=receipt.currency.upper())


def receipt_lines(receipt: Receipt) -> List[str]:
    """Plain text body of the receipt for the thermal printer."""
    lines = [
        receipt.brand.upper(),
        "-" * 32,
        "BOOKING RECEIPT / RECU DE RESERVATION",
        f"Ref: {receipt.booking_reference}",
        f"Date: {receipt.issued_at.strftime('%d/%m/%Y %H:%M')}",
        "-" * 32,
    ]
    for leg in receipt.legs:
        lines.append(f"{leg.label}: {leg.flight_number}")
        lines.append(f"  {leg.dep_code} -> {leg.arr_code}")
        lines.append(f"  {leg.departure}")
    lines.append("-" * 32)
    for idx, name in enumerate(receipt.passengers, start=1):
        lines.append(f"{idx}. {name}")
    lines.append("-" * 32)
    lines.append(f"Total: {receipt.total_price:.2f} {receipt.currency.upper()}")
    lines.append(f"Payment: {receipt.payment_method} ({receipt.payment_status})")
    lines.extend(receipt.notes)
    lines.append("Keep this receipt for reference")
    return lines


def render_passenger_list_html(flight: Flight, bookings: List[Booking]) -> str:
    rows = []
    for booking in bookings:
        for p in booking.passengers:
            rows.append({"booking": booking, "passenger": p})
    return render_template(
        "tickets/passenger_list.html",
        brand=_brand(),
        flight=flight,
        leg=_leg(flight, outbound=True),
        rows=rows,
        generated_at=format_when(datetime.now()),
    )
