from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class Payload(BaseModel):
    # dashboard sends camelCase, the API documents snake_case; accept both
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="ignore")


class PassengerIn(Payload):
    title: Optional[str] = "Mr"
    first_name: str = Field(alias="firstName", min_length=1)
    middle_name: Optional[str] = Field(default=None, alias="middleName")
    last_name: str = Field(alias="lastName", min_length=1)
    date_of_birth: Optional[date] = Field(default=None, alias="dateOfBirth")
    gender: Optional[str] = "other"
    nationality: Optional[str] = None
    country: Optional[str] = None
    address: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    id_type: Optional[str] = Field(default="passport", alias="idTypeClient")
    id_number: Optional[str] = Field(default=None, alias="idClient")
    emergency_name: Optional[str] = Field(default=None, alias="nom_urgence")
    emergency_email: Optional[str] = Field(default=None, alias="email_urgence")
    emergency_phone: Optional[str] = Field(default=None, alias="tel_urgence")

    blank_to_none = field_validator(
        "middle_name", "date_of_birth", "nationality", "country", "address", "email", "phone",
        "id_number", "emergency_name", "emergency_email", "emergency_phone",
        mode="before",
    )(_blank_to_none)


class ContactInfo(Payload):
    email: str = Field(min_length=3)
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        if "@" not in value:
            raise ValueError("contact email must contain '@'")
        return value


class TicketRequest(Payload):
    """Body of POST /api/create-ticket."""

    flight_id: int = Field(alias="flightId")
    passengers: List[PassengerIn] = Field(min_length=1, max_length=9)
    contact_info: ContactInfo = Field(alias="contactInfo")
    total_price: float = Field(alias="totalPrice", ge=0)
    currency: str = "usd"
    exchange_rate: Optional[str] = Field(default=None, alias="taux_jour")
    payment_method: str = Field(default="card", alias="paymentMethod", min_length=1)
    payment_status: Literal["confirmed", "pending", "unpaid"] = Field(default="confirmed", alias="unpaid")
    company_name: Optional[str] = Field(default=None, alias="companyName")
    reference_number: Optional[str] = Field(default=None, alias="referenceNumber")
    is_round_trip: bool = Field(default=False, alias="isRoundTrip")
    return_flight_number: Optional[str] = Field(default=None, alias="returnFlightNumber")

    blank_to_none = field_validator(
        "exchange_rate", "company_name", "reference_number", "return_flight_number", mode="before"
    )(_blank_to_none)

    @field_validator("payment_status", mode="before")
    @classmethod
    def default_status(cls, value):
        return value or "confirmed"

    @model_validator(mode="after")
    def check_return_leg(self):
        if self.is_round_trip and not self.return_flight_number:
            raise ValueError("a round trip needs returnFlightNumber")
        return self


class FlightIn(Payload):
    """Body of the flight-table add/update endpoints."""

    flight_number: str = Field(min_length=2, max_length=32)
    type: Literal["plane", "helico"] = "plane"
    airline: str = Field(min_length=1)
    tail_number: Optional[str] = None
    departure_location_id: int
    arrival_location_id: int
    departure_time: datetime
    arrival_time: datetime
    price: float = Field(ge=0)
    seats_available: int = Field(ge=0)

    @model_validator(mode="after")
    def check_route(self):
        if self.departure_location_id == self.arrival_location_id:
            raise ValueError("departure and arrival locations must differ")
        if self.arrival_time <= self.departure_time:
            raise ValueError("arrival_time must be after departure_time")
        return self


class LocationIn(Payload):
    name: str = Field(min_length=1)
    code: str = Field(min_length=2, max_length=8)
    city: Optional[str] = None
    country: Optional[str] = None

    @field_validator("code")
    @classmethod
    def upper_code(cls, value: str) -> str:
        return value.upper()


class PaymentStatusIn(Payload):
    payment_status: Literal["confirmed", "pending", "unpaid", "cancelled"] = Field(alias="paymentStatus")


class CalendarOpen(Payload):
    origin: str = Field(alias="from", min_length=2)
    destination: str = Field(alias="to", min_length=2)
    trip_type: Literal["oneway", "roundtrip"] = Field(default="oneway", alias="tripType")
    departure_date: Optional[date] = Field(default=None, alias="departureDate")
    return_date: Optional[date] = Field(default=None, alias="returnDate")
    flight_type: Literal["plane", "helico"] = Field(default="plane", alias="flightType")

    blank_to_none = field_validator("departure_date", "return_date", mode="before")(_blank_to_none)


class CharterInquiry(Payload):
    full_name: str = Field(alias="fullName", min_length=1)
    email: str = Field(min_length=3)
    phone: str = Field(min_length=3)
    departure: str = Field(min_length=1)
    destination: str = Field(min_length=1)
    departure_date: date = Field(alias="departureDate")
    return_date: Optional[date] = Field(default=None, alias="returnDate")
    passengers: Optional[int] = Field(default=None, ge=1)
    notes: Optional[str] = None
    captcha_token: str = Field(alias="captchaToken", min_length=1)

    blank_to_none = field_validator("return_date", "passengers", "notes", mode="before")(_blank_to_none)

    @model_validator(mode="after")
    def check_dates(self):
        if self.return_date and self.return_date < self.departure_date:
            raise ValueError("returnDate cannot be before departureDate")
        return self

    def template_params(self) -> dict:
        return {
            "fullName": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "departure": self.departure,
            "destination": self.destination,
            "departureDate": self.departure_date.isoformat(),
            "returnDate": self.return_date.isoformat() if self.return_date else "",
            "passengers": str(self.passengers or ""),
            "notes": self.notes or "",
        }


def error_list(exc) -> list:
    """Field errors of a pydantic ValidationError in a JSON-safe shape."""
    return [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
