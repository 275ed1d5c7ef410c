from datetime import datetime, UTC
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from . import db, login_manager

FLIGHT_TYPES = ("plane", "helico")


def utcnow() -> datetime:
    # columns hold naive UTC
    return datetime.now(UTC).replace(tzinfo=None)


# Dashboard account
class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    name = db.Column(db.String(120))
    role = db.Column(db.String(32), nullable=False, default="agent")
    password_hash = db.Column(db.String(255), nullable=False)

    def set_password(self, plaintext: str):
        self.password_hash = generate_password_hash(plaintext)

    def check_password(self, plaintext: str) -> bool:
        return check_password_hash(self.password_hash, plaintext)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_dict(self):
        return {"id": self.id, "email": self.email, "name": self.name, "role": self.role}


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


class Location(db.Model):
    __tablename__ = "location"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    code = db.Column(db.String(8), unique=True, nullable=False, index=True)
    city = db.Column(db.String(120))
    country = db.Column(db.String(120))

    @property
    def label(self) -> str:
        return f"{self.name} ({self.code})"

    def to_dict(self):
        return {"id": self.id, "name": self.name, "code": self.code, "city": self.city, "country": self.country}

    def __repr__(self):
        return f"<Location {self.code}>"


class Flight(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    flight_number = db.Column(db.String(32), unique=True, nullable=False, index=True)
    type = db.Column(db.String(16), nullable=False, default="plane")
    airline = db.Column(db.String(64), nullable=False)
    tail_number = db.Column(db.String(32))
    departure_location_id = db.Column(db.Integer, db.ForeignKey("location.id"), nullable=False)
    arrival_location_id = db.Column(db.Integer, db.ForeignKey("location.id"), nullable=False)
    departure_time = db.Column(db.DateTime, nullable=False, index=True)
    arrival_time = db.Column(db.DateTime, nullable=False)
    price = db.Column(db.Float, nullable=False, default=0.0)
    seats_available = db.Column(db.Integer, nullable=False, default=0)

    departure_location = db.relationship("Location", foreign_keys=[departure_location_id], lazy="joined")
    arrival_location = db.relationship("Location", foreign_keys=[arrival_location_id], lazy="joined")

    def to_dict(self):
        dep, arr = self.departure_location, self.arrival_location
        return {
            "id": self.id,
            "flight_number": self.flight_number,
            "type": self.type,
            "airline": self.airline,
            "tail_number": self.tail_number,
            "from": dep.label if dep else None,
            "to": arr.label if arr else None,
            "fromCity": dep.city if dep else None,
            "toCity": arr.city if arr else None,
            "departure_location_id": self.departure_location_id,
            "arrival_location_id": self.arrival_location_id,
            "departure_time": self.departure_time.isoformat(),
            "arrival_time": self.arrival_time.isoformat(),
            "price": self.price,
            "seats_available": self.seats_available,
        }

    def __repr__(self):
        return f"<Flight {self.flight_number} {self.departure_time}>"


class Booking(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    booking_reference = db.Column(db.String(32), unique=True, nullable=False, index=True)
    flight_id = db.Column(db.Integer, db.ForeignKey("flight.id"), nullable=False, index=True)
    return_flight_id = db.Column(db.Integer, db.ForeignKey("flight.id"), nullable=True)
    total_price = db.Column(db.Float, nullable=False, default=0.0)
    currency = db.Column(db.String(8), nullable=False, default="usd")
    exchange_rate = db.Column(db.String(32))
    payment_method = db.Column(db.String(32), nullable=False, default="card")
    payment_status = db.Column(db.String(32), nullable=False, default="confirmed")
    contact_email = db.Column(db.String(120), nullable=False)
    contact_phone = db.Column(db.String(64))
    company_name = db.Column(db.String(120))
    external_reference = db.Column(db.String(64))
    created_by_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    flight = db.relationship("Flight", foreign_keys=[flight_id])
    return_flight = db.relationship("Flight", foreign_keys=[return_flight_id])
    passengers = db.relationship("Passenger", back_populates="booking", cascade="all, delete-orphan", order_by="Passenger.id")

    @property
    def is_round_trip(self) -> bool:
        return self.return_flight_id is not None

    def to_dict(self):
        return {
            "booking_reference": self.booking_reference,
            "flight_id": self.flight_id,
            "return_flight_id": self.return_flight_id,
            "total_price": self.total_price,
            "currency": self.currency,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "contact_email": self.contact_email,
            "contact_phone": self.contact_phone,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "passengers": [p.to_dict() for p in self.passengers],
        }


class Passenger(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("booking.id"), nullable=False, index=True)
    title = db.Column(db.String(16))
    first_name = db.Column(db.String(64), nullable=False)
    middle_name = db.Column(db.String(64))
    last_name = db.Column(db.String(64), nullable=False)
    date_of_birth = db.Column(db.Date)
    gender = db.Column(db.String(16))
    nationality = db.Column(db.String(64))
    country = db.Column(db.String(64))
    address = db.Column(db.String(255))
    email = db.Column(db.String(120))
    phone = db.Column(db.String(32))
    id_type = db.Column(db.String(32))
    id_number = db.Column(db.String(64))
    emergency_name = db.Column(db.String(120))
    emergency_email = db.Column(db.String(120))
    emergency_phone = db.Column(db.String(32))

    booking = db.relationship("Booking", back_populates="passengers")

    @property
    def full_name(self):
        parts = [self.title, self.first_name, self.middle_name, self.last_name]
        return " ".join([p for p in parts if p]).strip()

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "first_name": self.first_name,
            "middle_name": self.middle_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "date_of_birth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "nationality": self.nationality,
            "email": self.email,
            "phone": self.phone,
            "id_type": self.id_type,
            "id_number": self.id_number,
        }

    def __repr__(self):
        return f"<Passenger {self.full_name}>"


class Notification(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    message = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(32), nullable=False, default="booking")
    booking_reference = db.Column(db.String(32))
    seen = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "message": self.message,
            "type": self.type,
            "booking_reference": self.booking_reference,
            "seen": self.seen,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
