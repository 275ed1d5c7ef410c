"""Shared fixtures: an in-memory app, seeded routes and logged-in clients."""

from datetime import date, datetime, time, timedelta

import pytest

from skydesk import create_app, db
from skydesk.models import Flight, Location, User
from skydesk.services import MAILER, SMS

ADMIN_EMAIL = "admin@skydesk.test"
AGENT_EMAIL = "agent@skydesk.test"
PASSWORD = "correct horse"


class FakeMailer:
    def __init__(self, result=True):
        self.result = result
        self.sent = []

    def send(self, to_email, subject, html):
        self.sent.append({"to": to_email, "subject": subject, "html": html})
        return self.result


class FakeSms:
    def __init__(self):
        self.sent = []

    def send(self, to_phone, body):
        if not to_phone:
            return False
        self.sent.append({"to": to_phone, "body": body})
        return True


@pytest.fixture
def app(tmp_path, monkeypatch):
    for key in ("DATABASE_URL", "PRINTER_MODE", "APP_ENV", "RENDER"):
        monkeypatch.delenv(key, raising=False)

    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "APP_ENV": "test",
        "PRINTER_MODE": "cloud",
        "RECEIPTS_DIR": str(tmp_path / "receipts"),
        "LOG_DIR": str(tmp_path / "logs"),
        "BRAND_NAME": "Test Air",
    })
    app.extensions[MAILER] = FakeMailer()
    app.extensions[SMS] = FakeSms()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _make_user(email, role):
    user = User(email=email, name=role.title(), role=role)
    user.set_password(PASSWORD)
    db.session.add(user)
    db.session.commit()
    return user


def _login(client, email):
    resp = client.post("/api/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200
    return client


@pytest.fixture
def admin_client(app):
    with app.app_context():
        _make_user(ADMIN_EMAIL, "admin")
    return _login(app.test_client(), ADMIN_EMAIL)


@pytest.fixture
def agent_client(app):
    with app.app_context():
        _make_user(AGENT_EMAIL, "agent")
    return _login(app.test_client(), AGENT_EMAIL)


def at(day: date, hour: int = 8) -> datetime:
    return datetime.combine(day, time(hour, 0))


@pytest.fixture
def locations(app):
    """PAP and CAP, returned as {code: id}."""
    with app.app_context():
        pap = Location(name="Toussaint Louverture", code="PAP", city="Port-au-Prince", country="Haiti")
        cap = Location(name="Cap-Haitien", code="CAP", city="Cap-Haitien", country="Haiti")
        db.session.add_all([pap, cap])
        db.session.commit()
        return {"PAP": pap.id, "CAP": cap.id}


@pytest.fixture
def make_flight(app, locations):
    """Factory for flights; returns the new flight id."""

    def _make(number, origin="PAP", destination="CAP", departure=None, price=120.0, seats=10, type="plane"):
        departure = departure or at(date.today() + timedelta(days=10))
        with app.app_context():
            flight = Flight(
                flight_number=number,
                type=type,
                airline="Test Air",
                tail_number=f"HH-{number}",
                departure_location_id=locations[origin],
                arrival_location_id=locations[destination],
                departure_time=departure,
                arrival_time=departure + timedelta(minutes=45),
                price=price,
                seats_available=seats,
            )
            db.session.add(flight)
            db.session.commit()
            return flight.id

    return _make


def passenger(first="Marie", last="Joseph", **extra):
    body = {
        "firstName": first,
        "lastName": last,
        "dateOfBirth": "1990-05-04",
        "nationality": "Haitian",
        "idClient": "P123456",
        "phone": "+50937000000",
    }
    body.update(extra)
    return body


def ticket_payload(flight_id, passengers=None, **extra):
    body = {
        "flightId": flight_id,
        "passengers": [passenger()] if passengers is None else passengers,
        "contactInfo": {"email": "marie@example.com", "phone": "+50937000000"},
        "totalPrice": 240,
        "currency": "usd",
        "paymentMethod": "cash",
        "unpaid": "confirmed",
    }
    body.update(extra)
    return body
