from datetime import datetime, timedelta
import hashlib
import os

from skydesk import create_app, db
from skydesk.models import Flight, Location, User

app = create_app()

LOCATIONS = [
    ("Toussaint Louverture International", "PAP", "Port-au-Prince", "Haiti"),
    ("Cap-Haitien International", "CAP", "Cap-Haitien", "Haiti"),
    ("Jacmel Airport", "JAK", "Jacmel", "Haiti"),
    ("Jeremie Airport", "JEE", "Jeremie", "Haiti"),
    ("Antoine-Simon Airport", "CYA", "Les Cayes", "Haiti"),
    ("Port-de-Paix Airport", "PAX", "Port-de-Paix", "Haiti"),
]

# (origin, destination, base fare, minutes in the air, type)
ROUTES = [
    ("PAP", "CAP", 120, 45, "plane"), ("CAP", "PAP", 120, 45, "plane"),
    ("PAP", "JAK", 95, 25, "plane"), ("JAK", "PAP", 95, 25, "plane"),
    ("PAP", "JEE", 130, 50, "plane"), ("JEE", "PAP", 130, 50, "plane"),
    ("PAP", "CYA", 110, 40, "plane"), ("CYA", "PAP", 110, 40, "plane"),
    ("PAP", "PAX", 140, 55, "plane"), ("PAX", "PAP", 140, 55, "plane"),
    ("PAP", "JAK", 350, 20, "helico"), ("JAK", "PAP", 350, 20, "helico"),
    ("PAP", "CAP", 520, 40, "helico"), ("CAP", "PAP", 520, 40, "helico"),
]

# departures every other day, two slots per day
DAY_OFFSETS = list(range(1, 60, 2))
TIME_OFFSETS = [timedelta(hours=7, minutes=30), timedelta(hours=15, minutes=0)]


def stable_noise(key: str, low=-0.05, high=0.05) -> float:
    h = hashlib.sha256(key.encode()).hexdigest()
    rnd = int(h[:8], 16) / 0xFFFFFFFF
    return low + (high - low) * rnd


def seed_locations():
    existing = {loc.code for loc in Location.query.all()}
    created = 0
    for name, code, city, country in LOCATIONS:
        if code in existing:
            continue
        db.session.add(Location(name=name, code=code, city=city, country=country))
        created += 1
    db.session.commit()
    print(f"[OK] Seeded {created} locations.")


def seed_flights():
    by_code = {loc.code: loc for loc in Location.query.all()}
    today = datetime.now().replace(hour=0, minute=0, second=0, microsecond=0)
    existing = {f.flight_number for f in db.session.query(Flight.flight_number).all()}

    to_insert = []
    for route_no, (origin, dest, base, minutes, ftype) in enumerate(ROUTES, start=1):
        prefix = "HC" if ftype == "helico" else "SD"
        for d in DAY_OFFSETS:
            for slot, t_off in enumerate(TIME_OFFSETS):
                depart = today + timedelta(days=d) + t_off
                number = f"{prefix}{route_no:02d}{depart:%m%d}{slot}"
                if number in existing:
                    continue
                existing.add(number)
                price = round(base * (1 + stable_noise(f"{origin}-{dest}-{depart.isoformat()}")), 2)
                to_insert.append(Flight(
                    flight_number=number,
                    type=ftype,
                    airline="SkyDesk Airways",
                    tail_number=f"HH-{prefix}{route_no:02d}",
                    departure_location_id=by_code[origin].id,
                    arrival_location_id=by_code[dest].id,
                    departure_time=depart,
                    arrival_time=depart + timedelta(minutes=minutes),
                    price=price,
                    seats_available=5 if ftype == "helico" else 19,
                ))

    if to_insert:
        db.session.add_all(to_insert)
        db.session.commit()
        print(f"[OK] Seeded {len(to_insert)} flights.")
    else:
        print("[INFO] No new flights to seed.")


def seed_admin():
    email = (os.getenv("ADMIN_EMAIL") or "").strip().lower()
    password = os.getenv("ADMIN_PASSWORD") or ""
    if not email or not password:
        print("[INFO] ADMIN_EMAIL / ADMIN_PASSWORD not set, skipping admin user.")
        return

    user = User.query.filter_by(email=email).first()
    if user:
        print("[INFO] Admin user already exists:", email)
        return
    user = User(email=email, name="Administrator", role="admin")
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    print("[OK] Created admin user:", email)


with app.app_context():
    seed_locations()
    seed_flights()
    seed_admin()
