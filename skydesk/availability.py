from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional

from sqlalchemy.orm import aliased

from . import db
from .calendar_picker import DateOption
from .models import Flight, Location

# how far ahead the calendar looks for flights
DEFAULT_WINDOW_DAYS = 365


def date_options_from_flights(flights: Iterable[Flight]) -> List[DateOption]:
    """Collapse flights into one DateOption per departure day.

    has_any_flight is true when the route is flown that day at all,
    has_flight only when at least one of those flights still has seats.
    The price is the cheapest bookable fare of the day.
    """
    by_day = {}
    for f in flights:
        day = f.departure_time.date()
        entry = by_day.setdefault(day, {"price": None, "has_flight": False})
        if f.seats_available > 0:
            entry["has_flight"] = True
            if entry["price"] is None or f.price < entry["price"]:
                entry["price"] = f.price

    return [
        DateOption(date=day, price=info["price"], has_flight=info["has_flight"], has_any_flight=True)
        for day, info in sorted(by_day.items())
    ]


def route_flights(origin: str, destination: str, start: date, end: date, flight_type: Optional[str] = None):
    """Flights from origin to destination (location codes) departing in [start, end)."""
    dep = aliased(Location)
    arr = aliased(Location)
    q = (
        db.session.query(Flight)
        .join(dep, Flight.departure_location_id == dep.id)
        .join(arr, Flight.arrival_location_id == arr.id)
        .filter(dep.code == origin.upper(), arr.code == destination.upper())
        .filter(Flight.departure_time >= datetime.combine(start, time.min))
        .filter(Flight.departure_time < datetime.combine(end, time.min))
    )
    if flight_type:
        q = q.filter(Flight.type == flight_type)
    return q.order_by(Flight.departure_time.asc()).all()


def route_date_options(
    origin: str,
    destination: str,
    today: Optional[date] = None,
    window_days: int = DEFAULT_WINDOW_DAYS,
    flight_type: Optional[str] = None,
) -> List[DateOption]:
    today = today or date.today()
    flights = route_flights(origin, destination, today, today + timedelta(days=window_days), flight_type)
    return date_options_from_flights(flights)
