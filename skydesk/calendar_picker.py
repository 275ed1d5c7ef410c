"""Departure/return date selection over two month grids.

A DatePicker holds a *tentative* selection that the user can change freely
while browsing months. Nothing reaches the caller until ``apply()`` maps the
tentative dates back to indices in the availability lists it was given.

Month grids are derived from an integer offset relative to "today"
(0 = current month) and matched against the availability list by calendar
date, so every grid is recomputed from its inputs and never cached.
"""
import calendar
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, List, Optional, Sequence

ONEWAY = "oneway"
ROUNDTRIP = "roundtrip"
TRIP_TYPES = (ONEWAY, ROUNDTRIP)

DEPARTURE = "departure"
RETURN = "return"
CALENDARS = (DEPARTURE, RETURN)

PENDING = "pending"
READY = "ready"
NOT_FOUND = "not_found"

# one pass in the current month, one after jumping to the selected month
MAX_INIT_ATTEMPTS = 2

ERR_RETURN_BEFORE_DEPARTURE = "Return date cannot be before departure date"
ERR_NO_RETURN_AFTER_DEPARTURE = "No valid return date available after selected departure date"
ERR_SELECTION_NOT_FOUND = "Selected date is not among the available dates"

HINT_ROUNDTRIP = (
    "Please select valid departure and return dates with available flights. "
    "Return date must be on or after departure date."
)
HINT_ONEWAY = "Please select a valid departure date with available flights"


def as_date(value) -> date:
    """Calendar date of a date, datetime or ISO string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip()[:10])
    raise TypeError(f"cannot read a calendar date from {value!r}")


@dataclass(frozen=True)
class DateOption:
    date: date
    price: Optional[float] = None
    has_flight: bool = False
    has_any_flight: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "DateOption":
        # the dashboard sends camelCase
        has_flight = data.get("has_flight", data.get("hasFlight", False))
        has_any = data.get("has_any_flight", data.get("hasAnyFlight", False))
        price = data.get("price")
        return cls(
            date=as_date(data["date"]),
            price=float(price) if price is not None else None,
            has_flight=bool(has_flight),
            has_any_flight=bool(has_any),
        )

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "price": self.price,
            "has_flight": self.has_flight,
            "has_any_flight": self.has_any_flight,
        }


@dataclass(frozen=True)
class MonthDay:
    date: date
    price: Optional[float]
    has_flight: bool
    has_any_flight: bool
    is_current_month: bool


@dataclass(frozen=True)
class Selection:
    departure_index: int
    return_index: Optional[int]
    departure_date: date
    return_date: Optional[date]


def shift_month(today: date, offset: int):
    """(year, month) that lies ``offset`` months away from today's month."""
    year, month0 = divmod(today.year * 12 + today.month - 1 + offset, 12)
    return year, month0 + 1


def month_offset_for(target: date, today: date) -> int:
    return (target.year - today.year) * 12 + (target.month - today.month)


def generate_month_days(dates: Sequence[DateOption], month_offset: int, today: Optional[date] = None) -> List[MonthDay]:
    """Every day of the month at ``month_offset``, matched against ``dates``.

    Days without a matching DateOption are unavailable and carry no price.
    When the list holds the same day twice, the first entry wins.
    """
    today = today or date.today()
    year, month = shift_month(today, month_offset)

    by_day = {}
    for option in dates:
        by_day.setdefault(as_date(option.date), option)

    days = []
    for day_number in range(1, calendar.monthrange(year, month)[1] + 1):
        current = date(year, month, day_number)
        match = by_day.get(current)
        days.append(
            MonthDay(
                date=current,
                price=match.price if match else None,
                has_flight=bool(match and match.has_flight),
                has_any_flight=bool(match and match.has_any_flight),
                is_current_month=(current.year, current.month) == (year, month),
            )
        )
    return days


def _index_of(options: Sequence, wanted: Optional[date]) -> int:
    if wanted is None:
        return -1
    for idx, option in enumerate(options):
        if as_date(option.date) == wanted:
            return idx
    return -1


class DatePicker:
    """Tentative departure/return selection with commit-on-apply."""

    def __init__(
        self,
        dates: Sequence[DateOption],
        return_dates: Sequence[DateOption] = (),
        selected_index: int = -1,
        selected_return_index: int = -1,
        trip_type: str = ONEWAY,
        today: Optional[date] = None,
        on_departure_select: Optional[Callable[[int], None]] = None,
        on_return_select: Optional[Callable[[int], None]] = None,
        on_close: Optional[Callable[[], None]] = None,
    ):
        if trip_type not in TRIP_TYPES:
            raise ValueError(f"trip_type must be one of {TRIP_TYPES}, got {trip_type!r}")
        self.dates = list(dates)
        self.return_dates = list(return_dates)
        self.selected_index = selected_index
        self.selected_return_index = selected_return_index
        self.trip_type = trip_type
        self.today = today or date.today()

        self.on_departure_select = on_departure_select
        self.on_return_select = on_return_select
        self.on_close = on_close

        self.departure_offset = 0
        self.return_offset = 0
        self.tentative_departure: Optional[date] = None
        self.tentative_return: Optional[date] = None
        self.error_message: Optional[str] = None
        self.status = PENDING
        self.init_attempts = 0
        self.closed = False

    # ---- grids ----

    @property
    def roundtrip(self) -> bool:
        return self.trip_type == ROUNDTRIP

    @property
    def departure_days(self) -> List[MonthDay]:
        return generate_month_days(self.dates, self.departure_offset, self.today)

    @property
    def return_days(self) -> List[MonthDay]:
        return generate_month_days(self.return_dates, self.return_offset, self.today)

    def days_for(self, which: str) -> List[MonthDay]:
        if which == DEPARTURE:
            return self.departure_days
        if which == RETURN:
            return self.return_days
        raise ValueError(f"unknown calendar {which!r}")

    def month_label(self, which: str) -> str:
        offset = self.departure_offset if which == DEPARTURE else self.return_offset
        year, month = shift_month(self.today, offset)
        return date(year, month, 1).strftime("%B %Y")

    @property
    def tentative_departure_index(self) -> int:
        """Position of the tentative departure in the visible month, or -1."""
        return _index_of(self.departure_days, self.tentative_departure)

    @property
    def tentative_return_index(self) -> int:
        return _index_of(self.return_days, self.tentative_return)

    # ---- initialization ----

    def _committed_date(self, which: str) -> Optional[date]:
        options, index = (
            (self.dates, self.selected_index) if which == DEPARTURE else (self.return_dates, self.selected_return_index)
        )
        if 0 <= index < len(options):
            return as_date(options[index].date)
        return None

    def _has_committed(self, which: str) -> bool:
        index = self.selected_index if which == DEPARTURE else self.selected_return_index
        return index >= 0

    def initialize(self) -> str:
        """Move each calendar to its externally selected date and select it.

        A selected date outside the visible month shifts that calendar to the
        date's month and the lookup runs again, at most MAX_INIT_ATTEMPTS
        times. A selection that cannot be resolved ends in NOT_FOUND.
        """
        if self.status != PENDING:
            return self.status

        targets = [DEPARTURE]
        if self.roundtrip:
            targets.append(RETURN)

        while self.init_attempts < MAX_INIT_ATTEMPTS:
            self.init_attempts += 1
            settled = True
            for which in targets:
                if not self._has_committed(which):
                    continue
                wanted = self._committed_date(which)
                if wanted is None:
                    return self._fail_init()
                if _index_of(self.days_for(which), wanted) == -1:
                    self._set_offset(which, month_offset_for(wanted, self.today))
                    settled = False
                    continue
                if which == DEPARTURE:
                    self.tentative_departure = wanted
                else:
                    self.tentative_return = wanted
            if settled:
                self.status = READY
                return self.status
        return self._fail_init()

    def _fail_init(self) -> str:
        self.status = NOT_FOUND
        self.error_message = ERR_SELECTION_NOT_FOUND
        return self.status

    def _set_offset(self, which: str, offset: int):
        if which == DEPARTURE:
            self.departure_offset = offset
        else:
            self.return_offset = offset

    # ---- cell state ----

    def is_departure_disabled(self, index: int) -> bool:
        days = self.departure_days
        if not 0 <= index < len(days):
            return True
        day = days[index]
        return not day.has_flight or not day.is_current_month

    def is_return_disabled(self, index: int) -> bool:
        days = self.return_days
        if not 0 <= index < len(days):
            return True
        day = days[index]
        if not day.has_flight or not day.is_current_month:
            return True
        return self.tentative_departure is not None and day.date < self.tentative_departure

    @property
    def is_valid_selection(self) -> bool:
        departure = self._option_for(self.dates, self.tentative_departure)
        if departure is None or not departure.has_flight:
            return False
        if not self.roundtrip:
            return True
        ret = self._option_for(self.return_dates, self.tentative_return)
        if ret is None or not ret.has_flight:
            return False
        return not self.tentative_return < self.tentative_departure

    @staticmethod
    def _option_for(options: Sequence[DateOption], wanted: Optional[date]) -> Optional[DateOption]:
        idx = _index_of(options, wanted)
        return options[idx] if idx != -1 else None

    # ---- user actions ----

    def select_departure(self, index: int) -> bool:
        """Tentatively pick the departure cell at ``index`` of the visible month."""
        days = self.departure_days
        if not 0 <= index < len(days) or self.is_departure_disabled(index):
            return False
        picked = days[index].date

        if self.roundtrip:
            if self.tentative_return is not None and self.tentative_return < picked:
                replacement = self._first_return_on_or_after(picked)
                if replacement is None:
                    self.tentative_return = None
                    self.error_message = ERR_NO_RETURN_AFTER_DEPARTURE
                else:
                    self.tentative_return = replacement
                    self.return_offset = month_offset_for(replacement, self.today)
                    self.error_message = None
            else:
                self.error_message = None

        self.tentative_departure = picked
        return True

    def _first_return_on_or_after(self, departure: date) -> Optional[date]:
        candidates = [as_date(o.date) for o in self.return_dates if o.has_flight and as_date(o.date) >= departure]
        return min(candidates) if candidates else None

    def select_return(self, index: int) -> bool:
        if not self.roundtrip:
            return False
        days = self.return_days
        if not 0 <= index < len(days):
            return False
        day = days[index]
        if not day.has_flight or not day.is_current_month:
            return False
        if self.tentative_departure is not None and day.date < self.tentative_departure:
            self.error_message = ERR_RETURN_BEFORE_DEPARTURE
            return False
        self.error_message = None
        self.tentative_return = day.date
        return True

    def navigate(self, which: str, direction: str) -> int:
        """Move one calendar a month back or forward; returns its new offset."""
        steps = {"prev": -1, "next": 1}
        if direction not in steps:
            raise ValueError(f"direction must be 'prev' or 'next', got {direction!r}")
        if which == DEPARTURE:
            self.departure_offset += steps[direction]
            offset = self.departure_offset
        elif which == RETURN:
            self.return_offset += steps[direction]
            offset = self.return_offset
        else:
            raise ValueError(f"unknown calendar {which!r}")

        if self.status == PENDING:
            self.initialize()
        return offset

    def apply(self) -> Optional[Selection]:
        """Commit the tentative selection, then close. None when invalid."""
        if not self.is_valid_selection:
            return None

        departure_index = _index_of(self.dates, self.tentative_departure)
        if departure_index != -1:
            self.selected_index = departure_index
            if self.on_departure_select:
                self.on_departure_select(departure_index)

        return_index = None
        if self.roundtrip and self.tentative_return is not None:
            found = _index_of(self.return_dates, self.tentative_return)
            if found != -1:
                return_index = found
                self.selected_return_index = found
                if self.on_return_select:
                    self.on_return_select(found)

        self.close()
        return Selection(
            departure_index=departure_index,
            return_index=return_index,
            departure_date=self.tentative_departure,
            return_date=self.tentative_return if self.roundtrip else None,
        )

    def cancel(self):
        self.close()

    def close(self):
        self.closed = True
        if self.on_close:
            self.on_close()

    # ---- serialization ----

    def grid(self, which: str) -> List[dict]:
        days = self.days_for(which)
        selected = self.tentative_departure if which == DEPARTURE else self.tentative_return
        cells = []
        for idx, day in enumerate(days):
            disabled = self.is_departure_disabled(idx) if which == DEPARTURE else self.is_return_disabled(idx)
            before_departure = (
                which == RETURN and self.tentative_departure is not None and day.date < self.tentative_departure
            )
            cells.append(
                {
                    "index": idx,
                    "date": day.date.isoformat(),
                    "day": day.date.day,
                    "price": day.price if day.has_flight and not disabled else None,
                    "has_flight": day.has_flight,
                    "has_any_flight": day.has_any_flight,
                    "is_current_month": day.is_current_month,
                    "before_departure": before_departure,
                    "disabled": disabled,
                    "selected": selected is not None and day.date == selected,
                }
            )
        return cells

    def snapshot(self) -> dict:
        """Everything a client needs to draw the picker."""
        view = {
            "trip_type": self.trip_type,
            "status": self.status,
            "error": self.error_message,
            "can_apply": self.is_valid_selection,
            "hint": None if self.is_valid_selection else (HINT_ROUNDTRIP if self.roundtrip else HINT_ONEWAY),
            "closed": self.closed,
            "departure": {
                "month": self.month_label(DEPARTURE),
                "offset": self.departure_offset,
                "selected_index": self.tentative_departure_index,
                "selected_date": self.tentative_departure.isoformat() if self.tentative_departure else None,
                "days": self.grid(DEPARTURE),
            },
        }
        if self.roundtrip:
            view["return"] = {
                "month": self.month_label(RETURN),
                "offset": self.return_offset,
                "selected_index": self.tentative_return_index,
                "selected_date": self.tentative_return.isoformat() if self.tentative_return else None,
                "days": self.grid(RETURN),
            }
        return view

    def to_state(self) -> dict:
        return {
            "trip_type": self.trip_type,
            "selected_index": self.selected_index,
            "selected_return_index": self.selected_return_index,
            "departure_offset": self.departure_offset,
            "return_offset": self.return_offset,
            "tentative_departure": self.tentative_departure.isoformat() if self.tentative_departure else None,
            "tentative_return": self.tentative_return.isoformat() if self.tentative_return else None,
            "error": self.error_message,
            "status": self.status,
            "init_attempts": self.init_attempts,
            "closed": self.closed,
        }

    @classmethod
    def from_state(
        cls,
        state: dict,
        dates: Sequence[DateOption],
        return_dates: Sequence[DateOption] = (),
        today: Optional[date] = None,
        **callbacks,
    ) -> "DatePicker":
        picker = cls(
            dates,
            return_dates,
            selected_index=int(state.get("selected_index", -1)),
            selected_return_index=int(state.get("selected_return_index", -1)),
            trip_type=state.get("trip_type", ONEWAY),
            today=today,
            **callbacks,
        )
        picker.departure_offset = int(state.get("departure_offset", 0))
        picker.return_offset = int(state.get("return_offset", 0))
        if state.get("tentative_departure"):
            picker.tentative_departure = as_date(state["tentative_departure"])
        if state.get("tentative_return"):
            picker.tentative_return = as_date(state["tentative_return"])
        picker.error_message = state.get("error")
        picker.status = state.get("status", PENDING)
        picker.init_attempts = int(state.get("init_attempts", 0))
        picker.closed = bool(state.get("closed", False))
        return picker
