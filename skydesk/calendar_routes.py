import logging

from flask import Blueprint, jsonify, request

from .availability import route_date_options
from .calendar_picker import DEPARTURE, RETURN, ROUNDTRIP, DatePicker
from .schemas import CalendarOpen
from .state import drop_picker_state, load_picker_state, save_picker_state

logger = logging.getLogger(__name__)

calendar_bp = Blueprint("calendar", __name__, url_prefix="/api/calendar")


def _external_index(options, wanted) -> int:
    if wanted is None:
        return -1
    for idx, option in enumerate(options):
        if option.date == wanted:
            return idx
    # unknown dates resolve to the not_found state during initialize()
    return len(options)


def _availability(ctx):
    dates = route_date_options(ctx["origin"], ctx["destination"], flight_type=ctx.get("flight_type"))
    return_dates = []
    if ctx.get("trip_type") == ROUNDTRIP:
        return_dates = route_date_options(ctx["destination"], ctx["origin"], flight_type=ctx.get("flight_type"))
    return dates, return_dates


def _load_picker(ctx, **callbacks):
    dates, return_dates = _availability(ctx)
    return DatePicker.from_state(ctx["picker"], dates, return_dates, **callbacks)


def _save(ctx, picker):
    save_picker_state({**ctx, "picker": picker.to_state()})


def _no_picker():
    return jsonify({"ok": False, "error": "no_calendar_open"}), 404


# opens a picker for a route, pre-selecting the dates the search already uses
@calendar_bp.post("/open")
def open_calendar():
    form = CalendarOpen.model_validate(request.get_json(silent=True) or {})
    ctx = {
        "origin": form.origin.upper(),
        "destination": form.destination.upper(),
        "trip_type": form.trip_type,
        "flight_type": form.flight_type,
    }
    dates, return_dates = _availability(ctx)
    picker = DatePicker(
        dates,
        return_dates,
        selected_index=_external_index(dates, form.departure_date),
        selected_return_index=_external_index(return_dates, form.return_date),
        trip_type=form.trip_type,
    )
    status = picker.initialize()
    if status != "ready":
        logger.info("calendar %s->%s could not locate the selected dates", ctx["origin"], ctx["destination"])

    drop_picker_state()
    _save(ctx, picker)
    return jsonify({"ok": True, "calendar": picker.snapshot()})


@calendar_bp.get("")
def show_calendar():
    ctx = load_picker_state()
    if not ctx.get("picker"):
        return _no_picker()
    picker = _load_picker(ctx)
    return jsonify({"ok": True, "calendar": picker.snapshot()})


@calendar_bp.post("/departure")
def pick_departure():
    ctx = load_picker_state()
    if not ctx.get("picker"):
        return _no_picker()
    payload = request.get_json(silent=True) or {}
    try:
        index = int(payload.get("index"))
    except (TypeError, ValueError):
        return jsonify({"ok": False, "error": "missing_index"}), 400

    picker = _load_picker(ctx)
    accepted = picker.select_departure(index)
    _save(ctx, picker)
    return jsonify({"ok": accepted, "calendar": picker.snapshot()})


@calendar_bp.post("/return")
def pick_return():
    ctx = load_picker_state()
    if not ctx.get("picker"):
        return _no_picker()
    payload = request.get_json(silent=True) or {}
    try:
        index = int(payload.get("index"))
    except (TypeError, ValueError):
        return jsonify({"ok": False, "error": "missing_index"}), 400

    picker = _load_picker(ctx)
    accepted = picker.select_return(index)
    _save(ctx, picker)
    return jsonify({"ok": accepted, "calendar": picker.snapshot()})


@calendar_bp.post("/navigate")
def navigate_month():
    ctx = load_picker_state()
    if not ctx.get("picker"):
        return _no_picker()
    payload = request.get_json(silent=True) or {}
    which = payload.get("calendar") or DEPARTURE
    direction = payload.get("direction") or ""
    if which not in (DEPARTURE, RETURN) or direction not in ("prev", "next"):
        return jsonify({"ok": False, "error": "invalid_navigation"}), 400

    picker = _load_picker(ctx)
    picker.navigate(which, direction)
    _save(ctx, picker)
    return jsonify({"ok": True, "calendar": picker.snapshot()})


# commits the tentative dates; the picker is discarded afterwards
@calendar_bp.post("/apply")
def apply_dates():
    ctx = load_picker_state()
    if not ctx.get("picker"):
        return _no_picker()

    committed = {}
    picker = _load_picker(
        ctx,
        on_departure_select=lambda idx: committed.update(departure_index=idx),
        on_return_select=lambda idx: committed.update(return_index=idx),
        on_close=drop_picker_state,
    )
    selection = picker.apply()
    if selection is None:
        _save(ctx, picker)
        return jsonify({"ok": False, "error": "invalid_selection", "calendar": picker.snapshot()}), 400

    departure = picker.dates[selection.departure_index]
    body = {
        "ok": True,
        "origin": ctx["origin"],
        "destination": ctx["destination"],
        "trip_type": picker.trip_type,
        "departure": {"index": committed.get("departure_index"), **departure.to_dict()},
        "return": None,
    }
    if selection.return_index is not None:
        body["return"] = {
            "index": committed.get("return_index"),
            **picker.return_dates[selection.return_index].to_dict(),
        }
    return jsonify(body)


@calendar_bp.post("/cancel")
def cancel_calendar():
    ctx = load_picker_state()
    if not ctx.get("picker"):
        return _no_picker()
    picker = _load_picker(ctx, on_close=drop_picker_state)
    picker.cancel()
    return jsonify({"ok": True})
