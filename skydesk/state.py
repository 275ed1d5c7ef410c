"""Calendar picker state carried in the Flask session between API calls."""

from flask import session

PICKER_KEY = "calendar_picker"


def load_picker_state() -> dict:
    return dict(session.get(PICKER_KEY) or {})


def save_picker_state(changes: dict) -> dict:
    state = load_picker_state()
    state.update(changes or {})
    session[PICKER_KEY] = state
    return state


def drop_picker_state():
    session.pop(PICKER_KEY, None)
