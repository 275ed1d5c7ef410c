import json
import logging
import queue
import threading
from typing import List, Optional

from flask import Blueprint, Response, current_app, jsonify, stream_with_context
from flask_login import login_required

from . import db
from .models import Notification
from .services import BROKER, service

logger = logging.getLogger(__name__)

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")

NEW_NOTIFICATION = "new-notification"
KEEPALIVE_SECONDS = 15


def format_sse(event: str, data) -> str:
    """One server-sent event frame."""
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


class NotificationBroker:
    """In-process fan-out of dashboard events to SSE subscribers.

    Each subscriber gets its own bounded queue. Publishing never blocks: a
    subscriber whose queue is full misses the event.
    """

    def __init__(self, max_queue: int = 100):
        self.max_queue = max_queue
        self._lock = threading.Lock()
        self._subscribers: List[queue.Queue] = []

    def subscribe(self) -> queue.Queue:
        q = queue.Queue(maxsize=self.max_queue)
        with self._lock:
            self._subscribers.append(q)
        return q

    def unsubscribe(self, q: queue.Queue):
        with self._lock:
            if q in self._subscribers:
                self._subscribers.remove(q)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event: str, data) -> int:
        with self._lock:
            subscribers = list(self._subscribers)
        delivered = 0
        for q in subscribers:
            try:
                q.put_nowait((event, data))
            except queue.Full:
                logger.warning("dropping %s for a slow subscriber", event)
                continue
            delivered += 1
        return delivered


def _broker() -> NotificationBroker:
    return service(BROKER)


def notify(message: str, type: str = "booking", booking_reference: Optional[str] = None) -> Notification:
    """Store a dashboard notification and push it to connected dashboards."""
    note = Notification(message=message, type=type, booking_reference=booking_reference)
    db.session.add(note)
    db.session.commit()
    _broker().publish(NEW_NOTIFICATION, note.to_dict())
    return note


@notifications_bp.get("")
@login_required
def list_notifications():
    notes = Notification.query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(100).all()
    unseen = Notification.query.filter_by(seen=False).count()
    return jsonify({"notifications": [n.to_dict() for n in notes], "unseen": unseen})


@notifications_bp.patch("/<int:notification_id>/seen")
@login_required
def mark_seen(notification_id: int):
    note = db.session.get(Notification, notification_id)
    if note is None:
        return jsonify({"ok": False, "error": "not_found"}), 404
    note.seen = True
    db.session.commit()
    return jsonify({"ok": True, "notification": note.to_dict()})


def _event_stream(broker: NotificationBroker, q: queue.Queue, keepalive: float):
    try:
        yield ": connected\n\n"
        while True:
            try:
                event, data = q.get(timeout=keepalive)
            except queue.Empty:
                yield ": keep-alive\n\n"
                continue
            yield format_sse(event, data)
    finally:
        broker.unsubscribe(q)


@notifications_bp.get("/stream")
@login_required
def stream():
    broker = _broker()
    q = broker.subscribe()
    keepalive = current_app.config.get("SSE_KEEPALIVE_SECONDS", KEEPALIVE_SECONDS)
    headers = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}
    body = stream_with_context(_event_stream(broker, q, keepalive))
    return Response(body, mimetype="text/event-stream", headers=headers)
