import logging
from typing import Optional

import requests
from flask import Blueprint, jsonify, request

from .schemas import CharterInquiry
from .services import RELAY, service

logger = logging.getLogger(__name__)

charter_bp = Blueprint("charter", __name__, url_prefix="/api")

EMAILJS_URL = "https://api.emailjs.com/api/v1.0/email/send"
RECAPTCHA_URL = "https://www.google.com/recaptcha/api/siteverify"


class InquiryRelay:
    """Forwards charter inquiries to EmailJS once reCAPTCHA accepts the token."""

    def __init__(
        self,
        service_id: Optional[str],
        template_id: Optional[str],
        ack_template_id: Optional[str],
        public_key: Optional[str],
        recaptcha_secret: Optional[str],
        session: Optional[requests.Session] = None,
        timeout: float = 10,
    ):
        self.service_id = service_id
        self.template_id = template_id
        self.ack_template_id = ack_template_id
        self.public_key = public_key
        self.recaptcha_secret = recaptcha_secret
        self.session = session or requests.Session()
        self.timeout = timeout

    def verify_captcha(self, token: str, remote_ip: Optional[str] = None) -> bool:
        if not self.recaptcha_secret:
            logger.error("reCAPTCHA secret missing, rejecting inquiry")
            return False
        data = {"secret": self.recaptcha_secret, "response": token}
        if remote_ip:
            data["remoteip"] = remote_ip
        try:
            resp = self.session.post(RECAPTCHA_URL, data=data, timeout=self.timeout)
            resp.raise_for_status()
            return bool(resp.json().get("success"))
        except (requests.RequestException, ValueError) as exc:
            logger.error("reCAPTCHA verification failed: %s", exc)
            return False

    def send(self, template_id: Optional[str], params: dict) -> bool:
        if not (self.service_id and template_id and self.public_key):
            logger.error("EmailJS is not configured")
            return False
        payload = {
            "service_id": self.service_id,
            "template_id": template_id,
            "user_id": self.public_key,
            "template_params": params,
        }
        try:
            resp = self.session.post(EMAILJS_URL, json=payload, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.error("EmailJS template %s failed: %s", template_id, exc)
            return False
        return True

    def relay(self, inquiry: CharterInquiry) -> bool:
        params = inquiry.template_params()
        if not self.send(self.template_id, params):
            return False
        # the acknowledgment is best effort once the operator has the inquiry
        if self.ack_template_id and not self.send(self.ack_template_id, params):
            logger.warning("acknowledgment to %s was not sent", inquiry.email)
        return True


@charter_bp.post("/charter-inquiry")
def charter_inquiry():
    inquiry = CharterInquiry.model_validate(request.get_json(silent=True) or {})
    relay = service(RELAY)

    if not relay.verify_captcha(inquiry.captcha_token, request.remote_addr):
        return jsonify({"success": False, "message": "CAPTCHA verification failed"}), 400

    if not relay.relay(inquiry):
        return jsonify({"success": False, "message": "Could not send your request, please try again later"}), 502

    logger.info("charter inquiry relayed for %s (%s -> %s)", inquiry.email, inquiry.departure, inquiry.destination)
    return jsonify({"success": True, "message": "Your request has been sent"})
