import os
from dataclasses import dataclass, field, fields
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

PRINTER_MODES = ("cloud", "local")


def _env_flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in ("1", "true", "yes")


def _default_printer_mode() -> str:
    mode = (os.getenv("PRINTER_MODE") or "").strip().lower()
    if mode in PRINTER_MODES:
        return mode
    # hosted deployments never have a USB printer attached
    if (os.getenv("APP_ENV") or "").lower() == "production" or _env_flag("RENDER"):
        return "cloud"
    return "local"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw, 0)
    except ValueError:
        return default


@dataclass
class Config:
    """Runtime settings, read once from the environment at startup."""

    SECRET_KEY: str = "dev-secret"
    SQLALCHEMY_DATABASE_URI: str = "sqlite:///skydesk.sqlite3"
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
    APP_ENV: str = "development"
    TESTING: bool = False

    PRINTER_MODE: str = "local"
    RECEIPTS_DIR: str = "receipts"
    PRINTER_USB_VENDOR: int = 0x0416
    PRINTER_USB_PRODUCT: int = 0x5011

    SENDGRID_API_KEY: Optional[str] = None
    MAIL_SENDER: Optional[str] = None

    TWILIO_SID: Optional[str] = None
    TWILIO_TOKEN: Optional[str] = None
    TWILIO_PHONE: Optional[str] = None

    EMAILJS_SERVICE_ID: Optional[str] = None
    EMAILJS_TEMPLATE_ID: Optional[str] = None
    EMAILJS_ACK_TEMPLATE_ID: Optional[str] = None
    EMAILJS_PUBLIC_KEY: Optional[str] = None
    RECAPTCHA_SECRET: Optional[str] = None

    LOG_DIR: str = "logs"
    BRAND_NAME: str = "SkyDesk Airways"
    extra: dict = field(default_factory=dict)

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() == "production"

    @classmethod
    def from_env(cls) -> "Config":
        load_dotenv()
        return cls(
            SECRET_KEY=os.getenv("SECRET_KEY", "dev-secret"),
            SQLALCHEMY_DATABASE_URI=os.getenv("DATABASE_URL", "sqlite:///skydesk.sqlite3"),
            APP_ENV=os.getenv("APP_ENV", "development"),
            PRINTER_MODE=_default_printer_mode(),
            RECEIPTS_DIR=os.getenv("RECEIPTS_DIR", "receipts"),
            PRINTER_USB_VENDOR=_int_env("PRINTER_USB_VENDOR", 0x0416),
            PRINTER_USB_PRODUCT=_int_env("PRINTER_USB_PRODUCT", 0x5011),
            SENDGRID_API_KEY=os.getenv("SENDGRID_API_KEY"),
            MAIL_SENDER=os.getenv("MAIL_SENDER"),
            TWILIO_SID=os.getenv("TWILIO_SID"),
            TWILIO_TOKEN=os.getenv("TWILIO_TOKEN"),
            TWILIO_PHONE=os.getenv("TWILIO_PHONE"),
            EMAILJS_SERVICE_ID=os.getenv("EMAILJS_SERVICE_ID"),
            EMAILJS_TEMPLATE_ID=os.getenv("EMAILJS_TEMPLATE_ID"),
            EMAILJS_ACK_TEMPLATE_ID=os.getenv("EMAILJS_ACK_TEMPLATE_ID"),
            EMAILJS_PUBLIC_KEY=os.getenv("EMAILJS_PUBLIC_KEY"),
            RECAPTCHA_SECRET=os.getenv("RECAPTCHA_SECRET"),
            LOG_DIR=os.getenv("LOG_DIR", "logs"),
            BRAND_NAME=os.getenv("BRAND_NAME", "SkyDesk Airways"),
        )

    def with_overrides(self, overrides: Optional[Mapping[str, Any]]) -> "Config":
        if not overrides:
            return self
        known = {f.name for f in fields(self)}
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        extra = dict(self.extra)
        for key, value in overrides.items():
            if key in known:
                values[key] = value
            else:
                extra[key] = value
        values["extra"] = extra
        cfg = Config(**values)
        if cfg.PRINTER_MODE not in PRINTER_MODES:
            raise ValueError(f"PRINTER_MODE must be one of {PRINTER_MODES}, got {cfg.PRINTER_MODE!r}")
        return cfg

    def flask_settings(self) -> dict:
        """Everything that belongs in app.config."""
        settings = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "extra"}
        settings.update(self.extra)
        return settings
