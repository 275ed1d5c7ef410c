from flask import current_app

from .config import Config

PRINTER = "skydesk.printer"
MAILER = "skydesk.mailer"
SMS = "skydesk.sms"
PDF = "skydesk.pdf"
BROKER = "skydesk.broker"
RELAY = "skydesk.relay"


def build_services(config: Config) -> dict:
    """One instance of every external collaborator, keyed for app.extensions."""
    from .charter import InquiryRelay
    from .messaging import Mailer, SmsSender
    from .notifications import NotificationBroker
    from .pdf import PdfRenderer
    from .printer import PrinterService

    return {
        PRINTER: PrinterService(
            mode=config.PRINTER_MODE,
            receipts_dir=config.RECEIPTS_DIR,
            usb_vendor=config.PRINTER_USB_VENDOR,
            usb_product=config.PRINTER_USB_PRODUCT,
        ),
        MAILER: Mailer(config.SENDGRID_API_KEY, config.MAIL_SENDER),
        SMS: SmsSender(config.TWILIO_SID, config.TWILIO_TOKEN, config.TWILIO_PHONE),
        PDF: PdfRenderer(),
        BROKER: NotificationBroker(),
        RELAY: InquiryRelay(
            service_id=config.EMAILJS_SERVICE_ID,
            template_id=config.EMAILJS_TEMPLATE_ID,
            ack_template_id=config.EMAILJS_ACK_TEMPLATE_ID,
            public_key=config.EMAILJS_PUBLIC_KEY,
            recaptcha_secret=config.RECAPTCHA_SECRET,
        ),
    }


def service(key: str):
    return current_app.extensions[key]
