import logging
import os

from .config import Config

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# everything the mailer logs also lands in emails.log
EMAIL_LOGGER = "skydesk.messaging"


def configure_logging(config: Config) -> logging.Logger:
    """Attach file and console handlers to the package logger.

    errors.log collects ERROR and above from the whole package, emails.log
    keeps a trail of every email/SMS attempt. Outside production the same
    records are echoed to the console.
    """
    root = logging.getLogger("skydesk")
    root.setLevel(logging.INFO)

    # create_app may run several times in one process (tests)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    email_logger = logging.getLogger(EMAIL_LOGGER)
    for handler in list(email_logger.handlers):
        email_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    os.makedirs(config.LOG_DIR, exist_ok=True)
    errors = logging.FileHandler(os.path.join(config.LOG_DIR, "errors.log"), encoding="utf-8")
    errors.setLevel(logging.ERROR)
    errors.setFormatter(formatter)
    root.addHandler(errors)

    emails = logging.FileHandler(os.path.join(config.LOG_DIR, "emails.log"), encoding="utf-8")
    emails.setFormatter(formatter)
    email_logger.addHandler(emails)

    if not config.is_production:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        root.addHandler(console)

    return root
