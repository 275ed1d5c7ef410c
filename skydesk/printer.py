import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import usb.core
from escpos.exceptions import Error as EscposError
from escpos.printer import Usb
from werkzeug.utils import secure_filename

from .tickets import Receipt, receipt_lines

logger = logging.getLogger(__name__)

USB_ERRORS = (EscposError, usb.core.USBError, usb.core.NoBackendError)


@dataclass
class PrintResult:
    success: bool
    message: str
    receipt_url: Optional[str] = None
    path: Optional[str] = None

    def to_dict(self):
        body = {"success": self.success, "message": self.message}
        if self.receipt_url:
            body["receiptUrl"] = self.receipt_url
        return body


class PrinterService:
    """Receipt printing on a USB ESC/POS printer, or to HTML files in cloud mode.

    The mode is fixed at construction: "cloud" never touches USB and always
    saves an HTML receipt under ``receipts_dir``; "local" prints on the
    device identified by ``usb_vendor``/``usb_product``.
    """

    def __init__(
        self,
        mode: str = "local",
        receipts_dir: str = "receipts",
        usb_vendor: int = 0x0416,
        usb_product: int = 0x5011,
        render_html: Optional[Callable[[Receipt], str]] = None,
        receipts_url: str = "/receipts",
    ):
        if mode not in ("cloud", "local"):
            raise ValueError(f"unknown printer mode {mode!r}")
        self.mode = mode
        self.receipts_dir = receipts_dir
        self.usb_vendor = usb_vendor
        self.usb_product = usb_product
        self.receipts_url = receipts_url.rstrip("/")
        if render_html is None:
            from .tickets import render_receipt_html as render_html
        self.render_html = render_html

    @property
    def is_cloud(self) -> bool:
        return self.mode == "cloud"

    def _open(self) -> Usb:
        printer = Usb(self.usb_vendor, self.usb_product)
        printer.open()
        return printer

    def check_connection(self) -> bool:
        if self.is_cloud:
            logger.info("cloud mode: receipt printing disabled")
            return False
        try:
            printer = self._open()
        except USB_ERRORS as exc:
            logger.info("receipt printer not connected: %s", exc)
            return False
        printer.close()
        logger.info("receipt printer connected")
        return True

    def print_receipt(self, receipt: Receipt) -> PrintResult:
        if self.is_cloud:
            return self.save_receipt(receipt)
        return self._print_physical(receipt)

    def receipt_filename(self, receipt: Receipt, now: Optional[datetime] = None) -> str:
        stamp = (now or datetime.now()).isoformat().replace(":", "-").replace(".", "-")
        return f"receipt-{secure_filename(receipt.booking_reference)}-{stamp}.html"

    def save_receipt(self, receipt: Receipt) -> PrintResult:
        filename = self.receipt_filename(receipt)
        path = os.path.join(self.receipts_dir, filename)
        try:
            html = self.render_html(receipt)
            os.makedirs(self.receipts_dir, exist_ok=True)
            with open(path, "w", encoding="utf-8") as fh:
                fh.write(html)
        except OSError as exc:
            logger.error("could not save receipt %s: %s", receipt.booking_reference, exc)
            return PrintResult(False, "Could not save receipt")

        logger.info("receipt saved: %s", path)
        return PrintResult(
            True,
            "Receipt saved (cloud mode)",
            receipt_url=f"{self.receipts_url}/{filename}",
            path=path,
        )

    def _print_physical(self, receipt: Receipt) -> PrintResult:
        try:
            printer = self._open()
        except USB_ERRORS as exc:
            logger.warning("printer unavailable for %s: %s", receipt.booking_reference, exc)
            return PrintResult(False, "Printer not available")

        try:
            printer.set(align="center")
            for line in receipt_lines(receipt):
                printer.textln(line)
            printer.cut()
        except USB_ERRORS as exc:
            logger.error("printing %s failed: %s", receipt.booking_reference, exc)
            return PrintResult(False, "Printing failed")
        finally:
            printer.close()

        logger.info("receipt printed: %s", receipt.booking_reference)
        return PrintResult(True, "Receipt printed")
