import logging
from typing import Optional

from playwright.sync_api import sync_playwright

logger = logging.getLogger(__name__)


class PdfRenderer:
    """Renders HTML to an A4 PDF with headless Chromium."""

    def __init__(self, paper_format: str = "A4"):
        self.paper_format = paper_format

    def render(self, html: str, path: Optional[str] = None) -> bytes:
        with sync_playwright() as pw:
            browser = pw.chromium.launch(headless=True)
            try:
                page = browser.new_page()
                page.set_content(html, wait_until="networkidle")
                data = page.pdf(path=path, format=self.paper_format, print_background=True)
            finally:
                browser.close()
        if path:
            logger.info("PDF written to %s", path)
        return data
