"""Render an email's HTML body to PDF with headless Chromium."""

from __future__ import annotations

import logging

from gmail_notion_sync.core.exceptions import ConversionError

logger = logging.getLogger(__name__)

CHROMIUM_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]


def render_html_to_pdf(html: str) -> bytes:
    """Render HTML to PDF bytes.

    Requires the ``pdf`` extra (playwright) and an installed Chromium
    (``playwright install chromium``).

    Raises:
        ConversionError: If playwright is not installed, the browser cannot be
            launched or printing fails.
    """
    try:
        from playwright.sync_api import Error as PlaywrightError
        from playwright.sync_api import sync_playwright
    except ImportError as e:
        raise ConversionError(f"PDF rendering needs the pdf extra: {e}") from e

    try:
        with sync_playwright() as p:
            browser = p.chromium.launch(headless=True, args=CHROMIUM_ARGS)
            try:
                page = browser.new_page()
                page.set_content(html, wait_until="networkidle")
                pdf = page.pdf()
            finally:
                browser.close()
    except PlaywrightError as e:
        raise ConversionError(f"PDF rendering failed: {e}") from e

    logger.debug("Rendered %d bytes of HTML to %d bytes of PDF", len(html), len(pdf))
    return pdf
