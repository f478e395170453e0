from __future__ import annotations

import logging
from typing import Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from ..core.config import CaptureSettings
from .base import BaseCapturer, CaptureError, Viewport

logger = logging.getLogger(__name__)

# Flags for running Chromium inside containers
CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]


def _first_line(exc: Exception) -> str:
    # Playwright appends a multi-line call log to its messages
    message = str(exc).strip()
    return message.splitlines()[0] if message else type(exc).__name__


class PlaywrightCapturer(BaseCapturer):
    """Viewport screenshots through headless Chromium.

    Each capture launches its own browser, closed on every exit path along
    with the driver.
    """

    name = "playwright"

    def __init__(self, settings: Optional[CaptureSettings] = None):
        self.settings = settings or CaptureSettings()

    def capture(self, url: str, *, timeout_ms: int, viewport: Viewport) -> bytes:
        logger.info("Capturing screenshot", extra={"url": url, "timeout_ms": timeout_ms})
        try:
            with sync_playwright() as p:
                browser = p.chromium.launch(headless=True, args=CHROMIUM_ARGS)
                try:
                    context = browser.new_context(
                        viewport=viewport.as_dict(),
                        user_agent=self.settings.user_agent,
                    )
                    page = context.new_page()
                    page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
                    # Give client-side rendering a moment after DOMContentLoaded
                    page.wait_for_timeout(self.settings.settle_ms)
                    image = page.screenshot(type="png", full_page=False)
                finally:
                    browser.close()
        except PlaywrightError as exc:
            # TimeoutError subclasses Error
            raise CaptureError(_first_line(exc)) from exc

        if not image:
            raise CaptureError("Browser returned an empty screenshot")

        logger.debug("Captured screenshot", extra={"url": url, "bytes": len(image)})
        return image
