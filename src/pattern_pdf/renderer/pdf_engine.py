"""Playwright-based rendering engine: a pooled headless Chromium.

One browser is launched lazily and shared by every request in the process.
Each request opens its own page and closes it when done. A browser older
than ``max_age`` is closed and relaunched on the next acquisition, which
keeps Chromium's memory growth bounded over long uptimes.
"""

from __future__ import annotations

import asyncio
import base64
import io
import logging
import time
from typing import Callable, Optional

from playwright.async_api import Browser, Page, async_playwright

logger = logging.getLogger(__name__)

DEFAULT_PAGE_WIDTH = 1240
DEFAULT_PAGE_HEIGHT = 1754

BROWSER_ARGS = [
    "--disable-gpu",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--no-first-run",
    "--no-zygote",
]

BLANK_HEADER = "<p></p>"

# ── Page margin presets ──────────────────────────────────────────────

MARGINS_BASIC = {
    "top": "36px",
    "left": "36px",
    "right": "36px",
    "bottom": "100px",
}

MARGINS_PREMIUM = {
    "top": "36px",
    "bottom": "110px",
}

PREMIUM_PRINT_STYLE = (
    ".box-shadow-class {-webkit-print-color-adjust: exact; "
    "-webkit-filter: opacity(1);}"
)


class BrowserPool:
    """Owns the process-wide Chromium instance and hands out pages."""

    def __init__(
        self,
        *,
        max_age: float = 3600.0,
        content_timeout: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_age = max_age
        self.content_timeout = content_timeout
        self._clock = clock
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._launched_at: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def browser(self) -> Optional[Browser]:
        return self._browser

    def _is_stale(self) -> bool:
        if self._browser is None or self._launched_at is None:
            return False
        return self._clock() - self._launched_at >= self.max_age

    async def _close_browser(self) -> None:
        browser, self._browser, self._launched_at = self._browser, None, None
        if browser is not None:
            await browser.close()

    async def _launch(self) -> Browser:
        if self._playwright is None:
            self._playwright = await async_playwright().start()
        browser = await self._playwright.chromium.launch(headless=True, args=BROWSER_ARGS)
        self._browser = browser
        self._launched_at = self._clock()
        logger.info("Launched headless Chromium")
        return browser

    async def get_browser(self) -> Browser:
        """Return the shared browser, relaunching it if stale.

        A browser that crashed or disconnected is replaced right away.
        Stale check, close and launch run under one lock, so concurrent
        first requests launch a single browser.
        """
        async with self._lock:
            if self._browser is not None and not self._browser.is_connected():
                logger.warning("Browser disconnected, relaunching")
                self._browser, self._launched_at = None, None
            elif self._is_stale():
                logger.info("Browser older than %.0fs, relaunching", self.max_age)
                await self._close_browser()
            if self._browser is not None:
                return self._browser
            return await self._launch()

    async def _load(self, page: Page, markup: str) -> None:
        await page.set_content(
            markup,
            wait_until="networkidle",
            timeout=self.content_timeout * 1000,
        )

    async def acquire_page(self, markup: Optional[str] = None) -> Page:
        """Open a new page, optionally loaded with ``markup``."""
        browser = await self.get_browser()
        page = await browser.new_page(
            viewport={"width": DEFAULT_PAGE_WIDTH, "height": DEFAULT_PAGE_HEIGHT},
        )
        if markup:
            try:
                await self._load(page, markup)
            except Exception:
                await page.close()
                raise
        return page

    async def rasterize(self, page: Page, markup: Optional[str] = None) -> str:
        """Screenshot the page (after loading ``markup``) as base64 PNG."""
        if markup:
            await self._load(page, markup)
        png = await page.screenshot(type="png")
        return base64.b64encode(png).decode("ascii")

    async def to_pdf(
        self,
        page: Page,
        markup: Optional[str] = None,
        *,
        margins: Optional[dict] = None,
        footer_template: str = "<p></p>",
        header_template: str = BLANK_HEADER,
        style: Optional[str] = None,
    ) -> bytes:
        """Print the page to an A4 PDF.

        Args:
            page: Page from ``acquire_page``.
            markup: Document HTML; loaded first when given.
            margins: Dict with top/bottom/left/right as CSS length strings.
            footer_template: Markup Chromium repeats at the bottom of
                every page (``pageNumber`` / ``totalPages`` classes work).
            header_template: Markup repeated at the top of every page.
            style: Extra CSS injected after loading, before printing.

        Returns:
            The PDF bytes.
        """
        if markup:
            await self._load(page, markup)
        await page.emulate_media(media="print")
        if style:
            await page.add_style_tag(content=style)
        return await page.pdf(
            format="A4",
            margin=margins or MARGINS_BASIC,
            display_header_footer=True,
            header_template=header_template,
            footer_template=footer_template,
            print_background=True,
        )

    async def close(self) -> None:
        """Close the browser and stop Playwright (process shutdown)."""
        async with self._lock:
            await self._close_browser()
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None


def count_pages(pdf_bytes: bytes) -> int | None:
    """Count pages in a PDF document. Returns None on failure."""
    from pypdf import PdfReader
    from pypdf.errors import PdfReadError

    try:
        return len(PdfReader(io.BytesIO(pdf_bytes)).pages)
    except (PdfReadError, OSError, ValueError):
        logger.warning("Could not count pages in %d-byte PDF", len(pdf_bytes))
        return None
