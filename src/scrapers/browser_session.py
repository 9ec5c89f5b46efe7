# src/scrapers/browser_session.py

"""Headless Chromium session for one scrape attempt.

Each capture launches its own browser process and always closes it,
whatever happens during navigation.  No pooling: a capture runs at most
once per cron tick or on-demand request.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from src.config.settings import Settings
from src.models.errors import CaptureFailure
from src.models.observation import CapturedSignal, Source
from src.scrapers.price_extractor import first_amount

logger = logging.getLogger("gold_watch.browser")

_BODY_TEXT_JS = "() => document.body ? document.body.innerText || '' : ''"


def _selector_for(source: Source) -> str:
    for entry in Settings.AVAILABLE_SOURCES:
        if entry["id"] == source.value:
            return entry["selector"]
    raise KeyError(source.value)


def read_structured_value(html: str, source: Source) -> float | None:
    """Read the quoted price from the well-known price element(s).

    CCB renders one ``.price`` node.  CMB renders one
    ``.price-info-amount`` node per weight tier; each node's
    ``aria-label`` is preferred over its visible text and the largest
    value is the live quote.  The value is returned as quoted on the
    page (CMB is still per 10 grams).
    """
    if not html:
        return None
    soup = BeautifulSoup(html, "lxml")
    selector = _selector_for(source)

    if source is Source.CMB:
        values: list[float] = []
        for node in soup.select(selector):
            label = node.get("aria-label")
            value = first_amount(
                label if isinstance(label, str) else None
            )
            if value is None:
                value = first_amount(node.get_text(strip=True))
            if value is not None:
                values.append(value)
        return max(values) if values else None

    node = soup.select_one(selector)
    if node is None:
        return None
    return first_amount(node.get_text(strip=True))


class BrowserSessionDriver:
    """Launches a browser, renders a source page and captures its signal."""

    def __init__(
        self,
        playwright_factory: Callable[[], Any] = async_playwright,
    ) -> None:
        self.settings = Settings()
        self._playwright_factory = playwright_factory

    async def capture_signal(
        self, url: str, source: Source,
    ) -> CapturedSignal:
        """Render *url* and return its text, HTML and structured reading.

        Raises:
            CaptureFailure: launch or navigation failed, or the whole
                capture ran past ``SCRAPE_TIMEOUT``.
        """
        try:
            return await asyncio.wait_for(
                self._capture(url, source),
                timeout=self.settings.SCRAPE_TIMEOUT,
            )
        except asyncio.TimeoutError as exc:
            raise CaptureFailure(
                f"Capture of {url} exceeded "
                f"{self.settings.SCRAPE_TIMEOUT:.0f}s"
            ) from exc
        except PlaywrightError as exc:
            raise CaptureFailure(
                f"Browser error for {url}: {exc}"
            ) from exc

    async def _capture(
        self, url: str, source: Source,
    ) -> CapturedSignal:
        async with self._playwright_factory() as pw:
            browser = await pw.chromium.launch(
                headless=True, args=self.settings.BROWSER_ARGS,
            )
            logger.debug("[%s] Browser launched", source.value)
            try:
                page = await browser.new_page(
                    user_agent=self.settings.USER_AGENT,
                )
                try:
                    raw_text, raw_html = await self._render(
                        page, url, source,
                    )
                finally:
                    await page.close()
            finally:
                await browser.close()
                logger.debug("[%s] Browser closed", source.value)

        structured = read_structured_value(raw_html, source)
        logger.info(
            "[%s] Captured %d chars of text, structured value=%s",
            source.value,
            len(raw_text),
            structured,
        )
        return CapturedSignal(
            raw_text=raw_text,
            raw_html=raw_html,
            structured_value=structured,
        )

    async def _render(
        self, page: Any, url: str, source: Source,
    ) -> tuple[str, str]:
        await page.goto(
            url,
            wait_until="domcontentloaded",
            timeout=self.settings.NAVIGATION_TIMEOUT * 1000,
        )
        try:
            await page.wait_for_load_state(
                "networkidle",
                timeout=self.settings.NETWORK_IDLE_TIMEOUT * 1000,
            )
        except PlaywrightTimeoutError:
            logger.debug(
                "[%s] Network never went idle, using what rendered",
                source.value,
            )
        raw_text: str = await page.evaluate(_BODY_TEXT_JS)
        raw_html: str = await page.content()
        return raw_text or "", raw_html or ""
