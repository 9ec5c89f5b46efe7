# src/services/scrape_pipeline.py

"""Scrape one source end to end: render, extract, persist."""

import asyncio
import logging
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from src.config.settings import Settings
from src.models.errors import (
    CaptureFailure,
    ConfigUnavailable,
    ExtractionNotFound,
    ScrapeFailure,
)
from src.models.observation import (
    CapturedSignal,
    Observation,
    PriceReading,
    Source,
)
from src.scrapers.browser_session import BrowserSessionDriver
from src.scrapers.price_extractor import extract, reading_from_quote
from src.storage.config_store import ConfigStore
from src.storage.observation_store import ObservationStore

logger = logging.getLogger("gold_watch.pipeline")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ScrapeResult:
    """Outcome of one scrape: an observation or the failure."""

    source: Source
    observation: Observation | None = None
    reading: PriceReading | None = None
    error: ScrapeFailure | None = None

    @property
    def ok(self) -> bool:
        return self.observation is not None


def reading_from_signal(
    signal: CapturedSignal, source: Source,
) -> PriceReading | None:
    """Prefer the structured DOM value; fall back to text patterns."""
    if signal.structured_value is not None and signal.structured_value > 0:
        return reading_from_quote(signal.structured_value, source)
    return extract(f"{signal.raw_text} {signal.raw_html}", source)


class ScrapePipeline:
    """Composes the browser driver, extractor and observation store."""

    def __init__(
        self,
        driver: BrowserSessionDriver,
        observations: ObservationStore,
        config: ConfigStore,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._driver = driver
        self._observations = observations
        self._config = config
        self._clock = clock

    async def resolve_url(self, source: Source) -> str:
        """Configured URL for *source*, or the built-in default."""
        try:
            urls = await asyncio.to_thread(self._config.get_scraper_urls)
        except ConfigUnavailable as exc:
            logger.warning(
                "[%s] Config store unavailable, using default URL: %s",
                source.value, exc,
            )
            return Settings.DEFAULT_URLS[source.value]
        return urls.get(source.value) or Settings.DEFAULT_URLS[source.value]

    async def scrape_and_persist(
        self, source: Source,
    ) -> tuple[Observation, PriceReading]:
        """Scrape *source* once and append the observation.

        Raises:
            ScrapeFailure: capture failed, no price was found, or the
                observation could not be written.
        """
        url = await self.resolve_url(source)
        logger.info("[%s] Scraping %s", source.value, url)

        try:
            signal = await self._driver.capture_signal(url, source)
        except CaptureFailure as exc:
            raise ScrapeFailure(source.value, str(exc)) from exc

        reading = reading_from_signal(signal, source)
        if reading is None:
            cause = ExtractionNotFound(
                f"No price pattern in {len(signal.raw_text)} chars of text"
            )
            raise ScrapeFailure(
                source.value, "Price pattern not found on page",
            ) from cause

        try:
            observation = await asyncio.to_thread(
                self._observations.insert,
                reading.price,
                reading.unit,
                self._clock(),
                source,
            )
        except sqlite3.Error as exc:
            raise ScrapeFailure(
                source.value, f"Could not store price: {exc}",
            ) from exc
        logger.info(
            "[%s] Scrape succeeded: %s",
            source.value, reading.full_text,
        )
        return observation, reading

    async def run(self, source: Source) -> ScrapeResult:
        """Like :meth:`scrape_and_persist` but never raises ScrapeFailure."""
        try:
            observation, reading = await self.scrape_and_persist(source)
        except ScrapeFailure as exc:
            return ScrapeResult(source=source, error=exc)
        return ScrapeResult(
            source=source, observation=observation, reading=reading,
        )

    async def scrape_all(self) -> list[ScrapeResult]:
        """Scrape every source concurrently and report each outcome."""
        return list(
            await asyncio.gather(*(self.run(s) for s in Source))
        )
