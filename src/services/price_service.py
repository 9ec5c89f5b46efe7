# src/services/price_service.py

"""Read path: serve the latest price, scraping only when it is stale."""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from enum import Enum

from src.config.settings import Settings
from src.models.errors import NoDataYet, ScrapeFailure
from src.models.observation import Observation, PriceView, Provenance, Source
from src.services.scrape_pipeline import ScrapePipeline
from src.storage.observation_store import ObservationStore

logger = logging.getLogger("gold_watch.prices")


class ReadMode(str, Enum):
    """How hard a price request may try to get a fresh quote."""

    LIVE_IF_STALE = "live_if_stale"
    CACHE_ONLY = "cache_only"


class PriceService:
    """Freshness window in front of the scrape pipeline.

    A stored observation younger than the freshness window is served
    as-is, so request bursts hit the browser at most once per window.
    When a live scrape fails, the newest stored observation is served
    instead; a request only fails when the source has no history at all.
    """

    def __init__(
        self,
        pipeline: ScrapePipeline,
        observations: ObservationStore,
        freshness_window: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._observations = observations
        self._window = timedelta(
            seconds=(
                Settings.FRESHNESS_WINDOW_SECONDS
                if freshness_window is None
                else freshness_window
            )
        )
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def is_fresh(self, observation: Observation) -> bool:
        """True while *observation* is inside the freshness window."""
        return self._clock() - observation.captured_at < self._window

    async def _latest(self, source: Source) -> Observation | None:
        return await asyncio.to_thread(self._observations.latest, source)

    async def get_price(
        self,
        source: Source,
        mode: ReadMode = ReadMode.LIVE_IF_STALE,
    ) -> PriceView:
        """Return the price for *source* tagged with its provenance.

        Raises:
            NoDataYet: nothing has ever been stored for *source* and a
                live scrape was not possible.
        """
        latest = await self._latest(source)
        if latest is not None and (
            mode is ReadMode.CACHE_ONLY or self.is_fresh(latest)
        ):
            logger.debug(
                "[%s] Serving stored price id=%d (mode=%s)",
                source.value, latest.id, mode.value,
            )
            return PriceView(observation=latest, provenance=Provenance.CACHE)

        try:
            observation, reading = await self._pipeline.scrape_and_persist(
                source
            )
        except ScrapeFailure as exc:
            logger.error("Scraping error: %s", exc)
            fallback = await self._latest(source)
            if fallback is None:
                raise NoDataYet(
                    f"No {source.value} price available: {exc.message}"
                ) from exc
            logger.warning(
                "[%s] Scrape failed, serving stored price id=%d",
                source.value, fallback.id,
            )
            return PriceView(
                observation=fallback, provenance=Provenance.CACHE,
            )

        return PriceView(
            observation=observation,
            provenance=Provenance.LIVE,
            full_text=reading.full_text,
        )

    async def get_history(
        self, source: Source, days: int | None = None,
    ) -> list[Observation]:
        """Observations for *source*, newest first, optionally windowed."""
        return await asyncio.to_thread(
            self._observations.list_since, source, days,
        )
