# tests/test_scrape_pipeline.py

"""Tests for the scrape-one-source pipeline."""

import sqlite3
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

from src.config.settings import Settings
from src.models.errors import (
    CaptureFailure,
    ConfigUnavailable,
    ExtractionNotFound,
    ScrapeFailure,
)
from src.models.observation import CapturedSignal, Source
from src.services.scrape_pipeline import ScrapePipeline, reading_from_signal
from src.storage.config_store import ConfigStore
from src.storage.observation_store import ObservationStore

NOW = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)


class TestReadingFromSignal(unittest.TestCase):
    """Structured value first, text patterns second."""

    def test_structured_value_wins(self) -> None:
        signal = CapturedSignal("999元/克", "", structured_value=580.5)
        reading = reading_from_signal(signal, Source.CCB)
        assert reading is not None
        self.assertEqual(reading.price, 580.5)

    def test_structured_cmb_value_is_divided(self) -> None:
        signal = CapturedSignal("", "", structured_value=5860.0)
        reading = reading_from_signal(signal, Source.CMB)
        assert reading is not None
        self.assertEqual(reading.price, 586.0)
        self.assertEqual(reading.full_text, "5860元/10克")

    def test_non_positive_structured_value_uses_text(self) -> None:
        signal = CapturedSignal("580.50元/克", "", structured_value=0.0)
        reading = reading_from_signal(signal, Source.CCB)
        assert reading is not None
        self.assertEqual(reading.price, 580.5)

    def test_html_is_searched_too(self) -> None:
        signal = CapturedSignal("", "<b>128元/10克</b>")
        reading = reading_from_signal(signal, Source.CMB)
        assert reading is not None
        self.assertEqual(reading.price, 12.8)


class TestScrapePipeline(unittest.IsolatedAsyncioTestCase):
    """End-to-end pipeline with a fake browser driver."""

    async def asyncSetUp(self) -> None:
        db_path = Path(tempfile.mkdtemp()) / "test.db"
        self.observations = ObservationStore(db_path)
        self.config = ConfigStore(db_path)
        self.driver = MagicMock()
        self.driver.capture_signal = AsyncMock(
            return_value=CapturedSignal("580.50元/克", "<html></html>")
        )
        self.pipeline = ScrapePipeline(
            self.driver, self.observations, self.config, clock=lambda: NOW,
        )

    async def asyncTearDown(self) -> None:
        self.observations.close()
        self.config.close()

    async def test_persists_observation(self) -> None:
        observation, reading = await self.pipeline.scrape_and_persist(
            Source.CCB
        )
        self.assertEqual(observation.price, 580.5)
        self.assertEqual(observation.captured_at, NOW)
        self.assertEqual(reading.full_text, "580.50元/克")
        self.assertEqual(self.observations.latest(Source.CCB), observation)

    async def test_uses_configured_url(self) -> None:
        self.config.update_scraper_urls(
            {"ccb": "https://ccb.example", "cmb": "https://cmb.example"}
        )
        await self.pipeline.scrape_and_persist(Source.CMB)
        self.driver.capture_signal.assert_awaited_once_with(
            "https://cmb.example", Source.CMB,
        )

    async def test_config_outage_falls_back_to_default_url(self) -> None:
        broken = MagicMock()
        broken.get_scraper_urls.side_effect = ConfigUnavailable("down")
        pipeline = ScrapePipeline(self.driver, self.observations, broken)

        await pipeline.scrape_and_persist(Source.CCB)

        self.driver.capture_signal.assert_awaited_once_with(
            Settings.DEFAULT_URLS["ccb"], Source.CCB,
        )

    async def test_pattern_not_found_fails_without_writing(self) -> None:
        self.driver.capture_signal.return_value = CapturedSignal(
            "系统维护中", "<html></html>",
        )
        with self.assertRaises(ScrapeFailure) as ctx:
            await self.pipeline.scrape_and_persist(Source.CCB)

        self.assertIn("Price pattern not found", str(ctx.exception))
        self.assertIsInstance(ctx.exception.__cause__, ExtractionNotFound)
        self.assertIsNone(self.observations.latest(Source.CCB))

    async def test_capture_failure_is_wrapped(self) -> None:
        self.driver.capture_signal.side_effect = CaptureFailure("timeout")
        with self.assertRaises(ScrapeFailure) as ctx:
            await self.pipeline.scrape_and_persist(Source.CCB)
        self.assertIsInstance(ctx.exception.__cause__, CaptureFailure)
        self.assertEqual(ctx.exception.source, "ccb")

    async def test_store_error_is_wrapped(self) -> None:
        with patch.object(
            self.observations, "insert",
            side_effect=sqlite3.OperationalError("database is locked"),
        ):
            with self.assertRaises(ScrapeFailure) as ctx:
                await self.pipeline.scrape_and_persist(Source.CCB)
        self.assertIsInstance(ctx.exception.__cause__, sqlite3.OperationalError)
        self.assertIn("database is locked", str(ctx.exception))

    async def test_run_returns_failure_instead_of_raising(self) -> None:
        self.driver.capture_signal.side_effect = CaptureFailure("timeout")
        result = await self.pipeline.run(Source.CCB)
        self.assertFalse(result.ok)
        self.assertIsInstance(result.error, ScrapeFailure)

    async def test_run_success(self) -> None:
        result = await self.pipeline.run(Source.CCB)
        self.assertTrue(result.ok)
        self.assertIsNone(result.error)

    async def test_scrape_all_settles_every_source(self) -> None:
        async def capture(url: str, source: Source) -> CapturedSignal:
            if source is Source.CMB:
                raise CaptureFailure("blocked")
            return CapturedSignal("580.50元/克", "")

        self.driver.capture_signal.side_effect = capture
        results = await self.pipeline.scrape_all()

        by_source = {r.source: r for r in results}
        self.assertEqual(set(by_source), {Source.CCB, Source.CMB})
        self.assertTrue(by_source[Source.CCB].ok)
        self.assertFalse(by_source[Source.CMB].ok)


if __name__ == "__main__":
    unittest.main()
