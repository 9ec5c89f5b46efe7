# tests/test_observation_store.py

"""Tests for the SQLite observation store."""

import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

from src.models.observation import Source
from src.storage.observation_store import ObservationStore, to_db_timestamp

T0 = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)


class TestToDbTimestamp(unittest.TestCase):
    """Timestamp encoding keeps text order equal to time order."""

    def test_naive_treated_as_utc(self) -> None:
        self.assertEqual(
            to_db_timestamp(datetime(2026, 3, 1, 8, 0)),
            "2026-03-01T08:00:00.000000+00:00",
        )

    def test_converts_to_utc(self) -> None:
        shanghai = timezone(timedelta(hours=8))
        ts = datetime(2026, 3, 1, 16, 0, tzinfo=shanghai)
        self.assertEqual(
            to_db_timestamp(ts), "2026-03-01T08:00:00.000000+00:00",
        )


class TestObservationStore(unittest.TestCase):
    """Append-only writes and per-source reads."""

    def setUp(self) -> None:
        self.tmp_dir = tempfile.mkdtemp()
        self.store = ObservationStore(
            db_path=Path(self.tmp_dir) / "test.db",
        )

    def tearDown(self) -> None:
        self.store.close()

    def test_insert_assigns_increasing_ids(self) -> None:
        first = self.store.insert(580.5, "元/克", T0, Source.CCB)
        second = self.store.insert(581.0, "元/克", T0, Source.CCB)
        self.assertGreater(second.id, first.id)

    def test_insert_rounds_to_two_decimals(self) -> None:
        obs = self.store.insert(586.0049, "元/克", T0, Source.CMB)
        self.assertEqual(obs.price, 586.0)
        self.assertEqual(self.store.latest(Source.CMB).price, 586.0)  # type: ignore[union-attr]

    def test_latest_none_when_empty(self) -> None:
        self.assertIsNone(self.store.latest(Source.CCB))

    def test_latest_is_newest_for_source(self) -> None:
        self.store.insert(580.0, "元/克", T0, Source.CCB)
        self.store.insert(582.0, "元/克", T0 + timedelta(minutes=5), Source.CCB)
        self.store.insert(590.0, "元/克", T0 + timedelta(minutes=9), Source.CMB)

        latest = self.store.latest(Source.CCB)
        assert latest is not None
        self.assertEqual(latest.price, 582.0)
        self.assertEqual(latest.source, Source.CCB)

    def test_latest_breaks_ties_by_id(self) -> None:
        self.store.insert(580.0, "元/克", T0, Source.CCB)
        later = self.store.insert(579.0, "元/克", T0, Source.CCB)
        self.assertEqual(self.store.latest(Source.CCB), later)

    def test_captured_at_round_trips_as_aware_utc(self) -> None:
        self.store.insert(580.0, "元/克", T0, Source.CCB)
        latest = self.store.latest(Source.CCB)
        assert latest is not None
        self.assertEqual(latest.captured_at, T0)
        self.assertIsNotNone(latest.captured_at.tzinfo)

    def test_list_since_newest_first_and_single_source(self) -> None:
        for minutes, price in [(0, 580.0), (10, 585.0), (5, 582.0)]:
            self.store.insert(
                price, "元/克", T0 + timedelta(minutes=minutes), Source.CCB,
            )
        self.store.insert(600.0, "元/克", T0, Source.CMB)

        history = self.store.list_since(Source.CCB)
        self.assertEqual([o.price for o in history], [585.0, 582.0, 580.0])
        self.assertTrue(all(o.source is Source.CCB for o in history))

    def test_list_since_days_window(self) -> None:
        now = T0 + timedelta(days=10)
        self.store.insert(570.0, "元/克", T0, Source.CCB)
        self.store.insert(
            580.0, "元/克", now - timedelta(days=2), Source.CCB,
        )

        recent = self.store.list_since(Source.CCB, days=7, now=now)
        self.assertEqual([o.price for o in recent], [580.0])
        everything = self.store.list_since(Source.CCB, days=None, now=now)
        self.assertEqual(len(everything), 2)

    def test_list_since_huge_window_returns_everything(self) -> None:
        self.store.insert(570.0, "元/克", T0, Source.CCB)
        for days in (800_000, 10**12):
            with self.subTest(days=days):
                history = self.store.list_since(Source.CCB, days=days, now=T0)
                self.assertEqual(len(history), 1)

    def test_history_persists_across_connections(self) -> None:
        self.store.insert(580.0, "元/克", T0, Source.CCB)
        self.store.close()
        self.store = ObservationStore(
            db_path=Path(self.tmp_dir) / "test.db",
        )
        self.assertEqual(len(self.store.list_since(Source.CCB)), 1)


if __name__ == "__main__":
    unittest.main()
