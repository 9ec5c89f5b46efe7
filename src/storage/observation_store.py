# src/storage/observation_store.py

"""SQLite-backed, append-only gold price history."""

import logging
import sqlite3
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path

from src.config.settings import Settings
from src.models.observation import Observation, Source

logger = logging.getLogger("gold_watch.observations")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS gold_prices (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    price       REAL    NOT NULL,
    unit        TEXT    NOT NULL,
    captured_at TEXT    NOT NULL,
    source      TEXT    NOT NULL DEFAULT 'ccb'
);

CREATE INDEX IF NOT EXISTS idx_gold_prices_source_captured
    ON gold_prices(source, captured_at DESC);
"""

_COLUMNS = "id, price, unit, captured_at, source"


def to_db_timestamp(ts: datetime) -> str:
    """Fixed-width UTC ISO string so text ordering matches time ordering."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _row_to_observation(row: tuple[object, ...]) -> Observation:
    return Observation(
        id=int(str(row[0])),
        price=float(str(row[1])),
        unit=str(row[2]),
        captured_at=datetime.fromisoformat(str(row[3])),
        source=Source(str(row[4])),
    )


class ObservationStore:
    """Append-only store of price observations, one row per scrape."""

    def __init__(self, db_path: Path | None = None) -> None:
        path = db_path or Settings.PRICE_DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(
            str(path), check_same_thread=False,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)
        logger.debug("ObservationStore opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # ── Writing ──────────────────────────────────────────

    def insert(
        self,
        price: float,
        unit: str,
        captured_at: datetime,
        source: Source,
    ) -> Observation:
        """Append one observation and return it with its assigned id."""
        ts = to_db_timestamp(captured_at)
        with self._lock:
            cur = self._conn.execute(
                "INSERT INTO gold_prices "
                "(price, unit, captured_at, source) "
                "VALUES (?, ?, ?, ?)",
                (round(price, 2), unit, ts, source.value),
            )
            self._conn.commit()
            row_id = cur.lastrowid
        logger.info(
            "Recorded %s price %.2f%s at %s (id=%s)",
            source.value, price, unit, ts, row_id,
        )
        return Observation(
            id=int(row_id or 0),
            source=source,
            price=round(price, 2),
            unit=unit,
            captured_at=datetime.fromisoformat(ts),
        )

    # ── Reading ──────────────────────────────────────────

    def latest(self, source: Source) -> Observation | None:
        """Most recent observation for *source*, or ``None``."""
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_COLUMNS} FROM gold_prices "
                "WHERE source = ? "
                "ORDER BY captured_at DESC, id DESC LIMIT 1",
                (source.value,),
            ).fetchone()
        return _row_to_observation(row) if row else None

    def list_since(
        self,
        source: Source,
        days: int | None = None,
        now: datetime | None = None,
    ) -> list[Observation]:
        """Observations for *source*, newest first.

        With *days* set, only rows captured within the last *days* days
        are returned.  A window reaching past the earliest representable
        date returns everything.
        """
        query = f"SELECT {_COLUMNS} FROM gold_prices WHERE source = ?"
        params: list[object] = [source.value]
        if days is not None:
            current = now or datetime.now(timezone.utc)
            cutoff: str | None
            try:
                cutoff = to_db_timestamp(current - timedelta(days=days))
            except OverflowError:
                cutoff = None
            if cutoff is not None:
                query += " AND captured_at >= ?"
                params.append(cutoff)
        query += " ORDER BY captured_at DESC, id DESC"

        with self._lock:
            rows = self._conn.execute(query, params).fetchall()
        return [_row_to_observation(r) for r in rows]
