# src/storage/config_store.py

"""Name/value settings table for scraper URLs and cron configuration."""

import logging
import sqlite3
import threading
from pathlib import Path

from src.config.settings import Settings
from src.models.errors import ConfigUnavailable
from src.models.schedule import PersistedScheduleConfig

logger = logging.getLogger("gold_watch.config_store")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS scraper_config (
    id    INTEGER PRIMARY KEY AUTOINCREMENT,
    name  TEXT    NOT NULL UNIQUE,
    value TEXT    NOT NULL
);
"""

_UPSERT = (
    "INSERT INTO scraper_config (name, value) VALUES (?, ?) "
    "ON CONFLICT(name) DO UPDATE SET value = excluded.value"
)

_SEED = (
    "INSERT INTO scraper_config (name, value) VALUES (?, ?) "
    "ON CONFLICT(name) DO NOTHING"
)

CRON_ENABLED_KEY = "cron_enabled"
CRON_EXPRESSION_KEY = "cron_expression"


def url_key(source_id: str) -> str:
    return f"scrape_url_{source_id}"


class ConfigStore:
    """Upsert-style persistence for the settings the scheduler needs.

    Every public method raises :class:`ConfigUnavailable` when the
    underlying database fails, so callers can decide whether the
    failure is fatal.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        path = db_path or Settings.PRICE_DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(
            str(path), check_same_thread=False,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def _read(self, names: list[str]) -> dict[str, str]:
        placeholders = ", ".join("?" for _ in names)
        rows = self._conn.execute(
            "SELECT name, value FROM scraper_config "
            f"WHERE name IN ({placeholders})",
            names,
        ).fetchall()
        return {str(r[0]): str(r[1]) for r in rows}

    # ── Scraper URLs ─────────────────────────────────────

    def get_scraper_urls(self) -> dict[str, str]:
        """Return the URL per source, seeding defaults on first read."""
        defaults = Settings.DEFAULT_URLS
        try:
            with self._lock:
                stored = self._read([url_key(s) for s in defaults])
                urls = {
                    source_id: stored.get(url_key(source_id)) or default
                    for source_id, default in defaults.items()
                }
                for source_id, url in urls.items():
                    self._conn.execute(_SEED, (url_key(source_id), url))
                self._conn.commit()
        except sqlite3.Error as exc:
            raise ConfigUnavailable(
                f"Could not read scraper URLs: {exc}"
            ) from exc
        return urls

    def update_scraper_urls(
        self, urls: dict[str, str],
    ) -> dict[str, str]:
        """Overwrite the stored URL for each source in *urls*."""
        try:
            with self._lock:
                for source_id, url in urls.items():
                    self._conn.execute(_UPSERT, (url_key(source_id), url))
                self._conn.commit()
        except sqlite3.Error as exc:
            raise ConfigUnavailable(
                f"Could not save scraper URLs: {exc}"
            ) from exc
        logger.info("Scraper URLs updated for %s", sorted(urls))
        return dict(urls)

    # ── Cron ─────────────────────────────────────────────

    def get_cron_config(self) -> PersistedScheduleConfig:
        """Return the persisted cron settings (disabled when absent)."""
        try:
            with self._lock:
                stored = self._read(
                    [CRON_ENABLED_KEY, CRON_EXPRESSION_KEY]
                )
        except sqlite3.Error as exc:
            raise ConfigUnavailable(
                f"Could not read cron config: {exc}"
            ) from exc
        return PersistedScheduleConfig(
            enabled=stored.get(CRON_ENABLED_KEY) == "true",
            expression=stored.get(CRON_EXPRESSION_KEY) or None,
        )

    def save_cron_config(
        self, enabled: bool, expression: str | None,
    ) -> None:
        """Persist the cron enabled flag and expression."""
        try:
            with self._lock:
                self._conn.execute(
                    _UPSERT,
                    (CRON_ENABLED_KEY, "true" if enabled else "false"),
                )
                self._conn.execute(
                    _UPSERT, (CRON_EXPRESSION_KEY, expression or ""),
                )
                self._conn.commit()
        except sqlite3.Error as exc:
            raise ConfigUnavailable(
                f"Could not save cron config: {exc}"
            ) from exc
        logger.info(
            "Cron config saved: enabled=%s expression=%r",
            enabled, expression,
        )
