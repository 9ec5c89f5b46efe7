# src/models/errors.py

"""Exception hierarchy for scraping, scheduling and the read path."""


class GoldWatchError(Exception):
    """Base class for all gold_watch errors."""


class CaptureFailure(GoldWatchError):
    """The headless browser could not produce a page signal."""


class ExtractionNotFound(GoldWatchError):
    """No price pattern matched the captured page."""


class ScrapeFailure(GoldWatchError):
    """A scrape of one source failed; wraps the underlying cause."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"[{source}] {message}")
        self.source = source
        self.message = message


class InvalidExpression(GoldWatchError):
    """A cron expression was rejected."""


class ConfigUnavailable(GoldWatchError):
    """The configuration store could not be read or written."""


class NoDataYet(GoldWatchError):
    """No observation has ever been stored for the requested source."""
