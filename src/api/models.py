# src/api/models.py

"""Request bodies accepted by the HTTP surface."""

from pydantic import BaseModel


class ScrapeUrls(BaseModel):
    ccb: str
    cmb: str


class CronSettings(BaseModel):
    enabled: bool
    expression: str | None = None


class SettingsUpdate(BaseModel):
    """Body of ``POST /api/settings``."""

    scrapeUrls: ScrapeUrls
    cron: CronSettings | None = None


class CronConfigUpdate(BaseModel):
    """Body of ``POST /api/cron/config``.

    ``expression`` wins over ``intervalMinutes`` when both are given.
    """

    enabled: bool | None = None
    expression: str | None = None
    intervalMinutes: int | None = None
