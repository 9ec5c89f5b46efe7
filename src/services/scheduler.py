# src/services/scheduler.py

"""Single-slot recurring scrape job backed by APScheduler.

The scheduler owns exactly one job.  Arming it again replaces the job
rather than adding a second one, and a failed tick is logged without
disturbing future ticks.  On first use the persisted cron settings are
adopted once per instance, no matter how many entry points ask.
"""

import asyncio
import logging
import threading

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from src.config.settings import Settings
from src.models.errors import ConfigUnavailable, InvalidExpression
from src.models.observation import Source
from src.models.schedule import (
    BootstrapState,
    PersistedScheduleConfig,
    ScheduleState,
)
from src.services.scrape_pipeline import ScrapePipeline
from src.storage.config_store import ConfigStore

logger = logging.getLogger("gold_watch.scheduler")

# Ticks for the same source may overlap; each one only appends a row.
_MAX_OVERLAPPING_TICKS = 3


def build_trigger(expression: str, timezone: str) -> CronTrigger:
    """Parse a 5-field crontab, or 6 fields with leading seconds.

    Raises:
        InvalidExpression: wrong field count or an unparsable field.
    """
    fields = expression.split()
    try:
        if len(fields) == 5:
            return CronTrigger.from_crontab(expression, timezone=timezone)
        if len(fields) == 6:
            second, minute, hour, day, month, day_of_week = fields
            return CronTrigger(
                second=second,
                minute=minute,
                hour=hour,
                day=day,
                month=month,
                day_of_week=day_of_week,
                timezone=timezone,
            )
    except ValueError as exc:
        raise InvalidExpression(
            f"Invalid cron expression {expression!r}: {exc}"
        ) from exc
    raise InvalidExpression(
        f"Invalid cron expression {expression!r}: "
        f"expected 5 or 6 fields, got {len(fields)}"
    )


def expression_for_interval(minutes: int) -> str:
    """Cron expression firing every *minutes* minutes (1..720)."""
    if not 1 <= minutes <= Settings.MAX_INTERVAL_MINUTES:
        raise InvalidExpression(f"Invalid minutes: {minutes}")
    return f"*/{minutes} * * * *"


class PriceScheduler:
    """Arms, disarms and reports the recurring scrape of one source."""

    def __init__(
        self,
        pipeline: ScrapePipeline,
        config: ConfigStore,
        scheduler: AsyncIOScheduler | None = None,
        source: Source | None = None,
        timezone: str | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._config = config
        self._timezone = timezone or Settings.SCHEDULER_TIMEZONE
        self._scheduler = scheduler or AsyncIOScheduler(
            timezone=self._timezone
        )
        self._source = source or Source(Settings.DEFAULT_SOURCE)
        self._job_id = Settings.SCRAPE_JOB_ID

        self._state_lock = threading.Lock()
        self._state = ScheduleState()
        self._bootstrap_lock = threading.Lock()
        self._bootstrap = BootstrapState.NOT_STARTED

    # ── Timer slot ───────────────────────────────────────

    def start(self, expression: str) -> ScheduleState:
        """Arm the job on *expression*, replacing any armed job.

        An invalid expression raises before the current job is touched.
        """
        trimmed = expression.strip()
        trigger = build_trigger(trimmed, self._timezone)

        with self._state_lock:
            if not self._scheduler.running:
                self._scheduler.start()
            self._scheduler.add_job(
                self._tick,
                trigger,
                id=self._job_id,
                name=f"scrape {self._source.value}",
                replace_existing=True,
                max_instances=_MAX_OVERLAPPING_TICKS,
                coalesce=True,
            )
            self._state = ScheduleState(armed=True, expression=trimmed)

        logger.info(
            "Scrape job armed with %r for %s", trimmed, self._source.value,
        )
        return self._state

    def stop(self) -> ScheduleState:
        """Disarm the job.  Calling it while disarmed is a no-op."""
        with self._state_lock:
            if self._scheduler.get_job(self._job_id) is not None:
                self._scheduler.remove_job(self._job_id)
                logger.info("Scrape job disarmed")
            self._state = ScheduleState()
        return self._state

    def status(self) -> ScheduleState:
        """Current armed flag and expression."""
        with self._state_lock:
            return self._state

    def shutdown(self) -> None:
        """Disarm and stop the timer backend on process exit."""
        self.stop()
        with self._state_lock:
            if self._scheduler.running:
                self._scheduler.shutdown(wait=False)

    async def _tick(self) -> None:
        result = await self._pipeline.run(self._source)
        if result.ok and result.observation is not None:
            logger.info(
                "Scheduled scrape stored %s price %.2f",
                self._source.value, result.observation.price,
            )
        else:
            logger.error("Scheduled scrape failed: %s", result.error)

    # ── Persisted configuration ──────────────────────────

    @property
    def bootstrap_state(self) -> BootstrapState:
        with self._bootstrap_lock:
            return self._bootstrap

    def _claim_bootstrap(self) -> bool:
        with self._bootstrap_lock:
            if self._bootstrap is not BootstrapState.NOT_STARTED:
                return False
            self._bootstrap = BootstrapState.IN_PROGRESS
            return True

    def _arm_from(self, persisted: PersistedScheduleConfig) -> None:
        if not (persisted.enabled and persisted.expression):
            return
        if self.status().armed:
            return
        try:
            self.start(persisted.expression)
        except InvalidExpression as exc:
            logger.error("Persisted cron expression rejected: %s", exc)

    async def ensure_started_from_persisted(self) -> bool:
        """Adopt the persisted cron settings and scrape once.

        Runs at most once per scheduler; concurrent and later callers
        return ``False`` immediately without waiting.
        """
        if not self._claim_bootstrap():
            return False

        logger.info("Bootstrapping scheduler from persisted config")
        try:
            try:
                persisted = await asyncio.to_thread(
                    self._config.get_cron_config
                )
            except ConfigUnavailable as exc:
                logger.error("Cannot read persisted cron config: %s", exc)
            else:
                self._arm_from(persisted)

            result = await self._pipeline.run(self._source)
            if not result.ok:
                logger.warning("Startup scrape failed: %s", result.error)
        finally:
            with self._bootstrap_lock:
                self._bootstrap = BootstrapState.DONE
        return True

    async def reconcile_from_persisted(self) -> PersistedScheduleConfig:
        """Arm the job if persisted config says it should be running."""
        persisted = await asyncio.to_thread(self._config.get_cron_config)
        self._arm_from(persisted)
        return persisted
