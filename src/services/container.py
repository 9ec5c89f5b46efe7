# src/services/container.py

"""Wires the stores, pipeline, read path and scheduler together."""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path

from src.models.schedule import BootstrapState
from src.scrapers.browser_session import BrowserSessionDriver
from src.services.price_service import PriceService
from src.services.scheduler import PriceScheduler
from src.services.scrape_pipeline import ScrapePipeline
from src.storage.config_store import ConfigStore
from src.storage.observation_store import ObservationStore

logger = logging.getLogger("gold_watch.services")


def _log_bootstrap_outcome(task: asyncio.Task[bool]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Scheduler bootstrap failed", exc_info=exc)


@dataclass
class AppServices:
    """Everything the HTTP surface and CLI need, owned in one place."""

    observations: ObservationStore
    config: ConfigStore
    pipeline: ScrapePipeline
    prices: PriceService
    scheduler: PriceScheduler
    bootstrap_task: asyncio.Task[bool] | None = field(default=None, repr=False)

    def request_bootstrap(self) -> None:
        """Fire-and-forget the scheduler bootstrap from a running loop."""
        if self.bootstrap_task is not None:
            return
        if self.scheduler.bootstrap_state is not BootstrapState.NOT_STARTED:
            return
        self.bootstrap_task = asyncio.get_running_loop().create_task(
            self.scheduler.ensure_started_from_persisted()
        )
        self.bootstrap_task.add_done_callback(_log_bootstrap_outcome)

    def close(self) -> None:
        if self.bootstrap_task is not None and not self.bootstrap_task.done():
            self.bootstrap_task.cancel()
        self.scheduler.shutdown()
        self.observations.close()
        self.config.close()
        logger.info("Services closed")


def build_services(
    db_path: Path | None = None,
    driver: BrowserSessionDriver | None = None,
) -> AppServices:
    """Build the production object graph."""
    observations = ObservationStore(db_path)
    config = ConfigStore(db_path)
    pipeline = ScrapePipeline(
        driver or BrowserSessionDriver(), observations, config,
    )
    return AppServices(
        observations=observations,
        config=config,
        pipeline=pipeline,
        prices=PriceService(pipeline, observations),
        scheduler=PriceScheduler(pipeline, config),
    )
