# src/api/app.py

"""FastAPI surface: price, history, settings, cron and the scrape trigger."""

import asyncio
import logging
import secrets
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone

from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.api.models import CronConfigUpdate, SettingsUpdate
from src.config.settings import Settings
from src.models.errors import (
    ConfigUnavailable,
    InvalidExpression,
    NoDataYet,
)
from src.models.observation import Source
from src.services.container import AppServices, build_services
from src.services.price_service import ReadMode
from src.services.scheduler import expression_for_interval

logger = logging.getLogger("gold_watch.api")


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        {"success": False, "error": message}, status_code=status_code,
    )


def get_services(request: Request) -> AppServices:
    """Resolve the service graph and kick off the one-time bootstrap."""
    services: AppServices = request.app.state.services
    services.request_bootstrap()
    return services


def _parse_days(value: str | None) -> int | None:
    """Day window for history; ``None`` means unbounded."""
    if not value or value == "all":
        return None
    try:
        days = int(value)
    except ValueError:
        return None
    # Windows reaching past year 1 cannot be computed and cover everything
    max_days = (datetime.now(timezone.utc).date() - date.min).days
    if days <= 0 or days >= max_days:
        return None
    return days


def create_app(services: AppServices | None = None) -> FastAPI:
    """Build the app; *services* is injected by tests."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if getattr(app.state, "services", None) is None:
            app.state.services = build_services()
        app.state.services.request_bootstrap()
        try:
            yield
        finally:
            app.state.services.close()

    app = FastAPI(
        title="gold_watch",
        description="Scraped bank gold prices with cache fallback",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.services = services

    # ── Error translation ────────────────────────────────

    @app.exception_handler(NoDataYet)
    async def _no_data(_: Request, exc: NoDataYet) -> JSONResponse:
        return _error(str(exc), 500)

    @app.exception_handler(ConfigUnavailable)
    async def _config(_: Request, exc: ConfigUnavailable) -> JSONResponse:
        logger.error("Config store error: %s", exc)
        return _error(str(exc), 500)

    @app.exception_handler(InvalidExpression)
    async def _invalid(_: Request, exc: InvalidExpression) -> JSONResponse:
        return _error(str(exc), 400)

    @app.exception_handler(RequestValidationError)
    async def _validation(
        _: Request, exc: RequestValidationError,
    ) -> JSONResponse:
        return _error(f"Invalid request: {exc.errors()}", 400)

    # ── Prices ───────────────────────────────────────────

    @app.get("/api/gold-price", tags=["Prices"])
    async def gold_price(
        source: str | None = None,
        cacheOnly: str | None = None,
        svc: AppServices = Depends(get_services),
    ) -> dict[str, object]:
        src = Source.from_param(source)
        mode = (
            ReadMode.CACHE_ONLY if cacheOnly == "1"
            else ReadMode.LIVE_IF_STALE
        )
        view = await svc.prices.get_price(src, mode)
        obs = view.observation
        return {
            "success": True,
            "source": src.value,
            "provenance": view.provenance.value,
            "data": {
                "price": obs.formatted_price,
                "unit": obs.unit,
                "fullText": view.label,
            },
            "timestamp": obs.captured_at.isoformat(),
        }

    @app.get("/api/gold-history", tags=["Prices"])
    async def gold_history(
        source: str | None = None,
        days: str | None = None,
        svc: AppServices = Depends(get_services),
    ) -> dict[str, object]:
        history = await svc.prices.get_history(
            Source.from_param(source), _parse_days(days),
        )
        return {"success": True, "data": [o.to_dict() for o in history]}

    # ── Settings ─────────────────────────────────────────

    @app.get("/api/settings", tags=["Settings"])
    async def read_settings(
        svc: AppServices = Depends(get_services),
    ) -> dict[str, object]:
        urls, cron = await asyncio.gather(
            asyncio.to_thread(svc.config.get_scraper_urls),
            asyncio.to_thread(svc.config.get_cron_config),
        )
        return {
            "success": True,
            "data": {"scrapeUrls": urls, "cron": cron.to_dict()},
        }

    @app.post("/api/settings", tags=["Settings"])
    async def write_settings(
        body: SettingsUpdate,
        svc: AppServices = Depends(get_services),
    ) -> dict[str, object]:
        await asyncio.to_thread(
            svc.config.update_scraper_urls, body.scrapeUrls.model_dump(),
        )
        if body.cron is not None:
            await asyncio.to_thread(
                svc.config.save_cron_config,
                body.cron.enabled,
                body.cron.expression,
            )
            if body.cron.enabled and body.cron.expression:
                try:
                    svc.scheduler.start(body.cron.expression)
                except InvalidExpression as exc:
                    logger.error("Failed to start cron: %s", exc)
                    return {
                        "success": True,
                        "warning": (
                            f"Settings saved but failed to start cron: {exc}"
                        ),
                    }
            else:
                svc.scheduler.stop()
        return {"success": True}

    # ── Cron ─────────────────────────────────────────────

    @app.get("/api/cron/config", tags=["Cron"])
    async def read_cron_config(
        svc: AppServices = Depends(get_services),
    ) -> dict[str, object]:
        persisted = await svc.scheduler.reconcile_from_persisted()
        status = svc.scheduler.status()
        return {
            "success": True,
            "data": {
                "enabled": persisted.enabled or status.armed,
                "expression": persisted.expression or status.expression,
            },
        }

    @app.post("/api/cron/config", tags=["Cron"], response_model=None)
    async def write_cron_config(
        body: CronConfigUpdate,
        svc: AppServices = Depends(get_services),
    ) -> JSONResponse | dict[str, object]:
        current = await asyncio.to_thread(svc.config.get_cron_config)

        if body.enabled is False:
            svc.scheduler.stop()
            await asyncio.to_thread(
                svc.config.save_cron_config, False, current.expression,
            )
        elif body.enabled is True:
            expression: str | None = None
            if body.expression and body.expression.strip():
                expression = body.expression.strip()
            elif body.intervalMinutes is not None:
                expression = expression_for_interval(body.intervalMinutes)
            if not expression:
                return _error("Missing cron expression", 400)

            svc.scheduler.start(expression)
            await asyncio.to_thread(
                svc.config.save_cron_config, True, expression,
            )

        saved = await asyncio.to_thread(svc.config.get_cron_config)
        logger.info("Cron config now %s", saved)
        return {"success": True, "data": saved.to_dict()}

    @app.get("/api/cron/scrape-gold", tags=["Cron"], response_model=None)
    async def scrape_gold(
        authorization: str | None = Header(default=None),
        svc: AppServices = Depends(get_services),
    ) -> JSONResponse | dict[str, object]:
        expected = f"Bearer {Settings.CRON_SECRET}"
        if authorization is None or not secrets.compare_digest(
            authorization.encode(), expected.encode(),
        ):
            return _error("Unauthorized", 401)

        logger.info("Scheduled trigger: scraping all sources")
        results = await svc.pipeline.scrape_all()
        for result in results:
            if not result.ok:
                logger.error("Trigger scrape failed: %s", result.error)
        readings = [
            {
                "source": r.source.value,
                "price": r.reading.price,
                "unit": r.reading.unit,
                "fullText": r.reading.full_text,
            }
            for r in results
            if r.reading is not None
        ]
        logger.info(
            "Trigger stored %d of %d prices", len(readings), len(results),
        )
        return {
            "success": True,
            "data": readings,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app
