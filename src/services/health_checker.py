# src/services/health_checker.py

"""Plain-HTTP reachability probe for the configured source pages."""

import asyncio
import logging
import time
from dataclasses import dataclass

from curl_cffi import requests as curl_requests

from src.config.settings import Settings

logger = logging.getLogger("gold_watch.health")

_SLOW_MS = 5000


@dataclass
class HealthResult:
    """Result of a single source health check."""

    source_id: str
    status: str  # "ok", "slow", "down"
    latency_ms: float
    message: str


def probe_source(
    source_id: str,
    url: str,
    session: curl_requests.Session | None = None,
) -> HealthResult:
    """GET *url* with a browser TLS fingerprint and time the answer.

    This only proves the bank page is reachable; the price itself is
    rendered client-side and needs the headless browser.
    """
    if session is None:
        with curl_requests.Session(
            impersonate=Settings.IMPERSONATE_BROWSER
        ) as owned:
            return _probe(owned, source_id, url)
    return _probe(session, source_id, url)


def _probe(
    http: curl_requests.Session, source_id: str, url: str,
) -> HealthResult:
    start = time.monotonic()
    try:
        resp = http.get(
            url,
            headers={
                **Settings.DEFAULT_HEADERS,
                "User-Agent": Settings.USER_AGENT,
            },
            timeout=Settings.HEALTH_TIMEOUT,
        )
    except Exception as exc:
        elapsed_ms = (time.monotonic() - start) * 1000
        return HealthResult(
            source_id=source_id,
            status="down",
            latency_ms=elapsed_ms,
            message=str(exc)[:80],
        )

    elapsed_ms = (time.monotonic() - start) * 1000
    if resp.status_code != 200:
        return HealthResult(
            source_id=source_id,
            status="down",
            latency_ms=elapsed_ms,
            message=f"HTTP {resp.status_code}",
        )
    if elapsed_ms > _SLOW_MS:
        return HealthResult(
            source_id=source_id,
            status="slow",
            latency_ms=elapsed_ms,
            message="High latency",
        )
    return HealthResult(
        source_id=source_id,
        status="ok",
        latency_ms=elapsed_ms,
        message="",
    )


class HealthChecker:
    """Probes every source URL concurrently."""

    def __init__(self, urls: dict[str, str] | None = None) -> None:
        self.urls = urls or dict(Settings.DEFAULT_URLS)

    async def check_all(self) -> list[HealthResult]:
        tasks = [
            asyncio.to_thread(probe_source, source_id, url)
            for source_id, url in self.urls.items()
        ]
        results: list[HealthResult] = list(await asyncio.gather(*tasks))
        for r in results:
            logger.info(
                "Health check %s: %s (%.0fms) %s",
                r.source_id, r.status, r.latency_ms, r.message,
            )
        return results
