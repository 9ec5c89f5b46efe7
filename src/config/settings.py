# src/config/settings.py

"""Central configuration for the gold_watch service."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the gold_watch service."""

    # --- Scraping ---
    NAVIGATION_TIMEOUT: float = 30.0    # Seconds for page.goto
    NETWORK_IDLE_TIMEOUT: float = 5.0   # Non-fatal quiescence wait
    SCRAPE_TIMEOUT: float = 60.0        # Wall clock for one capture
    USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )
    BROWSER_ARGS: list[str] = [
        "--disable-dev-shm-usage",
        "--no-sandbox",
    ]

    # --- Read path ---
    FRESHNESS_WINDOW_SECONDS: float = 10.0
    DEFAULT_SOURCE: str = "ccb"

    # --- Scheduler ---
    SCHEDULER_TIMEZONE: str = os.getenv(
        "GOLD_WATCH_TZ", "Asia/Shanghai"
    )
    SCRAPE_JOB_ID: str = "gold_price_scrape"
    MAX_INTERVAL_MINUTES: int = 720

    # --- Trigger endpoint ---
    CRON_SECRET: str = os.getenv(
        "CRON_SECRET", "your-secret-key-here"
    )

    # --- Health probe (plain HTTP, no browser) ---
    HEALTH_TIMEOUT: int = 10
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome120"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
    }

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    PRICE_DB_PATH: Path = Path(
        os.getenv(
            "GOLD_WATCH_DB",
            str(BASE_DIR / "data" / "gold_prices.db"),
        )
    )
    LOGS_DIR: Path = BASE_DIR / "logs"

    # --- Sources ---
    DEFAULT_URLS: dict[str, str] = {
        "ccb": (
            "https://lsjr.ccb.com/msmp/ecpweb/page/internet/dist/"
            "preciousMetalsDetail.html?CCB_EmpID=71693716"
            "&PM_PD_ID=261108522&Org_Inst_Rgon_Cd=JS"
            "&page=preciousMetalsDetail"
        ),
        "cmb": (
            "https://mobile.cmbchina.com/IGoldSilver/goldsilver/"
            "product-detail.html?behavior_ShareIDTyp=1"
            "&behavior_FwTraceID=193c4468f8046c5adc0e8e64b9665fd2"
            "&behavior_FwChannel=APP&BbkNbr=125&SplCod=FJ067"
            "&PrdTyp=GLD&PrdCod=GLD0035&PrdStd=K0010&RcmID="
            "&accountUid=&IsChangeJump=&accumulateFlag="
            "&orderDetailFlag=&fromAttentionList=&ZxlCod=XL0101"
        ),
    }

    AVAILABLE_SOURCES: list[dict[str, str]] = [
        {
            "id": "ccb",
            "label": "China Construction Bank",
            "selector": ".price",
        },
        {
            "id": "cmb",
            "label": "China Merchants Bank",
            "selector": ".price-info-amount",
        },
    ]
