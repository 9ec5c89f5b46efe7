# main.py

"""Entry point for gold_watch: HTTP server or one-shot CLI commands."""

import argparse
import asyncio
import logging
import sys

from src.config.logging_config import setup_logging

logger = logging.getLogger("gold_watch.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="gold_watch",
        description="Bank gold price scraper and API.",
        epilog="Sources: ccb, cmb",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Bind address for the HTTP server.",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for the HTTP server (default: 8000).",
    )
    parser.add_argument(
        "--scrape",
        metavar="SOURCE",
        default=None,
        help="Scrape once (ccb, cmb or all) and exit.",
    )
    parser.add_argument(
        "--history",
        metavar="SOURCE",
        default=None,
        help="Print stored prices for a source and exit.",
    )
    parser.add_argument(
        "--days",
        type=int,
        default=None,
        help="Limit --history to the last N days.",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="json",
        dest="output_format",
        help="Output format for --history (default: json).",
    )
    parser.add_argument(
        "--health",
        action="store_true",
        default=False,
        help="Check that both source pages are reachable.",
    )
    return parser


def _run_server(host: str, port: int) -> None:
    """Serve the API until interrupted."""
    import uvicorn

    from src.api.app import create_app

    try:
        uvicorn.run(create_app(), host=host, port=port, log_config=None)
    except Exception:
        logger.critical("Fatal error in HTTP server", exc_info=True)
        raise
    finally:
        logger.info("gold_watch server shutting down")


def main() -> None:
    """Route to the server (no command) or a one-shot command."""
    log_file = setup_logging()
    logger.info("gold_watch starting, log file: %s", log_file)

    args = _build_parser().parse_args()

    if args.scrape is not None:
        from src.cli.runner import run_scrape

        sys.exit(asyncio.run(run_scrape(args.scrape)))
    elif args.history is not None:
        from src.cli.runner import run_history

        sys.exit(run_history(args.history, args.days, args.output_format))
    elif args.health:
        from src.cli.runner import run_health_check

        sys.exit(asyncio.run(run_health_check()))
    else:
        _run_server(args.host, args.port)


if __name__ == "__main__":
    main()
