"""Command-line entry point: set up logging and optionally run the pipeline."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence

import httpx

from proxypool.config import DEFAULT_CONFIG_NAME, AppConfig, load_config
from proxypool.errors import ConfigError, ProxyPoolError
from proxypool.fetchers import fetch_all_sources
from proxypool.logsetup import init_logging
from proxypool.quality import QualityConfig
from proxypool.storage import open_storage
from proxypool.utils import TRACE
from proxypool.verifier import verify_all

logger = logging.getLogger(__name__)

LEVEL_MESSAGES = (
    (logging.ERROR, "this is the error level"),
    (logging.WARNING, "this is the warn level"),
    (logging.INFO, "this is the info level"),
    (logging.DEBUG, "this is the debug level"),
    (TRACE, "this is the trace level"),
)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="proxypool", description="Collect and verify free proxies."
    )
    parser.add_argument(
        "--config", default=DEFAULT_CONFIG_NAME,
        help="configuration file; without a suffix .toml then .json is tried",
    )
    parser.add_argument("--log-dir", default="logs", help="directory for all.log")
    parser.add_argument(
        "--run", action="store_true", help="fetch proxies from every source and verify them"
    )
    return parser


async def _collect_and_verify(config: AppConfig) -> int:
    storage = await open_storage(config.db)
    try:
        logger.info("========== [collecting proxies] ==========")
        try:
            proxies = await fetch_all_sources()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Failed to fetch proxies: %s", exc)
            return 0
        logger.info("fetched %d proxies in total", len(proxies))
        return await verify_all(
            proxies,
            QualityConfig.from_settings(config.verify),
            storage,
            config.verify.semaphore,
        )
    finally:
        await storage.close()


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command; returns the process exit status."""
    args = _parser().parse_args(argv)
    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(f"proxypool: {exc}", file=sys.stderr)
        return 2
    try:
        init_logging(config.log.console_levels, args.log_dir)
    except OSError as exc:
        print(f"proxypool: cannot set up logging: {exc}", file=sys.stderr)
        return 1

    for level, message in LEVEL_MESSAGES:
        logger.log(level, message)

    if args.run:
        try:
            asyncio.run(_collect_and_verify(config))
        except (ProxyPoolError, ValueError) as exc:
            logger.error("run failed: %s", exc)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())