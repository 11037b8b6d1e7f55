"""
fort-watch entry point.

Loads configuration, primes the authorization cache and logs every update
received from the Fort server.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

import structlog

from fort_shared.schemas.updates import UpdateEvent

from .client import FortClient
from .config import FortClientConfig, load_config


def configure_logging(level: str = "info", fmt: str = "json") -> None:
    """Configure structlog with the specified level and format."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
    )


async def watch(config: FortClientConfig) -> None:
    log = structlog.get_logger()
    client = FortClient(config)

    async def log_update(event: UpdateEvent) -> None:
        log.info(
            "fort_watch.update",
            update=event.event_name,
            id=event.entity_id,
            event_id=str(event.event_id),
        )

    client.on_update(log_update)
    async with client:
        await asyncio.Event().wait()


def run() -> None:
    """CLI entry point for fort-watch."""
    parser = argparse.ArgumentParser(description="Watch resource updates of a Fort app")
    parser.add_argument(
        "-c", "--config",
        default="fort-client.yaml",
        help="Path to configuration file (default: fort-client.yaml)",
    )
    args = parser.parse_args()

    try:
        config = load_config(args.config)
        config.auth_headers()
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except Exception as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)

    configure_logging(config.logging.level, config.logging.format)
    log = structlog.get_logger()
    log.info("fort_watch.config_loaded", config_path=args.config, app_key=config.app.app_key)

    try:
        asyncio.run(watch(config))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
