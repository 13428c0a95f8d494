"""
CLI entry point for CF DDNS.

This module loads the configuration, sets up logging and starts either the
long-running service or a single update cycle.
"""

from __future__ import annotations

import asyncio
import logging
import sys

from cf_ddns.config import ConfigValidationError, load_config, parse_args
from cf_ddns.logging_config import setup_logging
from cf_ddns.providers.cloudflare import CloudFlareProvider
from cf_ddns.reconciler import Reconciler
from cf_ddns.resolver import IPExtractionError, IPResolver
from cf_ddns.server import run_service

logger = logging.getLogger(__name__)


async def run_once(reconciler: Reconciler) -> None:
    """Run one cycle and wait for all of its updates."""
    await reconciler.run_cycle()
    await reconciler.drain()


def main(argv: list[str] | None = None) -> None:
    """
    Start CF DDNS.

    Exits with status 1 on invalid configuration or when no IP address can be
    extracted from the IP echo response.
    """
    args = parse_args(argv)
    try:
        config = load_config(args)
    except ConfigValidationError as e:
        print(e, file=sys.stderr)  # noqa: T201
        sys.exit(1)

    setup_logging(config.logging)

    reconciler = Reconciler(
        provider=CloudFlareProvider(config.api_token),
        resolver=IPResolver(),
        zones=config.zones,
    )

    try:
        if args.once:
            asyncio.run(run_once(reconciler))
        else:
            asyncio.run(run_service(config, reconciler))
    except IPExtractionError as e:
        logger.critical("%s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting.")


if __name__ == "__main__":
    main()
