"""
Lending protocol price feeder
Entry point: deploy a protocol from config.yaml and keep its oracle fresh
"""
from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from .config import load_config
from .logging_setup import configure_logging
from .services import Deployment, deploy

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 60.0


async def run_price_feeder(
    config_path: str | Path | None = None,
    interval: float = DEFAULT_INTERVAL,
    iterations: int | None = None,
    log_level: str = "INFO",
) -> Deployment:
    """Deploy from configuration and refresh oracle prices from Pyth.

    Returns the deployment once ``iterations`` refreshes have run; with
    ``iterations=None`` the loop runs until cancelled.
    """
    configure_logging(log_level)
    config = load_config(config_path)
    deployment = deploy(config)
    logger.info("Feeding %d asset price(s) into the oracle", len(deployment.collateral_tokens))
    await deployment.price_feeder().run(interval, iterations)
    return deployment


if __name__ == "__main__":
    asyncio.run(
        run_price_feeder(
            os.environ.get("LENDING_CONFIG"),
            float(os.environ.get("LENDING_FEED_INTERVAL", DEFAULT_INTERVAL)),
            log_level=os.environ.get("LENDING_LOG_LEVEL", "INFO"),
        )
    )
