"""Self health probe run shortly after startup; logs the outcome only."""
from __future__ import annotations

import asyncio

import httpx
from loguru import logger

from mediauth.config.settings import Settings
from mediauth.constants import HEALTH_PATH
from mediauth.core import SERVICE_NAME


async def probe_health(settings: Settings, *, base_url: str | None = None) -> bool:
    """Wait for the configured delay, then GET /health on the local listener."""
    await asyncio.sleep(settings.startup_probe_delay_seconds)
    url = f"{base_url or f'http://localhost:{settings.port}'}{HEALTH_PATH}"
    try:
        async with httpx.AsyncClient(timeout=settings.startup_probe_timeout_seconds) as client:
            response = await client.get(url)
    except httpx.TimeoutException:
        logger.bind(service_name=SERVICE_NAME, event="startup_probe").warning("Health check: TIMEOUT")
        return False
    except httpx.HTTPError as e:
        logger.bind(service_name=SERVICE_NAME, event="startup_probe").warning("Health check: ERROR - {}", e)
        return False

    if response.status_code != 200:
        logger.bind(service_name=SERVICE_NAME, event="startup_probe").warning(
            "Health check: FAILED - Status: {}", response.status_code
        )
        return False

    bound = logger.bind(service_name=SERVICE_NAME, event="startup_probe")
    try:
        database = response.json().get("database", "unknown")
    except ValueError:
        database = "unknown"
    bound.bind(result="passed", database=database).info("Health check: PASSED")
    return True
