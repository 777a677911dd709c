"""Run the Courier delivery worker.

Usage:
    python -m courier

Configuration comes from COURIER_* environment variables.
"""

import asyncio
import contextlib

from courier.config import Settings
from courier.logging import configure_logging, get_logger
from courier.service import CourierService


async def _serve(settings: Settings) -> None:
    logger = get_logger("courier")
    async with CourierService.create(settings) as service:
        logger.info(
            "Courier worker running",
            workers=settings.worker_count,
            sweep_interval_seconds=settings.sweep_interval_seconds,
        )
        await service.run_forever()


def main() -> None:
    settings = Settings()
    configure_logging(level=settings.log_level, format=settings.log_format)
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(_serve(settings))


if __name__ == "__main__":
    main()
