"""
Price comparison service entry point.
Serves aggregated store prices over HTTP.
"""

import sys

import uvicorn
from loguru import logger

from pricecompare.api import create_price_server
from pricecompare.settings import global_settings


def configure_logging(level: str) -> None:
    """Route loguru output to stderr at the configured level."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def main() -> None:
    """Main function"""
    configure_logging(global_settings.log_level)
    logger.info(
        f"Starting price comparison service on {global_settings.host}:{global_settings.port} "
        f"(backend: {global_settings.store_backend})"
    )

    try:
        app = create_price_server()
        uvicorn.run(
            app,
            host=global_settings.host,
            port=global_settings.port,
            log_level=global_settings.log_level.lower(),
        )
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down...")
    finally:
        logger.info("Price comparison service stopped")


if __name__ == "__main__":
    main()
