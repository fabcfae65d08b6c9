"""Entry point for the API server."""

import contextlib
import sys

import structlog
import uvicorn

from collector.app import create_app
from collector.config import Settings
from collector.logging import configure_logging

logger = structlog.get_logger()


def main() -> None:
    """Entry point for python -m collector."""
    settings = Settings()
    configure_logging(debug=settings.debug)
    logger.info(
        "collector_starting",
        database=settings.database_path,
        managed_search=settings.managed_search_enabled,
    )

    with contextlib.suppress(KeyboardInterrupt):
        uvicorn.run(
            create_app(settings),
            host=settings.host,
            port=settings.port,
            log_level="warning",
            access_log=False,
        )

    sys.exit(0)


if __name__ == "__main__":
    main()
