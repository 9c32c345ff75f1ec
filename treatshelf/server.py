"""
Entry point for running treatshelf under uvicorn.
"""

from __future__ import annotations

import logging

import uvicorn

from treatshelf.app import create_app
from treatshelf.config import get_settings

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    app = create_app(settings)
    logger.info(
        "Listening on localhost:%s (database backend: %s)",
        settings.port,
        settings.database_backend,
    )
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
