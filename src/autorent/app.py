"""Application bootstrapper for the AutoRent catalogue service."""
from __future__ import annotations

import logging

from .config import AppConfig
from .web.app import bootstrap_app

logger = logging.getLogger(__name__)


def run() -> None:
    """Entrypoint used by the CLI to launch the JSON API."""

    config = AppConfig.from_env()
    logging.basicConfig(level=getattr(logging, config.log_level, logging.INFO))
    if not config.api.api_key:
        logger.warning("AUTORENT_API_KEY is not set; catalogue fetches will be rejected by the API")

    app, _services = bootstrap_app(config)
    app.run(debug=config.environment == "development")


if __name__ == "__main__":  # pragma: no cover - manual execution only
    run()
