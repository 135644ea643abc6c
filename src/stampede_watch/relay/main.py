"""
Relay Entry Point
=================

Starts the alert relay server.

Usage:
    stampede-relay
    PORT=8080 stampede-relay

Exit codes:
    0 - normal shutdown
    1 - messaging credentials missing
"""

import logging
import sys

import uvicorn

from stampede_watch.config import load_config, setup_logging
from stampede_watch.errors import ConfigurationError
from stampede_watch.relay.app import create_app


logger = logging.getLogger(__name__)


def main() -> None:
    settings = load_config()
    setup_logging(settings)

    try:
        app = create_app(settings)
    except ConfigurationError as e:
        logger.error(f"Relay cannot start: {e}")
        sys.exit(1)

    logger.info(f"Relay listening on {settings.relay.host}:{settings.relay.port}")
    uvicorn.run(
        app,
        host=settings.relay.host,
        port=settings.relay.port,
        reload=False,
    )
    sys.exit(0)


if __name__ == "__main__":
    main()
