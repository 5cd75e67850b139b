"""
Server entrypoint for the Finance Tracker API.

Run with:
    python -m app.main

uvicorn handles SIGINT/SIGTERM by running the application's lifespan
shutdown, which closes the MongoDB connection before the process exits
with status 0. Anything that fails while starting up is logged and the
process exits with status 1.
"""

import sys

import structlog
import uvicorn

from finance_tracker.api import create_app
from finance_tracker.config import get_settings, validate_all_settings


logger = structlog.get_logger("finance_tracker.main")


def main() -> int:
    checks = validate_all_settings()
    failed = [name for name, ok in checks.items() if ok is False]
    if failed:
        logger.error(
            "invalid_settings",
            sections=failed,
            errors={name: checks[f"{name}_error"] for name in failed},
        )
        return 1

    try:
        settings = get_settings()
        server = settings.server
        app = create_app(settings)
        logger.info("server_starting", host=server.host, port=server.port)
        uvicorn.run(app, host=server.host, port=server.port, log_config=None)
    except Exception as e:
        logger.error("startup_failed", error=str(e), exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
