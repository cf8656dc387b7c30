"""
Console entry point: ``filmvault-api``.

Uvicorn owns the listener and signal handling; on SIGINT/SIGTERM it stops
accepting, lets in-flight requests finish within SHUTDOWN_TIMEOUT_SECONDS
and then runs the app's lifespan shutdown.
"""
import uvicorn

from filmvault.core.config import settings
from filmvault.core.log import setup_logging


def main() -> None:
    setup_logging(settings.LOG_LEVEL)
    uvicorn.run(
        "filmvault.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        timeout_graceful_shutdown=int(settings.SHUTDOWN_TIMEOUT_SECONDS),
        log_config=None,
    )


if __name__ == "__main__":
    main()
