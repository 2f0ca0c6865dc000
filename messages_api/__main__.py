import math
import sys

import uvicorn

from .config import Settings
from .errors import ConfigError
from .logging_utils import configure_logging, logger
from .main import create_app


def main() -> int:
    settings = Settings()
    configure_logging(settings.LOG_LEVEL)
    try:
        settings.validate()
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1

    # uvicorn owns SIGINT/SIGTERM: it stops accepting connections and runs
    # the app's shutdown, which drains requests and closes the pool.
    # It takes whole seconds; round up so 0.5 does not become 0.
    uvicorn.run(
        create_app(settings),
        host=settings.HOST,
        port=settings.port,
        timeout_graceful_shutdown=math.ceil(settings.shutdown_timeout),
        log_level=settings.LOG_LEVEL.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
