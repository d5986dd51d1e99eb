"""Demo service: writes generated entries through a rotating transport until interrupted."""

import logging
import os
import random
import signal
import sys
import time
import uuid

from ctxlog.config import LoggerConfig, load_rotation_config
from ctxlog.levels import LogLevel
from ctxlog.log import Log
from ctxlog.rotating import RotatingFileTransport

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [ctxlog] %(levelname)s %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

_running = True


def _signal_handler(sig, _frame):
    global _running
    logger.info("Shutdown signal received (signal %d), stopping...", sig)
    _running = False


LEVELS = [LogLevel.INFO, LogLevel.INFO, LogLevel.INFO, LogLevel.INFO, LogLevel.DEBUG, LogLevel.WARN, LogLevel.ERROR]
SERVICES = ["AuthApi", "OrderService", "PaymentGateway", "UserService", "CatalogApi"]
MESSAGES = {
    LogLevel.INFO: [
        "Request processed successfully",
        "Health check passed",
        "Cache hit for user session",
        "Database query completed in 12ms",
    ],
    LogLevel.DEBUG: [
        "Entering request handler",
        "Parsed request body",
    ],
    LogLevel.WARN: [
        "Slow query detected (>500ms)",
        "Connection pool nearing capacity",
    ],
    LogLevel.ERROR: [
        "Failed to connect to database",
        "Timeout waiting for upstream response",
    ],
}


def main():
    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    rotation = load_rotation_config()
    log_path = os.environ.get("LOG_PATH", "./logs/application.log")
    logger.info(
        "Config: path=%s, method=%s, max_size=%d bytes, max_files=%d, bucket=%s, compress=%s, retention=%dd",
        log_path, rotation.method.value, rotation.max_size_bytes, rotation.effective_max_files,
        rotation.date_bucket.value, rotation.compress, rotation.retention_days,
    )

    app_log = RotatingFileTransport(log_path, rotation, name="app")
    config = LoggerConfig(
        level=LogLevel.DEBUG,
        timestamp=False,
        colors=False,
        transports={"app": app_log},
        default_transports=["app"],
    )
    loggers = {service: Log(service, uuid.uuid4().hex[:8], config=config) for service in SERVICES}
    entries_written = 0

    while _running:
        level = random.choice(LEVELS)
        log = loggers[random.choice(SERVICES)]
        getattr(log, level.value.lower())(random.choice(MESSAGES[level]))
        entries_written += 1

        outcome = app_log.last_outcome
        if outcome is not None:
            app_log.last_outcome = None
            logger.info("Rotated: %s (%d entries written so far)", outcome.rotated_path, entries_written)
            for path in outcome.archived:
                logger.info("Archived: %s", path)
            if outcome.deleted:
                logger.info("Purged %d file(s): %s", len(outcome.deleted), ", ".join(outcome.deleted))

        time.sleep(0.05)

    logger.info("Shut down cleanly. Total entries written: %d", entries_written)


if __name__ == "__main__":
    main()
