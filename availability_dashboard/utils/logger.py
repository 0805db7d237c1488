"""Log setup for the dashboard's package logger."""

import logging
import os

from flask.logging import default_handler

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s:%(lineno)d] - %(message)s"
PACKAGE_LOGGER = __name__.split(".")[0]


def _owned(handler) -> bool:
    return handler is default_handler or getattr(handler, "_dashboard_handler", False)


def init_logging(app):
    """Send every ``availability_dashboard.*`` record to a file and stderr.

    Handlers live on the package logger, not the root logger, and are
    replaced on each call so repeated app construction never stacks them.
    Returns the log file path.
    """
    log_dir = app.config.get("LOG_DIR") or os.path.join(os.path.dirname(__file__), "..", "logs")
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, app.config.get("LOG_FILE") or f"{PACKAGE_LOGGER}.log")

    log_level = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    numeric_level = getattr(logging, log_level, logging.INFO)

    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in [h for h in logger.handlers if _owned(h)]:
        logger.removeHandler(handler)
        if handler is not default_handler:
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in (logging.FileHandler(log_file, encoding="utf-8"), logging.StreamHandler()):
        handler.setFormatter(formatter)
        handler._dashboard_handler = True
        logger.addHandler(handler)
    logger.setLevel(numeric_level)

    # Per-request connection chatter from requests' pool.
    logging.getLogger("urllib3").setLevel(max(numeric_level, logging.WARNING))
    app.logger.info("Logging to %s at %s level", log_file, log_level)
    return log_file
