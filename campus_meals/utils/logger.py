"""
Logging configuration

Modules log through ``logging.getLogger(__name__)``; everything under the
``campus_meals`` namespace propagates to the handler installed here.
"""
import logging
import sys
from campus_meals.config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
ROOT_LOGGER = "campus_meals"


def setup_logging(debug: bool | None = None) -> logging.Logger:
    """Attach a stdout handler to the package logger (idempotent)"""
    if debug is None:
        debug = get_settings().DEBUG

    logger = logging.getLogger(ROOT_LOGGER)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the package namespace, configuring it on first use"""
    setup_logging()
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
