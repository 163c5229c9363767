"""
Logging setup for the Assessment Service.
"""

import logging
import sys

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("sqlalchemy.engine", "passlib", "httpx")


def setup_logging(level: str = "INFO", service_name: str = "assessment") -> logging.Logger:
    """
    Configure the root logger once at startup.

    Module-level ``logging.getLogger(__name__)`` loggers inherit the handler,
    so every line carries the service name.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        service_name: Name shown in each log line

    Returns:
        Logger named after the service
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        f'[%(asctime)s] {service_name.upper()}: %(levelname)s - %(name)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    return logging.getLogger(service_name)
