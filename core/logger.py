"""
Service Logger Setup

Usage:
    from core.logger import setup_service_logger

    logger = setup_service_logger("credit_service", level="INFO")
"""

import logging
import sys
from typing import Optional

from core.config import LoggingConfig


def setup_service_logger(
    service_name: str,
    level: Optional[str] = None,
    config: Optional[LoggingConfig] = None,
) -> logging.Logger:
    """
    Configure root logging for a service and return its named logger.

    Args:
        service_name: Name of the service (used as the logger name)
        level: Log level override (defaults to LOG_LEVEL)
        config: Optional logging config (loaded from environment if omitted)

    Returns:
        Logger for the service
    """
    config = config or LoggingConfig.from_env()
    log_level = getattr(logging, (level or config.log_level).upper(), logging.INFO)
    formatter = logging.Formatter(config.log_format)

    root = logging.getLogger()
    root.setLevel(log_level)

    # Avoid stacking handlers when a service is reloaded
    for handler in list(root.handlers):
        if getattr(handler, "_concierge_handler", False):
            root.removeHandler(handler)

    if config.enable_console:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(formatter)
        console._concierge_handler = True
        root.addHandler(console)

    if config.log_file:
        file_handler = logging.FileHandler(config.log_file)
        file_handler.setFormatter(formatter)
        file_handler._concierge_handler = True
        root.addHandler(file_handler)

    logger = logging.getLogger(service_name)
    logger.setLevel(log_level)
    return logger
