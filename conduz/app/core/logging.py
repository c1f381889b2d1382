"""
Logging configuration.

Applies the configured log level to the application loggers.
"""

import logging

from conduz.app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = None) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
    )
    logging.getLogger("conduz").setLevel((level or settings.log_level).upper())
