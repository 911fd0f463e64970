import logging
from typing import Optional

import structlog

from hifz.config import settings


def configure_logging(level: Optional[str] = None) -> None:
    """Configure structlog for the engine and the CLI.

    Initializes stdlib logging at the configured level and renders structlog
    events as JSON lines with ISO timestamps.
    """
    logging.basicConfig(level=(level or settings.log_level).upper())
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


logger = structlog.get_logger()
