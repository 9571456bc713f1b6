"""
Logging setup for the Alesteb API.

Modules log through ``logging.getLogger(__name__)``; this module only wires
the root handler once at startup.
"""

import logging

from alesteb.core.config import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: Settings) -> None:
    level = settings.LOG_LEVEL or ("INFO" if settings.is_production else "DEBUG")
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # SQL echo is controlled by DATABASE_ECHO, keep the engine logger quiet otherwise
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
