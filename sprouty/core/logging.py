"""Process-wide logging setup for the API and the Celery worker."""

import logging

from sprouty.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def configure_logging(level: str = None) -> None:
    """Apply LOG_LEVEL to the root logger once per process."""
    global _configured
    if _configured:
        return

    level_name = (level or get_settings().LOG_LEVEL or "INFO").upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)

    # pymongo's heartbeat chatter drowns out the reminder logs at DEBUG
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    _configured = True
