"""Logging setup shared by the API process and the operator scripts."""

import logging

from studentjobs.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = None) -> None:
    settings = get_settings()
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
    )
    # pymongo is chatty at DEBUG (heartbeats, pool events)
    logging.getLogger("pymongo").setLevel(logging.WARNING)
