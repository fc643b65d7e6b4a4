# app/core/logging.py
import logging

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
    )
    # SQL логируем только через SQL_ECHO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
