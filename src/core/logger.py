"""Centralized logging configuration."""

import logging
import sys

from loguru import logger

from src.config import settings


log_format = ' | '.join(
    (
        '<lk>{time:YYYY-MM-DD HH:mm:ss.SSS}</>',
        '<lvl>{level:<8}</>',
        '<y>{extra[service]}</>',
        '<c>{name}::{function}:{line}</>',
        '{message}',
    )
)


class InterceptHandler(logging.Handler):
    """Route stdlib records (uvicorn, sqlalchemy) into loguru"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(depth=6, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(service_name: str = settings.SERVICE_NAME, level: str = settings.LOG_LEVEL) -> None:
    logger.remove()  # Drop the default sink to avoid duplicate output
    logger.configure(extra={'service': service_name})
    logger.add(sys.stdout, format=log_format, level=level.upper())
    for name in ('uvicorn', 'uvicorn.error', 'uvicorn.access'):
        logging.getLogger(name).handlers = [InterceptHandler()]
        logging.getLogger(name).propagate = False
