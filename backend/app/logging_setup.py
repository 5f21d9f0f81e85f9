from __future__ import annotations
import logging, sys
import structlog
import structlog.stdlib
from app.config import settings

# Chatty at INFO: per-request HTTP lines from the MinIO client and sqlite driver
_QUIET = ("urllib3", "aiosqlite", "asyncio")

def _add_service(_, __, event_dict):
    event_dict.setdefault("service", settings.app_name)
    return event_dict

def configure_logging(level: str | int | None = None):
    if level is None:
        level = settings.log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            _add_service,
            structlog.processors.EventRenamer("message"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(structlog.processors.JSONRenderer()))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
    for name in _QUIET:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
