"""JSON logging for the fulfillment API. Stdlib loggers are routed into loguru."""
from __future__ import annotations

import json
import logging
import sys
from typing import Any, Dict

from loguru import logger


class InterceptHandler(logging.Handler):
    """Forward uvicorn and sqlalchemy records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(depth=6, exception=record.exc_info).log(level, record.getMessage())


def _serialize_log(message, metadata: Dict[str, str]) -> None:
    record = message.record
    payload: Dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name.lower(),
        "message": record["message"],
        "logger": record["name"],
        **metadata,
        **record["extra"],
    }
    if record["exception"] is not None:
        exc_type, exc_value, _ = record["exception"]
        payload["exception"] = f"{exc_type.__name__ if exc_type else 'Exception'}: {exc_value}"
    sys.stdout.write(json.dumps(payload, default=str) + "\n")


def configure_logging(*, service_name: str, environment: str, version: str, level: str = "INFO") -> None:
    """One JSON line per record on stdout, tagged with service, environment and version."""
    metadata = {"service": service_name, "environment": environment, "version": version}
    logger.remove()
    logger.add(lambda message: _serialize_log(message, metadata), level=level.upper(), diagnose=False)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in ("uvicorn.access", "sqlalchemy.engine"):
        logging.getLogger(name).setLevel(logging.WARNING)
