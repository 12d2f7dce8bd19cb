# storefront/core/logging.py
import json
import logging
import sys
import time
from contextlib import contextmanager
from typing import Any, Iterator

import colorlog

_QUIET_LOGGERS = ("pymongo", "neo4j", "neo4j.io", "neo4j.pool")


def configure_logging(level=logging.INFO):
    handler = colorlog.StreamHandler(sys.stdout)
    handler.setFormatter(
        colorlog.ColoredFormatter(
            "%(log_color)s%(asctime)s %(levelname)-8s [%(name)s]%(reset)s %(message)s",
            datefmt="%H:%M:%S",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            },
        )
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    logging.getLogger("uvicorn.error").setLevel(level)
    logging.getLogger("uvicorn.access").setLevel(level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def json_preview(obj: Any, limit: int = 1000) -> str:
    """Minify and truncate JSON for debug logs."""
    try:
        s = json.dumps(obj, separators=(",", ":"), ensure_ascii=False, default=str)
        return s if len(s) <= limit else s[:limit] + "…[truncated]"
    except (TypeError, ValueError):
        return "<unserializable>"


@contextmanager
def timed(logger: logging.Logger, event: str, **fields: Any) -> Iterator[dict]:
    """
    Log `<event> done ... time=..s` when the block exits.
    The yielded dict can be filled with extra fields from inside the block.
    """
    extra: dict = {}
    t0 = time.perf_counter()
    try:
        yield extra
    finally:
        parts = " ".join(f"{k}={v}" for k, v in {**fields, **extra}.items())
        logger.info("%s done %s time=%.3fs", event, parts, time.perf_counter() - t0)
