"""Shared logging configuration helpers."""
from __future__ import annotations

import logging
import logging.config
from typing import Any, Dict, MutableMapping, Tuple

DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"


def build_logging_config(level: str = "INFO", job_name: str = "snorkel_insight") -> Dict[str, Any]:
    """Return a dictConfig mapping that logs to stdout at ``level``."""
    level = (level or "INFO").upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": f"{DEFAULT_FORMAT} job={job_name}",
                "datefmt": DEFAULT_DATEFMT,
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "stream": "ext://sys.stdout",
                "level": level,
            },
        },
        "root": {"level": level, "handlers": ["stdout"]},
        "loggers": {
            "httpx": {"level": "WARNING"},
            "httpcore": {"level": "WARNING"},
            "sqlalchemy.engine": {"level": "WARNING"},
        },
    }


def setup_logging(level: str = "INFO", job_name: str = "snorkel_insight") -> None:
    """Configure the root logger once per process."""
    root = logging.getLogger()
    if getattr(root, "_snorkel_insight_configured", False):
        root.setLevel(level.upper())
        return
    logging.config.dictConfig(build_logging_config(level=level, job_name=job_name))
    root._snorkel_insight_configured = True  # type: ignore[attr-defined]


class TaggedLoggerAdapter(logging.LoggerAdapter):
    """Prefix every message with ``[tag]`` so interleaved async output stays readable."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        return f"[{self.extra['tag']}] {msg}", kwargs


def get_tagged_logger(name: str, tag: str) -> TaggedLoggerAdapter:
    """Return a module logger that tags its messages."""
    return TaggedLoggerAdapter(logging.getLogger(name), {"tag": tag})
