"""Logging helpers shared by the clients, pipelines and snapshot writers."""
from __future__ import annotations

import logging
import logging.config
import os
from typing import Any, Dict, MutableMapping, Optional, Tuple

DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%dT%H:%M:%S"

_configured = False


def build_logging_config(
    level: str = "INFO",
    job_name: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build a ``logging.config.dictConfig`` payload that writes to stdout.

    Parameters
    ----------
    level:
        Root log level name.
    job_name:
        Optional run label prefixed to every formatted record.
    """
    fmt = DEFAULT_FORMAT if not job_name else f"%(asctime)s {job_name} %(levelname)s %(name)s %(message)s"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": fmt, "datefmt": DEFAULT_DATEFMT},
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "urllib3": {"level": "WARNING"},
        },
        "root": {"level": level.upper(), "handlers": ["stdout"]},
    }


def setup_logging(
    level: Optional[str] = None,
    job_name: Optional[str] = None,
    *,
    force: bool = False,
) -> None:
    """Apply the stdout logging configuration once per process."""
    global _configured
    if _configured and not force:
        return
    level = level or os.getenv("LOG_LEVEL", "INFO")
    logging.config.dictConfig(build_logging_config(level=level, job_name=job_name))
    _configured = True


class TaggedLoggerAdapter(logging.LoggerAdapter):
    """Prefix each message with a short component tag."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        return f"[{self.extra['tag']}] {msg}", kwargs


def get_tagged_logger(name: str, tag: str) -> TaggedLoggerAdapter:
    """Return a logger adapter whose messages carry ``[tag]``."""
    return TaggedLoggerAdapter(logging.getLogger(name), {"tag": tag})
