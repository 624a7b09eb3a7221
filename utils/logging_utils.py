"""
Logging setup shared by the rapport service and its scripts.

Entry points call ``setup_logging`` once:

    from utils.logging_utils import setup_logging

    setup_logging(level="INFO", job_name="rapport_api")

Modules grab a tagged adapter at import time:

    from utils.logging_utils import get_tagged_logger

    logger = get_tagged_logger(__name__, tag="data_sources/nominatim")
    logger.info("Fetching places")

Every record carries ``job_name``, ``tag`` and ``zip_code``. The orchestrator
binds ``zip_code`` for the duration of a request via ``bind_zip``; asyncio
tasks inherit it, so output from dozens of concurrent upstream calls can be
traced back to the request that spawned them.
"""

from __future__ import annotations

import logging
import logging.config
from contextvars import ContextVar
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse


# Records emitted before setup_logging() runs still get a timestamp and level.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-7s %(message)s",
    datefmt="%H:%M:%S",
)

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(job_name)s/%(tag)s] zip=%(zip_code)s %(name)s: %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Chatty third-party clients; held at WARNING unless DEBUG is requested.
NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")

_SENSITIVE_QUERY_TOKENS = ("pass", "pwd", "secret", "token", "key")

_current_zip: ContextVar[str] = ContextVar("rapport_zip", default="-")

_CONFIGURED: bool = False


def bind_zip(zip_code: str) -> None:
    """Attach ``zip_code`` to every record logged from the current task (and tasks it spawns)."""
    _current_zip.set(zip_code)


class MaxLevelFilter(logging.Filter):
    """Only let through records up to ``max_level``; keeps warnings off stdout."""

    def __init__(self, max_level: int) -> None:
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        return record.levelno <= self.max_level


class ContextFilter(logging.Filter):
    """
    Fill in the fields the default format expects.

    ``tag`` falls back to the last segment of the logger name, ``job_name``
    to the configured process name, and ``zip_code`` to the ZIP bound for
    the current request.
    """

    def __init__(self, job_name: Optional[str] = None) -> None:
        super().__init__()
        self.job_name = job_name or "-"

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "tag"):
            record.tag = record.name.rsplit(".", 1)[-1] if record.name else "-"
        if not hasattr(record, "job_name"):
            record.job_name = self.job_name
        if not hasattr(record, "zip_code"):
            record.zip_code = _current_zip.get()
        return True


def _stream_handler(stream: str, level: str, filters: List[str]) -> Dict[str, Any]:
    return {
        "class": "logging.StreamHandler",
        "formatter": "standard",
        "filters": filters,
        "level": level,
        "stream": f"ext://sys.{stream}",
    }


def build_logging_config(
    *,
    level: str | int = "INFO",
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    job_name: Optional[str] = None,
) -> Mapping[str, Any]:
    """
    Return a ``logging.config.dictConfig`` mapping for the service.

    Parameters
    ----------
    level:
        Root logger level, e.g. ``"DEBUG"`` or ``logging.INFO``.
    log_format, date_format:
        Formatter patterns. The default format needs ``job_name``, ``tag`` and
        ``zip_code`` on every record; ``ContextFilter`` supplies them.
    job_name:
        Logical process name (``rapport_api``, ``rapport_worker``...).
    """
    debug = level == logging.DEBUG or str(level).upper() == "DEBUG"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "context": {"()": ContextFilter, "job_name": job_name},
            "info_and_below": {"()": MaxLevelFilter, "max_level": logging.INFO},
        },
        "formatters": {
            "standard": {"format": log_format, "datefmt": date_format},
        },
        "handlers": {
            "stdout": _stream_handler("stdout", "DEBUG", ["context", "info_and_below"]),
            "stderr": _stream_handler("stderr", "WARNING", ["context"]),
        },
        "loggers": {name: {"level": "DEBUG" if debug else "WARNING"} for name in NOISY_LOGGERS},
        "root": {"level": level, "handlers": ["stdout", "stderr"]},
    }


def setup_logging(
    *,
    level: str | int = "INFO",
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    job_name: Optional[str] = None,
    override_existing: bool = False,
) -> None:
    """
    Apply the service logging configuration once per process.

    Later calls do nothing unless ``override_existing`` is set, so both
    ``run_server.py`` and the FastAPI lifespan may call it.
    """
    global _CONFIGURED

    if _CONFIGURED and not override_existing:
        return

    logging.config.dictConfig(
        build_logging_config(level=level, log_format=log_format, date_format=date_format, job_name=job_name)
    )
    _CONFIGURED = True


def get_tagged_logger(name: str, *, tag: Optional[str] = None) -> logging.LoggerAdapter:
    """Return a LoggerAdapter whose records always carry ``tag``.

    ``tag`` defaults to the last dotted segment of ``name``.
    """
    if tag is None:
        tag = name.rsplit(".", 1)[-1]
    return logging.LoggerAdapter(logging.getLogger(name), {"tag": tag})


def mask_url(url: str | None) -> str | None:
    """Return ``url`` with credentials and secret-looking query values replaced by ``***``.

    Examples
    --------
    - redis://:hunter2@cache:6379/0 -> redis://:***@cache:6379/0
    - https://api.x.ai/v1/chat/completions?api_key=abc -> ...?api_key=%2A%2A%2A
    - https://api.x.ai -> unchanged
    """
    if not url:
        return url
    try:
        parts = urlparse(url)
        port = parts.port
    except ValueError:
        return url

    query = urlencode(
        [
            (key, "***" if any(token in key.lower() for token in _SENSITIVE_QUERY_TOKENS) else value)
            for key, value in parse_qsl(parts.query, keep_blank_values=True)
        ]
    )

    userinfo = ""
    if parts.username:
        userinfo = "***"
    if parts.password is not None:
        userinfo += ":***"
    host = parts.hostname or ""
    if port:
        host = f"{host}:{port}"
    netloc = f"{userinfo}@{host}" if userinfo else host

    return urlunparse(parts._replace(netloc=netloc, query=query))
