"""Logging for the API server and CLI.

Everything goes to the root logger: the console (optional) and a rotating
``bookstudio.log``. Prompt and response traffic from ``tools.llm_client`` is
also written to its own ``llm_calls.log`` at DEBUG, so the main log stays
readable while generation runs. uvicorn's loggers are stripped of the
handlers it installs and propagate to the root, which puts request logs in
the same file and format as the application's.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAIN_LOG_FILE = "bookstudio.log"
LLM_LOG_FILE = "llm_calls.log"
LLM_LOGGER = "tools.llm_client"
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

# 10MB per file, 5 rotations
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        str(path), maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUP_COUNT, encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[str | Path] = None,
    console_enabled: bool = True,
) -> None:
    """Install the service's handlers; safe to call again (e.g. per CLI command).

    Args:
        level: Level for the root logger, the console and the main log.
        log_dir: Directory for bookstudio.log and llm_calls.log. Defaults to ./data/logs.
        console_enabled: Also echo to stderr. ``bookstudio serve`` and ``-v`` turn this on.
    """
    log_dir = Path(log_dir or "./data/logs")
    log_dir.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    if console_enabled:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)
    root_logger.addHandler(_rotating_handler(log_dir / MAIN_LOG_FILE, level, formatter))

    # LLM traffic: own file at DEBUG, still propagates to the main log at `level`
    llm_logger = logging.getLogger(LLM_LOGGER)
    llm_logger.handlers.clear()
    llm_logger.setLevel(logging.DEBUG)
    llm_logger.addHandler(_rotating_handler(log_dir / LLM_LOG_FILE, logging.DEBUG, formatter))

    for name in UVICORN_LOGGERS:
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.propagate = True

    logging.getLogger(__name__).debug("Logging initialized: level=%s, dir=%s", level, log_dir)
