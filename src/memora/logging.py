"""Logging configuration for Memora.

Sets up the ``memora`` logger hierarchy from a CLI flag or the
MEMORA_LOG_LEVEL environment variable, optionally mirroring records to a file.
"""

import logging
import os
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# sdk loggers that are chatty at INFO (one line per http request)
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "anthropic")


def _resolve_level(level: str | None) -> int:
    """Resolve a level name: explicit value > env var > WARNING."""
    name = (level or os.environ.get("MEMORA_LOG_LEVEL") or "WARNING").upper()
    numeric = getattr(logging, name, None)
    if not isinstance(numeric, int):
        print(f"Warning: Invalid log level '{name}', using WARNING", file=sys.stderr)
        return logging.WARNING
    return numeric


def setup_logging(
    level: str | None = None,
    log_file: str | Path | None = None,
) -> logging.Logger:
    """Configure logging for Memora.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR).
               If not provided, checks MEMORA_LOG_LEVEL env var.
               Defaults to WARNING if neither is set.
        log_file: Optional path that also receives every record.

    Returns:
        The configured root logger for the memora package.
    """
    numeric_level = _resolve_level(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    logger = logging.getLogger("memora")
    logger.setLevel(numeric_level)

    # calling twice only updates levels
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    if log_file is not None:
        path = Path(log_file).expanduser()
        already = any(
            isinstance(h, logging.FileHandler) and Path(h.baseFilename) == path.resolve()
            for h in logger.handlers
        )
        if not already:
            path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(path, encoding="utf-8")
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    for handler in logger.handlers:
        handler.setLevel(numeric_level)

    if numeric_level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific module.

    Args:
        name: Module name (typically __name__).

    Returns:
        Logger instance for the module.
    """
    return logging.getLogger(name)
