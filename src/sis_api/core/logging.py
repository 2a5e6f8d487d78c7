"""Loguru logging configuration.

Human-readable lines on stderr by default; ``log_json`` switches every sink
to serialized JSON records for log shipping. A rotating file sink is added
when ``log_dir`` is set.
"""

import sys
from pathlib import Path

from loguru import logger

_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} | {message}"
LOG_FILE_NAME = "sis-api.log"


def setup_logging(log_level: str = "INFO", log_dir: str | None = None, *, log_json: bool = False) -> None:
    """Replace the default Loguru sink.

    Args:
        log_level: Minimum log level to emit.
        log_dir: Optional directory for ``sis-api.log`` (rotated every
            24 hours, retained 7 days).
        log_json: Emit serialized JSON records instead of formatted lines.
    """
    level = log_level.upper()
    logger.remove()
    logger.add(sys.stderr, level=level, format=_LOG_FORMAT, serialize=log_json)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path / LOG_FILE_NAME,
            level=level,
            format=_LOG_FORMAT,
            serialize=log_json,
            rotation="24h",
            retention="7 days",
        )
