"""
Logging setup for the screening engine.

Modules log through `logging.getLogger(__name__)`; entry points call
configure_global_logging() once. Log lines go to stderr so that JSON written
to stdout stays machine-readable.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(filename)s:%(lineno)d | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S,%f"

# Chatty client libraries; their INFO lines add nothing per request
QUIET_LIBRARIES = ("LiteLLM", "litellm", "httpx", "httpcore", "openai")


class MillisecondsFormatter(logging.Formatter):
    """Custom formatter that includes milliseconds and aligns log levels."""

    def formatTime(self, record, datefmt=None):  # noqa: N802 - must match parent class method name
        ct = datetime.fromtimestamp(record.created)
        if datefmt and "%f" in datefmt:
            s = ct.strftime(datefmt.replace(",%f", ""))
            return s + f",{int(record.msecs):03d}"
        elif datefmt:
            return ct.strftime(datefmt)
        return ct.strftime("%Y-%m-%d %H:%M:%S") + f",{int(record.msecs):03d}"


def configure_global_logging(log_level: str = "INFO", log_file: Optional[Path] = None) -> None:
    """
    Configure root logging with the unified format.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR
        log_file: Optional file that additionally receives DEBUG and above

    Raises:
        ValueError: If log_level is not a known level name
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    formatter = MillisecondsFormatter(LOG_FORMAT, datefmt=LOG_DATEFMT)

    root_logger = logging.getLogger()
    root_logger.setLevel(min(level, logging.DEBUG) if log_file else level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for lib_name in QUIET_LIBRARIES:
        logging.getLogger(lib_name).setLevel(max(level, logging.WARNING))
