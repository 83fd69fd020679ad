"""Log records go to stderr so they never mix with findings on stdout."""

import logging
import sys
from datetime import datetime

LOGGER_NAME = "bash_strict_check"


class CheckFormatter(logging.Formatter):
    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        level = record.levelname
        if self.use_colors:
            level = f"{self.COLORS.get(level, '')}{level}{self.RESET}"

        parts = [
            f"[{timestamp}]",
            f"{level:8}",
            f"[{record.name}]",
            record.getMessage(),
        ]
        if record.exc_info:
            parts.append(self.formatException(record.exc_info))
        return " ".join(parts)


def setup_logging(level: str = "WARNING", use_colors: bool = True) -> None:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(CheckFormatter(use_colors=use_colors and sys.stderr.isatty()))
    logger.addHandler(handler)

    logger.debug("Logging configured")
