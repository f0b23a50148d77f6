# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Structured logging setup for the LMAY validator.

Console output goes to stderr so that reports written to stdout stay
machine-readable. An optional log file receives one JSON object per record.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

CONSOLE_FORMAT = "%(levelname)s: %(message)s"
VERBOSE_CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Fields passed with logger.info(..., extra={"extra_fields": {...}})
        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data)


def setup_logging(
    log_file: Optional[Path] = None,
    log_level: int = logging.WARNING,
    console_output: bool = True,
    verbose: bool = False,
) -> None:
    """Set up logging for a validator run.

    Args:
        log_file: JSON-lines log file. No file logging when None.
        log_level: Logging level (default: WARNING)
        console_output: Whether to log to stderr (default: True)
        verbose: Use the detailed console format with timestamps and logger names
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(
            logging.Formatter(
                VERBOSE_CONSOLE_FORMAT if verbose else CONSOLE_FORMAT,
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(console_handler)

    if log_file is not None:
        logging.getLogger(__name__).debug(f"Logging initialized. Log file: {log_file}")
