"""Logging setup for the CLI and the API process."""

import logging
import sys
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None,
    logger_names: tuple[str, ...] = ("src", "overuse"),
) -> logging.Logger:
    """Configure the service loggers. Returns the `overuse` logger.

    - level: DEBUG | INFO | WARNING | ERROR
    - log_file: if set, add a FileHandler
    - format_string: optional; default includes timestamp, level, name, message
    """
    formatter = logging.Formatter(format_string or DEFAULT_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")
    numeric_level = getattr(logging, (level or "INFO").upper(), logging.INFO)

    for name in logger_names:
        log = logging.getLogger(name)
        log.setLevel(numeric_level)
        # Avoid duplicate handlers when setup runs more than once in a process
        if not log.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(formatter)
            log.addHandler(handler)
        if log_file and not any(getattr(h, "baseFilename", "") == str(Path(log_file).resolve()) for h in log.handlers):
            try:
                Path(log_file).parent.mkdir(parents=True, exist_ok=True)
                fh = logging.FileHandler(log_file, encoding="utf-8")
                fh.setFormatter(formatter)
                log.addHandler(fh)
            except OSError:
                log.warning("Could not open log file %s", log_file)
    return logging.getLogger("overuse")
