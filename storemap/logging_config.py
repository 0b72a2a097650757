"""Logging setup for storemap runs.

Progress goes to the console; with a log directory, every record (debug
included) is also appended as one JSON object per line to
``<log_dir>/storemap_YYYYMMDD.jsonl``. Harvest events carry an
``event_type`` plus their data as extra JSON keys.
"""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

__all__ = [
    "setup_logging",
    "get_logger",
    "log_harvest_event",
    "LOG_DIR",
]

LOG_DIR = Path("logs")

_LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}


class JSONLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        event_type = getattr(record, "event_type", None)
        if event_type:
            entry["event_type"] = event_type
            entry.update(getattr(record, "event_data", {}))
        return json.dumps(entry, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """Plain console lines, with the level colored on a terminal."""

    def __init__(self, use_color: bool) -> None:
        super().__init__("%(asctime)s [%(levelname)s] %(message)s", datefmt="%H:%M:%S")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        color = _LEVEL_COLORS.get(record.levelno) if self.use_color else None
        if color:
            line = line.replace(f"[{record.levelname}]", f"[{color}{record.levelname}\033[0m]", 1)
        return line


def setup_logging(verbose: bool = False, log_dir: Optional[Path] = LOG_DIR) -> logging.Logger:
    """Configure the 'storemap' logger for a run.

    Args:
        verbose: Show debug messages on the console
        log_dir: Directory for the JSONL log, or None to skip it

    Returns:
        The configured 'storemap' logger
    """
    logger = logging.getLogger("storemap")
    logger.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console.setFormatter(ConsoleFormatter(use_color=sys.stdout.isatty()))
    logger.addHandler(console)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"storemap_{datetime.now():%Y%m%d}.jsonl"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONLineFormatter())
        logger.addHandler(file_handler)

    logger.setLevel(logging.DEBUG if verbose or log_dir is not None else logging.INFO)
    return logger


def get_logger(name: str = "storemap") -> logging.Logger:
    """Get a logger in the 'storemap' hierarchy."""
    if name == "storemap" or name.startswith("storemap."):
        return logging.getLogger(name)
    return logging.getLogger(f"storemap.{name}")


def log_harvest_event(
    event_type: str,
    data: Dict[str, Any],
    level: int = logging.INFO,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Log a structured harvest event (e.g. 'harvest_start', 'page_fetched').

    An optional 'message' key in data becomes the log message.
    """
    logger = logger or get_logger()
    event_data = {k: v for k, v in data.items() if k != "message"}
    logger.log(
        level,
        data.get("message", event_type),
        extra={"event_type": event_type, "event_data": event_data},
    )
