# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Structured logging setup for streamlab.

Two outputs are provided. setup_logging() sends the root logger to a dated
JSON log file and optionally to stdout. get_execution_logger() routes the
per-evaluation statistics of parallel streams to execution_stats.jsonl and
keeps them out of the main log.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

DEFAULT_LOG_DIR = ".streamlab_logs"

EXECUTION_LOGGER_NAME = "streamlab.execution"

CONSOLE_FORMAT = "%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s"


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Each record carries the emitting thread, since parallel stages run
    user callbacks on pool workers.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


def _resolve_log_dir(log_dir: Optional[Path]) -> Path:
    if log_dir is None:
        log_dir = Path.cwd() / DEFAULT_LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def _json_file_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(StructuredFormatter())
    return handler


def _replace_handlers(target: logging.Logger, handlers: List[logging.Handler]) -> None:
    """Close whatever target had and install handlers in its place."""
    for handler in list(target.handlers):
        target.removeHandler(handler)
        handler.close()
    for handler in handlers:
        target.addHandler(handler)


def setup_logging(
    log_dir: Optional[Path] = None,
    log_level: int = logging.INFO,
    console_output: bool = True,
) -> None:
    """Set up structured logging for the application.

    Args:
        log_dir: Directory for log files. If None, uses .streamlab_logs/
        log_level: Logging level (default: INFO)
        console_output: Whether to also output to console (default: True)
    """
    log_dir = _resolve_log_dir(log_dir)
    log_file = log_dir / f"streamlab_{datetime.now(timezone.utc).strftime('%Y%m%d')}.log"

    handlers = [_json_file_handler(log_file, log_level)]
    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    _replace_handlers(root_logger, handlers)

    logging.info(f"Logging initialized. Log directory: {log_dir}")


def get_execution_logger(log_dir: Optional[Path] = None) -> logging.Logger:
    """Get logger for parallel execution statistics.

    Records are written as JSON lines to execution_stats.jsonl. The
    statistics themselves travel in the ``extra_fields`` record attribute.
    """
    log_dir = _resolve_log_dir(log_dir)

    execution_logger = logging.getLogger(EXECUTION_LOGGER_NAME)
    execution_logger.setLevel(logging.INFO)
    execution_logger.propagate = False
    _replace_handlers(execution_logger, [_json_file_handler(log_dir / "execution_stats.jsonl", logging.INFO)])

    return execution_logger
