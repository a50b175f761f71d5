# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Lazy functional stream pipelines over in-memory collections."""

from . import collectors, comparators
from .collectors import Collector
from .config import Config, ConfigurationError, get_default_config, set_default_config
from .logging_setup import StructuredFormatter, get_execution_logger, setup_logging
from .models import ExecutionStatistics, Stage, StageKind, SummaryStatistics
from .optional import NoSuchElementError, Optional
from .parallel import ParallelExecutor
from .stream import NumericStream, Stream, StreamBuilder, StreamStateError

__version__ = "0.1.0"

__all__ = [
    "Stream",
    "NumericStream",
    "StreamBuilder",
    "StreamStateError",
    "Optional",
    "NoSuchElementError",
    "Collector",
    "collectors",
    "comparators",
    "Config",
    "ConfigurationError",
    "get_default_config",
    "set_default_config",
    "ParallelExecutor",
    "Stage",
    "StageKind",
    "SummaryStatistics",
    "ExecutionStatistics",
    "StructuredFormatter",
    "setup_logging",
    "get_execution_logger",
]
