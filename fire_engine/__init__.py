"""FIRE scenario projection and simulation engine."""

from .config import EngineSettings, get_settings
from .exceptions import (
    BatchFailedError,
    CalculationTimeoutError,
    EngineError,
    ErrorKind,
    InvalidInputError,
    NumericOverflowError,
    PartialBatchFailure,
)
from .logging_config import setup_logging

__version__ = "0.1.0"

__all__ = [
    "EngineSettings",
    "get_settings",
    "setup_logging",
    "EngineError",
    "ErrorKind",
    "InvalidInputError",
    "NumericOverflowError",
    "CalculationTimeoutError",
    "PartialBatchFailure",
    "BatchFailedError",
]
