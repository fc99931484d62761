"""
Exception hierarchy for the projection engine.

Every engine failure is raised as a subclass of EngineError carrying an
ErrorKind, so callers (and the batch coordinator) can report the kind of
failure without inspecting messages.

Exception Hierarchy:
    EngineError
    ├── InvalidInputError - precondition violated (e.g. negative amortization)
    ├── NumericOverflowError - intermediate value not finite or out of range
    ├── CalculationTimeoutError - calculation exceeded its time allowance
    └── BatchError
        ├── PartialBatchFailure - some, but not all, batch items failed
        └── BatchFailedError - batch resolved as failed
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Kinds of failure reported per calculation."""

    INVALID_INPUT = "invalid_input"
    NUMERIC_OVERFLOW = "numeric_overflow"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    COMPUTATION_ERROR = "computation_error"
    BATCH_FAILURE = "batch_failure"


class EngineError(Exception):
    """Base exception for all engine errors."""

    kind: ErrorKind = ErrorKind.COMPUTATION_ERROR

    def __init__(self, message: str, kind: Optional[ErrorKind] = None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind


class InvalidInputError(EngineError):
    """Input violates a precondition that upstream validation did not catch."""

    kind = ErrorKind.INVALID_INPUT


class NumericOverflowError(EngineError):
    """Intermediate magnitude exceeds the representable or meaningful range."""

    kind = ErrorKind.NUMERIC_OVERFLOW


class CalculationTimeoutError(EngineError):
    """A single calculation exceeded its allotted time."""

    kind = ErrorKind.TIMEOUT


class BatchError(EngineError):
    """Base class for aggregate batch outcomes raised on request."""

    kind = ErrorKind.BATCH_FAILURE

    def __init__(self, message: str, failed_indices: Optional[list] = None):
        super().__init__(message)
        self.failed_indices = list(failed_indices or [])


class PartialBatchFailure(BatchError):
    """Some but not all items of a batch failed."""


class BatchFailedError(BatchError):
    """The batch resolved as failed (fail-fast, batch timeout or all items failed)."""
