"""
Batch execution of calculation requests with bounded concurrency.

A batch moves through QUEUED -> RUNNING -> COMPLETED | PARTIALLY_FAILED |
FAILED. Requests run on a thread pool with at most ``concurrency`` in flight.
Each item may have a timeout measured from the moment it starts; a timed-out
item is reported with error kind TIMEOUT. Fail-fast and batch timeouts stop
dispatching new work and report unstarted items as CANCELLED. In-flight work
is never interrupted; results that arrive after their item was resolved are
discarded. Results are always returned in input order.
"""

import logging
import time
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from enum import Enum
from typing import Any, Deque, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fire_engine.config import EngineSettings
from fire_engine.exceptions import (
    BatchFailedError,
    CalculationTimeoutError,
    EngineError,
    ErrorKind,
    InvalidInputError,
    PartialBatchFailure,
)
from fire_engine.models.requests import BaseCalculationRequest
from fire_engine.services.calculation_service import CalculationService

logger = logging.getLogger(__name__)

# Upper bound on a single wait while an item's timeout clock may start
POLL_INTERVAL_SECONDS = 0.05


class BatchStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIALLY_FAILED = "partially_failed"
    FAILED = "failed"


_ALLOWED_TRANSITIONS = {
    BatchStatus.QUEUED: {BatchStatus.RUNNING},
    BatchStatus.RUNNING: {
        BatchStatus.COMPLETED,
        BatchStatus.PARTIALLY_FAILED,
        BatchStatus.FAILED,
    },
    BatchStatus.COMPLETED: set(),
    BatchStatus.PARTIALLY_FAILED: set(),
    BatchStatus.FAILED: set(),
}


class BatchItemError(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str


class BatchItemResult(BaseModel):
    """Outcome of one request in a batch."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    index: int = Field(..., ge=0, description="Position in the submitted batch")
    request_id: Optional[str] = None
    calculation_type: str
    success: bool
    result: Optional[Any] = Field(default=None, description="Engine result model")
    error: Optional[BatchItemError] = None
    execution_time_seconds: Optional[float] = None


class BatchResult(BaseModel):
    """Outcome of a whole batch, items in input order."""

    model_config = ConfigDict(frozen=True)

    status: BatchStatus
    items: List[BatchItemResult]
    total_execution_time_seconds: float

    @property
    def succeeded(self) -> int:
        return sum(1 for item in self.items if item.success)

    @property
    def failed(self) -> int:
        return len(self.items) - self.succeeded

    def failed_items(self) -> List[BatchItemResult]:
        return [item for item in self.items if not item.success]

    def successful_results(self) -> List[Any]:
        """Results of the successful items only, in input order."""
        return [item.result for item in self.items if item.success]

    def raise_for_status(self) -> None:
        """
        Raise if any item failed.

        Raises:
            PartialBatchFailure: If the batch partially failed
            BatchFailedError: If the batch failed
        """
        failed = [item.index for item in self.failed_items()]
        if self.status == BatchStatus.PARTIALLY_FAILED:
            raise PartialBatchFailure(
                f"{len(failed)} of {len(self.items)} calculations failed", failed
            )
        if self.status == BatchStatus.FAILED:
            raise BatchFailedError(
                f"Batch failed: {len(failed)} of {len(self.items)} calculations "
                f"did not succeed",
                failed,
            )


class BatchRun:
    """Mutable status of one batch while it executes."""

    def __init__(self, size: int):
        self.size = size
        self.status = BatchStatus.QUEUED

    def transition(self, new_status: BatchStatus) -> None:
        if new_status not in _ALLOWED_TRANSITIONS[self.status]:
            raise RuntimeError(
                f"Invalid batch transition {self.status.value} -> {new_status.value}"
            )
        logger.debug(f"Batch status {self.status.value} -> {new_status.value}")
        self.status = new_status


def _item_error(exc: BaseException) -> BatchItemError:
    """Map an exception to the error reported for a batch item."""
    if isinstance(exc, EngineError):
        return BatchItemError(kind=exc.kind, message=exc.message)
    if isinstance(exc, ValidationError):
        return BatchItemError(kind=ErrorKind.INVALID_INPUT, message=str(exc))
    return BatchItemError(kind=ErrorKind.COMPUTATION_ERROR, message=str(exc))


class BatchCoordinator:
    """Runs batches of calculation requests with bounded parallelism."""

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        calculation_service: Optional[CalculationService] = None,
    ) -> None:
        """Initialize the batch coordinator.

        Args:
            settings: Engine settings providing batch limits
            calculation_service: Service executing single requests
        """
        self.settings = settings or EngineSettings()
        self.calculation_service = calculation_service or CalculationService(
            self.settings
        )
        self.logger = logging.getLogger(__name__)

    def _validate(self, requests: Sequence[BaseCalculationRequest], concurrency: int):
        if len(requests) > self.settings.max_batch_size:
            raise InvalidInputError(
                f"Batch size {len(requests)} exceeds maximum "
                f"{self.settings.max_batch_size}"
            )
        if not 1 <= concurrency <= self.settings.max_concurrency:
            raise InvalidInputError(
                f"Concurrency must be between 1 and {self.settings.max_concurrency}, "
                f"got {concurrency}"
            )

    def _run_item(
        self,
        index: int,
        request: BaseCalculationRequest,
        started_at: List[Optional[float]],
    ) -> BatchItemResult:
        """Execute one request, turning any exception into a failed item."""
        started_at[index] = time.monotonic()
        try:
            result = self.calculation_service.execute(request)
        except (EngineError, ValidationError) as e:
            self.logger.warning(
                f"Batch item {index} ({request.calculation_type}) failed: {e}"
            )
            return self._failed(index, request, _item_error(e), started_at[index])
        except Exception as e:
            self.logger.exception(
                f"Batch item {index} ({request.calculation_type}) raised unexpectedly"
            )
            return self._failed(index, request, _item_error(e), started_at[index])

        return BatchItemResult(
            index=index,
            request_id=request.request_id,
            calculation_type=request.calculation_type,
            success=True,
            result=result,
            execution_time_seconds=time.monotonic() - started_at[index],
        )

    @staticmethod
    def _failed(
        index: int,
        request: BaseCalculationRequest,
        error: BatchItemError,
        started: Optional[float] = None,
    ) -> BatchItemResult:
        elapsed = time.monotonic() - started if started is not None else None
        return BatchItemResult(
            index=index,
            request_id=request.request_id,
            calculation_type=request.calculation_type,
            success=False,
            error=error,
            execution_time_seconds=elapsed,
        )

    def run(
        self,
        requests: Sequence[BaseCalculationRequest],
        concurrency: Optional[int] = None,
        fail_fast: bool = False,
        timeout_seconds: Optional[float] = None,
        batch_timeout_seconds: Optional[float] = None,
    ) -> BatchResult:
        """Run a batch of calculation requests.

        A timed-out item is reported as TIMEOUT straight away, but its thread
        cannot be interrupted and keeps its pool worker until the calculation
        returns. Until then the batch runs with one worker fewer; queued items
        wait for a free worker and their timeouts start only when they run.

        Args:
            requests: Requests to run; results keep this order
            concurrency: Maximum requests in flight (defaults to settings)
            fail_fast: Stop dispatching after the first failure
            timeout_seconds: Default per-item timeout; request-level
                ``timeout_seconds`` takes precedence
            batch_timeout_seconds: Deadline for the whole batch

        Returns:
            BatchResult with one item per request

        Raises:
            InvalidInputError: If the batch size or concurrency is out of range
        """
        if concurrency is None:
            concurrency = self.settings.default_concurrency
        self._validate(requests, concurrency)

        if timeout_seconds is None:
            timeout_seconds = self.settings.calculation_timeout_seconds
        timeouts = [
            r.timeout_seconds if r.timeout_seconds is not None else timeout_seconds
            for r in requests
        ]

        batch = BatchRun(len(requests))
        batch_started = time.monotonic()
        deadline = (
            batch_started + batch_timeout_seconds
            if batch_timeout_seconds is not None
            else None
        )

        self.logger.info(
            f"Starting batch of {len(requests)} calculations "
            f"(concurrency={concurrency}, fail_fast={fail_fast})"
        )
        batch.transition(BatchStatus.RUNNING)

        outcomes: List[Optional[BatchItemResult]] = [None] * len(requests)
        started_at: List[Optional[float]] = [None] * len(requests)
        pending: Deque[int] = deque(range(len(requests)))
        in_flight: Dict[Future, int] = {}
        stopped = False

        executor = ThreadPoolExecutor(
            max_workers=concurrency, thread_name_prefix="fire-batch"
        )
        try:
            while True:
                while not stopped and pending and len(in_flight) < concurrency:
                    index = pending.popleft()
                    future = executor.submit(
                        self._run_item, index, requests[index], started_at
                    )
                    in_flight[future] = index

                if not in_flight:
                    break

                done, _ = wait(
                    list(in_flight),
                    timeout=self._wait_timeout(in_flight, started_at, timeouts, deadline),
                    return_when=FIRST_COMPLETED,
                )

                for future in done:
                    index = in_flight.pop(future)
                    outcomes[index] = future.result()
                    if fail_fast and not outcomes[index].success:
                        stopped = True

                now = time.monotonic()
                for future, index in list(in_flight.items()):
                    limit = timeouts[index]
                    started = started_at[index]
                    if limit is None or started is None or now - started < limit:
                        continue
                    del in_flight[future]
                    outcomes[index] = self._failed(
                        index,
                        requests[index],
                        _item_error(
                            CalculationTimeoutError(
                                f"Calculation exceeded timeout of {limit}s"
                            )
                        ),
                        started,
                    )
                    self.logger.warning(f"Batch item {index} timed out after {limit}s")
                    if fail_fast:
                        stopped = True

                if deadline is not None and now >= deadline and (pending or in_flight):
                    self.logger.warning(
                        f"Batch timeout of {batch_timeout_seconds}s exceeded"
                    )
                    stopped = True
                    for future, index in list(in_flight.items()):
                        del in_flight[future]
                        outcomes[index] = self._failed(
                            index,
                            requests[index],
                            _item_error(
                                CalculationTimeoutError(
                                    f"Batch timeout of {batch_timeout_seconds}s exceeded"
                                )
                            ),
                            started_at[index],
                        )
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        for index in pending:
            outcomes[index] = self._failed(
                index,
                requests[index],
                BatchItemError(
                    kind=ErrorKind.CANCELLED,
                    message="Calculation was not started because the batch stopped",
                ),
            )

        items = [outcome for outcome in outcomes if outcome is not None]
        final_status = self._final_status(items, stopped)
        batch.transition(final_status)

        elapsed = time.monotonic() - batch_started
        failed = sum(1 for item in items if not item.success)
        self.logger.info(
            f"Batch finished with status {final_status.value}: "
            f"{len(items) - failed} succeeded, {failed} failed in {elapsed:.3f}s"
        )

        return BatchResult(
            status=final_status, items=items, total_execution_time_seconds=elapsed
        )

    @staticmethod
    def _wait_timeout(
        in_flight: Dict[Future, int],
        started_at: List[Optional[float]],
        timeouts: List[Optional[float]],
        deadline: Optional[float],
    ) -> Optional[float]:
        """Time until the next item or batch deadline, or None to block."""
        now = time.monotonic()
        candidates = []
        if deadline is not None:
            candidates.append(deadline - now)
        for index in in_flight.values():
            limit = timeouts[index]
            if limit is None:
                continue
            started = started_at[index]
            if started is None:
                # Not started yet; poll so its clock is picked up once it runs
                candidates.append(POLL_INTERVAL_SECONDS)
            else:
                candidates.append(started + limit - now)
        if not candidates:
            return None
        return max(0.0, min(candidates))

    @staticmethod
    def _final_status(items: List[BatchItemResult], stopped: bool) -> BatchStatus:
        failed = sum(1 for item in items if not item.success)
        if stopped or (items and failed == len(items)):
            return BatchStatus.FAILED
        if failed:
            return BatchStatus.PARTIALLY_FAILED
        return BatchStatus.COMPLETED
