"""Services running calculation requests singly or in batches."""

from .batch_service import BatchCoordinator, BatchResult, BatchStatus
from .calculation_service import CalculationService

__all__ = ["BatchCoordinator", "BatchResult", "BatchStatus", "CalculationService"]
