"""
Calculation service dispatching typed requests to the matching engine.
"""

import logging
import time
from typing import Optional

from pydantic import BaseModel

from fire_engine.config import EngineSettings
from fire_engine.models.debt_payoff import (
    calculate_payoff_plan,
    compare_payoff_strategies,
)
from fire_engine.models.feasibility import (
    assess_fire_feasibility,
    suggest_alternative_timelines,
)
from fire_engine.models.fire_number import calculate_fire_number_variants
from fire_engine.models.monte_carlo import run_monte_carlo
from fire_engine.models.projection import project_net_worth
from fire_engine.models.requests import (
    BaseCalculationRequest,
    DebtPayoffRequest,
    FireFeasibilityRequest,
    FireNumberRequest,
    MonteCarloRequest,
    ProjectionRequest,
    RiskAdjustedRequest,
    SensitivityRequest,
)
from fire_engine.models.risk_adjusted import blend_risk_adjusted_feasibility
from fire_engine.models.sensitivity import analyze_sensitivity

logger = logging.getLogger(__name__)


class CalculationService:
    """Service for running a single calculation request."""

    def __init__(self, settings: Optional[EngineSettings] = None) -> None:
        """Initialize the calculation service.

        Args:
            settings: Engine settings; defaults are used when omitted
        """
        self.settings = settings or EngineSettings()
        self.logger = logging.getLogger(__name__)

    def execute(self, request: BaseCalculationRequest) -> BaseModel:
        """Run a calculation request on its engine.

        Args:
            request: A typed calculation request

        Returns:
            The engine's result model

        Raises:
            EngineError: If the engine rejects the input or overflows
            ValueError: If the request type is not supported
        """
        label = request.request_id or request.calculation_type
        self.logger.debug(f"Starting {request.calculation_type} calculation {label}")
        started = time.perf_counter()

        if isinstance(request, ProjectionRequest):
            result = project_net_worth(request.params)
        elif isinstance(request, MonteCarloRequest):
            result = run_monte_carlo(
                request.params, workers=self.settings.monte_carlo_workers
            )
        elif isinstance(request, FireFeasibilityRequest):
            result = assess_fire_feasibility(request.params)
            if request.include_alternatives:
                alternatives = suggest_alternative_timelines(request.params, result)
                result = result.model_copy(
                    update={"alternative_timelines": alternatives}
                )
        elif isinstance(request, DebtPayoffRequest):
            if request.compare_strategies:
                result = compare_payoff_strategies(request.params)
            else:
                result = calculate_payoff_plan(request.params)
        elif isinstance(request, SensitivityRequest):
            result = analyze_sensitivity(request.params)
        elif isinstance(request, RiskAdjustedRequest):
            result = blend_risk_adjusted_feasibility(request.params)
        elif isinstance(request, FireNumberRequest):
            result = calculate_fire_number_variants(request.params)
        else:
            raise ValueError(f"Unsupported calculation type: {request.calculation_type}")

        elapsed = time.perf_counter() - started
        self.logger.debug(f"Completed calculation {label} in {elapsed:.3f}s")
        return result
