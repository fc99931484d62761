"""
Typed calculation requests accepted by the calculation and batch services.

Each request wraps the validated input of one engine and is tagged by
``calculation_type`` so mixed lists can be parsed from plain dictionaries.
"""

from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from fire_engine.models.debt_payoff import DebtPayoffInput
from fire_engine.models.feasibility import FireFeasibilityInput
from fire_engine.models.fire_number import FireNumberInput
from fire_engine.models.monte_carlo import MonteCarloInput
from fire_engine.models.projection import ProjectionInput
from fire_engine.models.risk_adjusted import RiskAdjustedInput
from fire_engine.models.sensitivity import SensitivityInput


class CalculationType(str, Enum):
    PROJECTION = "projection"
    MONTE_CARLO = "monte_carlo"
    FIRE_FEASIBILITY = "fire_feasibility"
    DEBT_PAYOFF = "debt_payoff"
    SENSITIVITY = "sensitivity"
    RISK_ADJUSTED = "risk_adjusted"
    FIRE_NUMBER = "fire_number"


class BaseCalculationRequest(BaseModel):
    """Fields shared by every calculation request."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    request_id: Optional[str] = Field(
        default=None, description="Caller-supplied identifier echoed in results"
    )
    timeout_seconds: Optional[float] = Field(
        default=None, gt=0, description="Per-request timeout; overrides batch default"
    )


class ProjectionRequest(BaseCalculationRequest):
    calculation_type: Literal["projection"] = "projection"
    params: ProjectionInput


class MonteCarloRequest(BaseCalculationRequest):
    calculation_type: Literal["monte_carlo"] = "monte_carlo"
    params: MonteCarloInput


class FireFeasibilityRequest(BaseCalculationRequest):
    calculation_type: Literal["fire_feasibility"] = "fire_feasibility"
    params: FireFeasibilityInput
    include_alternatives: bool = Field(
        default=False, description="Attach alternative retirement timelines"
    )


class DebtPayoffRequest(BaseCalculationRequest):
    calculation_type: Literal["debt_payoff"] = "debt_payoff"
    params: DebtPayoffInput
    compare_strategies: bool = Field(
        default=False, description="Return a snowball/avalanche comparison"
    )


class SensitivityRequest(BaseCalculationRequest):
    calculation_type: Literal["sensitivity"] = "sensitivity"
    params: SensitivityInput


class RiskAdjustedRequest(BaseCalculationRequest):
    calculation_type: Literal["risk_adjusted"] = "risk_adjusted"
    params: RiskAdjustedInput


class FireNumberRequest(BaseCalculationRequest):
    calculation_type: Literal["fire_number"] = "fire_number"
    params: FireNumberInput


CalculationRequest = Annotated[
    Union[
        ProjectionRequest,
        MonteCarloRequest,
        FireFeasibilityRequest,
        DebtPayoffRequest,
        SensitivityRequest,
        RiskAdjustedRequest,
        FireNumberRequest,
    ],
    Field(discriminator="calculation_type"),
]

_request_adapter: TypeAdapter = TypeAdapter(CalculationRequest)


def parse_calculation_request(data: Dict[str, Any]) -> BaseCalculationRequest:
    """
    Validate a plain dictionary into the matching request type.

    Raises:
        pydantic.ValidationError: If the payload does not match any request
    """
    return _request_adapter.validate_python(data)
