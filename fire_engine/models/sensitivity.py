"""
Sensitivity analysis of the FIRE feasibility score.

Each tracked parameter is perturbed by a fixed set of percentages, the
feasibility score is recomputed, and the change against the baseline is
classified with a per-parameter threshold table. Every scenario is returned;
filtering out minor results is left to callers.
"""

import logging
from enum import Enum
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fire_engine.models.feasibility import (
    FireFeasibilityInput,
    FireFeasibilityResult,
    assess_fire_feasibility,
)
from fire_engine.models.numeric import clamp, round_half_up

logger = logging.getLogger(__name__)

SensitivityParameter = Literal["income", "expenses", "expected_return", "timeline"]

SENSITIVITY_PARAMETERS: Tuple[SensitivityParameter, ...] = (
    "income",
    "expenses",
    "expected_return",
    "timeline",
)

# Percentage changes applied to each parameter
PERTURBATIONS: Tuple[float, ...] = (-20.0, -10.0, -5.0, 5.0, 10.0, 20.0)

# Upper bounds (exclusive) of |score delta| for minimal, moderate and
# significant impact; anything larger is dramatic
SIGNIFICANCE_THRESHOLDS: Dict[str, Tuple[float, float, float]] = {
    "income": (2.0, 5.0, 10.0),
    "expenses": (2.0, 5.0, 10.0),
    "expected_return": (3.0, 8.0, 15.0),
    "timeline": (5.0, 10.0, 20.0),
}

PARAMETER_LABELS = {
    "income": "Income",
    "expenses": "Expenses",
    "expected_return": "Expected return",
    "timeline": "Years to retirement",
}

MARKET_RETURN_BOUNDS = (-0.5, 0.5)


class ImpactSignificance(str, Enum):
    MINIMAL = "minimal"
    MODERATE = "moderate"
    SIGNIFICANT = "significant"
    DRAMATIC = "dramatic"


class SensitivityInput(BaseModel):
    """Inputs for a sensitivity analysis."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    feasibility: FireFeasibilityInput = Field(..., description="Baseline scenario")
    parameters: List[SensitivityParameter] = Field(
        default_factory=lambda: list(SENSITIVITY_PARAMETERS),
        min_length=1,
        description="Parameters to perturb",
    )
    perturbations: List[float] = Field(
        default_factory=lambda: list(PERTURBATIONS),
        min_length=1,
        description="Percentage changes applied to each parameter",
    )

    @field_validator("perturbations")
    @classmethod
    def validate_perturbations(cls, v: List[float]) -> List[float]:
        for change in v:
            if not -90.0 <= change <= 100.0:
                raise ValueError(
                    f"Perturbations must be between -90% and +100%, got {change}"
                )
        return sorted(set(v))

    @field_validator("parameters")
    @classmethod
    def validate_parameters(
        cls, v: List[SensitivityParameter]
    ) -> List[SensitivityParameter]:
        return list(dict.fromkeys(v))


class SensitivityScenario(BaseModel):
    """One perturbed scenario."""

    model_config = ConfigDict(frozen=True)

    percent_change: float
    new_value: float
    resulting_score: float
    score_delta: float
    significance: ImpactSignificance
    impact_description: str
    years_to_goal: Optional[int] = None


class SensitivityReport(BaseModel):
    """Scenarios for every perturbed parameter, ordered by percent change."""

    model_config = ConfigDict(frozen=True)

    baseline_score: float
    baseline_years_to_goal: Optional[int] = None
    parameters: Dict[str, List[SensitivityScenario]]

    def most_sensitive_parameter(self) -> Optional[str]:
        """Parameter with the largest absolute score change, if any moved."""
        best_name = None
        best_delta = 0.0
        for name, scenarios in self.parameters.items():
            for scenario in scenarios:
                if abs(scenario.score_delta) > best_delta:
                    best_name = name
                    best_delta = abs(scenario.score_delta)
        return best_name


def classify_impact(parameter: str, score_delta: float) -> ImpactSignificance:
    """Classify a score change using the parameter's threshold table."""
    minimal, moderate, significant = SIGNIFICANCE_THRESHOLDS[parameter]
    magnitude = abs(score_delta)
    if magnitude < minimal:
        return ImpactSignificance.MINIMAL
    if magnitude < moderate:
        return ImpactSignificance.MODERATE
    if magnitude < significant:
        return ImpactSignificance.SIGNIFICANT
    return ImpactSignificance.DRAMATIC


def _describe_impact(
    parameter: str,
    percent_change: float,
    score_delta: float,
    resulting_score: float,
    significance: ImpactSignificance,
) -> str:
    label = PARAMETER_LABELS[parameter]
    change = f"{label} {percent_change:+g}%"
    if score_delta == 0:
        return f"{change}: no change in feasibility score ({resulting_score:g})"
    direction = "raises" if score_delta > 0 else "lowers"
    return (
        f"{change} {direction} feasibility score by {abs(score_delta):g} points "
        f"to {resulting_score:g} ({significance.value} impact)"
    )


def perturb(
    feasibility: FireFeasibilityInput, parameter: str, percent_change: float
) -> Tuple[FireFeasibilityInput, float]:
    """
    Apply a percentage change to one parameter.

    Args:
        feasibility: Baseline inputs
        parameter: Parameter to perturb
        percent_change: Change in percent, e.g. -10 for a 10% decrease

    Returns:
        Tuple of (perturbed inputs, new parameter value)
    """
    factor = 1 + percent_change / 100
    data = feasibility.model_dump()

    if parameter == "income":
        if feasibility.annual_income is not None:
            new_value = feasibility.annual_income * factor
            data["annual_income"] = new_value
        else:
            # Without income, savings come from account contributions
            for account in data["accounts"]:
                account["monthly_contribution"] *= factor
            new_value = feasibility.current_monthly_contribution * factor
    elif parameter == "expenses":
        new_value = feasibility.annual_expenses * factor
        data["annual_expenses"] = new_value
    elif parameter == "expected_return":
        new_value = clamp(
            feasibility.assumptions.market_return * factor, *MARKET_RETURN_BOUNDS
        )
        data["assumptions"]["market_return"] = new_value
    elif parameter == "timeline":
        assumptions = feasibility.assumptions
        base_years = assumptions.retirement_age - feasibility.current_age
        latest_retirement = assumptions.life_expectancy - 1
        new_years = max(1, int(round_half_up(base_years * factor, 0)))
        new_retirement_age = min(feasibility.current_age + new_years, latest_retirement)
        data["assumptions"]["retirement_age"] = new_retirement_age
        new_value = float(new_retirement_age - feasibility.current_age)
    else:
        raise ValueError(f"Unknown sensitivity parameter: {parameter}")

    return FireFeasibilityInput.model_validate(data), new_value


def analyze_sensitivity(sensitivity_input: SensitivityInput) -> SensitivityReport:
    """
    Recompute the feasibility score for every parameter perturbation.

    Args:
        sensitivity_input: Baseline scenario plus parameters and perturbations

    Returns:
        SensitivityReport with the full set of scenarios per parameter
    """
    baseline: FireFeasibilityResult = assess_fire_feasibility(
        sensitivity_input.feasibility
    )
    baseline_score = baseline.feasibility_score

    logger.debug(
        f"Sensitivity baseline score {baseline_score} over "
        f"{len(sensitivity_input.parameters)} parameters"
    )

    report: Dict[str, List[SensitivityScenario]] = {}
    for parameter in sensitivity_input.parameters:
        scenarios = []
        for percent_change in sensitivity_input.perturbations:
            perturbed, new_value = perturb(
                sensitivity_input.feasibility, parameter, percent_change
            )
            result = assess_fire_feasibility(perturbed)
            score_delta = round_half_up(result.feasibility_score - baseline_score, 2)
            significance = classify_impact(parameter, score_delta)
            scenarios.append(
                SensitivityScenario(
                    percent_change=percent_change,
                    new_value=round_half_up(new_value, 4),
                    resulting_score=result.feasibility_score,
                    score_delta=score_delta,
                    significance=significance,
                    impact_description=_describe_impact(
                        parameter,
                        percent_change,
                        score_delta,
                        result.feasibility_score,
                        significance,
                    ),
                    years_to_goal=result.years_to_goal,
                )
            )
        report[parameter] = scenarios

    return SensitivityReport(
        baseline_score=baseline_score,
        baseline_years_to_goal=baseline.years_to_goal,
        parameters=report,
    )
