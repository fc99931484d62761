"""
Risk-adjusted FIRE feasibility.

A baseline feasibility score is shifted by the probability-weighted impact of
qualitative risk factors. The blend is deliberately simple: the confidence
interval uses a fixed standard deviation of 15 points, and the best and worst
cases are fixed offsets from the baseline with stated probabilities.
"""

import logging
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from fire_engine.models.feasibility import FireFeasibilityInput, assess_fire_feasibility
from fire_engine.models.numeric import clamp, round_half_up
from fire_engine.models.success_metrics import ConfidenceInterval

logger = logging.getLogger(__name__)

# Typical volatility of a feasibility score, in points
RISK_SCORE_STD_DEV = 15.0
Z_SCORE_95 = 1.96

BEST_CASE_POINTS = 20.0
BEST_CASE_PROBABILITY = 0.15
WORST_CASE_POINTS = -40.0
WORST_CASE_PROBABILITY = 0.05

# Age assumed for age-dependent risks when the scenario gives none
DEFAULT_RISK_AGE = 30

BASE_JOB_LOSS_PROBABILITY = 0.1


class RiskFactor(BaseModel):
    """A qualitative risk with a probability and a signed score impact."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    factor_name: str = Field(..., min_length=1)
    probability: float = Field(..., ge=0, le=1, description="Chance it occurs (0-1)")
    impact_points: float = Field(
        ..., ge=-100, le=100, description="Score change if it occurs"
    )
    mitigation_note: str = Field(default="")


class RiskAdjustedInput(BaseModel):
    """Inputs for the risk-adjusted blend."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    baseline_score: Optional[float] = Field(
        default=None, ge=0, le=100, description="Deterministic feasibility score"
    )
    feasibility: Optional[FireFeasibilityInput] = Field(
        default=None, description="Scenario used to compute the baseline score"
    )
    current_age: Optional[int] = Field(
        default=None,
        ge=0,
        le=120,
        description="Age for age-dependent risks when no scenario is given",
    )
    risk_factors: Optional[List[RiskFactor]] = Field(
        default=None, description="Risk factors; defaults are used when omitted"
    )

    @model_validator(mode="after")
    def validate_baseline_source(self) -> "RiskAdjustedInput":
        if (self.baseline_score is None) == (self.feasibility is None):
            raise ValueError("Provide exactly one of baseline_score or feasibility")
        if self.feasibility is not None and self.current_age is not None:
            raise ValueError("current_age is taken from the feasibility scenario")
        return self

    @property
    def risk_age(self) -> int:
        if self.feasibility is not None:
            return self.feasibility.current_age
        if self.current_age is not None:
            return self.current_age
        return DEFAULT_RISK_AGE


class ScenarioEstimate(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    score: float = Field(..., ge=0, le=100)
    probability: float = Field(..., ge=0, le=1)
    description: str = Field(default="")


class RiskAdjustedFeasibility(BaseModel):
    """Feasibility score adjusted for qualitative risks."""

    model_config = ConfigDict(frozen=True)

    baseline_score: float
    risk_adjusted_score: float
    expected_impact: float = Field(..., description="Sum of probability x impact")
    risk_factors: List[RiskFactor]
    confidence_interval: ConfidenceInterval
    best_case: ScenarioEstimate
    worst_case: ScenarioEstimate


def job_loss_probability(age: int) -> float:
    """Chance of losing income before FIRE; higher for younger and older workers."""
    if age > 50:
        return round_half_up(BASE_JOB_LOSS_PROBABILITY * 1.5, 4)
    if age < 30:
        return round_half_up(BASE_JOB_LOSS_PROBABILITY * 1.2, 4)
    return BASE_JOB_LOSS_PROBABILITY


def health_event_probability(age: int) -> float:
    """Chance of a costly health event, rising one point a year from 5% at age 30."""
    return round_half_up(clamp(0.05 + (age - 30) * 0.01, 0.0, 0.5), 4)


def default_risk_factors(age: int = DEFAULT_RISK_AGE) -> List[RiskFactor]:
    """
    Standing risk factors for a saver of the given age.

    Market volatility and inflation are near certain and carry fixed
    probabilities; job loss and health events depend on age.

    Args:
        age: Current age of the saver

    Returns:
        List of risk factors
    """
    return [
        RiskFactor(
            factor_name="market_volatility",
            probability=0.8,
            impact_points=-15,
            mitigation_note="Diversify investments and maintain an emergency fund",
        ),
        RiskFactor(
            factor_name="job_loss",
            probability=job_loss_probability(age),
            impact_points=-25,
            mitigation_note="Build a larger emergency fund and more income streams",
        ),
        RiskFactor(
            factor_name="health_event",
            probability=health_event_probability(age),
            impact_points=-20,
            mitigation_note="Maintain comprehensive health insurance",
        ),
        RiskFactor(
            factor_name="inflation",
            probability=0.9,
            impact_points=-10,
            mitigation_note="Include inflation-protected investments",
        ),
    ]


def blend_risk_adjusted_feasibility(
    risk_input: RiskAdjustedInput,
) -> RiskAdjustedFeasibility:
    """
    Blend a feasibility score with probability-weighted risk factors.

    Args:
        risk_input: Baseline score (or scenario) and optional risk factors

    Returns:
        RiskAdjustedFeasibility with interval and best/worst cases
    """
    if risk_input.baseline_score is not None:
        baseline = risk_input.baseline_score
    else:
        baseline = assess_fire_feasibility(risk_input.feasibility).feasibility_score

    factors = (
        list(risk_input.risk_factors)
        if risk_input.risk_factors is not None
        else default_risk_factors(risk_input.risk_age)
    )

    expected_impact = sum(f.probability * f.impact_points for f in factors)
    score = clamp(baseline + expected_impact, 0.0, 100.0)
    margin = Z_SCORE_95 * RISK_SCORE_STD_DEV

    logger.debug(
        f"Risk-adjusted score {score:.2f} from baseline {baseline:.2f} "
        f"over {len(factors)} factors"
    )

    return RiskAdjustedFeasibility(
        baseline_score=round_half_up(baseline, 2),
        risk_adjusted_score=round_half_up(score, 2),
        expected_impact=round_half_up(expected_impact, 2),
        risk_factors=factors,
        confidence_interval=ConfidenceInterval(
            lower=round_half_up(clamp(score - margin, 0.0, 100.0), 2),
            upper=round_half_up(clamp(score + margin, 0.0, 100.0), 2),
            level=0.95,
        ),
        best_case=ScenarioEstimate(
            label="best_case",
            score=round_half_up(clamp(baseline + BEST_CASE_POINTS, 0.0, 100.0), 2),
            probability=BEST_CASE_PROBABILITY,
            description="Favorable markets and career advancement",
        ),
        worst_case=ScenarioEstimate(
            label="worst_case",
            score=round_half_up(clamp(baseline + WORST_CASE_POINTS, 0.0, 100.0), 2),
            probability=WORST_CASE_PROBABILITY,
            description="Several adverse events occur together",
        ),
    )
