"""
FIRE number variants and stress tests.

The FIRE number is annual expenses divided by a safe withdrawal rate. Lean,
fat, coast and barista variants scale that base number, and stress
scenarios re-price it under a lower sustainable withdrawal rate and higher
expenses.
"""

import logging
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from fire_engine.models.numeric import (
    MAX_MONETARY_MAGNITUDE,
    round_currency,
    round_half_up,
)

logger = logging.getLogger(__name__)

DEFAULT_WITHDRAWAL_RATE = 0.04

# Lowest withdrawal rate a stress scenario can push the plan to
MIN_STRESS_WITHDRAWAL_RATE = 0.025

LEAN_EXPENSE_FACTOR = 0.7
FAT_EXPENSE_FACTOR = 2.0
COAST_FACTOR = 0.6
BARISTA_FACTOR = 0.5

# Stress risk levels (percentage increase over the base FIRE number)
HIGH_RISK_INCREASE = 50.0
MEDIUM_RISK_INCREASE = 25.0

RECOMMENDED_SAFETY_MARGIN = 0.1


class StressRiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class StressScenario(BaseModel):
    """An adverse scenario applied to the FIRE number."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1)
    market_return_adjustment: float = Field(
        default=0.0,
        ge=-0.5,
        le=0.5,
        description="Shift applied to the withdrawal rate",
    )
    expense_adjustment: float = Field(
        default=0.0, ge=-0.9, le=10, description="Fractional change in expenses"
    )


DEFAULT_STRESS_SCENARIOS = (
    StressScenario(
        name="Market Downturn", market_return_adjustment=-0.02, expense_adjustment=0.1
    ),
    StressScenario(name="High Inflation", expense_adjustment=0.15),
    StressScenario(
        name="Economic Recession",
        market_return_adjustment=-0.03,
        expense_adjustment=0.2,
    ),
)


class FireNumberInput(BaseModel):
    """Inputs for the FIRE number calculation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    annual_expenses: float = Field(
        ..., gt=0, le=MAX_MONETARY_MAGNITUDE, description="Annual spending"
    )
    withdrawal_rate: float = Field(
        default=DEFAULT_WITHDRAWAL_RATE,
        gt=0,
        le=0.2,
        description="Safe withdrawal rate (0.04 = the 4% rule)",
    )
    safety_margin: float = Field(
        default=0.0, ge=0, le=1, description="Extra buffer on top of the FIRE number"
    )
    cost_of_living_multiplier: float = Field(
        default=1.0, gt=0, le=10, description="Relative cost of living where you retire"
    )
    stress_scenarios: Optional[List[StressScenario]] = Field(
        default=None, description="Scenarios to test; defaults are used when omitted"
    )


class StressTestResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    scenario: str
    adjusted_fire_number: float
    percentage_increase: float = Field(
        ..., description="Increase over the base FIRE number, in percent"
    )
    risk_level: StressRiskLevel


class FireRecommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    suggestion: str
    impact: float = Field(..., description="Estimated change to the FIRE number")
    priority: str


class FireNumberResult(BaseModel):
    """FIRE number, its variants and stress test outcomes."""

    model_config = ConfigDict(frozen=True)

    fire_number: float = Field(
        ..., description="Base number adjusted for cost of living and safety margin"
    )
    base_fire_number: float = Field(..., description="Expenses / withdrawal rate")
    lean_fire_number: float = Field(..., description="70% of expenses")
    fat_fire_number: float = Field(..., description="200% of expenses")
    coast_fire_number: float
    barista_fire_number: float
    withdrawal_rate: float
    safety_margin: float
    cost_of_living_multiplier: float
    stress_test_results: List[StressTestResult]
    recommendations: List[FireRecommendation]


def stress_risk_level(percentage_increase: float) -> StressRiskLevel:
    if percentage_increase > HIGH_RISK_INCREASE:
        return StressRiskLevel.HIGH
    if percentage_increase > MEDIUM_RISK_INCREASE:
        return StressRiskLevel.MEDIUM
    return StressRiskLevel.LOW


def run_stress_test(
    scenario: StressScenario,
    annual_expenses: float,
    withdrawal_rate: float,
    base_fire_number: float,
) -> StressTestResult:
    """
    Re-price the FIRE number under one stress scenario.

    Weaker markets lower the sustainable withdrawal rate, floored at
    MIN_STRESS_WITHDRAWAL_RATE, while the expense adjustment raises spending.
    """
    adjusted_rate = max(
        MIN_STRESS_WITHDRAWAL_RATE, withdrawal_rate + scenario.market_return_adjustment
    )
    scenario_number = annual_expenses * (1 + scenario.expense_adjustment) / adjusted_rate
    increase = (scenario_number - base_fire_number) / base_fire_number * 100

    return StressTestResult(
        scenario=scenario.name,
        adjusted_fire_number=round_currency(scenario_number),
        percentage_increase=round_half_up(increase, 2),
        risk_level=stress_risk_level(increase),
    )


def _recommendations(
    fire_input: FireNumberInput, base: float, adjusted: float
) -> List[FireRecommendation]:
    recommendations = []
    if fire_input.withdrawal_rate > DEFAULT_WITHDRAWAL_RATE:
        recommendations.append(
            FireRecommendation(
                category="withdrawal_rate",
                suggestion="Reduce the withdrawal rate to 4% or lower",
                impact=round_currency(adjusted * 0.25),
                priority="high",
            )
        )
    if fire_input.safety_margin < RECOMMENDED_SAFETY_MARGIN:
        recommendations.append(
            FireRecommendation(
                category="safety_margin",
                suggestion="Add a 10-20% safety margin for unexpected expenses",
                impact=round_currency(base * 0.15),
                priority="medium",
            )
        )
    return recommendations


def calculate_fire_number_variants(fire_input: FireNumberInput) -> FireNumberResult:
    """
    Calculate the FIRE number, its lifestyle variants and stress tests.

    Args:
        fire_input: Expenses, withdrawal rate and adjustments

    Returns:
        FireNumberResult with every variant rounded to cents
    """
    expenses = fire_input.annual_expenses
    rate = fire_input.withdrawal_rate

    base = expenses / rate
    adjusted = base * fire_input.cost_of_living_multiplier * (1 + fire_input.safety_margin)

    scenarios = (
        fire_input.stress_scenarios
        if fire_input.stress_scenarios is not None
        else list(DEFAULT_STRESS_SCENARIOS)
    )
    stress_results = [
        run_stress_test(scenario, expenses, rate, base) for scenario in scenarios
    ]

    logger.debug(
        f"FIRE number {adjusted:.2f} at {rate:.2%} withdrawal, "
        f"{len(stress_results)} stress scenarios"
    )

    return FireNumberResult(
        fire_number=round_currency(adjusted),
        base_fire_number=round_currency(base),
        lean_fire_number=round_currency(expenses * LEAN_EXPENSE_FACTOR / rate),
        fat_fire_number=round_currency(expenses * FAT_EXPENSE_FACTOR / rate),
        coast_fire_number=round_currency(base * COAST_FACTOR),
        barista_fire_number=round_currency(base * BARISTA_FACTOR),
        withdrawal_rate=rate,
        safety_margin=fire_input.safety_margin,
        cost_of_living_multiplier=fire_input.cost_of_living_multiplier,
        stress_test_results=stress_results,
        recommendations=_recommendations(fire_input, base, adjusted),
    )
