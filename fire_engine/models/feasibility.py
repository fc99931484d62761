"""
FIRE feasibility scoring.

The feasibility score compares the monthly amount a person currently saves
with the amount the deterministic projection says is required to reach the
FIRE number by retirement, then applies age and return-assumption penalties.
"""

import logging
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from fire_engine.models.assumptions import AccountSnapshot, ScenarioAssumptions
from fire_engine.models.numeric import (
    DEFAULT_FIRE_MULTIPLE,
    MAX_MONETARY_MAGNITUDE,
    clamp,
    round_currency,
    round_half_up,
)
from fire_engine.models.projection import (
    ProjectionInput,
    ProjectionResult,
    project_net_worth,
)

logger = logging.getLogger(__name__)

# Score penalties
LATE_START_AGE = 50
LATE_START_PENALTY = 0.9
AGGRESSIVE_RETURN_THRESHOLD = 0.08
AGGRESSIVE_RETURN_PENALTY = 0.95

# Rating thresholds (score >= threshold)
EXCELLENT_THRESHOLD = 80.0
GOOD_THRESHOLD = 60.0
CHALLENGING_THRESHOLD = 40.0

# Alternative timelines
MIN_EXTENSION_YEARS = 2
MAX_EXTENSION_YEARS = 5
EXTENSION_MIN_IMPROVEMENT = 20.0
MAX_REDUCTION_YEARS = 3
MIN_TIMELINE_YEARS = 5


class FeasibilityRating(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    CHALLENGING = "challenging"
    UNREALISTIC = "unrealistic"


class FireFeasibilityInput(BaseModel):
    """Inputs for a FIRE feasibility assessment."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    assumptions: ScenarioAssumptions = Field(..., description="Scenario assumptions")
    current_age: int = Field(..., ge=0, le=120, description="Age today")
    accounts: List[AccountSnapshot] = Field(
        default_factory=list, description="Current accounts"
    )
    annual_income: Optional[float] = Field(
        default=None,
        ge=0,
        le=MAX_MONETARY_MAGNITUDE,
        description="Gross annual income; savings = income x savings_rate",
    )
    annual_expenses: float = Field(
        ..., gt=0, le=MAX_MONETARY_MAGNITUDE, description="Annual expenses"
    )
    annual_healthcare_expenses: float = Field(
        default=0.0, ge=0, le=MAX_MONETARY_MAGNITUDE
    )
    fire_number: Optional[float] = Field(
        default=None, gt=0, le=MAX_MONETARY_MAGNITUDE, description="FIRE number override"
    )
    fire_multiple: float = Field(default=DEFAULT_FIRE_MULTIPLE, gt=0, le=100)
    use_real_returns: bool = Field(default=True)

    @property
    def current_monthly_contribution(self) -> float:
        """Monthly savings from income, or from the accounts when no income is given."""
        if self.annual_income is not None:
            return self.annual_income * self.assumptions.savings_rate / 12
        return sum(account.monthly_contribution for account in self.accounts)

    def to_projection_input(self) -> ProjectionInput:
        """
        Build the projection used to derive the required contribution.

        When income is given, account contributions are replaced by a single
        savings stream of ``annual_income x savings_rate`` so account-specific
        rates are kept on existing balances.
        """
        accounts = list(self.accounts)
        if self.annual_income is not None:
            accounts = [
                account.model_copy(update={"monthly_contribution": 0.0})
                for account in accounts
            ]
            accounts.append(
                AccountSnapshot(
                    id="income_savings",
                    current_balance=0.0,
                    monthly_contribution=self.current_monthly_contribution,
                )
            )

        return ProjectionInput(
            accounts=accounts,
            assumptions=self.assumptions,
            current_age=self.current_age,
            annual_expenses=self.annual_expenses,
            annual_healthcare_expenses=self.annual_healthcare_expenses,
            fire_number=self.fire_number,
            fire_multiple=self.fire_multiple,
            use_real_returns=self.use_real_returns,
        )


class AlternativeTimeline(BaseModel):
    """A retirement timeline suggested in place of the current one."""

    model_config = ConfigDict(frozen=True)

    original_years: int
    suggested_years: int
    feasibility_score: float = Field(..., ge=0, le=100)
    feasibility_improvement: float = Field(
        ..., description="Score change against the current timeline"
    )
    required_monthly_contribution: float
    required_savings_rate: Optional[float] = None
    reasoning: str


class FireFeasibilityResult(BaseModel):
    """Outcome of a FIRE feasibility assessment."""

    model_config = ConfigDict(frozen=True)

    feasibility_score: float = Field(..., ge=0, le=100)
    rating: FeasibilityRating
    fire_number: float
    current_monthly_contribution: float
    required_monthly_contribution: float
    contribution_gap: float = Field(..., ge=0, description="Shortfall per month")
    required_savings_rate: Optional[float] = Field(
        default=None, description="Required savings as a fraction of income"
    )
    years_to_goal: Optional[int] = None
    projection: ProjectionResult
    alternative_timelines: List[AlternativeTimeline] = Field(
        default_factory=list, description="Suggested timelines, when requested"
    )


def calculate_feasibility_score(
    current_contribution: float,
    required_contribution: float,
    current_age: int,
    market_return: float,
) -> float:
    """
    Score how achievable the FIRE goal is on a 0-100 scale.

    Args:
        current_contribution: Monthly amount currently saved
        required_contribution: Monthly amount required
        current_age: Age today
        market_return: Assumed nominal market return

    Returns:
        Score rounded to 2 decimal places
    """
    if required_contribution <= 0:
        score = 100.0
    else:
        score = min(100.0, current_contribution / required_contribution * 100.0)

    if current_age > LATE_START_AGE:
        score *= LATE_START_PENALTY
    if market_return > AGGRESSIVE_RETURN_THRESHOLD:
        score *= AGGRESSIVE_RETURN_PENALTY

    return round_half_up(clamp(score, 0.0, 100.0), 2)


def rate_feasibility(score: float) -> FeasibilityRating:
    if score >= EXCELLENT_THRESHOLD:
        return FeasibilityRating.EXCELLENT
    if score >= GOOD_THRESHOLD:
        return FeasibilityRating.GOOD
    if score >= CHALLENGING_THRESHOLD:
        return FeasibilityRating.CHALLENGING
    return FeasibilityRating.UNREALISTIC


def assess_fire_feasibility(
    feasibility_input: FireFeasibilityInput,
) -> FireFeasibilityResult:
    """
    Assess whether the FIRE number is reachable with current savings.

    Args:
        feasibility_input: Validated feasibility inputs

    Returns:
        FireFeasibilityResult with score, rating and contribution gap
    """
    projection = project_net_worth(feasibility_input.to_projection_input())

    current = feasibility_input.current_monthly_contribution
    required = projection.required_monthly_contribution

    score = calculate_feasibility_score(
        current_contribution=current,
        required_contribution=required,
        current_age=feasibility_input.current_age,
        market_return=feasibility_input.assumptions.market_return,
    )

    required_savings_rate = None
    income = feasibility_input.annual_income
    if income:
        required_savings_rate = round_half_up(required * 12 / income, 4)

    logger.debug(
        f"Feasibility score {score} (current={current:.2f}, required={required:.2f})"
    )

    return FireFeasibilityResult(
        feasibility_score=score,
        rating=rate_feasibility(score),
        fire_number=projection.fire_number,
        current_monthly_contribution=round_currency(current),
        required_monthly_contribution=required,
        contribution_gap=round_currency(max(0.0, required - current)),
        required_savings_rate=required_savings_rate,
        years_to_goal=projection.years_to_goal,
        projection=projection,
    )


def _with_years_to_retirement(
    feasibility_input: FireFeasibilityInput, years: int
) -> FireFeasibilityInput:
    data = feasibility_input.model_dump()
    data["assumptions"]["retirement_age"] = feasibility_input.current_age + years
    return FireFeasibilityInput.model_validate(data)


def suggest_alternative_timelines(
    feasibility_input: FireFeasibilityInput,
    baseline: Optional[FireFeasibilityResult] = None,
) -> List[AlternativeTimeline]:
    """
    Suggest later or earlier retirement dates based on the current rating.

    Unrealistic and challenging plans are re-assessed with the timeline
    extended by MIN_EXTENSION_YEARS..MAX_EXTENSION_YEARS; an extension is
    suggested when it lifts the score by more than EXTENSION_MIN_IMPROVEMENT.
    Excellent plans are re-assessed up to MAX_REDUCTION_YEARS sooner, never
    below MIN_TIMELINE_YEARS, and a reduction is suggested while the score
    stays at GOOD_THRESHOLD or above. Good plans get no suggestions.

    Args:
        feasibility_input: Current scenario
        baseline: Assessment of the current scenario, computed when omitted

    Returns:
        Suggested timelines, nearest first
    """
    if baseline is None:
        baseline = assess_fire_feasibility(feasibility_input)

    assumptions = feasibility_input.assumptions
    original_years = assumptions.retirement_age - feasibility_input.current_age
    latest_years = assumptions.life_expectancy - 1 - feasibility_input.current_age

    candidates: List[int] = []
    if baseline.rating in (FeasibilityRating.UNREALISTIC, FeasibilityRating.CHALLENGING):
        candidates = [
            original_years + extension
            for extension in range(MIN_EXTENSION_YEARS, MAX_EXTENSION_YEARS + 1)
            if original_years + extension <= latest_years
        ]
    elif baseline.rating == FeasibilityRating.EXCELLENT:
        for reduction in range(1, MAX_REDUCTION_YEARS + 1):
            years = max(MIN_TIMELINE_YEARS, original_years - reduction)
            if years < original_years and years not in candidates:
                candidates.append(years)

    suggestions = []
    for years in candidates:
        result = assess_fire_feasibility(
            _with_years_to_retirement(feasibility_input, years)
        )
        improvement = round_half_up(
            result.feasibility_score - baseline.feasibility_score, 2
        )

        if years > original_years:
            if improvement <= EXTENSION_MIN_IMPROVEMENT:
                continue
            reasoning = (
                f"Retiring {years - original_years} years later raises "
                f"feasibility by {improvement:.2f} points"
            )
        else:
            if result.feasibility_score < GOOD_THRESHOLD:
                continue
            reasoning = (
                f"Current progress allows retiring {original_years - years} "
                f"years earlier"
            )

        suggestions.append(
            AlternativeTimeline(
                original_years=original_years,
                suggested_years=years,
                feasibility_score=result.feasibility_score,
                feasibility_improvement=improvement,
                required_monthly_contribution=result.required_monthly_contribution,
                required_savings_rate=result.required_savings_rate,
                reasoning=reasoning,
            )
        )

    logger.debug(
        f"{len(suggestions)} alternative timelines for a "
        f"{baseline.rating.value} plan over {original_years} years"
    )
    return suggestions
