"""
Deterministic net-worth projection.

This module projects account balances year by year under fixed scenario
assumptions, tracks the FIRE number, and inverts the growth formula to find
the monthly contribution required to reach the FIRE number by retirement.

Conventions:
- Growth compounds monthly and contributions are made at the end of each month.
- Year 0 is the starting state; snapshots follow for years 1..N.
- In real mode, all values are in today's dollars and rates are Fisher
  adjusted for inflation; in nominal mode the FIRE target is inflated each year.
  A balance earning less than inflation therefore shrinks in real mode: 1000
  at a 0% market return and 3% inflation is 864.32 after five years, while
  nominal mode keeps it at 1000.
- When neither expenses nor an explicit target are given there is nothing to
  reach. Such a run projects the full horizon and reports no FIRE number.
"""

import logging
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from fire_engine.exceptions import InvalidInputError
from fire_engine.models.assumptions import (
    AccountSnapshot,
    GoalSpec,
    ScenarioAssumptions,
)
from fire_engine.models.numeric import (
    DEFAULT_FIRE_MULTIPLE,
    MAX_MONETARY_MAGNITUDE,
    calculate_fire_number,
    compound_growth,
    ensure_finite,
    real_return,
    required_payment,
    round_currency,
)

logger = logging.getLogger(__name__)

MONTHS_PER_YEAR = 12


class ProjectionStatus(str, Enum):
    """Terminal state of a projection."""

    GOAL_ALREADY_MET = "goal_already_met"
    GOAL_REACHED = "goal_reached"
    GOAL_NOT_REACHED = "goal_not_reached"
    NO_GOAL = "no_goal"


class ProjectionInput(BaseModel):
    """Inputs for a deterministic projection."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    accounts: List[AccountSnapshot] = Field(
        default_factory=list, description="Starting account balances"
    )
    assumptions: ScenarioAssumptions = Field(..., description="Scenario assumptions")
    current_age: int = Field(..., ge=0, le=120, description="Age today")
    annual_expenses: float = Field(
        default=0.0,
        ge=0,
        le=MAX_MONETARY_MAGNITUDE,
        description="Annual spending in today's dollars",
    )
    annual_healthcare_expenses: float = Field(
        default=0.0,
        ge=0,
        le=MAX_MONETARY_MAGNITUDE,
        description="Annual healthcare spending, inflated at healthcare inflation",
    )
    horizon_years: Optional[int] = Field(
        default=None,
        ge=0,
        le=120,
        description="Years to project; defaults to life_expectancy - current_age",
    )
    fire_number: Optional[float] = Field(
        default=None,
        gt=0,
        le=MAX_MONETARY_MAGNITUDE,
        description="FIRE number override in today's dollars",
    )
    fire_multiple: float = Field(
        default=DEFAULT_FIRE_MULTIPLE,
        gt=0,
        le=100,
        description="Multiple of annual expenses defining the FIRE number",
    )
    use_real_returns: bool = Field(
        default=True, description="Project in inflation-adjusted (real) terms"
    )
    income_growth_rate: Optional[float] = Field(
        default=None,
        ge=-0.5,
        le=0.5,
        description="Annual escalation of monthly contributions",
    )
    stop_at_goal: bool = Field(
        default=True, description="Stop projecting once the FIRE number is reached"
    )
    goal: Optional[GoalSpec] = Field(
        default=None,
        description="Savings goal; its target replaces the FIRE number and its "
        "current amount seeds the projection when no accounts are given",
    )

    @model_validator(mode="after")
    def validate_age(self) -> "ProjectionInput":
        if self.current_age >= self.assumptions.life_expectancy:
            raise InvalidInputError(
                f"current_age ({self.current_age}) must be less than "
                f"life_expectancy ({self.assumptions.life_expectancy})"
            )
        if self.goal is not None and self.fire_number is not None:
            raise InvalidInputError("fire_number and goal cannot both be given")
        return self

    @property
    def target_override(self) -> Optional[float]:
        """Explicit target in today's dollars, from fire_number or the goal."""
        if self.goal is not None:
            return self.goal.target_amount
        return self.fire_number

    @property
    def has_goal(self) -> bool:
        return (
            self.target_override is not None
            or self.annual_expenses > 0
            or self.annual_healthcare_expenses > 0
        )

    @property
    def starting_accounts(self) -> List[AccountSnapshot]:
        if not self.accounts and self.goal is not None:
            return [AccountSnapshot(id="goal", current_balance=self.goal.current_amount)]
        return self.accounts

    @property
    def projection_years(self) -> int:
        if self.horizon_years is not None:
            return self.horizon_years
        return self.assumptions.life_expectancy - self.current_age

    @property
    def years_to_retirement(self) -> int:
        return self.assumptions.retirement_age - self.current_age


class YearSnapshot(BaseModel):
    """Net-worth state at the end of one projection year."""

    model_config = ConfigDict(frozen=True)

    year_index: int = Field(..., ge=0, description="Years from today")
    age: int = Field(..., ge=0, description="Age at this point")
    net_worth: float = Field(..., description="Total net worth")
    contributions: float = Field(..., description="Contributions made this year")
    growth: float = Field(..., description="Investment growth this year")
    inflation_adjusted_expenses: float = Field(
        ..., description="Annual expenses for this year"
    )


class ProjectionResult(BaseModel):
    """Result of a deterministic projection."""

    model_config = ConfigDict(frozen=True)

    snapshots: List[YearSnapshot] = Field(..., description="Ordered yearly snapshots")
    years_to_goal: Optional[int] = Field(
        default=None, description="First year net worth reaches the FIRE number"
    )
    required_monthly_contribution: float = Field(
        ..., ge=0, description="Monthly contribution needed by retirement"
    )
    fire_number: Optional[float] = Field(
        ..., description="FIRE number in today's dollars; None when there is no goal"
    )
    status: ProjectionStatus = Field(..., description="Terminal state")
    use_real_returns: bool = Field(..., description="Whether values are real")

    @property
    def final_net_worth(self) -> float:
        return self.snapshots[-1].net_worth

    @property
    def goal_reached(self) -> bool:
        return self.years_to_goal is not None


def _account_rate(account: AccountSnapshot, projection_input: ProjectionInput) -> float:
    """Annual growth rate for an account in the projection's terms."""
    assumptions = projection_input.assumptions
    nominal = (
        account.interest_rate
        if account.interest_rate is not None
        else assumptions.market_return
    )
    if projection_input.use_real_returns:
        return real_return(nominal, assumptions.inflation_rate)
    return nominal


def _expenses_for_year(projection_input: ProjectionInput, year: int) -> float:
    """Annual expenses in the projection's terms for a given year."""
    assumptions = projection_input.assumptions
    inflation = assumptions.inflation_rate
    healthcare_inflation = (
        assumptions.healthcare_inflation
        if assumptions.healthcare_inflation is not None
        else inflation
    )

    expenses = projection_input.annual_expenses * (1 + inflation) ** year
    expenses += projection_input.annual_healthcare_expenses * (
        1 + healthcare_inflation
    ) ** year

    if projection_input.use_real_returns:
        expenses /= (1 + inflation) ** year
    return expenses


def _fire_target_for_year(projection_input: ProjectionInput, year: int) -> float:
    """FIRE number in the projection's terms for a given year."""
    assumptions = projection_input.assumptions
    override = projection_input.target_override
    if override is not None:
        if projection_input.use_real_returns:
            return override
        return override * (1 + assumptions.inflation_rate) ** year

    return calculate_fire_number(
        _expenses_for_year(projection_input, year),
        multiple=projection_input.fire_multiple,
        tax_rate=assumptions.tax_rate or 0.0,
        emergency_fund_months=assumptions.emergency_fund_months or 0.0,
    )


def _weighted_rate(balances: List[float], rates: List[float], fallback: float) -> float:
    """Balance-weighted rate over accounts with positive balances."""
    positive = [(b, r) for b, r in zip(balances, rates) if b > 0]
    total = sum(b for b, _ in positive)
    if total <= 0:
        return fallback
    return sum(b * r for b, r in positive) / total


def calculate_required_monthly_contribution(
    projection_input: ProjectionInput,
    starting_net_worth: float,
    annual_rate: float,
) -> float:
    """
    Invert the growth formula for the contribution reaching the FIRE number.

    Args:
        projection_input: Projection inputs
        starting_net_worth: Net worth today
        annual_rate: Annual growth rate in the projection's terms

    Returns:
        Unrounded monthly contribution; 0 when the remaining horizon is zero
        or negative, or when the target is already met
    """
    years = projection_input.years_to_retirement
    if years <= 0:
        return 0.0

    target = _fire_target_for_year(projection_input, years)
    return required_payment(
        target_future_value=target,
        present_value=starting_net_worth,
        periodic_rate=annual_rate / MONTHS_PER_YEAR,
        n_periods=years * MONTHS_PER_YEAR,
        round_result=False,
    )


def project_net_worth(projection_input: ProjectionInput) -> ProjectionResult:
    """
    Project net worth year by year until the FIRE number or the horizon.

    Args:
        projection_input: Validated projection inputs

    Returns:
        ProjectionResult with yearly snapshots and goal summary

    Raises:
        NumericOverflowError: If balances leave the meaningful range
    """
    assumptions = projection_input.assumptions
    accounts = projection_input.starting_accounts
    years = projection_input.projection_years
    growth_rate = projection_input.income_growth_rate or 0.0

    rates = [_account_rate(account, projection_input) for account in accounts]
    balances = [account.current_balance for account in accounts]

    starting_net_worth = sum(balances)
    has_goal = projection_input.has_goal
    fire_number = _fire_target_for_year(projection_input, 0) if has_goal else None

    logger.debug(
        f"Projecting {len(accounts)} accounts over {years} years "
        f"(real={projection_input.use_real_returns}, fire_number={fire_number})"
    )

    snapshots = [
        YearSnapshot(
            year_index=0,
            age=projection_input.current_age,
            net_worth=round_currency(starting_net_worth),
            contributions=0.0,
            growth=0.0,
            inflation_adjusted_expenses=round_currency(
                _expenses_for_year(projection_input, 0)
            ),
        )
    ]

    years_to_goal: Optional[int] = None
    if has_goal and starting_net_worth >= fire_number:
        years_to_goal = 0

    for year in range(1, years + 1):
        if years_to_goal is not None and projection_input.stop_at_goal:
            break

        year_contributions = 0.0
        year_growth = 0.0
        escalation = (1 + growth_rate) ** (year - 1)

        for i, account in enumerate(accounts):
            monthly = account.monthly_contribution * escalation
            start_balance = balances[i]
            end_balance = compound_growth(
                principal=start_balance,
                annual_rate=rates[i],
                periods_per_year=MONTHS_PER_YEAR,
                years=1,
                contribution=monthly,
                round_result=False,
            )
            contributed = monthly * MONTHS_PER_YEAR
            year_contributions += contributed
            year_growth += end_balance - start_balance - contributed
            balances[i] = end_balance

        net_worth = ensure_finite(sum(balances), f"net worth in year {year}")
        snapshots.append(
            YearSnapshot(
                year_index=year,
                age=projection_input.current_age + year,
                net_worth=round_currency(net_worth),
                contributions=round_currency(year_contributions),
                growth=round_currency(year_growth),
                inflation_adjusted_expenses=round_currency(
                    _expenses_for_year(projection_input, year)
                ),
            )
        )

        if (
            has_goal
            and years_to_goal is None
            and net_worth >= _fire_target_for_year(projection_input, year)
        ):
            years_to_goal = year

    if not has_goal:
        status = ProjectionStatus.NO_GOAL
        required = 0.0
    elif projection_input.years_to_retirement <= 0 or years_to_goal == 0:
        status = ProjectionStatus.GOAL_ALREADY_MET
        required = 0.0
    else:
        fallback_rate = assumptions.growth_rate(projection_input.use_real_returns)
        weighted_rate = _weighted_rate(
            [a.current_balance for a in accounts], rates, fallback_rate
        )
        required = calculate_required_monthly_contribution(
            projection_input, starting_net_worth, weighted_rate
        )
        status = (
            ProjectionStatus.GOAL_REACHED
            if years_to_goal is not None
            else ProjectionStatus.GOAL_NOT_REACHED
        )

    return ProjectionResult(
        snapshots=snapshots,
        years_to_goal=years_to_goal,
        required_monthly_contribution=round_currency(required),
        fire_number=round_currency(fire_number) if fire_number is not None else None,
        status=status,
        use_real_returns=projection_input.use_real_returns,
    )
