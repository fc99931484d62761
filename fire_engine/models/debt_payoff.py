"""
Debt payoff planning with snowball, avalanche and custom orderings.

The simulation runs month by month with a fixed monthly budget equal to the
sum of every debt's minimum payment plus the extra payment. Interest accrues
first, minimum payments are made, and whatever remains of the budget goes to
active debts in priority order. Minimums freed by paid-off debts therefore
roll down to the next debt in line.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from fire_engine.exceptions import InvalidInputError, NumericOverflowError
from fire_engine.models.assumptions import DebtAccount
from fire_engine.models.numeric import MAX_MONETARY_MAGNITUDE, round_currency

logger = logging.getLogger(__name__)

# 100 years of monthly payments
MAX_PAYOFF_MONTHS = 1200

# Balances at or below this are treated as paid off
PAID_OFF_EPSILON = 1e-6

# Avalanche is recommended when it saves more than this much interest per debt
AVALANCHE_SAVINGS_PER_DEBT = 250.0


class PayoffStrategy(str, Enum):
    SNOWBALL = "snowball"
    AVALANCHE = "avalanche"
    CUSTOM = "custom"


class DebtPayoffInput(BaseModel):
    """Inputs for a debt payoff plan."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    debts: List[DebtAccount] = Field(default_factory=list, description="Debts to repay")
    extra_monthly_payment: float = Field(
        default=0.0,
        ge=0,
        le=MAX_MONETARY_MAGNITUDE,
        description="Payment on top of the minimums",
    )
    strategy: PayoffStrategy = Field(default=PayoffStrategy.AVALANCHE)
    custom_order: Optional[List[str]] = Field(
        default=None, description="Debt ids in payoff priority order"
    )

    @field_validator("debts")
    @classmethod
    def validate_unique_ids(cls, v: List[DebtAccount]) -> List[DebtAccount]:
        ids = [debt.id for debt in v]
        if len(ids) != len(set(ids)):
            raise ValueError("Debt ids must be unique")
        return v

    @model_validator(mode="after")
    def validate_custom_order(self) -> "DebtPayoffInput":
        if self.strategy == PayoffStrategy.CUSTOM and self.custom_order is None:
            raise ValueError("custom_order is required for the custom strategy")
        return self

    @property
    def monthly_budget(self) -> float:
        return sum(debt.minimum_payment for debt in self.debts) + self.extra_monthly_payment


class PayoffEntry(BaseModel):
    """When a single debt is paid off."""

    model_config = ConfigDict(frozen=True)

    debt_id: str
    debt_name: str
    order: int = Field(..., ge=1, description="Position in the payoff sequence")
    payoff_month: int = Field(..., ge=1, description="Month the debt reaches zero")
    interest_paid: float = Field(..., ge=0)


class PaymentMonth(BaseModel):
    """Aggregate payments for one simulated month."""

    model_config = ConfigDict(frozen=True)

    month: int = Field(..., ge=1)
    total_payment: float = Field(..., ge=0)
    interest: float = Field(..., ge=0)
    remaining_balance: float = Field(..., ge=0)


class DebtPayoffPlan(BaseModel):
    """A complete payoff plan for one strategy."""

    model_config = ConfigDict(frozen=True)

    strategy: PayoffStrategy
    payoff_order: List[PayoffEntry]
    total_interest_paid: float = Field(..., ge=0)
    total_months: int = Field(..., ge=0)
    total_paid: float = Field(..., ge=0)
    schedule: List[PaymentMonth]


class DebtStrategyComparison(BaseModel):
    """Snowball and avalanche plans side by side."""

    model_config = ConfigDict(frozen=True)

    snowball: DebtPayoffPlan
    avalanche: DebtPayoffPlan
    interest_savings: float = Field(
        ..., description="Interest saved by avalanche over snowball"
    )
    months_saved: int = Field(..., description="Months saved by avalanche over snowball")
    recommended_strategy: PayoffStrategy
    recommendation_reason: str


class DebtPayoffCalculator:
    """Ordering, validation and simulation of debt payoff plans."""

    @staticmethod
    def order_debts(
        debts: List[DebtAccount],
        strategy: PayoffStrategy,
        custom_order: Optional[List[str]] = None,
    ) -> List[DebtAccount]:
        """
        Order debts by payoff priority.

        Args:
            debts: Debts to order
            strategy: Snowball (smallest balance first), avalanche (highest
                rate first) or custom
            custom_order: Debt ids for the custom strategy

        Returns:
            Debts in priority order; ties are broken by debt id

        Raises:
            InvalidInputError: If custom_order is not a permutation of the ids
        """
        if strategy == PayoffStrategy.SNOWBALL:
            return sorted(debts, key=lambda d: (d.balance, d.id))
        if strategy == PayoffStrategy.AVALANCHE:
            return sorted(debts, key=lambda d: (-d.interest_rate, d.id))

        by_id = {debt.id: debt for debt in debts}
        if custom_order is None or sorted(custom_order) != sorted(by_id):
            raise InvalidInputError(
                f"custom_order {custom_order} must list each debt id exactly once"
            )
        return [by_id[debt_id] for debt_id in custom_order]

    @staticmethod
    def validate_amortization(debts: List[DebtAccount]) -> None:
        """
        Reject debts whose minimum payment does not cover monthly interest.

        Raises:
            InvalidInputError: On negative amortization
        """
        for debt in debts:
            if debt.minimum_payment <= debt.monthly_interest:
                raise InvalidInputError(
                    f"Minimum payment {debt.minimum_payment:.2f} for debt "
                    f"'{debt.id}' does not cover monthly interest "
                    f"{debt.monthly_interest:.2f}"
                )

    @staticmethod
    def simulate(
        ordered_debts: List[DebtAccount],
        extra_monthly_payment: float,
        strategy: PayoffStrategy,
    ) -> DebtPayoffPlan:
        """Run the month-by-month payoff simulation for ordered debts."""
        budget = (
            sum(debt.minimum_payment for debt in ordered_debts) + extra_monthly_payment
        )
        balances: Dict[str, float] = {debt.id: debt.balance for debt in ordered_debts}
        interest_paid: Dict[str, float] = {debt.id: 0.0 for debt in ordered_debts}
        payoff_month: Dict[str, int] = {}
        active = list(ordered_debts)

        schedule: List[PaymentMonth] = []
        total_paid = 0.0
        month = 0

        while active:
            month += 1
            if month > MAX_PAYOFF_MONTHS:
                raise NumericOverflowError(
                    f"Debts are not paid off within {MAX_PAYOFF_MONTHS} months"
                )

            month_interest = 0.0
            for debt in active:
                interest = balances[debt.id] * debt.interest_rate / 12
                balances[debt.id] += interest
                interest_paid[debt.id] += interest
                month_interest += interest

            remaining = budget
            for debt in active:
                payment = min(debt.minimum_payment, balances[debt.id])
                balances[debt.id] -= payment
                remaining -= payment

            for debt in active:
                if remaining <= 0:
                    break
                payment = min(remaining, balances[debt.id])
                balances[debt.id] -= payment
                remaining -= payment

            still_active = []
            for debt in active:
                if balances[debt.id] <= PAID_OFF_EPSILON:
                    balances[debt.id] = 0.0
                    payoff_month[debt.id] = month
                else:
                    still_active.append(debt)
            active = still_active

            disbursed = budget - max(remaining, 0.0)
            total_paid += disbursed
            schedule.append(
                PaymentMonth(
                    month=month,
                    total_payment=round_currency(disbursed),
                    interest=round_currency(month_interest),
                    remaining_balance=round_currency(
                        sum(balances[debt.id] for debt in active)
                    ),
                )
            )

        priority = {debt.id: index for index, debt in enumerate(ordered_debts)}
        paid_off = sorted(
            ordered_debts, key=lambda d: (payoff_month[d.id], priority[d.id])
        )
        payoff_order = [
            PayoffEntry(
                debt_id=debt.id,
                debt_name=debt.display_name,
                order=position,
                payoff_month=payoff_month[debt.id],
                interest_paid=round_currency(interest_paid[debt.id]),
            )
            for position, debt in enumerate(paid_off, start=1)
        ]

        return DebtPayoffPlan(
            strategy=strategy,
            payoff_order=payoff_order,
            total_interest_paid=round_currency(sum(interest_paid.values())),
            total_months=month,
            total_paid=round_currency(total_paid),
            schedule=schedule,
        )


def calculate_payoff_plan(payoff_input: DebtPayoffInput) -> DebtPayoffPlan:
    """
    Build a payoff plan for the input's strategy.

    Args:
        payoff_input: Debts, extra payment and strategy

    Returns:
        DebtPayoffPlan; an empty plan with 0 months when there are no debts

    Raises:
        InvalidInputError: On negative amortization or a bad custom order
        NumericOverflowError: If payoff exceeds MAX_PAYOFF_MONTHS
    """
    calculator = DebtPayoffCalculator()
    calculator.validate_amortization(payoff_input.debts)
    ordered = calculator.order_debts(
        payoff_input.debts, payoff_input.strategy, payoff_input.custom_order
    )

    plan = calculator.simulate(
        ordered, payoff_input.extra_monthly_payment, payoff_input.strategy
    )
    logger.debug(
        f"{payoff_input.strategy.value} plan: {plan.total_months} months, "
        f"interest {plan.total_interest_paid:.2f}"
    )
    return plan


def compare_payoff_strategies(payoff_input: DebtPayoffInput) -> DebtStrategyComparison:
    """
    Run snowball and avalanche on the same debts and compare them.

    Avalanche is recommended only when its interest savings exceed
    AVALANCHE_SAVINGS_PER_DEBT per debt; otherwise the quicker early wins of
    snowball are preferred. Both plans are always returned.
    """
    snowball = calculate_payoff_plan(
        payoff_input.model_copy(update={"strategy": PayoffStrategy.SNOWBALL})
    )
    avalanche = calculate_payoff_plan(
        payoff_input.model_copy(update={"strategy": PayoffStrategy.AVALANCHE})
    )

    interest_savings = round_currency(
        snowball.total_interest_paid - avalanche.total_interest_paid
    )
    months_saved = snowball.total_months - avalanche.total_months
    threshold = AVALANCHE_SAVINGS_PER_DEBT * len(payoff_input.debts)

    if interest_savings > threshold:
        recommended = PayoffStrategy.AVALANCHE
        reason = (
            f"Avalanche saves {interest_savings:.2f} in interest, more than "
            f"{threshold:.2f} for {len(payoff_input.debts)} debts"
        )
    else:
        recommended = PayoffStrategy.SNOWBALL
        reason = (
            f"Avalanche saves only {interest_savings:.2f} in interest; "
            f"snowball pays off individual debts sooner"
        )

    return DebtStrategyComparison(
        snowball=snowball,
        avalanche=avalanche,
        interest_savings=interest_savings,
        months_saved=months_saved,
        recommended_strategy=recommended,
        recommendation_reason=reason,
    )
