"""
Pydantic models for scenario inputs.

This module defines the validated input records consumed by the engines:
economic assumptions, account snapshots, debts and goals. Inputs are
validated once at construction and are immutable afterwards.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from fire_engine.exceptions import InvalidInputError
from fire_engine.models.numeric import MAX_MONETARY_MAGNITUDE


class ScenarioAssumptions(BaseModel):
    """Economic and life assumptions for a planning scenario."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    inflation_rate: float = Field(
        default=0.03, ge=0, le=0.5, description="Annual inflation rate (0-1)"
    )
    market_return: float = Field(
        default=0.07, ge=-0.5, le=0.5, description="Nominal annual market return"
    )
    savings_rate: float = Field(
        default=0.2, ge=0, le=1, description="Fraction of income saved (0-1)"
    )
    retirement_age: int = Field(
        default=65, ge=18, le=120, description="Target retirement age"
    )
    life_expectancy: int = Field(
        default=90, ge=19, le=120, description="Planning horizon age"
    )
    emergency_fund_months: Optional[float] = Field(
        default=None, ge=0, le=60, description="Months of expenses held as reserve"
    )
    healthcare_inflation: Optional[float] = Field(
        default=None, ge=0, le=0.5, description="Annual healthcare cost inflation"
    )
    tax_rate: Optional[float] = Field(
        default=None, ge=0, le=0.6, description="Effective tax rate on withdrawals"
    )

    @model_validator(mode="after")
    def validate_ages(self) -> "ScenarioAssumptions":
        """Retirement must happen before the end of the planning horizon."""
        if self.retirement_age >= self.life_expectancy:
            raise InvalidInputError(
                f"retirement_age ({self.retirement_age}) must be less than "
                f"life_expectancy ({self.life_expectancy})"
            )
        return self

    def growth_rate(self, use_real_returns: bool) -> float:
        """Market return in real or nominal terms."""
        if use_real_returns:
            return (1 + self.market_return) / (1 + self.inflation_rate) - 1
        return self.market_return


class AccountSnapshot(BaseModel):
    """Starting state of an account used by the projection engine."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., min_length=1, description="Account identifier")
    current_balance: float = Field(
        ...,
        ge=-MAX_MONETARY_MAGNITUDE,
        le=MAX_MONETARY_MAGNITUDE,
        description="Current balance (negative for debts)",
    )
    interest_rate: Optional[float] = Field(
        default=None,
        ge=-1,
        le=1,
        description="Annual rate; None uses the scenario market return",
    )
    monthly_contribution: float = Field(
        default=0.0, ge=0, le=MAX_MONETARY_MAGNITUDE, description="Monthly contribution"
    )


class DebtAccount(BaseModel):
    """A debt participating in a payoff plan."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., min_length=1, description="Debt identifier")
    name: str = Field(default="", description="Display name")
    balance: float = Field(
        ..., gt=0, le=MAX_MONETARY_MAGNITUDE, description="Outstanding balance"
    )
    interest_rate: float = Field(..., ge=0, le=1, description="Annual rate (0-1)")
    minimum_payment: float = Field(
        ..., gt=0, le=MAX_MONETARY_MAGNITUDE, description="Minimum monthly payment"
    )

    @property
    def monthly_interest(self) -> float:
        """Interest accrued on the current balance in one month."""
        return self.balance * self.interest_rate / 12

    @property
    def display_name(self) -> str:
        return self.name or self.id


class GoalSpec(BaseModel):
    """A savings goal."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    target_amount: float = Field(
        ..., gt=0, le=MAX_MONETARY_MAGNITUDE, description="Amount to reach"
    )
    current_amount: float = Field(default=0.0, ge=0, description="Amount saved so far")
    target_date: Optional[date] = Field(default=None, description="Target date")

    @field_validator("current_amount")
    @classmethod
    def validate_current_amount(cls, v, info):
        target = info.data.get("target_amount")
        if target is not None and v > target:
            raise ValueError(
                f"current_amount ({v}) cannot exceed target_amount ({target})"
            )
        return v

    @property
    def remaining_amount(self) -> float:
        return self.target_amount - self.current_amount

    @property
    def progress(self) -> float:
        """Fraction of the target already saved (0-1)."""
        return self.current_amount / self.target_amount
