"""
Numeric primitives shared by every engine.

This module provides compound growth and annuity payment math, the single
place where monetary values are rounded (round-half-up to cents), and the
guards that keep NaN/Infinity out of engine results.

Rounding is applied only at public output boundaries; callers chaining
computations pass ``round_result=False`` to keep full floating precision.
"""

import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal

from fire_engine.exceptions import InvalidInputError, NumericOverflowError

logger = logging.getLogger(__name__)

ContributionTiming = Literal["start-of-period", "end-of-period"]

# Largest monetary magnitude considered meaningful
MAX_MONETARY_MAGNITUDE = 1e15

# Periodic rates are clamped just above -100% so (1 + r) stays positive
MIN_PERIODIC_RATE = -0.999999

DEFAULT_FIRE_MULTIPLE = 25.0

_CENT = Decimal("0.01")


def round_half_up(value: float, places: int = 2) -> float:
    """
    Round a float using round-half-up at the given number of decimal places.

    Uses the shortest repr of the float so that values such as 2.675 round
    to 2.68 as a person would expect, rather than following binary error.

    Args:
        value: Value to round
        places: Number of decimal places

    Returns:
        Rounded value
    """
    ensure_finite(value, "value")
    quantum = _CENT if places == 2 else Decimal(1).scaleb(-places)
    rounded = Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    result = float(rounded)
    # Avoid reporting negative zero
    return 0.0 if result == 0 else result


def round_currency(value: float) -> float:
    """Round a monetary amount to cents (round-half-up)."""
    return round_half_up(value, 2)


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp a value to the closed interval [lower, upper]."""
    if lower > upper:
        raise ValueError(f"Lower bound {lower} exceeds upper bound {upper}")
    return max(lower, min(upper, value))


def ensure_finite(value: float, label: str = "value") -> float:
    """
    Reject NaN, infinities and magnitudes beyond the meaningful range.

    Args:
        value: Value to check
        label: Name used in the error message

    Returns:
        The value unchanged

    Raises:
        NumericOverflowError: If the value is not finite or too large
    """
    if not math.isfinite(value):
        raise NumericOverflowError(f"{label} is not finite: {value}")
    if abs(value) > MAX_MONETARY_MAGNITUDE:
        raise NumericOverflowError(
            f"{label} magnitude {value:.6g} exceeds {MAX_MONETARY_MAGNITUDE:.0e}"
        )
    return value


def clamp_periodic_rate(rate: float) -> float:
    """
    Clamp a periodic rate so that (1 + rate) remains strictly positive.

    Args:
        rate: Periodic rate (decimal)

    Returns:
        The rate, raised to MIN_PERIODIC_RATE if it was lower

    Raises:
        InvalidInputError: If the rate is NaN or infinite
    """
    if not math.isfinite(rate):
        raise InvalidInputError(f"Periodic rate must be finite, got {rate}")
    if rate < MIN_PERIODIC_RATE:
        logger.warning(f"Clamping periodic rate {rate} to {MIN_PERIODIC_RATE}")
        return MIN_PERIODIC_RATE
    return rate


def growth_factor(periodic_rate: float, n_periods: float) -> float:
    """Compute (1 + r)^n, converting overflow into NumericOverflowError."""
    rate = clamp_periodic_rate(periodic_rate)
    try:
        factor = (1.0 + rate) ** n_periods
    except OverflowError as e:
        raise NumericOverflowError(
            f"Growth factor overflow for rate {rate} over {n_periods} periods"
        ) from e
    if not math.isfinite(factor):
        raise NumericOverflowError(
            f"Growth factor is not finite for rate {rate} over {n_periods} periods"
        )
    return factor


def _annuity_factor(periodic_rate: float, n_periods: float) -> float:
    """Future value of 1 paid at the end of each of n periods."""
    if periodic_rate == 0:
        return n_periods
    return (growth_factor(periodic_rate, n_periods) - 1.0) / periodic_rate


def compound_growth(
    principal: float,
    annual_rate: float,
    periods_per_year: int,
    years: float,
    contribution: float = 0.0,
    contribution_timing: ContributionTiming = "end-of-period",
    round_result: bool = True,
) -> float:
    """
    Calculate future value of a principal plus a periodic contribution.

    Uses FV = P(1+r)^n + C((1+r)^n - 1)/r, multiplied by (1+r) for
    start-of-period contributions, where r = annual_rate / periods_per_year
    and n = periods_per_year * years (n may be fractional).

    Args:
        principal: Starting balance
        annual_rate: Nominal annual rate (decimal)
        periods_per_year: Compounding/contribution periods per year
        years: Number of years (may be fractional)
        contribution: Contribution made every period
        contribution_timing: "start-of-period" or "end-of-period"
        round_result: Round to cents when True

    Returns:
        Future value

    Raises:
        InvalidInputError: If periods_per_year or years are invalid
        NumericOverflowError: If the result is not finite or too large
    """
    if periods_per_year <= 0:
        raise InvalidInputError(
            f"periods_per_year must be positive, got {periods_per_year}"
        )
    if years < 0:
        raise InvalidInputError(f"years cannot be negative, got {years}")
    if contribution_timing not in ("start-of-period", "end-of-period"):
        raise InvalidInputError(
            f"Unsupported contribution timing: {contribution_timing}"
        )

    periodic_rate = clamp_periodic_rate(annual_rate / periods_per_year)
    n_periods = periods_per_year * years

    principal_growth = principal * growth_factor(periodic_rate, n_periods)

    contribution_growth = 0.0
    if contribution:
        contribution_growth = contribution * _annuity_factor(periodic_rate, n_periods)
        if contribution_timing == "start-of-period":
            contribution_growth *= 1.0 + periodic_rate

    future_value = ensure_finite(principal_growth + contribution_growth, "future value")
    return round_currency(future_value) if round_result else future_value


def required_payment(
    target_future_value: float,
    present_value: float,
    periodic_rate: float,
    n_periods: float,
    contribution_timing: ContributionTiming = "end-of-period",
    round_result: bool = True,
) -> float:
    """
    Solve the annuity equation for the periodic payment reaching a target.

    Args:
        target_future_value: Value to reach after n_periods
        present_value: Current balance
        periodic_rate: Rate per period (decimal)
        n_periods: Number of remaining periods
        contribution_timing: "start-of-period" or "end-of-period"
        round_result: Round to cents when True

    Returns:
        Required payment per period; 0 when no periods remain or when the
        present value alone already grows to the target
    """
    if n_periods <= 0:
        return 0.0

    rate = clamp_periodic_rate(periodic_rate)
    shortfall = target_future_value - present_value * growth_factor(rate, n_periods)
    if shortfall <= 0:
        return 0.0

    factor = _annuity_factor(rate, n_periods)
    if contribution_timing == "start-of-period":
        factor *= 1.0 + rate

    payment = ensure_finite(shortfall / factor, "required payment")
    return round_currency(payment) if round_result else payment


def real_return(nominal_rate: float, inflation_rate: float) -> float:
    """Convert a nominal rate to a real rate: (1 + n) / (1 + i) - 1."""
    if inflation_rate <= -1:
        raise InvalidInputError(f"Inflation rate must exceed -100%, got {inflation_rate}")
    return (1.0 + nominal_rate) / (1.0 + inflation_rate) - 1.0


def calculate_fire_number(
    annual_expenses: float,
    multiple: float = DEFAULT_FIRE_MULTIPLE,
    tax_rate: float = 0.0,
    emergency_fund_months: float = 0.0,
) -> float:
    """
    Calculate the FIRE number for a level of annual expenses.

    Expenses are grossed up for taxes on withdrawals, multiplied by the
    FIRE multiple (25x corresponds to the 4% rule), and an emergency
    reserve of ``emergency_fund_months`` of expenses is added on top.

    Args:
        annual_expenses: Annual spending in today's dollars
        multiple: Multiple of annual spending required
        tax_rate: Effective tax rate on withdrawals (0-1)
        emergency_fund_months: Months of expenses held as cash reserve

    Returns:
        FIRE number (unrounded)
    """
    if annual_expenses < 0:
        raise InvalidInputError(f"Annual expenses cannot be negative: {annual_expenses}")
    if multiple <= 0:
        raise InvalidInputError(f"FIRE multiple must be positive: {multiple}")
    if not 0 <= tax_rate < 1:
        raise InvalidInputError(f"Tax rate must be in [0, 1), got {tax_rate}")

    gross_expenses = annual_expenses / (1.0 - tax_rate)
    reserve = annual_expenses / 12.0 * emergency_fund_months
    return ensure_finite(gross_expenses * multiple + reserve, "FIRE number")
