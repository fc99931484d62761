"""
Tests for the numeric primitives.
"""

import math

import pytest

from fire_engine.exceptions import InvalidInputError, NumericOverflowError
from fire_engine.models.numeric import (
    MIN_PERIODIC_RATE,
    calculate_fire_number,
    clamp,
    clamp_periodic_rate,
    compound_growth,
    ensure_finite,
    growth_factor,
    real_return,
    required_payment,
    round_currency,
    round_half_up,
)


class TestRounding:
    """Test cases for round-half-up rounding."""

    def test_half_rounds_up(self):
        """Test that exact halves round away from zero."""
        assert round_half_up(2.675) == 2.68
        assert round_half_up(0.125) == 0.13
        assert round_currency(1.005) == 1.01

    def test_negative_values(self):
        """Test rounding of negative values."""
        assert round_half_up(-2.675) == -2.68
        assert round_half_up(-1.234) == -1.23

    def test_no_negative_zero(self):
        """Test that tiny negative values do not round to -0.0."""
        result = round_currency(-0.001)
        assert result == 0.0
        assert math.copysign(1.0, result) == 1.0

    def test_other_precisions(self):
        """Test rounding to places other than cents."""
        assert round_half_up(38.5, 0) == 39.0
        assert round_half_up(0.12345, 4) == 0.1235

    def test_non_finite_rejected(self):
        """Test that NaN cannot be rounded into a number."""
        with pytest.raises(NumericOverflowError):
            round_currency(float("nan"))


class TestGuards:
    """Test cases for clamping and finiteness guards."""

    def test_clamp(self):
        """Test clamping into a closed interval."""
        assert clamp(5, 0, 10) == 5
        assert clamp(-1, 0, 10) == 0
        assert clamp(11, 0, 10) == 10

    def test_clamp_invalid_bounds(self):
        """Test that inverted bounds are rejected."""
        with pytest.raises(ValueError):
            clamp(1, 10, 0)

    def test_ensure_finite(self):
        """Test rejection of infinities and huge magnitudes."""
        assert ensure_finite(123.45) == 123.45
        with pytest.raises(NumericOverflowError):
            ensure_finite(float("inf"))
        with pytest.raises(NumericOverflowError):
            ensure_finite(2e15, "balance")

    def test_clamp_periodic_rate(self):
        """Test that rates below -100% are clamped."""
        assert clamp_periodic_rate(0.01) == 0.01
        assert clamp_periodic_rate(-1.5) == MIN_PERIODIC_RATE

    def test_clamp_periodic_rate_nan(self):
        """Test that a NaN rate is invalid input."""
        with pytest.raises(InvalidInputError):
            clamp_periodic_rate(float("nan"))

    def test_growth_factor_overflow(self):
        """Test that float overflow becomes NumericOverflowError."""
        with pytest.raises(NumericOverflowError):
            growth_factor(1e6, 1e6)


class TestCompoundGrowth:
    """Test cases for compound_growth."""

    def test_golden_value(self):
        """Test 10,000 at 5% monthly with 100/month for 10 years."""
        value = compound_growth(
            principal=10000,
            annual_rate=0.05,
            periods_per_year=12,
            years=10,
            contribution=100,
        )
        assert value == 31998.32

    def test_zero_rate(self):
        """Test that a zero rate degenerates to principal plus contributions."""
        value = compound_growth(1000, 0.0, 12, 5, contribution=10)
        assert value == 1600.0

    def test_start_of_period_contributions(self):
        """Test that start-of-period contributions earn one extra period."""
        end = compound_growth(0, 0.12, 12, 1, contribution=100)
        start = compound_growth(
            0, 0.12, 12, 1, contribution=100, contribution_timing="start-of-period"
        )
        assert start == 1280.93
        assert start > end

    def test_fractional_years(self):
        """Test that fractional periods are supported."""
        value = compound_growth(1000, 0.12, 12, 0.5, round_result=False)
        assert abs(value - 1000 * 1.01**6) < 1e-9

    def test_invalid_periods(self):
        """Test that non-positive periods per year are rejected."""
        with pytest.raises(InvalidInputError):
            compound_growth(1000, 0.05, 0, 1)

    def test_negative_years(self):
        """Test that negative years are rejected."""
        with pytest.raises(InvalidInputError):
            compound_growth(1000, 0.05, 12, -1)


class TestRequiredPayment:
    """Test cases for required_payment."""

    @pytest.mark.parametrize(
        "principal,annual_rate,years",
        [(10000, 0.06, 25), (0, 0.05, 10), (50000, 0.0, 15), (2500, -0.02, 3)],
    )
    def test_round_trip_within_one_cent(self, principal, annual_rate, years):
        """Test that the payment reproduces the target through compound_growth."""
        target = 500000
        payment = required_payment(
            target_future_value=target,
            present_value=principal,
            periodic_rate=annual_rate / 12,
            n_periods=years * 12,
            round_result=False,
        )
        future_value = compound_growth(
            principal, annual_rate, 12, years, contribution=payment, round_result=False
        )
        assert abs(future_value - target) <= 0.01

    def test_no_periods_left(self):
        """Test that no remaining periods yields a zero payment."""
        assert required_payment(100000, 0, 0.005, 0) == 0.0
        assert required_payment(100000, 0, 0.005, -12) == 0.0

    def test_target_already_reachable(self):
        """Test that a sufficient present value needs no payment."""
        assert required_payment(1000, 5000, 0.005, 12) == 0.0

    def test_start_of_period_payment_is_smaller(self):
        """Test that paying at period start requires less per period."""
        end = required_payment(100000, 0, 0.005, 120)
        start = required_payment(
            100000, 0, 0.005, 120, contribution_timing="start-of-period"
        )
        assert start < end


class TestFireNumber:
    """Test cases for FIRE number and real return helpers."""

    def test_default_multiple(self):
        """Test the 25x rule."""
        assert calculate_fire_number(40000) == 1_000_000

    def test_tax_gross_up(self):
        """Test grossing expenses up for withdrawal taxes."""
        assert abs(calculate_fire_number(40000, tax_rate=0.2) - 1_250_000) < 1e-6

    def test_emergency_reserve(self):
        """Test that the emergency reserve is added on top."""
        value = calculate_fire_number(40000, emergency_fund_months=6)
        assert abs(value - 1_020_000) < 1e-6

    def test_invalid_inputs(self):
        """Test rejection of negative expenses and bad tax rates."""
        with pytest.raises(InvalidInputError):
            calculate_fire_number(-1)
        with pytest.raises(InvalidInputError):
            calculate_fire_number(40000, tax_rate=1.0)

    def test_real_return(self):
        """Test the Fisher conversion."""
        assert abs(real_return(0.07, 0.03) - 0.038835) < 1e-6
        assert real_return(0.03, 0.03) == 0.0
