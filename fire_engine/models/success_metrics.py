"""
Success metrics for Monte Carlo simulation.

This module aggregates simulated balance paths into success probability,
percentile outcomes and summary statistics. Percentiles always use linear
interpolation between sorted trials (numpy's default ``method="linear"``).
"""

from typing import Dict, List, Optional, Sequence

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field

from fire_engine.models.numeric import round_currency, round_half_up

PERCENTILE_LEVELS = (5, 10, 25, 50, 75, 90, 95)

PERCENTILE_METHOD = "linear"

# Central interval widths reported alongside the configured confidence interval
INTERVAL_LEVELS = (0.9, 0.8, 0.5)


class ConfidenceInterval(BaseModel):
    """A two-sided interval at a stated confidence level."""

    model_config = ConfigDict(frozen=True)

    lower: float
    upper: float
    level: float = Field(..., gt=0, lt=1, description="Confidence level (0-1)")


class YearPercentiles(BaseModel):
    """Percentiles of simulated balances at one horizon year."""

    model_config = ConfigDict(frozen=True)

    year: int = Field(..., ge=0)
    percentiles: Dict[str, float]


class OutcomeStatistics(BaseModel):
    """Summary statistics of terminal balances."""

    model_config = ConfigDict(frozen=True)

    mean: float
    median: float
    standard_deviation: float
    skewness: float = Field(default=0.0, description="Population skewness")
    kurtosis: float = Field(default=0.0, description="Excess kurtosis (normal = 0)")
    probability_of_loss: float = Field(
        ..., ge=0, le=1, description="Fraction of trials ending below invested capital"
    )


class SuccessMetricsConfig(BaseModel):
    """Configuration for success metrics calculation."""

    model_config = ConfigDict(frozen=True)

    percentile_levels: List[float] = Field(
        default=list(PERCENTILE_LEVELS),
        description="Percentile levels (0-100) reported for balances",
    )
    confidence_level: float = Field(
        default=0.90, gt=0, lt=1, description="Level of the reported interval"
    )


def percentile_key(level: float) -> str:
    """Dictionary key for a percentile level, e.g. 5 -> "p5"."""
    return f"p{int(level)}"


class SuccessMetricsCalculator:
    """Calculator for Monte Carlo success metrics."""

    def __init__(self, config: Optional[SuccessMetricsConfig] = None):
        self.config = config or SuccessMetricsConfig()

    def success_probability(
        self, balances: NDArray[np.float64], target: float
    ) -> float:
        """
        Fraction of paths whose balance reaches the target in any projected year.

        Row 0 holds the starting balance and is not counted, so a path that
        starts at the target and only loses value does not succeed.

        Args:
            balances: Balance paths (years + 1, num_paths)
            target: Goal amount in the same terms as ``balances``

        Returns:
            Probability rounded to 4 decimal places
        """
        reached = np.any(balances[1:] >= target, axis=0)
        return round_half_up(float(np.mean(reached)), 4)

    def percentiles(self, values: NDArray[np.float64]) -> Dict[str, float]:
        """Rounded percentiles of a one-dimensional sample."""
        levels = self.config.percentile_levels
        raw = np.percentile(values, levels, method=PERCENTILE_METHOD)
        return {
            percentile_key(level): round_currency(float(value))
            for level, value in zip(levels, raw)
        }

    def yearly_percentiles(
        self, balances: NDArray[np.float64], years: Sequence[int]
    ) -> List[YearPercentiles]:
        """Percentiles of the balance distribution for each requested year."""
        return [
            YearPercentiles(year=year, percentiles=self.percentiles(balances[year]))
            for year in years
        ]

    def confidence_interval(
        self, values: NDArray[np.float64], level: Optional[float] = None
    ) -> ConfidenceInterval:
        """Central interval of a sample, at the configured level by default."""
        if level is None:
            level = self.config.confidence_level
        # Rounded so that a 0.90 level maps exactly onto p5/p95
        tail = round((1 - level) / 2 * 100, 10)
        lower, upper = np.percentile(
            values, [tail, 100 - tail], method=PERCENTILE_METHOD
        )
        return ConfidenceInterval(
            lower=round_currency(float(lower)),
            upper=round_currency(float(upper)),
            level=level,
        )

    def confidence_intervals(
        self, values: NDArray[np.float64]
    ) -> Dict[str, ConfidenceInterval]:
        """Central intervals keyed by width, e.g. "p80" spans p10 to p90."""
        return {
            f"p{int(round(level * 100))}": self.confidence_interval(values, level)
            for level in INTERVAL_LEVELS
        }

    def statistics(
        self, terminal: NDArray[np.float64], invested_capital: float
    ) -> OutcomeStatistics:
        mean = float(np.mean(terminal))
        std = float(np.std(terminal))
        if std > 0:
            standardized = (terminal - mean) / std
            skewness = float(np.mean(standardized**3))
            kurtosis = float(np.mean(standardized**4)) - 3.0
        else:
            skewness = 0.0
            kurtosis = 0.0

        return OutcomeStatistics(
            mean=round_currency(mean),
            median=round_currency(
                float(np.percentile(terminal, 50, method=PERCENTILE_METHOD))
            ),
            standard_deviation=round_currency(std),
            skewness=round_half_up(skewness, 4),
            kurtosis=round_half_up(kurtosis, 4),
            probability_of_loss=round_half_up(
                float(np.mean(terminal < invested_capital)), 4
            ),
        )
