"""
Monte Carlo simulation of portfolio growth.

Each trial draws one return per year (per asset per year for multi-asset
portfolios), invests the monthly contribution at the month-equivalent rate
of that year's return, and floors the balance at zero. Trials are grouped in
fixed-size chunks; chunk ``k`` is seeded from the ``k``-th child of
``SeedSequence(seed)``, so results do not depend on how many workers run the
chunks. Aggregation happens once, after every chunk has finished.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field, model_validator

from fire_engine.exceptions import NumericOverflowError
from fire_engine.models.assumptions import GoalSpec
from fire_engine.models.numeric import MAX_MONETARY_MAGNITUDE, round_currency
from fire_engine.models.random_returns import (
    AssetClass,
    Distribution,
    RandomReturnsGenerator,
    ReturnsConfig,
    calculate_portfolio_returns,
    validate_correlation_matrix,
)
from fire_engine.models.success_metrics import (
    ConfidenceInterval,
    OutcomeStatistics,
    SuccessMetricsCalculator,
    YearPercentiles,
)

logger = logging.getLogger(__name__)

MIN_ITERATIONS = 100
MAX_ITERATIONS = 10000

# Trials per independently seeded chunk
TRIAL_CHUNK_SIZE = 500


class MonteCarloInput(BaseModel):
    """Inputs for a Monte Carlo simulation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    initial_value: Optional[float] = Field(
        default=None,
        ge=0,
        le=MAX_MONETARY_MAGNITUDE,
        description="Starting portfolio value; defaults to the goal's current amount",
    )
    monthly_contribution: float = Field(
        default=0.0, ge=0, le=MAX_MONETARY_MAGNITUDE, description="Monthly contribution"
    )
    years_to_project: int = Field(..., ge=1, le=100, description="Simulation horizon")
    expected_return: float = Field(
        default=0.07, ge=-0.5, le=0.5, description="Expected annual return"
    )
    volatility: float = Field(default=0.15, ge=0, le=1, description="Annual volatility")
    iterations: int = Field(
        default=1000,
        ge=MIN_ITERATIONS,
        le=MAX_ITERATIONS,
        description="Number of simulated trials",
    )
    inflation_rate: Optional[float] = Field(
        default=None, ge=0, le=0.5, description="Deflate balances before goal checks"
    )
    target_amount: Optional[float] = Field(
        default=None,
        gt=0,
        le=MAX_MONETARY_MAGNITUDE,
        description="Goal amount; defaults to total invested capital",
    )
    goal: Optional[GoalSpec] = Field(
        default=None, description="Savings goal supplying the target and starting value"
    )
    assets: Optional[List[AssetClass]] = Field(
        default=None, min_length=1, description="Asset classes for a multi-asset run"
    )
    correlation_matrix: Optional[List[List[float]]] = Field(
        default=None, description="Correlation matrix between the asset classes"
    )
    distribution: Distribution = Field(default="lognormal")
    seed: Optional[int] = Field(default=None, ge=0, description="Random seed")

    @model_validator(mode="after")
    def validate_goal(self) -> "MonteCarloInput":
        if self.initial_value is None and self.goal is None:
            raise ValueError("initial_value is required when no goal is given")
        if self.goal is not None and self.target_amount is not None:
            raise ValueError("target_amount and goal cannot both be given")
        return self

    @model_validator(mode="after")
    def validate_assets(self) -> "MonteCarloInput":
        if self.correlation_matrix is not None:
            if self.assets is None:
                raise ValueError("correlation_matrix requires assets")
            validate_correlation_matrix(self.correlation_matrix, len(self.assets))
        if self.assets is not None:
            total_weight = sum(asset.weight for asset in self.assets)
            if not np.isclose(total_weight, 1.0, atol=1e-6):
                raise ValueError(
                    f"Portfolio weights must sum to 1.0, got {total_weight}"
                )
        return self

    @property
    def starting_value(self) -> float:
        if self.initial_value is not None:
            return self.initial_value
        return self.goal.current_amount

    @property
    def goal_target(self) -> Optional[float]:
        """Explicit goal amount, from target_amount or the goal."""
        if self.goal is not None:
            return self.goal.target_amount
        return self.target_amount

    @property
    def invested_capital(self) -> float:
        """Total amount paid in over the horizon."""
        return self.starting_value + self.monthly_contribution * 12 * self.years_to_project

    def returns_config(self) -> ReturnsConfig:
        """Returns configuration for this run (single asset unless assets given)."""
        assets = self.assets or [
            AssetClass(
                name="portfolio",
                expected_return=self.expected_return,
                volatility=self.volatility,
                weight=1.0,
            )
        ]
        return ReturnsConfig(
            asset_classes=assets,
            distribution=self.distribution,
            correlation_matrix=self.correlation_matrix,
        )


class MonteCarloResult(BaseModel):
    """Aggregated outcome of a Monte Carlo simulation."""

    model_config = ConfigDict(frozen=True)

    iterations: int
    seed: int = Field(..., description="Seed that reproduces this run")
    distribution: Distribution
    years_to_project: int
    target_amount: float = Field(..., description="Goal used for success checks")
    success_probability: float = Field(..., ge=0, le=1)
    terminal_percentiles: Dict[str, float] = Field(
        ..., description="Nominal terminal balance percentiles"
    )
    terminal_real_percentiles: Optional[Dict[str, float]] = Field(
        default=None, description="Inflation-adjusted terminal balance percentiles"
    )
    yearly_percentiles: List[YearPercentiles] = Field(
        ..., description="Nominal balance percentiles for years 1..N"
    )
    confidence_interval: ConfidenceInterval
    confidence_intervals: Dict[str, ConfidenceInterval] = Field(
        default_factory=dict,
        description="Terminal intervals keyed p90 (p5-p95), p80 (p10-p90), p50 (p25-p75)",
    )
    statistics: OutcomeStatistics

    @property
    def median_terminal_value(self) -> float:
        return self.terminal_percentiles["p50"]


def simulate_balances(
    portfolio_returns: NDArray[np.float64],
    initial_value: float,
    monthly_contribution: float,
) -> NDArray[np.float64]:
    """
    Roll balances forward through yearly portfolio returns.

    Contributions are made at the end of each month at the month-equivalent
    rate ``(1 + R)^(1/12) - 1`` of the year's return ``R``.

    Args:
        portfolio_returns: Annual returns (years, num_paths)
        initial_value: Starting balance
        monthly_contribution: Contribution per month

    Returns:
        Balances (years + 1, num_paths), row 0 being the starting balance
    """
    years, num_paths = portfolio_returns.shape
    balances = np.empty((years + 1, num_paths))
    balances[0] = initial_value

    for year in range(years):
        growth = 1.0 + portfolio_returns[year]
        monthly_rate = np.power(growth, 1.0 / 12.0) - 1.0
        with np.errstate(divide="ignore", invalid="ignore"):
            annuity = np.where(
                np.abs(monthly_rate) < 1e-12, 12.0, (growth - 1.0) / monthly_rate
            )
        year_end = balances[year] * growth + monthly_contribution * annuity
        balances[year + 1] = np.maximum(year_end, 0.0)

    if not np.all(np.isfinite(balances)):
        raise NumericOverflowError("Simulated balances are not finite")
    return balances


def _chunk_sizes(iterations: int) -> List[int]:
    full, remainder = divmod(iterations, TRIAL_CHUNK_SIZE)
    sizes = [TRIAL_CHUNK_SIZE] * full
    if remainder:
        sizes.append(remainder)
    return sizes


def run_monte_carlo(mc_input: MonteCarloInput, workers: int = 1) -> MonteCarloResult:
    """
    Run a seeded Monte Carlo simulation.

    Args:
        mc_input: Validated simulation inputs
        workers: Threads used to run trial chunks; does not affect results

    Returns:
        MonteCarloResult with percentiles, success probability and the seed

    Raises:
        NumericOverflowError: If simulated balances overflow
    """
    if workers < 1:
        raise ValueError(f"workers must be at least 1, got {workers}")

    seed = mc_input.seed
    if seed is None:
        seed = int(np.random.SeedSequence().entropy)

    generator = RandomReturnsGenerator(mc_input.returns_config())
    weights = generator.get_asset_weights()
    years = mc_input.years_to_project

    sizes = _chunk_sizes(mc_input.iterations)
    chunk_seeds = np.random.SeedSequence(seed).spawn(len(sizes))

    def run_chunk(index: int) -> NDArray[np.float64]:
        rng = np.random.default_rng(chunk_seeds[index])
        asset_returns = generator.generate_returns(years, sizes[index], rng)
        portfolio_returns = calculate_portfolio_returns(asset_returns, weights)
        return simulate_balances(
            portfolio_returns, mc_input.starting_value, mc_input.monthly_contribution
        )

    logger.debug(
        f"Running {mc_input.iterations} trials in {len(sizes)} chunks "
        f"on {min(workers, len(sizes))} workers (seed={seed})"
    )

    if workers > 1 and len(sizes) > 1:
        with ThreadPoolExecutor(max_workers=min(workers, len(sizes))) as executor:
            chunks = list(executor.map(run_chunk, range(len(sizes))))
    else:
        chunks = [run_chunk(index) for index in range(len(sizes))]

    balances = np.concatenate(chunks, axis=1)
    return _aggregate(mc_input, balances, seed)


def _aggregate(
    mc_input: MonteCarloInput, balances: NDArray[np.float64], seed: int
) -> MonteCarloResult:
    """Single-threaded aggregation of all trials."""
    calculator = SuccessMetricsCalculator()
    years = mc_input.years_to_project
    invested = mc_input.invested_capital
    target = mc_input.goal_target if mc_input.goal_target is not None else invested

    real_balances = None
    if mc_input.inflation_rate is not None:
        deflators = (1.0 + mc_input.inflation_rate) ** np.arange(years + 1)
        real_balances = balances / deflators[:, np.newaxis]

    goal_balances = real_balances if real_balances is not None else balances
    terminal = balances[-1]

    return MonteCarloResult(
        iterations=mc_input.iterations,
        seed=seed,
        distribution=mc_input.distribution,
        years_to_project=years,
        target_amount=round_currency(target),
        success_probability=calculator.success_probability(goal_balances, target),
        terminal_percentiles=calculator.percentiles(terminal),
        terminal_real_percentiles=(
            calculator.percentiles(real_balances[-1])
            if real_balances is not None
            else None
        ),
        yearly_percentiles=calculator.yearly_percentiles(
            balances, range(1, years + 1)
        ),
        confidence_interval=calculator.confidence_interval(terminal),
        confidence_intervals=calculator.confidence_intervals(terminal),
        statistics=calculator.statistics(terminal, invested),
    )
