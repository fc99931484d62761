"""Engines and data models for FIRE scenario calculations."""

from .assumptions import AccountSnapshot, DebtAccount, GoalSpec, ScenarioAssumptions
from .debt_payoff import (
    DebtPayoffInput,
    DebtPayoffPlan,
    DebtStrategyComparison,
    PayoffStrategy,
    calculate_payoff_plan,
    compare_payoff_strategies,
)
from .feasibility import (
    AlternativeTimeline,
    FeasibilityRating,
    FireFeasibilityInput,
    FireFeasibilityResult,
    assess_fire_feasibility,
    suggest_alternative_timelines,
)
from .fire_number import (
    FireNumberInput,
    FireNumberResult,
    StressScenario,
    calculate_fire_number_variants,
)
from .monte_carlo import MonteCarloInput, MonteCarloResult, run_monte_carlo
from .projection import (
    ProjectionInput,
    ProjectionResult,
    ProjectionStatus,
    YearSnapshot,
    project_net_worth,
)
from .random_returns import AssetClass
from .requests import CalculationType, parse_calculation_request
from .risk_adjusted import (
    RiskAdjustedFeasibility,
    RiskAdjustedInput,
    RiskFactor,
    blend_risk_adjusted_feasibility,
)
from .sensitivity import (
    ImpactSignificance,
    SensitivityInput,
    SensitivityReport,
    analyze_sensitivity,
)

__all__ = [
    "ScenarioAssumptions",
    "AccountSnapshot",
    "DebtAccount",
    "GoalSpec",
    "ProjectionInput",
    "ProjectionResult",
    "ProjectionStatus",
    "YearSnapshot",
    "project_net_worth",
    "FireFeasibilityInput",
    "FireFeasibilityResult",
    "FeasibilityRating",
    "assess_fire_feasibility",
    "AlternativeTimeline",
    "suggest_alternative_timelines",
    "FireNumberInput",
    "FireNumberResult",
    "StressScenario",
    "calculate_fire_number_variants",
    "AssetClass",
    "MonteCarloInput",
    "MonteCarloResult",
    "run_monte_carlo",
    "SensitivityInput",
    "SensitivityReport",
    "ImpactSignificance",
    "analyze_sensitivity",
    "DebtPayoffInput",
    "DebtPayoffPlan",
    "DebtStrategyComparison",
    "PayoffStrategy",
    "calculate_payoff_plan",
    "compare_payoff_strategies",
    "RiskFactor",
    "RiskAdjustedInput",
    "RiskAdjustedFeasibility",
    "blend_risk_adjusted_feasibility",
    "CalculationType",
    "parse_calculation_request",
]
