"""
Tests for the sensitivity analysis engine.
"""

import pytest
from pydantic import ValidationError

from fire_engine.models.assumptions import AccountSnapshot, ScenarioAssumptions
from fire_engine.models.feasibility import FireFeasibilityInput
from fire_engine.models.sensitivity import (
    PERTURBATIONS,
    SENSITIVITY_PARAMETERS,
    ImpactSignificance,
    SensitivityInput,
    analyze_sensitivity,
    classify_impact,
    perturb,
)


class TestClassifyImpact:
    """Test cases for per-parameter significance thresholds."""

    @pytest.mark.parametrize(
        "parameter,delta,expected",
        [
            ("income", 1.99, ImpactSignificance.MINIMAL),
            ("income", -2.0, ImpactSignificance.MODERATE),
            ("income", 5.0, ImpactSignificance.SIGNIFICANT),
            ("income", -10.0, ImpactSignificance.DRAMATIC),
            ("expected_return", 2.99, ImpactSignificance.MINIMAL),
            ("expected_return", 7.99, ImpactSignificance.MODERATE),
            ("expected_return", 15.0, ImpactSignificance.DRAMATIC),
            ("timeline", 4.99, ImpactSignificance.MINIMAL),
            ("timeline", 19.99, ImpactSignificance.SIGNIFICANT),
        ],
    )
    def test_thresholds(self, parameter, delta, expected):
        """Test that each parameter uses its own threshold table."""
        assert classify_impact(parameter, delta) == expected


class TestPerturb:
    """Test cases for single-parameter perturbations."""

    def test_income(self, feasibility_input):
        """Test that income is scaled by the percentage."""
        perturbed, new_value = perturb(feasibility_input, "income", 10)
        assert abs(new_value - 66000) < 1e-6
        assert abs(perturbed.annual_income - 66000) < 1e-6

    def test_income_without_income_scales_contributions(self, assumptions):
        """Test that contributions are scaled when no income is given."""
        feasibility_input = FireFeasibilityInput(
            assumptions=assumptions,
            current_age=30,
            accounts=[
                AccountSnapshot(id="401k", current_balance=0, monthly_contribution=400)
            ],
            annual_expenses=40000,
        )
        perturbed, new_value = perturb(feasibility_input, "income", -20)
        assert abs(new_value - 320) < 1e-9
        assert abs(perturbed.accounts[0].monthly_contribution - 320) < 1e-9

    def test_expected_return_is_clamped(self):
        """Test that perturbed returns stay within the allowed range."""
        feasibility_input = FireFeasibilityInput(
            assumptions=ScenarioAssumptions(market_return=0.45),
            current_age=30,
            annual_expenses=40000,
        )
        perturbed, new_value = perturb(feasibility_input, "expected_return", 20)
        assert new_value == 0.5
        assert perturbed.assumptions.market_return == 0.5

    @pytest.mark.parametrize(
        "percent_change,years", [(-20, 28), (-5, 33), (10, 39), (20, 42)]
    )
    def test_timeline(self, feasibility_input, percent_change, years):
        """Test that the years to retirement are scaled and rounded half up."""
        perturbed, new_value = perturb(feasibility_input, "timeline", percent_change)
        assert new_value == years
        assert perturbed.assumptions.retirement_age == 30 + years

    def test_timeline_capped_by_life_expectancy(self):
        """Test that retirement stays before the end of the horizon."""
        feasibility_input = FireFeasibilityInput(
            assumptions=ScenarioAssumptions(retirement_age=85, life_expectancy=88),
            current_age=40,
            annual_expenses=40000,
        )
        perturbed, new_value = perturb(feasibility_input, "timeline", 20)
        assert perturbed.assumptions.retirement_age == 87
        assert new_value == 47

    def test_timeline_keeps_one_year(self):
        """Test that a shrinking timeline keeps at least one year."""
        feasibility_input = FireFeasibilityInput(
            assumptions=ScenarioAssumptions(retirement_age=65, life_expectancy=90),
            current_age=64,
            annual_expenses=40000,
        )
        perturbed, new_value = perturb(feasibility_input, "timeline", -20)
        assert new_value == 1
        assert perturbed.assumptions.retirement_age == 65

    def test_unknown_parameter(self, feasibility_input):
        """Test that unknown parameters are rejected."""
        with pytest.raises(ValueError):
            perturb(feasibility_input, "age", 10)


class TestAnalyzeSensitivity:
    """Test cases for analyze_sensitivity."""

    def test_all_scenarios_returned(self, feasibility_input):
        """Test that every parameter gets every perturbation."""
        report = analyze_sensitivity(SensitivityInput(feasibility=feasibility_input))

        assert list(report.parameters) == list(SENSITIVITY_PARAMETERS)
        for scenarios in report.parameters.values():
            assert [s.percent_change for s in scenarios] == list(PERTURBATIONS)

    def test_baseline_score(self, feasibility_input):
        """Test the baseline matches the mid-range feasibility score."""
        report = analyze_sensitivity(SensitivityInput(feasibility=feasibility_input))
        assert abs(report.baseline_score - 44.57) < 0.02

    def test_income_direction_and_significance(self, feasibility_input):
        """Test that more income raises the score and less income lowers it."""
        report = analyze_sensitivity(
            SensitivityInput(feasibility=feasibility_input, parameters=["income"])
        )
        scenarios = {s.percent_change: s for s in report.parameters["income"]}

        assert scenarios[20.0].score_delta > 0
        assert scenarios[-20.0].score_delta < 0
        assert scenarios[10.0].significance == ImpactSignificance.MODERATE
        assert scenarios[-20.0].significance == ImpactSignificance.SIGNIFICANT
        assert "raises" in scenarios[10.0].impact_description
        assert "lowers" in scenarios[-10.0].impact_description

    def test_minimal_results_not_dropped(self, funded_feasibility_input):
        """Test that unchanged scenarios are still reported."""
        report = analyze_sensitivity(
            SensitivityInput(
                feasibility=funded_feasibility_input, parameters=["expenses"]
            )
        )
        scenarios = report.parameters["expenses"]

        assert len(scenarios) == len(PERTURBATIONS)
        for scenario in scenarios:
            assert scenario.score_delta == 0
            assert scenario.significance == ImpactSignificance.MINIMAL
            assert "no change" in scenario.impact_description
        assert report.most_sensitive_parameter() is None

    def test_most_sensitive_parameter(self, feasibility_input):
        """Test that the parameter with the largest swing is identified."""
        report = analyze_sensitivity(SensitivityInput(feasibility=feasibility_input))
        assert report.most_sensitive_parameter() in SENSITIVITY_PARAMETERS

    def test_custom_perturbations_sorted(self, feasibility_input):
        """Test that custom perturbations are de-duplicated and ordered."""
        sensitivity_input = SensitivityInput(
            feasibility=feasibility_input, perturbations=[15, -15, 15]
        )
        assert sensitivity_input.perturbations == [-15, 15]

    def test_invalid_perturbation(self, feasibility_input):
        """Test that a -100% perturbation is rejected."""
        with pytest.raises(ValidationError):
            SensitivityInput(feasibility=feasibility_input, perturbations=[-100])
