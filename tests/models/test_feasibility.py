"""
Tests for FIRE feasibility scoring.
"""

import pytest

from fire_engine.models.assumptions import AccountSnapshot, ScenarioAssumptions
from fire_engine.models.feasibility import (
    FeasibilityRating,
    FireFeasibilityInput,
    assess_fire_feasibility,
    calculate_feasibility_score,
    rate_feasibility,
    suggest_alternative_timelines,
)


class TestFeasibilityScore:
    """Test cases for calculate_feasibility_score."""

    def test_ratio_of_contributions(self):
        """Test that the score is the saved/required ratio in percent."""
        assert calculate_feasibility_score(500, 1000, 30, 0.07) == 50.0

    def test_capped_at_100(self):
        """Test that saving more than required caps the score."""
        assert calculate_feasibility_score(2000, 1000, 30, 0.07) == 100.0

    def test_nothing_required(self):
        """Test that a zero requirement scores 100."""
        assert calculate_feasibility_score(0, 0, 30, 0.07) == 100.0

    def test_late_start_penalty(self):
        """Test the penalty for starting after 50."""
        assert calculate_feasibility_score(500, 1000, 55, 0.07) == 45.0
        assert calculate_feasibility_score(500, 1000, 50, 0.07) == 50.0

    def test_aggressive_return_penalty(self):
        """Test the penalty for optimistic return assumptions."""
        assert calculate_feasibility_score(500, 1000, 30, 0.09) == 47.5
        assert calculate_feasibility_score(500, 1000, 55, 0.09) == 42.75


class TestRating:
    """Test cases for rate_feasibility."""

    @pytest.mark.parametrize(
        "score,rating",
        [
            (100.0, FeasibilityRating.EXCELLENT),
            (80.0, FeasibilityRating.EXCELLENT),
            (79.99, FeasibilityRating.GOOD),
            (60.0, FeasibilityRating.GOOD),
            (59.99, FeasibilityRating.CHALLENGING),
            (40.0, FeasibilityRating.CHALLENGING),
            (39.99, FeasibilityRating.UNREALISTIC),
            (0.0, FeasibilityRating.UNREALISTIC),
        ],
    )
    def test_thresholds(self, score, rating):
        """Test rating thresholds are inclusive lower bounds."""
        assert rate_feasibility(score) == rating


class TestAssessFireFeasibility:
    """Test cases for assess_fire_feasibility."""

    def test_mid_range_scenario(self, feasibility_input):
        """Test a scenario saving roughly 45% of what is required."""
        result = assess_fire_feasibility(feasibility_input)

        assert result.current_monthly_contribution == 500.0
        assert abs(result.required_monthly_contribution - 1121.89) < 0.02
        assert abs(result.feasibility_score - 44.57) < 0.02
        assert result.rating == FeasibilityRating.CHALLENGING
        assert result.fire_number == 1_000_000
        assert abs(result.contribution_gap - 621.89) < 0.02
        assert abs(result.required_savings_rate - 0.2244) < 0.0002

    def test_already_funded(self, funded_feasibility_input):
        """Test that a funded scenario is excellent with no gap."""
        result = assess_fire_feasibility(funded_feasibility_input)

        assert result.feasibility_score == 100.0
        assert result.rating == FeasibilityRating.EXCELLENT
        assert result.contribution_gap == 0.0
        assert result.years_to_goal == 0
        assert result.required_savings_rate is None

    def test_contributions_from_accounts(self, assumptions):
        """Test that account contributions are used when income is missing."""
        feasibility_input = FireFeasibilityInput(
            assumptions=assumptions,
            current_age=30,
            accounts=[
                AccountSnapshot(
                    id="401k", current_balance=0, monthly_contribution=300
                ),
                AccountSnapshot(id="ira", current_balance=0, monthly_contribution=200),
            ],
            annual_expenses=40000,
        )

        assert feasibility_input.current_monthly_contribution == 500
        result = assess_fire_feasibility(feasibility_input)
        assert abs(result.feasibility_score - 44.57) < 0.02

    def test_income_replaces_account_contributions(self, assumptions):
        """Test that income-based savings replace account contributions."""
        feasibility_input = FireFeasibilityInput(
            assumptions=assumptions,
            current_age=30,
            accounts=[
                AccountSnapshot(
                    id="401k", current_balance=1000, monthly_contribution=300
                )
            ],
            annual_income=60000,
            annual_expenses=40000,
        )

        projection_input = feasibility_input.to_projection_input()
        contributions = [a.monthly_contribution for a in projection_input.accounts]
        assert contributions == [0.0, 500.0]

    def test_projection_included(self, feasibility_input):
        """Test that the underlying projection is returned."""
        result = assess_fire_feasibility(feasibility_input)
        assert result.projection.fire_number == result.fire_number
        assert result.years_to_goal == result.projection.years_to_goal


def flat_scenario(monthly_saving, retirement_age=50):
    """Saver aged 40 with no growth or inflation and a 120,000 target."""
    return FireFeasibilityInput(
        assumptions=ScenarioAssumptions(
            market_return=0.0, inflation_rate=0.0, retirement_age=retirement_age
        ),
        current_age=40,
        accounts=[
            AccountSnapshot(
                id="cash", current_balance=0, monthly_contribution=monthly_saving
            )
        ],
        annual_expenses=40000,
        fire_number=120000,
        use_real_returns=False,
    )


class TestAlternativeTimelines:
    """Test cases for suggest_alternative_timelines."""

    def test_challenging_plan_suggests_extensions(self):
        """Test that only extensions adding more than 20 points are suggested."""
        feasibility_input = flat_scenario(560)
        baseline = assess_fire_feasibility(feasibility_input)
        assert baseline.feasibility_score == 56.0
        assert baseline.rating == FeasibilityRating.CHALLENGING

        suggestions = suggest_alternative_timelines(feasibility_input)

        assert [s.suggested_years for s in suggestions] == [14, 15]
        assert [s.feasibility_improvement for s in suggestions] == [22.4, 28.0]
        assert [s.feasibility_score for s in suggestions] == [78.4, 84.0]
        assert suggestions[0].original_years == 10
        assert suggestions[0].required_monthly_contribution == 714.29
        assert suggestions[0].required_savings_rate is None
        assert "4 years later" in suggestions[0].reasoning

    def test_excellent_plan_suggests_earlier_retirement(self):
        """Test shorter timelines for a plan with room to spare."""
        suggestions = suggest_alternative_timelines(flat_scenario(1200))

        assert [s.suggested_years for s in suggestions] == [9, 8, 7]
        assert [s.feasibility_improvement for s in suggestions] == [0.0, -4.0, -16.0]
        assert all(s.feasibility_score >= 60 for s in suggestions)

    def test_minimum_timeline(self):
        """Test that earlier retirement never goes below five years."""
        suggestions = suggest_alternative_timelines(
            flat_scenario(3000, retirement_age=46)
        )
        assert [s.suggested_years for s in suggestions] == [5]

    def test_good_plan_has_no_suggestions(self):
        """Test that a good rating leaves the timeline alone."""
        feasibility_input = flat_scenario(700)
        assert assess_fire_feasibility(feasibility_input).rating == FeasibilityRating.GOOD
        assert suggest_alternative_timelines(feasibility_input) == []

    def test_extensions_stop_before_life_expectancy(self):
        """Test that extended retirement ages stay below life expectancy."""
        feasibility_input = FireFeasibilityInput(
            assumptions=ScenarioAssumptions(
                market_return=0.0,
                inflation_rate=0.0,
                retirement_age=85,
                life_expectancy=89,
            ),
            current_age=40,
            accounts=[
                AccountSnapshot(id="cash", current_balance=0, monthly_contribution=10)
            ],
            annual_expenses=40000,
            fire_number=1_000_000,
            use_real_returns=False,
        )

        suggestions = suggest_alternative_timelines(feasibility_input)
        assert all(s.suggested_years <= 48 for s in suggestions)
