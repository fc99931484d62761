"""
Pytest configuration and shared fixtures for the projection engine tests.
"""

import pytest

from fire_engine.config import EngineSettings
from fire_engine.models.assumptions import (
    AccountSnapshot,
    DebtAccount,
    ScenarioAssumptions,
)
from fire_engine.models.feasibility import FireFeasibilityInput


@pytest.fixture
def settings():
    """Engine settings isolated from any local .env file."""
    return EngineSettings(_env_file=None)


@pytest.fixture
def assumptions():
    """Typical scenario assumptions."""
    return ScenarioAssumptions(
        inflation_rate=0.03,
        market_return=0.07,
        savings_rate=0.1,
        retirement_age=65,
        life_expectancy=90,
    )


@pytest.fixture
def brokerage_account():
    """The golden-value account: 10,000 at 5% with 100/month."""
    return AccountSnapshot(
        id="brokerage",
        current_balance=10000,
        interest_rate=0.05,
        monthly_contribution=100,
    )


@pytest.fixture
def feasibility_input(assumptions):
    """Mid-range scenario saving 500/month towards a 1,000,000 FIRE number."""
    return FireFeasibilityInput(
        assumptions=assumptions,
        current_age=30,
        annual_income=60000,
        annual_expenses=40000,
    )


@pytest.fixture
def funded_feasibility_input(assumptions):
    """Scenario that is already past its FIRE number."""
    return FireFeasibilityInput(
        assumptions=assumptions,
        current_age=40,
        accounts=[AccountSnapshot(id="portfolio", current_balance=2_000_000)],
        annual_expenses=40000,
    )


@pytest.fixture
def sample_debts():
    """Three debts with distinct balances and rates."""
    return [
        DebtAccount(
            id="card",
            name="Credit Card",
            balance=5000,
            interest_rate=0.22,
            minimum_payment=150,
        ),
        DebtAccount(
            id="car",
            name="Car Loan",
            balance=1000,
            interest_rate=0.10,
            minimum_payment=50,
        ),
        DebtAccount(
            id="student",
            name="Student Loan",
            balance=3000,
            interest_rate=0.15,
            minimum_payment=90,
        ),
    ]
