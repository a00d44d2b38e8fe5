import os

import pytest

# The web app opens its store at import time
os.environ.setdefault("MORTGAGE_SIM_DATABASE_URL", "sqlite://")

from mortgage_sim.data_models import LoanTerms, MortgageOffer  # noqa: E402


@pytest.fixture
def bank_a() -> MortgageOffer:
    return MortgageOffer(
        id="a",
        name="Bank A",
        terms=LoanTerms(principal=300_000, annual_rate=3.5, monthly_payment=1_500),
        effective_rate=3.56,
    )


@pytest.fixture
def bank_b() -> MortgageOffer:
    return MortgageOffer(
        id="b",
        name="Bank B",
        terms=LoanTerms(principal=300_000, annual_rate=3.2, monthly_payment=1_400, extra_yearly_limit=2_000),
    )


@pytest.fixture
def workspace_dict() -> dict:
    return {
        "scenarios": [
            {"id": "a", "name": "Bank A", "loanAmount": 300000, "interestRate": 3.5, "monthlyPayment": 1500},
            {
                "id": "b",
                "name": "Bank B",
                "loanAmount": 300000,
                "interestRate": 3.2,
                "monthlyPayment": 1400,
                "extraYearlyLimit": 2000,
                "effectiveInterestRate": 3.25,
            },
        ],
        "horizonYears": 20,
        "harvestingStrategy": "partial",
        "propertyValue": 400000,
        "etfReturn": 7.0,
        "inflation": 2.0,
        "selectedInitialETF": [0, 10000],
        "selectedMonthlyETF": [200],
        "selectedExtraYearly": [0, 5000],
        "selectedScenarios": [],
    }
