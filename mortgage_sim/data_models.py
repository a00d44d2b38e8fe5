"""Data models for the mortgage simulator.

This module defines dataclasses for the entities shared by the amortization
engine, the ETF projection engine and the comparison layer: loan terms,
schedule entries, ETF results, scenario combinations and their comparison
results. Inputs are frozen so that a combination can never be mutated after
it has been generated; a new selection simply produces new combinations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

HARVESTING_STRATEGIES = ("none", "full", "partial", "optimal")
CHECKPOINT_YEARS = (10, 20, 30)


@dataclass(frozen=True)
class LoanTerms:
    """Terms of a fixed-payment loan.

    Attributes
    ----------
    principal: float
        The loan amount.
    annual_rate: float
        Nominal annual interest rate in percent (``3.51`` means 3.51 %).
    monthly_payment: float
        Fixed monthly installment (interest plus scheduled principal).
    extra_yearly: float
        Extra principal payment (Sondertilgung) applied every twelfth month.
    extra_yearly_limit: Optional[float]
        Ceiling on the extra payment allowed by the lender. The engine never
        enforces it; combinations above the limit are not generated.
    """

    principal: float
    annual_rate: float
    monthly_payment: float
    extra_yearly: float = 0.0
    extra_yearly_limit: Optional[float] = None

    @property
    def monthly_rate(self) -> float:
        return self.annual_rate / 100 / 12


@dataclass(frozen=True)
class MortgageOffer:
    """A base scenario: one loan offer as entered by the user."""

    id: str
    name: str
    terms: LoanTerms
    effective_rate: Optional[float] = None  # Effektivzins, display only


@dataclass
class AmortizationEntry:
    """One month of an amortization schedule."""

    month: int
    year: int
    balance: float
    interest_payment: float
    principal_payment: float
    extra_payment: float
    total_payment: float


@dataclass
class AmortizationResult:
    schedule: List[AmortizationEntry]
    total_interest: float
    total_principal: float  # scheduled principal plus extra payments
    total_extra: float
    final_balance: float
    payoff_months: int


@dataclass
class ETFResult:
    """Outcome of an ETF projection under one harvesting strategy.

    ``tax`` is the tax paid while the simulation runs (only the ``full``
    strategy pays any); ``final_tax`` is the tax still owed when the position
    is sold at the end of the horizon.
    """

    future_value: float
    gains: float
    tax: float
    after_tax_value: float
    after_tax_nominal: float
    after_tax_real: float
    final_tax: float
    total_harvested: float
    strategy: str


@dataclass(frozen=True)
class ScenarioCombination:
    """A mortgage offer paired with chosen ETF and extra-payment amounts."""

    id: str
    base_scenario_id: str
    name: str
    terms: LoanTerms
    initial_etf: float
    monthly_etf: float

    @property
    def extra_yearly(self) -> float:
        return self.terms.extra_yearly


@dataclass
class Checkpoint:
    """Snapshot of loan and investment state at a fixed year."""

    year: int
    balance: float
    total_paid: float
    total_interest: float
    equity: float
    etf_value: float
    net_worth: float


@dataclass
class ComparisonResult:
    combination: ScenarioCombination
    payoff_years: float
    etf_details: ETFResult
    checkpoints: Tuple[Checkpoint, ...]
    net_worth: float

    @property
    def id(self) -> str:
        return self.combination.id

    @property
    def name(self) -> str:
        return self.combination.name

    @property
    def etf_value(self) -> float:
        return self.etf_details.after_tax_value

    def checkpoint(self, year: int) -> Optional[Checkpoint]:
        for cp in self.checkpoints:
            if cp.year == year:
                return cp
        return None


@dataclass
class SimulationSettings:
    """Global inputs and option selections for a comparison run."""

    horizon_years: int = 20
    harvesting_strategy: str = "optimal"
    property_value: float = 400_000.0
    etf_return: float = 7.0
    inflation: float = 2.0
    initial_etf_options: List[float] = field(default_factory=lambda: [0.0, 10_000.0, 20_000.0, 50_000.0])
    monthly_etf_options: List[float] = field(default_factory=lambda: [0.0, 100.0, 200.0, 500.0])
    extra_yearly_options: List[float] = field(default_factory=lambda: [0.0, 2_000.0, 5_000.0, 10_000.0])
    selected_initial_etf: List[float] = field(default_factory=lambda: [0.0])
    selected_monthly_etf: List[float] = field(default_factory=lambda: [0.0])
    selected_extra_yearly: List[float] = field(default_factory=lambda: [0.0])
    selected_scenarios: List[str] = field(default_factory=list)


@dataclass
class Workspace:
    """Everything a comparison run needs: the offers and the settings."""

    offers: List[MortgageOffer] = field(default_factory=list)
    settings: SimulationSettings = field(default_factory=SimulationSettings)

    def selected_offers(self) -> List[MortgageOffer]:
        # No explicit selection means every offer takes part.
        if not self.settings.selected_scenarios:
            return list(self.offers)
        wanted = set(self.settings.selected_scenarios)
        return [o for o in self.offers if o.id in wanted]
