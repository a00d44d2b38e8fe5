"""ETF projection under German capital-gains tax.

Contributions compound monthly (growth first, then the new money) and gains
are taxed under the equity-fund regime: 30 % of a gain is exempt
(Teilfreistellung), the remaining 70 % is taxed at 26.375 % after the yearly
allowance (Sparer-Pauschbetrag) of 1,000 is used up.

Four realization strategies are supported:

``none``
    Hold everything and pay tax once, at the end.
``full``
    Sell and rebuy every year, paying tax on each year's gain.
``partial``
    Each year realize only as much gain as the allowance covers and carry
    a proportionally reduced cost basis forward.
``optimal``
    Same yearly budget as ``partial``, but the basis step-up from each
    harvest is attributed to individual contribution lots, oldest first,
    and carried into the following years.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from .data_models import HARVESTING_STRATEGIES, ETFResult

TEILFREISTELLUNG = 0.30
TAXABLE_PORTION = 0.70
TAX_RATE = 0.26375  # 25 % plus solidarity surcharge
SPARER_PAUSCHBETRAG = 1000.0
# Largest gain whose taxable share still fits in the allowance
MAX_TAX_FREE_GAIN = SPARER_PAUSCHBETRAG / TAXABLE_PORTION


def capital_gains_tax(gain: float) -> float:
    """Return the tax due on realizing ``gain`` within a single year."""
    taxable = gain * TAXABLE_PORTION
    return max(0.0, taxable - SPARER_PAUSCHBETRAG) * TAX_RATE


@dataclass(slots=True)
class Lot:
    month: int
    amount: float
    basis: float
    value: float


@dataclass(slots=True)
class LotLedger:
    """Per-contribution cost basis with FIFO attribution of harvested gains.

    Lots are never removed. A harvest sells and immediately rebuys part of
    the oldest lots that carry a gain, which raises their basis by the
    realized amount.
    """

    lots: List[Lot] = field(default_factory=list)

    def add(self, month: int, amount: float) -> None:
        self.lots.append(Lot(month=month, amount=amount, basis=amount, value=amount))

    def grow(self, factor: float) -> None:
        for lot in self.lots:
            lot.value *= factor

    @property
    def total_basis(self) -> float:
        return sum(lot.basis for lot in self.lots)

    @property
    def total_value(self) -> float:
        return sum(lot.value for lot in self.lots)

    def harvest(self, amount: float) -> float:
        """Realize up to ``amount`` of gain, oldest lots first.

        Returns the gain actually realized.
        """
        remaining = amount
        for lot in self.lots:
            if remaining <= 0:
                break
            gain = lot.value - lot.basis
            if gain <= 0:
                continue
            step = min(gain, remaining)
            lot.basis += step
            remaining -= step
        return amount - remaining


def _months(years: float) -> int:
    return max(0, round(years * 12))


def _after_tax_real(after_tax_value: float, monthly_return: float, years: float) -> float:
    # Deflated by the projection's own return, not by an external inflation rate
    return after_tax_value / (1 + monthly_return * 12) ** years


def _result(
    strategy: str,
    value: float,
    gains: float,
    tax_paid: float,
    final_tax: float,
    total_harvested: float,
    monthly_return: float,
    years: float,
) -> ETFResult:
    after_tax_value = value - tax_paid - final_tax
    return ETFResult(
        future_value=value,
        gains=gains,
        tax=tax_paid,
        after_tax_value=after_tax_value,
        after_tax_nominal=after_tax_value,
        after_tax_real=_after_tax_real(after_tax_value, monthly_return, years),
        final_tax=final_tax,
        total_harvested=total_harvested,
        strategy=strategy,
    )


def project_no_harvest(initial: float, monthly: float, monthly_return: float, years: float) -> ETFResult:
    value = initial
    total_months = _months(years)
    for _ in range(total_months):
        value = value * (1 + monthly_return) + monthly

    gains = value - initial - monthly * total_months
    final_tax = capital_gains_tax(gains)
    return _result("none", value, gains, 0.0, final_tax, 0.0, monthly_return, years)


def project_full_harvest(initial: float, monthly: float, monthly_return: float, years: float) -> ETFResult:
    """Sell everything at every year end and rebuy at the current value."""
    value = initial
    cost_basis = initial
    total_tax_paid = 0.0
    total_harvested = 0.0
    total_months = _months(years)

    for month in range(1, total_months + 1):
        value = value * (1 + monthly_return)
        if monthly > 0:
            value += monthly
            cost_basis += monthly
        if month % 12:
            continue

        gain = value - cost_basis
        if gain > 0:
            total_tax_paid += capital_gains_tax(gain)
            total_harvested += gain
            cost_basis = value

    gains = value - initial - monthly * total_months
    return _result("full", value, gains, total_tax_paid, 0.0, total_harvested, monthly_return, years)


def project_partial_harvest(initial: float, monthly: float, monthly_return: float, years: float) -> ETFResult:
    """Realize only the tax-free share of the gain at every year end.

    The cost basis shrinks by the fraction of the unrealized gain that was
    harvested. This is an approximation and not per-lot accounting.
    """
    value = initial
    cost_basis = initial
    total_harvested = 0.0
    total_months = _months(years)

    for month in range(1, total_months + 1):
        value = value * (1 + monthly_return)
        if monthly > 0:
            value += monthly
            cost_basis += monthly
        if month % 12:
            continue

        unrealized = value - cost_basis
        if unrealized > 0:
            harvest = min(unrealized, MAX_TAX_FREE_GAIN)
            total_harvested += harvest
            cost_basis = cost_basis * (1 - harvest / unrealized)

    gains = value - initial - monthly * total_months
    final_tax = capital_gains_tax(gains - total_harvested)
    return _result("partial", value, gains, 0.0, final_tax, total_harvested, monthly_return, years)


def project_optimal_harvest(initial: float, monthly: float, monthly_return: float, years: float) -> ETFResult:
    """Harvest the tax-free share every year with FIFO lot accounting.

    Each contribution is a lot. Harvested gain raises the basis of the
    oldest lots still carrying a gain, and that higher basis counts in later
    years, so the same gain is never harvested twice.
    """
    value = initial
    ledger = LotLedger()
    if initial:
        ledger.add(0, initial)
    total_harvested = 0.0
    total_months = _months(years)

    for month in range(1, total_months + 1):
        value = value * (1 + monthly_return)
        ledger.grow(1 + monthly_return)
        if monthly > 0:
            value += monthly
            ledger.add(month, monthly)
        if month % 12:
            continue

        unrealized = value - ledger.total_basis
        if unrealized > 0:
            total_harvested += ledger.harvest(min(unrealized, MAX_TAX_FREE_GAIN))

    gains = value - initial - monthly * total_months
    final_tax = capital_gains_tax(gains - total_harvested)
    return _result("optimal", value, gains, 0.0, final_tax, total_harvested, monthly_return, years)


_STRATEGIES = {
    "none": project_no_harvest,
    "full": project_full_harvest,
    "partial": project_partial_harvest,
    "optimal": project_optimal_harvest,
}


def project_etf(
    initial: float,
    monthly: float,
    annual_return: float,
    years: float,
    strategy: str = "optimal",
) -> ETFResult:
    """Project an ETF savings plan under the given harvesting strategy.

    Parameters
    ----------
    initial: float
        Lump sum invested at the start.
    monthly: float
        Contribution added at the end of every month, after that month's growth.
    annual_return: float
        Expected nominal return in percent per year, compounded monthly.
    years: float
        Length of the projection. Fractional years are rounded to whole
        months, and gains are only harvested at the end of a full year.
    strategy: str
        One of ``none``, ``full``, ``partial`` or ``optimal``. An empty value
        means ``none``.

    Raises
    ------
    ValueError
        If ``strategy`` is not a known strategy.
    """
    monthly_return = annual_return / 100 / 12
    key = strategy or "none"
    if key not in _STRATEGIES:
        raise ValueError(
            f"Unknown harvesting strategy {strategy!r}; expected one of {', '.join(HARVESTING_STRATEGIES)}"
        )
    return _STRATEGIES[key](initial, monthly, monthly_return, years)


def project_all_strategies(initial: float, monthly: float, annual_return: float, years: float) -> Dict[str, ETFResult]:
    return {name: project_etf(initial, monthly, annual_return, years, name) for name in HARVESTING_STRATEGIES}
