"""Scenario combinations and net-worth comparison.

Mortgage offers are expanded into combinations with the selected ETF and
extra-payment amounts, and every combination is evaluated at the fixed
checkpoint years. Nothing is cached; each call recomputes its projections
from the inputs it is given.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Optional, Sequence

from .data_models import (
    CHECKPOINT_YEARS,
    Checkpoint,
    ComparisonResult,
    MortgageOffer,
    ScenarioCombination,
    Workspace,
)
from .engine import amortize, balance_at_year, payoff_years
from .etf import project_etf
from .formatter import format_currency
from .utils import format_plain_number


def _combination_name(offer: MortgageOffer, initial_etf: float, monthly_etf: float, extra_yearly: float) -> str:
    parts = [offer.name]
    if initial_etf > 0:
        parts.append(f"ETF: {format_currency(initial_etf)}")
    if monthly_etf > 0:
        parts.append(f"Monthly: {format_currency(monthly_etf)}")
    if extra_yearly > 0:
        parts.append(f"Extra: {format_currency(extra_yearly)}")
    return " | ".join(parts)


def _combination_id(offer: MortgageOffer, initial_etf: float, monthly_etf: float, extra_yearly: float) -> str:
    values = (format_plain_number(v) for v in (initial_etf, monthly_etf, extra_yearly))
    return "-".join([offer.id, *values])


def generate_combinations(
    offers: Iterable[MortgageOffer],
    initial_etf_options: Sequence[float],
    monthly_etf_options: Sequence[float],
    extra_yearly_options: Sequence[float],
) -> List[ScenarioCombination]:
    """Return the cross-product of offers and the three option sets.

    Combinations whose extra yearly payment exceeds the offer's
    ``extra_yearly_limit`` are skipped.
    """
    combinations: List[ScenarioCombination] = []
    for offer in offers:
        limit = offer.terms.extra_yearly_limit
        for initial_etf in initial_etf_options:
            for monthly_etf in monthly_etf_options:
                for extra_yearly in extra_yearly_options:
                    if limit is not None and extra_yearly > limit:
                        continue
                    combinations.append(
                        ScenarioCombination(
                            id=_combination_id(offer, initial_etf, monthly_etf, extra_yearly),
                            base_scenario_id=offer.id,
                            name=_combination_name(offer, initial_etf, monthly_etf, extra_yearly),
                            terms=replace(offer.terms, extra_yearly=extra_yearly),
                            initial_etf=initial_etf,
                            monthly_etf=monthly_etf,
                        )
                    )
    return combinations


def checkpoint_years(horizon_years: int) -> List[int]:
    return [year for year in CHECKPOINT_YEARS if year <= horizon_years]


def _checkpoint(
    combination: ScenarioCombination,
    year: int,
    property_value: float,
    etf_return: float,
    strategy: str,
) -> Checkpoint:
    balance = balance_at_year(combination.terms, year)
    truncated = amortize(combination.terms, year)
    etf = project_etf(combination.initial_etf, combination.monthly_etf, etf_return, year, strategy)
    equity = property_value - balance
    return Checkpoint(
        year=year,
        balance=balance,
        total_paid=truncated.total_interest + truncated.total_principal,
        total_interest=truncated.total_interest,
        equity=equity,
        etf_value=etf.after_tax_value,
        net_worth=equity + etf.after_tax_value,
    )


def final_checkpoint(checkpoints: Sequence[Checkpoint], horizon_years: int) -> Optional[Checkpoint]:
    """The checkpoint at the horizon, or the closest one before it."""
    candidates = [cp for cp in checkpoints if cp.year <= horizon_years]
    if not candidates:
        return None
    return max(candidates, key=lambda cp: cp.year)


def compare_scenarios(
    combinations: Iterable[ScenarioCombination],
    property_value: float,
    etf_return: float,
    horizon_years: int = 20,
    strategy: str = "optimal",
) -> List[ComparisonResult]:
    """Evaluate every combination at the checkpoint years up to the horizon.

    Parameters
    ----------
    combinations: Iterable[ScenarioCombination]
        Output of :func:`generate_combinations`.
    property_value: float
        Value of the property, used for equity at every checkpoint.
    etf_return: float
        Expected ETF return in percent per year.
    horizon_years: int
        Comparison horizon, normally 10, 20 or 30.
    strategy: str
        Harvesting strategy applied to every ETF projection.

    Returns
    -------
    List[ComparisonResult]
        One result per combination, in input order. ``net_worth`` is taken
        from the checkpoint selected by :func:`final_checkpoint` and is 0 when
        the horizon is shorter than the first checkpoint.
    """
    results: List[ComparisonResult] = []
    for combination in combinations:
        checkpoints = tuple(
            _checkpoint(combination, year, property_value, etf_return, strategy)
            for year in checkpoint_years(horizon_years)
        )
        final = final_checkpoint(checkpoints, horizon_years)
        results.append(
            ComparisonResult(
                combination=combination,
                payoff_years=payoff_years(combination.terms),
                etf_details=project_etf(
                    combination.initial_etf, combination.monthly_etf, etf_return, horizon_years, strategy
                ),
                checkpoints=checkpoints,
                net_worth=final.net_worth if final else 0.0,
            )
        )
    return results


def run_workspace(workspace: Workspace) -> List[ComparisonResult]:
    """Generate combinations for the selected offers and compare them."""
    settings = workspace.settings
    combinations = generate_combinations(
        workspace.selected_offers(),
        settings.selected_initial_etf,
        settings.selected_monthly_etf,
        settings.selected_extra_yearly,
    )
    return compare_scenarios(
        combinations,
        settings.property_value,
        settings.etf_return,
        settings.horizon_years,
        settings.harvesting_strategy,
    )
