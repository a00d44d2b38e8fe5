"""Output helpers for the mortgage simulator.

This module renders amortization schedules, ETF projections and scenario
comparisons as plain text tables, and formats amounts the way German users
expect (``10.000 €``). Rounding happens only here, never inside the engines.
"""

from __future__ import annotations

from typing import Dict, Iterable, List

from .data_models import CHECKPOINT_YEARS, AmortizationEntry, AmortizationResult, ComparisonResult, ETFResult


def format_currency(amount: float) -> str:
    """Format an amount as whole euros with German grouping."""
    grouped = f"{amount:,.0f}".replace(",", ".")
    return f"{grouped} €"


def format_percent(value: float, decimals: int = 2) -> str:
    return f"{value:.{decimals}f}%"


def deflate(value: float, inflation: float, years: int) -> float:
    """Express a nominal value in today's money given yearly inflation in percent."""
    return value / (1 + inflation / 100) ** years


def print_amortization_summary(result: AmortizationResult) -> None:
    print("Summary")
    print("-" * 72)
    print(f"Total interest     : {result.total_interest:.2f}")
    print(f"Total principal    : {result.total_principal:.2f}")
    if result.total_extra:
        print(f"Total extra        : {result.total_extra:.2f}")
    print(f"Final balance      : {result.final_balance:.2f}")
    print(f"Months simulated   : {result.payoff_months}")
    print("-" * 72)


def print_schedule(schedule: Iterable[AmortizationEntry]) -> None:
    """Print the amortization schedule as a tab separated table."""
    headers = ["Year", "Month", "Balance", "Interest", "Principal", "Extra", "Total"]
    print("\t".join(headers))
    for entry in schedule:
        row = [
            str(entry.year),
            str(entry.month),
            f"{entry.balance:.2f}",
            f"{entry.interest_payment:.2f}",
            f"{entry.principal_payment:.2f}",
            f"{entry.extra_payment:.2f}",
            f"{entry.total_payment:.2f}",
        ]
        print("\t".join(row))


def print_etf_results(results: Dict[str, ETFResult]) -> None:
    """Print ETF projections side by side, one column per strategy."""
    names = list(results)
    print(f"{'Metric':22s}" + "".join(f"{n:>16s}" for n in names))
    print("=" * (22 + 16 * len(names)))
    rows = [
        ("Future value", "future_value"),
        ("Gains", "gains"),
        ("Tax paid", "tax"),
        ("Tax at end", "final_tax"),
        ("Harvested tax-free", "total_harvested"),
        ("After-tax value", "after_tax_value"),
        ("After-tax real", "after_tax_real"),
    ]
    for label, attr in rows:
        values = "".join(f"{getattr(results[n], attr):16.2f}" for n in names)
        print(f"{label:22s}{values}")


def comparison_rows(results: Iterable[ComparisonResult], inflation: float = 0.0) -> List[Dict[str, object]]:
    """Flatten comparison results into rows with one column group per checkpoint."""
    rows: List[Dict[str, object]] = []
    for result in results:
        combo = result.combination
        row: Dict[str, object] = {
            "ID": combo.id,
            "Name": combo.name,
            "Loan Amount": combo.terms.principal,
            "Interest Rate": combo.terms.annual_rate,
            "Monthly Payment": combo.terms.monthly_payment,
            "Extra Yearly": combo.extra_yearly,
            "Initial ETF": combo.initial_etf,
            "Monthly ETF": combo.monthly_etf,
            "Payoff Years": round(result.payoff_years, 2),
        }
        for year in CHECKPOINT_YEARS:
            cp = result.checkpoint(year)
            if cp is None:
                continue
            row[f"Balance {year}y"] = cp.balance
            row[f"Total Paid {year}y"] = cp.total_paid
            row[f"Total Interest {year}y"] = cp.total_interest
            row[f"Equity {year}y"] = cp.equity
            row[f"ETF Value {year}y"] = cp.etf_value
            row[f"Net Worth {year}y"] = cp.net_worth
            if inflation:
                row[f"Net Worth {year}y (real)"] = deflate(cp.net_worth, inflation, year)
        row["Net Worth"] = result.net_worth
        rows.append(row)
    return rows


def print_comparison(results: List[ComparisonResult], horizon_years: int, inflation: float = 0.0) -> None:
    """Print a ranking of combinations by net worth at the horizon."""
    print(f"Comparison at {horizon_years} years")
    print("=" * 100)
    print(f"{'Scenario':48s} {'Payoff':>8s} {'Balance':>14s} {'ETF':>14s} {'Net worth':>14s}")
    ranked = sorted(results, key=lambda r: r.net_worth, reverse=True)
    for result in ranked:
        final = max(result.checkpoints, key=lambda cp: cp.year, default=None)
        balance = final.balance if final else 0.0
        etf_value = final.etf_value if final else 0.0
        print(
            f"{result.name[:48]:48s} {result.payoff_years:7.1f}y "
            f"{format_currency(balance):>14s} {format_currency(etf_value):>14s} "
            f"{format_currency(result.net_worth):>14s}"
        )
        if inflation and final:
            print(f"{'':48s} {'':8s} {'':14s} {'(real)':>14s} "
                  f"{format_currency(deflate(result.net_worth, inflation, final.year)):>14s}")
    print("=" * 100)
