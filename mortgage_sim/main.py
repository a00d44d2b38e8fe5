"""Command‑line interface for the mortgage simulator.

This module uses the ``click`` library to implement a multi‑command
interface. Users can print an amortization schedule, project an ETF savings
plan under the German tax regime, or compare every combination of the
mortgage offers and options stored in a workspace file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from .comparison import run_workspace
from .data_models import CHECKPOINT_YEARS, HARVESTING_STRATEGIES, LoanTerms, Workspace
from .engine import amortize, payoff_years
from .etf import project_all_strategies, project_etf
from .formatter import print_amortization_summary, print_comparison, print_etf_results, print_schedule
from .scenario_io import ScenarioImportError, comparisons_to_csv, export_schedule, load_workspace, save_workspace
from .utils import parse_amount, parse_number

MAX_PRINTED_ROWS = 120


class AmountType(click.ParamType):
    """Click parameter accepting "400k", "1.000,50" and similar amounts."""

    name = "amount"

    def convert(self, value, param, ctx):
        if isinstance(value, (int, float)):
            return float(value)
        try:
            return parse_amount(value)
        except ValueError:
            self.fail(f"Invalid amount: {value}", param, ctx)


class RateType(click.ParamType):
    """Click parameter for percentages, accepting "3,51" as well as "3.51%"."""

    name = "percent"

    def convert(self, value, param, ctx):
        if isinstance(value, (int, float)):
            return float(value)
        text = str(value).strip()
        if text.endswith("%"):
            text = text[:-1]
        try:
            return parse_number(text)
        except ValueError:
            self.fail(f"Invalid percentage: {value}", param, ctx)


AMOUNT = AmountType()
RATE = RateType()


@click.group()
def cli() -> None:
    """Compare mortgage offers combined with ETF savings plans."""
    pass


@cli.command()
@click.option("--principal", "-p", "principal", required=True, type=AMOUNT, help="Loan amount")
@click.option("--rate", "-r", "rate", required=True, type=RATE, help="Nominal annual interest rate (percent)")
@click.option("--payment", "-m", "payment", required=True, type=AMOUNT, help="Fixed monthly payment")
@click.option("--extra-yearly", "-e", "extra_yearly", type=AMOUNT, default=0.0, help="Extra principal payment every 12th month")
@click.option("--years", "-y", "years", type=click.IntRange(min=1), default=30, show_default=True, help="Years to simulate")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(
    principal: float,
    rate: float,
    payment: float,
    extra_yearly: float,
    years: int,
    output: Optional[str],
) -> None:
    """Compute and print the amortization schedule."""
    loan = LoanTerms(principal=principal, annual_rate=rate, monthly_payment=payment, extra_yearly=extra_yearly)
    result = amortize(loan, years)
    if output:
        path = Path(output)
        if path.suffix.lower() not in (".json", ".csv"):
            raise click.BadParameter("Unsupported output format; use .json or .csv", param_hint="--output")
        export_schedule(path, result)
        click.echo(f"Schedule exported to {path}")
        return

    print_amortization_summary(result)
    if result.final_balance >= 0.01:
        click.echo(f"Loan is not repaid within {years} years.")
    else:
        click.echo(f"Paid off after {payoff_years(loan):.1f} years.")
    if len(result.schedule) > MAX_PRINTED_ROWS:
        click.echo(f"Schedule has {len(result.schedule)} rows; showing first {MAX_PRINTED_ROWS} rows.")
    print_schedule(result.schedule[:MAX_PRINTED_ROWS])


@cli.command()
@click.option("--initial", "-i", "initial", type=AMOUNT, default=0.0, help="Initial lump sum")
@click.option("--monthly", "-m", "monthly", type=AMOUNT, default=0.0, help="Monthly contribution")
@click.option("--return", "-r", "annual_return", type=RATE, default=7.0, show_default=True, help="Expected annual return (percent)")
@click.option("--years", "-y", "years", type=click.IntRange(min=0), default=20, show_default=True)
@click.option(
    "--strategy",
    "strategy",
    type=click.Choice(list(HARVESTING_STRATEGIES) + ["all"]),
    default="all",
    show_default=True,
    help="Tax-gain harvesting strategy",
)
def etf(initial: float, monthly: float, annual_return: float, years: int, strategy: str) -> None:
    """Project an ETF savings plan after German capital-gains tax."""
    if strategy == "all":
        results = project_all_strategies(initial, monthly, annual_return, years)
    else:
        results = {strategy: project_etf(initial, monthly, annual_return, years, strategy)}
    print_etf_results(results)


def _load(path: Path) -> Workspace:
    try:
        return load_workspace(path)
    except ScenarioImportError as exc:
        raise click.ClickException(f"Failed to import {path}: {exc}")


@cli.command()
@click.argument("workspace_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--horizon", "horizon", type=click.Choice([str(y) for y in CHECKPOINT_YEARS]), help="Override the horizon in years")
@click.option("--strategy", "strategy", type=click.Choice(list(HARVESTING_STRATEGIES)), help="Override the harvesting strategy")
@click.option("--property-value", "property_value", type=AMOUNT, help="Override the property value")
@click.option("--etf-return", "etf_return", type=RATE, help="Override the expected ETF return")
@click.option("--output", "output", type=str, help="Write the comparison to a .csv file")
def compare(
    workspace_file: Path,
    horizon: Optional[str],
    strategy: Optional[str],
    property_value: Optional[float],
    etf_return: Optional[float],
    output: Optional[str],
) -> None:
    """Compare all combinations defined in WORKSPACE_FILE."""
    workspace = _load(workspace_file)
    settings = workspace.settings
    if horizon:
        settings.horizon_years = int(horizon)
    if strategy:
        settings.harvesting_strategy = strategy
    if property_value is not None:
        settings.property_value = property_value
    if etf_return is not None:
        settings.etf_return = etf_return

    results = run_workspace(workspace)
    if not results:
        raise click.ClickException("No scenario combinations to compare; add offers or select options.")

    if output:
        path = Path(output)
        if path.suffix.lower() != ".csv":
            raise click.BadParameter("Comparison export must use .csv extension", param_hint="--output")
        path.write_text(comparisons_to_csv(results, settings.inflation), encoding="utf-8")
        click.echo(f"Comparison exported to {path}")
    else:
        print_comparison(results, settings.horizon_years, settings.inflation)


@cli.command()
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--force", is_flag=True, help="Overwrite an existing file")
def template(path: Path, force: bool) -> None:
    """Write an empty workspace with the default settings to PATH."""
    if path.exists() and not force:
        raise click.ClickException(f"{path} already exists; use --force to overwrite")
    save_workspace(path, Workspace())
    click.echo(f"Workspace template written to {path}")


if __name__ == "__main__":
    cli()
