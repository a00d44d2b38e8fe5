"""Core amortization engine for the mortgage simulator.

This module simulates a fixed-payment loan month by month. An optional extra
principal payment (Sondertilgung) is applied every twelfth month. Results are
returned as an ``AmortizationResult`` holding the schedule and its totals.
The functions are pure: identical inputs always produce identical output.
"""

from __future__ import annotations

from typing import List

from .data_models import AmortizationEntry, AmortizationResult, LoanTerms

PAYOFF_EPSILON = 0.01  # balances below this count as fully repaid
PAYOFF_HORIZON_YEARS = 50  # bound for payoff queries on loans that never amortize
BALANCE_LOOKAHEAD_YEARS = 5


def amortize(loan: LoanTerms, horizon_years: int = 30) -> AmortizationResult:
    """Compute the amortization schedule of a loan.

    Parameters
    ----------
    loan: LoanTerms
        The loan terms. ``extra_yearly`` is applied as-is; any lender limit
        must already have been resolved by the caller.
    horizon_years: int
        Maximum number of years to simulate.

    Returns
    -------
    AmortizationResult
        One entry per simulated month. The schedule stops early at the first
        month the balance drops below ``PAYOFF_EPSILON``. A payment that does
        not cover the interest produces a growing balance over the whole
        horizon.
    """
    rate_per_month = loan.monthly_rate
    total_months = horizon_years * 12
    extra_yearly = loan.extra_yearly or 0.0

    schedule: List[AmortizationEntry] = []
    balance = loan.principal
    total_interest = 0.0
    total_principal = 0.0
    total_extra = 0.0

    month = 1
    while month <= total_months and balance > PAYOFF_EPSILON:
        interest_payment = balance * rate_per_month
        principal_payment = loan.monthly_payment - interest_payment

        # Extra payment falls on every twelfth month of the loan
        extra_payment = 0.0
        if month % 12 == 0 and extra_yearly > 0:
            extra_payment = min(extra_yearly, balance)
            total_extra += extra_payment

        # The extra payment wins when the final installment would overpay
        if principal_payment + extra_payment > balance:
            principal_payment = balance - extra_payment

        balance = max(0.0, balance - principal_payment - extra_payment)
        total_interest += interest_payment
        total_principal += principal_payment + extra_payment

        schedule.append(
            AmortizationEntry(
                month=month,
                year=(month + 11) // 12,
                balance=balance,
                interest_payment=interest_payment,
                principal_payment=principal_payment,
                extra_payment=extra_payment,
                total_payment=loan.monthly_payment + extra_payment,
            )
        )

        if balance < PAYOFF_EPSILON:
            break
        month += 1

    return AmortizationResult(
        schedule=schedule,
        total_interest=total_interest,
        total_principal=total_principal,
        total_extra=total_extra,
        final_balance=schedule[-1].balance if schedule else 0.0,
        payoff_months=len(schedule),
    )


def balance_at_year(loan: LoanTerms, target_year: int) -> float:
    """Return the remaining balance at the end of ``target_year``.

    The simulation runs a few years past the target so the target month is
    always covered unless the loan was repaid earlier, in which case the last
    schedule entry is used.
    """
    result = amortize(loan, target_year + BALANCE_LOOKAHEAD_YEARS)
    if not result.schedule:
        return 0.0
    target_month = target_year * 12
    for entry in result.schedule:
        if entry.month == target_month:
            return entry.balance
    return result.schedule[-1].balance


def payoff_months(loan: LoanTerms) -> int:
    return amortize(loan, PAYOFF_HORIZON_YEARS).payoff_months


def payoff_years(loan: LoanTerms) -> float:
    """Years until the loan is repaid, capped at ``PAYOFF_HORIZON_YEARS``."""
    return payoff_months(loan) / 12


def total_paid(loan: LoanTerms, years: int) -> float:
    """Total interest and principal (including extra payments) over ``years``."""
    result = amortize(loan, years)
    return result.total_principal + result.total_interest
