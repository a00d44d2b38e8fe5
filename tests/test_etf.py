import pytest

from mortgage_sim.etf import (
    MAX_TAX_FREE_GAIN,
    LotLedger,
    capital_gains_tax,
    project_all_strategies,
    project_etf,
)

# Annual rate that grows a lump sum by exactly 30 % in one year
THIRTY_PERCENT_YEAR = (1.3 ** (1 / 12) - 1) * 1200


def test_capital_gains_tax_applies_exemption_and_allowance():
    assert capital_gains_tax(3_000) == pytest.approx(290.125)
    assert capital_gains_tax(MAX_TAX_FREE_GAIN) == pytest.approx(0, abs=1e-9)
    assert capital_gains_tax(500) == 0
    assert capital_gains_tax(-1_000) == 0


def test_no_growth_means_no_tax():
    result = project_etf(10_000, 0, 0, 1, "none")

    assert result.future_value == 10_000
    assert result.gains == 0
    assert result.final_tax == 0
    assert result.tax == 0
    assert result.after_tax_value == 10_000


def test_hold_strategy_taxes_once_at_the_end():
    result = project_etf(10_000, 0, THIRTY_PERCENT_YEAR, 1, "none")

    assert result.future_value == pytest.approx(13_000)
    assert result.gains == pytest.approx(3_000)
    assert result.final_tax == pytest.approx(290.125)
    assert result.after_tax_value == pytest.approx(12_709.875)
    assert result.tax == 0
    assert result.total_harvested == 0


def test_contributions_are_added_after_growth():
    result = project_etf(0, 100, 12, 1, "none")

    # 100 contributed at the end of month 1 grows for 11 months only
    expected = sum(100 * 1.01 ** k for k in range(12))
    assert result.future_value == pytest.approx(expected)
    assert result.gains == pytest.approx(expected - 1_200)


def test_full_harvest_matches_hold_for_single_year():
    full = project_etf(10_000, 0, THIRTY_PERCENT_YEAR, 1, "full")
    hold = project_etf(10_000, 0, THIRTY_PERCENT_YEAR, 1, "none")

    assert full.tax == pytest.approx(hold.final_tax)
    assert full.final_tax == 0
    assert full.after_tax_value == pytest.approx(hold.after_tax_value)
    assert full.total_harvested == pytest.approx(3_000)


def test_full_harvest_pays_tax_every_year():
    result = project_etf(50_000, 500, 7, 10, "full")

    assert result.tax > 0
    assert result.final_tax == 0
    assert result.after_tax_value == pytest.approx(result.future_value - result.tax)
    assert result.total_harvested == pytest.approx(result.gains)


def test_partial_harvest_never_pays_tax_during_simulation():
    years = 10
    result = project_etf(100_000, 0, 7, years, "partial")

    assert result.tax == 0
    assert result.total_harvested == pytest.approx(years * MAX_TAX_FREE_GAIN)
    assert result.final_tax == pytest.approx(capital_gains_tax(result.gains - result.total_harvested))
    assert result.after_tax_value == pytest.approx(result.future_value - result.final_tax)


def test_partial_harvest_is_bounded_by_allowance():
    years = 15
    for initial, monthly in ((0, 50), (5_000, 0), (20_000, 300)):
        result = project_etf(initial, monthly, 6, years, "partial")
        assert result.tax == 0
        assert result.total_harvested <= years * MAX_TAX_FREE_GAIN + 1e-6


def test_optimal_never_harvests_the_same_gain_twice():
    # Every yearly gain is below the allowance, so FIFO harvesting realizes
    # exactly the total gain. The proportional approximation used by
    # "partial" zeroes the basis after the first year and over-counts.
    optimal = project_etf(10_000, 0, 7, 3, "optimal")
    partial = project_etf(10_000, 0, 7, 3, "partial")

    assert optimal.total_harvested == pytest.approx(optimal.gains)
    assert partial.total_harvested > partial.gains
    assert optimal.future_value == pytest.approx(partial.future_value)
    assert optimal.final_tax == 0


def test_optimal_matches_partial_when_allowance_binds_every_year():
    optimal = project_etf(100_000, 0, 7, 10, "optimal")
    partial = project_etf(100_000, 0, 7, 10, "partial")

    assert optimal.total_harvested == pytest.approx(partial.total_harvested)
    assert optimal.final_tax == pytest.approx(partial.final_tax)


def test_optimal_reduces_terminal_tax_against_holding():
    optimal = project_etf(20_000, 300, 7, 20, "optimal")
    hold = project_etf(20_000, 300, 7, 20, "none")

    assert optimal.tax == 0
    assert optimal.future_value == pytest.approx(hold.future_value)
    assert optimal.final_tax < hold.final_tax
    assert optimal.total_harvested <= 20 * MAX_TAX_FREE_GAIN + 1e-6


def test_after_tax_real_uses_projection_return():
    result = project_etf(10_000, 0, 6, 2, "none")

    assert result.after_tax_real == pytest.approx(result.after_tax_value / 1.06 ** 2)
    assert result.after_tax_nominal == result.after_tax_value


def test_lot_ledger_harvests_oldest_lots_first():
    ledger = LotLedger()
    ledger.add(0, 1_000)
    ledger.add(1, 1_000)
    ledger.grow(1.1)

    assert ledger.harvest(150) == pytest.approx(150)
    assert ledger.lots[0].basis == pytest.approx(1_100)
    assert ledger.lots[1].basis == pytest.approx(1_050)
    assert ledger.harvest(1_000) == pytest.approx(50)
    assert ledger.total_basis == pytest.approx(ledger.total_value)


def test_lot_ledger_skips_lots_without_gain():
    ledger = LotLedger()
    ledger.add(0, 1_000)
    ledger.grow(0.9)
    ledger.add(1, 1_000)
    ledger.grow(1.05)

    assert ledger.harvest(100) == pytest.approx(50)
    assert ledger.lots[0].basis == 1_000


def test_unknown_strategy_is_rejected():
    with pytest.raises(ValueError, match="Unknown harvesting strategy"):
        project_etf(1_000, 0, 5, 1, "yearly")


def test_empty_strategy_falls_back_to_hold():
    assert project_etf(1_000, 10, 5, 3, "").strategy == "none"


def test_all_strategies_tagged_and_repeatable():
    results = project_all_strategies(10_000, 200, 7, 20)

    assert {name: r.strategy for name, r in results.items()} == {
        "none": "none",
        "full": "full",
        "partial": "partial",
        "optimal": "optimal",
    }
    assert results == project_all_strategies(10_000, 200, 7, 20)


@pytest.mark.parametrize("strategy", ["none", "full", "partial", "optimal"])
def test_fractional_years_run_whole_months(strategy):
    result = project_etf(0, 100, 0, 1.5, strategy)

    assert result.future_value == pytest.approx(1_800)
    assert result.gains == pytest.approx(0, abs=1e-9)


def test_fractional_year_is_not_harvested_before_it_ends():
    result = project_etf(10_000, 0, THIRTY_PERCENT_YEAR, 1.5, "full")

    # Only the first full year is realized; the last six months stay unrealized
    assert result.total_harvested == pytest.approx(3_000)
    assert result.future_value > 13_000
