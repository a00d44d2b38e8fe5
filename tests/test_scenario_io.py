import json
import logging

import pytest

from mortgage_sim.comparison import run_workspace
from mortgage_sim.data_models import LoanTerms
from mortgage_sim.engine import amortize
from mortgage_sim.scenario_io import (
    ScenarioImportError,
    comparisons_to_csv,
    export_schedule,
    export_workspace,
    import_workspace,
    schedule_to_csv,
)


def test_import_full_workspace(workspace_dict):
    workspace = import_workspace(json.dumps(workspace_dict))

    assert [o.id for o in workspace.offers] == ["a", "b"]
    offer_b = workspace.offers[1]
    assert offer_b.terms.extra_yearly_limit == 2_000
    assert offer_b.effective_rate == 3.25
    assert workspace.offers[0].terms.extra_yearly_limit is None
    assert workspace.settings.harvesting_strategy == "partial"
    assert workspace.settings.selected_extra_yearly == [0.0, 5_000.0]
    # Options not in the file keep their defaults
    assert workspace.settings.initial_etf_options == [0.0, 10_000.0, 20_000.0, 50_000.0]


def test_export_then_import_preserves_workspace(workspace_dict):
    workspace = import_workspace(json.dumps(workspace_dict))

    assert import_workspace(export_workspace(workspace)) == workspace


def test_bare_array_is_read_as_offers_and_legacy_fields_are_ignored(caplog):
    legacy = [
        {
            "id": "old",
            "name": "Old",
            "loanAmount": 250000,
            "interestRate": 4,
            "monthlyPayment": 1300,
            "extraYearly": 1000,
            "propertyValue": 350000,
            "initialETF": 0,
        },
        {"loanAmount": 100000, "interestRate": 2, "monthlyPayment": 600},
    ]
    with caplog.at_level(logging.WARNING, logger="mortgage_sim.scenario_io"):
        workspace = import_workspace(json.dumps(legacy))

    assert workspace.offers[0].terms == LoanTerms(principal=250_000, annual_rate=4, monthly_payment=1_300)
    assert workspace.offers[1].name == "Imported Scenario 2"
    assert workspace.offers[1].id
    assert "ignoring legacy fields" in caplog.text


def test_missing_field_names_the_scenario(workspace_dict):
    del workspace_dict["scenarios"][1]["loanAmount"]

    with pytest.raises(ScenarioImportError, match=r"scenarios\[1\]: missing required field 'loanAmount'"):
        import_workspace(json.dumps(workspace_dict))


def test_wrong_type_is_reported(workspace_dict):
    workspace_dict["scenarios"][0]["interestRate"] = "3.5"

    with pytest.raises(ScenarioImportError, match=r"scenarios\[0\]\.interestRate: expected a number, got str"):
        import_workspace(json.dumps(workspace_dict))


@pytest.mark.parametrize(
    "key, value, message",
    [
        ("horizonYears", 15, "horizonYears: must be one of 10, 20, 30"),
        ("harvestingStrategy", "yearly", "harvestingStrategy: must be one of"),
        ("selectedMonthlyETF", [100, "x"], r"selectedMonthlyETF\[1\]: expected a number"),
        ("selectedScenarios", ["zzz"], "unknown scenario id"),
        ("scenarios", {"id": "a"}, "expected an array of scenarios"),
    ],
)
def test_invalid_settings_are_reported(workspace_dict, key, value, message):
    workspace_dict[key] = value

    with pytest.raises(ScenarioImportError, match=message):
        import_workspace(json.dumps(workspace_dict))


def test_duplicate_ids_are_rejected(workspace_dict):
    workspace_dict["scenarios"][1]["id"] = "a"

    with pytest.raises(ScenarioImportError, match="duplicate id"):
        import_workspace(json.dumps(workspace_dict))


def test_duplicate_ids_in_bare_array_are_rejected(workspace_dict):
    scenarios = workspace_dict["scenarios"]
    scenarios[1]["id"] = "a"

    with pytest.raises(ScenarioImportError, match="duplicate id"):
        import_workspace(json.dumps(scenarios))


def test_invalid_json_reports_position():
    with pytest.raises(ScenarioImportError, match="Invalid JSON at line 1"):
        import_workspace("{not json")


def test_object_without_scenarios_is_rejected():
    with pytest.raises(ScenarioImportError, match="missing required field 'scenarios'"):
        import_workspace(json.dumps({"horizonYears": 10}))


def test_schedule_csv_has_one_row_per_month():
    loan = LoanTerms(principal=12_000, annual_rate=0, monthly_payment=1_000)
    lines = schedule_to_csv(amortize(loan, 5)).splitlines()

    assert lines[0] == "Year,Month,Balance,Interest,Principal,Extra,Total Payment"
    assert len(lines) == 13
    assert lines[-1] == "1,12,0.0,0.0,1000.0,0.0,1000.0"


def test_export_schedule_by_suffix(tmp_path):
    result = amortize(LoanTerms(principal=12_000, annual_rate=1, monthly_payment=1_100), 2)

    json_path = tmp_path / "schedule.json"
    export_schedule(json_path, result)
    data = json.loads(json_path.read_text(encoding="utf-8"))
    assert data["summary"]["payoff_months"] == len(data["schedule"])

    csv_path = tmp_path / "schedule.csv"
    export_schedule(csv_path, result)
    assert csv_path.read_text(encoding="utf-8").startswith("Year,Month")

    with pytest.raises(ValueError, match="Unsupported output format"):
        export_schedule(tmp_path / "schedule.xlsx", result)


def test_comparison_csv_has_checkpoint_columns(workspace_dict):
    results = run_workspace(import_workspace(json.dumps(workspace_dict)))
    lines = comparisons_to_csv(results, inflation=2.0).splitlines()
    header = lines[0].split(",")

    assert "Net Worth 10y" in header
    assert "Net Worth 20y (real)" in header
    assert "Net Worth 30y" not in header
    assert header[-1] == "Net Worth"
    assert len(lines) == 1 + len(results)
