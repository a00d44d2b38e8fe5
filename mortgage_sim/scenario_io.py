"""Import and export of mortgage offers, settings and schedules.

Workspaces are stored as JSON using the camelCase keys of the web
front end. Imports are validated field by field so that a broken file is
reported as, for example, ``scenarios[1]: missing required field
'loanAmount'`` instead of a generic parse failure.
"""

from __future__ import annotations

import csv
import io
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from .data_models import (
    CHECKPOINT_YEARS,
    HARVESTING_STRATEGIES,
    AmortizationResult,
    ComparisonResult,
    LoanTerms,
    MortgageOffer,
    SimulationSettings,
    Workspace,
)
from .formatter import comparison_rows

logger = logging.getLogger(__name__)

SCHEDULE_HEADERS = ["Year", "Month", "Balance", "Interest", "Principal", "Extra", "Total Payment"]

# Fields older exports kept on every scenario before ETF and property
# inputs moved into the global settings.
_LEGACY_OFFER_FIELDS = {
    "extraYearly",
    "propertyValue",
    "initialETF",
    "monthlyETF",
    "etfReturn",
    "inflation",
}

_SETTINGS_LISTS = {
    "initialETFOptions": "initial_etf_options",
    "monthlyETFOptions": "monthly_etf_options",
    "extraYearlyOptions": "extra_yearly_options",
    "selectedInitialETF": "selected_initial_etf",
    "selectedMonthlyETF": "selected_monthly_etf",
    "selectedExtraYearly": "selected_extra_yearly",
}


class ScenarioImportError(ValueError):
    """Raised when imported data does not have the expected structure."""


def _number(data: Dict[str, Any], key: str, path: str, *, required: bool = True, default: Optional[float] = None):
    if key not in data or data[key] is None:
        if required:
            raise ScenarioImportError(f"{path}: missing required field '{key}'")
        return default
    value = data[key]
    # bool is an int subclass but never a valid amount
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ScenarioImportError(f"{path}.{key}: expected a number, got {type(value).__name__}")
    return float(value)


def _number_list(data: Dict[str, Any], key: str, path: str) -> Optional[List[float]]:
    if key not in data:
        return None
    value = data[key]
    if not isinstance(value, list):
        raise ScenarioImportError(f"{path}{key}: expected a list of numbers")
    numbers = []
    for index, item in enumerate(value):
        if isinstance(item, bool) or not isinstance(item, (int, float)):
            raise ScenarioImportError(f"{path}{key}[{index}]: expected a number, got {type(item).__name__}")
        numbers.append(float(item))
    return numbers


def offer_from_dict(data: Any, index: int = 0) -> MortgageOffer:
    path = f"scenarios[{index}]"
    if not isinstance(data, dict):
        raise ScenarioImportError(f"{path}: expected an object, got {type(data).__name__}")

    legacy = sorted(_LEGACY_OFFER_FIELDS & data.keys())
    if legacy:
        logger.warning("%s: ignoring legacy fields %s", path, ", ".join(legacy))

    offer_id = data.get("id") or uuid4().hex
    if not isinstance(offer_id, str):
        raise ScenarioImportError(f"{path}.id: expected a string, got {type(offer_id).__name__}")
    name = data.get("name")
    if name is None:
        name = f"Imported Scenario {index + 1}"
    elif not isinstance(name, str):
        raise ScenarioImportError(f"{path}.name: expected a string, got {type(name).__name__}")

    terms = LoanTerms(
        principal=_number(data, "loanAmount", path),
        annual_rate=_number(data, "interestRate", path),
        monthly_payment=_number(data, "monthlyPayment", path),
        extra_yearly_limit=_number(data, "extraYearlyLimit", path, required=False),
    )
    return MortgageOffer(
        id=offer_id,
        name=name,
        terms=terms,
        effective_rate=_number(data, "effectiveInterestRate", path, required=False),
    )


def offer_to_dict(offer: MortgageOffer) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": offer.id,
        "name": offer.name,
        "loanAmount": offer.terms.principal,
        "interestRate": offer.terms.annual_rate,
        "monthlyPayment": offer.terms.monthly_payment,
    }
    if offer.terms.extra_yearly_limit is not None:
        data["extraYearlyLimit"] = offer.terms.extra_yearly_limit
    if offer.effective_rate is not None:
        data["effectiveInterestRate"] = offer.effective_rate
    return data


def settings_from_dict(data: Dict[str, Any]) -> SimulationSettings:
    settings = SimulationSettings()

    if "horizonYears" in data:
        horizon = data["horizonYears"]
        if isinstance(horizon, bool) or horizon not in CHECKPOINT_YEARS:
            raise ScenarioImportError(
                f"horizonYears: must be one of {', '.join(str(y) for y in CHECKPOINT_YEARS)}, got {horizon!r}"
            )
        settings.horizon_years = int(horizon)
    if "harvestingStrategy" in data:
        strategy = data["harvestingStrategy"]
        if strategy not in HARVESTING_STRATEGIES:
            raise ScenarioImportError(
                f"harvestingStrategy: must be one of {', '.join(HARVESTING_STRATEGIES)}, got {strategy!r}"
            )
        settings.harvesting_strategy = strategy

    for key, attr in (("propertyValue", "property_value"), ("etfReturn", "etf_return"), ("inflation", "inflation")):
        value = _number(data, key, "workspace", required=False)
        if value is not None:
            setattr(settings, attr, value)

    for key, attr in _SETTINGS_LISTS.items():
        values = _number_list(data, key, "")
        if values is not None:
            setattr(settings, attr, values)

    if "selectedScenarios" in data:
        selected = data["selectedScenarios"]
        if not isinstance(selected, list) or not all(isinstance(s, str) for s in selected):
            raise ScenarioImportError("selectedScenarios: expected a list of scenario ids")
        settings.selected_scenarios = list(selected)
    return settings


def settings_to_dict(settings: SimulationSettings) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "horizonYears": settings.horizon_years,
        "harvestingStrategy": settings.harvesting_strategy,
        "propertyValue": settings.property_value,
        "etfReturn": settings.etf_return,
        "inflation": settings.inflation,
    }
    for key, attr in _SETTINGS_LISTS.items():
        data[key] = list(getattr(settings, attr))
    data["selectedScenarios"] = list(settings.selected_scenarios)
    return data


def _offers_from_list(items: List[Any]) -> List[MortgageOffer]:
    offers = [offer_from_dict(item, i) for i, item in enumerate(items)]
    ids = [o.id for o in offers]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ScenarioImportError(f"scenarios: duplicate id(s) {', '.join(duplicates)}")
    return offers


def workspace_from_data(data: Any) -> Workspace:
    """Build a workspace from decoded JSON.

    A bare list is accepted as a list of offers with default settings.
    """
    if isinstance(data, list):
        return Workspace(offers=_offers_from_list(data))
    if not isinstance(data, dict):
        raise ScenarioImportError(
            f"Invalid format: expected an object or an array of scenarios, got {type(data).__name__}"
        )
    if "scenarios" not in data:
        raise ScenarioImportError("workspace: missing required field 'scenarios'")
    scenarios = data["scenarios"]
    if not isinstance(scenarios, list):
        raise ScenarioImportError("scenarios: expected an array of scenarios")

    offers = _offers_from_list(scenarios)
    ids = {o.id for o in offers}
    settings = settings_from_dict(data)
    unknown = [s for s in settings.selected_scenarios if s not in ids]
    if unknown:
        raise ScenarioImportError(f"selectedScenarios: unknown scenario id(s) {', '.join(unknown)}")
    return Workspace(offers=offers, settings=settings)


def workspace_to_data(workspace: Workspace) -> Dict[str, Any]:
    data = {"scenarios": [offer_to_dict(o) for o in workspace.offers]}
    data.update(settings_to_dict(workspace.settings))
    return data


def import_workspace(text: str) -> Workspace:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ScenarioImportError(f"Invalid JSON at line {exc.lineno}, column {exc.colno}: {exc.msg}") from exc
    return workspace_from_data(data)


def export_workspace(workspace: Workspace) -> str:
    return json.dumps(workspace_to_data(workspace), indent=2)


def load_workspace(path: Path) -> Workspace:
    return import_workspace(path.read_text(encoding="utf-8"))


def save_workspace(path: Path, workspace: Workspace) -> None:
    path.write_text(export_workspace(workspace), encoding="utf-8")


def _schedule_rows(result: AmortizationResult) -> List[Dict[str, Any]]:
    return [
        {
            "Year": e.year,
            "Month": e.month,
            "Balance": e.balance,
            "Interest": e.interest_payment,
            "Principal": e.principal_payment,
            "Extra": e.extra_payment,
            "Total Payment": e.total_payment,
        }
        for e in result.schedule
    ]


def _to_csv(rows: List[Dict[str, Any]], headers: List[str]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=headers, lineterminator="\n", restval="")
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


def schedule_to_csv(result: AmortizationResult) -> str:
    return _to_csv(_schedule_rows(result), SCHEDULE_HEADERS)


def schedule_to_json(result: AmortizationResult) -> str:
    summary = {
        "total_interest": result.total_interest,
        "total_principal": result.total_principal,
        "total_extra": result.total_extra,
        "final_balance": result.final_balance,
        "payoff_months": result.payoff_months,
    }
    return json.dumps({"summary": summary, "schedule": _schedule_rows(result)}, indent=2)


def export_schedule(path: Path, result: AmortizationResult) -> None:
    """Write a schedule to ``path`` as JSON or CSV depending on its suffix."""
    suffix = path.suffix.lower()
    if suffix == ".json":
        content = schedule_to_json(result)
    elif suffix == ".csv":
        content = schedule_to_csv(result)
    else:
        raise ValueError("Unsupported output format; use .json or .csv")
    path.write_text(content, encoding="utf-8")


def comparisons_to_csv(results: List[ComparisonResult], inflation: float = 0.0) -> str:
    rows = comparison_rows(results, inflation)
    headers: List[str] = []
    for row in rows:
        for key in row:
            if key not in headers:
                headers.append(key)
    # Keep the overall figure in the last column
    if "Net Worth" in headers:
        headers.remove("Net Worth")
        headers.append("Net Worth")
    return _to_csv(rows, headers)
