import json
import os
from uuid import uuid4

from flask import Flask, Response, redirect, render_template, request, session, url_for

from mortgage_sim.comparison import run_workspace
from mortgage_sim.data_models import CHECKPOINT_YEARS, HARVESTING_STRATEGIES, LoanTerms, MortgageOffer
from mortgage_sim.formatter import deflate, format_currency, format_percent
from mortgage_sim.scenario_io import export_workspace, import_workspace
from mortgage_sim.utils import format_plain_number, parse_amount, parse_number, parse_number_list
from mortgage_sim_web.offer_store import create_store_from_env

app = Flask(__name__)
app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
offer_store = create_store_from_env(os.environ.get("MORTGAGE_SIM_DATABASE_URL"))

app.jinja_env.filters["currency"] = format_currency
app.jinja_env.filters["percent"] = format_percent


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _optional_amount(form, key):
    value = form.get(key, "").strip()
    return parse_amount(value) if value else None


def _form_to_offer(form) -> MortgageOffer:
    name = form.get("name", "").strip() or "Offer"
    principal = parse_amount(form.get("loan_amount", ""))
    if principal <= 0:
        raise ValueError("Loan amount must be positive")
    terms = LoanTerms(
        principal=principal,
        annual_rate=parse_number(form.get("interest_rate", "")),
        monthly_payment=parse_amount(form.get("monthly_payment", "")),
        extra_yearly_limit=_optional_amount(form, "extra_yearly_limit"),
    )
    effective = form.get("effective_rate", "").strip()
    return MortgageOffer(
        id=uuid4().hex,
        name=name,
        terms=terms,
        effective_rate=parse_number(effective) if effective else None,
    )


def _field(form, key, current, parse, render):
    """Parse ``form[key]``, keeping ``current`` when the field was sent back unchanged.

    Rendered values such as ``6.375`` would otherwise be read back with the
    period as a thousands separator.
    """
    text = form.get(key)
    if text is None or text.strip() == render(current):
        return current
    return parse(text)


def _number_list_or_zero(text):
    return parse_number_list(text) or [0.0]


def _apply_settings_form(settings, form, offer_ids):
    horizon = int(form.get("horizon_years", settings.horizon_years))
    if horizon not in CHECKPOINT_YEARS:
        raise ValueError(f"Horizon must be one of {', '.join(str(y) for y in CHECKPOINT_YEARS)} years")
    strategy = form.get("harvesting_strategy", settings.harvesting_strategy)
    if strategy not in HARVESTING_STRATEGIES:
        raise ValueError(f"Unknown harvesting strategy: {strategy}")
    settings.horizon_years = horizon
    settings.harvesting_strategy = strategy
    settings.property_value = _field(form, "property_value", settings.property_value, parse_amount, format_plain_number)
    settings.etf_return = _field(form, "etf_return", settings.etf_return, parse_number, format_plain_number)
    settings.inflation = _field(form, "inflation", settings.inflation, parse_number, format_plain_number)
    for key in ("selected_initial_etf", "selected_monthly_etf", "selected_extra_yearly"):
        setattr(settings, key, _field(form, key, getattr(settings, key), _number_list_or_zero, _list_field))
    settings.selected_scenarios = [sid for sid in form.getlist("selected_scenarios") if sid in offer_ids]
    return settings


def _list_field(values) -> str:
    return "; ".join(format_plain_number(v) for v in values)


def _render(user_token: str, error=None, results=None):
    workspace = offer_store.load_workspace(user_token)
    settings = workspace.settings
    if results is None and error is None and workspace.offers:
        try:
            results = run_workspace(workspace)
        except ValueError as exc:
            app.logger.warning("Comparison failed: %s", exc)
            error = str(exc)
    ranked = sorted(results or [], key=lambda r: r.net_worth, reverse=True)
    return render_template(
        "index.html",
        offers=workspace.offers,
        settings=settings,
        selected_ids=set(settings.selected_scenarios),
        results=ranked,
        checkpoint_years=[y for y in CHECKPOINT_YEARS if y <= settings.horizon_years],
        strategies=HARVESTING_STRATEGIES,
        horizons=CHECKPOINT_YEARS,
        list_field=_list_field,
        deflate=deflate,
        error=error,
    )


@app.route("/", methods=["GET", "POST"])
def index():
    user_token = _ensure_user_token()
    if request.method == "POST":
        workspace = offer_store.load_workspace(user_token)
        try:
            settings = _apply_settings_form(
                workspace.settings, request.form, {o.id for o in workspace.offers}
            )
        except ValueError as exc:
            app.logger.warning("Rejected settings: %s", exc)
            return _render(user_token, error=str(exc))
        offer_store.save_settings(user_token, settings)
    return _render(user_token)


@app.post("/offers/add")
def add_offer():
    user_token = _ensure_user_token()
    try:
        offer = _form_to_offer(request.form)
    except ValueError as exc:
        app.logger.warning("Rejected offer: %s", exc)
        return _render(user_token, error=str(exc))
    offer_store.add_offer(user_token, offer)
    settings = offer_store.load_settings(user_token)
    # An empty selection already includes every offer
    if settings.selected_scenarios:
        settings.selected_scenarios.append(offer.id)
        offer_store.save_settings(user_token, settings)
    return redirect(url_for("index"))


@app.post("/offers/remove")
def remove_offer():
    user_token = session.get("user_token")
    offer_id = request.form.get("offer_id")
    offer_store.remove_offer(user_token, offer_id)
    settings = offer_store.load_settings(user_token)
    if offer_id in settings.selected_scenarios:
        settings.selected_scenarios.remove(offer_id)
        offer_store.save_settings(user_token, settings)
    return redirect(url_for("index"))


@app.post("/offers/clear")
def clear_offers():
    user_token = session.get("user_token")
    offer_store.clear_offers(user_token)
    settings = offer_store.load_settings(user_token)
    settings.selected_scenarios = []
    offer_store.save_settings(user_token, settings)
    return redirect(url_for("index"))


@app.get("/export")
def export():
    user_token = _ensure_user_token()
    payload = export_workspace(offer_store.load_workspace(user_token))
    return Response(
        payload,
        mimetype="application/json",
        headers={"Content-Disposition": "attachment; filename=mortgage-scenarios.json"},
    )


@app.post("/import")
def import_():
    user_token = _ensure_user_token()
    upload = request.files.get("workspace_file")
    if upload is None or not upload.filename:
        return _render(user_token, error="Choose a JSON file to import")
    try:
        workspace = import_workspace(upload.read().decode("utf-8"))
        offer_store.replace_workspace(user_token, workspace)
    except (UnicodeDecodeError, ValueError) as exc:
        app.logger.warning("Import failed: %s", exc)
        return _render(user_token, error=f"Failed to import scenarios: {exc}")
    app.logger.info("Imported %d offers", len(workspace.offers))
    return redirect(url_for("index"))


@app.get("/api/comparison")
def comparison_json():
    user_token = _ensure_user_token()
    results = run_workspace(offer_store.load_workspace(user_token))
    payload = [
        {
            "id": r.id,
            "name": r.name,
            "payoffYears": r.payoff_years,
            "etfValue": r.etf_value,
            "netWorth": r.net_worth,
            "checkpoints": [
                {
                    "year": cp.year,
                    "balance": cp.balance,
                    "totalPaid": cp.total_paid,
                    "totalInterest": cp.total_interest,
                    "equity": cp.equity,
                    "etfValue": cp.etf_value,
                    "netWorth": cp.net_worth,
                }
                for cp in r.checkpoints
            ],
        }
        for r in results
    ]
    return Response(json.dumps(payload), mimetype="application/json")


if __name__ == "__main__":
    print("Starting mortgage simulator web app...")
    app.run(host="0.0.0.0", port=8710, debug=True)
