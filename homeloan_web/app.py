import logging
import os
from decimal import Decimal
from io import StringIO
from typing import Any, Dict, Optional

from flask import Blueprint, Flask, Response, current_app, jsonify, render_template, request

from homeloan.data_models import PAYMENT_TERMS, PROPERTY_TYPES, LoanInputs
from homeloan.engine import calculate_with_settings
from homeloan.errors import ConfigurationError, InvalidInputError, LoanCalculatorError
from homeloan.export import VIEWS, render_html_report, result_to_dict, write_csv
from homeloan.formatter import format_currency
from homeloan_web.settings_store import SettingsStore, create_store_from_env

logger = logging.getLogger(__name__)

bp = Blueprint("calculator", __name__)


def _store() -> SettingsStore:
    return current_app.extensions["settings_store"]


def _normalized_view(value) -> str:
    return value if value in VIEWS else "monthly"


def _form_to_inputs(form, settings) -> LoanInputs:
    return LoanInputs.from_mapping(
        {
            "base_price": form.get("price", "").strip(),
            "property_type": form.get("property_type", "lot-only"),
            "lot_price": form.get("lot_price", "").strip(),
            "house_construction_cost": form.get("construction_cost", "").strip(),
            "financing_option": form.get("financing_option", "").strip(),
            "payment_term_years": form.get("term", "").strip(),
            "start_date": form.get("start_date", "").strip(),
        },
        default_financing_option=settings.default_financing_option,
        default_payment_term=settings.default_payment_term,
    )


def _run_calculation(form):
    settings = _store().get_settings()
    inputs = _form_to_inputs(form, settings)
    return calculate_with_settings(inputs, settings)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInputError("Request body must be a JSON object")
    return data


def _settings_body() -> Dict[str, Any]:
    """The settings document, bare or wrapped as ``{"settings": {...}}``."""
    data = _json_body()
    settings = data.get("settings", data)
    if not isinstance(settings, dict):
        raise InvalidInputError("'settings' must be a JSON object")
    return settings


@bp.errorhandler(InvalidInputError)
def _invalid_input(exc):
    return jsonify({"success": False, "error": exc.message, "details": exc.details}), 400


@bp.errorhandler(ConfigurationError)
def _configuration_error(exc):
    logger.warning("Calculator configuration error: %s", exc)
    return jsonify({"success": False, "error": exc.message, "details": exc.details}), 422


@bp.route("/", methods=["GET", "POST"])
def index():
    result = None
    error = None
    form = request.form if request.method == "POST" else {}
    view = _normalized_view(request.form.get("view", "monthly"))
    settings = _store().get_settings()

    if request.method == "POST":
        try:
            result = result_to_dict(_run_calculation(request.form), view)
        except LoanCalculatorError as exc:
            logger.info("Rejected calculator input: %s", exc)
            error = exc.message

    return render_template(
        "index.html",
        result=result,
        error=error,
        form=form,
        view=view,
        property_types=PROPERTY_TYPES,
        payment_terms=PAYMENT_TERMS,
        financing_options=settings.active_financing_options(),
        default_financing_option=settings.default_financing_option,
        default_payment_term=settings.default_payment_term,
        asset_version=current_app.config["ASSET_VERSION"],
    )


@bp.post("/api/loan-calculator")
def calculate_api():
    data = _json_body()
    settings = _store().get_settings()
    inputs = LoanInputs.from_mapping(data, settings.default_financing_option, settings.default_payment_term)
    result = calculate_with_settings(inputs, settings)
    return jsonify({"success": True, "result": result_to_dict(result, _normalized_view(data.get("view")))})


@bp.get("/api/loan-calculator/settings")
def get_settings():
    return jsonify(_store().get_settings_dict())


@bp.post("/api/loan-calculator/settings")
def save_settings():
    document = _store().save_settings(_settings_body())
    return jsonify({"success": True, "settings": document})


@bp.put("/api/loan-calculator/settings")
def update_settings():
    document = _store().update_settings(_settings_body())
    return jsonify({"success": True, "settings": document})


@bp.post("/api/loan-calculator/settings/reset")
def reset_settings():
    document = _store().reset_settings()
    return jsonify({"success": True, "message": "Settings reset to default", "settings": document})


@bp.post("/export/csv")
def export_csv():
    result = _run_calculation(request.form)
    view = _normalized_view(request.form.get("view"))
    buffer = StringIO()
    write_csv(buffer, result, view)
    return Response(
        buffer.getvalue(),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename=amortization_schedule_{view}.csv"},
    )


@bp.post("/export/html")
def export_html():
    result = _run_calculation(request.form)
    name = request.form.get("property_name", "").strip() or None
    view = _normalized_view(request.form.get("view"))
    return Response(render_html_report(result, name, view), mimetype="text/html")


def _currency_filter(value) -> str:
    if value is None:
        return "-"
    return format_currency(Decimal(str(value)))


def create_app(settings_store: Optional[SettingsStore] = None) -> Flask:
    app = Flask(__name__)
    app.config["ASSET_VERSION"] = os.environ.get("ASSET_VERSION", "1")
    app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    app.extensions["settings_store"] = settings_store or create_store_from_env(
        os.environ.get("SETTINGS_DATABASE_URL")
    )
    app.add_template_filter(_currency_filter, "currency")
    app.register_blueprint(bp)
    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print("Starting loan calculator web app...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)
