"""Calculator settings: documented defaults and (de)serialisation.

Settings travel as JSON between the admin screens, the settings store and
the CLI. The dictionary format uses the camelCase keys of the web client;
snake_case keys are accepted as well. Any section or field missing from a
document falls back to the default value, so a partial document is always
usable.
"""

from __future__ import annotations

import json
import logging
import os
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .data_models import (
    PAYMENT_TERMS,
    ConstructionFeesConfig,
    FinancingOption,
    GovernmentFeesConfig,
    LoanCalculatorSettings,
    ReservationFeeConfig,
    SpecialDownPaymentRule,
)
from .errors import ConfigurationError, InvalidInputError
from .utils import to_decimal

logger = logging.getLogger(__name__)

SETTINGS_FILE_ENV = "HOMELOAN_SETTINGS_FILE"


def _rates(terms, rate: str) -> Dict[int, Decimal]:
    return {term: Decimal(rate) for term in terms}


DEFAULT_FINANCING_OPTIONS = (
    FinancingOption(
        value="in-house",
        name="In-House Financing",
        interest_rates={5: Decimal("8.5"), 10: Decimal("9.5"), 15: Decimal("10.5")},
        available_terms=(5, 10, 15),
        description="Developer-financed loan",
    ),
    FinancingOption(
        value="in-house-bridge",
        name="In-House Bridge Financing",
        interest_rates=_rates((5, 10, 15), "8.5"),
        available_terms=(5, 10, 15),
        description="Bridge financing until a Pag-IBIG or bank loan is released",
    ),
    FinancingOption(
        value="pag-ibig",
        name="Pag-IBIG",
        interest_rates=_rates(PAYMENT_TERMS, "6.25"),
        available_terms=PAYMENT_TERMS,
        description="Pag-IBIG Fund housing loan",
    ),
    FinancingOption(
        value="bank",
        name="Bank Financing",
        interest_rates=_rates((5, 10, 15), "7.5"),
        available_terms=(5, 10, 15),
        description="Partner bank housing loan",
    ),
)

DEFAULT_SETTINGS = LoanCalculatorSettings(financing_options=DEFAULT_FINANCING_OPTIONS)


def _get(section: Mapping[str, Any], camel: str, snake: str, default: Any) -> Any:
    if camel in section:
        return section[camel]
    return section.get(snake, default)


def _section(data: Mapping[str, Any], *keys: str) -> Mapping[str, Any]:
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if not isinstance(value, Mapping):
            raise ConfigurationError(f"Settings section '{key}' must be an object")
        return value
    return {}


def _decimal(section: Mapping[str, Any], camel: str, snake: str, default: Decimal) -> Decimal:
    return to_decimal(_get(section, camel, snake, default), snake)


_TRUE_STRINGS = ("true", "1", "yes", "on")
_FALSE_STRINGS = ("false", "0", "no", "off")


def _flag(section: Mapping[str, Any], camel: str, snake: str, default: Any = True) -> bool:
    """Read a boolean; ``"false"`` and ``0`` are false, anything unrecognised is an error."""
    value = _get(section, camel, snake, default)
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise ConfigurationError(f"Setting '{snake}' must be true or false, got {value!r}")


def _financing_option_from_dict(data: Mapping[str, Any]) -> FinancingOption:
    value = data.get("value") or data.get("id")
    if not value:
        raise ConfigurationError("Financing option is missing its 'value'")
    raw_rates = _get(data, "interestRates", "interest_rates", {}) or {}
    if not isinstance(raw_rates, Mapping):
        raise ConfigurationError("Financing option rates must be an object", option=value)
    rates = {int(term): to_decimal(rate, "interest_rate") for term, rate in raw_rates.items()}
    terms = _get(data, "availableTerms", "available_terms", None)
    return FinancingOption(
        value=str(value),
        name=str(data.get("name") or value),
        interest_rates=rates,
        available_terms=tuple(int(t) for t in terms) if terms else tuple(sorted(rates)),
        description=str(data.get("description", "")),
        is_active=_flag(data, "isActive", "is_active"),
        default_rate=_decimal(data, "defaultRate", "default_rate", Decimal("8.5")),
    )


def settings_from_dict(data: Optional[Mapping[str, Any]]) -> LoanCalculatorSettings:
    """Build settings from a (possibly partial) dictionary.

    Raises
    ------
    ConfigurationError
        If a section has the wrong shape or a value is not numeric.
    """
    if not data:
        return DEFAULT_SETTINGS
    if not isinstance(data, Mapping):
        raise ConfigurationError("Settings must be an object")
    defaults = DEFAULT_SETTINGS
    try:
        res = _section(data, "reservationFees", "reservation_fees")
        reservation = ReservationFeeConfig(
            model_house=_decimal(res, "modelHouse", "model_house", defaults.reservation_fees.model_house),
            lot_only=_decimal(res, "lotOnly", "lot_only", defaults.reservation_fees.lot_only),
            is_active=_flag(res, "isActive", "is_active"),
        )

        gov = _section(data, "governmentFeesConfig", "government_fees")
        government = GovernmentFeesConfig(
            fixed_amount_threshold=_decimal(
                gov, "fixedAmountThreshold", "fixed_amount_threshold", defaults.government_fees.fixed_amount_threshold
            ),
            fixed_amount=_decimal(gov, "fixedAmount", "fixed_amount", defaults.government_fees.fixed_amount),
            percentage_rate=_decimal(gov, "percentageRate", "percentage_rate", defaults.government_fees.percentage_rate),
            is_active=_flag(gov, "isActive", "is_active"),
        )

        con = _section(data, "constructionFeesConfig", "construction_fees")
        construction = ConstructionFeesConfig(
            house_construction_fee_rate=_decimal(
                con,
                "houseConstructionFeeRate",
                "house_construction_fee_rate",
                defaults.construction_fees.house_construction_fee_rate,
            ),
            lot_fee_rate=_decimal(con, "lotFeeRate", "lot_fee_rate", defaults.construction_fees.lot_fee_rate),
            is_active=_flag(con, "isActive", "is_active"),
        )

        # The admin screen stores the rule nested; older documents only have
        # the two top-level fields.
        rules = _section(data, "specialDownPaymentRules", "special_rule")
        twenty = _section(rules, "twentyPercentRule") or rules
        special = SpecialDownPaymentRule(
            interest_rate=to_decimal(
                _get(
                    twenty,
                    "subsequentYearInterestRate",
                    "interest_rate",
                    _get(data, "specialRuleInterestRate", "special_rule_interest_rate", defaults.special_rule.interest_rate),
                ),
                "interest_rate",
            ),
            is_active=_flag(
                twenty, "isActive", "is_active", _flag(data, "specialRuleEnabled", "special_rule_enabled")
            ),
        )

        raw_options = _get(data, "financingOptions", "financing_options", None)
        if raw_options:
            options = tuple(_financing_option_from_dict(opt) for opt in raw_options)
        else:
            options = defaults.financing_options

        dflt = _section(data, "defaultSettings", "default_settings")
        default_option = str(
            _get(dflt, "defaultFinancingOption", "default_financing_option", defaults.default_financing_option)
        )
        default_term = int(_get(dflt, "defaultPaymentTerm", "default_payment_term", defaults.default_payment_term))
    except (InvalidInputError, AttributeError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid settings: {exc}") from exc

    return LoanCalculatorSettings(
        reservation_fees=reservation,
        government_fees=government,
        construction_fees=construction,
        special_rule=special,
        financing_options=options,
        default_financing_option=default_option,
        default_payment_term=default_term,
    )


def _num(value: Decimal) -> float:
    return float(value)


def settings_to_dict(settings: LoanCalculatorSettings) -> Dict[str, Any]:
    """Serialise settings into the JSON document used by the web client."""
    return {
        "reservationFees": {
            "modelHouse": _num(settings.reservation_fees.model_house),
            "lotOnly": _num(settings.reservation_fees.lot_only),
            "isActive": settings.reservation_fees.is_active,
        },
        "governmentFeesConfig": {
            "fixedAmountThreshold": _num(settings.government_fees.fixed_amount_threshold),
            "fixedAmount": _num(settings.government_fees.fixed_amount),
            "percentageRate": _num(settings.government_fees.percentage_rate),
            "isActive": settings.government_fees.is_active,
        },
        "constructionFeesConfig": {
            "houseConstructionFeeRate": _num(settings.construction_fees.house_construction_fee_rate),
            "lotFeeRate": _num(settings.construction_fees.lot_fee_rate),
            "isActive": settings.construction_fees.is_active,
        },
        "specialDownPaymentRules": {
            "twentyPercentRule": {
                "isActive": settings.special_rule.is_active,
                "firstYearInterestRate": 0,
                "subsequentYearInterestRate": _num(settings.special_rule.interest_rate),
                "downPaymentTermMonths": 24,
            }
        },
        "financingOptions": [
            {
                "id": opt.value,
                "value": opt.value,
                "name": opt.name,
                "description": opt.description,
                "interestRates": {str(term): _num(rate) for term, rate in sorted(opt.interest_rates.items())},
                "availableTerms": list(opt.available_terms),
                "isActive": opt.is_active,
                "defaultRate": _num(opt.default_rate),
            }
            for opt in settings.financing_options
        ],
        "defaultSettings": {
            "defaultFinancingOption": settings.default_financing_option,
            "defaultPaymentTerm": settings.default_payment_term,
        },
    }


def merge_settings_dict(current: Mapping[str, Any], updates: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge ``updates`` into ``current`` one section deep.

    Object-valued sections are merged key by key so an update can change a
    single fee; every other value (lists included) replaces the old one.
    """
    merged: Dict[str, Any] = dict(current)
    for key, value in updates.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            section = dict(merged[key])
            section.update(value)
            merged[key] = section
        else:
            merged[key] = value
    return merged


def load_settings(path: Optional[Path] = None) -> LoanCalculatorSettings:
    """Load settings from a JSON file.

    Without ``path`` the file named by ``HOMELOAN_SETTINGS_FILE`` is used;
    with neither, the defaults are returned.
    """
    if path is None:
        env_path = os.environ.get(SETTINGS_FILE_ENV)
        if not env_path:
            return DEFAULT_SETTINGS
        path = Path(env_path)
    try:
        with Path(path).open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Cannot read settings file {path}: {exc}") from exc
    logger.info("Loaded calculator settings from %s", path)
    return settings_from_dict(data)
