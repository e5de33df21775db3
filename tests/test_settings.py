import json
from decimal import Decimal

import pytest

from homeloan.errors import ConfigurationError
from homeloan.settings import (
    DEFAULT_SETTINGS,
    SETTINGS_FILE_ENV,
    load_settings,
    merge_settings_dict,
    settings_from_dict,
    settings_to_dict,
)


def test_empty_document_gives_defaults():
    assert settings_from_dict(None) is DEFAULT_SETTINGS
    assert settings_from_dict({}) is DEFAULT_SETTINGS


def test_defaults():
    settings = DEFAULT_SETTINGS
    assert settings.reservation_fees.model_house == Decimal("25000")
    assert settings.reservation_fees.lot_only == Decimal("10000")
    assert settings.government_fees.fixed_amount_threshold == Decimal("1000000")
    assert settings.government_fees.fixed_amount == Decimal("205000")
    assert settings.government_fees.percentage_rate == Decimal("20.5")
    assert settings.construction_fees.lot_fee_rate == Decimal("8.5")
    assert settings.special_rule.interest_rate == Decimal("8.5")
    assert [opt.value for opt in settings.financing_options] == ["in-house", "in-house-bridge", "pag-ibig", "bank"]
    assert settings.default_financing_option == "in-house"
    assert settings.default_payment_term == 15


def test_partial_section_falls_back_per_field():
    settings = settings_from_dict({"reservationFees": {"modelHouse": 30000}})
    assert settings.reservation_fees.model_house == Decimal("30000")
    assert settings.reservation_fees.lot_only == Decimal("10000")
    assert settings.reservation_fees.is_active is True
    assert settings.government_fees == DEFAULT_SETTINGS.government_fees
    assert settings.financing_options == DEFAULT_SETTINGS.financing_options


def test_snake_case_keys():
    settings = settings_from_dict(
        {
            "government_fees": {"fixed_amount": "250,000", "is_active": False},
            "special_rule": {"interest_rate": 9, "is_active": True},
        }
    )
    assert settings.government_fees.fixed_amount == Decimal("250000")
    assert settings.government_fees.is_active is False
    assert settings.special_rule.interest_rate == Decimal("9")


def test_legacy_top_level_special_rule_fields():
    settings = settings_from_dict({"specialRuleInterestRate": 7, "specialRuleEnabled": False})
    assert settings.special_rule.interest_rate == Decimal("7")
    assert settings.special_rule.is_active is False


def test_financing_options_from_json():
    settings = settings_from_dict(
        {
            "financingOptions": [
                {"id": "coop", "name": "Co-op Loan", "interestRates": {"5": 5.5, "10": 6}, "isActive": True},
                {"value": "old-bank", "interestRates": {"5": 9}, "isActive": False},
            ]
        }
    )
    coop, old_bank = settings.financing_options
    assert coop.value == "coop"
    assert coop.interest_rates == {5: Decimal("5.5"), 10: Decimal("6")}
    assert coop.available_terms == (5, 10)
    assert old_bank.name == "old-bank"
    assert [opt.value for opt in settings.active_financing_options()] == ["coop"]


def test_round_trip_through_json():
    document = json.loads(json.dumps(settings_to_dict(DEFAULT_SETTINGS)))
    assert settings_from_dict(document) == DEFAULT_SETTINGS


@pytest.mark.parametrize(
    "document",
    [
        {"reservationFees": "free"},
        {"governmentFeesConfig": {"fixedAmount": "lots"}},
        {"financingOptions": [{"name": "No value"}]},
        {"financingOptions": [{"value": "x", "interestRates": {"five": 5}}]},
        {"defaultSettings": {"defaultPaymentTerm": "long"}},
        ["not", "an", "object"],
    ],
)
def test_invalid_documents(document):
    with pytest.raises(ConfigurationError):
        settings_from_dict(document)


def test_merge_settings_dict():
    current = settings_to_dict(DEFAULT_SETTINGS)
    merged = merge_settings_dict(current, {"reservationFees": {"lotOnly": 15000}, "financingOptions": []})
    assert merged["reservationFees"] == {"modelHouse": 25000.0, "lotOnly": 15000, "isActive": True}
    assert merged["financingOptions"] == []
    assert current["reservationFees"]["lotOnly"] == 10000.0


class TestLoadSettings:
    def test_defaults_without_file(self, monkeypatch):
        monkeypatch.delenv(SETTINGS_FILE_ENV, raising=False)
        assert load_settings() is DEFAULT_SETTINGS

    def test_from_path(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"reservationFees": {"lotOnly": 12000}}), encoding="utf-8")
        assert load_settings(path).reservation_fees.lot_only == Decimal("12000")

    def test_from_environment(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"constructionFeesConfig": {"lotFeeRate": 5}}), encoding="utf-8")
        monkeypatch.setenv(SETTINGS_FILE_ENV, str(path))
        assert load_settings().construction_fees.lot_fee_rate == Decimal("5")

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_settings(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_settings(tmp_path / "absent.json")


@pytest.mark.parametrize("flag, expected", [("false", False), ("False", False), (0, False), ("yes", True), (1, True)])
def test_string_and_integer_flags(flag, expected):
    settings = settings_from_dict(
        {
            "governmentFeesConfig": {"isActive": flag},
            "financingOptions": [{"value": "bank", "interestRates": {"5": 7.5}, "isActive": flag}],
            "specialRuleEnabled": flag,
        }
    )
    assert settings.government_fees.is_active is expected
    assert settings.financing_options[0].is_active is expected
    assert settings.special_rule.is_active is expected


@pytest.mark.parametrize("flag", ["maybe", 2, None, 0.5])
def test_unrecognised_flag(flag):
    with pytest.raises(ConfigurationError):
        settings_from_dict({"reservationFees": {"isActive": flag}})
