"""Data models for the loan calculator.

This module defines dataclasses for the three groups of entities used by the
calculator: the configuration objects injected into the engine (fee configs,
financing options, the special down-payment rule), the typed input record
built from form data, and the immutable results the engine returns (price
breakdown, schedule rows and the aggregated calculation result).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import InvalidInputError
from .utils import parse_year_month, to_decimal

MODEL_HOUSE = "model-house"
LOT_ONLY = "lot-only"
PROPERTY_TYPES = (MODEL_HOUSE, LOT_ONLY)

PAYMENT_TERMS = (5, 10, 15, 20, 25, 30)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReservationFeeConfig:
    """Fixed reservation fee charged per property type."""

    model_house: Decimal = Decimal("25000")
    lot_only: Decimal = Decimal("10000")
    is_active: bool = True


@dataclass(frozen=True)
class GovernmentFeesConfig:
    """Two-tier government fees and taxes.

    Attributes
    ----------
    fixed_amount_threshold: Decimal
        Base prices at or above this value pay ``fixed_amount``.
    fixed_amount: Decimal
        Flat fee for prices at or above the threshold.
    percentage_rate: Decimal
        Percent of the base price charged below the threshold.
    """

    fixed_amount_threshold: Decimal = Decimal("1000000")
    fixed_amount: Decimal = Decimal("205000")
    percentage_rate: Decimal = Decimal("20.5")
    is_active: bool = True


@dataclass(frozen=True)
class ConstructionFeesConfig:
    """Percent rates applied to the lot price and house construction cost."""

    house_construction_fee_rate: Decimal = Decimal("8.5")
    lot_fee_rate: Decimal = Decimal("8.5")
    is_active: bool = True


@dataclass(frozen=True)
class SpecialDownPaymentRule:
    """The two-tier interest policy applied to the 20% down payment.

    The first twelve months never accrue interest. ``interest_rate`` is the
    annual rate applied to months 13-24 while the rule is active; an inactive
    rule charges nothing in either year.
    """

    interest_rate: Decimal = Decimal("8.5")
    is_active: bool = True


@dataclass(frozen=True)
class FinancingOption:
    """A named lender or program with its own annual rates.

    Attributes
    ----------
    value: str
        Key used by callers to select the option (``"in-house"``, ``"bank"``).
    name: str
        Display name.
    interest_rates: Dict[int, Decimal]
        Annual rate in percent keyed by payment term in years.
    available_terms: Tuple[int, ...]
        Terms offered to callers for this option.
    default_rate: Decimal
        Rate used for a term missing from ``interest_rates``.
    """

    value: str
    name: str
    interest_rates: Dict[int, Decimal] = field(default_factory=dict)
    available_terms: Tuple[int, ...] = ()
    description: str = ""
    is_active: bool = True
    default_rate: Decimal = Decimal("8.5")


@dataclass(frozen=True)
class LoanCalculatorSettings:
    """Everything the engine needs besides the property itself."""

    reservation_fees: ReservationFeeConfig = field(default_factory=ReservationFeeConfig)
    government_fees: GovernmentFeesConfig = field(default_factory=GovernmentFeesConfig)
    construction_fees: ConstructionFeesConfig = field(default_factory=ConstructionFeesConfig)
    special_rule: SpecialDownPaymentRule = field(default_factory=SpecialDownPaymentRule)
    financing_options: Tuple[FinancingOption, ...] = ()
    default_financing_option: str = "in-house"
    default_payment_term: int = 15

    def active_financing_options(self) -> List[FinancingOption]:
        return [opt for opt in self.financing_options if opt.is_active]


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


def resolve_property_type(
    value: Any,
    lot_price: Any = None,
    house_construction_cost: Any = None,
) -> str:
    """Normalize a property type.

    A missing type is inferred: a lot price or house construction cost means
    a model house, otherwise the property is lot-only.
    """
    if value is None or value == "":
        if lot_price is not None or house_construction_cost is not None:
            return MODEL_HOUSE
        return LOT_ONLY
    property_type = str(value).lower()
    if property_type not in PROPERTY_TYPES:
        raise InvalidInputError(f"Unknown property type: {property_type}")
    return property_type


def parse_payment_term(value: Any, default: int) -> int:
    """Whole years from form or JSON data; fractional terms are rejected."""
    if value is None:
        return default
    if isinstance(value, bool):
        raise InvalidInputError(f"Invalid payment term: {value}")
    try:
        term = int(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise InvalidInputError(f"Invalid payment term: {value}") from exc
    if isinstance(value, (float, Decimal)) and term != value:
        raise InvalidInputError(f"Payment term must be a whole number of years: {value}")
    return term


@dataclass(frozen=True)
class LoanInputs:
    """Validated calculator input collected from a form, the CLI or JSON."""

    base_price: Decimal
    property_type: str
    financing_option: str
    payment_term_years: int
    lot_price: Optional[Decimal] = None
    house_construction_cost: Optional[Decimal] = None
    start_date: Optional[date] = None

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        default_financing_option: str = "in-house",
        default_payment_term: int = 15,
    ) -> "LoanInputs":
        """Build inputs from loosely typed data.

        Both snake_case and the camelCase keys used by the web client are
        accepted. Empty strings count as missing. Without a property type,
        sub-prices mark the property as a model house.
        """
        price = _first(data, "base_price", "basePrice", "price", "propertyPrice")
        if price is None:
            raise InvalidInputError("Property price is required")
        lot_raw = _first(data, "lot_price", "lotPrice")
        house_raw = _first(data, "house_construction_cost", "houseConstructionCost", "constructionCost")
        property_type = resolve_property_type(
            _first(data, "property_type", "propertyType", "type"), lot_raw, house_raw
        )
        financing = str(_first(data, "financing_option", "financingOption", "financing") or default_financing_option)
        term = parse_payment_term(_first(data, "payment_term_years", "paymentTerm", "term"), default_payment_term)

        start_raw = _first(data, "start_date", "startDate")
        if isinstance(start_raw, date):
            start = start_raw
        elif start_raw is not None:
            start = parse_year_month(str(start_raw))
        else:
            start = None

        return cls(
            base_price=to_decimal(price, "base_price"),
            property_type=property_type,
            financing_option=financing,
            payment_term_years=term,
            lot_price=to_decimal(lot_raw, "lot_price") if lot_raw is not None else None,
            house_construction_cost=(
                to_decimal(house_raw, "house_construction_cost") if house_raw is not None else None
            ),
            start_date=start,
        )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PropertyBreakdown:
    """Fees layered on a base price.

    ``lot_price``, ``house_construction_cost``, ``lot_fees`` and
    ``construction_fees`` are only set for model houses.
    """

    base_price: Decimal
    property_type: str
    reservation_fee: Decimal
    government_fees_and_taxes: Decimal
    total_all_in_price: Decimal
    lot_price: Optional[Decimal] = None
    house_construction_cost: Optional[Decimal] = None
    lot_fees: Optional[Decimal] = None
    construction_fees: Optional[Decimal] = None


@dataclass(frozen=True)
class DownPaymentScheduleRow:
    """One month of the 24-month down payment.

    ``cumulative_paid`` tracks principal retired so far and ends at the full
    down payment; ``payment`` includes any interest.
    """

    month: int
    payment: Decimal
    principal: Decimal
    interest: Decimal
    interest_rate: Decimal
    is_first_year: bool
    cumulative_paid: Decimal
    balance: Decimal
    date: Optional[date] = None


@dataclass(frozen=True)
class LoanAmortizationScheduleRow:
    month: int
    principal: Decimal
    interest: Decimal
    payment: Decimal
    balance: Decimal
    date: Optional[date] = None


@dataclass(frozen=True)
class YearlyScheduleRow:
    """Twelve monthly rows rolled up. ``balance`` is the year-end balance."""

    year: int
    principal: Decimal
    interest: Decimal
    payment: Decimal
    balance: Decimal


@dataclass(frozen=True)
class DownPaymentYearSummary:
    year: int
    amount: Decimal
    monthly: Decimal
    interest_rate: Decimal


@dataclass(frozen=True)
class AmortizationResult:
    loan_amount: Decimal
    interest_rate: Decimal
    monthly_payment: Decimal
    total_payment: Decimal
    total_interest: Decimal
    schedule: List[LoanAmortizationScheduleRow]


@dataclass(frozen=True)
class LoanCalculationResult:
    """Everything derived from one set of inputs.

    Attributes
    ----------
    total_down_payment: Decimal
        The down-payment principal (20% of the all-in price).
    down_payment_interest: Decimal
        Interest accrued over months 13-24 of the down payment.
    net_loan_amount: Decimal
        All-in price minus the down payment; the amount amortized.
    total_project_cost: Decimal
        All-in price plus every peso of interest over both schedules.
    """

    property_breakdown: PropertyBreakdown
    total_down_payment: Decimal
    down_payment_monthly_amount: Decimal
    down_payment_schedule: List[DownPaymentScheduleRow]
    down_payment_interest: Decimal
    net_loan_amount: Decimal
    loan_amortization: AmortizationResult
    total_project_cost: Decimal
    financing_option: str
    payment_term_years: int
    special_rule_applied: bool
    down_payment_percentage: Decimal
