"""Core calculation engine for the loan calculator.

This module implements the financial logic behind the property loan
calculator: the all-in price breakdown (fees layered on a base price), the
24-month down-payment schedule under the two-tier "special rule" and the
fixed-payment amortization schedule of the remaining balance. Every function
is pure: configuration arrives as arguments and results are returned as
frozen dataclasses.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, getcontext
from typing import Iterable, List, Optional, Sequence, Tuple

from .data_models import (
    MODEL_HOUSE,
    PROPERTY_TYPES,
    AmortizationResult,
    ConstructionFeesConfig,
    DownPaymentScheduleRow,
    DownPaymentYearSummary,
    FinancingOption,
    GovernmentFeesConfig,
    LoanAmortizationScheduleRow,
    LoanCalculationResult,
    LoanCalculatorSettings,
    LoanInputs,
    PropertyBreakdown,
    ReservationFeeConfig,
    SpecialDownPaymentRule,
    YearlyScheduleRow,
)
from .errors import ConfigurationError, InvalidInputError
from .settings import DEFAULT_SETTINGS
from .utils import Number, add_months, schedule_date, to_decimal

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
MONTHS_PER_YEAR = 12

DOWN_PAYMENT_PERCENTAGE = Decimal("20")
DOWN_PAYMENT_TERM_MONTHS = 24

MIN_TERM_YEARS = 5
MAX_TERM_YEARS = 30


def _positive(value: Number, name: str) -> Decimal:
    amount = to_decimal(value, name)
    if amount <= 0:
        raise InvalidInputError(f"{name} must be positive", {name: str(amount)})
    return amount


def _non_negative(value: Number, name: str) -> Decimal:
    amount = to_decimal(value, name)
    if amount < 0:
        raise InvalidInputError(f"{name} must not be negative", {name: str(amount)})
    return amount


def _validate_term(term_years: int) -> int:
    if isinstance(term_years, bool) or not isinstance(term_years, int):
        raise InvalidInputError("Payment term must be a whole number of years", {"term_years": term_years})
    if not MIN_TERM_YEARS <= term_years <= MAX_TERM_YEARS:
        raise InvalidInputError(
            f"Payment term must be between {MIN_TERM_YEARS} and {MAX_TERM_YEARS} years",
            {"term_years": term_years},
        )
    return term_years


def _percent_of(amount: Decimal, rate: Number) -> Decimal:
    return amount * to_decimal(rate, "rate") / HUNDRED


def _monthly_rate(annual_interest_rate: Decimal) -> Decimal:
    return annual_interest_rate / HUNDRED / Decimal(MONTHS_PER_YEAR)


def _calculate_annuity_payment(principal: Decimal, rate_per_month: Decimal, term: int) -> Decimal:
    """Return the annuity (equal installment) monthly payment for a loan.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``.
    """
    if term <= 0:
        raise InvalidInputError("Term must be positive")
    if rate_per_month == 0:
        return principal / Decimal(term)
    factor = (1 + rate_per_month) ** term
    return principal * (rate_per_month * factor) / (factor - 1)


# ---------------------------------------------------------------------------
# Price breakdown
# ---------------------------------------------------------------------------


def calculate_government_fees(base_price: Number, config: Optional[GovernmentFeesConfig] = None) -> Decimal:
    """Government fees and taxes for ``base_price``.

    A step function: prices at or above the threshold pay the fixed amount,
    cheaper properties pay a percentage of the base price.
    """
    config = config if config is not None else GovernmentFeesConfig()
    if not config.is_active:
        return ZERO
    price = to_decimal(base_price, "base_price")
    if price >= to_decimal(config.fixed_amount_threshold, "fixed_amount_threshold"):
        return to_decimal(config.fixed_amount, "fixed_amount")
    return _percent_of(price, config.percentage_rate)


def compute_property_breakdown(
    base_price: Number,
    property_type: str,
    lot_price: Optional[Number] = None,
    house_construction_cost: Optional[Number] = None,
    reservation_fees: Optional[ReservationFeeConfig] = None,
    government_fees: Optional[GovernmentFeesConfig] = None,
    construction_fees: Optional[ConstructionFeesConfig] = None,
) -> PropertyBreakdown:
    """Layer every applicable fee on top of ``base_price``.

    A missing config object means the documented defaults; an inactive one
    contributes nothing. Lot and construction fees only exist for model
    houses, which must therefore supply both sub-prices.
    """
    price = _positive(base_price, "base_price")
    if property_type not in PROPERTY_TYPES:
        raise InvalidInputError(f"Unknown property type: {property_type}")
    reservation_fees = reservation_fees if reservation_fees is not None else ReservationFeeConfig()
    construction_fees = construction_fees if construction_fees is not None else ConstructionFeesConfig()

    lot = house = lot_fees = house_fees = None
    if property_type == MODEL_HOUSE:
        if lot_price is None or house_construction_cost is None:
            raise InvalidInputError("Model houses require both a lot price and a house construction cost")
        lot = _non_negative(lot_price, "lot_price")
        house = _non_negative(house_construction_cost, "house_construction_cost")
        if construction_fees.is_active:
            lot_fees = _percent_of(lot, construction_fees.lot_fee_rate)
            house_fees = _percent_of(house, construction_fees.house_construction_fee_rate)
        else:
            lot_fees = house_fees = ZERO

    if not reservation_fees.is_active:
        reservation = ZERO
    elif property_type == MODEL_HOUSE:
        reservation = to_decimal(reservation_fees.model_house, "model_house")
    else:
        reservation = to_decimal(reservation_fees.lot_only, "lot_only")

    gov = calculate_government_fees(price, government_fees)
    total = price + (lot_fees or ZERO) + (house_fees or ZERO) + reservation + gov

    return PropertyBreakdown(
        base_price=price,
        property_type=property_type,
        reservation_fee=reservation,
        government_fees_and_taxes=gov,
        total_all_in_price=total,
        lot_price=lot,
        house_construction_cost=house,
        lot_fees=lot_fees,
        construction_fees=house_fees,
    )


# ---------------------------------------------------------------------------
# Down payment
# ---------------------------------------------------------------------------


def generate_down_payment_schedule(
    total_all_in_price: Number,
    special_rule_interest_rate: Number = Decimal("8.5"),
    start_date: Optional[date] = None,
) -> Tuple[List[DownPaymentScheduleRow], Decimal]:
    """Build the 24-month schedule for the 20% down payment.

    Months 1-12 pay an even 1/24 share of the principal with no interest, so
    half the down payment is left at month 12. That remainder is then
    re-amortized over months 13-24 at ``special_rule_interest_rate`` (annual,
    percent). The last row absorbs any rounding residue so its balance is
    exactly zero.

    Returns the schedule and the monthly amount of the first year.
    """
    total = _positive(total_all_in_price, "total_all_in_price")
    annual_rate = _non_negative(special_rule_interest_rate, "special_rule_interest_rate")
    down_payment = total * DOWN_PAYMENT_PERCENTAGE / HUNDRED
    first_year_payment = down_payment / Decimal(DOWN_PAYMENT_TERM_MONTHS)

    schedule: List[DownPaymentScheduleRow] = []
    balance = down_payment
    for month in range(1, MONTHS_PER_YEAR + 1):
        balance -= first_year_payment
        schedule.append(
            DownPaymentScheduleRow(
                month=month,
                payment=first_year_payment,
                principal=first_year_payment,
                interest=ZERO,
                interest_rate=ZERO,
                is_first_year=True,
                cumulative_paid=down_payment - balance,
                balance=balance,
                date=schedule_date(start_date, month),
            )
        )

    rate_per_month = _monthly_rate(annual_rate)
    remaining_months = DOWN_PAYMENT_TERM_MONTHS - MONTHS_PER_YEAR
    if rate_per_month == 0:
        second_year_payment = first_year_payment
    else:
        second_year_payment = _calculate_annuity_payment(balance, rate_per_month, remaining_months)

    for month in range(MONTHS_PER_YEAR + 1, DOWN_PAYMENT_TERM_MONTHS + 1):
        interest = balance * rate_per_month
        if month == DOWN_PAYMENT_TERM_MONTHS:
            principal = balance
            payment = principal + interest
            balance = ZERO
        else:
            principal = second_year_payment - interest
            payment = second_year_payment
            balance -= principal
        schedule.append(
            DownPaymentScheduleRow(
                month=month,
                payment=payment,
                principal=principal,
                interest=interest,
                interest_rate=annual_rate,
                is_first_year=False,
                cumulative_paid=down_payment - balance,
                balance=balance,
                date=schedule_date(start_date, month),
            )
        )

    return schedule, first_year_payment


def summarize_down_payment_by_year(schedule: Sequence[DownPaymentScheduleRow]) -> List[DownPaymentYearSummary]:
    """Per-year totals of a down-payment schedule, as shown on quotations."""
    summaries: List[DownPaymentYearSummary] = []
    for start in range(0, len(schedule), MONTHS_PER_YEAR):
        rows = schedule[start : start + MONTHS_PER_YEAR]
        summaries.append(
            DownPaymentYearSummary(
                year=start // MONTHS_PER_YEAR + 1,
                amount=sum((row.payment for row in rows), ZERO),
                monthly=rows[0].payment,
                interest_rate=rows[0].interest_rate,
            )
        )
    return summaries


# ---------------------------------------------------------------------------
# Loan amortization
# ---------------------------------------------------------------------------


def calculate_monthly_payment(loan_amount: Number, annual_interest_rate: Number, term_years: int) -> Decimal:
    """Fixed monthly payment that retires ``loan_amount`` over ``term_years``."""
    principal = _positive(loan_amount, "loan_amount")
    rate = _non_negative(annual_interest_rate, "annual_interest_rate")
    term = _validate_term(term_years)
    return _calculate_annuity_payment(principal, _monthly_rate(rate), term * MONTHS_PER_YEAR)


def generate_loan_amortization_schedule(
    loan_amount: Number,
    annual_interest_rate: Number,
    term_years: int,
    monthly_payment: Optional[Number] = None,
    start_date: Optional[date] = None,
) -> List[LoanAmortizationScheduleRow]:
    """Compute the monthly amortization schedule of a fixed-rate loan.

    Parameters
    ----------
    loan_amount: Number
        Amount financed.
    annual_interest_rate: Number
        Nominal annual rate in percent.
    term_years: int
        Term between 5 and 30 years.
    monthly_payment: Number, optional
        The level payment. Computed with ``calculate_monthly_payment`` when
        omitted. A payment that does not cover the first month's interest is
        rejected; a payment that retires the loan early leaves zero rows for
        the rest of the term.
    start_date: date, optional
        Date of the first payment; rows carry no date without it.

    Returns
    -------
    List[LoanAmortizationScheduleRow]
        ``term_years * 12`` rows; the last one always has a zero balance.
    """
    principal = _positive(loan_amount, "loan_amount")
    rate = _non_negative(annual_interest_rate, "annual_interest_rate")
    term = _validate_term(term_years)
    rate_per_month = _monthly_rate(rate)
    periods = term * MONTHS_PER_YEAR
    if monthly_payment is None:
        payment = _calculate_annuity_payment(principal, rate_per_month, periods)
    else:
        payment = _positive(monthly_payment, "monthly_payment")
        if payment <= principal * rate_per_month:
            raise InvalidInputError(
                "Monthly payment does not cover the interest",
                {"monthly_payment": str(payment)},
            )

    schedule: List[LoanAmortizationScheduleRow] = []
    balance = principal
    for month in range(1, periods + 1):
        interest = balance * rate_per_month
        principal_payment = payment - interest
        if month == periods or principal_payment >= balance:
            # final payment, or an oversized payment clearing the loan early
            principal_payment = balance
            row_payment = balance + interest
            balance = ZERO
        else:
            row_payment = payment
            balance -= principal_payment
        schedule.append(
            LoanAmortizationScheduleRow(
                month=month,
                principal=principal_payment,
                interest=interest,
                payment=row_payment,
                balance=balance,
                date=schedule_date(start_date, month),
            )
        )
    return schedule


def generate_yearly_schedule(schedule: Sequence[LoanAmortizationScheduleRow]) -> List[YearlyScheduleRow]:
    """Roll monthly rows up into years.

    A trailing partial year is still emitted; its balance is that of its last
    month.
    """
    yearly: List[YearlyScheduleRow] = []
    for start in range(0, len(schedule), MONTHS_PER_YEAR):
        months = schedule[start : start + MONTHS_PER_YEAR]
        yearly.append(
            YearlyScheduleRow(
                year=start // MONTHS_PER_YEAR + 1,
                principal=sum((m.principal for m in months), ZERO),
                interest=sum((m.interest for m in months), ZERO),
                payment=sum((m.payment for m in months), ZERO),
                balance=months[-1].balance,
            )
        )
    return yearly


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


def find_financing_option(options: Iterable[FinancingOption], value: str) -> FinancingOption:
    """Return the active option whose ``value`` matches, else raise."""
    for option in options:
        if option.value == value and option.is_active:
            return option
    raise ConfigurationError(f"Financing option '{value}' is not available", option=value)


def get_interest_rate(option: FinancingOption, term_years: int) -> Decimal:
    """Annual rate of ``option`` for ``term_years``; unlisted terms use the default rate."""
    rate = option.interest_rates.get(term_years, option.default_rate)
    return _non_negative(rate, "interest_rate")


def calculate_complete_loan_details(
    base_price: Number,
    property_type: str,
    financing_option: str,
    payment_term_years: int,
    lot_price: Optional[Number] = None,
    house_construction_cost: Optional[Number] = None,
    reservation_fees: Optional[ReservationFeeConfig] = None,
    government_fees: Optional[GovernmentFeesConfig] = None,
    construction_fees: Optional[ConstructionFeesConfig] = None,
    financing_options: Optional[Sequence[FinancingOption]] = None,
    special_rule: Optional[SpecialDownPaymentRule] = None,
    start_date: Optional[date] = None,
) -> LoanCalculationResult:
    """Compute the breakdown, both schedules and the summary totals.

    The loan is the all-in price minus the 20% down payment; its first
    payment falls the month after the down payment's last one. Total project
    cost is the all-in price plus all interest on both schedules.
    """
    options = financing_options if financing_options is not None else DEFAULT_SETTINGS.financing_options
    rule = special_rule if special_rule is not None else DEFAULT_SETTINGS.special_rule
    term = _validate_term(payment_term_years)
    option = find_financing_option(options, financing_option)
    loan_rate = get_interest_rate(option, term)

    breakdown = compute_property_breakdown(
        base_price,
        property_type,
        lot_price,
        house_construction_cost,
        reservation_fees,
        government_fees,
        construction_fees,
    )
    down_payment_rate = to_decimal(rule.interest_rate, "interest_rate") if rule.is_active else ZERO
    down_schedule, down_monthly = generate_down_payment_schedule(
        breakdown.total_all_in_price, down_payment_rate, start_date
    )
    total_down_payment = breakdown.total_all_in_price * DOWN_PAYMENT_PERCENTAGE / HUNDRED
    down_interest = sum((row.interest for row in down_schedule), ZERO)

    net_loan_amount = breakdown.total_all_in_price - total_down_payment
    monthly_payment = calculate_monthly_payment(net_loan_amount, loan_rate, term)
    loan_start = add_months(start_date, DOWN_PAYMENT_TERM_MONTHS) if start_date else None
    loan_schedule = generate_loan_amortization_schedule(
        net_loan_amount, loan_rate, term, monthly_payment, loan_start
    )
    total_payment = sum((row.payment for row in loan_schedule), ZERO)
    total_interest = sum((row.interest for row in loan_schedule), ZERO)

    result = LoanCalculationResult(
        property_breakdown=breakdown,
        total_down_payment=total_down_payment,
        down_payment_monthly_amount=down_monthly,
        down_payment_schedule=down_schedule,
        down_payment_interest=down_interest,
        net_loan_amount=net_loan_amount,
        loan_amortization=AmortizationResult(
            loan_amount=net_loan_amount,
            interest_rate=loan_rate,
            monthly_payment=monthly_payment,
            total_payment=total_payment,
            total_interest=total_interest,
            schedule=loan_schedule,
        ),
        total_project_cost=breakdown.total_all_in_price + down_interest + total_interest,
        financing_option=option.value,
        payment_term_years=term,
        special_rule_applied=rule.is_active,
        down_payment_percentage=DOWN_PAYMENT_PERCENTAGE,
    )
    logger.debug(
        "Calculated %s loan over %d years: all-in %s, monthly %s",
        option.value,
        term,
        breakdown.total_all_in_price,
        monthly_payment,
    )
    return result


def calculate_with_settings(
    inputs: LoanInputs, settings: Optional[LoanCalculatorSettings] = None
) -> LoanCalculationResult:
    """Run ``calculate_complete_loan_details`` with a settings bundle."""
    settings = settings if settings is not None else DEFAULT_SETTINGS
    return calculate_complete_loan_details(
        inputs.base_price,
        inputs.property_type,
        inputs.financing_option,
        inputs.payment_term_years,
        lot_price=inputs.lot_price,
        house_construction_cost=inputs.house_construction_cost,
        reservation_fees=settings.reservation_fees,
        government_fees=settings.government_fees,
        construction_fees=settings.construction_fees,
        financing_options=settings.financing_options,
        special_rule=settings.special_rule,
        start_date=inputs.start_date,
    )
