"""Output helpers for the loan calculator.

This module renders price breakdowns, summaries and schedules in a plain
tabular text format for the terminal. Amounts are shown in pesos with two
decimals; the engine itself never formats currency.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence, Union

from .data_models import (
    DownPaymentScheduleRow,
    LoanAmortizationScheduleRow,
    LoanCalculationResult,
    PropertyBreakdown,
    YearlyScheduleRow,
)

CENT = Decimal("0.01")
CURRENCY_SYMBOL = "₱"


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(amount: Optional[Decimal]) -> str:
    """Format ``amount`` as ``₱1,234,567.89``; ``None`` renders as a dash."""
    if amount is None:
        return "-"
    return f"{CURRENCY_SYMBOL}{round_money(amount):,.2f}"


def format_rate(rate: Decimal) -> str:
    return f"{rate.normalize():f}%"


def print_breakdown(breakdown: PropertyBreakdown) -> None:
    """Print the fees that make up the all-in price."""
    print("Price breakdown")
    print("-" * 72)
    print(f"Property type          : {breakdown.property_type}")
    print(f"Base price             : {format_currency(breakdown.base_price)}")
    if breakdown.lot_price is not None:
        print(f"  Lot price            : {format_currency(breakdown.lot_price)}")
        print(f"  House construction   : {format_currency(breakdown.house_construction_cost)}")
        print(f"Lot fees               : {format_currency(breakdown.lot_fees)}")
        print(f"Construction fees      : {format_currency(breakdown.construction_fees)}")
    print(f"Reservation fee        : {format_currency(breakdown.reservation_fee)}")
    print(f"Government fees/taxes  : {format_currency(breakdown.government_fees_and_taxes)}")
    print(f"Total all-in price     : {format_currency(breakdown.total_all_in_price)}")
    print("-" * 72)


def print_summary(result: LoanCalculationResult) -> None:
    """Print the headline figures of a calculation."""
    loan = result.loan_amortization
    print("Summary")
    print("-" * 72)
    print(f"Total all-in price     : {format_currency(result.property_breakdown.total_all_in_price)}")
    print(f"Down payment ({result.down_payment_percentage.normalize():f}%)    : {format_currency(result.total_down_payment)}")
    print(f"Down payment (1st yr)  : {format_currency(result.down_payment_monthly_amount)} / month")
    if result.special_rule_applied:
        print(f"Down payment interest  : {format_currency(result.down_payment_interest)}")
    print(f"Financing option       : {result.financing_option}")
    print(f"Loan amount            : {format_currency(result.net_loan_amount)}")
    print(f"Interest rate          : {format_rate(loan.interest_rate)}")
    print(f"Term                   : {result.payment_term_years} years")
    print(f"Monthly amortization   : {format_currency(loan.monthly_payment)}")
    print(f"Total loan payments    : {format_currency(loan.total_payment)}")
    print(f"Total loan interest    : {format_currency(loan.total_interest)}")
    print(f"Total project cost     : {format_currency(result.total_project_cost)}")
    print("-" * 72)


def print_down_payment_schedule(schedule: Iterable[DownPaymentScheduleRow]) -> None:
    headers = ["Month", "Date", "Payment", "Interest", "Rate", "Paid", "Balance"]
    print("\t".join(headers))
    for row in schedule:
        print(
            "\t".join(
                [
                    str(row.month),
                    row.date.strftime("%Y-%m") if row.date else "",
                    f"{row.payment:.2f}",
                    f"{row.interest:.2f}",
                    format_rate(row.interest_rate),
                    f"{row.cumulative_paid:.2f}",
                    f"{row.balance:.2f}",
                ]
            )
        )


def print_schedule(
    schedule: Sequence[Union[LoanAmortizationScheduleRow, YearlyScheduleRow]],
    view: str = "monthly",
) -> None:
    """Print the loan schedule as a simple table.

    Parameters
    ----------
    schedule: Sequence
        Monthly rows, or yearly rows when ``view`` is ``"yearly"``.
    view: str
        ``"monthly"`` or ``"yearly"``; selects the first column.
    """
    first = "Year" if view == "yearly" else "Month"
    print("\t".join([first, "Principal", "Interest", "Payment", "Balance"]))
    for row in schedule:
        period = row.year if view == "yearly" else row.month
        print(
            "\t".join(
                [
                    str(period),
                    f"{row.principal:.2f}",
                    f"{row.interest:.2f}",
                    f"{row.payment:.2f}",
                    f"{row.balance:.2f}",
                ]
            )
        )
