"""Exporters for a computed loan calculation.

Results can be written as CSV (schedule rows), JSON (the whole result) or a
print-ready HTML page that the browser saves as PDF. The same dictionaries
produced here back the JSON API of the web front end.
"""

from __future__ import annotations

import csv
import html
import json
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO

from .data_models import LoanCalculationResult, PropertyBreakdown
from .engine import generate_yearly_schedule, summarize_down_payment_by_year
from .formatter import format_currency, format_rate, round_money

VIEWS = ("monthly", "yearly")

NOTES = [
    "This calculator provides estimates only and actual loan terms may vary.",
    "The reservation fee is non-refundable but deductible from the total contract price.",
    "Interest rates are subject to change without prior notice.",
    "Please consult with our sales representatives for the most current rates and terms.",
]


def _money(value: Optional[Decimal]) -> Optional[float]:
    return float(round_money(value)) if value is not None else None


def _date(value: Optional[date]) -> Optional[str]:
    return value.strftime("%Y-%m") if value else None


def breakdown_to_dict(breakdown: PropertyBreakdown) -> Dict[str, Any]:
    return {
        "basePrice": _money(breakdown.base_price),
        "propertyType": breakdown.property_type,
        "lotPrice": _money(breakdown.lot_price),
        "houseConstructionCost": _money(breakdown.house_construction_cost),
        "lotFees": _money(breakdown.lot_fees),
        "constructionFees": _money(breakdown.construction_fees),
        "reservationFee": _money(breakdown.reservation_fee),
        "governmentFeesAndTaxes": _money(breakdown.government_fees_and_taxes),
        "totalAllInPrice": _money(breakdown.total_all_in_price),
    }


def result_to_dict(result: LoanCalculationResult, view: str = "monthly") -> Dict[str, Any]:
    """Convert a result into JSON-serialisable data, amounts rounded to cents."""
    loan = result.loan_amortization
    if view == "yearly":
        schedule = [
            {
                "year": row.year,
                "principal": _money(row.principal),
                "interest": _money(row.interest),
                "payment": _money(row.payment),
                "balance": _money(row.balance),
            }
            for row in generate_yearly_schedule(loan.schedule)
        ]
    else:
        schedule = [
            {
                "month": row.month,
                "date": _date(row.date),
                "principal": _money(row.principal),
                "interest": _money(row.interest),
                "payment": _money(row.payment),
                "balance": _money(row.balance),
            }
            for row in loan.schedule
        ]
    return {
        "propertyBreakdown": breakdown_to_dict(result.property_breakdown),
        "financingOption": result.financing_option,
        "paymentTermYears": result.payment_term_years,
        "specialRuleApplied": result.special_rule_applied,
        "downPaymentPercentage": float(result.down_payment_percentage),
        "totalDownPayment": _money(result.total_down_payment),
        "downPaymentMonthlyAmount": _money(result.down_payment_monthly_amount),
        "downPaymentInterest": _money(result.down_payment_interest),
        "downPaymentSchedule": [
            {
                "month": row.month,
                "date": _date(row.date),
                "payment": _money(row.payment),
                "principal": _money(row.principal),
                "interest": _money(row.interest),
                "interestRate": float(row.interest_rate),
                "isFirstYear": row.is_first_year,
                "cumulativePaid": _money(row.cumulative_paid),
                "balance": _money(row.balance),
            }
            for row in result.down_payment_schedule
        ],
        "netLoanAmount": _money(result.net_loan_amount),
        "loanAmortization": {
            "loanAmount": _money(loan.loan_amount),
            "interestRate": float(loan.interest_rate),
            "monthlyPayment": _money(loan.monthly_payment),
            "totalPayment": _money(loan.total_payment),
            "totalInterest": _money(loan.total_interest),
            "view": view,
            "schedule": schedule,
        },
        "totalProjectCost": _money(result.total_project_cost),
    }


def write_csv(f: TextIO, result: LoanCalculationResult, view: str = "monthly") -> None:
    """Write the loan schedule, then the down-payment schedule, to ``f``."""
    writer = csv.writer(f)
    first = "Year" if view == "yearly" else "Month"
    writer.writerow([first, "Principal", "Interest", "Payment", "Balance"])
    if view == "yearly":
        rows = generate_yearly_schedule(result.loan_amortization.schedule)
        for row in rows:
            writer.writerow(
                [row.year, round_money(row.principal), round_money(row.interest), round_money(row.payment), round_money(row.balance)]
            )
    else:
        for row in result.loan_amortization.schedule:
            writer.writerow(
                [row.month, round_money(row.principal), round_money(row.interest), round_money(row.payment), round_money(row.balance)]
            )
    writer.writerow([])
    writer.writerow(["Down Payment Month", "Payment", "Interest", "Interest Rate", "Cumulative Paid", "Balance"])
    for dp in result.down_payment_schedule:
        writer.writerow(
            [
                dp.month,
                round_money(dp.payment),
                round_money(dp.interest),
                dp.interest_rate,
                round_money(dp.cumulative_paid),
                round_money(dp.balance),
            ]
        )


def export_to_csv(path: Path, result: LoanCalculationResult, view: str = "monthly") -> None:
    """Export the schedules to a CSV file."""
    with path.open("w", newline="", encoding="utf-8") as f:
        write_csv(f, result, view)


def export_to_json(path: Path, result: LoanCalculationResult, view: str = "monthly") -> None:
    """Export the whole result to a JSON file."""
    with path.open("w", encoding="utf-8") as f:
        json.dump(result_to_dict(result, view), f, indent=2, ensure_ascii=False)


_STYLE = """
@page { size: A4; margin: 1cm; }
body { font-family: Arial, sans-serif; color: #333; margin: 0; padding: 20px; }
h1, h2, h3 { color: #444; }
.summary { margin-bottom: 20px; padding: 15px; background-color: #f9f9f9; border-radius: 5px; }
table { width: 100%; border-collapse: collapse; margin-top: 12px; page-break-inside: auto; }
tr { page-break-inside: avoid; }
th, td { border: 1px solid #ddd; padding: 6px; text-align: right; font-size: 11px; }
th { background-color: #f2f2f2; }
td:first-child, th:first-child { text-align: left; }
.notes { margin-top: 30px; padding: 15px; border-left: 4px solid #ccc; font-size: 11px; }
@media print { .no-print { display: none; } }
"""


def render_html_report(
    result: LoanCalculationResult,
    property_name: Optional[str] = None,
    view: str = "monthly",
) -> str:
    """Render a print-ready HTML page with summary, breakdown and schedules."""
    breakdown = result.property_breakdown
    loan = result.loan_amortization
    title = f"Loan Amortization Schedule - {property_name}" if property_name else "Loan Amortization Schedule"
    parts: List[str] = []
    parts.append("<!DOCTYPE html><html><head><meta charset='utf-8'>")
    parts.append(f"<title>{html.escape(title)}</title><style>{_STYLE}</style></head><body>")
    parts.append("<div class='no-print'><button onclick='window.print()'>Print/Save as PDF</button></div>")
    parts.append(f"<h1>{html.escape(title)}</h1>")

    def add_row(label: str, value: str) -> None:
        parts.append(f"<tr><th>{html.escape(label)}</th><td>{html.escape(value)}</td></tr>")

    parts.append("<div class='summary'><h2>Loan Summary</h2><table class='summary-table'><tbody>")
    if property_name:
        add_row("Property", property_name)
    add_row("Base price", format_currency(breakdown.base_price))
    if breakdown.lot_fees is not None:
        add_row("Lot fees", format_currency(breakdown.lot_fees))
        add_row("Construction fees", format_currency(breakdown.construction_fees))
    add_row("Reservation fee", format_currency(breakdown.reservation_fee))
    add_row("Government fees and taxes", format_currency(breakdown.government_fees_and_taxes))
    add_row("Total all-in price", format_currency(breakdown.total_all_in_price))
    add_row(f"Down payment ({result.down_payment_percentage.normalize():f}%)", format_currency(result.total_down_payment))
    add_row("Loan amount", format_currency(result.net_loan_amount))
    add_row("Interest rate", format_rate(loan.interest_rate))
    add_row("Term", f"{result.payment_term_years} years")
    add_row("Monthly payment", format_currency(loan.monthly_payment))
    add_row("Total payment", format_currency(loan.total_payment))
    add_row("Total project cost", format_currency(result.total_project_cost))
    parts.append("</tbody></table></div>")

    parts.append("<h2>Down Payment Schedule (24 Months)</h2>")
    parts.append("<table class='down-payment-table'><thead><tr>")
    for h in ["Year", "Monthly", "Amount", "Interest Rate"]:
        parts.append(f"<th>{h}</th>")
    parts.append("</tr></thead><tbody>")
    for summary in summarize_down_payment_by_year(result.down_payment_schedule):
        parts.append(
            f"<tr><td>{summary.year}</td><td>{format_currency(summary.monthly)}</td>"
            f"<td>{format_currency(summary.amount)}</td><td>{format_rate(summary.interest_rate)}</td></tr>"
        )
    parts.append("</tbody></table>")

    yearly = view == "yearly"
    parts.append(f"<h2>{'Yearly' if yearly else 'Monthly'} Amortization Schedule</h2>")
    parts.append("<table class='schedule-table'><thead><tr>")
    for h in ["Year" if yearly else "Month", "Principal", "Interest", "Payment", "Balance"]:
        parts.append(f"<th>{h}</th>")
    parts.append("</tr></thead><tbody>")
    rows = generate_yearly_schedule(loan.schedule) if yearly else loan.schedule
    for row in rows:
        period = row.year if yearly else row.month
        parts.append(
            f"<tr><td>{period}</td><td>{format_currency(row.principal)}</td><td>{format_currency(row.interest)}</td>"
            f"<td>{format_currency(row.payment)}</td><td>{format_currency(row.balance)}</td></tr>"
        )
    parts.append("</tbody></table>")

    parts.append("<div class='notes'><h3>Important Notes</h3><ul>")
    for note in NOTES:
        parts.append(f"<li>{html.escape(note)}</li>")
    parts.append("</ul></div></body></html>")
    return "".join(parts)


def export_to_html(
    path: Path,
    result: LoanCalculationResult,
    property_name: Optional[str] = None,
    view: str = "monthly",
) -> None:
    """Export a print-ready HTML report to ``path``."""
    with path.open("w", encoding="utf-8") as f:
        f.write(render_html_report(result, property_name, view))
