"""Command‑line interface for the property loan calculator.

This module uses the ``click`` library to implement a multi‑command
interface. Users can print a price breakdown, compute the full down-payment
and loan schedules, view only the summary or list the configured financing
options. Results can be printed to the terminal or exported to CSV, JSON or
print-ready HTML files.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, Optional

import click

from .data_models import (
    PAYMENT_TERMS,
    PROPERTY_TYPES,
    LoanCalculationResult,
    LoanCalculatorSettings,
    LoanInputs,
    resolve_property_type,
)
from .engine import calculate_with_settings, compute_property_breakdown, generate_yearly_schedule
from .errors import ConfigurationError, InvalidInputError
from .export import export_to_csv, export_to_html, export_to_json, result_to_dict
from .formatter import print_breakdown, print_down_payment_schedule, print_schedule, print_summary
from .settings import load_settings
from .utils import to_decimal


def _load_settings(settings_path: Optional[Path]) -> LoanCalculatorSettings:
    try:
        return load_settings(settings_path)
    except ConfigurationError as exc:
        raise click.BadParameter(str(exc), param_hint="--settings")


def build_inputs_from_options(
    price: str,
    property_type: Optional[str],
    lot_price: Optional[str],
    construction_cost: Optional[str],
    financing: Optional[str],
    term: Optional[int],
    start_date: Optional[str],
    settings: LoanCalculatorSettings,
) -> LoanInputs:
    """Validate raw option values into ``LoanInputs``."""
    try:
        return LoanInputs.from_mapping(
            {
                "base_price": price,
                "property_type": property_type,
                "lot_price": lot_price,
                "house_construction_cost": construction_cost,
                "financing_option": financing,
                "payment_term_years": term,
                "start_date": start_date,
            },
            default_financing_option=settings.default_financing_option,
            default_payment_term=settings.default_payment_term,
        )
    except InvalidInputError as exc:
        raise click.BadParameter(str(exc))


def run_calculation(inputs: LoanInputs, settings: LoanCalculatorSettings) -> LoanCalculationResult:
    try:
        return calculate_with_settings(inputs, settings)
    except InvalidInputError as exc:
        raise click.BadParameter(str(exc))
    except ConfigurationError as exc:
        raise click.ClickException(str(exc))


def _property_options(func: Callable) -> Callable:
    func = click.option(
        "--settings",
        "settings_path",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="Settings JSON file (defaults to $HOMELOAN_SETTINGS_FILE or built-in defaults)",
    )(func)
    func = click.option("--construction-cost", "construction_cost", help="House construction cost (model houses)")(func)
    func = click.option("--lot-price", "lot_price", help="Lot price (model houses)")(func)
    func = click.option(
        "--type",
        "property_type",
        type=click.Choice(PROPERTY_TYPES),
        help="Property type (default: model-house when sub-prices are given, else lot-only)",
    )(func)
    func = click.option("--price", "-p", "price", required=True, help="Base property price, e.g. 4,707,475 or 1.2m")(func)
    return func


def _loan_options(func: Callable) -> Callable:
    func = _property_options(func)
    func = click.option("--start-date", "-s", "start_date", help="First down-payment month (YYYY-MM)")(func)
    func = click.option(
        "--term",
        "-t",
        "term",
        type=click.Choice([str(t) for t in PAYMENT_TERMS]),
        help="Loan term in years",
    )(func)
    func = click.option("--financing", "-f", "financing", help="Financing option key, e.g. in-house, pag-ibig")(func)
    return func


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """A property loan calculator: price breakdown, down payment and amortization."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)


@cli.command()
@_property_options
def breakdown(
    price: str,
    property_type: Optional[str],
    lot_price: Optional[str],
    construction_cost: Optional[str],
    settings_path: Optional[Path],
) -> None:
    """Print the fees that make up the all-in price."""
    settings = _load_settings(settings_path)
    try:
        result = compute_property_breakdown(
            to_decimal(price, "price"),
            resolve_property_type(property_type, lot_price, construction_cost),
            lot_price,
            construction_cost,
            settings.reservation_fees,
            settings.government_fees,
            settings.construction_fees,
        )
    except InvalidInputError as exc:
        raise click.BadParameter(str(exc))
    print_breakdown(result)


@cli.command()
@_loan_options
@click.option("--view", type=click.Choice(["monthly", "yearly"]), default="monthly", help="Loan schedule granularity")
@click.option("--name", "property_name", help="Property name for the HTML report title")
@click.option("--output", "output", type=str, help="Output file path (.csv, .json or .html)")
def schedule(
    price: str,
    property_type: Optional[str],
    lot_price: Optional[str],
    construction_cost: Optional[str],
    settings_path: Optional[Path],
    financing: Optional[str],
    term: Optional[str],
    start_date: Optional[str],
    view: str,
    property_name: Optional[str],
    output: Optional[str],
) -> None:
    """Compute and print the down-payment and loan schedules."""
    settings = _load_settings(settings_path)
    inputs = build_inputs_from_options(
        price,
        property_type,
        lot_price,
        construction_cost,
        financing,
        int(term) if term else None,
        start_date,
        settings,
    )
    result = run_calculation(inputs, settings)
    if output:
        path = Path(output)
        suffix = path.suffix.lower()
        if suffix == ".json":
            export_to_json(path, result, view)
        elif suffix == ".csv":
            export_to_csv(path, result, view)
        elif suffix in (".html", ".htm"):
            export_to_html(path, result, property_name, view)
        else:
            raise click.BadParameter("Unsupported output format; use .csv, .json or .html", param_hint="--output")
        click.echo(f"Schedule exported to {path}")
        return

    print_breakdown(result.property_breakdown)
    print_summary(result)
    click.echo("Down payment schedule")
    print_down_payment_schedule(result.down_payment_schedule)
    click.echo("Loan amortization schedule")
    if view == "yearly":
        print_schedule(generate_yearly_schedule(result.loan_amortization.schedule), view="yearly")
    else:
        print_schedule(result.loan_amortization.schedule)


@cli.command()
@_loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(
    price: str,
    property_type: Optional[str],
    lot_price: Optional[str],
    construction_cost: Optional[str],
    settings_path: Optional[Path],
    financing: Optional[str],
    term: Optional[str],
    start_date: Optional[str],
    output: Optional[str],
) -> None:
    """Compute and print only the summary metrics."""
    settings = _load_settings(settings_path)
    inputs = build_inputs_from_options(
        price,
        property_type,
        lot_price,
        construction_cost,
        financing,
        int(term) if term else None,
        start_date,
        settings,
    )
    result = run_calculation(inputs, settings)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension", param_hint="--output")
        data = result_to_dict(result)
        data.pop("downPaymentSchedule")
        data["loanAmortization"].pop("schedule")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": data}, f, indent=2, ensure_ascii=False)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(result)


@cli.command()
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Settings JSON file",
)
def options(settings_path: Optional[Path]) -> None:
    """List the financing options and their rates per term."""
    settings = _load_settings(settings_path)
    for option in settings.financing_options:
        status = "" if option.is_active else " (inactive)"
        click.echo(f"{option.value:18s} {option.name}{status}")
        for term in option.available_terms:
            rate = option.interest_rates.get(term, option.default_rate)
            click.echo(f"  {term:2d} years  {rate}%")


if __name__ == "__main__":
    cli()
