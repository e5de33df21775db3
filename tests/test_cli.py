import csv
import json

import pytest
from click.testing import CliRunner

from homeloan.main import cli


@pytest.fixture
def runner():
    return CliRunner()


def test_options_lists_financing(runner):
    result = runner.invoke(cli, ["options"])
    assert result.exit_code == 0
    for value in ("in-house", "in-house-bridge", "pag-ibig", "bank"):
        assert value in result.output


def test_breakdown_lot_only(runner):
    result = runner.invoke(cli, ["breakdown", "-p", "900000"])
    assert result.exit_code == 0
    assert "₱184,500.00" in result.output
    assert "₱1,094,500.00" in result.output


def test_breakdown_model_house(runner):
    result = runner.invoke(
        cli,
        ["breakdown", "-p", "4,707,475", "--type", "model-house", "--lot-price", "1.2m", "--construction-cost", "3507475"],
    )
    assert result.exit_code == 0
    assert "₱5,337,610.38" in result.output


def test_summary(runner):
    result = runner.invoke(cli, ["summary", "-p", "900000", "-f", "pag-ibig", "-t", "20"])
    assert result.exit_code == 0
    assert "pag-ibig" in result.output
    assert "₱875,600.00" in result.output
    assert "6.25%" in result.output


def test_schedule_printed(runner):
    result = runner.invoke(cli, ["schedule", "-p", "900000", "-t", "5", "--view", "yearly"])
    assert result.exit_code == 0
    assert "Down payment schedule" in result.output
    assert "Loan amortization schedule" in result.output


def test_schedule_csv_export(runner, tmp_path):
    path = tmp_path / "out.csv"
    result = runner.invoke(cli, ["schedule", "-p", "900000", "-f", "bank", "-t", "10", "--output", str(path)])
    assert result.exit_code == 0
    with path.open(newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert len(rows) == 1 + 120 + 1 + 1 + 24


def test_schedule_json_export(runner, tmp_path):
    path = tmp_path / "out.json"
    result = runner.invoke(
        cli, ["schedule", "-p", "900000", "-t", "5", "-s", "2025-01", "--view", "yearly", "--output", str(path)]
    )
    assert result.exit_code == 0
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["downPaymentSchedule"][0]["date"] == "2025-01"
    assert len(data["loanAmortization"]["schedule"]) == 5


def test_schedule_html_export(runner, tmp_path):
    path = tmp_path / "report.html"
    result = runner.invoke(cli, ["schedule", "-p", "900000", "--name", "Block 3 Lot 8", "--output", str(path)])
    assert result.exit_code == 0
    page = path.read_text(encoding="utf-8")
    assert "Block 3 Lot 8" in page
    assert "Print/Save as PDF" in page


def test_schedule_unsupported_output(runner, tmp_path):
    result = runner.invoke(cli, ["schedule", "-p", "900000", "--output", str(tmp_path / "out.pdf")])
    assert result.exit_code == 2


def test_summary_json_export(runner, tmp_path):
    path = tmp_path / "summary.json"
    result = runner.invoke(cli, ["summary", "-p", "900000", "--output", str(path)])
    assert result.exit_code == 0
    data = json.loads(path.read_text(encoding="utf-8"))["summary"]
    assert data["totalDownPayment"] == 218900.0
    assert "downPaymentSchedule" not in data
    assert "schedule" not in data["loanAmortization"]


@pytest.mark.parametrize(
    "args",
    [
        ["summary", "-p", "0"],
        ["summary", "-p", "lots"],
        ["summary", "-p", "900000", "-t", "7"],
        ["summary", "-p", "4707475", "--type", "model-house"],
        ["schedule", "-p", "900000", "-s", "soon"],
    ],
)
def test_invalid_input_is_usage_error(runner, args):
    result = runner.invoke(cli, args)
    assert result.exit_code == 2


def test_unknown_financing_option(runner):
    result = runner.invoke(cli, ["summary", "-p", "900000", "-f", "crowdfunding"])
    assert result.exit_code == 1
    assert "crowdfunding" in result.output


def test_settings_file(runner, tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"reservationFees": {"lotOnly": 15000}}), encoding="utf-8")
    result = runner.invoke(cli, ["breakdown", "-p", "900000", "--settings", str(path)])
    assert result.exit_code == 0
    assert "₱1,099,500.00" in result.output


def test_malformed_settings_file(runner, tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{broken", encoding="utf-8")
    result = runner.invoke(cli, ["options", "--settings", str(path)])
    assert result.exit_code == 2


def test_breakdown_infers_model_house_from_sub_prices(runner):
    result = runner.invoke(
        cli, ["breakdown", "-p", "4,707,475", "--lot-price", "1.2m", "--construction-cost", "3507475"]
    )
    assert result.exit_code == 0
    assert "model-house" in result.output
    assert "₱5,337,610.38" in result.output


def test_summary_rejects_incomplete_model_house(runner):
    result = runner.invoke(cli, ["summary", "-p", "4707475", "--lot-price", "1200000"])
    assert result.exit_code == 2
