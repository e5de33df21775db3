from datetime import date
from decimal import Decimal

import pytest

from homeloan.engine import generate_down_payment_schedule, summarize_down_payment_by_year
from homeloan.errors import InvalidInputError

CENT = Decimal("0.01")


class TestDownPaymentSchedule:
    def test_shape_for_one_million(self):
        schedule, monthly = generate_down_payment_schedule(Decimal("1000000"))
        assert len(schedule) == 24
        assert [row.month for row in schedule] == list(range(1, 25))
        assert monthly == Decimal("200000") / 24
        assert schedule[11].is_first_year is True
        assert schedule[12].is_first_year is False
        assert schedule[12].interest_rate == Decimal("8.5")
        assert schedule[23].balance == 0
        assert schedule[23].cumulative_paid == Decimal("200000")

    def test_first_year_is_interest_free(self):
        schedule, _ = generate_down_payment_schedule(Decimal("5337610.375"))
        first_year = schedule[:12]
        assert sum(row.interest for row in first_year) == 0
        assert all(row.interest_rate == 0 for row in first_year)
        assert all(row.payment == row.principal for row in first_year)

    def test_half_the_principal_remains_after_first_year(self):
        schedule, _ = generate_down_payment_schedule(Decimal("1000000"))
        assert abs(schedule[11].balance - Decimal("100000")) < Decimal("1e-15")

    def test_second_year_payment_is_recomputed(self):
        schedule, monthly = generate_down_payment_schedule(Decimal("1000000"))
        second_year = schedule[12:]
        assert Decimal("8700") < second_year[0].payment < Decimal("8750")
        assert second_year[0].payment > monthly
        assert all(row.interest > 0 for row in second_year)
        assert Decimal("4000") < sum(row.interest for row in second_year) < Decimal("5000")
        # level payment until the last row absorbs the residue
        assert second_year[-1].payment.quantize(CENT) == second_year[0].payment.quantize(CENT)

    def test_balance_strictly_decreases(self):
        schedule, _ = generate_down_payment_schedule(Decimal("2750000"))
        balances = [row.balance for row in schedule]
        assert all(later < earlier for earlier, later in zip(balances, balances[1:]))
        assert balances[-1] == 0

    def test_cumulative_paid_is_non_decreasing(self):
        schedule, _ = generate_down_payment_schedule(Decimal("2750000"))
        paid = [row.cumulative_paid for row in schedule]
        assert all(later >= earlier for earlier, later in zip(paid, paid[1:]))
        assert paid[-1] == Decimal("550000")

    def test_zero_rate_is_linear(self):
        schedule, monthly = generate_down_payment_schedule(Decimal("1200000"), Decimal("0"))
        assert all(row.interest == 0 for row in schedule)
        assert all(row.payment.quantize(CENT) == monthly.quantize(CENT) for row in schedule)
        assert schedule[-1].balance == 0

    def test_dates_follow_start_month(self):
        schedule, _ = generate_down_payment_schedule(Decimal("1000000"), start_date=date(2025, 11, 1))
        assert schedule[0].date == date(2025, 11, 1)
        assert schedule[23].date == date(2027, 10, 1)

    def test_no_dates_without_start(self):
        schedule, _ = generate_down_payment_schedule(Decimal("1000000"))
        assert all(row.date is None for row in schedule)

    @pytest.mark.parametrize("total", [0, -5, "nope"])
    def test_rejects_invalid_total(self, total):
        with pytest.raises(InvalidInputError):
            generate_down_payment_schedule(total)

    def test_rejects_negative_rate(self):
        with pytest.raises(InvalidInputError):
            generate_down_payment_schedule(Decimal("1000000"), Decimal("-1"))


class TestDownPaymentYearSummary:
    def test_two_years(self):
        schedule, monthly = generate_down_payment_schedule(Decimal("1000000"))
        years = summarize_down_payment_by_year(schedule)
        assert [y.year for y in years] == [1, 2]
        assert years[0].monthly == monthly
        assert years[0].interest_rate == 0
        assert years[1].interest_rate == Decimal("8.5")
        assert abs(years[0].amount - Decimal("100000")) < Decimal("1e-15")
        assert years[1].amount > Decimal("100000")
