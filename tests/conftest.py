from decimal import Decimal

import pytest

from homeloan.engine import calculate_complete_loan_details


@pytest.fixture
def model_house_result():
    """The 4,707,475 model house financed in-house over 5 years."""
    return calculate_complete_loan_details(
        Decimal("4707475"),
        "model-house",
        "in-house",
        5,
        lot_price=Decimal("1200000"),
        house_construction_cost=Decimal("3507475"),
    )


@pytest.fixture
def lot_only_result():
    return calculate_complete_loan_details(Decimal("900000"), "lot-only", "pag-ibig", 20)
