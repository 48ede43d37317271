# hm_cashier/conftest.py
import pytest
from rest_framework.test import APIClient

from hm_cashier.billing.config import BillingConfig
from hm_cashier.billing.mapper import BillMapper
from hm_cashier.billing.tests.factories import (
    MPESA,
    WAIVER,
    raw_bill,
    raw_line_item,
    raw_payment,
)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def billing_config():
    return BillingConfig(
        excluded_payment_modes=frozenset({WAIVER}),
        reference_required_payment_modes=frozenset({MPESA}),
    )


@pytest.fixture
def two_item_bill_raw():
    """
    Two pending line items (100 + 2 x 50 with a 10% discount) and one
    partial M-PESA payment of 50.
    """
    return raw_bill(
        line_items=[
            raw_line_item("li-1", price=100, quantity=1, order=1),
            raw_line_item(
                "li-2",
                price=50,
                quantity=2,
                name="Lab test",
                order=2,
                discounts=[{"uuid": "disc-1", "amount": 10, "baseAmount": 100, "rate": 0.1}],
            ),
        ],
        payments=[raw_payment("pay-1", amount=50, mode=MPESA, mode_name="MPESA", reference="QWE123")],
        balance=140,
        totalActualPayments=50,
        totalPayments=50,
    )


@pytest.fixture
def two_item_bill(two_item_bill_raw):
    return BillMapper.map(two_item_bill_raw)
