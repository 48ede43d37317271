# hm_cashier/billing/tests/test_payloads.py
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

import pytest

from hm_cashier.billing.exceptions import (
    IncompletePaymentError,
    InvalidInputError,
    PaymentValidationError,
    StaleRecordError,
)
from hm_cashier.billing.mapper import BillMapper
from hm_cashier.billing.payloads import (
    DeletePaymentRequest,
    EditLineItemRequest,
    PayloadBuilder,
    RecordPaymentRequest,
)
from hm_cashier.billing.tests.factories import (
    BILL_UUID,
    CASH,
    CASH_POINT_UUID,
    CASHIER_UUID,
    MPESA,
    PATIENT_UUID,
    REFERENCE_ATTR,
    raw_bill,
    raw_line_item,
    raw_payment,
)
from hm_cashier.billing.types import PaymentRow

NOW = datetime(2024, 5, 2, 8, 0, tzinfo=dt_timezone.utc)


def _edit(bill, **form):
    return PayloadBuilder.build_edit_line_item_payload(
        line_item="li-1",
        form_data=form,
        bill=bill,
        reason="Wrong quantity entered",
    )


# -------------------------------------------------------------------
# Edit line item
# -------------------------------------------------------------------

def test_edit_replaces_target_and_keeps_everything_else(two_item_bill):
    req = _edit(two_item_bill, price="150", quantity="2", discount_method="percentage", discount_value="10")
    payload = req.to_payload()

    assert isinstance(req, EditLineItemRequest)
    assert payload["cashPoint"] == CASH_POINT_UUID
    assert payload["cashier"] == CASHIER_UUID
    assert payload["patient"] == PATIENT_UUID
    assert payload["billAdjusted"] == BILL_UUID
    assert payload["adjustmentReason"] == "Wrong quantity entered"
    assert payload["status"] == "PENDING"

    target, other = payload["lineItems"]
    assert target["uuid"] == "li-1"
    assert target["price"] == Decimal("150")
    assert target["quantity"] == 2
    assert target["discounts"] == [{"amount": Decimal("30.00"), "baseAmount": Decimal("300"), "rate": Decimal("0.1")}]

    assert other == {
        "uuid": "li-2",
        "item": "li-2-stock:Lab test",
        "quantity": 2,
        "price": Decimal("50"),
        "priceName": "Default",
        "priceUuid": "li-2-price",
        "lineItemOrder": 2,
        "paymentStatus": "PENDING",
        "discounts": [{"amount": Decimal("10"), "baseAmount": Decimal("100"), "rate": Decimal("0.1")}],
    }

    (payment,) = payload["payments"]
    assert payment["uuid"] == "pay-1"
    assert payment["amount"] == Decimal("50")
    assert payment["amountTendered"] == Decimal("50")
    assert payment["instanceType"] == MPESA
    assert payment["attributes"] == [{"attributeType": REFERENCE_ATTR, "value": "QWE123"}]
    assert payment["voided"] is False
    assert payment["resourceVersion"] == "1.8"
    assert payment["dateCreated"] == "2024-05-01T10:00:00.000+0300"


def test_edit_falls_back_to_current_values_on_unreadable_numbers(two_item_bill):
    payload = _edit(two_item_bill, price="abc", quantity="").to_payload()

    target = payload["lineItems"][0]
    assert target["price"] == Decimal("100")
    assert target["quantity"] == 1
    assert "discounts" not in target


def test_edit_reads_leading_number_and_ignores_non_positive_values(two_item_bill):
    payload = _edit(two_item_bill, price="120.50 KES", quantity="0").to_payload()

    target = payload["lineItems"][0]
    assert target["price"] == Decimal("120.50")
    assert target["quantity"] == 1


def test_edit_ignores_oversized_numbers(two_item_bill):
    payload = _edit(
        two_item_bill, price="1e30", quantity="9" * 30, discount_method="fixed", discount_value="1e30"
    ).to_payload()

    target = payload["lineItems"][0]
    assert target["price"] == Decimal("100")
    assert target["quantity"] == 1
    assert "discounts" not in target


def test_edit_without_discount_keeps_existing_discounts(two_item_bill):
    req = PayloadBuilder.build_edit_line_item_payload(
        line_item=two_item_bill.find_line_item("li-2"),
        form_data={"quantity": "3", "discount_value": ""},
        bill=two_item_bill,
        reason="Extra sample",
    )

    target = req.to_payload()["lineItems"][1]
    assert target["quantity"] == 3
    assert target["discounts"] == [{"amount": Decimal("10"), "baseAmount": Decimal("100"), "rate": Decimal("0.1")}]


def test_edit_omits_status_when_bill_has_none(two_item_bill_raw):
    two_item_bill_raw.pop("status")

    payload = _edit(BillMapper.map(two_item_bill_raw), price="100").to_payload()

    assert "status" not in payload


def test_edit_accepts_raw_bill(two_item_bill_raw):
    req = _edit(two_item_bill_raw, quantity="4")

    assert req.to_payload()["lineItems"][0]["quantity"] == 4


@pytest.mark.parametrize(
    "line_item, raw",
    [
        (None, raw_bill(line_items=[raw_line_item("li-1")])),
        ("li-404", raw_bill(line_items=[raw_line_item("li-1")])),
        ("li-1", raw_bill(line_items=[])),
    ],
)
def test_edit_rejects_missing_target(line_item, raw):
    with pytest.raises(InvalidInputError):
        PayloadBuilder.build_edit_line_item_payload(
            line_item=line_item, form_data={}, bill=raw, reason="Correction"
        )


def test_edit_requires_reason(two_item_bill):
    with pytest.raises(InvalidInputError):
        PayloadBuilder.build_edit_line_item_payload(
            line_item="li-1", form_data={"price": "10"}, bill=two_item_bill, reason="   "
        )


def test_payload_shape_is_checked_before_submission(two_item_bill_raw):
    two_item_bill_raw.pop("cashPoint")

    req = _edit(two_item_bill_raw, price="100")

    with pytest.raises(InvalidInputError) as exc:
        req.to_payload()
    assert "cashPoint" in exc.value.detail["edit_line_item"]


# -------------------------------------------------------------------
# Delete payment
# -------------------------------------------------------------------

@pytest.fixture
def paid_twice_bill():
    return BillMapper.map(
        raw_bill(
            line_items=[raw_line_item("li-1", price=300, discounts=[{"uuid": "d-1", "amount": 30, "rate": 0.1}])],
            payments=[
                raw_payment("pay-1", amount=100, mode=MPESA, mode_name="MPESA", reference="QWE123"),
                raw_payment("pay-2", amount=50, version="2.0"),
                raw_payment("pay-0", amount=20, voided=True, void_reason="Duplicate"),
            ],
        )
    )


def test_delete_voids_exactly_one_payment(paid_twice_bill):
    req = PayloadBuilder.build_delete_payment_payload(
        bill=paid_twice_bill, payment="pay-2", reason="Entered twice", actor_uuid="user-9", now=NOW
    )
    payload = req.to_payload()

    assert isinstance(req, DeletePaymentRequest)
    assert "status" not in payload

    by_uuid = {p["uuid"]: p for p in payload["payments"]}
    assert [p["uuid"] for p in payload["payments"]] == ["pay-1", "pay-2", "pay-0"]

    deleted = by_uuid["pay-2"]
    assert deleted["voided"] is True
    assert deleted["voidReason"] == "Entered twice"
    assert deleted["voidedBy"] == {"uuid": "user-9"}
    assert deleted["dateChanged"] == "2024-05-02T08:00:00+00:00"
    assert deleted["amount"] == Decimal("50")
    assert deleted["resourceVersion"] == "2.0"
    assert "dateCreated" not in deleted

    kept = by_uuid["pay-1"]
    assert kept["voided"] is False
    assert kept["dateCreated"] == "2024-05-01T10:00:00.000+0300"
    assert kept["attributes"] == [{"attributeType": REFERENCE_ATTR, "value": "QWE123"}]
    assert "voidReason" not in kept

    already_voided = by_uuid["pay-0"]
    assert already_voided["voided"] is True
    assert already_voided["voidReason"] == "Duplicate"

    assert sum(1 for p in payload["payments"] if p.get("dateChanged")) == 1


def test_delete_keeps_line_items_and_discounts(paid_twice_bill):
    payload = PayloadBuilder.build_delete_payment_payload(
        bill=paid_twice_bill, payment="pay-1", reason="Reversed", now=NOW
    ).to_payload()

    (li,) = payload["lineItems"]
    assert li["uuid"] == "li-1"
    assert li["paymentStatus"] == "PENDING"
    assert li["discounts"] == [{"amount": Decimal("30"), "baseAmount": Decimal("300"), "rate": Decimal("0.1")}]
    assert "voidedBy" not in payload["payments"][0]


@pytest.mark.parametrize("payment, reason", [("pay-404", "Reversed"), (None, "Reversed"), ("pay-1", "")])
def test_delete_rejects_bad_input(paid_twice_bill, payment, reason):
    with pytest.raises(InvalidInputError):
        PayloadBuilder.build_delete_payment_payload(bill=paid_twice_bill, payment=payment, reason=reason)


# -------------------------------------------------------------------
# Record payment
# -------------------------------------------------------------------

@pytest.fixture
def unpaid_bill():
    return BillMapper.map(
        raw_bill(
            line_items=[
                raw_line_item("li-1", price=100),
                raw_line_item("li-2", price=50, order=2),
                raw_line_item("li-3", price=80, status="PAID", order=3),
            ],
            payments=[raw_payment("pay-1", amount=80)],
            balance=150,
        )
    )


def test_full_payment_marks_selected_items_paid(unpaid_bill, billing_config):
    req = PayloadBuilder.build_payment_payload(
        bill=unpaid_bill,
        rows=[
            {"method": CASH, "amount": "100"},
            {"method": MPESA, "amount": "50", "referenceCode": "ABC999", "referenceAttributeType": REFERENCE_ATTR},
        ],
        selected_line_items=["li-1", "li-2"],
        config=billing_config,
    )
    payload = req.to_payload()

    assert isinstance(req, RecordPaymentRequest)
    assert req.new_payments == 2
    assert "status" not in payload
    assert [li["paymentStatus"] for li in payload["lineItems"]] == ["PAID", "PAID", "PAID"]

    existing, cash, mpesa = payload["payments"]
    assert existing["uuid"] == "pay-1"
    assert existing["amount"] == Decimal("80")
    assert cash == {
        "voided": False,
        "amount": Decimal("100.00"),
        "amountTendered": Decimal("100.00"),
        "attributes": [],
        "instanceType": CASH,
    }
    assert mpesa["attributes"] == [{"attributeType": REFERENCE_ATTR, "value": "ABC999"}]


def test_partial_payment_on_single_item_leaves_it_pending(unpaid_bill):
    req = PayloadBuilder.build_payment_payload(
        bill=unpaid_bill,
        rows=[PaymentRow(method=CASH, amount=Decimal("60"))],
        selected_line_items=[unpaid_bill.find_line_item("li-1")],
    )
    payload = req.to_payload()

    assert [li["paymentStatus"] for li in payload["lineItems"]] == ["PENDING", "PENDING", "PAID"]
    assert payload["payments"][-1]["amount"] == Decimal("60.00")


def test_payment_covering_selection_after_rounding_marks_items_paid(unpaid_bill):
    req = PayloadBuilder.build_payment_payload(
        bill=unpaid_bill,
        rows=[{"method": CASH, "amount": "149.999"}],
        selected_line_items=["li-1", "li-2"],
    )
    payload = req.to_payload()

    assert [li["paymentStatus"] for li in payload["lineItems"]] == ["PAID", "PAID", "PAID"]
    assert payload["payments"][-1]["amount"] == Decimal("150.00")


def test_partial_payment_across_items_is_blocked(unpaid_bill):
    with pytest.raises(IncompletePaymentError) as exc:
        PayloadBuilder.build_payment_payload(
            bill=unpaid_bill,
            rows=[{"method": CASH, "amount": "60"}],
            selected_line_items=["li-1", "li-2"],
        )
    assert exc.value.status_code == 409
    assert "150.00" in str(exc.value.detail)


def test_invalid_rows_are_rejected(unpaid_bill, billing_config):
    with pytest.raises(PaymentValidationError) as exc:
        PayloadBuilder.build_payment_payload(
            bill=unpaid_bill,
            rows=[{"method": MPESA, "amount": "0"}],
            selected_line_items=["li-1"],
            config=billing_config,
        )
    errors = exc.value.detail["payments"]["0"]
    assert "amount" in errors
    assert "reference_code" in errors


def test_reference_code_needs_attribute_type(unpaid_bill):
    with pytest.raises(InvalidInputError):
        PayloadBuilder.build_payment_payload(
            bill=unpaid_bill,
            rows=[{"method": MPESA, "amount": "100", "referenceCode": "ABC999"}],
            selected_line_items=["li-1"],
        )


# -------------------------------------------------------------------
# Freshness
# -------------------------------------------------------------------

def _fresh(*payments):
    return raw_bill(
        line_items=[raw_line_item("li-1", price=300)],
        payments=list(payments),
    )


def test_unchanged_bill_is_fresh(paid_twice_bill):
    req = PayloadBuilder.build_delete_payment_payload(bill=paid_twice_bill, payment="pay-1", reason="Reversed")
    fresh = _fresh(
        raw_payment("pay-1", amount=100),
        raw_payment("pay-2", amount=50, version="2.0"),
        raw_payment("pay-0", amount=20, voided=True),
    )

    assert PayloadBuilder.stale_payments(req, fresh) == []
    PayloadBuilder.ensure_fresh(req, fresh)


def test_changed_or_new_payments_are_stale(paid_twice_bill):
    req = PayloadBuilder.build_delete_payment_payload(bill=paid_twice_bill, payment="pay-1", reason="Reversed")
    fresh = _fresh(
        raw_payment("pay-1", amount=100),
        raw_payment("pay-2", amount=50, version="2.1"),
        raw_payment("pay-0", amount=20, voided=True),
        raw_payment("pay-9", amount=5),
    )

    assert PayloadBuilder.stale_payments(req, fresh) == ["pay-2", "pay-9"]

    with pytest.raises(StaleRecordError) as exc:
        PayloadBuilder.ensure_fresh(req, fresh)
    assert exc.value.status_code == 409
    assert [str(u) for u in exc.value.detail["stale_payments"]] == ["pay-2", "pay-9"]


def test_freshness_against_another_bill_is_rejected(paid_twice_bill):
    req = PayloadBuilder.build_delete_payment_payload(bill=paid_twice_bill, payment="pay-1", reason="Reversed")

    with pytest.raises(InvalidInputError):
        PayloadBuilder.stale_payments(req, raw_bill(uuid="bill-other"))
