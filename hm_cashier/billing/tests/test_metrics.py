# hm_cashier/billing/tests/test_metrics.py
from dataclasses import replace
from decimal import Decimal

from hm_cashier.billing.config import BillingConfig
from hm_cashier.billing.constants import PaymentStatus, TaxRecognitionPolicy
from hm_cashier.billing.mapper import BillMapper
from hm_cashier.billing.metrics import BillMetrics, MetricsAggregator
from hm_cashier.billing.tests.factories import raw_bill, raw_line_item


def _paid_bill():
    return BillMapper.map(
        raw_bill(
            uuid="bill-paid",
            line_items=[raw_line_item("li-1", price=90, status="PAID", taxes=[{"amount": 10}])],
            balance=0,
            totalActualPayments=100,
            totalTax=10,
        )
    )


def _pending_bill():
    return BillMapper.map(
        raw_bill(
            uuid="bill-pending",
            line_items=[raw_line_item("li-2", price=50)],
            balance=50,
        )
    )


def test_paid_and_pending_bills():
    metrics = MetricsAggregator.aggregate([_paid_bill(), _pending_bill()])

    assert metrics.collection == Decimal("100")
    assert metrics.pending == Decimal("50")
    assert metrics.tax_collected == Decimal("10")
    assert metrics.cumulative == Decimal("150")
    assert metrics.bill_count == 2


def test_partially_paid_bill_counts_collection_but_not_tax():
    partial = BillMapper.map(
        raw_bill(
            line_items=[raw_line_item("li-1", price=200, taxes=[{"amount": 20}])],
            balance=120,
            totalActualPayments=100,
            totalTax=20,
        )
    )

    metrics = MetricsAggregator.aggregate([partial])

    assert metrics.collection == Decimal("100")
    assert metrics.pending == Decimal("120")
    assert metrics.tax_collected == Decimal("0")


def test_all_policy_counts_tax_on_every_bill():
    partial = BillMapper.map(
        raw_bill(line_items=[raw_line_item("li-1", price=200)], balance=200, totalTax=20)
    )
    config = BillingConfig(tax_recognition_policy=TaxRecognitionPolicy.ALL)

    metrics = MetricsAggregator.aggregate([partial, _paid_bill()], config=config)

    assert metrics.tax_collected == Decimal("30")


def test_waived_and_exempted_buckets():
    waived = BillMapper.map(raw_bill(line_items=[raw_line_item("li-1", price=80, status="PAID")], totalWaivers=80))
    exempted = BillMapper.map(raw_bill(line_items=[raw_line_item("li-2", price=40)]))
    exempted = replace(exempted, status=PaymentStatus.EXEMPTED)

    metrics = MetricsAggregator.aggregate([waived, exempted])

    assert metrics.waived == Decimal("80")
    assert metrics.exempted == Decimal("40")
    assert metrics.pending == Decimal("0")


def test_empty_input():
    assert MetricsAggregator.aggregate([]) == BillMetrics()


def test_aggregate_accepts_a_generator():
    metrics = MetricsAggregator.aggregate(b for b in [_paid_bill(), _pending_bill()])

    assert metrics.bill_count == 2


def test_display_formatting():
    metrics = BillMetrics(collection=Decimal("1234.5"), pending=Decimal("50"), tax_collected=Decimal("10"))

    display = metrics.as_display("KES")

    assert display["paid_bills"] == "KES 1,234.50"
    assert display["pending_bills"] == "KES 50.00"
    assert display["tax_collection"] == "KES 10.00"
    assert display["total_bills"] == "KES 0.00"
