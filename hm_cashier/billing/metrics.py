# hm_cashier/billing/metrics.py
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from hm_cashier.billing.config import DEFAULT_CONFIG, BillingConfig
from hm_cashier.billing.constants import PaymentStatus, TaxRecognitionPolicy
from hm_cashier.billing.types import ComputedBill
from hm_cashier.common.numbers import ZERO, money


@dataclass(frozen=True)
class BillMetrics:
    collection: Decimal = ZERO
    pending: Decimal = ZERO
    exempted: Decimal = ZERO
    waived: Decimal = ZERO
    tax_collected: Decimal = ZERO
    cumulative: Decimal = ZERO
    bill_count: int = 0

    def as_display(self, currency: str) -> dict[str, str]:
        return {
            "total_bills": f"{currency} {money(self.cumulative):,.2f}",
            "paid_bills": f"{currency} {money(self.collection):,.2f}",
            "pending_bills": f"{currency} {money(self.pending):,.2f}",
            "exempted_bills": f"{currency} {money(self.exempted):,.2f}",
            "waived_bills": f"{currency} {money(self.waived):,.2f}",
            "tax_collection": f"{currency} {money(self.tax_collected):,.2f}",
        }


class MetricsAggregator:
    """
    Dashboard counters over computed bills, in one pass.

    - collection: every bill's received payments (partial ones too)
    - pending:    amount still owed on PENDING bills
    - exempted:   full amount of EXEMPTED bills
    - waived:     every bill's waived amount
    - tax:        see recognizes_tax()
    """

    @staticmethod
    def recognizes_tax(bill: ComputedBill, policy: str) -> bool:
        if policy == TaxRecognitionPolicy.ALL:
            return True
        return bill.status == PaymentStatus.PAID

    @staticmethod
    def aggregate(bills: Iterable[ComputedBill], *, config: BillingConfig | None = None) -> BillMetrics:
        config = config or DEFAULT_CONFIG

        collection = pending = exempted = waived = tax = cumulative = ZERO
        count = 0

        for bill in bills:
            count += 1
            collection += bill.total_actual_payments
            cumulative += bill.total_amount
            waived += bill.total_waived

            if MetricsAggregator.recognizes_tax(bill, config.tax_recognition_policy):
                tax += bill.total_tax

            if bill.status == PaymentStatus.PENDING:
                pending += bill.amount_due
            elif bill.status == PaymentStatus.EXEMPTED:
                exempted += bill.total_amount

        return BillMetrics(
            collection=collection,
            pending=pending,
            exempted=exempted,
            waived=waived,
            tax_collected=tax,
            cumulative=cumulative,
            bill_count=count,
        )
