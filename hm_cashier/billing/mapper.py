# hm_cashier/billing/mapper.py
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal

from django.utils import dateformat
from django.utils.dateparse import parse_datetime

from hm_cashier.billing.config import DEFAULT_CONFIG, BillingConfig
from hm_cashier.billing.constants import PaymentStatus
from hm_cashier.billing.types import ComputedBill, Invoice, LineItem, Payment
from hm_cashier.common.numbers import ZERO

logger = logging.getLogger(__name__)

MISSING_DATE = "--"


class BillMapper:
    """
    Raw invoice -> ComputedBill.

    Pure and total: any well-formed invoice maps without raising. Voided line
    items are dropped before a single figure is computed.
    """

    @staticmethod
    def map(invoice: Invoice | Mapping, *, config: BillingConfig | None = None) -> ComputedBill:
        config = config or DEFAULT_CONFIG
        if not isinstance(invoice, Invoice):
            invoice = Invoice.from_payload(invoice or {})

        line_items = tuple(li for li in invoice.line_items if not li.voided)
        payments = invoice.payments

        identifier, patient_name = BillMapper._split_patient_display(
            invoice.patient.display if invoice.patient else None
        )
        cash_point = invoice.cash_point

        return ComputedBill(
            uuid=invoice.uuid,
            id=invoice.id,
            display=invoice.display,
            patient_uuid=invoice.patient.uuid if invoice.patient else None,
            patient_name=patient_name,
            identifier=identifier,
            cashier=invoice.cashier,
            cash_point_uuid=cash_point.uuid if cash_point else None,
            cash_point_name=cash_point.name if cash_point else None,
            cash_point_location=cash_point.location if cash_point else None,
            receipt_number=invoice.receipt_number,
            adjustment_reason=invoice.adjustment_reason,
            status=BillMapper.derive_status(line_items),
            server_status=invoice.status,
            date_created=BillMapper.format_date(invoice.date_created, config.date_format),
            date_created_unformatted=invoice.date_created,
            line_items=line_items,
            payments=payments,
            billing_service="  ".join(li.service_name for li in line_items),
            total_amount=sum((li.amount_due for li in line_items), ZERO),
            total_amount_without_tax_and_discount=sum((li.subtotal for li in line_items), ZERO),
            tendered_amount=sum((p.amount_tendered for p in payments), ZERO),
            reference_codes=BillMapper.reference_codes(payments, label=config.reference_attribute_description),
            balance=invoice.balance,
            total_payments=invoice.total_payments,
            total_deposits=invoice.total_deposits,
            total_exempted=invoice.total_exempted,
            total_waived=invoice.total_waivers,
            total_actual_payments=invoice.total_actual_payments,
            total_tax=invoice.total_tax,
            bill_line_item_discounts=invoice.total_discount,
            total_discounts=invoice.total_discount + invoice.total_waivers,
            closed=invoice.closed,
        )

    @staticmethod
    def map_many(invoices: Iterable[Invoice | Mapping], *, config: BillingConfig | None = None) -> list[ComputedBill]:
        return [BillMapper.map(inv, config=config) for inv in invoices]

    @staticmethod
    def derive_status(line_items: Iterable[LineItem]) -> str:
        """
        PAID only when there is at least one live line item and all of them
        are PAID. EXEMPTED / CANCELLED / ADJUSTED / CREDITED / POSTED items
        keep the bill PENDING.
        """
        statuses = [li.payment_status for li in line_items if not li.voided]
        if statuses and all(s == PaymentStatus.PAID for s in statuses):
            return PaymentStatus.PAID
        return PaymentStatus.PENDING

    @staticmethod
    def line_item_amount_due(line_item: LineItem) -> Decimal:
        return line_item.amount_due

    @staticmethod
    def reference_codes(payments: Iterable[Payment], *, label: str) -> str:
        codes = [
            f"{p.instance_type.name}: {attr.value}"
            for p in payments
            for attr in p.attributes
            if attr.attribute_type_description == label
        ]
        return ", ".join(codes)

    @staticmethod
    def format_date(value, fmt: str) -> str:
        if not value:
            return MISSING_DATE
        try:
            dt = parse_datetime(str(value))
        except ValueError:
            dt = None
        if dt is None:
            logger.debug("unparseable bill date", extra={"raw": str(value)})
            return MISSING_DATE
        return dateformat.format(dt, fmt)

    @staticmethod
    def _split_patient_display(display: str | None) -> tuple[str | None, str | None]:
        # "<identifier> - <name>"
        if not display:
            return None, None
        identifier, sep, name = display.partition(" - ")
        if not sep:
            identifier, sep, name = display.partition("-")
        if not sep:
            return None, display.strip() or None
        return identifier.strip() or None, name.strip() or None
