# hm_cashier/billing/types.py
"""
Read-only snapshots of cashier records.

Every `from_payload` reader is lenient: missing collections become empty
tuples, missing amounts become zero, and unknown keys are ignored. Records
are rebuilt on every fetch and never mutated.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from hm_cashier.billing.constants import PaymentStatus
from hm_cashier.common.numbers import ZERO, parse_decimal, parse_int, to_decimal


def _uuid_of(value: Any) -> str | None:
    if isinstance(value, Mapping):
        value = value.get("uuid")
    return str(value) if value else None


def _ref(value: Any) -> str | None:
    return _uuid_of(value) if isinstance(value, Mapping) else (value or None)


def _seq(value: Any) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []


@dataclass(frozen=True)
class Reference:
    """A linked resource as the cashier service embeds it ({uuid, display})."""
    uuid: str | None = None
    display: str | None = None

    @classmethod
    def from_payload(cls, data: Any) -> "Reference | None":
        if isinstance(data, str) and data:
            return cls(uuid=data)
        if isinstance(data, Mapping):
            return cls(uuid=_uuid_of(data), display=data.get("display"))
        return None


@dataclass(frozen=True)
class CashPoint:
    uuid: str | None = None
    name: str | None = None
    location: str | None = None

    @classmethod
    def from_payload(cls, data: Any) -> "CashPoint | None":
        if isinstance(data, str) and data:
            return cls(uuid=data)
        if not isinstance(data, Mapping):
            return None
        location = data.get("location")
        return cls(
            uuid=_uuid_of(data),
            name=data.get("name"),
            location=location.get("display") if isinstance(location, Mapping) else None,
        )


@dataclass(frozen=True)
class Discount:
    amount: Decimal = ZERO
    base_amount: Decimal | None = None
    rate: Decimal | None = None
    description: str | None = None
    sponsor: str | None = None
    uuid: str | None = None

    @classmethod
    def from_payload(cls, data: Mapping) -> "Discount":
        return cls(
            amount=to_decimal(data.get("amount")),
            base_amount=to_decimal(data.get("baseAmount"), default=None),
            rate=to_decimal(data.get("rate"), default=None),
            description=data.get("description") or None,
            sponsor=_uuid_of(data.get("sponsor")),
            uuid=data.get("uuid"),
        )


@dataclass(frozen=True)
class Tax:
    amount: Decimal = ZERO
    uuid: str | None = None

    @classmethod
    def from_payload(cls, data: Mapping) -> "Tax":
        return cls(amount=to_decimal(data.get("amount")), uuid=data.get("uuid"))


@dataclass(frozen=True)
class LineItem:
    uuid: str | None = None
    item: str | None = None
    billable_service: str | None = None
    order: str | None = None
    price: Decimal = ZERO
    quantity: int = 0
    price_name: str | None = None
    price_uuid: str | None = None
    line_item_order: int | None = None
    payment_status: str = PaymentStatus.PENDING
    discounts: tuple[Discount, ...] = ()
    taxes: tuple[Tax, ...] = ()
    voided: bool = False
    void_reason: str | None = None
    resource_version: str | None = None
    display: str | None = None

    @classmethod
    def from_payload(cls, data: Mapping) -> "LineItem":
        order = parse_int(data.get("lineItemOrder"))
        return cls(
            uuid=data.get("uuid"),
            item=_ref(data.get("item")),
            billable_service=_ref(data.get("billableService")),
            order=_uuid_of(data.get("order")),
            price=to_decimal(data.get("price")),
            quantity=parse_int(data.get("quantity")).value or 0,
            price_name=data.get("priceName"),
            price_uuid=data.get("priceUuid"),
            line_item_order=order.value if order.ok else None,
            payment_status=data.get("paymentStatus") or PaymentStatus.PENDING,
            discounts=tuple(Discount.from_payload(d) for d in _seq(data.get("discounts")) if isinstance(d, Mapping)),
            taxes=tuple(Tax.from_payload(t) for t in _seq(data.get("taxes")) if isinstance(t, Mapping)),
            voided=bool(data.get("voided")),
            void_reason=data.get("voidReason"),
            resource_version=data.get("resourceVersion"),
            display=data.get("display"),
        )

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity

    @property
    def tax_amount(self) -> Decimal:
        return sum((t.amount for t in self.taxes), ZERO)

    @property
    def discount_amount(self) -> Decimal:
        return sum((d.amount for d in self.discounts), ZERO)

    @property
    def amount_due(self) -> Decimal:
        # uses price x quantity, never a discount's stored baseAmount
        return self.subtotal + self.tax_amount - self.discount_amount

    @property
    def service_name(self) -> str:
        """'<uuid>:<name>' references are shown by name."""
        ref = self.item or self.billable_service
        if not ref:
            return "--"
        return ref.split(":", 1)[1] if ":" in ref else ref


@dataclass(frozen=True)
class PaymentAttribute:
    attribute_type: str | None = None
    attribute_type_description: str | None = None
    value: Any = None

    @classmethod
    def from_payload(cls, data: Mapping) -> "PaymentAttribute":
        attr_type = data.get("attributeType")
        return cls(
            attribute_type=_uuid_of(attr_type),
            attribute_type_description=attr_type.get("description") if isinstance(attr_type, Mapping) else None,
            value=data.get("value"),
        )


@dataclass(frozen=True)
class PaymentMode:
    uuid: str | None = None
    name: str | None = None

    @classmethod
    def from_payload(cls, data: Any) -> "PaymentMode":
        if isinstance(data, Mapping):
            return cls(uuid=_uuid_of(data), name=data.get("name"))
        return cls(uuid=_uuid_of(data))


@dataclass(frozen=True)
class Payment:
    uuid: str | None = None
    instance_type: PaymentMode = field(default_factory=PaymentMode)
    amount: Decimal = ZERO
    amount_tendered: Decimal = ZERO
    attributes: tuple[PaymentAttribute, ...] = ()
    voided: bool = False
    void_reason: str | None = None
    voided_by: str | None = None
    date_created: Any = None
    resource_version: str | None = None

    @classmethod
    def from_payload(cls, data: Mapping) -> "Payment":
        return cls(
            uuid=data.get("uuid"),
            instance_type=PaymentMode.from_payload(data.get("instanceType")),
            amount=to_decimal(data.get("amount")),
            amount_tendered=to_decimal(data.get("amountTendered")),
            attributes=tuple(
                PaymentAttribute.from_payload(a) for a in _seq(data.get("attributes")) if isinstance(a, Mapping)
            ),
            voided=bool(data.get("voided")),
            void_reason=data.get("voidReason"),
            voided_by=_uuid_of(data.get("voidedBy")),
            date_created=data.get("dateCreated"),
            resource_version=data.get("resourceVersion"),
        )


@dataclass(frozen=True)
class Invoice:
    """Raw bill as fetched from the cashier service."""
    uuid: str | None = None
    id: int | None = None
    display: str | None = None
    patient: Reference | None = None
    cashier: Reference | None = None
    cash_point: CashPoint | None = None
    date_created: str | None = None
    receipt_number: str | None = None
    adjustment_reason: str | None = None
    status: str | None = None
    line_items: tuple[LineItem, ...] = ()
    payments: tuple[Payment, ...] = ()
    balance: Decimal | None = None
    total_payments: Decimal = ZERO
    total_deposits: Decimal = ZERO
    total_exempted: Decimal = ZERO
    total_waivers: Decimal = ZERO
    total_actual_payments: Decimal = ZERO
    total_tax: Decimal = ZERO
    total_discount: Decimal = ZERO
    closed: bool = False

    @classmethod
    def from_payload(cls, data: Mapping) -> "Invoice":
        bill_id = parse_int(data.get("id"))
        return cls(
            uuid=data.get("uuid"),
            id=bill_id.value if bill_id.ok else None,
            display=data.get("display"),
            patient=Reference.from_payload(data.get("patient")),
            cashier=Reference.from_payload(data.get("cashier")),
            cash_point=CashPoint.from_payload(data.get("cashPoint")),
            date_created=data.get("dateCreated"),
            receipt_number=data.get("receiptNumber"),
            adjustment_reason=data.get("adjustmentReason"),
            status=data.get("status") or None,
            line_items=tuple(LineItem.from_payload(li) for li in _seq(data.get("lineItems")) if isinstance(li, Mapping)),
            payments=tuple(Payment.from_payload(p) for p in _seq(data.get("payments")) if isinstance(p, Mapping)),
            balance=to_decimal(data.get("balance"), default=None),
            total_payments=to_decimal(data.get("totalPayments")),
            total_deposits=to_decimal(data.get("totalDeposits")),
            total_exempted=to_decimal(data.get("totalExempted")),
            total_waivers=to_decimal(data.get("totalWaivers")),
            total_actual_payments=to_decimal(data.get("totalActualPayments")),
            total_tax=to_decimal(data.get("totalTax")),
            total_discount=to_decimal(data.get("totalDiscount")),
            closed=bool(data.get("closed")),
        )


@dataclass(frozen=True)
class ComputedBill:
    """BillMapper output: the invoice plus every figure derived from it."""
    uuid: str | None
    id: int | None
    display: str | None
    patient_uuid: str | None
    patient_name: str | None
    identifier: str | None
    cashier: Reference | None
    cash_point_uuid: str | None
    cash_point_name: str | None
    cash_point_location: str | None
    receipt_number: str | None
    adjustment_reason: str | None
    status: str
    server_status: str | None
    date_created: str
    date_created_unformatted: str | None
    line_items: tuple[LineItem, ...]
    payments: tuple[Payment, ...]
    billing_service: str
    total_amount: Decimal
    total_amount_without_tax_and_discount: Decimal
    tendered_amount: Decimal
    reference_codes: str
    balance: Decimal | None
    total_payments: Decimal
    total_deposits: Decimal
    total_exempted: Decimal
    total_waived: Decimal
    total_actual_payments: Decimal
    total_tax: Decimal
    bill_line_item_discounts: Decimal
    total_discounts: Decimal
    closed: bool

    @property
    def amount_due(self) -> Decimal:
        if self.balance is not None:
            return self.balance
        return max(ZERO, self.total_amount - self.total_actual_payments)

    def find_line_item(self, uuid: str | None) -> LineItem | None:
        return next((li for li in self.line_items if uuid and li.uuid == uuid), None)

    def find_payment(self, uuid: str | None) -> Payment | None:
        return next((p for p in self.payments if uuid and p.uuid == uuid), None)


@dataclass(frozen=True)
class PaymentRow:
    """One proposed payment as entered in the payment form."""
    method: str | None = None
    amount: Decimal | None = None
    reference_code: str = ""
    reference_attribute_type: str | None = None

    @classmethod
    def from_payload(cls, data: Mapping) -> "PaymentRow":
        return cls(
            method=_uuid_of(data.get("method")),
            amount=parse_decimal(data.get("amount")).value,
            reference_code=str(data.get("referenceCode") or data.get("reference_code") or "").strip(),
            reference_attribute_type=data.get("referenceAttributeType") or data.get("reference_attribute_type"),
        )
