# hm_cashier/billing/payloads.py
"""
Bill replacement requests.

The cashier service has no partial updates for nested collections: every
request carries the complete line-item and payment lists, and the service
takes them as authoritative. Anything an operation does not target is
re-serialized with the same identifiers and amounts it was read with.
"""
from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, ClassVar

from django.utils import timezone

from hm_cashier.billing.config import BillingConfig
from hm_cashier.billing.constants import PaymentStatus
from hm_cashier.billing.discounts import DiscountCalculator
from hm_cashier.billing.exceptions import InvalidInputError, StaleRecordError
from hm_cashier.billing.mapper import BillMapper
from hm_cashier.billing.serializers import (
    BillRequestSerializer,
    DeletePaymentRequestSerializer,
    EditLineItemRequestSerializer,
    RecordPaymentRequestSerializer,
)
from hm_cashier.billing.types import ComputedBill, Invoice, LineItem, Payment, PaymentRow
from hm_cashier.billing.validators import PaymentValidator
from hm_cashier.common.numbers import ParseResult, money, parse_decimal, parse_int

logger = logging.getLogger(__name__)


# -------------------------------------------------------------------
# Request types
# -------------------------------------------------------------------

@dataclass(frozen=True)
class BillRequest:
    bill_uuid: str | None
    cash_point: str | None
    cashier: str | None
    patient: str | None
    line_items: tuple[dict, ...]
    payments: tuple[dict, ...]
    status: str | None = None

    kind: ClassVar[str] = "bill"
    serializer_class: ClassVar[type] = BillRequestSerializer

    def _extra_fields(self) -> dict[str, Any]:
        return {}

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready body, shape-checked before it is handed to the submitter."""
        payload: dict[str, Any] = {
            "cashPoint": self.cash_point,
            "cashier": self.cashier,
            "patient": self.patient,
            "lineItems": copy.deepcopy(list(self.line_items)),
            "payments": copy.deepcopy(list(self.payments)),
        }
        if self.status is not None:
            payload["status"] = self.status
        payload.update(self._extra_fields())

        ser = self.serializer_class(data=payload)
        if not ser.is_valid():
            raise InvalidInputError({self.kind: ser.errors})
        return payload


@dataclass(frozen=True)
class EditLineItemRequest(BillRequest):
    target_line_item: str | None = None
    adjustment_reason: str = ""

    kind = "edit_line_item"
    serializer_class = EditLineItemRequestSerializer

    def _extra_fields(self) -> dict[str, Any]:
        return {"billAdjusted": self.bill_uuid, "adjustmentReason": self.adjustment_reason}


@dataclass(frozen=True)
class DeletePaymentRequest(BillRequest):
    voided_payment: str | None = None

    kind = "delete_payment"
    serializer_class = DeletePaymentRequestSerializer


@dataclass(frozen=True)
class RecordPaymentRequest(BillRequest):
    new_payments: int = 0

    kind = "record_payment"
    serializer_class = RecordPaymentRequestSerializer


# -------------------------------------------------------------------
# Builder
# -------------------------------------------------------------------

class PayloadBuilder:

    @staticmethod
    def _computed(bill: ComputedBill | Invoice | Mapping, config: BillingConfig | None = None) -> ComputedBill:
        if isinstance(bill, ComputedBill):
            return bill
        if bill is None:
            raise InvalidInputError({"bill": "A bill is required."})
        return BillMapper.map(bill, config=config)

    @staticmethod
    def _uuid_of(value: Any) -> str | None:
        if isinstance(value, (LineItem, Payment)):
            return value.uuid
        if isinstance(value, Mapping):
            return value.get("uuid")
        return str(value) if value else None

    @staticmethod
    def _form_number(parsed: ParseResult, current, *, field: str):
        # zero or negative entries are treated like unreadable text
        if parsed.ok and parsed.value <= 0:
            parsed = ParseResult(raw=parsed.raw)
        return parsed.or_fallback(current, field=field)

    @staticmethod
    def line_item_payload(li: LineItem, *, discounts: list[dict] | None = None) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "uuid": li.uuid,
            "item": li.item,
            "quantity": li.quantity,
            "price": li.price,
            "priceName": li.price_name,
            "priceUuid": li.price_uuid,
            "lineItemOrder": li.line_item_order,
            "paymentStatus": li.payment_status,
        }
        if li.billable_service:
            entry["billableService"] = li.billable_service

        if discounts:
            entry["discounts"] = discounts
        elif li.discounts:
            entry["discounts"] = [
                DiscountCalculator.to_request(d, price=li.price, quantity=li.quantity) for d in li.discounts
            ]
        return entry

    @staticmethod
    def payment_payload(p: Payment, *, include_created: bool = True) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "voided": p.voided,
            "resourceVersion": p.resource_version,
            "amount": p.amount,
            "amountTendered": p.amount_tendered,
            "attributes": [{"attributeType": a.attribute_type, "value": a.value} for a in p.attributes],
            "instanceType": p.instance_type.uuid,
        }
        if p.uuid:
            entry["uuid"] = p.uuid
        if include_created and p.date_created is not None:
            entry["dateCreated"] = p.date_created
        if p.voided and p.void_reason:
            entry["voidReason"] = p.void_reason
        if p.voided and p.voided_by:
            entry["voidedBy"] = {"uuid": p.voided_by}
        return entry

    @staticmethod
    def _common(bill: ComputedBill) -> dict[str, Any]:
        return {
            "bill_uuid": bill.uuid,
            "cash_point": bill.cash_point_uuid,
            "cashier": bill.cashier.uuid if bill.cashier else None,
            "patient": bill.patient_uuid,
        }

    @staticmethod
    def build_edit_line_item_payload(
        *,
        line_item: LineItem | Mapping | str,
        form_data: Mapping,
        bill: ComputedBill | Invoice | Mapping,
        reason: str,
    ) -> EditLineItemRequest:
        """
        Replaces price / quantity (and optionally the discount) of one line
        item. Unreadable price or quantity text keeps the current value.

        form_data keys: price, quantity, discount_method, discount_value,
        discount_description, sponsor.
        """
        bill = PayloadBuilder._computed(bill)
        target_uuid = PayloadBuilder._uuid_of(line_item)
        if not target_uuid or not bill.line_items:
            raise InvalidInputError(
                {"line_item": "Invalid input: a line item uuid and a bill with line items are required."}
            )

        target = bill.find_line_item(target_uuid)
        if target is None:
            raise InvalidInputError({"line_item": f"Line item {target_uuid} is not on bill {bill.uuid}."})

        reason = (reason or "").strip()
        if not reason:
            raise InvalidInputError({"reason": "An adjustment reason is required."})

        form_data = form_data or {}
        quantity = PayloadBuilder._form_number(parse_int(form_data.get("quantity")), target.quantity, field="quantity")
        price = PayloadBuilder._form_number(parse_decimal(form_data.get("price")), target.price, field="price")

        discounts = DiscountCalculator.build_discounts(
            method=form_data.get("discount_method"),
            value=form_data.get("discount_value"),
            price=price,
            quantity=quantity,
            description=form_data.get("discount_description"),
            sponsor=form_data.get("sponsor"),
        )

        line_items = []
        for li in bill.line_items:
            if li.uuid == target.uuid:
                line_items.append(
                    PayloadBuilder.line_item_payload(replace(li, price=price, quantity=quantity), discounts=discounts)
                )
            else:
                line_items.append(PayloadBuilder.line_item_payload(li))

        request = EditLineItemRequest(
            **PayloadBuilder._common(bill),
            line_items=tuple(line_items),
            payments=tuple(PayloadBuilder.payment_payload(p) for p in bill.payments),
            # a locally derived status could overwrite the service's own value
            status=bill.server_status,
            target_line_item=target.uuid,
            adjustment_reason=reason,
        )
        logger.info(
            "built edit-line-item request",
            extra={"bill": bill.uuid, "line_item": target.uuid, "discounts": len(discounts)},
        )
        return request

    @staticmethod
    def build_delete_payment_payload(
        *,
        bill: ComputedBill | Invoice | Mapping,
        payment: Payment | Mapping | str,
        reason: str,
        actor_uuid: str | None = None,
        now: datetime | None = None,
    ) -> DeletePaymentRequest:
        """
        Voids exactly one payment. The bill status is left out so the service
        keeps its own.
        """
        bill = PayloadBuilder._computed(bill)
        payment_uuid = PayloadBuilder._uuid_of(payment)
        if not payment_uuid or bill.find_payment(payment_uuid) is None:
            raise InvalidInputError({"payment": f"Payment {payment_uuid} is not on bill {bill.uuid}."})

        reason = (reason or "").strip()
        if not reason:
            raise InvalidInputError({"reason": "A reason is required to delete a payment."})

        changed_at = (now or timezone.now()).isoformat()

        payments = []
        for p in bill.payments:
            if p.uuid != payment_uuid:
                payments.append(PayloadBuilder.payment_payload(p))
                continue

            entry = PayloadBuilder.payment_payload(p, include_created=False)
            entry["voided"] = True
            entry["voidReason"] = reason
            entry["dateChanged"] = changed_at
            if actor_uuid:
                entry["voidedBy"] = {"uuid": actor_uuid}
            payments.append(entry)

        request = DeletePaymentRequest(
            **PayloadBuilder._common(bill),
            line_items=tuple(PayloadBuilder.line_item_payload(li) for li in bill.line_items),
            payments=tuple(payments),
            voided_payment=payment_uuid,
        )
        logger.info("built delete-payment request", extra={"bill": bill.uuid, "payment": payment_uuid})
        return request

    @staticmethod
    def build_payment_payload(
        *,
        bill: ComputedBill | Invoice | Mapping,
        rows: Iterable[PaymentRow | Mapping],
        selected_line_items: Iterable[LineItem | str],
        config: BillingConfig | None = None,
    ) -> RecordPaymentRequest:
        """
        Appends new payments to the existing ones. Selected line items whose
        amount due is covered by the tendered total are marked PAID.
        """
        bill = PayloadBuilder._computed(bill, config)
        rows = [r if isinstance(r, PaymentRow) else PaymentRow.from_payload(r) for r in rows or []]
        selected = PaymentValidator.resolve_selection(bill, selected_line_items)

        result = PaymentValidator.enforce(bill=bill, selected_line_items=selected, rows=rows, config=config)

        new_payments = []
        for idx, row in enumerate(rows):
            attributes = []
            if row.reference_code:
                if not row.reference_attribute_type:
                    raise InvalidInputError(
                        {"payments": {str(idx): {"reference_code": "Reference code has no attribute type."}}}
                    )
                attributes.append({"attributeType": row.reference_attribute_type, "value": row.reference_code})

            new_payments.append(
                {
                    "voided": False,
                    "amount": money(row.amount),
                    "amountTendered": money(row.amount),
                    "attributes": attributes,
                    "instanceType": row.method,
                }
            )

        settled: set[str] = set()
        # same cent-rounded figures the completeness rule compares
        if money(result.total_tendered) >= money(result.selected_amount_due):
            settled = {li.uuid for li in PaymentValidator.payable(selected)}

        line_items = [
            PayloadBuilder.line_item_payload(
                replace(li, payment_status=PaymentStatus.PAID) if li.uuid in settled else li
            )
            for li in bill.line_items
        ]

        request = RecordPaymentRequest(
            **PayloadBuilder._common(bill),
            line_items=tuple(line_items),
            payments=tuple([PayloadBuilder.payment_payload(p) for p in bill.payments] + new_payments),
            new_payments=len(new_payments),
        )
        logger.info(
            "built record-payment request",
            extra={"bill": bill.uuid, "new_payments": len(new_payments), "settled_line_items": len(settled)},
        )
        return request

    # -------------------------------------------------------------------
    # Freshness (compare-and-swap support for the submitter)
    # -------------------------------------------------------------------

    @staticmethod
    def stale_payments(request: BillRequest, fresh_bill: ComputedBill | Invoice | Mapping) -> list[str]:
        """
        Payment uuids whose resourceVersion no longer matches a freshly
        fetched bill, plus payments the fresh bill has and the request lacks.
        """
        fresh = PayloadBuilder._computed(fresh_bill)
        if request.bill_uuid != fresh.uuid:
            raise InvalidInputError({"bill": f"Request targets bill {request.bill_uuid}, not {fresh.uuid}."})

        fresh_versions = {p.uuid: p.resource_version for p in fresh.payments if p.uuid}
        sent_versions = {p["uuid"]: p.get("resourceVersion") for p in request.payments if p.get("uuid")}

        stale = [
            uuid
            for uuid, version in sent_versions.items()
            if uuid not in fresh_versions or fresh_versions[uuid] != version
        ]
        stale.extend(uuid for uuid in fresh_versions if uuid not in sent_versions)
        return stale

    @staticmethod
    def ensure_fresh(request: BillRequest, fresh_bill: ComputedBill | Invoice | Mapping) -> None:
        stale = PayloadBuilder.stale_payments(request, fresh_bill)
        if stale:
            logger.warning("stale bill request rejected", extra={"bill": request.bill_uuid, "stale": stale})
            raise StaleRecordError(
                detail={"detail": "Bill changed since it was loaded. Reload and try again.", "stale_payments": stale}
            )
