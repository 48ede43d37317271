# hm_cashier/billing/validators.py
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal

from hm_cashier.billing.config import DEFAULT_CONFIG, BillingConfig
from hm_cashier.billing.constants import NON_PAYABLE_STATUSES
from hm_cashier.billing.exceptions import IncompletePaymentError, InvalidInputError, PaymentValidationError
from hm_cashier.billing.types import ComputedBill, LineItem, PaymentRow
from hm_cashier.common.numbers import ZERO, in_range, money

logger = logging.getLogger(__name__)

NOTICE_NO_ROWS = "no_payment_rows"
NOTICE_INCOMPLETE = "incomplete_payment"


@dataclass(frozen=True)
class PaymentValidationResult:
    ok: bool
    field_errors: dict[int, dict[str, list[str]]] = field(default_factory=dict)
    notices: list[dict] = field(default_factory=list)
    selected_amount_due: Decimal = ZERO
    total_tendered: Decimal = ZERO

    def notice_codes(self) -> list[str]:
        return [n["code"] for n in self.notices]


class PaymentValidator:
    """
    Admissibility of proposed payment rows against a computed bill.

    Rules, in order:
    1. amount readable, > 0 and <= the bill's amount due (field error)
    2. reference code present where the mode requires one (field error)
    3. >1 selected item: sum of rows == selected amount due (blocking notice)
    4. exactly 1 selected item: partial payment is fine
    """

    @staticmethod
    def selected_amount_due(selected_line_items: Iterable[LineItem]) -> Decimal:
        return sum((li.amount_due for li in PaymentValidator.payable(selected_line_items)), ZERO)

    @staticmethod
    def payable(line_items: Iterable[LineItem]) -> list[LineItem]:
        return [li for li in line_items if not li.voided and li.payment_status not in NON_PAYABLE_STATUSES]

    @staticmethod
    def resolve_selection(bill: ComputedBill, selected: Iterable[LineItem | str]) -> list[LineItem]:
        resolved = []
        for entry in selected or []:
            if isinstance(entry, LineItem):
                resolved.append(entry)
                continue
            li = bill.find_line_item(str(entry))
            if li is None:
                raise InvalidInputError({"selected_line_items": f"Line item {entry} is not on bill {bill.uuid}."})
            resolved.append(li)
        return resolved

    @staticmethod
    def _rows(rows: Iterable[PaymentRow | Mapping]) -> list[PaymentRow]:
        return [r if isinstance(r, PaymentRow) else PaymentRow.from_payload(r) for r in rows or []]

    @staticmethod
    def validate(
        *,
        bill: ComputedBill,
        selected_line_items: Iterable[LineItem | str],
        rows: Iterable[PaymentRow | Mapping],
        config: BillingConfig | None = None,
    ) -> PaymentValidationResult:
        config = config or DEFAULT_CONFIG
        rows = PaymentValidator._rows(rows)
        payable = PaymentValidator.payable(PaymentValidator.resolve_selection(bill, selected_line_items))
        amount_due = bill.amount_due

        field_errors: dict[int, dict[str, list[str]]] = {}
        for idx, row in enumerate(rows):
            errors: dict[str, list[str]] = {}

            if not row.method:
                errors["method"] = ["Payment method is required."]
            elif row.method in config.excluded_payment_modes:
                errors["method"] = ["This payment method is not accepted here."]

            if row.amount is None or not in_range(row.amount):
                errors["amount"] = ["Enter a valid amount."]
            elif row.amount <= ZERO:
                errors["amount"] = ["Amount must be greater than zero."]
            elif row.amount > amount_due:
                errors["amount"] = [f"Amount must not exceed the amount due ({money(amount_due)})."]

            if row.method in config.reference_required_payment_modes and not row.reference_code:
                errors["reference_code"] = ["Reference code is required for this payment method."]

            if errors:
                field_errors[idx] = errors

        selected_due = sum((li.amount_due for li in payable), ZERO)
        total_tendered = sum((r.amount for r in rows if r.amount is not None and in_range(r.amount)), ZERO)

        notices: list[dict] = []
        if not rows:
            notices.append({"code": NOTICE_NO_ROWS, "message": "Add at least one payment."})
        elif len(payable) > 1 and money(total_tendered) != money(selected_due):
            # no per-item allocation for partial payments across several items
            notices.append(
                {
                    "code": NOTICE_INCOMPLETE,
                    "message": (
                        "Please ensure all selected line items are fully paid. "
                        f"Total amount expected is {money(selected_due)}."
                    ),
                    "expected": money(selected_due),
                    "tendered": money(total_tendered),
                }
            )

        ok = not field_errors and not notices
        if not ok:
            logger.info(
                "payment rows rejected",
                extra={"bill": bill.uuid, "field_errors": len(field_errors), "notices": [n["code"] for n in notices]},
            )

        return PaymentValidationResult(
            ok=ok,
            field_errors=field_errors,
            notices=notices,
            selected_amount_due=selected_due,
            total_tendered=total_tendered,
        )

    @staticmethod
    def enforce(
        *,
        bill: ComputedBill,
        selected_line_items: Iterable[LineItem | str],
        rows: Iterable[PaymentRow | Mapping],
        config: BillingConfig | None = None,
    ) -> PaymentValidationResult:
        """
        Strict variant of validate(): field errors raise PaymentValidationError,
        the cross-field rule raises IncompletePaymentError.
        """
        result = PaymentValidator.validate(
            bill=bill,
            selected_line_items=selected_line_items,
            rows=rows,
            config=config,
        )

        if result.field_errors:
            raise PaymentValidationError(
                {"payments": {str(idx): errors for idx, errors in result.field_errors.items()}}
            )

        if result.notices:
            notice = result.notices[0]
            if notice["code"] == NOTICE_INCOMPLETE:
                raise IncompletePaymentError(detail=notice["message"])
            raise PaymentValidationError({"payments": [notice["message"]]})

        return result
