# hm_cashier/billing/discounts.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from hm_cashier.billing.constants import DiscountMethod
from hm_cashier.billing.exceptions import InvalidInputError
from hm_cashier.billing.types import Discount, LineItem
from hm_cashier.common.numbers import ZERO, money, parse_decimal, to_decimal

HUNDRED = Decimal("100")
RATE_PLACES = Decimal("0.000001")


@dataclass(frozen=True)
class DiscountAmountAndRate:
    amount: Decimal
    rate: Decimal | None = None


@dataclass(frozen=True)
class DiscountFormValues:
    method: str = DiscountMethod.PERCENTAGE
    value: Decimal = ZERO
    description: str = ""
    sponsor: str | None = None


class DiscountCalculator:
    """
    Discount amount/rate in both directions:
    - form input (method + value) -> {amount, rate} against a base amount
    - stored discount -> method + value for pre-filling the edit form
    """

    @staticmethod
    def _method(method: str | None) -> str:
        method = method or DiscountMethod.PERCENTAGE
        if method not in DiscountMethod.values:
            raise InvalidInputError({"discount_method": f"Unknown discount method: {method!r}."})
        return method

    @staticmethod
    def compute(*, method: str | None, value: Any, base_amount: Any) -> DiscountAmountAndRate | None:
        """
        Returns None ("no discount") when value is blank, non-numeric, out of
        range or <= 0.

        percentage: amount = base * value / 100, rate = value / 100
        fixed:      amount = value, rate = amount / base (omitted when base is 0)
        """
        method = DiscountCalculator._method(method)
        discount_value = parse_decimal(value).or_fallback(ZERO, field="discount_value")
        if discount_value <= ZERO:
            return None

        base = to_decimal(base_amount)

        if method == DiscountMethod.PERCENTAGE:
            return DiscountAmountAndRate(
                amount=money(base * discount_value / HUNDRED),
                rate=discount_value / HUNDRED,
            )

        rate = (discount_value / base).quantize(RATE_PLACES) if base else None
        return DiscountAmountAndRate(amount=discount_value, rate=rate)

    @staticmethod
    def build_discounts(
        *,
        method: str | None,
        value: Any,
        price: Decimal,
        quantity: int,
        description: str | None = None,
        sponsor: Any = None,
    ) -> list[dict]:
        """
        Request-shaped discount list for one line item: [] or a single
        {amount, baseAmount, rate?, description?, sponsor?}.
        """
        base_amount = price * quantity
        computed = DiscountCalculator.compute(method=method, value=value, base_amount=base_amount)
        if computed is None:
            return []

        discount: dict[str, Any] = {"amount": computed.amount, "baseAmount": base_amount}
        if computed.rate is not None:
            discount["rate"] = computed.rate

        description = (description or "").strip()
        if description:
            discount["description"] = description

        sponsor_uuid = sponsor.get("uuid") if isinstance(sponsor, dict) else sponsor
        if sponsor_uuid:
            discount["sponsor"] = sponsor_uuid

        return [discount]

    @staticmethod
    def to_request(discount: Discount, *, price: Decimal, quantity: int) -> dict:
        """
        Existing discount in request shape. Discounts are replace-only, so the
        server-assigned uuid is never sent back.
        """
        req: dict[str, Any] = {
            "amount": discount.amount,
            "baseAmount": discount.base_amount if discount.base_amount is not None else price * quantity,
        }
        if discount.rate is not None:
            req["rate"] = discount.rate
        if discount.description:
            req["description"] = discount.description
        if discount.sponsor:
            req["sponsor"] = discount.sponsor
        return req

    @staticmethod
    def reconstruct(discount: Discount | None) -> DiscountFormValues:
        """
        rate > 0 -> percentage with value = round(rate * 100), else fixed with
        value = amount. Fractional percentages (12.5%) come back rounded.
        """
        if discount is None:
            return DiscountFormValues()

        if discount.rate is not None and discount.rate > ZERO:
            value = (discount.rate * HUNDRED).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
            method = DiscountMethod.PERCENTAGE
        else:
            value = discount.amount
            method = DiscountMethod.FIXED

        return DiscountFormValues(
            method=method,
            value=value,
            description=discount.description or "",
            sponsor=discount.sponsor,
        )

    @staticmethod
    def form_defaults(line_item: LineItem) -> DiscountFormValues:
        first = line_item.discounts[0] if line_item.discounts else None
        return DiscountCalculator.reconstruct(first)
