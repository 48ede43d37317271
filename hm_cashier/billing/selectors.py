# hm_cashier/billing/selectors.py
from __future__ import annotations

from collections.abc import Iterable, Mapping

from hm_cashier.billing.config import DEFAULT_CONFIG, BillingConfig
from hm_cashier.billing.types import ComputedBill, PaymentMode


class BillSelectors:
    """
    Read-only views over already computed bills and fetched payment modes.
    Nothing here talks to the cashier service.
    """

    @staticmethod
    def filter_bills(
        bills: Iterable[ComputedBill],
        *,
        status: str | None = None,
        patient_uuid: str | None = None,
    ) -> list[ComputedBill]:
        """Newest first; `status` matches the derived bill status."""
        selected = list(bills)

        if patient_uuid:
            selected = [b for b in selected if b.patient_uuid == patient_uuid]

        if status:
            selected = [b for b in selected if b.status == status]

        # ISO-8601 strings sort chronologically; undated bills go last
        return sorted(selected, key=lambda b: b.date_created_unformatted or "", reverse=True)

    @staticmethod
    def allowed_payment_modes(
        modes: Iterable[PaymentMode | Mapping],
        *,
        config: BillingConfig | None = None,
        exclude_waiver: bool = True,
    ) -> list[PaymentMode]:
        config = config or DEFAULT_CONFIG
        resolved = [m if isinstance(m, PaymentMode) else PaymentMode.from_payload(m) for m in modes or []]

        if not exclude_waiver:
            return resolved
        return [m for m in resolved if m.uuid not in config.excluded_payment_modes]
