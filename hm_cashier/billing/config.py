# hm_cashier/billing/config.py
from __future__ import annotations

from dataclasses import dataclass, field

from django.conf import settings

from hm_cashier.billing.constants import REFERENCE_NUMBER_ATTRIBUTE, TaxRecognitionPolicy


@dataclass(frozen=True)
class BillingConfig:
    """
    Billing options passed explicitly into the mapper, validator and
    aggregator. Nothing in the billing core reads settings on its own.
    """
    excluded_payment_modes: frozenset[str] = field(default_factory=frozenset)
    reference_required_payment_modes: frozenset[str] = field(default_factory=frozenset)
    reference_attribute_description: str = REFERENCE_NUMBER_ATTRIBUTE
    date_format: str = "d M Y, H:i"
    currency: str = "KES"
    tax_recognition_policy: str = TaxRecognitionPolicy.PAID_ONLY

    @classmethod
    def from_settings(cls) -> "BillingConfig":
        """
        Source of truth:
        settings.HM_CASHIER_BILLING = {
            "excluded_payment_modes": [{"uuid": ..., "label": "Waiver"}, ...],
            "reference_required_payment_modes": ["<uuid>", ...],
            "reference_attribute_description": "Reference Number",
            "date_format": "d M Y, H:i",
            "currency": "KES",
            "tax_recognition_policy": "paid-only" | "all",
        }
        """
        raw = dict(getattr(settings, "HM_CASHIER_BILLING", None) or {})

        excluded = set()
        for mode in raw.get("excluded_payment_modes") or []:
            uuid = mode.get("uuid") if isinstance(mode, dict) else mode
            if uuid:
                excluded.add(str(uuid))

        policy = raw.get("tax_recognition_policy") or TaxRecognitionPolicy.PAID_ONLY
        if policy not in TaxRecognitionPolicy.values:
            raise ValueError(f"Unknown tax_recognition_policy: {policy!r}")

        return cls(
            excluded_payment_modes=frozenset(excluded),
            reference_required_payment_modes=frozenset(
                str(u) for u in (raw.get("reference_required_payment_modes") or [])
            ),
            reference_attribute_description=raw.get("reference_attribute_description") or REFERENCE_NUMBER_ATTRIBUTE,
            date_format=raw.get("date_format") or cls.date_format,
            currency=raw.get("currency") or cls.currency,
            tax_recognition_policy=policy,
        )


DEFAULT_CONFIG = BillingConfig()
