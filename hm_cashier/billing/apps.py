# hm_cashier/billing/apps.py
from __future__ import annotations

from django.apps import AppConfig


class CashierBillingConfig(AppConfig):
    name = "hm_cashier.billing"
    label = "cashier_billing"

    def ready(self) -> None:
        from hm_cashier.billing.config import BillingConfig

        # fail at startup on a bad HM_CASHIER_BILLING, not on the first request
        BillingConfig.from_settings()
