# hm_cashier/billing/constants.py
from __future__ import annotations

from django.db import models


class PaymentStatus(models.TextChoices):
    """Shared by bills and line items."""
    PENDING = "PENDING", "Pending"
    PAID = "PAID", "Paid"
    EXEMPTED = "EXEMPTED", "Exempted"
    CANCELLED = "CANCELLED", "Cancelled"
    ADJUSTED = "ADJUSTED", "Adjusted"
    CREDITED = "CREDITED", "Credited"
    POSTED = "POSTED", "Posted"


class DiscountMethod(models.TextChoices):
    PERCENTAGE = "percentage", "Percentage"
    FIXED = "fixed", "Fixed amount"


class TaxRecognitionPolicy(models.TextChoices):
    # Tax counts towards the dashboard only once the whole bill is PAID,
    # while collection already counts partial payments.
    PAID_ONLY = "paid-only", "Paid bills only"
    ALL = "all", "Every bill"


REFERENCE_NUMBER_ATTRIBUTE = "Reference Number"

# Line items in these states are never part of a payment selection.
NON_PAYABLE_STATUSES = (PaymentStatus.PAID, PaymentStatus.EXEMPTED)
