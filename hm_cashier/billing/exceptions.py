# hm_cashier/billing/exceptions.py
from __future__ import annotations

from rest_framework.exceptions import ValidationError

from hm_cashier.common.api.exceptions import ConflictError


class InvalidInputError(ValidationError):
    """
    Required identifiers or collections are missing on entry to a payload
    builder. Never recovered locally.
    """
    default_detail = "Invalid input."
    default_code = "invalid_input"


class PaymentValidationError(ValidationError):
    """Field-level payment row violations, keyed by row index."""
    default_detail = "Invalid payment rows."
    default_code = "payment_invalid"


class IncompletePaymentError(ConflictError):
    """Multi-item selection not paid in full."""
    default_detail = "Incomplete payment."
    default_code = "incomplete_payment"


class StaleRecordError(ConflictError):
    """The request was built from an older version of the bill."""
    default_detail = "Bill changed since it was loaded."
    default_code = "stale_record"
