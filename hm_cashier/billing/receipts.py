# hm_cashier/billing/receipts.py
from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from datetime import date, datetime

from django.utils import timezone

logger = logging.getLogger(__name__)

RECEIPT_RE = re.compile(r"^(\d{8})-(\d+)$")


class ReceiptNumbers:

    @staticmethod
    def next_receipt_number(
        *,
        existing: Iterable[str | None],
        today: date | None = None,
        now: datetime | None = None,
    ) -> str:
        """
        YYYYMMDD-NNN, continuing today's highest sequence.

        `existing` are receipt numbers already issued (any day). If one of
        today's numbers cannot be read, the sequence falls back to the last
        three digits of the current time in milliseconds.
        """
        now = now or timezone.now()
        today = today or timezone.localdate(now)
        prefix = today.strftime("%Y%m%d")

        highest = 0
        for number in existing or []:
            if not number or not str(number).startswith(prefix):
                continue

            m = RECEIPT_RE.match(str(number).strip())
            if not m:
                logger.warning("unreadable receipt number, using time-based sequence", extra={"receipt": number})
                millis = str(int(now.timestamp() * 1000))
                return f"{prefix}-{millis[-3:]}"

            highest = max(highest, int(m.group(2)))

        return f"{prefix}-{highest + 1:03d}"
