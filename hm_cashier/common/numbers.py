# hm_cashier/common/numbers.py
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENTS = Decimal("0.01")

# Largest magnitude accepted from any input; anything beyond reads as malformed.
MAX_AMOUNT = Decimal("999999999999.99")

# Leading numeric prefix, the way form inputs are read ("12.5abc" -> 12.5).
_DECIMAL_PREFIX = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")


@dataclass(frozen=True)
class ParseResult:
    """
    Outcome of reading a number from user or server input.

    A failed parse is not an error: the caller decides which value to use
    instead by calling `or_fallback()`.
    """
    raw: Any
    value: Any = None

    @property
    def ok(self) -> bool:
        return self.value is not None

    def or_fallback(self, fallback, *, field: str | None = None):
        if self.ok:
            return self.value
        if self.raw is None or self.raw == "":
            # blank input is "not entered", not malformed
            return fallback
        logger.warning(
            "numeric input could not be parsed, using fallback",
            extra={"field": field, "raw": repr(self.raw), "fallback": str(fallback)},
        )
        return fallback


def in_range(value: Decimal | int) -> bool:
    return abs(value) <= MAX_AMOUNT


def _as_text(raw: Any) -> str | None:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float, Decimal)):
        return str(raw)
    if isinstance(raw, str):
        return raw
    return None


def parse_decimal(raw: Any) -> ParseResult:
    text = _as_text(raw)
    if text is None:
        return ParseResult(raw=raw)

    m = _DECIMAL_PREFIX.match(text)
    if not m:
        return ParseResult(raw=raw)

    try:
        value = Decimal(m.group(1))
    except (InvalidOperation, ValueError):
        return ParseResult(raw=raw)
    return ParseResult(raw=raw, value=value if in_range(value) else None)


def parse_int(raw: Any) -> ParseResult:
    text = _as_text(raw)
    if text is None:
        return ParseResult(raw=raw)

    m = _INT_PREFIX.match(text)
    if not m:
        return ParseResult(raw=raw)
    value = int(m.group(1))
    return ParseResult(raw=raw, value=value if in_range(value) else None)


def to_decimal(value: Any, default: Decimal | None = ZERO) -> Decimal | None:
    """
    Server-supplied numbers (float / int / str / None) as Decimal.
    Missing, malformed or out-of-range values become `default` silently.
    """
    if isinstance(value, Decimal):
        return value if value.is_finite() and in_range(value) else default
    parsed = parse_decimal(value)
    return parsed.value if parsed.ok else default


def money(value: Decimal) -> Decimal:
    # products of in-range values can outgrow the default 28-digit context
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        return value.quantize(CENTS, rounding=ROUND_HALF_UP)
