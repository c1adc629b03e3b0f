"""Text helpers for the CLI and HTTP boundary: dollars, percents and rule descriptions."""
from __future__ import annotations

import re

from oracle_market.shop.errors import InvalidInput, InvalidRuleValue
from oracle_market.shop.records import BPS_DENOMINATOR, DiscountRule, FixedDiscount, PercentDiscount

_USD = re.compile(r"^\$?(\d+)(?:\.(\d{0,2}))?$")
_PERCENT = re.compile(r"^(\d+)(?:\.(\d{1,2}))?%?$")


def parse_usd_to_cents(raw: str) -> int:
    """'12.5' -> 1250. At most two decimals; no negatives."""
    text = raw.strip()
    if not text:
        raise InvalidInput("A price is required")
    match = _USD.match(text)
    if match is None:
        raise InvalidInput(f"Not a USD amount: {raw!r}")
    dollars, fractional = match.group(1), (match.group(2) or "").ljust(2, "0")
    return int(dollars) * 100 + int(fractional)


def format_usd_from_cents(cents: int) -> str:
    dollars, remainder = divmod(cents, 100)
    return f"${dollars}.{remainder:02d}"


def parse_percent_to_basis_points(raw: str) -> int:
    """'12.5' -> 1250 bps, capped at 100.00%."""
    text = raw.strip()
    if not text:
        raise InvalidRuleValue("A percent value is required")
    match = _PERCENT.match(text)
    if match is None:
        raise InvalidRuleValue("Percent discounts accept up to two decimals (e.g. 12.5 for 12.50%)")
    bps = int(match.group(1)) * 100 + int((match.group(2) or "").ljust(2, "0"))
    if bps > BPS_DENOMINATOR:
        raise InvalidRuleValue("Percent discount cannot exceed 100.00%")
    return bps


def format_basis_points(bps: int) -> str:
    whole, fraction = divmod(bps, 100)
    return f"{whole}.{fraction:02d}%"


def describe_rule(rule: DiscountRule) -> str:
    match rule:
        case FixedDiscount(amount_cents=amount):
            return f"{format_usd_from_cents(amount)} off"
        case PercentDiscount(bps=bps):
            return f"{format_basis_points(bps)} off"
    raise InvalidRuleValue(f"Unknown discount rule {rule!r}")
