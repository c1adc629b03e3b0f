"""Market records and value objects: shops, listings, currencies, discounts, receipts, coins."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from oracle_market.domain import ValueObject
from oracle_market.shop.errors import (
    AlreadyClaimed,
    InsufficientPayment,
    InvalidGuardrailCap,
    InvalidRuleValue,
    TemplateExpired,
    TemplateInactive,
    TemplateMaxedOut,
    TemplateTooEarly,
)
from oracle_market.shop.locks import currency_key, listing_key

BPS_DENOMINATOR = 10_000


@dataclass
class Shop:
    id: str
    owner: str
    name: str
    disabled: bool = False
    next_listing_id: int = 1

    def allocate_listing_id(self) -> int:
        listing_id = self.next_listing_id
        self.next_listing_id += 1
        return listing_id


@dataclass
class Listing:
    shop_id: str
    listing_id: int
    item_type: str
    name: str
    base_price_usd_cents: int
    stock: int
    spotlight_template_id: str | None = None

    @property
    def key(self) -> str:
        return listing_key(self.shop_id, self.listing_id)


# Guardrails


@dataclass(frozen=True)
class Guardrails(ValueObject):
    max_price_age_secs: int
    max_confidence_ratio_bps: int
    max_price_status_lag_secs: int

    def tighten(self, overrides: GuardrailOverrides | None) -> Guardrails:
        """effective = min(requested ?? cap, cap) per field."""
        if overrides is None:
            return self

        def pick(requested: int | None, cap: int) -> int:
            return cap if requested is None else min(requested, cap)

        return Guardrails(
            max_price_age_secs=pick(overrides.max_price_age_secs, self.max_price_age_secs),
            max_confidence_ratio_bps=pick(overrides.max_confidence_ratio_bps, self.max_confidence_ratio_bps),
            max_price_status_lag_secs=pick(overrides.max_price_status_lag_secs, self.max_price_status_lag_secs),
        )


@dataclass(frozen=True)
class GuardrailOverrides(ValueObject):
    max_price_age_secs: int | None = None
    max_confidence_ratio_bps: int | None = None
    max_price_status_lag_secs: int | None = None

    def require_positive(self) -> None:
        for name in ("max_price_age_secs", "max_confidence_ratio_bps", "max_price_status_lag_secs"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise InvalidGuardrailCap(f"{name} must be positive")


GUARDRAIL_CEILINGS = Guardrails(
    max_price_age_secs=60,
    max_confidence_ratio_bps=1_000,
    max_price_status_lag_secs=5,
)


@dataclass
class AcceptedCurrency:
    shop_id: str
    currency: str
    feed_id: bytes
    oracle_object_id: str
    decimals: int
    symbol: str
    guardrails: Guardrails

    @property
    def key(self) -> str:
        return currency_key(self.shop_id, self.currency)


# Discounts


@dataclass(frozen=True)
class FixedDiscount(ValueObject):
    amount_cents: int

    kind = "fixed"


@dataclass(frozen=True)
class PercentDiscount(ValueObject):
    bps: int

    kind = "percent"

    def __post_init__(self) -> None:
        if self.bps > BPS_DENOMINATOR:
            raise InvalidRuleValue("Percent discount cannot exceed 100.00%")


DiscountRule = Union[FixedDiscount, PercentDiscount]


def parse_discount_rule(kind: str | int, value: int) -> DiscountRule:
    """Boundary parsing: (0 | "fixed", cents) or (1 | "percent", bps)."""
    if value < 0:
        raise InvalidRuleValue("Rule value cannot be negative")
    normalized = str(kind).strip().lower()
    if normalized in ("0", "fixed"):
        return FixedDiscount(amount_cents=value)
    if normalized in ("1", "percent"):
        return PercentDiscount(bps=value)
    raise InvalidRuleValue("rule kind must be either fixed or percent")


def rule_value(rule: DiscountRule) -> int:
    match rule:
        case FixedDiscount(amount_cents=amount):
            return amount
        case PercentDiscount(bps=bps):
            return bps


@dataclass(frozen=True)
class ClaimMarker(ValueObject):
    template_id: str
    claimer: str
    claimed_at: int


@dataclass
class DiscountTemplate:
    id: str
    shop_id: str
    rule: DiscountRule
    starts_at: int
    applies_to_listing_id: int | None = None
    expires_at: int | None = None
    max_redemptions: int | None = None
    claims_issued: int = 0
    redemptions: int = 0
    active: bool = True
    # keyed by claimer address
    claim_markers: dict[str, ClaimMarker] = field(default_factory=dict)

    def is_expired(self, now: int) -> bool:
        return self.expires_at is not None and now >= self.expires_at

    def is_maxed(self) -> bool:
        return self.max_redemptions is not None and self.redemptions >= self.max_redemptions

    def is_finished(self, now: int) -> bool:
        return self.is_expired(now) or self.is_maxed()

    def is_editable(self, now: int) -> bool:
        return self.claims_issued == 0 and self.redemptions == 0 and not self.is_finished(now)

    def status(self, now: int) -> str:
        if not self.active:
            return "disabled"
        if self.is_expired(now):
            return "expired"
        if self.is_maxed():
            return "maxed"
        if now < self.starts_at:
            return "scheduled"
        return "active"

    def ensure_open(self, now: int) -> None:
        """Active, inside the schedule window and under the redemption cap."""
        if not self.active:
            raise TemplateInactive()
        if now < self.starts_at:
            raise TemplateTooEarly()
        if self.is_expired(now):
            raise TemplateExpired()
        if self.is_maxed():
            raise TemplateMaxedOut()

    def has_claimed(self, claimer: str) -> bool:
        return claimer in self.claim_markers

    def record_claim(self, claimer: str, now: int) -> ClaimMarker:
        self.ensure_open(now)
        if self.has_claimed(claimer):
            raise AlreadyClaimed()
        marker = ClaimMarker(template_id=self.id, claimer=claimer, claimed_at=now)
        self.claim_markers[claimer] = marker
        self.claims_issued += 1
        return marker

    def record_redemption(self, now: int) -> None:
        self.ensure_open(now)
        self.redemptions += 1


@dataclass
class DiscountTicket:
    id: str
    template_id: str
    shop_id: str
    claimer: str
    claimed_at: int
    listing_id: int | None = None


@dataclass(frozen=True)
class Receipt(ValueObject):
    id: str
    shop_id: str
    listing_id: int
    item_type: str
    name: str
    owner: str
    acquired_at: int


@dataclass(frozen=True)
class Coin(ValueObject):
    currency: str
    value: int

    def split(self, amount: int) -> tuple[Coin, Coin]:
        """(taken, change). Raises InsufficientPayment when amount > value."""
        if amount > self.value:
            raise InsufficientPayment(f"Payment of {self.value} does not cover {amount}")
        return Coin(self.currency, amount), Coin(self.currency, self.value - amount)
