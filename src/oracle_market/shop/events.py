"""Market lifecycle events. Field names and types are the indexing contract: add fields, never rename."""
from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from oracle_market.domain import DomainEvent


@dataclass
class ShopCreated(DomainEvent):
    shop_id: str
    owner: str
    name: str


@dataclass
class ShopOwnerUpdated(DomainEvent):
    shop_id: str
    previous_owner: str
    new_owner: str


@dataclass
class ShopDisabledEvent(DomainEvent):
    event_name: ClassVar[str] = "ShopDisabled"

    shop_id: str
    owner: str


@dataclass
class ItemListingAdded(DomainEvent):
    shop_id: str
    listing_id: int
    item_type: str
    name: str
    base_price_usd_cents: int
    stock: int
    spotlight_template_id: str | None


@dataclass
class ItemListingUpdated(DomainEvent):
    shop_id: str
    listing_id: int
    name: str
    base_price_usd_cents: int


@dataclass
class ItemListingStockUpdated(DomainEvent):
    shop_id: str
    listing_id: int
    previous_stock: int
    new_stock: int


@dataclass
class ItemListingRemoved(DomainEvent):
    shop_id: str
    listing_id: int


@dataclass
class ItemListingSpotlightUpdated(DomainEvent):
    shop_id: str
    listing_id: int
    spotlight_template_id: str | None


@dataclass
class AcceptedCurrencyAdded(DomainEvent):
    shop_id: str
    currency: str
    feed_id: bytes
    oracle_object_id: str
    decimals: int
    symbol: str
    max_price_age_secs_cap: int
    max_confidence_ratio_bps_cap: int
    max_price_status_lag_secs_cap: int


@dataclass
class AcceptedCurrencyRemoved(DomainEvent):
    shop_id: str
    currency: str


@dataclass
class DiscountTemplateCreated(DomainEvent):
    shop_id: str
    template_id: str
    applies_to_listing_id: int | None
    rule_kind: str
    rule_value: int
    starts_at: int
    expires_at: int | None
    max_redemptions: int | None


@dataclass
class DiscountTemplateUpdated(DomainEvent):
    shop_id: str
    template_id: str
    rule_kind: str
    rule_value: int
    starts_at: int
    expires_at: int | None
    max_redemptions: int | None


@dataclass
class DiscountTemplateToggled(DomainEvent):
    shop_id: str
    template_id: str
    active: bool


@dataclass
class DiscountClaimed(DomainEvent):
    shop_id: str
    template_id: str
    ticket_id: str
    claimer: str


@dataclass
class DiscountRedeemed(DomainEvent):
    shop_id: str
    template_id: str
    ticket_id: str
    buyer: str
    listing_id: int


@dataclass
class DiscountClaimsPruned(DomainEvent):
    shop_id: str
    template_id: str
    pruned: int


@dataclass
class PurchaseCompleted(DomainEvent):
    shop_id: str
    listing_id: int
    receipt_id: str
    buyer: str
    mint_to: str
    currency: str
    amount_paid: int
    base_price_usd_cents: int
    discounted_price_usd_cents: int
    discount_template_id: str | None
    feed_id: bytes
