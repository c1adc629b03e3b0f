"""Application layer: commands, queries, handlers. Flat payloads so they map 1:1 onto HTTP bodies."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from oracle_market.ddd import Command, Query
from oracle_market.shop.auth import AdminCredential
from oracle_market.shop.catalog import CatalogStore
from oracle_market.shop.checkout import CheckoutCoordinator, PurchaseOutcome, QuotePreview
from oracle_market.shop.clock import Clock
from oracle_market.shop.currency import CurrencyRegistry, parse_feed_id_hex
from oracle_market.shop.discounts import DiscountEngine
from oracle_market.shop.formatting import (
    describe_rule,
    format_usd_from_cents,
    parse_percent_to_basis_points,
    parse_usd_to_cents,
)
from oracle_market.shop.oracle import PriceInfoObject, observation
from oracle_market.shop.records import (
    AcceptedCurrency,
    Coin,
    DiscountRule,
    DiscountTemplate,
    GuardrailOverrides,
    Listing,
    PercentDiscount,
    parse_discount_rule,
    rule_value,
)
from oracle_market.shop.sales import SalesIndex
from oracle_market.shop.shops import ShopDirectory


def _rule(kind: str, value: int | str) -> DiscountRule:
    """Integers are cents or bps as stored; text reads like '$2.50' or '12.5%'."""
    if isinstance(value, str):
        if isinstance(parse_discount_rule(kind, 0), PercentDiscount):
            value = parse_percent_to_basis_points(value)
        else:
            value = parse_usd_to_cents(value)
    return parse_discount_rule(kind, value)


def _credential(shop_id: str, credential_id: str) -> AdminCredential:
    return AdminCredential(id=credential_id, shop_id=shop_id)


def _overrides(payload: Any) -> GuardrailOverrides | None:
    caps = GuardrailOverrides(
        max_price_age_secs=payload.max_price_age_secs,
        max_confidence_ratio_bps=payload.max_confidence_ratio_bps,
        max_price_status_lag_secs=payload.max_price_status_lag_secs,
    )
    return None if caps == GuardrailOverrides() else caps


def _price_info(payload: Any) -> PriceInfoObject:
    return PriceInfoObject(
        id=payload.price_object_id,
        feed_id=parse_feed_id_hex(payload.feed_id),
        observation=observation(payload.price, payload.expo, payload.conf, payload.publish_time),
        attestation_time=payload.attestation_time if payload.attestation_time is not None else payload.publish_time,
    )


def listing_view(listing: Listing) -> dict[str, Any]:
    return {
        "shop_id": listing.shop_id,
        "listing_id": listing.listing_id,
        "item_type": listing.item_type,
        "name": listing.name,
        "base_price_usd_cents": listing.base_price_usd_cents,
        "base_price": format_usd_from_cents(listing.base_price_usd_cents),
        "stock": listing.stock,
        "spotlight_template_id": listing.spotlight_template_id,
    }


def currency_view(entry: AcceptedCurrency) -> dict[str, Any]:
    return {
        "shop_id": entry.shop_id,
        "currency": entry.currency,
        "symbol": entry.symbol,
        "decimals": entry.decimals,
        "feed_id": entry.feed_id.hex(),
        "oracle_object_id": entry.oracle_object_id,
        "max_price_age_secs": entry.guardrails.max_price_age_secs,
        "max_confidence_ratio_bps": entry.guardrails.max_confidence_ratio_bps,
        "max_price_status_lag_secs": entry.guardrails.max_price_status_lag_secs,
    }


def template_view(template: DiscountTemplate, now: int) -> dict[str, Any]:
    return {
        "template_id": template.id,
        "shop_id": template.shop_id,
        "applies_to_listing_id": template.applies_to_listing_id,
        "rule_kind": template.rule.kind,
        "rule_value": rule_value(template.rule),
        "description": describe_rule(template.rule),
        "starts_at": template.starts_at,
        "expires_at": template.expires_at,
        "max_redemptions": template.max_redemptions,
        "claims_issued": template.claims_issued,
        "redemptions": template.redemptions,
        "active": template.active,
        "status": template.status(now),
    }


def purchase_view(outcome: PurchaseOutcome) -> dict[str, Any]:
    return {
        "receipt": outcome.receipt,
        "amount_paid": outcome.paid.value,
        "change": outcome.change.value,
        "currency": outcome.paid.currency,
        "base_price_usd_cents": outcome.base_price_usd_cents,
        "discounted_price_usd_cents": outcome.discounted_price_usd_cents,
        "discount_template_id": outcome.discount_template_id,
        "quote": outcome.quote,
    }


# Shops


@dataclass
class CreateShop(Command):
    name: str
    owner: str


@dataclass
class UpdateShopOwner(Command):
    shop_id: str
    credential_id: str
    new_owner: str


@dataclass
class DisableShop(Command):
    shop_id: str
    credential_id: str


@dataclass
class GetShop(Query):
    shop_id: str


class CreateShopHandler:
    def __init__(self, shops: ShopDirectory):
        self._shops = shops

    async def __call__(self, cmd: CreateShop) -> dict[str, Any]:
        shop, credential = await self._shops.create_shop(cmd.name, cmd.owner)
        # the only response that ever carries the credential id
        return {"shop": shop, "credential_id": credential.id}


class UpdateShopOwnerHandler:
    def __init__(self, shops: ShopDirectory):
        self._shops = shops

    async def __call__(self, cmd: UpdateShopOwner):
        return await self._shops.update_owner(_credential(cmd.shop_id, cmd.credential_id), cmd.shop_id, cmd.new_owner)


class DisableShopHandler:
    def __init__(self, shops: ShopDirectory):
        self._shops = shops

    async def __call__(self, cmd: DisableShop):
        return await self._shops.disable_shop(_credential(cmd.shop_id, cmd.credential_id), cmd.shop_id)


class GetShopHandler:
    def __init__(self, shops: ShopDirectory):
        self._shops = shops

    async def __call__(self, query: GetShop):
        return await self._shops.get_shop(query.shop_id)


# Listings


@dataclass
class AddListing(Command):
    shop_id: str
    credential_id: str
    name: str
    item_type: str
    base_price_usd_cents: int
    stock: int
    spotlight_template_id: str | None = None


@dataclass
class UpdateListing(Command):
    shop_id: str
    credential_id: str
    listing_id: int
    name: str
    base_price_usd_cents: int


@dataclass
class SetListingStock(Command):
    shop_id: str
    credential_id: str
    listing_id: int
    stock: int


@dataclass
class RemoveListing(Command):
    shop_id: str
    credential_id: str
    listing_id: int


@dataclass
class AttachSpotlight(Command):
    shop_id: str
    credential_id: str
    listing_id: int
    template_id: str


@dataclass
class ClearSpotlight(Command):
    shop_id: str
    credential_id: str
    listing_id: int


@dataclass
class ListListings(Query):
    shop_id: str


@dataclass
class GetListing(Query):
    shop_id: str
    listing_id: int


class AddListingHandler:
    def __init__(self, catalog: CatalogStore):
        self._catalog = catalog

    async def __call__(self, cmd: AddListing) -> dict[str, Any]:
        listing = await self._catalog.add_listing(
            _credential(cmd.shop_id, cmd.credential_id),
            cmd.shop_id,
            name=cmd.name,
            item_type=cmd.item_type,
            base_price_usd_cents=cmd.base_price_usd_cents,
            stock=cmd.stock,
            spotlight_template_id=cmd.spotlight_template_id,
        )
        return listing_view(listing)


class UpdateListingHandler:
    def __init__(self, catalog: CatalogStore):
        self._catalog = catalog

    async def __call__(self, cmd: UpdateListing) -> dict[str, Any]:
        listing = await self._catalog.update_listing(
            _credential(cmd.shop_id, cmd.credential_id),
            cmd.shop_id,
            cmd.listing_id,
            name=cmd.name,
            base_price_usd_cents=cmd.base_price_usd_cents,
        )
        return listing_view(listing)


class SetListingStockHandler:
    def __init__(self, catalog: CatalogStore):
        self._catalog = catalog

    async def __call__(self, cmd: SetListingStock) -> dict[str, Any]:
        listing = await self._catalog.set_stock(
            _credential(cmd.shop_id, cmd.credential_id), cmd.shop_id, cmd.listing_id, cmd.stock
        )
        return listing_view(listing)


class RemoveListingHandler:
    def __init__(self, catalog: CatalogStore):
        self._catalog = catalog

    async def __call__(self, cmd: RemoveListing) -> None:
        await self._catalog.remove_listing(_credential(cmd.shop_id, cmd.credential_id), cmd.shop_id, cmd.listing_id)


class AttachSpotlightHandler:
    def __init__(self, catalog: CatalogStore):
        self._catalog = catalog

    async def __call__(self, cmd: AttachSpotlight) -> dict[str, Any]:
        listing = await self._catalog.attach_spotlight(
            _credential(cmd.shop_id, cmd.credential_id), cmd.shop_id, cmd.listing_id, cmd.template_id
        )
        return listing_view(listing)


class ClearSpotlightHandler:
    def __init__(self, catalog: CatalogStore):
        self._catalog = catalog

    async def __call__(self, cmd: ClearSpotlight) -> dict[str, Any]:
        listing = await self._catalog.clear_spotlight(
            _credential(cmd.shop_id, cmd.credential_id), cmd.shop_id, cmd.listing_id
        )
        return listing_view(listing)


class ListListingsHandler:
    def __init__(self, catalog: CatalogStore):
        self._catalog = catalog

    async def __call__(self, query: ListListings) -> list[dict[str, Any]]:
        return [listing_view(listing) for listing in await self._catalog.list_listings(query.shop_id)]


class GetListingHandler:
    def __init__(self, catalog: CatalogStore):
        self._catalog = catalog

    async def __call__(self, query: GetListing) -> dict[str, Any]:
        return listing_view(await self._catalog.get_listing(query.shop_id, query.listing_id))


# Currencies


@dataclass
class AddCurrency(Command):
    shop_id: str
    credential_id: str
    currency: str
    feed_id: str
    oracle_object_id: str
    decimals: int
    symbol: str
    max_price_age_secs: int | None = None
    max_confidence_ratio_bps: int | None = None
    max_price_status_lag_secs: int | None = None


@dataclass
class RemoveCurrency(Command):
    shop_id: str
    credential_id: str
    currency: str


@dataclass
class ListCurrencies(Query):
    shop_id: str


class AddCurrencyHandler:
    def __init__(self, registry: CurrencyRegistry):
        self._registry = registry

    async def __call__(self, cmd: AddCurrency) -> dict[str, Any]:
        entry = await self._registry.register(
            _credential(cmd.shop_id, cmd.credential_id),
            cmd.shop_id,
            currency=cmd.currency,
            feed_id=parse_feed_id_hex(cmd.feed_id),
            oracle_object_id=cmd.oracle_object_id,
            decimals=cmd.decimals,
            symbol=cmd.symbol,
            caps=_overrides(cmd),
        )
        return currency_view(entry)


class RemoveCurrencyHandler:
    def __init__(self, registry: CurrencyRegistry):
        self._registry = registry

    async def __call__(self, cmd: RemoveCurrency) -> None:
        await self._registry.deregister(_credential(cmd.shop_id, cmd.credential_id), cmd.shop_id, cmd.currency)


class ListCurrenciesHandler:
    def __init__(self, registry: CurrencyRegistry):
        self._registry = registry

    async def __call__(self, query: ListCurrencies) -> list[dict[str, Any]]:
        return [currency_view(entry) for entry in await self._registry.list_currencies(query.shop_id)]


# Discounts


@dataclass
class CreateDiscountTemplate(Command):
    shop_id: str
    credential_id: str
    rule_kind: str
    rule_value: int | str
    starts_at: int | None = None
    expires_at: int | None = None
    max_redemptions: int | None = None
    applies_to_listing_id: int | None = None


@dataclass
class UpdateDiscountTemplate(Command):
    shop_id: str
    credential_id: str
    template_id: str
    rule_kind: str
    rule_value: int | str
    starts_at: int
    expires_at: int | None = None
    max_redemptions: int | None = None


@dataclass
class ToggleDiscountTemplate(Command):
    shop_id: str
    credential_id: str
    template_id: str
    active: bool


@dataclass
class PruneDiscountClaims(Command):
    shop_id: str
    credential_id: str
    template_id: str
    claimers: list[str] = field(default_factory=list)


@dataclass
class ClaimDiscountTicket(Command):
    template_id: str
    claimer: str


@dataclass
class GetDiscountTemplate(Query):
    template_id: str


@dataclass
class ListDiscountTemplates(Query):
    shop_id: str


@dataclass
class GetDiscountTicket(Query):
    ticket_id: str


@dataclass
class ListDiscountTickets(Query):
    claimer: str


class CreateDiscountTemplateHandler:
    def __init__(self, discounts: DiscountEngine, clock: Clock):
        self._discounts = discounts
        self._clock = clock

    async def __call__(self, cmd: CreateDiscountTemplate) -> dict[str, Any]:
        template = await self._discounts.create_template(
            _credential(cmd.shop_id, cmd.credential_id),
            cmd.shop_id,
            _rule(cmd.rule_kind, cmd.rule_value),
            starts_at=cmd.starts_at,
            expires_at=cmd.expires_at,
            max_redemptions=cmd.max_redemptions,
            applies_to_listing_id=cmd.applies_to_listing_id,
        )
        return template_view(template, self._clock.now())


class UpdateDiscountTemplateHandler:
    def __init__(self, discounts: DiscountEngine, clock: Clock):
        self._discounts = discounts
        self._clock = clock

    async def __call__(self, cmd: UpdateDiscountTemplate) -> dict[str, Any]:
        template = await self._discounts.update_template(
            _credential(cmd.shop_id, cmd.credential_id),
            cmd.shop_id,
            cmd.template_id,
            _rule(cmd.rule_kind, cmd.rule_value),
            starts_at=cmd.starts_at,
            expires_at=cmd.expires_at,
            max_redemptions=cmd.max_redemptions,
        )
        return template_view(template, self._clock.now())


class ToggleDiscountTemplateHandler:
    def __init__(self, discounts: DiscountEngine, clock: Clock):
        self._discounts = discounts
        self._clock = clock

    async def __call__(self, cmd: ToggleDiscountTemplate) -> dict[str, Any]:
        template = await self._discounts.toggle_template(
            _credential(cmd.shop_id, cmd.credential_id), cmd.shop_id, cmd.template_id, cmd.active
        )
        return template_view(template, self._clock.now())


class PruneDiscountClaimsHandler:
    def __init__(self, discounts: DiscountEngine):
        self._discounts = discounts

    async def __call__(self, cmd: PruneDiscountClaims) -> dict[str, int]:
        pruned = await self._discounts.prune_claims(
            _credential(cmd.shop_id, cmd.credential_id), cmd.shop_id, cmd.template_id, cmd.claimers
        )
        return {"pruned": pruned}


class ClaimDiscountTicketHandler:
    def __init__(self, discounts: DiscountEngine):
        self._discounts = discounts

    async def __call__(self, cmd: ClaimDiscountTicket):
        return await self._discounts.claim(cmd.template_id, cmd.claimer)


class GetDiscountTemplateHandler:
    def __init__(self, discounts: DiscountEngine, clock: Clock):
        self._discounts = discounts
        self._clock = clock

    async def __call__(self, query: GetDiscountTemplate) -> dict[str, Any]:
        return template_view(await self._discounts.get_template(query.template_id), self._clock.now())


class ListDiscountTemplatesHandler:
    def __init__(self, discounts: DiscountEngine, clock: Clock):
        self._discounts = discounts
        self._clock = clock

    async def __call__(self, query: ListDiscountTemplates) -> list[dict[str, Any]]:
        now = self._clock.now()
        return [template_view(t, now) for t in await self._discounts.list_templates(query.shop_id)]


class GetDiscountTicketHandler:
    def __init__(self, discounts: DiscountEngine):
        self._discounts = discounts

    async def __call__(self, query: GetDiscountTicket):
        return await self._discounts.get_ticket(query.ticket_id)


class ListDiscountTicketsHandler:
    """Unspent tickets only: redeemed tickets are deleted at checkout."""

    def __init__(self, discounts: DiscountEngine):
        self._discounts = discounts

    async def __call__(self, query: ListDiscountTickets):
        return await self._discounts.list_tickets(query.claimer)


# Checkout


@dataclass(kw_only=True)
class BuyItem(Command):
    """Oracle fields describe the price object the buyer hands in alongside the payment."""

    shop_id: str
    listing_id: int
    item_type: str
    currency: str
    payment_value: int
    buyer: str
    mint_to: str | None = None
    refund_to: str | None = None
    price_object_id: str
    feed_id: str
    price: int
    expo: int
    conf: int
    publish_time: int
    attestation_time: int | None = None
    max_price_age_secs: int | None = None
    max_confidence_ratio_bps: int | None = None
    max_price_status_lag_secs: int | None = None


@dataclass(kw_only=True)
class BuyItemWithDiscount(BuyItem):
    template_id: str
    ticket_id: str


@dataclass(kw_only=True)
class ClaimAndBuyItemWithDiscount(BuyItem):
    template_id: str


@dataclass(kw_only=True)
class PreviewQuote(Query):
    shop_id: str
    listing_id: int
    currency: str
    price_object_id: str
    feed_id: str
    price: int
    expo: int
    conf: int
    publish_time: int
    attestation_time: int | None = None
    template_id: str | None = None
    max_price_age_secs: int | None = None
    max_confidence_ratio_bps: int | None = None
    max_price_status_lag_secs: int | None = None


@dataclass
class GetReceipt(Query):
    receipt_id: str


@dataclass
class ListReceipts(Query):
    owner: str


def _purchase_args(cmd: BuyItem) -> dict[str, Any]:
    return {
        "shop_id": cmd.shop_id,
        "listing_id": cmd.listing_id,
        "item_type": cmd.item_type,
        "currency": cmd.currency,
        "price_info": _price_info(cmd),
        "payment": Coin(cmd.currency, cmd.payment_value),
        "buyer": cmd.buyer,
        "mint_to": cmd.mint_to or cmd.buyer,
        "refund_to": cmd.refund_to or cmd.buyer,
        "guardrail_overrides": _overrides(cmd),
    }


class BuyItemHandler:
    def __init__(self, checkout: CheckoutCoordinator):
        self._checkout = checkout

    async def __call__(self, cmd: BuyItem) -> dict[str, Any]:
        return purchase_view(await self._checkout.buy(**_purchase_args(cmd)))


class BuyItemWithDiscountHandler:
    def __init__(self, checkout: CheckoutCoordinator):
        self._checkout = checkout

    async def __call__(self, cmd: BuyItemWithDiscount) -> dict[str, Any]:
        outcome = await self._checkout.buy_with_discount(
            **_purchase_args(cmd), template_id=cmd.template_id, ticket_id=cmd.ticket_id
        )
        return purchase_view(outcome)


class ClaimAndBuyItemWithDiscountHandler:
    def __init__(self, checkout: CheckoutCoordinator):
        self._checkout = checkout

    async def __call__(self, cmd: ClaimAndBuyItemWithDiscount) -> dict[str, Any]:
        outcome = await self._checkout.claim_and_buy_with_discount(**_purchase_args(cmd), template_id=cmd.template_id)
        return purchase_view(outcome)


class PreviewQuoteHandler:
    def __init__(self, checkout: CheckoutCoordinator):
        self._checkout = checkout

    async def __call__(self, query: PreviewQuote) -> QuotePreview:
        return await self._checkout.preview_quote(
            query.shop_id,
            query.listing_id,
            query.currency,
            _price_info(query),
            guardrail_overrides=_overrides(query),
            template_id=query.template_id,
        )


class GetReceiptHandler:
    def __init__(self, checkout: CheckoutCoordinator):
        self._checkout = checkout

    async def __call__(self, query: GetReceipt):
        return await self._checkout.get_receipt(query.receipt_id)


class ListReceiptsHandler:
    def __init__(self, checkout: CheckoutCoordinator):
        self._checkout = checkout

    async def __call__(self, query: ListReceipts):
        return await self._checkout.list_receipts(query.owner)


# Sales


@dataclass
class GetShopSales(Query):
    shop_id: str


class GetShopSalesHandler:
    def __init__(self, sales: SalesIndex):
        self._sales = sales

    def __call__(self, query: GetShopSales) -> dict[str, Any]:
        sales = self._sales.for_shop(query.shop_id)
        return {
            "shop_id": sales.shop_id,
            "purchases": sales.purchases,
            "discounted_purchases": sales.discounted_purchases,
            "usd": format_usd_from_cents(sales.usd_cents),
            "collected": sales.collected,
        }
