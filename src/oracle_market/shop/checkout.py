"""
CheckoutCoordinator: the atomic purchase path.

Every record is loaded as a working copy; nothing is written back until all
preconditions (shop state, cross references, stock, discount bindings, oracle
quote, payment) have passed. A failed purchase leaves stock, counters, the
ticket and every balance exactly as they were.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass

import structlog

from oracle_market.domain import EventBus, ValueObject
from oracle_market.shop.clock import Clock
from oracle_market.shop.discounts import apply_discount, check_ticket_binding, issue_ticket
from oracle_market.shop.errors import (
    CrossReferenceMismatch,
    CurrencyNotFound,
    DiscountListingMismatch,
    DiscountShopMismatch,
    ItemTypeMismatch,
    ListingNotFound,
    OutOfStock,
    ReceiptNotFound,
    ShopDisabled,
    ShopNotFound,
    TemplateNotFound,
    TicketNotFound,
)
from oracle_market.shop.events import DiscountClaimed, DiscountRedeemed, ItemListingStockUpdated, PurchaseCompleted
from oracle_market.shop.locks import RecordLocks, currency_key, listing_key, template_key, ticket_key
from oracle_market.shop.oracle import PriceInfoObject
from oracle_market.shop.pricing import PriceQuoteEngine, Quote
from oracle_market.shop.records import (
    AcceptedCurrency,
    Coin,
    DiscountTemplate,
    DiscountTicket,
    GuardrailOverrides,
    Guardrails,
    Listing,
    Receipt,
    Shop,
)
from oracle_market.shop.repositories import (
    ICurrencyRepository,
    IDiscountTemplateRepository,
    IDiscountTicketRepository,
    IListingRepository,
    IPayoutLedger,
    IReceiptRepository,
    IShopRepository,
)

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PurchaseOutcome(ValueObject):
    receipt: Receipt
    paid: Coin
    change: Coin
    quote: Quote
    base_price_usd_cents: int
    discounted_price_usd_cents: int
    discount_template_id: str | None = None


@dataclass(frozen=True)
class QuotePreview(ValueObject):
    shop_id: str
    listing_id: int
    base_price_usd_cents: int
    discounted_price_usd_cents: int
    quote: Quote
    discount_template_id: str | None = None


def effective_guardrails(currency: AcceptedCurrency, overrides: GuardrailOverrides | None) -> Guardrails:
    """Buyer overrides can only tighten the seller's stored caps."""
    if overrides is None:
        return currency.guardrails
    overrides.require_positive()
    return currency.guardrails.tighten(overrides)


@dataclass
class _Discount:
    template: DiscountTemplate
    ticket: DiscountTicket
    claimed_now: bool


class CheckoutCoordinator:
    def __init__(
        self,
        shops: IShopRepository,
        listings: IListingRepository,
        currencies: ICurrencyRepository,
        templates: IDiscountTemplateRepository,
        tickets: IDiscountTicketRepository,
        receipts: IReceiptRepository,
        payouts: IPayoutLedger,
        quotes: PriceQuoteEngine,
        locks: RecordLocks,
        event_bus: EventBus,
        clock: Clock,
    ) -> None:
        self._shops = shops
        self._listings = listings
        self._currencies = currencies
        self._templates = templates
        self._tickets = tickets
        self._receipts = receipts
        self._payouts = payouts
        self._quotes = quotes
        self._locks = locks
        self._event_bus = event_bus
        self._clock = clock

    async def buy(
        self,
        shop_id: str,
        listing_id: int,
        item_type: str,
        currency: str,
        price_info: PriceInfoObject,
        payment: Coin,
        buyer: str,
        mint_to: str,
        refund_to: str,
        guardrail_overrides: GuardrailOverrides | None = None,
    ) -> PurchaseOutcome:
        return await self._purchase(
            shop_id, listing_id, item_type, currency, price_info, payment, buyer, mint_to, refund_to,
            guardrail_overrides,
        )

    async def buy_with_discount(
        self,
        shop_id: str,
        listing_id: int,
        item_type: str,
        currency: str,
        price_info: PriceInfoObject,
        payment: Coin,
        buyer: str,
        mint_to: str,
        refund_to: str,
        template_id: str,
        ticket_id: str,
        guardrail_overrides: GuardrailOverrides | None = None,
    ) -> PurchaseOutcome:
        """Redeem a previously claimed ticket. The ticket is consumed only if the purchase succeeds."""
        return await self._purchase(
            shop_id, listing_id, item_type, currency, price_info, payment, buyer, mint_to, refund_to,
            guardrail_overrides, template_id=template_id, ticket_id=ticket_id,
        )

    async def claim_and_buy_with_discount(
        self,
        shop_id: str,
        listing_id: int,
        item_type: str,
        currency: str,
        price_info: PriceInfoObject,
        payment: Coin,
        buyer: str,
        mint_to: str,
        refund_to: str,
        template_id: str,
        guardrail_overrides: GuardrailOverrides | None = None,
    ) -> PurchaseOutcome:
        """Claim and redeem in one step; the claim marker stays, the ticket never outlives the call."""
        return await self._purchase(
            shop_id, listing_id, item_type, currency, price_info, payment, buyer, mint_to, refund_to,
            guardrail_overrides, template_id=template_id, claim=True,
        )

    async def preview_quote(
        self,
        shop_id: str,
        listing_id: int,
        currency: str,
        price_info: PriceInfoObject,
        guardrail_overrides: GuardrailOverrides | None = None,
        template_id: str | None = None,
    ) -> QuotePreview:
        """Read-only: what checkout would charge right now. Nothing is locked or written."""
        now = self._clock.now()
        listing = await self._listing(shop_id, listing_id)
        entry = await self._currency(shop_id, currency)
        discounted = listing.base_price_usd_cents
        if template_id is not None:
            template = await self._template(template_id)
            if template.shop_id != shop_id:
                raise DiscountShopMismatch()
            if template.applies_to_listing_id not in (None, listing_id):
                raise DiscountListingMismatch()
            template.ensure_open(now)
            discounted = apply_discount(listing.base_price_usd_cents, template.rule)
        quote = self._quotes.quote(
            discounted, entry, price_info, effective_guardrails(entry, guardrail_overrides), now
        )
        return QuotePreview(
            shop_id=shop_id,
            listing_id=listing_id,
            base_price_usd_cents=listing.base_price_usd_cents,
            discounted_price_usd_cents=discounted,
            quote=quote,
            discount_template_id=template_id,
        )

    async def get_receipt(self, receipt_id: str) -> Receipt:
        receipt = await self._receipts.get(receipt_id)
        if receipt is None:
            raise ReceiptNotFound(f"Receipt {receipt_id} not found")
        return receipt

    async def list_receipts(self, owner: str) -> list[Receipt]:
        return await self._receipts.list_for_owner(owner)

    async def _shop(self, shop_id: str) -> Shop:
        shop = await self._shops.get(shop_id)
        if shop is None:
            raise ShopNotFound(f"Shop {shop_id} not found")
        return shop

    async def _listing(self, shop_id: str, listing_id: int) -> Listing:
        listing = await self._listings.get(listing_key(shop_id, listing_id))
        if listing is None:
            raise ListingNotFound(f"Listing {listing_id} not found in shop {shop_id}")
        return listing

    async def _currency(self, shop_id: str, currency: str) -> AcceptedCurrency:
        entry = await self._currencies.get(currency_key(shop_id, currency))
        if entry is None:
            raise CurrencyNotFound(f"{currency} is not accepted by shop {shop_id}")
        return entry

    async def _template(self, template_id: str) -> DiscountTemplate:
        template = await self._templates.get(template_id)
        if template is None:
            raise TemplateNotFound(f"Discount template {template_id} not found")
        return template

    async def _ticket(self, ticket_id: str) -> DiscountTicket:
        ticket = await self._tickets.get(ticket_id)
        if ticket is None:
            raise TicketNotFound(f"Discount ticket {ticket_id} not found")
        return ticket

    async def _purchase(
        self,
        shop_id: str,
        listing_id: int,
        item_type: str,
        currency: str,
        price_info: PriceInfoObject,
        payment: Coin,
        buyer: str,
        mint_to: str,
        refund_to: str,
        guardrail_overrides: GuardrailOverrides | None,
        template_id: str | None = None,
        ticket_id: str | None = None,
        claim: bool = False,
    ) -> PurchaseOutcome:
        keys = [listing_key(shop_id, listing_id)]
        if template_id is not None:
            keys.append(template_key(template_id))
        if ticket_id is not None:
            keys.append(ticket_key(ticket_id))

        async with self._locks.hold(*keys):
            now = self._clock.now()

            shop = await self._shop(shop_id)
            if shop.disabled:
                raise ShopDisabled()

            listing = await self._listing(shop_id, listing_id)
            entry = await self._currency(shop_id, currency)
            if payment.currency != entry.currency:
                raise CrossReferenceMismatch(f"Payment is in {payment.currency}, expected {entry.currency}")
            if listing.item_type != item_type:
                raise ItemTypeMismatch(f"Listing sells {listing.item_type}, not {item_type}")

            if listing.stock <= 0:
                raise OutOfStock()

            discount: _Discount | None = None
            discounted = listing.base_price_usd_cents
            if template_id is not None:
                template = await self._template(template_id)
                if claim:
                    ticket = issue_ticket(template, buyer, now)
                else:
                    ticket = await self._ticket(ticket_id)
                check_ticket_binding(template, ticket, listing, buyer)
                template.record_redemption(now)
                discounted = apply_discount(listing.base_price_usd_cents, template.rule)
                discount = _Discount(template=template, ticket=ticket, claimed_now=claim)

            quote = self._quotes.quote(
                discounted, entry, price_info, effective_guardrails(entry, guardrail_overrides), now
            )
            paid, change = payment.split(quote.amount)

            previous_stock = listing.stock
            listing.stock -= 1
            receipt = Receipt(
                id=uuid.uuid4().hex,
                shop_id=shop_id,
                listing_id=listing_id,
                item_type=listing.item_type,
                name=listing.name,
                owner=mint_to,
                acquired_at=now,
            )

            # all checks passed: write back
            await self._listings.save(listing)
            if discount is not None:
                await self._templates.save(discount.template)
                if not discount.claimed_now:
                    await self._tickets.remove(discount.ticket.id)
            await self._receipts.add(receipt)
            await self._payouts.deposit(shop.owner, paid)
            await self._payouts.deposit(refund_to, change)

        log.info(
            "purchase_completed",
            shop_id=shop_id,
            listing_id=listing_id,
            receipt_id=receipt.id,
            currency=currency,
            amount_paid=paid.value,
            discount_template_id=template_id,
        )
        if discount is not None:
            if discount.claimed_now:
                await self._event_bus.publish(
                    DiscountClaimed(shop_id=shop_id, template_id=template_id, ticket_id=discount.ticket.id, claimer=buyer)
                )
            await self._event_bus.publish(
                DiscountRedeemed(
                    shop_id=shop_id,
                    template_id=template_id,
                    ticket_id=discount.ticket.id,
                    buyer=buyer,
                    listing_id=listing_id,
                )
            )
        await self._event_bus.publish(
            ItemListingStockUpdated(
                shop_id=shop_id, listing_id=listing_id, previous_stock=previous_stock, new_stock=listing.stock
            )
        )
        await self._event_bus.publish(
            PurchaseCompleted(
                shop_id=shop_id,
                listing_id=listing_id,
                receipt_id=receipt.id,
                buyer=buyer,
                mint_to=mint_to,
                currency=currency,
                amount_paid=paid.value,
                base_price_usd_cents=listing.base_price_usd_cents,
                discounted_price_usd_cents=discounted,
                discount_template_id=template_id,
                feed_id=entry.feed_id,
            )
        )
        return PurchaseOutcome(
            receipt=receipt,
            paid=paid,
            change=change,
            quote=quote,
            base_price_usd_cents=listing.base_price_usd_cents,
            discounted_price_usd_cents=discounted,
            discount_template_id=template_id,
        )
