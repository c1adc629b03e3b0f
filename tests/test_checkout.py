import asyncio

import pytest

from conftest import BUYER, FEED_ID, ITEM_TYPE, OWNER, make_price_info, purchase_args
from oracle_market.shop.errors import (
    AlreadyClaimed,
    ConfidenceIntervalTooWide,
    CrossReferenceMismatch,
    CurrencyNotFound,
    DiscountClaimerMismatch,
    DiscountListingMismatch,
    DiscountShopMismatch,
    DiscountTemplateMismatch,
    InsufficientPayment,
    ItemTypeMismatch,
    OutOfStock,
    ShopDisabled,
    TemplateMaxedOut,
)
from oracle_market.shop.records import Coin, FixedDiscount, GuardrailOverrides, PercentDiscount


@pytest.mark.asyncio
async def test_reference_purchase(market, open_store):
    store = await open_store(base_price_usd_cents=1250, stock=3)

    outcome = await market.checkout.buy(**purchase_args(store, payment=20_000_000))

    assert outcome.quote.amount == 12_506_254
    assert outcome.paid == Coin("SUI", 12_506_254)
    assert outcome.change == Coin("SUI", 7_493_746)
    assert outcome.receipt.owner == BUYER
    assert outcome.receipt.listing_id == store.listing.listing_id
    assert (await market.catalog.get_listing(store.shop.id, store.listing.listing_id)).stock == 2
    assert await market.payouts.balance(OWNER, "SUI") == 12_506_254
    assert await market.payouts.balance(BUYER, "SUI") == 7_493_746
    assert await market.checkout.get_receipt(outcome.receipt.id) == outcome.receipt

    # same inputs, same quote
    again = await market.checkout.buy(**purchase_args(store, payment=20_000_000))
    assert again.quote == outcome.quote


@pytest.mark.asyncio
async def test_purchase_completed_record(market, open_store):
    store = await open_store()
    outcome = await market.checkout.buy(**purchase_args(store))

    [record] = market.journal.named("PurchaseCompleted")
    assert record["listing_id"] == store.listing.listing_id
    assert record["currency"] == "SUI"
    assert record["amount_paid"] == outcome.paid.value
    assert record["base_price_usd_cents"] == 1250
    assert record["discounted_price_usd_cents"] == 1250
    assert record["discount_template_id"] is None
    assert record["feed_id"] == FEED_ID.hex()
    assert record["receipt_id"] == outcome.receipt.id
    [stock] = market.journal.named("ItemListingStockUpdated")
    assert (stock["previous_stock"], stock["new_stock"]) == (3, 2)


@pytest.mark.asyncio
async def test_last_unit_then_out_of_stock(market, open_store):
    store = await open_store(stock=1)
    await market.checkout.buy(**purchase_args(store))
    assert (await market.catalog.get_listing(store.shop.id, store.listing.listing_id)).stock == 0

    with pytest.raises(OutOfStock):
        await market.checkout.buy(**purchase_args(store))


@pytest.mark.asyncio
async def test_concurrent_buyers_for_last_unit(market, open_store):
    store = await open_store(stock=1)
    results = await asyncio.gather(
        market.checkout.buy(**purchase_args(store, buyer="0xalice")),
        market.checkout.buy(**purchase_args(store, buyer="0xbob")),
        return_exceptions=True,
    )
    assert sum(isinstance(r, OutOfStock) for r in results) == 1
    assert (await market.catalog.get_listing(store.shop.id, store.listing.listing_id)).stock == 0


@pytest.mark.asyncio
async def test_checkout_cross_reference_checks(market, open_store):
    store = await open_store()

    with pytest.raises(ItemTypeMismatch):
        await market.checkout.buy(**{**purchase_args(store), "item_type": "0xcafe::items::Hat"})
    with pytest.raises(CrossReferenceMismatch):
        await market.checkout.buy(**{**purchase_args(store), "payment": Coin("USDC", 10**9)})
    with pytest.raises(CurrencyNotFound):
        await market.checkout.buy(**{**purchase_args(store), "currency": "USDC", "payment": Coin("USDC", 10**9)})

    await market.shops.disable_shop(store.credential, store.shop.id)
    with pytest.raises(ShopDisabled):
        await market.checkout.buy(**purchase_args(store))
    assert (await market.catalog.get_listing(store.shop.id, store.listing.listing_id)).stock == 3


@pytest.mark.asyncio
async def test_buyer_overrides_only_tighten(market, open_store):
    store = await open_store()
    with pytest.raises(ConfidenceIntervalTooWide):
        await market.checkout.buy(
            **purchase_args(store), guardrail_overrides=GuardrailOverrides(max_confidence_ratio_bps=1)
        )
    with pytest.raises(ConfidenceIntervalTooWide):
        await market.checkout.buy(
            **purchase_args(store, price_info=make_price_info(conf=11_000_000)),
            guardrail_overrides=GuardrailOverrides(max_confidence_ratio_bps=5_000),
        )


@pytest.mark.asyncio
async def test_discounted_purchase_consumes_ticket(market, open_store):
    store = await open_store()
    template = await market.discounts.create_template(store.credential, store.shop.id, PercentDiscount(1000))
    ticket = await market.discounts.claim(template.id, BUYER)

    outcome = await market.checkout.buy_with_discount(
        **purchase_args(store), template_id=template.id, ticket_id=ticket.id
    )

    assert outcome.discounted_price_usd_cents == 1125
    assert outcome.quote.amount == 11_255_628
    assert outcome.discount_template_id == template.id
    assert await market.tickets.get(ticket.id) is None
    assert (await market.discounts.get_template(template.id)).redemptions == 1
    [redeemed] = market.journal.named("DiscountRedeemed")
    assert redeemed["ticket_id"] == ticket.id


@pytest.mark.asyncio
async def test_failed_discounted_purchase_leaves_no_trace(market, open_store):
    store = await open_store()
    template = await market.discounts.create_template(store.credential, store.shop.id, PercentDiscount(1000))
    ticket = await market.discounts.claim(template.id, BUYER)

    with pytest.raises(InsufficientPayment):
        await market.checkout.buy_with_discount(
            **purchase_args(store, payment=1_000), template_id=template.id, ticket_id=ticket.id
        )

    assert await market.tickets.get(ticket.id) == ticket
    assert (await market.discounts.get_template(template.id)).redemptions == 0
    assert (await market.catalog.get_listing(store.shop.id, store.listing.listing_id)).stock == 3
    assert await market.payouts.balance(OWNER, "SUI") == 0
    assert market.journal.named("PurchaseCompleted") == []


@pytest.mark.asyncio
async def test_redemption_cap_reached_by_first_buyer(market, open_store):
    store = await open_store()
    template = await market.discounts.create_template(
        store.credential, store.shop.id, FixedDiscount(250), max_redemptions=1
    )
    alice = await market.discounts.claim(template.id, "0xalice")
    bob = await market.discounts.claim(template.id, "0xbob")

    await market.checkout.buy_with_discount(
        **purchase_args(store, buyer="0xalice"), template_id=template.id, ticket_id=alice.id
    )
    with pytest.raises(TemplateMaxedOut):
        await market.checkout.buy_with_discount(
            **purchase_args(store, buyer="0xbob"), template_id=template.id, ticket_id=bob.id
        )

    stored = await market.discounts.get_template(template.id)
    assert stored.redemptions == 1
    assert stored.claims_issued == 2
    assert await market.tickets.get(bob.id) is not None


@pytest.mark.asyncio
async def test_ticket_bindings(market, open_store):
    store = await open_store()
    second = await market.catalog.add_listing(
        store.credential, store.shop.id, name="Hoodie", item_type=ITEM_TYPE, base_price_usd_cents=4000, stock=1
    )
    scoped = await market.discounts.create_template(
        store.credential, store.shop.id, FixedDiscount(100), applies_to_listing_id=store.listing.listing_id
    )
    ticket = await market.discounts.claim(scoped.id, "0xalice")

    with pytest.raises(DiscountClaimerMismatch):
        await market.checkout.buy_with_discount(
            **purchase_args(store, buyer="0xbob"), template_id=scoped.id, ticket_id=ticket.id
        )
    with pytest.raises(DiscountListingMismatch):
        await market.checkout.buy_with_discount(
            **{**purchase_args(store, buyer="0xalice"), "listing_id": second.listing_id},
            template_id=scoped.id,
            ticket_id=ticket.id,
        )
    assert await market.tickets.get(ticket.id) is not None


@pytest.mark.asyncio
async def test_ticket_must_match_template_and_shop(market, open_store):
    store = await open_store()
    other = await open_store()
    first = await market.discounts.create_template(store.credential, store.shop.id, FixedDiscount(100))
    second = await market.discounts.create_template(store.credential, store.shop.id, FixedDiscount(200))
    foreign = await market.discounts.create_template(other.credential, other.shop.id, FixedDiscount(300))
    ticket = await market.discounts.claim(first.id, BUYER)
    foreign_ticket = await market.discounts.claim(foreign.id, BUYER)

    with pytest.raises(DiscountTemplateMismatch):
        await market.checkout.buy_with_discount(**purchase_args(store), template_id=second.id, ticket_id=ticket.id)
    with pytest.raises(DiscountShopMismatch):
        await market.checkout.buy_with_discount(
            **purchase_args(store), template_id=foreign.id, ticket_id=foreign_ticket.id
        )

    assert await market.tickets.get(ticket.id) is not None
    assert await market.tickets.get(foreign_ticket.id) is not None
    assert (await market.discounts.get_template(second.id)).redemptions == 0
    assert (await market.discounts.get_template(foreign.id)).redemptions == 0


@pytest.mark.asyncio
async def test_claim_and_buy_in_one_step(market, open_store):
    store = await open_store()
    template = await market.discounts.create_template(store.credential, store.shop.id, FixedDiscount(250))

    outcome = await market.checkout.claim_and_buy_with_discount(**purchase_args(store), template_id=template.id)

    assert outcome.discounted_price_usd_cents == 1000
    assert await market.discounts.list_tickets(BUYER) == []
    stored = await market.discounts.get_template(template.id)
    assert (stored.claims_issued, stored.redemptions) == (1, 1)
    assert stored.has_claimed(BUYER)
    assert [r["event"] for r in market.journal.records[-4:]] == [
        "DiscountClaimed",
        "DiscountRedeemed",
        "ItemListingStockUpdated",
        "PurchaseCompleted",
    ]

    with pytest.raises(AlreadyClaimed):
        await market.checkout.claim_and_buy_with_discount(**purchase_args(store), template_id=template.id)


@pytest.mark.asyncio
async def test_preview_quote_is_read_only(market, open_store):
    store = await open_store()
    template = await market.discounts.create_template(store.credential, store.shop.id, PercentDiscount(1000))

    preview = await market.checkout.preview_quote(store.shop.id, store.listing.listing_id, "SUI", make_price_info())
    assert preview.quote.amount == 12_506_254

    discounted = await market.checkout.preview_quote(
        store.shop.id, store.listing.listing_id, "SUI", make_price_info(), template_id=template.id
    )
    assert discounted.discounted_price_usd_cents == 1125
    assert (await market.catalog.get_listing(store.shop.id, store.listing.listing_id)).stock == 3
    assert (await market.discounts.get_template(template.id)).redemptions == 0
