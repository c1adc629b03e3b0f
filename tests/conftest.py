from types import SimpleNamespace

import pytest

from oracle_market.core import MarketSettings
from oracle_market.events import EventJournal
from oracle_market.main import create_app
from oracle_market.shop import (
    CatalogStore,
    CheckoutCoordinator,
    CurrencyRegistry,
    DiscountEngine,
    FixedClock,
    ShopDirectory,
)
from oracle_market.shop.oracle import PriceInfoObject, observation
from oracle_market.shop.records import Coin
from oracle_market.shop.repositories import (
    IDiscountTemplateRepository,
    IDiscountTicketRepository,
    IListingRepository,
    IPayoutLedger,
)

NOW = 1_700_000_000
FEED_ID = bytes(range(32))
PRICE_OBJECT_ID = "0xsui-usd-price"
OWNER = "0xowner"
BUYER = "0xbuyer"
ITEM_TYPE = "0xcafe::items::Tee"


def make_price_info(
    price: int = 100_000_000,
    expo: int = -8,
    conf: int = 50_000,
    publish_time: int = NOW,
    attestation_time: int | None = None,
    object_id: str = PRICE_OBJECT_ID,
    feed_id: bytes = FEED_ID,
) -> PriceInfoObject:
    return PriceInfoObject(
        id=object_id,
        feed_id=feed_id,
        observation=observation(price, expo, conf, publish_time),
        attestation_time=publish_time if attestation_time is None else attestation_time,
    )


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def app(clock):
    return create_app(MarketSettings(), clock=clock)


@pytest.fixture
def market(app):
    c = app.container
    return SimpleNamespace(
        shops=c.resolve(ShopDirectory),
        catalog=c.resolve(CatalogStore),
        currencies=c.resolve(CurrencyRegistry),
        discounts=c.resolve(DiscountEngine),
        checkout=c.resolve(CheckoutCoordinator),
        journal=c.resolve(EventJournal),
        payouts=c.resolve(IPayoutLedger),
        listings=c.resolve(IListingRepository),
        templates=c.resolve(IDiscountTemplateRepository),
        tickets=c.resolve(IDiscountTicketRepository),
    )


@pytest.fixture
def open_store(market):
    """Shop with one listing and SUI (6 decimals) accepted at the default caps."""

    async def _open(base_price_usd_cents: int = 1250, stock: int = 3):
        shop, credential = await market.shops.create_shop("Oracle Tees", owner=OWNER)
        listing = await market.catalog.add_listing(
            credential,
            shop.id,
            name="Tee",
            item_type=ITEM_TYPE,
            base_price_usd_cents=base_price_usd_cents,
            stock=stock,
        )
        currency = await market.currencies.register(
            credential,
            shop.id,
            currency="SUI",
            feed_id=FEED_ID,
            oracle_object_id=PRICE_OBJECT_ID,
            decimals=6,
            symbol="SUI",
        )
        return SimpleNamespace(shop=shop, credential=credential, listing=listing, currency=currency)

    return _open


def purchase_args(store, buyer: str = BUYER, payment: int = 20_000_000, price_info=None) -> dict:
    return {
        "shop_id": store.shop.id,
        "listing_id": store.listing.listing_id,
        "item_type": ITEM_TYPE,
        "currency": "SUI",
        "price_info": price_info or make_price_info(),
        "payment": Coin("SUI", payment),
        "buyer": buyer,
        "mint_to": buyer,
        "refund_to": buyer,
    }
