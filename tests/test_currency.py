import pytest

from conftest import FEED_ID, PRICE_OBJECT_ID
from oracle_market.core import MarketSettings
from oracle_market.shop.currency import module_ceilings, parse_feed_id_hex
from oracle_market.shop.errors import (
    CurrencyAlreadyRegistered,
    CurrencyNotFound,
    InvalidFeedId,
    InvalidGuardrailCap,
    UnsupportedDecimals,
)
from oracle_market.shop.records import GUARDRAIL_CEILINGS, GuardrailOverrides, Guardrails


def test_module_ceilings_only_tighten():
    assert module_ceilings() == GUARDRAIL_CEILINGS
    loose = MarketSettings(max_price_age_secs_cap=600, max_confidence_ratio_bps_cap=5_000)
    assert module_ceilings(loose) == GUARDRAIL_CEILINGS
    tight = MarketSettings(max_price_age_secs_cap=30, max_price_status_lag_secs_cap=2)
    assert module_ceilings(tight) == Guardrails(30, 1_000, 2)


def test_feed_id_hex_parsing():
    assert parse_feed_id_hex("0x" + FEED_ID.hex()) == FEED_ID
    assert parse_feed_id_hex(FEED_ID.hex().upper()) == FEED_ID
    with pytest.raises(InvalidFeedId):
        parse_feed_id_hex("0x1234")
    with pytest.raises(InvalidFeedId):
        parse_feed_id_hex("zz" * 32)


@pytest.mark.asyncio
async def test_seller_caps_are_clamped_to_ceilings(market, open_store):
    store = await open_store()
    entry = await market.currencies.register(
        store.credential,
        store.shop.id,
        currency="USDC",
        feed_id=FEED_ID,
        oracle_object_id=PRICE_OBJECT_ID,
        decimals=6,
        symbol="USDC",
        caps=GuardrailOverrides(max_price_age_secs=600, max_confidence_ratio_bps=200),
    )
    assert entry.guardrails == Guardrails(60, 200, 5)
    [record] = market.journal.named("AcceptedCurrencyAdded")[-1:]
    assert record["feed_id"] == FEED_ID.hex()
    assert record["max_confidence_ratio_bps_cap"] == 200


@pytest.mark.asyncio
async def test_registration_validation(market, open_store):
    store = await open_store()
    register = market.currencies.register
    base = dict(feed_id=FEED_ID, oracle_object_id=PRICE_OBJECT_ID, symbol="X")

    with pytest.raises(CurrencyAlreadyRegistered):
        await register(store.credential, store.shop.id, currency="SUI", decimals=9, **base)
    with pytest.raises(UnsupportedDecimals):
        await register(store.credential, store.shop.id, currency="BIG", decimals=39, **base)
    with pytest.raises(InvalidFeedId):
        await register(store.credential, store.shop.id, currency="BAD", decimals=6, **{**base, "feed_id": b"\x01"})
    with pytest.raises(InvalidGuardrailCap):
        await register(
            store.credential, store.shop.id, currency="ZERO", decimals=6, caps=GuardrailOverrides(max_price_age_secs=0),
            **base,
        )


@pytest.mark.asyncio
async def test_deregister(market, open_store):
    store = await open_store()
    await market.currencies.deregister(store.credential, store.shop.id, "SUI")

    assert await market.currencies.list_currencies(store.shop.id) == []
    with pytest.raises(CurrencyNotFound):
        await market.currencies.get_currency(store.shop.id, "SUI")
    with pytest.raises(CurrencyNotFound):
        await market.currencies.deregister(store.credential, store.shop.id, "SUI")
