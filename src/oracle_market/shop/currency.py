"""CurrencyRegistry: which payment currencies a shop accepts and the oracle guardrails for each."""
from __future__ import annotations

import structlog

from oracle_market.core.config import MarketSettings
from oracle_market.domain import EventBus
from oracle_market.shop.auth import AdminCredential, AuthorizationModel
from oracle_market.shop.errors import (
    CurrencyAlreadyRegistered,
    CurrencyNotFound,
    InvalidFeedId,
    InvalidInput,
    ShopNotFound,
    UnsupportedDecimals,
)
from oracle_market.shop.events import AcceptedCurrencyAdded, AcceptedCurrencyRemoved
from oracle_market.shop.fixed_point import MAX_POWER_OF_TEN
from oracle_market.shop.locks import RecordLocks, currency_key
from oracle_market.shop.oracle import FEED_ID_LENGTH
from oracle_market.shop.records import GUARDRAIL_CEILINGS, AcceptedCurrency, GuardrailOverrides, Guardrails
from oracle_market.shop.repositories import ICurrencyRepository, IShopRepository

log = structlog.get_logger(__name__)


def module_ceilings(settings: MarketSettings | None = None) -> Guardrails:
    """Module-wide ceilings; configuration may lower them, never raise them."""
    if settings is None:
        return GUARDRAIL_CEILINGS
    configured = GuardrailOverrides(
        max_price_age_secs=settings.max_price_age_secs_cap,
        max_confidence_ratio_bps=settings.max_confidence_ratio_bps_cap,
        max_price_status_lag_secs=settings.max_price_status_lag_secs_cap,
    )
    configured.require_positive()
    return GUARDRAIL_CEILINGS.tighten(configured)


def validate_feed_id(feed_id: bytes) -> bytes:
    if not feed_id:
        raise InvalidFeedId("Feed id cannot be empty")
    if len(feed_id) != FEED_ID_LENGTH:
        raise InvalidFeedId(f"Feed id must be {FEED_ID_LENGTH} bytes, got {len(feed_id)}")
    return bytes(feed_id)


def parse_feed_id_hex(raw: str) -> bytes:
    """Accepts hex with or without 0x prefix."""
    text = raw.strip().lower()
    if text.startswith("0x"):
        text = text[2:]
    try:
        return validate_feed_id(bytes.fromhex(text))
    except ValueError as e:
        raise InvalidFeedId(f"Feed id is not valid hex: {e}") from e


class CurrencyRegistry:
    def __init__(
        self,
        shops: IShopRepository,
        currencies: ICurrencyRepository,
        auth: AuthorizationModel,
        locks: RecordLocks,
        event_bus: EventBus,
        settings: MarketSettings | None = None,
    ) -> None:
        self._shops = shops
        self._currencies = currencies
        self._auth = auth
        self._locks = locks
        self._event_bus = event_bus
        self._ceilings = module_ceilings(settings)

    @property
    def ceilings(self) -> Guardrails:
        return self._ceilings

    async def register(
        self,
        credential: AdminCredential,
        shop_id: str,
        currency: str,
        feed_id: bytes,
        oracle_object_id: str,
        decimals: int,
        symbol: str,
        caps: GuardrailOverrides | None = None,
    ) -> AcceptedCurrency:
        self._auth.require(credential, shop_id)
        if not currency.strip():
            raise InvalidInput("Currency key cannot be empty")
        if not oracle_object_id.strip():
            raise InvalidInput("Oracle object id cannot be empty")
        feed_id = validate_feed_id(feed_id)
        if decimals < 0 or decimals > MAX_POWER_OF_TEN:
            raise UnsupportedDecimals(f"Decimals must be within 0..{MAX_POWER_OF_TEN}, got {decimals}")
        caps = caps or GuardrailOverrides()
        caps.require_positive()
        if await self._shops.get(shop_id) is None:
            raise ShopNotFound(f"Shop {shop_id} not found")

        entry = AcceptedCurrency(
            shop_id=shop_id,
            currency=currency,
            feed_id=feed_id,
            oracle_object_id=oracle_object_id,
            decimals=decimals,
            symbol=symbol,
            guardrails=self._ceilings.tighten(caps),
        )
        async with self._locks.hold(entry.key):
            if await self._currencies.get(entry.key) is not None:
                raise CurrencyAlreadyRegistered(f"{currency} is already accepted by shop {shop_id}")
            await self._currencies.add(entry)

        log.info("currency_registered", shop_id=shop_id, currency=currency, feed_id=feed_id.hex())
        await self._event_bus.publish(
            AcceptedCurrencyAdded(
                shop_id=shop_id,
                currency=currency,
                feed_id=feed_id,
                oracle_object_id=oracle_object_id,
                decimals=decimals,
                symbol=symbol,
                max_price_age_secs_cap=entry.guardrails.max_price_age_secs,
                max_confidence_ratio_bps_cap=entry.guardrails.max_confidence_ratio_bps,
                max_price_status_lag_secs_cap=entry.guardrails.max_price_status_lag_secs,
            )
        )
        return entry

    async def deregister(self, credential: AdminCredential, shop_id: str, currency: str) -> None:
        self._auth.require(credential, shop_id)
        key = currency_key(shop_id, currency)
        async with self._locks.hold(key):
            if await self._currencies.get(key) is None:
                raise CurrencyNotFound(f"{currency} is not accepted by shop {shop_id}")
            await self._currencies.remove(key)
        log.info("currency_deregistered", shop_id=shop_id, currency=currency)
        await self._event_bus.publish(AcceptedCurrencyRemoved(shop_id=shop_id, currency=currency))

    async def get_currency(self, shop_id: str, currency: str) -> AcceptedCurrency:
        entry = await self._currencies.get(currency_key(shop_id, currency))
        if entry is None:
            raise CurrencyNotFound(f"{currency} is not accepted by shop {shop_id}")
        return entry

    async def list_currencies(self, shop_id: str) -> list[AcceptedCurrency]:
        return await self._currencies.list_for_shop(shop_id)
