import asyncio

import pytest

from oracle_market.core import Application, Container, MarketSettings
from oracle_market.ddd import DomainModule
from oracle_market.domain import DomainEvent
from oracle_market.events import EventBusModule, EventJournal
from oracle_market.shop.clock import Clock, FixedClock, SystemClock
from oracle_market.shop.currency import CurrencyRegistry
from oracle_market.shop.events import ShopDisabledEvent
from oracle_market.shop.locks import RecordLocks
from oracle_market.shop.records import GUARDRAIL_CEILINGS, Guardrails


class Greeter:
    def __init__(self, clock: Clock, locks: RecordLocks | None = None):
        self.clock = clock
        self.locks = locks


def test_container_resolves_constructor_dependencies():
    container = Container()
    container.register_instance(Clock, FixedClock(5))
    container.register_class(Greeter)

    greeter = container.resolve(Greeter)
    assert greeter.clock.now() == 5
    assert greeter.locks is None
    assert container.resolve(Greeter) is greeter

    container.register_class(RecordLocks)
    container.register_class(Greeter)
    assert isinstance(container.resolve(Greeter).locks, RecordLocks)


def test_container_missing_registration():
    with pytest.raises(KeyError):
        Container().resolve(Clock)


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("MARKET_PORT", "9001")
    monkeypatch.setenv("MARKET_MAX_PRICE_AGE_SECS_CAP", "20")
    monkeypatch.setenv("MARKET_UNKNOWN", "ignored")
    settings = MarketSettings.from_env()
    assert settings.port == 9001
    assert settings.max_price_age_secs_cap == 20
    assert settings.log_format == "console"


def test_settings_reach_the_currency_registry(clock):
    from oracle_market.main import create_app

    app = create_app(MarketSettings(max_confidence_ratio_bps_cap=300), clock=clock)
    registry = app.container.resolve(CurrencyRegistry)
    assert registry.ceilings == Guardrails(GUARDRAIL_CEILINGS.max_price_age_secs, 300, 5)
    assert app.container.resolve(Clock) is clock


def test_default_clock_is_system_time():
    from oracle_market.main import create_app

    app = create_app(MarketSettings())
    assert isinstance(app.container.resolve(Clock), SystemClock)


def test_register_after_serving_is_refused():
    app = Application()
    app.asgi
    with pytest.raises(RuntimeError):
        app.register(EventBusModule())


@pytest.mark.asyncio
async def test_journal_keeps_records_and_dispatches_by_base_type():
    journal = EventJournal()
    seen = []
    journal.subscribe(DomainEvent, seen.append)

    await journal.publish(ShopDisabledEvent(shop_id="s1", owner="0xowner"))

    assert journal.records == [{"event": "ShopDisabled", "shop_id": "s1", "owner": "0xowner"}]
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_record_locks_serialize_same_key():
    locks = RecordLocks()
    async with locks.hold("b", "a", None):
        assert locks.is_held("a") and locks.is_held("b")
    assert not locks.is_held("a")


@pytest.mark.asyncio
async def test_record_locks_drop_idle_keys():
    locks = RecordLocks()
    order = []

    async def redeem(name):
        async with locks.hold("ticket:1", "template:1"):
            order.append(name)
            await asyncio.sleep(0)

    await asyncio.gather(redeem("first"), redeem("second"))

    assert order == ["first", "second"]
    assert locks.tracked == 0


class AuditTrail:
    def __init__(self, clock: Clock):
        self.clock = clock
        self.entries = []

    def __call__(self, event):
        self.entries.append((self.clock.now(), event.event_name))


@pytest.mark.asyncio
async def test_domain_module_subscribes_event_handlers():
    disabled = []
    app = Application()
    app.register(EventBusModule().journal())
    app.register(
        DomainModule("audit")
        .bind(Clock, SystemClock)
        .on_event(ShopDisabledEvent, disabled.append)
        .on_event(DomainEvent, AuditTrail)
    )
    app.container.register_instance(Clock, FixedClock(7))

    await app.container.resolve(EventJournal).publish(ShopDisabledEvent(shop_id="s1", owner="0xowner"))

    assert [e.shop_id for e in disabled] == ["s1"]
    assert app.container.resolve(AuditTrail).entries == [(7, "ShopDisabled")]
