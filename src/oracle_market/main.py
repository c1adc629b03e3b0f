"""
App composition: everything via module objects and app.register().
`uvicorn oracle_market.main:app` serves the market with settings from MARKET_* variables.
"""
from __future__ import annotations

from oracle_market.core import Application, MarketSettings, configure_logging
from oracle_market.events import EventBusModule
from oracle_market.shop import market_module
from oracle_market.shop.clock import Clock


def create_app(settings: MarketSettings | None = None, *, clock: Clock | None = None) -> Application:
    settings = settings or MarketSettings.from_env()
    configure_logging(settings.log_level, settings.log_format)

    application = Application(config=settings)
    # event bus first so the market module publishes through the journal
    application.register(EventBusModule().journal())
    application.register(market_module)
    if clock is not None:
        application.container.register_instance(Clock, clock)
    return application.openapi(title="Oracle Market", version="0.1.0")


app = create_app()
