from oracle_market.core.app import Application
from oracle_market.core.config import Config, MarketSettings
from oracle_market.core.container import Container
from oracle_market.core.logging import configure_logging
from oracle_market.core.module import Module

__all__ = [
    "Application",
    "Container",
    "Module",
    "Config",
    "MarketSettings",
    "configure_logging",
]
