"""
Oracle Market: oracle-priced marketplace settlement engine.
Application is composed from module objects via app.register(module).
"""
from oracle_market.core import Application, Config, Container, MarketSettings, Module, configure_logging

__all__ = [
    "Application",
    "Container",
    "Module",
    "Config",
    "MarketSettings",
    "configure_logging",
]
