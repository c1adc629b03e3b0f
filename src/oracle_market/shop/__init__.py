"""
Market bounded context: shops, listings, accepted currencies, discounts and checkout.
Register `market_module` on an Application to get the services and HTTP routes.
"""
from oracle_market.shop.auth import AdminCredential, AuthorizationModel
from oracle_market.shop.catalog import CatalogStore
from oracle_market.shop.checkout import CheckoutCoordinator, PurchaseOutcome, QuotePreview
from oracle_market.shop.clock import Clock, FixedClock, SystemClock
from oracle_market.shop.currency import CurrencyRegistry
from oracle_market.shop.discounts import DiscountEngine, apply_discount
from oracle_market.shop.errors import MarketError
from oracle_market.shop.module import market_module
from oracle_market.shop.pricing import PriceQuoteEngine, Quote
from oracle_market.shop.shops import ShopDirectory

__all__ = [
    "AdminCredential",
    "AuthorizationModel",
    "CatalogStore",
    "CheckoutCoordinator",
    "Clock",
    "CurrencyRegistry",
    "DiscountEngine",
    "FixedClock",
    "MarketError",
    "PriceQuoteEngine",
    "PurchaseOutcome",
    "Quote",
    "QuotePreview",
    "ShopDirectory",
    "SystemClock",
    "apply_discount",
    "market_module",
]
