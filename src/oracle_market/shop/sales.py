"""SalesIndex: per-shop sales tallies folded from PurchaseCompleted events."""
from __future__ import annotations

from dataclasses import dataclass, field, replace

import structlog

from oracle_market.shop.events import PurchaseCompleted

log = structlog.get_logger(__name__)


@dataclass
class ShopSales:
    shop_id: str
    purchases: int = 0
    discounted_purchases: int = 0
    usd_cents: int = 0
    collected: dict[str, int] = field(default_factory=dict)


class SalesIndex:
    """Read model kept by an event subscriber; it never touches the repositories."""

    def __init__(self) -> None:
        self._shops: dict[str, ShopSales] = {}

    def __call__(self, event: PurchaseCompleted) -> None:
        sales = self._shops.setdefault(event.shop_id, ShopSales(event.shop_id))
        sales.purchases += 1
        if event.discount_template_id is not None:
            sales.discounted_purchases += 1
        sales.usd_cents += event.discounted_price_usd_cents
        sales.collected[event.currency] = sales.collected.get(event.currency, 0) + event.amount_paid
        log.debug("sale_indexed", shop_id=event.shop_id, receipt_id=event.receipt_id, purchases=sales.purchases)

    def for_shop(self, shop_id: str) -> ShopSales:
        sales = self._shops.get(shop_id) or ShopSales(shop_id)
        return replace(sales, collected=dict(sales.collected))
