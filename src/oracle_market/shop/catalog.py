"""CatalogStore: listings, stock and the spotlighted discount pointer."""
from __future__ import annotations

import structlog

from oracle_market.domain import EventBus
from oracle_market.shop.auth import AdminCredential, AuthorizationModel
from oracle_market.shop.clock import Clock
from oracle_market.shop.errors import (
    CrossReferenceMismatch,
    InvalidInput,
    ListingHasActiveTemplates,
    ListingNotFound,
    ShopNotFound,
    ZeroStock,
)
from oracle_market.shop.events import (
    ItemListingAdded,
    ItemListingRemoved,
    ItemListingSpotlightUpdated,
    ItemListingStockUpdated,
    ItemListingUpdated,
)
from oracle_market.shop.locks import RecordLocks, listing_key, shop_key
from oracle_market.shop.records import Listing, Shop
from oracle_market.shop.repositories import IDiscountTemplateRepository, IListingRepository, IShopRepository

log = structlog.get_logger(__name__)


def _validate_listing_fields(name: str, base_price_usd_cents: int) -> None:
    if not name.strip():
        raise InvalidInput("Listing name cannot be empty")
    if base_price_usd_cents <= 0:
        raise InvalidInput("Base price must be greater than zero")


class CatalogStore:
    def __init__(
        self,
        shops: IShopRepository,
        listings: IListingRepository,
        templates: IDiscountTemplateRepository,
        auth: AuthorizationModel,
        locks: RecordLocks,
        event_bus: EventBus,
        clock: Clock,
    ) -> None:
        self._shops = shops
        self._listings = listings
        self._templates = templates
        self._auth = auth
        self._locks = locks
        self._event_bus = event_bus
        self._clock = clock

    async def _shop(self, shop_id: str) -> Shop:
        shop = await self._shops.get(shop_id)
        if shop is None:
            raise ShopNotFound(f"Shop {shop_id} not found")
        return shop

    async def get_listing(self, shop_id: str, listing_id: int) -> Listing:
        listing = await self._listings.get(listing_key(shop_id, listing_id))
        if listing is None:
            raise ListingNotFound(f"Listing {listing_id} not found in shop {shop_id}")
        return listing

    async def list_listings(self, shop_id: str) -> list[Listing]:
        return await self._listings.list_for_shop(shop_id)

    async def _check_spotlight(self, shop_id: str, listing_id: int, template_id: str) -> None:
        template = await self._templates.get(template_id)
        if template is None:
            raise CrossReferenceMismatch(f"Discount template {template_id} does not exist")
        if template.shop_id != shop_id:
            raise CrossReferenceMismatch("Discount template belongs to a different shop")
        if template.applies_to_listing_id is not None and template.applies_to_listing_id != listing_id:
            raise CrossReferenceMismatch("Discount template targets a different listing")

    async def add_listing(
        self,
        credential: AdminCredential,
        shop_id: str,
        name: str,
        item_type: str,
        base_price_usd_cents: int,
        stock: int,
        spotlight_template_id: str | None = None,
    ) -> Listing:
        self._auth.require(credential, shop_id)
        _validate_listing_fields(name, base_price_usd_cents)
        if not item_type.strip():
            raise InvalidInput("Item type cannot be empty")
        if stock <= 0:
            raise ZeroStock()

        # the shop record owns the listing-id allocator
        async with self._locks.hold(shop_key(shop_id)):
            shop = await self._shop(shop_id)
            listing_id = shop.next_listing_id
            if spotlight_template_id is not None:
                await self._check_spotlight(shop_id, listing_id, spotlight_template_id)
            shop.allocate_listing_id()
            listing = Listing(
                shop_id=shop_id,
                listing_id=listing_id,
                item_type=item_type.strip(),
                name=name.strip(),
                base_price_usd_cents=base_price_usd_cents,
                stock=stock,
                spotlight_template_id=spotlight_template_id,
            )
            await self._listings.add(listing)
            await self._shops.save(shop)

        log.info("listing_added", shop_id=shop_id, listing_id=listing_id, stock=stock)
        await self._event_bus.publish(
            ItemListingAdded(
                shop_id=shop_id,
                listing_id=listing_id,
                item_type=listing.item_type,
                name=listing.name,
                base_price_usd_cents=base_price_usd_cents,
                stock=stock,
                spotlight_template_id=spotlight_template_id,
            )
        )
        return listing

    async def update_listing(
        self,
        credential: AdminCredential,
        shop_id: str,
        listing_id: int,
        name: str,
        base_price_usd_cents: int,
    ) -> Listing:
        self._auth.require(credential, shop_id)
        _validate_listing_fields(name, base_price_usd_cents)
        async with self._locks.hold(listing_key(shop_id, listing_id)):
            listing = await self.get_listing(shop_id, listing_id)
            listing.name = name.strip()
            listing.base_price_usd_cents = base_price_usd_cents
            await self._listings.save(listing)
        await self._event_bus.publish(
            ItemListingUpdated(
                shop_id=shop_id,
                listing_id=listing_id,
                name=listing.name,
                base_price_usd_cents=base_price_usd_cents,
            )
        )
        return listing

    async def set_stock(self, credential: AdminCredential, shop_id: str, listing_id: int, new_stock: int) -> Listing:
        """Any value >= 0; zero pauses sales without delisting."""
        self._auth.require(credential, shop_id)
        if new_stock < 0:
            raise InvalidInput("Stock cannot be negative")
        async with self._locks.hold(listing_key(shop_id, listing_id)):
            listing = await self.get_listing(shop_id, listing_id)
            previous = listing.stock
            listing.stock = new_stock
            await self._listings.save(listing)
        log.info("listing_stock_updated", shop_id=shop_id, listing_id=listing_id, previous=previous, stock=new_stock)
        await self._event_bus.publish(
            ItemListingStockUpdated(shop_id=shop_id, listing_id=listing_id, previous_stock=previous, new_stock=new_stock)
        )
        return listing

    async def remove_listing(self, credential: AdminCredential, shop_id: str, listing_id: int) -> None:
        self._auth.require(credential, shop_id)
        now = self._clock.now()
        async with self._locks.hold(listing_key(shop_id, listing_id)):
            await self.get_listing(shop_id, listing_id)
            scoped = await self._templates.list_for_listing(shop_id, listing_id)
            live = [t.id for t in scoped if t.active and not t.is_finished(now)]
            if live:
                raise ListingHasActiveTemplates(f"Templates {', '.join(sorted(live))} still target listing {listing_id}")
            await self._listings.remove(listing_key(shop_id, listing_id))
        log.info("listing_removed", shop_id=shop_id, listing_id=listing_id)
        await self._event_bus.publish(ItemListingRemoved(shop_id=shop_id, listing_id=listing_id))

    async def attach_spotlight(
        self, credential: AdminCredential, shop_id: str, listing_id: int, template_id: str
    ) -> Listing:
        self._auth.require(credential, shop_id)
        async with self._locks.hold(listing_key(shop_id, listing_id)):
            listing = await self.get_listing(shop_id, listing_id)
            await self._check_spotlight(shop_id, listing_id, template_id)
            listing.spotlight_template_id = template_id
            await self._listings.save(listing)
        await self._event_bus.publish(
            ItemListingSpotlightUpdated(shop_id=shop_id, listing_id=listing_id, spotlight_template_id=template_id)
        )
        return listing

    async def clear_spotlight(self, credential: AdminCredential, shop_id: str, listing_id: int) -> Listing:
        self._auth.require(credential, shop_id)
        async with self._locks.hold(listing_key(shop_id, listing_id)):
            listing = await self.get_listing(shop_id, listing_id)
            listing.spotlight_template_id = None
            await self._listings.save(listing)
        await self._event_bus.publish(
            ItemListingSpotlightUpdated(shop_id=shop_id, listing_id=listing_id, spotlight_template_id=None)
        )
        return listing
