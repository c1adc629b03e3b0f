"""Shop lifecycle: creation with its admin credential, owner rotation, permanent disable."""
from __future__ import annotations

import uuid

import structlog

from oracle_market.domain import EventBus
from oracle_market.shop.auth import AdminCredential, AuthorizationModel
from oracle_market.shop.errors import InvalidInput, ShopNotFound
from oracle_market.shop.events import ShopCreated, ShopDisabledEvent, ShopOwnerUpdated
from oracle_market.shop.locks import RecordLocks, shop_key
from oracle_market.shop.records import Shop
from oracle_market.shop.repositories import IShopRepository

log = structlog.get_logger(__name__)


class ShopDirectory:
    def __init__(
        self,
        shops: IShopRepository,
        auth: AuthorizationModel,
        locks: RecordLocks,
        event_bus: EventBus,
    ) -> None:
        self._shops = shops
        self._auth = auth
        self._locks = locks
        self._event_bus = event_bus

    async def create_shop(self, name: str, owner: str) -> tuple[Shop, AdminCredential]:
        if not name.strip():
            raise InvalidInput("Shop name cannot be empty")
        if not owner.strip():
            raise InvalidInput("Shop owner address cannot be empty")
        shop = Shop(id=uuid.uuid4().hex, owner=owner, name=name.strip())
        credential = self._auth.issue(shop.id)
        await self._shops.add(shop)
        log.info("shop_created", shop_id=shop.id, owner=owner)
        await self._event_bus.publish(ShopCreated(shop_id=shop.id, owner=shop.owner, name=shop.name))
        return shop, credential

    async def get_shop(self, shop_id: str) -> Shop:
        shop = await self._shops.get(shop_id)
        if shop is None:
            raise ShopNotFound(f"Shop {shop_id} not found")
        return shop

    async def update_owner(self, credential: AdminCredential, shop_id: str, new_owner: str) -> Shop:
        self._auth.require(credential, shop_id)
        if not new_owner.strip():
            raise InvalidInput("Shop owner address cannot be empty")
        async with self._locks.hold(shop_key(shop_id)):
            shop = await self.get_shop(shop_id)
            previous = shop.owner
            shop.owner = new_owner
            await self._shops.save(shop)
        log.info("shop_owner_updated", shop_id=shop_id, previous_owner=previous, new_owner=new_owner)
        await self._event_bus.publish(ShopOwnerUpdated(shop_id=shop_id, previous_owner=previous, new_owner=new_owner))
        return shop

    async def disable_shop(self, credential: AdminCredential, shop_id: str) -> Shop:
        """Permanent: checkouts stop, reads and admin edits keep working."""
        self._auth.require(credential, shop_id)
        async with self._locks.hold(shop_key(shop_id)):
            shop = await self.get_shop(shop_id)
            if shop.disabled:
                return shop
            shop.disabled = True
            await self._shops.save(shop)
        log.info("shop_disabled", shop_id=shop_id)
        await self._event_bus.publish(ShopDisabledEvent(shop_id=shop_id, owner=shop.owner))
        return shop
