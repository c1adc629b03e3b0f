"""
DiscountEngine: discount templates, single-use tickets and per-claimer claim markers.

Template phase is time and counter driven (scheduled, open, finished by expiry
or by the redemption cap); the `active` flag is an independent admin switch.
"""
from __future__ import annotations

import uuid

import structlog

from oracle_market.domain import EventBus
from oracle_market.shop.auth import AdminCredential, AuthorizationModel
from oracle_market.shop.clock import Clock
from oracle_market.shop.errors import (
    ClaimsNotPrunable,
    CrossReferenceMismatch,
    DiscountClaimerMismatch,
    DiscountListingMismatch,
    DiscountShopMismatch,
    DiscountTemplateMismatch,
    InvalidInput,
    InvalidRuleValue,
    InvalidSchedule,
    ShopNotFound,
    TemplateFinalized,
    TemplateNotFound,
    TicketNotFound,
)
from oracle_market.shop.events import (
    DiscountClaimed,
    DiscountClaimsPruned,
    DiscountTemplateCreated,
    DiscountTemplateToggled,
    DiscountTemplateUpdated,
)
from oracle_market.shop.fixed_point import ceil_div, checked_mul
from oracle_market.shop.locks import RecordLocks, listing_key, template_key
from oracle_market.shop.records import (
    BPS_DENOMINATOR,
    DiscountRule,
    DiscountTemplate,
    DiscountTicket,
    FixedDiscount,
    Listing,
    PercentDiscount,
    rule_value,
)
from oracle_market.shop.repositories import (
    IDiscountTemplateRepository,
    IDiscountTicketRepository,
    IListingRepository,
    IShopRepository,
)

log = structlog.get_logger(__name__)


def apply_discount(base_price_cents: int, rule: DiscountRule) -> int:
    """Discounted price in cents: never negative, never above the base price."""
    match rule:
        case FixedDiscount(amount_cents=amount):
            return max(0, base_price_cents - amount)
        case PercentDiscount(bps=bps):
            kept = checked_mul(base_price_cents, BPS_DENOMINATOR - bps)
            return ceil_div(kept, BPS_DENOMINATOR)
    raise InvalidRuleValue(f"Unknown discount rule {rule!r}")


def validate_terms(rule: DiscountRule, starts_at: int, expires_at: int | None, max_redemptions: int | None) -> None:
    if isinstance(rule, PercentDiscount) and not 0 <= rule.bps <= BPS_DENOMINATOR:
        raise InvalidRuleValue("Percent discount must be within 0..10000 bps")
    if isinstance(rule, FixedDiscount) and rule.amount_cents < 0:
        raise InvalidRuleValue("Fixed discount cannot be negative")
    if starts_at < 0:
        raise InvalidSchedule("starts_at cannot be negative")
    if expires_at is not None and expires_at <= starts_at:
        raise InvalidSchedule()
    if max_redemptions is not None and max_redemptions <= 0:
        raise InvalidInput("max_redemptions must be positive when set")


def check_ticket_binding(
    template: DiscountTemplate,
    ticket: DiscountTicket,
    listing: Listing,
    buyer: str,
) -> None:
    """The ticket, its template, the listing being bought and the signer must all line up."""
    if ticket.template_id != template.id:
        raise DiscountTemplateMismatch()
    if ticket.shop_id != listing.shop_id or template.shop_id != listing.shop_id:
        raise DiscountShopMismatch()
    if ticket.claimer != buyer:
        raise DiscountClaimerMismatch()
    for scope in (template.applies_to_listing_id, ticket.listing_id):
        if scope is not None and scope != listing.listing_id:
            raise DiscountListingMismatch(f"Discount applies to listing {scope}, not {listing.listing_id}")


def issue_ticket(template: DiscountTemplate, claimer: str, now: int) -> DiscountTicket:
    """Record the claim on the (working copy of the) template and mint the ticket."""
    marker = template.record_claim(claimer, now)
    return DiscountTicket(
        id=uuid.uuid4().hex,
        template_id=template.id,
        shop_id=template.shop_id,
        claimer=claimer,
        claimed_at=marker.claimed_at,
        listing_id=template.applies_to_listing_id,
    )


class DiscountEngine:
    def __init__(
        self,
        shops: IShopRepository,
        listings: IListingRepository,
        templates: IDiscountTemplateRepository,
        tickets: IDiscountTicketRepository,
        auth: AuthorizationModel,
        locks: RecordLocks,
        event_bus: EventBus,
        clock: Clock,
    ) -> None:
        self._shops = shops
        self._listings = listings
        self._templates = templates
        self._tickets = tickets
        self._auth = auth
        self._locks = locks
        self._event_bus = event_bus
        self._clock = clock

    async def get_template(self, template_id: str) -> DiscountTemplate:
        template = await self._templates.get(template_id)
        if template is None:
            raise TemplateNotFound(f"Discount template {template_id} not found")
        return template

    async def _owned_template(self, shop_id: str, template_id: str) -> DiscountTemplate:
        template = await self.get_template(template_id)
        if template.shop_id != shop_id:
            raise CrossReferenceMismatch("Discount template belongs to a different shop")
        return template

    async def get_ticket(self, ticket_id: str) -> DiscountTicket:
        ticket = await self._tickets.get(ticket_id)
        if ticket is None:
            raise TicketNotFound(f"Discount ticket {ticket_id} not found")
        return ticket

    async def list_templates(self, shop_id: str) -> list[DiscountTemplate]:
        return await self._templates.list_for_shop(shop_id)

    async def list_tickets(self, claimer: str) -> list[DiscountTicket]:
        return await self._tickets.list_for_claimer(claimer)

    async def create_template(
        self,
        credential: AdminCredential,
        shop_id: str,
        rule: DiscountRule,
        starts_at: int | None = None,
        expires_at: int | None = None,
        max_redemptions: int | None = None,
        applies_to_listing_id: int | None = None,
    ) -> DiscountTemplate:
        self._auth.require(credential, shop_id)
        starts_at = self._clock.now() if starts_at is None else starts_at
        validate_terms(rule, starts_at, expires_at, max_redemptions)
        if await self._shops.get(shop_id) is None:
            raise ShopNotFound(f"Shop {shop_id} not found")
        if applies_to_listing_id is not None and await self._listings.get(listing_key(shop_id, applies_to_listing_id)) is None:
            raise CrossReferenceMismatch(f"Listing {applies_to_listing_id} does not exist in shop {shop_id}")

        template = DiscountTemplate(
            id=uuid.uuid4().hex,
            shop_id=shop_id,
            rule=rule,
            starts_at=starts_at,
            applies_to_listing_id=applies_to_listing_id,
            expires_at=expires_at,
            max_redemptions=max_redemptions,
        )
        await self._templates.add(template)
        log.info("discount_template_created", shop_id=shop_id, template_id=template.id, rule=rule.kind)
        await self._event_bus.publish(
            DiscountTemplateCreated(
                shop_id=shop_id,
                template_id=template.id,
                applies_to_listing_id=applies_to_listing_id,
                rule_kind=rule.kind,
                rule_value=rule_value(rule),
                starts_at=starts_at,
                expires_at=expires_at,
                max_redemptions=max_redemptions,
            )
        )
        return template

    async def update_template(
        self,
        credential: AdminCredential,
        shop_id: str,
        template_id: str,
        rule: DiscountRule,
        starts_at: int,
        expires_at: int | None = None,
        max_redemptions: int | None = None,
    ) -> DiscountTemplate:
        """Only untouched templates can change terms: no claims, no redemptions, not finished."""
        self._auth.require(credential, shop_id)
        validate_terms(rule, starts_at, expires_at, max_redemptions)
        async with self._locks.hold(template_key(template_id)):
            template = await self._owned_template(shop_id, template_id)
            if not template.is_editable(self._clock.now()):
                raise TemplateFinalized()
            template.rule = rule
            template.starts_at = starts_at
            template.expires_at = expires_at
            template.max_redemptions = max_redemptions
            await self._templates.save(template)
        await self._event_bus.publish(
            DiscountTemplateUpdated(
                shop_id=shop_id,
                template_id=template_id,
                rule_kind=rule.kind,
                rule_value=rule_value(rule),
                starts_at=starts_at,
                expires_at=expires_at,
                max_redemptions=max_redemptions,
            )
        )
        return template

    async def toggle_template(
        self, credential: AdminCredential, shop_id: str, template_id: str, active: bool
    ) -> DiscountTemplate:
        self._auth.require(credential, shop_id)
        async with self._locks.hold(template_key(template_id)):
            template = await self._owned_template(shop_id, template_id)
            template.active = active
            await self._templates.save(template)
        log.info("discount_template_toggled", shop_id=shop_id, template_id=template_id, active=active)
        await self._event_bus.publish(DiscountTemplateToggled(shop_id=shop_id, template_id=template_id, active=active))
        return template

    async def claim(self, template_id: str, claimer: str) -> DiscountTicket:
        """One ticket per claimer per template while its claim marker exists."""
        if not claimer.strip():
            raise InvalidInput("Claimer address cannot be empty")
        async with self._locks.hold(template_key(template_id)):
            template = await self.get_template(template_id)
            ticket = issue_ticket(template, claimer, self._clock.now())
            await self._tickets.add(ticket)
            await self._templates.save(template)
        log.info("discount_claimed", template_id=template_id, ticket_id=ticket.id, claimer=claimer)
        await self._event_bus.publish(
            DiscountClaimed(shop_id=template.shop_id, template_id=template_id, ticket_id=ticket.id, claimer=claimer)
        )
        return ticket

    async def prune_claims(
        self, credential: AdminCredential, shop_id: str, template_id: str, claimers: list[str]
    ) -> int:
        """Drop claim markers of a finished or disabled template. Idempotent per claimer."""
        self._auth.require(credential, shop_id)
        async with self._locks.hold(template_key(template_id)):
            template = await self._owned_template(shop_id, template_id)
            if template.active and not template.is_finished(self._clock.now()):
                raise ClaimsNotPrunable()
            pruned = 0
            for claimer in claimers:
                if template.claim_markers.pop(claimer, None) is not None:
                    pruned += 1
            await self._templates.save(template)
        log.info("discount_claims_pruned", shop_id=shop_id, template_id=template_id, pruned=pruned)
        await self._event_bus.publish(DiscountClaimsPruned(shop_id=shop_id, template_id=template_id, pruned=pruned))
        return pruned
