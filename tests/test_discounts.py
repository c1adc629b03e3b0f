import pytest

from conftest import NOW, purchase_args
from oracle_market.shop.discounts import apply_discount
from oracle_market.shop.errors import (
    AlreadyClaimed,
    ClaimsNotPrunable,
    CrossReferenceMismatch,
    InvalidInput,
    InvalidRuleValue,
    InvalidSchedule,
    TemplateExpired,
    TemplateFinalized,
    TemplateInactive,
    TemplateMaxedOut,
    TemplateTooEarly,
    Unauthorized,
)
from oracle_market.shop.records import FixedDiscount, PercentDiscount, parse_discount_rule


def test_fixed_discount_floors_at_zero():
    assert apply_discount(1250, FixedDiscount(250)) == 1000
    assert apply_discount(1250, FixedDiscount(1250)) == 0
    assert apply_discount(1250, FixedDiscount(5000)) == 0


def test_percent_discount_rounds_up():
    assert apply_discount(1250, PercentDiscount(1000)) == 1125
    # 999 * 0.9 = 899.1 -> 900
    assert apply_discount(999, PercentDiscount(1000)) == 900
    assert apply_discount(1250, PercentDiscount(10_000)) == 0
    assert apply_discount(1250, PercentDiscount(0)) == 1250


def test_discount_never_exceeds_base():
    for base in (0, 1, 7, 1250, 10**9):
        for rule in (FixedDiscount(0), FixedDiscount(3), PercentDiscount(1), PercentDiscount(9_999)):
            assert apply_discount(base, rule) <= base


def test_rule_parsing_at_the_boundary():
    assert parse_discount_rule("fixed", 150) == FixedDiscount(150)
    assert parse_discount_rule(1, 1000) == PercentDiscount(1000)
    with pytest.raises(InvalidRuleValue):
        parse_discount_rule("percent", 10_001)
    with pytest.raises(InvalidRuleValue):
        parse_discount_rule("bogo", 1)


@pytest.mark.asyncio
async def test_second_claim_from_same_address_is_rejected(market, open_store):
    store = await open_store()
    template = await market.discounts.create_template(store.credential, store.shop.id, PercentDiscount(1000))

    ticket = await market.discounts.claim(template.id, "0xalice")
    assert ticket.claimer == "0xalice"
    assert ticket.template_id == template.id

    with pytest.raises(AlreadyClaimed):
        await market.discounts.claim(template.id, "0xalice")

    stored = await market.discounts.get_template(template.id)
    assert stored.claims_issued == 1
    assert market.journal.named("DiscountClaimed")[0]["ticket_id"] == ticket.id


@pytest.mark.asyncio
async def test_claim_respects_schedule_and_switch(market, open_store, clock):
    store = await open_store()
    template = await market.discounts.create_template(
        store.credential, store.shop.id, FixedDiscount(100), starts_at=NOW + 10, expires_at=NOW + 20
    )
    with pytest.raises(TemplateTooEarly):
        await market.discounts.claim(template.id, "0xalice")

    clock.set(NOW + 10)
    await market.discounts.toggle_template(store.credential, store.shop.id, template.id, False)
    with pytest.raises(TemplateInactive):
        await market.discounts.claim(template.id, "0xalice")

    await market.discounts.toggle_template(store.credential, store.shop.id, template.id, True)
    await market.discounts.claim(template.id, "0xalice")

    clock.set(NOW + 20)
    with pytest.raises(TemplateExpired):
        await market.discounts.claim(template.id, "0xbob")
    assert (await market.discounts.get_template(template.id)).status(NOW + 20) == "expired"


@pytest.mark.asyncio
async def test_prune_then_reclaim(market, open_store):
    store = await open_store()
    template = await market.discounts.create_template(store.credential, store.shop.id, FixedDiscount(100))
    await market.discounts.claim(template.id, "0xalice")

    with pytest.raises(ClaimsNotPrunable):
        await market.discounts.prune_claims(store.credential, store.shop.id, template.id, ["0xalice"])

    await market.discounts.toggle_template(store.credential, store.shop.id, template.id, False)
    pruned = await market.discounts.prune_claims(store.credential, store.shop.id, template.id, ["0xalice", "0xnobody"])
    assert pruned == 1
    assert await market.discounts.prune_claims(store.credential, store.shop.id, template.id, ["0xalice"]) == 0

    await market.discounts.toggle_template(store.credential, store.shop.id, template.id, True)
    again = await market.discounts.claim(template.id, "0xalice")
    assert again.claimer == "0xalice"
    assert (await market.discounts.get_template(template.id)).claims_issued == 2


@pytest.mark.asyncio
async def test_template_terms_validation(market, open_store):
    store = await open_store()
    create = market.discounts.create_template
    with pytest.raises(InvalidSchedule):
        await create(store.credential, store.shop.id, FixedDiscount(1), starts_at=NOW, expires_at=NOW)
    with pytest.raises(InvalidInput):
        await create(store.credential, store.shop.id, FixedDiscount(1), max_redemptions=0)
    with pytest.raises(CrossReferenceMismatch):
        await create(store.credential, store.shop.id, FixedDiscount(1), applies_to_listing_id=99)

    template = await create(store.credential, store.shop.id, FixedDiscount(1), applies_to_listing_id=1)
    assert template.starts_at == NOW
    assert template.applies_to_listing_id == store.listing.listing_id


@pytest.mark.asyncio
async def test_update_only_until_first_claim(market, open_store):
    store = await open_store()
    template = await market.discounts.create_template(store.credential, store.shop.id, FixedDiscount(100))

    updated = await market.discounts.update_template(
        store.credential, store.shop.id, template.id, PercentDiscount(500), starts_at=NOW, max_redemptions=5
    )
    assert updated.rule == PercentDiscount(500)
    assert updated.max_redemptions == 5

    await market.discounts.claim(template.id, "0xalice")
    with pytest.raises(TemplateFinalized):
        await market.discounts.update_template(
            store.credential, store.shop.id, template.id, PercentDiscount(900), starts_at=NOW
        )


@pytest.mark.asyncio
async def test_admin_operations_need_the_shop_credential(market, open_store):
    store = await open_store()
    other = await open_store()
    template = await market.discounts.create_template(store.credential, store.shop.id, FixedDiscount(100))

    with pytest.raises(Unauthorized):
        await market.discounts.toggle_template(other.credential, store.shop.id, template.id, False)
    with pytest.raises(CrossReferenceMismatch):
        await market.discounts.toggle_template(other.credential, other.shop.id, template.id, False)


@pytest.mark.asyncio
async def test_claim_refused_once_redemptions_reach_the_cap(market, open_store):
    store = await open_store()
    template = await market.discounts.create_template(
        store.credential, store.shop.id, FixedDiscount(100), max_redemptions=1
    )
    await market.checkout.claim_and_buy_with_discount(**purchase_args(store, buyer="0xalice"), template_id=template.id)

    with pytest.raises(TemplateMaxedOut):
        await market.discounts.claim(template.id, "0xbob")
    stored = await market.discounts.get_template(template.id)
    assert (stored.claims_issued, stored.redemptions) == (1, 1)
    assert stored.status(NOW) == "maxed"


@pytest.mark.asyncio
async def test_prune_on_expired_template_while_still_active(market, open_store, clock):
    store = await open_store()
    template = await market.discounts.create_template(
        store.credential, store.shop.id, FixedDiscount(100), expires_at=NOW + 10
    )
    await market.discounts.claim(template.id, "0xalice")

    clock.set(NOW + 10)
    assert (await market.discounts.get_template(template.id)).active
    assert await market.discounts.prune_claims(store.credential, store.shop.id, template.id, ["0xalice"]) == 1
    assert not (await market.discounts.get_template(template.id)).has_claimed("0xalice")


@pytest.mark.asyncio
async def test_prune_on_maxed_template_while_still_active(market, open_store):
    store = await open_store()
    template = await market.discounts.create_template(
        store.credential, store.shop.id, FixedDiscount(100), max_redemptions=1
    )
    await market.checkout.claim_and_buy_with_discount(**purchase_args(store, buyer="0xalice"), template_id=template.id)

    assert await market.discounts.prune_claims(store.credential, store.shop.id, template.id, ["0xalice"]) == 1
    [pruned] = market.journal.named("DiscountClaimsPruned")
    assert pruned["pruned"] == 1
