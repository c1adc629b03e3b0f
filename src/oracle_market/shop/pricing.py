"""
PriceQuoteEngine: validates an oracle observation against a currency entry and
converts a USD-cent amount into the currency's smallest units.

The conversion is integer-only with 128-bit checked intermediates and always
rounds up, using the lower confidence bound of the price so the seller is
never underpaid.
"""
from __future__ import annotations

from dataclasses import dataclass

from oracle_market.domain import ValueObject
from oracle_market.shop.errors import (
    ConfidenceExceedsPrice,
    ConfidenceIntervalTooWide,
    FeedIdentifierMismatch,
    OracleObjectMismatch,
    PriceNonPositive,
    PriceStatusNotTrading,
    PriceTooStale,
    UnsupportedDecimals,
)
from oracle_market.shop.fixed_point import MAX_POWER_OF_TEN, ceil_div, checked_mul, pow10, to_u64
from oracle_market.shop.oracle import PriceInfoObject, PriceObservation, SignedMagnitude
from oracle_market.shop.records import BPS_DENOMINATOR, AcceptedCurrency, Guardrails

CENTS_PER_USD = 100


@dataclass(frozen=True)
class Quote(ValueObject):
    usd_cents: int
    amount: int
    currency: str
    decimals: int
    conservative_price: int
    expo: int
    publish_time: int
    feed_id: bytes


def convert_usd_cents(usd_cents: int, decimals: int, price_mantissa: int, expo: SignedMagnitude) -> int:
    """
    ceil(usd_cents * 10^decimals / (price * 10^expo * 100)), rearranged so
    every factor stays a non-negative integer.
    """
    if decimals > MAX_POWER_OF_TEN:
        raise UnsupportedDecimals(f"Decimals must be within 0..{MAX_POWER_OF_TEN}, got {decimals}")
    if price_mantissa <= 0:
        raise PriceNonPositive()
    numerator = checked_mul(usd_cents, pow10(decimals))
    denominator = checked_mul(price_mantissa, CENTS_PER_USD)
    if expo.negative:
        numerator = checked_mul(numerator, pow10(expo.magnitude))
    else:
        denominator = checked_mul(denominator, pow10(expo.magnitude))
    return to_u64(ceil_div(numerator, denominator))


def check_identity(currency: AcceptedCurrency, price_info: PriceInfoObject) -> None:
    if price_info.id != currency.oracle_object_id:
        raise OracleObjectMismatch(f"Expected price object {currency.oracle_object_id}, got {price_info.id}")
    if bytes(price_info.feed_id) != currency.feed_id:
        raise FeedIdentifierMismatch(f"Expected feed {currency.feed_id.hex()}, got {bytes(price_info.feed_id).hex()}")


def check_freshness(price_info: PriceInfoObject, guardrails: Guardrails, now: int) -> None:
    publish_time = price_info.observation.publish_time
    # a publish time ahead of the platform clock counts as age zero
    if now > publish_time and now - publish_time > guardrails.max_price_age_secs:
        raise PriceTooStale(f"Price published at {publish_time} is older than {guardrails.max_price_age_secs}s")
    attested = price_info.attestation_time
    if attested < publish_time:
        raise PriceStatusNotTrading("Attestation precedes the publish time")
    if attested - publish_time > guardrails.max_price_status_lag_secs:
        raise PriceStatusNotTrading(
            f"Attestation lag {attested - publish_time}s exceeds {guardrails.max_price_status_lag_secs}s"
        )


def conservative_price(observation: PriceObservation, max_confidence_ratio_bps: int) -> int:
    """Price minus its confidence width, after the positivity and ratio checks."""
    if observation.price.negative or observation.price.magnitude == 0:
        raise PriceNonPositive()
    mantissa = observation.price.magnitude
    conf = observation.conf
    if mantissa <= conf:
        raise ConfidenceExceedsPrice(f"Confidence {conf} is not below price {mantissa}")
    if checked_mul(conf, BPS_DENOMINATOR) > checked_mul(mantissa, max_confidence_ratio_bps):
        raise ConfidenceIntervalTooWide(
            f"Confidence {conf} exceeds {max_confidence_ratio_bps} bps of price {mantissa}"
        )
    return mantissa - conf


class PriceQuoteEngine:
    """Stateless; safe to share between concurrent checkouts."""

    def quote(
        self,
        usd_cents: int,
        currency: AcceptedCurrency,
        price_info: PriceInfoObject,
        guardrails: Guardrails,
        now: int,
    ) -> Quote:
        check_identity(currency, price_info)
        check_freshness(price_info, guardrails, now)
        observation = price_info.observation
        price = conservative_price(observation, guardrails.max_confidence_ratio_bps)
        amount = convert_usd_cents(usd_cents, currency.decimals, price, observation.expo)
        return Quote(
            usd_cents=usd_cents,
            amount=amount,
            currency=currency.currency,
            decimals=currency.decimals,
            conservative_price=price,
            expo=observation.expo.value,
            publish_time=observation.publish_time,
            feed_id=currency.feed_id,
        )
