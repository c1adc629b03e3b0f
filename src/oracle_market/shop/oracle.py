"""Oracle boundary types: the signed price observation and the object that carries it."""
from __future__ import annotations

from dataclasses import dataclass

from oracle_market.domain import ValueObject

FEED_ID_LENGTH = 32


@dataclass(frozen=True)
class SignedMagnitude(ValueObject):
    """Sign-and-magnitude integer, as oracle feeds encode price and exponent."""

    magnitude: int
    negative: bool = False

    @property
    def value(self) -> int:
        return -self.magnitude if self.negative else self.magnitude


@dataclass(frozen=True)
class PriceObservation(ValueObject):
    price: SignedMagnitude
    conf: int
    expo: SignedMagnitude
    publish_time: int


@dataclass(frozen=True)
class PriceInfoObject(ValueObject):
    """
    Oracle-owned object consumed at checkout. id and feed_id must match the
    AcceptedCurrency entry; attestation_time is when the oracle accepted the update.
    """

    id: str
    feed_id: bytes
    observation: PriceObservation
    attestation_time: int


def observation(
    price: int,
    expo: int,
    conf: int,
    publish_time: int,
) -> PriceObservation:
    """Build an observation from plain signed integers."""
    return PriceObservation(
        price=SignedMagnitude(abs(price), price < 0),
        conf=conf,
        expo=SignedMagnitude(abs(expo), expo < 0),
        publish_time=publish_time,
    )
