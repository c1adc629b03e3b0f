"""Single config object: passed when creating the app; available via DI as MarketSettings."""
from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from typing import Any


class Config:
    """Environment helpers shared by settings classes."""

    @classmethod
    def load_from_env(cls, prefix: str = "MARKET_", **defaults: Any) -> dict[str, Any]:
        """Load from os.environ with prefix and defaults. Returns dict for MySettings(**Config.load_from_env())."""
        result = dict(defaults)
        for key, value in os.environ.items():
            if key.startswith(prefix):
                name = key[len(prefix):].lower()
                result[name] = value
        return result


def _coerce(raw: Any, target: Any) -> Any:
    if not isinstance(raw, str):
        return raw
    if target in (int, "int"):
        return int(raw)
    if target in (bool, "bool"):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    return raw


@dataclass
class MarketSettings:
    """
    Service settings. Guardrail ceilings here can only tighten the module-wide
    oracle ceilings (see oracle_market.shop.records.GUARDRAIL_CEILINGS).
    """

    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"
    log_format: str = "console"
    max_price_age_secs_cap: int = 60
    max_confidence_ratio_bps_cap: int = 1_000
    max_price_status_lag_secs_cap: int = 5

    @classmethod
    def from_env(cls, prefix: str = "MARKET_") -> MarketSettings:
        """Build settings from MARKET_* variables; unknown variables are ignored."""
        fields = {f.name: f.type for f in dataclasses.fields(cls)}
        values = {
            name: _coerce(value, fields[name])
            for name, value in Config.load_from_env(prefix).items()
            if name in fields
        }
        return cls(**values)
