"""
CLI: offline quotes and the HTTP server.
`oracle-market quote` runs the same oracle checks and conversion checkout uses.
"""
from __future__ import annotations

from typing import Optional

import typer

from oracle_market.core.config import MarketSettings
from oracle_market.shop.errors import MarketError
from oracle_market.shop.formatting import format_usd_from_cents, parse_usd_to_cents
from oracle_market.shop.oracle import PriceInfoObject, observation
from oracle_market.shop.pricing import check_freshness, conservative_price, convert_usd_cents
from oracle_market.shop.records import GUARDRAIL_CEILINGS, GuardrailOverrides

app = typer.Typer(help="Oracle Market CLI: quote prices offline, serve the HTTP API.")


@app.command()
def quote(
    usd: str = typer.Option(..., "--usd", help="USD amount, e.g. 12.50"),
    decimals: int = typer.Option(..., "--decimals", help="Currency decimals"),
    price: int = typer.Option(..., "--price", help="Oracle price mantissa"),
    expo: int = typer.Option(..., "--expo", help="Oracle exponent, e.g. -8"),
    conf: int = typer.Option(0, "--conf", help="Oracle confidence width"),
    max_confidence_ratio_bps: int = typer.Option(
        GUARDRAIL_CEILINGS.max_confidence_ratio_bps, "--max-confidence-ratio-bps", help="Confidence/price cap"
    ),
    publish_time: Optional[int] = typer.Option(None, "--publish-time", help="Publish time; enables the age check"),
    now: Optional[int] = typer.Option(None, "--now", help="Current time for the age check"),
    max_price_age_secs: int = typer.Option(GUARDRAIL_CEILINGS.max_price_age_secs, "--max-age", help="Max price age"),
) -> None:
    """Convert a USD amount into the smallest units of a currency."""
    try:
        cents = parse_usd_to_cents(usd)
        caps = GUARDRAIL_CEILINGS.tighten(
            GuardrailOverrides(
                max_price_age_secs=max_price_age_secs,
                max_confidence_ratio_bps=max_confidence_ratio_bps,
            )
        )
        obs = observation(price, expo, conf, publish_time if publish_time is not None else 0)
        if publish_time is not None and now is not None:
            check_freshness(PriceInfoObject("offline", b"", obs, publish_time), caps, now)
        lower = conservative_price(obs, caps.max_confidence_ratio_bps)
        amount = convert_usd_cents(cents, decimals, lower, obs.expo)
    except MarketError as e:
        typer.echo(f"{e.code}: {e.message}", err=True)
        raise typer.Exit(1)

    typer.echo(f"usd: {format_usd_from_cents(cents)}")
    typer.echo(f"conservative price: {lower} x 10^{expo}")
    typer.echo(f"amount: {amount}")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default MARKET_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", help="Port (default MARKET_PORT)"),
) -> None:
    """Serve the HTTP API with uvicorn."""
    from oracle_market.main import create_app

    settings = MarketSettings.from_env()
    create_app(settings).run(host=host or settings.host, port=port or settings.port)


def main() -> None:
    """Entry point for the oracle-market console command."""
    app()


if __name__ == "__main__":
    main()
