"""
Command line entry points.

- ``storefront quote`` prices a set of lines offline, with the same engine
  the API uses.
- ``storefront serve`` runs the HTTP API.
"""

import logging
import sys
from typing import Optional, Tuple

import click

from storefront.domain import ClientTier, OrderLine
from storefront.errors import StorefrontError
from storefront.money import Money
from storefront.pricing import PricingEngine, PromoPolicy

logger = logging.getLogger(__name__)


def parse_line(index: int, text: str) -> OrderLine:
    """Parse ``PRICE:QUANTITY`` (e.g. ``199.99:3``) into an order line."""
    price, sep, quantity = text.partition(":")
    if not sep:
        raise click.BadParameter(
            f"{text!r} is not of the form PRICE:QUANTITY", param_hint="LINE"
        )
    try:
        return OrderLine(
            product_id=index,
            product_name=f"line {index}",
            quantity=int(quantity),
            unit_price=Money.of(price),
        )
    except ValueError as e:
        raise click.BadParameter(f"{text!r}: {e}", param_hint="LINE") from e


@click.group()
@click.option("--log-level", default="WARNING", show_default=True)
def main(log_level: str) -> None:
    """Storefront order pricing and lifecycle engine."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@main.command()
@click.argument("lines", nargs=-1, required=True)
@click.option(
    "--tier",
    type=click.Choice([t.value for t in ClientTier], case_sensitive=False),
    default=ClientTier.BASIC.value,
    show_default=True,
)
@click.option("--promo-code", default=None, help="e.g. PROMO-AB12")
@click.option("--tax-rate", default="0.20", show_default=True)
@click.option(
    "--strict-promo",
    is_flag=True,
    help="Reject malformed promo codes instead of ignoring them",
)
def quote(
    lines: Tuple[str, ...],
    tier: str,
    promo_code: Optional[str],
    tax_rate: str,
    strict_promo: bool,
) -> None:
    """Price LINES given as PRICE:QUANTITY pairs."""
    order_lines = [
        parse_line(index, text) for index, text in enumerate(lines, start=1)
    ]
    try:
        engine = PricingEngine(
            tax_rate=tax_rate,
            promo_policy=(
                PromoPolicy.STRICT if strict_promo else PromoPolicy.LENIENT
            ),
        )
        breakdown = engine.compute_totals(
            order_lines, ClientTier(tier.upper()), promo_code
        )
    except StorefrontError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Sub-total:      {breakdown.sub_total}")
    click.echo(
        f"Tier discount:  {breakdown.tier_discount} "
        f"({tier.upper()}, rate {breakdown.tier_rate})"
    )
    click.echo(
        f"Promo discount: {breakdown.promo_discount}"
        + ("" if breakdown.promo_applied else " (not applied)")
    )
    click.echo(f"Total discount: {breakdown.total_discount}")
    click.echo(f"Tax:            {breakdown.tax}")
    click.echo(f"Total:          {breakdown.total}")


@main.command()
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", default=8080, show_default=True, type=int)
@click.option("--reload", is_flag=True)
def serve(host: str, port: int, reload: bool) -> None:
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run(
        "storefront.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
