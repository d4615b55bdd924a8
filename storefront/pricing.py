"""
Authoritative order pricing.

The console computes a preview of these totals for display; that preview is
never trusted. Orders are always re-priced here from catalog prices, the
client's tier and the optional promo code.

Pricing rules:

- sub_total is the exact sum of unit_price x quantity.
- One tier discount applies, for the client's own tier, as a percentage of
  sub_total once sub_total reaches the tier threshold (inclusive).
- A promo code of the form ``PROMO-XXXX`` (four uppercase letters or
  digits) grants a flat 5% of sub_total.
- Tier and promo discounts are added, never compounded.
- tax is charged on sub_total minus discounts.
- Each derived field is rounded exactly once (ROUND_HALF_UP).
"""

import logging
import re
from enum import Enum
from fractions import Fraction
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional

from storefront.domain import (
    ClientTier,
    OrderLine,
    PricingBreakdown,
    Product,
    StockRequest,
)
from storefront.errors import (
    InsufficientStockError,
    InvalidOrderError,
    NotFoundError,
    ValidationError,
)
from storefront.money import Money, Rate, to_fraction

logger = logging.getLogger(__name__)

PROMO_CODE_PATTERN = re.compile(r"^PROMO-[A-Z0-9]{4}$")
PROMO_RATE = Fraction(5, 100)
DEFAULT_TAX_RATE = Fraction(20, 100)


class TierRule(NamedTuple):
    threshold: Money
    rate: Fraction


TIER_RULES: Dict[ClientTier, TierRule] = {
    ClientTier.BASIC: TierRule(Money.zero(), Fraction(0)),
    ClientTier.SILVER: TierRule(Money.of("500.00"), Fraction(5, 100)),
    ClientTier.GOLD: TierRule(Money.of("800.00"), Fraction(10, 100)),
    ClientTier.PLATINUM: TierRule(Money.of("1200.00"), Fraction(15, 100)),
}


class PromoPolicy(str, Enum):
    """How the engine treats promo codes.

    LENIENT ignores codes that do not match the pattern, as the console
    does. STRICT rejects malformed codes and requires the code to be known
    to the promo registry (checked by the ordering use case).
    """

    LENIENT = "lenient"
    STRICT = "strict"


def normalize_promo_code(code: Optional[str]) -> Optional[str]:
    if code is None:
        return None
    code = code.strip()
    return code or None


def is_well_formed_promo_code(code: Optional[str]) -> bool:
    return code is not None and bool(PROMO_CODE_PATTERN.match(code))


def tier_discount_rate(tier: ClientTier, sub_total: Money) -> Fraction:
    """Discount rate earned by ``tier`` for an order of ``sub_total``."""
    rule = TIER_RULES[tier]
    if sub_total >= rule.threshold:
        return rule.rate
    return Fraction(0)


class PricingEngine:
    """Pure price computation. Holds only configuration."""

    def __init__(
        self,
        tax_rate: Rate = DEFAULT_TAX_RATE,
        promo_policy: PromoPolicy = PromoPolicy.LENIENT,
    ) -> None:
        self.tax_rate = to_fraction(tax_rate)
        if self.tax_rate < 0:
            raise ValueError("Tax rate must be non-negative")
        self.promo_policy = promo_policy

    def promo_applies(self, promo_code: Optional[str]) -> bool:
        """Decide whether a promo code earns the promo discount.

        Raises:
            ValidationError: in STRICT mode, for a malformed code
        """
        code = normalize_promo_code(promo_code)
        if code is None:
            return False
        if is_well_formed_promo_code(code):
            return True
        if self.promo_policy is PromoPolicy.STRICT:
            raise ValidationError(
                f"Promo code {code!r} is not valid",
                {"promoCode": code},
            )
        logger.info(
            "Ignoring malformed promo code",
            extra={"promo_code": code, "promo_policy": self.promo_policy},
        )
        return False

    def compute_totals(
        self,
        lines: List[OrderLine],
        client_tier: ClientTier,
        promo_code: Optional[str] = None,
    ) -> PricingBreakdown:
        """Compute the full price breakdown for an order.

        Args:
            lines: Priced order lines
            client_tier: Tier of the purchasing client
            promo_code: Optional promo code as entered

        Returns:
            PricingBreakdown with every monetary field rounded once

        Raises:
            InvalidOrderError: if there are no lines or a quantity is not
                positive
            ValidationError: for a malformed promo code in STRICT mode
        """
        if not lines:
            raise InvalidOrderError("Order must contain at least one line")
        for line in lines:
            if line.quantity <= 0:
                raise InvalidOrderError(
                    f"Quantity for product {line.product_id} must be "
                    "positive",
                    {"productId": line.product_id},
                )

        sub_total = Money.sum(line.line_total for line in lines)
        tier_rate = tier_discount_rate(client_tier, sub_total)
        tier_discount = sub_total.multiply(tier_rate)

        promo_applied = self.promo_applies(promo_code)
        promo_discount = (
            sub_total.multiply(PROMO_RATE) if promo_applied else Money.zero()
        )

        total_discount = tier_discount + promo_discount
        taxable = sub_total - total_discount
        tax = taxable.multiply(self.tax_rate)
        total = taxable + tax

        breakdown = PricingBreakdown(
            sub_total=sub_total,
            tier_discount=tier_discount,
            promo_discount=promo_discount,
            total_discount=total_discount,
            tax=tax,
            total=total,
            tier_rate=str(tier_rate),
            promo_applied=promo_applied,
        )
        logger.debug(
            "Computed order totals",
            extra={
                "line_count": len(lines),
                "client_tier": client_tier.value,
                "sub_total": str(sub_total.amount),
                "total_discount": str(total_discount.amount),
                "tax": str(tax.amount),
                "total": str(total.amount),
            },
        )
        return breakdown


def merge_requests(requests: Iterable[StockRequest]) -> List[StockRequest]:
    """Combine repeated product ids by summing quantities, keeping first
    appearance order."""
    merged: Dict[int, int] = {}
    for request in requests:
        merged[request.product_id] = (
            merged.get(request.product_id, 0) + request.quantity
        )
    return [
        StockRequest(product_id=product_id, quantity=quantity)
        for product_id, quantity in merged.items()
    ]


def build_order_lines(
    requests: Iterable[StockRequest], products: Mapping[int, Product]
) -> List[OrderLine]:
    """Resolve requested quantities against the catalog, capturing the
    current unit price and name on each line.

    Raises:
        InvalidOrderError: empty request, non-positive quantity, or a
            soft-deleted product
        NotFoundError: unknown product id
        InsufficientStockError: quantity above the product's stock
    """
    requests = list(requests)
    if not requests:
        raise InvalidOrderError("Order must contain at least one line")
    for request in requests:
        if request.quantity <= 0:
            raise InvalidOrderError(
                f"Quantity for product {request.product_id} must be "
                "positive",
                {"productId": request.product_id},
            )

    lines = []
    for request in merge_requests(requests):
        product = products.get(request.product_id)
        if product is None:
            raise NotFoundError("Product", request.product_id)
        if product.deleted:
            raise InvalidOrderError(
                f"Product {product.product_id} is no longer available",
                {"productId": product.product_id},
            )
        if request.quantity > product.stock:
            raise InsufficientStockError(
                product.product_id, request.quantity, product.stock
            )
        lines.append(
            OrderLine(
                product_id=product.product_id,
                product_name=product.name,
                quantity=request.quantity,
                unit_price=product.unit_price,
            )
        )
    return lines
