"""
Small builders shared by the test modules.
"""

from storefront.domain import ClientTier, Order, OrderQuote, PricingBreakdown
from storefront.money import Money

from .factories import OrderLineFactory


def make_order(
    order_id: int = 1, client_id: int = 1, total: str = "120.00"
) -> Order:
    """A PENDING order with one line and no discounts."""
    amount = Money.of(total)
    quote = OrderQuote(
        client_id=client_id,
        client_name="Test Client",
        client_tier=ClientTier.BASIC,
        lines=[OrderLineFactory.build(product_id=1, quantity=1)],
        breakdown=PricingBreakdown(
            sub_total=amount,
            tier_discount=Money.zero(),
            promo_discount=Money.zero(),
            total_discount=Money.zero(),
            tax=Money.zero(),
            total=amount,
        ),
    )
    return Order.from_quote(order_id, quote, stock_reserved=False)
