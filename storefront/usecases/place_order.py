"""
Order placement.

Placement never trusts a price sent by the console. The order is re-priced
here from the catalog, the client's tier and the promo code, stock is
reserved, and only then is the order stored in PENDING.
"""

import logging
from typing import Iterable, List, Optional

from storefront.auth import require_client_access
from storefront.config import StockReservationPolicy
from storefront.domain import Order, OrderQuote, Principal, StockRequest
from storefront.errors import NotFoundError, ValidationError
from storefront.pricing import (
    PricingEngine,
    PromoPolicy,
    build_order_lines,
    normalize_promo_code,
)
from storefront.repositories import (
    ClientRepository,
    OrderRepository,
    ProductRepository,
    PromoCodeRepository,
)
from storefront.retry import RetryPolicy, run_with_retry
from storefront.stock import StockLedger
from storefront.usecases.idempotency import IdempotencyGuard
from storefront.validation import (
    ensure_client_repository,
    ensure_order_repository,
    ensure_product_repository,
    ensure_promo_code_repository,
)

logger = logging.getLogger(__name__)


class PlaceOrderUseCase:
    """
    Prices and places orders.

    Placement is a small saga: the promo redemption (strict policy only)
    and the stock reservation are compensated if a later step fails, so a
    failed placement leaves neither stock nor promo registry changed.
    """

    def __init__(
        self,
        product_repo: ProductRepository,
        client_repo: ClientRepository,
        order_repo: OrderRepository,
        promo_repo: PromoCodeRepository,
        stock_ledger: StockLedger,
        pricing_engine: PricingEngine,
        idempotency: IdempotencyGuard,
        retry_policy: RetryPolicy,
        reserve_stock_on: StockReservationPolicy = (
            StockReservationPolicy.PLACEMENT
        ),
    ) -> None:
        self.product_repo = ensure_product_repository(product_repo)
        self.client_repo = ensure_client_repository(client_repo)
        self.order_repo = ensure_order_repository(order_repo)
        self.promo_repo = ensure_promo_code_repository(promo_repo)
        self.stock_ledger = stock_ledger
        self.pricing_engine = pricing_engine
        self.idempotency = idempotency
        self.retry_policy = retry_policy
        self.reserve_stock_on = reserve_stock_on

    @property
    def strict_promos(self) -> bool:
        return self.pricing_engine.promo_policy is PromoPolicy.STRICT

    async def quote_order(
        self,
        client_id: int,
        items: Iterable[StockRequest],
        promo_code: Optional[str] = None,
    ) -> OrderQuote:
        """Price a prospective order against the current catalog.

        Raises:
            NotFoundError: unknown client or product
            InvalidOrderError: empty order, bad quantity, deleted product
            InsufficientStockError: a quantity exceeds current stock
            ValidationError: promo code refused under the strict policy
        """
        client = await self.client_repo.get(client_id)
        if client is None:
            raise NotFoundError("Client", client_id)

        items = list(items)
        products = await self.product_repo.get_many(
            {item.product_id for item in items}
        )
        lines = build_order_lines(items, products)

        code = normalize_promo_code(promo_code)
        breakdown = self.pricing_engine.compute_totals(
            lines, client.tier, code
        )
        if breakdown.promo_applied and self.strict_promos:
            await self._check_registered_promo(code, client_id)

        return OrderQuote(
            client_id=client.client_id,
            client_name=client.full_name,
            client_tier=client.tier,
            lines=lines,
            breakdown=breakdown,
            promo_code=code,
        )

    async def preview_totals(
        self,
        principal: Principal,
        client_id: int,
        items: Iterable[StockRequest],
        promo_code: Optional[str] = None,
    ) -> OrderQuote:
        """Quote for display only. Nothing is reserved or stored."""
        require_client_access(principal, client_id)
        return await self.quote_order(client_id, items, promo_code)

    async def _check_registered_promo(self, code: str, client_id: int) -> None:
        promo = await self.promo_repo.get(code)
        if promo is None or not promo.active:
            raise ValidationError(
                f"Promo code {code!r} is not valid",
                {"promoCode": code},
            )
        if promo.single_use and client_id in promo.redeemed_by:
            raise ValidationError(
                f"Promo code {code!r} has already been used",
                {"promoCode": code},
            )

    async def place_order(
        self,
        principal: Principal,
        client_id: int,
        items: List[StockRequest],
        promo_code: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Order:
        """Create a PENDING order.

        Args:
            principal: Who is placing the order; clients may only order
                for themselves
            client_id: Purchasing client
            items: Requested products and quantities
            promo_code: Optional promo code as typed
            idempotency_key: Optional key making retries safe

        Returns:
            The stored order

        Raises:
            UnauthorizedError: a client ordering for someone else
            NotFoundError, InvalidOrderError, InsufficientStockError,
            ValidationError: see ``quote_order``
            ConcurrencyConflictError: contention outlasted the retry budget
                or the idempotency key was reused
        """
        require_client_access(principal, client_id)

        logger.info(
            "Placing order",
            extra={
                "client_id": client_id,
                "item_count": len(items),
                "has_promo_code": bool(promo_code),
                "idempotency_key": idempotency_key,
            },
        )

        payload = {
            "clientId": client_id,
            "items": [
                [item.product_id, item.quantity] for item in items
            ],
            "promoCode": normalize_promo_code(promo_code),
        }

        async def create() -> Order:
            return await run_with_retry(
                lambda: self._place_once(client_id, items, promo_code),
                self.retry_policy,
                "order placement",
            )

        return await self.idempotency.run(
            "order",
            idempotency_key,
            payload,
            create=create,
            load=self._load_order,
            entity_id=lambda order: order.order_id,
        )

    async def _load_order(self, order_id: int) -> Order:
        order = await self.order_repo.get(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    async def _place_once(
        self,
        client_id: int,
        items: List[StockRequest],
        promo_code: Optional[str],
    ) -> Order:
        quote = await self.quote_order(client_id, items, promo_code)

        redeemed = False
        reserved = False
        try:
            if (
                self.strict_promos
                and quote.breakdown.promo_applied
                and quote.promo_code is not None
            ):
                if not await self.promo_repo.redeem(
                    quote.promo_code, client_id
                ):
                    raise ValidationError(
                        f"Promo code {quote.promo_code!r} has already been "
                        "used",
                        {"promoCode": quote.promo_code},
                    )
                redeemed = True

            if self.reserve_stock_on is StockReservationPolicy.PLACEMENT:
                await self.stock_ledger.reserve(quote.lines)
                reserved = True

            order = Order.from_quote(
                await self.order_repo.generate_id(), quote, reserved
            )
            await self.order_repo.save(order)
        except Exception:
            if reserved:
                await self.stock_ledger.release(quote.lines)
            if redeemed and quote.promo_code is not None:
                await self.promo_repo.release(quote.promo_code, client_id)
            raise

        logger.info(
            "Order placed",
            extra={
                "order_id": order.order_id,
                "client_id": client_id,
                "total": str(order.total.amount),
                "promo_applied": quote.breakdown.promo_applied,
                "stock_reserved": reserved,
            },
        )
        return order
