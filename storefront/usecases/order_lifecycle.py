"""
Order state transitions.

Every transition runs while holding the order's lock, so the read of the
payment ledger and the write of the new status cannot interleave with an
encashment or another transition of the same order. Side effects (stock,
payments, client aggregates) are applied before the status write.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from storefront.auth import require_admin, require_client_access
from storefront.domain import (
    SYSTEM_PRINCIPAL,
    ClientAggregates,
    Order,
    OrderStatus,
    OrderView,
    PaymentStatus,
    Principal,
    utcnow,
)
from storefront.errors import (
    InvalidStateTransitionError,
    NotFoundError,
    OutstandingBalanceError,
    StorefrontError,
)
from storefront.lifecycle import (
    ensure_order_transition,
    remaining_balance,
    summarize_balance,
    transition_order,
    transition_payment,
)
from storefront.locks import KeyedLocks
from storefront.repositories import (
    ClientRepository,
    OrderRepository,
    PaymentRepository,
)
from storefront.retry import RetryPolicy, run_with_retry
from storefront.stock import StockLedger
from storefront.validation import (
    ensure_client_repository,
    ensure_order_repository,
    ensure_payment_repository,
)

logger = logging.getLogger(__name__)

CANCEL_REASON = "order canceled"
REJECT_REASON = "order rejected"
EXPIRY_REASON = "order expired"


class OrderLifecycleUseCase:
    def __init__(
        self,
        order_repo: OrderRepository,
        payment_repo: PaymentRepository,
        client_repo: ClientRepository,
        stock_ledger: StockLedger,
        order_locks: KeyedLocks,
        client_locks: KeyedLocks,
        retry_policy: RetryPolicy,
    ) -> None:
        self.order_repo = ensure_order_repository(order_repo)
        self.payment_repo = ensure_payment_repository(payment_repo)
        self.client_repo = ensure_client_repository(client_repo)
        self.stock_ledger = stock_ledger
        self.order_locks = order_locks
        self.client_locks = client_locks
        self.retry_policy = retry_policy

    async def _get_order(self, order_id: int) -> Order:
        order = await self.order_repo.get(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    async def describe(self, order: Order) -> OrderView:
        payments = await self.payment_repo.list_for_order(order.order_id)
        return OrderView(
            order=order, balance=summarize_balance(order, payments)
        )

    async def get_order(
        self, principal: Principal, order_id: int
    ) -> OrderView:
        order = await self._get_order(order_id)
        require_client_access(principal, order.client_id)
        return await self.describe(order)

    async def list_orders(
        self, principal: Principal, client_id: Optional[int] = None
    ) -> List[OrderView]:
        """List orders. Client users only ever see their own."""
        if not principal.is_admin:
            if principal.client_id is None:
                return []
            if client_id is not None:
                require_client_access(principal, client_id)
            client_id = principal.client_id
        orders = await self.order_repo.list_all(client_id)
        return [await self.describe(order) for order in orders]

    async def confirm_order(
        self, principal: Principal, order_id: int
    ) -> OrderView:
        """PENDING -> CONFIRMED.

        Raises:
            UnauthorizedError: caller is not an admin
            NotFoundError: unknown order
            InvalidStateTransitionError: order is not PENDING
            OutstandingBalanceError: cleared payments do not cover the total
            InsufficientStockError: stock reserved at confirmation is no
                longer available
            ConcurrencyConflictError: contention outlasted the retry budget
        """
        require_admin(principal, "confirm orders")
        order = await run_with_retry(
            lambda: self._confirm_once(order_id),
            self.retry_policy,
            "order confirmation",
        )
        return await self.describe(order)

    async def _confirm_once(self, order_id: int) -> Order:
        async with self.order_locks.hold(order_id):
            order = await self._get_order(order_id)
            ensure_order_transition(order, OrderStatus.CONFIRMED)

            payments = await self.payment_repo.list_for_order(order_id)
            remaining = remaining_balance(order, payments)
            if remaining.minor > 0:
                logger.info(
                    "Confirmation refused, balance outstanding",
                    extra={
                        "order_id": order_id,
                        "remaining": str(remaining.amount),
                    },
                )
                raise OutstandingBalanceError(order_id, remaining.amount)

            async with self.client_locks.hold(order.client_id):
                reserved_now = False
                if not order.stock_reserved:
                    await self.stock_ledger.reserve(order.lines)
                    reserved_now = True

                confirmed = transition_order(order, OrderStatus.CONFIRMED)
                confirmed = confirmed.model_copy(
                    update={"stock_reserved": True}
                )
                try:
                    await self.order_repo.save(confirmed)
                    await self._refresh_client_aggregates(order.client_id)
                except Exception:
                    await self.order_repo.save(order)
                    if reserved_now:
                        await self.stock_ledger.release(order.lines)
                    raise

        logger.info(
            "Order confirmed",
            extra={
                "order_id": order_id,
                "client_id": order.client_id,
                "total": str(order.total.amount),
            },
        )
        return confirmed

    async def _refresh_client_aggregates(self, client_id: int) -> None:
        """Recompute a client's aggregates from its confirmed orders.

        Caller holds the client's lock.
        """
        client = await self.client_repo.get(client_id)
        if client is None:
            logger.warning(
                "Confirmed order belongs to an unknown client",
                extra={"client_id": client_id},
            )
            return
        confirmed = await self.order_repo.list_by_status(
            OrderStatus.CONFIRMED, client_id
        )
        aggregates = ClientAggregates.from_orders(confirmed)
        await self.client_repo.save(
            client.model_copy(update=dict(aggregates))
        )
        logger.debug(
            "Client aggregates refreshed",
            extra={
                "client_id": client_id,
                "total_orders": aggregates.total_orders,
                "total_spent": str(aggregates.total_spent.amount),
            },
        )

    async def cancel_order(
        self,
        principal: Principal,
        order_id: int,
        reason: Optional[str] = None,
    ) -> OrderView:
        """PENDING -> CANCELED. Releases stock and voids pending payments."""
        require_admin(principal, "cancel orders")
        order = await run_with_retry(
            lambda: self._close_once(
                order_id, OrderStatus.CANCELED, reason or CANCEL_REASON
            ),
            self.retry_policy,
            "order cancellation",
        )
        return await self.describe(order)

    async def reject_order(
        self,
        principal: Principal,
        order_id: int,
        reason: Optional[str] = None,
    ) -> OrderView:
        """PENDING -> REJECTED. Releases stock and voids pending payments."""
        require_admin(principal, "reject orders")
        order = await run_with_retry(
            lambda: self._close_once(
                order_id, OrderStatus.REJECTED, reason or REJECT_REASON
            ),
            self.retry_policy,
            "order rejection",
        )
        return await self.describe(order)

    async def _close_once(
        self, order_id: int, target: OrderStatus, reason: str
    ) -> Order:
        async with self.order_locks.hold(order_id):
            order = await self._get_order(order_id)
            ensure_order_transition(order, target)

            pending = [
                payment
                for payment in await self.payment_repo.list_for_order(
                    order_id
                )
                if payment.status is PaymentStatus.PENDING
            ]
            voided = [
                transition_payment(payment, PaymentStatus.REJECTED, reason)
                for payment in pending
            ]
            closed = transition_order(order, target, reason).model_copy(
                update={"stock_reserved": False}
            )

            # Stock goes back only once every status write has landed.
            written = 0
            try:
                for payment in voided:
                    await self.payment_repo.save(payment)
                    written += 1
                await self.order_repo.save(closed)
                if order.stock_reserved:
                    await self.stock_ledger.release(order.lines)
            except Exception:
                logger.warning(
                    "Order close failed, restoring previous state",
                    extra={"order_id": order_id, "status": target.value},
                )
                for payment in pending[:written]:
                    await self.payment_repo.save(payment)
                await self.order_repo.save(order)
                raise

        logger.info(
            "Order closed",
            extra={
                "order_id": order_id,
                "status": target.value,
                "reason": reason,
                "stock_released": order.stock_reserved,
                "voided_payments": len(voided),
            },
        )
        return closed

    async def reject_stale_orders(
        self, max_age: timedelta, now: Optional[datetime] = None
    ) -> List[Order]:
        """Reject PENDING orders placed more than ``max_age`` ago.

        Orders that change state while the sweep runs are skipped, and a
        failure on one order does not stop the sweep.
        """
        cutoff = (now or utcnow()) - max_age
        rejected = []
        for order in await self.order_repo.list_by_status(OrderStatus.PENDING):
            if order.created_at >= cutoff:
                continue
            try:
                view = await self.reject_order(
                    SYSTEM_PRINCIPAL, order.order_id, EXPIRY_REASON
                )
            except InvalidStateTransitionError:
                logger.info(
                    "Stale order already left PENDING",
                    extra={"order_id": order.order_id},
                )
                continue
            except StorefrontError as e:
                logger.warning(
                    "Could not reject stale order",
                    extra={
                        "order_id": order.order_id,
                        "error_code": e.code,
                        "error_message": e.message,
                    },
                )
                continue
            rejected.append(view.order)

        logger.info(
            "Stale order sweep finished",
            extra={
                "cutoff": cutoff.isoformat(),
                "rejected_count": len(rejected),
            },
        )
        return rejected
