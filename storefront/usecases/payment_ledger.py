"""
Payment ledger.

Payments are recorded by hand (cash, cheque, bank transfer) against a
PENDING order and later encashed or rejected by an administrator. Only
encashed payments reduce the order's remaining balance.
"""

import logging
from datetime import date
from typing import List, Optional

from storefront.auth import require_admin, require_client_access
from storefront.domain import (
    BalanceSummary,
    Order,
    OrderStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Principal,
)
from storefront.errors import NotFoundError, ValidationError
from storefront.lifecycle import (
    cleared_amount,
    committed_amount,
    ensure_payment_transition,
    summarize_balance,
    transition_payment,
)
from storefront.locks import KeyedLocks
from storefront.money import Money
from storefront.repositories import OrderRepository, PaymentRepository
from storefront.retry import RetryPolicy, run_with_retry
from storefront.usecases.idempotency import IdempotencyGuard
from storefront.validation import (
    ensure_order_repository,
    ensure_payment_repository,
)

logger = logging.getLogger(__name__)


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def validate_payment_fields(
    amount: Money,
    method: PaymentMethod,
    reference: Optional[str],
    bank: Optional[str] = None,
    cheque_number: Optional[str] = None,
    due_date: Optional[date] = None,
) -> None:
    """Check the fields a payment needs before touching the ledger.

    Raises:
        ValidationError: listing every missing field in ``details``
    """
    if amount.is_negative() or amount.is_zero():
        raise ValidationError(
            "Payment amount must be positive",
            {"amount": str(amount.amount)},
        )

    missing = []
    if _blank(reference):
        missing.append("reference")
    if method in (PaymentMethod.CHEQUE, PaymentMethod.TRANSFER) and _blank(
        bank
    ):
        missing.append("bank")
    if method is PaymentMethod.CHEQUE:
        if _blank(cheque_number):
            missing.append("chequeNumber")
        if due_date is None:
            missing.append("dueDate")
    if missing:
        raise ValidationError(
            f"Missing required fields for {method.value} payment: "
            f"{', '.join(missing)}",
            {"method": method.value, "missing": missing},
        )


class PaymentLedgerUseCase:
    def __init__(
        self,
        order_repo: OrderRepository,
        payment_repo: PaymentRepository,
        order_locks: KeyedLocks,
        idempotency: IdempotencyGuard,
        retry_policy: RetryPolicy,
    ) -> None:
        self.order_repo = ensure_order_repository(order_repo)
        self.payment_repo = ensure_payment_repository(payment_repo)
        self.order_locks = order_locks
        self.idempotency = idempotency
        self.retry_policy = retry_policy

    async def _get_order(self, order_id: int) -> Order:
        order = await self.order_repo.get(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    async def _get_payment(self, payment_id: int) -> Payment:
        payment = await self.payment_repo.get(payment_id)
        if payment is None:
            raise NotFoundError("Payment", payment_id)
        return payment

    @staticmethod
    def _require_pending_order(order: Order) -> None:
        if order.status is not OrderStatus.PENDING:
            raise ValidationError(
                f"Payments can only be recorded against a pending order; "
                f"order {order.order_id} is {order.status.value}",
                {"orderId": order.order_id, "status": order.status.value},
            )

    async def create_payment(
        self,
        principal: Principal,
        order_id: int,
        amount: Money,
        method: PaymentMethod,
        reference: Optional[str],
        bank: Optional[str] = None,
        cheque_number: Optional[str] = None,
        due_date: Optional[date] = None,
        idempotency_key: Optional[str] = None,
    ) -> Payment:
        """Record a payment in EN_ATTENTE.

        The amount may not exceed the order total minus every payment that
        is not rejected, so pending payments cannot jointly overpay.

        Raises:
            ValidationError: missing fields, non-positive amount, overpayment
                or order not PENDING
            NotFoundError: unknown order
            UnauthorizedError: a client paying for another client's order
        """
        validate_payment_fields(
            amount, method, reference, bank, cheque_number, due_date
        )
        # Checked before the idempotency guard, which may replay a stored
        # payment without reaching the creation path.
        order = await self._get_order(order_id)
        require_client_access(principal, order.client_id)

        payload = {
            "orderId": order_id,
            "amount": str(amount.amount),
            "method": method.value,
            "reference": reference,
            "bank": bank,
            "chequeNumber": cheque_number,
            "dueDate": due_date.isoformat() if due_date else None,
        }

        async def create() -> Payment:
            return await run_with_retry(
                lambda: self._create_once(
                    principal,
                    order_id,
                    amount,
                    method,
                    reference,
                    bank,
                    cheque_number,
                    due_date,
                ),
                self.retry_policy,
                "payment creation",
            )

        return await self.idempotency.run(
            "payment",
            idempotency_key,
            payload,
            create=create,
            load=self._get_payment,
            entity_id=lambda payment: payment.payment_id,
        )

    async def _create_once(
        self,
        principal: Principal,
        order_id: int,
        amount: Money,
        method: PaymentMethod,
        reference: Optional[str],
        bank: Optional[str],
        cheque_number: Optional[str],
        due_date: Optional[date],
    ) -> Payment:
        async with self.order_locks.hold(order_id):
            order = await self._get_order(order_id)
            require_client_access(principal, order.client_id)
            self._require_pending_order(order)

            payments = await self.payment_repo.list_for_order(order_id)
            available = order.total - committed_amount(payments)
            if amount > available:
                logger.info(
                    "Payment refused, would overpay order",
                    extra={
                        "order_id": order_id,
                        "amount": str(amount.amount),
                        "available": str(available.amount),
                    },
                )
                raise ValidationError(
                    f"Payment of {amount} exceeds the {available} still "
                    f"payable on order {order_id}",
                    {
                        "orderId": order_id,
                        "amount": str(amount.amount),
                        "available": str(available.amount),
                    },
                )

            payment = Payment(
                payment_id=await self.payment_repo.generate_id(),
                order_id=order_id,
                payment_number=await self.payment_repo.next_payment_number(
                    order_id
                ),
                amount=amount,
                method=method,
                reference=(reference or "").strip(),
                bank=bank.strip() if bank else None,
                cheque_number=cheque_number.strip() if cheque_number else None,
                due_date=due_date,
            )
            await self.payment_repo.save(payment)

        logger.info(
            "Payment recorded",
            extra={
                "payment_id": payment.payment_id,
                "order_id": order_id,
                "payment_number": payment.payment_number,
                "method": method.value,
                "amount": str(amount.amount),
            },
        )
        return payment

    async def encash_payment(
        self, principal: Principal, payment_id: int
    ) -> Payment:
        """EN_ATTENTE -> ENCAISSE.

        Raises:
            UnauthorizedError: caller is not an admin
            NotFoundError: unknown payment
            InvalidStateTransitionError: payment is not pending
            ValidationError: order no longer PENDING, or encashing would
                clear more than the order total
        """
        require_admin(principal, "encash payments")
        return await run_with_retry(
            lambda: self._settle_once(payment_id, PaymentStatus.CLEARED),
            self.retry_policy,
            "payment encashment",
        )

    async def reject_payment(
        self,
        principal: Principal,
        payment_id: int,
        reason: Optional[str] = None,
    ) -> Payment:
        """EN_ATTENTE -> REJETE. The remaining balance is unaffected."""
        require_admin(principal, "reject payments")
        return await run_with_retry(
            lambda: self._settle_once(
                payment_id, PaymentStatus.REJECTED, reason
            ),
            self.retry_policy,
            "payment rejection",
        )

    async def _settle_once(
        self,
        payment_id: int,
        target: PaymentStatus,
        reason: Optional[str] = None,
    ) -> Payment:
        # The order lock is keyed by order id, so read the payment once to
        # find it and again under the lock.
        order_id = (await self._get_payment(payment_id)).order_id
        async with self.order_locks.hold(order_id):
            payment = await self._get_payment(payment_id)
            ensure_payment_transition(payment, target)

            if target is PaymentStatus.CLEARED:
                order = await self._get_order(order_id)
                self._require_pending_order(order)
                payments = await self.payment_repo.list_for_order(order_id)
                if cleared_amount(payments) + payment.amount > order.total:
                    raise ValidationError(
                        f"Encashing payment {payment_id} would clear more "
                        f"than the total of order {order_id}",
                        {"paymentId": payment_id, "orderId": order_id},
                    )

            settled = transition_payment(payment, target, reason)
            await self.payment_repo.save(settled)

        logger.info(
            "Payment settled",
            extra={
                "payment_id": payment_id,
                "order_id": order_id,
                "status": target.value,
                "amount": str(payment.amount.amount),
            },
        )
        return settled

    async def get_payment(
        self, principal: Principal, payment_id: int
    ) -> Payment:
        payment = await self._get_payment(payment_id)
        order = await self._get_order(payment.order_id)
        require_client_access(principal, order.client_id)
        return payment

    async def list_for_order(
        self, principal: Principal, order_id: int
    ) -> List[Payment]:
        order = await self._get_order(order_id)
        require_client_access(principal, order.client_id)
        return await self.payment_repo.list_for_order(order_id)

    async def balance(
        self, principal: Principal, order_id: int
    ) -> BalanceSummary:
        """Ledger summary; ``remaining`` is total minus encashed payments."""
        order = await self._get_order(order_id)
        require_client_access(principal, order.client_id)
        payments = await self.payment_repo.list_for_order(order_id)
        return summarize_balance(order, payments)
