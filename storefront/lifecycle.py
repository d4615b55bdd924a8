"""
Order and payment state machines.

These are the only allowed transitions. The functions here perform no I/O;
the use cases call them while holding the order lock, and only after every
guard has passed do they persist the new state.

Order:   PENDING -> CONFIRMED | CANCELED | REJECTED   (all terminal)
Payment: PENDING -> CLEARED | REJECTED                (both terminal)
"""

from typing import Dict, FrozenSet, Iterable, Optional

from storefront.domain import (
    BalanceSummary,
    Order,
    OrderStatus,
    Payment,
    PaymentStatus,
    utcnow,
)
from storefront.errors import InvalidStateTransitionError
from storefront.money import Money

ORDER_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset(
        {OrderStatus.CONFIRMED, OrderStatus.CANCELED, OrderStatus.REJECTED}
    ),
    OrderStatus.CONFIRMED: frozenset(),
    OrderStatus.CANCELED: frozenset(),
    OrderStatus.REJECTED: frozenset(),
}

PAYMENT_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset(
        {PaymentStatus.CLEARED, PaymentStatus.REJECTED}
    ),
    PaymentStatus.CLEARED: frozenset(),
    PaymentStatus.REJECTED: frozenset(),
}


def can_transition_order(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ORDER_TRANSITIONS[current]


def can_transition_payment(
    current: PaymentStatus, target: PaymentStatus
) -> bool:
    return target in PAYMENT_TRANSITIONS[current]


def is_terminal(status: OrderStatus) -> bool:
    return not ORDER_TRANSITIONS[status]


def ensure_order_transition(order: Order, target: OrderStatus) -> None:
    if not can_transition_order(order.status, target):
        raise InvalidStateTransitionError(
            "Order", order.order_id, order.status.value, target.value
        )


def ensure_payment_transition(
    payment: Payment, target: PaymentStatus
) -> None:
    if not can_transition_payment(payment.status, target):
        raise InvalidStateTransitionError(
            "Payment", payment.payment_id, payment.status.value, target.value
        )


def transition_order(
    order: Order, target: OrderStatus, reason: Optional[str] = None
) -> Order:
    """Return a copy of ``order`` moved to ``target``."""
    ensure_order_transition(order, target)
    now = utcnow()
    update = {
        "status": target,
        "status_reason": reason,
        "updated_at": now,
        "version": order.version + 1,
    }
    if target is OrderStatus.CONFIRMED:
        update["confirmed_at"] = now
    return order.model_copy(update=update)


def transition_payment(
    payment: Payment, target: PaymentStatus, reason: Optional[str] = None
) -> Payment:
    """Return a copy of ``payment`` moved to ``target``. Encashing stamps
    the encashment date."""
    ensure_payment_transition(payment, target)
    update = {"status": target, "status_reason": reason}
    if target is PaymentStatus.CLEARED:
        update["encashment_date"] = utcnow()
    return payment.model_copy(update=update)


def cleared_amount(payments: Iterable[Payment]) -> Money:
    return Money.sum(
        p.amount for p in payments if p.status is PaymentStatus.CLEARED
    )


def committed_amount(payments: Iterable[Payment]) -> Money:
    """Sum of every payment that may still count toward the order, i.e.
    everything not rejected."""
    return Money.sum(
        p.amount for p in payments if p.status is not PaymentStatus.REJECTED
    )


def remaining_balance(order: Order, payments: Iterable[Payment]) -> Money:
    """Order total minus cleared payments. Rejected and pending payments
    never reduce the balance."""
    return order.total - cleared_amount(payments)


def summarize_balance(
    order: Order, payments: Iterable[Payment]
) -> BalanceSummary:
    payments = list(payments)
    cleared = cleared_amount(payments)
    remaining = order.total - cleared
    if remaining.minor <= 0:
        payment_status = PaymentStatus.CLEARED
    elif payments and all(
        p.status is PaymentStatus.REJECTED for p in payments
    ):
        payment_status = PaymentStatus.REJECTED
    else:
        payment_status = PaymentStatus.PENDING
    return BalanceSummary(
        order_id=order.order_id,
        total=order.total,
        cleared=cleared,
        committed=committed_amount(payments),
        remaining=remaining,
        payment_status=payment_status,
    )
