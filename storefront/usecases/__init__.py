"""
Use cases orchestrating the engine. Dependencies are injected as repository
instances; nothing here knows about HTTP.
"""

from .catalog import CatalogUseCase
from .clients import ClientUseCase
from .idempotency import IdempotencyGuard
from .order_lifecycle import OrderLifecycleUseCase
from .payment_ledger import PaymentLedgerUseCase
from .place_order import PlaceOrderUseCase

__all__ = [
    "CatalogUseCase",
    "ClientUseCase",
    "IdempotencyGuard",
    "OrderLifecycleUseCase",
    "PaymentLedgerUseCase",
    "PlaceOrderUseCase",
]
