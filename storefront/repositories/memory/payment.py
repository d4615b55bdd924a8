"""
Memory implementation of PaymentRepository.
"""

import itertools
import logging
from typing import Dict, List, Optional

from storefront.domain import Payment
from storefront.repositories.payment import PaymentRepository

from .base import MemoryRepositoryMixin

logger = logging.getLogger(__name__)


class MemoryPaymentRepository(
    PaymentRepository, MemoryRepositoryMixin[Payment]
):
    def __init__(self) -> None:
        self.logger = logger
        self.entity_name = "Payment"
        self.storage_dict: Dict[int, Payment] = {}
        self.id_counter = itertools.count(1)
        # Last payment number handed out per order
        self._numbers: Dict[int, int] = {}

    async def get(self, payment_id: int) -> Optional[Payment]:
        return self.get_entity(payment_id)

    async def save(self, payment: Payment) -> None:
        self.save_entity(payment, "payment_id")
        logger.info(
            "MemoryPaymentRepository: Payment saved",
            extra={
                "payment_id": payment.payment_id,
                "order_id": payment.order_id,
                "payment_number": payment.payment_number,
                "status": payment.status.value,
                "amount": str(payment.amount.amount),
            },
        )

    async def generate_id(self) -> int:
        return self.generate_entity_id()

    async def list_for_order(self, order_id: int) -> List[Payment]:
        payments = [
            p for p in self.list_entities() if p.order_id == order_id
        ]
        return sorted(payments, key=lambda p: p.payment_number)

    async def next_payment_number(self, order_id: int) -> int:
        number = self._numbers.get(order_id, 0) + 1
        self._numbers[order_id] = number
        return number
