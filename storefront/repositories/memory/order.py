"""
Memory implementation of OrderRepository.
"""

import itertools
import logging
from typing import Dict, List, Optional

from storefront.domain import Order, OrderStatus
from storefront.repositories.order import OrderRepository

from .base import MemoryRepositoryMixin

logger = logging.getLogger(__name__)


class MemoryOrderRepository(OrderRepository, MemoryRepositoryMixin[Order]):
    def __init__(self) -> None:
        self.logger = logger
        self.entity_name = "Order"
        self.storage_dict: Dict[int, Order] = {}
        self.id_counter = itertools.count(1)

        logger.debug("Initializing MemoryOrderRepository")

    async def get(self, order_id: int) -> Optional[Order]:
        return self.get_entity(order_id)

    async def save(self, order: Order) -> None:
        self.save_entity(order, "order_id")
        logger.info(
            "MemoryOrderRepository: Order saved",
            extra={
                "order_id": order.order_id,
                "client_id": order.client_id,
                "status": order.status.value,
                "version": order.version,
            },
        )

    async def generate_id(self) -> int:
        return self.generate_entity_id()

    async def list_all(self, client_id: Optional[int] = None) -> List[Order]:
        return [
            order
            for order in self.list_entities()
            if client_id is None or order.client_id == client_id
        ]

    async def list_by_status(
        self, status: OrderStatus, client_id: Optional[int] = None
    ) -> List[Order]:
        return [
            order
            for order in await self.list_all(client_id)
            if order.status is status
        ]
