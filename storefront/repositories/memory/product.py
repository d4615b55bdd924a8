"""
Memory implementation of ProductRepository.
"""

import itertools
import logging
from typing import Dict, Iterable, List, Optional

from storefront.domain import Product
from storefront.errors import NotFoundError, StaleVersionError
from storefront.repositories.product import ProductRepository

from .base import MemoryRepositoryMixin

logger = logging.getLogger(__name__)


class MemoryProductRepository(
    ProductRepository, MemoryRepositoryMixin[Product]
):
    """Catalog kept in a dictionary keyed by product id."""

    def __init__(self) -> None:
        self.logger = logger
        self.entity_name = "Product"
        self.storage_dict: Dict[int, Product] = {}
        self.id_counter = itertools.count(1)

        logger.debug("Initializing MemoryProductRepository")

    async def get(self, product_id: int) -> Optional[Product]:
        return self.get_entity(product_id)

    async def save(self, product: Product) -> None:
        self.save_entity(product, "product_id")

    async def generate_id(self) -> int:
        return self.generate_entity_id()

    async def list_all(self, include_deleted: bool = False) -> List[Product]:
        return [
            product
            for product in self.list_entities()
            if include_deleted or not product.deleted
        ]

    async def get_many(self, product_ids: Iterable[int]) -> Dict[int, Product]:
        found = {}
        for product_id in product_ids:
            product = self.get_entity(product_id)
            if product is not None:
                found[product_id] = product
        return found

    async def compare_and_set(
        self, product: Product, expected_version: int
    ) -> None:
        current = self.storage_dict.get(product.product_id)
        if current is None:
            raise NotFoundError("Product", product.product_id)
        if current.version != expected_version:
            logger.info(
                "MemoryProductRepository: Stale product version",
                extra={
                    "product_id": product.product_id,
                    "expected_version": expected_version,
                    "current_version": current.version,
                },
            )
            raise StaleVersionError(
                f"Product {product.product_id} changed concurrently "
                f"(expected version {expected_version}, found "
                f"{current.version})"
            )
        if product.version <= expected_version:
            raise ValueError("New product version must be increased")
        self.storage_dict[product.product_id] = product.model_copy(deep=True)
