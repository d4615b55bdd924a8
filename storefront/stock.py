"""
Atomic stock reservation.

The ledger is the only writer of product stock. A reservation either
decrements every requested product or none of them:

1. Product locks are taken in sorted id order.
2. Availability and soft-deletion are re-checked under the locks, since
   the catalog read used for pricing may already be out of date.
3. Decrements are written with a version compare-and-set. If one write
   fails, the writes already applied are undone before the error
   propagates.
"""

import logging
from typing import Dict, Iterable, List, Tuple

from storefront.domain import OrderLine, Product, utcnow
from storefront.errors import (
    InsufficientStockError,
    InvalidOrderError,
    NotFoundError,
)
from storefront.locks import KeyedLocks
from storefront.repositories.product import ProductRepository

logger = logging.getLogger(__name__)


def _quantities(lines: Iterable[OrderLine]) -> Dict[int, int]:
    quantities: Dict[int, int] = {}
    for line in lines:
        quantities[line.product_id] = (
            quantities.get(line.product_id, 0) + line.quantity
        )
    return quantities


def _with_stock(product: Product, stock: int) -> Product:
    return product.model_copy(
        update={
            "stock": stock,
            "version": product.version + 1,
            "updated_at": utcnow(),
        }
    )


class StockLedger:
    """Reserves and releases product stock.

    Args:
        product_repo: Catalog storage
        locks: Per-product lock family shared with every other writer of
            product records
    """

    def __init__(
        self, product_repo: ProductRepository, locks: KeyedLocks
    ) -> None:
        self.product_repo = product_repo
        self.locks = locks

    async def reserve(self, lines: List[OrderLine]) -> List[OrderLine]:
        """Take stock for every line, all or nothing.

        Returns:
            The reserved lines, unchanged

        Raises:
            NotFoundError: unknown product
            InvalidOrderError: product was soft-deleted
            InsufficientStockError: not enough stock for some product;
                nothing is decremented
            LockTimeoutError, StaleVersionError: transient contention
        """
        quantities = _quantities(lines)
        async with self.locks.hold(*quantities):
            products = await self.product_repo.get_many(quantities)
            for product_id, quantity in quantities.items():
                product = products.get(product_id)
                if product is None:
                    raise NotFoundError("Product", product_id)
                if product.deleted:
                    raise InvalidOrderError(
                        f"Product {product_id} is no longer available",
                        {"productId": product_id},
                    )
                if quantity > product.stock:
                    logger.info(
                        "Stock reservation refused",
                        extra={
                            "product_id": product_id,
                            "requested": quantity,
                            "available": product.stock,
                        },
                    )
                    raise InsufficientStockError(
                        product_id, quantity, product.stock
                    )

            await self._apply(
                [
                    (products[product_id], -quantity)
                    for product_id, quantity in quantities.items()
                ]
            )

        logger.info(
            "Stock reserved",
            extra={
                "products": sorted(quantities),
                "units": sum(quantities.values()),
            },
        )
        return lines

    async def release(self, lines: List[OrderLine]) -> None:
        """Return stock for every line.

        Soft-deleted products get their stock back too. Products that no
        longer exist are skipped with a warning.
        """
        quantities = _quantities(lines)
        async with self.locks.hold(*quantities):
            products = await self.product_repo.get_many(quantities)
            changes = []
            for product_id, quantity in quantities.items():
                product = products.get(product_id)
                if product is None:
                    logger.warning(
                        "Cannot release stock for missing product",
                        extra={"product_id": product_id, "units": quantity},
                    )
                    continue
                changes.append((product, quantity))
            await self._apply(changes)

        logger.info(
            "Stock released",
            extra={
                "products": sorted(quantities),
                "units": sum(quantities.values()),
            },
        )

    async def _apply(self, changes: List[Tuple[Product, int]]) -> None:
        applied: List[Tuple[Product, int]] = []
        try:
            for product, delta in changes:
                updated = _with_stock(product, product.stock + delta)
                await self.product_repo.compare_and_set(
                    updated, product.version
                )
                applied.append((updated, delta))
        except Exception:
            for updated, delta in reversed(applied):
                await self.product_repo.compare_and_set(
                    _with_stock(updated, updated.stock - delta),
                    updated.version,
                )
            raise
