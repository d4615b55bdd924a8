"""
Product catalog administration.

Catalog writes share the per-product lock family with the stock ledger and
go through the product's version check, so an edit made while an order is
reserving stock never loses the reservation.
"""

import logging
from typing import Any, Dict, List, Optional

from storefront.auth import require_admin
from storefront.domain import Principal, Product, utcnow
from storefront.errors import NotFoundError, ValidationError
from storefront.locks import KeyedLocks
from storefront.money import Money
from storefront.repositories import ProductRepository
from storefront.retry import RetryPolicy, run_with_retry
from storefront.validation import ensure_product_repository

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "id": "product_id",
    "name": "name",
    "price": "unit_price",
    "stock": "stock",
}


def sort_products(
    products: List[Product], sort_by: str = "id", sort_dir: str = "asc"
) -> List[Product]:
    """Sort by one of the console's column names.

    Raises:
        ValidationError: unknown column or direction
    """
    field = SORTABLE_FIELDS.get(sort_by)
    if field is None:
        raise ValidationError(
            f"Cannot sort products by {sort_by!r}",
            {"sortBy": sort_by, "allowed": sorted(SORTABLE_FIELDS)},
        )
    direction = sort_dir.lower()
    if direction not in ("asc", "desc"):
        raise ValidationError(
            f"Sort direction must be 'asc' or 'desc', not {sort_dir!r}",
            {"sortDir": sort_dir},
        )

    def key(product: Product) -> Any:
        value = getattr(product, field)
        return value.lower() if isinstance(value, str) else value

    return sorted(products, key=key, reverse=direction == "desc")


class CatalogUseCase:
    def __init__(
        self,
        product_repo: ProductRepository,
        product_locks: KeyedLocks,
        retry_policy: RetryPolicy,
    ) -> None:
        self.product_repo = ensure_product_repository(product_repo)
        self.product_locks = product_locks
        self.retry_policy = retry_policy

    async def get_product(self, product_id: int) -> Product:
        product = await self.product_repo.get(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    async def list_products(
        self,
        include_deleted: bool = False,
        sort_by: str = "id",
        sort_dir: str = "asc",
    ) -> List[Product]:
        products = await self.product_repo.list_all(include_deleted)
        return sort_products(products, sort_by, sort_dir)

    async def create_product(
        self, principal: Principal, name: str, unit_price: Money, stock: int
    ) -> Product:
        require_admin(principal, "create products")
        try:
            product = Product(
                product_id=await self.product_repo.generate_id(),
                name=name,
                unit_price=unit_price,
                stock=stock,
            )
        except ValueError as e:
            raise ValidationError(str(e)) from e
        await self.product_repo.save(product)
        logger.info(
            "Product created",
            extra={
                "product_id": product.product_id,
                "unit_price": str(unit_price.amount),
                "stock": stock,
            },
        )
        return product

    async def update_product(
        self,
        principal: Principal,
        product_id: int,
        name: Optional[str] = None,
        unit_price: Optional[Money] = None,
        stock: Optional[int] = None,
    ) -> Product:
        """Edit catalog fields. Prices already captured on order lines are
        not affected."""
        require_admin(principal, "update products")
        changes: Dict[str, Any] = {}
        if name is not None:
            changes["name"] = name
        if unit_price is not None:
            changes["unit_price"] = unit_price
        if stock is not None:
            changes["stock"] = stock
        return await self._mutate(product_id, changes, "product update")

    async def delete_product(
        self, principal: Principal, product_id: int
    ) -> Product:
        """Soft delete. The product disappears from the default listing
        and can no longer be ordered."""
        require_admin(principal, "delete products")
        return await self._mutate(
            product_id, {"deleted": True}, "product deletion"
        )

    async def restore_product(
        self, principal: Principal, product_id: int
    ) -> Product:
        require_admin(principal, "restore products")
        return await self._mutate(
            product_id, {"deleted": False}, "product restore"
        )

    async def _mutate(
        self, product_id: int, changes: Dict[str, Any], description: str
    ) -> Product:
        async def attempt() -> Product:
            async with self.product_locks.hold(product_id):
                current = await self.get_product(product_id)
                # Re-validate through the model so bad names or prices are
                # refused like they are on creation.
                try:
                    updated = Product.model_validate(
                        {
                            **dict(current),
                            **changes,
                            "version": current.version + 1,
                            "updated_at": utcnow(),
                        }
                    )
                except ValueError as e:
                    raise ValidationError(str(e)) from e
                await self.product_repo.compare_and_set(
                    updated, current.version
                )
                return updated

        product = await run_with_retry(attempt, self.retry_policy, description)
        logger.info(
            "Product changed",
            extra={
                "product_id": product_id,
                "fields": sorted(changes),
                "deleted": product.deleted,
                "version": product.version,
            },
        )
        return product
