"""
Repository contract tests.

Each mixin states what any implementation of a repository protocol must
do; the memory implementations are checked against them here. A persistent
implementation would subclass the same mixins.
"""

from abc import ABC, abstractmethod

import pytest

from storefront.domain import OrderStatus, PromoCode
from storefront.errors import NotFoundError, StaleVersionError
from storefront.repositories import (
    OrderRepository,
    PaymentRepository,
    ProductRepository,
    PromoCodeRepository,
)
from storefront.repositories.memory import (
    MemoryOrderRepository,
    MemoryPaymentRepository,
    MemoryProductRepository,
    MemoryPromoCodeRepository,
)

from .factories import PaymentFactory, ProductFactory
from .helpers import make_order


class ProductRepositoryContractTestMixin(ABC):
    @abstractmethod
    def create_repository(self) -> ProductRepository:
        pass

    @pytest.mark.asyncio
    async def test_returned_products_are_copies(self) -> None:
        """Contract: mutating a returned product does not change storage."""
        repo = self.create_repository()
        product = ProductFactory.build(product_id=1, stock=5)
        await repo.save(product)

        fetched = await repo.get(1)
        assert fetched is not None
        fetched.stock = 0

        stored = await repo.get(1)
        assert stored is not None and stored.stock == 5

    @pytest.mark.asyncio
    async def test_list_hides_deleted_by_default(self) -> None:
        repo = self.create_repository()
        await repo.save(ProductFactory.build(product_id=1))
        await repo.save(ProductFactory.build(product_id=2, deleted=True))

        assert [p.product_id for p in await repo.list_all()] == [1]
        assert [
            p.product_id for p in await repo.list_all(include_deleted=True)
        ] == [1, 2]

    @pytest.mark.asyncio
    async def test_get_many_skips_unknown_ids(self) -> None:
        repo = self.create_repository()
        await repo.save(ProductFactory.build(product_id=1))

        found = await repo.get_many([1, 99])
        assert list(found) == [1]

    @pytest.mark.asyncio
    async def test_compare_and_set(self) -> None:
        """Contract: writes succeed only against the expected version."""
        repo = self.create_repository()
        product = ProductFactory.build(product_id=1, version=3)
        await repo.save(product)

        await repo.compare_and_set(
            product.model_copy(update={"stock": 1, "version": 4}), 3
        )
        with pytest.raises(StaleVersionError):
            await repo.compare_and_set(
                product.model_copy(update={"stock": 2, "version": 4}), 3
            )
        stored = await repo.get(1)
        assert stored is not None and stored.stock == 1

    @pytest.mark.asyncio
    async def test_compare_and_set_unknown_product(self) -> None:
        repo = self.create_repository()
        with pytest.raises(NotFoundError):
            await repo.compare_and_set(
                ProductFactory.build(product_id=9, version=1), 0
            )

    @pytest.mark.asyncio
    async def test_generated_ids_are_unique(self) -> None:
        repo = self.create_repository()
        await repo.save(ProductFactory.build(product_id=1))
        ids = {await repo.generate_id() for _ in range(3)}
        assert len(ids) == 3
        assert 1 not in ids


class OrderRepositoryContractTestMixin(ABC):
    @abstractmethod
    def create_repository(self) -> OrderRepository:
        pass

    @pytest.mark.asyncio
    async def test_filters(self) -> None:
        repo = self.create_repository()
        await repo.save(make_order(order_id=1, client_id=1))
        await repo.save(make_order(order_id=2, client_id=2))
        confirmed = make_order(order_id=3, client_id=1).model_copy(
            update={"status": OrderStatus.CONFIRMED}
        )
        await repo.save(confirmed)

        assert [o.order_id for o in await repo.list_all()] == [1, 2, 3]
        assert [o.order_id for o in await repo.list_all(1)] == [1, 3]
        pending = await repo.list_by_status(OrderStatus.PENDING)
        assert [o.order_id for o in pending] == [1, 2]
        assert [
            o.order_id
            for o in await repo.list_by_status(OrderStatus.CONFIRMED, 1)
        ] == [3]


class PaymentRepositoryContractTestMixin(ABC):
    @abstractmethod
    def create_repository(self) -> PaymentRepository:
        pass

    @pytest.mark.asyncio
    async def test_payment_numbers_are_per_order(self) -> None:
        repo = self.create_repository()
        assert await repo.next_payment_number(1) == 1
        assert await repo.next_payment_number(1) == 2
        assert await repo.next_payment_number(2) == 1

    @pytest.mark.asyncio
    async def test_list_for_order_sorted_by_number(self) -> None:
        repo = self.create_repository()
        await repo.save(
            PaymentFactory.build(payment_id=10, order_id=1, payment_number=2)
        )
        await repo.save(
            PaymentFactory.build(payment_id=11, order_id=1, payment_number=1)
        )
        await repo.save(
            PaymentFactory.build(payment_id=12, order_id=2, payment_number=1)
        )

        listed = await repo.list_for_order(1)
        assert [p.payment_id for p in listed] == [11, 10]


class PromoCodeRepositoryContractTestMixin(ABC):
    @abstractmethod
    def create_repository(self) -> PromoCodeRepository:
        pass

    @pytest.mark.asyncio
    async def test_single_use_redemption(self) -> None:
        repo = self.create_repository()
        await repo.save(PromoCode(code="PROMO-ONCE", single_use=True))

        assert await repo.redeem("PROMO-ONCE", 1) is True
        assert await repo.redeem("PROMO-ONCE", 1) is False
        assert await repo.redeem("PROMO-ONCE", 2) is True

        await repo.release("PROMO-ONCE", 1)
        assert await repo.redeem("PROMO-ONCE", 1) is True

    @pytest.mark.asyncio
    async def test_inactive_or_unknown_codes(self) -> None:
        repo = self.create_repository()
        await repo.save(PromoCode(code="PROMO-OFF1", active=False))

        assert await repo.redeem("PROMO-OFF1", 1) is False
        assert await repo.redeem("PROMO-NONE", 1) is False


class TestMemoryProductRepository(ProductRepositoryContractTestMixin):
    def create_repository(self) -> ProductRepository:
        return MemoryProductRepository()


class TestMemoryOrderRepository(OrderRepositoryContractTestMixin):
    def create_repository(self) -> OrderRepository:
        return MemoryOrderRepository()


class TestMemoryPaymentRepository(PaymentRepositoryContractTestMixin):
    def create_repository(self) -> PaymentRepository:
        return MemoryPaymentRepository()


class TestMemoryPromoCodeRepository(PromoCodeRepositoryContractTestMixin):
    def create_repository(self) -> PromoCodeRepository:
        return MemoryPromoCodeRepository()
