"""
Tests for CatalogUseCase.
"""

import pytest

from storefront.domain import Principal
from storefront.errors import NotFoundError, UnauthorizedError, ValidationError
from storefront.money import Money
from storefront.tests.conftest import Engine, client_principal
from storefront.tests.factories import ProductFactory
from storefront.usecases.catalog import sort_products


class TestSortProducts:
    def test_sorts_by_price_descending(self) -> None:
        products = [
            ProductFactory.build(unit_price=Money.of("5.00")),
            ProductFactory.build(unit_price=Money.of("50.00")),
            ProductFactory.build(unit_price=Money.of("15.00")),
        ]
        ordered = sort_products(products, "price", "desc")
        assert [p.unit_price for p in ordered] == [
            Money.of("50.00"),
            Money.of("15.00"),
            Money.of("5.00"),
        ]

    def test_name_sort_ignores_case(self) -> None:
        products = [
            ProductFactory.build(name="banana"),
            ProductFactory.build(name="Apple"),
        ]
        assert [p.name for p in sort_products(products, "name")] == [
            "Apple",
            "banana",
        ]

    def test_unknown_column(self) -> None:
        with pytest.raises(ValidationError):
            sort_products([], "colour")

    def test_unknown_direction(self) -> None:
        with pytest.raises(ValidationError):
            sort_products([], "id", "sideways")


class TestCatalogUseCase:
    @pytest.mark.asyncio
    async def test_create_and_get(
        self, engine: Engine, admin: Principal
    ) -> None:
        product = await engine.catalog.create_product(
            admin, "Desk", Money.of("250.00"), 4
        )
        assert await engine.catalog.get_product(product.product_id) == product

    @pytest.mark.asyncio
    async def test_create_refuses_blank_name(
        self, engine: Engine, admin: Principal
    ) -> None:
        with pytest.raises(ValidationError):
            await engine.catalog.create_product(
                admin, "  ", Money.of("1.00"), 1
            )

    @pytest.mark.asyncio
    async def test_clients_cannot_edit_the_catalog(
        self, engine: Engine
    ) -> None:
        with pytest.raises(UnauthorizedError):
            await engine.catalog.create_product(
                client_principal(1), "Desk", Money.of("1.00"), 1
            )

    @pytest.mark.asyncio
    async def test_update_bumps_version(
        self, engine: Engine, admin: Principal
    ) -> None:
        product = await engine.add_product(stock=1)
        updated = await engine.catalog.update_product(
            admin, product.product_id, name="Renamed", stock=7
        )
        assert updated.name == "Renamed"
        assert updated.stock == 7
        assert updated.version == product.version + 1

    @pytest.mark.asyncio
    async def test_update_refuses_negative_stock(
        self, engine: Engine, admin: Principal
    ) -> None:
        product = await engine.add_product()
        with pytest.raises(ValidationError):
            await engine.catalog.update_product(
                admin, product.product_id, stock=-1
            )

    @pytest.mark.asyncio
    async def test_soft_delete_and_restore(
        self, engine: Engine, admin: Principal
    ) -> None:
        product = await engine.add_product()

        await engine.catalog.delete_product(admin, product.product_id)
        assert await engine.catalog.list_products() == []
        listed = await engine.catalog.list_products(include_deleted=True)
        assert [p.deleted for p in listed] == [True]

        restored = await engine.catalog.restore_product(
            admin, product.product_id
        )
        assert restored.deleted is False
        assert len(await engine.catalog.list_products()) == 1

    @pytest.mark.asyncio
    async def test_unknown_product(
        self, engine: Engine, admin: Principal
    ) -> None:
        with pytest.raises(NotFoundError):
            await engine.catalog.delete_product(admin, 404)
