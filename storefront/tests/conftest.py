"""
Shared fixtures: a fully wired engine over the in-memory repositories.
"""

from typing import Optional

import pytest

from storefront.auth import AuthService
from storefront.config import StockReservationPolicy
from storefront.domain import Client, ClientTier, Principal, Product, Role
from storefront.locks import KeyedLocks
from storefront.money import Money
from storefront.pricing import PricingEngine, PromoPolicy
from storefront.repositories.memory import (
    MemoryClientRepository,
    MemoryIdempotencyRepository,
    MemoryOrderRepository,
    MemoryPaymentRepository,
    MemoryProductRepository,
    MemoryPromoCodeRepository,
    MemorySessionRepository,
    MemoryUserRepository,
)
from storefront.retry import RetryPolicy
from storefront.stock import StockLedger
from storefront.usecases import (
    CatalogUseCase,
    ClientUseCase,
    IdempotencyGuard,
    OrderLifecycleUseCase,
    PaymentLedgerUseCase,
    PlaceOrderUseCase,
)


class Engine:
    """Every collaborator wired the way the API container wires them."""

    def __init__(
        self,
        promo_policy: PromoPolicy = PromoPolicy.LENIENT,
        reserve_stock_on: StockReservationPolicy = (
            StockReservationPolicy.PLACEMENT
        ),
        lock_timeout: float = 1.0,
    ) -> None:
        self.products = MemoryProductRepository()
        self.clients = MemoryClientRepository()
        self.orders = MemoryOrderRepository()
        self.payments = MemoryPaymentRepository()
        self.promos = MemoryPromoCodeRepository()
        self.idempotency_records = MemoryIdempotencyRepository()
        self.users = MemoryUserRepository()
        self.sessions = MemorySessionRepository()

        self.product_locks = KeyedLocks("product", lock_timeout)
        self.order_locks = KeyedLocks("order", lock_timeout)
        self.client_locks = KeyedLocks("client", lock_timeout)
        self.retry_policy = RetryPolicy(
            attempts=3, base_delay=0.001, max_delay=0.01
        )

        self.pricing = PricingEngine(promo_policy=promo_policy)
        self.ledger = StockLedger(self.products, self.product_locks)
        self.idempotency = IdempotencyGuard(
            self.idempotency_records,
            KeyedLocks("idempotency", lock_timeout),
            self.retry_policy,
        )
        self.auth = AuthService(self.users, self.sessions, bcrypt_rounds=4)

        self.place_order = PlaceOrderUseCase(
            product_repo=self.products,
            client_repo=self.clients,
            order_repo=self.orders,
            promo_repo=self.promos,
            stock_ledger=self.ledger,
            pricing_engine=self.pricing,
            idempotency=self.idempotency,
            retry_policy=self.retry_policy,
            reserve_stock_on=reserve_stock_on,
        )
        self.lifecycle = OrderLifecycleUseCase(
            order_repo=self.orders,
            payment_repo=self.payments,
            client_repo=self.clients,
            stock_ledger=self.ledger,
            order_locks=self.order_locks,
            client_locks=self.client_locks,
            retry_policy=self.retry_policy,
        )
        self.payment_ledger = PaymentLedgerUseCase(
            order_repo=self.orders,
            payment_repo=self.payments,
            order_locks=self.order_locks,
            idempotency=self.idempotency,
            retry_policy=self.retry_policy,
        )
        self.catalog = CatalogUseCase(
            self.products, self.product_locks, self.retry_policy
        )
        self.client_admin = ClientUseCase(
            self.clients, self.auth, self.client_locks, self.retry_policy
        )

    async def add_product(
        self, price: str = "100.00", stock: int = 10, name: str = "Widget"
    ) -> Product:
        product = Product(
            product_id=await self.products.generate_id(),
            name=name,
            unit_price=Money.of(price),
            stock=stock,
        )
        await self.products.save(product)
        return product

    async def add_client(
        self,
        tier: ClientTier = ClientTier.BASIC,
        email: Optional[str] = None,
    ) -> Client:
        client_id = await self.clients.generate_id()
        client = Client(
            client_id=client_id,
            full_name=f"Client {client_id}",
            email=email or f"client{client_id}@example.com",
            tier=tier,
        )
        await self.clients.save(client)
        return client

    async def stock_of(self, product_id: int) -> int:
        product = await self.products.get(product_id)
        assert product is not None
        return product.stock


@pytest.fixture
def engine() -> Engine:
    return Engine()


@pytest.fixture
def admin() -> Principal:
    return Principal(user_id=1, username="admin", role=Role.ADMIN)


def client_principal(client_id: int) -> Principal:
    return Principal(
        user_id=1000 + client_id,
        username=f"client{client_id}@example.com",
        role=Role.CLIENT,
        client_id=client_id,
    )
