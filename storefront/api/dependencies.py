"""
Dependency injection for FastAPI endpoints.

The container builds every collaborator once and hands out the same
instances for the life of the process. The in-memory repositories and the
lock families must be shared by all requests, otherwise stock and order
serialization would not hold across requests.

Tests swap the whole graph by overriding ``get_container``.
"""

import logging
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, Request

from storefront.auth import AuthService
from storefront.config import Settings, get_settings
from storefront.domain import Principal
from storefront.locks import KeyedLocks
from storefront.pricing import PricingEngine
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

logger = logging.getLogger(__name__)


class DependencyContainer:
    """
    Dependency injection container with singleton lifecycle management.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings
        self._instances: Dict[str, Any] = {}

    def get_or_create(self, key: str, factory: Callable[[], Any]) -> Any:
        """Get or create a singleton instance."""
        if key not in self._instances:
            self._instances[key] = factory()
        return self._instances[key]

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    # Repositories

    @property
    def product_repo(self) -> MemoryProductRepository:
        return self.get_or_create("product_repo", MemoryProductRepository)

    @property
    def client_repo(self) -> MemoryClientRepository:
        return self.get_or_create("client_repo", MemoryClientRepository)

    @property
    def order_repo(self) -> MemoryOrderRepository:
        return self.get_or_create("order_repo", MemoryOrderRepository)

    @property
    def payment_repo(self) -> MemoryPaymentRepository:
        return self.get_or_create("payment_repo", MemoryPaymentRepository)

    @property
    def promo_repo(self) -> MemoryPromoCodeRepository:
        return self.get_or_create("promo_repo", MemoryPromoCodeRepository)

    @property
    def idempotency_repo(self) -> MemoryIdempotencyRepository:
        return self.get_or_create(
            "idempotency_repo", MemoryIdempotencyRepository
        )

    @property
    def user_repo(self) -> MemoryUserRepository:
        return self.get_or_create("user_repo", MemoryUserRepository)

    @property
    def session_repo(self) -> MemorySessionRepository:
        return self.get_or_create("session_repo", MemorySessionRepository)

    # Concurrency primitives

    def _locks(self, name: str) -> KeyedLocks:
        return self.get_or_create(
            f"{name}_locks",
            lambda: KeyedLocks(name, self.settings.lock_timeout_seconds),
        )

    @property
    def retry_policy(self) -> RetryPolicy:
        return self.get_or_create(
            "retry_policy",
            lambda: RetryPolicy(
                attempts=self.settings.retry_attempts,
                base_delay=self.settings.retry_base_delay_seconds,
                max_delay=self.settings.retry_max_delay_seconds,
            ),
        )

    # Engine

    @property
    def pricing_engine(self) -> PricingEngine:
        return self.get_or_create(
            "pricing_engine",
            lambda: PricingEngine(
                tax_rate=self.settings.tax_rate,
                promo_policy=self.settings.promo_policy,
            ),
        )

    @property
    def stock_ledger(self) -> StockLedger:
        return self.get_or_create(
            "stock_ledger",
            lambda: StockLedger(self.product_repo, self._locks("product")),
        )

    @property
    def idempotency_guard(self) -> IdempotencyGuard:
        return self.get_or_create(
            "idempotency_guard",
            lambda: IdempotencyGuard(
                self.idempotency_repo,
                self._locks("idempotency"),
                self.retry_policy,
            ),
        )

    @property
    def auth_service(self) -> AuthService:
        return self.get_or_create(
            "auth_service",
            lambda: AuthService(
                self.user_repo,
                self.session_repo,
                self.settings.bcrypt_rounds,
            ),
        )

    # Use cases

    @property
    def place_order(self) -> PlaceOrderUseCase:
        return self.get_or_create(
            "place_order",
            lambda: PlaceOrderUseCase(
                product_repo=self.product_repo,
                client_repo=self.client_repo,
                order_repo=self.order_repo,
                promo_repo=self.promo_repo,
                stock_ledger=self.stock_ledger,
                pricing_engine=self.pricing_engine,
                idempotency=self.idempotency_guard,
                retry_policy=self.retry_policy,
                reserve_stock_on=self.settings.reserve_stock_on,
            ),
        )

    @property
    def order_lifecycle(self) -> OrderLifecycleUseCase:
        return self.get_or_create(
            "order_lifecycle",
            lambda: OrderLifecycleUseCase(
                order_repo=self.order_repo,
                payment_repo=self.payment_repo,
                client_repo=self.client_repo,
                stock_ledger=self.stock_ledger,
                order_locks=self._locks("order"),
                client_locks=self._locks("client"),
                retry_policy=self.retry_policy,
            ),
        )

    @property
    def payment_ledger(self) -> PaymentLedgerUseCase:
        return self.get_or_create(
            "payment_ledger",
            lambda: PaymentLedgerUseCase(
                order_repo=self.order_repo,
                payment_repo=self.payment_repo,
                order_locks=self._locks("order"),
                idempotency=self.idempotency_guard,
                retry_policy=self.retry_policy,
            ),
        )

    @property
    def catalog(self) -> CatalogUseCase:
        return self.get_or_create(
            "catalog",
            lambda: CatalogUseCase(
                self.product_repo, self._locks("product"), self.retry_policy
            ),
        )

    @property
    def clients(self) -> ClientUseCase:
        return self.get_or_create(
            "clients",
            lambda: ClientUseCase(
                self.client_repo,
                self.auth_service,
                self._locks("client"),
                self.retry_policy,
            ),
        )

    async def bootstrap(self) -> None:
        """Create the bootstrap administrator account."""
        await self.auth_service.ensure_admin(
            self.settings.admin_username, self.settings.admin_password
        )
        logger.info(
            "Bootstrap administrator ready",
            extra={"username": self.settings.admin_username},
        )


# Global container instance
_container = DependencyContainer()


def get_container() -> DependencyContainer:
    """FastAPI dependency for the container; override it in tests."""
    return _container


def get_app_settings(
    container: DependencyContainer = Depends(get_container),
) -> Settings:
    return container.settings


def get_auth_service(
    container: DependencyContainer = Depends(get_container),
) -> AuthService:
    return container.auth_service


def get_place_order_use_case(
    container: DependencyContainer = Depends(get_container),
) -> PlaceOrderUseCase:
    return container.place_order


def get_order_lifecycle_use_case(
    container: DependencyContainer = Depends(get_container),
) -> OrderLifecycleUseCase:
    return container.order_lifecycle


def get_payment_ledger_use_case(
    container: DependencyContainer = Depends(get_container),
) -> PaymentLedgerUseCase:
    return container.payment_ledger


def get_catalog_use_case(
    container: DependencyContainer = Depends(get_container),
) -> CatalogUseCase:
    return container.catalog


def get_client_use_case(
    container: DependencyContainer = Depends(get_container),
) -> ClientUseCase:
    return container.clients


def get_session_token(
    request: Request, settings: Settings = Depends(get_app_settings)
) -> Optional[str]:
    return request.cookies.get(settings.session_cookie_name)


async def get_current_principal(
    token: Optional[str] = Depends(get_session_token),
    auth_service: AuthService = Depends(get_auth_service),
) -> Principal:
    """Resolve the session cookie; unauthenticated requests get 401."""
    return await auth_service.resolve(token)
