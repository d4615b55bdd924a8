"""
Runtime validation of repository implementations against their Protocols.

Use cases call the ``ensure_*`` helpers in their constructors so that a
misconfigured dependency fails at wiring time instead of on the first
request that happens to use it.
"""

import logging
from typing import Any, Type, TypeVar

logger = logging.getLogger(__name__)

P = TypeVar("P")


class RepositoryValidationError(Exception):
    """Raised when repository contract validation fails"""

    pass


def validate_repository_protocol(
    repository: object, protocol: Type[P]
) -> None:
    """
    Validate that a repository implementation satisfies a protocol contract.

    Uses isinstance() with @runtime_checkable protocols.

    Args:
        repository: The repository implementation to validate
        protocol: The protocol class to validate against

    Raises:
        RepositoryValidationError: If validation fails

    Example:
        >>> from storefront.repositories import OrderRepository
        >>> from storefront.repositories.memory import MemoryOrderRepository
        >>> validate_repository_protocol(
        ...     MemoryOrderRepository(), OrderRepository
        ... )
    """
    if not isinstance(repository, protocol):
        logger.error(
            "Repository protocol validation failed",
            extra={
                "repository_type": type(repository).__name__,
                "protocol_name": protocol.__name__,
            },
        )
        raise RepositoryValidationError(
            f"Repository {type(repository).__name__} does not implement "
            f"{protocol.__name__} protocol. Missing or incorrect methods."
        )

    logger.debug(
        "Repository protocol validation passed",
        extra={
            "repository_type": type(repository).__name__,
            "protocol_name": protocol.__name__,
        },
    )


def ensure_repository_protocol(repository: object, protocol: Type[P]) -> P:
    """
    Validate and return a repository with proper type annotation.

    Raises:
        RepositoryValidationError: If validation fails
    """
    validate_repository_protocol(repository, protocol)
    return repository  # type: ignore[return-value]


# Convenience functions for common validation patterns
def ensure_product_repository(repo: object) -> Any:
    """Ensure an object satisfies the ProductRepository protocol"""
    from storefront.repositories import ProductRepository

    return ensure_repository_protocol(repo, ProductRepository)  # type: ignore[type-abstract]


def ensure_client_repository(repo: object) -> Any:
    """Ensure an object satisfies the ClientRepository protocol"""
    from storefront.repositories import ClientRepository

    return ensure_repository_protocol(repo, ClientRepository)  # type: ignore[type-abstract]


def ensure_order_repository(repo: object) -> Any:
    """Ensure an object satisfies the OrderRepository protocol"""
    from storefront.repositories import OrderRepository

    return ensure_repository_protocol(repo, OrderRepository)  # type: ignore[type-abstract]


def ensure_payment_repository(repo: object) -> Any:
    """Ensure an object satisfies the PaymentRepository protocol"""
    from storefront.repositories import PaymentRepository

    return ensure_repository_protocol(repo, PaymentRepository)  # type: ignore[type-abstract]


def ensure_promo_code_repository(repo: object) -> Any:
    """Ensure an object satisfies the PromoCodeRepository protocol"""
    from storefront.repositories import PromoCodeRepository

    return ensure_repository_protocol(repo, PromoCodeRepository)  # type: ignore[type-abstract]


def ensure_idempotency_repository(repo: object) -> Any:
    """Ensure an object satisfies the IdempotencyRepository protocol"""
    from storefront.repositories import IdempotencyRepository

    return ensure_repository_protocol(repo, IdempotencyRepository)  # type: ignore[type-abstract]
