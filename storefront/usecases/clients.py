"""
Client registration and administration.

A client registers with a full name, email and password. Registration
creates both the Client record and a CLIENT user whose username is the
email address. Aggregates (total spent, order counts and dates) are never
set here; they are derived when orders are confirmed.
"""

import logging
from typing import List, Optional

from storefront.auth import AuthService, require_admin, require_client_access
from storefront.domain import Client, ClientTier, Principal, Role
from storefront.errors import NotFoundError, ValidationError
from storefront.locks import KeyedLocks
from storefront.repositories import ClientRepository
from storefront.retry import RetryPolicy, run_with_retry
from storefront.validation import ensure_client_repository

logger = logging.getLogger(__name__)


class ClientUseCase:
    def __init__(
        self,
        client_repo: ClientRepository,
        auth_service: AuthService,
        client_locks: KeyedLocks,
        retry_policy: RetryPolicy,
    ) -> None:
        self.client_repo = ensure_client_repository(client_repo)
        self.auth_service = auth_service
        self.client_locks = client_locks
        self.retry_policy = retry_policy

    async def register_client(
        self,
        full_name: str,
        email: str,
        password: str,
        tier: ClientTier = ClientTier.BASIC,
    ) -> Client:
        """Create a client and its login.

        Raises:
            ValidationError: invalid fields, or the email is already
                registered
        """
        if not password:
            raise ValidationError(
                "Password is required", {"missing": ["password"]}
            )
        try:
            client = Client(
                client_id=await self.client_repo.generate_id(),
                full_name=full_name,
                email=email,
                tier=tier,
            )
        except ValueError as e:
            raise ValidationError(str(e)) from e

        if await self.client_repo.get_by_email(client.email) is not None:
            raise ValidationError(
                f"Email {client.email} is already registered",
                {"email": client.email},
            )

        await self.auth_service.create_user(
            client.email, password, Role.CLIENT, client.client_id
        )
        await self.client_repo.save(client)
        logger.info(
            "Client registered",
            extra={"client_id": client.client_id, "tier": tier.value},
        )
        return client

    async def get_client(self, principal: Principal, client_id: int) -> Client:
        require_client_access(principal, client_id)
        client = await self.client_repo.get(client_id)
        if client is None:
            raise NotFoundError("Client", client_id)
        return client

    async def list_clients(self, principal: Principal) -> List[Client]:
        require_admin(principal, "list clients")
        return await self.client_repo.list_all()

    async def update_client(
        self,
        principal: Principal,
        client_id: int,
        full_name: Optional[str] = None,
        email: Optional[str] = None,
        tier: Optional[ClientTier] = None,
    ) -> Client:
        """Edit identity fields and tier (admin only)."""
        require_admin(principal, "update clients")

        async def attempt() -> Client:
            async with self.client_locks.hold(client_id):
                current = await self.client_repo.get(client_id)
                if current is None:
                    raise NotFoundError("Client", client_id)
                changes = {}
                if full_name is not None:
                    changes["full_name"] = full_name
                if email is not None:
                    changes["email"] = email
                if tier is not None:
                    changes["tier"] = tier
                try:
                    updated = Client.model_validate(
                        {**dict(current), **changes}
                    )
                except ValueError as e:
                    raise ValidationError(str(e)) from e

                if updated.email != current.email:
                    other = await self.client_repo.get_by_email(updated.email)
                    if other is not None and other.client_id != client_id:
                        raise ValidationError(
                            f"Email {updated.email} is already registered",
                            {"email": updated.email},
                        )
                await self.client_repo.save(updated)
                return updated

        client = await run_with_retry(
            attempt, self.retry_policy, "client update"
        )
        logger.info(
            "Client updated",
            extra={
                "client_id": client_id,
                "fields": sorted(
                    name
                    for name, value in (
                        ("full_name", full_name),
                        ("email", email),
                        ("tier", tier),
                    )
                    if value is not None
                ),
            },
        )
        return client
