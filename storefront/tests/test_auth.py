"""
Tests for password hashing, sessions and role checks.
"""

import pytest

from storefront.auth import (
    AuthService,
    hash_password,
    require_admin,
    require_client_access,
    verify_password,
)
from storefront.domain import Role
from storefront.errors import (
    AuthenticationError,
    UnauthorizedError,
    ValidationError,
)
from storefront.repositories.memory import (
    MemorySessionRepository,
    MemoryUserRepository,
)

from .conftest import client_principal
from .factories import PrincipalFactory


@pytest.fixture
def auth_service() -> AuthService:
    return AuthService(
        MemoryUserRepository(), MemorySessionRepository(), bcrypt_rounds=4
    )


class TestPasswords:
    def test_hash_round_trip(self) -> None:
        hashed = hash_password("s3cret", rounds=4)
        assert hashed != "s3cret"
        assert verify_password("s3cret", hashed)
        assert not verify_password("wrong", hashed)

    def test_corrupt_hash_does_not_verify(self) -> None:
        assert not verify_password("s3cret", "not-a-bcrypt-hash")


class TestAuthService:
    @pytest.mark.asyncio
    async def test_login_resolve_logout(
        self, auth_service: AuthService
    ) -> None:
        await auth_service.create_user("ops", "pw", Role.ADMIN)

        token, principal = await auth_service.login("ops", "pw")
        assert principal.is_admin
        assert await auth_service.resolve(token) == principal

        await auth_service.logout(token)
        with pytest.raises(AuthenticationError, match="expired or invalid"):
            await auth_service.resolve(token)

    @pytest.mark.asyncio
    async def test_wrong_password(self, auth_service: AuthService) -> None:
        await auth_service.create_user("ops", "pw")
        with pytest.raises(AuthenticationError):
            await auth_service.login("ops", "nope")

    @pytest.mark.asyncio
    async def test_unknown_user(self, auth_service: AuthService) -> None:
        with pytest.raises(AuthenticationError):
            await auth_service.login("ghost", "pw")

    @pytest.mark.asyncio
    async def test_missing_token(self, auth_service: AuthService) -> None:
        with pytest.raises(AuthenticationError, match="required"):
            await auth_service.resolve(None)

    @pytest.mark.asyncio
    async def test_duplicate_username(self, auth_service: AuthService) -> None:
        await auth_service.create_user("ops", "pw")
        with pytest.raises(ValidationError):
            await auth_service.create_user("ops", "other")

    @pytest.mark.asyncio
    async def test_empty_password(self, auth_service: AuthService) -> None:
        with pytest.raises(ValidationError):
            await auth_service.create_user("ops", "")

    @pytest.mark.asyncio
    async def test_ensure_admin_is_idempotent(
        self, auth_service: AuthService
    ) -> None:
        first = await auth_service.ensure_admin("admin", "admin")
        second = await auth_service.ensure_admin("admin", "changed")
        assert first.user_id == second.user_id
        assert first.role is Role.ADMIN


class TestRoleChecks:
    def test_admin_passes(self) -> None:
        require_admin(PrincipalFactory.build(role=Role.ADMIN), "do things")

    def test_client_is_refused_admin_actions(self) -> None:
        with pytest.raises(UnauthorizedError) as exc_info:
            require_admin(client_principal(1), "confirm orders")
        assert exc_info.value.status_code == 403

    def test_client_sees_only_itself(self) -> None:
        require_client_access(client_principal(1), 1)
        with pytest.raises(UnauthorizedError):
            require_client_access(client_principal(1), 2)

    def test_admin_sees_every_client(self) -> None:
        require_client_access(PrincipalFactory.build(role=Role.ADMIN), 42)
