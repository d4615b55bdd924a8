"""
Session authentication and role checks.

Passwords are stored as bcrypt hashes. A successful login opens a session
whose opaque token the API layer puts in a cookie; every later request
resolves that token back to a Principal.
"""

import logging
from typing import Optional, Tuple

import bcrypt

from storefront.domain import Principal, Role, User
from storefront.errors import (
    AuthenticationError,
    UnauthorizedError,
    ValidationError,
)
from storefront.repositories.user import SessionRepository, UserRepository

logger = logging.getLogger(__name__)

DEFAULT_BCRYPT_ROUNDS = 12


def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(
            password.encode("utf-8"), password_hash.encode("utf-8")
        )
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def principal_for(user: User) -> Principal:
    return Principal(
        user_id=user.user_id,
        username=user.username,
        role=user.role,
        client_id=user.client_id,
    )


def require_admin(principal: Principal, action: str) -> None:
    """Raise UnauthorizedError unless ``principal`` is an admin."""
    if not principal.is_admin:
        logger.warning(
            "Admin action refused",
            extra={
                "action": action,
                "user_id": principal.user_id,
                "role": principal.role.value,
            },
        )
        raise UnauthorizedError(
            f"Only administrators may {action}",
            {"action": action},
        )


def require_client_access(principal: Principal, client_id: int) -> None:
    """Admins see every client; a client user sees only itself."""
    if principal.is_admin or principal.client_id == client_id:
        return
    raise UnauthorizedError(
        "Access to another client's data is not allowed",
        {"clientId": client_id},
    )


class AuthService:
    """Login, logout and session resolution."""

    def __init__(
        self,
        user_repo: UserRepository,
        session_repo: SessionRepository,
        bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS,
    ) -> None:
        self.user_repo = user_repo
        self.session_repo = session_repo
        self.bcrypt_rounds = bcrypt_rounds

    async def create_user(
        self,
        username: str,
        password: str,
        role: Role = Role.CLIENT,
        client_id: Optional[int] = None,
    ) -> User:
        """Register a user with a freshly hashed password.

        Raises:
            ValidationError: empty password or username already taken
        """
        username = username.strip()
        if not username or not password:
            raise ValidationError("Username and password are required")
        if await self.user_repo.get_by_username(username) is not None:
            raise ValidationError(
                f"Username {username!r} is already taken",
                {"username": username},
            )
        user = User(
            user_id=await self.user_repo.generate_id(),
            username=username,
            password_hash=hash_password(password, self.bcrypt_rounds),
            role=role,
            client_id=client_id,
        )
        await self.user_repo.save(user)
        logger.info(
            "User created",
            extra={
                "user_id": user.user_id,
                "username": username,
                "role": role.value,
            },
        )
        return user

    async def ensure_admin(self, username: str, password: str) -> User:
        """Create the bootstrap administrator unless it already exists."""
        existing = await self.user_repo.get_by_username(username)
        if existing is not None:
            return existing
        return await self.create_user(username, password, role=Role.ADMIN)

    async def login(
        self, username: str, password: str
    ) -> Tuple[str, Principal]:
        """Check credentials and open a session.

        Returns:
            (token, principal)

        Raises:
            AuthenticationError: unknown user or wrong password
        """
        user = await self.user_repo.get_by_username(username.strip())
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Login failed", extra={"username": username})
            raise AuthenticationError("Invalid username or password")

        principal = principal_for(user)
        token = await self.session_repo.create(principal)
        logger.info(
            "Login succeeded",
            extra={"user_id": user.user_id, "role": user.role.value},
        )
        return token, principal

    async def logout(self, token: Optional[str]) -> None:
        if token:
            await self.session_repo.delete(token)

    async def resolve(self, token: Optional[str]) -> Principal:
        """Principal behind a session token.

        Raises:
            AuthenticationError: no token or the session is unknown
        """
        if not token:
            raise AuthenticationError("Authentication required")
        principal = await self.session_repo.get(token)
        if principal is None:
            raise AuthenticationError("Session expired or invalid")
        return principal
