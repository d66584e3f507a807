"""Login, logout and role checks for the admin dashboard."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from .config import config
from .passwords import verify_password
from .repository import RepositoryUnavailableError

if TYPE_CHECKING:
    from .models import User
    from .repository import KnowledgeRepository

logger = config.get_logger(__name__)


class SessionStore(Protocol):
    """Keeps the identity of the logged-in user between requests."""

    def get(self) -> User | None: ...

    def set(self, user: User) -> None: ...

    def clear(self) -> None: ...


class InMemorySessionStore:
    """Session store holding the current user in a plain attribute."""

    def __init__(self, user: User | None = None) -> None:
        self._user = user

    def get(self) -> User | None:
        return self._user

    def set(self, user: User) -> None:
        self._user = user

    def clear(self) -> None:
        self._user = None


class AuthService:
    """Authenticates users against the user store and gates admin access."""

    def __init__(
        self,
        user_store: KnowledgeRepository,
        session_store: SessionStore | None = None,
    ) -> None:
        """Initialize AuthService.

        Args:
            user_store: Repository providing ``find_user_by_email``.
            session_store: Where the logged-in user is kept. Defaults to an
                in-memory store.
        """
        self.user_store = user_store
        self.session_store = session_store or InMemorySessionStore()

    def login(self, email: str, password: str) -> User | None:
        """Check credentials and remember the user on success.

        Returns:
            The authenticated user, or None if the credentials are wrong or the
            user store cannot be reached.
        """
        address = email.strip()
        if not address or not password:
            return None

        try:
            user = self.user_store.find_user_by_email(address)
        except RepositoryUnavailableError:
            logger.exception("User lookup failed for %s", address)
            return None

        if user is None or not verify_password(password, user.password_hash):
            logger.warning("Failed login attempt for %s", address)
            return None

        self.session_store.set(user)
        logger.info("User %s logged in as %s", user.email, user.role)
        return user

    def logout(self) -> None:
        user = self.session_store.get()
        self.session_store.clear()
        if user is not None:
            logger.info("User %s logged out", user.email)

    @property
    def current_user(self) -> User | None:
        return self.session_store.get()

    def is_authenticated(self) -> bool:
        return self.current_user is not None

    def is_admin(self) -> bool:
        user = self.current_user
        return user is not None and user.is_admin

    def require_admin(self) -> User:
        """Return the current user if they are an administrator.

        Raises:
            PermissionError: If nobody is logged in or the user is not an admin.

        Returns:
            The logged-in admin user.
        """
        user = self.current_user
        if user is None:
            msg = "Login required"
            raise PermissionError(msg)
        if not user.is_admin:
            msg = f"User {user.email} is not an administrator"
            raise PermissionError(msg)
        return user
