"""
Identity Provider Interface

The identity provider (Firebase Auth, a test fake, ...) owns credentials
and user records. The rest of the system only needs:
- an opaque user id for the signed-in user
- the four account operations
- a push notification whenever the signed-in user changes
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional


# Called with the new user id, or None once signed out
AuthStateListener = Callable[[Optional[str]], Awaitable[None]]


class IdentityProvider(ABC):
    """Abstract interface for account management."""

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> str:
        """
        Sign in an existing account.

        Returns:
            The user id

        Raises:
            AuthenticationError: If the credentials are rejected or the
                provider is unreachable
        """
        pass

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> str:
        """
        Create an account and sign it in.

        Returns:
            The new user id

        Raises:
            AuthenticationError: If the account could not be created
        """
        pass

    @abstractmethod
    async def sign_out(self) -> None:
        pass

    @abstractmethod
    async def delete_account(self) -> None:
        """
        Delete the signed-in user's identity record.

        Raises:
            AuthenticationError: If nobody is signed in or deletion fails
        """
        pass

    @property
    @abstractmethod
    def current_user_id(self) -> Optional[str]:
        """Id of the signed-in user, None for guests."""
        pass

    @abstractmethod
    def add_state_listener(self, listener: AuthStateListener) -> None:
        """Register a coroutine called after every change of signed-in user."""
        pass


class AuthenticationError(Exception):
    """An identity provider operation failed."""
    pass
