"""Identity provider contract."""

from rental_manager.services.identity.interface import (
    AuthenticationError,
    AuthStateListener,
    IdentityProvider,
)

__all__ = [
    "AuthenticationError",
    "AuthStateListener",
    "IdentityProvider",
]
