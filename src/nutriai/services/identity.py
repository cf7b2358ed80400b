"""Caller identity resolution."""

from typing import Protocol


class IdentityResolver(Protocol):
    """Interface that maps an opaque bearer credential to a caller id."""

    def resolve(self, token: str) -> str:
        """Return the caller id or raise AuthenticationError."""
