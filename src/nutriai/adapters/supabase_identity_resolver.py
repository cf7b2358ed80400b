"""Caller identity backed by Supabase Auth."""

import logging
from dataclasses import dataclass

from supabase import Client

from nutriai.domain.errors import AuthenticationError
from nutriai.services.identity import IdentityResolver

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseIdentityResolver(IdentityResolver):
    """Resolves bearer tokens to Supabase user ids."""

    client: Client

    def resolve(self, token: str) -> str:
        """Return the user id the token belongs to."""
        try:
            response = self.client.auth.get_user(token)
        except Exception as exc:
            _logger.info("Token rejected by Supabase Auth: %s", exc)
            raise AuthenticationError(
                "Invalid or expired credential", auth_status=_auth_status(exc)
            ) from exc
        user = getattr(response, "user", None)
        if user is None or not getattr(user, "id", None):
            raise AuthenticationError("Invalid or expired credential")
        return str(user.id)


def _auth_status(exc: Exception) -> str:
    message = str(exc).lower()
    if "expired" in message:
        return "Expired-Token"
    if "malformed" in message:
        return "Malformed-JWT"
    return "Invalid-Token"
