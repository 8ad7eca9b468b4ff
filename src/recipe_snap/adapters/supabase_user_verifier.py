"""Supabase Auth check for bearer tokens."""

import asyncio
from dataclasses import dataclass

from supabase import AuthApiError, AuthError, Client

from recipe_snap.domain.checkout import AuthenticatedUser
from recipe_snap.domain.errors import TransportError
from recipe_snap.services.checkout import UserVerifier


@dataclass
class SupabaseUserVerifier(UserVerifier):
    """Asks Supabase Auth which user an access token belongs to."""

    client: Client

    async def verify(self, token: str) -> AuthenticatedUser | None:
        """Return the token's user, or None when Supabase rejects it."""
        try:
            response = await asyncio.to_thread(self.client.auth.get_user, token)
        except AuthApiError:
            return None
        except AuthError as exc:
            raise TransportError(f"Auth service error: {exc}") from exc
        if response is None or response.user is None:
            return None
        return AuthenticatedUser(id=response.user.id, email=response.user.email)
