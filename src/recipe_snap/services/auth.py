"""Signed-in user state and login-transition detection."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from recipe_snap.domain.entitlements import Profile
from recipe_snap.services.remote_store import RemoteStore

_logger = logging.getLogger(__name__)

AuthListener = Callable[[str | None], Awaitable[None]]


@dataclass
class AuthSession:
    """Holds the current user id and cached profile.

    The identity provider is outside this package: whatever performs sign-in
    calls `sign_in` with the resulting user id and `sign_out` afterwards.
    Listeners are awaited in registration order on every change.
    """

    remote_store: RemoteStore | None = None
    user_id: str | None = None
    profile: Profile | None = None
    _listeners: list[AuthListener] = field(default_factory=list)

    @property
    def is_logged_in(self) -> bool:
        return self.user_id is not None

    @property
    def credits(self) -> int:
        return self.profile.credits if self.profile else 0

    @property
    def subscription_credits(self) -> int:
        return self.profile.subscription_credits if self.profile else 0

    @property
    def has_active_subscription(self) -> bool:
        return bool(self.profile and self.profile.has_active_subscription)

    def subscribe(self, listener: AuthListener) -> None:
        """Register a callback for login-state changes."""
        self._listeners.append(listener)

    async def sign_in(self, user_id: str) -> None:
        """Record a signed-in user, load the profile and notify listeners."""
        self.user_id = user_id
        try:
            await self.fetch_profile()
        except Exception:
            _logger.exception("Failed to load profile for %s", user_id)
        await self._notify()

    async def sign_out(self) -> None:
        """Forget the current user and notify listeners."""
        self.user_id = None
        self.profile = None
        await self._notify()

    async def fetch_profile(self) -> Profile | None:
        """Reload the profile from the remote store."""
        if self.remote_store is None or self.user_id is None:
            return None
        user_id = self.user_id
        row = await asyncio.to_thread(self.remote_store.get_profile, user_id)
        if row is not None and self.user_id == user_id:
            self.profile = Profile.from_row(row)
        return self.profile

    async def _notify(self) -> None:
        for listener in list(self._listeners):
            await listener(self.user_id)


@dataclass
class LoginWatcher:
    """Fires `on_login` only when the login state flips from out to in.

    Transitions are serialized: a login that arrives while a previous callback
    is still running waits for it instead of overlapping.
    """

    on_login: Callable[[str], Awaitable[None]]
    _was_logged_in: bool = False
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    async def __call__(self, user_id: str | None) -> None:
        logged_in = user_id is not None
        previous = self._was_logged_in
        self._was_logged_in = logged_in
        if not logged_in or previous:
            return
        async with self._lock:
            await self.on_login(user_id)
