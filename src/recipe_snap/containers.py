"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from supabase import Client, create_client

from recipe_snap.adapters.json_dir_store import JsonDirectoryLocalStore
from recipe_snap.adapters.json_file_store import JsonFileLocalStore
from recipe_snap.adapters.openai_recipe_client import OpenAIRecipeClient
from recipe_snap.adapters.recipe_api_client import HttpxRecipeApiClient
from recipe_snap.adapters.stripe_checkout import StripeCheckoutGateway
from recipe_snap.adapters.stripe_subscriptions import StripeSubscriptionLookup
from recipe_snap.adapters.supabase_billing_ledger import SupabaseBillingLedger
from recipe_snap.adapters.supabase_remote_store import SupabaseRemoteStore
from recipe_snap.adapters.supabase_user_verifier import SupabaseUserVerifier
from recipe_snap.config import Settings
from recipe_snap.services.auth import AuthSession
from recipe_snap.services.billing import BillingService, CreditDebiter
from recipe_snap.services.checkout import CheckoutService, UserVerifier
from recipe_snap.services.entitlements import EntitlementResolver
from recipe_snap.services.favorites import FavoritesService
from recipe_snap.services.generation import RecipeGenerationService, RecipeGenerator
from recipe_snap.services.history import SearchHistoryService
from recipe_snap.services.image_cache import ImageCache
from recipe_snap.services.local_store import LocalStore
from recipe_snap.services.purchases import PurchaseHistoryService
from recipe_snap.services.remote_store import RemoteStore
from recipe_snap.services.snaps import SnapService
from recipe_snap.services.user_settings import UserSettingsService


async def _noop() -> None:
    return None


@dataclass
class AppContainer:
    """Holds dependencies of the HTTP API."""

    settings: Settings
    generation_service: RecipeGenerator | None
    billing_service: BillingService | None
    close_resources: Callable[[], Awaitable[None]]
    checkout_service: CheckoutService | None = None
    user_verifier: UserVerifier | None = None


@dataclass
class ClientContainer:
    """Holds the per-component state of one app install.

    Each service owns its own storage namespace and is the only writer to it.
    """

    settings: Settings
    auth: AuthSession
    entitlements: EntitlementResolver
    favorites: FavoritesService
    history: SearchHistoryService
    user_settings: UserSettingsService
    purchases: PurchaseHistoryService
    image_cache: ImageCache
    snaps: SnapService | None
    close_resources: Callable[[], Awaitable[None]]

    async def start(self) -> None:
        """Load local state and register login watchers; safe to call twice."""
        await self.user_settings.init()
        await self.favorites.init()
        await self.history.init()


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the server-side dependency container."""
    resolved_settings = settings or Settings()
    generation_service = _build_generation_service(resolved_settings)

    billing_service = None
    checkout_service = None
    user_verifier = None
    supabase_client = _supabase_client(resolved_settings)
    if supabase_client is not None:
        stripe_key = resolved_settings.stripe_secret_key
        subscriptions = StripeSubscriptionLookup(stripe_key) if stripe_key else None
        billing_service = BillingService(
            ledger=SupabaseBillingLedger(supabase_client),
            subscriptions=subscriptions,
            default_subscription_credits=resolved_settings.subscription_credits,
        )
        user_verifier = SupabaseUserVerifier(supabase_client)
        if stripe_key:
            checkout_service = CheckoutService(
                gateway=StripeCheckoutGateway(stripe_key),
                profiles=SupabaseRemoteStore(supabase_client),
                pack_prices=resolved_settings.stripe_pack_prices,
                subscription_price_id=resolved_settings.stripe_monthly_price_id,
                subscription_credits=resolved_settings.subscription_credits,
            )

    return AppContainer(
        settings=resolved_settings,
        generation_service=generation_service,
        billing_service=billing_service,
        close_resources=_noop,
        checkout_service=checkout_service,
        user_verifier=user_verifier,
    )


def build_client_container(  # noqa: PLR0913
    settings: Settings | None = None,
    *,
    local_store: LocalStore | None = None,
    image_store: LocalStore | None = None,
    remote_store: RemoteStore | None = None,
    ledger: CreditDebiter | None = None,
    generator: RecipeGenerator | None = None,
) -> ClientContainer:
    """Create the client-side container.

    Anything not passed in is built from settings; Supabase-backed pieces are
    left as None when Supabase is not configured.
    """
    resolved_settings = settings or Settings()
    store_dir = Path(resolved_settings.local_store_dir)
    if local_store is None:
        local_store = JsonFileLocalStore(store_dir / "state.json")
    if image_store is None:
        image_store = JsonDirectoryLocalStore(store_dir / "images")

    supabase_client = _supabase_client(resolved_settings)
    if supabase_client is not None:
        remote_store = remote_store or SupabaseRemoteStore(supabase_client)
        ledger = ledger or SupabaseBillingLedger(supabase_client)

    close_resources = _noop
    if generator is None and resolved_settings.recipe_api_url:
        api_client = HttpxRecipeApiClient.create(resolved_settings.recipe_api_url)
        generator = api_client
        close_resources = api_client.close
    if generator is None:
        generator = _build_generation_service(resolved_settings)

    auth = AuthSession(remote_store=remote_store)
    entitlements = EntitlementResolver(
        auth=auth,
        local_store=local_store,
        ledger=ledger,
        free_uses_limit=resolved_settings.free_uses,
        limit_uses=resolved_settings.limit_uses,
    )
    favorites = FavoritesService(auth, local_store, remote_store)
    history = SearchHistoryService(auth, local_store, remote_store)
    user_settings = UserSettingsService(auth, local_store, remote_store)
    purchases = PurchaseHistoryService(auth, remote_store)
    image_cache = ImageCache(image_store)
    snaps = (
        SnapService(
            entitlements=entitlements,
            generator=generator,
            history=history,
            settings=user_settings,
            image_cache=image_cache,
        )
        if generator is not None
        else None
    )

    return ClientContainer(
        settings=resolved_settings,
        auth=auth,
        entitlements=entitlements,
        favorites=favorites,
        history=history,
        user_settings=user_settings,
        purchases=purchases,
        image_cache=image_cache,
        snaps=snaps,
        close_resources=close_resources,
    )


_client_container: ClientContainer | None = None


def get_client_container() -> ClientContainer:
    """Return the process-wide client container, building it on first use."""
    global _client_container  # noqa: PLW0603
    if _client_container is None:
        _client_container = build_client_container()
    return _client_container


def reset_client_container(container: ClientContainer | None = None) -> None:
    """Replace or drop the process-wide client container (tests only)."""
    global _client_container  # noqa: PLW0603
    _client_container = container


def _supabase_client(settings: Settings) -> Client | None:
    if not settings.supabase_configured:
        return None
    return create_client(settings.supabase_url, settings.supabase_key)


def _build_generation_service(settings: Settings) -> RecipeGenerationService | None:
    if not settings.openai_api_key:
        return None
    return RecipeGenerationService(
        client=OpenAIRecipeClient.create(settings.openai_api_key),
        model=settings.openai_model,
        image_model=settings.openai_image_model,
        store=settings.openai_store,
    )
