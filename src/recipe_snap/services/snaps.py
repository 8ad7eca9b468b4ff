"""The photo-to-recipes flow seen by the app."""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from urllib.parse import quote

from recipe_snap.domain.generation import AnalysisResult, RecipeSuggestions
from recipe_snap.services.entitlements import EntitlementResolver
from recipe_snap.services.generation import RecipeGenerator
from recipe_snap.services.history import SearchHistoryService
from recipe_snap.services.image_cache import ImageCache
from recipe_snap.services.user_settings import UserSettingsService

_logger = logging.getLogger(__name__)

PLACEHOLDER_IMAGE = "data:image/svg+xml," + quote(
    '<svg width="400" height="300" xmlns="http://www.w3.org/2000/svg">'
    '<rect width="100%" height="100%" fill="#f0f0f0"/>'
    '<text x="50%" y="55%" text-anchor="middle" fill="#999" '
    'font-family="system-ui" font-size="14">Image unavailable</text>'
    "</svg>"
)


@dataclass
class SnapService:
    """Gate, generate, remember.

    An entitlement is spent before the generation request is sent; if the
    request then fails the use is not refunded.
    """

    entitlements: EntitlementResolver
    generator: RecipeGenerator
    history: SearchHistoryService
    settings: UserSettingsService
    image_cache: ImageCache

    async def snap(self, image_bytes: bytes) -> AnalysisResult:
        """Spend one use, analyse the photo and record the search.

        Raises LoginRequired, NoCreditsRemaining, CapabilityUnavailable or
        TransportError when no use could be spent, and MalformedResponse or
        TransportError when generation fails.
        """
        consumption = await self.entitlements.resolve_consumption()
        consumption.raise_for_error()
        analysis = await self.generator.identify_and_suggest(
            image_bytes, self.settings.constraints()
        )
        await self.history.add_to_history(
            analysis.ingredients, [recipe.to_record() for recipe in analysis.recipes]
        )
        return analysis

    async def regenerate(self, ingredients: Sequence[str]) -> RecipeSuggestions:
        """Suggest recipes for an edited ingredient list and record the search."""
        suggestions = await self.generator.suggest_from_ingredients(
            list(ingredients), self.settings.constraints()
        )
        await self.history.add_to_history(
            ingredients, [recipe.to_record() for recipe in suggestions.recipes]
        )
        return suggestions

    async def recipe_image(self, recipe: Mapping[str, object] | str) -> str:
        """Return a data URL for a dish, rendering and caching on a miss."""
        if isinstance(recipe, str):
            recipe = {"name": recipe}
        name = str(recipe.get("name") or "")
        cached = self.image_cache.get(name)
        if cached:
            return cached
        try:
            image = await self.generator.render_image(recipe)
        except Exception:
            _logger.exception("Image generation failed for %s", name)
            return PLACEHOLDER_IMAGE
        data_url = image.to_data_url()
        self.image_cache.put(name, data_url)
        return data_url
