"""HTTP client for the RecipeSnap generation endpoints."""

import base64
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import httpx

from recipe_snap.domain.errors import MalformedResponse, TransportError
from recipe_snap.domain.generation import (
    AnalysisResult,
    GeneratedImage,
    RecipeConstraints,
    RecipeSuggestions,
)
from recipe_snap.services.generation import RecipeGenerator, detect_mime_type


@dataclass
class HttpxRecipeApiClient(RecipeGenerator):
    """Calls a deployed RecipeSnap API instead of the model directly."""

    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str) -> "HttpxRecipeApiClient":
        """Create an API client with a managed httpx session."""
        return cls(base_url=base_url.rstrip("/"), http_client=httpx.AsyncClient())

    async def identify_and_suggest(
        self, image_bytes: bytes, constraints: RecipeConstraints
    ) -> AnalysisResult:
        """POST a photo to /api/analyze-image."""
        payload = {
            "imageData": base64.b64encode(image_bytes).decode("utf-8"),
            "mimeType": detect_mime_type(image_bytes),
            **_constraint_fields(constraints),
        }
        data = await self._post("/api/analyze-image", payload, timeout=60)
        return _parse(AnalysisResult, data)

    async def suggest_from_ingredients(
        self, ingredients: Sequence[str], constraints: RecipeConstraints
    ) -> RecipeSuggestions:
        """POST ingredients to /api/regenerate-recipes."""
        payload = {"ingredients": list(ingredients), **_constraint_fields(constraints)}
        data = await self._post("/api/regenerate-recipes", payload, timeout=60)
        return _parse(RecipeSuggestions, data)

    async def render_image(self, recipe: Mapping[str, object]) -> GeneratedImage:
        """POST a recipe to /api/generate-image."""
        ingredients = recipe.get("ingredients")
        payload = {
            "recipeName": recipe.get("name"),
            "ingredients": list(ingredients)[:6] if isinstance(ingredients, list) else [],
            "description": recipe.get("description") or "",
        }
        data = await self._post("/api/generate-image", payload, timeout=120)
        try:
            return GeneratedImage(
                mime_type=str(data["mimeType"]), data=base64.b64decode(data["data"])
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedResponse("No image generated") from exc

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _post(
        self, path: str, payload: dict[str, object], timeout: float
    ) -> dict[str, object]:
        try:
            response = await self.http_client.post(
                f"{self.base_url}{path}", json=payload, timeout=timeout
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"Request to {path} failed: {exc}") from exc
        if response.status_code == httpx.codes.UNPROCESSABLE_ENTITY:
            raise MalformedResponse(_detail(response))
        if response.is_error:
            raise TransportError(
                f"Request to {path} failed with {response.status_code}: "
                f"{_detail(response)}"
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedResponse(f"Invalid JSON from {path}") from exc
        if not isinstance(data, dict):
            raise MalformedResponse(f"Unexpected response from {path}")
        return data


def _constraint_fields(constraints: RecipeConstraints) -> dict[str, object]:
    return {
        "dietaryFilters": constraints.dietary_filters,
        "servings": constraints.servings,
        "maxTime": constraints.max_time,
        "language": constraints.language,
    }


def _parse(model, data: dict[str, object]):  # type: ignore[no-untyped-def]
    try:
        return model.model_validate(data)
    except ValueError as exc:
        raise MalformedResponse("Unexpected response shape") from exc


def _detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and body.get("detail"):
        return str(body["detail"])
    return response.text
