"""Recipe suggestion and dish rendering using LLMs."""

import base64
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from recipe_snap.domain.errors import MalformedResponse
from recipe_snap.domain.generation import (
    AnalysisResult,
    GeneratedImage,
    RecipeConstraints,
    RecipeSuggestions,
)

NO_INGREDIENTS_MESSAGE = (
    "No food ingredients could be identified in this image. "
    "Please try a clearer photo of your ingredients."
)
NO_RECIPES_MESSAGE = (
    "No recipes could be suggested for these ingredients. "
    "Please try different ingredients."
)

LANGUAGE_NAMES = {
    "en": "English",
    "de": "German",
    "es": "Spanish",
    "fr": "French",
    "it": "Italian",
    "nl": "Dutch",
    "pt": "Portuguese",
}

_STRING_LIST: dict[str, object] = {"type": "array", "items": {"type": "string"}}

_RECIPE_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "imageSearch": {"type": "string"},
        "time": {"type": "string"},
        "difficulty": {"type": "string"},
        "description": {"type": "string"},
        "ingredients": _STRING_LIST,
        "steps": _STRING_LIST,
        "suggestedAdditions": _STRING_LIST,
    },
    "required": [
        "name",
        "imageSearch",
        "time",
        "difficulty",
        "description",
        "ingredients",
        "steps",
        "suggestedAdditions",
    ],
    "additionalProperties": False,
}

ANALYSIS_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "ingredients": _STRING_LIST,
        "recipes": {"type": "array", "items": _RECIPE_SCHEMA},
    },
    "required": ["ingredients", "recipes"],
    "additionalProperties": False,
}

SUGGESTIONS_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {"recipes": {"type": "array", "items": _RECIPE_SCHEMA}},
    "required": ["recipes"],
    "additionalProperties": False,
}


class RecipeModelClient(Protocol):
    """Interface for the underlying generative model API."""

    async def generate(  # noqa: PLR0913
        self,
        *,
        model: str,
        store: bool,
        prompt: str,
        schema: dict[str, object],
        schema_name: str,
        image_data_url: str | None = None,
    ) -> dict[str, object]:
        """Return structured output matching `schema`."""

    async def render_image(self, *, model: str, prompt: str) -> GeneratedImage:
        """Return a rendered image for a prompt."""


class RecipeGenerator(Protocol):
    """What callers need from recipe generation, local or remote."""

    async def identify_and_suggest(
        self, image_bytes: bytes, constraints: RecipeConstraints
    ) -> AnalysisResult:
        """Identify ingredients in a photo and suggest recipes."""

    async def suggest_from_ingredients(
        self, ingredients: Sequence[str], constraints: RecipeConstraints
    ) -> RecipeSuggestions:
        """Suggest recipes for a known ingredient list."""

    async def render_image(self, recipe: Mapping[str, object]) -> GeneratedImage:
        """Render a picture of a dish."""


@dataclass
class RecipeGenerationService(RecipeGenerator):
    """Builds prompts, calls the model and validates what comes back."""

    client: RecipeModelClient
    model: str
    image_model: str
    store: bool = False

    async def identify_and_suggest(
        self, image_bytes: bytes, constraints: RecipeConstraints
    ) -> AnalysisResult:
        """Identify ingredients in a photo and suggest recipes."""
        raw = await self.client.generate(
            model=self.model,
            store=self.store,
            prompt=build_analysis_prompt(constraints),
            schema=ANALYSIS_SCHEMA,
            schema_name="recipe_analysis",
            image_data_url=_to_data_url(image_bytes),
        )
        result = _validate(AnalysisResult, raw, NO_INGREDIENTS_MESSAGE)
        if not result.ingredients:
            raise MalformedResponse(NO_INGREDIENTS_MESSAGE)
        if not result.recipes:
            raise MalformedResponse(NO_RECIPES_MESSAGE)
        return result

    async def suggest_from_ingredients(
        self, ingredients: Sequence[str], constraints: RecipeConstraints
    ) -> RecipeSuggestions:
        """Suggest recipes for a known ingredient list."""
        if not ingredients:
            raise ValueError("ingredients must not be empty")
        raw = await self.client.generate(
            model=self.model,
            store=self.store,
            prompt=build_suggestion_prompt(ingredients, constraints),
            schema=SUGGESTIONS_SCHEMA,
            schema_name="recipe_suggestions",
        )
        result = _validate(RecipeSuggestions, raw, NO_RECIPES_MESSAGE)
        if not result.recipes:
            raise MalformedResponse(NO_RECIPES_MESSAGE)
        return result

    async def render_image(self, recipe: Mapping[str, object]) -> GeneratedImage:
        """Render a picture of a dish."""
        name = str(recipe.get("name") or "").strip()
        if not name:
            raise ValueError("recipe name is required")
        return await self.client.render_image(
            model=self.image_model, prompt=build_image_prompt(recipe)
        )


def build_analysis_prompt(constraints: RecipeConstraints) -> str:
    """Prompt for identifying ingredients in a photo and suggesting recipes."""
    prompt = (
        "You are an experienced chef. Identify every visible food ingredient in "
        "the image, then suggest 3-5 real, well-known recipes from established "
        "cuisines that use coherent subsets of them. Do not invent fusion dishes; "
        "leave out ingredients that do not fit together. Assume basic pantry "
        "staples (salt, pepper, oil, common spices) are available. For each "
        "recipe give 1-3 suggestedAdditions not in the photo, and an imageSearch "
        "phrase naming the dish plainly in English."
    )
    return prompt + _constraint_clauses(constraints)


def build_suggestion_prompt(
    ingredients: Sequence[str], constraints: RecipeConstraints
) -> str:
    """Prompt for suggesting recipes from a known ingredient list."""
    prompt = (
        "You are an experienced chef. Based on these ingredients: "
        f"{', '.join(ingredients)}, suggest 3-5 real, well-known recipes from "
        "established cuisines. Each recipe should use a coherent subset of the "
        "ingredients; prefer classic dishes over creative fusions. Assume basic "
        "pantry staples are available."
    )
    return prompt + _constraint_clauses(constraints)


def build_image_prompt(recipe: Mapping[str, object]) -> str:
    """Prompt for rendering an appetizing photo of a dish."""
    name = str(recipe.get("name") or "")
    ingredients = recipe.get("ingredients")
    description = str(recipe.get("description") or "")
    if isinstance(ingredients, list) and ingredients:
        main = ", ".join(str(item) for item in ingredients[:6])
        subject = (
            f"this recipe:\n\nRecipe: {name}\nMain ingredients: {main}\n"
            f"Description: {description}\n\n"
        )
    else:
        subject = f'"{name}". '
    return (
        f"Generate an appetizing food photography image of {subject}"
        "The dish is plated on a clean plate or bowl, professionally lit, shot "
        "from above or at a 45-degree angle."
    )


def _constraint_clauses(constraints: RecipeConstraints) -> str:
    clauses: list[str] = []
    if constraints.language and constraints.language != "en":
        language = LANGUAGE_NAMES.get(constraints.language, "English")
        clauses.append(
            f"Respond entirely in {language}; only imageSearch stays in English."
        )
    if constraints.dietary_filters:
        clauses.append(f"Only suggest {constraints.dietary_filters} recipes.")
    if constraints.max_time > 0:
        clauses.append(
            f"Only suggest recipes ready in {constraints.max_time} minutes or less, "
            "including prep."
        )
    if constraints.servings != 2:
        clauses.append(
            f"Adjust all ingredient quantities for {constraints.servings} servings."
        )
    return "".join(f"\n\nIMPORTANT: {clause}" for clause in clauses)


def _validate(model, raw: object, message: str):  # type: ignore[no-untyped-def]
    """Validate raw model output, mapping schema errors to MalformedResponse."""
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise MalformedResponse(message) from exc


def _to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
