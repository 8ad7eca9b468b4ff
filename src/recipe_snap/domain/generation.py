"""Models for recipe generation results."""

import base64

from pydantic import BaseModel, ConfigDict, Field


class Recipe(BaseModel):
    """A suggested recipe as returned by the model."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str = Field(min_length=1)
    image_search: str = Field(default="", alias="imageSearch")
    time: str = ""
    difficulty: str = ""
    description: str = ""
    ingredients: list[str] = Field(default_factory=list)
    steps: list[str] = Field(default_factory=list)
    suggested_additions: list[str] = Field(
        default_factory=list, alias="suggestedAdditions"
    )

    def to_record(self) -> dict[str, object]:
        """Return the camelCase record stored in favorites and history."""
        return self.model_dump(by_alias=True)


class AnalysisResult(BaseModel):
    """Ingredients detected in a photo and recipes that use them."""

    ingredients: list[str]
    recipes: list[Recipe]


class RecipeSuggestions(BaseModel):
    """Recipes suggested for a known ingredient list."""

    recipes: list[Recipe]


class GeneratedImage(BaseModel):
    """A rendered dish image."""

    model_config = ConfigDict(populate_by_name=True)

    mime_type: str = Field(alias="mimeType")
    data: bytes

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("utf-8")
        return f"data:{self.mime_type};base64,{encoded}"


class RecipeConstraints(BaseModel):
    """User preferences that shape suggestions."""

    dietary_filters: str = ""
    servings: int = Field(default=2, ge=1)
    max_time: int = Field(default=0, ge=0)
    language: str = "en"
