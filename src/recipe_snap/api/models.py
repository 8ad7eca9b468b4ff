"""Request and response models for the HTTP API."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from recipe_snap.domain.checkout import CheckoutKind
from recipe_snap.domain.generation import RecipeConstraints


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConstraintFields(_CamelModel):
    """Generation preferences shared by the suggestion endpoints."""

    dietary_filters: str = ""
    servings: int = Field(default=2, ge=1)
    max_time: int = Field(default=0, ge=0)
    language: str = "en"

    def constraints(self) -> RecipeConstraints:
        return RecipeConstraints(
            dietary_filters=self.dietary_filters,
            servings=self.servings,
            max_time=self.max_time,
            language=self.language,
        )


class AnalyzeImageRequest(ConstraintFields):
    """Body of POST /api/analyze-image."""

    image_data: str = ""


class RegenerateRecipesRequest(ConstraintFields):
    """Body of POST /api/regenerate-recipes."""

    ingredients: list[str] = Field(default_factory=list)


class GenerateImageRequest(_CamelModel):
    """Body of POST /api/generate-image."""

    recipe_name: str = ""
    ingredients: list[str] = Field(default_factory=list)
    description: str = ""


class GeneratedImageResponse(_CamelModel):
    """Rendered image as base64 text."""

    mime_type: str
    data: str


class CheckoutRequest(_CamelModel):
    """Body of POST /api/create-checkout."""

    pack_name: str = ""
    kind: CheckoutKind = Field(default=CheckoutKind.PACK, alias="type")


class SessionUrlResponse(_CamelModel):
    """Where the browser goes to continue with the payment provider."""

    url: str
