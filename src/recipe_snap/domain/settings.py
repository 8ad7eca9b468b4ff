"""User-facing settings blob synchronized between device and cloud."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DietaryFilters(BaseModel):
    """Named dietary toggles applied to recipe suggestions."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    vegetarian: bool = False
    vegan: bool = False
    gluten_free: bool = False
    dairy_free: bool = False

    def describe(self) -> str:
        """Return the enabled filters as a readable phrase, e.g. 'vegan, gluten-free'."""
        labels = {
            "vegetarian": "vegetarian",
            "vegan": "vegan",
            "gluten_free": "gluten-free",
            "dairy_free": "dairy-free",
        }
        return ", ".join(
            label for field, label in labels.items() if getattr(self, field)
        )


class SettingsBlob(BaseModel):
    """Full settings object; every remote write sends all fields."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, validate_assignment=True
    )

    dark_mode: bool = True
    servings: int = Field(default=2, ge=1)
    dietary_filters: DietaryFilters = Field(default_factory=DietaryFilters)
    max_time: int = Field(default=0, ge=0)
    language: str = "en"

    def to_json(self) -> dict[str, object]:
        """Return the camelCase shape stored in the profile."""
        return self.model_dump(by_alias=True)
