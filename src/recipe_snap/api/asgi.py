"""ASGI entrypoint for the RecipeSnap API."""

from recipe_snap.api.app import create_app
from recipe_snap.containers import build_container

app = create_app(build_container())
