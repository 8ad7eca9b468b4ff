"""FastAPI application factory."""

import base64
import binascii
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from recipe_snap.api.billing import router as billing_router
from recipe_snap.api.models import (
    AnalyzeImageRequest,
    GeneratedImageResponse,
    GenerateImageRequest,
    RegenerateRecipesRequest,
)
from recipe_snap.app_logging import configure_logging
from recipe_snap.containers import AppContainer
from recipe_snap.domain.errors import MalformedResponse, TransportError
from recipe_snap.services.generation import RecipeGenerator


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(billing_router)

    @app.exception_handler(MalformedResponse)
    async def malformed_response(
        request: Request, exc: MalformedResponse
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": str(exc)},
        )

    @app.exception_handler(TransportError)
    async def transport_error(request: Request, exc: TransportError) -> JSONResponse:
        logger.warning("Upstream failure on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY, content={"detail": str(exc)}
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/api/analyze-image")
    async def analyze_image(
        body: AnalyzeImageRequest, request: Request
    ) -> dict[str, object]:
        """Identify ingredients in a photo and suggest recipes.

        The image type is detected from its bytes; a `mimeType` field, if sent,
        is ignored.
        """
        if not body.image_data:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Missing image data"
            )
        try:
            image_bytes = base64.b64decode(body.image_data, validate=True)
        except binascii.Error as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid image data"
            ) from exc
        generator = _require_generator(request)
        result = await generator.identify_and_suggest(image_bytes, body.constraints())
        return result.model_dump(by_alias=True)

    @app.post("/api/regenerate-recipes")
    async def regenerate_recipes(
        body: RegenerateRecipesRequest, request: Request
    ) -> dict[str, object]:
        """Suggest recipes for an edited ingredient list."""
        if not body.ingredients:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Missing ingredients"
            )
        generator = _require_generator(request)
        result = await generator.suggest_from_ingredients(
            body.ingredients, body.constraints()
        )
        return result.model_dump(by_alias=True)

    @app.post("/api/generate-image")
    async def generate_image(
        body: GenerateImageRequest, request: Request
    ) -> dict[str, object]:
        """Render a photo of a dish."""
        if not body.recipe_name:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Missing recipe name"
            )
        generator = _require_generator(request)
        image = await generator.render_image(
            {
                "name": body.recipe_name,
                "ingredients": body.ingredients[:6],
                "description": body.description,
            }
        )
        response = GeneratedImageResponse(
            mime_type=image.mime_type,
            data=base64.b64encode(image.data).decode("utf-8"),
        )
        return response.model_dump(by_alias=True)

    return app


def _require_generator(request: Request) -> RecipeGenerator:
    container: AppContainer = request.app.state.container
    if container.generation_service is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Generation service not configured",
        )
    return container.generation_service
