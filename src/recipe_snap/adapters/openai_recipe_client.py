"""OpenAI client for recipe suggestions and dish images."""

import base64
import json
from dataclasses import dataclass

from openai import APIError, AsyncOpenAI

from recipe_snap.domain.errors import MalformedResponse, TransportError
from recipe_snap.domain.generation import GeneratedImage
from recipe_snap.services.generation import RecipeModelClient


@dataclass
class OpenAIRecipeClient(RecipeModelClient):
    """Model client backed by the OpenAI Responses and Images APIs."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAIRecipeClient":
        """Create an OpenAI recipe client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

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
        """Call the Responses API with structured outputs."""
        content: list[dict[str, object]] = [{"type": "input_text", "text": prompt}]
        if image_data_url is not None:
            content.append({"type": "input_image", "image_url": image_data_url})
        request_payload: dict[str, object] = {
            "model": model,
            "input": [{"role": "user", "content": content}],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": schema_name,
                    "strict": True,
                    "schema": schema,
                }
            },
            "store": store,
        }

        try:
            response = await self.client.responses.create(**request_payload)
        except APIError as exc:
            raise TransportError(f"OpenAI request failed: {exc}") from exc
        output_text = response.output_text
        if not output_text:
            raise MalformedResponse("OpenAI returned an empty response")
        try:
            parsed = json.loads(output_text)
        except ValueError as exc:
            raise MalformedResponse("OpenAI returned invalid JSON") from exc
        if not isinstance(parsed, dict):
            raise MalformedResponse("OpenAI returned a non-object response")
        return parsed

    async def render_image(self, *, model: str, prompt: str) -> GeneratedImage:
        """Call the Images API and decode the first image."""
        try:
            response = await self.client.images.generate(
                model=model, prompt=prompt, size="1024x1024", n=1
            )
        except APIError as exc:
            raise TransportError(f"OpenAI image request failed: {exc}") from exc
        if not response.data or not response.data[0].b64_json:
            raise MalformedResponse("No image generated")
        return GeneratedImage(
            mime_type="image/png", data=base64.b64decode(response.data[0].b64_json)
        )
