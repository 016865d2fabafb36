"""
Stage 3: Image batch from Gemini Flash Image (edit) or Imagen (synthesis).

The strategy is chosen once per request: with a venue photo every shot is
an edit of that photo, without one every shot is synthesized from text.
All shots run concurrently and a single failure fails the batch.
"""

import logging
from typing import Optional

from ..gemini import GeminiClient, to_data_url
from .closeups import MAX_AREAS
from .cancellation import CancelToken, gather_or_cancel
from .errors import ImageGenerationError, StageResult
from .models import DecorFormData, GeneratedImage, SourceImage
from .prompts import OVERVIEW_SHOTS, build_base_image_prompt, closeup_shots

logger = logging.getLogger(__name__)

STAGE = "images"

ASPECT_RATIO = "16:9"


class EditStrategy:
    """Re-decorate an uploaded photo."""

    name = "edit"

    def __init__(self, client: GeminiClient, source: SourceImage):
        self.client = client
        self.source = source

    async def __call__(self, prompt: str, title: str) -> GeneratedImage:
        image = await self.client.edit_image(self.source.data, self.source.mime_type, prompt)
        if not image:
            raise ImageGenerationError(f'Image generation failed for prompt: "{prompt}"')
        data, mime = image
        return GeneratedImage(title=title, url=to_data_url(data, mime or self.source.mime_type))


class SynthesisStrategy:
    """Photorealistic text-to-image at a fixed aspect ratio."""

    name = "synthesis"

    def __init__(self, client: GeminiClient):
        self.client = client

    async def __call__(self, prompt: str, title: str) -> GeneratedImage:
        logger.info(f"Generating image from text for: {title}")
        images = await self.client.generate_images(prompt, aspect_ratio=ASPECT_RATIO, count=1)
        if not images:
            raise ImageGenerationError(f'Image generation returned no images for "{title}".')
        data, mime = images[0]
        return GeneratedImage(title=title, url=to_data_url(data, mime))


def select_strategy(client: GeminiClient, source: Optional[SourceImage]):
    if source is not None and source.data:
        return EditStrategy(client, source)
    return SynthesisStrategy(client)


def plan_shots(form: DecorFormData, areas: list[str], edit_mode: bool) -> list[tuple[str, str]]:
    """Ordered (title, prompt) pairs: overview shots first, then each area's pair."""
    base = build_base_image_prompt(form, edit_mode)
    shots = [(title, f"{base} {instruction}") for title, instruction in OVERVIEW_SHOTS]
    for area in areas[:MAX_AREAS]:
        shots.extend((title, f"{base} {instruction}") for title, instruction in closeup_shots(area))
    return shots


async def generate_images(
    client: GeminiClient,
    form: DecorFormData,
    areas: list[str],
    source: Optional[SourceImage],
    token: CancelToken,
) -> StageResult[list[GeneratedImage]]:
    token.raise_if_cancelled("before images")

    strategy = select_strategy(client, source)
    shots = plan_shots(form, areas, edit_mode=strategy.name == "edit")
    logger.info(f"Generating {len(shots)} images ({strategy.name} mode)")

    try:
        images = await gather_or_cancel(*(strategy(prompt, title) for title, prompt in shots))
    except Exception as e:
        logger.error(f"Image batch failed: {e}")
        return StageResult.failed(STAGE, str(e))

    return StageResult.ok(STAGE, list(images))
