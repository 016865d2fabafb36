"""
Post-hoc tours for a finished plan.

  - Cinematic video: Veo long-running operation seeded with the front
    overview image, polled every POLL_INTERVAL seconds, then downloaded
    into the media store.
  - Slideshow: one Gemini Flash caption per image, resilient per image.

Either result replaces the plan's tour, so the two never coexist.
"""

import os
import asyncio
import logging
from typing import Iterable, Optional

from ..gemini import GeminiClient, parse_data_url, video_uri_from_operation
from .cancellation import CancelToken, run_cancellable
from .errors import VideoGenerationError
from .media import MediaStore, media_store
from .models import GeneratedImage, SlideshowFrame, SlideshowTour, VideoTour
from .prompts import CAPTION_PROMPT, VIDEO_PROMPT

logger = logging.getLogger(__name__)

# ── Config ───────────────────────────────────────────────────────────────────

POLL_INTERVAL = float(os.getenv("VIDEO_POLL_INTERVAL", "10"))  # seconds
MAX_POLLS = int(os.getenv("VIDEO_MAX_POLLS", "60"))  # 10 minutes max

MAIN_IMAGE_TITLE = "Overall View (Front)"
DEFAULT_CAPTION = "A beautiful view of the decorated space."


# =========================================================================
# Cinematic video
# =========================================================================

async def generate_cinematic_video(
    client: GeminiClient,
    images: Iterable[GeneratedImage],
    token: CancelToken,
    store: Optional[MediaStore] = None,
) -> VideoTour:
    store = store if store is not None else media_store

    main_image = next((img for img in images if img.title == MAIN_IMAGE_TITLE), None)
    if main_image is None:
        raise VideoGenerationError("Could not find the main generated image to create a video from.")

    image_b64, mime_type = parse_data_url(main_image.url)

    token.raise_if_cancelled("before video submit")
    logger.info("Starting cinematic video generation from generated image...")
    operation = await client.submit_video(VIDEO_PROMPT, image_b64, mime_type)

    polls = 0
    while not operation.get("done"):
        token.raise_if_cancelled("video poll")
        if polls >= MAX_POLLS:
            raise VideoGenerationError(
                f"Video generation timed out after {int(MAX_POLLS * POLL_INTERVAL)}s"
            )
        polls += 1
        logger.info(f"Video generation in progress, checking again in {POLL_INTERVAL:g}s...")
        await token.sleep(POLL_INTERVAL, "video poll wait")
        operation = await client.get_operation(operation["name"])

    if operation.get("error"):
        message = operation["error"].get("message", "Unknown Veo error")
        raise VideoGenerationError(f"Video generation failed: {message}")

    download_link = video_uri_from_operation(operation)
    if not download_link:
        logger.error(f"Video generation finished but no download link was found: {operation}")
        raise VideoGenerationError("Video generation failed: no download link provided.")

    logger.info("Video generated, fetching video data...")
    data, content_type = await run_cancellable(client.download(download_link), token, "video fetch")

    url = store.put(data, content_type or "video/mp4")
    logger.info(f"Video data fetched, stored as {url}")
    return VideoTour(url=url)


# =========================================================================
# Slideshow
# =========================================================================

def fallback_caption(title: str) -> str:
    return f"A closer look at the {title}."


async def _caption_frame(client: GeminiClient, image: GeneratedImage) -> SlideshowFrame:
    image_b64, mime_type = parse_data_url(image.url)
    try:
        caption = await client.caption_image(image_b64, mime_type, CAPTION_PROMPT)
        caption = (caption or DEFAULT_CAPTION).strip() or DEFAULT_CAPTION
    except Exception as e:
        logger.warning(f"Failed to generate caption for {image.title}: {e}")
        caption = fallback_caption(image.title)
    return SlideshowFrame(title=image.title, url=image.url, caption=caption)


async def generate_slideshow(
    client: GeminiClient,
    images: Iterable[GeneratedImage],
    token: CancelToken,
) -> SlideshowTour:
    token.raise_if_cancelled("before slideshow")
    frames = await asyncio.gather(*(_caption_frame(client, img) for img in images))
    token.raise_if_cancelled("after slideshow")
    return SlideshowTour(frames=tuple(frames))
