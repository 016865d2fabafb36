"""
Stage 4: Glanceable summaries with embedded image placeholders.

Fail-soft: on any failure both summaries become a fixed placeholder.
Placeholders are resolved only at render time (``render_summary``).
"""

import re
import logging
from dataclasses import dataclass
from typing import Iterable

from ..gemini import GeminiClient
from .cancellation import CancelToken
from .errors import StageResult
from .models import GeneratedImage, SummarySegment
from .prompts import SUMMARY_SCHEMA, build_summary_prompt

logger = logging.getLogger(__name__)

STAGE = "summaries"

SUMMARY_PLACEHOLDER = "Summary could not be generated."

IMAGE_PLACEHOLDER_RE = re.compile(r"\[IMAGE: (.*?)\]")


@dataclass(frozen=True)
class Summaries:
    planning_summary: str
    shopping_summary: str


FALLBACK_SUMMARIES = Summaries(SUMMARY_PLACEHOLDER, SUMMARY_PLACEHOLDER)


def _field(payload: dict, key: str) -> str:
    value = payload.get(key)
    if isinstance(value, str) and value.strip():
        return value
    return SUMMARY_PLACEHOLDER


async def generate_summaries(
    client: GeminiClient,
    planning_guide: str,
    shopping_list: str,
    images: Iterable[GeneratedImage],
    token: CancelToken,
) -> StageResult[Summaries]:
    token.raise_if_cancelled("before summaries")

    prompt = build_summary_prompt(planning_guide, shopping_list, (img.title for img in images))
    try:
        payload = await client.generate_json(prompt, SUMMARY_SCHEMA)
        if not isinstance(payload, dict):
            raise ValueError(f"Summary response is not an object: {str(payload)[:200]}")
    except Exception as e:
        logger.warning(f"Failed to generate summaries: {e}")
        return StageResult.fallback(STAGE, FALLBACK_SUMMARIES, str(e))

    return StageResult.ok(
        STAGE,
        Summaries(_field(payload, "planningSummary"), _field(payload, "shoppingSummary")),
    )


def render_summary(summary: str, images: Iterable[GeneratedImage]) -> list[SummarySegment]:
    """
    Split a summary into text and image segments in reading order.

    ``[IMAGE: Title]`` placeholders whose title matches no image are dropped.
    """
    by_title = {img.title: img for img in images}
    segments: list[SummarySegment] = []
    cursor = 0

    def add_text(text: str):
        if text.strip():
            segments.append(SummarySegment(kind="text", text=text.strip()))

    for match in IMAGE_PLACEHOLDER_RE.finditer(summary):
        add_text(summary[cursor:match.start()])
        image = by_title.get(match.group(1).strip())
        if image:
            segments.append(SummarySegment(kind="image", text=image.title, image=image))
        cursor = match.end()
    add_text(summary[cursor:])
    return segments
