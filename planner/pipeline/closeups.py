"""
Stage 2: Close-up area selection (Gemini Flash structured output).

Fail-soft: any problem yields the fixed default areas.
"""

import logging

from ..gemini import GeminiClient
from .cancellation import CancelToken
from .errors import StageResult
from .models import DecorFormData
from .prompts import CLOSEUP_AREAS_SCHEMA, build_closeup_areas_prompt

logger = logging.getLogger(__name__)

STAGE = "closeups"

MAX_AREAS = 4
DEFAULT_AREAS = ["Main Dining Table", "A Decorated Wall or Corner"]


def _clean_areas(payload) -> list[str]:
    if not isinstance(payload, dict) or not isinstance(payload.get("areas"), list):
        raise ValueError(f"Response has no 'areas' list: {str(payload)[:200]}")
    areas = [a.strip() for a in payload["areas"] if isinstance(a, str) and a.strip()]
    if not areas:
        raise ValueError("Response contained no usable areas")
    return areas[:MAX_AREAS]


async def select_closeup_areas(
    client: GeminiClient,
    planning_guide: str,
    form: DecorFormData,
    token: CancelToken,
) -> StageResult[list[str]]:
    token.raise_if_cancelled("before close-up selection")

    prompt = build_closeup_areas_prompt(planning_guide, form)
    try:
        payload = await client.generate_json(prompt, CLOSEUP_AREAS_SCHEMA)
        areas = _clean_areas(payload)
    except Exception as e:
        logger.warning(f"Failed to get close-up areas, falling back to defaults: {e}")
        return StageResult.fallback(STAGE, list(DEFAULT_AREAS), str(e))

    logger.info(f"Close-up areas: {areas}")
    return StageResult.ok(STAGE, areas)
