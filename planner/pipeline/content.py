"""
Stage 1: Planning Guide + Shopping List, requested concurrently from Gemini Flash.

Fail-loud: if either request fails the whole plan is aborted.
"""

import logging
from dataclasses import dataclass

from ..gemini import GeminiClient
from .cancellation import CancelToken, gather_or_cancel
from .errors import StageResult
from .models import DecorFormData
from .prompts import PLANNING_GUIDE, SHOPPING_LIST, build_task_prompt

logger = logging.getLogger(__name__)

STAGE = "content"


@dataclass(frozen=True)
class PlanContent:
    planning_guide: str
    shopping_list: str


async def generate_content(
    client: GeminiClient,
    form: DecorFormData,
    token: CancelToken,
) -> StageResult[PlanContent]:
    token.raise_if_cancelled("before content")

    planning_prompt = build_task_prompt(form, PLANNING_GUIDE)
    shopping_prompt = build_task_prompt(form, SHOPPING_LIST)

    try:
        planning_guide, shopping_list = await gather_or_cancel(
            client.generate_text(planning_prompt),
            client.generate_text(shopping_prompt),
        )
    except Exception as e:
        logger.error(f"Guide/list generation failed: {e}")
        return StageResult.failed(STAGE, str(e))

    if not planning_guide.strip() or not shopping_list.strip():
        return StageResult.failed(STAGE, "Gemini returned an empty planning guide or shopping list.")

    logger.info(
        f"Content generated: guide={len(planning_guide)} chars, list={len(shopping_list)} chars"
    )
    return StageResult.ok(STAGE, PlanContent(planning_guide, shopping_list))
