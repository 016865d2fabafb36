"""
Form helpers: theme and color-scheme suggestions from Gemini Flash.

Any failure, whether the service is unreachable or the response is
malformed, degrades to the static defaults. The reason is logged so the
two cases can still be told apart.
"""

import logging

from ..gemini import GeminiClient
from .prompts import (
    build_color_suggestions_prompt,
    build_theme_suggestions_prompt,
    string_list_schema,
)

logger = logging.getLogger(__name__)

OCCASION_SUGGESTIONS = [
    "Birthday Party",
    "Wedding Anniversary",
    "Baby Shower",
    "Graduation Party",
    "Holiday Gathering",
    "Dinner Party",
    "Summer Barbecue",
    "Engagement Party",
]

DEFAULT_THEME_SUGGESTIONS = [
    "Boho Chic",
    "Tropical Luau",
    "Rustic Farmhouse",
    "Modern Minimalist",
    "Vintage Glamour",
    "Under the Sea",
    "Superhero Academy",
    "Enchanted Forest",
    "Hollywood Red Carpet",
]

DEFAULT_COLOR_SCHEME_SUGGESTIONS = [
    "Pastel Pinks, Golds, and Cream",
    "Navy Blue and Rose Gold",
    "Black, White, and Gold",
    "Earthy Tones (Terracotta, Sage, Beige)",
    "Vibrant Rainbow",
    "Monochromatic Blues",
    "Sunset Hues (Orange, Yellow, Pink)",
]


async def _suggest(client: GeminiClient, prompt: str, key: str, fallback: list[str]) -> list[str]:
    try:
        payload = await client.generate_json(prompt, string_list_schema(key))
    except Exception as e:
        logger.warning(f"Suggestion request failed, using defaults: {e}")
        return list(fallback)

    values = payload.get(key) if isinstance(payload, dict) else None
    if not isinstance(values, list):
        logger.warning(f"Malformed suggestion response (no '{key}' list), using defaults")
        return list(fallback)

    cleaned = [v.strip() for v in values if isinstance(v, str) and v.strip()]
    return cleaned or list(fallback)


async def suggest_themes(client: GeminiClient, occasion: str) -> list[str]:
    return await _suggest(
        client, build_theme_suggestions_prompt(occasion), "themes", DEFAULT_THEME_SUGGESTIONS
    )


async def suggest_color_schemes(client: GeminiClient, theme: str) -> list[str]:
    return await _suggest(
        client, build_color_suggestions_prompt(theme), "colorSchemes", DEFAULT_COLOR_SCHEME_SUGGESTIONS
    )
