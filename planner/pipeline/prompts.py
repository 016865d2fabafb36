"""
Prompt templates for the decor pipeline.

Everything here is pure string construction from ``DecorFormData``.
"""

from typing import Iterable, Optional

from .models import DecorFormData

PLANNING_GUIDE = "Planning Guide"
SHOPPING_LIST = "Shopping List"

INTENSITY_MAP = {
    1: "Minimalist and subtle with very few decorative pieces.",
    2: "Lightly decorated with some key accents.",
    3: "A standard, balanced amount of decorations suitable for the occasion.",
    4: "Festive and abundant with plenty of decorations.",
    5: "Maximalist and extravagant, filling the space with decorative elements.",
}
DEFAULT_INTENSITY = "A balanced amount of decorations."

TASK_INSTRUCTIONS = {
    PLANNING_GUIDE: (
        "**Instructions:** Generate a comprehensive, practical, step-by-step planning and "
        "setup guide. Include a timeline, layout plan, setup instructions, and professional "
        "tips. Format the output nicely using markdown-like headings (e.g., **Timeline**)."
    ),
    SHOPPING_LIST: (
        "**Instructions:** Create a detailed, categorized shopping list. Where possible, "
        "suggest generic online store links for item categories (e.g., Amazon, Etsy, Party "
        "City). Be mindful of the budget and eco-friendly preference. Format the output "
        "nicely using markdown-like headings and bullet points."
    ),
}

GUIDE_SNIPPET_CHARS = 1000


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def describe_intensity(level: int) -> str:
    return INTENSITY_MAP.get(level, DEFAULT_INTENSITY)


def build_task_prompt(form: DecorFormData, task: str) -> str:
    """Planning Guide / Shopping List prompt embedding every form field."""
    eco = "Yes, prioritize sustainable options" if form.eco_friendly else "No"
    prompt = f"""You are an expert event planner and interior decorator.

**Task:** {task}

**Event Details:**
- Occasion: {form.occasion}
- Theme: {form.theme}
- Space Type: {form.space_type.value}
- Number of Guests: {form.guests}
- Venue Area: {form.area} sq ft
- Budget: ${form.budget}
- Planning Time: {form.time_to_plan} days
- Color Scheme: {form.color_scheme}
- Decoration Intensity: {describe_intensity(form.decor_intensity)}
- Decor Style: {form.decor_elements.value}
- Furniture: {form.furniture.value}
- Dining: {form.dining_setting.value}
- Activity Corner: {_yes_no(form.activity_corner)}
- Photobooth: {_yes_no(form.photobooth)}
- Eco-Friendly Focus: {eco}
"""
    instructions = TASK_INSTRUCTIONS.get(task)
    if instructions:
        prompt += f"\n{instructions}"
    return prompt


# ── Close-up Areas ───────────────────────────────────────────────────────────

CLOSEUP_AREAS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "areas": {
            "type": "ARRAY",
            "items": {
                "type": "STRING",
                "description": "A short, descriptive name for a decorated area to be visualized.",
            },
        }
    },
}


def build_closeup_areas_prompt(planning_guide: str, form: DecorFormData) -> str:
    snippet = planning_guide[:GUIDE_SNIPPET_CHARS]
    return f"""Based on the following event details and the generated planning guide, identify 3 to 4 key decorated areas, surfaces, or specific furniture pieces that would be most impactful to visualize in detailed close-up images. Focus on areas with distinct decorative elements.

**Event Details:**
- Occasion: {form.occasion}
- Theme: {form.theme}
- Color Scheme: {form.color_scheme}
- Dining: {form.dining_setting.value}
- Activity Corner: {_yes_no(form.activity_corner)}
- Photobooth: {_yes_no(form.photobooth)}

**Planning Guide Snippet:**
"{snippet}..."

Provide your answer as a JSON object with a single key "areas" which is an array of short, descriptive strings (max 5 words each). For example: {{"areas": ["Main dining table centerpiece", "Welcome sign at the entrance", "Themed photo booth backdrop", "Ceiling light fixtures with decor"]}}."""


# ── Images ───────────────────────────────────────────────────────────────────

OVERVIEW_SHOTS = (
    ("Overall View (Front)", "Show a wide, front-facing overall view of the fully decorated space."),
    ("Overall View (Top)", "Show a top-down, bird's-eye view of the decorated space layout."),
    ("Overall View (Angled)", "Show a wide view of the decorated space from a corner, at an angle."),
    ("Overall View (Entrance)", "Show the decorated space as a guest sees it when arriving at the entrance."),
)


def build_base_image_prompt(form: DecorFormData, edit_mode: bool) -> str:
    details = (
        f'for a {form.occasion} with a "{form.theme}" theme. '
        f"The color scheme is {form.color_scheme}. "
        f"The dining setup is {form.dining_setting.value}. "
        f"The decoration intensity should be: **{describe_intensity(form.decor_intensity)}**"
    )
    if edit_mode:
        return f"Using the provided image as the base, re-imagine and decorate the space {details}"
    return f"Generate a photorealistic image of a decorated {form.space_type.value} {details}"


def closeup_shots(area: str) -> list[tuple[str, str]]:
    """(title, shot instruction) pairs for one focal area: front then angled."""
    return [
        (
            f"{area} (Front View)",
            "Show a detailed, close-up front view plainly showing the items used in the "
            f"decoration for this specific area: **{area}**.",
        ),
        (
            f"{area} (Angled View)",
            "Show a detailed, close-up angled or top view plainly showing the items used in "
            f"the decoration for this specific area: **{area}**.",
        ),
    ]


# ── Summaries ────────────────────────────────────────────────────────────────

SUMMARY_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "planningSummary": {
            "type": "STRING",
            "description": "A concise markdown summary of the planning guide with image placeholders.",
        },
        "shoppingSummary": {
            "type": "STRING",
            "description": "A concise markdown summary of the shopping list with image placeholders.",
        },
    },
}


def build_summary_prompt(planning_guide: str, shopping_list: str, image_titles: Iterable[str]) -> str:
    titles = "\n".join(f"- {title}" for title in image_titles)
    return f"""You are an expert event planner who creates concise, visual summaries.

**Task:**
Based on the detailed "Planning Guide" and "Shopping List" provided, create two brief, glanceable summaries.
1.  **Planning Summary:** A short, easy-to-read summary of the key steps and ideas from the planning guide.
2.  **Shopping Summary:** A high-level overview of the essential items from the shopping list.

**Instructions:**
- Keep the summaries concise and use markdown for readability (bolding, bullet points).
- Where relevant, embed ONE or TWO of the most appropriate images directly into each summary to make it more visual.
- Use the placeholder format `[IMAGE: Image Title]` to indicate where an image should go.
- You MUST use the exact titles from the "Available Images" list provided below.

**Available Images:**
{titles}

**Full Content:**
---
**Planning Guide:**
{planning_guide}
---
**Shopping List:**
{shopping_list}
---

Return your response as a single JSON object with two keys: "planningSummary" and "shoppingSummary"."""


# ── Tour ─────────────────────────────────────────────────────────────────────

VIDEO_PROMPT = (
    "Generate a short, high-definition, approximately 1-minute slow-motion video showing "
    "a cinematic, sweeping pan across this decorated space."
)

CAPTION_PROMPT = (
    "Write a short, engaging one-sentence caption for this image, to be used in a video "
    "slideshow of a decorated party space."
)


# ── Suggestions ──────────────────────────────────────────────────────────────

def build_theme_suggestions_prompt(occasion: str) -> str:
    return f'Generate a list of 5 popular and creative party themes for a "{occasion}".'


def build_color_suggestions_prompt(theme: str) -> str:
    return f'Generate a list of 5 fitting and stylish color schemes for a party with a "{theme}" theme.'


def string_list_schema(key: str, description: Optional[str] = None) -> dict:
    items: dict = {"type": "STRING"}
    if description:
        items["description"] = description
    return {"type": "OBJECT", "properties": {key: {"type": "ARRAY", "items": items}}}
