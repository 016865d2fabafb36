import asyncio

from conftest import FakeGemini
from planner.pipeline.suggestions import (
    DEFAULT_COLOR_SCHEME_SUGGESTIONS,
    DEFAULT_THEME_SUGGESTIONS,
    suggest_color_schemes,
    suggest_themes,
)


def test_themes_from_model():
    fake = FakeGemini(suggestions={"themes": [" Disco Night ", "", "Garden Tea Party"]})
    themes = asyncio.run(suggest_themes(fake, "Birthday Party"))
    assert themes == ["Disco Night", "Garden Tea Party"]
    prompt, keys = fake.calls["generate_json"][0]
    assert "Birthday Party" in prompt
    assert keys == {"themes"}


def test_color_schemes_from_model():
    fake = FakeGemini(suggestions={"colorSchemes": ["Teal and Coral"]})
    assert asyncio.run(suggest_color_schemes(fake, "Tropical Luau")) == ["Teal and Coral"]


def test_request_failure_uses_defaults():
    fake = FakeGemini(suggestion_error=RuntimeError("timeout"))
    assert asyncio.run(suggest_themes(fake, "Wedding")) == DEFAULT_THEME_SUGGESTIONS
    assert asyncio.run(suggest_color_schemes(fake, "Boho")) == DEFAULT_COLOR_SCHEME_SUGGESTIONS


def test_malformed_response_uses_defaults():
    fake = FakeGemini(suggestions={"themes": "Disco"})
    assert asyncio.run(suggest_themes(fake, "Wedding")) == DEFAULT_THEME_SUGGESTIONS


def test_empty_list_uses_defaults():
    fake = FakeGemini(suggestions={"colorSchemes": []})
    assert asyncio.run(suggest_color_schemes(fake, "Boho")) == DEFAULT_COLOR_SCHEME_SUGGESTIONS


def test_defaults_are_copies():
    fake = FakeGemini(suggestion_error=RuntimeError("down"))
    themes = asyncio.run(suggest_themes(fake, "Wedding"))
    themes.append("Mutated")
    assert "Mutated" not in DEFAULT_THEME_SUGGESTIONS
    assert len(DEFAULT_THEME_SUGGESTIONS) == 9
