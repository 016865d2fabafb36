from __future__ import annotations

import asyncio
import base64
from collections import defaultdict
from typing import Callable, Optional

import pytest

from planner import metrics
from planner.pipeline import tour


GUIDE = """## Timeline

- Two weeks out: order balloons
- Day of: set up the dining table

[IMAGE: Overall View (Front)]
"""

SHOPPING = """## Decorations

- Pastel balloon garland
- Gold table runners
"""


class FakeGemini:
    """In-memory stand-in for GeminiClient. Records every call by method name."""

    def __init__(
        self,
        areas: Optional[object] = None,
        areas_error: Optional[Exception] = None,
        summaries: Optional[object] = None,
        summary_error: Optional[Exception] = None,
        text_error: Optional[Exception] = None,
        image_fail_on: tuple[str, ...] = (),
        edit_returns_none: bool = False,
        synthesis_returns_empty: bool = False,
        caption_fail_on: tuple[str, ...] = (),
        suggestions: Optional[dict] = None,
        suggestion_error: Optional[Exception] = None,
        polls_until_done: int = 1,
        video_uri: Optional[str] = "https://generativelanguage.googleapis.com/v1beta/files/vid:download?alt=media",
        operation_error: Optional[dict] = None,
        download_delay: float = 0,
        on_text: Optional[Callable[[str], None]] = None,
    ):
        self.areas = {"areas": ["Dining Table", "Entry Sign"]} if areas is None else areas
        self.areas_error = areas_error
        self.summaries = summaries if summaries is not None else {
            "planningSummary": "**Plan** it early. [IMAGE: Overall View (Front)]",
            "shoppingSummary": "Buy balloons. [IMAGE: Dining Table (Front View)]",
        }
        self.summary_error = summary_error
        self.text_error = text_error
        self.image_fail_on = image_fail_on
        self.edit_returns_none = edit_returns_none
        self.synthesis_returns_empty = synthesis_returns_empty
        self.caption_fail_on = caption_fail_on
        self.suggestions = suggestions or {}
        self.suggestion_error = suggestion_error
        self.polls_until_done = polls_until_done
        self.video_uri = video_uri
        self.operation_error = operation_error
        self.download_delay = download_delay
        self.on_text = on_text
        self.calls: dict[str, list] = defaultdict(list)
        self._image_counter = 0

    # ── text ─────────────────────────────────────────────────────────────

    async def generate_text(self, prompt: str) -> str:
        self.calls["generate_text"].append(prompt)
        if self.on_text:
            self.on_text(prompt)
        if self.text_error:
            raise self.text_error
        return GUIDE if "**Task:** Planning Guide" in prompt else SHOPPING

    async def generate_json(self, prompt: str, schema: dict) -> dict:
        keys = set(schema.get("properties", {}))
        self.calls["generate_json"].append((prompt, keys))
        if "areas" in keys:
            if self.areas_error:
                raise self.areas_error
            return self.areas
        if "planningSummary" in keys:
            if self.summary_error:
                raise self.summary_error
            return self.summaries
        if self.suggestion_error:
            raise self.suggestion_error
        return self.suggestions

    async def caption_image(self, image_b64: str, mime_type: str, prompt: str) -> str:
        self.calls["caption_image"].append(image_b64)
        if image_b64 in self.caption_fail_on:
            raise RuntimeError("caption blocked")
        return f"  Caption for {image_b64}.  "

    # ── images ───────────────────────────────────────────────────────────

    def _next_image(self) -> str:
        self._image_counter += 1
        return base64.b64encode(f"image-{self._image_counter}".encode()).decode()

    async def edit_image(self, image_b64: str, mime_type: str, prompt: str):
        self.calls["edit_image"].append(prompt)
        if any(s in prompt for s in self.image_fail_on):
            raise RuntimeError("edit failed")
        if self.edit_returns_none:
            return None
        return self._next_image(), "image/png"

    async def generate_images(self, prompt: str, aspect_ratio: str = "16:9", count: int = 1):
        self.calls["generate_images"].append((prompt, aspect_ratio, count))
        if any(s in prompt for s in self.image_fail_on):
            raise RuntimeError("synthesis failed")
        if self.synthesis_returns_empty:
            return []
        return [(self._next_image(), "image/png")]

    # ── video ────────────────────────────────────────────────────────────

    async def submit_video(self, prompt: str, image_b64: str, mime_type: str) -> dict:
        self.calls["submit_video"].append((prompt, image_b64, mime_type))
        return {"name": "operations/veo-123", "done": False}

    async def get_operation(self, name: str) -> dict:
        self.calls["get_operation"].append(name)
        if len(self.calls["get_operation"]) < self.polls_until_done:
            return {"name": name, "done": False}
        if self.operation_error:
            return {"name": name, "done": True, "error": self.operation_error}
        samples = [{"video": {"uri": self.video_uri}}] if self.video_uri else []
        return {
            "name": name,
            "done": True,
            "response": {"generateVideoResponse": {"generatedSamples": samples}},
        }

    async def download(self, uri: str):
        self.calls["download"].append(uri)
        if self.download_delay:
            await asyncio.sleep(self.download_delay)
        return b"fake-mp4-bytes", "video/mp4"


@pytest.fixture
def fake() -> FakeGemini:
    return FakeGemini()


@pytest.fixture(autouse=True)
def fast_polling(monkeypatch):
    monkeypatch.setattr(tour, "POLL_INTERVAL", 0)


@pytest.fixture(autouse=True)
def clean_metrics():
    metrics.reset()
    yield
    metrics.reset()
