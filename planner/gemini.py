"""
Gemini integration for decor planning.

- Text / JSON: Gemini 2.5 Flash via REST generateContent
- Image Edit: Gemini 2.5 Flash Image (inline image in, inline image out)
- Image Synthesis: Imagen 4 via REST predict
- Video: Veo 2 via predictLongRunning + operation polling
"""

import os
import json
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

# ── Config ───────────────────────────────────────────────────────────────────

API_BASE = os.getenv("GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta")

TEXT_MODEL = os.getenv("GEMINI_TEXT_MODEL", "gemini-2.5-flash")
IMAGE_EDIT_MODEL = os.getenv("GEMINI_IMAGE_EDIT_MODEL", "gemini-2.5-flash-image-preview")
IMAGEN_MODEL = os.getenv("IMAGEN_MODEL", "imagen-4.0-generate-001")
VEO_MODEL = os.getenv("VEO_MODEL", "veo-2.0-generate-001")


class GeminiAPIError(Exception):
    """Transport-level or protocol-level failure talking to the Gemini API."""


def _env_api_key() -> str:
    # Read lazily so load_dotenv() in main takes effect.
    return os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY", "")


def parse_data_url(data_url: str, default_mime: str = "image/png") -> tuple[str, str]:
    """Split a data URL into (base64 payload, mime type)."""
    if data_url.startswith("data:"):
        header, b64data = data_url.split(",", 1)
        mime = header.split(":")[1].split(";")[0] or default_mime
        return b64data, mime
    return data_url, default_mime


def to_data_url(b64data: str, mime: str) -> str:
    return f"data:{mime};base64,{b64data}"


def _parse_json_response(text: str) -> dict:
    """Parse JSON from Gemini response, handling markdown code blocks."""
    text = text.strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        if "```" in text:
            json_block = text.split("```")[1]
            if json_block.startswith("json"):
                json_block = json_block[4:]
            return json.loads(json_block.strip())
        raise GeminiAPIError(f"Gemini returned invalid JSON: {text[:200]}")


def _candidate_parts(result: dict) -> list:
    candidates = result.get("candidates") or []
    if not candidates:
        feedback = result.get("promptFeedback", {})
        raise GeminiAPIError(f"Gemini returned no candidates (feedback: {feedback})")
    return candidates[0].get("content", {}).get("parts", [])


def _text_from_parts(parts: list) -> str:
    return "".join(part.get("text", "") for part in parts if "text" in part)


class GeminiClient:
    """
    Thin async client over the Gemini REST API.

    Every call opens its own ``httpx.AsyncClient`` so concurrent stage
    requests never share connection state. ``transport`` lets tests swap in
    an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_base: str = API_BASE,
        timeout: float = 120,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else _env_api_key()
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout or self.timeout,
            transport=self._transport,
            follow_redirects=True,
        )

    def _require_key(self):
        if not self.api_key:
            raise GeminiAPIError("GEMINI_API_KEY not set")

    async def _post(self, path: str, body: dict) -> dict:
        self._require_key()
        async with self._client() as client:
            resp = await client.post(
                f"{self.api_base}/{path}",
                params={"key": self.api_key},
                json=body,
            )
        if resp.status_code != 200:
            raise GeminiAPIError(f"Gemini API error {resp.status_code}: {resp.text[:500]}")
        return resp.json()

    async def _generate_content(self, model: str, parts: list, config: dict | None = None) -> dict:
        """Call Gemini generateContent REST endpoint."""
        body: dict = {"contents": [{"parts": parts}]}
        if config:
            body["generationConfig"] = config
        return await self._post(f"models/{model}:generateContent", body)

    # =====================================================================
    # Text
    # =====================================================================

    async def generate_text(self, prompt: str, model: str = TEXT_MODEL) -> str:
        result = await self._generate_content(model, [{"text": prompt}])
        return _text_from_parts(_candidate_parts(result))

    async def generate_json(self, prompt: str, schema: dict, model: str = TEXT_MODEL) -> dict:
        """Schema-constrained completion; returns the decoded JSON object."""
        result = await self._generate_content(
            model,
            [{"text": prompt}],
            config={"responseMimeType": "application/json", "responseSchema": schema},
        )
        text = _text_from_parts(_candidate_parts(result))
        return _parse_json_response(text)

    async def caption_image(
        self, image_b64: str, mime_type: str, prompt: str, model: str = TEXT_MODEL
    ) -> str:
        parts = [
            {"inlineData": {"mimeType": mime_type, "data": image_b64}},
            {"text": prompt},
        ]
        result = await self._generate_content(model, parts)
        return _text_from_parts(_candidate_parts(result))

    # =====================================================================
    # Images
    # =====================================================================

    async def edit_image(
        self, image_b64: str, mime_type: str, prompt: str, model: str = IMAGE_EDIT_MODEL
    ) -> Optional[tuple[str, str]]:
        """
        Send a source image plus an edit instruction.

        Returns (base64 data, mime type) of the last inline image part, or
        None when the model answered without an image.
        """
        parts = [
            {"inlineData": {"mimeType": mime_type, "data": image_b64}},
            {"text": prompt},
        ]
        result = await self._generate_content(
            model, parts, config={"responseModalities": ["IMAGE", "TEXT"]}
        )

        image = None
        for part in _candidate_parts(result):
            inline = part.get("inlineData")
            if inline and inline.get("data"):
                image = (inline["data"], inline.get("mimeType", mime_type))
        return image

    async def generate_images(
        self,
        prompt: str,
        aspect_ratio: str = "16:9",
        count: int = 1,
        model: str = IMAGEN_MODEL,
    ) -> list[tuple[str, str]]:
        """Text-to-image via Imagen. Returns a list of (base64 data, mime type)."""
        body = {
            "instances": [{"prompt": prompt}],
            "parameters": {
                "sampleCount": count,
                "aspectRatio": aspect_ratio,
                "outputOptions": {"mimeType": "image/png"},
            },
        }
        result = await self._post(f"models/{model}:predict", body)
        images = []
        for prediction in result.get("predictions") or []:
            data = prediction.get("bytesBase64Encoded")
            if data:
                images.append((data, prediction.get("mimeType", "image/png")))
        return images

    # =====================================================================
    # Video (long-running operation)
    # =====================================================================

    async def submit_video(
        self, prompt: str, image_b64: str, mime_type: str, model: str = VEO_MODEL
    ) -> dict:
        """Start a Veo generation; returns the operation record ({name, done, ...})."""
        body = {
            "instances": [
                {
                    "prompt": prompt,
                    "image": {"bytesBase64Encoded": image_b64, "mimeType": mime_type},
                }
            ],
            "parameters": {"sampleCount": 1},
        }
        operation = await self._post(f"models/{model}:predictLongRunning", body)
        if not operation.get("name"):
            raise GeminiAPIError(f"Veo submit returned no operation name: {operation}")
        logger.info(f"Veo operation submitted: {operation['name']}")
        return operation

    async def get_operation(self, name: str) -> dict:
        self._require_key()
        async with self._client(timeout=30) as client:
            resp = await client.get(f"{self.api_base}/{name}", params={"key": self.api_key})
        if resp.status_code != 200:
            raise GeminiAPIError(f"Gemini operation poll error {resp.status_code}: {resp.text[:500]}")
        return resp.json()

    async def download(self, uri: str) -> tuple[bytes, str]:
        """Fetch a generated asset. Returns (raw bytes, content type)."""
        self._require_key()
        async with self._client(timeout=300) as client:
            # The URI already carries alt=media; keep it.
            url = httpx.URL(uri).copy_merge_params({"key": self.api_key})
            resp = await client.get(url)
        if resp.status_code != 200:
            raise GeminiAPIError(f"Failed to fetch asset: {resp.status_code} {resp.reason_phrase}")
        content_type = resp.headers.get("Content-Type", "video/mp4")
        return resp.content, content_type.split(";")[0]


def video_uri_from_operation(operation: dict) -> Optional[str]:
    """Dig the first generated sample's URI out of a finished Veo operation."""
    response = operation.get("response") or {}
    video_response = response.get("generateVideoResponse") or response
    samples = video_response.get("generatedSamples") or video_response.get("generatedVideos") or []
    if not samples or not isinstance(samples, list):
        return None
    video = samples[0].get("video") or {}
    return video.get("uri")
