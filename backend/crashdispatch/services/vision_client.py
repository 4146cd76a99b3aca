"""Vision judge client for scoring accident evidence images."""

import asyncio
import base64
import json
import logging
import re
from dataclasses import dataclass
from typing import Any

import httpx
from openai import AsyncOpenAI

from crashdispatch.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

SEVERITY_PROMPT = """Analyze this accident scene and provide a JSON response with the following structure:
{
  "severity": <number from 0-100>,
  "analysis": "<detailed analysis>",
  "detectedInjuries": ["<injury1>", "<injury2>"],
  "vehicleDamage": "<damage description>",
  "recommendedServices": ["<service1>", "<service2>"]
}

Assess the severity of the accident, identify visible injuries, describe vehicle damage, and recommend appropriate emergency services (e.g., police, ambulance, fire department)."""

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class VisionClientError(Exception):
    """Base exception for vision judge errors."""

    pass


@dataclass(frozen=True)
class FetchedImage:
    """Image bytes ready to send to the judge."""

    data: bytes
    mime_type: str

    def data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode()
        return f"data:{self.mime_type};base64,{encoded}"


def sniff_mime_type(data: bytes) -> str:
    """Best-effort MIME type for raw image bytes."""
    if data.startswith(PNG_SIGNATURE):
        return "image/png"
    return "image/jpeg"


def strip_json(text: str) -> str:
    """Extract the JSON object from a reply that may be wrapped in a code fence."""
    text = text.strip()
    fenced = re.search(r"```(?:json)?\s*([\s\S]*?)```", text)
    if fenced:
        text = fenced.group(1).strip()
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1 and end > start:
        return text[start:end + 1]
    return text


class ImageFetcher:
    """
    Fetches evidence images concurrently.

    Raw bytes pass through untouched. URLs are fetched with a per-image
    timeout; failures are logged and dropped so partial evidence still
    gets judged.
    """

    def __init__(self, timeout: float = settings.image_fetch_timeout_seconds):
        self.timeout = timeout

    async def fetch(self, client: httpx.AsyncClient, ref: str | bytes) -> FetchedImage:
        if isinstance(ref, bytes):
            if not ref:
                raise VisionClientError("Empty image payload")
            return FetchedImage(data=ref, mime_type=sniff_mime_type(ref))

        response = await client.get(ref)
        response.raise_for_status()
        if not response.content:
            raise VisionClientError(f"Empty response body from {ref}")

        content_type = response.headers.get("content-type", "image/jpeg")
        mime_type = content_type.split(";")[0].strip() or "image/jpeg"
        return FetchedImage(data=response.content, mime_type=mime_type)

    async def fetch_all(self, refs: list[str | bytes]) -> list[FetchedImage]:
        if not refs:
            return []

        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            results = await asyncio.gather(
                *(self.fetch(client, ref) for ref in refs),
                return_exceptions=True,
            )

        images: list[FetchedImage] = []
        for ref, result in zip(refs, results):
            if isinstance(result, BaseException):
                label = ref if isinstance(ref, str) else f"<{len(ref)} bytes>"
                logger.warning(f"Skipping evidence image {label}: {result}")
                continue
            images.append(result)

        if len(images) < len(refs):
            logger.info(f"Fetched {len(images)} of {len(refs)} evidence images")
        return images


class OpenAIVisionJudge:
    """
    Scores accident images with an OpenAI vision-capable chat model.

    Unconfigured (``available() is False``) when no API key is set.
    """

    def __init__(
        self,
        api_key: str | None = settings.openai_api_key,
        model: str = settings.vision_model,
        max_tokens: int = 800,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self._client = AsyncOpenAI(api_key=api_key) if api_key else None

    def available(self) -> bool:
        return self._client is not None

    async def judge(self, images: list[FetchedImage]) -> dict[str, Any]:
        """Return the parsed JSON judgment for a set of images."""
        if self._client is None:
            raise VisionClientError("Vision judge is not configured")

        content: list[dict[str, Any]] = [{"type": "text", "text": SEVERITY_PROMPT}]
        content.extend(
            {"type": "image_url", "image_url": {"url": image.data_url()}}
            for image in images
        )

        response = await self._client.chat.completions.create(
            model=self.model,
            max_tokens=self.max_tokens,
            response_format={"type": "json_object"},
            messages=[{"role": "user", "content": content}],
        )
        raw = response.choices[0].message.content or ""
        if not raw.strip():
            raise VisionClientError("Vision judge returned an empty response")

        return json.loads(strip_json(raw))
