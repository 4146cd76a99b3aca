"""Tests for the vision judge client and image fetcher."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from crashdispatch.services.vision_client import (
    FetchedImage,
    ImageFetcher,
    OpenAIVisionJudge,
    VisionClientError,
    sniff_mime_type,
    strip_json,
)

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 8
JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 8


def _mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestHelpers:
    """Tests for response and payload helpers."""

    def test_strip_json_plain(self):
        assert strip_json('{"severity": 40}') == '{"severity": 40}'

    def test_strip_json_code_fence(self):
        raw = 'Here you go:\n```json\n{"severity": 40}\n```\nThanks'
        assert strip_json(raw) == '{"severity": 40}'

    def test_strip_json_surrounding_prose(self):
        assert strip_json('Result: {"a": {"b": 1}} done') == '{"a": {"b": 1}}'

    def test_sniff_mime_type(self):
        assert sniff_mime_type(PNG) == "image/png"
        assert sniff_mime_type(JPEG) == "image/jpeg"

    def test_data_url(self):
        image = FetchedImage(data=b"abc", mime_type="image/png")
        assert image.data_url() == "data:image/png;base64,YWJj"


class TestImageFetcher:
    """Tests for ImageFetcher."""

    @pytest.mark.asyncio
    async def test_fetch_url(self):
        def handler(request):
            return httpx.Response(200, content=JPEG, headers={"content-type": "image/jpeg; q=1"})

        async with _mock_client(handler) as client:
            image = await ImageFetcher().fetch(client, "http://evidence/1.jpg")

        assert image.data == JPEG
        assert image.mime_type == "image/jpeg"

    @pytest.mark.asyncio
    async def test_fetch_http_error(self):
        async with _mock_client(lambda request: httpx.Response(404)) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await ImageFetcher().fetch(client, "http://evidence/missing.jpg")

    @pytest.mark.asyncio
    async def test_fetch_empty_body(self):
        async with _mock_client(lambda request: httpx.Response(200, content=b"")) as client:
            with pytest.raises(VisionClientError):
                await ImageFetcher().fetch(client, "http://evidence/empty.jpg")

    @pytest.mark.asyncio
    async def test_fetch_all_drops_failures(self):
        """Raw bytes pass through; an empty payload is skipped, not fatal."""
        images = await ImageFetcher().fetch_all([PNG, b"", JPEG])

        assert [i.mime_type for i in images] == ["image/png", "image/jpeg"]

    @pytest.mark.asyncio
    async def test_fetch_all_empty(self):
        assert await ImageFetcher().fetch_all([]) == []


class TestOpenAIVisionJudge:
    """Tests for OpenAIVisionJudge."""

    def test_unconfigured_without_key(self):
        assert OpenAIVisionJudge(api_key=None).available() is False

    def test_configured_with_key(self):
        assert OpenAIVisionJudge(api_key="sk-test").available() is True

    @pytest.mark.asyncio
    async def test_judge_requires_configuration(self):
        with pytest.raises(VisionClientError):
            await OpenAIVisionJudge(api_key=None).judge([FetchedImage(PNG, "image/png")])

    @pytest.mark.asyncio
    async def test_judge_parses_response(self):
        judge = OpenAIVisionJudge(api_key="sk-test", model="test-model")
        reply = SimpleNamespace(
            choices=[
                SimpleNamespace(message=SimpleNamespace(content='```json\n{"severity": 72}\n```'))
            ]
        )
        judge._client = MagicMock()
        judge._client.chat.completions.create = AsyncMock(return_value=reply)

        payload = await judge.judge([FetchedImage(PNG, "image/png"), FetchedImage(JPEG, "image/jpeg")])

        assert payload == {"severity": 72}
        kwargs = judge._client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["response_format"] == {"type": "json_object"}
        content = kwargs["messages"][0]["content"]
        assert content[0]["type"] == "text"
        assert [part["type"] for part in content[1:]] == ["image_url", "image_url"]
        assert content[1]["image_url"]["url"].startswith("data:image/png;base64,")

    @pytest.mark.asyncio
    async def test_judge_empty_reply(self):
        judge = OpenAIVisionJudge(api_key="sk-test")
        reply = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=""))])
        judge._client = MagicMock()
        judge._client.chat.completions.create = AsyncMock(return_value=reply)

        with pytest.raises(VisionClientError):
            await judge.judge([FetchedImage(PNG, "image/png")])
