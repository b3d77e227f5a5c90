"""
Tests for NanoBananaService: OpenRouter drafting and recreation.

Uses httpx.MockTransport so requests never leave the process.
"""

import base64
import json
from io import BytesIO

import httpx
import pytest
from PIL import Image

from copycat.core.config import Config
from copycat.services.errors import ExternalCallError
from copycat.services.models import AspectTarget
from copycat.services.nano_banana_service import (
    NanoBananaService,
    calculate_cost,
    data_url_to_bytes,
)


def _png(width=4, height=4):
    buf = BytesIO()
    Image.new("RGB", (width, height), (1, 2, 3)).save(buf, format="PNG")
    return buf.getvalue()


def _make_service(handler):
    """Service whose HTTP client records requests and answers with `handler`."""
    requests = []

    def _record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(_record))
    return NanoBananaService(api_key="or-test", http_client=client), requests


def _image_reply(data: bytes) -> httpx.Response:
    url = "data:image/png;base64," + base64.b64encode(data).decode()
    return httpx.Response(200, json={
        "choices": [{"message": {"content": "", "images": [{"image_url": {"url": url}}]}}],
        "usage": {"prompt_tokens": 1000, "completion_tokens": 2000},
    })


class TestRender:
    @pytest.mark.asyncio
    async def test_decodes_returned_image(self):
        source = _png()
        service, requests = _make_service(lambda request: _image_reply(source))

        rendered = await service.render(
            "Recreate with the Algonova logo", AspectTarget(width=1080, height=1920), image_bytes=source
        )

        assert rendered.image_bytes == source
        assert rendered.backend == "nano_banana"
        assert rendered.model == Config.NANO_BANANA_MODEL
        assert rendered.metadata["cost"]["total_cost"] == pytest.approx(0.026)

        payload = json.loads(requests[0].content)
        assert payload["modalities"] == ["image", "text"]
        content = payload["messages"][0]["content"]
        assert content[0]["type"] == "image_url"
        assert "Aspect ratio: 1080:1920" in content[1]["text"]
        assert requests[0].headers["Authorization"] == "Bearer or-test"

    @pytest.mark.asyncio
    async def test_text_only_without_reference(self):
        service, requests = _make_service(lambda request: _image_reply(_png()))

        await service.render("A banner", AspectTarget(width=100, height=100))

        payload = json.loads(requests[0].content)
        assert isinstance(payload["messages"][0]["content"], str)

    @pytest.mark.asyncio
    async def test_error_status_raises_with_code(self):
        service, _ = _make_service(
            lambda request: httpx.Response(429, json={"error": {"message": "Rate limit exceeded"}})
        )

        with pytest.raises(ExternalCallError) as exc_info:
            await service.render("A banner", AspectTarget(width=100, height=100))

        assert exc_info.value.status_code == 429
        assert "Rate limit" in exc_info.value.message

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [["upstream", "overloaded"], "overloaded"])
    async def test_non_object_error_body_raises_with_code(self, body):
        service, _ = _make_service(lambda request: httpx.Response(502, json=body))

        with pytest.raises(ExternalCallError) as exc_info:
            await service.render("A banner", AspectTarget(width=100, height=100))

        assert exc_info.value.status_code == 502
        assert "overloaded" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_prompt_with_aspect_suffix_stays_within_budget(self, monkeypatch):
        monkeypatch.setattr(Config, "GENERATE_PROMPT_BUDGET", 300)
        service, requests = _make_service(lambda request: _image_reply(_png()))
        instruction = "Recreate the banner with the Algonova logo. " * 20

        rendered = await service.render(instruction, AspectTarget(width=1080, height=1920))

        sent = json.loads(requests[0].content)["messages"][0]["content"]
        assert len(sent) <= 300
        assert sent.endswith("Aspect ratio: 1080:1920 (1080x1920 pixels).")
        assert sent.startswith(rendered.instruction_used)

    @pytest.mark.asyncio
    async def test_no_images_raises(self):
        service, _ = _make_service(
            lambda request: httpx.Response(200, json={"choices": [{"message": {"content": "sorry"}}]})
        )

        with pytest.raises(ExternalCallError, match="No images"):
            await service.render("A banner", AspectTarget(width=100, height=100))

    @pytest.mark.asyncio
    async def test_network_error_is_wrapped(self):
        def _fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        service, _ = _make_service(_fail)

        with pytest.raises(ExternalCallError, match="ConnectError"):
            await service.render("A banner", AspectTarget(width=100, height=100))

    @pytest.mark.asyncio
    async def test_missing_key_raises(self, monkeypatch):
        monkeypatch.setattr(Config, "OPENROUTER_API_KEY", "")
        service = NanoBananaService()

        with pytest.raises(ExternalCallError, match="OPENROUTER_API_KEY"):
            await service.render("A banner", AspectTarget(width=100, height=100))


class TestDraftInstruction:
    @pytest.mark.asyncio
    async def test_returns_content(self):
        service, requests = _make_service(lambda request: httpx.Response(200, json={
            "choices": [{"message": {"content": "  Replace the logo with Algonova.  "}}],
        }))

        result = await service.draft_instruction(_png(), "Describe the edit")

        assert result == "Replace the logo with Algonova."
        assert json.loads(requests[0].content)["model"] == Config.OPENROUTER_DRAFT_MODEL

    @pytest.mark.asyncio
    async def test_empty_content_raises(self):
        service, _ = _make_service(lambda request: httpx.Response(200, json={"choices": []}))

        with pytest.raises(ExternalCallError):
            await service.draft_instruction(_png(), "Describe the edit")


class TestHelpers:
    def test_invalid_data_url(self):
        with pytest.raises(ExternalCallError, match="Invalid image data URL"):
            data_url_to_bytes("https://example.com/image.png")

    def test_calculate_cost_without_usage(self):
        assert calculate_cost(None, "nano-banana-pro")["total_cost"] == 0
