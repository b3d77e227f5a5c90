"""
Nano Banana Service - OpenRouter client for drafting and recreation.

- draft_instruction: Claude (vision) via OpenRouter chat completions
- render: Gemini 3 Pro Image ("Nano Banana Pro") via OpenRouter with
  `modalities: ["image", "text"]`; the image comes back as a data URL in
  `choices[0].message.images[0].image_url.url`
"""

import base64
import logging
import re
import time
from typing import Any, Dict, Optional

import httpx

from ..core.config import Config
from .errors import ExternalCallError
from .models import AspectTarget, EditMask, RenderedImage
from .openai_image_service import to_data_url
from .prompt_budget import truncate_prompt

logger = logging.getLogger(__name__)

SERVICE_NAME = "openrouter"

_DATA_URL = re.compile(r"^data:image/[\w.+-]+;base64,(.+)$", re.DOTALL)

# USD per million tokens
PRICING = {
    "nano-banana-pro": {"input": 2.0, "output": 12.0},
    "claude-3.5-sonnet": {"input": 3.0, "output": 15.0},
}


def data_url_to_bytes(data_url: str) -> bytes:
    """Decode a base64 image data URL."""
    match = _DATA_URL.match(data_url or "")
    if not match:
        raise ExternalCallError(SERVICE_NAME, "Invalid image data URL format")
    return base64.b64decode(match.group(1))


def calculate_cost(usage: Optional[Dict[str, Any]], model_key: str) -> Dict[str, float]:
    """Token cost breakdown from an OpenRouter `usage` block."""
    usage = usage or {}
    pricing = PRICING[model_key]
    input_tokens = usage.get("prompt_tokens") or 0
    output_tokens = usage.get("completion_tokens") or 0
    input_cost = input_tokens / 1_000_000 * pricing["input"]
    output_cost = output_tokens / 1_000_000 * pricing["output"]
    return {
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "input_cost": input_cost,
        "output_cost": output_cost,
        "total_cost": input_cost + output_cost,
    }


class NanoBananaService:
    """
    Service for OpenRouter drafting (Claude) and image recreation (Gemini).
    """

    name = "nano_banana"

    def __init__(
        self,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 180.0,
    ):
        self.api_key = api_key or Config.OPENROUTER_API_KEY
        self.http_client = http_client
        self.timeout = timeout

        if not self.api_key:
            logger.warning("NanoBananaService initialized without API key")

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": Config.OPENROUTER_REFERER,
            "X-Title": Config.OPENROUTER_TITLE,
        }

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise ExternalCallError(SERVICE_NAME, "OPENROUTER_API_KEY is not configured")

        try:
            if self.http_client is not None:
                response = await self.http_client.post(
                    Config.OPENROUTER_BASE_URL, headers=self._headers(), json=payload
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(
                        Config.OPENROUTER_BASE_URL, headers=self._headers(), json=payload
                    )
        except httpx.HTTPError as e:
            raise ExternalCallError(SERVICE_NAME, f"{type(e).__name__}: {e}") from e

        if response.status_code != 200:
            try:
                body = response.json()
            except ValueError:
                body = None
            error = body.get("error") if isinstance(body, dict) else None
            detail = error.get("message") if isinstance(error, dict) else error
            detail = str(detail or response.text)
            raise ExternalCallError(SERVICE_NAME, detail[:500], response.status_code)

        return response.json()

    async def draft_instruction(self, image_bytes: bytes, request_text: str) -> str:
        """
        Draft a render instruction from the source image with Claude.

        Args:
            image_bytes: Source creative
            request_text: Drafting request (policy instruction + output contract)

        Returns:
            Drafted instruction text
        """
        payload = {
            "model": Config.OPENROUTER_DRAFT_MODEL,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "image_url", "image_url": {"url": to_data_url(image_bytes)}},
                        {"type": "text", "text": request_text},
                    ],
                }
            ],
            "temperature": Config.DRAFT_TEMPERATURE,
            "max_tokens": 2000,
        }
        result = await self._post(payload)

        choices = result.get("choices") or []
        content = choices[0].get("message", {}).get("content") if choices else None
        if not content:
            raise ExternalCallError(SERVICE_NAME, "No instruction returned from drafting model")

        cost = calculate_cost(result.get("usage"), "claude-3.5-sonnet")
        logger.info(f"Drafted instruction ({len(content)} chars), cost ${cost['total_cost']:.4f}")
        return content.strip()

    async def render(
        self,
        instruction: str,
        target: AspectTarget,
        image_bytes: Optional[bytes] = None,
        mask: Optional[EditMask] = None,
    ) -> RenderedImage:
        """
        Recreate the creative from the instruction.

        The source image, when given, is attached as a visual reference.
        """
        suffix = f"\n\nAspect ratio: {target.width}:{target.height} ({target.size_string} pixels)."
        fitted = truncate_prompt(instruction, Config.GENERATE_PROMPT_BUDGET - len(suffix))
        prompt = fitted + suffix
        if image_bytes is not None:
            content: Any = [
                {"type": "image_url", "image_url": {"url": to_data_url(image_bytes)}},
                {"type": "text", "text": prompt},
            ]
        else:
            content = prompt

        payload = {
            "model": Config.NANO_BANANA_MODEL,
            "messages": [{"role": "user", "content": content}],
            "modalities": ["image", "text"],
            "temperature": Config.RENDER_TEMPERATURE,
            "max_tokens": 4096,
        }

        start = time.time()
        result = await self._post(payload)
        elapsed_ms = int((time.time() - start) * 1000)

        choices = result.get("choices") or []
        message = choices[0].get("message", {}) if choices else {}
        images = message.get("images") or []
        if not images:
            raise ExternalCallError(SERVICE_NAME, "No images returned from Nano Banana Pro")

        image_url = images[0].get("image_url", {}).get("url", "")
        cost = calculate_cost(result.get("usage"), "nano-banana-pro")
        logger.info(f"Nano Banana Pro image received in {elapsed_ms}ms, cost ${cost['total_cost']:.4f}")

        return RenderedImage(
            image_bytes=data_url_to_bytes(image_url),
            backend=self.name,
            model=Config.NANO_BANANA_MODEL,
            instruction_used=fitted,
            generation_time_ms=elapsed_ms,
            metadata={"cost": cost},
        )
