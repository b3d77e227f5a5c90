"""
OpenAI Image Service - instruction drafting, masked edit and text-to-image.

Three capabilities over one AsyncOpenAI client:
- draft_instruction: GPT-4o vision reads the source creative and writes the
  render instruction (JSON {"prompt": ...} reply, plain text accepted)
- edit_with_mask: DALL·E masked edit (short prompt budget)
- generate_from_text: DALL·E text-to-image (long prompt budget)

`as_inpaint_backend()` / `as_recreate_backend()` expose the last two through
the common `render(...)` interface used by the generation pipeline.
"""

import base64
import json
import logging
import re
import time
from io import BytesIO
from typing import Optional, Tuple

import openai
from openai import AsyncOpenAI
from PIL import Image

from ..core.config import Config
from .dimension_service import openai_size_for
from .errors import ExternalCallError
from .models import AspectTarget, EditMask, RenderedImage

logger = logging.getLogger(__name__)

SERVICE_NAME = "openai"

# DALL·E 2 edits only accept square images
EDIT_SIZE = 1024

_FENCED_JSON = re.compile(r"```(?:json)?\s*\n([\s\S]*?)\n```")


def detect_mime_type(data: bytes) -> str:
    """MIME type from magic numbers (PNG when unknown)."""
    if data[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if data[:4] == b"\x89PNG":
        return "image/png"
    if data[:3] == b"GIF":
        return "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "image/png"


def to_data_url(data: bytes) -> str:
    return f"data:{detect_mime_type(data)};base64,{base64.b64encode(data).decode('utf-8')}"


def parse_prompt_reply(content: str) -> str:
    """
    Extract the instruction from a drafting reply.

    Accepts a bare JSON object, a fenced ```json block, or plain text.
    """
    text = content.strip()
    match = _FENCED_JSON.search(text)
    if match:
        text = match.group(1).strip()

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return content.strip()

    if isinstance(parsed, dict) and isinstance(parsed.get("prompt"), str):
        return parsed["prompt"].strip()
    return content.strip()


def _square_png(data: bytes, mode: str) -> Tuple[bytes, Tuple[int, int]]:
    """Resize to the square edit size; returns PNG bytes and the original size."""
    with Image.open(BytesIO(data)) as img:
        original_size = img.size
        square = img.convert(mode).resize((EDIT_SIZE, EDIT_SIZE), Image.LANCZOS)
    out = BytesIO()
    square.save(out, format="PNG")
    return out.getvalue(), original_size


class OpenAIImageService:
    """
    Service for drafting and rendering with OpenAI models.
    """

    def __init__(self, api_key: Optional[str] = None, client: Optional[AsyncOpenAI] = None):
        """
        Initialize OpenAIImageService.

        Args:
            api_key: Optional API key (defaults to Config.OPENAI_API_KEY)
            client: Optional preconfigured AsyncOpenAI client
        """
        self.api_key = api_key or Config.OPENAI_API_KEY
        self.client = client

        if self.client is None:
            if self.api_key:
                self.client = AsyncOpenAI(api_key=self.api_key)
            else:
                logger.warning("OpenAIImageService initialized without API key")

    def _require_client(self) -> AsyncOpenAI:
        if self.client is None:
            raise ExternalCallError(SERVICE_NAME, "OpenAI API key not configured")
        return self.client

    async def draft_instruction(self, image_bytes: bytes, request_text: str) -> str:
        """
        Draft a render instruction from the source image.

        Args:
            image_bytes: Source creative
            request_text: Drafting request (policy instruction + output contract)

        Returns:
            Drafted instruction text
        """
        client = self._require_client()
        try:
            response = await client.chat.completions.create(
                model=Config.OPENAI_VISION_MODEL,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": request_text},
                            {"type": "image_url", "image_url": {"url": to_data_url(image_bytes)}},
                        ],
                    }
                ],
                temperature=Config.DRAFT_TEMPERATURE,
                max_tokens=1000,
            )
        except openai.APIError as e:
            raise ExternalCallError(SERVICE_NAME, str(e), getattr(e, "status_code", None)) from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ExternalCallError(SERVICE_NAME, f"No content in {Config.OPENAI_VISION_MODEL} reply")

        instruction = parse_prompt_reply(content)
        logger.info(f"Drafted instruction ({len(instruction)} chars) with {Config.OPENAI_VISION_MODEL}")
        return instruction

    async def edit_with_mask(self, image_bytes: bytes, mask: EditMask, instruction: str) -> bytes:
        """
        Masked edit: only the white area of `mask` may change.

        The edit endpoint works on squares, so image and mask are resized to
        EDIT_SIZE and the result is scaled back to the source size.
        """
        client = self._require_client()
        image_png, original_size = _square_png(image_bytes, "RGBA")
        mask_png, _ = _square_png(mask.to_alpha_mask_png(), "RGBA")

        try:
            response = await client.images.edit(
                model=Config.OPENAI_EDIT_MODEL,
                image=("image.png", image_png, "image/png"),
                mask=("mask.png", mask_png, "image/png"),
                prompt=instruction,
                n=1,
                size=f"{EDIT_SIZE}x{EDIT_SIZE}",
                response_format="b64_json",
            )
        except openai.APIError as e:
            raise ExternalCallError(SERVICE_NAME, str(e), getattr(e, "status_code", None)) from e

        edited = self._first_image(response)
        with Image.open(BytesIO(edited)) as img:
            restored = img.convert("RGBA").resize(original_size, Image.LANCZOS)
        out = BytesIO()
        restored.save(out, format="PNG")
        return out.getvalue()

    async def generate_from_text(self, instruction: str, size: str) -> bytes:
        """Text-to-image generation at one of the supported DALL·E sizes."""
        client = self._require_client()
        try:
            response = await client.images.generate(
                model=Config.OPENAI_GENERATE_MODEL,
                prompt=instruction,
                size=size,
                quality="hd",
                n=1,
                response_format="b64_json",
            )
        except openai.APIError as e:
            raise ExternalCallError(SERVICE_NAME, str(e), getattr(e, "status_code", None)) from e

        return self._first_image(response)

    @staticmethod
    def _first_image(response) -> bytes:
        data = getattr(response, "data", None) or []
        b64 = data[0].b64_json if data else None
        if not b64:
            raise ExternalCallError(SERVICE_NAME, "No image data returned")
        return base64.b64decode(b64)

    def as_inpaint_backend(self) -> "OpenAIMaskedEditBackend":
        return OpenAIMaskedEditBackend(self)

    def as_recreate_backend(self) -> "OpenAIRecreateBackend":
        return OpenAIRecreateBackend(self)


class OpenAIMaskedEditBackend:
    """Render backend: image + mask + instruction through the edit endpoint."""

    name = "openai_edit"

    def __init__(self, service: OpenAIImageService):
        self.service = service

    async def render(
        self,
        instruction: str,
        target: AspectTarget,
        image_bytes: Optional[bytes] = None,
        mask: Optional[EditMask] = None,
    ) -> RenderedImage:
        if image_bytes is None or mask is None:
            raise ValueError("Masked edit requires the source image and an edit mask")

        start = time.time()
        edited = await self.service.edit_with_mask(image_bytes, mask, instruction)
        elapsed_ms = int((time.time() - start) * 1000)

        logger.info(f"Masked edit completed in {elapsed_ms}ms ({mask.white_fraction:.1%} of canvas editable)")
        return RenderedImage(
            image_bytes=edited,
            backend=self.name,
            model=Config.OPENAI_EDIT_MODEL,
            instruction_used=instruction,
            generation_time_ms=elapsed_ms,
        )


class OpenAIRecreateBackend:
    """Render backend: text-to-image from the drafted instruction."""

    name = "openai_generate"

    def __init__(self, service: OpenAIImageService):
        self.service = service

    async def render(
        self,
        instruction: str,
        target: AspectTarget,
        image_bytes: Optional[bytes] = None,
        mask: Optional[EditMask] = None,
    ) -> RenderedImage:
        size = openai_size_for(target)

        start = time.time()
        generated = await self.service.generate_from_text(instruction, size)
        elapsed_ms = int((time.time() - start) * 1000)

        logger.info(f"Text-to-image completed in {elapsed_ms}ms at {size} (target {target.size_string})")
        return RenderedImage(
            image_bytes=generated,
            backend=self.name,
            model=Config.OPENAI_GENERATE_MODEL,
            instruction_used=instruction,
            generation_time_ms=elapsed_ms,
            metadata={"requested_size": size},
        )
