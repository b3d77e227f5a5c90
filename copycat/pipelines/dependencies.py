"""
Pipeline Dependencies - typed dependency injection for generation graphs.

Provides the object store, the attempt store, and the external drafting and
rendering capabilities selected by configuration.
"""

import logging
from typing import Any, Optional, Protocol

from pydantic import BaseModel

from ..core.config import Config
from ..services.attempt_service import AttemptService
from ..services.models import AspectTarget, EditMask, RenderedImage
from ..services.nano_banana_service import NanoBananaService
from ..services.openai_image_service import OpenAIImageService
from ..services.storage_service import StorageService

logger = logging.getLogger(__name__)


class InstructionDrafter(Protocol):
    async def draft_instruction(self, image_bytes: bytes, request_text: str) -> str: ...


class ImageRenderBackend(Protocol):
    name: str

    async def render(
        self,
        instruction: str,
        target: AspectTarget,
        image_bytes: Optional[bytes] = None,
        mask: Optional[EditMask] = None,
    ) -> RenderedImage: ...


class PipelineDependencies(BaseModel):
    """
    Services used by the creative generation pipeline.

    Attributes:
        storage: Object store (sources, masks, results)
        attempts: Attempt lifecycle store
        drafter: Instruction-drafting capability
        inpaint_backend: Render backend for masked edits
        recreate_backend: Render backend for full recreation
    """
    model_config = {"arbitrary_types_allowed": True}

    storage: StorageService
    attempts: AttemptService
    drafter: Any
    inpaint_backend: Any
    recreate_backend: Any

    @classmethod
    def create(
        cls,
        draft_provider: Optional[str] = None,
        recreate_provider: Optional[str] = None,
    ) -> "PipelineDependencies":
        """
        Build dependencies from Config.

        Args:
            draft_provider: "openai" or "openrouter" (default Config.DRAFT_PROVIDER)
            recreate_provider: "openai" or "openrouter" (default Config.RECREATE_PROVIDER)
        """
        draft_provider = (draft_provider or Config.DRAFT_PROVIDER).lower()
        recreate_provider = (recreate_provider or Config.RECREATE_PROVIDER).lower()

        for name, value in (("draft_provider", draft_provider), ("recreate_provider", recreate_provider)):
            if value not in ("openai", "openrouter"):
                raise ValueError(f"{name} must be 'openai' or 'openrouter', got {value!r}")

        storage = StorageService()
        attempts = AttemptService(supabase=storage.supabase)

        openai_images = OpenAIImageService()
        nano_banana = NanoBananaService()

        drafter = openai_images if draft_provider == "openai" else nano_banana
        recreate_backend = (
            openai_images.as_recreate_backend() if recreate_provider == "openai" else nano_banana
        )

        logger.info(
            f"PipelineDependencies created (drafting={draft_provider}, "
            f"masked edit=openai, recreation={recreate_provider})"
        )

        return cls(
            storage=storage,
            attempts=attempts,
            drafter=drafter,
            inpaint_backend=openai_images.as_inpaint_backend(),
            recreate_backend=recreate_backend,
        )

    def __str__(self) -> str:
        return (
            f"PipelineDependencies(drafter={type(self.drafter).__name__}, "
            f"inpaint={getattr(self.inpaint_backend, 'name', '?')}, "
            f"recreate={getattr(self.recreate_backend, 'name', '?')})"
        )
