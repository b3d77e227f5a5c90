"""
InitializeNode - Create the attempt record and load the source creative.

First node in the creative generation pipeline.
"""

import logging
from dataclasses import dataclass
from typing import ClassVar

from PIL import UnidentifiedImageError
from pydantic_graph import BaseNode, GraphRunContext

from ....core.config import Config
from ....services.dimension_service import read_dimensions, reconcile_dimensions
from ....services.models import GenerationAttempt
from ...dependencies import PipelineDependencies
from ...metadata import NodeMetadata
from ..state import CreativeGenerationState
from ..utils import call_with_deadline

logger = logging.getLogger(__name__)


@dataclass
class InitializeNode(BaseNode[CreativeGenerationState]):
    """
    Step 1: Create the attempt (status running), load the source image,
    compute the target dimensions.

    Reads: copy_mode, aspect_ratio, source_image_bytes, source_path, creative_id
    Writes: attempt, source_image_bytes, source_width, source_height, target
    Services: AttemptService.create_attempt(), StorageService.download()
    """

    metadata: ClassVar[NodeMetadata] = NodeMetadata(
        inputs=["copy_mode", "aspect_ratio", "source_image_bytes", "source_path", "creative_id"],
        outputs=["attempt", "source_image_bytes", "source_width", "source_height", "target"],
        stages=["created"],
        services=["attempts.create_attempt", "storage.download"],
    )

    async def run(
        self,
        ctx: GraphRunContext[CreativeGenerationState, PipelineDependencies]
    ) -> "SelectPolicyNode":
        from .select_policy import SelectPolicyNode

        logger.info("Step 1: Creating attempt and loading source creative...")
        ctx.state.current_step = "initialize"

        try:
            if not ctx.state.source_image_bytes and not ctx.state.source_path:
                raise ValueError("Either source image bytes or a source storage path is required")

            attempt = GenerationAttempt(
                creative_id=ctx.state.creative_id,
                source_ref=ctx.state.source_path or "upload",
                generation_type=ctx.state.generation_type,
                copy_mode=ctx.state.copy_mode,
                aspect_ratio=ctx.state.aspect_ratio or "original",
            )
            attempt.mark_running()

            # Primary write: no work starts without an attempt record
            await ctx.deps.attempts.create_attempt(attempt)
            ctx.state.attempt = attempt

            if not ctx.state.source_image_bytes:
                bucket, path = ctx.deps.storage.split_path(ctx.state.source_path, Config.SOURCE_BUCKET)
                ctx.state.source_image_bytes = await call_with_deadline(
                    ctx.deps.storage.download(bucket, path),
                    "storage",
                )

            try:
                width, height = read_dimensions(ctx.state.source_image_bytes)
            except (UnidentifiedImageError, OSError) as e:
                raise ValueError(f"Source is not a decodable image: {e}") from e

            ctx.state.source_width = width
            ctx.state.source_height = height
            ctx.state.target = reconcile_dimensions(width, height, ctx.state.aspect_ratio)

            ctx.state.mark_step_complete("initialize")
            logger.info(
                f"Attempt {attempt.id} running: source {width}x{height}, "
                f"target {ctx.state.target.size_string} ({ctx.state.aspect_ratio})"
            )

            return SelectPolicyNode()

        except Exception as e:
            ctx.state.error = str(e)
            ctx.state.error_step = "initialize"
            logger.error(f"Initialize failed: {e}")
            raise
