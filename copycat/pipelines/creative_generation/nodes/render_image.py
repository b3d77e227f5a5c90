"""
RenderImageNode - Send the instruction to the render backend for the policy.
"""

import logging
from dataclasses import dataclass
from typing import ClassVar

from pydantic_graph import BaseNode, GraphRunContext

from ....services.models import RenderMode
from ....services.prompt_budget import fit_prompt
from ...dependencies import ImageRenderBackend, PipelineDependencies
from ...metadata import NodeMetadata
from ..state import CreativeGenerationState, GenerationStage
from ..utils import call_with_deadline

logger = logging.getLogger(__name__)


@dataclass
class RenderImageNode(BaseNode[CreativeGenerationState]):
    """
    Step 5: Render the image. Masked edits get the source image and mask;
    recreation gets the source as a visual reference. Not retried.

    Reads: instruction, policy, target, source_image_bytes, mask
    Writes: instruction_sent, rendered
    Services: inpaint_backend.render() or recreate_backend.render()
    """

    metadata: ClassVar[NodeMetadata] = NodeMetadata(
        inputs=["instruction", "policy", "target", "source_image_bytes", "mask"],
        outputs=["instruction_sent", "rendered"],
        stages=["image_requested", "image_received"],
        services=["inpaint_backend.render", "recreate_backend.render"],
        external="image rendering",
    )

    async def run(
        self,
        ctx: GraphRunContext[CreativeGenerationState, PipelineDependencies]
    ) -> "ReconcileDimensionsNode":
        from .reconcile_dimensions import ReconcileDimensionsNode

        logger.info("Step 5: Rendering image...")
        ctx.state.current_step = "render_image"

        try:
            policy = ctx.state.policy
            instruction = fit_prompt(ctx.state.instruction, policy.render_mode)
            ctx.state.instruction_sent = instruction

            backend: ImageRenderBackend
            if policy.render_mode == RenderMode.MASKED_EDIT:
                backend = ctx.deps.inpaint_backend
                mask = ctx.state.mask
            else:
                backend = ctx.deps.recreate_backend
                mask = None

            backend_name = getattr(backend, "name", "image backend")
            ctx.state.advance(GenerationStage.IMAGE_REQUESTED)
            logger.info(f"Requesting {policy.render_mode.value} from {backend_name} ({len(instruction)} chars)")

            rendered = await call_with_deadline(
                backend.render(
                    instruction,
                    ctx.state.target,
                    image_bytes=ctx.state.source_image_bytes,
                    mask=mask,
                ),
                backend_name,
            )
            ctx.state.rendered = rendered

            ctx.state.advance(GenerationStage.IMAGE_RECEIVED)
            ctx.state.mark_step_complete("render_image")
            logger.info(f"Image received from {rendered.backend} in {rendered.generation_time_ms}ms")

            return ReconcileDimensionsNode()

        except Exception as e:
            ctx.state.error = str(e)
            ctx.state.error_step = "render_image"
            logger.error(f"Render image failed: {e}")
            raise
