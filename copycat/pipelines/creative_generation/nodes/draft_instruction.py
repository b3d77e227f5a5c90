"""
DraftInstructionNode - Draft the render instruction and validate the brand marker.
"""

import logging
from dataclasses import dataclass
from typing import ClassVar

from pydantic_graph import BaseNode, GraphRunContext

from ...dependencies import PipelineDependencies
from ...metadata import NodeMetadata
from ..services.instruction_service import draft_validated_instruction
from ..state import CreativeGenerationState, GenerationStage

logger = logging.getLogger(__name__)


@dataclass
class DraftInstructionNode(BaseNode[CreativeGenerationState]):
    """
    Step 4: Ask the drafting capability for an instruction, at most twice.

    Reads: source_image_bytes, policy
    Writes: instruction, instruction_attempts, marker_present
    Services: drafter.draft_instruction()
    """

    metadata: ClassVar[NodeMetadata] = NodeMetadata(
        inputs=["source_image_bytes", "policy"],
        outputs=["instruction", "instruction_attempts", "marker_present"],
        stages=["instruction_drafted", "instruction_validated"],
        services=["drafter.draft_instruction"],
        external="instruction drafting",
    )

    async def run(
        self,
        ctx: GraphRunContext[CreativeGenerationState, PipelineDependencies]
    ) -> "RenderImageNode":
        from .render_image import RenderImageNode

        logger.info("Step 4: Drafting instruction...")
        ctx.state.current_step = "draft_instruction"

        try:
            outcome = await draft_validated_instruction(
                ctx.deps.drafter,
                ctx.state.source_image_bytes,
                ctx.state.policy,
            )

            ctx.state.instruction = outcome.instruction
            ctx.state.instruction_attempts = outcome.attempts
            ctx.state.marker_present = outcome.marker_present

            ctx.state.advance(GenerationStage.INSTRUCTION_DRAFTED)
            ctx.state.advance(GenerationStage.INSTRUCTION_VALIDATED)
            ctx.state.mark_step_complete("draft_instruction")

            return RenderImageNode()

        except Exception as e:
            ctx.state.error = str(e)
            ctx.state.error_step = "draft_instruction"
            logger.error(f"Draft instruction failed: {e}")
            raise
