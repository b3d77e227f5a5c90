"""
ReconcileDimensionsNode - Force the rendered image to the target size.
"""

import logging
from dataclasses import dataclass
from typing import ClassVar

from pydantic_graph import BaseNode, GraphRunContext

from ....services.dimension_service import enforce_dimensions
from ...dependencies import PipelineDependencies
from ...metadata import NodeMetadata
from ..state import CreativeGenerationState, GenerationStage

logger = logging.getLogger(__name__)


@dataclass
class ReconcileDimensionsNode(BaseNode[CreativeGenerationState]):
    """
    Step 6: Resize or cover-crop the rendered image to exactly `target`.

    Reads: rendered, target
    Writes: final_image_bytes
    """

    metadata: ClassVar[NodeMetadata] = NodeMetadata(
        inputs=["rendered", "target"],
        outputs=["final_image_bytes"],
        stages=["dimension_reconciled"],
    )

    async def run(
        self,
        ctx: GraphRunContext[CreativeGenerationState, PipelineDependencies]
    ) -> "FinalizeNode":
        from .finalize import FinalizeNode

        logger.info(f"Step 6: Reconciling dimensions to {ctx.state.target.size_string}...")
        ctx.state.current_step = "reconcile_dimensions"

        try:
            ctx.state.final_image_bytes = enforce_dimensions(
                ctx.state.rendered.image_bytes,
                ctx.state.target,
            )

            ctx.state.advance(GenerationStage.DIMENSION_RECONCILED)
            ctx.state.mark_step_complete("reconcile_dimensions")

            return FinalizeNode()

        except Exception as e:
            ctx.state.error = str(e)
            ctx.state.error_step = "reconcile_dimensions"
            logger.error(f"Reconcile dimensions failed: {e}")
            raise
