"""
BuildMaskNode - Build the edit mask from the regions the policy allows.
"""

import logging
from dataclasses import dataclass
from typing import ClassVar

from pydantic_graph import BaseNode, GraphRunContext

from ....core.config import Config
from ....services.mask_service import build_mask, default_logo_region, select_regions
from ....services.models import RegionClass, RenderMode
from ...dependencies import PipelineDependencies
from ...metadata import NodeMetadata
from ..state import CreativeGenerationState, GenerationStage
from ..utils import call_with_deadline

logger = logging.getLogger(__name__)


@dataclass
class BuildMaskNode(BaseNode[CreativeGenerationState]):
    """
    Step 3: Filter regions by the policy's classes and rasterize the mask.

    When the policy edits the logo but no logo region was supplied, the
    top-left fallback box is used (Config.LOGO_FALLBACK_REGION).
    The mask is stored for audit when Config.PERSIST_MASKS is set; a failed
    upload is logged and does not stop the run.

    Reads: regions, policy, source_width, source_height
    Writes: mask, mask_path
    Services: StorageService.upload()
    """

    metadata: ClassVar[NodeMetadata] = NodeMetadata(
        inputs=["regions", "policy", "source_width", "source_height"],
        outputs=["mask", "mask_path"],
        stages=["mask_built"],
        services=["storage.upload"],
    )

    async def run(
        self,
        ctx: GraphRunContext[CreativeGenerationState, PipelineDependencies]
    ) -> "DraftInstructionNode":
        from .draft_instruction import DraftInstructionNode

        logger.info("Step 3: Building edit mask...")
        ctx.state.current_step = "build_mask"

        try:
            policy = ctx.state.policy
            regions = select_regions(ctx.state.regions, policy.region_classes)

            has_logo = any(r.region_class == RegionClass.LOGO for r in regions)
            if (
                Config.LOGO_FALLBACK_REGION
                and RegionClass.LOGO in policy.region_classes
                and policy.render_mode == RenderMode.MASKED_EDIT
                and not has_logo
            ):
                logger.info("No logo region supplied; using top-left fallback region")
                regions.append(default_logo_region(ctx.state.source_width, ctx.state.source_height))

            mask = build_mask(ctx.state.source_width, ctx.state.source_height, regions)
            ctx.state.mask = mask

            if mask.is_empty and policy.render_mode == RenderMode.MASKED_EDIT:
                logger.warning("Edit mask is empty: the masked edit cannot change the image")

            if Config.PERSIST_MASKS:
                path = ctx.deps.storage.build_artifact_path("masks", ctx.state.creative_id)
                try:
                    await call_with_deadline(
                        ctx.deps.storage.upload(Config.MASK_BUCKET, path, mask.png, "image/png"),
                        "storage",
                    )
                    ctx.state.mask_path = f"{Config.MASK_BUCKET}/{path}"
                except Exception as e:
                    logger.warning(f"Mask upload failed for attempt {ctx.state.attempt_id}: {e}")

            ctx.state.advance(GenerationStage.MASK_BUILT)
            ctx.state.mark_step_complete("build_mask")
            logger.info(f"Mask built: {len(mask.regions_applied)} regions, {mask.white_fraction:.1%} editable")

            return DraftInstructionNode()

        except Exception as e:
            ctx.state.error = str(e)
            ctx.state.error_step = "build_mask"
            logger.error(f"Build mask failed: {e}")
            raise
