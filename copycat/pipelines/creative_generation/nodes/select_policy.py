"""
SelectPolicyNode - Resolve the copy mode to an edit policy.
"""

import logging
from dataclasses import dataclass
from typing import ClassVar

from pydantic_graph import BaseNode, GraphRunContext

from ....services.edit_policy import PolicyOptions, select_policy
from ...dependencies import PipelineDependencies
from ...metadata import NodeMetadata
from ..state import CreativeGenerationState, GenerationStage

logger = logging.getLogger(__name__)


@dataclass
class SelectPolicyNode(BaseNode[CreativeGenerationState]):
    """
    Step 2: Select the edit policy. Never fails on unknown modes.

    Reads: copy_mode, custom_instruction, brand_name
    Writes: policy, attempt.edit_policy
    """

    metadata: ClassVar[NodeMetadata] = NodeMetadata(
        inputs=["copy_mode", "custom_instruction", "brand_name"],
        outputs=["policy"],
        stages=["policy_selected"],
    )

    async def run(
        self,
        ctx: GraphRunContext[CreativeGenerationState, PipelineDependencies]
    ) -> "BuildMaskNode":
        from .build_mask import BuildMaskNode

        logger.info("Step 2: Selecting edit policy...")
        ctx.state.current_step = "select_policy"

        options = PolicyOptions(
            custom_instruction=ctx.state.custom_instruction,
            brand_name=ctx.state.brand_name,
        )
        policy = select_policy(ctx.state.copy_mode, options)

        ctx.state.policy = policy
        if ctx.state.attempt is not None:
            ctx.state.attempt.edit_policy = policy.to_audit_dict()

        ctx.state.advance(GenerationStage.POLICY_SELECTED)
        ctx.state.mark_step_complete("select_policy")

        return BuildMaskNode()
