"""
FinalizeNode - Store the result and complete the attempt.
"""

import logging
from dataclasses import dataclass
from typing import ClassVar

from pydantic_graph import BaseNode, End, GraphRunContext

from ....core.config import Config
from ....services.models import GenerationResult
from ...dependencies import PipelineDependencies
from ...metadata import NodeMetadata
from ..state import CreativeGenerationState, GenerationStage
from ..utils import call_with_deadline

logger = logging.getLogger(__name__)


@dataclass
class FinalizeNode(BaseNode[CreativeGenerationState]):
    """
    Step 7: Upload the result under a write-once name, mark the attempt
    completed, return the audit payload.

    The terminal status write is best-effort: if it fails the result is
    still returned.

    Reads: final_image_bytes, target, policy, instruction, rendered, attempt
    Writes: result_path, result_url
    Services: StorageService.upload(), .get_public_url(), AttemptService.record_terminal()
    """

    metadata: ClassVar[NodeMetadata] = NodeMetadata(
        inputs=["final_image_bytes", "target", "policy", "instruction", "rendered", "attempt"],
        outputs=["result_path", "result_url"],
        stages=["completed"],
        services=["storage.upload", "storage.get_public_url", "attempts.record_terminal"],
    )

    async def run(
        self,
        ctx: GraphRunContext[CreativeGenerationState, PipelineDependencies]
    ) -> End[GenerationResult]:
        logger.info("Step 7: Storing result...")
        ctx.state.current_step = "finalize"

        try:
            storage = ctx.deps.storage
            path = storage.build_artifact_path(ctx.state.generation_type, ctx.state.creative_id)

            await call_with_deadline(
                storage.upload(Config.RESULT_BUCKET, path, ctx.state.final_image_bytes, "image/png"),
                "storage",
            )
            ctx.state.result_path = f"{Config.RESULT_BUCKET}/{path}"
            ctx.state.result_url = storage.get_public_url(Config.RESULT_BUCKET, path)

        except Exception as e:
            ctx.state.error = str(e)
            ctx.state.error_step = "finalize"
            logger.error(f"Finalize failed: {e}")
            raise

        attempt = ctx.state.attempt
        attempt.mark_completed(ctx.state.result_url)
        await ctx.deps.attempts.record_terminal(attempt)

        ctx.state.advance(GenerationStage.COMPLETED)
        ctx.state.mark_step_complete("finalize")

        policy = ctx.state.policy
        rendered = ctx.state.rendered
        result = GenerationResult(
            attempt_id=attempt.id,
            result_path=ctx.state.result_path,
            result_url=ctx.state.result_url,
            width=ctx.state.target.width,
            height=ctx.state.target.height,
            copy_mode=policy.copy_mode.value,
            policy=policy.to_audit_dict(),
            instruction=ctx.state.instruction_sent or ctx.state.instruction or "",
            instruction_attempts=ctx.state.instruction_attempts,
            marker_present=ctx.state.marker_present,
            render_backend=rendered.backend,
            render_model=rendered.model,
            mask_path=ctx.state.mask_path,
            stage_history=list(ctx.state.stage_history),
        )

        logger.info(f"Attempt {attempt.id} completed in {attempt.latency_ms}ms: {ctx.state.result_url}")
        return End(result)
