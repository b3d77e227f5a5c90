"""
Creative Generation Orchestrator - Graph definition and entry point.

Defines the pydantic-graph pipeline that turns a source creative into a
branded variation and provides run_creative_generation() as the main
entry point.
"""

import asyncio
import logging
from typing import Iterable, List, Optional, Union

from pydantic_graph import Graph

from ...core.observability import get_logfire
from ...services.errors import AttemptStateError, GenerationFailedError
from ...services.models import GenerationResult, Region
from ..dependencies import PipelineDependencies
from .nodes.build_mask import BuildMaskNode
from .nodes.draft_instruction import DraftInstructionNode
from .nodes.finalize import FinalizeNode
from .nodes.initialize import InitializeNode
from .nodes.reconcile_dimensions import ReconcileDimensionsNode
from .nodes.render_image import RenderImageNode
from .nodes.select_policy import SelectPolicyNode
from .state import CreativeGenerationState, GenerationStage

logger = logging.getLogger(__name__)

# ============================================================================
# Graph Definition
# ============================================================================

PIPELINE_NODES = (
    InitializeNode,
    SelectPolicyNode,
    BuildMaskNode,
    DraftInstructionNode,
    RenderImageNode,
    ReconcileDimensionsNode,
    FinalizeNode,
)

creative_generation_graph = Graph(
    nodes=PIPELINE_NODES,
    name="creative_generation_pipeline"
)


# ============================================================================
# Failure Handling
# ============================================================================

async def _fail_attempt(state: CreativeGenerationState, deps: PipelineDependencies, message: str) -> None:
    """Move state and attempt to failed exactly once and record it (best-effort)."""
    if not state.stage.is_terminal:
        state.advance(GenerationStage.FAILED)

    attempt = state.attempt
    if attempt is None:
        return

    try:
        attempt.mark_failed(message)
    except AttemptStateError:
        logger.warning(f"Attempt {attempt.id} already {attempt.status.value}; not marking failed")
        return

    await deps.attempts.record_terminal(attempt)


# ============================================================================
# Convenience Function
# ============================================================================

async def run_creative_generation(
    copy_mode: Optional[str],
    *,
    source_image_bytes: Optional[bytes] = None,
    source_path: Optional[str] = None,
    aspect_ratio: str = "original",
    regions: Optional[Iterable[Union[Region, dict]]] = None,
    creative_id: Optional[str] = None,
    generation_type: str = "full_creative",
    custom_instruction: Optional[str] = None,
    brand_name: Optional[str] = None,
    deps: Optional[PipelineDependencies] = None,
) -> GenerationResult:
    """
    Run the complete creative generation pipeline.

    Args:
        copy_mode: Copy mode tag (canonical or legacy name; unknown tags
            fall back to the logo-only policy)
        source_image_bytes: Source creative bytes
        source_path: Storage path of the source ("bucket/path" or a path in
            Config.SOURCE_BUCKET), used when no bytes are given
        aspect_ratio: "original" or "W:H"
        regions: Detected regions (Region objects or dicts with x, y,
            width, height, type)
        creative_id: Optional source creative ID, used in artifact names
        generation_type: Attempt type label, also the result path prefix
        custom_instruction: Instruction for the full_custom mode
        brand_name: Brand replacing competitors (default Config.BRAND_NAME)
        deps: Optional PipelineDependencies (creates if not provided)

    Returns:
        GenerationResult with result URL, dimensions, policy and stage history

    Raises:
        GenerationFailedError: If any stage fails; the attempt is marked failed
    """
    logger.info(f"=== STARTING CREATIVE GENERATION ({copy_mode}, {aspect_ratio}) ===")

    if deps is None:
        deps = PipelineDependencies.create()

    parsed_regions: List[Region] = [
        r if isinstance(r, Region) else Region.model_validate(r) for r in (regions or [])
    ]

    state = CreativeGenerationState(
        copy_mode=copy_mode,
        aspect_ratio=aspect_ratio or "original",
        source_image_bytes=source_image_bytes,
        source_path=source_path,
        creative_id=creative_id,
        generation_type=generation_type,
        custom_instruction=custom_instruction,
        brand_name=brand_name,
        regions=parsed_regions,
    )

    logfire = get_logfire()
    with logfire.span("creative_generation", copy_mode=str(copy_mode), aspect_ratio=aspect_ratio):
        try:
            result = await creative_generation_graph.run(
                InitializeNode(),
                state=state,
                deps=deps,
            )
            return result.output

        except asyncio.CancelledError:
            logger.warning(f"Creative generation cancelled at {state.current_step} (attempt {state.attempt_id})")
            await _fail_attempt(state, deps, "cancelled")
            raise

        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error(f"Creative generation failed at {state.error_step or state.current_step}: {message}")
            await _fail_attempt(state, deps, message)
            raise GenerationFailedError(state.attempt_id, message, stage=state.error_step) from e
