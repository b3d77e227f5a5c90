"""
Pydantic Graph Pipelines for Creative Copycat.

- creative_generation: policy, mask, instruction drafting, rendering and
  dimension reconciliation for one source creative
"""

from .creative_generation import (
    CreativeGenerationState,
    GenerationStage,
    creative_generation_graph,
    run_creative_generation,
)

__all__ = [
    "CreativeGenerationState",
    "GenerationStage",
    "creative_generation_graph",
    "run_creative_generation",
]
