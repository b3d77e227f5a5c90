"""
Creative Generation Pipeline - Pydantic-Graph workflow producing a branded
variation of a competitor creative.
"""

from .state import CreativeGenerationState, GenerationStage
from .orchestrator import creative_generation_graph, run_creative_generation, PIPELINE_NODES

__all__ = [
    "CreativeGenerationState",
    "GenerationStage",
    "creative_generation_graph",
    "run_creative_generation",
    "PIPELINE_NODES",
]
