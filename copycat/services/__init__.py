"""
Services layer for Creative Copycat.

Pure helpers (mask, prompt budget, edit policy, dimensions) plus the
Supabase-backed stores and the external image capabilities used by the
generation pipeline.
"""

from .models import (
    RegionClass,
    Region,
    EditMask,
    CopyMode,
    RenderMode,
    EditPolicy,
    AspectTarget,
    AttemptStatus,
    GenerationAttempt,
    RenderedImage,
    GenerationResult,
)
from .errors import (
    InvalidCanvasError,
    ExternalCallError,
    AttemptStateError,
    GenerationFailedError,
)
from .mask_service import build_mask, select_regions, default_logo_region
from .prompt_budget import truncate_prompt, fit_prompt, budget_for
from .edit_policy import PolicyOptions, select_policy
from .dimension_service import reconcile_dimensions, enforce_dimensions, openai_size_for
from .brand_replacement import replace_competitor_brands, contains_marker

__all__ = [
    # Models
    "RegionClass",
    "Region",
    "EditMask",
    "CopyMode",
    "RenderMode",
    "EditPolicy",
    "AspectTarget",
    "AttemptStatus",
    "GenerationAttempt",
    "RenderedImage",
    "GenerationResult",
    # Errors
    "InvalidCanvasError",
    "ExternalCallError",
    "AttemptStateError",
    "GenerationFailedError",
    # Helpers
    "build_mask",
    "select_regions",
    "default_logo_region",
    "truncate_prompt",
    "fit_prompt",
    "budget_for",
    "PolicyOptions",
    "select_policy",
    "reconcile_dimensions",
    "enforce_dimensions",
    "openai_size_for",
    "replace_competitor_brands",
    "contains_marker",
]
