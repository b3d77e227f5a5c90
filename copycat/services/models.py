"""
Pydantic models for the Creative Copycat generation services.

These models replace the loosely-shaped analysis blobs passed between
stages with checkable value types:
- Regions of a source creative tagged by semantic class (Region)
- The binary edit mask handed to the image editor (EditMask)
- The per-request edit policy (CopyMode, EditPolicy, RenderMode)
- Target pixel dimensions (AspectTarget)
- Attempt lifecycle bookkeeping (GenerationAttempt, AttemptStatus)
- The audit payload of a completed attempt (GenerationResult)

All models use Pydantic v2.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from io import BytesIO
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .errors import AttemptStateError


# ============================================================================
# Regions & Masks
# ============================================================================

class RegionClass(str, Enum):
    """Semantic class of a detected region."""
    CHARACTER = "character"
    LOGO = "logo"
    TEXT = "text"
    BUTTON = "button"
    DECOR = "decor"
    BACKGROUND = "background"


class Region(BaseModel):
    """
    Axis-aligned rectangle in source-image pixel space.

    Upstream analysis produces these with loose coordinates (negative
    offsets, boxes overhanging the canvas), so values are only checked when
    the region is clamped to a concrete canvas.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    x: float = Field(..., description="Left edge in pixels")
    y: float = Field(..., description="Top edge in pixels")
    width: float = Field(..., description="Width in pixels")
    height: float = Field(..., description="Height in pixels")
    region_class: RegionClass = Field(
        ...,
        validation_alias=AliasChoices("region_class", "type", "class"),
        description="Semantic class (character, logo, text, button, decor, background)",
    )

    @property
    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.x, self.y, self.width, self.height))

    def clamp_to_canvas(self, canvas_width: int, canvas_height: int) -> Optional["Region"]:
        """
        Clip the region to the canvas.

        Returns:
            The clipped region (width > 0, height > 0), or None when the
            region is degenerate or lies entirely outside the canvas.
        """
        if not self.is_finite or self.width <= 0 or self.height <= 0:
            return None
        if self.x >= canvas_width or self.y >= canvas_height:
            return None
        if self.x + self.width <= 0 or self.y + self.height <= 0:
            return None

        x0 = max(0.0, self.x)
        y0 = max(0.0, self.y)
        x1 = min(float(canvas_width), self.x + self.width)
        y1 = min(float(canvas_height), self.y + self.height)
        if x1 <= x0 or y1 <= y0:
            return None

        return self.model_copy(update={"x": x0, "y": y0, "width": x1 - x0, "height": y1 - y0})


@dataclass(frozen=True)
class EditMask:
    """
    Binary edit mask, same pixel size as the source image.

    `png` is a single-channel PNG: 255 = may be rewritten, 0 = preserve.
    """
    width: int
    height: int
    png: bytes
    regions_applied: Tuple[Region, ...] = ()
    white_pixels: int = 0

    @property
    def is_empty(self) -> bool:
        return self.white_pixels == 0

    @property
    def white_fraction(self) -> float:
        total = self.width * self.height
        return self.white_pixels / total if total else 0.0

    def to_alpha_mask_png(self) -> bytes:
        """
        Convert to the RGBA convention of the OpenAI edit endpoint, where
        fully transparent pixels mark the editable area.
        """
        from PIL import Image

        with Image.open(BytesIO(self.png)) as mask:
            gray = mask.convert("L")
        alpha = gray.point(lambda v: 0 if v >= 128 else 255)
        rgba = Image.new("RGBA", gray.size, (0, 0, 0, 255))
        rgba.putalpha(alpha)

        out = BytesIO()
        rgba.save(out, format="PNG")
        return out.getvalue()


# ============================================================================
# Edit Policy
# ============================================================================

class CopyMode(str, Enum):
    """Closed set of generation copy modes."""
    LOGO_ONLY = "logo_only"
    LOGO_AND_COLOR = "logo_and_color"
    MINOR_CHARACTER_VARIATION = "minor_character_variation"
    FULL_CUSTOM = "full_custom"
    DEFAULT_MASK_EDIT = "default_mask_edit"

    @classmethod
    def parse(cls, tag: Optional[str]) -> Optional["CopyMode"]:
        """
        Resolve a tag (canonical or legacy UI name) to a CopyMode.

        Returns None for unknown tags; callers decide the fallback.
        """
        if tag is None:
            return None
        if isinstance(tag, CopyMode):
            return tag
        normalized = str(tag).strip().lower().replace("-", "_")
        for mode in cls:
            if mode.value == normalized:
                return mode
        return _LEGACY_COPY_MODES.get(normalized)


_LEGACY_COPY_MODES: Dict[str, CopyMode] = {
    "simple_copy": CopyMode.LOGO_ONLY,
    "copy_with_color": CopyMode.LOGO_AND_COLOR,
    "slightly_different": CopyMode.MINOR_CHARACTER_VARIATION,
    "custom": CopyMode.FULL_CUSTOM,
    "mask_edit": CopyMode.DEFAULT_MASK_EDIT,
}


class RenderMode(str, Enum):
    """Which external render capability a policy needs."""
    MASKED_EDIT = "masked_edit"   # image + mask + instruction, short prompt budget
    RECREATE = "recreate"         # instruction (+ optional reference), long prompt budget


class EditPolicy(BaseModel):
    """Regions allowed to change and the instruction governing the change."""
    model_config = ConfigDict(frozen=True)

    copy_mode: CopyMode
    region_classes: FrozenSet[RegionClass]
    instruction: str
    render_mode: RenderMode = RenderMode.MASKED_EDIT
    required_marker: Optional[str] = None
    fallback_reason: Optional[str] = None

    def to_audit_dict(self) -> Dict[str, Any]:
        """JSON-safe representation stored with the attempt."""
        return {
            "copy_mode": self.copy_mode.value,
            "region_classes": sorted(rc.value for rc in self.region_classes),
            "instruction": self.instruction,
            "render_mode": self.render_mode.value,
            "required_marker": self.required_marker,
            "fallback_reason": self.fallback_reason,
        }


# ============================================================================
# Dimensions
# ============================================================================

class AspectTarget(BaseModel):
    """Exact output pixel dimensions."""
    model_config = ConfigDict(frozen=True)

    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)

    @property
    def ratio(self) -> float:
        return self.width / self.height

    @property
    def size_string(self) -> str:
        return f"{self.width}x{self.height}"


# ============================================================================
# Attempt Bookkeeping
# ============================================================================

class AttemptStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (AttemptStatus.COMPLETED, AttemptStatus.FAILED)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GenerationAttempt(BaseModel):
    """
    One end-to-end execution of the generation pipeline.

    Created before work begins and moved to exactly one terminal state.
    """
    id: Optional[str] = None
    creative_id: Optional[str] = None
    source_ref: str = Field(..., description="Storage path or label of the source image")
    generation_type: str = "full_creative"
    copy_mode: Optional[str] = None
    aspect_ratio: str = "original"
    edit_policy: Optional[Dict[str, Any]] = None
    status: AttemptStatus = AttemptStatus.PENDING
    result_ref: Optional[str] = None
    error_message: Optional[str] = None
    started_at: datetime = Field(default_factory=_utcnow)
    finished_at: Optional[datetime] = None
    latency_ms: Optional[int] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def mark_running(self) -> None:
        if self.is_terminal:
            raise AttemptStateError(f"Attempt {self.id} is already {self.status.value}")
        self.status = AttemptStatus.RUNNING

    def mark_completed(self, result_ref: str) -> None:
        self._finish(AttemptStatus.COMPLETED)
        self.result_ref = result_ref

    def mark_failed(self, error_message: str) -> None:
        self._finish(AttemptStatus.FAILED)
        self.error_message = error_message

    def _finish(self, status: AttemptStatus) -> None:
        if self.is_terminal:
            raise AttemptStateError(
                f"Attempt {self.id} is already {self.status.value}; cannot mark {status.value}"
            )
        self.status = status
        self.finished_at = _utcnow()
        self.latency_ms = int((self.finished_at - self.started_at).total_seconds() * 1000)

    def to_record(self) -> Dict[str, Any]:
        """Row for the runs table."""
        return {
            "creative_id": self.creative_id,
            "generation_type": self.generation_type,
            "copy_mode": self.copy_mode,
            "status": self.status.value,
            "config": {
                "source_ref": self.source_ref,
                "aspect_ratio": self.aspect_ratio,
                "edit_policy": self.edit_policy,
            },
            "result_url": self.result_ref,
            "error_message": self.error_message,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "latency_ms": self.latency_ms,
        }


# ============================================================================
# Render Output & Results
# ============================================================================

@dataclass
class RenderedImage:
    """Bytes returned by an image render backend."""
    image_bytes: bytes
    backend: str
    model: str
    instruction_used: str
    generation_time_ms: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)


class GenerationResult(BaseModel):
    """Audit payload of a completed generation attempt."""
    attempt_id: Optional[str] = None
    result_path: str
    result_url: str
    width: int
    height: int
    copy_mode: str
    policy: Dict[str, Any]
    instruction: str
    instruction_attempts: int = 1
    marker_present: bool = True
    render_backend: str
    render_model: Optional[str] = None
    mask_path: Optional[str] = None
    stage_history: List[str] = Field(default_factory=list)
