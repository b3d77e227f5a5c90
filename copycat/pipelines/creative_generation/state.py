"""
Creative Generation Pipeline State - dataclass passed through all pipeline nodes.

Stages move strictly forward:
    created -> policy_selected -> mask_built -> instruction_drafted ->
    instruction_validated -> image_requested -> image_received ->
    dimension_reconciled -> completed
`failed` can be entered from any non-terminal stage.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ...services.errors import AttemptStateError
from ...services.models import (
    AspectTarget,
    EditMask,
    EditPolicy,
    GenerationAttempt,
    Region,
    RenderedImage,
)


class GenerationStage(str, Enum):
    CREATED = "created"
    POLICY_SELECTED = "policy_selected"
    MASK_BUILT = "mask_built"
    INSTRUCTION_DRAFTED = "instruction_drafted"
    INSTRUCTION_VALIDATED = "instruction_validated"
    IMAGE_REQUESTED = "image_requested"
    IMAGE_RECEIVED = "image_received"
    DIMENSION_RECONCILED = "dimension_reconciled"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (GenerationStage.COMPLETED, GenerationStage.FAILED)


_STAGE_ORDER = [s for s in GenerationStage if s != GenerationStage.FAILED]


@dataclass
class CreativeGenerationState:
    """
    State passed through all creative generation nodes.

    Lifecycle:
        1. Caller creates with the request inputs
        2. Each node reads what it needs, writes its outputs, advances the stage
        3. FinalizeNode returns a GenerationResult via End()
    """

    # === REQUIRED INPUT ===
    copy_mode: Optional[str]

    # === CONFIGURATION (set at creation, not changed by nodes) ===
    aspect_ratio: str = "original"
    source_image_bytes: Optional[bytes] = None
    source_path: Optional[str] = None
    creative_id: Optional[str] = None
    generation_type: str = "full_creative"
    custom_instruction: Optional[str] = None
    brand_name: Optional[str] = None
    regions: List[Region] = field(default_factory=list)

    # === POPULATED BY NODES ===

    # InitializeNode
    attempt: Optional[GenerationAttempt] = None
    source_width: int = 0
    source_height: int = 0
    target: Optional[AspectTarget] = None

    # SelectPolicyNode
    policy: Optional[EditPolicy] = None

    # BuildMaskNode
    mask: Optional[EditMask] = None
    mask_path: Optional[str] = None

    # DraftInstructionNode
    instruction: Optional[str] = None
    instruction_attempts: int = 0
    marker_present: bool = False

    # RenderImageNode
    rendered: Optional[RenderedImage] = None
    instruction_sent: Optional[str] = None

    # ReconcileDimensionsNode
    final_image_bytes: Optional[bytes] = None

    # FinalizeNode
    result_path: Optional[str] = None
    result_url: Optional[str] = None

    # === TRACKING ===
    stage: GenerationStage = GenerationStage.CREATED
    stage_history: List[str] = field(default_factory=lambda: [GenerationStage.CREATED.value])
    current_step: str = "pending"
    error: Optional[str] = None
    error_step: Optional[str] = None

    @property
    def attempt_id(self) -> Optional[str]:
        return self.attempt.id if self.attempt else None

    def advance(self, stage: GenerationStage) -> None:
        """
        Move to `stage`.

        Raises:
            AttemptStateError: If the current stage is terminal or `stage`
                is not after the current one
        """
        if self.stage.is_terminal:
            raise AttemptStateError(f"Generation already {self.stage.value}; cannot enter {stage.value}")
        if stage != GenerationStage.FAILED and _STAGE_ORDER.index(stage) <= _STAGE_ORDER.index(self.stage):
            raise AttemptStateError(f"Cannot move from {self.stage.value} back to {stage.value}")
        self.stage = stage
        self.stage_history.append(stage.value)

    def mark_step_complete(self, step_name: str) -> None:
        """Mark a step as complete and update current_step."""
        self.current_step = f"{step_name}_complete"
