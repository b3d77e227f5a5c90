"""
Edit policy selection: which regions may change, and how.

Maps a copy mode plus user options to an EditPolicy. Pure and total:
unknown modes resolve to the most conservative (logo-only) policy and a
`full_custom` request without an instruction resolves to the default mask
edit policy. Both fallbacks are logged, never raised.
"""

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Union

from ..core.config import Config
from .models import CopyMode, EditPolicy, RegionClass, RenderMode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PolicyOptions:
    custom_instruction: Optional[str] = None
    brand_name: Optional[str] = None

    @property
    def brand(self) -> str:
        return self.brand_name or Config.BRAND_NAME


@dataclass(frozen=True)
class _PolicyTemplate:
    region_classes: FrozenSet[RegionClass]
    instruction: str
    render_mode: RenderMode = RenderMode.MASKED_EDIT


ALL_REGION_CLASSES: FrozenSet[RegionClass] = frozenset(RegionClass)

POLICY_TEMPLATES: Dict[CopyMode, _PolicyTemplate] = {
    CopyMode.LOGO_ONLY: _PolicyTemplate(
        region_classes=frozenset({RegionClass.LOGO}),
        instruction=(
            "Replace the competitor brand mark with the {brand} logo only. "
            "Preserve all other content exactly: characters, text, colors, layout and background."
        ),
    ),
    CopyMode.LOGO_AND_COLOR: _PolicyTemplate(
        region_classes=frozenset({RegionClass.LOGO, RegionClass.BUTTON, RegionClass.DECOR}),
        instruction=(
            "Replace the competitor brand mark with the {brand} logo and recolor buttons and "
            "decorative accents to the {brand} palette (primary {color}). "
            "Keep characters, text content and layout unchanged."
        ),
    ),
    CopyMode.MINOR_CHARACTER_VARIATION: _PolicyTemplate(
        region_classes=frozenset({RegionClass.CHARACTER, RegionClass.LOGO}),
        instruction=(
            "Make a slightly different version of the character: same pose, framing and style, "
            "with small changes to face, hair or clothing. Replace the competitor brand mark with "
            "the {brand} logo. Keep text, colors and layout unchanged."
        ),
    ),
    CopyMode.FULL_CUSTOM: _PolicyTemplate(
        region_classes=ALL_REGION_CLASSES,
        instruction="{custom} Replace any competitor brand names and logos with {brand}.",
        render_mode=RenderMode.RECREATE,
    ),
    CopyMode.DEFAULT_MASK_EDIT: _PolicyTemplate(
        region_classes=frozenset({RegionClass.LOGO, RegionClass.TEXT}),
        instruction=(
            "Replace competitor brand names in the text and the competitor logo with {brand}. "
            "Keep the same fonts, sizes, colors and positions; preserve everything else exactly."
        ),
    ),
}

CONSERVATIVE_MODE = CopyMode.LOGO_ONLY


def _build(mode: CopyMode, options: PolicyOptions, fallback_reason: Optional[str] = None) -> EditPolicy:
    template = POLICY_TEMPLATES[mode]
    instruction = template.instruction.format(
        brand=options.brand,
        color=Config.BRAND_COLOR,
        custom=(options.custom_instruction or "").strip(),
    )
    return EditPolicy(
        copy_mode=mode,
        region_classes=template.region_classes,
        instruction=instruction.strip(),
        render_mode=template.render_mode,
        required_marker=options.brand,
        fallback_reason=fallback_reason,
    )


def select_policy(
    copy_mode: Union[CopyMode, str, None],
    options: Optional[PolicyOptions] = None,
) -> EditPolicy:
    """
    Select the edit policy for a copy mode.

    Args:
        copy_mode: CopyMode or tag string (canonical or legacy UI name)
        options: Custom instruction and brand name

    Returns:
        EditPolicy with a non-empty region-class set and instruction
    """
    options = options or PolicyOptions()
    mode = CopyMode.parse(copy_mode)

    if mode is None:
        reason = f"unknown copy mode {copy_mode!r}"
        logger.warning(f"Unrecognized copy mode {copy_mode!r}; using conservative {CONSERVATIVE_MODE.value} policy")
        return _build(CONSERVATIVE_MODE, options, fallback_reason=reason)

    if mode == CopyMode.FULL_CUSTOM and not (options.custom_instruction or "").strip():
        reason = "full_custom requested without a custom instruction"
        logger.warning(f"{reason}; using {CopyMode.DEFAULT_MASK_EDIT.value} policy")
        return _build(CopyMode.DEFAULT_MASK_EDIT, options, fallback_reason=reason)

    policy = _build(mode, options)
    logger.info(
        f"Selected policy {policy.copy_mode.value}: regions="
        f"{sorted(rc.value for rc in policy.region_classes)}, render_mode={policy.render_mode.value}"
    )
    return policy
