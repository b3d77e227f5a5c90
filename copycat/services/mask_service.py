"""
Edit mask construction.

White areas = regions the image editor may rewrite.
Black areas = regions that must be preserved.
"""

import logging
import math
from io import BytesIO
from typing import Iterable, List, Optional

from PIL import Image, ImageDraw

from ..core.config import Config
from .errors import InvalidCanvasError
from .models import EditMask, Region, RegionClass

logger = logging.getLogger(__name__)

# Typical logo placement when analysis found a logo but no box for it
LOGO_FALLBACK_WIDTH_PCT = 0.25
LOGO_FALLBACK_HEIGHT_PCT = 0.15


def build_mask(
    canvas_width: int,
    canvas_height: int,
    regions: Iterable[Region],
    padding: Optional[int] = None,
) -> EditMask:
    """
    Build a binary edit mask from regions.

    Each region is expanded by `padding` pixels on every side and clamped to
    the canvas. Regions that are degenerate or lie entirely outside the
    canvas are skipped with a warning.

    Args:
        canvas_width: Mask width in pixels (source image width)
        canvas_height: Mask height in pixels (source image height)
        regions: Regions to mark editable
        padding: Extra pixels around each region (default Config.MASK_PADDING)

    Returns:
        EditMask with a single-channel PNG

    Raises:
        InvalidCanvasError: If either canvas dimension is <= 0
    """
    if canvas_width <= 0 or canvas_height <= 0:
        raise InvalidCanvasError(canvas_width, canvas_height)

    pad = Config.MASK_PADDING if padding is None else max(0, padding)
    regions = list(regions)

    logger.info(f"Generating mask: {canvas_width}x{canvas_height} with {len(regions)} regions, padding {pad}px")

    mask = Image.new("L", (canvas_width, canvas_height), 0)
    draw = ImageDraw.Draw(mask)
    applied: List[Region] = []

    for region in regions:
        if region.clamp_to_canvas(canvas_width, canvas_height) is None:
            logger.warning(f"Skipping region outside canvas or degenerate: {region.model_dump()}")
            continue

        x0 = max(0, math.floor(region.x - pad))
        y0 = max(0, math.floor(region.y - pad))
        x1 = min(canvas_width, math.ceil(region.x + region.width + pad))
        y1 = min(canvas_height, math.ceil(region.y + region.height + pad))

        if x1 <= x0 or y1 <= y0:
            logger.warning(f"Skipping region with empty padded area: {region.model_dump()}")
            continue

        # PIL rectangles include the end coordinate
        draw.rectangle([x0, y0, x1 - 1, y1 - 1], fill=255)
        applied.append(region.model_copy(update={"x": x0, "y": y0, "width": x1 - x0, "height": y1 - y0}))
        logger.debug(f"  Region {region.region_class.value} at ({x0}, {y0}) size {x1 - x0}x{y1 - y0}")

    white_pixels = mask.histogram()[255]

    out = BytesIO()
    mask.save(out, format="PNG")

    if not applied:
        logger.warning("No valid regions: mask is fully preserved (no edit area)")
    else:
        logger.info(f"Mask generated: {len(applied)} regions, {white_pixels} editable pixels")

    return EditMask(
        width=canvas_width,
        height=canvas_height,
        png=out.getvalue(),
        regions_applied=tuple(applied),
        white_pixels=white_pixels,
    )


def select_regions(regions: Iterable[Region], classes: Iterable[RegionClass]) -> List[Region]:
    """Keep only regions whose class is in `classes`."""
    wanted = set(classes)
    return [r for r in regions if r.region_class in wanted]


def default_logo_region(canvas_width: int, canvas_height: int) -> Region:
    """Top-left corner box where ad logos usually sit."""
    return Region(
        x=0,
        y=0,
        width=max(1, math.floor(canvas_width * LOGO_FALLBACK_WIDTH_PCT)),
        height=max(1, math.floor(canvas_height * LOGO_FALLBACK_HEIGHT_PCT)),
        region_class=RegionClass.LOGO,
    )
