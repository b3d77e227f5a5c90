"""
Aspect ratio reconciliation.

Stage 1 (`reconcile_dimensions`) computes the target pixel size from the
source size and a "W:H" ratio, growing one axis and never shrinking below
the source resolution.

Stage 2 (`enforce_dimensions`) forces a generated image to exactly that
size, whatever size the external generator returned.
"""

import logging
import math
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image, ImageOps

from ..core.config import Config
from .models import AspectTarget

logger = logging.getLogger(__name__)

ORIGINAL = "original"

# DALL·E text-to-image sizes
OPENAI_SQUARE = "1024x1024"
OPENAI_LANDSCAPE = "1792x1024"
OPENAI_PORTRAIT = "1024x1792"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def parse_ratio(ratio: Optional[str]) -> Optional[Tuple[float, float]]:
    """
    Parse "W:H" into two finite positive numbers.

    Returns None for "original", empty input, or anything malformed.
    """
    if ratio is None:
        return None
    text = str(ratio).strip()
    if not text or text.lower() == ORIGINAL:
        return None

    parts = text.split(":")
    if len(parts) != 2:
        return None
    try:
        w, h = float(parts[0]), float(parts[1])
    except ValueError:
        return None
    if not (math.isfinite(w) and math.isfinite(h)) or w <= 0 or h <= 0:
        return None
    return w, h


def reconcile_dimensions(source_width: int, source_height: int, ratio: Optional[str]) -> AspectTarget:
    """
    Compute target dimensions for `ratio` from the source dimensions.

    Args:
        source_width: Source image width in pixels
        source_height: Source image height in pixels
        ratio: "original" or "W:H" (e.g. "9:16")

    Returns:
        AspectTarget; identity for "original" or a malformed ratio
    """
    if source_width <= 0 or source_height <= 0:
        logger.warning(f"Invalid source dimensions {source_width}x{source_height}; using 1x1 minimum")
        return AspectTarget(width=max(1, source_width), height=max(1, source_height))

    identity = AspectTarget(width=source_width, height=source_height)

    if ratio is None or str(ratio).strip().lower() in ("", ORIGINAL):
        return identity

    parsed = parse_ratio(ratio)
    if parsed is None:
        logger.warning(f"Malformed aspect ratio {ratio!r}; keeping original {source_width}x{source_height}")
        return identity

    target_ratio = parsed[0] / parsed[1]
    source_ratio = source_width / source_height

    if source_ratio > target_ratio:
        # Source relatively wider: keep width, grow height
        target = AspectTarget(width=source_width, height=_round_half_up(source_width / target_ratio))
    else:
        # Source relatively taller (or equal): keep height, grow width
        target = AspectTarget(width=_round_half_up(source_height * target_ratio), height=source_height)

    max_side = max(Config.MAX_TARGET_SIDE, source_width, source_height)
    if target.width > max_side or target.height > max_side:
        logger.warning(
            f"Aspect ratio {ratio!r} needs {target.size_string}, over the {max_side}px limit; "
            f"keeping original {source_width}x{source_height}"
        )
        return identity

    logger.info(f"Reconciled {source_width}x{source_height} to {ratio}: {target.size_string}")
    return target


def read_dimensions(image_bytes: bytes) -> Tuple[int, int]:
    """Pixel size of an encoded image."""
    with Image.open(BytesIO(image_bytes)) as img:
        return img.size


def enforce_dimensions(
    image_bytes: bytes,
    target: AspectTarget,
    tolerance: Optional[int] = None,
) -> bytes:
    """
    Force an image to exactly `target` pixels.

    - exact match: returned unchanged
    - within `tolerance` px on both axes: plain resize to the target
    - otherwise: cover resize (scale to fill, centered crop)

    Returns:
        Encoded image bytes (PNG unless returned unchanged)
    """
    tol = Config.DIMENSION_TOLERANCE if tolerance is None else tolerance
    size = (target.width, target.height)

    with Image.open(BytesIO(image_bytes)) as img:
        width, height = img.size

        if (width, height) == size:
            logger.info(f"Generated image already {target.size_string}")
            return image_bytes

        if abs(width - target.width) <= tol and abs(height - target.height) <= tol:
            logger.info(f"Resizing {width}x{height} to {target.size_string} (within {tol}px tolerance)")
            result = img.convert("RGBA").resize(size, Image.LANCZOS)
        else:
            logger.info(f"Cover-resizing {width}x{height} to {target.size_string}")
            result = ImageOps.fit(img.convert("RGBA"), size, method=Image.LANCZOS, centering=(0.5, 0.5))

    out = BytesIO()
    result.save(out, format="PNG")
    return out.getvalue()


def openai_size_for(target: AspectTarget) -> str:
    """Nearest DALL·E text-to-image size for the target aspect ratio."""
    ratio = target.ratio
    if ratio > 1.5:
        return OPENAI_LANDSCAPE
    if ratio < 0.7:
        return OPENAI_PORTRAIT
    return OPENAI_SQUARE
