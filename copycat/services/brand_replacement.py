"""
Competitor brand replacement for drafted instructions and copy.
"""

import re
from typing import Iterable, Optional

from ..core.config import Config


def replace_competitor_brands(
    text: str,
    brand_name: Optional[str] = None,
    competitors: Optional[Iterable[str]] = None,
) -> str:
    """Replace every known competitor name (whole word, any case) with the brand name."""
    if not text:
        return text

    brand = brand_name or Config.BRAND_NAME
    result = text
    for competitor in (competitors if competitors is not None else Config.COMPETITOR_BRANDS):
        pattern = re.compile(rf"\b{re.escape(competitor)}\b", re.IGNORECASE)
        result = pattern.sub(brand, result)
    return result


def contains_marker(text: Optional[str], marker: Optional[str]) -> bool:
    """Case-insensitive substring check; an absent marker is always satisfied."""
    if not marker:
        return True
    if not text:
        return False
    return marker.lower() in text.lower()
