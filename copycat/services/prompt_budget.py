"""
Prompt length budgeting for bounded-length image endpoints.

The masked edit endpoint and the text-to-image endpoint accept different
maximum prompt lengths, so each render mode has its own budget.
"""

import logging
from typing import Optional

from ..core.config import Config
from .models import RenderMode

logger = logging.getLogger(__name__)

SENTENCE_SEPARATOR = ". "
ELLIPSIS = "..."
DEFAULT_RESERVE = 50


def truncate_prompt(text: str, max_length: int, reserve: int = DEFAULT_RESERVE) -> str:
    """
    Shorten `text` to at most `max_length` characters.

    Whole sentences are kept while the running length stays under
    `max_length - reserve`. When no sentence boundary fits, the text is cut
    at `max_length - 3` and an ellipsis is appended.

    The result is never longer than `max_length`, so applying the function
    twice gives the same result as applying it once.
    """
    if text is None:
        return ""
    if len(text) <= max_length:
        return text
    if max_length <= len(ELLIPSIS):
        return text[:max(0, max_length)]

    budget = max_length - max(0, reserve)
    sentences = text.split(SENTENCE_SEPARATOR)

    if len(sentences) > 1 and len(sentences[0]) < budget:
        kept = sentences[0]
        for sentence in sentences[1:]:
            candidate = kept + SENTENCE_SEPARATOR + sentence
            if len(candidate) >= budget:
                break
            kept = candidate
        result = kept if kept.endswith(".") else kept + "."
        logger.info(f"Prompt truncated at sentence boundary: {len(text)} -> {len(result)} chars (max {max_length})")
        return result

    result = text[:max_length - len(ELLIPSIS)] + ELLIPSIS
    logger.info(f"Prompt hard-truncated: {len(text)} -> {len(result)} chars (max {max_length})")
    return result


def budget_for(render_mode: RenderMode) -> int:
    """Character budget of the endpoint used for `render_mode`."""
    if render_mode == RenderMode.RECREATE:
        return Config.GENERATE_PROMPT_BUDGET
    return Config.EDIT_PROMPT_BUDGET


def fit_prompt(text: str, render_mode: RenderMode, max_length: Optional[int] = None) -> str:
    """Truncate `text` to the budget of `render_mode` (or an explicit limit)."""
    return truncate_prompt(text, max_length if max_length is not None else budget_for(render_mode))
