"""
Instruction drafting with bounded marker validation.

The drafting capability is asked to write the render instruction for a
policy. The result must mention the required brand marker; if it does not,
the request is repeated once with a forceful restatement. After the last
attempt the instruction is accepted as-is and a warning is logged.
"""

import logging
from dataclasses import dataclass

from tenacity import AsyncRetrying, RetryError, retry_if_result, stop_after_attempt

from ....services.brand_replacement import contains_marker, replace_competitor_brands
from ....services.models import EditPolicy, RegionClass
from ....services.prompt_budget import budget_for
from ...dependencies import InstructionDrafter
from ..utils import call_with_deadline

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstructionRetryPolicy:
    max_attempts: int = 2
    accept_last_result: bool = True


DEFAULT_RETRY_POLICY = InstructionRetryPolicy()


@dataclass
class DraftOutcome:
    instruction: str
    attempts: int
    marker_present: bool


_REGION_DESCRIPTIONS = {
    RegionClass.CHARACTER: "the character (person or mascot)",
    RegionClass.LOGO: "the logo",
    RegionClass.TEXT: "text blocks",
    RegionClass.BUTTON: "call-to-action buttons",
    RegionClass.DECOR: "decorative shapes and accents",
    RegionClass.BACKGROUND: "the background",
}


def build_drafting_request(policy: EditPolicy, forceful: bool = False) -> str:
    """
    Compose the drafting request for a policy.

    Args:
        policy: Selected edit policy
        forceful: Restate the marker requirement as the first, absolute rule
    """
    editable = ", ".join(
        _REGION_DESCRIPTIONS[rc] for rc in RegionClass if rc in policy.region_classes
    )
    limit = budget_for(policy.render_mode)
    marker = policy.required_marker

    lines = []
    if forceful and marker:
        lines.append(
            f'CRITICAL: your previous instruction did not mention "{marker}". '
            f'The instruction you write MUST contain the exact word "{marker}". '
            f"An instruction without it will be rejected."
        )
        lines.append("")

    lines.extend([
        "You will see a reference advertising banner. Write one English instruction for an "
        "image model that produces a branded variation of it.",
        "",
        f"Requested change: {policy.instruction}",
        f"Elements that may change: {editable}.",
        "Everything else must stay exactly as in the reference: layout, composition and style.",
    ])
    if marker:
        lines.append(f'Replace every competitor brand name with "{marker}" and mention "{marker}" explicitly.')
    lines.extend([
        f"Keep the instruction under {limit} characters.",
        'Output STRICTLY a JSON object with one field: {"prompt": "..."}',
    ])
    return "\n".join(lines)


async def draft_validated_instruction(
    drafter: InstructionDrafter,
    image_bytes: bytes,
    policy: EditPolicy,
    retry_policy: InstructionRetryPolicy = DEFAULT_RETRY_POLICY,
    service_name: str = "instruction drafting",
) -> DraftOutcome:
    """
    Draft an instruction and validate the required marker.

    Drafting errors are not retried; only a missing marker is.

    Args:
        drafter: Object with `draft_instruction(image_bytes, request_text)`
        image_bytes: Source creative
        policy: Selected edit policy
        retry_policy: Attempt cap and last-result handling

    Returns:
        DraftOutcome with the accepted instruction and attempt count

    Raises:
        ExternalCallError: If a drafting call fails or times out
        ValueError: If the marker is still missing and the last result may
            not be accepted
    """
    marker = policy.required_marker
    attempts = 0

    async def _draft_once() -> str:
        nonlocal attempts
        attempts += 1
        request_text = build_drafting_request(policy, forceful=attempts > 1)
        if attempts > 1:
            logger.warning(f"Instruction missing '{marker}', retrying with forceful request (attempt {attempts})")

        drafted = await call_with_deadline(
            drafter.draft_instruction(image_bytes, request_text),
            service_name,
        )
        return replace_competitor_brands(drafted, brand_name=marker)

    retrying = AsyncRetrying(
        stop=stop_after_attempt(retry_policy.max_attempts),
        retry=retry_if_result(lambda text: not contains_marker(text, marker)),
        retry_error_callback=(
            (lambda state: state.outcome.result()) if retry_policy.accept_last_result else None
        ),
        reraise=True,
    )

    try:
        instruction = await retrying(_draft_once)
    except RetryError as e:
        raise ValueError(
            f"Drafted instruction does not mention '{marker}' after {attempts} attempts"
        ) from e

    present = contains_marker(instruction, marker)
    if not present:
        logger.warning(
            f"Instruction still missing '{marker}' after {attempts} attempts; proceeding with last result"
        )
    else:
        logger.info(f"Instruction validated after {attempts} attempt(s) ({len(instruction)} chars)")

    return DraftOutcome(instruction=instruction, attempts=attempts, marker_present=present)
