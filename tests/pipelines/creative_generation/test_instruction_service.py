"""
Tests for instruction drafting: bounded marker retry and competitor replacement.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from copycat.core.config import Config
from copycat.pipelines.creative_generation.services.instruction_service import (
    InstructionRetryPolicy,
    build_drafting_request,
    draft_validated_instruction,
)
from copycat.services.edit_policy import PolicyOptions, select_policy
from copycat.services.errors import ExternalCallError

POLICY = select_policy("logo_only", PolicyOptions(brand_name="Algonova"))


def _make_drafter(*replies):
    drafter = MagicMock()
    drafter.draft_instruction = AsyncMock(side_effect=list(replies))
    return drafter


class TestDraftingRequest:
    def test_mentions_marker_and_output_contract(self):
        request = build_drafting_request(POLICY)

        assert '"Algonova"' in request
        assert '{"prompt": "..."}' in request
        assert "the logo" in request
        assert not request.startswith("CRITICAL")

    def test_forceful_request_leads_with_marker(self):
        request = build_drafting_request(POLICY, forceful=True)

        assert request.startswith("CRITICAL")
        assert "MUST contain" in request


class TestDraftValidatedInstruction:
    @pytest.mark.asyncio
    async def test_first_reply_accepted(self):
        drafter = _make_drafter("Replace the logo with the Algonova logo.")

        outcome = await draft_validated_instruction(drafter, b"img", POLICY)

        assert outcome.attempts == 1
        assert outcome.marker_present
        drafter.draft_instruction.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_competitor_name_is_replaced_before_validation(self):
        drafter = _make_drafter("Replace the Kodland logo in the corner.")

        outcome = await draft_validated_instruction(drafter, b"img", POLICY)

        assert outcome.instruction == "Replace the Algonova logo in the corner."
        assert outcome.attempts == 1

    @pytest.mark.asyncio
    async def test_missing_marker_retries_once_with_forceful_request(self):
        drafter = _make_drafter("Swap the logo.", "Swap the logo for Algonova.")

        outcome = await draft_validated_instruction(drafter, b"img", POLICY)

        assert outcome.attempts == 2
        assert outcome.instruction == "Swap the logo for Algonova."
        second_request = drafter.draft_instruction.await_args_list[1].args[1]
        assert second_request.startswith("CRITICAL")

    @pytest.mark.asyncio
    async def test_at_most_two_calls_then_last_result_accepted(self, caplog):
        drafter = _make_drafter("Swap the logo.", "Swap the logo again.", "never used")

        with caplog.at_level("WARNING"):
            outcome = await draft_validated_instruction(drafter, b"img", POLICY)

        assert drafter.draft_instruction.await_count == 2
        assert outcome.instruction == "Swap the logo again."
        assert not outcome.marker_present
        assert "still missing" in caplog.text

    @pytest.mark.asyncio
    async def test_strict_policy_rejects_last_result(self):
        drafter = _make_drafter("Swap the logo.", "Swap the logo again.")
        strict = InstructionRetryPolicy(max_attempts=2, accept_last_result=False)

        with pytest.raises(ValueError, match="Algonova"):
            await draft_validated_instruction(drafter, b"img", POLICY, retry_policy=strict)

    @pytest.mark.asyncio
    async def test_drafting_error_is_not_retried(self):
        drafter = _make_drafter(ExternalCallError("openai", "server error", 500))

        with pytest.raises(ExternalCallError):
            await draft_validated_instruction(drafter, b"img", POLICY)

        assert drafter.draft_instruction.await_count == 1

    @pytest.mark.asyncio
    async def test_slow_drafter_times_out(self):
        async def _slow(image_bytes, request_text):
            await asyncio.sleep(1)
            return "Algonova"

        drafter = MagicMock()
        drafter.draft_instruction = _slow

        with patch.object(Config, "EXTERNAL_CALL_TIMEOUT", 0.01):
            with pytest.raises(ExternalCallError, match="timed out"):
                await draft_validated_instruction(drafter, b"img", POLICY)
