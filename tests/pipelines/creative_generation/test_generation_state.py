"""
Tests for CreativeGenerationState: forward-only stage transitions.
"""

import pytest

from copycat.pipelines.creative_generation.state import CreativeGenerationState, GenerationStage
from copycat.services.errors import AttemptStateError
from copycat.services.models import GenerationAttempt


def _make_state(**overrides):
    defaults = {"copy_mode": "logo_only", "source_image_bytes": b"img"}
    defaults.update(overrides)
    return CreativeGenerationState(**defaults)


class TestStageTransitions:
    def test_starts_created(self):
        state = _make_state()

        assert state.stage == GenerationStage.CREATED
        assert state.stage_history == ["created"]

    def test_forward_moves_are_recorded(self):
        state = _make_state()

        state.advance(GenerationStage.POLICY_SELECTED)
        state.advance(GenerationStage.MASK_BUILT)

        assert state.stage == GenerationStage.MASK_BUILT
        assert state.stage_history == ["created", "policy_selected", "mask_built"]

    def test_backward_move_raises(self):
        state = _make_state()
        state.advance(GenerationStage.MASK_BUILT)

        with pytest.raises(AttemptStateError):
            state.advance(GenerationStage.POLICY_SELECTED)

    def test_repeating_a_stage_raises(self):
        state = _make_state()
        state.advance(GenerationStage.POLICY_SELECTED)

        with pytest.raises(AttemptStateError):
            state.advance(GenerationStage.POLICY_SELECTED)

    def test_failed_from_any_non_terminal_stage(self):
        state = _make_state()
        state.advance(GenerationStage.IMAGE_REQUESTED)

        state.advance(GenerationStage.FAILED)

        assert state.stage_history[-1] == "failed"

    @pytest.mark.parametrize("terminal", [GenerationStage.COMPLETED, GenerationStage.FAILED])
    def test_no_transition_after_terminal(self, terminal):
        state = _make_state()
        state.advance(terminal)

        with pytest.raises(AttemptStateError):
            state.advance(GenerationStage.FAILED)

    def test_attempt_id(self):
        state = _make_state()
        assert state.attempt_id is None

        state.attempt = GenerationAttempt(id="att-9", source_ref="upload")
        assert state.attempt_id == "att-9"
