"""
Tests for service models: regions, copy modes, attempt lifecycle.
"""

import pytest

from copycat.services.errors import AttemptStateError, ExternalCallError, GenerationFailedError
from copycat.services.models import (
    AspectTarget,
    AttemptStatus,
    CopyMode,
    GenerationAttempt,
    Region,
    RegionClass,
)


class TestRegion:
    def test_accepts_type_alias(self):
        region = Region.model_validate({"x": 1, "y": 2, "width": 3, "height": 4, "type": "logo"})

        assert region.region_class == RegionClass.LOGO

    def test_clamp_inside_canvas_is_unchanged(self):
        region = Region(x=10, y=10, width=20, height=20, region_class="text")

        assert region.clamp_to_canvas(100, 100) == region

    def test_clamp_clips_overhang(self):
        clamped = Region(x=90, y=-5, width=20, height=20, region_class="logo").clamp_to_canvas(100, 100)

        assert (clamped.x, clamped.y, clamped.width, clamped.height) == (90, 0, 10, 15)

    @pytest.mark.parametrize("x,y,w,h", [
        (100, 0, 10, 10),
        (0, 100, 10, 10),
        (-10, 0, 10, 10),
        (0, 0, 0, 10),
        (0, 0, 10, -1),
        (float("nan"), 0, 10, 10),
    ])
    def test_clamp_rejects_degenerate(self, x, y, w, h):
        region = Region(x=x, y=y, width=w, height=h, region_class="logo")

        assert region.clamp_to_canvas(100, 100) is None


class TestCopyModeParse:
    def test_canonical(self):
        assert CopyMode.parse("full_custom") == CopyMode.FULL_CUSTOM

    def test_enum_passthrough(self):
        assert CopyMode.parse(CopyMode.LOGO_ONLY) == CopyMode.LOGO_ONLY

    def test_legacy_custom(self):
        assert CopyMode.parse("custom") == CopyMode.FULL_CUSTOM

    def test_unknown(self):
        assert CopyMode.parse("mystery") is None
        assert CopyMode.parse(None) is None


class TestAspectTarget:
    def test_rejects_non_positive(self):
        with pytest.raises(ValueError):
            AspectTarget(width=0, height=10)

    def test_size_string(self):
        assert AspectTarget(width=1080, height=1920).size_string == "1080x1920"


def _make_attempt(**overrides):
    defaults = {
        "id": "att-1",
        "creative_id": "cr-1",
        "source_ref": "creatives/banner.png",
        "copy_mode": "logo_only",
        "aspect_ratio": "9:16",
    }
    defaults.update(overrides)
    return GenerationAttempt(**defaults)


class TestAttemptLifecycle:
    """An attempt reaches exactly one terminal state."""

    def test_starts_pending(self):
        attempt = _make_attempt()

        assert attempt.status == AttemptStatus.PENDING
        assert not attempt.is_terminal

    def test_completed(self):
        attempt = _make_attempt()
        attempt.mark_running()
        attempt.mark_completed("https://cdn/result.png")

        assert attempt.status == AttemptStatus.COMPLETED
        assert attempt.result_ref == "https://cdn/result.png"
        assert attempt.finished_at is not None
        assert attempt.latency_ms >= 0

    def test_failed(self):
        attempt = _make_attempt()
        attempt.mark_failed("boom")

        assert attempt.status == AttemptStatus.FAILED
        assert attempt.error_message == "boom"

    def test_second_terminal_transition_raises(self):
        attempt = _make_attempt()
        attempt.mark_completed("url")

        with pytest.raises(AttemptStateError):
            attempt.mark_failed("late failure")

        assert attempt.status == AttemptStatus.COMPLETED
        assert attempt.error_message is None

    def test_running_after_terminal_raises(self):
        attempt = _make_attempt()
        attempt.mark_failed("boom")

        with pytest.raises(AttemptStateError):
            attempt.mark_running()

    def test_to_record(self):
        attempt = _make_attempt(edit_policy={"copy_mode": "logo_only"})
        attempt.mark_running()

        record = attempt.to_record()

        assert record["status"] == "running"
        assert record["creative_id"] == "cr-1"
        assert record["config"] == {
            "source_ref": "creatives/banner.png",
            "aspect_ratio": "9:16",
            "edit_policy": {"copy_mode": "logo_only"},
        }
        assert record["finished_at"] is None
        assert "id" not in record


class TestErrors:
    def test_external_call_error_message(self):
        err = ExternalCallError("openrouter", "rate limited", 429)

        assert err.status_code == 429
        assert str(err) == "openrouter error (429): rate limited"

    def test_generation_failed_error_carries_attempt(self):
        err = GenerationFailedError("att-7", "render failed", stage="render_image")

        assert err.attempt_id == "att-7"
        assert err.stage == "render_image"
        assert "render failed" in str(err)
