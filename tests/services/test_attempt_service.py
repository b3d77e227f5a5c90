"""
Tests for AttemptService and StorageService: Supabase-backed stores.

The Supabase client is a MagicMock; calls run through asyncio.to_thread
exactly as in production.
"""

import re
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from copycat.services.attempt_service import AttemptService
from copycat.services.models import AttemptStatus, GenerationAttempt
from copycat.services.storage_service import StorageService


def _make_attempt(**overrides):
    defaults = {"creative_id": "cr-1", "source_ref": "upload", "copy_mode": "logo_only"}
    defaults.update(overrides)
    return GenerationAttempt(**defaults)


def _make_service(insert_data=None, update_error=None):
    supabase = MagicMock()
    table = supabase.table.return_value
    table.insert.return_value.execute.return_value.data = insert_data or [{"id": "att-1"}]
    if update_error:
        table.update.return_value.eq.return_value.execute.side_effect = update_error
    return AttemptService(supabase=supabase, table="creative_runs"), supabase


class TestCreateAttempt:
    @pytest.mark.asyncio
    async def test_insert_returns_id_and_sets_it(self):
        service, supabase = _make_service()
        attempt = _make_attempt()
        attempt.mark_running()

        attempt_id = await service.create_attempt(attempt)

        assert attempt_id == "att-1"
        assert attempt.id == "att-1"
        supabase.table.assert_called_with("creative_runs")
        inserted = supabase.table.return_value.insert.call_args[0][0]
        assert inserted["status"] == "running"
        assert inserted["copy_mode"] == "logo_only"

    @pytest.mark.asyncio
    async def test_insert_failure_propagates(self):
        service, supabase = _make_service()
        supabase.table.return_value.insert.return_value.execute.side_effect = RuntimeError("db down")

        with pytest.raises(RuntimeError, match="db down"):
            await service.create_attempt(_make_attempt())


class TestUpdateAttempt:
    @pytest.mark.asyncio
    async def test_update_sends_only_given_fields(self):
        service, supabase = _make_service()
        finished = datetime(2025, 1, 1, tzinfo=timezone.utc)

        await service.update_attempt_status(
            "att-1", AttemptStatus.COMPLETED, result_ref="https://cdn/r.png", finished_at=finished, latency_ms=0
        )

        table = supabase.table.return_value
        updates = table.update.call_args[0][0]
        assert updates == {
            "status": "completed",
            "result_url": "https://cdn/r.png",
            "finished_at": finished.isoformat(),
            "latency_ms": 0,
        }
        table.update.return_value.eq.assert_called_with("id", "att-1")


class TestRecordTerminal:
    """Terminal writes are best-effort."""

    @pytest.mark.asyncio
    async def test_success(self):
        service, _ = _make_service()
        attempt = _make_attempt(id="att-1")
        attempt.mark_completed("url")

        assert await service.record_terminal(attempt) is True

    @pytest.mark.asyncio
    async def test_terminal_write_carries_edit_policy(self):
        service, supabase = _make_service()
        attempt = _make_attempt(id="att-1", aspect_ratio="9:16")
        attempt.edit_policy = {"copy_mode": "logo_only", "render_mode": "masked_edit"}
        attempt.mark_completed("https://cdn/r.png")

        await service.record_terminal(attempt)

        updates = supabase.table.return_value.update.call_args[0][0]
        assert updates["status"] == "completed"
        assert updates["config"]["edit_policy"] == {"copy_mode": "logo_only", "render_mode": "masked_edit"}
        assert updates["config"]["aspect_ratio"] == "9:16"

    @pytest.mark.asyncio
    async def test_failure_is_logged_not_raised(self, caplog):
        service, _ = _make_service(update_error=ConnectionError("timeout"))
        attempt = _make_attempt(id="att-42")
        attempt.mark_failed("render failed")

        with caplog.at_level("ERROR"):
            ok = await service.record_terminal(attempt)

        assert ok is False
        assert "att-42" in caplog.text

    @pytest.mark.asyncio
    async def test_attempt_without_id(self):
        service, supabase = _make_service()
        attempt = _make_attempt()
        attempt.mark_failed("boom")

        assert await service.record_terminal(attempt) is False
        supabase.table.return_value.update.assert_not_called()


class TestListAttempts:
    @pytest.mark.asyncio
    async def test_with_status_filter(self):
        service, supabase = _make_service()
        select = supabase.table.return_value.select.return_value
        select.eq.return_value.order.return_value.limit.return_value.execute.return_value.data = [{"id": "a"}]

        runs = await service.list_attempts(limit=5, status="failed")

        assert runs == [{"id": "a"}]
        select.eq.assert_called_with("status", "failed")
        select.eq.return_value.order.return_value.limit.assert_called_with(5)

    @pytest.mark.asyncio
    async def test_without_filter(self):
        service, supabase = _make_service()
        select = supabase.table.return_value.select.return_value
        select.order.return_value.limit.return_value.execute.return_value.data = None

        assert await service.list_attempts() == []
        select.eq.assert_not_called()


class TestStorageService:
    def test_artifact_path_is_unique_and_well_formed(self):
        first = StorageService.build_artifact_path("full_creative", "cr-1")
        second = StorageService.build_artifact_path("full_creative", "cr-1")

        assert re.match(r"^full_creative/cr-1_\d{13}_[0-9a-f]{8}\.png$", first)
        assert first != second

    def test_artifact_path_without_creative(self):
        assert StorageService.build_artifact_path("masks", None).startswith("masks/upload_")

    def test_split_path(self):
        assert StorageService.split_path("creatives/a/b.png", "default") == ("creatives", "a/b.png")
        assert StorageService.split_path("b.png", "default") == ("default", "b.png")

    @pytest.mark.asyncio
    async def test_upload_is_write_once(self):
        supabase = MagicMock()
        storage = StorageService(supabase=supabase)

        await storage.upload("results", "x/y.png", b"data", "image/png")

        supabase.storage.from_.assert_called_with("results")
        args = supabase.storage.from_.return_value.upload.call_args[0]
        assert args[0] == "x/y.png"
        assert args[1] == b"data"
        assert args[2] == {"content-type": "image/png", "upsert": "false"}

    def test_public_url_strips_trailing_question_mark(self):
        supabase = MagicMock()
        supabase.storage.from_.return_value.get_public_url.return_value = "https://cdn/results/y.png?"

        assert StorageService(supabase=supabase).get_public_url("results", "y.png") == "https://cdn/results/y.png"

    @pytest.mark.asyncio
    async def test_download(self):
        supabase = MagicMock()
        supabase.storage.from_.return_value.download.return_value = b"img"

        assert await StorageService(supabase=supabase).download("creatives", "a.png") == b"img"
