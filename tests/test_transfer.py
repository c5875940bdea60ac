"""Tests for the transfer executor."""
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from quotasync.errors import EngineError
from quotasync.models import (
    BatchDecision,
    PlannedTransfer,
    SourceMapping,
    TransferLimits,
    TransferPlan,
)
from quotasync.services.transfer import TransferExecutor


@pytest.fixture
def plan():
    return TransferPlan((
        PlannedTransfer(SourceMapping(Path("/mnt/external/photos"), "photos_backup"), 10),
        PlannedTransfer(SourceMapping(Path("/mnt/external/videos"), "videos_backup"), 20),
        PlannedTransfer(SourceMapping(Path("/mnt/external/documents"), "documents_backup"), 30),
    ))


@pytest.fixture
def engine():
    engine = MagicMock()
    engine.copy = AsyncMock(return_value=None)
    return engine


class TestTransferExecutor:
    @pytest.mark.asyncio
    async def test_copies_in_plan_order(self, engine, plan):
        limits = TransferLimits()
        executor = TransferExecutor(engine, "gdrive", limits, Path("/var/log/backup.log"))

        results = await executor.execute(plan, BatchDecision.AUTHORIZED)

        assert all(r.success for r in results)
        dests = [call.args[1] for call in engine.copy.await_args_list]
        assert dests == ["gdrive:photos_backup", "gdrive:videos_backup", "gdrive:documents_backup"]
        assert engine.copy.await_args_list[0].args[2] is limits

    @pytest.mark.asyncio
    async def test_failure_does_not_abort_batch(self, engine, plan):
        engine.copy = AsyncMock(side_effect=[None, EngineError("quota exceeded"), None])
        executor = TransferExecutor(engine, "gdrive", TransferLimits(), Path("/tmp/log"))

        results = await executor.execute(plan, BatchDecision.AUTHORIZED)

        assert [r.success for r in results] == [True, False, True]
        assert "quota exceeded" in results[1].error
        assert engine.copy.await_count == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("decision", [
        BatchDecision.INSUFFICIENT_SPACE,
        BatchDecision.QUOTA_UNAVAILABLE,
        BatchDecision.ESTIMATION_UNAVAILABLE,
    ])
    async def test_refuses_vetoed_batch(self, engine, plan, decision):
        executor = TransferExecutor(engine, "gdrive", TransferLimits(), Path("/tmp/log"))

        with pytest.raises(ValueError):
            await executor.execute(plan, decision)
        engine.copy.assert_not_called()
