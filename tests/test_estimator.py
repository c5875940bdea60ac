"""Tests for the capacity estimator."""
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from quotasync.errors import EngineError, EstimationError
from quotasync.models import SourceMapping
from quotasync.services.estimator import CapacityEstimator, line_size, sum_preview_sizes

PREVIEW = """\
2024/05/14 03:00:01 NOTICE: a.jpg: Skipped copy as --dry-run is set (size 2.5Mi)
2024/05/14 03:00:01 NOTICE: b.jpg: Skipped copy as --dry-run is set (size 512)
2024/05/14 03:00:01 NOTICE: c.mov: Skipped copy as --dry-run is set (size 1 GiB)
2024/05/14 03:00:02 NOTICE: Transferred: 0 B / 0 B, -, 0 B/s, ETA -
"""


class TestPreviewParsing:
    def test_line_without_size_contributes_zero(self):
        assert line_size("NOTICE: nothing to report here") == 0

    def test_line_with_size(self):
        assert line_size("... (size 2.5 MiB) ...") == 2.5 * 1024 * 1024

    def test_sum_of_all_annotations(self):
        assert sum_preview_sizes(PREVIEW) == int(2.5 * 1024 ** 2) + 512 + 1024 ** 3

    def test_rounds_once_after_summing(self):
        report = "\n".join(["x (size 0.4)"] * 3)
        # 1.2 bytes in total, not 3 x round(0.4) == 0
        assert sum_preview_sizes(report) == 1

    def test_sum_of_huge_sizes_stays_exact(self):
        big = "98765432109876543210987654321"
        report = f"a (size {big}Pi)\nb (size 1)"
        assert sum_preview_sizes(report) == int(big) * 1024 ** 5 + 1

    def test_empty_report(self):
        assert sum_preview_sizes("") == 0


class TestCapacityEstimator:
    @pytest.fixture
    def engine(self):
        engine = MagicMock()
        engine.preview_copy = AsyncMock(return_value=PREVIEW)
        return engine

    @pytest.mark.asyncio
    async def test_estimate_mapping(self, engine, source_dirs):
        estimator = CapacityEstimator(engine, "gdrive")
        size = await estimator.estimate_mapping(source_dirs[0])

        assert size == sum_preview_sizes(PREVIEW)
        engine.preview_copy.assert_awaited_once_with(source_dirs[0].local_path, "gdrive:photos_backup")

    @pytest.mark.asyncio
    async def test_build_plan_keeps_order(self, engine, source_dirs):
        engine.preview_copy = AsyncMock(side_effect=["x (size 1Ki)", "y (size 3)"])
        estimator = CapacityEstimator(engine, "gdrive")

        plan = await estimator.build_plan(source_dirs)

        assert plan.mappings == source_dirs
        assert [e.estimated_bytes for e in plan.entries] == [1024, 3]
        assert plan.total_required_bytes == 1027

    @pytest.mark.asyncio
    async def test_engine_failure_is_not_zero(self, engine, source_dirs):
        engine.preview_copy = AsyncMock(side_effect=EngineError("rclone exited with 1"))
        estimator = CapacityEstimator(engine, "gdrive")

        with pytest.raises(EstimationError):
            await estimator.build_plan(source_dirs)

    @pytest.mark.asyncio
    async def test_unknown_unit_voids_estimate(self, engine, source_dirs):
        engine.preview_copy = AsyncMock(return_value="a (size 3 MB)")
        estimator = CapacityEstimator(engine, "gdrive")

        with pytest.raises(EstimationError):
            await estimator.estimate_mapping(source_dirs[0])

    @pytest.mark.asyncio
    async def test_missing_source_directory(self, engine, tmp_path):
        estimator = CapacityEstimator(engine, "gdrive")
        mapping = SourceMapping(tmp_path / "missing", "missing_backup")

        with pytest.raises(EstimationError, match="does not exist"):
            await estimator.estimate_mapping(mapping)
        engine.preview_copy.assert_not_called()
