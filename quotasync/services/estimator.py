"""
Capacity Estimator - sums the sizes a dry-run copy reports per mapping.

The preview may list every would-be-copied file with its own size, so the
estimate is the sum of every size annotation, not a single headline figure.
"""
from decimal import Decimal
from pathlib import Path
from typing import Iterable, List
import logging
import os
import re

from ..errors import EngineError, EstimationError, UnitParseError
from ..models import PlannedTransfer, SourceMapping, TransferPlan
from ..protocols import ITransferEngine
from .units import exact_context, format_bytes, parse_size_exact, round_bytes

logger = logging.getLogger(__name__)

# rclone dry-run lines look like:
#   NOTICE: a/b.jpg: Skipped copy as --dry-run is set (size 2.5Mi)
SIZE_ANNOTATION_RE = re.compile(r"\(size\s+(\d+(?:\.\d+)?\s*[A-Za-z]*)\)")


def line_size(line: str) -> Decimal:
    """Exact bytes annotated on one preview line; 0 when it carries none."""
    total = Decimal(0)
    for token in SIZE_ANNOTATION_RE.findall(line):
        size = parse_size_exact(token)
        with exact_context():
            total += size
    return total


def sum_preview_sizes(report: str) -> int:
    """
    Sum every size annotation in a preview report.

    Rounds once, after accumulation.

    Raises:
        UnitParseError: an annotation carries an unknown unit
    """
    total = Decimal(0)
    for line in report.splitlines():
        size = line_size(line)
        with exact_context():
            total += size
    return round_bytes(total)


class CapacityEstimator:
    """Builds a TransferPlan from dry-run previews."""

    def __init__(self, engine: ITransferEngine, remote_name: str):
        self._engine = engine
        self._remote_name = remote_name

    @staticmethod
    def _check_source(path: Path) -> None:
        if not path.is_dir():
            raise EstimationError(f"source directory does not exist: {path}")
        if not os.access(path, os.R_OK | os.X_OK):
            raise EstimationError(f"source directory is not readable: {path}")

    async def estimate_mapping(self, mapping: SourceMapping) -> int:
        self._check_source(mapping.local_path)
        dest = mapping.remote_path(self._remote_name)
        try:
            report = await self._engine.preview_copy(mapping.local_path, dest)
        except EngineError as exc:
            raise EstimationError(f"dry run failed for {mapping}: {exc}") from exc

        try:
            size = sum_preview_sizes(report)
        except UnitParseError as exc:
            raise EstimationError(f"unreadable size in dry run for {mapping}: {exc}") from exc

        logger.info(f"{mapping.local_path}: {format_bytes(size)} to upload to {dest}")
        return size

    async def build_plan(self, mappings: Iterable[SourceMapping]) -> TransferPlan:
        """Estimate every mapping in order; any failure voids the whole plan."""
        entries: List[PlannedTransfer] = []
        for mapping in mappings:
            entries.append(PlannedTransfer(mapping, await self.estimate_mapping(mapping)))
        plan = TransferPlan(tuple(entries))
        logger.info(
            f"Total size of new files to be uploaded: {plan.total_required_bytes} bytes "
            f"({format_bytes(plan.total_required_bytes)})"
        )
        return plan
