"""Transfer Executor - runs the real, incremental copy of an authorized plan."""
from pathlib import Path
from typing import List
import logging

from ..errors import EngineError
from ..models import BatchDecision, MappingResult, TransferLimits, TransferPlan
from ..protocols import ITransferEngine

logger = logging.getLogger(__name__)


class TransferExecutor:
    """
    Copies each planned mapping in order.

    Change detection, parallelism and retries belong to rclone; this class
    only sequences mappings and records their results. One failing mapping
    does not stop the others, and nothing is rolled back.
    """

    def __init__(
        self,
        engine: ITransferEngine,
        remote_name: str,
        limits: TransferLimits,
        log_file: Path,
    ):
        self._engine = engine
        self._remote_name = remote_name
        self._limits = limits
        self._log_file = log_file

    async def execute(self, plan: TransferPlan, decision: BatchDecision) -> List[MappingResult]:
        if decision is not BatchDecision.AUTHORIZED:
            raise ValueError(f"refusing to transfer a batch with decision {decision.value}")

        logger.info("Starting backup...")
        results: List[MappingResult] = []
        for entry in plan.entries:
            mapping = entry.mapping
            dest = mapping.remote_path(self._remote_name)
            logger.info(f"Backing up {mapping.local_path} to {dest}")
            try:
                await self._engine.copy(mapping.local_path, dest, self._limits, self._log_file)
            except EngineError as exc:
                logger.error(f"Backup of {mapping.local_path} failed: {exc}")
                results.append(MappingResult.fail(mapping, str(exc)))
                continue
            results.append(MappingResult.ok(mapping))

        failed = sum(1 for r in results if not r.success)
        if failed:
            logger.warning(f"Backup completed with {failed}/{len(results)} failed mapping(s)")
        else:
            logger.info("Backup completed.")
        return results
