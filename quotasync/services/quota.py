"""
Quota Oracle - reads total/used capacity from ``rclone about --json``.

Missing or non-numeric data yields "unavailable", never a zero snapshot:
absent data must not read as "unlimited" or "nothing used".
"""
from datetime import datetime
from typing import Any, Callable, Mapping, Optional
import logging

from ..errors import EngineError, QuotaParseError, QuotaQueryError
from ..models import QuotaSnapshot
from ..protocols import ITransferEngine
from .units import format_bytes

logger = logging.getLogger(__name__)


def _numeric(value: Any) -> Optional[int]:
    # bool is an int subclass but never a byte count
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def parse_quota(document: Any, observed_at: datetime) -> QuotaSnapshot:
    """
    Build a snapshot from an account-info document.

    Accepts both ``{"total": .., "used": ..}`` and
    ``{"quota": {"total": .., "used": ..}}``; the top-level layout wins when
    it is complete.

    Raises:
        QuotaParseError: total or used missing or not numeric
    """
    if not isinstance(document, Mapping):
        raise QuotaParseError(f"unexpected quota response type: {type(document).__name__}")

    candidates = [document]
    nested = document.get("quota")
    if isinstance(nested, Mapping):
        candidates.append(nested)

    for candidate in candidates:
        total = _numeric(candidate.get("total"))
        used = _numeric(candidate.get("used"))
        if total is not None and used is not None:
            return QuotaSnapshot(total_bytes=total, used_bytes=used, observed_at=observed_at)

    raise QuotaParseError("quota response lacks numeric 'total' and 'used'")


class QuotaOracle:
    """One quota query per call against the configured remote."""

    def __init__(
        self,
        engine: ITransferEngine,
        remote_name: str,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._engine = engine
        self._remote = f"{remote_name}:"
        self._clock = clock

    async def query(self) -> QuotaSnapshot:
        """
        Raises:
            QuotaQueryError: the query itself failed
            QuotaParseError: the response could not be interpreted
        """
        logger.info(f"Checking storage usage of {self._remote}")
        try:
            document = await self._engine.about(self._remote)
        except EngineError as exc:
            raise QuotaQueryError(f"failed to retrieve storage usage: {exc}") from exc
        except ValueError as exc:
            raise QuotaParseError(f"storage usage is not valid JSON: {exc}") from exc

        snapshot = parse_quota(document, self._clock())
        logger.info(
            f"Available space: {snapshot.available_bytes} bytes "
            f"({format_bytes(snapshot.available_bytes)}, {snapshot.used_percent:.1f}% used)"
        )
        return snapshot

    async def snapshot(self) -> Optional[QuotaSnapshot]:
        """Like query(), but returns None when the quota is unavailable."""
        try:
            return await self.query()
        except (QuotaQueryError, QuotaParseError) as exc:
            logger.warning(f"Quota unavailable: {exc}")
            return None
