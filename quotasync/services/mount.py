"""
Mount Guard - attaches the source volume by UUID before anything reads it.

Device names like /dev/sdb1 can change across reboots, so the volume is
always addressed by its filesystem UUID.
"""
from pathlib import Path
from typing import Callable, Optional
import logging
import os

from ..errors import MountError
from ..protocols import ICommandRunner
from ..utils.process import run_command

logger = logging.getLogger(__name__)


class MountGuard:
    """
    Idempotent "ensure mounted" for the local source root.

    Usage:
        >>> guard = MountGuard(Path("/mnt/external"), "1234-ABCD")
        >>> await guard.ensure_mounted()
    """

    def __init__(
        self,
        mount_point: Path,
        volume_uuid: Optional[str],
        runner: Optional[ICommandRunner] = None,
        is_mounted: Callable[[Path], bool] = None,
    ):
        self._mount_point = Path(mount_point)
        self._volume_uuid = volume_uuid
        self._runner = runner or run_command
        self._is_mounted = is_mounted or (lambda path: os.path.ismount(path))

    @property
    def mount_point(self) -> Path:
        return self._mount_point

    async def ensure_mounted(self) -> bool:
        """
        Returns True if this call attached the volume, False if it already was.

        Raises:
            MountError: the volume could not be attached
        """
        if self._is_mounted(self._mount_point):
            logger.info(f"External drive already mounted at {self._mount_point}")
            return False

        if not self._volume_uuid:
            raise MountError(f"{self._mount_point} is not mounted and no volume UUID is configured")

        logger.info(f"External drive not mounted. Attempting to mount UUID={self._volume_uuid}...")
        cmd = ["mount", f"UUID={self._volume_uuid}", str(self._mount_point)]
        try:
            result = await self._runner(cmd)
        except OSError as exc:
            raise MountError(f"cannot run mount: {exc}") from exc

        if not result.ok:
            raise MountError(
                f"failed to mount UUID={self._volume_uuid} at {self._mount_point}: "
                f"{result.stderr.strip() or f'exit {result.returncode}'}"
            )
        logger.info("External drive mounted successfully")
        return True
