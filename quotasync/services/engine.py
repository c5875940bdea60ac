"""
Transfer engine adapter - wraps the rclone command line.

Every rclone invocation used by quotasync goes through this class, so the rest
of the package never builds command lines or reads raw process output.
"""
from __future__ import annotations

import configparser
import json
import logging
import shutil
from pathlib import Path
from typing import Any, List, Optional, Sequence

import httpx

from ..errors import EngineError, EngineInstallError
from ..models import TransferLimits
from ..protocols import ICommandRunner
from ..utils.process import CommandResult, run_command

logger = logging.getLogger(__name__)

RCLONE_INSTALL_SCRIPT_URL = "https://rclone.org/install.sh"


class RcloneEngine:
    """
    rclone adapter implementing ITransferEngine.

    Usage:
        >>> engine = RcloneEngine("rclone", Path("~/.config/rclone/rclone.conf"))
        >>> await engine.ensure_installed(auto_install=True)
        >>> report = await engine.preview_copy(Path("/mnt/external/photos"), "gdrive:photos_backup")
    """

    def __init__(
        self,
        binary: str = "rclone",
        config_path: Optional[Path] = None,
        runner: Optional[ICommandRunner] = None,
        install_script_url: str = RCLONE_INSTALL_SCRIPT_URL,
    ):
        self._binary = binary
        self._config_path = Path(config_path).expanduser() if config_path else None
        self._runner = runner or run_command
        self._install_script_url = install_script_url

    @property
    def config_path(self) -> Optional[Path]:
        return self._config_path

    def _command(self, *args: str) -> List[str]:
        cmd = [self._binary]
        if self._config_path is not None:
            cmd += ["--config", str(self._config_path)]
        cmd += list(args)
        return cmd

    async def _run(self, args: Sequence[str], stdin: Optional[bytes] = None) -> CommandResult:
        try:
            result = await self._runner(args, stdin=stdin)
        except OSError as exc:
            raise EngineError(f"cannot run {args[0]}: {exc}") from exc
        if not result.ok:
            stderr = result.stderr.strip()
            raise EngineError(
                f"{' '.join(args[:3])} exited with {result.returncode}: {stderr[-500:]}",
                returncode=result.returncode,
                stderr=stderr,
            )
        return result

    # -- bootstrap -----------------------------------------------------------

    def is_installed(self) -> bool:
        if shutil.which(self._binary):
            return True
        return Path(self._binary).is_file()

    async def ensure_installed(self, auto_install: bool = True) -> None:
        """Make sure the rclone binary is available, installing it if allowed."""
        if self.is_installed():
            logger.debug(f"{self._binary} found")
            return
        if not auto_install:
            raise EngineInstallError(f"{self._binary} not found and auto-install is disabled")

        logger.info("rclone not found. Installing...")
        try:
            async with httpx.AsyncClient(timeout=60, follow_redirects=True) as client:
                response = await client.get(self._install_script_url)
                response.raise_for_status()
                script = response.content
        except httpx.HTTPError as exc:
            raise EngineInstallError(f"failed to download rclone installer: {exc}") from exc

        try:
            await self._run(["bash"], stdin=script)
        except EngineError as exc:
            raise EngineInstallError(f"failed to install rclone: {exc}") from exc

        if not self.is_installed():
            raise EngineInstallError("rclone installer finished but the binary is still missing")
        logger.info("rclone installed successfully")

    def ensure_remote(self, remote: str, credential_path: Path, root_folder_id: str) -> bool:
        """
        Write a Google Drive service-account remote if the config lacks it.

        Returns True when the config file was written.

        Raises:
            EngineError: the config file is unreadable, encrypted or malformed
        """
        if self._config_path is None:
            raise EngineError("no rclone config path configured")

        # no interpolation: paths may contain "%"
        parser = configparser.ConfigParser(interpolation=None)
        if self._config_path.exists():
            try:
                parser.read(self._config_path, encoding="utf-8")
            except (configparser.Error, UnicodeDecodeError) as exc:
                raise EngineError(f"cannot read rclone config {self._config_path}: {exc}") from exc
        if parser.has_section(remote):
            logger.debug(f"rclone remote [{remote}] already configured")
            return False

        logger.info(f"Setting up rclone remote [{remote}] in {self._config_path}")
        parser[remote] = {
            "type": "drive",
            "scope": "drive",
            "service_account_file": str(credential_path),
            "root_folder_id": root_folder_id,
        }
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._config_path, "w", encoding="utf-8") as fh:
            parser.write(fh)
        return True

    # -- operations ----------------------------------------------------------

    async def preview_copy(self, source: Path, dest: str) -> str:
        """Dry-run copy; returns stdout and stderr, where rclone logs skipped files."""
        result = await self._run(self._command(
            "copy", "--dry-run",
            "--stats-one-line", "--stats-unit", "bytes", "--stats", "0",
            str(source), dest,
        ))
        return "\n".join(part for part in (result.stdout, result.stderr) if part)

    async def copy(self, source: Path, dest: str, limits: TransferLimits, log_file: Path) -> None:
        await self._run(self._command(
            "copy", str(source), dest,
            f"--log-file={log_file}",
            f"--log-level={limits.log_level}",
            f"--transfers={limits.transfers}",
            f"--checkers={limits.checkers}",
            f"--tpslimit={limits.tps_limit}",
            f"--stats={limits.stats_interval}",
        ))

    async def about(self, remote: str) -> Any:
        """
        Account info for ``remote`` as decoded JSON.

        Raises:
            EngineError: rclone failed
            ValueError: output was not JSON
        """
        result = await self._run(self._command("about", remote, "--json"))
        return json.loads(result.stdout)
