"""
Protocols (Interfaces) for Dependency Inversion.

Small, focused interfaces so the orchestrator can be driven by fakes in tests.
"""
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Sequence, runtime_checkable

from .models import TransferLimits
from .utils.process import CommandResult


@runtime_checkable
class ISecretsProvider(Protocol):
    """Source of externally provisioned secrets."""

    def get_credential_path(self) -> Path:
        """Path of the service-account credential file."""
        ...

    def get_remote_folder_id(self) -> str:
        """Identifier of the remote folder used as the backup root."""
        ...


@runtime_checkable
class ITransferEngine(Protocol):
    """Interface for the external transfer engine (rclone)."""

    async def ensure_installed(self, auto_install: bool = True) -> None:
        """Make the engine available or raise EngineInstallError."""
        ...

    def ensure_remote(self, remote: str, credential_path: Path, root_folder_id: str) -> bool:
        """Configure the remote if missing."""
        ...

    async def preview_copy(self, source: Path, dest: str) -> str:
        """Dry-run a copy and return the engine's textual report."""
        ...

    async def copy(self, source: Path, dest: str, limits: TransferLimits, log_file: Path) -> None:
        """Perform an incremental copy."""
        ...

    async def about(self, remote: str) -> Dict[str, Any]:
        """Return the remote's account-info document."""
        ...


@runtime_checkable
class IMailer(Protocol):
    """Interface for transactional email delivery."""

    async def send(self, subject: str, body: str) -> None:
        ...


@runtime_checkable
class ICommandRunner(Protocol):
    """Callable running an external command."""

    async def __call__(self, args: Sequence[str], stdin: Optional[bytes] = None) -> CommandResult:
        ...
