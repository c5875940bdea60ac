"""Secrets providers - where the credential file and folder id come from."""
from pathlib import Path
from typing import Mapping, Optional
import os

from ..errors import CredentialError

CREDENTIAL_ENV = "QUOTASYNC_SERVICE_ACCOUNT_FILE"
FOLDER_ID_ENV = "QUOTASYNC_ROOT_FOLDER_ID"


class StaticSecretsProvider:
    """Holds literal values."""

    def __init__(self, credential_path: Path, remote_folder_id: str):
        self._credential_path = Path(credential_path)
        self._remote_folder_id = remote_folder_id

    def get_credential_path(self) -> Path:
        return self._credential_path

    def get_remote_folder_id(self) -> str:
        return self._remote_folder_id


class EnvSecretsProvider:
    """Reads secrets from environment variables on demand."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = environ if environ is not None else os.environ

    def _require(self, name: str) -> str:
        value = (self._environ.get(name) or "").strip()
        if not value:
            raise CredentialError(f"{name} environment variable is not set")
        return value

    def get_credential_path(self) -> Path:
        return Path(self._require(CREDENTIAL_ENV)).expanduser()

    def get_remote_folder_id(self) -> str:
        return self._require(FOLDER_ID_ENV)
