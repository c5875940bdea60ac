"""
quotasync - quota-aware scheduled backups with rclone.

Mirrors local directories into an rclone remote, but only after checking that
the remote has room for the whole pending upload.

Usage:
    from quotasync import BackupOrchestrator, load_config
    from quotasync.services import EnvSecretsProvider

    config = load_config()
    orchestrator = BackupOrchestrator.from_config(config, EnvSecretsProvider())
    outcome = await orchestrator.run()

    # Size tokens
    from quotasync import parse_size
    parse_size("2.5 MiB")  # 2621440
"""
from .config import load_config
from .errors import (
    FatalBootstrapError,
    DataUnavailableError,
    QuotaSyncError,
    UnitParseError,
)
from .models import (
    BackupConfig,
    BatchDecision,
    QuotaSnapshot,
    RunOutcome,
    SourceMapping,
    TransferPlan,
)
from .orchestrator import BackupOrchestrator, decide
from .services.units import parse_size

__version__ = "0.1.0"
__all__ = [
    # Main
    "BackupOrchestrator",
    "decide",
    "load_config",
    "parse_size",
    # Models
    "BackupConfig",
    "BatchDecision",
    "QuotaSnapshot",
    "RunOutcome",
    "SourceMapping",
    "TransferPlan",
    # Errors
    "QuotaSyncError",
    "FatalBootstrapError",
    "DataUnavailableError",
    "UnitParseError",
]
