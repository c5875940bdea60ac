"""
Models for quotasync.

Immutable dataclasses; configuration is built once at process start and
passed by reference into every component.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple


@dataclass(frozen=True)
class SourceMapping:
    """One local directory mirrored into one remote subdirectory."""
    local_path: Path
    remote_subdirectory: str

    def remote_path(self, remote_name: str) -> str:
        """rclone-style destination, e.g. ``gdrive:photos_backup``."""
        return f"{remote_name}:{self.remote_subdirectory.strip('/')}"

    def __str__(self) -> str:
        return f"{self.local_path} -> {self.remote_subdirectory}"


@dataclass(frozen=True)
class QuotaSnapshot:
    """Remote capacity as reported by one quota query."""
    total_bytes: int
    used_bytes: int
    observed_at: datetime

    @property
    def available_bytes(self) -> int:
        # Negative when the account is already over quota.
        return self.total_bytes - self.used_bytes

    @property
    def used_percent(self) -> float:
        if self.total_bytes <= 0:
            return 100.0
        return self.used_bytes * 100.0 / self.total_bytes


@dataclass(frozen=True)
class LocalUsage:
    """Free-space reading of the local source volume."""
    path: Path
    total_bytes: int
    used_bytes: int
    free_bytes: int


@dataclass(frozen=True)
class TransferLimits:
    """Concurrency and pacing passed to every real transfer."""
    transfers: int = 4
    checkers: int = 8
    tps_limit: int = 10
    stats_interval: str = "10s"
    log_level: str = "INFO"


@dataclass(frozen=True)
class MailConfig:
    """Transactional email settings (SendGrid v3)."""
    api_key: Optional[str] = None
    sender: Optional[str] = None
    recipient: Optional[str] = None
    api_url: str = "https://api.sendgrid.com/v3/mail/send"

    @property
    def enabled(self) -> bool:
        return bool(self.api_key and self.sender and self.recipient)


@dataclass(frozen=True)
class BackupConfig:
    """Immutable configuration for one orchestration run."""
    source_root: Path = Path("/mnt/external")
    volume_uuid: Optional[str] = None
    remote_name: str = "gdrive"
    mappings: Tuple[SourceMapping, ...] = ()
    log_file: Path = Path("/var/log/rclone_backup.log")
    rclone_binary: str = "rclone"
    rclone_config: Path = field(
        default_factory=lambda: Path.home() / ".config" / "rclone" / "rclone.conf"
    )
    limits: TransferLimits = field(default_factory=TransferLimits)
    summary_day: int = 1
    mail: MailConfig = field(default_factory=MailConfig)
    auto_install: bool = True

    @property
    def remote_root(self) -> str:
        return f"{self.remote_name}:"


class BatchDecision(Enum):
    """Outcome of the decision gate for a whole batch."""
    AUTHORIZED = "authorized"
    INSUFFICIENT_SPACE = "insufficient_space"
    QUOTA_UNAVAILABLE = "quota_unavailable"
    ESTIMATION_UNAVAILABLE = "estimation_unavailable"

    @property
    def vetoed(self) -> bool:
        return self is not BatchDecision.AUTHORIZED


@dataclass(frozen=True)
class PlannedTransfer:
    """One mapping with its estimated upload size in bytes."""
    mapping: SourceMapping
    estimated_bytes: int


@dataclass(frozen=True)
class TransferPlan:
    """Ordered per-mapping estimates for one run. Never persisted."""
    entries: Tuple[PlannedTransfer, ...] = ()

    @property
    def total_required_bytes(self) -> int:
        return sum(entry.estimated_bytes for entry in self.entries)

    @property
    def mappings(self) -> Tuple[SourceMapping, ...]:
        return tuple(entry.mapping for entry in self.entries)


@dataclass(frozen=True)
class MappingResult:
    """Result of the real transfer of one mapping."""
    mapping: SourceMapping
    success: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls, mapping: SourceMapping) -> "MappingResult":
        return cls(mapping=mapping, success=True)

    @classmethod
    def fail(cls, mapping: SourceMapping, error: str) -> "MappingResult":
        return cls(mapping=mapping, success=False, error=error)


@dataclass(frozen=True)
class RunOutcome:
    """Everything one orchestration run produced."""
    decision: BatchDecision
    finished_at: datetime
    plan: Optional[TransferPlan] = None
    results: Tuple[MappingResult, ...] = ()
    quota_before: Optional[QuotaSnapshot] = None
    quota_after: Optional[QuotaSnapshot] = None
    summary_sent: bool = False

    @property
    def failed_mappings(self) -> Tuple[MappingResult, ...]:
        return tuple(r for r in self.results if not r.success)

    @property
    def all_failed(self) -> bool:
        return bool(self.results) and len(self.failed_mappings) == len(self.results)

    @property
    def exit_code(self) -> int:
        # A veto is not a process failure; losing every mapping is.
        return 1 if self.all_failed else 0
