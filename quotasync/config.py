"""
Configuration loading.

Builds the immutable BackupConfig once, from environment variables (usually
populated from a .env file by the CLI) plus explicit overrides.
"""
from pathlib import Path
from typing import Iterable, Mapping, Optional, Tuple
import os

from .errors import ConfigError
from .models import BackupConfig, MailConfig, SourceMapping, TransferLimits

DEFAULT_SOURCE_ROOT = "/mnt/external"
DEFAULT_MAPPINGS = "photos=photos_backup;videos=videos_backup;documents=documents_backup"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def parse_mapping(item: str, source_root: Path) -> SourceMapping:
    """Parse ``LOCAL=REMOTE``; a relative LOCAL resolves under ``source_root``."""
    if "=" not in item:
        raise ConfigError(f"mapping must look like LOCAL=REMOTE: {item!r}")
    local, remote = (part.strip() for part in item.split("=", 1))
    if not local or not remote:
        raise ConfigError(f"mapping must look like LOCAL=REMOTE: {item!r}")
    local_path = Path(local).expanduser()
    if not local_path.is_absolute():
        local_path = source_root / local_path
    return SourceMapping(local_path=local_path, remote_subdirectory=remote.strip("/"))


def parse_mappings(items: Iterable[str], source_root: Path) -> Tuple[SourceMapping, ...]:
    mappings = []
    seen = set()
    for item in items:
        if not item.strip():
            continue
        mapping = parse_mapping(item, source_root)
        if mapping.local_path in seen:
            raise ConfigError(f"duplicate mapping for {mapping.local_path}")
        seen.add(mapping.local_path)
        mappings.append(mapping)
    return tuple(mappings)


def _int(environ: Mapping[str, str], name: str, default: int, minimum: int = 1) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")
    return value


def _bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def load_config(
    environ: Optional[Mapping[str, str]] = None,
    source_root: Optional[Path] = None,
    remote_name: Optional[str] = None,
    mappings: Optional[Iterable[str]] = None,
) -> BackupConfig:
    """
    Build a BackupConfig.

    Args:
        environ: variables to read (default: os.environ)
        source_root: overrides QUOTASYNC_SOURCE_ROOT
        remote_name: overrides QUOTASYNC_REMOTE
        mappings: ``LOCAL=REMOTE`` items overriding QUOTASYNC_MAPPINGS

    Raises:
        ConfigError: a value is malformed
    """
    env = os.environ if environ is None else environ

    root = Path(source_root or env.get("QUOTASYNC_SOURCE_ROOT") or DEFAULT_SOURCE_ROOT).expanduser()
    mapping_items = list(mappings) if mappings else (env.get("QUOTASYNC_MAPPINGS") or DEFAULT_MAPPINGS).split(";")
    parsed = parse_mappings(mapping_items, root)
    if not parsed:
        raise ConfigError("no source mappings configured")

    limits = TransferLimits(
        transfers=_int(env, "QUOTASYNC_TRANSFERS", 4),
        checkers=_int(env, "QUOTASYNC_CHECKERS", 8),
        tps_limit=_int(env, "QUOTASYNC_TPS_LIMIT", 10),
        stats_interval=env.get("QUOTASYNC_STATS_INTERVAL") or "10s",
        log_level=(env.get("QUOTASYNC_RCLONE_LOG_LEVEL") or "INFO").upper(),
    )

    summary_day = _int(env, "QUOTASYNC_SUMMARY_DAY", 1)
    if summary_day > 31:
        raise ConfigError(f"QUOTASYNC_SUMMARY_DAY must be 1-31, got {summary_day}")

    mail = MailConfig(
        api_key=env.get("SENDGRID_API_KEY") or None,
        sender=env.get("QUOTASYNC_MAIL_FROM") or None,
        recipient=env.get("QUOTASYNC_MAIL_TO") or None,
        api_url=env.get("QUOTASYNC_MAIL_API_URL") or MailConfig.api_url,
    )

    rclone_config = env.get("QUOTASYNC_RCLONE_CONFIG")
    return BackupConfig(
        source_root=root,
        volume_uuid=env.get("QUOTASYNC_VOLUME_UUID") or None,
        remote_name=(remote_name or env.get("QUOTASYNC_REMOTE") or "gdrive").rstrip(":"),
        mappings=parsed,
        log_file=Path(env.get("QUOTASYNC_LOG_FILE") or "/var/log/rclone_backup.log").expanduser(),
        rclone_binary=env.get("QUOTASYNC_RCLONE_BINARY") or "rclone",
        rclone_config=(
            Path(rclone_config).expanduser() if rclone_config
            else Path.home() / ".config" / "rclone" / "rclone.conf"
        ),
        limits=limits,
        summary_day=summary_day,
        mail=mail,
        auto_install=_bool(env, "QUOTASYNC_AUTO_INSTALL", True),
    )
