"""Command line interface for quotasync."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from rich.logging import RichHandler

from .cli_progress import render_configuration_summary, render_outcome, render_plan
from .config import load_config
from .errors import ConfigError, FatalBootstrapError, QuotaSyncError
from .models import BackupConfig
from .orchestrator import BackupOrchestrator
from .services.schedule import SYSTEMD_DIR, install_schedule
from .services.secrets import EnvSecretsProvider

FILE_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(
    debug: bool,
    silent: bool,
    log_level: Optional[str],
    log_file: Optional[Path] = None,
) -> str:
    """
    Configure logging.

    Console output goes through rich; every record at INFO or above is also
    appended to ``log_file``, the same file rclone writes its transfer stats
    to. ``--silent`` only mutes the console.
    Returns a string describing the effective console mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    logging.disable(logging.NOTSET)

    if debug:
        level = logging.DEBUG
    elif log_level:
        level = getattr(logging, log_level.upper(), logging.INFO)
    else:
        env_level = os.getenv("LOG_LEVEL")
        level = getattr(logging, (env_level or "INFO").upper(), logging.INFO)

    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as exc:
            print(f"WARNING: cannot write log file {log_file}: {exc}", file=sys.stderr)
        else:
            file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
            file_handler.setLevel(min(level, logging.INFO))
            root_logger.addHandler(file_handler)

    mode = "silent"
    if not silent:
        console_handler = RichHandler(
            rich_tracebacks=True,
            markup=False,
            show_time=False,
            show_path=False,
        )
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        console_handler.setLevel(level)
        root_logger.addHandler(console_handler)
        mode = logging.getLevelName(level)

    root_logger.setLevel(min(level, logging.INFO) if log_file is not None else level)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return mode


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_env_file(path: Path, override: bool = False) -> None:
    if not path.exists():
        raise CLIError(f"env file not found: {path}")
    if not path.is_file():
        raise CLIError(f"env path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue

        value = _strip_optional_quotes(value.strip())
        if override or key not in os.environ:
            os.environ[key] = value


def _resolve_default_env_file() -> Optional[Path]:
    default_env = Path(".env")
    return default_env if default_env.exists() and default_env.is_file() else None


def _describe(config: BackupConfig, command: str, log_mode: str, env_file: Optional[Path]) -> dict:
    return {
        "Command": command,
        "Source Root": str(config.source_root),
        "Volume UUID": config.volume_uuid or "-",
        "Remote": config.remote_root,
        "Mappings": "\n".join(str(m) for m in config.mappings),
        "Limits": (
            f"transfers={config.limits.transfers} checkers={config.limits.checkers} "
            f"tpslimit={config.limits.tps_limit} stats={config.limits.stats_interval}"
        ),
        "Summary Day": config.summary_day,
        "Mail": config.mail.recipient if config.mail.enabled else "(log only)",
        "Log File": str(config.log_file),
        "Env File": str(env_file) if env_file else "-",
        "Logging": log_mode,
    }


async def _run_backup(config: BackupConfig, silent: bool = False) -> int:
    orchestrator = BackupOrchestrator.from_config(config, EnvSecretsProvider())
    outcome = await orchestrator.run()
    if not silent:
        render_outcome(outcome)
    return outcome.exit_code


async def _run_plan(config: BackupConfig, silent: bool = False) -> int:
    orchestrator = BackupOrchestrator.from_config(config, EnvSecretsProvider())
    await orchestrator.bootstrap(alert=False)
    evaluation = await orchestrator.evaluate(alert=False)
    if not silent:
        render_plan(evaluation.decision, evaluation.plan, evaluation.quota)
    return 0


def _default_exec_start(env_file: Optional[Path]) -> str:
    parts = [sys.executable, "-m", "quotasync"]
    if env_file is not None:
        parts += ["--env-file", str(Path(env_file).resolve())]
    parts.append("run")
    return " ".join(parts)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quotasync",
        description="Back up local directories to an rclone remote when the remote has room for them.",
    )
    parser.add_argument(
        "-m",
        "--map",
        dest="mappings",
        action="append",
        default=None,
        metavar="LOCAL=REMOTE",
        help="Source mapping; repeatable (default from QUOTASYNC_MAPPINGS)",
    )
    parser.add_argument("--remote", default=None, help="rclone remote name (default from QUOTASYNC_REMOTE)")
    parser.add_argument(
        "--source-root",
        type=Path,
        default=None,
        help="Mount point of the source volume (default from QUOTASYNC_SOURCE_ROOT)",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="No console logs; the log file is still written")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument("--version", action="version", version="quotasync 0.1.0")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("run", help="Run one quota-gated backup (default)")
    subparsers.add_parser("plan", help="Estimate and decide without transferring")
    schedule = subparsers.add_parser("install-schedule", help="Install the systemd service and daily timer")
    schedule.add_argument("--unit-name", default="quotasync-backup")
    schedule.add_argument("--unit-dir", type=Path, default=SYSTEMD_DIR)
    schedule.add_argument(
        "--exec-start",
        default=None,
        help="Command the service runs (default: this interpreter with 'run')",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    command = args.command or "run"

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    try:
        config = load_config(
            source_root=args.source_root,
            remote_name=args.remote,
            mappings=args.mappings,
        )
    except ConfigError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
        log_file=config.log_file,
    )
    if not args.silent:
        render_configuration_summary(_describe(config, command, effective_log_mode, used_env_file))

    try:
        if command == "install-schedule":
            exec_start = args.exec_start or _default_exec_start(used_env_file)
            asyncio.run(install_schedule(exec_start, unit_name=args.unit_name, unit_dir=args.unit_dir))
            return 0
        if command == "plan":
            return asyncio.run(_run_plan(config, silent=args.silent))
        return asyncio.run(_run_backup(config, silent=args.silent))
    except FatalBootstrapError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except (QuotaSyncError, CLIError, OSError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
