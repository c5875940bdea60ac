"""
systemd scheduling artifacts.

A oneshot service runs one backup; a timer re-triggers it daily and catches
up after downtime (``Persistent=true``).
"""
from dataclasses import dataclass
from pathlib import Path
from typing import List
import logging

from ..errors import QuotaSyncError
from ..utils.process import run_command

logger = logging.getLogger(__name__)

SYSTEMD_DIR = Path("/etc/systemd/system")


@dataclass(frozen=True)
class TimerSettings:
    on_boot: str = "15min"
    interval: str = "1d"
    accuracy: str = "1h"
    persistent: bool = True


def render_service_unit(exec_start: str, description: str = "Quota-aware rclone backup", user: str = "root") -> str:
    return (
        "[Unit]\n"
        f"Description={description}\n"
        "After=network-online.target\n"
        "Wants=network-online.target\n"
        "\n"
        "[Service]\n"
        "Type=oneshot\n"
        f"ExecStart={exec_start}\n"
        f"User={user}\n"
        f"Group={user}\n"
        "\n"
        "[Install]\n"
        "WantedBy=multi-user.target\n"
    )


def render_timer_unit(settings: TimerSettings = TimerSettings(), description: str = "Run quota-aware rclone backup daily") -> str:
    return (
        "[Unit]\n"
        f"Description={description}\n"
        "\n"
        "[Timer]\n"
        f"OnBootSec={settings.on_boot}\n"
        f"OnUnitActiveSec={settings.interval}\n"
        f"AccuracySec={settings.accuracy}\n"
        f"Persistent={'true' if settings.persistent else 'false'}\n"
        "\n"
        "[Install]\n"
        "WantedBy=timers.target\n"
    )


async def install_schedule(
    exec_start: str,
    unit_name: str = "quotasync-backup",
    unit_dir: Path = SYSTEMD_DIR,
    settings: TimerSettings = TimerSettings(),
    runner=None,
) -> List[Path]:
    """
    Write the service and timer units, then enable and start the timer.

    Returns the written unit paths.
    """
    runner = runner or run_command
    unit_dir = Path(unit_dir)
    service_path = unit_dir / f"{unit_name}.service"
    timer_path = unit_dir / f"{unit_name}.timer"

    service_path.write_text(render_service_unit(exec_start), encoding="utf-8")
    timer_path.write_text(render_timer_unit(settings), encoding="utf-8")
    logger.info(f"Wrote {service_path} and {timer_path}")

    for cmd in (
        ["systemctl", "daemon-reload"],
        ["systemctl", "enable", timer_path.name],
        ["systemctl", "start", timer_path.name],
    ):
        try:
            result = await runner(cmd)
        except OSError as exc:
            raise QuotaSyncError(f"cannot run systemctl: {exc}") from exc
        if not result.ok:
            raise QuotaSyncError(f"{' '.join(cmd)} failed: {result.stderr.strip()}")

    logger.info("Systemd service and timer created and enabled.")
    return [service_path, timer_path]
