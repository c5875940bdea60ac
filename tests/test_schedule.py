"""Tests for the systemd schedule installer."""
import pytest

from quotasync.errors import QuotaSyncError
from quotasync.services.schedule import (
    TimerSettings,
    install_schedule,
    render_service_unit,
    render_timer_unit,
)

from fakes import FakeRunner, failed


def test_service_unit_is_oneshot():
    unit = render_service_unit("/usr/bin/python3 -m quotasync run")
    assert "Type=oneshot" in unit
    assert "ExecStart=/usr/bin/python3 -m quotasync run" in unit
    assert "After=network-online.target" in unit


def test_timer_unit_defaults():
    unit = render_timer_unit()
    for line in ("OnBootSec=15min", "OnUnitActiveSec=1d", "AccuracySec=1h", "Persistent=true"):
        assert line in unit


def test_timer_unit_custom():
    unit = render_timer_unit(TimerSettings(on_boot="5min", interval="12h", persistent=False))
    assert "OnUnitActiveSec=12h" in unit
    assert "Persistent=false" in unit


@pytest.mark.asyncio
async def test_install_writes_units_and_enables_timer(tmp_path):
    runner = FakeRunner()
    paths = await install_schedule("/bin/true", unit_name="qs", unit_dir=tmp_path, runner=runner)

    assert [p.name for p in paths] == ["qs.service", "qs.timer"]
    assert (tmp_path / "qs.service").read_text().startswith("[Unit]")
    assert runner.calls == [
        ("systemctl", "daemon-reload"),
        ("systemctl", "enable", "qs.timer"),
        ("systemctl", "start", "qs.timer"),
    ]


@pytest.mark.asyncio
async def test_install_reports_systemctl_failure(tmp_path):
    runner = FakeRunner(failed(1, "access denied"))
    with pytest.raises(QuotaSyncError, match="access denied"):
        await install_schedule("/bin/true", unit_dir=tmp_path, runner=runner)
