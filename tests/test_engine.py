"""Tests for the rclone adapter."""
import configparser
from pathlib import Path

import httpx
import pytest

from quotasync.errors import EngineError, EngineInstallError
from quotasync.models import TransferLimits
from quotasync.services.engine import RcloneEngine

from fakes import FakeRunner, failed, ok


class TestRcloneCommands:
    @pytest.mark.asyncio
    async def test_preview_copy_is_dry_run(self, tmp_path):
        runner = FakeRunner(ok(stdout="", stderr="NOTICE: a: Skipped copy (size 1Ki)"))
        engine = RcloneEngine("rclone", tmp_path / "rclone.conf", runner=runner)

        report = await engine.preview_copy(Path("/src"), "gdrive:dst")

        args = runner.calls[0]
        assert args[:3] == ("rclone", "--config", str(tmp_path / "rclone.conf"))
        assert "--dry-run" in args
        assert args[-2:] == ("/src", "gdrive:dst")
        assert "(size 1Ki)" in report

    @pytest.mark.asyncio
    async def test_copy_passes_limits(self):
        runner = FakeRunner(ok())
        engine = RcloneEngine("rclone", runner=runner)
        limits = TransferLimits(transfers=4, checkers=8, tps_limit=10, stats_interval="10s")

        await engine.copy(Path("/src"), "gdrive:dst", limits, Path("/var/log/backup.log"))

        args = runner.calls[0]
        assert args[:4] == ("rclone", "copy", "/src", "gdrive:dst")
        assert "--dry-run" not in args
        for flag in ("--transfers=4", "--checkers=8", "--tpslimit=10", "--stats=10s",
                     "--log-file=/var/log/backup.log", "--log-level=INFO"):
            assert flag in args

    @pytest.mark.asyncio
    async def test_about_decodes_json(self):
        runner = FakeRunner(ok(stdout='{"total": 100, "used": 60}'))
        engine = RcloneEngine("rclone", runner=runner)

        assert await engine.about("gdrive:") == {"total": 100, "used": 60}
        assert runner.calls[0] == ("rclone", "about", "gdrive:", "--json")

    @pytest.mark.asyncio
    async def test_nonzero_exit_raises(self):
        engine = RcloneEngine("rclone", runner=FakeRunner(failed(3, "directory not found")))

        with pytest.raises(EngineError) as info:
            await engine.copy(Path("/src"), "gdrive:dst", TransferLimits(), Path("/tmp/log"))
        assert info.value.returncode == 3
        assert "directory not found" in info.value.stderr

    @pytest.mark.asyncio
    async def test_spawn_failure_raises(self):
        async def runner(args, stdin=None):
            raise FileNotFoundError(args[0])

        engine = RcloneEngine("rclone", runner=runner)
        with pytest.raises(EngineError):
            await engine.about("gdrive:")


class TestEnsureRemote:
    def test_writes_missing_section(self, tmp_path):
        conf = tmp_path / "rclone" / "rclone.conf"
        engine = RcloneEngine("rclone", conf)

        assert engine.ensure_remote("gdrive", Path("/secrets/sa.json"), "folder123") is True

        parser = configparser.ConfigParser()
        parser.read(conf)
        assert parser["gdrive"]["type"] == "drive"
        assert parser["gdrive"]["service_account_file"] == "/secrets/sa.json"
        assert parser["gdrive"]["root_folder_id"] == "folder123"

    def test_keeps_existing_section(self, tmp_path):
        conf = tmp_path / "rclone.conf"
        conf.write_text("[gdrive]\ntype = drive\ntoken = keep-me\n")
        engine = RcloneEngine("rclone", conf)

        assert engine.ensure_remote("gdrive", Path("/secrets/sa.json"), "folder123") is False
        assert "keep-me" in conf.read_text()

    def test_adds_next_to_other_remotes(self, tmp_path):
        conf = tmp_path / "rclone.conf"
        conf.write_text("[other]\ntype = s3\n")
        engine = RcloneEngine("rclone", conf)

        engine.ensure_remote("gdrive", Path("/sa.json"), "f")

        parser = configparser.ConfigParser()
        parser.read(conf)
        assert parser.sections() == ["other", "gdrive"]

    def test_percent_in_credential_path(self, tmp_path):
        conf = tmp_path / "rclone.conf"
        conf.write_text("[other]\ntype = s3\n")
        engine = RcloneEngine("rclone", conf)

        assert engine.ensure_remote("gdrive", Path("/secrets/sa%1.json"), "f") is True
        assert "service_account_file = /secrets/sa%1.json" in conf.read_text()

    def test_encrypted_config_raises_engine_error(self, tmp_path):
        conf = tmp_path / "rclone.conf"
        conf.write_text("# Encrypted rclone configuration File\n\nRCLONE_ENCRYPT_V0:\nAbCdEf0123\n")
        engine = RcloneEngine("rclone", conf)

        with pytest.raises(EngineError, match="cannot read rclone config"):
            engine.ensure_remote("gdrive", Path("/sa.json"), "f")
        assert "RCLONE_ENCRYPT_V0" in conf.read_text()


class TestEnsureInstalled:
    @pytest.mark.asyncio
    async def test_present_binary(self, tmp_path):
        binary = tmp_path / "rclone"
        binary.write_text("#!/bin/sh\n")
        runner = FakeRunner()
        engine = RcloneEngine(str(binary), runner=runner)

        await engine.ensure_installed()
        assert runner.calls == []

    @pytest.mark.asyncio
    async def test_missing_without_auto_install(self, tmp_path):
        engine = RcloneEngine(str(tmp_path / "nope"), runner=FakeRunner())

        with pytest.raises(EngineInstallError):
            await engine.ensure_installed(auto_install=False)

    @pytest.mark.asyncio
    async def test_download_failure(self, tmp_path, monkeypatch):
        def handler(request):
            return httpx.Response(503)

        transport = httpx.MockTransport(handler)
        original = httpx.AsyncClient

        def client_factory(*args, **kwargs):
            kwargs["transport"] = transport
            return original(*args, **kwargs)

        monkeypatch.setattr(httpx, "AsyncClient", client_factory)
        runner = FakeRunner()
        engine = RcloneEngine(str(tmp_path / "nope"), runner=runner)

        with pytest.raises(EngineInstallError, match="download"):
            await engine.ensure_installed(auto_install=True)
        assert runner.calls == []

    @pytest.mark.asyncio
    async def test_installs_with_bash(self, tmp_path, monkeypatch):
        binary = tmp_path / "rclone"
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"echo install"))
        original = httpx.AsyncClient
        monkeypatch.setattr(
            httpx, "AsyncClient", lambda *a, **kw: original(*a, **{**kw, "transport": transport})
        )

        async def runner(args, stdin=None):
            binary.write_text("#!/bin/sh\n")
            return ok()

        engine = RcloneEngine(str(binary), runner=runner)
        await engine.ensure_installed(auto_install=True)
        assert binary.exists()
