"""
Tests for the compile driver — link flags, environment, command line,
Windows icon resource.
"""

from datetime import datetime
from pathlib import Path

import pytest

from conftest import FakeRunner
from deskpack.adapters.tools import RsrcIconEmbedder
from deskpack.core.cancellation import CancellationToken, Cancelled
from deskpack.core.engine.compile import (
    CompileDriver,
    LinkFlags,
    build_environment,
    build_link_flags,
)
from deskpack.core.errors import CompileError
from deskpack.core.models.configuration import Environment

LINUX = Environment(os="linux", arch="amd64", tags="gtk3")
WINDOWS = Environment(os="windows", arch="386")


class TestLinkFlags:
    """Tests for link flag ordering."""

    def test_order_and_duplicates_preserved(self):
        flags = LinkFlags().add("X", "a=1").add("H", "windowsgui").add("X", "b=2")
        assert str(flags) == "-X a=1 -H windowsgui -X b=2"
        assert flags.values("X") == ["a=1", "b=2"]

    def test_timestamp_flag(self):
        at = datetime(2024, 1, 2, 3, 4, 5)
        flags = build_link_flags(LINUX, "main", built_at=at)
        assert flags.entries == [("X", f'"main.BuiltAt={at}"')]

    def test_windows_gui_subsystem(self):
        flags = build_link_flags(WINDOWS, "main")
        assert ("H", "windowsgui") in flags.entries


class TestBuildEnvironment:
    """Tests for the compiler process environment."""

    def test_exact_keys(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("GOPATH", "/home/me/go")
        monkeypatch.setenv("PATH", "/usr/bin")
        monkeypatch.setenv("CGO_ENABLED", "1")
        env = build_environment(WINDOWS)
        assert env == {
            "GOARCH": "386",
            "GOOS": "windows",
            "GOPATH": "/home/me/go",
            "PATH": "/usr/bin",
        }


class TestCompileDriver:
    """Tests for the go build invocation."""

    def _driver(self, tmp_path: Path, runner: FakeRunner, **kwargs) -> CompileDriver:
        return CompileDriver(
            go_binary="go",
            build_source="github.com/me/app",
            input_dir=tmp_path,
            runner=runner,
            **kwargs,
        )

    def test_command_line(self, tmp_path: Path):
        runner = FakeRunner()
        binary = self._driver(tmp_path, runner).build(LINUX, tmp_path / "linux-gtk3-amd64")
        assert binary == tmp_path / "linux-gtk3-amd64" / "binary"
        assert binary.exists()

        args = runner.calls[0]["args"]
        assert args[:3] == ("go", "build", "-ldflags")
        assert args[args.index("-o") + 1] == str(binary)
        assert args[args.index("-tags") + 1] == "gtk3"
        assert args[-1] == "github.com/me/app"
        assert set(runner.calls[0]["env"]) == {"GOARCH", "GOOS", "GOPATH", "PATH"}

    def test_failure_includes_output(self, tmp_path: Path):
        runner = FakeRunner(returncode=2, output="main.go:3: undefined: foo")
        with pytest.raises(CompileError, match="undefined: foo"):
            self._driver(tmp_path, runner).build(LINUX, tmp_path / "out")

    def test_windows_icon_embedded_before_build(self, tmp_path: Path):
        runner = FakeRunner()
        icon = tmp_path / "icon.ico"
        driver = self._driver(
            tmp_path, runner, icon_windows=icon, icon_embedder=RsrcIconEmbedder(runner=runner)
        )
        driver.build(WINDOWS, tmp_path / "out")
        assert runner.calls[0]["args"][0] == "rsrc"
        assert runner.calls[0]["args"][-1] == str(tmp_path / "windows.syso")
        assert runner.calls[1]["args"][0] == "go"

    def test_icon_skipped_for_other_os(self, tmp_path: Path):
        runner = FakeRunner()
        driver = self._driver(
            tmp_path,
            runner,
            icon_windows=tmp_path / "icon.ico",
            icon_embedder=RsrcIconEmbedder(runner=runner),
        )
        driver.build(LINUX, tmp_path / "out")
        assert [c["args"][0] for c in runner.calls] == ["go"]

    def test_icon_failure_stops_before_compiler(self, tmp_path: Path):
        runner = FakeRunner()
        driver = self._driver(
            tmp_path,
            runner,
            icon_windows=tmp_path / "icon.ico",
            icon_embedder=RsrcIconEmbedder(runner=FakeRunner(returncode=1, output="bad ico")),
        )
        with pytest.raises(CompileError, match="bad ico"):
            driver.build(WINDOWS, tmp_path / "out")
        assert runner.calls == []

    def test_cancelled_token_starts_no_tools(self, tmp_path: Path):
        runner = FakeRunner()
        token = CancellationToken()
        token.cancel()
        driver = self._driver(
            tmp_path,
            runner,
            icon_windows=tmp_path / "icon.ico",
            icon_embedder=RsrcIconEmbedder(runner=runner),
            token=token,
        )
        with pytest.raises(Cancelled):
            driver.build(WINDOWS, tmp_path / "out")
        assert runner.calls == []
        assert not (tmp_path / "windows.syso").exists()

    def test_cancel_during_icon_step_skips_compiler(self, tmp_path: Path):
        token = CancellationToken()
        runner = FakeRunner()

        def embed_then_cancel(args, *, env=None, cwd=None):
            token.cancel()
            return FakeRunner()(args, env=env, cwd=cwd)

        driver = self._driver(
            tmp_path,
            runner,
            icon_windows=tmp_path / "icon.ico",
            icon_embedder=RsrcIconEmbedder(runner=embed_then_cancel),
            token=token,
        )
        with pytest.raises(Cancelled):
            driver.build(WINDOWS, tmp_path / "out")
        assert runner.calls == []
