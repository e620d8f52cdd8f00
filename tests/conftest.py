"""
Shared test fixtures and fakes.

The pipeline never touches the network or real toolchains in tests:
downloads go through ``FakeOpener``, the embedding generator is
``RecordingGenerator`` and external commands go through ``FakeRunner``.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any

import pytest

from deskpack.adapters.shell.command import CommandResult
from deskpack.adapters.tools import EmbedRequest
from deskpack.core.cancellation import CancellationToken
from deskpack.core.models.configuration import Configuration


class FakeOpener:
    """Stands in for urllib's OpenerDirector; serves a payload per URL."""

    def __init__(self, fail: bool = False) -> None:
        self.calls: list[str] = []
        self.fail = fail
        self.on_open = None

    def open(self, fullurl: Any, data: Any = None, timeout: Any = None) -> io.BytesIO:
        url = getattr(fullurl, "full_url", fullurl)
        self.calls.append(url)
        if self.on_open is not None:
            self.on_open(url)
        if self.fail:
            import urllib.error

            raise urllib.error.URLError("connection refused")
        return io.BytesIO(f"payload:{url}".encode())


class RecordingGenerator:
    """Embedding generator that records what it saw in the vendor directory."""

    def __init__(self, on_generate=None) -> None:
        self.requests: list[EmbedRequest] = []
        self.vendor_snapshots: list[list[str]] = []
        self.on_generate = on_generate

    def generate(self, request: EmbedRequest) -> None:
        self.requests.append(request)
        vendor = request.inputs[-1].path
        self.vendor_snapshots.append(sorted(p.name for p in vendor.iterdir()))
        request.output.parent.mkdir(parents=True, exist_ok=True)
        request.output.write_text(f"package {request.package}\n")
        if self.on_generate is not None:
            self.on_generate(request)


class FakeRunner:
    """Command runner that pretends to be go/rsrc/go-bindata."""

    def __init__(self, returncode: int = 0, output: str = "") -> None:
        self.calls: list[dict[str, Any]] = []
        self.returncode = returncode
        self.output = output

    def __call__(self, args, *, env=None, cwd=None) -> CommandResult:
        argv = tuple(str(a) for a in args)
        self.calls.append({"args": argv, "env": env, "cwd": cwd})
        if self.returncode == 0 and "-o" in argv:
            out = Path(argv[argv.index("-o") + 1])
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_bytes(b"\x7fELF fake binary")
        return CommandResult(args=argv, returncode=self.returncode, output=self.output)


@pytest.fixture
def token() -> CancellationToken:
    return CancellationToken()


@pytest.fixture
def opener() -> FakeOpener:
    return FakeOpener()


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A minimal app project with a resources folder."""
    project = tmp_path / "app"
    (project / "resources" / "app").mkdir(parents=True)
    (project / "resources" / "app" / "index.html").write_text("<html></html>")
    (project / "main.go").write_text("package main\n")
    return project


@pytest.fixture
def make_config(tmp_path: Path, project_dir: Path):
    """Factory for configurations rooted in the temp project."""

    def _make(**overrides: Any) -> Configuration:
        data: dict[str, Any] = {
            "app_name": "Demo",
            "input_path": str(project_dir),
            "output_path": str(tmp_path / "output"),
            "cache_path": str(tmp_path / "cache"),
            "environments": [{"os": "linux", "arch": "amd64"}],
        }
        data.update(overrides)
        return Configuration.model_validate(data)

    return _make
