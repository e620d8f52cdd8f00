"""
External tool adapters — the data-embedding generator and the Windows icon
embedder.

Both are opaque to the pipeline: they receive paths and flags, produce one
file, and either succeed or raise ``ToolError`` with the tool's output.
The defaults drive the ``go-bindata`` and ``rsrc`` command-line tools
through the shared command runner.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from deskpack.adapters.shell.command import CommandRunner, run_command

logger = logging.getLogger(__name__)


class ToolError(RuntimeError):
    """Raised when an external tool exits non-zero."""


@dataclass(frozen=True)
class EmbedInput:
    """A directory to embed."""

    path: Path
    recursive: bool = True


@dataclass(frozen=True)
class EmbedRequest:
    """Everything the embedding generator needs for one output file."""

    inputs: tuple[EmbedInput, ...]
    output: Path
    prefix: Path
    package: str = "main"
    tags: str = ""


class EmbedGenerator(Protocol):
    def generate(self, request: EmbedRequest) -> None: ...


class IconEmbedder(Protocol):
    def embed(self, icon: Path, arch: str, output: Path) -> None: ...


@dataclass
class GoBindataGenerator:
    """Run ``go-bindata`` to turn directories into a Go source file."""

    binary: str = "go-bindata"
    runner: CommandRunner = field(default=run_command)

    def command(self, request: EmbedRequest) -> list[str]:
        args = [
            self.binary,
            "-o", str(request.output),
            "-pkg", request.package,
            "-prefix", str(request.prefix),
        ]
        if request.tags:
            args += ["-tags", request.tags]
        for item in request.inputs:
            args.append(f"{item.path}/..." if item.recursive else str(item.path))
        return args

    def generate(self, request: EmbedRequest) -> None:
        request.output.parent.mkdir(parents=True, exist_ok=True)
        result = self.runner(self.command(request))
        if not result.ok:
            raise ToolError(
                f"{self.binary} exited with code {result.returncode}: {result.output.strip()}"
            )


@dataclass
class RsrcIconEmbedder:
    """Run ``rsrc`` to compile a Windows icon into a ``.syso`` object."""

    binary: str = "rsrc"
    runner: CommandRunner = field(default=run_command)

    def command(self, icon: Path, arch: str, output: Path) -> list[str]:
        return [self.binary, "-ico", str(icon), "-arch", arch, "-o", str(output)]

    def embed(self, icon: Path, arch: str, output: Path) -> None:
        result = self.runner(self.command(icon, arch, output))
        if not result.ok:
            raise ToolError(
                f"{self.binary} exited with code {result.returncode}: {result.output.strip()}"
            )
