"""
Compile driver — cross-compile the backend for one environment.

The compiler runs with a replaced environment (target GOOS/GOARCH, GOPATH
and PATH only) so nothing from the host shell leaks into a cross build.
The link flags are an ordered list of (flag, value) pairs: the order is
visible in the final command line and duplicates are legal.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from deskpack.adapters.shell.command import CommandRunner, run_command
from deskpack.adapters.tools import IconEmbedder, ToolError
from deskpack.core.cancellation import CancellationToken
from deskpack.core.errors import CompileError
from deskpack.core.models.configuration import Environment

logger = logging.getLogger(__name__)

BINARY_NAME = "binary"
SYSO_NAME = "windows.syso"


@dataclass
class LinkFlags:
    """Ordered ``-ldflags`` entries."""

    entries: list[tuple[str, str]] = field(default_factory=list)

    def add(self, flag: str, value: str) -> LinkFlags:
        self.entries.append((flag, value))
        return self

    def values(self, flag: str) -> list[str]:
        return [v for f, v in self.entries if f == flag]

    def __str__(self) -> str:
        return " ".join(f"-{f} {v}" for f, v in self.entries)


def build_link_flags(env: Environment, package: str, built_at: datetime | None = None) -> LinkFlags:
    """Link flags for ``env``: build timestamp, plus GUI subsystem on Windows."""
    built_at = built_at or datetime.now().astimezone()
    flags = LinkFlags().add("X", f'"{package}.BuiltAt={built_at}"')
    if env.os == "windows":
        flags.add("H", "windowsgui")
    return flags


def build_environment(env: Environment, gopath: str | None = None, path: str | None = None) -> dict[str, str]:
    """The complete process environment for the compiler."""
    return {
        "GOARCH": env.arch,
        "GOOS": env.os,
        "GOPATH": os.environ.get("GOPATH", "") if gopath is None else gopath,
        "PATH": os.environ.get("PATH", "") if path is None else path,
    }


class CompileDriver:
    """Build the backend binary for one (OS, arch, tags) triple."""

    def __init__(
        self,
        *,
        go_binary: str,
        build_source: str,
        input_dir: Path,
        package: str = "main",
        icon_windows: Path | None = None,
        icon_embedder: IconEmbedder | None = None,
        runner: CommandRunner = run_command,
        token: CancellationToken | None = None,
    ) -> None:
        self.go_binary = go_binary
        self.build_source = build_source
        self.input_dir = input_dir
        self.package = package
        self.icon_windows = icon_windows
        self.icon_embedder = icon_embedder
        self.runner = runner
        self.token = token or CancellationToken()

    def command(self, env: Environment, binary_path: Path, flags: LinkFlags) -> list[str]:
        return [
            self.go_binary,
            "build",
            "-ldflags", str(flags),
            "-o", str(binary_path),
            "-tags", env.tags,
            self.build_source,
        ]

    def add_windows_syso(self, arch: str) -> Path | None:
        """Compile the Windows icon into ``<input>/windows.syso`` if one is set."""
        if self.icon_windows is None or self.icon_embedder is None:
            return None
        out = self.input_dir / SYSO_NAME
        logger.debug("Embedding icon %s into %s", self.icon_windows, out)
        try:
            self.icon_embedder.embed(self.icon_windows, arch, out)
        except (ToolError, OSError) as e:
            raise CompileError(
                f"embedding icon {self.icon_windows} into {out} failed: {e}"
            ) from e
        return out

    def build(self, env: Environment, environment_dir: Path) -> Path:
        """Compile into ``<environment_dir>/binary``.

        Returns:
            Path of the compiled binary.

        Raises:
            CompileError: If the icon step or the compiler fails; the
                message carries the compiler output verbatim.
            Cancelled: If the run was cancelled before the tools started.
        """
        self.token.check()

        if env.os == "windows":
            self.add_windows_syso(env.arch)
            self.token.check()

        binary_path = environment_dir / BINARY_NAME
        args = self.command(env, binary_path, build_link_flags(env, self.package))

        logger.info("Building for os %s and arch %s with tags %r", env.os, env.arch, env.tags)
        result = self.runner(args, env=build_environment(env))
        if not result.ok:
            raise CompileError(f"building failed: {result.output}")
        return binary_path
