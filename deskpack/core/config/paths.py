"""
Path resolution — every absolute working path, computed once.

``resolve_path`` is the single defaulting rule: an explicit value wins and
is made absolute, otherwise the default producer is asked, otherwise the
path is absent.  ``ResolvedPaths.from_configuration`` applies it to the
whole configuration at bundler construction; the result is shared by every
environment of the run.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from deskpack.core.errors import ConfigError
from deskpack.core.models.configuration import Configuration

logger = logging.getLogger(__name__)

DefaultFn = Callable[[], "str | Path"]

DEFAULT_GO_BINARY = "go"
DEFAULT_BIND_PACKAGE = "main"
CACHE_DIR_NAME = "deskpack"


def resolve_path(raw: str | Path | None, default_fn: DefaultFn | None = None) -> Path | None:
    """Resolve a configured path.

    Args:
        raw: The configured value. Empty or None means "not configured".
        default_fn: Producer of the default value, may raise.

    Returns:
        The absolute form of ``raw``, else the default, else None.

    Raises:
        ConfigError: If the default producer fails.
    """
    if raw is not None and str(raw) != "":
        return Path(os.path.abspath(raw))
    if default_fn is None:
        return None
    try:
        value = default_fn()
    except OSError as e:
        raise ConfigError(f"default path function failed: {e}") from e
    return Path(value)


def default_cache_dir() -> Path:
    return Path(tempfile.gettempdir()) / CACHE_DIR_NAME


def toolchain_root() -> str:
    """The Go workspace root, as found in the environment."""
    return os.environ.get("GOPATH", "")


def build_source_path(input_path: Path, gopath: str | None = None) -> str:
    """What to hand to ``go build`` for the project at ``input_path``.

    Inside ``$GOPATH/src`` this is the import path (the source-root prefix
    stripped); anywhere else, the absolute directory.
    """
    gopath = toolchain_root() if gopath is None else gopath
    if gopath:
        src_root = Path(gopath) / "src"
        try:
            relative = input_path.relative_to(src_root)
        except ValueError:
            relative = None
        if relative is not None and str(relative) != ".":
            return relative.as_posix()
    return str(input_path)


@dataclass(frozen=True)
class ResolvedPaths:
    """Absolute working paths of one bundler instance."""

    cache: Path
    input: Path
    output: Path
    bind_output: Path
    vendor: Path
    resources: Path
    build_source: str
    go_binary: str
    framework_override: Path | None = None
    icon_darwin: Path | None = None
    icon_windows: Path | None = None

    @classmethod
    def from_configuration(cls, c: Configuration) -> ResolvedPaths:
        cache = resolve_path(c.cache_path, default_cache_dir)
        input_path = resolve_path(c.input_path, os.getcwd)
        output = resolve_path(c.output_path, os.getcwd)
        assert cache is not None and input_path is not None and output is not None

        bind_output = input_path / c.bind_output if c.bind_output else input_path

        paths = cls(
            cache=cache,
            input=input_path,
            output=output,
            bind_output=bind_output,
            vendor=input_path / "vendor",
            resources=input_path / "resources",
            build_source=build_source_path(input_path),
            go_binary=c.go_binary_path or DEFAULT_GO_BINARY,
            framework_override=resolve_path(c.framework_path),
            icon_darwin=resolve_path(c.icon_path_darwin),
            icon_windows=resolve_path(c.icon_path_windows),
        )
        logger.debug(
            "Resolved paths: input=%s output=%s cache=%s build=%s",
            paths.input,
            paths.output,
            paths.cache,
            paths.build_source,
        )
        return paths
