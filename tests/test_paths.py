"""
Tests for path resolution.
"""

import os
import tempfile
from pathlib import Path

import pytest

from deskpack.core.config.paths import (
    ResolvedPaths,
    build_source_path,
    resolve_path,
)
from deskpack.core.errors import ConfigError
from deskpack.core.models.configuration import Configuration


class TestResolvePath:
    """Tests for raw path resolution."""

    def test_relative_becomes_absolute(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.chdir(tmp_path)
        result = resolve_path("sub/dir", lambda: "/ignored")
        assert result is not None
        assert result.is_absolute()
        assert result == Path(os.path.abspath("sub/dir"))

    def test_absolute_unchanged(self, tmp_path: Path):
        assert resolve_path(str(tmp_path)) == tmp_path

    def test_empty_uses_default(self):
        assert resolve_path("", lambda: "/default/path") == Path("/default/path")
        assert resolve_path(None, lambda: "/default/path") == Path("/default/path")

    def test_no_value_no_default(self):
        assert resolve_path(None) is None
        assert resolve_path("") is None

    def test_default_failure_raises_config_error(self):
        def broken() -> str:
            raise FileNotFoundError("cwd vanished")

        with pytest.raises(ConfigError, match="cwd vanished"):
            resolve_path(None, broken)


class TestBuildSource:
    """Tests for the go build source argument."""

    def test_inside_gopath_is_import_path(self, tmp_path: Path):
        project = tmp_path / "src" / "github.com" / "me" / "app"
        assert build_source_path(project, gopath=str(tmp_path)) == "github.com/me/app"

    def test_outside_gopath_is_absolute(self, tmp_path: Path):
        project = tmp_path / "elsewhere" / "app"
        assert build_source_path(project, gopath=str(tmp_path / "go")) == str(project)

    def test_no_gopath(self, tmp_path: Path):
        assert build_source_path(tmp_path, gopath="") == str(tmp_path)


class TestResolvedPaths:
    """Tests for paths derived from a configuration."""

    def test_defaults(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.chdir(tmp_path)
        paths = ResolvedPaths.from_configuration(Configuration(app_name="Demo"))
        assert paths.input == Path(os.getcwd())
        assert paths.output == Path(os.getcwd())
        assert paths.cache == Path(tempfile.gettempdir()) / "deskpack"
        assert paths.vendor == paths.input / "vendor"
        assert paths.resources == paths.input / "resources"
        assert paths.bind_output == paths.input
        assert paths.go_binary == "go"
        assert paths.icon_darwin is None
        assert paths.framework_override is None

    def test_overrides(self, tmp_path: Path):
        c = Configuration(
            app_name="Demo",
            input_path=str(tmp_path / "in"),
            output_path=str(tmp_path / "out"),
            cache_path=str(tmp_path / "cache"),
            bind_output="gen",
            go_binary_path="/usr/local/go/bin/go",
            icon_path_darwin=str(tmp_path / "icon.icns"),
        )
        paths = ResolvedPaths.from_configuration(c)
        assert paths.bind_output == tmp_path / "in" / "gen"
        assert paths.go_binary == "/usr/local/go/bin/go"
        assert paths.icon_darwin == tmp_path / "icon.icns"
        assert paths.cache == tmp_path / "cache"

    def test_linux_icon_accepted_but_not_resolved(self, tmp_path: Path):
        c = Configuration(app_name="Demo", icon_path_linux=str(tmp_path / "icon.png"))
        paths = ResolvedPaths.from_configuration(c)
        assert c.icon_path_linux == str(tmp_path / "icon.png")
        assert not hasattr(paths, "icon_linux")
