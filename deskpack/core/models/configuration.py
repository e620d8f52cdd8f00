"""
Configuration model — the validated input record of the bundler.

Loaded from ``bundler.json`` (or any YAML/JSON mapping), possibly amended by
CLI flags, then frozen.  Empty strings are normalised to ``None`` so every
optional path is a real optional: ``None`` means "use the default".
"""

from __future__ import annotations

import re
import string
from urllib.parse import urlsplit

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from deskpack.core.errors import ConfigError

# Operating systems the pipeline knows how to finish.
VALID_OS = ("darwin", "linux", "windows")

DEFAULT_FRAMEWORK_URL = "https://github.com/asticode/astilectron/archive/v{version}.zip"
DEFAULT_WEBVIEW_URL = (
    "https://github.com/electron/electron/releases/download/"
    "v{version}/electron-v{version}-{platform}-{arch}.zip"
)
FRAMEWORK_URL_FIELDS = ("version",)
WEBVIEW_URL_FIELDS = ("version", "os", "goarch", "platform", "arch")
URL_SCHEMES = ("http", "https", "file")


def _empty_to_none(value: object) -> object:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class Environment(BaseModel):
    """One build target: OS, architecture and optional build tags."""

    model_config = ConfigDict(frozen=True)

    os: str
    arch: str
    tags: str = ""

    @field_validator("os")
    @classmethod
    def _known_os(cls, value: str) -> str:
        if value not in VALID_OS:
            raise ValueError(f"OS {value} is invalid (expected one of {', '.join(VALID_OS)})")
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_default(cls, value: object) -> object:
        return "" if value is None else value

    @property
    def name(self) -> str:
        """Output directory name: ``OS[-tags]-arch`` with spaces as hyphens."""
        parts = [self.os]
        if self.tags:
            parts.append(self.tags.replace(" ", "-"))
        parts.append(self.arch)
        return "-".join(parts)

    @property
    def identity(self) -> tuple[str, str, str]:
        return (self.os, self.tags, self.arch)


class VendorSettings(BaseModel):
    """Versions and sources of the two third-party payloads.

    URL templates are ``str.format`` patterns.  ``framework_url`` accepts
    ``{version}``.  ``webview_url`` also accepts the target in Go terms,
    ``{os}`` and ``{goarch}`` (``windows``, ``386``), and in the webview
    release naming, ``{platform}`` and ``{arch}`` (``win32``, ``ia32``).
    """

    model_config = ConfigDict(frozen=True)

    framework_name: str = "astilectron"
    framework_version: str = "0.6.0"
    framework_url: str = DEFAULT_FRAMEWORK_URL

    webview_name: str = "electron"
    webview_version: str = "1.6.5"
    webview_url: str = DEFAULT_WEBVIEW_URL

    @field_validator("framework_url")
    @classmethod
    def _framework_url_template(cls, value: str) -> str:
        return _check_url_template(value, FRAMEWORK_URL_FIELDS)

    @field_validator("webview_url")
    @classmethod
    def _webview_url_template(cls, value: str) -> str:
        return _check_url_template(value, WEBVIEW_URL_FIELDS)


def _check_url_template(template: str, allowed: tuple[str, ...]) -> str:
    try:
        fields = [f for _, f, _, _ in string.Formatter().parse(template) if f is not None]
    except ValueError as e:
        raise ValueError(f"URL template {template!r} is malformed: {e}") from e
    for name in fields:
        base = re.split(r"[.\[]", name, maxsplit=1)[0]
        if base not in allowed:
            raise ValueError(
                f"URL template {template!r} has unknown placeholder {{{name}}} "
                f"(expected one of {', '.join('{' + a + '}' for a in allowed)})"
            )
    scheme = urlsplit(template).scheme
    if scheme not in URL_SCHEMES:
        raise ValueError(
            f"URL template {template!r} must be an absolute {'/'.join(URL_SCHEMES)} URL"
        )
    return template


class Configuration(BaseModel):
    """Bundler configuration.

    Keys match the historical ``bundler.json`` layout; ``astilectron_path``
    is still accepted for ``framework_path``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    app_name: str

    cache_path: str | None = None
    input_path: str | None = None
    output_path: str | None = None
    go_binary_path: str | None = None

    icon_path_darwin: str | None = None   # .icns
    icon_path_linux: str | None = None    # accepted, unused: Linux bundles are a bare binary
    icon_path_windows: str | None = None  # .ico

    bind_output: str | None = None
    bind_package: str | None = None
    bind_tags: str | None = None

    # Debug only: zip a local checkout instead of downloading the framework.
    framework_path: str | None = Field(
        default=None,
        validation_alias=AliasChoices("framework_path", "astilectron_path"),
    )

    environments: list[Environment] = Field(default_factory=list)
    environment_filter: str | None = None

    vendor: VendorSettings = Field(default_factory=VendorSettings)

    @field_validator(
        "cache_path",
        "input_path",
        "output_path",
        "go_binary_path",
        "icon_path_darwin",
        "icon_path_linux",
        "icon_path_windows",
        "bind_output",
        "bind_package",
        "bind_tags",
        "framework_path",
        "environment_filter",
        mode="before",
    )
    @classmethod
    def _normalise_optional(cls, value: object) -> object:
        return _empty_to_none(value)

    @field_validator("app_name")
    @classmethod
    def _app_name_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("app_name must not be empty")
        return value

    def with_overrides(self, **changes: object) -> Configuration:
        """Return a re-validated copy with ``changes`` applied."""
        data = self.model_dump(by_alias=False)
        data.update(changes)
        try:
            return Configuration.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration override: {e}") from e
