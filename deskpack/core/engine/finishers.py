"""
Platform finishers — turn a compiled binary into the OS-native layout.

Variants:
    darwin   → <env>/<App>.app/Contents/{MacOS/<App>, Resources/<App><ext>, Info.plist}
    linux    → <env>/<App>
    windows  → <env>/<App>.exe

Dispatch is a pure lookup on the OS identifier.  There is no fallback
finisher: an unknown OS is an immediate error.  A cancelled run leaves
whatever was already assembled in place.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from xml.sax.saxutils import escape

from deskpack.adapters.shell import filesystem
from deskpack.core.cancellation import CancellationToken
from deskpack.core.errors import FinishError, UnsupportedOSError

logger = logging.getLogger(__name__)

_INFO_PLIST = """\
<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" "http://www.apple.com/DTDs/PropertyList-1.0.dtd">
<plist version="1.0">
<dict>
{icon}\t<key>CFBundleDisplayName</key>
\t<string>{name}</string>
\t<key>CFBundleExecutable</key>
\t<string>{name}</string>
\t<key>CFBundleName</key>
\t<string>{name}</string>
\t<key>CFBundleIdentifier</key>
\t<string>{identifier}</string>
</dict>
</plist>
"""

_INFO_PLIST_ICON = "\t<key>CFBundleIconFile</key>\n\t<string>{icon}</string>\n"


def bundle_identifier(app_name: str) -> str:
    return f"com.{app_name}"


def render_info_plist(app_name: str, icon_file: str | None = None) -> str:
    icon = _INFO_PLIST_ICON.format(icon=escape(icon_file)) if icon_file else ""
    return _INFO_PLIST.format(
        icon=icon,
        name=escape(app_name),
        identifier=escape(bundle_identifier(app_name)),
    )


class PlatformFinisher(ABC):
    """Assemble the final bundle for one OS."""

    os_name: str = ""

    def __init__(self, app_name: str, token: CancellationToken) -> None:
        self.app_name = app_name
        self.token = token

    @abstractmethod
    def finish(self, environment_dir: Path, binary_path: Path) -> Path:
        """Lay out the bundle and return the path of the produced artifact."""

    def _move(self, src: Path, dst: Path) -> None:
        logger.debug("Moving %s to %s", src, dst)
        try:
            filesystem.move_path(self.token, src, dst)
        except OSError as e:
            raise FinishError(f"moving {src} to {dst} failed: {e}") from e
        self.token.check()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} app={self.app_name!r}>"


class DarwinFinisher(PlatformFinisher):
    """macOS ``.app`` bundle with Info.plist and optional icon."""

    os_name = "darwin"

    def __init__(self, app_name: str, token: CancellationToken, icon: Path | None = None) -> None:
        super().__init__(app_name, token)
        self.icon = icon

    def finish(self, environment_dir: Path, binary_path: Path) -> Path:
        app_dir = environment_dir / f"{self.app_name}.app"
        contents = app_dir / "Contents"
        macos = contents / "MacOS"

        logger.debug("Creating %s", macos)
        try:
            macos.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FinishError(f"mkdirall of {macos} failed: {e}") from e
        self.token.check()

        executable = macos / self.app_name
        self._move(binary_path, executable)

        logger.debug("Chmoding %s", executable)
        try:
            executable.chmod(0o777)
        except OSError as e:
            raise FinishError(f"chmoding {executable} failed: {e}") from e
        self.token.check()

        icon_file = None
        if self.icon is not None:
            icon_file = self.app_name + self.icon.suffix
            resources = contents / "Resources"
            target = resources / icon_file
            logger.debug("Copying %s to %s", self.icon, target)
            try:
                resources.mkdir(parents=True, exist_ok=True)
                filesystem.copy_path(self.token, self.icon, target)
            except OSError as e:
                raise FinishError(f"copying {self.icon} to {target} failed: {e}") from e
            self.token.check()

        plist = contents / "Info.plist"
        logger.debug("Adding Info.plist to %s", plist)
        try:
            plist.write_text(render_info_plist(self.app_name, icon_file), encoding="utf-8")
        except OSError as e:
            raise FinishError(f"adding Info.plist to {plist} failed: {e}") from e
        self.token.check()
        return app_dir


class LinuxFinisher(PlatformFinisher):
    """Flat binary named after the app."""

    os_name = "linux"

    def finish(self, environment_dir: Path, binary_path: Path) -> Path:
        target = environment_dir / self.app_name
        self._move(binary_path, target)
        return target


class WindowsFinisher(PlatformFinisher):
    """Flat ``<App>.exe``; the icon is already linked in via windows.syso."""

    os_name = "windows"

    def finish(self, environment_dir: Path, binary_path: Path) -> Path:
        target = environment_dir / f"{self.app_name}.exe"
        self._move(binary_path, target)
        return target


_FINISHERS: dict[str, type[PlatformFinisher]] = {
    DarwinFinisher.os_name: DarwinFinisher,
    LinuxFinisher.os_name: LinuxFinisher,
    WindowsFinisher.os_name: WindowsFinisher,
}


def supported_os() -> list[str]:
    return sorted(_FINISHERS)


def finisher_for(
    os_name: str,
    app_name: str,
    token: CancellationToken,
    *,
    icon_darwin: Path | None = None,
) -> PlatformFinisher:
    """Select the finisher for ``os_name``.

    Raises:
        UnsupportedOSError: If no finisher exists for the OS.
    """
    cls = _FINISHERS.get(os_name)
    if cls is None:
        raise UnsupportedOSError(f"OS {os_name} is not yet implemented")
    if cls is DarwinFinisher:
        return DarwinFinisher(app_name, token, icon=icon_darwin)
    return cls(app_name, token)
