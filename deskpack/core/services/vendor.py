"""
Vendor provisioning — download-or-reuse the two third-party payloads.

The cache holds archives keyed by (artifact, version[, OS, arch]).  An
entry is created once, on first need, and never touched again: its
presence on disk is the only cache-hit signal.  Before every build the
project's vendor directory is wiped and refilled with exactly two
archives, copied out of the cache:

    vendor/<framework>-v<version>.zip              (platform independent)
    vendor/<webview>-<os>-<arch>-v<version>.zip    (per environment)

Every I/O step is followed by a cancellation check.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from deskpack.adapters.http.download import Opener, download
from deskpack.adapters.shell import filesystem
from deskpack.core.cancellation import CancellationToken
from deskpack.core.errors import ProvisionError
from deskpack.core.models.configuration import VendorSettings

logger = logging.getLogger(__name__)

_WEBVIEW_PLATFORMS = {"darwin": "darwin", "linux": "linux", "windows": "win32"}
_WEBVIEW_ARCHS = {"amd64": "x64", "386": "ia32", "arm": "armv7l"}


@dataclass(frozen=True)
class VendorArtifact:
    """One provisionable payload: where it comes from and where it goes."""

    url: str
    cache_path: Path
    vendor_path: Path


class VendorProvisioner:
    """Materialise the vendor directory for one environment at a time.

    Args:
        settings: Artifact names, versions and URL templates.
        cache_dir: Root of the archive cache.
        vendor_dir: The project's vendor directory (rebuilt per environment).
        opener: HTTP client used for downloads.
        token: The run's cancellation token.
        framework_override: Local framework checkout to zip instead of
            downloading (debug only).
    """

    def __init__(
        self,
        settings: VendorSettings,
        cache_dir: Path,
        vendor_dir: Path,
        opener: Opener,
        token: CancellationToken,
        framework_override: Path | None = None,
    ) -> None:
        self.settings = settings
        self.cache_dir = cache_dir
        self.vendor_dir = vendor_dir
        self.opener = opener
        self.token = token
        self.framework_override = framework_override

    # ── Artifact naming ─────────────────────────────────────────

    def framework_artifact(self) -> VendorArtifact:
        s = self.settings
        return VendorArtifact(
            url=_format_url(s.framework_url, version=s.framework_version),
            cache_path=self.cache_dir / f"{s.framework_name}-{s.framework_version}.zip",
            vendor_path=self.vendor_dir / f"{s.framework_name}-v{s.framework_version}.zip",
        )

    def webview_artifact(self, os_name: str, arch: str) -> VendorArtifact:
        s = self.settings
        url = _format_url(
            s.webview_url,
            version=s.webview_version,
            os=os_name,
            goarch=arch,
            arch=_WEBVIEW_ARCHS.get(arch, arch),
            platform=_WEBVIEW_PLATFORMS.get(os_name, os_name),
        )
        return VendorArtifact(
            url=url,
            cache_path=self.cache_dir / f"{s.webview_name}-{os_name}-{arch}-{s.webview_version}.zip",
            vendor_path=self.vendor_dir / f"{s.webview_name}-{os_name}-{arch}-v{s.webview_version}.zip",
        )

    # ── Provisioning ────────────────────────────────────────────

    def provision(self, os_name: str, arch: str) -> list[Path]:
        """Rebuild the vendor directory for ``os_name``/``arch``.

        Returns:
            The two archive paths now present in the vendor directory.

        Raises:
            ProvisionError: On any download or filesystem failure.
            Cancelled: If the run is cancelled between steps.
        """
        try:
            filesystem.recreate_dir(self.vendor_dir)
        except OSError as e:
            raise ProvisionError(f"recreating {self.vendor_dir} failed: {e}") from e

        try:
            framework = self._provision_framework()
        except ProvisionError as e:
            raise ProvisionError(f"provisioning framework vendor failed: {e}") from e

        try:
            webview = self._provision_zip(self.webview_artifact(os_name, arch))
        except ProvisionError as e:
            raise ProvisionError(
                f"provisioning webview vendor for OS {os_name} and arch {arch} failed: {e}"
            ) from e

        return [framework, webview]

    def _provision_framework(self) -> Path:
        artifact = self.framework_artifact()
        if self.framework_override is not None:
            s = self.settings
            logger.debug("Zipping %s into %s", self.framework_override, artifact.cache_path)
            try:
                filesystem.zip_dir(
                    self.token,
                    self.framework_override,
                    artifact.cache_path,
                    root_name=f"{s.framework_name}-{s.framework_version}",
                )
            except OSError as e:
                raise ProvisionError(
                    f"zipping {self.framework_override} into {artifact.cache_path} failed: {e}"
                ) from e
            self.token.check()
        return self._provision_zip(artifact)

    def _provision_zip(self, artifact: VendorArtifact) -> Path:
        if not artifact.cache_path.exists():
            logger.info("Downloading %s", artifact.url)
            try:
                download(self.token, self.opener, artifact.url, artifact.cache_path)
            except OSError as e:
                raise ProvisionError(
                    f"downloading {artifact.url} into {artifact.cache_path} failed: {e}"
                ) from e
        else:
            logger.debug(
                "%s already exists, skipping download of %s", artifact.cache_path, artifact.url
            )
        self.token.check()

        logger.debug("Copying %s to %s", artifact.cache_path, artifact.vendor_path)
        try:
            filesystem.copy_path(self.token, artifact.cache_path, artifact.vendor_path)
        except OSError as e:
            raise ProvisionError(
                f"copying {artifact.cache_path} to {artifact.vendor_path} failed: {e}"
            ) from e
        self.token.check()
        return artifact.vendor_path

    def clear_cache(self) -> None:
        """Delete the whole cache root."""
        logger.debug("Removing %s", self.cache_dir)
        try:
            filesystem.remove_tree(self.cache_dir)
        except OSError as e:
            raise ProvisionError(f"removing {self.cache_dir} failed: {e}") from e


def _format_url(template: str, **fields: str) -> str:
    try:
        return template.format(**fields)
    except (KeyError, IndexError, AttributeError, ValueError) as e:
        raise ProvisionError(f"expanding URL template {template!r} failed: {e!r}") from e
