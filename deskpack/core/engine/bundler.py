"""
Bundler — the orchestration loop.

Flow, per selected environment, strictly in configured order:
    recreate output dir → provision vendor → embed data → compile → finish

All environments share one vendor directory that is destroyed and rebuilt
for each of them, so environments never run in parallel.  The first
failure stops the run; environments already finished stay on disk.
"""

from __future__ import annotations

import logging
import platform
import re
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import ValidationError

from deskpack.adapters.http.download import Opener, build_opener
from deskpack.adapters.shell import filesystem
from deskpack.adapters.shell.command import CommandRunner, run_command
from deskpack.adapters.tools import (
    EmbedGenerator,
    GoBindataGenerator,
    IconEmbedder,
    RsrcIconEmbedder,
)
from deskpack.core.cancellation import CancellationToken, SignalWatcher
from deskpack.core.config.paths import DEFAULT_BIND_PACKAGE, ResolvedPaths
from deskpack.core.engine.compile import CompileDriver
from deskpack.core.engine.finishers import finisher_for
from deskpack.core.errors import BundleError, ConfigError, DeskpackError
from deskpack.core.models.configuration import Configuration, Environment
from deskpack.core.observability.logging_config import log_environment
from deskpack.core.services.embed import EmbedInvoker
from deskpack.core.services.vendor import VendorProvisioner

logger = logging.getLogger(__name__)

_HOST_ARCHS = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "armv7l": "arm",
}


def host_environment() -> Environment:
    """The Environment of the machine we are running on."""
    machine = platform.machine().lower()
    try:
        return Environment(os=platform.system().lower(), arch=_HOST_ARCHS.get(machine, machine))
    except ValidationError as e:
        raise ConfigError(f"host platform is not a supported target: {e}") from e


@dataclass
class EnvironmentResult:
    """Outcome of bundling one environment."""

    name: str
    os: str
    arch: str
    tags: str
    output_dir: str
    artifact: str

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "os": self.os,
            "arch": self.arch,
            "tags": self.tags,
            "output_dir": self.output_dir,
            "artifact": self.artifact,
        }


@dataclass
class BundleReport:
    """Result of a full ``bundle()`` run."""

    app_name: str = ""
    output: str = ""
    results: list[EnvironmentResult] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict:
        return {
            "app_name": self.app_name,
            "output": self.output,
            "total": self.total,
            "environments": [r.to_dict() for r in self.results],
            "skipped": list(self.skipped),
        }


class Bundler:
    """Bundle an app for every configured environment.

    Collaborators that talk to the outside world (HTTP client, embedding
    generator, icon embedder, command runner) can be injected; the defaults
    are urllib, ``go-bindata``, ``rsrc`` and ``subprocess``.
    """

    def __init__(
        self,
        configuration: Configuration,
        *,
        opener: Opener | None = None,
        generator: EmbedGenerator | None = None,
        icon_embedder: IconEmbedder | None = None,
        runner: CommandRunner = run_command,
        token: CancellationToken | None = None,
    ) -> None:
        self.configuration = configuration
        self.app_name = configuration.app_name
        self.environments = list(configuration.environments)
        self.token = token or CancellationToken()
        self.client = opener or build_opener()
        self.paths = ResolvedPaths.from_configuration(configuration)
        self.bind_package = configuration.bind_package or DEFAULT_BIND_PACKAGE
        self._signals: SignalWatcher | None = None

        self.environment_filter: re.Pattern[str] | None = None
        if configuration.environment_filter:
            try:
                self.environment_filter = re.compile(configuration.environment_filter)
            except re.error as e:
                raise ConfigError(
                    f"environment filter {configuration.environment_filter!r} is invalid: {e}"
                ) from e

        self.provisioner = VendorProvisioner(
            configuration.vendor,
            cache_dir=self.paths.cache,
            vendor_dir=self.paths.vendor,
            opener=self.client,
            token=self.token,
            framework_override=self.paths.framework_override,
        )
        self.embedder = EmbedInvoker(
            self.provisioner,
            generator or GoBindataGenerator(runner=runner),
            input_dir=self.paths.input,
            resources_dir=self.paths.resources,
            vendor_dir=self.paths.vendor,
            bind_output=self.paths.bind_output,
            package=self.bind_package,
            extra_tags=configuration.bind_tags,
        )
        self.compiler = CompileDriver(
            go_binary=self.paths.go_binary,
            build_source=self.paths.build_source,
            input_dir=self.paths.input,
            package=self.bind_package,
            icon_windows=self.paths.icon_windows,
            icon_embedder=icon_embedder or RsrcIconEmbedder(runner=runner),
            runner=runner,
            token=self.token,
        )

    # ── Lifecycle ───────────────────────────────────────────────

    def handle_signals(self) -> None:
        """Trip the cancellation token on the first termination signal."""
        if self._signals is None:
            self._signals = SignalWatcher(self.token)
            self._signals.install()

    def restore_signals(self) -> None:
        """Put back the signal handlers replaced by ``handle_signals``."""
        if self._signals is not None:
            self._signals.restore()
            self._signals = None

    def stop(self) -> None:
        """Cancel the run; in-flight steps stop at their next checkpoint."""
        self.token.cancel()

    def clear_cache(self) -> None:
        """Delete the vendor archive cache."""
        try:
            self.provisioner.clear_cache()
        except DeskpackError as e:
            raise BundleError(f"clearing cache failed: {e}") from e

    # ── Entry points ────────────────────────────────────────────

    def selected(self, env: Environment) -> bool:
        if self.environment_filter is None:
            return True
        return self.environment_filter.search(env.name) is not None

    def bundle(self) -> BundleReport:
        """Bundle every selected environment, stopping at the first failure."""
        logger.debug("Resetting")
        self._reset()

        report = BundleReport(app_name=self.app_name, output=str(self.paths.output))
        for env in self.environments:
            if not self.selected(env):
                logger.debug("Skipping environment %s (filtered out)", env.name)
                report.skipped.append(env.name)
                continue

            logger.info("Bundling for environment %s/%s", env.os, env.arch)
            try:
                with log_environment(env.name):
                    result = self._bundle_environment(env)
            except DeskpackError as e:
                raise BundleError(f"bundling for environment {env.os}/{env.arch} failed: {e}") from e
            report.results.append(result)
        return report

    def bind_data(self, os_name: str, arch: str, tags: str = "") -> Path:
        """Provision the vendor and generate the bind file only.

        ``tags`` is accepted for symmetry with environments; the bind
        file's tags come from the OS and the configured extra tags.
        """
        try:
            return self.embedder.bind(os_name, arch)
        except DeskpackError as e:
            raise BundleError(f"binding data failed: {e}") from e

    # ── Internals ───────────────────────────────────────────────

    def _reset(self) -> None:
        for path in (self.paths.cache, self.paths.output):
            logger.debug("Creating %s", path)
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise BundleError(f"mkdirall {path} failed: {e}") from e

    def _bundle_environment(self, env: Environment) -> EnvironmentResult:
        environment_dir = self.paths.output / env.name
        try:
            filesystem.recreate_dir(environment_dir)
        except OSError as e:
            raise BundleError(f"recreating {environment_dir} failed: {e}") from e

        logger.debug("Binding data")
        self.embedder.bind(env.os, env.arch)
        self.token.check()

        binary = self.compiler.build(env, environment_dir)
        self.token.check()

        finisher = finisher_for(
            env.os,
            self.app_name,
            self.token,
            icon_darwin=self.paths.icon_darwin,
        )
        artifact = finisher.finish(environment_dir, binary)
        logger.info("Bundled %s → %s", env.name, artifact)

        return EnvironmentResult(
            name=env.name,
            os=env.os,
            arch=env.arch,
            tags=env.tags,
            output_dir=str(environment_dir),
            artifact=str(artifact),
        )
