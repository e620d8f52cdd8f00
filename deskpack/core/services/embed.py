"""
Data embedding — provision the vendor directory, then bind it.

The generator embeds whatever is on disk at call time, so provisioning
for the same environment must run immediately before it.  The output
file carries the OS in its name (``bind_<os>.go``) and its primary build
tag is the OS, so one generated file per target OS coexists in the
source tree without clobbering the others.
"""

from __future__ import annotations

import logging
from pathlib import Path

from deskpack.adapters.tools import EmbedGenerator, EmbedInput, EmbedRequest, ToolError
from deskpack.core.errors import EmbedError
from deskpack.core.services.vendor import VendorProvisioner

logger = logging.getLogger(__name__)


class EmbedInvoker:
    """Adapter between the pipeline and the embedding generator."""

    def __init__(
        self,
        provisioner: VendorProvisioner,
        generator: EmbedGenerator,
        *,
        input_dir: Path,
        resources_dir: Path,
        vendor_dir: Path,
        bind_output: Path,
        package: str = "main",
        extra_tags: str | None = None,
    ) -> None:
        self.provisioner = provisioner
        self.generator = generator
        self.input_dir = input_dir
        self.resources_dir = resources_dir
        self.vendor_dir = vendor_dir
        self.bind_output = bind_output
        self.package = package
        self.extra_tags = extra_tags

    def request_for(self, os_name: str) -> EmbedRequest:
        tags = os_name
        if self.extra_tags:
            tags = f"{tags}\n// +build {self.extra_tags}"
        return EmbedRequest(
            inputs=(EmbedInput(self.resources_dir), EmbedInput(self.vendor_dir)),
            output=self.bind_output / f"bind_{os_name}.go",
            prefix=self.input_dir,
            package=self.package,
            tags=tags,
        )

    def bind(self, os_name: str, arch: str) -> Path:
        """Provision the vendor for ``os_name``/``arch`` and generate the bind file.

        Returns:
            Path of the generated source file.
        """
        self.provisioner.provision(os_name, arch)

        request = self.request_for(os_name)
        logger.debug("Generating %s", request.output)
        try:
            self.generator.generate(request)
        except (ToolError, OSError) as e:
            raise EmbedError(f"generating {request.output} failed: {e}") from e
        return request.output
