"""Adapters — bindings to the filesystem, the network and external tools.

Public re-exports for convenient access.
"""

from deskpack.adapters.shell.command import CommandResult, run_command
from deskpack.adapters.tools import (
    EmbedInput,
    EmbedRequest,
    GoBindataGenerator,
    RsrcIconEmbedder,
    ToolError,
)

__all__ = [
    "CommandResult",
    "EmbedInput",
    "EmbedRequest",
    "GoBindataGenerator",
    "RsrcIconEmbedder",
    "ToolError",
    "run_command",
]
