"""
Command runner — the single place where external tools are executed.

Runs a command to completion, stdout and stderr merged into one captured
stream so toolchain diagnostics keep their interleaving.  Never raises for
a non-zero exit: the result carries the return code and output, and the
caller decides what is fatal.  There is no timeout.
"""

from __future__ import annotations

import logging
import subprocess
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one command execution."""

    args: tuple[str, ...]
    returncode: int
    output: str = ""
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0


# (args, env, cwd) -> CommandResult; swapped for a fake in tests.
CommandRunner = Callable[..., CommandResult]


def run_command(
    args: Sequence[str],
    *,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
) -> CommandResult:
    """Run ``args`` and capture combined output.

    Args:
        args: Command and arguments (no shell).
        env: Full replacement environment, or None to inherit.
        cwd: Working directory.

    Returns:
        CommandResult. A missing executable is reported as return code 127.
    """
    argv = tuple(str(a) for a in args)
    logger.debug("Executing %s", " ".join(argv))
    start = time.monotonic()

    try:
        proc = subprocess.run(
            argv,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            env=dict(env) if env is not None else None,
            cwd=cwd,
            check=False,
        )
    except FileNotFoundError as e:
        return CommandResult(args=argv, returncode=127, output=f"executable not found: {e}")

    elapsed_ms = int((time.monotonic() - start) * 1000)
    output = proc.stdout.decode("utf-8", errors="replace") if proc.stdout else ""
    return CommandResult(
        args=argv,
        returncode=proc.returncode,
        output=output,
        duration_ms=elapsed_ms,
    )
