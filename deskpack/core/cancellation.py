"""
Cancellation — the cooperative stop signal shared by every pipeline step.

One ``CancellationToken`` is owned by the ``Bundler`` and passed by
reference into the provisioner, the filesystem primitives, the compile
driver and the finishers.  Steps call ``token.check()`` after each I/O
operation; once tripped, the next checkpoint raises ``Cancelled``.

Nothing is interrupted forcibly: a download chunk, a file copy or the
compiler subprocess already in flight runs to completion and the caller
observes cancellation at the following checkpoint.

``SignalWatcher`` is the only piece that touches OS signals.  It trips the
token on the first monitored signal and then steps out of the way.
"""

from __future__ import annotations

import logging
import signal
import threading
from types import FrameType
from typing import Any

logger = logging.getLogger(__name__)

# SIGKILL cannot be caught; the rest are only present on POSIX.
_MONITORED_SIGNALS = ("SIGINT", "SIGTERM", "SIGQUIT", "SIGABRT")


class Cancelled(Exception):
    """Raised at a checkpoint once the run has been cancelled.

    Deliberately not a ``DeskpackError``: callers must be able to tell
    "the user stopped us" apart from an I/O or tool failure.
    """

    def __init__(self, reason: str = "context canceled") -> None:
        super().__init__(reason)
        self.reason = reason


class CancellationToken:
    """A one-way, thread-safe cancellation flag."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason = "context canceled"

    @property
    def cancelled(self) -> bool:
        """Whether ``cancel()`` has been called."""
        return self._event.is_set()

    def cancel(self, reason: str | None = None) -> None:
        """Trip the token.  Later calls are no-ops."""
        if self._event.is_set():
            return
        if reason:
            self._reason = reason
        self._event.set()
        logger.debug("Cancellation requested (%s)", self._reason)

    def error(self) -> Cancelled | None:
        """The terminal error, or None while the token is live."""
        if not self._event.is_set():
            return None
        return Cancelled(self._reason)

    def check(self) -> None:
        """Raise ``Cancelled`` if the token has been tripped."""
        err = self.error()
        if err is not None:
            raise err


class SignalWatcher:
    """Trip a cancellation token on the first termination signal.

    Handlers can only be installed from the main thread, which is where the
    CLI calls ``install()``.  After the first signal the previous handlers
    are restored, so a second Ctrl-C falls back to the default behaviour.
    """

    def __init__(self, token: CancellationToken) -> None:
        self._token = token
        self._previous: dict[signal.Signals, Any] = {}
        self._fired = False

    @property
    def installed(self) -> bool:
        return bool(self._previous)

    def install(self) -> None:
        for name in _MONITORED_SIGNALS:
            signum = getattr(signal, name, None)
            if signum is None:
                continue
            self._previous[signum] = signal.signal(signum, self._handle)
        logger.debug("Watching signals: %s", ", ".join(s.name for s in self._previous))

    def restore(self) -> None:
        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous.clear()

    def _handle(self, signum: int, _frame: FrameType | None) -> None:
        if self._fired:
            return
        self._fired = True
        name = signal.Signals(signum).name
        logger.info("Received signal %s", name)
        self._token.cancel(f"received signal {name}")
        self.restore()
