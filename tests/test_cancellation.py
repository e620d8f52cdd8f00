"""
Tests for the cancellation token and the signal watcher.
"""

import os
import signal
import sys

import pytest

from deskpack.core.cancellation import CancellationToken, Cancelled, SignalWatcher
from deskpack.core.errors import DeskpackError


class TestCancellationToken:
    """Tests for the cancellation token."""

    def test_initially_live(self):
        token = CancellationToken()
        assert not token.cancelled
        assert token.error() is None
        token.check()  # no raise

    def test_cancel_trips_check(self):
        token = CancellationToken()
        token.cancel()
        assert token.cancelled
        with pytest.raises(Cancelled):
            token.check()

    def test_first_reason_wins(self):
        token = CancellationToken()
        token.cancel("first")
        token.cancel("second")
        assert str(token.error()) == "first"

    def test_cancelled_is_not_a_pipeline_error(self):
        assert not issubclass(Cancelled, DeskpackError)


class TestSignalWatcher:
    """Tests for signal-driven cancellation."""

    def test_handler_trips_token_once_and_restores(self):
        token = CancellationToken()
        watcher = SignalWatcher(token)
        previous = signal.getsignal(signal.SIGINT)
        watcher.install()
        try:
            assert watcher.installed
            watcher._handle(signal.SIGINT, None)
            assert token.cancelled
            assert "SIGINT" in str(token.error())
            assert not watcher.installed
            assert signal.getsignal(signal.SIGINT) == previous
        finally:
            watcher.restore()

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signal delivery")
    def test_real_signal(self):
        token = CancellationToken()
        watcher = SignalWatcher(token)
        watcher.install()
        try:
            os.kill(os.getpid(), signal.SIGTERM)
            assert token.cancelled
        finally:
            watcher.restore()
