"""
HTTP download — stream a URL into a local file.

The opener is any object with an ``open(request, timeout=None)`` method
returning a readable context manager; ``urllib.request.build_opener()`` in
production, a fake in tests.  The body is streamed to a temporary sibling
of the destination and renamed into place only when complete, so an
interrupted or failed download never leaves a file at ``dst``.
"""

from __future__ import annotations

import http.client
import logging
import os
import tempfile
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any, Protocol

from deskpack import __version__
from deskpack.core.cancellation import CancellationToken

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024
_USER_AGENT = f"deskpack/{__version__}"


class Opener(Protocol):
    def open(self, fullurl: Any, data: Any = None, timeout: Any = ...) -> Any: ...


class DownloadError(OSError):
    """Raised when a URL cannot be fetched."""


def build_opener() -> urllib.request.OpenerDirector:
    """The HTTP client used for vendor downloads."""
    return urllib.request.build_opener()


def download(token: CancellationToken, opener: Opener, url: str, dst: Path) -> int:
    """Download ``url`` into ``dst``.

    The token is checked between chunks; on cancellation the partial file
    is discarded and ``Cancelled`` propagates.

    Returns:
        Number of bytes written.

    Raises:
        DownloadError: On HTTP or network failure.
        Cancelled: If the token fires mid-transfer.
    """
    logger.debug("Downloading %s into %s", url, dst)
    dst.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=dst.parent, prefix=".download_", suffix=".tmp")
    tmp = Path(tmp_name)
    written = 0
    try:
        with os.fdopen(fd, "wb") as out:
            try:
                request = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
                with opener.open(request) as resp:
                    status = getattr(resp, "status", 200)
                    if status is not None and status >= 400:
                        raise DownloadError(f"GET {url} returned HTTP {status}")
                    for chunk in iter(lambda: resp.read(_CHUNK_SIZE), b""):
                        token.check()
                        out.write(chunk)
                        written += len(chunk)
            except (urllib.error.URLError, http.client.HTTPException, ValueError) as e:
                raise DownloadError(f"GET {url} failed: {e}") from e
        token.check()
        tmp.replace(dst)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise

    logger.debug("Downloaded %d bytes from %s", written, url)
    return written
