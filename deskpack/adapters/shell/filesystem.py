"""
Filesystem primitives — copy, move, zip, remove.

Each primitive takes the run's ``CancellationToken``.  Tree operations
check it between files; single-file operations are atomic with respect to
cancellation (the caller checks afterwards).  Failures surface as plain
``OSError``; callers wrap them with pipeline context.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import zipfile
from pathlib import Path

from deskpack.core.cancellation import CancellationToken

logger = logging.getLogger(__name__)


def remove_tree(path: Path) -> None:
    """Remove ``path`` (file or directory); a missing path is not an error."""
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.exists():
        shutil.rmtree(path)


def recreate_dir(path: Path) -> None:
    """Remove ``path`` entirely and create it again, empty."""
    logger.debug("Removing %s", path)
    remove_tree(path)
    logger.debug("Creating %s", path)
    path.mkdir(parents=True, exist_ok=True)


def copy_path(token: CancellationToken, src: Path, dst: Path) -> None:
    """Copy a file or a directory tree from ``src`` to ``dst``.

    Parent directories of ``dst`` are created.  For trees, the token is
    checked before each file.
    """
    if src.is_dir():
        for root, dirs, files in os.walk(src):
            dirs.sort()
            rel = Path(root).relative_to(src)
            target_root = dst / rel
            target_root.mkdir(parents=True, exist_ok=True)
            for name in sorted(files):
                token.check()
                shutil.copy2(Path(root) / name, target_root / name)
        return

    dst.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, dst)


def move_path(token: CancellationToken, src: Path, dst: Path) -> None:
    """Move ``src`` to ``dst``, copying across filesystems when needed."""
    token.check()
    dst.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(src), str(dst))


def zip_dir(token: CancellationToken, src: Path, dst: Path, root_name: str = "") -> None:
    """Zip the directory ``src`` into ``dst``.

    Entries are stored under ``root_name/`` when given.  The archive is
    written to a temporary sibling and renamed into place, so ``dst`` never
    exists half-written.
    """
    if not src.is_dir():
        raise NotADirectoryError(f"not a directory: {src}")

    dst.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=dst.parent, prefix=".zip_", suffix=".tmp")
    os.close(fd)
    tmp = Path(tmp_name)
    try:
        with zipfile.ZipFile(tmp, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            if root_name:
                zf.writestr(root_name.rstrip("/") + "/", "")
            for root, dirs, files in os.walk(src):
                dirs.sort()
                for name in dirs:
                    arc = _arcname(Path(root) / name, src, root_name) + "/"
                    zf.writestr(arc, "")
                for name in sorted(files):
                    token.check()
                    full = Path(root) / name
                    zf.write(full, _arcname(full, src, root_name))
        tmp.replace(dst)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def _arcname(path: Path, src: Path, root_name: str) -> str:
    rel = path.relative_to(src).as_posix()
    return f"{root_name.rstrip('/')}/{rel}" if root_name else rel
