from __future__ import annotations

import os
import tarfile
import tempfile
from pathlib import Path
from typing import BinaryIO

# Contexts up to this size stay in memory; larger ones spill to disk.
_SPOOL_MAX_BYTES = 16 * 1024 * 1024


def create_tar_stream(directory: str | Path) -> BinaryIO:
    """Pack *directory* into an uncompressed tar archive.

    Every directory, regular file and symlink under the root is added with a
    path relative to the root and its mode bits preserved.  Symlinks are
    stored as links, never followed.  Entries are added in sorted walk order
    so the same tree always yields the same member order.

    Args:
        directory: Root of the build context.

    Returns:
        A binary file object positioned at the start of the archive.  The
        caller owns it and should close it once sent.

    Raises:
        FileNotFoundError: If *directory* does not exist.
        NotADirectoryError: If *directory* is not a directory.
    """
    root = Path(directory)
    if not root.exists():
        raise FileNotFoundError(f"build context not found: {root}")
    if not root.is_dir():
        raise NotADirectoryError(f"build context is not a directory: {root}")

    spool = tempfile.SpooledTemporaryFile(max_size=_SPOOL_MAX_BYTES)
    try:
        with tarfile.open(fileobj=spool, mode="w", format=tarfile.PAX_FORMAT) as tar:
            for dirpath, dirnames, filenames in os.walk(root):
                dirnames.sort()
                current = Path(dirpath)
                for name in sorted(dirnames + filenames):
                    path = current / name
                    if not (path.is_symlink() or path.is_dir() or path.is_file()):
                        # sockets, fifos, devices
                        continue
                    arcname = path.relative_to(root).as_posix()
                    tar.add(path, arcname=arcname, recursive=False)
    except BaseException:
        spool.close()
        raise
    spool.seek(0)
    return spool  # type: ignore[return-value]
