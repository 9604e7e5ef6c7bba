"""
Filesystem helpers for kmlstore.io (file protocol baseline).

Responsibilities
- Provide a minimal stdlib-only abstraction for the filesystem operations used by the
  store: modification-time stats, directory creation, fsync, mode copying, and atomic
  renames.
- Establish clear semantics for the flush path: tmp write → fsync → atomic rename.

Notes
- Atomicity via os.replace is guaranteed only when src and dst reside on the same
  filesystem; tmp files are therefore placed next to the backing file.
- All helpers are synchronous; the store assumes a single active session.
"""

from __future__ import annotations

import os
import shutil
import uuid
from typing import BinaryIO


def mtime_ns(path: str) -> int | None:
    """
    Return the modification time of a file in nanoseconds.

    Args:
        path (str): Filesystem path.

    Returns:
        int | None: ``st_mtime_ns``, or None when the path does not exist.
    """
    try:
        return os.stat(path).st_mtime_ns
    except (FileNotFoundError, NotADirectoryError):
        return None


def makedirs(path: str, exist_ok: bool = True) -> None:
    """
    Create directories recursively; a no-op for the empty path (current directory).
    """
    if path:
        os.makedirs(path, exist_ok=exist_ok)


def tmp_path_for(path: str) -> str:
    """
    Temporary sibling path used for the atomic write of `path`.

    Returns:
        str: "<dir>/.<name>.<uuid>.tmp" in the same directory as `path`.
    """
    head, tail = os.path.split(path)
    return os.path.join(head, f".{tail}.{uuid.uuid4().hex}.tmp")


def fsync_file(fh: BinaryIO) -> None:
    """
    Flush and fsync an open file handle.

    Notes:
        Ensures file contents reach the storage device (subject to OS/filesystem semantics).
    """
    fh.flush()
    os.fsync(fh.fileno())


def rename_atomic(src: str, dst: str) -> None:
    """
    Atomically rename src -> dst on the same filesystem.

    Notes:
        Uses os.replace, which is atomic only if src and dst reside on the same filesystem.
    """
    os.replace(src, dst)


def remove_quietly(path: str) -> None:
    """Remove a leftover tmp file; missing files are fine."""
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


def copy_mode(src: str, dst: str) -> None:
    """Copy permission bits from an existing src onto dst; a no-op when src is missing."""
    try:
        shutil.copymode(src, dst)
    except FileNotFoundError:
        pass
