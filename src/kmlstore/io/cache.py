"""
Reload cache: the in-memory feature set and its staleness check.

Overview
- ReloadCache owns the store's live feature list and the backing file's last observed
  modification time (st_mtime_ns).
- ensure_fresh() runs at the start of every read/write session: stat the file, compare
  timestamps, and only re-decode when the file changed (or was never loaded).
- A reload decodes into a fresh list and swaps it in wholesale; the timestamp is only
  advanced after the full decode succeeded. A failed reload leaves both untouched.
- mark_synced() records the timestamp of a file the store just wrote, so the next
  ensure_fresh() is a cache hit.

Missing-file policy
- "ignore" (default): a missing backing file leaves the current set untouched; the file
  appears on the first writer close.
- "error": a missing backing file raises DecodeError.

Notes
- No locking: one reader-or-writer session per store at a time.
- The stat is taken before the file is opened, so a write racing with the decode makes
  the next ensure_fresh() reload again rather than miss the change.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from typing import IO

from kmlstore.core.schema import Feature

from .config import MissingFilePolicy
from .errors import DecodeError
from .fs import mtime_ns

logger = logging.getLogger("kmlstore.cache")

Loader = Callable[[IO[bytes]], list[Feature]]


class ReloadCache:
    """
    Timestamp-validated cache of the features held in one backing file.

    Args:
        path (str): Backing file path.
        loader (Callable[[IO[bytes]], list[Feature]]): Decodes a whole binary stream.
        missing_file (MissingFilePolicy): "ignore" or "error".

    Attributes:
        reload_count (int): Number of completed decode passes (cache misses).
    """

    def __init__(self, path: str, loader: Loader, *, missing_file: MissingFilePolicy = "ignore") -> None:
        self._path = path
        self._loader = loader
        self._missing_file = missing_file
        self._features: list[Feature] = []
        self._synced_mtime: int | None = None
        self.reload_count = 0

    @property
    def path(self) -> str:
        return self._path

    @property
    def features(self) -> list[Feature]:
        """The live list. Mutate only through add()/remove()."""
        return self._features

    @property
    def last_synced_mtime(self) -> int | None:
        return self._synced_mtime

    def snapshot(self) -> list[Feature]:
        """Private copy of the live list for a reader/writer session."""
        return list(self._features)

    def ensure_fresh(self) -> bool:
        """
        Reload the backing file when it changed since the last sync.

        Returns:
            bool: True when a decode pass ran, False on a cache hit or missing file.

        Raises:
            DecodeError: On malformed content, or a missing file under policy "error".
        """
        current = mtime_ns(self._path)
        if current is None:
            if self._missing_file == "error":
                raise DecodeError(f"backing file {self._path!r} does not exist")
            logger.debug("backing file %s missing; keeping %d cached features", self._path, len(self._features))
            return False

        if current == self._synced_mtime:
            logger.debug("cache hit for %s", self._path)
            return False

        try:
            if os.path.getsize(self._path) == 0:
                loaded: list[Feature] = []
            else:
                with open(self._path, "rb") as fh:
                    loaded = self._loader(fh)
        except OSError as exc:
            raise DecodeError(f"failed to read {self._path!r}: {exc}") from exc

        self._features = loaded
        self._synced_mtime = current
        self.reload_count += 1
        logger.info("reloaded %d features from %s", len(loaded), self._path)
        return True

    def mark_synced(self) -> None:
        """Adopt the backing file's current timestamp after the store wrote it."""
        self._synced_mtime = mtime_ns(self._path)

    def _index_of(self, feature: Feature) -> int | None:
        # identity first: a file may hold several Placemarks with the same id
        for i, existing in enumerate(self._features):
            if existing is feature:
                return i
        for i, existing in enumerate(self._features):
            if existing.fid == feature.fid:
                return i
        return None

    def add(self, feature: Feature) -> None:
        """
        Add a feature to the live list.

        Notes:
            The same object is replaced in place. Otherwise a feature whose fid is already
            present replaces the first entry with that fid, and a new fid is appended.
        """
        i = self._index_of(feature)
        if i is None:
            self._features.append(feature)
        else:
            self._features[i] = feature

    def remove(self, feature: Feature) -> bool:
        """Remove the same object, else the first entry with its fid; False when absent."""
        i = self._index_of(feature)
        if i is None:
            return False
        del self._features[i]
        return True
