"""
Transactional writer: iterate, replace, delete, append; commit on close.

State machine
- SCANNING: next() yielded an existing feature from the snapshot (or nothing yet).
- SYNTHESIZED: the snapshot is exhausted and next() produced a blank feature with a
  fresh id and every attribute unset (the append path).
- COMMITTED: close() flushed the store's live set to disk; the writer is spent.

Transitions
- next(): SCANNING/SYNTHESIZED → SCANNING (snapshot left) or SYNTHESIZED (exhausted).
- write()/remove(): require a current feature; apply to the store's live set (not the
  snapshot) and clear the current slot. The state is unchanged.
- close(): flush via the store → COMMITTED. On EncodeError the state is unchanged and
  close() may be retried; in-memory changes are never rolled back.
"""

from __future__ import annotations

import enum
import logging
from types import TracebackType
from typing import TYPE_CHECKING

from kmlstore.core.schema import Feature, FeatureType

from .errors import NoCurrentRecordError, SessionClosedError

if TYPE_CHECKING:
    from .store import FeatureStore

logger = logging.getLogger("kmlstore.writer")


class WriterState(enum.Enum):
    SCANNING = "scanning"
    SYNTHESIZED = "synthesized"
    COMMITTED = "committed"


class FeatureWriter:
    """
    Cursor plus mutation handle over a snapshot of the store's features.

    Examples:
        Append one feature:

        >>> with store.open_writer() as w:  # doctest: +SKIP
        ...     f = w.next()
        ...     f["name"] = "Z"
        ...     w.write()
    """

    def __init__(self, features: list[Feature], store: FeatureStore) -> None:
        self._features = list(features)
        self._pos = 0
        self._store = store
        self._current: Feature | None = None
        self._state = WriterState.SCANNING

    @property
    def feature_type(self) -> FeatureType:
        return self._store.schema

    @property
    def state(self) -> WriterState:
        return self._state

    @property
    def current(self) -> Feature | None:
        return self._current

    def _check_open(self) -> None:
        if self._state is WriterState.COMMITTED:
            raise SessionClosedError("writer already committed")

    def has_next(self) -> bool:
        self._check_open()
        return self._pos < len(self._features)

    def next(self) -> Feature:
        """
        Advance to the next existing feature, or synthesize a blank one when exhausted.

        Returns:
            Feature: The new current feature.
        """
        if self.has_next():
            self._current = self._features[self._pos]
            self._pos += 1
            self._state = WriterState.SCANNING
        else:
            self._current = Feature.blank(self.feature_type)
            self._state = WriterState.SYNTHESIZED
        return self._current

    def write(self) -> None:
        """
        Add (or replace by id) the current feature in the store's live set.

        Raises:
            NoCurrentRecordError: If no feature is current.
        """
        self._check_open()
        if self._current is None:
            raise NoCurrentRecordError("write() requires a current feature; call next() first")
        self._store.add_feature(self._current)
        self._current = None

    def remove(self) -> None:
        """
        Delete the current feature from the store's live set.

        Raises:
            NoCurrentRecordError: If no feature is current.
        """
        self._check_open()
        if self._current is None:
            raise NoCurrentRecordError("remove() requires a current feature; call next() first")
        if not self._store.remove_feature(self._current):
            logger.debug("feature %s was not in the live set", self._current.fid)
        self._current = None

    def close(self) -> None:
        """
        Flush the store's full live set to the backing file and commit.

        Raises:
            EncodeError: If serialization or the file replace failed.
        """
        self._check_open()
        self._store.flush()
        self._features = []
        self._current = None
        self._state = WriterState.COMMITTED

    def __enter__(self) -> FeatureWriter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.close()
