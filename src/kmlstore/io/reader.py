"""
Sequential reader over a snapshot of the store's features.

Notes
- The snapshot is a private list copy taken when the reader is opened; later changes to
  the store's live set do not affect it.
- The copy is shallow: the Feature objects are the live ones. Mutating a feature returned
  by a reader (or by a writer without write()) changes the live set, and the next flush
  persists it.
- close() releases nothing (there is no file handle) and rewinds the cursor, so a reused
  reader restarts from the first feature.
"""

from __future__ import annotations

from collections.abc import Iterator
from types import TracebackType

from kmlstore.core.schema import Feature, FeatureType

from .errors import NoMoreRecordsError


class FeatureReader:
    """
    Restartable single-pass iterator over a feature snapshot.

    Notes:
        Features are shared with the store, not copied. Edit them through a writer.

    Examples:
        >>> reader = store.open_reader()  # doctest: +SKIP
        >>> while reader.has_next():  # doctest: +SKIP
        ...     feature = reader.next()
        >>> reader.close()  # doctest: +SKIP
    """

    def __init__(self, features: list[Feature], feature_type: FeatureType) -> None:
        self._features = list(features)
        self._type = feature_type
        self._pos = 0

    @property
    def feature_type(self) -> FeatureType:
        return self._type

    def has_next(self) -> bool:
        return self._pos < len(self._features)

    def next(self) -> Feature:
        """
        Return the next feature.

        Raises:
            NoMoreRecordsError: If has_next() is False.
        """
        if not self.has_next():
            raise NoMoreRecordsError("reader exhausted; check has_next() first")
        feature = self._features[self._pos]
        self._pos += 1
        return feature

    def close(self) -> None:
        self._pos = 0

    def __iter__(self) -> Iterator[Feature]:
        return self

    def __next__(self) -> Feature:
        if not self.has_next():
            raise StopIteration
        return self.next()

    def __len__(self) -> int:
        return len(self._features)

    def __enter__(self) -> FeatureReader:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
