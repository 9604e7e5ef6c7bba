"""
FeatureStore facade for one KML file.

Provides the narrow store interface (derive_schema, open_reader, open_writer, bounds,
count) over a single backing file, plus flush() and a Polars tabular view.

Control flow
- open_reader()/open_writer() call ReloadCache.ensure_fresh(), then hand a private
  snapshot of the live set to a FeatureReader/FeatureWriter.
- Writer mutations go through add_feature()/remove_feature() onto the live set.
- Writer close calls flush(): tmp KML → fsync → os.replace onto the backing path, then
  ReloadCache.mark_synced() so the next session is a cache hit.

Source of truth
- Feature types, features, geometries: kmlstore.core.
- Element mapping: kmlstore.io.codec.
- Settings: kmlstore.io.config.StoreSettings.

Notes
- Single-session semantics: no locking, concurrent sessions are undefined behaviour.
- Last write wins on close; there is no merge with external edits made meanwhile.
"""

from __future__ import annotations

import logging
import os
from typing import IO

import polars as pl

from kmlstore.core.errors import SchemaError
from kmlstore.core.geometry import Envelope
from kmlstore.core.schema import Feature, FeatureType
from kmlstore.core.serde import json_dumps_canonical

from .cache import ReloadCache
from .codec import KmlCodec
from .config import StoreSettings
from .derive import SchemaDeriver
from .errors import EncodeError
from .fs import copy_mode, fsync_file, makedirs, remove_quietly, rename_atomic, tmp_path_for
from .query import Query
from .reader import FeatureReader
from .writer import FeatureWriter

logger = logging.getLogger("kmlstore.store")

_POLARS_DTYPES: dict[str, object] = {
    "str": pl.Utf8,
    "bool": pl.Boolean,
    "geometry": pl.Utf8,  # WKT
    "map": pl.Utf8,  # canonical JSON
}


def type_name_for(path: str | os.PathLike[str]) -> str:
    """Logical type name for a backing file: its name without extension."""
    return os.path.splitext(os.path.basename(os.fspath(path)))[0]


class FeatureStore:
    """
    Store bound to one backing KML file.

    Args:
        path: Backing file path (need not exist yet).
        type_name: Logical type name; defaults to the file stem.
        namespace: Optional namespace for the derived feature type.
        settings: StoreSettings; defaults to StoreSettings().
        codec: KmlCodec; defaults to KmlCodec.from_settings(settings).

    Raises:
        SchemaDerivationError: If the feature type cannot be derived. The schema is
            derived eagerly; a store never exists without one.

    Notes:
        Construction does not load features; the first session does.
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        type_name: str | None = None,
        namespace: str | None = None,
        settings: StoreSettings | None = None,
        codec: KmlCodec | None = None,
    ) -> None:
        self.path = os.fspath(path)
        self.settings = settings or StoreSettings()
        self.codec = codec or KmlCodec.from_settings(self.settings)
        self.type_name = type_name or type_name_for(self.path)
        self.namespace = namespace
        self._deriver = SchemaDeriver(
            self.codec,
            self.type_name,
            namespace,
            path=self.path,
            source=self.settings.schema_source,
        )
        self._cache = ReloadCache(self.path, self._load, missing_file=self.settings.missing_file)
        self.derive_schema()

    def __repr__(self) -> str:
        return f"FeatureStore(path={self.path!r}, type_name={self.type_name!r})"

    # ---------------------------------------------------------------------
    # Schema
    # ---------------------------------------------------------------------
    def derive_schema(self) -> FeatureType:
        """Return the store's feature type (derived once, then cached)."""
        return self._deriver.derive()

    @property
    def schema(self) -> FeatureType:
        return self.derive_schema()

    @property
    def cache(self) -> ReloadCache:
        return self._cache

    def _load(self, stream: IO[bytes]) -> list[Feature]:
        return self.codec.decode_all(stream, self.schema)

    # ---------------------------------------------------------------------
    # Sessions
    # ---------------------------------------------------------------------
    def open_reader(self, query: Query | None = None) -> FeatureReader:
        """
        Open a reader over a snapshot of the (refreshed) feature set.

        Raises:
            DecodeError: If the backing file changed and could not be decoded.
            StoreConfigError: If the query targets another type name.
        """
        self._cache.ensure_fresh()
        features = self._cache.snapshot()
        if query is not None:
            query.check_type(self.type_name)
            features = query.apply(features)
        return FeatureReader(features, self.schema)

    def open_writer(self) -> FeatureWriter:
        """
        Open a writer over a snapshot of the (refreshed) feature set.

        Raises:
            DecodeError: If the backing file changed and could not be decoded.
        """
        self._cache.ensure_fresh()
        return FeatureWriter(self._cache.snapshot(), self)

    def features(self, query: Query | None = None) -> list[Feature]:
        """Convenience: all features a reader with `query` would yield."""
        return list(self.open_reader(query))

    # ---------------------------------------------------------------------
    # Aggregates
    # ---------------------------------------------------------------------
    def bounds(self, query: Query | None = None) -> Envelope:
        """Union of the default-geometry bounds of all (matching) features."""
        env = Envelope.empty()
        with self.open_reader(query) as reader:
            for feature in reader:
                env = env.union(feature.bounds())
        return env

    def count(self, query: Query | None = None) -> int:
        """Number of (matching) features after a freshness check."""
        if query is None:
            self._cache.ensure_fresh()
            return len(self._cache.features)
        return len(self.open_reader(query))

    def to_frame(self, query: Query | None = None) -> pl.DataFrame:
        """
        Tabular view of the (matching) features.

        Returns:
            pl.DataFrame: One row per feature with a leading "fid" column, then one column
            per attribute. Geometries are rendered as WKT and maps as canonical JSON.
        """
        ftype = self.schema
        rows: dict[str, list[object]] = {"fid": []}
        for a in ftype.attributes:
            rows[a.name] = []
        for feature in self.open_reader(query):
            rows["fid"].append(feature.fid)
            for a in ftype.attributes:
                v = feature[a.name]
                if v is not None and a.dtype == "geometry":
                    v = v.to_wkt()
                elif v is not None and a.dtype == "map":
                    v = json_dumps_canonical(v)
                rows[a.name].append(v)
        schema = {"fid": pl.Utf8, **{a.name: _POLARS_DTYPES[a.dtype] for a in ftype.attributes}}
        return pl.DataFrame(rows, schema=schema)  # type: ignore[arg-type]

    # ---------------------------------------------------------------------
    # Live set mutation (writer-facing)
    # ---------------------------------------------------------------------
    def add_feature(self, feature: Feature) -> None:
        """Add or replace (by fid) a feature in the live set; checks its type."""
        if not feature.feature_type.structurally_equal(self.schema):
            raise SchemaError(f"feature {feature.fid!r} does not conform to {self.type_name!r}")
        self._cache.add(feature)

    def remove_feature(self, feature: Feature) -> bool:
        return self._cache.remove(feature)

    # ---------------------------------------------------------------------
    # Flush
    # ---------------------------------------------------------------------
    def flush(self) -> None:
        """
        Serialize the full live set to the backing file (overwrite) atomically.

        Notes:
            A symlinked backing path is written through to its target, and an existing
            file keeps its permission bits.

        Raises:
            EncodeError: If serialization, fsync or the atomic rename failed. The tmp file
                is removed best-effort; the live set is left as-is.
        """
        features = self._cache.features
        target = os.path.realpath(self.path)
        tmp = tmp_path_for(target)
        try:
            makedirs(os.path.dirname(target))
            with open(tmp, "wb") as fh:
                self.codec.encode_all(
                    features,
                    fh,
                    document_name=self.settings.document_name,
                )
                if self.settings.fsync:
                    fsync_file(fh)
            copy_mode(target, tmp)
            rename_atomic(tmp, target)
        except EncodeError:
            remove_quietly(tmp)
            raise
        except OSError as exc:
            remove_quietly(tmp)
            raise EncodeError(f"failed to write {self.path!r}: {exc}") from exc
        self._cache.mark_synced()
        logger.info("flushed %d features to %s", len(features), self.path)
