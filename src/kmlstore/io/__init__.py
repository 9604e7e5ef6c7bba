"""
kmlstore.io — File-backed feature store over one KML document.

## Responsibilities
- Expose the features of a single KML file through reader/writer sessions.
- Keep an in-memory copy validated by the file's modification time; re-decode only when
  the file changed.
- Apply writer mutations to the live set and flush the whole set back to the file on
  writer close (tmp → fsync → atomic rename).
- Derive the store's feature type from a representative Placemark.

## Public API
- StoreSettings — Configuration (env > TOML > defaults).
- FeatureStore — Store facade (derive_schema/open_reader/open_writer/bounds/count/to_frame).
- Query — Reader filter (fids, bbox, max_features).
- StoreParams, open_store, create_store — Connection parameters and construction.

## Import DAG discipline
- Depends on stdlib, lxml, pydantic, polars, and kmlstore.core.*.

## Examples
```python
from kmlstore.io import FeatureStore

store = FeatureStore("places.kml")  # doctest: +SKIP
with store.open_writer() as w:  # doctest: +SKIP
    f = w.next()
    f["name"] = "Amsterdam"
    w.write()
store.count()  # doctest: +SKIP
```

## Notes
- One reader-or-writer session per store at a time; there is no locking.
- Last write wins on writer close.
"""

from __future__ import annotations

from .config import StoreSettings
from .params import StoreParams, create_store, open_store
from .query import Query
from .store import FeatureStore

__all__ = [
    "StoreSettings",
    "FeatureStore",
    "Query",
    "StoreParams",
    "open_store",
    "create_store",
]
