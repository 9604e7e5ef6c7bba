"""
kmlstore — a single-file KML feature store with a timestamp-validated reload cache.

See kmlstore.core for feature types/geometries and kmlstore.io for the store itself.
"""

from __future__ import annotations

from kmlstore.io import FeatureStore, Query, StoreParams, StoreSettings, create_store, open_store

__all__ = [
    "FeatureStore",
    "Query",
    "StoreParams",
    "StoreSettings",
    "create_store",
    "open_store",
]
