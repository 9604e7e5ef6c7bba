"""
kmlstore core defaults.

Defines the KML namespaces, file extensions and attribute dtypes consumed by the IO
layer. This module is zero-IO and uses only the Python standard library.

Notes:
    - KML_NAMESPACE is used when encoding; decoding accepts any namespace in
      KNOWN_KML_NAMESPACES (and unqualified documents) by matching local names.
    - DTYPES is the closed set of attribute dtypes a FeatureType may declare.
"""

from __future__ import annotations

__all__ = [
    "KML_NAMESPACE",
    "KNOWN_KML_NAMESPACES",
    "KML_EXTENSIONS",
    "DTYPES",
    "GEOMETRY_KINDS",
]

# Namespace written by the encoder.
KML_NAMESPACE: str = "http://www.opengis.net/kml/2.2"

KNOWN_KML_NAMESPACES: frozenset[str] = frozenset(
    {
        "http://www.opengis.net/kml/2.2",
        "http://earth.google.com/kml/2.2",
        "http://earth.google.com/kml/2.1",
        "http://earth.google.com/kml/2.0",
    }
)

# Backing files must carry one of these suffixes (lower-cased comparison).
KML_EXTENSIONS: tuple[str, ...] = (".kml",)

# "map" holds ExtendedData name/value pairs.
DTYPES: frozenset[str] = frozenset({"str", "bool", "geometry", "map"})

GEOMETRY_KINDS: tuple[str, ...] = (
    "Point",
    "LineString",
    "LinearRing",
    "Polygon",
    "MultiGeometry",
)
