"""
Core exception types raised by feature-type checks and geometry validation.

Provides typed exceptions for core-domain failures:
- SchemaError for attribute names/values that do not fit a FeatureType.
- GeometryError for malformed geometries (coordinate arity, ring sizes).

Notes:
    - This module uses only the Python standard library and has no side effects.
    - IO-layer failures (decode/encode/session misuse) live in kmlstore.io.errors.

Examples:
    Catch an unknown attribute.

    >>> from kmlstore.core.errors import SchemaError
    >>> try:
    ...     raise SchemaError("unknown attribute 'colour'")
    ... except SchemaError as e:
    ...     msg = str(e)
    >>> "colour" in msg
    True
"""

from __future__ import annotations

__all__ = [
    "SchemaError",
    "GeometryError",
]


class SchemaError(ValueError):
    """Attribute name or value does not conform to a feature type."""


class GeometryError(SchemaError):
    """Geometry failed validation (coordinate arity, too few points, empty rings)."""
