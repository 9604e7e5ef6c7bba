"""
Pydantic v2 models for geometries and bounding envelopes.

Responsibilities
- Model the KML geometry kinds (Point, LineString, LinearRing, Polygon, MultiGeometry)
  as frozen value objects with shape validation.
- Aggregate bounding envelopes over any geometry tree.
- Render geometries as WKT for tabular export.

Style
- Zero-IO (stdlib + pydantic only).
- No coordinate reference system handling: coordinates are plain lon/lat(/alt) tuples.

Examples:
    >>> from kmlstore.core.geometry import Geometry
    >>> g = Geometry.line_string([(0.0, 0.0), (2.0, 1.0)])
    >>> g.bounds().max_x
    2.0
    >>> Geometry.point(1.0, 2.0).to_wkt()
    'POINT (1 2)'
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Iterator
from typing import Literal

from pydantic import BaseModel, ConfigDict, model_validator

from .errors import GeometryError

__all__ = [
    "Coordinate",
    "GeometryKind",
    "Envelope",
    "Geometry",
]

Coordinate = tuple[float, float] | tuple[float, float, float]
GeometryKind = Literal["Point", "LineString", "LinearRing", "Polygon", "MultiGeometry"]


class Envelope(BaseModel):
    """
    Axis-aligned bounding box.

    Attributes:
        min_x (float): Minimum x (longitude).
        min_y (float): Minimum y (latitude).
        max_x (float): Maximum x.
        max_y (float): Maximum y.

    Notes:
        The empty envelope has min > max (infinities), so including any point into it
        yields a degenerate box around that point.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    min_x: float = math.inf
    min_y: float = math.inf
    max_x: float = -math.inf
    max_y: float = -math.inf

    @classmethod
    def empty(cls) -> Envelope:
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.min_x > self.max_x or self.min_y > self.max_y

    def include(self, x: float, y: float) -> Envelope:
        """Return a new envelope grown to contain (x, y)."""
        return Envelope(
            min_x=min(self.min_x, x),
            min_y=min(self.min_y, y),
            max_x=max(self.max_x, x),
            max_y=max(self.max_y, y),
        )

    def union(self, other: Envelope) -> Envelope:
        if other.is_empty:
            return self
        if self.is_empty:
            return other
        return Envelope(
            min_x=min(self.min_x, other.min_x),
            min_y=min(self.min_y, other.min_y),
            max_x=max(self.max_x, other.max_x),
            max_y=max(self.max_y, other.max_y),
        )

    def intersects(self, other: Envelope) -> bool:
        if self.is_empty or other.is_empty:
            return False
        return not (
            other.min_x > self.max_x
            or other.max_x < self.min_x
            or other.min_y > self.max_y
            or other.max_y < self.min_y
        )


def _num(v: float) -> str:
    return "%.15g" % v


def _coords_wkt(coords: Iterable[Coordinate]) -> str:
    return ", ".join(" ".join(_num(v) for v in c) for c in coords)


class Geometry(BaseModel):
    """
    A KML geometry.

    Attributes:
        kind (GeometryKind): Geometry element name.
        coordinates (tuple[Coordinate, ...]): Positions for Point/LineString/LinearRing.
        rings (tuple[tuple[Coordinate, ...], ...]): Polygon boundaries; the first ring is
            the outer boundary, any further rings are holes.
        geometries (tuple[Geometry, ...]): Members of a MultiGeometry.

    Raises:
        pydantic.ValidationError: Wrapping GeometryError when the shape does not fit the
            kind (e.g., a Point with two positions, a LineString with one).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: GeometryKind
    coordinates: tuple[Coordinate, ...] = ()
    rings: tuple[tuple[Coordinate, ...], ...] = ()
    geometries: tuple[Geometry, ...] = ()

    @model_validator(mode="after")
    def _check_shape(self) -> Geometry:
        k = self.kind
        if k == "Point":
            if len(self.coordinates) != 1:
                raise GeometryError(f"Point requires exactly one coordinate, got {len(self.coordinates)}")
        elif k == "LineString":
            if len(self.coordinates) < 2:
                raise GeometryError("LineString requires at least two coordinates")
        elif k == "LinearRing":
            if len(self.coordinates) < 4:
                raise GeometryError("LinearRing requires at least four coordinates")
        elif k == "Polygon":
            if not self.rings:
                raise GeometryError("Polygon requires an outer boundary")
            for ring in self.rings:
                if len(ring) < 4:
                    raise GeometryError("Polygon rings require at least four coordinates")
        elif k == "MultiGeometry":
            if self.coordinates or self.rings:
                raise GeometryError("MultiGeometry carries members, not coordinates")
        if k != "Polygon" and self.rings:
            raise GeometryError(f"{k} does not accept rings")
        if k != "MultiGeometry" and self.geometries:
            raise GeometryError(f"{k} does not accept member geometries")
        return self

    # -----------------------------------------------------------------------------
    # Constructors
    # -----------------------------------------------------------------------------

    @classmethod
    def point(cls, x: float, y: float, z: float | None = None) -> Geometry:
        c: Coordinate = (x, y) if z is None else (x, y, z)
        return cls(kind="Point", coordinates=(c,))

    @classmethod
    def line_string(cls, coords: Iterable[Coordinate]) -> Geometry:
        return cls(kind="LineString", coordinates=tuple(coords))

    @classmethod
    def polygon(cls, outer: Iterable[Coordinate], *inner: Iterable[Coordinate]) -> Geometry:
        return cls(kind="Polygon", rings=(tuple(outer), *(tuple(r) for r in inner)))

    @classmethod
    def collection(cls, members: Iterable[Geometry]) -> Geometry:
        return cls(kind="MultiGeometry", geometries=tuple(members))

    # -----------------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------------

    def iter_coordinates(self) -> Iterator[Coordinate]:
        yield from self.coordinates
        for ring in self.rings:
            yield from ring
        for g in self.geometries:
            yield from g.iter_coordinates()

    def bounds(self) -> Envelope:
        env = Envelope.empty()
        for c in self.iter_coordinates():
            env = env.include(c[0], c[1])
        return env

    def to_wkt(self) -> str:
        k = self.kind
        if k == "Point":
            return f"POINT ({_coords_wkt(self.coordinates)})"
        if k == "LineString":
            return f"LINESTRING ({_coords_wkt(self.coordinates)})"
        if k == "LinearRing":
            return f"LINEARRING ({_coords_wkt(self.coordinates)})"
        if k == "Polygon":
            return "POLYGON (" + ", ".join(f"({_coords_wkt(r)})" for r in self.rings) + ")"
        if not self.geometries:
            return "GEOMETRYCOLLECTION EMPTY"
        return "GEOMETRYCOLLECTION (" + ", ".join(g.to_wkt() for g in self.geometries) + ")"
