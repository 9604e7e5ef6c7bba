"""
Query filtering for reader sessions.

A Query narrows the snapshot a reader iterates: by feature id, by bounding box
(intersection with each feature's default-geometry bounds), and by a maximum count.
Filtering is a linear scan in snapshot order; there is no index.
"""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field

from kmlstore.core.geometry import Envelope
from kmlstore.core.schema import Feature

from .errors import StoreConfigError


class Query(BaseModel):
    """
    Reader filter.

    Attributes:
        type_name (str | None): When set, must equal the store's type name.
        fids (frozenset[str] | None): Keep only these feature ids.
        bbox (Envelope | None): Keep features whose bounds intersect this envelope.
        max_features (int | None): Cap on the number of features returned (>= 0).

    Examples:
        >>> from kmlstore.io.query import Query
        >>> Query(fids={"a"}).fids == frozenset({"a"})
        True
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    type_name: str | None = None
    fids: frozenset[str] | None = None
    bbox: Envelope | None = None
    max_features: int | None = Field(default=None, ge=0)

    def check_type(self, type_name: str) -> None:
        if self.type_name is not None and self.type_name != type_name:
            raise StoreConfigError(f"query targets {self.type_name!r}, store serves {type_name!r}")

    def matches(self, feature: Feature) -> bool:
        if self.fids is not None and feature.fid not in self.fids:
            return False
        if self.bbox is not None and not self.bbox.intersects(feature.bounds()):
            return False
        return True

    def apply(self, features: Iterable[Feature]) -> list[Feature]:
        out: list[Feature] = []
        for f in features:
            if self.max_features is not None and len(out) >= self.max_features:
                break
            if self.matches(f):
                out.append(f)
        return out
