"""
Feature types and features.

Responsibilities
- Declare the attribute structure (names + dtypes) shared by every feature of a store.
- Provide the mutable Feature record used by readers, writers and the codec.
- Check attribute names and values against the owning FeatureType.

Style
- Zero-IO (stdlib + pydantic models from kmlstore.core.geometry).
- FeatureType is a frozen dataclass; it is derived once per store and never mutated.
  Renaming produces a new instance with the same attributes and default geometry.

Examples:
    >>> from kmlstore.core.schema import AttributeDescriptor, Feature, FeatureType
    >>> ft = FeatureType(
    ...     name="places",
    ...     attributes=(AttributeDescriptor("name", "str"), AttributeDescriptor("geometry", "geometry")),
    ...     default_geometry="geometry",
    ... )
    >>> f = Feature.blank(ft, fid="a")
    >>> f["name"] = "X"
    >>> f.as_dict()
    {'name': 'X', 'geometry': None}
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, replace
from typing import Any

from .constants import DTYPES
from .errors import SchemaError
from .geometry import Envelope, Geometry
from .ids import new_feature_id

__all__ = [
    "AttributeDescriptor",
    "FeatureType",
    "Feature",
]


@dataclass(frozen=True)
class AttributeDescriptor:
    """
    Name and dtype of one feature attribute.

    Attributes:
        name (str): Attribute name (lower_snake).
        dtype (str): One of "str", "bool", "geometry", "map".
    """

    name: str
    dtype: str

    def __post_init__(self) -> None:
        if not self.name:
            raise SchemaError("attribute name must be non-empty")
        if self.dtype not in DTYPES:
            raise SchemaError(f"unknown dtype {self.dtype!r} for attribute {self.name!r}")

    def check(self, value: Any) -> Any:
        """
        Validate a value for this attribute, returning the value to store.

        Raises:
            SchemaError: If the value does not match the dtype.
        """
        if value is None:
            return None
        if self.dtype == "str":
            if not isinstance(value, str):
                raise SchemaError(f"attribute {self.name!r} expects str, got {type(value).__name__}")
            return value
        if self.dtype == "bool":
            if not isinstance(value, bool):
                raise SchemaError(f"attribute {self.name!r} expects bool, got {type(value).__name__}")
            return value
        if self.dtype == "geometry":
            if not isinstance(value, Geometry):
                raise SchemaError(f"attribute {self.name!r} expects Geometry, got {type(value).__name__}")
            return value
        # map
        if not isinstance(value, Mapping):
            raise SchemaError(f"attribute {self.name!r} expects a mapping, got {type(value).__name__}")
        out: dict[str, str | None] = {}
        for k, v in value.items():
            if not isinstance(k, str) or not (v is None or isinstance(v, str)):
                raise SchemaError(f"attribute {self.name!r} expects str keys and str|None values")
            out[k] = v
        return out


@dataclass(frozen=True)
class FeatureType:
    """
    Frozen attribute structure shared by every feature of a store.

    Attributes:
        name (str): Logical type name (by default the backing file's stem).
        attributes (tuple[AttributeDescriptor, ...]): Ordered attribute descriptors.
        namespace (str | None): Optional namespace URI.
        default_geometry (str | None): Name of the geometry attribute used for bounds.

    Raises:
        SchemaError: On duplicate attribute names or a default geometry that is not a
            declared geometry attribute.
    """

    name: str
    attributes: tuple[AttributeDescriptor, ...]
    namespace: str | None = None
    default_geometry: str | None = None

    def __post_init__(self) -> None:
        names = [a.name for a in self.attributes]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise SchemaError(f"duplicate attribute names: {dupes!r}")
        if self.default_geometry is not None:
            desc = self.descriptor(self.default_geometry)
            if desc.dtype != "geometry":
                raise SchemaError(
                    f"default geometry {self.default_geometry!r} is not a geometry attribute"
                )

    @property
    def attribute_names(self) -> tuple[str, ...]:
        return tuple(a.name for a in self.attributes)

    @property
    def qualified_name(self) -> str:
        return f"{{{self.namespace}}}{self.name}" if self.namespace else self.name

    def has(self, name: str) -> bool:
        return any(a.name == name for a in self.attributes)

    def descriptor(self, name: str) -> AttributeDescriptor:
        for a in self.attributes:
            if a.name == name:
                return a
        raise SchemaError(f"unknown attribute {name!r} for feature type {self.name!r}")

    def index_of(self, name: str) -> int:
        for i, a in enumerate(self.attributes):
            if a.name == name:
                return i
        raise SchemaError(f"unknown attribute {name!r} for feature type {self.name!r}")

    def renamed(self, name: str, namespace: str | None = None) -> FeatureType:
        """Return a copy with a new name/namespace; attributes and default geometry are kept."""
        return replace(self, name=name, namespace=namespace)

    def structurally_equal(self, other: FeatureType) -> bool:
        """True when both types declare the same attributes and default geometry."""
        return (
            self.attributes == other.attributes
            and self.default_geometry == other.default_geometry
        )


class Feature:
    """
    One record: an identifier plus attribute values conforming to a FeatureType.

    Notes:
        - Values are addressed by attribute name; unknown names raise SchemaError.
        - Features are mutable so callers can fill in a blank feature returned by a
          writer before calling write().
        - Equality compares fid, type name and values.
    """

    __slots__ = ("_fid", "_type", "_values")

    def __init__(
        self,
        feature_type: FeatureType,
        fid: str,
        values: Mapping[str, Any] | None = None,
    ) -> None:
        self._fid = fid
        self._type = feature_type
        self._values: dict[str, Any] = {a.name: None for a in feature_type.attributes}
        for k, v in (values or {}).items():
            self.set(k, v)

    @classmethod
    def blank(cls, feature_type: FeatureType, fid: str | None = None) -> Feature:
        """Create a feature with every attribute unset and a fresh identifier."""
        return cls(feature_type, fid if fid is not None else new_feature_id())

    @property
    def fid(self) -> str:
        return self._fid

    @property
    def feature_type(self) -> FeatureType:
        return self._type

    def __getitem__(self, name: str) -> Any:
        if name not in self._values:
            raise SchemaError(f"unknown attribute {name!r} for feature type {self._type.name!r}")
        return self._values[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def get(self, name: str, default: Any = None) -> Any:
        v = self._values.get(name)
        return default if v is None else v

    def set(self, name: str, value: Any) -> None:
        self._values[name] = self._type.descriptor(name).check(value)

    def values(self) -> list[Any]:
        return [self._values[a.name] for a in self._type.attributes]

    def as_dict(self) -> dict[str, Any]:
        return dict(self._values)

    @property
    def default_geometry(self) -> Geometry | None:
        gname = self._type.default_geometry
        return self._values[gname] if gname is not None else None

    def bounds(self) -> Envelope:
        g = self.default_geometry
        return g.bounds() if g is not None else Envelope.empty()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Feature):
            return NotImplemented
        return (
            self._fid == other._fid
            and self._type.name == other._type.name
            and self._values == other._values
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Feature(fid={self._fid!r}, type={self._type.name!r}, values={self._values!r})"
