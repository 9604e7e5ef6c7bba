"""
Core contracts for kmlstore (feature types, features, geometries, ids, constants).

## Contracts (single source of truth)
- Schema — FeatureType/AttributeDescriptor (frozen) and the mutable Feature record.
- Geometry — frozen pydantic models for KML geometries and bounding envelopes.
- IDs — feature identifier generation for synthesized features.
- Serde — canonical JSON for flattening map attributes.
- Constants/Errors — namespaces, extensions, dtypes; SchemaError/GeometryError.

## Notes
- Zero‑IO policy: stdlib + pydantic only; no file/network IO.
- Attribute names are lower_snake; KML element names are mapped in kmlstore.io.codec.

## Downstream usage
- kmlstore.io — decodes/encodes features, derives the store's FeatureType, and checks
  writer mutations against it.

## Examples
```python
from kmlstore.core.geometry import Geometry
from kmlstore.core.schema import AttributeDescriptor, Feature, FeatureType

ft = FeatureType(
    name="places",
    attributes=(AttributeDescriptor("name", "str"), AttributeDescriptor("geometry", "geometry")),
    default_geometry="geometry",
)
f = Feature.blank(ft)
f["geometry"] = Geometry.point(4.9, 52.4)
f.bounds().min_x  # 4.9
```
"""
