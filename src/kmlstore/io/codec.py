"""
KML Placemark codec.

Overview
- PlacemarkDecoder streams <Placemark> elements out of a KML document one at a time
  (lxml.etree.iterparse), turning each into a Feature. next() returns None at end of
  stream, so callers can pull records until exhausted.
- KmlCodec.encode_all() serializes a full feature sequence as one KML document
  (<kml><Document>…</Document></kml>), overwriting whatever the stream held.

Element mapping
- name, description, visibility, open, address, phoneNumber, Snippet, styleUrl map to
  lower_snake attributes (visibility/open are "bool", the rest "str").
- TimeStamp/when maps to "timestamp" ("str").
- ExtendedData/Data (and SchemaData/SimpleData) maps to "extended_data" ("map").
- Point, LineString, LinearRing, Polygon, MultiGeometry map to "geometry" ("geometry").
- Placemark/@id is the feature id; a fresh id is generated when absent.

Inferring vs projecting
- Without a feature type the decoder infers one from the children present, in document
  order. The schema deriver relies on this to read the bundled template.
- With a feature type, values are projected onto it and unknown children are skipped.

Notes
- Namespaces are matched by local name: KML 2.0/2.1/2.2 and unqualified documents decode.
- encode_all() writes only <Document>, its optional <name>, and the Placemarks. Document
  level <Style>, <StyleMap> and <Folder> elements of a decoded file are not kept, and
  Placemarks nested in Folders are written flat under <Document>.
- Entity resolution and network access are disabled on the parser.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import IO, Any

from lxml import etree
from lxml.builder import ElementMaker
from pydantic import ValidationError

from kmlstore.core.constants import GEOMETRY_KINDS, KML_NAMESPACE, KNOWN_KML_NAMESPACES
from kmlstore.core.errors import SchemaError
from kmlstore.core.geometry import Coordinate, Geometry
from kmlstore.core.ids import new_feature_id
from kmlstore.core.schema import AttributeDescriptor, Feature, FeatureType

from .config import StoreSettings
from .errors import DecodeError, EncodeError

logger = logging.getLogger("kmlstore.codec")

GEOMETRY_ATTRIBUTE = "geometry"
INFERRED_TYPE_NAME = "Placemark"

# KML element local name -> (attribute name, dtype)
PLACEMARK_FIELDS: dict[str, tuple[str, str]] = {
    "name": ("name", "str"),
    "visibility": ("visibility", "bool"),
    "open": ("open", "bool"),
    "address": ("address", "str"),
    "phoneNumber": ("phone_number", "str"),
    "Snippet": ("snippet", "str"),
    "description": ("description", "str"),
    "TimeStamp": ("timestamp", "str"),
    "styleUrl": ("style_url", "str"),
    "ExtendedData": ("extended_data", "map"),
}

# Element order inside <Placemark> as required by the KML schema.
_ENCODE_ORDER: tuple[str, ...] = (*PLACEMARK_FIELDS, GEOMETRY_ATTRIBUTE)
_ELEMENT_FOR: dict[str, str] = {attr: elem for elem, (attr, _dtype) in PLACEMARK_FIELDS.items()}


def _local(el: etree._Element) -> str:
    return etree.QName(el).localname


def _is_kml(el: etree._Element, localname: str) -> bool:
    q = etree.QName(el)
    return q.localname == localname and (q.namespace is None or q.namespace in KNOWN_KML_NAMESPACES)


def _elements(el: etree._Element) -> Iterator[etree._Element]:
    for child in el:
        if isinstance(child.tag, str):
            yield child


def _child(el: etree._Element, localname: str) -> etree._Element | None:
    for child in _elements(el):
        if _local(child) == localname:
            return child
    return None


def _text(el: etree._Element | None) -> str:
    if el is None or el.text is None:
        return ""
    return el.text.strip()


# -----------------------------------------------------------------------------
# Decoding
# -----------------------------------------------------------------------------


def parse_coordinates(text: str) -> tuple[Coordinate, ...]:
    """
    Parse a KML <coordinates> string ("lon,lat[,alt] lon,lat[,alt] ...").

    Raises:
        DecodeError: If a tuple is not 2-D/3-D or holds a non-numeric value.
    """
    out: list[Coordinate] = []
    for token in text.split():
        parts = token.split(",")
        if len(parts) not in (2, 3):
            raise DecodeError(f"invalid coordinate tuple {token!r}")
        try:
            out.append(tuple(float(p) for p in parts))  # type: ignore[arg-type]
        except ValueError as exc:
            raise DecodeError(f"invalid coordinate tuple {token!r}") from exc
    return tuple(out)


def _ring(boundary: etree._Element) -> tuple[Coordinate, ...]:
    ring = _child(boundary, "LinearRing")
    if ring is None:
        raise DecodeError(f"<{_local(boundary)}> without <LinearRing>")
    return parse_coordinates(_text(_child(ring, "coordinates")))


def parse_geometry(el: etree._Element) -> Geometry:
    """
    Build a Geometry from a KML geometry element.

    Raises:
        DecodeError: On malformed coordinates or a shape that fails Geometry validation.
    """
    kind = _local(el)
    try:
        if kind in ("Point", "LineString", "LinearRing"):
            coords = parse_coordinates(_text(_child(el, "coordinates")))
            return Geometry(kind=kind, coordinates=coords)
        if kind == "Polygon":
            outer = _child(el, "outerBoundaryIs")
            if outer is None:
                raise DecodeError("<Polygon> without <outerBoundaryIs>")
            rings = [_ring(outer)]
            rings.extend(_ring(b) for b in _elements(el) if _local(b) == "innerBoundaryIs")
            return Geometry(kind="Polygon", rings=tuple(rings))
        if kind == "MultiGeometry":
            members = [parse_geometry(c) for c in _elements(el) if _local(c) in GEOMETRY_KINDS]
            return Geometry(kind="MultiGeometry", geometries=tuple(members))
    except ValidationError as exc:
        raise DecodeError(f"invalid <{kind}> geometry: {exc}") from exc
    raise DecodeError(f"unsupported geometry element <{kind}>")


def _parse_extended_data(el: etree._Element) -> dict[str, str | None]:
    out: dict[str, str | None] = {}
    for child in _elements(el):
        tag = _local(child)
        if tag == "Data":
            value = _child(child, "value")
            out[child.get("name", "")] = None if value is None else (value.text or "")
        elif tag == "SchemaData":
            for sd in _elements(child):
                if _local(sd) == "SimpleData":
                    out[sd.get("name", "")] = sd.text or ""
    return out


def _parse_bool(el: etree._Element) -> bool:
    raw = _text(el).lower()
    if raw in ("1", "true"):
        return True
    if raw in ("0", "false"):
        return False
    raise DecodeError(f"<{_local(el)}> expects 0/1/true/false, got {raw!r}")


def _read_value(el: etree._Element, dtype: str) -> Any:
    if dtype == "bool":
        return _parse_bool(el)
    if dtype == "map":
        return _parse_extended_data(el)
    if _local(el) == "TimeStamp":
        return _text(_child(el, "when"))
    return _text(el)


def decode_placemark(el: etree._Element, feature_type: FeatureType | None = None) -> Feature:
    """
    Convert a <Placemark> element into a Feature.

    Args:
        el: The Placemark element.
        feature_type: Type to project values onto; None infers a type from the children.

    Raises:
        DecodeError: On malformed values or geometries.
    """
    fid = el.get("id") or new_feature_id()
    found: list[tuple[AttributeDescriptor, Any]] = []
    for child in _elements(el):
        tag = _local(child)
        if tag in PLACEMARK_FIELDS:
            name, dtype = PLACEMARK_FIELDS[tag]
            found.append((AttributeDescriptor(name, dtype), _read_value(child, dtype)))
        elif tag in GEOMETRY_KINDS:
            found.append((AttributeDescriptor(GEOMETRY_ATTRIBUTE, "geometry"), parse_geometry(child)))
        else:
            logger.debug("ignoring <%s> in placemark %s", tag, fid)

    if feature_type is None:
        descriptors: dict[str, AttributeDescriptor] = {}
        for desc, _value in found:
            descriptors.setdefault(desc.name, desc)
        feature_type = FeatureType(
            name=INFERRED_TYPE_NAME,
            attributes=tuple(descriptors.values()),
            namespace=KML_NAMESPACE,
            default_geometry=GEOMETRY_ATTRIBUTE if GEOMETRY_ATTRIBUTE in descriptors else None,
        )

    feature = Feature(feature_type, fid)
    for desc, value in found:
        if not feature_type.has(desc.name):
            logger.debug("attribute %s not in feature type %s; skipped", desc.name, feature_type.name)
            continue
        try:
            feature.set(desc.name, value)
        except SchemaError as exc:
            raise DecodeError(f"placemark {fid!r}: {exc}") from exc
    return feature


class PlacemarkDecoder:
    """
    Pull-style decoder over one KML document.

    Notes:
        - next() returns the next Feature or None at end of stream; repeated calls after
          the end keep returning None.
        - Processed Placemark elements are cleared so memory stays bounded by one record.
    """

    def __init__(self, source: str | IO[bytes], feature_type: FeatureType | None = None) -> None:
        self._events = etree.iterparse(
            source,
            events=("end",),
            remove_blank_text=True,
            resolve_entities=False,
            no_network=True,
        )
        self._type = feature_type
        self._done = False

    def next(self) -> Feature | None:
        if self._done:
            return None
        try:
            for _event, el in self._events:
                if not _is_kml(el, "Placemark"):
                    continue
                feature = decode_placemark(el, self._type)
                el.clear(keep_tail=True)
                while el.getprevious() is not None:
                    del el.getparent()[0]
                return feature
        except etree.XMLSyntaxError as exc:
            self._done = True
            raise DecodeError(f"malformed KML document: {exc}") from exc
        self._done = True
        return None

    def __iter__(self) -> Iterator[Feature]:
        while True:
            feature = self.next()
            if feature is None:
                return
            yield feature


# -----------------------------------------------------------------------------
# Encoding
# -----------------------------------------------------------------------------


def _num(v: float) -> str:
    return "%.15g" % v


def format_coordinates(coords: Iterable[Coordinate]) -> str:
    return " ".join(",".join(_num(v) for v in c) for c in coords)


def build_geometry(E: ElementMaker, g: Geometry) -> etree._Element:
    if g.kind == "Polygon":
        outer, *inner = g.rings
        el = E("Polygon", E("outerBoundaryIs", E("LinearRing", E("coordinates", format_coordinates(outer)))))
        for ring in inner:
            el.append(E("innerBoundaryIs", E("LinearRing", E("coordinates", format_coordinates(ring)))))
        return el
    if g.kind == "MultiGeometry":
        return E("MultiGeometry", *(build_geometry(E, m) for m in g.geometries))
    return E(g.kind, E("coordinates", format_coordinates(g.coordinates)))


def build_placemark(E: ElementMaker, feature: Feature) -> etree._Element:
    """
    Build a <Placemark> element for a feature; unset attributes are omitted.

    Raises:
        EncodeError: If the feature type declares an attribute with no KML mapping.
    """
    ftype = feature.feature_type
    unknown = [n for n in ftype.attribute_names if n not in _ELEMENT_FOR and n != GEOMETRY_ATTRIBUTE]
    if unknown:
        raise EncodeError(f"attributes {unknown!r} of feature {feature.fid!r} have no KML mapping")

    pm = E("Placemark", id=feature.fid)
    for attr in _ENCODE_ORDER:
        if not ftype.has(attr):
            continue
        value = feature[attr]
        if value is None:
            continue
        if attr == GEOMETRY_ATTRIBUTE:
            pm.append(build_geometry(E, value))
            continue
        tag = _ELEMENT_FOR[attr]
        dtype = ftype.descriptor(attr).dtype
        if dtype == "bool":
            pm.append(E(tag, "1" if value else "0"))
        elif dtype == "map":
            data = E(tag)
            for k, v in value.items():
                item = E("Data", name=k)
                if v is not None:
                    item.append(E("value", v))
                data.append(item)
            pm.append(data)
        elif tag == "TimeStamp":
            pm.append(E(tag, E("when", value)))
        else:
            pm.append(E(tag, value))
    return pm


class KmlCodec:
    """
    Record codec for KML documents.

    Notes:
        - decoder()/decode_all() read; encode_all() writes a whole document.
        - Streams are binary file objects (or paths for reading).
    """

    def __init__(self, *, pretty_print: bool = True) -> None:
        self.pretty_print = pretty_print

    @classmethod
    def from_settings(cls, settings: StoreSettings) -> KmlCodec:
        return cls(pretty_print=settings.pretty_print)

    def decoder(self, source: str | IO[bytes], feature_type: FeatureType | None = None) -> PlacemarkDecoder:
        return PlacemarkDecoder(source, feature_type)

    def decode_all(self, source: str | IO[bytes], feature_type: FeatureType | None = None) -> list[Feature]:
        return list(self.decoder(source, feature_type))

    def encode_all(
        self,
        features: Iterable[Feature],
        stream: IO[bytes],
        *,
        document_name: str | None = None,
    ) -> None:
        """
        Serialize features as one KML document into a binary stream.

        Raises:
            EncodeError: On unmappable attributes or a failing stream.
        """
        E = ElementMaker(namespace=KML_NAMESPACE, nsmap={None: KML_NAMESPACE})
        try:
            doc = E("Document")
            if document_name:
                doc.append(E("name", document_name))
            for feature in features:
                doc.append(build_placemark(E, feature))
            tree = etree.ElementTree(E("kml", doc))
            tree.write(stream, xml_declaration=True, encoding="UTF-8", pretty_print=self.pretty_print)
        except (OSError, ValueError) as exc:
            # lxml rejects control characters in text with ValueError
            raise EncodeError(f"failed to serialize KML document: {exc}") from exc
