import pytest

from kmlstore.core.errors import SchemaError
from kmlstore.core.geometry import Geometry
from kmlstore.core.schema import AttributeDescriptor, Feature, FeatureType


def make_type() -> FeatureType:
    return FeatureType(
        name="places",
        attributes=(
            AttributeDescriptor("name", "str"),
            AttributeDescriptor("visibility", "bool"),
            AttributeDescriptor("extended_data", "map"),
            AttributeDescriptor("geometry", "geometry"),
        ),
        default_geometry="geometry",
    )


def test_unknown_dtype_rejected():
    with pytest.raises(SchemaError):
        AttributeDescriptor("x", "int")


def test_duplicate_attribute_names_rejected():
    with pytest.raises(SchemaError):
        FeatureType(name="t", attributes=(AttributeDescriptor("a", "str"), AttributeDescriptor("a", "bool")))


def test_default_geometry_must_be_geometry_attribute():
    with pytest.raises(SchemaError):
        FeatureType(name="t", attributes=(AttributeDescriptor("a", "str"),), default_geometry="a")
    with pytest.raises(SchemaError):
        FeatureType(name="t", attributes=(AttributeDescriptor("a", "str"),), default_geometry="missing")


def test_renamed_preserves_structure():
    ft = make_type()
    renamed = ft.renamed("other", "urn:test")
    assert renamed.name == "other"
    assert renamed.namespace == "urn:test"
    assert renamed.qualified_name == "{urn:test}other"
    assert renamed.attributes == ft.attributes
    assert renamed.default_geometry == "geometry"
    assert renamed.structurally_equal(ft)
    assert renamed != ft


def test_attribute_lookup_by_name():
    ft = make_type()
    assert ft.index_of("geometry") == 3
    assert ft.descriptor("visibility").dtype == "bool"
    with pytest.raises(SchemaError):
        ft.index_of("missing")


def test_blank_feature_has_fresh_id_and_unset_values():
    ft = make_type()
    a = Feature.blank(ft)
    b = Feature.blank(ft)
    assert a.fid != b.fid
    assert a.values() == [None, None, None, None]
    assert a.bounds().is_empty


def test_feature_set_checks_name_and_dtype():
    f = Feature.blank(make_type(), fid="a")
    f["name"] = "X"
    f["visibility"] = True
    f["extended_data"] = {"k": "v"}
    f["geometry"] = Geometry.point(1.0, 2.0)
    assert f.as_dict()["name"] == "X"
    assert f.bounds().max_y == 2.0

    with pytest.raises(SchemaError):
        f["colour"] = "red"
    with pytest.raises(SchemaError):
        f["name"] = 3
    with pytest.raises(SchemaError):
        f["visibility"] = "yes"
    with pytest.raises(SchemaError):
        f["extended_data"] = {"k": 1}
    with pytest.raises(SchemaError):
        _ = f["colour"]


def test_feature_equality_by_id_and_values():
    ft = make_type()
    a = Feature(ft, "a", {"name": "X"})
    same = Feature(ft, "a", {"name": "X"})
    other = Feature(ft, "a", {"name": "Y"})
    assert a == same
    assert a != other
    assert a.get("description", "n/a") == "n/a"
