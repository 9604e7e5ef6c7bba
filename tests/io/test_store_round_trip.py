from pathlib import Path

import polars as pl
import pytest

from kmlstore.core.geometry import Envelope
from kmlstore.io.codec import KmlCodec
from kmlstore.io.config import StoreSettings
from kmlstore.io.errors import StoreConfigError
from kmlstore.io.query import Query
from kmlstore.io.store import FeatureStore


def write_points(path: Path, points: dict[str, tuple[str, float, float]]) -> Path:
    body = "".join(
        f'<Placemark id="{fid}"><name>{name}</name><Point><coordinates>{x},{y}</coordinates></Point></Placemark>'
        for fid, (name, x, y) in points.items()
    )
    path.write_text(
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<kml xmlns="http://www.opengis.net/kml/2.2"><Document>{body}</Document></kml>',
        encoding="utf-8",
    )
    return path


def test_remove_and_append_round_trip(tmp_path: Path):
    path = write_points(tmp_path / "places.kml", {"a": ("X", 0.0, 0.0), "b": ("Y", 1.0, 1.0)})
    store = FeatureStore(path)

    writer = store.open_writer()
    while writer.has_next():
        f = writer.next()
        if f.fid == "a":
            writer.remove()
    added = writer.next()
    added["name"] = "Z"
    writer.write()
    writer.close()

    assert [(f.fid, f["name"]) for f in store.open_reader()] == [("b", "Y"), (added.fid, "Z")]

    with path.open("rb") as fh:
        on_disk = KmlCodec().decode_all(fh, store.schema)
    assert [(f.fid, f["name"]) for f in on_disk] == [("b", "Y"), (added.fid, "Z")]


def test_bounds_and_count(tmp_path: Path):
    path = write_points(
        tmp_path / "p.kml",
        {"a": ("A", 0.0, 0.0), "b": ("B", 10.0, 5.0), "c": ("C", -2.0, 3.0)},
    )
    store = FeatureStore(path)
    assert store.count() == 3
    assert store.bounds() == Envelope(min_x=-2.0, min_y=0.0, max_x=10.0, max_y=5.0)

    q = Query(bbox=Envelope(min_x=-1.0, min_y=-1.0, max_x=11.0, max_y=6.0))
    assert store.count(q) == 2
    assert store.bounds(q) == Envelope(min_x=0.0, min_y=0.0, max_x=10.0, max_y=5.0)


def test_bounds_of_empty_store_is_empty(tmp_path: Path):
    assert FeatureStore(tmp_path / "none.kml").bounds().is_empty


def test_query_filters_by_fid_and_cap(tmp_path: Path):
    path = write_points(
        tmp_path / "p.kml",
        {"a": ("A", 0.0, 0.0), "b": ("B", 1.0, 1.0), "c": ("C", 2.0, 2.0)},
    )
    store = FeatureStore(path)
    assert [f.fid for f in store.features(Query(fids={"c", "a"}))] == ["a", "c"]
    assert [f.fid for f in store.features(Query(max_features=2))] == ["a", "b"]
    assert store.features(Query(max_features=0)) == []
    assert store.count(Query(type_name="p")) == 3
    with pytest.raises(StoreConfigError):
        store.open_reader(Query(type_name="other"))


def test_to_frame_flattens_geometry_and_maps(tmp_path: Path):
    path = tmp_path / "t.kml"
    path.write_text(
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<kml xmlns="http://www.opengis.net/kml/2.2"><Document>'
        '<Placemark id="a"><name>A</name><visibility>1</visibility>'
        '<ExtendedData><Data name="z"><value>2</value></Data><Data name="y"><value>1</value></Data></ExtendedData>'
        "<Point><coordinates>1,2</coordinates></Point></Placemark>"
        "</Document></kml>",
        encoding="utf-8",
    )
    df = FeatureStore(path).to_frame()
    assert df.columns[0] == "fid"
    assert df.height == 1
    assert df.schema["visibility"] == pl.Boolean
    row = df.row(0, named=True)
    assert row["fid"] == "a"
    assert row["visibility"] is True
    assert row["geometry"] == "POINT (1 2)"
    assert row["extended_data"] == '{"y":"1","z":"2"}'
    assert row["description"] is None


def test_document_name_and_compact_output(tmp_path: Path):
    path = tmp_path / "doc.kml"
    store = FeatureStore(path, settings=StoreSettings(pretty_print=False, document_name="My places"))
    with store.open_writer() as w:
        f = w.next()
        f["name"] = "A"
        w.write()
    text = path.read_text(encoding="utf-8")
    assert "<name>My places</name>" in text
    assert "\n  <" not in text


def test_flush_writes_placemarks_flat_without_styles(tmp_path: Path):
    path = tmp_path / "nested.kml"
    path.write_text(
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<kml xmlns="http://www.opengis.net/kml/2.2"><Document>'
        '<Style id="s"><IconStyle><scale>2</scale></IconStyle></Style>'
        '<Folder><name>F</name><Placemark id="a"><name>A</name></Placemark>'
        '<Folder><Placemark id="b"><name>B</name></Placemark></Folder></Folder>'
        "</Document></kml>",
        encoding="utf-8",
    )
    store = FeatureStore(path)
    store.open_writer().close()

    text = path.read_text(encoding="utf-8")
    assert "<Style" not in text
    assert "<Folder" not in text
    assert [f.fid for f in FeatureStore(path).features()] == ["a", "b"]
