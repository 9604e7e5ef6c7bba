from pathlib import Path

import pytest

from kmlstore.io.errors import NoMoreRecordsError
from kmlstore.io.store import FeatureStore


def write_kml(path: Path, *names: str) -> Path:
    body = "".join(f'<Placemark id="{n}"><name>{n.upper()}</name></Placemark>' for n in names)
    path.write_text(
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<kml xmlns="http://www.opengis.net/kml/2.2"><Document>{body}</Document></kml>',
        encoding="utf-8",
    )
    return path


def drain(reader) -> list[str]:
    out = []
    while reader.has_next():
        out.append(reader.next().fid)
    return out


def test_reader_yields_in_insertion_order_and_restarts_on_close(tmp_path: Path):
    store = FeatureStore(write_kml(tmp_path / "a.kml", "a", "b", "c"))
    reader = store.open_reader()
    assert reader.feature_type is store.schema
    assert drain(reader) == ["a", "b", "c"]
    with pytest.raises(NoMoreRecordsError):
        reader.next()

    reader.close()
    assert drain(reader) == ["a", "b", "c"]


def test_next_past_end_is_a_lookup_error(tmp_path: Path):
    store = FeatureStore(tmp_path / "none.kml")
    reader = store.open_reader()
    assert not reader.has_next()
    with pytest.raises(LookupError):
        reader.next()


def test_reader_snapshot_ignores_later_live_changes(tmp_path: Path):
    store = FeatureStore(write_kml(tmp_path / "a.kml", "a", "b"))
    reader = store.open_reader()

    writer = store.open_writer()
    writer.next()
    writer.remove()
    writer.close()

    assert [f.fid for f in reader] == ["a", "b"]
    assert [f.fid for f in store.open_reader()] == ["b"]


def test_reader_context_manager_rewinds(tmp_path: Path):
    store = FeatureStore(write_kml(tmp_path / "a.kml", "a", "b"))
    reader = store.open_reader()
    with reader:
        assert reader.next().fid == "a"
    assert reader.next().fid == "a"
    assert len(reader) == 2


def test_reader_features_are_shared_with_the_live_set(tmp_path: Path):
    path = write_kml(tmp_path / "a.kml", "a")
    store = FeatureStore(path)
    store.open_reader().next()["name"] = "edited"
    store.open_writer().close()
    assert [f["name"] for f in FeatureStore(path).features()] == ["edited"]
