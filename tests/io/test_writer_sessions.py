import os
import stat
from pathlib import Path

import pytest

from kmlstore.core.errors import SchemaError
from kmlstore.core.geometry import Geometry
from kmlstore.core.schema import AttributeDescriptor, Feature, FeatureType
from kmlstore.io.errors import EncodeError, NoCurrentRecordError, SessionClosedError
from kmlstore.io.store import FeatureStore
from kmlstore.io.writer import WriterState


def write_kml(path: Path, *names: str) -> Path:
    body = "".join(f'<Placemark id="{n}"><name>{n.upper()}</name></Placemark>' for n in names)
    path.write_text(
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<kml xmlns="http://www.opengis.net/kml/2.2"><Document>{body}</Document></kml>',
        encoding="utf-8",
    )
    return path


def test_append_on_empty_store_creates_file(tmp_path: Path):
    path = tmp_path / "sub" / "new.kml"
    store = FeatureStore(path)

    writer = store.open_writer()
    assert not writer.has_next()
    blank = writer.next()
    assert writer.state is WriterState.SYNTHESIZED
    assert blank.values() == [None] * len(store.schema.attributes)
    blank["name"] = "Z"
    blank["geometry"] = Geometry.point(5.0, 6.0)
    writer.write()
    assert writer.current is None
    writer.close()
    assert writer.state is WriterState.COMMITTED

    assert path.exists()
    features = store.features()
    assert len(features) == 1
    assert features[0]["name"] == "Z"
    assert features[0]["geometry"] == Geometry.point(5.0, 6.0)

    reopened = FeatureStore(path).features()
    assert [(f.fid, f["name"]) for f in reopened] == [(blank.fid, "Z")]


def test_remove_existing_feature(tmp_path: Path):
    store = FeatureStore(write_kml(tmp_path / "a.kml", "a", "b"))
    before = store.count()

    writer = store.open_writer()
    current = writer.next()
    assert current.fid == "a"
    assert writer.state is WriterState.SCANNING
    writer.remove()
    writer.close()

    assert store.count() == before - 1
    assert [f.fid for f in store.open_reader()] == ["b"]


def test_write_on_existing_feature_replaces_in_place(tmp_path: Path):
    store = FeatureStore(write_kml(tmp_path / "a.kml", "a", "b"))
    with store.open_writer() as writer:
        f = writer.next()
        f["name"] = "A2"
        writer.write()
    assert [(f.fid, f["name"]) for f in store.features()] == [("a", "A2"), ("b", "B")]


def test_write_and_remove_require_current_feature(tmp_path: Path):
    store = FeatureStore(write_kml(tmp_path / "a.kml", "a"))
    writer = store.open_writer()
    with pytest.raises(NoCurrentRecordError):
        writer.write()
    with pytest.raises(NoCurrentRecordError):
        writer.remove()
    writer.next()
    writer.write()
    with pytest.raises(NoCurrentRecordError):
        writer.write()


def test_committed_writer_rejects_further_use(tmp_path: Path):
    store = FeatureStore(write_kml(tmp_path / "a.kml", "a"))
    writer = store.open_writer()
    writer.close()
    with pytest.raises(SessionClosedError):
        writer.next()
    with pytest.raises(SessionClosedError):
        writer.close()


def test_close_makes_next_session_a_cache_hit(tmp_path: Path):
    store = FeatureStore(write_kml(tmp_path / "a.kml", "a"))
    store.open_writer().close()
    assert store.cache.reload_count == 1
    assert store.cache.last_synced_mtime == os.stat(store.path).st_mtime_ns
    store.open_reader()
    assert store.cache.reload_count == 1


def test_encode_failure_keeps_live_set_and_allows_retry(tmp_path: Path):
    path = write_kml(tmp_path / "a.kml", "a")
    original = path.read_bytes()
    store = FeatureStore(path)

    writer = store.open_writer()
    writer.next()
    bad = writer.next()
    bad["name"] = "bad\x01"
    writer.write()
    with pytest.raises(EncodeError):
        writer.close()

    assert writer.state is WriterState.SYNTHESIZED
    assert [f.fid for f in store.cache.features] == ["a", bad.fid]
    assert path.read_bytes() == original
    assert [p.name for p in tmp_path.iterdir()] == ["a.kml"]

    bad["name"] = "fixed"
    writer.close()
    assert [f["name"] for f in FeatureStore(path).features()] == ["A", "fixed"]


def test_add_feature_rejects_foreign_type(tmp_path: Path):
    store = FeatureStore(tmp_path / "a.kml")
    other = FeatureType(name="x", attributes=(AttributeDescriptor("name", "str"),))
    with pytest.raises(SchemaError):
        store.add_feature(Feature.blank(other))


def test_writer_exception_inside_with_does_not_flush(tmp_path: Path):
    path = tmp_path / "a.kml"
    store = FeatureStore(path)
    with pytest.raises(RuntimeError):
        with store.open_writer() as writer:
            writer.next()
            writer.write()
            raise RuntimeError("boom")
    assert not path.exists()
    assert store.count() == 1


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_flush_keeps_permission_bits(tmp_path: Path):
    path = write_kml(tmp_path / "a.kml", "a")
    os.chmod(path, 0o640)
    store = FeatureStore(path)
    store.open_writer().close()
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o640


@pytest.mark.skipif(os.name == "nt", reason="symlinks")
def test_flush_writes_through_symlink(tmp_path: Path):
    target = write_kml(tmp_path / "real.kml", "a")
    link = tmp_path / "link.kml"
    link.symlink_to(target)
    store = FeatureStore(link)
    with store.open_writer() as w:
        w.next()
        w.remove()
    assert link.is_symlink()
    assert FeatureStore(target).count() == 0
