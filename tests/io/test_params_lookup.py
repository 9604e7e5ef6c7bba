from __future__ import annotations

from pathlib import Path

import pytest

from kmlstore.io.errors import StoreConfigError
from kmlstore.io.params import StoreParams, can_process, create_store, file_lookup, open_store


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path: Path, monkeypatch) -> None:
    # StoreSettings.load() searches the working directory
    monkeypatch.chdir(tmp_path)
    for key in ("KMLSTORE_MISSING_FILE", "KMLSTORE_SCHEMA_SOURCE"):
        monkeypatch.delenv(key, raising=False)


def test_wrong_extension_is_rejected(tmp_path: Path):
    with pytest.raises(StoreConfigError):
        file_lookup(tmp_path / "places.gpx")
    assert not can_process({"file": tmp_path / "places.gpx"})


def test_directory_is_rejected(tmp_path: Path):
    d = tmp_path / "folder.kml"
    d.mkdir()
    with pytest.raises(StoreConfigError):
        file_lookup(d)
    assert not can_process({"file": d})


def test_extension_check_is_case_insensitive(tmp_path: Path):
    assert file_lookup(tmp_path / "PLACES.KML").name == "PLACES.KML"


def test_missing_parent_is_retried_against_cwd(tmp_path: Path):
    (tmp_path / "kmlstore-missing-dir").mkdir()
    (tmp_path / "kmlstore-missing-dir" / "p.kml").write_text("", encoding="utf-8")
    resolved = file_lookup(Path("/kmlstore-missing-dir/p.kml"))
    assert resolved.resolve() == (tmp_path / "kmlstore-missing-dir" / "p.kml").resolve()


def test_open_store_derives_type_name_and_namespace(tmp_path: Path):
    store = open_store({"file": tmp_path / "trails.kml", "namespace": "urn:trails", "unused": 1})
    assert store.type_name == "trails"
    assert store.schema.qualified_name == "{urn:trails}trails"
    assert can_process(StoreParams(file=tmp_path / "trails.kml"))


def test_create_store_refuses_existing_file(tmp_path: Path):
    path = tmp_path / "a.kml"
    store = create_store({"file": path})
    assert store.count() == 0
    path.write_text("", encoding="utf-8")
    with pytest.raises(StoreConfigError):
        create_store({"file": path})
