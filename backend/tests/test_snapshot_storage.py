import pytest

from domain.errors import LoadFailure
from storage.snapshot_storage import SnapshotStorage


def test_relative_paths_resolve_against_data_root(tmp_path):
    storage = SnapshotStorage(tmp_path)
    assert storage.get_absolute_path("features.json") == tmp_path / "features.json"
    assert storage.get_absolute_path(tmp_path / "x.json") == tmp_path / "x.json"


def test_write_and_read_snapshot(tmp_path):
    storage = SnapshotStorage(tmp_path)
    saved = storage.write_snapshot("nested/index.json", [b"[1, ", b"2]"])
    assert saved == tmp_path / "nested" / "index.json"
    assert storage.read_json("nested/index.json") == [1, 2]
    assert storage.file_size("nested/index.json") == 6
    assert not (tmp_path / "nested" / "index.json.part").exists()


def test_write_below_minimum_keeps_existing_file(tmp_path):
    storage = SnapshotStorage(tmp_path)
    (tmp_path / "features.json").write_bytes(b"{}" + b" " * 500)

    assert storage.write_snapshot("features.json", [b"<html>err</html>"], min_bytes=100) is None
    assert storage.file_size("features.json") == 502
    assert not (tmp_path / "features.json.part").exists()


def test_read_json_errors_are_load_failures(tmp_path):
    storage = SnapshotStorage(tmp_path)
    with pytest.raises(LoadFailure):
        storage.read_json("missing.json")
    (tmp_path / "bad.json").write_text("{", encoding="utf-8")
    with pytest.raises(LoadFailure) as exc:
        storage.read_json("bad.json")
    assert exc.value.path.endswith("bad.json")
