"""Tests for snapshot stores."""

import json

import pytest

from fleetsim.storage.snapshot_store import JsonSnapshotStore, MemorySnapshotStore


@pytest.fixture
def snapshot(engine, specs_a):
    engine.register_vehicle("V1", specs_a)
    engine.start_driving("V1", "D1", None, "Hub", "Berlin", 100.0)
    return engine.snapshot()


class TestMemoryStore:
    def test_empty(self):
        assert MemorySnapshotStore().load() is None

    def test_save_is_a_copy(self, snapshot):
        store = MemorySnapshotStore()
        store.save(snapshot)
        snapshot["vehicles"]["V1"]["runtime"]["condition"] = 0.0
        assert store.load()["vehicles"]["V1"]["runtime"]["condition"] == 100.0
        assert store.saves == 1


class TestJsonStore:
    def test_missing_file(self, tmp_path):
        assert JsonSnapshotStore(tmp_path / "none.json").load() is None

    def test_round_trip(self, tmp_path, snapshot):
        store = JsonSnapshotStore(tmp_path / "state" / "snapshot.json")
        store.save(snapshot)
        assert store.load() == snapshot
        assert not (tmp_path / "state" / "snapshot.json.tmp").exists()

    def test_overwrite_keeps_latest(self, tmp_path, snapshot):
        store = JsonSnapshotStore(tmp_path / "snapshot.json")
        store.save(snapshot)
        snapshot["saved_at"] += 60.0
        store.save(snapshot)
        assert store.load()["saved_at"] == snapshot["saved_at"]

    def test_unserializable_snapshot_keeps_previous(self, tmp_path, snapshot):
        store = JsonSnapshotStore(tmp_path / "snapshot.json")
        store.save(snapshot)
        broken = dict(snapshot, saved_at=float("nan"))
        with pytest.raises(ValueError):
            store.save(broken)
        assert json.loads((tmp_path / "snapshot.json").read_text()) == snapshot
