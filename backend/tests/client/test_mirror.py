"""
Tests for the local session mirror stores.
"""
import json

import pytest

from portal.client.mirror import (
    MIRROR_KEY,
    InMemoryMirrorStore,
    JsonFileMirrorStore,
    snapshot_from_session,
)


@pytest.fixture
def snapshot():
    return {
        "sessionId": "s-1",
        "currentStep": 2,
        "formData": {"fullName": "Asha Rao"},
        "status": "in_progress",
    }


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryMirrorStore()
    return JsonFileMirrorStore(tmp_path / "storage.json")


class TestMirrorStores:
    def test_empty_store_loads_none(self, store):
        assert store.load() is None

    def test_save_then_load(self, store, snapshot):
        store.save(snapshot)

        assert store.load() == snapshot

    def test_loaded_snapshot_is_a_copy(self, store, snapshot):
        store.save(snapshot)

        loaded = store.load()
        loaded["formData"]["fullName"] = "Changed"

        assert store.load()["formData"]["fullName"] == "Asha Rao"

    def test_clear(self, store, snapshot):
        store.save(snapshot)
        store.clear()

        assert store.load() is None


class TestJsonFileMirrorStore:
    def test_stored_under_fixed_key(self, tmp_path, snapshot):
        path = tmp_path / "storage.json"
        JsonFileMirrorStore(path).save(snapshot)

        assert json.loads(path.read_text())[MIRROR_KEY] == snapshot

    def test_other_keys_survive_clear(self, tmp_path, snapshot):
        path = tmp_path / "storage.json"
        path.write_text(json.dumps({"theme": "dark"}))
        store = JsonFileMirrorStore(path)

        store.save(snapshot)
        store.clear()

        assert json.loads(path.read_text()) == {"theme": "dark"}

    def test_corrupt_file_loads_as_empty(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text("{not json")

        assert JsonFileMirrorStore(path).load() is None

    def test_malformed_snapshot_loads_as_empty(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text(json.dumps({MIRROR_KEY: {"sessionId": "s-1"}}))

        assert JsonFileMirrorStore(path).load() is None


def test_snapshot_from_session():
    session = {
        "sessionId": "s-1",
        "currentStep": 3,
        "formData": {"a": 1},
        "status": "in_progress",
        "email": "a@x.com",
    }

    assert snapshot_from_session(session) == {
        "sessionId": "s-1",
        "currentStep": 3,
        "formData": {"a": 1},
        "status": "in_progress",
    }
