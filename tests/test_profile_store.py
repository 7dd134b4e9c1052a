import json

from allergen_alert.profile_store import (
    PROFILE_STORAGE_KEY,
    InMemoryProfileBackend,
    JsonFileProfileBackend,
    ProfileStore,
)


class TestProfileOperations:
    def test_starts_empty(self, profile):
        assert profile.list() == []
        assert profile.serialize() == ""
        assert profile.loaded

    def test_add_keeps_order_and_ignores_duplicates(self, profile):
        profile.add("peanuts")
        profile.add("milk")
        profile.add("peanuts")
        assert profile.list() == ["peanuts", "milk"]
        assert profile.serialize() == "peanuts, milk"
        assert len(profile) == 2

    def test_remove_and_contains(self, profile):
        profile.add("peanuts")
        profile.add("milk")
        profile.remove("peanuts")
        profile.remove("soy")
        assert profile.contains("milk")
        assert "peanuts" not in profile
        assert profile.list() == ["milk"]

    def test_clear(self, profile):
        profile.add("fish")
        profile.clear()
        assert profile.list() == []

    def test_list_is_a_copy(self, profile):
        profile.add("soy")
        profile.list().append("eggs")
        assert profile.list() == ["soy"]


class TestPersistence:
    def test_survives_restart(self, tmp_path):
        path = tmp_path / "profile.json"
        first = ProfileStore(JsonFileProfileBackend(path))
        first.add("peanuts")
        first.add("milk")

        second = ProfileStore(JsonFileProfileBackend(path))
        assert second.list() == ["peanuts", "milk"]

    def test_layout_is_keyed_json_array(self, tmp_path):
        path = tmp_path / "profile.json"
        store = ProfileStore(JsonFileProfileBackend(path))
        store.add("shellfish")
        records = json.loads(path.read_text(encoding="utf-8"))
        assert json.loads(records[PROFILE_STORAGE_KEY]) == ["shellfish"]

    def test_load_is_idempotent(self):
        backend = InMemoryProfileBackend({PROFILE_STORAGE_KEY: '["milk", "soy"]'})
        store = ProfileStore(backend)
        assert store.load() == ["milk", "soy"]
        assert store.load() == ["milk", "soy"]

    def test_corrupt_file_degrades_to_empty(self, tmp_path):
        path = tmp_path / "profile.json"
        path.write_text("{not json", encoding="utf-8")
        store = ProfileStore(JsonFileProfileBackend(path))
        assert store.list() == []

        store.add("eggs")
        assert ProfileStore(JsonFileProfileBackend(path)).list() == ["eggs"]

    def test_non_list_record_degrades_to_empty(self):
        backend = InMemoryProfileBackend({PROFILE_STORAGE_KEY: '{"milk": true}'})
        assert ProfileStore(backend).list() == []

    def test_invalid_entries_are_skipped(self):
        backend = InMemoryProfileBackend({PROFILE_STORAGE_KEY: '["milk", 3, "", "milk", "soy"]'})
        assert ProfileStore(backend).list() == ["milk", "soy"]

    def test_missing_file_is_empty(self, tmp_path):
        store = ProfileStore(JsonFileProfileBackend(tmp_path / "missing" / "profile.json"))
        assert store.list() == []
