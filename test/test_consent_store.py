"""
Tests for local consent persistence
"""

import json

import pytest

from megainvest.consent import constants
from megainvest.consent.store import ConsentStore, JsonFileStorage, MemoryStorage
from megainvest.consent.types import ConsentRecord, CookieConsentPreferences


def _record(**categories) -> ConsentRecord:
    return ConsentRecord(
        version="1.0",
        timestamp=1_700_000_000_000,
        has_consented=True,
        categories=CookieConsentPreferences(**categories),
    )


class TestMemoryStorage:
    def test_set_get_remove(self):
        storage = MemoryStorage()
        storage.set_item("a", "1")
        assert storage.get_item("a") == "1"
        storage.remove_item("a")
        assert storage.get_item("a") is None

    def test_remove_missing_key_is_noop(self):
        MemoryStorage().remove_item("missing")


class TestJsonFileStorage:
    def test_missing_file_reads_as_empty(self, tmp_path):
        storage = JsonFileStorage(tmp_path / "consent.json")
        assert storage.get_item("anything") is None

    def test_values_persist_across_instances(self, tmp_path):
        path = tmp_path / "nested" / "consent.json"
        JsonFileStorage(path).set_item("key", "value")

        assert JsonFileStorage(path).get_item("key") == "value"
        assert json.loads(path.read_text()) == {"key": "value"}

    def test_remove_item(self, tmp_path):
        storage = JsonFileStorage(tmp_path / "consent.json")
        storage.set_item("a", "1")
        storage.set_item("b", "2")
        storage.remove_item("a")

        assert storage.get_item("a") is None
        assert storage.get_item("b") == "2"

    def test_corrupt_file_reads_as_empty(self, tmp_path):
        path = tmp_path / "consent.json"
        path.write_text("{not json")

        storage = JsonFileStorage(path)
        assert storage.get_item("key") is None

        # Writing replaces the corrupt document
        storage.set_item("key", "value")
        assert storage.get_item("key") == "value"

    def test_no_temporary_files_left_behind(self, tmp_path):
        storage = JsonFileStorage(tmp_path / "consent.json")
        storage.set_item("key", "value")
        assert [p.name for p in tmp_path.iterdir()] == ["consent.json"]


class TestConsentStore:
    def test_read_empty(self, consent_store):
        assert consent_store.read() is None
        assert consent_store.read_preferences() is None

    def test_write_then_read(self, consent_store):
        record = _record(analytics=True)
        consent_store.write(record)

        assert consent_store.read() == record
        assert consent_store.read_preferences() == record.categories

    def test_record_is_stored_under_fixed_key_with_camel_case_flag(self, consent_store, storage):
        consent_store.write(_record())

        stored = json.loads(storage.get_item(constants.STORAGE_KEY))
        assert stored["hasConsented"] is True
        assert stored["version"] == "1.0"
        assert stored["categories"]["strictly_necessary"] is True

    @pytest.mark.parametrize("raw", ["not json", "{}", '{"version": "1.0"}', "[]"])
    def test_malformed_record_reads_as_absent(self, storage, raw):
        storage.set_item(constants.STORAGE_KEY, raw)
        assert ConsentStore(storage).read() is None

    def test_stored_necessary_false_is_read_as_true(self, storage):
        storage.set_item(
            constants.STORAGE_KEY,
            json.dumps(
                {
                    "version": "1.0",
                    "timestamp": 1,
                    "hasConsented": True,
                    "categories": {
                        "strictly_necessary": False,
                        "functional": True,
                        "analytics": False,
                        "marketing": False,
                    },
                }
            ),
        )
        record = ConsentStore(storage).read()
        assert record.categories.strictly_necessary is True
        assert record.categories.functional is True

    def test_clear_removes_record_but_keeps_session_id(self, consent_store):
        session_id = consent_store.session_id()
        consent_store.write(_record())

        consent_store.clear()

        assert consent_store.read() is None
        assert consent_store.read_preferences() is None
        assert consent_store.session_id() == session_id

    def test_session_id_is_stable(self, consent_store, storage):
        first = consent_store.session_id()
        assert first
        assert consent_store.session_id() == first
        assert storage.get_item(constants.SESSION_KEY) == first

    def test_blank_session_id_is_regenerated(self, storage):
        storage.set_item(constants.SESSION_KEY, "   ")
        session_id = ConsentStore(storage).session_id()
        assert session_id.strip()
        assert session_id != "   "

    def test_file_backed_store_survives_restart(self, tmp_path):
        path = tmp_path / "consent.json"
        record = _record(marketing=True)
        ConsentStore(JsonFileStorage(path)).write(record)

        assert ConsentStore(JsonFileStorage(path)).read() == record
