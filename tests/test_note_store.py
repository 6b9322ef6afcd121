"""Unit tests for NoteStore."""

import json

import pytest

from pagenotes.exc import AlreadyExists, StorageUnavailable
from pagenotes.services.note_store import NoteStore
from pagenotes.services.storage import MemoryKeyValueStorage


class RacingStorage(MemoryKeyValueStorage):
    """Storage where another writer sneaks in just before our first write."""

    def __init__(self, intruder_value):
        super().__init__()
        self.intruder_value = intruder_value
        self.raced = False

    def write(self, key, value, expected_version):
        if not self.raced:
            self.raced = True
            super().write(key, self.intruder_value, expected_version)
        return super().write(key, value, expected_version)


class ConflictingStorage(MemoryKeyValueStorage):
    """Storage whose conditional writes always lose."""

    def __init__(self):
        super().__init__()
        self.attempts = 0

    def write(self, key, value, expected_version):
        self.attempts += 1
        return False


class BrokenStorage(MemoryKeyValueStorage):
    """Storage that is unavailable."""

    def read(self, key):
        raise StorageUnavailable("Broken", "disk on fire")


def stored_records(storage, key="pageNotes"):
    raw = storage.get(key)
    return json.loads(raw) if raw else []


def legacy_record(url, text):
    """A note record in the layout the in-page script writes."""
    return {
        "id": f"legacy-{text}",
        "text": text,
        "timestamp": 1700000000000,
        "url": url,
        "position": {
            "startXPath": "/html/body/p",
            "endXPath": "/html/body/p",
            "startOffset": 0,
            "endOffset": len(text),
            "startText": text,
            "endText": text,
        },
    }


class TestLoad:
    """Test cases for NoteStore.load()."""

    def test_missing_collection_loads_empty(self, memory_storage):
        """Test a missing collection yields no notes."""
        store = NoteStore(memory_storage)
        store.load("/guide")
        assert store.notes == []
        assert store.document_key == "/guide"
        assert not store.volatile

    def test_loads_only_active_document(self, memory_storage, note_factory):
        """Test loading filters by document key."""
        records = [
            note_factory("/a", "first").to_json(),
            note_factory("/b", "second").to_json(),
            note_factory("/a", "third").to_json(),
        ]
        memory_storage.set("pageNotes", json.dumps(records))
        store = NoteStore(memory_storage)
        store.load("/a")
        assert [note.text for note in store.notes] == ["first", "third"]

    @pytest.mark.parametrize("raw", ["{not json", '{"a": 1}', "42", "null"])
    def test_corrupt_collection_loads_empty(self, memory_storage, raw):
        """Test a corrupt collection yields no notes instead of raising."""
        memory_storage.set("pageNotes", raw)
        store = NoteStore(memory_storage)
        store.load("/guide")
        assert store.notes == []

    def test_skips_malformed_records(self, memory_storage, note_factory):
        """Test one bad record does not discard the rest."""
        good = note_factory("/guide", "kept").to_json()
        bad = {"documentKey": "/guide", "text": "no id"}
        memory_storage.set("pageNotes", json.dumps([bad, good, "junk"]))
        store = NoteStore(memory_storage)
        store.load("/guide")
        assert [note.text for note in store.notes] == ["kept"]

    def test_unavailable_storage_degrades(self):
        """Test load() switches to volatile mode when storage fails."""
        store = NoteStore(BrokenStorage())
        store.load("/guide")
        assert store.notes == []
        assert store.volatile

    def test_loads_in_page_script_records(self, memory_storage, note_factory):
        """Test records keyed by url load for their page only."""
        records = [
            legacy_record("/a", "first"),
            legacy_record("/b", "second"),
            note_factory("/a", "third").to_json(),
        ]
        memory_storage.set("pageNotes", json.dumps(records))
        store = NoteStore(memory_storage)
        store.load("/a")
        assert sorted(note.text for note in store.notes) == ["first", "third"]
        assert store.get("legacy-first").document_key == "/a"
        assert store.get("legacy-second") is None

    def test_custom_storage_key(self, memory_storage, note_factory):
        """Test the collection key is configurable."""
        memory_storage.set("otherKey", json.dumps([note_factory().to_json()]))
        store = NoteStore(memory_storage, storage_key="otherKey")
        store.load("/guide")
        assert len(store.notes) == 1


class TestPersist:
    """Test cases for NoteStore.persist()."""

    def test_persist_keeps_other_documents(self, memory_storage, note_factory):
        """Test persisting one page never touches another page's records."""
        other = note_factory("/b", "other page").to_json()
        unknown = {"documentKey": "/c", "shape": "from a newer version"}
        memory_storage.set("pageNotes", json.dumps([other, unknown]))
        store = NoteStore(memory_storage)
        store.load("/a")
        store.add(note_factory("/a", "mine"))
        records = stored_records(memory_storage)
        assert other in records
        assert unknown in records
        assert [r["text"] for r in records if r.get("documentKey") == "/a"] == ["mine"]

    def test_persist_replaces_document_subset(self, memory_storage, note_factory):
        """Test persist() rewrites the whole subset of the page."""
        stale = note_factory("/a", "stale").to_json()
        memory_storage.set("pageNotes", json.dumps([stale]))
        store = NoteStore(memory_storage)
        fresh = note_factory("/a", "fresh")
        assert store.persist("/a", [fresh])
        assert stored_records(memory_storage) == [fresh.to_json()]

    def test_rewrites_in_page_script_records(self, memory_storage, note_factory):
        """Test records keyed by url are replaced, not duplicated, on persist."""
        legacy = legacy_record("/a", "old")
        elsewhere = legacy_record("/b", "other page")
        memory_storage.set("pageNotes", json.dumps([legacy, elsewhere]))
        store = NoteStore(memory_storage)
        store.load("/a")
        store.add(note_factory("/a", "new"))
        records = stored_records(memory_storage)
        assert elsewhere in records
        assert legacy not in records
        mine = [r for r in records if r.get("documentKey") == "/a"]
        assert sorted(r["text"] for r in mine) == ["new", "old"]
        assert len(records) == 3

    def test_persist_without_load_raises(self, memory_storage):
        """Test persist() needs an active document or an explicit key."""
        with pytest.raises(ValueError, match="No active document"):
            NoteStore(memory_storage).persist()

    def test_retries_after_concurrent_write(self, note_factory):
        """Test a concurrent writer's records for another page survive."""
        intruder = [note_factory("/other", "theirs").to_json()]
        storage = RacingStorage(json.dumps(intruder))
        store = NoteStore(storage)
        store.load("/mine")
        store.add(note_factory("/mine", "ours"))
        texts = sorted(r["text"] for r in stored_records(storage))
        assert texts == ["ours", "theirs"]

    def test_gives_up_after_max_attempts(self, note_factory):
        """Test persist() stops after the configured number of attempts."""
        storage = ConflictingStorage()
        store = NoteStore(storage, max_write_attempts=3)
        store.load("/guide")
        assert not store.persist("/guide", [note_factory()])
        assert storage.attempts == 3

    def test_corrupt_collection_is_overwritten(self, memory_storage, note_factory):
        """Test an unreadable collection is replaced on the next write."""
        memory_storage.set("pageNotes", "{broken")
        store = NoteStore(memory_storage)
        store.load("/guide")
        note = note_factory()
        store.add(note)
        assert stored_records(memory_storage) == [note.to_json()]

    def test_volatile_store_keeps_notes_in_memory(self, note_factory):
        """Test notes stay usable after storage fails."""
        store = NoteStore(BrokenStorage())
        store.load("/guide")
        note = note_factory()
        store.add(note)
        assert store.notes == [note]
        assert not store.persist()


class TestAddRemove:
    """Test cases for NoteStore.add() and NoteStore.remove()."""

    def test_add_persists(self, memory_storage, note_factory):
        """Test add() writes through to storage."""
        store = NoteStore(memory_storage)
        store.load("/guide")
        note = note_factory()
        store.add(note)
        assert store.get(note.id) == note
        reloaded = NoteStore(memory_storage)
        reloaded.load("/guide")
        assert reloaded.notes == [note]

    def test_add_rejects_other_document(self, memory_storage, note_factory):
        """Test notes of another page cannot be added."""
        store = NoteStore(memory_storage)
        store.load("/a")
        with pytest.raises(ValueError, match="belongs to"):
            store.add(note_factory("/b"))
        assert store.notes == []

    def test_add_rejects_duplicate_id(self, memory_storage, note_factory):
        """Test IDs stay unique within the store."""
        store = NoteStore(memory_storage)
        store.load("/guide")
        store.add(note_factory(note_id="same"))
        with pytest.raises(AlreadyExists):
            store.add(note_factory(text="again", note_id="same"))
        assert len(store.notes) == 1

    def test_ids_are_distinct(self, memory_storage, note_factory):
        """Test generated IDs are pairwise distinct."""
        store = NoteStore(memory_storage)
        store.load("/guide")
        for i in range(50):
            store.add(note_factory(text=f"note {i}"))
        ids = [note.id for note in store.notes]
        assert len(set(ids)) == 50

    def test_remove_exactly_one(self, memory_storage, note_factory):
        """Test remove() deletes only the matching note."""
        memory_storage.set(
            "pageNotes", json.dumps([note_factory("/b", "elsewhere").to_json()])
        )
        store = NoteStore(memory_storage)
        store.load("/a")
        keep_first = note_factory("/a", "one")
        doomed = note_factory("/a", "two")
        keep_last = note_factory("/a", "three")
        for note in (keep_first, doomed, keep_last):
            store.add(note)
        assert store.remove(doomed.id)
        assert store.notes == [keep_first, keep_last]
        texts = sorted(r["text"] for r in stored_records(memory_storage))
        assert texts == ["elsewhere", "one", "three"]

    def test_remove_unknown_id(self, memory_storage, note_factory):
        """Test removing an unknown ID changes nothing."""
        store = NoteStore(memory_storage)
        store.load("/guide")
        note = note_factory()
        store.add(note)
        assert not store.remove("nope")
        assert store.notes == [note]

    def test_get_missing(self, memory_storage):
        """Test get() returns None for unknown IDs."""
        store = NoteStore(memory_storage)
        store.load("/guide")
        assert store.get("missing") is None
