import json
import os
from concurrent.futures import ThreadPoolExecutor

import pytest

from countdown_api.app.core import storage
from countdown_api.app.core.exceptions import CorruptStore, InvalidInput, NotFound, PersistenceError
from countdown_api.app.services.counter_service import CounterStore

TARGET = "2030-01-01T00:00:00Z"


def _file_items(path):
    with open(path, "r", encoding="utf-8") as fh:
        return json.load(fh)


def _reload(path):
    fresh = CounterStore(path)
    fresh.load()
    return fresh


def test_load_missing_file_starts_empty(store, counters_file):
    assert store.list() == []
    assert not counters_file.exists()


def test_create_assigns_id_and_persists(store, counters_file):
    counter = store.create("Launch", TARGET)

    assert counter.id
    assert counter.title == "Launch"
    assert counter.target == TARGET
    assert counter.created_at.endswith("Z")
    assert store.list() == [counter]
    assert _file_items(counters_file) == [counter.model_dump()]


def test_reload_reproduces_collection(store, counters_file):
    a = store.create("A", TARGET)
    b = store.create("B", "2031-06-15T12:30:00+02:00")
    store.update(a.id, "A2", "2032-01-01T00:00:00Z")

    assert _reload(counters_file).list() == store.list()
    assert [c.id for c in store.list()] == [a.id, b.id]


def test_ids_are_unique_and_not_reused(store):
    ids = {store.create(f"C{i}", TARGET).id for i in range(20)}
    assert len(ids) == 20
    first = store.list()[0]
    store.delete(first.id)
    assert store.create("again", TARGET).id not in ids


def test_update_preserves_id_and_created_at(store):
    original = store.create("Launch", TARGET)
    updated = store.update(original.id, "Launch Day", "2030-01-02T00:00:00Z")

    assert updated.id == original.id
    assert updated.created_at == original.created_at
    assert updated.title == "Launch Day"
    assert store.get(original.id) == updated


def test_update_unknown_id_is_not_found_even_with_bad_input(store):
    with pytest.raises(NotFound):
        store.update("missing", "", "not-a-date")


def test_update_invalid_input_leaves_record(store):
    counter = store.create("Launch", TARGET)
    with pytest.raises(InvalidInput):
        store.update(counter.id, "   ", TARGET)
    assert store.get(counter.id) == counter


def test_delete_unknown_id_changes_nothing(store, counters_file):
    store.create("Keep", TARGET)
    before = counters_file.read_bytes()
    mtime = os.stat(counters_file).st_mtime_ns

    for _ in range(2):
        with pytest.raises(NotFound):
            store.delete("does-not-exist")

    assert len(store.list()) == 1
    assert counters_file.read_bytes() == before
    assert os.stat(counters_file).st_mtime_ns == mtime


def test_delete_on_empty_store_does_not_create_file(store, counters_file):
    with pytest.raises(NotFound):
        store.delete("nope")
    assert not counters_file.exists()


@pytest.mark.parametrize("title, target", [("", TARGET), ("X", "not-a-date")])
def test_create_invalid_input_changes_nothing(store, counters_file, title, target):
    store.create("Existing", TARGET)
    before = counters_file.read_bytes()

    with pytest.raises(InvalidInput):
        store.create(title, target)

    assert len(store.list()) == 1
    assert counters_file.read_bytes() == before


def test_failed_rename_keeps_previous_file_and_memory(store, counters_file, monkeypatch):
    kept = store.create("Kept", TARGET)
    before = counters_file.read_bytes()

    def crash(src, dst):
        raise OSError("simulated crash before rename")

    monkeypatch.setattr(storage.os, "replace", crash)
    with pytest.raises(PersistenceError):
        store.create("Lost", TARGET)
    with pytest.raises(PersistenceError):
        store.update(kept.id, "Changed", TARGET)
    with pytest.raises(PersistenceError):
        store.delete(kept.id)
    monkeypatch.undo()

    assert store.list() == [kept]
    assert counters_file.read_bytes() == before
    assert [p.name for p in counters_file.parent.iterdir()] == [counters_file.name]
    assert _reload(counters_file).list() == [kept]


def test_failed_fsync_is_persistence_error(store, counters_file, monkeypatch):
    def broken_fsync(fd):
        raise OSError("disk gone")

    monkeypatch.setattr(storage.os, "fsync", broken_fsync)
    with pytest.raises(PersistenceError):
        store.create("Nope", TARGET)
    assert store.list() == []
    assert not counters_file.exists()


def test_stale_temp_files_are_removed_on_load(store, counters_file):
    kept = store.create("Kept", TARGET)
    stale = counters_file.parent / f".{counters_file.name}-abc123.tmp"
    stale.write_text('[{"id": "half', encoding="utf-8")
    unrelated = counters_file.parent / "notes.tmp"
    unrelated.write_text("keep me", encoding="utf-8")

    reloaded = _reload(counters_file)

    assert reloaded.list() == [kept]
    assert not stale.exists()
    assert unrelated.exists()


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        '{"id": "a", "title": "t", "target": "x"}',
        '[{"id": 1, "title": "t", "target": "x"}]',
        '[{"title": "t", "target": "x"}]',
        '["just a string"]',
        '[{"id": "a", "title": "t", "target": "x"}, {"id": "a", "title": "u", "target": "y"}]',
        "null",
    ],
)
def test_corrupt_file_fails_load_and_is_not_touched(counters_file, content):
    counters_file.parent.mkdir(parents=True)
    counters_file.write_text(content, encoding="utf-8")

    with pytest.raises(CorruptStore):
        CounterStore(counters_file).load()

    assert counters_file.read_text(encoding="utf-8") == content


def test_corrupt_file_backed_up_when_starting_empty(counters_file):
    counters_file.parent.mkdir(parents=True)
    counters_file.write_text("{not json", encoding="utf-8")

    store = CounterStore(counters_file)
    assert store.load(start_empty_on_corrupt=True) == []

    backups = [p for p in counters_file.parent.iterdir() if p.name.startswith("counters.json.corrupt-")]
    assert len(backups) == 1
    assert backups[0].read_text(encoding="utf-8") == "{not json"
    assert not counters_file.exists()

    store.create("Fresh", TARGET)
    assert backups[0].read_text(encoding="utf-8") == "{not json"


def test_stored_bad_values_still_load(counters_file):
    counters_file.parent.mkdir(parents=True)
    counters_file.write_text(
        json.dumps([{"id": "legacy", "title": "", "target": "someday"}]), encoding="utf-8"
    )
    store = CounterStore(counters_file)
    store.load()

    [counter] = store.list()
    assert counter.target == "someday"
    updated = store.update("legacy", "Fixed", TARGET)
    assert updated.target == TARGET


def test_concurrent_creates_do_not_lose_updates(store, counters_file):
    n = 40
    with ThreadPoolExecutor(max_workers=8) as pool:
        created = list(pool.map(lambda i: store.create(f"C{i}", TARGET), range(n)))

    ids = {c.id for c in created}
    assert len(ids) == n
    assert {c.id for c in store.list()} == ids
    assert {item["id"] for item in _file_items(counters_file)} == ids
    assert len(_reload(counters_file).list()) == n


def test_list_returns_a_copy(store):
    store.create("A", TARGET)
    snapshot = store.list()
    snapshot.clear()
    assert len(store.list()) == 1


def test_legacy_and_raw_stored_timestamps_still_load(counters_file):
    counters_file.parent.mkdir(parents=True)
    counters_file.write_text(
        json.dumps(
            [
                {
                    "id": "legacy",
                    "title": "Old format",
                    "target": [2030, 1, 0, 0, 0, 0, 0, 0, 0],
                    "created_at": [2024, 60, 13, 30, 15, 250000000, 2, 0, 0],
                },
                {"id": "raw", "title": "Odd", "target": 1893456000, "created_at": {"when": "?"}},
            ]
        ),
        encoding="utf-8",
    )

    store = CounterStore(counters_file)
    legacy, raw = store.load()

    assert legacy.target == "2030-01-01T00:00:00Z"
    assert legacy.created_at == "2024-02-29T11:30:15.250000Z"
    assert raw.target == 1893456000
    assert raw.created_at == {"when": "?"}

    # untouched records are written back as they were loaded
    store.update("legacy", "Old format", TARGET)
    reloaded = _reload(counters_file)
    assert reloaded.get("raw") == raw
    assert reloaded.get("legacy").created_at == legacy.created_at


def test_unreadable_file_is_corrupt_store(counters_file):
    counters_file.mkdir(parents=True)

    with pytest.raises(CorruptStore):
        CounterStore(counters_file).load()
    assert counters_file.is_dir()


def test_unreadable_file_backed_up_when_starting_empty(counters_file):
    counters_file.mkdir(parents=True)

    store = CounterStore(counters_file)
    assert store.load(start_empty_on_corrupt=True) == []

    backups = [p for p in counters_file.parent.iterdir() if p.name.startswith("counters.json.corrupt-")]
    assert len(backups) == 1
    assert backups[0].is_dir()
    store.create("Fresh", TARGET)
    assert counters_file.is_file()


@pytest.mark.skipif(not hasattr(os, "fchmod"), reason="needs POSIX permissions")
def test_write_keeps_existing_file_mode(store, counters_file):
    store.create("First", TARGET)
    os.chmod(counters_file, 0o644)

    store.create("Second", TARGET)
    assert os.stat(counters_file).st_mode & 0o777 == 0o644

    os.chmod(counters_file, 0o640)
    store.delete(store.list()[0].id)
    assert os.stat(counters_file).st_mode & 0o777 == 0o640


@pytest.mark.skipif(not hasattr(os, "fchmod"), reason="needs POSIX permissions")
def test_new_file_mode_follows_umask(store, counters_file):
    old_umask = os.umask(0o022)
    try:
        store.create("First", TARGET)
    finally:
        os.umask(old_umask)
    assert os.stat(counters_file).st_mode & 0o777 == 0o644
