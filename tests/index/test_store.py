"""Tests for the LMDB entry store."""

from __future__ import annotations

from pathlib import Path

import msgpack
import pytest

from les.core.errors import ErrorCode, StorageError
from les.index.models import Entry
from les.index.store import (
    ENTRIES_DB,
    EntryStore,
    decode_entry,
    encode_entry,
    encode_key,
)

MAP_SIZE = 16 * 1024 * 1024


@pytest.fixture
def store(tmp_path: Path):
    s = EntryStore(tmp_path / "db", map_size=MAP_SIZE)
    yield s
    s.close()


class TestRecordFormat:
    def test_entry_is_msgpack_array(self) -> None:
        entry = Entry(path="/a/b.txt", is_dir=False, size=100, mtime=1000)
        assert msgpack.unpackb(encode_entry(entry)) == ["/a/b.txt", False, 100, 1000]

    def test_decode_inverse(self) -> None:
        entry = Entry(path="/a", is_dir=True, size=0, mtime=500)
        assert decode_entry(encode_entry(entry)) == entry

    def test_key_is_utf8_path(self) -> None:
        assert encode_key("/héllo") == "/héllo".encode()

    def test_long_key_is_fixed_length_digest(self) -> None:
        path = "/" + "x" * 600
        key = encode_key(path)
        assert key.startswith(b"#")
        assert len(key) == 65
        assert encode_key(path) == key
        assert encode_key("/" + "y" * 600) != key

    def test_key_at_limit_kept_verbatim(self) -> None:
        path = "/" + "x" * 510
        assert encode_key(path) == path.encode()

    @pytest.mark.parametrize(
        "data",
        [
            b"\xc1",
            msgpack.packb({"path": "/a"}),
            msgpack.packb(["/a", False, 1]),
            msgpack.packb(["/a", "no", 1, 2]),
            msgpack.packb([1, False, 1, 2]),
        ],
    )
    def test_decode_rejects_malformed(self, data: bytes) -> None:
        with pytest.raises(ValueError):
            decode_entry(data)


class TestEntryStore:
    def test_creates_directory(self, tmp_path: Path) -> None:
        db_path = tmp_path / "nested" / "db"
        s = EntryStore(db_path, map_size=MAP_SIZE)
        try:
            assert db_path.is_dir()
            assert len(s) == 0
        finally:
            s.close()

    def test_put_get(self, store: EntryStore) -> None:
        entry = Entry(path="/a/b.txt", is_dir=False, size=100, mtime=1000)
        store.put(entry)
        assert store.get("/a/b.txt") == entry
        assert store.get("/missing") is None

    def test_long_path_round_trip(self, store: EntryStore) -> None:
        entry = Entry(path="/" + "d" * 700, is_dir=False, size=3, mtime=9)

        store.put(entry)

        assert store.get(entry.path) == entry
        assert store.keys() == [entry.path]
        assert store.delete(entry.path) is True
        assert len(store) == 0

    def test_put_overwrites_same_path(self, store: EntryStore) -> None:
        store.put(Entry(path="/a", is_dir=False, size=1, mtime=1))
        store.put(Entry(path="/a", is_dir=False, size=2, mtime=2))
        assert len(store) == 1
        assert store.get("/a") == Entry(path="/a", is_dir=False, size=2, mtime=2)

    def test_delete(self, store: EntryStore) -> None:
        store.put(Entry(path="/a", is_dir=True, size=0, mtime=1))
        assert store.delete("/a") is True
        assert store.delete("/a") is False
        assert len(store) == 0

    def test_replace_all(self, store: EntryStore, sample_entries: list[Entry]) -> None:
        store.put(Entry(path="/old", is_dir=False, size=1, mtime=1))

        written = store.replace_all(sample_entries)

        assert written == 3
        assert sorted(store.keys()) == ["/a", "/a/b.txt", "/a/c.log"]

    def test_replace_all_empty_clears(
        self, store: EntryStore, sample_entries: list[Entry]
    ) -> None:
        store.replace_all(sample_entries)
        store.replace_all(())
        assert len(store) == 0

    def test_load_returns_key_order(
        self, store: EntryStore, sample_entries: list[Entry]
    ) -> None:
        store.replace_all(sample_entries)
        assert [e.path for e in store.load()] == ["/a", "/a/b.txt", "/a/c.log"]

    def test_persists_across_reopen(self, tmp_path: Path, sample_entries: list[Entry]) -> None:
        db_path = tmp_path / "db"
        first = EntryStore(db_path, map_size=MAP_SIZE)
        first.replace_all(sample_entries)
        first.close()

        second = EntryStore(db_path, map_size=MAP_SIZE)
        try:
            assert sorted(second.load(), key=lambda e: e.path) == sorted(
                sample_entries, key=lambda e: e.path
            )
        finally:
            second.close()

    def test_corrupt_record_on_load(self, store: EntryStore) -> None:
        with store.env.begin(write=True) as txn:
            txn.put(b"/bad", b"\xc1", db=store.env.open_db(ENTRIES_DB, txn=txn))

        with pytest.raises(StorageError) as exc_info:
            store.load()
        assert exc_info.value.code == ErrorCode.STORAGE_CORRUPT_RECORD
        assert exc_info.value.details["key"] == "/bad"

    def test_open_failure(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        with pytest.raises(StorageError) as exc_info:
            EntryStore(blocker / "db", map_size=MAP_SIZE)
        assert exc_info.value.code == ErrorCode.STORAGE_OPEN_FAILED
