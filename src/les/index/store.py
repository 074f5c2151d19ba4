"""LMDB-backed persistent mirror of the index.

Layout: one LMDB environment directory at ``db_path`` holding a single named
sub-database, ``entries``, that maps the UTF-8 path to a msgpack array
``[path, is_dir, size, mtime]``. Paths longer than the environment's key
limit are keyed by ``#`` plus their SHA-256 hex digest; the value always
carries the full path.

Every write commits its own transaction and then forces an fsync, so a call
that returns has reached disk.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from pathlib import Path

import lmdb
import msgpack

from les.core.errors import StorageError
from les.index.models import Entry

ENTRIES_DB = b"entries"
DEFAULT_MAP_SIZE = 4 * 1024**3
# LMDB's compile-time default
MAX_KEY_SIZE = 511


def encode_key(path: str, max_size: int = MAX_KEY_SIZE) -> bytes:
    raw = path.encode("utf-8")
    if len(raw) <= max_size:
        return raw
    # Absolute paths start with "/", so digest keys never collide with plain ones
    return b"#" + hashlib.sha256(raw).hexdigest().encode("ascii")


def encode_entry(entry: Entry) -> bytes:
    """Serialize an entry to its compact binary form."""
    return msgpack.packb([entry.path, entry.is_dir, entry.size, entry.mtime])


def decode_entry(data: bytes) -> Entry:
    """Inverse of encode_entry. Raises ValueError on malformed data."""
    try:
        record = msgpack.unpackb(data)
    except (msgpack.UnpackException, ValueError) as e:
        raise ValueError(str(e)) from e
    if not isinstance(record, list) or len(record) != 4:
        raise ValueError(f"expected 4-field array, got {type(record).__name__}")
    path, is_dir, size, mtime = record
    if not (
        isinstance(path, str)
        and isinstance(is_dir, bool)
        and isinstance(size, int)
        and isinstance(mtime, int)
    ):
        raise ValueError("field types do not match [str, bool, int, int]")
    return Entry(path=path, is_dir=is_dir, size=size, mtime=mtime)


class EntryStore:
    """Durable key-value collection of entries, keyed by path."""

    def __init__(self, db_path: Path, map_size: int = DEFAULT_MAP_SIZE) -> None:
        self.db_path = db_path
        try:
            self.db_path.mkdir(parents=True, exist_ok=True)
            self.env = lmdb.open(
                str(db_path),
                map_size=map_size,
                max_dbs=1,
                subdir=True,
            )
            self._max_key_size = self.env.max_key_size()
            with self.env.begin(write=True) as txn:
                self._entries = self.env.open_db(ENTRIES_DB, txn=txn)
        except (OSError, lmdb.Error) as e:
            raise StorageError.open_failed(str(db_path), str(e)) from e

    def _key(self, path: str) -> bytes:
        return encode_key(path, self._max_key_size)

    def load(self) -> list[Entry]:
        """Decode every stored entry, in key order."""
        entries: list[Entry] = []
        with self.env.begin(db=self._entries) as txn:
            for key, value in txn.cursor():
                try:
                    entries.append(decode_entry(value))
                except ValueError as e:
                    raise StorageError.corrupt_record(
                        key.decode("utf-8", "replace"), str(e)
                    ) from e
        return entries

    def replace_all(self, entries: Iterable[Entry]) -> int:
        """Drop every record and write ``entries`` in one transaction."""
        count = 0
        try:
            with self.env.begin(write=True) as txn:
                txn.drop(self._entries, delete=False)
                for entry in entries:
                    txn.put(self._key(entry.path), encode_entry(entry), db=self._entries)
                    count += 1
            self.env.sync(True)
        except lmdb.Error as e:
            raise StorageError.write_failed("<rebuild>", str(e)) from e
        return count

    def put(self, entry: Entry) -> None:
        try:
            with self.env.begin(write=True) as txn:
                txn.put(self._key(entry.path), encode_entry(entry), db=self._entries)
            self.env.sync(True)
        except lmdb.Error as e:
            raise StorageError.write_failed(entry.path, str(e)) from e

    def delete(self, path: str) -> bool:
        """Remove the record for path. Returns True if one existed."""
        try:
            with self.env.begin(write=True) as txn:
                existed = txn.delete(self._key(path), db=self._entries)
            self.env.sync(True)
        except lmdb.Error as e:
            raise StorageError.write_failed(path, str(e)) from e
        return bool(existed)

    def get(self, path: str) -> Entry | None:
        with self.env.begin(db=self._entries) as txn:
            data = txn.get(self._key(path))
        if data is None:
            return None
        try:
            return decode_entry(data)
        except ValueError as e:
            raise StorageError.corrupt_record(path, str(e)) from e

    def keys(self) -> list[str]:
        """Stored paths, read from the records rather than the (possibly hashed) keys."""
        return [entry.path for entry in self.load()]

    def __len__(self) -> int:
        with self.env.begin(db=self._entries) as txn:
            return txn.stat(self._entries)["entries"]

    def close(self) -> None:
        """Close the LMDB environment."""
        self.env.close()
