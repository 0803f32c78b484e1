"""Tests for the SQLite mirror and directory interning."""

from pathlib import Path

import pytest

from pipelib.mirror import (
    SCHEMA_VERSION,
    MirrorError,
    MirrorStore,
    PathIndex,
    PipefileRecord,
)
from pipelib.mirror.db import get_meta


def _record(path: str, directory_id: int, **fields: object) -> PipefileRecord:
    return PipefileRecord(absolute_path=path, directory_id=directory_id, last_modified=1, **fields)


def test_resolve_is_idempotent_and_normalizes(store: MirrorStore, tmp_path: Path) -> None:
    index = PathIndex(store.connection)

    first = index.resolve(tmp_path / "lib")
    again = index.resolve(f"{tmp_path}/lib/")
    dotted = index.resolve(tmp_path / "lib" / "sub" / "..")

    assert first == again == dotted
    assert index.path_for(first) == str(tmp_path / "lib")


def test_distinct_directories_get_distinct_ids(store: MirrorStore, tmp_path: Path) -> None:
    index = PathIndex(store.connection)

    a = index.resolve(tmp_path / "a")
    b = index.resolve(tmp_path / "b")

    assert a != b
    assert index.lookup(tmp_path / "c") is None
    assert index.path_for(9999) is None


def test_ids_survive_reopen(tmp_path: Path) -> None:
    db_path = tmp_path / "state" / "library.db"
    mirror = MirrorStore.open(db_path)
    first = PathIndex(mirror.connection).resolve(tmp_path / "lib")
    mirror.close()

    reopened = MirrorStore.open(db_path)
    try:
        assert PathIndex(reopened.connection).lookup(tmp_path / "lib") == first
        assert get_meta(reopened.connection, "schema_version") == SCHEMA_VERSION
    finally:
        reopened.close()


def test_insert_rejects_duplicate_path(store: MirrorStore, tmp_path: Path) -> None:
    directory_id = PathIndex(store.connection).resolve(tmp_path)
    record = _record(str(tmp_path / "a.pipe"), directory_id, name="A")
    store.insert(record)

    with pytest.raises(MirrorError):
        store.insert(record)

    assert store.get(record.absolute_path) == record


def test_update_descriptive_keeps_directory_and_access(store: MirrorStore, tmp_path: Path) -> None:
    index = PathIndex(store.connection)
    original_dir = index.resolve(tmp_path / "one")
    other_dir = index.resolve(tmp_path / "two")
    path = str(tmp_path / "one" / "a.pipe")
    store.insert(_record(path, original_dir, name="Old", access="group:lab"))

    store.update_descriptive(
        PipefileRecord(
            absolute_path=path,
            directory_id=other_dir,
            last_modified=42,
            name="New",
            access="",
        )
    )

    row = store.get(path)
    assert row is not None
    assert row.name == "New"
    assert row.last_modified == 42
    assert row.directory_id == original_dir
    assert row.access == "group:lab"


def test_relocate_replaces_old_row_atomically(store: MirrorStore, tmp_path: Path) -> None:
    index = PathIndex(store.connection)
    src_dir = index.resolve(tmp_path / "pkgA")
    dst_dir = index.resolve(tmp_path / "pkgB")
    old = _record(str(tmp_path / "pkgA" / "s.pipe"), src_dir, name="S")
    stale = _record(str(tmp_path / "pkgB" / "s.pipe"), dst_dir, name="stale")
    store.insert(old)
    store.insert(stale)

    new = _record(str(tmp_path / "pkgB" / "s.pipe"), dst_dir, name="S", package_name="pkgB")
    store.relocate(old, new)

    assert store.get(old.absolute_path) is None
    assert store.get(new.absolute_path) == new


def test_delete_scoped_to_directory(store: MirrorStore, tmp_path: Path) -> None:
    index = PathIndex(store.connection)
    directory_id = index.resolve(tmp_path)
    path = str(tmp_path / "a.pipe")
    store.insert(_record(path, directory_id))

    assert store.delete(path, directory_id + 1) is False
    assert store.delete(path, directory_id) is True
    assert store.delete(path) is False


def test_select_under_covers_subtree_only(store: MirrorStore, tmp_path: Path) -> None:
    index = PathIndex(store.connection)
    root = tmp_path / "lib"
    inside = index.resolve(root)
    nested = index.resolve(root / "pkg")
    sibling = index.resolve(tmp_path / "lib-archive")
    store.insert(_record(str(root / "a.pipe"), inside))
    store.insert(_record(str(root / "pkg" / "b.pipe"), nested))
    store.insert(_record(str(tmp_path / "lib-archive" / "c.pipe"), sibling))

    paths = [record.absolute_path for record in store.select_under(root)]

    assert paths == [str(root / "a.pipe"), str(root / "pkg" / "b.pipe")]
