"""Tests for directory-scoped listing and search."""

from pathlib import Path

import pytest

from pipelib.errors import SearchTermError
from pipelib.library import LibraryService
from pipelib.mirror import MirrorStore, PathIndex, PipefileRecord
from pipelib.search import QueryService, escape_like


@pytest.fixture()
def library(store: MirrorStore, tmp_path: Path) -> tuple[QueryService, int]:
    index = PathIndex(store.connection)
    root = tmp_path / "lib"
    root_id = index.resolve(root)
    nested_id = index.resolve(root / "pkgB")
    outside_id = index.resolve(tmp_path / "elsewhere")

    rows = [
        (root / "xyz.pipe", root_id, {"name": "XYZ Filter"}),
        (root / "a.pipe", root_id, {"name": "Align", "package_name": "Registration"}),
        (root / "pkgB" / "b.pipe", nested_id, {"name": "B", "description": "Cortical THICKNESS"}),
        (root / "c.pipe", root_id, {"name": "C", "tags": "mri, 100%_done"}),
        (tmp_path / "elsewhere" / "d.pipe", outside_id, {"name": "xyz elsewhere"}),
    ]
    for path, directory_id, fields in rows:
        store.insert(
            PipefileRecord(
                absolute_path=str(path), directory_id=directory_id, last_modified=1, **fields
            )
        )
    return QueryService(store, index), root_id


def test_list_returns_subtree_keyed_by_path(library, tmp_path: Path) -> None:
    queries, root_id = library

    listing = queries.list(root_id)

    root = tmp_path / "lib"
    assert set(listing) == {
        str(root / "xyz.pipe"),
        str(root / "a.pipe"),
        str(root / "pkgB" / "b.pipe"),
        str(root / "c.pipe"),
    }
    assert listing[str(root / "a.pipe")].package_name == "Registration"


def test_list_unknown_directory_is_empty(library) -> None:
    queries, _ = library

    assert queries.list(12345) == {}


def test_search_is_case_insensitive_substring(library, tmp_path: Path) -> None:
    queries, root_id = library

    assert list(queries.search(root_id, "xy")) == [str(tmp_path / "lib" / "xyz.pipe")]
    assert list(queries.search(root_id, "  XY ")) == [str(tmp_path / "lib" / "xyz.pipe")]


@pytest.mark.parametrize(
    ("term", "expected"),
    [
        ("registr", "a.pipe"),
        ("thickness", "pkgB/b.pipe"),
        ("MRI", "c.pipe"),
    ],
)
def test_search_covers_package_description_and_tags(
    library, tmp_path: Path, term: str, expected: str
) -> None:
    queries, root_id = library

    assert list(queries.search(root_id, term)) == [str(tmp_path / "lib" / expected)]


def test_search_treats_wildcards_literally(library, tmp_path: Path) -> None:
    queries, root_id = library

    assert list(queries.search(root_id, "0%_")) == [str(tmp_path / "lib" / "c.pipe")]
    assert queries.search(root_id, "%%") == {}
    assert queries.search(root_id, "__") == {}


def test_short_term_is_rejected(library) -> None:
    queries, root_id = library

    with pytest.raises(SearchTermError):
        queries.search(root_id, "x")
    with pytest.raises(SearchTermError):
        queries.search(root_id, "   ")


def test_minimum_length_is_configurable(store: MirrorStore, library) -> None:
    _, root_id = library
    strict = QueryService(store, PathIndex(store.connection), min_term_length=4)

    with pytest.raises(SearchTermError):
        strict.search(root_id, "xyz")


def test_escape_like() -> None:
    assert escape_like("50%_a\\b") == "50\\%\\_a\\\\b"


def test_subfolder_sees_rows_filed_under_parent(
    service: LibraryService, tmp_path: Path, write_pipefile
) -> None:
    root = tmp_path / "lib"
    nested = write_pipefile(root / "pkgB" / "b.pipe", name="Brain Mask")
    write_pipefile(root / "a.pipe", name="Atlas Mask")
    service.list_files(root)

    listing = service.list_files(root / "pkgB")

    assert list(listing) == [str(nested)]
    assert listing[str(nested)].directory_id == service.paths.lookup(root)
    assert list(service.search(root / "pkgB", "mask")) == [str(nested)]


def test_search_under_root_that_was_never_interned(
    service: LibraryService, tmp_path: Path, write_pipefile
) -> None:
    root = tmp_path / "lib"
    nested = write_pipefile(root / "deep" / "pkg" / "c.pipe", name="Cortex")
    service.sync(root)

    assert list(service.search(root / "deep", "cortex")) == [str(nested)]
    assert service.paths.lookup(root / "deep") is None
