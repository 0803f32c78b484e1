"""Tests for request dispatch."""

from pathlib import Path

import pytest

from pipelib.library import LibraryService
from pipelib.mirror import MirrorError
from pipelib.rpc import OPERATIONS, dispatch


def test_operations_are_registered() -> None:
    assert set(OPERATIONS) == {"listFiles", "search", "removeFiles", "moveFiles", "copyFiles"}


def test_list_files_returns_records_keyed_by_path(
    service: LibraryService, tmp_path: Path, write_pipefile
) -> None:
    path = write_pipefile(tmp_path / "a.pipe", name="Align", package="lib")

    reply = dispatch(service, "listFiles", {"root": str(tmp_path)})

    record = reply["result"][str(path)]
    assert record["name"] == "Align"
    assert record["package_name"] == "lib"
    assert record["absolute_path"] == str(path)


def test_search_after_listing(service: LibraryService, tmp_path: Path, write_pipefile) -> None:
    write_pipefile(tmp_path / "a.pipe", name="Align")
    write_pipefile(tmp_path / "b.pipe", name="Brain Mask")
    dispatch(service, "listFiles", {"root": str(tmp_path)})

    reply = dispatch(service, "search", {"root": str(tmp_path), "term": "MASK"})

    assert list(reply["result"]) == [str(tmp_path / "b.pipe")]


def test_move_files_reports_outcomes(
    service: LibraryService, tmp_path: Path, write_pipefile
) -> None:
    path = write_pipefile(tmp_path / "pkgA" / "s.pipe")

    reply = dispatch(
        service, "moveFiles", {"paths": [str(path)], "destination": str(tmp_path / "pkgB")}
    )

    [outcome] = reply["result"]
    assert outcome["status"] == "moved"
    assert outcome["destination"] == str(tmp_path / "pkgB" / "s.pipe")


@pytest.mark.parametrize(
    ("operation", "payload", "code"),
    [
        ("groups", {}, "unknown_operation"),
        ("listFiles", {}, "invalid_request"),
        ("search", {"root": "/tmp", "term": "x"}, "invalid_request"),
        ("removeFiles", {"paths": "a.pipe"}, "invalid_request"),
        ("copyFiles", {"paths": []}, "invalid_request"),
    ],
)
def test_bad_requests_become_faults(
    service: LibraryService, operation: str, payload: dict, code: str
) -> None:
    reply = dispatch(service, operation, payload)

    assert reply["fault"]["code"] == code
    assert "result" not in reply


def test_missing_root_is_not_found(service: LibraryService, tmp_path: Path) -> None:
    reply = dispatch(service, "listFiles", {"root": str(tmp_path / "nowhere")})

    assert reply["fault"]["code"] == "not_found"


def test_persistence_failure_is_reported(
    service: LibraryService, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _boom(*_args, **_kwargs):
        raise MirrorError("disk I/O error")

    monkeypatch.setattr(service, "list_files", _boom)

    reply = dispatch(service, "listFiles", {"root": str(tmp_path)})

    assert reply == {"fault": {"code": "persistence_error", "message": "disk I/O error"}}


def test_copy_files_keeps_source_and_mirrors_copy(
    service: LibraryService, tmp_path: Path, write_pipefile
) -> None:
    path = write_pipefile(tmp_path / "pkgA" / "s.pipe", name="Skull Strip", package="pkgA")

    reply = dispatch(
        service, "copyFiles", {"paths": [str(path)], "destination": str(tmp_path / "pkgC")}
    )

    [outcome] = reply["result"]
    assert outcome["operation"] == "copy"
    assert outcome["status"] == "copied"
    assert outcome["steps"] == ["copied", "document_rewritten", "mirror_migrated"]
    assert path.exists()

    listed = dispatch(service, "listFiles", {"root": str(tmp_path / "pkgC")})
    copied = listed["result"][str(tmp_path / "pkgC" / "s.pipe")]
    assert copied["package_name"] == "pkgC"
    assert copied["name"] == "Skull Strip"
