"""Tests for pipefile parsing and package rewriting."""

from pathlib import Path

import pytest

from pipelib.ingestion import MetadataParser, ParseError
from pipelib.ingestion.document import load_document, package_label, rewrite_package


def test_parse_module_fields(tmp_path: Path, write_pipefile) -> None:
    path = write_pipefile(
        tmp_path / "study.pipe",
        name="Cortical Study",
        package="pkgA",
        description="Surface extraction",
        tags=["MRI", "surface"],
        location="/opt/bin/cortex",
    )

    metadata = MetadataParser().parse(path)

    assert metadata.name == "Cortical Study"
    assert metadata.type == "Module"
    assert metadata.package_name == "pkgA"
    assert metadata.description == "Surface extraction"
    assert metadata.tags == "MRI, surface"
    assert metadata.location == "/opt/bin/cortex"


@pytest.mark.parametrize(
    ("kind", "expected"), [("moduleGroup", "Module Group"), ("dataModule", "Data")]
)
def test_parse_reports_primary_kind(tmp_path: Path, write_pipefile, kind: str, expected: str) -> None:
    path = write_pipefile(tmp_path / "x.pipe", kind=kind)

    assert MetadataParser().parse(path).type == expected


def test_parse_document_without_modules_uses_file_stem(tmp_path: Path) -> None:
    path = tmp_path / "empty.pipe"
    path.write_text("<pipeline><connections/></pipeline>", encoding="utf-8")

    metadata = MetadataParser().parse(path)

    assert metadata.name == "empty"
    assert metadata.type == ""


def test_parse_malformed_document_raises(tmp_path: Path) -> None:
    path = tmp_path / "broken.pipe"
    path.write_text("<pipeline><module name='x'>", encoding="utf-8")

    with pytest.raises(ParseError):
        MetadataParser().parse(path)


def test_package_label_replaces_spaces() -> None:
    assert package_label("/lib/My Package") == "My_Package"
    assert package_label("/lib/pkgB/") == "pkgB"


def test_rewrite_package_updates_every_module(tmp_path: Path, write_pipefile) -> None:
    path = write_pipefile(tmp_path / "s.pipe", package="pkgA", extra_modules=2)

    updated = rewrite_package(path, "pkgB")

    assert updated == 3
    root = load_document(path).getroot()
    assert {module.get("package") for module in root.iter("module")} == {"pkgB"}
    assert "exported by the pipeline editor" in path.read_text(encoding="utf-8")
    assert [p.name for p in tmp_path.iterdir()] == ["s.pipe"]


def test_rewrite_package_leaves_malformed_file_untouched(tmp_path: Path) -> None:
    path = tmp_path / "broken.pipe"
    path.write_text("<pipeline>", encoding="utf-8")

    with pytest.raises(ParseError):
        rewrite_package(path, "pkgB")

    assert path.read_text(encoding="utf-8") == "<pipeline>"
