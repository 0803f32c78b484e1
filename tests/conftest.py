"""Shared fixtures for pipelib tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable, Iterator
from xml.sax.saxutils import quoteattr

import pytest

from pipelib.library import LibraryService
from pipelib.mirror import MirrorStore

PipefileWriter = Callable[..., Path]


def render_pipefile(
    *,
    name: str,
    package: str = "",
    kind: str = "module",
    description: str = "",
    tags: Iterable[str] = (),
    location: str = "",
    extra_modules: int = 0,
) -> str:
    """Return the XML text of a small pipefile document."""
    children = []
    if description:
        children.append(f"    <description>{description}</description>")
    children.extend(f"    <tag>{tag}</tag>" for tag in tags)
    body = "\n".join(children)
    attributes = f"name={quoteattr(name)} package={quoteattr(package)}"
    if location:
        attributes += f" location={quoteattr(location)}"
    extras = "\n".join(
        f'  <module name="helper{index}" package={quoteattr(package)}/>'
        for index in range(extra_modules)
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        "<pipeline>\n"
        "  <!-- exported by the pipeline editor -->\n"
        f"  <{kind} {attributes}>\n{body}\n  </{kind}>\n"
        f"{extras}\n"
        "</pipeline>\n"
    )


@pytest.fixture()
def write_pipefile() -> PipefileWriter:
    """Return a helper that writes a pipefile and returns its path."""

    def _write(path: Path, **fields: object) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        fields.setdefault("name", path.stem)
        path.write_text(render_pipefile(**fields), encoding="utf-8")  # type: ignore[arg-type]
        return path

    return _write


@pytest.fixture()
def store() -> Iterator[MirrorStore]:
    mirror = MirrorStore.open(":memory:")
    yield mirror
    mirror.close()


@pytest.fixture()
def service(store: MirrorStore) -> LibraryService:
    return LibraryService(store)
