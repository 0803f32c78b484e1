"""Pipefile metadata extraction."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from .document import load_document, local_name
from .errors import ParseError

_PRIMARY_KINDS = {
    "moduleGroup": "Module Group",
    "module": "Module",
    "dataModule": "Data",
}


class PipefileMetadata(BaseModel):
    """Descriptive fields parsed from a pipefile document."""

    name: str = ""
    type: str = ""
    package_name: str = ""
    description: str = ""
    tags: str = ""
    location: str = ""
    uri: str = ""


class MetadataParser:
    """Parse the XML document embedded in a pipefile.

    The first ``moduleGroup``, ``module`` or ``dataModule`` element in
    document order describes the file. A document without any of them still
    parses, named after the file.
    """

    def parse(self, path: Path) -> PipefileMetadata:
        """Return the descriptive fields for the pipefile at ``path``.

        Raises:
            ParseError: If the file is unreadable or not well-formed XML.
        """
        tree = load_document(path)
        primary = self._primary_element(tree.getroot())
        if primary is None:
            return PipefileMetadata(name=tree.getroot().get("name") or path.stem)

        return PipefileMetadata(
            name=primary.get("name") or path.stem,
            type=_PRIMARY_KINDS[local_name(primary.tag)],
            package_name=primary.get("package", ""),
            description=_attribute_or_child(primary, "description"),
            tags=", ".join(_child_texts(primary, "tag")),
            location=primary.get("location", ""),
            uri=_attribute_or_child(primary, "uri"),
        )

    def _primary_element(self, root: ET.Element) -> Optional[ET.Element]:
        for element in root.iter():
            if isinstance(element.tag, str) and local_name(element.tag) in _PRIMARY_KINDS:
                return element
        return None


def _child_texts(element: ET.Element, name: str) -> list[str]:
    texts = []
    for child in element:
        if isinstance(child.tag, str) and local_name(child.tag) == name and child.text:
            text = child.text.strip()
            if text:
                texts.append(text)
    return texts


def _attribute_or_child(element: ET.Element, name: str) -> str:
    value = element.get(name)
    if value:
        return value.strip()
    texts = _child_texts(element, name)
    return texts[0] if texts else ""


__all__ = ["MetadataParser", "PipefileMetadata", "ParseError"]
