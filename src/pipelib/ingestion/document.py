"""Reading and rewriting pipefile XML documents."""

from __future__ import annotations

import os
import shutil
import tempfile
import xml.etree.ElementTree as ET
from pathlib import Path

from .errors import ParseError

MODULE_TAG = "module"
PACKAGE_ATTRIBUTE = "package"


def local_name(tag: str) -> str:
    """Strip a ``{namespace}`` prefix from an element tag."""
    return tag.rsplit("}", 1)[-1]


def package_label(directory: str | Path) -> str:
    """Return the package label for a package directory.

    The label is the directory's base name with spaces replaced by underscores.
    """
    return Path(os.path.normpath(str(directory))).name.replace(" ", "_")


def load_document(path: Path) -> ET.ElementTree:
    """Parse ``path`` keeping comments and processing instructions.

    Raises:
        ParseError: If the file cannot be read or is not well-formed.
    """
    parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True, insert_pis=True))
    try:
        return ET.parse(path, parser=parser)
    except ET.ParseError as exc:
        raise ParseError(f"{path}: malformed document ({exc})") from exc
    except OSError as exc:
        raise ParseError(f"{path}: unreadable ({exc})") from exc


def set_module_package(tree: ET.ElementTree, label: str) -> int:
    """Set the ``package`` attribute of every ``module`` element to ``label``.

    Returns:
        int: Number of elements updated.
    """
    updated = 0
    for element in tree.getroot().iter():
        if isinstance(element.tag, str) and local_name(element.tag) == MODULE_TAG:
            element.set(PACKAGE_ATTRIBUTE, label)
            updated += 1
    return updated


def write_document(tree: ET.ElementTree, path: Path) -> None:
    """Serialize ``tree`` to ``path`` through a sibling temporary file.

    The target is only replaced once serialization succeeded, so a failed
    write leaves the previous content intact.
    """
    handle, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(handle, "wb") as fh:
            tree.write(fh, encoding="UTF-8", xml_declaration=True)
        shutil.copymode(path, temp_name)
        os.replace(temp_name, path)
    except BaseException:
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise


def rewrite_package(path: Path, label: str) -> int:
    """Point every module in the pipefile at ``path`` to package ``label``.

    Returns:
        int: Number of module elements rewritten.

    Raises:
        ParseError: If the document cannot be parsed.
        OSError: If the rewritten document cannot be written.
    """
    tree = load_document(path)
    updated = set_module_package(tree, label)
    write_document(tree, path)
    return updated


__all__ = [
    "MODULE_TAG",
    "PACKAGE_ATTRIBUTE",
    "load_document",
    "local_name",
    "package_label",
    "rewrite_package",
    "set_module_package",
    "write_document",
]
