"""
Source adapter protocol and the parsed snapshot document.

Contract:
    SourceAdapter.open() parses a source file once into a SourceDocument.
    SourceDocument.records(path) yields the dict records of one section,
    with top-level keys stripped and lower-cased; SourceDocument.value(path)
    returns the raw value at a dotted path.

Architecture: stock_ingestion/adapters. File I/O only, no engine imports.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from stock_kernel.exceptions import IngestionError


def resolve_path(data: Any, path: str | None) -> Any:
    """Follow a dotted path ("sections.counts", "departments.0.name"); None if absent."""
    node = data
    for part in (path or "").split("."):
        part = part.strip()
        if not part:
            continue
        if isinstance(node, dict):
            node = node.get(part)
        elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
            node = node[int(part)]
        else:
            return None
        if node is None:
            return None
    return node


def normalize_row_keys(item: dict[str, Any]) -> dict[str, Any]:
    """Copy with string keys stripped and lower-cased; non-string keys dropped."""
    return {key.strip().lower(): value for key, value in item.items() if isinstance(key, str)}


@dataclass(frozen=True)
class SourceDocument:
    """A parsed source file.  ``data`` is never mutated."""

    source: str
    data: Any

    def value(self, path: str | None = None) -> Any:
        return resolve_path(self.data, path)

    def records(self, path: str | None = None) -> Iterator[dict[str, Any]]:
        """
        Dict records of the array at ``path``.

        A missing section yields nothing.  Non-dict items are skipped.

        Raises:
            IngestionError: If the value at ``path`` exists but is not an array.
        """
        section = self.value(path)
        if section is None:
            return
        if not isinstance(section, list):
            raise IngestionError(
                f"{self.source}: expected an array at {path or '<root>'}, "
                f"got {type(section).__name__}"
            )
        for item in section:
            if isinstance(item, dict):
                yield normalize_row_keys(item)

    def section_sizes(self) -> dict[str, int]:
        """Record count per top-level array section."""
        if not isinstance(self.data, dict):
            return {}
        return {
            str(name): len(value)
            for name, value in self.data.items()
            if isinstance(value, list)
        }


@runtime_checkable
class SourceAdapter(Protocol):
    """Protocol for parsing a source file into a SourceDocument."""

    def open(self, source_path: Path) -> SourceDocument:
        ...
