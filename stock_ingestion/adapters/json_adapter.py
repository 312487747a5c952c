"""
JSON source adapter.

A snapshot file is a single JSON document; each named array inside it is a
section (``counts``, ``products``, ``onHand`` ...).  A bare top-level array
is a document with one unnamed section, read with ``records()``.
"""

from __future__ import annotations

import json
from pathlib import Path

from stock_ingestion.adapters.base import SourceDocument
from stock_kernel.exceptions import IngestionError
from stock_kernel.logging_config import get_logger

logger = get_logger("ingestion.json_adapter")


class JsonSourceAdapter:
    """Parse a JSON file into a SourceDocument."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def open(self, source_path: Path) -> SourceDocument:
        """
        Raises:
            IngestionError: If the file is not valid JSON or not valid text
                in the adapter's encoding.
            FileNotFoundError: If the file does not exist.
        """
        path = Path(source_path)
        try:
            with path.open("r", encoding=self.encoding) as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise IngestionError(f"{path}: invalid JSON: {exc}") from exc
        except UnicodeDecodeError as exc:
            raise IngestionError(f"{path}: not {self.encoding} text") from exc

        document = SourceDocument(source=str(path), data=data)
        logger.debug("json_document_opened", extra={
            "source": str(path),
            "sections": document.section_sizes(),
        })
        return document
