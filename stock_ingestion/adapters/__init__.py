"""Source adapters: parse source files into SourceDocuments."""

from stock_ingestion.adapters.base import SourceAdapter, SourceDocument, normalize_row_keys
from stock_ingestion.adapters.json_adapter import JsonSourceAdapter

__all__ = ["JsonSourceAdapter", "SourceAdapter", "SourceDocument", "normalize_row_keys"]
