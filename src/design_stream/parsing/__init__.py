"""Extraction and structural repair of model JSON output."""

from .json_repair import (
    ParsedResponse,
    ParseOutcome,
    ParseStatus,
    extract_json,
    parse_document,
    parse_response,
    repair_json,
)

__all__ = [
    "ParseOutcome",
    "ParseStatus",
    "ParsedResponse",
    "extract_json",
    "parse_document",
    "parse_response",
    "repair_json",
]
