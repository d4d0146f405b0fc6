"""Design-tree sanitization."""

from .validator import normalize_hex, validate_document, validate_elements

__all__ = ["normalize_hex", "validate_document", "validate_elements"]
