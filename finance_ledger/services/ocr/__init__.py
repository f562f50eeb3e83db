"""Statement ingestion: the boundary for balances parsed by an OCR step."""

from finance_ledger.services.ocr.ingestion import (
    DEFAULT_CATEGORY_TYPES,
    AccountIngestor,
    AccountMatcher,
    ParsedAccount,
    normalize_name,
    parse_amount,
)

__all__ = [
    "DEFAULT_CATEGORY_TYPES",
    "AccountIngestor",
    "AccountMatcher",
    "ParsedAccount",
    "normalize_name",
    "parse_amount",
]
