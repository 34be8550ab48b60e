"""Composable OCR receipt parser components."""

from .fields_parser import _extract_date, _extract_total
from .generic_parser import GENERIC_STORE_NAME, parse_generic
from .grammar_parser import PARSE_STRATEGIES, GrammarParseResult, parse_with_profile

__all__ = [
    "GENERIC_STORE_NAME",
    "GrammarParseResult",
    "PARSE_STRATEGIES",
    "_extract_date",
    "_extract_total",
    "parse_generic",
    "parse_with_profile",
]
