"""OCR text normalization pipeline.

Raw OCR text passes through a fixed sequence of string -> string
operations before store detection:

1. store-name token corrections (ALDT -> ALDI, S00D -> SÜD, ...)
2. digit/letter confusion inside price-shaped tokens only (1O,99 -> 10,99)
3. receipt keyword corrections (T0TAL -> TOTAL, ...)
4. removal of isolated noise symbols

The correction tables are data. Built-in tables are intentionally empty
apart from the digit confusions; defaults live in
shopcook/receipt/rules/ocr_corrections.toml and project config files can
extend them without code changes.

Every operation is total (never raises) and the whole pipeline is
idempotent: normalize_text(normalize_text(x)) == normalize_text(x).
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

DIGIT_CONFUSIONS: dict[str, str] = {
    "O": "0",
    "l": "1",
    "I": "1",
    "S": "5",
    "B": "8",
}

# Currency signs are kept even when isolated ("12,34 €").
ISOLATED_SYMBOL_PATTERN = re.compile(r"(?<!\S)[^\w\s€$£](?!\S)")


@dataclass(frozen=True)
class OcrCorrections:
    """In-memory correction tables used by the normalization operations."""

    store_tokens: Mapping[str, str] = field(default_factory=dict)
    keywords: Mapping[str, str] = field(default_factory=dict)
    digit_confusions: Mapping[str, str] = field(default_factory=lambda: dict(DIGIT_CONFUSIONS))


def _string_table(raw: Any) -> dict[str, str]:
    """Normalize a TOML table into a str -> str dict, dropping empty entries."""
    if not isinstance(raw, Mapping):
        return {}
    table: dict[str, str] = {}
    for key, value in raw.items():
        key_str = str(key).strip()
        value_str = str(value).strip()
        if key_str and value_str and key_str != value_str:
            table[key_str] = value_str
    return table


def _drop_chained(table: dict[str, str]) -> dict[str, str]:
    """Drop entries whose replacement is itself a correction source.

    A chain (A -> B, B -> C) would make a second normalization pass change
    the text again.
    """
    return {wrong: right for wrong, right in table.items() if right not in table}


def build_ocr_corrections(configs: Sequence[Mapping[str, Any]] | None = None) -> OcrCorrections:
    """Merge correction configs in order; later configs win key by key."""
    store_tokens: dict[str, str] = {}
    keywords: dict[str, str] = {}
    digit_confusions = dict(DIGIT_CONFUSIONS)

    for config in configs or ():
        store_tokens.update(_string_table(config.get("store_tokens")))
        keywords.update(_string_table(config.get("keywords")))
        for letter, digit in _string_table(config.get("digit_confusions")).items():
            # Only single letter -> single digit pairs are meaningful here.
            if len(letter) == 1 and len(digit) == 1 and digit.isdigit() and not letter.isdigit():
                digit_confusions[letter] = digit

    return OcrCorrections(
        store_tokens=_drop_chained(store_tokens),
        keywords=_drop_chained(keywords),
        digit_confusions=digit_confusions,
    )


@lru_cache(maxsize=1)
def _get_default_corrections() -> OcrCorrections:
    """Built-in-only corrections (no file I/O)."""
    return build_ocr_corrections()


@lru_cache(maxsize=64)
def _token_pattern(tokens: tuple[str, ...]) -> re.Pattern[str] | None:
    if not tokens:
        return None
    # Longest first so "Oni ine" wins over a shorter overlapping variant.
    alternatives = "|".join(re.escape(token) for token in sorted(tokens, key=len, reverse=True))
    return re.compile(rf"(?<!\w)(?:{alternatives})(?!\w)")


def _replace_tokens(text: str, table: Mapping[str, str]) -> str:
    pattern = _token_pattern(tuple(table))
    if pattern is None:
        return text
    return pattern.sub(lambda match: table[match.group(0)], text)


def correct_store_tokens(text: str, corrections: OcrCorrections) -> str:
    """Rewrite known OCR misreadings of store names to their canonical spelling."""
    return _replace_tokens(text, corrections.store_tokens)


@lru_cache(maxsize=16)
def _price_confusion_pattern(letters: str) -> re.Pattern[str]:
    chars = rf"[\d{re.escape(letters)}]"
    return re.compile(rf"(?<!\w){chars}{{1,4}}[,.]{chars}{{2}}(?!\w)")


def correct_price_digits(text: str, corrections: OcrCorrections) -> str:
    """Fix letter/digit confusion inside price-shaped tokens only.

    A token qualifies when it has the shape of a price (1-4 characters, a
    separator, 2 characters) and at least one real digit: "1O,99" and
    "5,OO" are fixed, "SO.BI" is left alone.

    The shape is wider than "digits, one letter, digits": any number of
    confusable letters may sit in either part, decimals included, as long
    as one real digit remains. "2,4O" becomes 2,40 and "S.12" becomes 5.12.
    Tokens glued to other word characters never qualify.
    """
    confusions = corrections.digit_confusions
    if not confusions:
        return text
    pattern = _price_confusion_pattern("".join(sorted(confusions)))

    def fix(match: re.Match[str]) -> str:
        token = match.group(0)
        if not any(char.isdigit() for char in token):
            return token
        return "".join(confusions.get(char, char) for char in token)

    return pattern.sub(fix, text)


def correct_keywords(text: str, corrections: OcrCorrections) -> str:
    """Rewrite common misreadings of receipt keywords (T0TAL -> TOTAL)."""
    return _replace_tokens(text, corrections.keywords)


def strip_isolated_symbols(text: str, corrections: OcrCorrections) -> str:
    """Drop single noise symbols that stand alone between whitespace."""
    return ISOLATED_SYMBOL_PATTERN.sub("", text)


NormalizationOp = Callable[[str, OcrCorrections], str]

DEFAULT_OPERATIONS: tuple[NormalizationOp, ...] = (
    correct_store_tokens,
    correct_price_digits,
    correct_keywords,
    strip_isolated_symbols,
)


def normalize_text(
    text: str,
    corrections: OcrCorrections | None = None,
    *,
    operations: Sequence[NormalizationOp] | None = None,
) -> str:
    """Run normalization operations in sequence over raw OCR text.

    Line structure is preserved: no operation adds or removes newlines.
    When `corrections` is omitted only the built-in tables apply.
    """
    if not text:
        return ""
    tables = corrections or _get_default_corrections()
    normalized = text
    for operation in DEFAULT_OPERATIONS if operations is None else operations:
        normalized = operation(normalized, tables)
    return normalized


@dataclass(frozen=True)
class TextValidation:
    """Pre-flight sanity check of raw receipt text."""

    is_valid: bool
    confidence: float
    issues: tuple[str, ...]


_PRICE_TOKEN = re.compile(r"\d+[,.]\d{2}")
_STORE_HINTS = ("ALDI", "LIDL", "REWE", "EDEKA", "CARREFOUR", "LECLERC", "STORE", "MARKT")
_TOTAL_HINTS = ("SUMME", "TOTAL", "GESAMT", "BETRAG")


def validate_receipt_text(text: str) -> TextValidation:
    """Quick heuristics for "does this look like a receipt at all".

    Informational only; the pipeline parses regardless of the outcome.
    """
    confidence = 1.0
    issues: list[str] = []
    upper = text.upper()

    if not _PRICE_TOKEN.search(text):
        confidence -= 0.5
        issues.append("No price patterns found")
    if not any(hint in upper for hint in _STORE_HINTS):
        confidence -= 0.2
        issues.append("No store name detected")
    if not any(hint in upper for hint in _TOTAL_HINTS):
        confidence -= 0.2
        issues.append("No total line detected")
    if len(text) < 100:
        confidence -= 0.3
        issues.append(f"Text too short ({len(text)} chars)")

    confidence = round(confidence, 2)
    return TextValidation(is_valid=confidence >= 0.3, confidence=max(0.0, confidence), issues=tuple(issues))
