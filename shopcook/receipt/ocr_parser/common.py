"""Shared constants and helpers for receipt text parsing."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from shopcook.domain.receipt import LineItem
from shopcook.receipt.item_categories import ProductClassifier, _keyword_matches

# Price-shaped token: 0,69 / 12.34 / 1.234,56. Not glued to other digits.
PRICE_TOKEN_PATTERN = re.compile(r"(?<![\d,.])(\d{1,3}(?:\.\d{3})+,\d{2}|\d{1,4}[,.]\d{2})(?![\d,.]*\d)")

# Unit price x count [= total], e.g. "0,89 x 4 = 3,56" or "2 x 1,49".
QUANTITY_EXPRESSION_PATTERN = re.compile(
    r"(?P<unit>\d{1,3}[,.]\d{2})\s?[xX×*]\s?(?P<count>\d{1,3})(?!\d)\s?(?:=\s?(?P<total>\d{1,4}[,.]\d{2}))?"
)
COUNT_FIRST_QUANTITY_PATTERN = re.compile(
    r"^(?P<count>\d{1,3})\s?[xX×*]\s?(?P<unit>\d{1,3}[,.]\d{2})(?:\s*(?:EUR|€))?(?:\s*=?\s*(?P<total>\d{1,4}[,.]\d{2}))?"
)

# "10 x" or "2 X" alone (or leading) on a continuation line.
QUANTITY_LINE_PATTERN = re.compile(r"^(?P<count>\d{1,3})\s?[xX×]\b")

# Keywords the generic parser never treats as products.
GENERIC_IGNORE_KEYWORDS = (
    "SUMME",
    "TOTAL",
    "MWST",
    "GESAMT",
    "UST",
    "NETTO",
    "ZWISCHENSUMME",
    "ZU ZAHLEN",
    "BETRAG",
    "A PAYER",
    "TVA",
    "MONTANT",
    "TSE",
    "BELEG",
    "NR.",
)


def _parse_price(value: str) -> Decimal | None:
    """Parse a price token ("0,69", "12.34", "1.234,56") into a two-place Decimal."""
    text = value.strip().replace(" ", "")
    if not text:
        return None
    if "," in text and "." in text:
        # The last separator is the decimal one.
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    else:
        text = text.replace(",", ".")
    try:
        return Decimal(text).quantize(Decimal("0.01"))
    except InvalidOperation:
        return None


def _find_price_token(line: str) -> Decimal | None:
    """Return the first price-shaped token on a line, if any."""
    match = PRICE_TOKEN_PATTERN.search(line)
    if match is None:
        return None
    return _parse_price(match.group(1))


def _line_has_keyword(line: str, keywords: tuple[str, ...]) -> bool:
    upper = line.upper()
    return any(_keyword_matches(kw, upper) for kw in keywords)


def _clean_product_name(name: str, prefixes: tuple[str, ...] = ()) -> str:
    """Clean a product name: drop label prefixes and extra spaces."""
    cleaned = name.strip()
    for prefix in prefixes:
        if cleaned.upper().startswith(prefix.upper()):
            cleaned = cleaned[len(prefix) :].strip()
    cleaned = re.sub(r"\s+", " ", cleaned)
    # Leading/trailing punctuation left over from column splits.
    cleaned = re.sub(r"^[^\w(]+", "", cleaned)
    cleaned = re.sub(r"[^\w)%]+$", "", cleaned)
    return cleaned.strip()


def _is_descriptive_line(line: str) -> bool:
    """Return True if a line could be a product name (has letters, no price)."""
    stripped = line.strip()
    if len(stripped) < 2:
        return False
    if not re.search(r"[^\W\d_]{2,}", stripped):
        return False
    return _find_price_token(stripped) is None


def _parse_quantity_expression(line: str) -> tuple[int, Decimal, Decimal] | None:
    """Parse "unit x count [= total]" into (count, unit_price, line_total)."""
    stripped = line.strip()
    match = COUNT_FIRST_QUANTITY_PATTERN.match(stripped) or QUANTITY_EXPRESSION_PATTERN.search(stripped)
    if match is None:
        return None
    unit = _parse_price(match.group("unit"))
    if unit is None:
        return None
    count = int(match.group("count"))
    if count <= 0:
        return None
    total = _parse_price(match.group("total")) if match.group("total") else None
    if total is None:
        total = (unit * count).quantize(Decimal("0.01"))
    return count, unit, total


def _parse_quantity_line(line: str) -> int | None:
    match = QUANTITY_LINE_PATTERN.match(line.strip())
    if match is None:
        return None
    count = int(match.group("count"))
    return count if count > 0 else None


def _accept_line_item(
    raw_line: str,
    name: str,
    price: Decimal | None,
    classifier: ProductClassifier,
    *,
    quantity: int = 1,
) -> LineItem | None:
    """Single acceptance point for parsed products.

    Rejects non-positive prices, empty names and non-food products, then
    assigns the storage section.
    """
    if price is None or price <= 0:
        return None
    if not name or not re.search(r"[^\W\d_]", name):
        return None
    if not classifier.is_food(name):
        return None
    result = classifier.classify(name)
    return LineItem(
        raw_line=raw_line,
        name=name,
        price=price,
        section=result.section,
        quantity=quantity,
    )
