"""Generic fallback parser for receipts no store profile could handle.

No section boundaries: every line that is not a summary/tax line is a
candidate. Two line shapes are recognised:

- quantity expressions ("0,89 x 3 = 2,67"), priced for the descriptive
  line right above them
- plain "description  price" lines
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from decimal import Decimal

from shopcook.domain.receipt import LineItem, Receipt
from shopcook.receipt.item_categories import ProductClassifier
from shopcook.receipt.ocr_parser.common import (
    GENERIC_IGNORE_KEYWORDS,
    _accept_line_item,
    _clean_product_name,
    _find_price_token,
    _is_descriptive_line,
    _line_has_keyword,
    _parse_price,
    _parse_quantity_expression,
)
from shopcook.receipt.ocr_parser.fields_parser import _extract_date
from shopcook.receipt.ocr_parser.grammar_parser import GrammarParseResult, _prepare_lines

logger = logging.getLogger(__name__)

GENERIC_STORE_NAME = "Unknown Store"

GENERIC_DATE_FORMATS = (
    "%d.%m.%y %H:%M",
    "%d.%m.%Y %H:%M",
    "%d/%m/%Y %H:%M",
    "%d/%m/%y %H:%M",
    "%d.%m.%Y",
    "%d/%m/%Y",
)

GENERIC_TOTAL_KEYWORDS = ("ZU ZAHLEN", "A PAYER", "TOTAL TTC", "SUMME", "GESAMT", "TOTAL", "BETRAG")
GENERIC_TOTAL_EXCLUDE = ("ZWISCHENSUMME", "SOUS-TOTAL", "MWST", "NETTO")

GENERIC_PRODUCT_PATTERN = re.compile(
    r"^(?P<name>[^\W\d_][\w\-./%&',\s]*?)\s+(?P<price>\d{1,4}[,.]\d{2})\s*(?:€|EUR)?\s*[AB*]?$"
)


def _extract_generic_total(lines: list[str]) -> Decimal | None:
    """Last total-keyword line with an amount, scanning bottom-up."""
    for idx in range(len(lines) - 1, -1, -1):
        line = lines[idx]
        if not _line_has_keyword(line, GENERIC_TOTAL_KEYWORDS) or _line_has_keyword(line, GENERIC_TOTAL_EXCLUDE):
            continue
        amount = _find_price_token(line)
        if amount is None and idx + 1 < len(lines):
            amount = _find_price_token(lines[idx + 1])
        if amount is not None and amount > 0:
            return amount
    return None


def _is_summary_line(line: str) -> bool:
    return any(
        _line_has_keyword(line, keywords)
        for keywords in (GENERIC_IGNORE_KEYWORDS, GENERIC_TOTAL_KEYWORDS, GENERIC_TOTAL_EXCLUDE)
    )


def _parse_generic_items(lines: list[str], classifier: ProductClassifier) -> list[LineItem]:
    items: list[LineItem] = []
    last_description: str | None = None
    for line in lines:
        if _is_summary_line(line):
            last_description = None
            continue

        quantity = _parse_quantity_expression(line)
        if quantity is not None:
            count, _unit, line_total = quantity
            if last_description is not None:
                name = _clean_product_name(last_description)
                item = _accept_line_item(
                    f"{last_description}\n{line}", name, line_total, classifier, quantity=count
                )
                if item is not None:
                    items.append(item)
            last_description = None
            continue

        match = GENERIC_PRODUCT_PATTERN.match(line)
        if match is not None:
            name = _clean_product_name(match.group("name"))
            item = _accept_line_item(line, name, _parse_price(match.group("price")), classifier)
            if item is not None:
                items.append(item)
            last_description = None
            continue

        last_description = line if _is_descriptive_line(line) else None
    return items


def parse_generic(
    text: str,
    classifier: ProductClassifier,
    *,
    now: datetime | None = None,
) -> GrammarParseResult:
    """Parse normalized text without a store profile."""
    lines = _prepare_lines(text)
    items = _parse_generic_items(lines, classifier)
    if not items:
        logger.debug("Generic parser: no line items")
        return GrammarParseResult(failure="no_line_items")

    total = _extract_generic_total(lines)
    total_is_computed = total is None
    if total is None:
        total = sum((item.price for item in items), Decimal("0.00"))

    purchase_date = _extract_date(lines, GENERIC_DATE_FORMATS)
    receipt = Receipt(
        store_name=GENERIC_STORE_NAME,
        store_id=None,
        date=purchase_date or now or datetime.now(),
        date_is_placeholder=purchase_date is None,
        total=total,
        total_is_computed=total_is_computed,
        items=tuple(items),
    )
    return GrammarParseResult(receipt=receipt, section=(0, len(lines)))
