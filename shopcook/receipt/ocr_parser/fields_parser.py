"""Receipt field extraction helpers (date, total)."""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from functools import lru_cache

from shopcook.receipt.ocr_parser.common import _find_price_token, _line_has_keyword

DATE_SEARCH_LINES = 20

# How far around the end of the product section the total may sit.
TOTAL_WINDOW_BEFORE = 5
TOTAL_WINDOW_AFTER = 15
# Lines after the total keyword that may carry the amount.
TOTAL_FOLLOWING_LINES = 3

_DIRECTIVE_PATTERNS = {
    "%d": r"\d{1,2}",
    "%m": r"\d{1,2}",
    "%Y": r"\d{4}",
    "%y": r"\d{2}",
    "%H": r"\d{1,2}",
    "%M": r"\d{2}",
    "%S": r"\d{2}",
}


@lru_cache(maxsize=64)
def _date_format_pattern(date_format: str) -> re.Pattern[str]:
    """Turn a strptime format into a regex matching it inside a line."""
    parts = re.split(r"(%[dmYyHMS])", date_format)
    body = "".join(_DIRECTIVE_PATTERNS.get(part, re.escape(part).replace(r"\ ", r"\s+")) for part in parts)
    return re.compile(rf"(?<!\d){body}(?!\d)")


def _extract_date(lines: Sequence[str], date_formats: Sequence[str]) -> datetime | None:
    """Return the first date found in the top lines (None if unknown).

    Lines are scanned top to bottom; on each line the formats are tried in
    the given order.
    """
    for line in lines[:DATE_SEARCH_LINES]:
        for date_format in date_formats:
            for match in _date_format_pattern(date_format).finditer(line):
                candidate = re.sub(r"\s+", " ", match.group(0))
                try:
                    return datetime.strptime(candidate, date_format)
                except ValueError:
                    continue
    return None


def _is_total_line(line: str, total_keywords: Sequence[str], exclude_keywords: Sequence[str]) -> bool:
    if not _line_has_keyword(line, tuple(total_keywords)):
        return False
    return not _line_has_keyword(line, tuple(exclude_keywords))


def _extract_total(
    lines: Sequence[str],
    section_end: int,
    total_keywords: Sequence[str],
    exclude_keywords: Sequence[str] = (),
) -> Decimal | None:
    """Find the receipt total near the end of the product section.

    The amount is taken from the keyword line itself or, failing that, from
    one of the few lines below it.
    """
    if not total_keywords:
        return None
    start = max(0, section_end - TOTAL_WINDOW_BEFORE)
    stop = min(len(lines), section_end + TOTAL_WINDOW_AFTER + 1)
    for idx in range(start, stop):
        line = lines[idx]
        if not _is_total_line(line, total_keywords, exclude_keywords):
            continue
        amount = _find_price_token(line)
        if amount is not None and amount > 0:
            return amount
        for following in lines[idx + 1 : idx + 1 + TOTAL_FOLLOWING_LINES]:
            amount = _find_price_token(following)
            if amount is not None and amount > 0:
                return amount
    return None
