"""Profile-driven receipt grammar parser.

A StoreProfile describes where the product section starts and ends and
where prices sit relative to product names. The line-level strategy is
picked from PARSE_STRATEGIES by the profile's price location:

- same_line:  "Bio Vollmilch 3,5%   1,19 A"
- next_line:  "Bio Apfelmus 360g" followed (within 3 lines) by "0,69 A"
- column:     "Milch  2 x  1,98" (2+ spaces separate columns)

A parse either yields a complete Receipt or a failure reason; it never
returns a partially filled receipt.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from shopcook.domain.receipt import FailureReason, LineItem, Receipt
from shopcook.receipt.item_categories import ProductClassifier
from shopcook.receipt.ocr_parser.common import (
    _accept_line_item,
    _clean_product_name,
    _is_descriptive_line,
    _line_has_keyword,
    _parse_price,
    _parse_quantity_expression,
    _parse_quantity_line,
)
from shopcook.receipt.ocr_parser.fields_parser import _extract_date, _extract_total
from shopcook.receipt.store_profiles import PriceLocation, StoreProfile

logger = logging.getLogger(__name__)

# Lines after a name line that may carry its price (next_line layout).
NEXT_LINE_PRICE_LOOKAHEAD = 3

COLUMN_SEPARATOR = re.compile(r"\s{2,}")


@dataclass(frozen=True)
class GrammarParseResult:
    """Either a receipt or the reason no receipt could be built."""

    receipt: Receipt | None = None
    failure: FailureReason | None = None
    section: tuple[int, int] | None = None


def _prepare_lines(text: str) -> list[str]:
    """Split text into trimmed, non-empty lines (inner spacing is kept)."""
    return [line.strip() for line in text.splitlines() if line.strip()]


def _find_product_section(lines: Sequence[str], profile: StoreProfile) -> tuple[int, int] | None:
    """Return (start, end) line indexes of the product section; end is exclusive."""
    start: int | None = None
    for idx, line in enumerate(lines):
        if _line_has_keyword(line, profile.header_keywords):
            continue
        if any(pattern.search(line) for pattern in profile.start_patterns):
            start = idx
            break
    if start is None:
        return None

    end = len(lines)
    for idx in range(start + 1, len(lines)):
        if _line_has_keyword(lines[idx], profile.end_keywords):
            end = idx
            break
    return start, end


def _is_article_line(line: str, profile: StoreProfile) -> bool:
    return profile.article_pattern is not None and profile.article_pattern.search(line) is not None


def _quantity_from_profile(line: str, profile: StoreProfile) -> tuple[int, Decimal] | None:
    """Parse a profile quantity line into (count, line total)."""
    if profile.quantity_pattern is None:
        return None
    match = profile.quantity_pattern.search(line)
    if match is None:
        return None
    unit = _parse_price(match.group("unit"))
    count = int(match.group("count"))
    if unit is None or count <= 0:
        return None
    groups = match.groupdict()
    total = _parse_price(groups["total"]) if groups.get("total") else None
    return count, total if total is not None else (unit * count).quantize(Decimal("0.01"))


def _parse_same_line(
    lines: Sequence[str],
    profile: StoreProfile,
    classifier: ProductClassifier,
) -> list[LineItem]:
    items: list[LineItem] = []
    pending_name: tuple[int, str] | None = None
    for idx, line in enumerate(lines):
        quantity = _quantity_from_profile(line, profile)
        if quantity is not None:
            count, line_total = quantity
            if pending_name is not None and pending_name[0] == idx - 1:
                # "Bananen" + "2 Stk x 1,29": the quantity line carries the price.
                name = _clean_product_name(pending_name[1], profile.name_prefixes)
                raw_line = f"{pending_name[1]}\n{line}"
                item = _accept_line_item(raw_line, name, line_total, classifier, quantity=count)
                if item is not None:
                    items.append(item)
            elif idx > 0 and items and lines[idx - 1] == items[-1].raw_line:
                items[-1] = dataclasses.replace(items[-1], quantity=count)
            pending_name = None
            continue

        match = profile.product_pattern.match(line)
        if match is None:
            pending_name = (idx, line) if _is_descriptive_line(line) and not _is_article_line(line, profile) else None
            continue
        pending_name = None
        name = _clean_product_name(match.group("name"), profile.name_prefixes)
        item = _accept_line_item(line, name, _parse_price(match.group("price")), classifier)
        if item is not None:
            items.append(item)
    return items


def _parse_column(
    lines: Sequence[str],
    profile: StoreProfile,
    classifier: ProductClassifier,
) -> list[LineItem]:
    items: list[LineItem] = []
    for line in lines:
        match = profile.product_pattern.match(line)
        if match is None:
            continue
        columns = [column for column in COLUMN_SEPARATOR.split(match.group("name").strip()) if column]
        name_column = next((column for column in columns if re.search(r"[^\W\d_]{2,}", column)), None)
        if name_column is None:
            continue
        quantity = 1
        for column in columns:
            if column is name_column:
                continue
            expression = _parse_quantity_expression(column)
            count = expression[0] if expression else _parse_quantity_line(column)
            if count:
                quantity = count
                break
        name = _clean_product_name(name_column, profile.name_prefixes)
        item = _accept_line_item(line, name, _parse_price(match.group("price")), classifier, quantity=quantity)
        if item is not None:
            items.append(item)
    return items


def _parse_next_line(
    lines: Sequence[str],
    profile: StoreProfile,
    classifier: ProductClassifier,
) -> list[LineItem]:
    items: list[LineItem] = []
    idx = 0
    while idx < len(lines):
        line = lines[idx]
        if _is_article_line(line, profile) or _parse_quantity_line(line) is not None:
            idx += 1
            continue

        match = profile.product_pattern.match(line)
        if match is not None:
            name = _clean_product_name(match.group("name"), profile.name_prefixes)
            item = _accept_line_item(line, name, _parse_price(match.group("price")), classifier)
            if item is not None:
                items.append(item)
            idx += 1
            continue

        if not _is_descriptive_line(line):
            idx += 1
            continue

        # Name line: look ahead for its price, collecting an "N x" quantity on the way.
        quantity = 1
        consumed_to: int | None = None
        price: Decimal | None = None
        for ahead in range(idx + 1, min(idx + 1 + NEXT_LINE_PRICE_LOOKAHEAD, len(lines))):
            candidate = lines[ahead]
            if _is_article_line(candidate, profile) or profile.product_pattern.match(candidate):
                break
            count = _parse_quantity_line(candidate)
            if count is not None:
                quantity = count
            price_match = profile.price_pattern.search(candidate)
            if price_match is not None:
                price = _parse_price(price_match.group("price"))
                consumed_to = ahead
                break
            if _line_has_keyword(candidate, profile.ignore_keywords):
                break

        if consumed_to is None:
            idx += 1
            continue

        name = _clean_product_name(line, profile.name_prefixes)
        raw_line = "\n".join(lines[idx : consumed_to + 1])
        item = _accept_line_item(raw_line, name, price, classifier, quantity=quantity)
        if item is not None:
            items.append(item)
        idx = consumed_to + 1
    return items


ParseStrategy = Callable[[Sequence[str], StoreProfile, ProductClassifier], list[LineItem]]

PARSE_STRATEGIES: dict[PriceLocation, ParseStrategy] = {
    "same_line": _parse_same_line,
    "next_line": _parse_next_line,
    "column": _parse_column,
}


def parse_with_profile(
    text: str,
    profile: StoreProfile,
    classifier: ProductClassifier,
    *,
    now: datetime | None = None,
) -> GrammarParseResult:
    """Parse normalized receipt text with one store profile.

    Args:
        text: Normalized OCR text.
        profile: Layout description of the detected chain.
        classifier: Assigns storage sections and filters non-food lines.
        now: Date used when the receipt date cannot be read.

    Returns:
        GrammarParseResult with a receipt, or with failure
        "no_product_section" / "no_line_items".
    """
    lines = _prepare_lines(text)
    section = _find_product_section(lines, profile)
    if section is None:
        logger.debug("%s: product section not found", profile.id)
        return GrammarParseResult(failure="no_product_section")

    start, end = section
    logger.debug("%s: product section lines %d-%d (%s)", profile.id, start, end, profile.price_location)
    product_lines = [line for line in lines[start:end] if not _line_has_keyword(line, profile.ignore_keywords)]
    items = PARSE_STRATEGIES[profile.price_location](product_lines, profile, classifier)
    if not items:
        logger.debug("%s: no line items in section", profile.id)
        return GrammarParseResult(failure="no_line_items", section=section)

    total = _extract_total(lines, end, profile.total_keywords, profile.total_exclude_keywords)
    total_is_computed = total is None
    if total is None:
        total = sum((item.price for item in items), Decimal("0.00"))

    purchase_date = _extract_date(lines, profile.date_formats)
    receipt = Receipt(
        store_name=profile.display_name,
        store_id=profile.id,
        date=purchase_date or now or datetime.now(),
        date_is_placeholder=purchase_date is None,
        total=total,
        total_is_computed=total_is_computed,
        items=tuple(items),
    )
    return GrammarParseResult(receipt=receipt, section=section)
