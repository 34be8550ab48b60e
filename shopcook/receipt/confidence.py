"""Multi-factor confidence scoring for parsed receipts.

The score is a fixed weighted sum of seven factors, each in [0, 1]. It only
depends on the receipt, the OCR text, the store-detection confidence and
the reference time, so scoring the same inputs twice gives the same result.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from datetime import datetime, timedelta
from decimal import Decimal

from shopcook.domain.receipt import ConfidenceRating, Receipt, ReceiptConfidence

logger = logging.getLogger(__name__)

FACTOR_WEIGHTS: Mapping[str, float] = {
    "product_count": 0.12,
    "price_validity": 0.18,
    "total_consistency": 0.25,
    "store_detection": 0.15,
    "ocr_quality": 0.12,
    "name_quality": 0.10,
    "date_validity": 0.08,
}

HIGH_RATING_THRESHOLD = 0.8
MEDIUM_RATING_THRESHOLD = 0.5

UNIDENTIFIED_STORE_SCORE = 0.3
MAX_VALID_PRICE = Decimal("1000")
TOTAL_RELATIVE_TOLERANCE = Decimal("0.15")
TOTAL_MIN_TOLERANCE = Decimal("0.50")
NOISE_ISSUE_RATIO = 0.3

# Characters that are expected on a receipt and do not count as noise.
_NORMAL_CHAR_PATTERN = re.compile(r"[^\W_]|\s|[.,€$£¥\-/()]")
_NONSENSE_TOKENS = ("###", "|||", "___", "...", "***", "```")


def rating_for(score: float) -> ConfidenceRating:
    if score >= HIGH_RATING_THRESHOLD:
        return "high"
    if score >= MEDIUM_RATING_THRESHOLD:
        return "medium"
    return "low"


def _format_euro(amount: Decimal) -> str:
    return f"€{amount.quantize(Decimal('0.01'))}"


def _product_count_factor(count: int, issues: list[str]) -> float:
    if 2 <= count <= 100:
        return 1.0
    if count == 1:
        issues.append("Only 1 product found - unusual for a receipt")
        return 0.6
    if count > 100:
        issues.append("Over 100 products - possible parsing error")
        return 0.4
    issues.append("No products found")
    return 0.2


def _price_validity_factor(receipt: Receipt, issues: list[str]) -> float:
    count = len(receipt.items)
    if count == 0:
        return 0.0
    valid = sum(1 for item in receipt.items if Decimal("0") < item.price < MAX_VALID_PRICE)
    if valid < count:
        issues.append(f"{count - valid} product(s) with invalid prices")
    return valid / count


def _total_consistency_factor(receipt: Receipt, issues: list[str]) -> float:
    if receipt.total == 0:
        issues.append("Total is €0.00")
        return 0.3
    items_sum = receipt.items_sum
    difference = abs(items_sum - receipt.total)
    tolerance = max(receipt.total * TOTAL_RELATIVE_TOLERANCE, TOTAL_MIN_TOLERANCE)
    if difference < tolerance:
        return 1.0
    if difference < tolerance * 2:
        issues.append(f"Total differs from sum by {_format_euro(difference)}")
        return 0.7
    issues.append(f"Total ({_format_euro(receipt.total)}) doesn't match sum ({_format_euro(items_sum)})")
    return 0.4


def _store_detection_factor(store_confidence: float | None, issues: list[str]) -> float:
    if store_confidence is None:
        issues.append("Store not identified")
        return UNIDENTIFIED_STORE_SCORE
    return min(max(store_confidence, 0.0), 1.0)


def garbled_text_ratio(text: str) -> float:
    """Share of noise characters and nonsense runs in the text, capped at 1."""
    if not text:
        return 0.0
    noise = sum(1 for char in text if not _NORMAL_CHAR_PATTERN.match(char))
    noise += sum(text.count(token) for token in _NONSENSE_TOKENS)
    return min(noise / len(text), 1.0)


def _ocr_quality_factor(text: str, issues: list[str]) -> float:
    ratio = garbled_text_ratio(text)
    if ratio > NOISE_ISSUE_RATIO:
        issues.append(f"High noise in OCR text ({int(ratio * 100)}% special chars)")
    return 1.0 - ratio


def _name_quality_factor(receipt: Receipt, issues: list[str]) -> float:
    names = [item.name for item in receipt.items]
    average = sum(len(name) for name in names) // len(names) if names else 0
    if 3 < average < 50:
        return 1.0
    if average <= 3:
        issues.append(f"Product names too short (avg: {average} chars)")
        return 0.4
    issues.append(f"Product names unusually long (avg: {average} chars)")
    return 0.6


def _date_validity_factor(receipt: Receipt, now: datetime, issues: list[str]) -> float:
    if receipt.date_is_placeholder:
        # Informational: the placeholder is the scan time, so it scores as valid.
        issues.append("Receipt date not found - using scan date")
    one_year_ago = now - timedelta(days=365)
    tomorrow = now + timedelta(days=1)
    if one_year_ago < receipt.date < tomorrow:
        return 1.0
    if receipt.date <= one_year_ago:
        issues.append("Receipt date is over 1 year old")
        return 0.5
    issues.append("Receipt date is in the future")
    return 0.3


def score_receipt(
    receipt: Receipt,
    ocr_text: str,
    store_confidence: float | None = None,
    *,
    now: datetime | None = None,
) -> ReceiptConfidence:
    """Score a parsed receipt.

    Args:
        receipt: The parsed receipt.
        ocr_text: Text the receipt was parsed from.
        store_confidence: Detector confidence of the profile used, or None
            when the store was not identified.
        now: Reference time for the date check (defaults to the current time).

    Returns:
        ReceiptConfidence with the weighted score, the factor breakdown, the
        rating and the issues in factor order.
    """
    now = now or datetime.now()
    issues: list[str] = []
    factors = {
        "product_count": _product_count_factor(len(receipt.items), issues),
        "price_validity": _price_validity_factor(receipt, issues),
        "total_consistency": _total_consistency_factor(receipt, issues),
        "store_detection": _store_detection_factor(store_confidence, issues),
        "ocr_quality": _ocr_quality_factor(ocr_text, issues),
        "name_quality": _name_quality_factor(receipt, issues),
        "date_validity": _date_validity_factor(receipt, now, issues),
    }
    score = sum(FACTOR_WEIGHTS[name] * value for name, value in factors.items())
    score = min(max(score, 0.0), 1.0)
    rating = rating_for(score)

    logger.debug(
        "Confidence %.1f%% (%s): %s",
        score * 100,
        rating,
        ", ".join(f"{name}={value:.2f}" for name, value in sorted(factors.items())),
    )
    for issue in issues:
        logger.debug("Confidence issue: %s", issue)

    return ReceiptConfidence(score=score, factors=factors, rating=rating, issues=tuple(issues))
