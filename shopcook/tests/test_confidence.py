"""Tests for receipt confidence scoring."""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from shopcook.domain.receipt import LineItem, Receipt
from shopcook.receipt.confidence import FACTOR_WEIGHTS, garbled_text_ratio, rating_for, score_receipt

NOW = datetime(2026, 3, 14, 12, 0)


def _receipt(
    items: list[tuple[str, str]],
    total: str,
    *,
    date: datetime = NOW - timedelta(days=1),
    date_is_placeholder: bool = False,
) -> Receipt:
    return Receipt(
        store_name="ALDI Süd",
        store_id="aldi_sued",
        date=date,
        date_is_placeholder=date_is_placeholder,
        total=Decimal(total),
        items=tuple(LineItem(raw_line=f"{name} {price}", name=name, price=Decimal(price)) for name, price in items),
    )


CONSISTENT = _receipt([("Vollmilch", "1.19"), ("Bananen", "2.49")], "3.68")
CONSISTENT_TEXT = "Vollmilch 1,19\nBananen 2,49\nSUMME 3,68"


def test_weights_sum_to_one() -> None:
    assert sum(FACTOR_WEIGHTS.values()) == pytest.approx(1.0)


@pytest.mark.parametrize(
    ("score", "rating"),
    [(1.0, "high"), (0.8, "high"), (0.79, "medium"), (0.5, "medium"), (0.49, "low"), (0.0, "low")],
)
def test_rating_thresholds(score: float, rating: str) -> None:
    assert rating_for(score) == rating


def test_consistent_receipt_scores_high() -> None:
    confidence = score_receipt(CONSISTENT, CONSISTENT_TEXT, 1.0, now=NOW)

    assert confidence.score == pytest.approx(1.0)
    assert confidence.rating == "high"
    assert confidence.issues == ()
    assert set(confidence.factors) == set(FACTOR_WEIGHTS)
    assert all(value == 1.0 for value in confidence.factors.values())


def test_score_is_weighted_sum_of_factors() -> None:
    confidence = score_receipt(CONSISTENT, CONSISTENT_TEXT, 0.45, now=NOW)
    expected = sum(FACTOR_WEIGHTS[name] * value for name, value in confidence.factors.items())
    assert confidence.score == pytest.approx(expected)
    assert confidence.factors["store_detection"] == 0.45


def test_scoring_is_deterministic() -> None:
    first = score_receipt(CONSISTENT, CONSISTENT_TEXT, 0.6, now=NOW)
    second = score_receipt(CONSISTENT, CONSISTENT_TEXT, 0.6, now=NOW)
    assert first == second


def test_zero_total_single_free_item_scores_low() -> None:
    receipt = _receipt([("Wasser", "0.00")], "0.00", date=NOW, date_is_placeholder=True)

    confidence = score_receipt(receipt, "Wasser 0,00\nSUMME 0,00", None, now=NOW)

    assert confidence.factors["product_count"] == 0.6
    assert confidence.factors["price_validity"] == 0.0
    assert confidence.factors["total_consistency"] == 0.3
    assert confidence.factors["store_detection"] == 0.3
    assert confidence.score == pytest.approx(0.492)
    assert confidence.rating == "low"
    assert confidence.issues == (
        "Only 1 product found - unusual for a receipt",
        "1 product(s) with invalid prices",
        "Total is €0.00",
        "Store not identified",
        "Receipt date not found - using scan date",
    )


@pytest.mark.parametrize(
    ("total", "factor", "issue"),
    [
        ("4.00", 1.0, None),
        ("5.00", 0.7, "Total differs from sum by €1.32"),
        ("10.00", 0.4, "Total (€10.00) doesn't match sum (€3.68)"),
    ],
)
def test_total_consistency(total: str, factor: float, issue: str | None) -> None:
    receipt = _receipt([("Vollmilch", "1.19"), ("Bananen", "2.49")], total)

    confidence = score_receipt(receipt, CONSISTENT_TEXT, 1.0, now=NOW)

    assert confidence.factors["total_consistency"] == factor
    if issue is None:
        assert confidence.issues == ()
    else:
        assert issue in confidence.issues


@pytest.mark.parametrize(
    ("count", "factor"),
    [(0, 0.2), (1, 0.6), (2, 1.0), (100, 1.0), (101, 0.4)],
)
def test_product_count_factor(count: int, factor: float) -> None:
    receipt = _receipt([("Vollmilch", "1.00")] * count, f"{count}.00")
    confidence = score_receipt(receipt, CONSISTENT_TEXT, 1.0, now=NOW)
    assert confidence.factors["product_count"] == factor


def test_no_products() -> None:
    confidence = score_receipt(_receipt([], "3.68"), CONSISTENT_TEXT, 1.0, now=NOW)
    assert confidence.factors["price_validity"] == 0.0
    assert "No products found" in confidence.issues
    assert "Product names too short (avg: 0 chars)" in confidence.issues


@pytest.mark.parametrize(
    ("date", "factor", "issue"),
    [
        (NOW - timedelta(days=30), 1.0, None),
        (NOW - timedelta(days=400), 0.5, "Receipt date is over 1 year old"),
        (NOW + timedelta(days=2), 0.3, "Receipt date is in the future"),
    ],
)
def test_date_validity(date: datetime, factor: float, issue: str | None) -> None:
    receipt = _receipt([("Vollmilch", "1.19"), ("Bananen", "2.49")], "3.68", date=date)

    confidence = score_receipt(receipt, CONSISTENT_TEXT, 1.0, now=NOW)

    assert confidence.factors["date_validity"] == factor
    assert confidence.issues == (() if issue is None else (issue,))


@pytest.mark.parametrize(
    ("names", "factor", "issue"),
    [
        (["Ei", "Tee"], 0.4, "Product names too short (avg: 2 chars)"),
        (["Vollmilch", "Bananen"], 1.0, None),
        (["X" * 60, "Y" * 60], 0.6, "Product names unusually long (avg: 60 chars)"),
    ],
)
def test_name_quality(names: list[str], factor: float, issue: str | None) -> None:
    receipt = _receipt([(name, "1.00") for name in names], "2.00")
    confidence = score_receipt(receipt, CONSISTENT_TEXT, 1.0, now=NOW)
    assert confidence.factors["name_quality"] == factor
    if issue is not None:
        assert issue in confidence.issues


def test_invalid_prices_lower_price_validity() -> None:
    receipt = _receipt([("Vollmilch", "1.19"), ("Fernseher", "1299.00")], "1300.19")
    confidence = score_receipt(receipt, CONSISTENT_TEXT, 1.0, now=NOW)
    assert confidence.factors["price_validity"] == 0.5
    assert "1 product(s) with invalid prices" in confidence.issues


def test_noisy_text_is_reported() -> None:
    confidence = score_receipt(CONSISTENT, "###|||***", 1.0, now=NOW)
    assert confidence.factors["ocr_quality"] == 0.0
    assert "High noise in OCR text (100% special chars)" in confidence.issues


@pytest.mark.parametrize(
    ("text", "ratio"),
    [
        ("", 0.0),
        ("Brot 2,49\nSUMME 2,49 €", 0.0),
        ("~~", 1.0),
        ("ab~~", 0.5),
    ],
)
def test_garbled_text_ratio(text: str, ratio: float) -> None:
    assert garbled_text_ratio(text) == pytest.approx(ratio)
