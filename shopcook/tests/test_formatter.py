"""Tests for receipt output formatting."""

from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal

from shopcook.domain.receipt import LineItem, ParseOutcome, Receipt, StorageSection, StoreMatch
from shopcook.receipt.formatter import format_outcome, format_receipt, format_store_scores, outcome_to_dict


def _receipt() -> Receipt:
    return Receipt(
        store_name="REWE",
        store_id="rewe",
        date=datetime(2026, 3, 12, 9, 30),
        total=Decimal("3.77"),
        items=(
            LineItem(raw_line="Vollmilch 1,19 B", name="Vollmilch", price=Decimal("1.19"), section=StorageSection.FRIDGE),
            LineItem(
                raw_line="Bananen\n2 Stk x 1,29",
                name="Bananen",
                price=Decimal("2.58"),
                section=StorageSection.PANTRY,
                quantity=2,
            ),
        ),
    )


def test_format_receipt_aligns_items() -> None:
    output = format_receipt(_receipt())

    assert output.splitlines() == [
        "Store: REWE",
        "Date:  2026-03-12 09:30",
        "Total: 3.77 EUR",
        "Items: 2",
        "  Vollmilch     fridge  1.19 EUR",
        "  Bananen (x2)  pantry  2.58 EUR",
    ]


def test_format_receipt_marks_placeholder_date_and_computed_total() -> None:
    receipt = Receipt(
        store_name="Unknown Store",
        date=datetime(2026, 3, 14, 12, 0),
        date_is_placeholder=True,
        total=Decimal("1.29"),
        total_is_computed=True,
        items=(LineItem(raw_line="Bananen 1,29", name="Bananen", price=Decimal("1.29")),),
    )

    lines = format_receipt(receipt).splitlines()

    assert lines[1] == "Date:  2026-03-14 12:00  ; not found on receipt"
    assert lines[2] == "Total: 1.29 EUR  ; sum of items"


def test_failed_outcome_lists_states() -> None:
    outcome = ParseOutcome(
        status="failed",
        failure="no_line_items",
        used_fallback=True,
        attempts=("no_store_detected",),
        trace=("detecting", "fallback", "failed"),
    )
    assert format_outcome(outcome) == "Failed: no_line_items (states: detecting -> fallback -> failed)"


def test_store_scores_are_sorted() -> None:
    matches = [
        StoreMatch("lidl", "LIDL", 0.27, {"name": 0.0, "structure": 0.9, "footer": 0.0}),
        StoreMatch("aldi_sued", "ALDI Süd", 0.6, {"name": 1.0, "structure": 0.0, "footer": 0.5}),
    ]

    lines = format_store_scores(matches).splitlines()

    assert lines[0].startswith("aldi_sued  0.60")
    assert lines[1].startswith("lidl       0.27")
    assert format_store_scores([]) == ""


def test_outcome_to_dict_is_json_ready() -> None:
    outcome = ParseOutcome(status="parsed", receipt=_receipt(), trace=("detecting", "parsing", "scoring", "done"))

    data = json.loads(json.dumps(outcome_to_dict(outcome)))

    assert data["status"] == "parsed"
    assert data["receipt"]["total"] == "3.77"
    assert data["receipt"]["date"] == "2026-03-12T09:30:00"
    assert [item["section"] for item in data["receipt"]["items"]] == ["fridge", "pantry"]
    assert data["receipt"]["items"][1]["quantity"] == 2
    assert data["confidence"] is None
    assert data["store_match"] is None
