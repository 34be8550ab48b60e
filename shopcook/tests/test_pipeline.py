"""End-to-end tests for the text-to-receipt pipeline."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest

from shopcook.domain.receipt import StorageSection
from shopcook.receipt.ocr_result_parser import ReceiptPipeline
from shopcook.runtime.pipeline import build_receipt_pipeline

ALDI_RECEIPT = "ALDI SÜD\n...605084\nBio Apfelmus 360g\n0,69 A\n...BETRAG 12,34 EUR"

UNBRANDED_ITEMS = [
    ("Bananen", "1,29"),
    ("Vollmilch", "1,19"),
    ("Kartoffeln", "2,49"),
    ("Tomaten", "1,99"),
    ("Gurke", "0,69"),
    ("Butter", "2,29"),
    ("Brot", "1,79"),
    ("Käse", "3,49"),
    ("Joghurt", "0,89"),
    ("Äpfel", "1,99"),
]
UNBRANDED_RECEIPT = "\n".join(f"{name}  {price}" for name, price in UNBRANDED_ITEMS)


def test_aldi_receipt(pipeline: ReceiptPipeline, fixed_now) -> None:
    outcome = pipeline.parse(ALDI_RECEIPT)

    assert outcome.ok
    assert outcome.store_match is not None
    assert outcome.store_match.store_id == "aldi_sued"
    assert outcome.store_match.confidence == pytest.approx(0.6)
    assert not outcome.used_fallback
    assert outcome.attempts == ()
    assert outcome.trace == ("detecting", "parsing", "scoring", "done")

    receipt = outcome.receipt
    assert receipt is not None
    assert receipt.store_name == "ALDI Süd"
    assert len(receipt.items) == 1
    item = receipt.items[0]
    assert (item.name, item.price, item.section) == ("Bio Apfelmus 360g", Decimal("0.69"), StorageSection.PANTRY)
    assert receipt.total == Decimal("12.34")
    assert receipt.date == fixed_now
    assert receipt.date_is_placeholder

    confidence = outcome.confidence
    assert confidence is not None
    assert confidence.factors["store_detection"] == pytest.approx(0.6)
    assert confidence.factors["total_consistency"] == 0.4
    assert confidence.rating == "medium"
    assert outcome.is_low_confidence


def test_unbranded_receipt_uses_generic_parser(pipeline: ReceiptPipeline) -> None:
    outcome = pipeline.parse(UNBRANDED_RECEIPT)

    assert outcome.ok
    assert outcome.store_match is None
    assert outcome.used_fallback
    assert outcome.attempts == ("no_store_detected",)
    assert outcome.trace == ("detecting", "fallback", "scoring", "done")

    receipt = outcome.receipt
    assert receipt is not None
    assert receipt.store_name == "Unknown Store"
    assert [item.name for item in receipt.items] == [name for name, _ in UNBRANDED_ITEMS]
    assert receipt.total == Decimal("18.10")
    assert receipt.total_is_computed

    confidence = outcome.confidence
    assert confidence is not None
    assert confidence.factors["store_detection"] == 0.3
    assert "Store not identified" in confidence.issues


def test_tax_table_does_not_name_the_store(pipeline: ReceiptPipeline) -> None:
    outcome = pipeline.parse("Brot  1,79\nMilch  1,19\nZU ZAHLEN 2,98\nMwSt  Netto  Brutto\n7%  2,79  2,98")

    assert outcome.ok
    assert outcome.store_match is None
    receipt = outcome.receipt
    assert receipt is not None
    assert (receipt.store_name, receipt.store_id) == ("Unknown Store", None)
    assert [item.name for item in receipt.items] == ["Brot", "Milch"]
    assert receipt.total == Decimal("2.98")
    assert not receipt.total_is_computed


@pytest.mark.parametrize("text", ["", "   \n\t \n"])
def test_empty_input(pipeline: ReceiptPipeline, text: str) -> None:
    outcome = pipeline.parse(text)

    assert not outcome.ok
    assert outcome.failure == "empty_input"
    assert outcome.receipt is None
    assert outcome.confidence is None
    assert outcome.trace == ("failed",)
    assert not outcome.is_low_confidence


def test_detected_store_keeps_its_name_after_fallback(pipeline: ReceiptPipeline) -> None:
    outcome = pipeline.parse("ALDI SÜD\nJoghurt\n0,89 x 3 = 2,67")

    assert outcome.ok
    assert outcome.used_fallback
    assert outcome.attempts == ("no_product_section",)
    assert outcome.trace == ("detecting", "parsing", "fallback", "scoring", "done")

    receipt = outcome.receipt
    assert receipt is not None
    assert (receipt.store_name, receipt.store_id) == ("ALDI Süd", "aldi_sued")
    assert [(item.name, item.quantity) for item in receipt.items] == [("Joghurt", 3)]
    assert outcome.confidence is not None
    assert outcome.confidence.factors["store_detection"] == pytest.approx(0.5)


def test_unparseable_text_fails_after_fallback(pipeline: ReceiptPipeline) -> None:
    outcome = pipeline.parse("Vielen Dank für Ihren Einkauf")

    assert outcome.status == "failed"
    assert outcome.failure == "no_line_items"
    assert outcome.used_fallback
    assert outcome.attempts == ("no_store_detected",)
    assert outcome.trace == ("detecting", "fallback", "failed")


def test_ocr_errors_are_corrected_before_detection(pipeline: ReceiptPipeline) -> None:
    outcome = pipeline.parse("ALDT S00D\n605084\nVollmilch\n1,19 A\n605085\nBananen\n2,4O A\nSUMME 3,68")

    assert outcome.store_match is not None
    assert outcome.store_match.store_id == "aldi_sued"
    assert outcome.receipt is not None
    assert [item.price for item in outcome.receipt.items] == [Decimal("1.19"), Decimal("2.40")]


def test_parse_many_keeps_input_order(pipeline: ReceiptPipeline) -> None:
    outcomes = pipeline.parse_many([ALDI_RECEIPT, "", UNBRANDED_RECEIPT], max_workers=3)

    assert [outcome.status for outcome in outcomes] == ["parsed", "failed", "parsed"]
    assert outcomes[0].receipt is not None and outcomes[0].receipt.store_id == "aldi_sued"
    assert outcomes[2].receipt is not None and outcomes[2].receipt.store_id is None
    assert pipeline.parse_many([]) == []


def test_parse_is_repeatable(pipeline: ReceiptPipeline) -> None:
    first = pipeline.parse(ALDI_RECEIPT)
    second = pipeline.parse(ALDI_RECEIPT)
    assert first.confidence == second.confidence
    assert [item.name for item in first.receipt.items] == [item.name for item in second.receipt.items]


def test_build_pipeline_from_rule_files(rules_dir: Path, fixed_now) -> None:
    pipeline = build_receipt_pipeline(
        profile_paths=(str(rules_dir / "store_profiles.toml"),),
        correction_paths=(str(rules_dir / "ocr_corrections.toml"),),
        classifier_paths=(str(rules_dir / "default_item_classifier.toml"),),
        clock=lambda: fixed_now,
    )

    outcome = pipeline.parse(ALDI_RECEIPT)

    assert len(pipeline.profiles) == 12
    assert outcome.receipt is not None
    assert outcome.receipt.date == fixed_now


def test_higher_detection_threshold_forces_fallback(pipeline: ReceiptPipeline) -> None:
    strict = ReceiptPipeline(
        profiles=pipeline.profiles,
        classifier=pipeline.classifier,
        corrections=pipeline.corrections,
        detection_threshold=0.9,
        clock=pipeline.clock,
    )

    outcome = strict.parse(ALDI_RECEIPT)

    assert outcome.store_match is None
    assert outcome.attempts == ("no_store_detected",)
