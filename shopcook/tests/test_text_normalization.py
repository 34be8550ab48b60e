"""Tests for OCR text normalization."""

from __future__ import annotations

import pytest

from shopcook.receipt.text_normalization import (
    build_ocr_corrections,
    correct_price_digits,
    normalize_text,
    strip_isolated_symbols,
    validate_receipt_text,
)

SAMPLES = [
    "",
    "ALDT S00D\n605084\nBio Apfelmus 360g\n0,69 A",
    "L1DL\nBananen  1O,99 A\nT0TAL 5,OO",
    "CARREF0UR ~ MARKET\nYaourt nature 1,19 €\nTOTAL TTC 1,19",
    "SUI/1I/IE 12,34\nDennan 01.02.2026\nOni ine Kauf",
    "| ## \n  * \nN0RD NORO S00D SOOD",
    "1O,99,5O\nl,99 I,5O SO.BI",
    " ÿ﻿ weird \x00 control\n\n\n",
]


@pytest.mark.parametrize("text", SAMPLES)
def test_normalize_is_idempotent(text: str, corrections) -> None:
    once = normalize_text(text, corrections)
    assert normalize_text(once, corrections) == once


@pytest.mark.parametrize("text", SAMPLES)
def test_normalize_keeps_line_structure(text: str, corrections) -> None:
    assert normalize_text(text, corrections).count("\n") == text.count("\n")


def test_store_tokens_are_corrected(corrections) -> None:
    assert normalize_text("ALDT S00D", corrections) == "ALDI SÜD"
    assert normalize_text("ALDO N0RD", corrections) == "ALDI NORD"
    assert normalize_text("L1DL", corrections) == "LIDL"


def test_store_tokens_only_replace_whole_tokens(corrections) -> None:
    assert normalize_text("SODA 1,29", corrections) == "SODA 1,29"


def test_keywords_are_corrected(corrections) -> None:
    assert normalize_text("T0TAL 5,00", corrections) == "TOTAL 5,00"
    assert normalize_text("SUI/1I/IE 12,34", corrections) == "SUMME 12,34"
    assert normalize_text("Dennan: 01.02.2026", corrections) == "Datum: 01.02.2026"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Milch 1O,99", "Milch 10,99"),
        ("Milch 5,OO", "Milch 5,00"),
        ("Milch l,99", "Milch 1,99"),
        ("Milch 2,B9 A", "Milch 2,89 A"),
    ],
)
def test_price_digit_confusions_are_fixed(raw: str, expected: str, corrections) -> None:
    assert correct_price_digits(raw, corrections) == expected


def test_price_digit_fix_leaves_words_alone(corrections) -> None:
    text = "BIO SOS.BI Salz"
    assert correct_price_digits(text, corrections) == text


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Brot S.12", "Brot 5.12"),
        ("Brot 2,4O", "Brot 2,40"),
        ("Brot SO.BI", "Brot SO.BI"),
        ("Brot XS.12", "Brot XS.12"),
    ],
)
def test_confusable_letters_anywhere_in_a_price_token(raw: str, expected: str, corrections) -> None:
    assert correct_price_digits(raw, corrections) == expected


def test_isolated_symbols_are_stripped_but_currency_kept(corrections) -> None:
    assert strip_isolated_symbols("Milch | 1,19 €", corrections) == "Milch  1,19 €"
    assert strip_isolated_symbols("K-U-N-D-E", corrections) == "K-U-N-D-E"


def test_custom_operations_run_in_order(corrections) -> None:
    def upper(text, _tables):
        return text.upper()

    assert normalize_text("aldt", corrections, operations=[upper]) == "ALDT"


def test_build_corrections_later_configs_win() -> None:
    corrections = build_ocr_corrections(
        [
            {"store_tokens": {"ALDT": "ALDI"}},
            {"store_tokens": {"ALDT": "ALDO"}, "digit_confusions": {"Z": "2", "bad": "x"}},
        ]
    )
    assert corrections.store_tokens == {"ALDT": "ALDO"}
    assert corrections.digit_confusions["Z"] == "2"
    assert "bad" not in corrections.digit_confusions


def test_build_corrections_drops_chained_entries() -> None:
    corrections = build_ocr_corrections([{"keywords": {"T0TAL": "TOTA1", "TOTA1": "TOTAL"}}])
    assert corrections.keywords == {"TOTA1": "TOTAL"}


def test_validate_receipt_text_flags_short_text() -> None:
    validation = validate_receipt_text("hello")
    assert not validation.is_valid
    assert "No price patterns found" in validation.issues


def test_validate_receipt_text_accepts_receipt_like_text() -> None:
    text = "ALDI SÜD\n" + "\n".join(f"Artikel {i}  1,{i}9 A" for i in range(10)) + "\nSUMME 12,34"
    validation = validate_receipt_text(text)
    assert validation.is_valid
    assert validation.issues == ()
