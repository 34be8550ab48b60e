"""Receipt command handlers used by the unified CLI."""

import argparse
import json
import sys
from pathlib import Path

from shopcook.receipt.formatter import format_outcome, format_store_scores, outcome_to_dict
from shopcook.receipt.ocr_result_parser import ReceiptPipeline
from shopcook.receipt.store_detection import score_stores
from shopcook.receipt.text_normalization import normalize_text, validate_receipt_text
from shopcook.runtime import build_receipt_pipeline, get_logger

logger = get_logger(__name__)


def _read_text(source: str) -> str | None:
    """Read OCR text from a file path, or stdin for "-"."""
    if source == "-":
        return sys.stdin.read()
    path = Path(source)
    if not path.exists():
        print(f"Error: file not found: {path}")
        return None
    return path.read_text(encoding="utf-8")


def _print_outcome(outcome_text: str, diagnostics: list[str]) -> None:
    print(outcome_text)
    for issue in diagnostics:
        print(f"; NOTE {issue}")


def _report(args: argparse.Namespace, text: str, pipeline: ReceiptPipeline) -> int:
    outcome = pipeline.parse(text)
    if args.json:
        print(json.dumps(outcome_to_dict(outcome), indent=2, ensure_ascii=False))
    else:
        validation = validate_receipt_text(text)
        _print_outcome(format_outcome(outcome), list(validation.issues))
    if not outcome.ok:
        logger.info("Receipt could not be parsed: %s", outcome.failure)
        return 1
    return 0


def cmd_parse(args: argparse.Namespace) -> int:
    """Parse OCR text from a file (or stdin) and print the receipt."""
    text = _read_text(args.source)
    if text is None:
        return 1
    return _report(args, text, build_receipt_pipeline())


def cmd_scan(args: argparse.Namespace) -> int:
    """Send an image to the OCR service, then parse the recognized text."""
    from shopcook.application.receipts.scan import ReceiptScanRequest, run_receipt_scan

    result = run_receipt_scan(
        ReceiptScanRequest(
            image_path=Path(args.image),
            ocr_url=args.ocr_url,
            min_line_confidence=args.min_confidence,
        ),
        build_receipt_pipeline(),
    )

    if result.status == "file_not_found":
        logger.error("%s", result.error)
        print(f"Error: {result.error}")
        return 1

    if result.status == "ocr_unavailable":
        logger.error("%s", result.error)
        print(f"OCR service unavailable: {result.error}")
        print("Make sure the OCR service is running before scanning receipts.")
        return 1

    if result.outcome is None:
        print(f"Error: scan finished without a parse result ({result.status})")
        return 1
    if args.json:
        print(json.dumps(outcome_to_dict(result.outcome), indent=2, ensure_ascii=False))
    else:
        _print_outcome(format_outcome(result.outcome), list(validate_receipt_text(result.text or "").issues))
    return 0 if result.status == "parsed" else 1


def cmd_detect(args: argparse.Namespace) -> int:
    """Print detector scores for every configured store profile."""
    text = _read_text(args.source)
    if text is None:
        return 1
    pipeline = build_receipt_pipeline()
    matches = score_stores(normalize_text(text, pipeline.corrections), pipeline.profiles)
    print(format_store_scores(matches))
    return 0


def cmd_classify(args: argparse.Namespace) -> int:
    """Print the storage section chosen for each product name."""
    classifier = build_receipt_pipeline().classifier
    width = max(len(name) for name in args.names)
    for name in args.names:
        result = classifier.classify(name)
        food = "" if classifier.is_food(name) else "  (non-food)"
        print(f"{name.ljust(width)}  {result.section.value}  {result.confidence:.2f} [{result.method}]{food}")
    return 0


def cmd_profiles(args: argparse.Namespace) -> int:
    """List configured store profiles in declaration order."""
    for profile in build_receipt_pipeline().profiles:
        print(f"{profile.id:<12} {profile.display_name:<14} {profile.price_location}")
    return 0
