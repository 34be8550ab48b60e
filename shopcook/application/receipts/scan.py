"""Receipt scan workflow orchestration."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from shopcook.domain.receipt import ParseOutcome
from shopcook.receipt.ocr_result_parser import ReceiptPipeline
from shopcook.runtime.ocr_service import OCRServiceUnavailable, call_ocr_service, ocr_result_to_text

ScanStatus = Literal[
    "file_not_found",
    "ocr_unavailable",
    "parsed",
    "failed",
]


@dataclass(frozen=True)
class ReceiptScanRequest:
    """Inputs for running receipt scan workflow."""

    image_path: Path
    ocr_url: str
    min_line_confidence: float = 0.0


@dataclass(frozen=True)
class ReceiptScanResult:
    """Outcome from receipt scan workflow."""

    status: ScanStatus
    outcome: ParseOutcome | None = None
    text: str | None = None
    error: str | None = None


def run_receipt_scan(request: ReceiptScanRequest, pipeline: ReceiptPipeline) -> ReceiptScanResult:
    """Run scan flow: OCR service -> text -> pipeline."""
    if not request.image_path.exists():
        return ReceiptScanResult(
            status="file_not_found",
            error=f"Receipt file not found: {request.image_path}",
        )

    try:
        ocr_result = call_ocr_service(request.image_path, request.ocr_url)
    except OCRServiceUnavailable as exc:
        return ReceiptScanResult(
            status="ocr_unavailable",
            error=str(exc),
        )

    text = ocr_result_to_text(ocr_result, min_confidence=request.min_line_confidence)
    outcome = pipeline.parse(text)
    return ReceiptScanResult(
        status="parsed" if outcome.ok else "failed",
        outcome=outcome,
        text=text,
    )
