"""Client for the external OCR service.

The service is an out-of-process text recognizer reached over HTTP. It
takes an image and answers with recognized lines; everything after that
is pure text interpretation.
"""

import time
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import httpx

from shopcook.runtime.logging import get_logger

logger = get_logger(__name__)

DEFAULT_OCR_URL = "http://localhost:8001"
OCR_TIMEOUT_SECONDS = 60.0

_IMAGE_CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".heic": "image/heic",
}


class OCRServiceUnavailable(RuntimeError):
    """Raised when the OCR service cannot be reached or returns an error."""


def call_ocr_service(image_path: Path, ocr_url: str = DEFAULT_OCR_URL) -> dict[str, Any]:
    """
    Send a receipt image to the OCR service.

    Returns:
        The service's JSON response.

    Raises:
        OCRServiceUnavailable: Connection failure or non-200 response.
    """
    ocr_url = ocr_url.rstrip("/")
    logger.info("Sending receipt to OCR service at %s...", ocr_url)
    content_type = _IMAGE_CONTENT_TYPES.get(image_path.suffix.lower(), "application/octet-stream")

    try:
        image_bytes = image_path.read_bytes()

        start_time = time.time()
        response = httpx.post(
            f"{ocr_url}/ocr",
            files={"file": (image_path.name, image_bytes, content_type)},
            timeout=OCR_TIMEOUT_SECONDS,
        )
        elapsed_time = time.time() - start_time
        logger.info("OCR service returned in %.2f seconds", elapsed_time)

        if response.status_code != 200:
            # Response body may echo receipt text; only the status is logged.
            logger.error("OCR service error: %s", response.status_code)
            raise OCRServiceUnavailable(f"OCR service error: {response.status_code}")

        result = response.json()
    except httpx.RequestError as e:
        logger.error("Failed to connect to OCR service: %s", e)
        raise OCRServiceUnavailable(f"Failed to connect to OCR service: {e}") from e

    if not isinstance(result, dict):
        raise OCRServiceUnavailable("OCR service returned an unexpected payload")
    return result


def _iter_result_lines(ocr_result: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    if isinstance(ocr_result.get("lines"), list):
        return [line for line in ocr_result["lines"] if isinstance(line, Mapping)]
    lines: list[Mapping[str, Any]] = []
    for page in ocr_result.get("pages", []) or []:
        if isinstance(page, Mapping):
            lines.extend(line for line in page.get("lines", []) if isinstance(line, Mapping))
    return lines


def ocr_result_to_text(ocr_result: Mapping[str, Any], min_confidence: float = 0.0) -> str:
    """
    Turn an OCR service response into newline-delimited receipt text.

    Line-level results ({"lines": [{"text", "confidence"}]}, optionally
    grouped in "pages") are preferred; lines below `min_confidence` are
    dropped. Without lines, "full_text" is returned as-is.
    """
    lines = _iter_result_lines(ocr_result)
    if lines:
        kept = []
        for line in lines:
            text = str(line.get("text") or "").strip()
            confidence = line.get("confidence")
            if not text:
                continue
            if confidence is not None and float(confidence) < min_confidence:
                logger.debug("Dropping low-confidence OCR line (%.2f)", float(confidence))
                continue
            kept.append(text)
        return "\n".join(kept)
    return str(ocr_result.get("full_text") or "")
