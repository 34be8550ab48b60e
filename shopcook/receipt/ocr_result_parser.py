"""Parse raw OCR text into a structured, scored Receipt.

ReceiptPipeline runs the stages in order:

    normalize -> detect store -> profile parser -> (generic fallback) -> score

and records the states it went through. Expected failures (no store, no
product section, no items) are values on the returned ParseOutcome, never
exceptions. All collaborators are passed in at construction; the pipeline
keeps no per-request state, so one instance can serve many threads.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime

from shopcook.domain.receipt import FailureReason, ParseOutcome, PipelineState, StoreMatch
from shopcook.receipt.confidence import score_receipt
from shopcook.receipt.item_categories import ProductClassifier
from shopcook.receipt.ocr_parser.generic_parser import parse_generic
from shopcook.receipt.ocr_parser.grammar_parser import GrammarParseResult, parse_with_profile
from shopcook.receipt.store_detection import MATCH_THRESHOLD, detect_store
from shopcook.receipt.store_profiles import StoreProfile, profiles_by_id
from shopcook.receipt.text_normalization import OcrCorrections, normalize_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReceiptPipeline:
    """Text-to-receipt interpreter with injected configuration and services."""

    profiles: tuple[StoreProfile, ...]
    classifier: ProductClassifier = field(default_factory=ProductClassifier)
    corrections: OcrCorrections | None = None
    detection_threshold: float = MATCH_THRESHOLD
    clock: Callable[[], datetime] = datetime.now
    _profiles_by_id: dict[str, StoreProfile] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "profiles", tuple(self.profiles))
        object.__setattr__(self, "_profiles_by_id", profiles_by_id(self.profiles))

    def parse(self, text: str) -> ParseOutcome:
        """Interpret one receipt text."""
        if not text or not text.strip():
            return ParseOutcome(status="failed", failure="empty_input", trace=("failed",))

        trace: list[PipelineState] = ["detecting"]
        attempts: list[FailureReason] = []
        now = self.clock()
        normalized = normalize_text(text, self.corrections)

        match = detect_store(normalized, self.profiles, self.detection_threshold)
        result: GrammarParseResult | None = None
        if match is None:
            attempts.append("no_store_detected")
        else:
            trace.append("parsing")
            result = parse_with_profile(normalized, self._profiles_by_id[match.store_id], self.classifier, now=now)
            if result.failure is not None:
                attempts.append(result.failure)

        used_fallback = result is None or result.receipt is None
        if used_fallback:
            logger.debug("Falling back to generic parser after %s", ", ".join(attempts))
            trace.append("fallback")
            result = parse_generic(normalized, self.classifier, now=now)
            if result.receipt is None:
                failure = result.failure or "no_line_items"
                trace.append("failed")
                return ParseOutcome(
                    status="failed",
                    failure=failure,
                    store_match=match,
                    used_fallback=True,
                    attempts=tuple(attempts),
                    trace=tuple(trace),
                )

        receipt = result.receipt
        if used_fallback and match is not None:
            # The store is known even though its layout did not parse.
            receipt = dataclasses.replace(receipt, store_name=match.display_name, store_id=match.store_id)

        trace.append("scoring")
        confidence = score_receipt(
            receipt,
            text,
            _store_confidence(match),
            now=now,
        )
        trace.append("done")
        logger.debug(
            "Parsed %d item(s) from %s (confidence %.2f, %s)",
            len(receipt.items),
            receipt.store_name,
            confidence.score,
            confidence.rating,
        )
        return ParseOutcome(
            status="parsed",
            receipt=receipt,
            confidence=confidence,
            store_match=match,
            used_fallback=used_fallback,
            attempts=tuple(attempts),
            trace=tuple(trace),
        )

    def parse_many(self, texts: Iterable[str], max_workers: int | None = None) -> list[ParseOutcome]:
        """Parse independent receipt texts in parallel; results keep input order."""
        items: Sequence[str] = list(texts)
        if not items:
            return []
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            return list(executor.map(self.parse, items))


def _store_confidence(match: StoreMatch | None) -> float | None:
    return match.confidence if match is not None else None
