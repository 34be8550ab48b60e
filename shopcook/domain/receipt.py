"""Data models for receipt text interpretation."""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Literal


class StorageSection(str, Enum):
    """Where a purchased product is expected to be stored."""

    FRIDGE = "fridge"
    FREEZER = "freezer"
    PANTRY = "pantry"
    UNKNOWN = "unknown"

    @classmethod
    def from_label(cls, label: str | None) -> StorageSection:
        """Map a free-form label (rule section, model output) to a section."""
        normalized = (label or "").strip().lower()
        for section in cls:
            if section.value == normalized:
                return section
        return cls.UNKNOWN


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class LineItem:
    """A single purchased product on a receipt."""

    raw_line: str
    name: str
    price: Decimal
    section: StorageSection = StorageSection.UNKNOWN
    quantity: int = 1
    id: str = field(default_factory=_new_id)


@dataclass(frozen=True)
class Receipt:
    """Parsed receipt data."""

    store_name: str
    date: datetime
    total: Decimal
    items: tuple[LineItem, ...] = ()
    store_id: str | None = None
    date_is_placeholder: bool = False
    # True when no total line was found and the total is the item sum.
    total_is_computed: bool = False
    id: str = field(default_factory=_new_id)

    @property
    def items_sum(self) -> Decimal:
        return sum((item.price for item in self.items), Decimal("0.00"))


@dataclass(frozen=True)
class StoreMatch:
    """Best store profile for a receipt text, with per-factor scores."""

    store_id: str
    display_name: str
    confidence: float
    factors: Mapping[str, float]


ClassificationMethod = Literal["rules", "model"]


@dataclass(frozen=True)
class ClassificationResult:
    """Storage section chosen for a product name."""

    section: StorageSection
    confidence: float
    method: ClassificationMethod


ConfidenceRating = Literal["high", "medium", "low"]


@dataclass(frozen=True)
class ReceiptConfidence:
    """Overall parse quality score with its factor breakdown."""

    score: float
    factors: Mapping[str, float]
    rating: ConfidenceRating
    issues: tuple[str, ...] = ()


FailureReason = Literal[
    "empty_input",
    "no_store_detected",
    "no_product_section",
    "no_line_items",
]

PipelineState = Literal["detecting", "parsing", "fallback", "scoring", "done", "failed"]


@dataclass(frozen=True)
class ParseOutcome:
    """Outcome of interpreting one receipt text."""

    status: Literal["parsed", "failed"]
    receipt: Receipt | None = None
    confidence: ReceiptConfidence | None = None
    failure: FailureReason | None = None
    store_match: StoreMatch | None = None
    used_fallback: bool = False
    # Non-fatal reasons met on the way, in order (e.g. no_store_detected).
    attempts: tuple[FailureReason, ...] = ()
    trace: tuple[PipelineState, ...] = ()

    @property
    def ok(self) -> bool:
        return self.status == "parsed"

    @property
    def is_low_confidence(self) -> bool:
        """A receipt was produced but should be reviewed by the user."""
        return self.confidence is not None and self.confidence.rating != "high"
