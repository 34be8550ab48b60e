"""Core domain models for shopcook.

This module provides the value objects shared by every pipeline stage:
- Receipt, LineItem: Parsed receipt models
- StoreMatch, ClassificationResult, ReceiptConfidence: Per-parse diagnostics
- ParseOutcome: What the pipeline hands back to callers

Usage:
    from shopcook.domain import Receipt, LineItem, StorageSection
"""

from shopcook.domain.receipt import (
    ClassificationResult,
    FailureReason,
    LineItem,
    ParseOutcome,
    Receipt,
    ReceiptConfidence,
    StorageSection,
    StoreMatch,
)

__all__ = [
    "ClassificationResult",
    "FailureReason",
    "LineItem",
    "ParseOutcome",
    "Receipt",
    "ReceiptConfidence",
    "StorageSection",
    "StoreMatch",
]
