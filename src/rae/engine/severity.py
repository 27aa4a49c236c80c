"""Severity classification from raw defect counts."""

from __future__ import annotations

import math
from typing import Iterable

from rae.models import DefectItem, Severity

HIGH_COUNT = 30
MEDIUM_COUNT = 10

_SCORES = {Severity.HIGH: 3, Severity.MEDIUM: 2, Severity.LOW: 1}


def label_from_count(count: object) -> Severity:
    """High >= 30, Medium >= 10, Low otherwise; invalid or negative counts act as 0."""
    try:
        value = float(count)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        value = 0.0
    if math.isnan(value) or value < 0:
        value = 0.0

    if value >= HIGH_COUNT:
        return Severity.HIGH
    if value >= MEDIUM_COUNT:
        return Severity.MEDIUM
    return Severity.LOW


def score_from_label(label: object) -> int:
    """Numeric score for averaging only; unknown labels score 0."""
    try:
        return _SCORES.get(Severity(label), 0)
    except ValueError:
        return 0


def label_from_score(avg: float) -> Severity:
    """Re-bucket an averaged score back into a label."""
    if avg >= 2.5:
        return Severity.HIGH
    if avg >= 1.5:
        return Severity.MEDIUM
    if avg > 0:
        return Severity.LOW
    return Severity.UNKNOWN


def item_label(item: DefectItem) -> Severity:
    """Label from the item's raw count when it has one, else the reported label."""
    if item.count is not None:
        return label_from_count(item.count)
    return item.severity


def aggregate_severity(items: Iterable[DefectItem]) -> Severity:
    """Average the scores of every item with a known label, then re-bucket.

    Averaging keeps a single outlier from pinning a whole road to High.
    """
    scores = [score_from_label(item_label(item)) for item in items]
    scores = [score for score in scores if score > 0]
    if not scores:
        return Severity.UNKNOWN
    return label_from_score(sum(scores) / len(scores))
