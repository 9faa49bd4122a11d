"""Symptom pattern classification."""

from dataclasses import dataclass

from signposting.rules.models import CLASSIFICATION_THRESHOLD, LUTSInput, SymptomType


@dataclass(frozen=True)
class IndicatorCounts:
    """Number of positive indicators per symptom group."""

    voiding: int
    storage: int


def count_indicators(input: LUTSInput) -> IndicatorCounts:
    return IndicatorCounts(
        voiding=sum(input.voiding_indicators),
        storage=sum(input.storage_indicators),
    )


def classify_counts(counts: IndicatorCounts) -> SymptomType:
    """Classify from indicator counts.

    A group is predominant when it reaches the threshold and strictly
    exceeds the other group. Both at threshold with neither ahead is Mixed;
    anything else is Unclear.
    """
    voiding, storage = counts.voiding, counts.storage

    if voiding >= CLASSIFICATION_THRESHOLD and voiding > storage:
        return SymptomType.VOIDING_PREDOMINANT

    if storage >= CLASSIFICATION_THRESHOLD and storage > voiding:
        return SymptomType.STORAGE_PREDOMINANT

    if voiding >= CLASSIFICATION_THRESHOLD and storage >= CLASSIFICATION_THRESHOLD:
        return SymptomType.MIXED

    return SymptomType.UNCLEAR


def classify(input: LUTSInput) -> SymptomType:
    """Classify the LUTS symptom pattern for an input."""
    return classify_counts(count_indicators(input))
