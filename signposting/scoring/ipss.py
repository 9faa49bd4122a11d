"""IPSS (International Prostate Symptom Score) scoring module.

The IPSS is a validated 7-item LUTS symptom questionnaire.
Each symptom item is scored 0-5:
- 0 = Not at all
- 1 = Less than 1 time in 5
- 2 = Less than half the time
- 3 = About half the time
- 4 = More than half the time
- 5 = Almost always

Item 7 (nocturia) is scored by number of times (0 to 5 or more).

Total score ranges 0-35.

Severity bands:
- 0-7: Mild
- 8-19: Moderate
- 20-35: Severe

An additional quality-of-life question (0 = delighted .. 6 = terrible)
is reported separately and does not contribute to the total.
"""

from dataclasses import dataclass
from typing import Optional

from signposting.rules.models import SeverityBand, severity_band

ITEM_COUNT = 7
ITEM_MAX = 5
QOL_MAX = 6

# Items 1, 3, 5, 6 probe voiding; items 2, 4, 7 probe storage
VOIDING_ITEMS = (1, 3, 5, 6)
STORAGE_ITEMS = (2, 4, 7)


@dataclass
class IPSSResult:
    """Result of IPSS scoring."""
    total: int
    severity: SeverityBand
    items: dict[str, int]
    voiding_subscore: int
    storage_subscore: int
    quality_of_life: Optional[int] = None

    # Individual item scores
    incomplete_emptying: int = 0  # Item 1
    frequency: int = 0            # Item 2
    intermittency: int = 0        # Item 3
    urgency: int = 0              # Item 4
    weak_stream: int = 0          # Item 5
    straining: int = 0            # Item 6
    nocturia: int = 0             # Item 7


def _find_item(answers: dict[str, int], i: int) -> Optional[int]:
    key_formats = [
        f"ipss_{i}",
        f"ipss_item{i}",
        f"item{i}",
        f"q{i}",
        str(i),
    ]
    for key in key_formats:
        if key in answers:
            return answers[key]
    return None


def score_ipss(answers: dict[str, int]) -> IPSSResult:
    """Score IPSS questionnaire responses.

    Args:
        answers: Dictionary with keys like "ipss_1" through "ipss_7"
                 or "item1" through "item7", values 0-5. Optional
                 "ipss_qol" (0-6) for the quality-of-life question.

    Returns:
        IPSSResult with total score, severity band and subscores.

    Raises:
        ValueError: If required items are missing or values out of range.
    """
    items = {}

    for i in range(1, ITEM_COUNT + 1):
        value = _find_item(answers, i)

        if value is None:
            raise ValueError(f"Missing IPSS item {i}")

        if isinstance(value, bool) or not isinstance(value, int) or value < 0 or value > ITEM_MAX:
            raise ValueError(f"IPSS item {i} must be integer 0-{ITEM_MAX}, got {value}")

        items[f"item{i}"] = value

    qol = answers.get("ipss_qol", answers.get("qol"))
    if qol is not None and (
        isinstance(qol, bool) or not isinstance(qol, int) or qol < 0 or qol > QOL_MAX
    ):
        raise ValueError(f"IPSS quality of life must be integer 0-{QOL_MAX}, got {qol}")

    total = sum(items.values())

    return IPSSResult(
        total=total,
        severity=severity_band(total),
        items=items,
        voiding_subscore=sum(items[f"item{i}"] for i in VOIDING_ITEMS),
        storage_subscore=sum(items[f"item{i}"] for i in STORAGE_ITEMS),
        quality_of_life=qol,
        incomplete_emptying=items["item1"],
        frequency=items["item2"],
        intermittency=items["item3"],
        urgency=items["item4"],
        weak_stream=items["item5"],
        straining=items["item6"],
        nocturia=items["item7"],
    )
