"""Scoring modules for validated clinical instruments."""

from signposting.scoring.ipss import IPSSResult, score_ipss

__all__ = [
    "score_ipss",
    "IPSSResult",
]
