"""Deterministic LUTS treatment decision engine.

Pure, rule-based recommendation of a drug class (or escalation) from a
structured patient context and a surgery formulary. No AI/ML is used.
"""

from signposting.rules.classifier import classify, count_indicators
from signposting.rules.engine import LUTSEvaluation, evaluate_luts, recommend_luts_treatment
from signposting.rules.formulary import (
    DEFAULT_FORMULARY_CONFIG,
    FormularyConfig,
    InvalidFormularyError,
)
from signposting.rules.gate import evaluate_gate
from signposting.rules.loader import FormularyLoader, FormularyNotFoundError, load_formulary
from signposting.rules.models import (
    DrugClass,
    EscalationLevel,
    LUTSInput,
    LUTSRecommendation,
    RecommendationStatus,
    SymptomType,
)
from signposting.rules.resolver import resolve

__all__ = [
    "DEFAULT_FORMULARY_CONFIG",
    "DrugClass",
    "EscalationLevel",
    "FormularyConfig",
    "FormularyLoader",
    "FormularyNotFoundError",
    "InvalidFormularyError",
    "LUTSEvaluation",
    "LUTSInput",
    "LUTSRecommendation",
    "RecommendationStatus",
    "SymptomType",
    "classify",
    "count_indicators",
    "evaluate_gate",
    "evaluate_luts",
    "load_formulary",
    "recommend_luts_treatment",
    "resolve",
]
