"""Deterministic LUTS treatment decision engine.

Evaluates a patient context against the LUTS rules (NICE CG97 plus the
surgery's local formulary). All decisions are:
- Deterministic (same input and formulary = same output)
- Explainable (rationale bullets and the resolver rule that fired)
- Auditable (logic version, references, formulary hash recorded by callers)

The engine performs no I/O and holds no state, so it can be called
concurrently from any number of requests.
"""

from dataclasses import dataclass
from typing import Any

from signposting.rules.classifier import IndicatorCounts, classify_counts, count_indicators
from signposting.rules.formatter import (
    format_escalation,
    format_not_eligible,
    format_recommendation,
)
from signposting.rules.formulary import DEFAULT_FORMULARY_CONFIG, FormularyConfig
from signposting.rules.gate import Escalate, GateResult, NotEligible, evaluate_gate
from signposting.rules.models import LUTSInput, LUTSRecommendation
from signposting.rules.resolver import resolve


@dataclass(frozen=True)
class LUTSEvaluation:
    """Recommendation plus the trace of how it was reached."""

    recommendation: LUTSRecommendation
    gate: GateResult
    counts: IndicatorCounts | None = None
    resolver_rule: str | None = None

    @property
    def gate_outcome(self) -> str:
        if isinstance(self.gate, NotEligible):
            return "not_eligible"
        if isinstance(self.gate, Escalate):
            return "escalate"
        return "pass"

    def trace(self) -> dict[str, Any]:
        """Evaluation context for the audit trail."""
        return {
            "gate": self.gate_outcome,
            "red_flags": list(self.gate.flags) if isinstance(self.gate, Escalate) else [],
            "voiding_count": self.counts.voiding if self.counts else None,
            "storage_count": self.counts.storage if self.counts else None,
            "resolver_rule": self.resolver_rule,
        }


def evaluate_luts(
    input: LUTSInput,
    config: FormularyConfig = DEFAULT_FORMULARY_CONFIG,
) -> LUTSEvaluation:
    """Run the full pipeline: gate, classify, resolve, format.

    Args:
        input: Validated patient context
        config: Surgery formulary snapshot (read-only)

    Returns:
        LUTSEvaluation with the recommendation and its trace
    """
    gate = evaluate_gate(input)

    if isinstance(gate, NotEligible):
        return LUTSEvaluation(recommendation=format_not_eligible(gate), gate=gate)

    if isinstance(gate, Escalate):
        return LUTSEvaluation(recommendation=format_escalation(gate), gate=gate)

    counts = count_indicators(input)
    symptom_type = classify_counts(counts)
    resolution = resolve(symptom_type, input, config)

    return LUTSEvaluation(
        recommendation=format_recommendation(symptom_type, resolution),
        gate=gate,
        counts=counts,
        resolver_rule=resolution.rule_id,
    )


def recommend_luts_treatment(
    input: LUTSInput,
    config: FormularyConfig = DEFAULT_FORMULARY_CONFIG,
) -> LUTSRecommendation:
    """Calculate the LUTS treatment recommendation for an input.

    Example:
        >>> result = recommend_luts_treatment(
        ...     LUTSInput(adult_patient=True, hesitancy=True, weak_stream=True)
        ... )
        >>> result.primary.drug_class.value
        'Alpha_blocker'
    """
    return evaluate_luts(input, config).recommendation
