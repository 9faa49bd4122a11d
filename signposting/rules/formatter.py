"""Assembly of the final LUTSRecommendation from upstream stage outputs."""

from signposting.rules.gate import Escalate, NotEligible
from signposting.rules.models import (
    BASE_REFERENCES,
    LOGIC_VERSION,
    DrugClass,
    DrugOption,
    EscalationLevel,
    LUTSRecommendation,
    RecommendationMetadata,
    RecommendationStatus,
    SymptomType,
)
from signposting.rules.resolver import Resolution


def _metadata(extra_references: tuple[str, ...] = ()) -> RecommendationMetadata:
    based_on = tuple(dict.fromkeys(BASE_REFERENCES + extra_references))
    return RecommendationMetadata(logic_version=LOGIC_VERSION, based_on=based_on)


def format_not_eligible(gate: NotEligible) -> LUTSRecommendation:
    """Terminal result for an ineligible patient: no further guidance."""
    return LUTSRecommendation(
        status=RecommendationStatus.NOT_ELIGIBLE,
        symptom_type=SymptomType.UNCLEAR,
        primary=DrugOption(drug_class=DrugClass.NOT_ELIGIBLE, rationale=(gate.reason,)),
        metadata=_metadata(),
    )


def format_escalation(gate: Escalate) -> LUTSRecommendation:
    """Red-flag result: escalate, with one message per fired flag."""
    return LUTSRecommendation(
        status=RecommendationStatus.OK,
        symptom_type=SymptomType.UNCLEAR,
        primary=DrugOption(
            drug_class=DrugClass.REFER_OR_ESCALATE,
            rationale=(f"Red flag present: {', '.join(gate.flags)}",),
        ),
        escalation=gate.messages,
        escalation_level=EscalationLevel.URGENT,
        metadata=_metadata(),
    )


def format_recommendation(
    symptom_type: SymptomType,
    resolution: Resolution,
) -> LUTSRecommendation:
    """Result for a patient who passed the gate."""
    escalation_level = (
        EscalationLevel.CONSIDER if resolution.soft_escalation else EscalationLevel.NONE
    )
    return LUTSRecommendation(
        status=RecommendationStatus.OK,
        symptom_type=symptom_type,
        primary=resolution.primary,
        alternatives=resolution.alternatives,
        checks=resolution.checks,
        escalation=resolution.soft_escalation,
        escalation_level=escalation_level,
        metadata=_metadata(resolution.references),
    )
