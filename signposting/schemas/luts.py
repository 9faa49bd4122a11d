"""LUTS assessment request/response schemas.

The request schema is the validation layer in front of the decision
engine: it rejects wrong types, unknown fields and out-of-range IPSS
values, so the engine itself only ever sees a well-typed LUTSInput.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from signposting.rules.models import (
    IPSS_MAX,
    IPSS_MIN,
    DrugClass,
    EscalationLevel,
    LUTSInput,
    RecommendationStatus,
    SymptomType,
)
from signposting.scoring.ipss import score_ipss


class LUTSAssessmentRequest(BaseModel):
    """Structured LUTS assessment submitted by a clinician."""

    model_config = ConfigDict(extra="forbid", strict=True)

    # Eligibility
    adult_patient: bool = False

    # Red flags
    visible_haematuria: bool = False
    recurrent_utis: bool = False
    suspected_retention: bool = False
    neurological_red_flags: bool = False
    suspected_prostate_cancer: bool = False

    # Voiding symptoms
    hesitancy: bool = False
    weak_stream: bool = False
    straining: bool = False
    incomplete_emptying: bool = False
    post_void_dribble: bool = False

    # Storage symptoms
    urgency: bool = False
    frequency: bool = False
    nocturia: bool = False
    urge_incontinence: bool = False

    # Severity: either a total score or the seven item answers
    ipss_score: int | None = Field(None, ge=IPSS_MIN, le=IPSS_MAX)
    ipss_answers: dict[str, int] | None = None
    bladder_diary_available: bool | None = None

    # Patient context
    male_with_likely_bph: bool | None = None
    enlarged_prostate_known: bool | None = None
    raised_psa_known: bool | None = None

    # Contraindications / cautions
    falls_risk_or_postural_hypotension: bool = False
    cognitive_impairment_or_high_anticholinergic_burden: bool = False
    narrow_angle_glaucoma: bool = False
    severe_uncontrolled_hypertension: bool = False

    # Current LUTS medication
    on_alpha_blocker: bool = False
    on_five_ari: bool = False
    on_antimuscarinic: bool = False
    on_beta3_agonist: bool = False

    @model_validator(mode="after")
    def score_answers(self) -> "LUTSAssessmentRequest":
        """Score IPSS item answers into ipss_score."""
        if self.ipss_answers is None:
            return self
        if self.ipss_score is not None:
            raise ValueError("Provide either ipss_score or ipss_answers, not both")
        self.ipss_score = score_ipss(self.ipss_answers).total
        return self

    def to_input(self) -> LUTSInput:
        """Build the immutable engine input."""
        return LUTSInput(**self.model_dump(exclude={"ipss_answers"}))


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DrugOptionRead(_CamelModel):
    drug_class: DrugClass
    preferred_agent: str | None = None
    rationale_bullets: list[str]


class RecommendationMetadataRead(_CamelModel):
    logic_version: str
    based_on: list[str]


class FormularyReference(_CamelModel):
    """Formulary snapshot a recommendation was computed against."""

    version: str
    source: Literal["surgery", "default"]
    content_hash: str


class LUTSRecommendationResponse(_CamelModel):
    """Recommendation as returned to the web client (camelCase keys)."""

    status: RecommendationStatus
    symptom_type: SymptomType
    primary: DrugOptionRead
    alternatives: list[DrugOptionRead]
    checks: list[str]
    escalation: list[str]
    escalation_level: EscalationLevel
    metadata: RecommendationMetadataRead
    formulary: FormularyReference | None = None

    @classmethod
    def from_recommendation(
        cls,
        recommendation: dict[str, Any],
        formulary: FormularyReference | None = None,
    ) -> "LUTSRecommendationResponse":
        return cls.model_validate({**recommendation, "formulary": formulary})
