"""Data models for the LUTS treatment decision engine.

Inputs, configuration and results are frozen dataclasses: the engine never
mutates what it is given and every result is a fresh value.

Thresholds cite their source:
- IPSS bands (mild 0-7, moderate 8-19, severe 20-35): AUA symptom index /
  International Prostate Symptom Score, as used in NICE CG97.
- Symptom-group threshold of 2 positive indicators: local decision aid
  convention for calling a pattern "predominant".
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class SymptomType(str, Enum):
    """Classification outcome of the symptom pattern."""

    VOIDING_PREDOMINANT = "Voiding_predominant"
    STORAGE_PREDOMINANT = "Storage_predominant"
    MIXED = "Mixed"
    UNCLEAR = "Unclear"


class DrugClass(str, Enum):
    """Recommendation classes, including the non-drug and sentinel outcomes."""

    ALPHA_BLOCKER = "Alpha_blocker"
    FIVE_ARI = "Five_alpha_reductase_inhibitor"
    ALPHA_BLOCKER_PLUS_5ARI = "Alpha_blocker_plus_5ARI"
    ANTIMUSCARINIC = "Antimuscarinic"
    BETA3_AGONIST = "Beta3_agonist"
    OPTIMISE_NON_DRUG = "Optimise_non_drug_measures"
    REFER_OR_ESCALATE = "Refer_or_escalate"
    NOT_ELIGIBLE = "Not_eligible"


# Classes a formulary can name preferred agents for
PRESCRIBABLE_CLASSES = frozenset({
    DrugClass.ALPHA_BLOCKER,
    DrugClass.FIVE_ARI,
    DrugClass.ALPHA_BLOCKER_PLUS_5ARI,
    DrugClass.ANTIMUSCARINIC,
    DrugClass.BETA3_AGONIST,
})


class SeverityBand(str, Enum):
    """IPSS severity band. UNSCORED means severity has not been assessed."""

    UNSCORED = "unscored"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class RecommendationStatus(str, Enum):
    OK = "ok"
    NOT_ELIGIBLE = "not_eligible"


class EscalationLevel(str, Enum):
    """How the escalation list should be treated by callers.

    URGENT is a red-flag escalation. CONSIDER is the soft referral hint
    attached by the fallback rule and must not be rendered as a red flag.
    """

    NONE = "none"
    CONSIDER = "consider"
    URGENT = "urgent"


class TreatmentPathway(str, Enum):
    """Drug ladder a classified symptom pattern is routed to."""

    VOIDING = "voiding"
    STORAGE = "storage"


# ---------------------------------------------------------------------------
# Fixed thresholds (not configurable per surgery)
# ---------------------------------------------------------------------------
CLASSIFICATION_THRESHOLD = 2

IPSS_MIN = 0
IPSS_MAX = 35
MILD_IPSS_MAX = 7
MODERATE_IPSS_MAX = 19

MAX_ALTERNATIVES = 3

LOGIC_VERSION = "1.1"
BASE_REFERENCES = ("NICE CG97",)


@dataclass(frozen=True)
class LUTSInput:
    """Patient context for one LUTS decision.

    ``None`` on the optional context flags means "not known" and is
    treated the same as not confirmed.
    """

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

    # Severity tools
    ipss_score: int | None = None
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

    @property
    def voiding_indicators(self) -> tuple[bool, ...]:
        return (
            self.hesitancy,
            self.weak_stream,
            self.straining,
            self.incomplete_emptying,
            self.post_void_dribble,
        )

    @property
    def storage_indicators(self) -> tuple[bool, ...]:
        return (
            self.urgency,
            self.frequency,
            self.nocturia,
            self.urge_incontinence,
        )

    @property
    def prostate_enlargement_confirmed(self) -> bool:
        """Upgrade confirmation for the voiding ladder."""
        return self.enlarged_prostate_known is True or self.raised_psa_known is True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def severity_band(score: int | None) -> SeverityBand:
    """Map a nullable IPSS total to its severity band."""
    if score is None:
        return SeverityBand.UNSCORED
    if score <= MILD_IPSS_MAX:
        return SeverityBand.MILD
    if score <= MODERATE_IPSS_MAX:
        return SeverityBand.MODERATE
    return SeverityBand.SEVERE


@dataclass(frozen=True)
class DrugOption:
    """A recommended class with its preferred agent and rationale."""

    drug_class: DrugClass
    rationale: tuple[str, ...]
    preferred_agent: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "drugClass": self.drug_class.value,
            "rationaleBullets": list(self.rationale),
        }
        if self.preferred_agent:
            data["preferredAgent"] = self.preferred_agent
        return data


@dataclass(frozen=True)
class RecommendationMetadata:
    logic_version: str = LOGIC_VERSION
    based_on: tuple[str, ...] = BASE_REFERENCES


@dataclass(frozen=True)
class LUTSRecommendation:
    """Final engine output.

    The JSON form (``to_dict``) keeps the camelCase field names used by
    the Signposting web client.
    """

    status: RecommendationStatus
    symptom_type: SymptomType
    primary: DrugOption
    alternatives: tuple[DrugOption, ...] = ()
    checks: tuple[str, ...] = ()
    escalation: tuple[str, ...] = ()
    escalation_level: EscalationLevel = EscalationLevel.NONE
    metadata: RecommendationMetadata = field(default_factory=RecommendationMetadata)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "symptomType": self.symptom_type.value,
            "primary": self.primary.to_dict(),
            "alternatives": [alt.to_dict() for alt in self.alternatives],
            "checks": list(self.checks),
            "escalation": list(self.escalation),
            "escalationLevel": self.escalation_level.value,
            "metadata": {
                "logicVersion": self.metadata.logic_version,
                "basedOn": list(self.metadata.based_on),
            },
        }
