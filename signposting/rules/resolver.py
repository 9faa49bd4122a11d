"""Rule-priority resolver for LUTS drug-class selection.

Rules are held in an ordered tuple and evaluated first-match-wins. Each
rule pairs a guard over the DecisionContext with a producer that builds
the primary recommendation, alternatives and checks. The trailing rule
has an unconditional guard, so resolution always produces a result.

Ladders (tier-1 first):
- voiding: alpha-blocker -> add 5-ARI (needs prostate enlargement or
  raised PSA confirmed)
- storage: antimuscarinic or beta-3 agonist (same tier; beta-3 is the
  next-best when the antimuscarinic is contraindicated or in use)
"""

import dataclasses
from dataclasses import dataclass
from typing import Callable

from signposting.rules.classifier import IndicatorCounts, count_indicators
from signposting.rules.formulary import FormularyConfig
from signposting.rules.models import (
    MAX_ALTERNATIVES,
    MILD_IPSS_MAX,
    DrugClass,
    DrugOption,
    LUTSInput,
    SeverityBand,
    SymptomType,
    TreatmentPathway,
    severity_band,
)


@dataclass(frozen=True)
class DecisionContext:
    """Derived facts the rules are evaluated against.

    Built alongside the input; the input itself is never modified.
    """

    input: LUTSInput
    config: FormularyConfig
    symptom_type: SymptomType
    counts: IndicatorCounts
    severity: SeverityBand
    pathway: TreatmentPathway | None
    antimuscarinic_contraindications: tuple[str, ...]

    @property
    def antimuscarinic_contraindicated(self) -> bool:
        return bool(self.antimuscarinic_contraindications)

    @property
    def is_mixed(self) -> bool:
        return self.symptom_type == SymptomType.MIXED


@dataclass(frozen=True)
class Resolution:
    """Output of the resolver before formatting."""

    primary: DrugOption
    alternatives: tuple[DrugOption, ...] = ()
    checks: tuple[str, ...] = ()
    soft_escalation: tuple[str, ...] = ()
    references: tuple[str, ...] = ()
    rule_id: str = ""


@dataclass(frozen=True)
class ResolverRule:
    """An ordered resolver rule: guard predicate plus producer."""

    rule_id: str
    description: str
    guard: Callable[[DecisionContext], bool]
    produce: Callable[[DecisionContext], Resolution]


def antimuscarinic_contraindications(
    input: LUTSInput,
    config: FormularyConfig,
) -> tuple[str, ...]:
    """Collect the reasons an antimuscarinic must not be offered.

    Core contraindications always apply; falls risk only counts when the
    local formulary avoids antimuscarinics in frailty.
    """
    reasons = []
    if input.cognitive_impairment_or_high_anticholinergic_burden:
        reasons.append("cognitive impairment or high anticholinergic burden")
    if input.narrow_angle_glaucoma:
        reasons.append("narrow-angle glaucoma")
    if input.falls_risk_or_postural_hypotension and config.is_excluded(
        DrugClass.ANTIMUSCARINIC, "frailty"
    ):
        reasons.append("falls risk (local formulary avoids antimuscarinics in frailty)")
    return tuple(reasons)


def treatment_pathway(
    symptom_type: SymptomType,
    counts: IndicatorCounts,
    input: LUTSInput,
) -> TreatmentPathway | None:
    """Route a symptom type to a drug ladder.

    Mixed patterns follow the group with more raw indicators. On a tie,
    likely BPH routes to the voiding ladder, otherwise storage.
    """
    if symptom_type == SymptomType.VOIDING_PREDOMINANT:
        return TreatmentPathway.VOIDING
    if symptom_type == SymptomType.STORAGE_PREDOMINANT:
        return TreatmentPathway.STORAGE
    if symptom_type == SymptomType.MIXED:
        if counts.voiding > counts.storage:
            return TreatmentPathway.VOIDING
        if counts.storage > counts.voiding:
            return TreatmentPathway.STORAGE
        if input.male_with_likely_bph is True:
            return TreatmentPathway.VOIDING
        return TreatmentPathway.STORAGE
    if symptom_type == SymptomType.UNCLEAR:
        return None
    raise ValueError(f"Unhandled symptom type: {symptom_type}")


def build_context(
    symptom_type: SymptomType,
    input: LUTSInput,
    config: FormularyConfig,
) -> DecisionContext:
    counts = count_indicators(input)
    return DecisionContext(
        input=input,
        config=config,
        symptom_type=symptom_type,
        counts=counts,
        severity=severity_band(input.ipss_score),
        pathway=treatment_pathway(symptom_type, counts, input),
        antimuscarinic_contraindications=antimuscarinic_contraindications(input, config),
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _option(ctx: DecisionContext, drug_class: DrugClass, *rationale: str) -> DrugOption:
    return DrugOption(
        drug_class=drug_class,
        preferred_agent=ctx.config.preferred_agent(drug_class),
        rationale=tuple(rationale),
    )


def _preferred_agent_check(ctx: DecisionContext, drug_class: DrugClass) -> list[str]:
    agent = ctx.config.preferred_agent(drug_class)
    if agent:
        return [f"Check formulary-preferred agent: {agent}"]
    return []


def _storage_first_available(ctx: DecisionContext) -> DrugClass | None:
    """First storage tier-1 class that is neither contraindicated nor in use."""
    if not ctx.antimuscarinic_contraindicated and not ctx.input.on_antimuscarinic:
        return DrugClass.ANTIMUSCARINIC
    if not ctx.input.on_beta3_agonist:
        return DrugClass.BETA3_AGONIST
    return None


def _mixed_companion(ctx: DecisionContext) -> list[DrugOption]:
    """Tier-1 option for the non-dominant group of a Mixed pattern."""
    if not ctx.is_mixed:
        return []

    if ctx.pathway == TreatmentPathway.VOIDING:
        storage_class = _storage_first_available(ctx)
        if storage_class is None:
            return []
        return [_option(ctx, storage_class, "Consider if storage symptoms persist")]

    if not ctx.input.on_alpha_blocker:
        return [_option(ctx, DrugClass.ALPHA_BLOCKER, "Consider if voiding symptoms persist")]
    return []


def _mixed_checks(ctx: DecisionContext) -> list[str]:
    if not ctx.is_mixed:
        return []
    return ["Review both voiding and storage symptoms", "Consider combination if both persist"]


def _alternative_bp_checks(ctx: DecisionContext, alternatives: tuple[DrugOption, ...]) -> list[str]:
    """BP check for a hypertensive patient offered a beta-3 agonist as an alternative."""
    if not ctx.input.severe_uncontrolled_hypertension:
        return []
    if any(a.drug_class == DrugClass.BETA3_AGONIST for a in alternatives):
        return ["Check blood pressure before starting a beta-3 agonist"]
    return []


def _pathway_rationale(ctx: DecisionContext) -> str:
    if not ctx.is_mixed:
        if ctx.pathway == TreatmentPathway.VOIDING:
            return "Voiding-predominant symptoms identified"
        return "Storage-predominant symptoms identified"

    component = "voiding" if ctx.pathway == TreatmentPathway.VOIDING else "storage"
    if ctx.counts.voiding == ctx.counts.storage:
        tie_break = "likely BPH" if ctx.pathway == TreatmentPathway.VOIDING else "no likely BPH"
        return f"Mixed symptoms with equal voiding and storage burden; {tie_break} favours the {component} component"
    return f"Mixed symptoms with {component} predominance"


def _dedupe(options: list[DrugOption]) -> tuple[DrugOption, ...]:
    seen: set[DrugClass] = set()
    result = []
    for option in options:
        if option.drug_class in seen:
            continue
        seen.add(option.drug_class)
        result.append(option)
    return tuple(result[:MAX_ALTERNATIVES])


# ---------------------------------------------------------------------------
# Rule 1 - Non-drug optimisation for unclear or mild symptoms
# ---------------------------------------------------------------------------

def _guard_non_drug(ctx: DecisionContext) -> bool:
    return ctx.symptom_type == SymptomType.UNCLEAR or ctx.severity == SeverityBand.MILD


def _produce_non_drug(ctx: DecisionContext) -> Resolution:
    if ctx.symptom_type == SymptomType.UNCLEAR:
        reason = "Unclear symptom pattern - optimise non-drug measures first"
    else:
        reason = f"Mild symptoms (IPSS ≤{MILD_IPSS_MAX}) - optimise non-drug measures first"

    # Offer drug options for whichever group has any signal, even below threshold
    alternatives: list[DrugOption] = []
    if (ctx.counts.voiding > 0 or ctx.input.male_with_likely_bph is True) and not ctx.input.on_alpha_blocker:
        alternatives.append(_option(
            ctx,
            DrugClass.ALPHA_BLOCKER,
            "Consider if voiding symptoms persist after lifestyle measures",
        ))
    if ctx.counts.storage > 0:
        storage_class = _storage_first_available(ctx)
        if storage_class is not None:
            alternatives.append(_option(
                ctx,
                storage_class,
                "Consider if storage symptoms persist after lifestyle measures",
            ))

    offered = _dedupe(alternatives)

    checks = ["Review in 4-6 weeks"]
    if ctx.input.bladder_diary_available is True:
        checks.append("Review bladder diary findings")
    else:
        checks.append("Consider bladder diary if not already done")
    checks.extend(_alternative_bp_checks(ctx, offered))

    return Resolution(
        primary=DrugOption(
            drug_class=DrugClass.OPTIMISE_NON_DRUG,
            rationale=(
                reason,
                "Lifestyle advice: fluid management, caffeine reduction, bladder training",
            ),
        ),
        alternatives=offered,
        checks=tuple(checks),
    )


# ---------------------------------------------------------------------------
# Rule 2 - Voiding ladder, tier 1: alpha-blocker
# ---------------------------------------------------------------------------

def _guard_voiding_first_line(ctx: DecisionContext) -> bool:
    return ctx.pathway == TreatmentPathway.VOIDING and not ctx.input.on_alpha_blocker


def _produce_voiding_first_line(ctx: DecisionContext) -> Resolution:
    checks: list[str] = []
    if ctx.input.falls_risk_or_postural_hypotension:
        checks.append("Postural hypotension risk - start low dose, monitor BP")
        checks.append("Advise about falls risk")
    checks.append("Review in 4-6 weeks")
    checks.append("Consider IPSS reassessment")
    checks.extend(_preferred_agent_check(ctx, DrugClass.ALPHA_BLOCKER))
    checks.extend(_mixed_checks(ctx))

    alternatives: list[DrugOption] = []
    if ctx.input.prostate_enlargement_confirmed and not ctx.input.on_five_ari:
        alternatives.append(_option(
            ctx,
            DrugClass.FIVE_ARI,
            "Consider if prostate enlargement confirmed",
            "Takes 3-6 months to show benefit",
        ))
    alternatives.extend(_mixed_companion(ctx))
    offered = _dedupe(alternatives)
    checks.extend(_alternative_bp_checks(ctx, offered))

    return Resolution(
        primary=_option(
            ctx,
            DrugClass.ALPHA_BLOCKER,
            _pathway_rationale(ctx),
            "Alpha-blockers are first-line for voiding symptoms (NICE CG97)",
        ),
        alternatives=offered,
        checks=tuple(checks),
    )


# ---------------------------------------------------------------------------
# Rule 3 - Voiding ladder, tier 2: add 5-ARI when enlargement is confirmed
# ---------------------------------------------------------------------------

def _guard_voiding_add_5ari(ctx: DecisionContext) -> bool:
    return (
        ctx.pathway == TreatmentPathway.VOIDING
        and ctx.input.on_alpha_blocker
        and ctx.input.prostate_enlargement_confirmed
        and not ctx.input.on_five_ari
    )


def _produce_voiding_add_5ari(ctx: DecisionContext) -> Resolution:
    checks = ["Takes 3-6 months to show benefit", "Review PSA if indicated", "Review in 6 months"]
    checks.extend(_preferred_agent_check(ctx, DrugClass.FIVE_ARI))
    checks.extend(_mixed_checks(ctx))

    alternatives = [
        _option(ctx, DrugClass.ALPHA_BLOCKER_PLUS_5ARI, "Consider combination if symptoms severe"),
    ]
    alternatives.extend(_mixed_companion(ctx))
    offered = _dedupe(alternatives)
    checks.extend(_alternative_bp_checks(ctx, offered))

    return Resolution(
        primary=_option(
            ctx,
            DrugClass.FIVE_ARI,
            "Voiding symptoms persist on alpha-blocker",
            "Prostate enlargement or raised PSA confirmed",
            "5-alpha reductase inhibitor indicated (NICE CG97)",
        ),
        alternatives=offered,
        checks=tuple(checks),
    )


# ---------------------------------------------------------------------------
# Rule 4 - Storage ladder, tier 1: antimuscarinic
# ---------------------------------------------------------------------------

def _guard_storage_first_line(ctx: DecisionContext) -> bool:
    return (
        ctx.pathway == TreatmentPathway.STORAGE
        and not ctx.antimuscarinic_contraindicated
        and not ctx.input.on_antimuscarinic
    )


def _produce_storage_first_line(ctx: DecisionContext) -> Resolution:
    checks: list[str] = []
    if ctx.input.falls_risk_or_postural_hypotension:
        checks.append("Monitor for falls risk")
    checks.append("Review in 4-6 weeks")
    checks.append("Consider bladder diary to monitor progress")
    checks.extend(_preferred_agent_check(ctx, DrugClass.ANTIMUSCARINIC))
    checks.extend(_mixed_checks(ctx))

    alternatives: list[DrugOption] = []
    if not ctx.input.on_beta3_agonist:
        alternatives.append(_option(
            ctx,
            DrugClass.BETA3_AGONIST,
            "Alternative if antimuscarinic not tolerated or ineffective",
            "Per NICE TA290/TA999",
        ))
    alternatives.extend(_mixed_companion(ctx))
    offered = _dedupe(alternatives)
    checks.extend(_alternative_bp_checks(ctx, offered))

    return Resolution(
        primary=_option(
            ctx,
            DrugClass.ANTIMUSCARINIC,
            _pathway_rationale(ctx),
            "Antimuscarinics are first-line for overactive bladder symptoms (NICE CG97)",
        ),
        alternatives=offered,
        checks=tuple(checks),
        references=("NICE TA290",),
    )


# ---------------------------------------------------------------------------
# Rule 5 - Storage ladder, same tier: beta-3 agonist
# ---------------------------------------------------------------------------

def _guard_storage_beta3(ctx: DecisionContext) -> bool:
    return ctx.pathway == TreatmentPathway.STORAGE and not ctx.input.on_beta3_agonist


def _produce_storage_beta3(ctx: DecisionContext) -> Resolution:
    if ctx.antimuscarinic_contraindicated:
        reason = "Antimuscarinic contraindicated: " + ", ".join(ctx.antimuscarinic_contraindications)
    else:
        reason = "Antimuscarinic already in use or not effective"

    checks: list[str] = []
    if ctx.input.severe_uncontrolled_hypertension or ctx.config.is_excluded(
        DrugClass.BETA3_AGONIST, "hypertension"
    ):
        checks.append("Check blood pressure before starting")
        checks.append("Monitor BP during treatment")
    checks.append("Review in 4-6 weeks")
    checks.extend(_preferred_agent_check(ctx, DrugClass.BETA3_AGONIST))
    checks.extend(_mixed_checks(ctx))

    return Resolution(
        primary=_option(
            ctx,
            DrugClass.BETA3_AGONIST,
            _pathway_rationale(ctx),
            reason,
            "Beta-3 agonist indicated as alternative (NICE TA290/TA999)",
        ),
        alternatives=_dedupe(_mixed_companion(ctx)),
        checks=tuple(checks),
        references=("NICE TA290", "NICE TA999"),
    )


# ---------------------------------------------------------------------------
# Rule 6 - Fallback: optimise current regimen, consider referral
# ---------------------------------------------------------------------------

def _fallback_reason(ctx: DecisionContext) -> str:
    if ctx.pathway == TreatmentPathway.VOIDING:
        if ctx.input.on_five_ari:
            return "Voiding symptoms persist on alpha-blocker and 5-ARI"
        return "Voiding symptoms persist on alpha-blocker without confirmed prostate enlargement"
    if ctx.pathway == TreatmentPathway.STORAGE:
        return "Storage symptoms persist with no further antimuscarinic or beta-3 option available"
    return "No further first-line option applies"


def _produce_fallback(ctx: DecisionContext) -> Resolution:
    return Resolution(
        primary=DrugOption(
            drug_class=DrugClass.OPTIMISE_NON_DRUG,
            rationale=(
                _fallback_reason(ctx),
                "Review current treatment and optimise non-drug measures",
                "Consider specialist referral if symptoms persist",
            ),
        ),
        checks=("Review current medications", "Consider bladder diary", "Review in 4-6 weeks"),
        soft_escalation=("Consider urological referral if symptoms persist despite treatment",),
    )


RESOLVER_RULES: tuple[ResolverRule, ...] = (
    ResolverRule(
        rule_id="non_drug_optimisation",
        description="Unclear pattern or mild IPSS: lifestyle measures first",
        guard=_guard_non_drug,
        produce=_produce_non_drug,
    ),
    ResolverRule(
        rule_id="voiding_first_line",
        description="Voiding ladder: alpha-blocker",
        guard=_guard_voiding_first_line,
        produce=_produce_voiding_first_line,
    ),
    ResolverRule(
        rule_id="voiding_add_5ari",
        description="Voiding ladder: 5-ARI once prostate enlargement confirmed",
        guard=_guard_voiding_add_5ari,
        produce=_produce_voiding_add_5ari,
    ),
    ResolverRule(
        rule_id="storage_first_line",
        description="Storage ladder: antimuscarinic",
        guard=_guard_storage_first_line,
        produce=_produce_storage_first_line,
    ),
    ResolverRule(
        rule_id="storage_beta3",
        description="Storage ladder: beta-3 agonist",
        guard=_guard_storage_beta3,
        produce=_produce_storage_beta3,
    ),
    ResolverRule(
        rule_id="optimise_or_refer",
        description="Fallback: optimise current regimen, consider referral",
        guard=lambda ctx: True,
        produce=_produce_fallback,
    ),
)


def resolve(
    symptom_type: SymptomType,
    input: LUTSInput,
    config: FormularyConfig,
) -> Resolution:
    """Select the recommendation for a gated, classified input.

    Args:
        symptom_type: Classification outcome
        input: Patient context (already through the gate)
        config: Surgery formulary snapshot

    Returns:
        Resolution from the first rule whose guard holds, tagged with its rule id
    """
    ctx = build_context(symptom_type, input, config)

    for rule in RESOLVER_RULES:
        if rule.guard(ctx):
            return dataclasses.replace(rule.produce(ctx), rule_id=rule.rule_id)

    raise RuntimeError("Resolver rules have no unconditional fallback")
