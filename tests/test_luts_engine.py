"""Golden tests for LUTS treatment recommendations."""

import pytest

from signposting.rules.engine import evaluate_luts, recommend_luts_treatment
from signposting.rules.formulary import (
    DEFAULT_FORMULARY_CONFIG,
    FormularyConfig,
    FormularyDisplay,
    FormularyExclusions,
)
from signposting.rules.models import (
    LOGIC_VERSION,
    DrugClass,
    EscalationLevel,
    LUTSInput,
    RecommendationStatus,
    SymptomType,
)
from signposting.rules.classifier import IndicatorCounts

REFERRAL_HINT = "Consider urological referral if symptoms persist despite treatment"


def _classes(options) -> list[DrugClass]:
    return [option.drug_class for option in options]


class TestVoidingPathway:
    """Voiding ladder: alpha-blocker, then 5-ARI when enlargement is confirmed."""

    def test_two_voiding_indicators_get_alpha_blocker(self, voiding_input: LUTSInput) -> None:
        """Test two voiding indicators with no score give first-line alpha-blocker."""
        result = recommend_luts_treatment(voiding_input)

        assert result.status == RecommendationStatus.OK
        assert result.symptom_type == SymptomType.VOIDING_PREDOMINANT
        assert result.primary.drug_class == DrugClass.ALPHA_BLOCKER
        assert result.primary.preferred_agent == "Tamsulosin"
        assert result.primary.rationale == (
            "Voiding-predominant symptoms identified",
            "Alpha-blockers are first-line for voiding symptoms (NICE CG97)",
        )
        assert result.alternatives == ()
        assert result.checks == (
            "Review in 4-6 weeks",
            "Consider IPSS reassessment",
            "Check formulary-preferred agent: Tamsulosin",
        )
        assert result.escalation == ()
        assert result.escalation_level == EscalationLevel.NONE

    def test_falls_risk_adds_postural_checks(self) -> None:
        """Test postural hypotension risk adds BP and falls checks first."""
        input = LUTSInput(
            adult_patient=True,
            weak_stream=True,
            straining=True,
            falls_risk_or_postural_hypotension=True,
        )

        result = recommend_luts_treatment(input)

        assert result.primary.drug_class == DrugClass.ALPHA_BLOCKER
        assert result.checks[:2] == (
            "Postural hypotension risk - start low dose, monitor BP",
            "Advise about falls risk",
        )

    def test_confirmed_enlargement_offers_5ari_alternative(self) -> None:
        """Test raised PSA adds a 5-ARI alternative to first-line treatment."""
        input = LUTSInput(
            adult_patient=True,
            hesitancy=True,
            weak_stream=True,
            raised_psa_known=True,
        )

        result = recommend_luts_treatment(input)

        assert result.primary.drug_class == DrugClass.ALPHA_BLOCKER
        assert _classes(result.alternatives) == [DrugClass.FIVE_ARI]
        assert result.alternatives[0].preferred_agent == "Finasteride"

    @pytest.mark.parametrize("confirmation", ["enlarged_prostate_known", "raised_psa_known"])
    def test_on_alpha_blocker_with_confirmation_gets_5ari(self, confirmation: str) -> None:
        """Test the tier-2 upgrade when already on an alpha-blocker."""
        input = LUTSInput(
            adult_patient=True,
            hesitancy=True,
            weak_stream=True,
            on_alpha_blocker=True,
            **{confirmation: True},
        )

        evaluation = evaluate_luts(input)
        result = evaluation.recommendation

        assert evaluation.resolver_rule == "voiding_add_5ari"
        assert result.primary.drug_class == DrugClass.FIVE_ARI
        assert result.primary.preferred_agent == "Finasteride"
        assert _classes(result.alternatives) == [DrugClass.ALPHA_BLOCKER_PLUS_5ARI]
        assert result.alternatives[0].preferred_agent == "Dutasteride with tamsulosin"
        assert "Takes 3-6 months to show benefit" in result.checks
        assert result.escalation == ()

    def test_on_alpha_blocker_without_confirmation_falls_back(self) -> None:
        """Test no tier-2 upgrade without confirmed enlargement."""
        input = LUTSInput(
            adult_patient=True,
            hesitancy=True,
            weak_stream=True,
            on_alpha_blocker=True,
            enlarged_prostate_known=None,
        )

        evaluation = evaluate_luts(input)
        result = evaluation.recommendation

        assert evaluation.resolver_rule == "optimise_or_refer"
        assert result.primary.drug_class == DrugClass.OPTIMISE_NON_DRUG
        assert result.primary.drug_class != DrugClass.FIVE_ARI
        assert result.primary.rationale[0] == (
            "Voiding symptoms persist on alpha-blocker without confirmed prostate enlargement"
        )
        assert result.escalation == (REFERRAL_HINT,)
        assert result.escalation_level == EscalationLevel.CONSIDER

    def test_on_alpha_blocker_and_5ari_falls_back(self) -> None:
        """Test both voiding tiers in use leads to the fallback."""
        input = LUTSInput(
            adult_patient=True,
            hesitancy=True,
            weak_stream=True,
            on_alpha_blocker=True,
            on_five_ari=True,
            enlarged_prostate_known=True,
        )

        result = recommend_luts_treatment(input)

        assert result.primary.drug_class == DrugClass.OPTIMISE_NON_DRUG
        assert result.primary.rationale[0] == "Voiding symptoms persist on alpha-blocker and 5-ARI"


class TestSeverity:
    """Mild IPSS scores take precedence over classification."""

    def test_mild_score_optimises_non_drug(self) -> None:
        """Test mild IPSS with three voiding indicators gets non-drug measures."""
        input = LUTSInput(
            adult_patient=True,
            hesitancy=True,
            weak_stream=True,
            straining=True,
            ipss_score=5,
        )

        evaluation = evaluate_luts(input)
        result = evaluation.recommendation

        assert evaluation.resolver_rule == "non_drug_optimisation"
        assert result.symptom_type == SymptomType.VOIDING_PREDOMINANT
        assert result.primary.drug_class == DrugClass.OPTIMISE_NON_DRUG
        assert result.primary.rationale[0] == (
            "Mild symptoms (IPSS ≤7) - optimise non-drug measures first"
        )
        assert _classes(result.alternatives) == [DrugClass.ALPHA_BLOCKER]
        assert result.checks == (
            "Review in 4-6 weeks",
            "Consider bladder diary if not already done",
        )
        assert result.escalation == ()

    @pytest.mark.parametrize(
        "score,expected",
        [
            (0, DrugClass.OPTIMISE_NON_DRUG),
            (7, DrugClass.OPTIMISE_NON_DRUG),
            (8, DrugClass.ALPHA_BLOCKER),
            (19, DrugClass.ALPHA_BLOCKER),
            (20, DrugClass.ALPHA_BLOCKER),
            (35, DrugClass.ALPHA_BLOCKER),
            (None, DrugClass.ALPHA_BLOCKER),
        ],
    )
    def test_mild_boundary(self, score: int | None, expected: DrugClass) -> None:
        """Test the mild cutoff is inclusive at 7 and unscored is not mild."""
        input = LUTSInput(adult_patient=True, hesitancy=True, weak_stream=True, ipss_score=score)

        assert recommend_luts_treatment(input).primary.drug_class == expected


class TestStoragePathway:
    """Storage ladder: antimuscarinic or beta-3 agonist."""

    def test_storage_gets_antimuscarinic(self, storage_input: LUTSInput) -> None:
        """Test storage-predominant symptoms give first-line antimuscarinic."""
        result = recommend_luts_treatment(storage_input)

        assert result.symptom_type == SymptomType.STORAGE_PREDOMINANT
        assert result.primary.drug_class == DrugClass.ANTIMUSCARINIC
        assert result.primary.preferred_agent == "Tolterodine"
        assert _classes(result.alternatives) == [DrugClass.BETA3_AGONIST]
        assert result.checks == (
            "Review in 4-6 weeks",
            "Consider bladder diary to monitor progress",
            "Check formulary-preferred agent: Tolterodine",
        )
        assert result.metadata.based_on == ("NICE CG97", "NICE TA290")

    @pytest.mark.parametrize(
        "field,reason",
        [
            (
                "cognitive_impairment_or_high_anticholinergic_burden",
                "cognitive impairment or high anticholinergic burden",
            ),
            ("narrow_angle_glaucoma", "narrow-angle glaucoma"),
            (
                "falls_risk_or_postural_hypotension",
                "falls risk (local formulary avoids antimuscarinics in frailty)",
            ),
        ],
    )
    def test_contraindication_gives_beta3(self, storage_input: LUTSInput, field: str, reason: str) -> None:
        """Test antimuscarinic contraindications route to the beta-3 agonist."""
        input = LUTSInput(**{**storage_input.to_dict(), field: True})

        evaluation = evaluate_luts(input)
        result = evaluation.recommendation

        assert evaluation.resolver_rule == "storage_beta3"
        assert result.primary.drug_class == DrugClass.BETA3_AGONIST
        assert result.primary.preferred_agent == "Mirabegron"
        assert f"Antimuscarinic contraindicated: {reason}" in result.primary.rationale
        assert result.metadata.based_on == ("NICE CG97", "NICE TA290", "NICE TA999")

    def test_beta3_hypertension_caution_checks(self, storage_input: LUTSInput) -> None:
        """Test the default formulary adds BP checks to beta-3 recommendations."""
        input = LUTSInput(**{**storage_input.to_dict(), "narrow_angle_glaucoma": True})

        result = recommend_luts_treatment(input)

        assert result.checks == (
            "Check blood pressure before starting",
            "Monitor BP during treatment",
            "Review in 4-6 weeks",
            "Check formulary-preferred agent: Mirabegron",
        )

    def test_no_bp_checks_when_caution_off_and_normotensive(self, storage_input: LUTSInput) -> None:
        """Test BP checks are omitted when neither caution nor hypertension apply."""
        config = FormularyConfig(
            exclusions=FormularyExclusions(beta3_hypertension_caution=False),
        )
        input = LUTSInput(**{**storage_input.to_dict(), "narrow_angle_glaucoma": True})

        result = recommend_luts_treatment(input, config)

        assert "Check blood pressure before starting" not in result.checks

    def test_falls_risk_allowed_when_formulary_permits(self, storage_input: LUTSInput) -> None:
        """Test falls risk only blocks antimuscarinics when the formulary says so."""
        config = FormularyConfig(
            exclusions=FormularyExclusions(avoid_antimuscarinics_in_frailty=False),
        )
        input = LUTSInput(
            **{**storage_input.to_dict(), "falls_risk_or_postural_hypotension": True}
        )

        result = recommend_luts_treatment(input, config)

        assert result.primary.drug_class == DrugClass.ANTIMUSCARINIC
        assert result.checks[0] == "Monitor for falls risk"

    def test_on_antimuscarinic_gets_beta3(self, storage_input: LUTSInput) -> None:
        """Test a patient already on an antimuscarinic moves to beta-3."""
        input = LUTSInput(**{**storage_input.to_dict(), "on_antimuscarinic": True})

        result = recommend_luts_treatment(input)

        assert result.primary.drug_class == DrugClass.BETA3_AGONIST
        assert "Antimuscarinic already in use or not effective" in result.primary.rationale

    def test_beta3_alternative_with_hypertension_checks_bp(self, storage_input: LUTSInput) -> None:
        """Test a hypertensive patient offered beta-3 as an alternative gets a BP check."""
        input = LUTSInput(**{**storage_input.to_dict(), "severe_uncontrolled_hypertension": True})

        result = recommend_luts_treatment(input)

        assert result.primary.drug_class == DrugClass.ANTIMUSCARINIC
        assert _classes(result.alternatives) == [DrugClass.BETA3_AGONIST]
        assert result.checks == (
            "Review in 4-6 weeks",
            "Consider bladder diary to monitor progress",
            "Check formulary-preferred agent: Tolterodine",
            "Check blood pressure before starting a beta-3 agonist",
        )

    def test_no_bp_check_when_beta3_already_in_use(self, storage_input: LUTSInput) -> None:
        """Test no BP check is added when beta-3 is not offered."""
        input = LUTSInput(
            **{
                **storage_input.to_dict(),
                "severe_uncontrolled_hypertension": True,
                "on_beta3_agonist": True,
            }
        )

        result = recommend_luts_treatment(input)

        assert result.primary.drug_class == DrugClass.ANTIMUSCARINIC
        assert result.alternatives == ()
        assert not any("blood pressure" in check for check in result.checks)

    def test_storage_options_exhausted_falls_back(self, storage_input: LUTSInput) -> None:
        """Test both storage options in use leads to the fallback."""
        input = LUTSInput(
            **{**storage_input.to_dict(), "on_antimuscarinic": True, "on_beta3_agonist": True}
        )

        result = recommend_luts_treatment(input)

        assert result.primary.drug_class == DrugClass.OPTIMISE_NON_DRUG
        assert result.escalation == (REFERRAL_HINT,)
        assert result.escalation_level == EscalationLevel.CONSIDER


class TestMixedPattern:
    """Equal voiding and storage counts at threshold."""

    def _mixed(self, **kwargs) -> LUTSInput:
        return LUTSInput(
            adult_patient=True,
            hesitancy=True,
            weak_stream=True,
            urgency=True,
            frequency=True,
            ipss_score=12,
            **kwargs,
        )

    def test_mixed_with_likely_bph_treats_voiding(self) -> None:
        """Test likely BPH breaks the tie towards the voiding ladder."""
        result = recommend_luts_treatment(self._mixed(male_with_likely_bph=True))

        assert result.symptom_type == SymptomType.MIXED
        assert result.primary.drug_class == DrugClass.ALPHA_BLOCKER
        assert result.primary.rationale[0] == (
            "Mixed symptoms with equal voiding and storage burden; "
            "likely BPH favours the voiding component"
        )
        assert _classes(result.alternatives) == [DrugClass.ANTIMUSCARINIC]
        assert "Review both voiding and storage symptoms" in result.checks
        assert "Consider combination if both persist" in result.checks

    def test_mixed_without_bph_treats_storage(self) -> None:
        """Test no likely BPH breaks the tie towards the storage ladder."""
        result = recommend_luts_treatment(self._mixed())

        assert result.symptom_type == SymptomType.MIXED
        assert result.primary.drug_class == DrugClass.ANTIMUSCARINIC
        assert _classes(result.alternatives) == [
            DrugClass.BETA3_AGONIST,
            DrugClass.ALPHA_BLOCKER,
        ]

    def test_mixed_companion_respects_contraindication(self) -> None:
        """Test the storage companion skips a contraindicated antimuscarinic."""
        result = recommend_luts_treatment(
            self._mixed(male_with_likely_bph=True, narrow_angle_glaucoma=True)
        )

        assert result.primary.drug_class == DrugClass.ALPHA_BLOCKER
        assert _classes(result.alternatives) == [DrugClass.BETA3_AGONIST]

    def test_beta3_companion_with_hypertension_checks_bp(self) -> None:
        """Test a beta-3 companion for a hypertensive patient carries a BP check."""
        result = recommend_luts_treatment(
            self._mixed(
                male_with_likely_bph=True,
                narrow_angle_glaucoma=True,
                severe_uncontrolled_hypertension=True,
            )
        )

        assert result.primary.drug_class == DrugClass.ALPHA_BLOCKER
        assert _classes(result.alternatives) == [DrugClass.BETA3_AGONIST]
        assert result.checks[-1] == "Check blood pressure before starting a beta-3 agonist"


class TestUnclearPattern:
    def test_unclear_offers_partial_signals(self) -> None:
        """Test one indicator in each group gives non-drug plus both options."""
        input = LUTSInput(adult_patient=True, hesitancy=True, urgency=True)

        result = recommend_luts_treatment(input)

        assert result.symptom_type == SymptomType.UNCLEAR
        assert result.primary.drug_class == DrugClass.OPTIMISE_NON_DRUG
        assert result.primary.rationale[0] == (
            "Unclear symptom pattern - optimise non-drug measures first"
        )
        assert _classes(result.alternatives) == [
            DrugClass.ALPHA_BLOCKER,
            DrugClass.ANTIMUSCARINIC,
        ]

    def test_unclear_beta3_option_with_hypertension_checks_bp(self) -> None:
        """Test the beta-3 option under non-drug measures carries a BP check."""
        input = LUTSInput(
            adult_patient=True,
            urgency=True,
            narrow_angle_glaucoma=True,
            severe_uncontrolled_hypertension=True,
        )

        result = recommend_luts_treatment(input)

        assert result.primary.drug_class == DrugClass.OPTIMISE_NON_DRUG
        assert _classes(result.alternatives) == [DrugClass.BETA3_AGONIST]
        assert result.checks == (
            "Review in 4-6 weeks",
            "Consider bladder diary if not already done",
            "Check blood pressure before starting a beta-3 agonist",
        )

    def test_no_symptoms_with_bladder_diary(self) -> None:
        """Test an eligible adult with no symptoms and a diary on file."""
        input = LUTSInput(adult_patient=True, bladder_diary_available=True)

        result = recommend_luts_treatment(input)

        assert result.primary.drug_class == DrugClass.OPTIMISE_NON_DRUG
        assert result.alternatives == ()
        assert result.checks == ("Review in 4-6 weeks", "Review bladder diary findings")

    def test_likely_bph_without_symptoms_offers_alpha_blocker(self) -> None:
        """Test likely BPH alone is a voiding signal for alternatives."""
        input = LUTSInput(adult_patient=True, male_with_likely_bph=True)

        result = recommend_luts_treatment(input)

        assert _classes(result.alternatives) == [DrugClass.ALPHA_BLOCKER]


class TestGateOutcomes:
    def test_red_flag_escalates(self, voiding_input: LUTSInput) -> None:
        """Test one red flag gives an urgent escalation naming that flag."""
        input = LUTSInput(**{**voiding_input.to_dict(), "suspected_retention": True})

        evaluation = evaluate_luts(input)
        result = evaluation.recommendation

        assert evaluation.gate_outcome == "escalate"
        assert evaluation.resolver_rule is None
        assert result.status == RecommendationStatus.OK
        assert result.primary.drug_class == DrugClass.REFER_OR_ESCALATE
        assert result.primary.rationale == ("Red flag present: Suspected urinary retention",)
        assert result.escalation == ("Suspected retention requires immediate assessment",)
        assert result.escalation_level == EscalationLevel.URGENT
        assert result.alternatives == ()

    def test_not_eligible_is_terminal(self, voiding_input: LUTSInput) -> None:
        """Test an ineligible patient gets no guidance at all."""
        input = LUTSInput(**{**voiding_input.to_dict(), "adult_patient": False})

        evaluation = evaluate_luts(input)
        result = evaluation.recommendation

        assert evaluation.gate_outcome == "not_eligible"
        assert result.status == RecommendationStatus.NOT_ELIGIBLE
        assert result.symptom_type == SymptomType.UNCLEAR
        assert result.primary.drug_class == DrugClass.NOT_ELIGIBLE
        assert result.alternatives == ()
        assert result.checks == ()
        assert result.escalation == ()


class TestFormularyEffects:
    def test_local_preferred_agent(self, voiding_input: LUTSInput, formulary_document: dict) -> None:
        """Test a local formulary changes the preferred agent, not the class."""
        config = FormularyConfig.from_dict(formulary_document)

        result = recommend_luts_treatment(voiding_input, config)

        assert result.primary.drug_class == DrugClass.ALPHA_BLOCKER
        assert result.primary.preferred_agent == "Alfuzosin"
        assert "Check formulary-preferred agent: Alfuzosin" in result.checks

    def test_preferred_agent_hidden(self, voiding_input: LUTSInput) -> None:
        """Test display switch hides preferred agents and their check."""
        config = FormularyConfig(display=FormularyDisplay(show_preferred_agent=False))

        result = recommend_luts_treatment(voiding_input, config)

        assert result.primary.preferred_agent is None
        assert "preferredAgent" not in result.to_dict()["primary"]
        assert not any(c.startswith("Check formulary-preferred agent") for c in result.checks)


class TestOutputShape:
    def test_to_dict_keys(self, voiding_input: LUTSInput) -> None:
        """Test the JSON shape uses the web client's field names."""
        data = recommend_luts_treatment(voiding_input).to_dict()

        assert data["status"] == "ok"
        assert data["symptomType"] == "Voiding_predominant"
        assert data["primary"]["drugClass"] == "Alpha_blocker"
        assert data["primary"]["preferredAgent"] == "Tamsulosin"
        assert len(data["primary"]["rationaleBullets"]) == 2
        assert data["escalationLevel"] == "none"
        assert data["metadata"] == {"logicVersion": LOGIC_VERSION, "basedOn": ["NICE CG97"]}

    def test_trace(self, voiding_input: LUTSInput) -> None:
        """Test the evaluation trace records counts and the rule that fired."""
        evaluation = evaluate_luts(voiding_input, DEFAULT_FORMULARY_CONFIG)

        assert evaluation.counts == IndicatorCounts(voiding=2, storage=0)
        assert evaluation.trace() == {
            "gate": "pass",
            "red_flags": [],
            "voiding_count": 2,
            "storage_count": 0,
            "resolver_rule": "voiding_first_line",
        }
