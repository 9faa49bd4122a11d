"""LUTS decision service.

Wires the pure decision engine to its collaborators: the surgery's
formulary is resolved first, the engine is evaluated against that
snapshot, and the full input/formulary/output tuple is written to the
audit trail.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from signposting.core.config import settings
from signposting.models.audit_event import ActorType, AuditEvent
from signposting.rules.engine import LUTSEvaluation, evaluate_luts
from signposting.rules.models import LUTSInput, LUTSRecommendation
from signposting.services.audit import write_audit_event
from signposting.services.formulary import FormularyProvider, ResolvedFormulary

logger = logging.getLogger(__name__)

RECOMMENDATION_ACTION = "luts_recommendation"


@dataclass(frozen=True)
class LUTSDecision:
    """A served recommendation with its formulary and audit record."""

    evaluation: LUTSEvaluation
    formulary: ResolvedFormulary
    audit_event: AuditEvent | None = None

    @property
    def recommendation(self) -> LUTSRecommendation:
        return self.evaluation.recommendation


class LUTSDecisionService:
    """Serve LUTS treatment recommendations for a surgery."""

    def __init__(
        self,
        session: AsyncSession,
        provider: FormularyProvider | None = None,
    ) -> None:
        self.session = session
        self.provider = provider or FormularyProvider(session)

    async def recommend(
        self,
        surgery_id: str,
        input: LUTSInput,
        actor_id: str | None = None,
        request_id: str | None = None,
    ) -> LUTSDecision:
        """Evaluate a patient context against the surgery's formulary.

        Args:
            surgery_id: Opaque surgery identifier
            input: Validated patient context
            actor_id: Staff identifier of the requesting clinician
            request_id: Request correlation ID

        Returns:
            LUTSDecision with the recommendation and its audit event
        """
        formulary = await self.provider.get_for_surgery(surgery_id)
        evaluation = evaluate_luts(input, formulary.config)
        recommendation = evaluation.recommendation

        logger.info(
            f"LUTS recommendation for surgery {surgery_id}: "
            f"{recommendation.status.value}/{recommendation.primary.drug_class.value} "
            f"(rule={evaluation.resolver_rule}, gate={evaluation.gate_outcome})",
            extra={"surgery_id": surgery_id, "request_id": request_id},
        )

        audit_event = None
        if settings.audit_decisions:
            audit_event = await write_audit_event(
                session=self.session,
                actor_type=ActorType.STAFF if actor_id else ActorType.SYSTEM,
                actor_id=actor_id,
                action=RECOMMENDATION_ACTION,
                action_category="clinical_tool",
                entity_type="surgery",
                entity_id=surgery_id,
                metadata={
                    "input": input.to_dict(),
                    "formulary_version": formulary.config.version,
                    "formulary_hash": formulary.content_hash,
                    "formulary_source": formulary.source,
                    "resolver_rule": evaluation.resolver_rule,
                    "trace": evaluation.trace(),
                    "output": recommendation.to_dict(),
                },
                description=(
                    f"LUTS recommendation: {recommendation.primary.drug_class.value}"
                ),
                request_id=request_id,
            )

        return LUTSDecision(
            evaluation=evaluation,
            formulary=formulary,
            audit_event=audit_event,
        )
