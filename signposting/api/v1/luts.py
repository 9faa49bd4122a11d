"""LUTS clinical tool endpoints.

Recommendation, local formulary and decision audit endpoints for one
surgery. The recommendation endpoint is decision support only: it never
prescribes, and every response carries the logic version and references
it was derived from.
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from signposting.api.deps import DbSession, RequestId, StaffId, SurgeryId
from signposting.rules.formulary import InvalidFormularyError
from signposting.schemas.audit_event import AuditEventFilter, AuditEventRead
from signposting.schemas.formulary import FormularyDocument, FormularyRead
from signposting.schemas.luts import (
    FormularyReference,
    LUTSAssessmentRequest,
    LUTSRecommendationResponse,
)
from signposting.services.audit import AuditService
from signposting.services.formulary import FormularyProvider, ResolvedFormulary
from signposting.services.luts import RECOMMENDATION_ACTION, LUTSDecisionService

router = APIRouter()


def _formulary_read(surgery_id: str, resolved: ResolvedFormulary) -> FormularyRead:
    return FormularyRead(
        surgery_id=surgery_id,
        source=resolved.source,
        content_hash=resolved.content_hash,
        document=FormularyDocument.model_validate(resolved.config.to_dict()),
        updated_at=resolved.updated_at,
    )


@router.post(
    "/{surgery_id}/luts/recommendation",
    response_model=LUTSRecommendationResponse,
    status_code=status.HTTP_200_OK,
    summary="Recommend LUTS treatment",
    description="Evaluate a structured LUTS assessment against the surgery formulary",
)
async def recommend_treatment(
    surgery_id: SurgeryId,
    assessment: LUTSAssessmentRequest,
    session: DbSession,
    staff_id: StaffId = None,
    request_id: RequestId = None,
) -> LUTSRecommendationResponse:
    """Recommend a LUTS drug class (or escalation) for a patient.

    Args:
        surgery_id: Surgery whose formulary applies
        assessment: Validated assessment
        session: Database session
        staff_id: Requesting clinician, if supplied
        request_id: Request correlation ID, if supplied

    Returns:
        Recommendation with the formulary snapshot it used
    """
    service = LUTSDecisionService(session)
    decision = await service.recommend(
        surgery_id,
        assessment.to_input(),
        actor_id=staff_id,
        request_id=request_id,
    )

    return LUTSRecommendationResponse.from_recommendation(
        decision.recommendation.to_dict(),
        formulary=FormularyReference(
            version=decision.formulary.config.version,
            source=decision.formulary.source,
            content_hash=decision.formulary.content_hash,
        ),
    )


@router.get(
    "/{surgery_id}/luts/formulary",
    response_model=FormularyRead,
    status_code=status.HTTP_200_OK,
    summary="Get surgery formulary",
    description="Effective LUTS formulary for a surgery (stored or default)",
)
async def get_formulary(surgery_id: SurgeryId, session: DbSession) -> FormularyRead:
    provider = FormularyProvider(session)
    resolved = await provider.get_for_surgery(surgery_id)
    return _formulary_read(surgery_id, resolved)


@router.put(
    "/{surgery_id}/luts/formulary",
    response_model=FormularyRead,
    status_code=status.HTTP_200_OK,
    summary="Set surgery formulary",
    description="Replace the LUTS formulary for a surgery",
)
async def put_formulary(
    surgery_id: SurgeryId,
    document: FormularyDocument,
    session: DbSession,
    staff_id: StaffId = None,
    request_id: RequestId = None,
) -> FormularyRead:
    """Replace a surgery's formulary.

    Unknown drug class keys are dropped from the stored document, so the
    response shows what will actually be applied.

    Raises:
        HTTPException: 422 if the document cannot be parsed
    """
    provider = FormularyProvider(session)
    try:
        resolved = await provider.save_for_surgery(
            surgery_id,
            document.model_dump(),
            updated_by=staff_id,
            request_id=request_id,
        )
    except InvalidFormularyError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        )

    return _formulary_read(surgery_id, resolved)


@router.get(
    "/{surgery_id}/luts/audit",
    response_model=list[AuditEventRead],
    status_code=status.HTTP_200_OK,
    summary="List LUTS decisions",
    description="Recent LUTS recommendation audit events for a surgery (read-only)",
)
async def list_decisions(
    surgery_id: SurgeryId,
    session: DbSession,
    limit: int = Query(50, ge=1, le=500, description="Maximum events to return"),
    offset: int = Query(0, ge=0, description="Events to skip"),
) -> list[AuditEventRead]:
    filters = AuditEventFilter(
        entity_type="surgery",
        entity_id=surgery_id,
        action=RECOMMENDATION_ACTION,
        limit=limit,
        offset=offset,
    )

    audit_service = AuditService(session)
    events = await audit_service.get_events(filters)

    return [AuditEventRead.model_validate(e) for e in events]


@router.get(
    "/{surgery_id}/luts/audit/{event_id}",
    response_model=AuditEventRead,
    status_code=status.HTTP_200_OK,
    summary="Get LUTS decision",
    description="A single LUTS recommendation audit event for a surgery (read-only)",
)
async def get_decision(
    surgery_id: SurgeryId,
    event_id: UUID,
    session: DbSession,
) -> AuditEventRead:
    """Fetch one recorded decision.

    Raises:
        HTTPException: 404 if the event does not exist or belongs elsewhere
    """
    audit_service = AuditService(session)
    event = await audit_service.get_event_by_id(str(event_id))

    if (
        event is None
        or event.entity_type != "surgery"
        or event.entity_id != surgery_id
        or event.action != RECOMMENDATION_ACTION
    ):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Audit event not found",
        )

    return AuditEventRead.model_validate(event)
