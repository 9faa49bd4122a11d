"""Pydantic schemas for request/response validation."""

from signposting.schemas.audit_event import AuditEventFilter, AuditEventRead
from signposting.schemas.formulary import FormularyDocument, FormularyRead
from signposting.schemas.luts import (
    FormularyReference,
    LUTSAssessmentRequest,
    LUTSRecommendationResponse,
)

__all__ = [
    "AuditEventFilter",
    "AuditEventRead",
    "FormularyDocument",
    "FormularyRead",
    "FormularyReference",
    "LUTSAssessmentRequest",
    "LUTSRecommendationResponse",
]
