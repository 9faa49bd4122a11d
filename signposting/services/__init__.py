"""Business logic services."""

from signposting.services.audit import AuditService, write_audit_event
from signposting.services.formulary import FormularyProvider, ResolvedFormulary
from signposting.services.luts import LUTSDecision, LUTSDecisionService

__all__ = [
    "AuditService",
    "write_audit_event",
    "FormularyProvider",
    "ResolvedFormulary",
    "LUTSDecision",
    "LUTSDecisionService",
]
