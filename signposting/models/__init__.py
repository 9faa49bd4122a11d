"""Database models for the Signposting Toolkit decision service."""

from signposting.models.audit_event import ActorType, AuditEvent
from signposting.models.formulary import SurgeryFormulary

__all__ = [
    "ActorType",
    "AuditEvent",
    "SurgeryFormulary",
]
