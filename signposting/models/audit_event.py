"""Append-only audit event model for decision traceability."""

from enum import Enum

from sqlalchemy import String, Text
from sqlalchemy.dialects.postgresql import JSON
from sqlalchemy.orm import Mapped, mapped_column

from signposting.db.base import Base, TimestampMixin


class ActorType(str, Enum):
    """Type of actor performing the action."""

    SYSTEM = "system"
    STAFF = "staff"


class AuditEvent(Base, TimestampMixin):
    """Append-only audit event.

    IMPORTANT: This model intentionally has no update or delete
    operations. All events are immutable once created.

    Recommendation events store the full ``{input, formulary, output}``
    tuple in ``event_metadata`` so that any served recommendation can be
    replayed against the same formulary snapshot.
    """

    __tablename__ = "audit_events"

    # Actor information
    actor_type: Mapped[ActorType] = mapped_column(
        String(50),
        nullable=False,
    )
    actor_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,  # Null for system actions
    )

    # Action performed
    action: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
    )
    action_category: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,  # e.g., "clinical_tool", "formulary"
    )

    # Entity affected (surgery ids are opaque strings, not UUIDs)
    entity_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    entity_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        index=True,
    )

    event_metadata: Mapped[dict | None] = mapped_column(
        "metadata",  # Keep DB column name for compatibility
        JSON,
        nullable=True,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    request_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<AuditEvent {self.action} by {self.actor_type}:{self.actor_id} "
            f"on {self.entity_type}:{self.entity_id}>"
        )
