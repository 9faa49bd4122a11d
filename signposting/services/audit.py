"""Audit event service for append-only audit logging."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from signposting.core.logging import audit_logger
from signposting.models.audit_event import ActorType, AuditEvent
from signposting.schemas.audit_event import AuditEventFilter


async def write_audit_event(
    session: AsyncSession,
    actor_type: ActorType,
    actor_id: str | None,
    action: str,
    entity_type: str,
    entity_id: str | None,
    metadata: dict[str, Any] | None = None,
    action_category: str | None = None,
    description: str | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    """Write an audit event to the database.

    Events are append-only and cannot be modified or deleted.

    Args:
        session: Database session
        actor_type: Type of actor (system, staff)
        actor_id: ID of the actor, if known
        action: Action performed (e.g., "luts_recommendation", "formulary_updated")
        entity_type: Type of entity affected (e.g., "surgery")
        entity_id: ID of the affected entity
        metadata: Additional context as JSON
        action_category: Category of action (clinical_tool, formulary)
        description: Human-readable description
        request_id: Request correlation ID

    Returns:
        Created AuditEvent instance
    """
    event = AuditEvent(
        actor_type=actor_type,
        actor_id=actor_id,
        action=action,
        action_category=action_category,
        entity_type=entity_type,
        entity_id=entity_id,
        event_metadata=metadata,
        description=description,
        request_id=request_id,
    )

    session.add(event)
    await session.commit()
    await session.refresh(event)

    # Also log to structured logger
    audit_logger.log(
        action=action,
        actor_type=actor_type.value,
        actor_id=actor_id or "system",
        entity_type=entity_type,
        entity_id=entity_id or "none",
        metadata=metadata,
    )

    return event


class AuditService:
    """Service for querying audit events.

    Note: This service only provides read operations.
    Audit events are created via write_audit_event() function.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_events(
        self,
        filters: AuditEventFilter,
    ) -> list[AuditEvent]:
        """Query audit events with optional filters, newest first."""
        query = select(AuditEvent).order_by(AuditEvent.created_at.desc())

        if filters.entity_id:
            query = query.where(AuditEvent.entity_id == filters.entity_id)
        if filters.entity_type:
            query = query.where(AuditEvent.entity_type == filters.entity_type)
        if filters.actor_id:
            query = query.where(AuditEvent.actor_id == filters.actor_id)
        if filters.action:
            query = query.where(AuditEvent.action == filters.action)
        if filters.action_category:
            query = query.where(AuditEvent.action_category == filters.action_category)

        query = query.offset(filters.offset).limit(filters.limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_event_by_id(self, event_id: str) -> AuditEvent | None:
        result = await self.session.execute(
            select(AuditEvent).where(AuditEvent.id == event_id)
        )
        return result.scalar_one_or_none()
