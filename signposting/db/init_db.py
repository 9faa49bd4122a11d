"""Database initialization utilities."""

import logging

from signposting.db.base import Base
from signposting.db.session import engine

# Import models so their tables are registered on Base.metadata
from signposting.models import AuditEvent, SurgeryFormulary  # noqa: F401

logger = logging.getLogger(__name__)


async def create_tables() -> None:
    """Create all database tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")
