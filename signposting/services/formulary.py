"""Per-surgery formulary provider.

Resolves the formulary a surgery's decisions run against: the surgery's
stored document when one exists, otherwise the default YAML shipped
with the service. Every resolution returns an immutable FormularyConfig
snapshot, so a concurrent update never changes a decision in flight.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal, Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from signposting.core.config import settings
from signposting.models.audit_event import ActorType
from signposting.models.formulary import SurgeryFormulary
from signposting.rules.formulary import FormularyConfig
from signposting.rules.loader import FormularyLoader
from signposting.services.audit import write_audit_event

logger = logging.getLogger(__name__)

FormularySource = Literal["surgery", "default"]

# Shared between requests; cached entries are immutable configs
default_loader = FormularyLoader(settings.formulary_dir)


@dataclass(frozen=True)
class ResolvedFormulary:
    """A formulary snapshot and where it came from."""

    config: FormularyConfig
    source: FormularySource
    content_hash: str
    updated_at: datetime | None = None


class FormularyProvider:
    """Look up and store surgery formularies."""

    def __init__(
        self,
        session: AsyncSession,
        loader: FormularyLoader | None = None,
    ) -> None:
        self.session = session
        self.loader = loader or default_loader

    def get_default(self) -> ResolvedFormulary:
        """Load the default formulary shipped with the service.

        Raises:
            FormularyNotFoundError: If the default formulary file is missing
            InvalidFormularyError: If the default formulary cannot be parsed
        """
        config, file_hash = self.loader.load(settings.default_formulary_file)
        logger.debug(
            f"Using default formulary {settings.default_formulary_file} "
            f"v{config.version} (file hash {file_hash[:12]})"
        )
        return ResolvedFormulary(
            config=config,
            source="default",
            content_hash=config.content_hash,
        )

    async def _get_row(self, surgery_id: str) -> SurgeryFormulary | None:
        result = await self.session.execute(
            select(SurgeryFormulary).where(SurgeryFormulary.surgery_id == surgery_id)
        )
        return result.scalar_one_or_none()

    async def get_for_surgery(self, surgery_id: str) -> ResolvedFormulary:
        """Resolve the effective formulary for a surgery.

        Args:
            surgery_id: Opaque surgery identifier

        Returns:
            ResolvedFormulary for the surgery, or the default formulary
        """
        row = await self._get_row(surgery_id)
        if row is None:
            return self.get_default()

        config = FormularyConfig.from_dict(row.config)
        return ResolvedFormulary(
            config=config,
            source="surgery",
            content_hash=config.content_hash,
            updated_at=row.updated_at or row.created_at,
        )

    async def save_for_surgery(
        self,
        surgery_id: str,
        document: Mapping[str, Any],
        updated_by: str | None = None,
        request_id: str | None = None,
    ) -> ResolvedFormulary:
        """Store a surgery's formulary, replacing any existing one.

        The document is parsed before anything is written, so an invalid
        upload leaves the current formulary untouched. The row and its
        "formulary_updated" audit event are committed in one transaction.

        Args:
            surgery_id: Opaque surgery identifier
            document: Formulary document
            updated_by: Staff identifier of the editor
            request_id: Request correlation ID for the audit event

        Returns:
            ResolvedFormulary for the stored document

        Raises:
            InvalidFormularyError: If the document cannot be parsed
        """
        config = FormularyConfig.from_dict(document)
        canonical = config.to_dict()

        row = await self._get_row(surgery_id)
        previous_hash = row.content_hash if row else None

        if row is None:
            row = SurgeryFormulary(surgery_id=surgery_id)
            self.session.add(row)

        row.version = config.version
        row.config = canonical
        row.content_hash = config.content_hash
        row.updated_by = updated_by

        # Committed by write_audit_event together with the event
        await self.session.flush()
        await write_audit_event(
            session=self.session,
            actor_type=ActorType.STAFF if updated_by else ActorType.SYSTEM,
            actor_id=updated_by,
            action="formulary_updated",
            action_category="formulary",
            entity_type="surgery",
            entity_id=surgery_id,
            metadata={
                "formulary_version": config.version,
                "formulary_hash": config.content_hash,
                "previous_hash": previous_hash,
                "document": canonical,
            },
            description=f"LUTS formulary set to v{config.version}",
            request_id=request_id,
        )
        await self.session.refresh(row)

        logger.info(
            f"Stored formulary v{config.version} for surgery {surgery_id}",
            extra={"surgery_id": surgery_id, "action": "formulary_updated"},
        )

        return ResolvedFormulary(
            config=config,
            source="surgery",
            content_hash=config.content_hash,
            updated_at=row.updated_at or row.created_at,
        )
