"""Per-surgery local formulary configuration."""

from sqlalchemy import String
from sqlalchemy.dialects.postgresql import JSON
from sqlalchemy.orm import Mapped, mapped_column

from signposting.db.base import Base, TimestampMixin


class SurgeryFormulary(Base, TimestampMixin):
    """Stored LUTS formulary overrides for one surgery.

    The row holds the raw formulary document; it is parsed into an
    immutable FormularyConfig each time it is read, so an update is a
    single row replacement and never an in-place edit of a live config.
    """

    __tablename__ = "surgery_formularies"

    surgery_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        index=True,
    )
    version: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    config: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
    )
    content_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )
    updated_by: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<SurgeryFormulary {self.surgery_id} v{self.version}>"
