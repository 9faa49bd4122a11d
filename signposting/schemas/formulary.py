"""Local formulary schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class FormularyExclusionsSchema(BaseModel):
    model_config = ConfigDict(extra="forbid")

    avoid_antimuscarinics_in_frailty: bool = True
    beta3_hypertension_caution: bool = True


class FormularyDisplaySchema(BaseModel):
    model_config = ConfigDict(extra="forbid")

    show_preferred_agent: bool = True


class FormularyDocument(BaseModel):
    """Formulary document as uploaded by a practice administrator.

    Keys of ``preferred_agents_by_class`` are drug class names (e.g.
    ``"Alpha_blocker"``); agents are listed in order of preference.
    """

    model_config = ConfigDict(extra="forbid")

    version: str = Field(default="1.0", min_length=1, max_length=50)
    preferred_agents_by_class: dict[str, list[str]] = Field(default_factory=dict)
    exclusions: FormularyExclusionsSchema = Field(default_factory=FormularyExclusionsSchema)
    display: FormularyDisplaySchema = Field(default_factory=FormularyDisplaySchema)


class FormularyRead(BaseModel):
    """Effective formulary for a surgery."""

    surgery_id: str
    source: Literal["surgery", "default"]
    content_hash: str
    document: FormularyDocument
    updated_at: datetime | None = None
