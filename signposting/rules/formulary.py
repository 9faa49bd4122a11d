"""Local formulary configuration for LUTS treatments.

A formulary can change which agent is preferred within a class and
switch on the local exclusion/caution toggles. It cannot change rule
order, classification thresholds or red-flag behaviour.
"""

import hashlib
import json
import logging
from dataclasses import dataclass, field
from functools import cached_property
from types import MappingProxyType
from typing import Any, Literal, Mapping

from signposting.rules.models import PRESCRIBABLE_CLASSES, DrugClass

logger = logging.getLogger(__name__)

ExclusionContext = Literal["frailty", "hypertension"]

# Class exemplars named in NICE CG97 / TA290, used when a formulary
# does not name a preferred agent for the class.
CORE_PREFERRED_AGENTS: Mapping[DrugClass, str] = MappingProxyType({
    DrugClass.ALPHA_BLOCKER: "Tamsulosin",
    DrugClass.FIVE_ARI: "Finasteride",
    DrugClass.ALPHA_BLOCKER_PLUS_5ARI: "Dutasteride with tamsulosin",
    DrugClass.ANTIMUSCARINIC: "Tolterodine",
    DrugClass.BETA3_AGONIST: "Mirabegron",
})


class InvalidFormularyError(Exception):
    """Raised when a formulary document cannot be parsed."""
    pass


@dataclass(frozen=True)
class FormularyExclusions:
    avoid_antimuscarinics_in_frailty: bool = True
    beta3_hypertension_caution: bool = True


@dataclass(frozen=True)
class FormularyDisplay:
    show_preferred_agent: bool = True


@dataclass(frozen=True)
class FormularyConfig:
    """Immutable snapshot of one surgery's LUTS formulary."""

    version: str = "1.0"
    preferred_agents_by_class: Mapping[DrugClass, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    exclusions: FormularyExclusions = field(default_factory=FormularyExclusions)
    display: FormularyDisplay = field(default_factory=FormularyDisplay)

    def preferred_agent(self, drug_class: DrugClass) -> str | None:
        """Get the preferred agent for a drug class.

        Falls back to the core exemplar when the formulary names none.
        Returns None when display of preferred agents is switched off or
        the class is not prescribable.
        """
        if not self.display.show_preferred_agent:
            return None
        if drug_class not in PRESCRIBABLE_CLASSES:
            return None

        preferred = self.preferred_agents_by_class.get(drug_class)
        if preferred:
            return preferred[0]
        return CORE_PREFERRED_AGENTS.get(drug_class)

    def is_excluded(self, drug_class: DrugClass, context: ExclusionContext) -> bool:
        """Check if a class is excluded (or flagged for caution) in a context."""
        if drug_class == DrugClass.ANTIMUSCARINIC and context == "frailty":
            return self.exclusions.avoid_antimuscarinics_in_frailty
        if drug_class == DrugClass.BETA3_AGONIST and context == "hypertension":
            return self.exclusions.beta3_hypertension_caution
        return False

    def to_dict(self) -> dict[str, Any]:
        """Canonical document form (the shape stored and hashed)."""
        return {
            "version": self.version,
            "preferred_agents_by_class": {
                drug_class.value: list(agents)
                for drug_class, agents in sorted(
                    self.preferred_agents_by_class.items(), key=lambda item: item[0].value
                )
            },
            "exclusions": {
                "avoid_antimuscarinics_in_frailty": self.exclusions.avoid_antimuscarinics_in_frailty,
                "beta3_hypertension_caution": self.exclusions.beta3_hypertension_caution,
            },
            "display": {
                "show_preferred_agent": self.display.show_preferred_agent,
            },
        }

    @cached_property
    def content_hash(self) -> str:
        """SHA-256 of the canonical document, recorded with every decision."""
        content_str = json.dumps(self.to_dict(), sort_keys=True)
        return hashlib.sha256(content_str.encode("utf-8")).hexdigest()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FormularyConfig":
        """Create a FormularyConfig from a formulary document.

        Entries for unknown or non-prescribable classes are dropped with a
        warning, so a mistyped class key degrades to the core default agent
        rather than blocking recommendations for the surgery.

        Raises:
            InvalidFormularyError: If the document has the wrong shape
        """
        if not isinstance(data, Mapping):
            raise InvalidFormularyError("Formulary document must be a mapping")

        raw_agents = data.get("preferred_agents_by_class") or {}
        if not isinstance(raw_agents, Mapping):
            raise InvalidFormularyError("preferred_agents_by_class must be a mapping")

        agents: dict[DrugClass, tuple[str, ...]] = {}
        for key, values in raw_agents.items():
            try:
                drug_class = DrugClass(key)
            except ValueError:
                logger.warning(f"Ignoring preferred agents for unknown class: {key}")
                continue
            if drug_class not in PRESCRIBABLE_CLASSES:
                logger.warning(f"Ignoring preferred agents for non-prescribable class: {key}")
                continue
            if isinstance(values, str):
                values = [values]
            if not isinstance(values, (list, tuple)) or not all(
                isinstance(v, str) for v in values
            ):
                raise InvalidFormularyError(
                    f"Preferred agents for {key} must be a list of strings"
                )
            cleaned = tuple(v.strip() for v in values if v.strip())
            if cleaned:
                agents[drug_class] = cleaned

        exclusions = data.get("exclusions") or {}
        display = data.get("display") or {}
        if not isinstance(exclusions, Mapping) or not isinstance(display, Mapping):
            raise InvalidFormularyError("exclusions and display must be mappings")

        return cls(
            version=str(data.get("version", "1.0")),
            preferred_agents_by_class=MappingProxyType(agents),
            exclusions=FormularyExclusions(
                avoid_antimuscarinics_in_frailty=bool(
                    exclusions.get("avoid_antimuscarinics_in_frailty", True)
                ),
                beta3_hypertension_caution=bool(
                    exclusions.get("beta3_hypertension_caution", True)
                ),
            ),
            display=FormularyDisplay(
                show_preferred_agent=bool(display.get("show_preferred_agent", True)),
            ),
        )


DEFAULT_FORMULARY_CONFIG = FormularyConfig()
