"""YAML formulary loader with integrity hashing."""

import hashlib
from pathlib import Path
from typing import Any

import yaml

from signposting.core.config import FORMULARIES_DIR
from signposting.rules.formulary import FormularyConfig, InvalidFormularyError


class FormularyNotFoundError(FileNotFoundError):
    """Raised when a formulary file does not exist."""
    pass


def compute_formulary_hash(content: str) -> str:
    """Compute SHA256 hash of raw formulary file content.

    Args:
        content: Raw YAML content string

    Returns:
        SHA256 hex digest
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def load_formulary(
    filename: str,
    formulary_dir: Path | None = None,
) -> tuple[dict[str, Any], str]:
    """Load a formulary YAML file and compute its hash.

    Args:
        filename: Name of the formulary file (e.g., "luts-default-v1.0.yaml")
        formulary_dir: Directory containing formularies (defaults to /formularies)

    Returns:
        Tuple of (parsed formulary dict, SHA256 hash)

    Raises:
        FormularyNotFoundError: If formulary file doesn't exist
        InvalidFormularyError: If the YAML is invalid or not a mapping
    """
    if formulary_dir is None:
        formulary_dir = FORMULARIES_DIR

    filepath = Path(formulary_dir) / filename

    if not filepath.exists():
        raise FormularyNotFoundError(f"Formulary not found: {filepath}")

    content = filepath.read_text(encoding="utf-8")
    try:
        document = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise InvalidFormularyError(f"Invalid formulary YAML in {filename}: {exc}") from exc

    if not isinstance(document, dict):
        raise InvalidFormularyError(f"Formulary {filename} must be a mapping")

    return document, compute_formulary_hash(content)


class FormularyLoader:
    """Stateful formulary loader with caching.

    Cached entries are immutable FormularyConfig snapshots, so handing the
    same object to concurrent evaluations is safe.
    """

    def __init__(self, formulary_dir: Path | None = None) -> None:
        self.formulary_dir = formulary_dir or FORMULARIES_DIR
        self._cache: dict[str, tuple[FormularyConfig, str]] = {}

    def load(self, filename: str, use_cache: bool = True) -> tuple[FormularyConfig, str]:
        """Load and parse a formulary with optional caching.

        Args:
            filename: Formulary filename
            use_cache: Whether to use cached version if available

        Returns:
            Tuple of (FormularyConfig, file hash)
        """
        if use_cache and filename in self._cache:
            return self._cache[filename]

        document, file_hash = load_formulary(filename, self.formulary_dir)
        config = FormularyConfig.from_dict(document)
        self._cache[filename] = (config, file_hash)

        return config, file_hash

    def clear_cache(self) -> None:
        """Clear the formulary cache."""
        self._cache.clear()

    def list_formularies(self) -> list[str]:
        """List available formulary files."""
        return sorted(f.name for f in Path(self.formulary_dir).glob("*.yaml"))
