"""Project and engine configuration.

``ProjectConfig`` comes from a project's own ``project.json``;
``EngineConfig`` holds runtime knobs, overridable through ``DREDGE_*``
environment variables.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_PAIRWISE_NAME = "./pairwise_tests/%A_%B.txt"

DEFAULT_STORAGE_DIR = Path.home() / ".dredge"
DEFAULT_STORAGE_FILE = DEFAULT_STORAGE_DIR / "storage.json"

# Names of the optional/required files inside a project base
PROJECT_METADATA_FILE = "project.json"
TREATMENTS_FILE = "treatments.json"
ALIASES_FILE = "gene_aliases.csv"
WHITELIST_FILE = "gene_whitelist.txt"
ABUNDANCE_FILE = "treatment_rpkms.tsv"


@dataclass
class ProjectConfig:
    """Per-project settings."""

    label: str = ""
    pairwise_name: str = DEFAULT_PAIRWISE_NAME  # contains %A and %B

    @classmethod
    def from_metadata(cls, metadata: Optional[Mapping[str, Any]]) -> "ProjectConfig":
        """Build from a parsed ``project.json`` document (may be ``None``)."""
        metadata = metadata or {}
        return cls(
            label=str(metadata.get("label") or ""),
            pairwise_name=metadata.get("pairwiseName") or DEFAULT_PAIRWISE_NAME,
        )


@dataclass
class EngineConfig:
    """Runtime configuration for resource retrieval and persistence."""

    request_timeout: float = 30.0
    comparison_timeout: float = 60.0
    max_retries: int = 3
    storage_path: Path = field(default_factory=lambda: DEFAULT_STORAGE_FILE)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """Read overrides from ``DREDGE_*`` environment variables.

        Unparseable values are ignored with a warning.
        """
        env = os.environ if environ is None else environ
        config = cls()
        overrides: Dict[str, Any] = {}

        for var, attr, cast in (
            ("DREDGE_REQUEST_TIMEOUT", "request_timeout", float),
            ("DREDGE_COMPARISON_TIMEOUT", "comparison_timeout", float),
            ("DREDGE_MAX_RETRIES", "max_retries", int),
        ):
            raw = env.get(var)
            if not raw:
                continue
            try:
                value = cast(raw)
            except ValueError:
                logger.warning("Ignoring %s=%r: not a valid %s", var, raw, cast.__name__)
                continue
            if value < 0:
                logger.warning("Ignoring %s=%r: must not be negative", var, raw)
                continue
            overrides[attr] = value

        storage = env.get("DREDGE_STORAGE_PATH")
        if storage:
            overrides["storage_path"] = Path(storage).expanduser()

        for attr, value in overrides.items():
            setattr(config, attr, value)
        return config
