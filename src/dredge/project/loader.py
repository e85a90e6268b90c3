"""Project loading.

A project lives under a base directory or URL and provides:

- ``project.json`` (optional) - label and comparison filename template
- ``treatments.json`` (required) - treatment key -> label/replicates/fileKey
- ``gene_whitelist.txt`` (optional) - one transcript name per line
- ``gene_aliases.csv`` (optional) - ``canonical,alias,alias,...`` rows
- ``treatment_rpkms.tsv`` (optional) - replicate abundance matrix

Optional resources are fetched concurrently; their absence is logged and
tolerated.
"""

import asyncio
import csv
import json
import logging
from dataclasses import dataclass, field
from io import StringIO
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from dredge.config import (
    ABUNDANCE_FILE,
    ALIASES_FILE,
    PROJECT_METADATA_FILE,
    TREATMENTS_FILE,
    WHITELIST_FILE,
    ProjectConfig,
)
from dredge.errors import ProjectLoadError, UnknownTreatment
from dredge.model import Treatment
from dredge.names import NameResolver
from dredge.project.abundance import AbundanceStore
from dredge.project.fetch import (
    FetchResult,
    ResourceFetcher,
    fill_template,
    is_url,
    resolve_location,
)

logger = logging.getLogger(__name__)


@dataclass
class Project:
    """Everything the comparison engine needs from one loaded project."""

    identity: str
    config: ProjectConfig = field(default_factory=ProjectConfig)
    treatments: Dict[str, Treatment] = field(default_factory=dict)
    resolver: NameResolver = field(default_factory=lambda: NameResolver.build([]))
    abundance: AbundanceStore = field(default_factory=AbundanceStore.empty)
    gene_whitelist: Optional[FrozenSet[str]] = None

    @property
    def label(self) -> str:
        return self.config.label or self.identity

    def treatment(self, key: str) -> Treatment:
        try:
            return self.treatments[key]
        except KeyError:
            raise UnknownTreatment(key) from None

    def get_canonical_label(self, identifier: str) -> Optional[str]:
        return self.resolver.get_canonical_label(identifier)

    def search(self, prefix: str) -> List[str]:
        return self.resolver.search(prefix)

    def abundances_for_treatment_transcript(
        self, treatment_key: str, name: str
    ) -> Optional[List[float]]:
        return self.abundance.abundances_for_treatment_transcript(treatment_key, name)

    def default_comparison(self) -> Tuple[str, str]:
        """The first two treatments in table order."""
        keys = list(self.treatments)
        if len(keys) < 2:
            raise ProjectLoadError(
                f"Project {self.identity} needs at least two treatments to compare"
            )
        return keys[0], keys[1]

    def comparison_locations(self, key_a: str, key_b: str) -> Tuple[str, str]:
        """Forward (``A`` in ``%A``) and reverse candidate resource locations."""
        file_a = self.treatment(key_a).comparison_key
        file_b = self.treatment(key_b).comparison_key
        template = self.config.pairwise_name
        forward = resolve_location(self.identity, fill_template(template, file_a, file_b))
        reverse = resolve_location(self.identity, fill_template(template, file_b, file_a))
        return forward, reverse


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------


def parse_treatments(text: str) -> Dict[str, Treatment]:
    """Parse ``treatments.json`` into an ordered treatment table."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ProjectLoadError(f"{TREATMENTS_FILE} is not a valid JSON file: {exc}") from exc

    if not isinstance(payload, dict):
        raise ProjectLoadError(f"{TREATMENTS_FILE} must contain a JSON object")

    treatments: Dict[str, Treatment] = {}
    for key, entry in payload.items():
        if not isinstance(entry, dict):
            raise ProjectLoadError(f"Treatment {key!r} must be a JSON object")
        replicates = entry.get("replicates") or []
        if not isinstance(replicates, list):
            raise ProjectLoadError(f"Treatment {key!r} replicates must be a list")
        treatments[key] = Treatment(
            key=key,
            label=str(entry.get("label") or ""),
            replicates=tuple(str(r) for r in replicates),
            file_key=entry.get("fileKey") or None,
        )
    return treatments


def parse_aliases(text: str) -> Dict[str, List[str]]:
    """Parse ``gene_aliases.csv``: canonical name then its aliases per row."""
    aliases: Dict[str, List[str]] = {}
    for row in csv.reader(StringIO(text)):
        cells = [cell.strip() for cell in row]
        if not cells or not cells[0]:
            continue
        aliases.setdefault(cells[0], []).extend(c for c in cells[1:] if c)
    return aliases


def parse_whitelist(text: str) -> FrozenSet[str]:
    """Parse ``gene_whitelist.txt``: one name per line, blanks ignored."""
    return frozenset(line.strip() for line in text.splitlines() if line.strip())


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


async def load_project(base: str, fetcher: Optional[ResourceFetcher] = None) -> Project:
    """Load the project rooted at ``base`` (directory path or URL).

    Raises:
        ProjectLoadError: if ``treatments.json`` is missing or malformed.
    """
    fetcher = fetcher or ResourceFetcher()
    if not is_url(base):
        base = str(Path(base).resolve())

    def log(message: str, *args: Any) -> None:
        logger.info("%s: " + message, base, *args)

    (
        metadata_res,
        treatments_res,
        whitelist_res,
        aliases_res,
        abundance_res,
    ) = await asyncio.gather(
        fetcher.fetch(resolve_location(base, PROJECT_METADATA_FILE)),
        fetcher.fetch(resolve_location(base, TREATMENTS_FILE)),
        fetcher.fetch(resolve_location(base, WHITELIST_FILE)),
        fetcher.fetch(resolve_location(base, ALIASES_FILE)),
        fetcher.fetch(resolve_location(base, ABUNDANCE_FILE)),
    )

    config = _load_config(metadata_res, log)

    if not treatments_res.ok:
        raise ProjectLoadError(
            f"Could not download `{TREATMENTS_FILE}` file from {treatments_res.location}"
        )
    treatments = parse_treatments(treatments_res.text)
    log("Loaded %d treatments", len(treatments))

    gene_whitelist = None
    if whitelist_res.ok:
        gene_whitelist = parse_whitelist(whitelist_res.text)
        log("Loaded gene whitelist (%d names)", len(gene_whitelist))
    else:
        log("No gene whitelist found")

    aliases: Dict[str, List[str]] = {}
    if aliases_res.ok:
        aliases = parse_aliases(aliases_res.text)
        log("Loaded gene aliases")
    else:
        log("No gene aliases found")

    abundance = AbundanceStore.empty()
    if abundance_res.ok:
        try:
            abundance = AbundanceStore.from_tsv(abundance_res.text, treatments)
            log("Loaded gene RPKM measurements")
        except ValueError as exc:
            logger.warning("%s: Gene RPKM measurements file malformed: %s", base, exc)
    else:
        log("No RPKM mean measurements found")

    canonical_names = abundance.transcripts or list(aliases)
    resolver = NameResolver.build(canonical_names, aliases)
    log("Indexed %d identifiers", len(resolver))

    return Project(
        identity=base,
        config=config,
        treatments=treatments,
        resolver=resolver,
        abundance=abundance,
        gene_whitelist=gene_whitelist,
    )


def _load_config(result: FetchResult, log) -> ProjectConfig:
    if not result.ok:
        log("No project metadata found; using defaults")
        return ProjectConfig()
    try:
        metadata = json.loads(result.text)
    except json.JSONDecodeError:
        logger.warning("%s is not a valid JSON file; using defaults", result.location)
        return ProjectConfig()
    if not isinstance(metadata, dict):
        logger.warning("%s must contain a JSON object; using defaults", result.location)
        return ProjectConfig()
    log("Loaded project metadata")
    return ProjectConfig.from_metadata(metadata)
