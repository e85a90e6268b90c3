"""Records shared by the comparison cache, the view pipeline and export.

A ``PairwiseComparison`` maps canonical transcript names to
``DifferentialExpression`` rows; ``SelectionState`` is what the user has
brushed, hovered, selected or saved.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Set, Tuple

ASCENDING = "asc"
DESCENDING = "desc"
SORT_ORDERS = (ASCENDING, DESCENDING)

NAME_SORT_PATH = "name"

# Sort paths as they appear in saved views, mapped to record attributes.
# Attribute names are accepted as-is too.
SORT_PATHS: Dict[str, str] = {
    "name": "name",
    "pValue": "p_value",
    "logFC": "log_fc",
    "logATA": "log_ata",
    "logCPM": "log_ata",
    "treatmentA_AbundanceMean": "treatment_a_abundance_mean",
    "treatmentA_AbundanceMedian": "treatment_a_abundance_median",
    "treatmentB_AbundanceMean": "treatment_b_abundance_mean",
    "treatmentB_AbundanceMedian": "treatment_b_abundance_median",
}


def resolve_sort_path(sort_path: str) -> str:
    """Return the record attribute a sort path reads.

    Raises:
        ValueError: if the path names no record field.
    """
    if sort_path in SORT_PATHS:
        return SORT_PATHS[sort_path]
    if sort_path in SORT_PATHS.values():
        return sort_path
    raise ValueError(f"Unknown sort path: {sort_path!r}")


def is_missing(value: Optional[float]) -> bool:
    """True for ``None`` and NaN, the two shapes of an absent number."""
    return value is None or (isinstance(value, float) and math.isnan(value))


@dataclass(frozen=True)
class Treatment:
    """An experimental condition and its replicate samples."""

    key: str
    label: str = ""
    replicates: Tuple[str, ...] = ()
    file_key: Optional[str] = None  # used in comparison filenames when set

    @property
    def comparison_key(self) -> str:
        return self.file_key or self.key

    @property
    def display_label(self) -> str:
        return self.label or self.key


@dataclass
class DifferentialExpression:
    """Comparison result for one transcript between treatments A and B."""

    name: str
    p_value: Optional[float] = None
    log_fc: Optional[float] = None  # A vs B
    log_ata: Optional[float] = None
    treatment_a_abundance_mean: Optional[float] = None
    treatment_a_abundance_median: Optional[float] = None
    treatment_b_abundance_mean: Optional[float] = None
    treatment_b_abundance_median: Optional[float] = None

    @classmethod
    def placeholder(cls, name: str) -> "DifferentialExpression":
        """A record for a transcript with no data in the comparison."""
        return cls(name=name)


@dataclass
class PairwiseComparison:
    """All records of one ordered treatment comparison.

    Behaves as a read-only mapping from canonical name to record.
    """

    treatment_a: str
    treatment_b: str
    records: Dict[str, DifferentialExpression] = field(default_factory=dict)
    min_p_value: float = 1.0
    fc_sorted: List[DifferentialExpression] = field(default_factory=list)
    ata_sorted: List[DifferentialExpression] = field(default_factory=list)
    source: str = ""
    reversed: bool = False
    malformed_rows: int = 0
    unresolved_names: int = 0

    def __contains__(self, name: object) -> bool:
        return name in self.records

    def __getitem__(self, name: str) -> DifferentialExpression:
        return self.records[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def get(self, name: str) -> Optional[DifferentialExpression]:
        return self.records.get(name)

    def values(self) -> List[DifferentialExpression]:
        return list(self.records.values())

    @property
    def key(self) -> Tuple[str, str]:
        return (self.treatment_a, self.treatment_b)


@dataclass(frozen=True)
class BrushedArea:
    """Rectangle drawn on the (logATA, logFC) scatter plot."""

    min_log_ata: float
    max_log_ata: float
    min_log_fc: float
    max_log_fc: float

    @classmethod
    def from_coords(cls, coords: Sequence[float]) -> "BrushedArea":
        """Build from plot brush coordinates ``[minATA, maxFC, maxATA, minFC]``."""
        min_ata, max_fc, max_ata, min_fc = coords
        return cls(
            min_log_ata=float(min_ata),
            max_log_ata=float(max_ata),
            min_log_fc=float(min_fc),
            max_log_fc=float(max_fc),
        )


@dataclass
class SelectionState:
    """Transient view selection read by the sort/filter pipeline."""

    p_value_threshold: float = 0.05
    brushed_area: Optional[BrushedArea] = None
    saved_transcripts: Set[str] = field(default_factory=set)
    hovered_bin_transcripts: Optional[Set[str]] = None
    selected_bin_transcripts: Optional[Set[str]] = None
    sort_path: str = "pValue"
    order: str = ASCENDING
