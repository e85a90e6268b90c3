"""Parsing of pairwise comparison tables.

The tables are produced by edgeR's ``exactTest``
(https://rdrr.io/bioc/edgeR/man/exactTest.html) and written as
tab-separated text::

    <header row, ignored>
    identifier  logFC  logCPM  PValue

A bad number never drops a row: it becomes NaN and the row is counted as
malformed.
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterator, List, Optional

from dredge.model import DifferentialExpression, PairwiseComparison, is_missing
from dredge.project.abundance import summarize_abundances
from dredge.project.loader import Project

logger = logging.getLogger(__name__)

NAN = float("nan")


@dataclass
class ComparisonRow:
    """One raw data row of a comparison table."""

    identifier: str
    log_fc: float
    log_ata: float
    p_value: float
    malformed: bool = False


def parse_number(text: Optional[str]) -> float:
    """Parse a text-encoded number; NaN when it is not one."""
    if text is None:
        return NAN
    try:
        return float(text.strip())
    except ValueError:
        return NAN


def iter_comparison_rows(text: str) -> Iterator[ComparisonRow]:
    """Yield the data rows of a comparison table, skipping the header."""
    lines = text.strip().splitlines()
    for line in lines[1:]:
        if not line.strip():
            continue
        fields = line.split("\t")
        identifier = fields[0].strip()
        raw = (fields[1:4] + [None, None, None])[:3]
        log_fc, log_ata, p_value = (parse_number(value) for value in raw)
        malformed = len(fields) < 4 or any(
            value is None or (math.isnan(num) and value.strip().lower() != "nan")
            for value, num in zip(raw, (log_fc, log_ata, p_value))
        )
        yield ComparisonRow(identifier, log_fc, log_ata, p_value, malformed)


def _sort_key(value: Optional[float]) -> float:
    return 0.0 if is_missing(value) else value


def build_comparison(
    project: Project,
    treatment_a: str,
    treatment_b: str,
    text: str,
    reverse: bool = False,
    source: str = "",
) -> PairwiseComparison:
    """Turn a comparison table into a ``PairwiseComparison`` for (A, B).

    Args:
        project: Supplies name resolution and abundance data.
        treatment_a: Key of treatment A as requested.
        treatment_b: Key of treatment B as requested.
        text: Raw table text.
        reverse: The table was written as (B, A); ``logFC`` is negated.
        source: Location the table was read from.
    """
    records = {}
    min_p_value = 1.0
    malformed = 0
    unresolved = 0
    sign = -1.0 if reverse else 1.0

    for row in iter_comparison_rows(text):
        if row.malformed:
            malformed += 1

        name = project.get_canonical_label(row.identifier)
        if name is None:
            unresolved += 1
            name = row.identifier

        mean_a, median_a = summarize_abundances(
            project.abundances_for_treatment_transcript(treatment_a, name)
        )
        mean_b, median_b = summarize_abundances(
            project.abundances_for_treatment_transcript(treatment_b, name)
        )

        records[name] = DifferentialExpression(
            name=name,
            p_value=row.p_value,
            log_fc=sign * row.log_fc,
            log_ata=row.log_ata,
            treatment_a_abundance_mean=mean_a,
            treatment_a_abundance_median=median_a,
            treatment_b_abundance_mean=mean_b,
            treatment_b_abundance_median=median_b,
        )

        if row.p_value > 0 and row.p_value < min_p_value:
            min_p_value = row.p_value

    if malformed:
        logger.warning("%s: %d malformed rows kept with NaN values", source, malformed)
    if unresolved:
        logger.warning(
            "%s: %d identifiers not in the project index, kept as-is", source, unresolved
        )

    values: List[DifferentialExpression] = list(records.values())
    return PairwiseComparison(
        treatment_a=treatment_a,
        treatment_b=treatment_b,
        records=records,
        min_p_value=min_p_value,
        fc_sorted=sorted(values, key=lambda r: _sort_key(r.log_fc)),
        ata_sorted=sorted(values, key=lambda r: _sort_key(r.log_ata)),
        source=source,
        reversed=reverse,
        malformed_rows=malformed,
        unresolved_names=unresolved,
    )
