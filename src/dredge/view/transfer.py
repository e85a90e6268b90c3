"""Import of saved-transcript lists and export of the displayed table."""

import csv
import math
from io import StringIO
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from dredge.model import DifferentialExpression

EXPORT_FILENAME = "saved-transcripts.tsv"
NAME_HEADER = "Gene name"


def export_header(treatment_a: str, treatment_b: str) -> List[str]:
    return [
        NAME_HEADER,
        "pValue",
        "logATA",
        "logFC",
        f"{treatment_a} mean abundance",
        f"{treatment_a} median abundance",
        f"{treatment_b} mean abundance",
        f"{treatment_b} median abundance",
    ]


def format_number(value: Optional[float]) -> str:
    """Shortest text for a number; ``None`` is the empty string.

    Integral floats drop the trailing ``.0``.
    """
    if value is None:
        return ""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def format_table(
    records: Iterable[DifferentialExpression], treatment_a: str, treatment_b: str
) -> str:
    """Render records as the tab-separated export table."""
    buf = StringIO()
    writer = csv.writer(buf, delimiter="\t", lineterminator="\n")
    writer.writerow(export_header(treatment_a, treatment_b))
    for record in records:
        writer.writerow([
            record.name,
            format_number(record.p_value),
            format_number(record.log_ata),
            format_number(record.log_fc),
            format_number(record.treatment_a_abundance_mean),
            format_number(record.treatment_a_abundance_median),
            format_number(record.treatment_b_abundance_mean),
            format_number(record.treatment_b_abundance_median),
        ])
    return buf.getvalue()


def parse_transcript_list(text: str) -> List[str]:
    """First column of a TSV transcript list, minus a ``Gene name`` header."""
    rows = list(csv.reader(StringIO(text.strip()), delimiter="\t"))
    if rows and rows[0] and rows[0][0] == NAME_HEADER:
        rows = rows[1:]
    return [row[0].strip() for row in rows if row and row[0].strip()]


def resolve_transcripts(
    names: Sequence[str], canonicalize: Callable[[str], Optional[str]]
) -> Tuple[List[Tuple[str, str]], List[str]]:
    """Split names into ``(raw, canonical)`` pairs and unresolvable names."""
    imported: List[Tuple[str, str]] = []
    skipped: List[str] = []
    for name in names:
        canonical = canonicalize(name)
        if canonical:
            imported.append((name, canonical))
        else:
            skipped.append(name)
    return imported, skipped
