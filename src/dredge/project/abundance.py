"""Per-replicate abundance measurements (``treatment_rpkms.tsv``).

The file is a transcript x replicate matrix: the header row names the
replicates, the first column names the transcripts.
"""

import logging
import math
from io import StringIO
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from dredge.model import Treatment

logger = logging.getLogger(__name__)


class AbundanceStore:
    """Looks up replicate abundances for a (treatment, transcript) pair."""

    def __init__(
        self,
        matrix: Optional[pd.DataFrame] = None,
        treatments: Optional[Mapping[str, Treatment]] = None,
    ) -> None:
        if matrix is None:
            matrix = pd.DataFrame(dtype=float)
        self._matrix = matrix
        self._treatments: Dict[str, Treatment] = dict(treatments or {})
        self._columns = {str(col): idx for idx, col in enumerate(matrix.columns)}
        self._rows = {}
        for idx, name in enumerate(matrix.index):
            # first occurrence wins for duplicated transcript rows
            self._rows.setdefault(str(name), idx)
        self._values = matrix.to_numpy(dtype=float) if len(matrix.columns) else None

    @classmethod
    def from_tsv(
        cls, text: str, treatments: Optional[Mapping[str, Treatment]] = None
    ) -> "AbundanceStore":
        """Parse a tab-separated abundance matrix.

        Non-numeric cells become NaN.
        """
        frame = pd.read_csv(
            StringIO(text.strip("\n")),
            sep="\t",
            index_col=0,
            dtype=str,
            keep_default_na=False,
        )
        frame.index = frame.index.astype(str)
        frame.columns = [str(col) for col in frame.columns]
        numeric = frame.apply(pd.to_numeric, errors="coerce")
        logger.debug(
            "Parsed abundance matrix: %d transcripts x %d replicates",
            numeric.shape[0],
            numeric.shape[1],
        )
        return cls(numeric, treatments)

    @classmethod
    def empty(cls) -> "AbundanceStore":
        return cls()

    @property
    def transcripts(self) -> List[str]:
        """Transcript names in file order, without duplicates."""
        return list(self._rows)

    @property
    def replicates(self) -> List[str]:
        return list(self._columns)

    def abundances_for_treatment_transcript(
        self, treatment_key: str, name: str
    ) -> Optional[List[float]]:
        """Replicate values of ``name`` within ``treatment_key``.

        Returns:
            One float per replicate of the treatment (NaN where the
            replicate has no column), or ``None`` when the treatment or the
            transcript is unknown.
        """
        treatment = self._treatments.get(treatment_key)
        row = self._rows.get(name)
        if treatment is None or row is None or self._values is None:
            return None

        values: List[float] = []
        for replicate in treatment.replicates:
            col = self._columns.get(replicate)
            values.append(float("nan") if col is None else float(self._values[row, col]))
        return values


def summarize_abundances(
    values: Optional[Sequence[float]],
) -> Tuple[Optional[float], Optional[float]]:
    """Mean and median ignoring NaN; ``(None, None)`` without finite data."""
    if values is None:
        return None, None
    finite = np.asarray([v for v in values if v is not None and not math.isnan(v)], dtype=float)
    if finite.size == 0:
        return None, None
    return float(np.mean(finite)), float(np.median(finite))
