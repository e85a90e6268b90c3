"""Sort/filter pipeline from a loaded comparison to the rows on screen.

Two sequences are derived:

``sorted_transcripts``
    Every record of the active comparison ordered by the current sort path.
``displayed_transcripts``
    The subset the table shows, chosen from exactly one selection source
    (brushed region, selected bin, hovered bin, saved transcripts in that
    precedence), followed by placeholders for listed names that have no
    record in the comparison.
"""

import logging
from typing import Callable, Iterable, List, Optional, Set

from dredge.errors import NoActiveComparison
from dredge.model import (
    ASCENDING,
    DESCENDING,
    NAME_SORT_PATH,
    BrushedArea,
    DifferentialExpression,
    PairwiseComparison,
    SelectionState,
    is_missing,
    resolve_sort_path,
)

logger = logging.getLogger(__name__)


def check_order(order: str) -> str:
    if order not in (ASCENDING, DESCENDING):
        raise ValueError(f"Sort order must be {ASCENDING!r} or {DESCENDING!r}, not {order!r}")
    return order


def sort_records(
    records: Iterable[DifferentialExpression], sort_path: str, order: str
) -> List[DifferentialExpression]:
    """Stable sort on ``sort_path``; undefined values always sort last.

    The ``name`` path compares case-insensitively.
    """
    attr = resolve_sort_path(sort_path)
    descending = check_order(order) == DESCENDING

    if attr == NAME_SORT_PATH:
        return sorted(records, key=lambda r: r.name.lower(), reverse=descending)

    defined: List[DifferentialExpression] = []
    undefined: List[DifferentialExpression] = []
    for record in records:
        (undefined if is_missing(getattr(record, attr)) else defined).append(record)

    # list.sort stays stable with reverse=True
    defined.sort(key=lambda r: getattr(r, attr), reverse=descending)
    return defined + undefined


def sort_by_name(records: Iterable[DifferentialExpression], order: str) -> List[DifferentialExpression]:
    return sort_records(records, NAME_SORT_PATH, order)


def _within(low: float, high: float, value: Optional[float]) -> bool:
    if is_missing(value):
        return False
    return low <= value <= high


def brushed_transcripts(
    comparison: PairwiseComparison, area: BrushedArea, p_value_threshold: float
) -> Set[str]:
    """Names of records inside the brushed rectangle and under the threshold."""
    return {
        record.name
        for record in comparison.values()
        if _within(0, p_value_threshold, record.p_value)
        and _within(area.min_log_ata, area.max_log_ata, record.log_ata)
        and _within(area.min_log_fc, area.max_log_fc, record.log_fc)
    }


def listed_transcripts(comparison: PairwiseComparison, selection: SelectionState) -> Set[str]:
    """The single selection source in effect, by fixed precedence."""
    if selection.brushed_area is not None:
        return brushed_transcripts(
            comparison, selection.brushed_area, selection.p_value_threshold
        )
    if selection.selected_bin_transcripts is not None:
        return set(selection.selected_bin_transcripts)
    if selection.hovered_bin_transcripts is not None:
        return set(selection.hovered_bin_transcripts)
    return set(selection.saved_transcripts)


class SortFilterPipeline:
    """Recomputes the sorted and displayed sequences on demand.

    Reads ``selection`` but never mutates it. The sort path and order used
    by the last ``update_sort`` are kept on the pipeline and also drive
    ``update_displayed``, so both sequences always share one order.

    Args:
        selection: Selection state owned by the caller.
        canonicalize: Maps a listed name to its canonical label, or ``None``
            when unknown. Listed names are matched against records and
            labelled as placeholders by their canonical label.
    """

    def __init__(
        self,
        selection: SelectionState,
        canonicalize: Optional[Callable[[str], Optional[str]]] = None,
    ) -> None:
        self.selection = selection
        self.canonicalize = canonicalize or (lambda name: name)
        self.comparison: Optional[PairwiseComparison] = None
        self.sort_path: Optional[str] = None
        self.order: Optional[str] = None
        self.sorted_transcripts: List[DifferentialExpression] = []
        self.displayed_transcripts: List[DifferentialExpression] = []

    def set_comparison(self, comparison: Optional[PairwiseComparison]) -> None:
        """Activate ``comparison`` and re-sort it with the current sort."""
        self.comparison = comparison
        self.displayed_transcripts = []
        self.update_sort(self.sort_path, self.order)

    def update_sort(
        self, sort_path: Optional[str] = None, order: Optional[str] = None
    ) -> List[DifferentialExpression]:
        """Re-sort every record of the active comparison.

        ``sort_path``/``order`` default to the selection's current values.
        """
        sort_path = sort_path or self.selection.sort_path
        order = check_order(order or self.selection.order)
        resolve_sort_path(sort_path)
        self.sort_path, self.order = sort_path, order
        records = self.comparison.values() if self.comparison is not None else []
        self.sorted_transcripts = sort_records(records, sort_path, order)
        return self.sorted_transcripts

    def update_displayed(self) -> List[DifferentialExpression]:
        """Filter the sorted records down to the listed set and add placeholders.

        Raises:
            NoActiveComparison: if no comparison has been set.
        """
        comparison = self.comparison
        if comparison is None:
            raise NoActiveComparison("Can't update displayed transcripts without pairwise data")

        listed = {
            self.canonicalize(name) or name
            for name in listed_transcripts(comparison, self.selection)
        }

        displayed = [r for r in self.sorted_transcripts if r.name in listed]

        extras = [
            DifferentialExpression.placeholder(name)
            for name in sorted(listed)
            if name not in comparison
        ]
        displayed.extend(sort_by_name(extras, self.order))

        if resolve_sort_path(self.sort_path) == NAME_SORT_PATH:
            displayed = sort_by_name(displayed, self.order)

        logger.debug(
            "Displaying %d of %d listed transcripts (%d without data)",
            len(displayed),
            len(listed),
            len(extras),
        )
        self.displayed_transcripts = displayed
        return displayed
