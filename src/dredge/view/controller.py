"""The view controller: the single owner of browsing state.

Holds the active project, its comparison cache, the user's selection and
the derived transcript sequences. Every mutation goes through a method
here; collaborators receive the state they need explicitly.

Comparison loads are asynchronous and cannot be cancelled. Each load
captures a token ``(project identity, project generation, request
number)`` and its result is applied only if the token is still current
when the load finishes, so a slow load can never overwrite the outcome of
a later request or land in a different project.
"""

import json
import logging
from typing import Iterable, List, Optional, Sequence, Set, Tuple, Union

from dredge.comparison.cache import ComparisonCache
from dredge.config import EngineConfig
from dredge.errors import DredgeError, NoActiveComparison, NoActiveView
from dredge.model import (
    BrushedArea,
    DifferentialExpression,
    PairwiseComparison,
    SelectionState,
    resolve_sort_path,
)
from dredge.project.fetch import ResourceFetcher
from dredge.project.loader import Project
from dredge.view.pipeline import SortFilterPipeline, check_order
from dredge.view.storage import MemoryStorage
from dredge.view.transfer import format_table, parse_transcript_list, resolve_transcripts

logger = logging.getLogger(__name__)

Token = Tuple[str, int, int]


def watched_key(project: Project) -> str:
    """Storage key of a project's saved-transcript list."""
    return f"{project.identity}-watched"


class ViewController:
    """Owns project, cache, selection and the displayed transcripts.

    Args:
        project: Project to open immediately, if any.
        storage: ``get``/``set`` store used to persist saved transcripts.
        fetcher: Shared resource fetcher for comparison tables.
        config: Engine configuration.
    """

    def __init__(
        self,
        project: Optional[Project] = None,
        storage=None,
        fetcher: Optional[ResourceFetcher] = None,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.storage = storage if storage is not None else MemoryStorage()
        self.fetcher = fetcher or ResourceFetcher(self.config)
        self.selection = SelectionState()
        self.pipeline = SortFilterPipeline(self.selection, self._canonicalize)

        self.project: Optional[Project] = None
        self.cache: Optional[ComparisonCache] = None
        self.compared_treatments: Optional[Tuple[str, str]] = None
        self._generation = 0
        self._request = 0

        if project is not None:
            self.change_project(project)

    # -----------------------------------------------------------------
    # Derived state
    # -----------------------------------------------------------------

    @property
    def comparison(self) -> Optional[PairwiseComparison]:
        return self.pipeline.comparison

    @property
    def sorted_transcripts(self) -> List[DifferentialExpression]:
        return self.pipeline.sorted_transcripts

    @property
    def displayed_transcripts(self) -> List[DifferentialExpression]:
        return self.pipeline.displayed_transcripts

    def _token(self) -> Token:
        identity = self.project.identity if self.project is not None else ""
        return (identity, self._generation, self._request)

    def _require_project(self) -> Project:
        if self.project is None:
            raise NoActiveView("No project is being viewed")
        return self.project

    def _canonicalize(self, name: str) -> Optional[str]:
        if self.project is None:
            return name
        return self.project.get_canonical_label(name)

    def _canonical_names(self, names: Iterable[str]) -> List[str]:
        """Canonical labels in input order; unknown names are kept verbatim."""
        return list(dict.fromkeys(self._canonicalize(name) or name for name in names))

    # -----------------------------------------------------------------
    # Project and comparison
    # -----------------------------------------------------------------

    def change_project(self, project: Project) -> None:
        """Switch projects; in-flight loads for the old one are discarded."""
        self._generation += 1
        self.project = project
        self.cache = ComparisonCache(project, self.fetcher, self.config)
        self.compared_treatments = None
        self.pipeline.set_comparison(None)

        self.selection.brushed_area = None
        self.selection.hovered_bin_transcripts = None
        self.selection.selected_bin_transcripts = None
        self.selection.saved_transcripts = self._restore_saved(project)
        logger.info(
            "Viewing project %s (%d treatments, %d saved transcripts)",
            project.label,
            len(project.treatments),
            len(self.selection.saved_transcripts),
        )

    def _restore_saved(self, project: Project) -> Set[str]:
        raw = self.storage.get(watched_key(project))
        if not raw:
            return set()
        try:
            names = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring malformed saved transcripts for %s", project.identity)
            return set()
        if not isinstance(names, list):
            logger.warning("Ignoring malformed saved transcripts for %s", project.identity)
            return set()
        return set(self._canonical_names(str(name) for name in names))

    async def set_pairwise_comparison(
        self, treatment_a: str, treatment_b: str
    ) -> Optional[PairwiseComparison]:
        """Load and activate the comparison of A against B.

        Returns:
            The activated comparison, or ``None`` when a newer request or a
            project change superseded this one while it was loading.

        Raises:
            NoActiveView: if no project is open.
            UnknownTreatment: if either key is unknown.
            ComparisonUnavailable: if no table exists for the pair.
        """
        self._require_project()
        self._request += 1
        token = self._token()
        cache = self.cache

        try:
            comparison = await cache.get(treatment_a, treatment_b)
        except DredgeError:
            if token != self._token():
                logger.debug(
                    "Dropping failure of superseded load %s vs %s", treatment_a, treatment_b
                )
                return None
            raise

        if token != self._token():
            logger.debug("Discarding stale comparison %s vs %s", treatment_a, treatment_b)
            return None

        self.compared_treatments = (treatment_a, treatment_b)
        self.pipeline.set_comparison(comparison)
        self.pipeline.update_sort()
        self.pipeline.update_displayed()
        return comparison

    async def set_default_comparison(self) -> Optional[PairwiseComparison]:
        """Compare the project's first two treatments."""
        treatment_a, treatment_b = self._require_project().default_comparison()
        return await self.set_pairwise_comparison(treatment_a, treatment_b)

    # -----------------------------------------------------------------
    # Sorting and display
    # -----------------------------------------------------------------

    def update_sort(
        self, sort_path: Optional[str] = None, order: Optional[str] = None
    ) -> List[DifferentialExpression]:
        """Change the sort and recompute both derived sequences."""
        self._require_project()
        if sort_path is not None:
            resolve_sort_path(sort_path)
            self.selection.sort_path = sort_path
        if order is not None:
            self.selection.order = check_order(order)

        sorted_transcripts = self.pipeline.update_sort()
        if self.comparison is not None:
            self.pipeline.update_displayed()
        return sorted_transcripts

    def update_displayed(self) -> List[DifferentialExpression]:
        self._require_project()
        if self.comparison is None:
            raise NoActiveComparison("Can't run without pairwise data")
        return self.pipeline.update_displayed()

    def _refresh(self) -> None:
        if self.comparison is not None:
            self.pipeline.update_displayed()

    # -----------------------------------------------------------------
    # Selection
    # -----------------------------------------------------------------

    def set_p_value_threshold(self, threshold: float) -> None:
        self.selection.p_value_threshold = float(threshold)
        self._refresh()

    def set_brushed_area(
        self, area: Union[BrushedArea, Sequence[float], None]
    ) -> None:
        """Set or clear the brush; sequences are ``[minATA, maxFC, maxATA, minFC]``."""
        if area is not None and not isinstance(area, BrushedArea):
            area = BrushedArea.from_coords(area)
        self.selection.brushed_area = area
        self._refresh()

    def set_selected_bin_transcripts(self, names: Optional[Set[str]]) -> None:
        self.selection.selected_bin_transcripts = (
            None if names is None else set(self._canonical_names(names))
        )
        self._refresh()

    def set_hovered_bin_transcripts(self, names: Optional[Set[str]]) -> None:
        self.selection.hovered_bin_transcripts = (
            None if names is None else set(self._canonical_names(names))
        )
        self._refresh()

    def set_saved_transcripts(self, names: Sequence[str]) -> None:
        """Replace the saved set and persist it for this project.

        Aliases are stored under their canonical name.
        """
        project = self._require_project()
        ordered = self._canonical_names(names)
        self.selection.saved_transcripts = set(ordered)
        self.storage.set(watched_key(project), json.dumps(ordered))
        self._refresh()

    # -----------------------------------------------------------------
    # Import / export
    # -----------------------------------------------------------------

    def import_saved_transcripts(
        self, text: str
    ) -> Tuple[List[Tuple[str, str]], List[str]]:
        """Add the transcripts listed in a TSV file to the saved set.

        Returns:
            ``(imported, skipped)``: ``(raw, canonical)`` pairs that were
            resolved, and raw names the project does not know.
        """
        project = self._require_project()
        imported, skipped = resolve_transcripts(
            parse_transcript_list(text), project.get_canonical_label
        )
        if skipped:
            logger.info("Skipped %d unknown transcripts on import", len(skipped))

        existing = sorted(self.selection.saved_transcripts)
        self.set_saved_transcripts([canonical for _, canonical in imported] + existing)
        return imported, skipped

    def export_displayed_transcripts(self) -> str:
        """The displayed transcripts as a tab-separated table."""
        self._require_project()
        if self.compared_treatments is None:
            raise NoActiveComparison("No comparison to export")
        treatment_a, treatment_b = self.compared_treatments
        return format_table(self.displayed_transcripts, treatment_a, treatment_b)

    def search(self, prefix: str) -> List[str]:
        return self._require_project().search(prefix)
