"""Per-project cache of loaded pairwise comparisons.

Entries are keyed by the *ordered* treatment pair: ``(A, B)`` and
``(B, A)`` are separate slots even though they are read from the same
table. Only successful loads populate the cache, and entries live until
the project changes.
"""

import asyncio
import logging
from typing import Dict, Optional, Tuple

from dredge.comparison.parser import build_comparison
from dredge.config import EngineConfig
from dredge.errors import ComparisonUnavailable
from dredge.model import PairwiseComparison
from dredge.project.fetch import FetchResult, ResourceFetcher
from dredge.project.loader import Project

logger = logging.getLogger(__name__)


class ComparisonCache:
    """Loads, sign-corrects and caches comparisons for one project.

    Args:
        project: The loaded project (treatment table, resolver, abundances).
        fetcher: Retrieves comparison tables. Defaults to a new
            ``ResourceFetcher`` built from ``config``.
        config: Timeouts; defaults to ``EngineConfig()``.
    """

    def __init__(
        self,
        project: Project,
        fetcher: Optional[ResourceFetcher] = None,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self.project = project
        self.config = config or (fetcher.config if fetcher else EngineConfig())
        self.fetcher = fetcher or ResourceFetcher(self.config)
        self._entries: Dict[Tuple[str, str], PairwiseComparison] = {}

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def peek(self, treatment_a: str, treatment_b: str) -> Optional[PairwiseComparison]:
        """Cached comparison for the ordered pair, without loading."""
        return self._entries.get((treatment_a, treatment_b))

    def clear(self) -> None:
        self._entries.clear()

    async def get(self, treatment_a: str, treatment_b: str) -> PairwiseComparison:
        """Return the comparison of ``treatment_a`` against ``treatment_b``.

        Raises:
            UnknownTreatment: if either key is not a project treatment.
            ComparisonUnavailable: if neither direction of the table exists.
        """
        # raises UnknownTreatment
        self.project.treatment(treatment_a)
        self.project.treatment(treatment_b)

        key = (treatment_a, treatment_b)
        cached = self._entries.get(key)
        if cached is not None:
            logger.debug("Comparison cache hit for %s vs %s", treatment_a, treatment_b)
            await asyncio.sleep(0)
            return cached

        forward_loc, reverse_loc = self.project.comparison_locations(treatment_a, treatment_b)
        forward, reverse = await asyncio.gather(
            self._fetch(forward_loc),
            self._fetch(reverse_loc),
        )

        if forward.ok:
            result, is_reverse = forward, False
        elif reverse.ok:
            result, is_reverse = reverse, True
        else:
            raise ComparisonUnavailable([forward_loc, reverse_loc])

        logger.info(
            "Loading comparison %s vs %s from %s%s",
            treatment_a,
            treatment_b,
            result.location,
            " (reversed)" if is_reverse else "",
        )
        comparison = build_comparison(
            self.project,
            treatment_a,
            treatment_b,
            result.text,
            reverse=is_reverse,
            source=result.location,
        )

        # overlapping loads of the same pair keep the first stored entry
        stored = self._entries.setdefault(key, comparison)
        logger.info(
            "Cached comparison %s vs %s: %d transcripts, min p-value %g",
            treatment_a,
            treatment_b,
            len(stored),
            stored.min_p_value,
        )
        return stored

    # -----------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------

    async def _fetch(self, location: str) -> FetchResult:
        timeout = self.config.comparison_timeout or None
        try:
            return await asyncio.wait_for(self.fetcher.fetch(location), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Timed out after %ss fetching %s", timeout, location)
            return FetchResult(location=location, ok=False, error="timeout")
