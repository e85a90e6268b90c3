"""Exceptions raised by the comparison engine.

Row-level problems (malformed numbers, unresolved identifiers) are not
exceptions; they are counted on the loaded ``PairwiseComparison``.
"""

from typing import Sequence


class DredgeError(Exception):
    """Base class for all engine errors."""


class ProjectLoadError(DredgeError):
    """A required project resource is missing or malformed."""


class UnknownTreatment(DredgeError, KeyError):
    """A treatment key is not in the project's treatment table."""

    def __init__(self, treatment: str) -> None:
        self.treatment = treatment
        super().__init__(f"No such treatment: {treatment}")

    def __str__(self) -> str:
        return self.args[0]


class ComparisonUnavailable(DredgeError):
    """Neither direction of a pairwise comparison could be retrieved."""

    def __init__(self, locations: Sequence[str]) -> None:
        self.locations = tuple(locations)
        super().__init__(
            "Could not download pairwise test from "
            + " or ".join(self.locations)
        )


class NoActiveView(DredgeError):
    """Operation requires a loaded project view."""


class NoActiveComparison(NoActiveView):
    """Operation requires an active pairwise comparison."""
