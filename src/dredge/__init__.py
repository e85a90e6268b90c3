"""Comparison data engine for browsing differential expression projects.

Usage::

    import asyncio
    from dredge import ViewController, load_project

    project = asyncio.run(load_project("path/to/project"))
    view = ViewController(project)
    asyncio.run(view.set_pairwise_comparison("WT", "KO"))
    view.update_sort("logFC", "desc")
    print(view.export_displayed_transcripts())
"""

from dredge.comparison import ComparisonCache
from dredge.config import EngineConfig, ProjectConfig
from dredge.errors import (
    ComparisonUnavailable,
    DredgeError,
    NoActiveComparison,
    NoActiveView,
    ProjectLoadError,
    UnknownTreatment,
)
from dredge.model import (
    BrushedArea,
    DifferentialExpression,
    PairwiseComparison,
    SelectionState,
    Treatment,
)
from dredge.names import NameResolver
from dredge.project import AbundanceStore, Project, ResourceFetcher, load_project
from dredge.view import LocalStorage, MemoryStorage, SortFilterPipeline, ViewController

__version__ = "0.1.0"

__all__ = [
    "AbundanceStore",
    "BrushedArea",
    "ComparisonCache",
    "ComparisonUnavailable",
    "DifferentialExpression",
    "DredgeError",
    "EngineConfig",
    "LocalStorage",
    "MemoryStorage",
    "NameResolver",
    "NoActiveComparison",
    "NoActiveView",
    "PairwiseComparison",
    "Project",
    "ProjectConfig",
    "ProjectLoadError",
    "ResourceFetcher",
    "SelectionState",
    "SortFilterPipeline",
    "Treatment",
    "UnknownTreatment",
    "ViewController",
    "load_project",
]
