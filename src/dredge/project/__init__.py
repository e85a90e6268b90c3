"""Project resources: retrieval, abundance data and loading."""

from dredge.project.abundance import AbundanceStore, summarize_abundances
from dredge.project.fetch import FetchResult, ResourceFetcher
from dredge.project.loader import Project, load_project

__all__ = [
    "AbundanceStore",
    "FetchResult",
    "Project",
    "ResourceFetcher",
    "load_project",
    "summarize_abundances",
]
