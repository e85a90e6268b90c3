"""View state: selection, sort/filter pipeline and persistence."""

from dredge.view.controller import ViewController
from dredge.view.pipeline import SortFilterPipeline, sort_records
from dredge.view.storage import LocalStorage, MemoryStorage

__all__ = [
    "LocalStorage",
    "MemoryStorage",
    "SortFilterPipeline",
    "ViewController",
    "sort_records",
]
