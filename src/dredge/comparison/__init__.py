"""Loading and caching of pairwise differential expression comparisons."""

from dredge.comparison.cache import ComparisonCache
from dredge.comparison.parser import build_comparison, iter_comparison_rows

__all__ = ["ComparisonCache", "build_comparison", "iter_comparison_rows"]
