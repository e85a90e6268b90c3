"""Identifier canonicalization."""

from dredge.names.resolver import NameResolver

__all__ = ["NameResolver"]
