"""Canonical-name index for transcript/gene identifiers.

A project names the same entity several ways (approved symbol, previous
symbols, aliases). ``NameResolver`` maps every known identifier to one
canonical name and supports prefix search for autocomplete.
"""

import bisect
import logging
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)


class NameResolver:
    """Maps identifiers and aliases to canonical names.

    Build with :meth:`build`; the index is read-only afterwards.

    Conflicting aliases (the same alias listed under two canonical names)
    resolve to the one inserted last. Callers are expected to supply
    unique aliases.
    """

    def __init__(self, corpus: Mapping[str, str]) -> None:
        self._corpus: Mapping[str, str] = MappingProxyType(dict(corpus))
        self._keys: List[str] = sorted(self._corpus)

    @classmethod
    def build(
        cls,
        canonical_names: Iterable[str],
        aliases: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> "NameResolver":
        """Build the index.

        Args:
            canonical_names: Every canonical identifier in the project.
            aliases: Canonical name -> list of alternative identifiers.

        Returns:
            A resolver where each canonical name maps to itself and each
            alias to its owner.
        """
        corpus: Dict[str, str] = {}
        for name in canonical_names:
            if name:
                corpus[name] = name

        for canonical, alias_list in (aliases or {}).items():
            if not canonical:
                continue
            corpus.setdefault(canonical, canonical)
            for alias in alias_list:
                if not alias:
                    continue
                previous = corpus.get(alias)
                if previous is not None and previous != canonical and previous != alias:
                    logger.debug(
                        "Alias %r reassigned from %r to %r", alias, previous, canonical
                    )
                corpus[alias] = canonical

        return cls(corpus)

    def __len__(self) -> int:
        return len(self._corpus)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._corpus

    @property
    def canonical_names(self) -> List[str]:
        """Distinct canonical names, sorted."""
        return sorted(set(self._corpus.values()))

    def get_canonical_label(self, query: str) -> Optional[str]:
        """Exact, case-sensitive lookup. ``None`` when unknown."""
        return self._corpus.get(query)

    def search(self, prefix: str) -> List[str]:
        """Canonical names whose indexed identifiers start with ``prefix``."""
        start = bisect.bisect_left(self._keys, prefix)
        seen = set()
        results: List[str] = []
        for key in self._keys[start:]:
            if not key.startswith(prefix):
                break
            canonical = self._corpus[key]
            if canonical not in seen:
                seen.add(canonical)
                results.append(canonical)
        return results
