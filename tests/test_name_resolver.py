"""Tests for the canonical-name index."""

import pytest

from dredge.names import NameResolver


@pytest.fixture
def resolver():
    return NameResolver.build(
        ["Gene1", "Gene2", "Actb", "Actg1"],
        {"Gene1": ["G1", "geneone"], "Actb": ["beta-actin"], "Novel": ["NV1"]},
    )


# ---------------------------------------------------------------------------
# Exact lookup
# ---------------------------------------------------------------------------

class TestCanonicalLabel:

    def test_canonical_maps_to_itself(self, resolver):
        assert resolver.get_canonical_label("Gene2") == "Gene2"

    def test_alias_maps_to_owner(self, resolver):
        assert resolver.get_canonical_label("G1") == "Gene1"
        assert resolver.get_canonical_label("geneone") == "Gene1"

    def test_alias_owner_without_measurements_is_indexed(self, resolver):
        assert resolver.get_canonical_label("Novel") == "Novel"
        assert resolver.get_canonical_label("NV1") == "Novel"

    def test_unknown_is_none(self, resolver):
        assert resolver.get_canonical_label("Gene99") is None
        assert resolver.get_canonical_label("") is None

    def test_case_sensitive(self, resolver):
        assert resolver.get_canonical_label("gene1") is None
        assert resolver.get_canonical_label("g1") is None

    @pytest.mark.parametrize("query", ["Gene1", "G1", "geneone", "beta-actin", "Actg1"])
    def test_idempotent(self, resolver, query):
        once = resolver.get_canonical_label(query)
        assert once is not None
        assert resolver.get_canonical_label(once) == once

    def test_conflicting_alias_last_insert_wins(self):
        resolver = NameResolver.build(["A", "B"], {"A": ["shared"], "B": ["shared"]})
        assert resolver.get_canonical_label("shared") == "B"

    def test_contains_and_len(self, resolver):
        assert "beta-actin" in resolver
        assert "nothing" not in resolver
        # 4 canonical + Novel + G1, geneone, beta-actin, NV1
        assert len(resolver) == 9

    def test_canonical_names(self, resolver):
        assert resolver.canonical_names == ["Actb", "Actg1", "Gene1", "Gene2", "Novel"]


# ---------------------------------------------------------------------------
# Prefix search
# ---------------------------------------------------------------------------

class TestSearch:

    def test_prefix_over_canonical_names(self, resolver):
        assert sorted(resolver.search("Act")) == ["Actb", "Actg1"]

    def test_prefix_over_aliases(self, resolver):
        assert resolver.search("beta") == ["Actb"]

    def test_results_are_deduplicated(self, resolver):
        # "G1" and "Gene1" both resolve to Gene1
        results = resolver.search("G")
        assert sorted(results) == ["Gene1", "Gene2"]
        assert len(results) == len(set(results))

    def test_no_match(self, resolver):
        assert resolver.search("zzz") == []

    def test_empty_prefix_matches_everything(self, resolver):
        assert sorted(resolver.search("")) == resolver.canonical_names

    def test_empty_index(self):
        resolver = NameResolver.build([])
        assert resolver.search("A") == []
        assert resolver.get_canonical_label("A") is None
