"""Tests for ViewController: state ownership, stale loads and persistence."""

import asyncio
import json

import pytest

from conftest import GatedFetcher, write_project
from dredge.errors import ComparisonUnavailable, NoActiveComparison, NoActiveView, UnknownTreatment
from dredge.model import BrushedArea
from dredge.project.loader import load_project
from dredge.view.controller import ViewController, watched_key
from dredge.view.storage import MemoryStorage


def _names(records):
    return [r.name for r in records]


@pytest.fixture
def view(project):
    return ViewController(project, storage=MemoryStorage())


# ---------------------------------------------------------------------------
# Comparison loading
# ---------------------------------------------------------------------------

class TestSetPairwiseComparison:

    def test_activates_and_sorts(self, view):
        comparison = asyncio.run(view.set_pairwise_comparison("WT", "KO"))
        assert view.comparison is comparison
        assert view.compared_treatments == ("WT", "KO")
        # default sort is pValue ascending; Unknown7 has no p-value
        assert _names(view.sorted_transcripts) == ["Gene3", "Gene1", "Gene2", "Unknown7"]
        assert view.displayed_transcripts == []

    def test_default_comparison(self, view):
        comparison = asyncio.run(view.set_default_comparison())
        assert comparison.key == ("WT", "KO")

    def test_errors_propagate(self, view):
        with pytest.raises(UnknownTreatment):
            asyncio.run(view.set_pairwise_comparison("WT", "nope"))
        with pytest.raises(ComparisonUnavailable):
            asyncio.run(view.set_pairwise_comparison("HET", "KO"))
        assert view.comparison is None

    def test_requires_project(self):
        view = ViewController(storage=MemoryStorage())
        with pytest.raises(NoActiveView):
            asyncio.run(view.set_pairwise_comparison("WT", "KO"))
        with pytest.raises(NoActiveView):
            view.update_sort("logFC")

    def test_newer_request_supersedes_slow_load(self, project):
        fetcher = GatedFetcher()
        view = ViewController(project, storage=MemoryStorage(), fetcher=fetcher)

        async def main():
            gate = fetcher.hold("wt_ko")
            slow = asyncio.ensure_future(view.set_pairwise_comparison("WT", "KO"))
            await asyncio.sleep(0)
            # a second request for a pair that fails fast
            with pytest.raises(ComparisonUnavailable):
                await view.set_pairwise_comparison("HET", "KO")
            gate.set()
            return await slow

        assert asyncio.run(main()) is None
        assert view.comparison is None
        assert view.compared_treatments is None

    def test_stale_load_discarded_after_project_change(self, project, tmp_path):
        fetcher = GatedFetcher()
        view = ViewController(project, storage=MemoryStorage(), fetcher=fetcher)
        other = asyncio.run(load_project(str(write_project(tmp_path / "other")), fetcher))

        async def main():
            gate = fetcher.hold("project/pairwise_tests/wt_ko")
            slow = asyncio.ensure_future(view.set_pairwise_comparison("WT", "KO"))
            await asyncio.sleep(0)
            view.change_project(other)
            gate.set()
            return await slow

        assert asyncio.run(main()) is None
        assert view.project is other
        assert view.comparison is None
        # the result never reached the new project's cache
        assert len(view.cache) == 0

    def test_stale_failure_is_swallowed(self, project, tmp_path):
        fetcher = GatedFetcher()
        view = ViewController(project, storage=MemoryStorage(), fetcher=fetcher)

        async def main():
            gate = fetcher.hold("HET")
            failing = asyncio.ensure_future(view.set_pairwise_comparison("HET", "KO"))
            await asyncio.sleep(0)
            await view.set_pairwise_comparison("WT", "KO")
            gate.set()
            return await failing

        assert asyncio.run(main()) is None
        assert view.compared_treatments == ("WT", "KO")


# ---------------------------------------------------------------------------
# Selection and display
# ---------------------------------------------------------------------------

class TestSelection:

    def test_saved_transcripts_displayed_with_extras(self, view):
        asyncio.run(view.set_pairwise_comparison("WT", "KO"))
        view.set_saved_transcripts(["Gene2", "Gene4", "Gene1"])
        assert _names(view.displayed_transcripts) == ["Gene1", "Gene2", "Gene4"]
        assert view.displayed_transcripts[-1].p_value is None

    def test_brush_overrides_saved(self, view):
        asyncio.run(view.set_pairwise_comparison("WT", "KO"))
        view.set_saved_transcripts(["Gene2"])
        view.set_p_value_threshold(0.05)
        view.set_brushed_area([0.0, 10.0, 10.0, 0.0])
        assert _names(view.displayed_transcripts) == ["Gene3", "Gene1"]

        view.set_brushed_area(None)
        assert _names(view.displayed_transcripts) == ["Gene2"]

    def test_bins(self, view):
        asyncio.run(view.set_pairwise_comparison("WT", "KO"))
        view.set_hovered_bin_transcripts({"Gene2"})
        assert _names(view.displayed_transcripts) == ["Gene2"]
        view.set_selected_bin_transcripts({"Gene3"})
        assert _names(view.displayed_transcripts) == ["Gene3"]
        view.set_selected_bin_transcripts(None)
        view.set_hovered_bin_transcripts(None)
        assert view.displayed_transcripts == []

    def test_saved_alias_shows_canonical_record(self, view):
        asyncio.run(view.set_pairwise_comparison("WT", "KO"))
        view.set_saved_transcripts(["G1", "geneone", "Mystery"])
        assert view.selection.saved_transcripts == {"Gene1", "Mystery"}
        displayed = view.displayed_transcripts
        assert _names(displayed) == ["Gene1", "Mystery"]
        assert displayed[0].log_fc == 2.0

    def test_bin_aliases_are_canonicalized(self, view):
        asyncio.run(view.set_pairwise_comparison("WT", "KO"))
        view.set_hovered_bin_transcripts({"G2"})
        assert view.selection.hovered_bin_transcripts == {"Gene2"}
        assert view.displayed_transcripts[0].log_fc == -1.5
        view.set_selected_bin_transcripts({"G1"})
        assert _names(view.displayed_transcripts) == ["Gene1"]
        assert view.displayed_transcripts[0].p_value == 0.01

    def test_update_sort_recomputes_display(self, view):
        asyncio.run(view.set_pairwise_comparison("WT", "KO"))
        view.set_saved_transcripts(["Gene1", "Gene2", "Gene3"])
        view.update_sort("logFC", "desc")
        assert view.selection.sort_path == "logFC"
        assert _names(view.displayed_transcripts) == ["Gene1", "Gene3", "Gene2"]

    def test_update_sort_rejects_bad_input(self, view):
        with pytest.raises(ValueError):
            view.update_sort("bogus")
        with pytest.raises(ValueError):
            view.update_sort(order="up")

    def test_update_displayed_requires_comparison(self, view):
        with pytest.raises(NoActiveComparison):
            view.update_displayed()

    def test_brushed_area_object(self, view):
        view.set_brushed_area(BrushedArea(0, 1, 0, 1))
        assert view.selection.brushed_area == BrushedArea(0, 1, 0, 1)


# ---------------------------------------------------------------------------
# Persistence, import and export
# ---------------------------------------------------------------------------

class TestPersistence:

    def test_saved_transcripts_persist_per_project(self, project):
        storage = MemoryStorage()
        view = ViewController(project, storage=storage)
        view.set_saved_transcripts(["Gene1", "G2", "Gene1"])
        assert json.loads(storage.get(watched_key(project))) == ["Gene1", "Gene2"]

        restored = ViewController(project, storage=storage)
        assert restored.selection.saved_transcripts == {"Gene1", "Gene2"}

    def test_malformed_storage_ignored(self, project):
        storage = MemoryStorage({watched_key(project): "{not json"})
        view = ViewController(project, storage=storage)
        assert view.selection.saved_transcripts == set()

    def test_import_resolves_and_merges(self, view):
        view.set_saved_transcripts(["Gene3"])
        imported, skipped = view.import_saved_transcripts("Gene name\tpValue\nG1\t0.1\nGene2\nmystery\n")
        assert imported == [("G1", "Gene1"), ("Gene2", "Gene2")]
        assert skipped == ["mystery"]
        assert view.selection.saved_transcripts == {"Gene1", "Gene2", "Gene3"}

    def test_export_format(self, view):
        asyncio.run(view.set_pairwise_comparison("WT", "KO"))
        view.set_saved_transcripts(["Gene1", "Gene2", "Gene4"])
        lines = view.export_displayed_transcripts().splitlines()
        assert lines[0].split("\t") == [
            "Gene name", "pValue", "logATA", "logFC",
            "WT mean abundance", "WT median abundance",
            "KO mean abundance", "KO median abundance",
        ]
        assert lines[1] == "Gene1\t0.01\t5\t2\t2\t2\t15\t15"
        assert lines[2] == "Gene2\t0.2\t3\t-1.5\t2\t2\t\t"
        assert lines[3] == "Gene4\t\t\t\t\t\t\t"

    def test_export_requires_comparison(self, view):
        with pytest.raises(NoActiveComparison):
            view.export_displayed_transcripts()

    def test_search(self, view):
        assert view.search("gene") == ["Gene1"]
