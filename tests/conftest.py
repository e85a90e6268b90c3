"""Shared fixtures: a small on-disk project with one comparison table."""

import asyncio
import json

import pytest

from dredge.project.fetch import FetchResult, ResourceFetcher
from dredge.project.loader import load_project

TREATMENTS = {
    "WT": {"label": "Wild type", "replicates": ["wt1", "wt2"], "fileKey": "wt"},
    "KO": {"label": "Knockout", "replicates": ["ko1", "ko2"], "fileKey": "ko"},
    "HET": {"label": "Heterozygous", "replicates": ["het1"]},
}

ALIASES = "Gene1,G1,geneone\nGene2,G2\n"

RPKMS = (
    "id\twt1\twt2\tko1\tko2\thet1\n"
    "Gene1\t1\t3\t10\t20\t5\n"
    "Gene2\t2\t2\tNA\tx\t1\n"
    "Gene3\t4\t6\t8\t10\t12\n"
    "Gene4\t0\t0\t0\t0\t0\n"
)

WT_KO = (
    "\tlogFC\tlogCPM\tPValue\n"
    "Gene1\t2.0\t5.0\t0.01\n"
    "G2\t-1.5\t3.0\t0.2\n"
    "Gene3\t0.5\t1.0\t0\n"
    "Unknown7\t1.0\t2.0\tnot-a-number\n"
)


def write_project(root, comparisons=None, metadata=None, with_rpkms=True, whitelist=None):
    """Write a project directory under ``root`` and return its path."""
    root.mkdir(parents=True, exist_ok=True)
    (root / "treatments.json").write_text(json.dumps(TREATMENTS))
    (root / "gene_aliases.csv").write_text(ALIASES)
    if with_rpkms:
        (root / "treatment_rpkms.tsv").write_text(RPKMS)
    if metadata is not None:
        (root / "project.json").write_text(json.dumps(metadata))
    if whitelist is not None:
        (root / "gene_whitelist.txt").write_text(whitelist)
    tests_dir = root / "pairwise_tests"
    tests_dir.mkdir(exist_ok=True)
    for name, text in (comparisons if comparisons is not None else {"wt_ko": WT_KO}).items():
        (tests_dir / f"{name}.txt").write_text(text)
    return root


class GatedFetcher(ResourceFetcher):
    """Fetcher whose reads of chosen locations wait for ``release``."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.gates = {}
        self.requested = []

    def hold(self, fragment):
        gate = asyncio.Event()
        self.gates[fragment] = gate
        return gate

    async def fetch(self, location):
        self.requested.append(location)
        for fragment, gate in self.gates.items():
            if fragment in location:
                await gate.wait()
        return await super().fetch(location)


class SlowFetcher(ResourceFetcher):
    """Fetcher that never answers for locations containing ``fragment``."""

    def __init__(self, fragment, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fragment = fragment

    async def fetch(self, location):
        if self.fragment in location:
            await asyncio.sleep(3600)
            return FetchResult(location=location, ok=False)
        return await super().fetch(location)


@pytest.fixture
def project_dir(tmp_path):
    return write_project(tmp_path / "project")


@pytest.fixture
def fetcher():
    return ResourceFetcher()


@pytest.fixture
def project(project_dir, fetcher):
    return asyncio.run(load_project(str(project_dir), fetcher))
