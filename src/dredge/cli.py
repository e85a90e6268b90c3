from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Tuple

import click

from dredge.config import EngineConfig
from dredge.errors import DredgeError
from dredge.model import SORT_ORDERS, SORT_PATHS
from dredge.project.fetch import ResourceFetcher
from dredge.project.loader import Project, load_project
from dredge.view.controller import ViewController
from dredge.view.storage import LocalStorage, MemoryStorage
from dredge.view.transfer import EXPORT_FILENAME


def _load(base: str, fetcher: ResourceFetcher) -> Project:
    try:
        return asyncio.run(load_project(base, fetcher))
    except DredgeError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.option("--verbose", is_flag=True, help="Enable verbose logging.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Browse pairwise differential expression comparisons of a project."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO)
    config = EngineConfig.from_env()
    ctx.obj = {"config": config, "fetcher": ResourceFetcher(config)}


@cli.command("treatments")
@click.argument("base")
@click.pass_obj
def treatments_command(obj: dict, base: str) -> None:
    """List the treatments of the project at BASE."""
    project = _load(base, obj["fetcher"])
    for key, treatment in project.treatments.items():
        replicates = ", ".join(treatment.replicates)
        click.echo(f"{key}\t{treatment.display_label}\t{replicates}")


@cli.command("search")
@click.argument("base")
@click.argument("prefix")
@click.pass_obj
def search_command(obj: dict, base: str, prefix: str) -> None:
    """Print canonical names with an identifier starting with PREFIX."""
    project = _load(base, obj["fetcher"])
    matches = project.search(prefix)
    if not matches:
        click.echo(f"No transcripts match {prefix!r}.", err=True)
        return
    for name in matches:
        click.echo(name)


@cli.command("compare")
@click.argument("base")
@click.argument("treatment_a")
@click.argument("treatment_b")
@click.option(
    "--sort-path",
    type=click.Choice(sorted(SORT_PATHS)),
    default="pValue",
    show_default=True,
    help="Field the table is sorted on.",
)
@click.option(
    "--order",
    type=click.Choice(SORT_ORDERS),
    default="asc",
    show_default=True,
)
@click.option(
    "--pvalue-threshold",
    type=float,
    default=None,
    help="Upper p-value bound applied to the brushed region.",
)
@click.option(
    "--brush",
    type=float,
    nargs=4,
    default=None,
    metavar="MIN_ATA MAX_FC MAX_ATA MIN_FC",
    help="Only list transcripts inside this (logATA, logFC) rectangle.",
)
@click.option(
    "--saved",
    "saved_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="TSV file of transcripts to list instead of the persisted saved set.",
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help=f"Write the table here (e.g. {EXPORT_FILENAME}) instead of stdout.",
)
@click.pass_obj
def compare_command(
    obj: dict,
    base: str,
    treatment_a: str,
    treatment_b: str,
    sort_path: str,
    order: str,
    pvalue_threshold: Optional[float],
    brush: Optional[Tuple[float, float, float, float]],
    saved_file: Optional[Path],
    output: Optional[Path],
) -> None:
    """Compare TREATMENT_A against TREATMENT_B and export the listed transcripts."""
    config: EngineConfig = obj["config"]
    project = _load(base, obj["fetcher"])
    # an explicit --saved list must not overwrite the persisted one
    storage = MemoryStorage() if saved_file is not None else LocalStorage(config.storage_path)
    view = ViewController(
        project,
        storage=storage,
        fetcher=obj["fetcher"],
        config=config,
    )

    try:
        if saved_file is not None:
            imported, skipped = view.import_saved_transcripts(
                saved_file.read_text(encoding="utf-8")
            )
            click.echo(f"Imported {len(imported)} transcripts from {saved_file}", err=True)
            for name in skipped:
                click.echo(f"Warning: {name!r} is not a known transcript", err=True)
        if pvalue_threshold is not None:
            view.set_p_value_threshold(pvalue_threshold)
        if brush:
            view.set_brushed_area(brush)

        comparison = asyncio.run(view.set_pairwise_comparison(treatment_a, treatment_b))
        view.update_sort(sort_path, order)
        table = view.export_displayed_transcripts()
    except DredgeError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(
        f"{len(comparison)} transcripts compared "
        f"(min p-value {comparison.min_p_value:g}), "
        f"{len(view.displayed_transcripts)} listed",
        err=True,
    )

    if output is None:
        click.echo(table, nl=False)
    else:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(table, encoding="utf-8")
        click.echo(f"Table saved to {output}.", err=True)


def main() -> None:  # pragma: no cover
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
