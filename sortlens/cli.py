"""Command-line interface for Sortlens.

Every command reads a JSON array of input records, runs one analysis, and
prints a summary.  Nothing is written back to disk.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from sortlens import __version__
from sortlens.config import load_settings
from sortlens.errors import InsufficientDataError
from sortlens.logging import setup_logging
from sortlens.models import CardMovement, ParticipantResult, StudyResult

app = typer.Typer(
    name="sortlens",
    help="Card-sort and tree-test analytics.",
    no_args_is_help=True,
)
console = Console(width=min(100, Console().width))

_RESULTS_ADAPTER: TypeAdapter[list[StudyResult]] = TypeAdapter(list[StudyResult])
_MOVEMENTS_ADAPTER: TypeAdapter[list[CardMovement]] = TypeAdapter(list[CardMovement])

_TREND_ICONS = {"up": "[green]↑[/green]", "down": "[red]↓[/red]", "stable": "[dim]→[/dim]"}


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"sortlens {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version", "-V",
            help="Show version and exit.",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Show debug logging on the terminal."),
    ] = False,
    log_dir: Annotated[
        Path | None,
        typer.Option("--log-dir", help="Also write a rotating log file under this directory."),
    ] = None,
) -> None:
    """Card-sort and tree-test analytics."""
    setup_logging(output_dir=log_dir, verbose=verbose)


# ---------------------------------------------------------------------------
# Input helpers
# ---------------------------------------------------------------------------


def _read_json(path: Path, adapter: TypeAdapter) -> list:
    """Validate a JSON file against *adapter*, exiting with a message on failure."""
    if not path.is_file():
        console.print(f"[red]No such file:[/red] {path}")
        raise typer.Exit(1)
    try:
        return adapter.validate_json(path.read_bytes())
    except ValidationError as exc:
        console.print(f"[red]Invalid input in {path}[/red] ({exc.error_count()} errors)")
        for err in exc.errors()[:5]:
            loc = ".".join(str(p) for p in err["loc"])
            console.print(f"  [dim]{loc}[/dim]: {err['msg']}")
        raise typer.Exit(1) from exc


def _load_results(path: Path) -> list[StudyResult]:
    return _read_json(path, _RESULTS_ADAPTER)


def _card_sorts(results: list[StudyResult]) -> list[ParticipantResult]:
    sorts = [r for r in results if isinstance(r, ParticipantResult)]
    if not sorts:
        console.print("No card-sort results found.")
        raise typer.Exit(1)
    return sorts


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def agreement(
    results_file: Annotated[Path, typer.Argument(help="JSON array of study results.")],
) -> None:
    """Card and category agreement scores for a study."""
    from sortlens.analysis.agreement import perform_agreement_analysis

    results = _load_results(results_file)
    try:
        analysis = perform_agreement_analysis(results)
    except InsufficientDataError as exc:
        console.print(str(exc))
        raise typer.Exit(1) from exc

    console.print(
        f"\n  [bold]Overall agreement[/bold]  {analysis.overall_agreement_score:.1f}%"
        f"  [dim]({analysis.total_participants} participants)[/dim]\n"
    )

    cards = Table(title="Cards", show_edge=False)
    cards.add_column("Card")
    cards.add_column("Agreement", justify="right")
    cards.add_column("Consensus category")
    cards.add_column("Categories", justify="right")
    for card in analysis.card_agreements:
        cards.add_row(
            card.card_text,
            f"{card.agreement_score:.1f}%",
            card.consensus_category,
            str(card.unique_placements),
        )
    console.print(cards)

    categories = Table(title="Categories", show_edge=False)
    categories.add_column("Category")
    categories.add_column("Agreement", justify="right")
    categories.add_column("Used by", justify="right")
    categories.add_column("Consensus cards", justify="right")
    for cat in analysis.category_agreements:
        categories.add_row(
            cat.category_name,
            f"{cat.agreement_score:.1f}%",
            f"{cat.usage_percentage:.0f}%",
            str(len(cat.consensus_cards)),
        )
    console.print(categories)

    console.print("\n  [bold]Distribution[/bold]")
    for label, count in analysis.insights.agreement_distribution.items():
        console.print(f"  {label.ljust(10)} {'█' * count} {count}")


@app.command()
def similarity(
    results_file: Annotated[Path, typer.Argument(help="JSON array of card-sort results.")],
    top: Annotated[
        int | None,
        typer.Option("--top", "-n", help="Number of pairs to show."),
    ] = None,
) -> None:
    """Most similar card pairs."""
    from sortlens.analysis.similarity import calculate_card_similarity

    settings = load_settings(top_pairs=top)
    pairs = calculate_card_similarity(_card_sorts(_load_results(results_file)))

    table = Table(title="Most similar pairs", show_edge=False)
    table.add_column("Card A")
    table.add_column("Card B")
    table.add_column("Together", justify="right")
    table.add_column("Similarity", justify="right")
    for pair in pairs[: settings.top_pairs]:
        table.add_row(
            pair.card_name_1, pair.card_name_2, str(pair.co_occurrence), f"{pair.similarity:.2f}"
        )
    console.print(table)


@app.command(name="cluster")
def cluster_command(
    results_file: Annotated[Path, typer.Argument(help="JSON array of card-sort results.")],
) -> None:
    """Hierarchical clustering dendrogram of the cards."""
    from sortlens.analysis.clustering import cluster
    from sortlens.analysis.similarity import create_similarity_matrix

    matrix = create_similarity_matrix(_card_sorts(_load_results(results_file)))
    dendrogram = cluster(matrix)

    def _label(index: int) -> str:
        node = dendrogram.nodes[index]
        if node.is_leaf:
            return node.name
        return f"[dim]{node.distance:.2f}[/dim] ({node.size} cards)"

    tree = Tree(_label(dendrogram.root))
    stack = [(dendrogram.root, tree)]
    while stack:
        index, branch = stack.pop()
        for child in dendrogram.nodes[index].children:
            stack.append((child, branch.add(_label(child))))
    console.print(tree)


@app.command()
def journeys(
    movements_file: Annotated[Path, typer.Argument(help="JSON array of card movements.")],
) -> None:
    """Participant journey patterns across a study."""
    from sortlens.analysis.journey import analyze_participant_journey, analyze_study_journeys

    settings = load_settings()
    movements = _read_json(movements_file, _MOVEMENTS_ADAPTER)

    by_participant: dict[str, list[CardMovement]] = {}
    for move in movements:
        by_participant.setdefault(move.participant_id, []).append(move)

    try:
        per_participant = [
            analyze_participant_journey(
                moves, pid, hesitation_threshold=settings.hesitation_threshold
            )
            for pid, moves in by_participant.items()
        ]
        analysis = analyze_study_journeys(
            per_participant,
            hesitation_threshold=settings.hesitation_threshold,
            pattern_min_frequency=settings.pattern_min_frequency,
            top_patterns=settings.top_patterns,
            top_problematic_cards=settings.top_problematic_cards,
            consensus_move_fraction=settings.consensus_move_fraction,
            trend_slope_threshold=settings.trend_slope_threshold,
        )
    except InsufficientDataError as exc:
        console.print(str(exc))
        raise typer.Exit(1) from exc

    avg = analysis.average_journey
    console.print(f"\n  [bold]{analysis.total_participants} participants[/bold]")
    console.print(f"  Average duration   {avg.duration / 1000:.1f}s")
    console.print(f"  Average moves      {avg.movements:.1f}")
    console.print(f"  Hesitations        {avg.hesitation_rate:.1f}")
    console.print(f"  Refinement rate    {avg.refinement_rate:.0%}")
    console.print(
        f"  Moves trend        {_TREND_ICONS[analysis.movement_trend.direction]}"
        f"  [dim]confidence {analysis.movement_trend.confidence:.2f}[/dim]\n"
    )

    phases = Table(title="Phases", show_edge=False)
    phases.add_column("Phase")
    phases.add_column("Participants", justify="right")
    phases.add_column("Avg duration", justify="right")
    phases.add_column("Avg moves", justify="right")
    for name, summary in analysis.phase_analysis.items():
        phases.add_row(
            name,
            str(summary.participant_count),
            f"{summary.average_duration / 1000:.1f}s",
            f"{summary.movement_rate:.1f}",
        )
    console.print(phases)

    if analysis.common_movement_patterns:
        console.print("\n  [bold]Common patterns[/bold]")
        for pattern in analysis.common_movement_patterns:
            console.print(f"  {pattern.frequency}×  {pattern.pattern}")
    if analysis.problematic_cards:
        console.print(f"\n  [bold]Problematic cards[/bold]  {', '.join(analysis.problematic_cards)}")


@app.command(name="tree-test")
def tree_test(
    results_file: Annotated[Path, typer.Argument(help="JSON array of study results.")],
) -> None:
    """Task success and path statistics for tree tests."""
    from sortlens.analysis.tree_test import summarize_tree_tests

    summary = summarize_tree_tests(_load_results(results_file))
    if summary.total_tasks == 0:
        console.print("No tree-test tasks found.")
        raise typer.Exit(1)

    console.print(f"\n  [bold]{summary.total_tasks} task attempts[/bold]")
    console.print(f"  Success          {summary.task_success_rate:.1f}%")
    console.print(f"  Direct success   {summary.direct_success_rate:.1f}%")
    console.print(f"  Average clicks   {summary.average_clicks:.1f}\n")

    table = Table(title="Most common paths", show_edge=False)
    table.add_column("Path")
    table.add_column("Count", justify="right")
    table.add_column("Success", justify="right")
    for path in summary.most_common_paths:
        table.add_row(" > ".join(path.path), str(path.frequency), f"{path.success_rate:.0f}%")
    console.print(table)
