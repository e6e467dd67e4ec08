#!/usr/bin/env python3
"""
notegraph: CLI for wikilink graph analysis

Usage:
    notegraph stats                    # Note, connection, dangling, orphan counts
    notegraph backlinks "Title"        # Notes linking to a note
    notegraph dangling                 # Links to notes that do not exist
    notegraph orphans                  # Notes with no links in or out
    notegraph similar                  # Near-duplicate dangling targets
    notegraph health                   # Graph health report
    notegraph merge A B --into C       # Rewrite [[A]] and [[B]] to [[C]]
    notegraph rank                     # Most central notes (PageRank)
    notegraph watch                    # Refresh counts as notes change
"""

from __future__ import annotations

import asyncio
import json
import os
import time
from pathlib import Path
from typing import Any

import click

from . import __version__ as NOTEGRAPH_VERSION
from .config import MAX_CLUSTER_RESULTS, MIN_CLUSTER_SIZE, SIMILARITY_THRESHOLD

WATCH_POLL_SECONDS = 1.0


def run_async(coro):
    """Run async function synchronously."""
    return asyncio.run(coro)


def format_table(rows: list[dict], columns: list[str], max_widths: dict | None = None) -> str:
    """Format rows as a simple table."""
    if not rows:
        return ""

    max_widths = max_widths or {}

    def cell(row: dict, col: str) -> str:
        val = str(row.get(col, ""))
        limit = max_widths.get(col, 50)
        if len(val) > limit:
            val = val[: limit - 3] + "..."
        return val

    widths = {col: max([len(col)] + [len(cell(row, col)) for row in rows]) for col in columns}

    header = "  ".join(col.upper().ljust(widths[col]) for col in columns)
    separator = "  ".join("-" * widths[col] for col in columns)
    lines = [header, separator]
    for row in rows:
        lines.append("  ".join(cell(row, col).ljust(widths[col]) for col in columns))

    return "\n".join(lines)


def output(data, as_json: bool = False):
    """Output data as JSON or formatted text."""
    if as_json:
        click.echo(json.dumps(data, indent=2, default=str))
    else:
        click.echo(data)


class CliState:
    """Per-invocation objects shared by subcommands."""

    def __init__(self, notes_dir: str | None, concurrency: int | None):
        self._notes_dir = notes_dir
        self._concurrency = concurrency
        self._analyzer = None

    @property
    def notes_dir(self) -> Path:
        from .config import ConfigurationError, get_notes_dir

        if self._notes_dir:
            return Path(os.path.expanduser(self._notes_dir))
        try:
            return get_notes_dir()
        except ConfigurationError as exc:
            raise click.ClickException(str(exc)) from exc

    @property
    def analyzer(self):
        if self._analyzer is None:
            from .analyzer import GraphAnalyzer

            self._analyzer = GraphAnalyzer(concurrency=self._concurrency)
        return self._analyzer

    def analyze(self, **kwargs):
        return run_async(self.analyzer.analyze_note_graph(self.notes_dir, **kwargs))

    def relative(self, path: str) -> str:
        try:
            return os.path.relpath(path, self.notes_dir)
        except ValueError:
            return path


pass_state = click.make_pass_decorator(CliState)


@click.group()
@click.version_option(version=NOTEGRAPH_VERSION, prog_name="notegraph")
@click.option(
    "--notes-dir",
    "-d",
    envvar="NOTEGRAPH_NOTES_DIR",
    type=click.Path(file_okay=False),
    help="Notes directory (default: NOTEGRAPH_NOTES_DIR or .notegraph.yaml)",
)
@click.option(
    "--concurrency",
    type=click.IntRange(min=1),
    default=None,
    help="Concurrent file reads (default: NOTEGRAPH_IO_CONCURRENCY or 10)",
)
@click.pass_context
def cli(ctx: click.Context, notes_dir: str | None, concurrency: int | None):
    """Analyze the wikilink graph of a Markdown notes directory."""
    ctx.obj = CliState(notes_dir, concurrency)


# ─────────────────────────────────────────────────────────────────────────────
# Stats Commands
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@pass_state
def stats(state: CliState, as_json: bool):
    """Show note, connection, dangling link and orphan counts.

    \b
    Examples:
      notegraph stats
      notegraph --notes-dir ~/notes stats --json
    """
    result = state.analyze()

    if as_json:
        output(
            {
                "note_count": result.note_count,
                "unique_connections": result.unique_connections,
                "total_mentions": result.total_mentions,
                "dangling_count": len(result.dangling_links),
                "orphan_count": len(result.orphan_notes),
            },
            as_json=True,
        )
        return

    click.echo(f"Notes:          {result.note_count}")
    click.echo(f"Connections:    {result.unique_connections}")
    click.echo(f"Mentions:       {result.total_mentions}")
    click.echo(f"Dangling links: {len(result.dangling_links)}")
    click.echo(f"Orphan notes:   {len(result.orphan_notes)}")


@cli.command()
@click.argument("title")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@pass_state
def backlinks(state: CliState, title: str, as_json: bool):
    """List notes that link to TITLE.

    \b
    Examples:
      notegraph backlinks "Project Ideas"
    """
    entries = run_async(state.analyzer.get_backlinks_for_note(state.notes_dir, title))

    if as_json:
        output([e.model_dump() for e in entries], as_json=True)
        return

    if not entries:
        click.echo(f"No backlinks to '{title}'")
        return

    click.echo(f"Backlinks to '{title}' ({len(entries)}):")
    for entry in entries:
        click.echo(f"  - {entry.note_title} ({state.relative(entry.note_path)})")
        if entry.context:
            click.echo(f"      {entry.context}")


@cli.command()
@click.option("--limit", "-n", default=20, type=click.IntRange(min=1), help="Max targets shown")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@pass_state
def dangling(state: CliState, limit: int, as_json: bool):
    """List links to notes that do not exist, most mentioned first."""
    links = run_async(state.analyzer.find_dangling_links(state.notes_dir))
    links = sorted(links, key=lambda link: (-link.total_occurrences, link.target))

    if as_json:
        output([link.model_dump() for link in links[:limit]], as_json=True)
        return

    if not links:
        click.echo("✓ No dangling links")
        return

    rows = [
        {
            "target": link.target,
            "mentions": link.total_occurrences,
            "sources": ", ".join(s.note_title for s in link.sources),
        }
        for link in links[:limit]
    ]
    click.echo(format_table(rows, ["target", "mentions", "sources"], {"target": 40, "sources": 50}))
    if len(links) > limit:
        click.echo(f"\n... and {len(links) - limit} more")


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@pass_state
def orphans(state: CliState, as_json: bool):
    """List notes with no incoming or outgoing links."""
    paths = run_async(state.analyzer.find_orphan_notes(state.notes_dir))
    relative = [state.relative(p) for p in paths]

    if as_json:
        output(relative, as_json=True)
        return

    if not relative:
        click.echo("✓ No orphan notes")
        return

    click.echo(f"Orphan notes ({len(relative)}):")
    for path in relative:
        click.echo(f"  - {path}")


# ─────────────────────────────────────────────────────────────────────────────
# Similar Links / Merge
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@click.option(
    "--threshold",
    default=SIMILARITY_THRESHOLD,
    type=click.FloatRange(min=0.0, max=1.0),
    help="Minimum similarity to the representative",
)
@click.option("--min-size", default=MIN_CLUSTER_SIZE, type=click.IntRange(min=1), help="Minimum cluster size")
@click.option("--limit", "-n", default=MAX_CLUSTER_RESULTS, type=click.IntRange(min=1), help="Max clusters")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@pass_state
def similar(state: CliState, threshold: float, min_size: int, limit: int, as_json: bool):
    """Find dangling links that look like spellings of the same note.

    \b
    Examples:
      notegraph similar
      notegraph similar --threshold 0.8 --json
    """
    from .clustering import cluster_dangling_links

    links = run_async(state.analyzer.find_dangling_links(state.notes_dir))
    clusters = cluster_dangling_links(
        links, threshold=threshold, min_cluster_size=min_size, max_results=limit
    )

    if as_json:
        output([c.model_dump() for c in clusters], as_json=True)
        return

    if not clusters:
        click.echo("✓ No similar dangling links")
        return

    for cluster in clusters:
        click.echo(
            f"{cluster.representative_target}  "
            f"({cluster.total_occurrences} mentions, avg similarity {cluster.average_similarity:.2f})"
        )
        for member in cluster.members:
            if member.target == cluster.representative_target:
                continue
            click.echo(f"  ~ {member.target} ({member.total_occurrences}, {member.similarity:.2f})")
    click.echo("\nMerge a cluster with: notegraph merge VARIANT... --into REPRESENTATIVE")


@cli.command()
@click.argument("targets", nargs=-1, required=True)
@click.option("--into", "new_target", required=True, help="Canonical target to rewrite to")
@click.option(
    "--preserve-alias/--no-preserve-alias",
    default=True,
    help="Keep the old spelling as the link's display alias",
)
@click.option("--dry-run", is_flag=True, help="Show changes without writing")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@pass_state
def merge(
    state: CliState,
    targets: tuple[str, ...],
    new_target: str,
    preserve_alias: bool,
    dry_run: bool,
    as_json: bool,
):
    """Rewrite links to TARGETS so they point at --into.

    \b
    Examples:
      notegraph merge "machine-learning" "ML" --into "Machine Learning"
      notegraph merge "Waymo Inc" --into Waymo --dry-run
    """
    from .merger import merge_similar_links, preview_merge
    from .models import MergeLinkRequest

    request = MergeLinkRequest(
        old_targets=list(targets), new_target=new_target, preserve_as_alias=preserve_alias
    )

    if dry_run:
        previews = preview_merge(state.notes_dir, request)
        if as_json:
            output([p.model_dump() for p in previews], as_json=True)
            return
        if not previews:
            click.echo("No matching links")
            return
        for preview in previews:
            click.echo(state.relative(preview.file_path))
            for match in preview.matches:
                click.echo(f"  {match.line}: {match.original} -> {match.replaced}")
        return

    result = merge_similar_links(state.notes_dir, request, analyzer=state.analyzer)

    if as_json:
        output(result.model_dump(), as_json=True)
    else:
        click.echo(
            f"Replaced {result.links_replaced} link(s) in {result.files_modified} file(s)"
        )
        for path, message in result.errors.items():
            click.echo(f"  ✗ {state.relative(path)}: {message}", err=True)

    if result.errors:
        raise SystemExit(1)


# ─────────────────────────────────────────────────────────────────────────────
# Health / Rank
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@pass_state
def health(state: CliState, as_json: bool):
    """Score graph health and list anomalies.

    \b
    Examples:
      notegraph health
      notegraph health --json
    """
    from .health import analyze_health

    report = run_async(analyze_health(state.analyzer, state.notes_dir))

    if as_json:
        output(report.model_dump(), as_json=True)
        return

    metrics = report.graph_metrics
    click.echo("Note Graph Health Report")
    click.echo("=" * 40)
    click.echo(f"Health Score: {report.health_score}/100 ({report.status})")
    click.echo(f"Total notes:     {report.total_notes}")
    click.echo(f"Total wikilinks: {report.total_wikilinks}")
    click.echo(f"Connections:     {report.resolved_links}")
    click.echo(f"Dangling links:  {report.dangling_count}")
    click.echo(f"Graph density:   {metrics.graph_density:.2f} links/note")
    click.echo(f"Avg backlinks:   {metrics.avg_backlinks_per_note:.2f}")
    click.echo(
        f"No backlinks:    {metrics.notes_with_no_backlinks} "
        f"({metrics.no_backlinks_percentage:.0%})"
    )
    click.echo(
        f"No outlinks:     {metrics.notes_with_no_outlinks} ({metrics.no_outlinks_percentage:.0%})"
    )
    click.echo(f"Orphans:         {metrics.orphan_notes} ({metrics.orphan_percentage:.0%})")

    anomalies = report.anomalies
    if anomalies.hub_nodes or anomalies.suspicious_auto_links or anomalies.alias_collisions:
        click.echo("\n⚠ Anomalies:")
        for hub in anomalies.hub_nodes[:3]:
            click.echo(f'  - Hub node: "{hub.title}" has {hub.percentage:.0%} of all backlinks')
        if anomalies.suspicious_auto_links:
            top = '", "'.join(anomalies.suspicious_auto_links[:3])
            click.echo(f'  - Suspicious auto-links: "{top}"')
        for collision in anomalies.alias_collisions[:5]:
            click.echo(
                f"  - '{collision.key}' claimed by {state.relative(collision.previous_path)} "
                f"and {state.relative(collision.winning_path)}"
            )

    if report.recommendations:
        click.echo("\nRecommendations:")
        for i, recommendation in enumerate(report.recommendations, start=1):
            click.echo(f"  {i}. {recommendation}")


@cli.command()
@click.option("--limit", "-n", default=10, type=click.IntRange(min=1), help="Max notes")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@pass_state
def rank(state: CliState, limit: int, as_json: bool):
    """Rank notes by PageRank over resolved links."""
    from .pagerank import calculate_page_rank, top_ranked

    result = calculate_page_rank(state.analyze())
    ranked = top_ranked(result, limit)

    if as_json:
        data: dict[str, Any] = {
            "iterations": result.iterations,
            "converged": result.converged,
            "notes": [{"path": path, "score": score} for path, score in ranked],
        }
        output(data, as_json=True)
        return

    if not result.converged:
        raise click.ClickException(
            f"PageRank did not converge within {result.iterations} iterations"
        )

    rows = [{"score": f"{score:.3f}", "path": state.relative(path)} for path, score in ranked]
    click.echo(format_table(rows, ["score", "path"], {"path": 60}) or "No notes")


# ─────────────────────────────────────────────────────────────────────────────
# Watch Command
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@click.option(
    "--debounce",
    type=click.FloatRange(min=0),
    default=0.3,
    show_default=True,
    help="Seconds a file must stay quiet before counts refresh",
)
@click.option("--json", "as_json", is_flag=True, help="Output one JSON object per line")
@pass_state
def watch(state: CliState, debounce: float, as_json: bool):
    """Print note counts now and again after every change until Ctrl+C.

    \b
    Examples:
      notegraph watch
      notegraph watch --debounce 1 --json
    """
    from .watcher import NoteFileWatcher

    notes_dir = state.notes_dir
    if not notes_dir.is_dir():
        raise click.ClickException(f"Notes directory does not exist: {notes_dir}")

    def report(changed: str | None = None) -> None:
        counts = run_async(state.analyzer.get_quick_stats(notes_dir))
        if as_json:
            click.echo(json.dumps({"changed": changed, **counts.model_dump()}))
            return
        label = state.relative(changed) if changed else "start"
        click.echo(
            f"[{label}] notes={counts.note_count} connections={counts.connection_count} "
            f"dangling={counts.dangling_count} orphans={counts.orphan_count}"
        )

    report()
    with NoteFileWatcher(
        notes_dir,
        state.analyzer.cache,
        debounce_seconds=debounce,
        on_invalidated=lambda path, _keys: report(path),
    ):
        try:
            while True:
                time.sleep(WATCH_POLL_SECONDS)
        except KeyboardInterrupt:
            if not as_json:
                click.echo("Watch stopped.")


def main():
    """Entry point for notegraph CLI."""
    from ._logging import configure_logging

    configure_logging()
    cli()


if __name__ == "__main__":
    main()
