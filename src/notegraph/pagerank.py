"""PageRank over the resolved note graph."""

from __future__ import annotations

import logging

import networkx as nx

from .config import PAGERANK_DAMPING, PAGERANK_ITERATIONS, PAGERANK_TOLERANCE
from .models import NoteGraphStats, PageRankResult
from .parser import normalize_note_title

log = logging.getLogger(__name__)


def build_link_graph(stats: NoteGraphStats) -> nx.DiGraph:
    """Directed graph with one node per note path and an edge per resolved link.

    Backlinks are keyed by canonical title; a title shared by several notes
    maps to the last one registered, matching TitleIndex resolution.
    """
    graph = nx.DiGraph()
    graph.add_nodes_from(stats.forward_links)

    path_by_title = {normalize_note_title(note.title): note.path for note in stats.note_metadata}
    for title, entries in stats.backlinks.items():
        target_path = path_by_title.get(normalize_note_title(title))
        if target_path is None:
            continue
        for entry in entries:
            graph.add_edge(entry.note_path, target_path)

    return graph


def calculate_page_rank(
    stats: NoteGraphStats,
    *,
    damping: float = PAGERANK_DAMPING,
    iterations: int = PAGERANK_ITERATIONS,
    tolerance: float = PAGERANK_TOLERANCE,
) -> PageRankResult:
    """Score every note with networkx PageRank.

    Args:
        stats: Analysis result.
        damping: Probability of following a link rather than jumping.
        iterations: Iteration limit passed to networkx as max_iter.
        tolerance: Convergence tolerance passed to networkx.

    Returns:
        Scores keyed by note path, scaled so the top note scores 1.0.
        If the iteration limit is hit first, scores are empty and
        converged is False.
    """
    graph = build_link_graph(stats)
    if graph.number_of_nodes() == 0:
        return PageRankResult(scores={}, iterations=0, converged=True)

    try:
        scores = nx.pagerank(graph, alpha=damping, max_iter=iterations, tol=tolerance)
    except nx.PowerIterationFailedConvergence:
        log.warning("PageRank did not converge within %d iterations", iterations)
        return PageRankResult(scores={}, iterations=iterations, converged=False)

    top = max(scores.values())
    normalized = {path: score / top for path, score in scores.items()}
    return PageRankResult(scores=normalized, iterations=iterations, converged=True)


def top_ranked(result: PageRankResult, limit: int = 10) -> list[tuple[str, float]]:
    """Highest scoring notes first (ties by path)."""
    ranked = sorted(result.scores.items(), key=lambda item: (-item[1], item[0]))
    return ranked[:limit]
