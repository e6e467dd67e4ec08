"""Clustering of dangling link targets into near-duplicate groups.

Dangling links often come in families ("Machine Learning", "machine-learning",
"Machine learnings") created by different notes over time. Clustering finds
those families and proposes one spelling to consolidate on.

The output is a pure function of the input set: targets are ranked before
grouping, so input order never changes the result.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable

from .config import MAX_CLUSTER_RESULTS, MIN_CLUSTER_SIZE, SIMILARITY_THRESHOLD
from .models import (
    DanglingLink,
    DanglingSource,
    SimilarityScore,
    SimilarLinkCluster,
    SimilarLinkMember,
    SimilarLinkSource,
)
from .similarity import calculate_similarity


def _merge_by_target(dangling_links: Iterable[DanglingLink]) -> dict[str, list[DanglingSource]]:
    """Combine entries that share a target, summing counts per source note."""
    merged: dict[str, dict[str, DanglingSource]] = {}
    for link in dangling_links:
        sources = merged.setdefault(link.target, {})
        for source in link.sources:
            existing = sources.get(source.note_path)
            if existing is None:
                sources[source.note_path] = source.model_copy()
            else:
                existing.count += source.count
    return {target: list(sources.values()) for target, sources in merged.items()}


def _occurrences(sources: list[DanglingSource]) -> int:
    return sum(source.count for source in sources)


def _cluster_id(representative: str) -> str:
    digest = hashlib.sha1(representative.encode("utf-8")).hexdigest()
    return f"cluster-{digest[:12]}"


def cluster_dangling_links(
    dangling_links: Iterable[DanglingLink],
    *,
    threshold: float = SIMILARITY_THRESHOLD,
    min_cluster_size: int = MIN_CLUSTER_SIZE,
    max_results: int = MAX_CLUSTER_RESULTS,
) -> list[SimilarLinkCluster]:
    """Group similar dangling targets and pick a representative for each group.

    Targets are visited from most to least mentioned (ties: shorter first,
    then lexical). Each target joins the first existing cluster whose
    representative it matches at or above threshold; otherwise it starts a
    new cluster and becomes its representative. Since visiting order is the
    representative ranking, the first member of a cluster is always its
    most-mentioned spelling.

    Args:
        dangling_links: Dangling links from an analysis.
        threshold: Minimum composite similarity to the representative.
        min_cluster_size: Clusters with fewer members are dropped.
        max_results: Maximum clusters returned, largest total occurrences first.

    Returns:
        Clusters sorted by total occurrences (desc), then representative.
    """
    merged = _merge_by_target(dangling_links)
    if len(merged) < 2 and min_cluster_size > 1:
        return []

    ranked = sorted(merged, key=lambda t: (-_occurrences(merged[t]), len(t), t))

    # Each group: (representative, [(target, similarity to representative)])
    groups: list[tuple[str, list[tuple[str, SimilarityScore | None]]]] = []
    for target in ranked:
        for representative, members in groups:
            similarity = calculate_similarity(representative, target)
            if similarity.score >= threshold:
                members.append((target, similarity))
                break
        else:
            groups.append((target, [(target, None)]))

    clusters: list[SimilarLinkCluster] = []
    for representative, grouped in groups:
        if len(grouped) < min_cluster_size:
            continue

        members = [
            SimilarLinkMember(
                target=target,
                similarity=1.0 if similarity is None else similarity.score,
                sources=[
                    SimilarLinkSource(
                        note_path=s.note_path, note_title=s.note_title, count=s.count
                    )
                    for s in merged[target]
                ],
            )
            for target, similarity in grouped
        ]
        members.sort(key=lambda m: (m.target != representative, -m.similarity, m.target))

        others = [m.similarity for m in members if m.target != representative]
        clusters.append(
            SimilarLinkCluster(
                id=_cluster_id(representative),
                representative_target=representative,
                members=members,
                total_occurrences=sum(m.total_occurrences for m in members),
                average_similarity=sum(others) / len(others) if others else 1.0,
            )
        )

    clusters.sort(key=lambda c: (-c.total_occurrences, c.representative_target))
    return clusters[:max_results]


def find_similar_dangling_links(
    target: str,
    dangling_links: Iterable[DanglingLink],
    *,
    threshold: float = SIMILARITY_THRESHOLD,
) -> list[tuple[DanglingLink, SimilarityScore]]:
    """Dangling links similar to target (excluding target itself), most similar first."""
    results: list[tuple[DanglingLink, SimilarityScore]] = []
    for link in dangling_links:
        if link.target == target:
            continue
        similarity = calculate_similarity(target, link.target)
        if similarity.score >= threshold:
            results.append((link, similarity))

    results.sort(key=lambda item: (-item[1].score, item[0].target))
    return results
