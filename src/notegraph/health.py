"""Graph health scoring and anomaly detection.

Derives connectivity metrics from a NoteGraphStats, flags anomalies (hub
notes, suspicious auto-links, alias collisions) and condenses everything
into a 0-100 score with recommendations.

Scoring starts at 100 and subtracts four independent, capped penalties:
- Connectivity (max 30): notes without backlinks or outlinks
- Orphans (max 25): notes with neither
- Hub concentration (max 25): share of backlinks held by the biggest hub
- Dangling links (max 20): dangling targets per wikilink mention
"""

from __future__ import annotations

import logging
import math
import os
from collections import Counter
from typing import TYPE_CHECKING

from . import config
from .models import GraphAnomalies, GraphMetrics, HealthReport, HubNode, NoteGraphStats

if TYPE_CHECKING:
    from .analyzer import GraphAnalyzer

log = logging.getLogger(__name__)


def calculate_graph_metrics(stats: NoteGraphStats) -> GraphMetrics:
    """Connectivity metrics; all zero for an empty graph."""
    note_count = stats.note_count
    if note_count == 0:
        return GraphMetrics()

    total_backlinks = 0
    max_backlinks = 0
    max_backlinks_title = ""
    for title, entries in stats.backlinks.items():
        total_backlinks += len(entries)
        if len(entries) > max_backlinks:
            max_backlinks = len(entries)
            max_backlinks_title = title

    with_backlinks = sum(1 for note in stats.note_metadata if note.title in stats.backlinks)
    with_outlinks = sum(1 for targets in stats.forward_links.values() if targets)

    no_backlinks = note_count - with_backlinks
    no_outlinks = note_count - with_outlinks
    orphans = len(stats.orphan_notes)

    return GraphMetrics(
        avg_backlinks_per_note=total_backlinks / note_count,
        max_backlinks_per_note=max_backlinks,
        max_backlinks_note_title=max_backlinks_title,
        notes_with_no_backlinks=no_backlinks,
        no_backlinks_percentage=no_backlinks / note_count,
        notes_with_no_outlinks=no_outlinks,
        no_outlinks_percentage=no_outlinks / note_count,
        orphan_notes=orphans,
        orphan_percentage=orphans / note_count,
        graph_density=stats.unique_connections / note_count,
    )


def detect_anomalies(stats: NoteGraphStats) -> GraphAnomalies:
    """Find hub notes, suspicious auto-link targets and alias collisions."""
    hub_nodes: list[HubNode] = []
    total_backlinks = sum(len(entries) for entries in stats.backlinks.values())

    if total_backlinks > 0:
        by_title = {note.title: note for note in stats.note_metadata}
        for title, entries in stats.backlinks.items():
            percentage = len(entries) / total_backlinks
            if percentage < config.HUB_CONCENTRATION_WARNING:
                continue
            note = by_title.get(title)
            hub_nodes.append(
                HubNode(
                    note_id=note.id if note else title,
                    title=title,
                    path=note.path if note else "",
                    backlink_count=len(entries),
                    percentage=percentage,
                )
            )

    hub_nodes.sort(key=lambda hub: (-hub.percentage, hub.title))

    # How many distinct notes link to each target
    link_counts: Counter[str] = Counter()
    for targets in stats.forward_links.values():
        link_counts.update(set(targets))

    suspicious = [
        target
        for target, count in link_counts.items()
        if count >= config.SUSPICIOUS_AUTO_LINK_COUNT
    ]
    suspicious.sort(key=lambda target: (-link_counts[target], target))

    return GraphAnomalies(
        hub_nodes=hub_nodes,
        suspicious_auto_links=suspicious,
        alias_collisions=list(stats.alias_collisions),
    )


def _pct(value: float) -> int:
    return math.floor(value * 100 + 0.5)


def generate_recommendations(
    stats: NoteGraphStats, metrics: GraphMetrics, anomalies: GraphAnomalies
) -> list[str]:
    """Actionable advice, in a fixed priority order."""
    recommendations: list[str] = []

    for hub in anomalies.hub_nodes:
        if hub.percentage >= config.HUB_CONCENTRATION_CRITICAL:
            recommendations.append(
                f'Critical: "{hub.title}" has {_pct(hub.percentage)}% of all backlinks. '
                "Consider splitting into more specific notes."
            )
        else:
            recommendations.append(
                f'Review hub note "{hub.title}" ({_pct(hub.percentage)}% of backlinks) - '
                "consider if it should be split into subtopics."
            )

    isolated = metrics.no_backlinks_percentage
    if isolated >= config.ISOLATED_NOTES_CRITICAL:
        recommendations.append(
            f"Critical: {_pct(isolated)}% of notes have no backlinks. "
            "Add more cross-references to improve discoverability."
        )
    elif isolated >= config.ISOLATED_NOTES_WARNING:
        recommendations.append(
            f"{_pct(isolated)}% of notes have no backlinks. "
            "Consider adding links to these notes from related content."
        )

    no_outlinks = metrics.no_outlinks_percentage
    if no_outlinks >= config.NO_OUTLINKS_CRITICAL:
        recommendations.append(
            f"Critical: {_pct(no_outlinks)}% of notes have no outgoing links. "
            "Add wikilinks to connect notes."
        )
    elif no_outlinks >= config.NO_OUTLINKS_WARNING:
        recommendations.append(
            f"{_pct(no_outlinks)}% of notes have no outgoing links. "
            "Consider linking to related notes."
        )

    orphans = metrics.orphan_percentage
    if orphans >= config.ORPHAN_NOTES_CRITICAL:
        recommendations.append(
            f"Critical: {_pct(orphans)}% of notes are completely orphaned "
            "(no incoming or outgoing links). These notes are effectively invisible in the graph."
        )
    elif orphans >= config.ORPHAN_NOTES_WARNING:
        recommendations.append(
            f"{_pct(orphans)}% of notes are orphaned. "
            'Run "notegraph orphans" to list them.'
        )

    if anomalies.suspicious_auto_links:
        top = '", "'.join(anomalies.suspicious_auto_links[:3])
        recommendations.append(
            f'Frequently auto-linked titles: "{top}". '
            "Review these for false positive links or consider adding to exclusion list."
        )

    dangling_count = len(stats.dangling_links)
    if dangling_count > config.DANGLING_LINKS_SUMMARY_COUNT:
        recommendations.append(
            f"{dangling_count} dangling links found. "
            'Run "notegraph dangling" to see unresolved links and "notegraph similar" '
            "to find spellings to merge."
        )
    elif dangling_count > 0:
        names = ", ".join(f'"{link.target}"' for link in stats.dangling_links[:3])
        recommendations.append(
            f"{dangling_count} dangling link(s) found. Consider creating notes for: {names}."
        )

    if (
        metrics.graph_density < config.LOW_DENSITY_THRESHOLD
        and stats.note_count > config.LOW_DENSITY_MIN_NOTES
    ):
        recommendations.append(
            f"Graph density is low ({metrics.graph_density:.2f} links/note). "
            "Look for related notes that could link to each other."
        )

    return recommendations


def calculate_health_score(
    metrics: GraphMetrics, anomalies: GraphAnomalies, stats: NoteGraphStats | None = None
) -> int:
    """Weighted 0-100 score; each penalty grows with its percentage up to its cap."""
    score = 100.0

    score -= min(
        metrics.no_backlinks_percentage * 40 + metrics.no_outlinks_percentage * 20,
        config.WEIGHT_CONNECTIVITY,
    )
    score -= min(metrics.orphan_percentage * 80, config.WEIGHT_ORPHANS)

    if anomalies.hub_nodes:
        max_concentration = max(hub.percentage for hub in anomalies.hub_nodes)
        score -= min(max_concentration * 50, config.WEIGHT_HUB_CONCENTRATION)

    if stats is not None and stats.total_mentions > 0:
        dangling_ratio = len(stats.dangling_links) / stats.total_mentions
        score -= min(dangling_ratio * 60, config.WEIGHT_DANGLING_LINKS)

    return max(0, min(100, math.floor(score + 0.5)))


def score_graph_health(stats: NoteGraphStats) -> HealthReport:
    """Build the full health report for an analysis. Pure; no I/O."""
    metrics = calculate_graph_metrics(stats)
    anomalies = detect_anomalies(stats)
    recommendations = generate_recommendations(stats, metrics, anomalies)
    health_score = calculate_health_score(metrics, anomalies, stats)

    if health_score < config.HEALTH_CRITICAL_BELOW:
        status = "critical"
    elif health_score < config.HEALTH_WARNING_BELOW:
        status = "warning"
    else:
        status = "healthy"

    return HealthReport(
        total_notes=stats.note_count,
        total_wikilinks=stats.total_mentions,
        resolved_links=stats.unique_connections,
        resolved_percentage=(
            stats.unique_connections / stats.total_mentions if stats.total_mentions > 0 else 1.0
        ),
        dangling_links=stats.dangling_links,
        dangling_count=len(stats.dangling_links),
        graph_metrics=metrics,
        anomalies=anomalies,
        recommendations=recommendations,
        health_score=health_score,
        status=status,
    )


async def analyze_health(
    analyzer: GraphAnalyzer, notes_dir: str | os.PathLike[str]
) -> HealthReport:
    """Run a fresh (uncached) analysis of notes_dir and score it."""
    stats = await analyzer.analyze_note_graph(notes_dir, use_cache=False)
    report = score_graph_health(stats)
    log.debug("Health of %s: %d (%s)", notes_dir, report.health_score, report.status)
    return report


def health_summary(report: HealthReport) -> str:
    """One-line summary for status bars."""
    marker = {"healthy": "✓", "warning": "⚠", "critical": "✗"}[report.status]
    return (
        f"{marker} Health Score: {report.health_score}/100 | {report.total_notes} notes | "
        f"{report.resolved_links}/{report.total_wikilinks} links resolved"
    )
