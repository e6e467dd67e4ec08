"""notegraph: wikilink graph analysis for Markdown note collections."""

from .analyzer import GraphAnalyzer, collect_markdown_files, parallel_map
from .cache import GraphCache
from .clustering import cluster_dangling_links, find_similar_dangling_links
from .health import analyze_health, score_graph_health
from .models import (
    BacklinkEntry,
    DanglingLink,
    HealthReport,
    NoteGraphStats,
    NoteMetadata,
    ParsedWikilink,
    QuickNoteStats,
    SimilarLinkCluster,
)
from .watcher import NoteFileWatcher

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "GraphAnalyzer",
    "GraphCache",
    "collect_markdown_files",
    "parallel_map",
    "cluster_dangling_links",
    "find_similar_dangling_links",
    "score_graph_health",
    "analyze_health",
    "NoteFileWatcher",
    "BacklinkEntry",
    "DanglingLink",
    "HealthReport",
    "NoteGraphStats",
    "NoteMetadata",
    "ParsedWikilink",
    "QuickNoteStats",
    "SimilarLinkCluster",
]
