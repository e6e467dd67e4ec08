"""Configuration management for notegraph.

This module contains all configurable constants for the graph engine.
Magic numbers are documented here rather than scattered throughout the codebase.
"""

import os
from pathlib import Path

import yaml

PROJECT_CONFIG_FILENAME = ".notegraph.yaml"


class ConfigurationError(Exception):
    """Raised when required configuration is missing."""

    pass


def expand_path(path: str | os.PathLike[str]) -> str:
    """Expand ``~`` and return an absolute path string.

    Used for every cache key so that ``~/notes`` and ``/home/me/notes``
    address the same entry.
    """
    return os.path.abspath(os.path.expanduser(os.fspath(path)))


def get_notes_dir() -> Path:
    """Get the notes directory to analyze.

    Discovery order:
    1. NOTEGRAPH_NOTES_DIR environment variable (explicit override)
    2. Walk up from cwd looking for .notegraph.yaml with a notes_dir field
    3. Error with helpful message

    Raises:
        ConfigurationError: If no notes directory can be found.
    """
    root = os.environ.get("NOTEGRAPH_NOTES_DIR")
    if root:
        return Path(expand_path(root))

    discovered = _discover_project_config()
    if discovered:
        _config_path, notes_dir = discovered
        return notes_dir

    raise ConfigurationError(
        "No notes directory configured. Options:\n"
        "  1. Pass --notes-dir /path/to/notes\n"
        "  2. Set NOTEGRAPH_NOTES_DIR to your notes directory\n"
        f"  3. Add a {PROJECT_CONFIG_FILENAME} with 'notes_dir: ./notes' to your project"
    )


def _discover_project_config(
    start_dir: Path | None = None, max_depth: int = 10
) -> tuple[Path, Path] | None:
    """Walk up from start_dir looking for a project config with notes_dir.

    Args:
        start_dir: Directory to start from (defaults to cwd)
        max_depth: Maximum directories to traverse up

    Returns:
        Tuple of (config_path, notes_dir) if found, None otherwise.
    """
    current = Path(start_dir or os.getcwd()).resolve()

    for _ in range(max_depth):
        config_file = current / PROJECT_CONFIG_FILENAME
        if config_file.exists():
            try:
                data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
            except (OSError, yaml.YAMLError):
                data = {}
            if isinstance(data, dict) and data.get("notes_dir"):
                notes_dir = (current / os.path.expanduser(str(data["notes_dir"]))).resolve()
                return (config_file, notes_dir)

        parent = current.parent
        if parent == current:  # Reached filesystem root
            break
        current = parent

    return None


def _positive_int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def get_io_concurrency() -> int:
    """Number of concurrent file reads during analysis (NOTEGRAPH_IO_CONCURRENCY)."""
    return _positive_int_env("NOTEGRAPH_IO_CONCURRENCY", DEFAULT_IO_CONCURRENCY)


def get_cache_ttl() -> float:
    """Lifetime of a cached graph analysis in seconds (NOTEGRAPH_CACHE_TTL)."""
    return float(_positive_int_env("NOTEGRAPH_CACHE_TTL", CACHE_TTL_SECONDS))


# =============================================================================
# Analysis
# =============================================================================

# Concurrent metadata extractions / content reads per analysis.
# File reads are I/O bound; 10 keeps a large vault fast without exhausting
# file descriptors.
DEFAULT_IO_CONCURRENCY = 10

# Characters of surrounding text captured on each side of a backlink
# when include_context is requested.
DEFAULT_CONTEXT_LENGTH = 100


# =============================================================================
# Cache
# =============================================================================

# Cached graph stats expire after 5 minutes even without a file event.
# The watcher normally evicts sooner; the TTL bounds staleness when it is not running.
CACHE_TTL_SECONDS = 300

# Cache type names. Context-bearing stats are cached separately because
# backlink entries differ in content.
GRAPH_STATS_CACHE = "graph-stats"
GRAPH_STATS_CONTEXT_CACHE = "graph-stats-context"


# =============================================================================
# Similar Link Clustering
# =============================================================================

# Composite similarity at which two dangling targets are considered spellings
# of the same concept.
SIMILARITY_THRESHOLD = 0.7

# A cluster of one is not a consolidation candidate.
MIN_CLUSTER_SIZE = 2

# Upper bound on clusters returned by one analysis.
MAX_CLUSTER_RESULTS = 50


# =============================================================================
# Health Check
# =============================================================================

# Share of all backlinks held by a single note
HUB_CONCENTRATION_WARNING = 0.20
HUB_CONCENTRATION_CRITICAL = 0.50

# Share of notes with no backlinks
ISOLATED_NOTES_WARNING = 0.50
ISOLATED_NOTES_CRITICAL = 0.80

# Share of notes with no outgoing links
NO_OUTLINKS_WARNING = 0.30
NO_OUTLINKS_CRITICAL = 0.60

# Share of notes with neither
ORPHAN_NOTES_WARNING = 0.10
ORPHAN_NOTES_CRITICAL = 0.30

# A target linked from this many distinct notes looks like over-eager auto-linking
SUSPICIOUS_AUTO_LINK_COUNT = 10

# More dangling targets than this gets the summary recommendation instead of a list
DANGLING_LINKS_SUMMARY_COUNT = 10

# Density below this (links per note) is flagged once the vault has more notes than
# LOW_DENSITY_MIN_NOTES
LOW_DENSITY_THRESHOLD = 0.5
LOW_DENSITY_MIN_NOTES = 10

# Maximum points each penalty can deduct from 100
WEIGHT_CONNECTIVITY = 30
WEIGHT_ORPHANS = 25
WEIGHT_HUB_CONCENTRATION = 25
WEIGHT_DANGLING_LINKS = 20

# Status boundaries on the final score
HEALTH_CRITICAL_BELOW = 50
HEALTH_WARNING_BELOW = 75


# =============================================================================
# PageRank
# =============================================================================

# Passed to networkx.pagerank as alpha, max_iter and tol. networkx stops when the
# L1 change falls below node_count * tol, which 20 iterations rarely reach.
PAGERANK_DAMPING = 0.85
PAGERANK_ITERATIONS = 100
PAGERANK_TOLERANCE = 1e-6
