"""Shared test fixtures for notegraph test suite.

Design:
- notes_dir: Empty notes directory in a temp path
- write_note: Creates a note with optional front matter
- analyzer: GraphAnalyzer with a private cache
- runner: CliRunner with proper isolation
"""

from pathlib import Path
from typing import Any

import pytest
import yaml
from click.testing import CliRunner

from notegraph.analyzer import GraphAnalyzer
from notegraph.cache import GraphCache


# ─────────────────────────────────────────────────────────────────────────────
# Markers
# ─────────────────────────────────────────────────────────────────────────────


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


def write_note(
    root: Path,
    rel_path: str,
    body: str = "",
    *,
    title: str | None = None,
    aliases: list[str] | None = None,
    extra: dict[str, Any] | None = None,
) -> Path:
    """Write a markdown note, with front matter when any field is given.

    Args:
        root: Notes directory.
        rel_path: Path relative to root, e.g. "projects/alpha.md".
        body: Markdown content after the front matter.
        title: Optional title field.
        aliases: Optional aliases list.
        extra: Any other front matter fields.

    Returns:
        Path to the written file.
    """
    fields: dict[str, Any] = {}
    if title is not None:
        fields["title"] = title
    if aliases is not None:
        fields["aliases"] = aliases
    if extra:
        fields.update(extra)

    content = body
    if fields:
        content = f"---\n{yaml.safe_dump(fields, allow_unicode=True)}---\n\n{body}"

    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


# ─────────────────────────────────────────────────────────────────────────────
# Core Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def runner() -> CliRunner:
    """CLI runner with isolated environment."""
    return CliRunner()


@pytest.fixture
def notes_dir(tmp_path: Path, monkeypatch) -> Path:
    """Create an empty notes directory.

    Clears NOTEGRAPH_* variables so the developer's environment never leaks
    into a test.
    """
    for name in (
        "NOTEGRAPH_NOTES_DIR",
        "NOTEGRAPH_CACHE_TTL",
        "NOTEGRAPH_IO_CONCURRENCY",
        "NOTEGRAPH_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    root = tmp_path / "notes"
    root.mkdir()
    return root


@pytest.fixture
def cache() -> GraphCache:
    return GraphCache(ttl_seconds=300)


@pytest.fixture
def analyzer(cache: GraphCache) -> GraphAnalyzer:
    """Analyzer with its own cache and a small worker pool."""
    return GraphAnalyzer(cache=cache, concurrency=4)
