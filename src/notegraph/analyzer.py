"""Note graph analysis engine.

Builds forward links, backlinks, dangling links and orphan lists for a
directory of Markdown notes.

Analysis runs in three phases:
1. Metadata extraction, concurrently (bounded worker pool)
2. Content reads, concurrently (same pool size)
3. Link resolution and map building, in one sequential pass

The maps are only mutated in phase 3, after all I/O has completed.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import TypeVar

from .cache import GraphCache
from .config import (
    DEFAULT_CONTEXT_LENGTH,
    GRAPH_STATS_CACHE,
    GRAPH_STATS_CONTEXT_CACHE,
    expand_path,
    get_io_concurrency,
)
from .models import (
    BacklinkEntry,
    DanglingLink,
    DanglingSource,
    NoteGraphStats,
    NoteMetadata,
    QuickNoteStats,
)
from .parser import (
    TitleIndex,
    extract_context,
    extract_note_metadata,
    normalize_note_title,
    parse_wikilinks,
)

log = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def parallel_map(
    items: Sequence[T],
    fn: Callable[[T], Awaitable[R]],
    concurrency: int = 10,
) -> list[R]:
    """Apply an async function to items with at most `concurrency` in flight.

    Workers pull the next index from a shared cursor and write each result
    at its item's index, so the output order matches the input order
    regardless of completion order.
    """
    results: list[R | None] = [None] * len(items)
    cursor = 0

    async def worker() -> None:
        nonlocal cursor
        while cursor < len(items):
            index = cursor
            cursor += 1
            results[index] = await fn(items[index])

    workers = [worker() for _ in range(min(max(concurrency, 1), len(items)))]
    await asyncio.gather(*workers)
    return results  # type: ignore[return-value]


def collect_markdown_files(notes_dir: str | os.PathLike[str]) -> list[str]:
    """Recursively find .md files, skipping dot-prefixed directories.

    A missing root returns an empty list. Unreadable subdirectories are
    skipped. Paths are returned sorted so analysis order is stable.
    """
    root = os.fspath(notes_dir)
    if not os.path.isdir(root):
        return []

    files: list[str] = []

    def on_error(error: OSError) -> None:
        log.debug("Skipping unreadable directory %s: %s", error.filename, error)

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        dirnames[:] = [d for d in dirnames if not d.startswith(".")]
        files.extend(os.path.join(dirpath, name) for name in filenames if name.endswith(".md"))

    return sorted(files)


def _read_text(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


class GraphAnalyzer:
    """Analyze note directories, memoizing results in a GraphCache."""

    def __init__(self, cache: GraphCache | None = None, concurrency: int | None = None):
        """Initialize the analyzer.

        Args:
            cache: Cache to read and populate. A private one is created if None.
            concurrency: Concurrent file operations. Uses NOTEGRAPH_IO_CONCURRENCY if None.
        """
        self.cache = cache if cache is not None else GraphCache()
        self.concurrency = concurrency or get_io_concurrency()

    async def analyze_note_graph(
        self,
        notes_dir: str | os.PathLike[str],
        *,
        include_context: bool = False,
        context_length: int = DEFAULT_CONTEXT_LENGTH,
        use_cache: bool = True,
    ) -> NoteGraphStats:
        """Analyze every note under notes_dir.

        Args:
            notes_dir: Notes directory (``~`` is expanded).
            include_context: Attach surrounding text to each backlink.
            context_length: Characters of context on each side of a link.
            use_cache: Read from and store into the cache.

        Returns:
            Graph statistics. A missing or unreadable directory yields an
            empty result rather than an error.
        """
        directory = expand_path(notes_dir)
        cache_type = GRAPH_STATS_CONTEXT_CACHE if include_context else GRAPH_STATS_CACHE

        if use_cache:
            cached = self.cache.get(cache_type, directory)
            if cached is not None:
                return cached

        files = collect_markdown_files(directory)

        async def load_metadata(path: str) -> NoteMetadata:
            return await asyncio.to_thread(extract_note_metadata, path)

        notes = await parallel_map(files, load_metadata, self.concurrency)
        index = TitleIndex.build(notes)

        async def load_content(note: NoteMetadata) -> str | None:
            try:
                return await asyncio.to_thread(_read_text, note.path)
            except (OSError, UnicodeDecodeError) as e:
                log.debug("Cannot process file %s: %s", note.path, e)
                return None

        contents = await parallel_map(notes, load_content, self.concurrency)

        stats = _build_stats(
            notes,
            contents,
            index,
            include_context=include_context,
            context_length=context_length,
        )
        log.debug(
            "Analyzed %s: %d notes, %d connections, %d dangling",
            directory,
            stats.note_count,
            stats.unique_connections,
            len(stats.dangling_links),
        )

        if use_cache:
            self.cache.set(cache_type, directory, stats)

        return stats

    async def get_backlinks_for_note(
        self, notes_dir: str | os.PathLike[str], note_title: str
    ) -> list[BacklinkEntry]:
        """Backlinks for a note: exact title first, then normalized title."""
        stats = await self.analyze_note_graph(notes_dir, include_context=True)

        direct = stats.backlinks.get(note_title)
        if direct is not None:
            return direct

        wanted = normalize_note_title(note_title)
        for title, entries in stats.backlinks.items():
            if normalize_note_title(title) == wanted:
                return entries

        return []

    async def find_dangling_links(self, notes_dir: str | os.PathLike[str]) -> list[DanglingLink]:
        stats = await self.analyze_note_graph(notes_dir)
        return stats.dangling_links

    async def find_orphan_notes(self, notes_dir: str | os.PathLike[str]) -> list[str]:
        stats = await self.analyze_note_graph(notes_dir)
        return stats.orphan_notes

    async def get_quick_stats(self, notes_dir: str | os.PathLike[str]) -> QuickNoteStats:
        stats = await self.analyze_note_graph(notes_dir)
        return QuickNoteStats(
            note_count=stats.note_count,
            connection_count=stats.unique_connections,
            dangling_count=len(stats.dangling_links),
            orphan_count=len(stats.orphan_notes),
        )

    def invalidate_graph_cache(self, notes_dir: str | os.PathLike[str]) -> None:
        """Evict cached stats for a directory (call after bulk edits)."""
        directory = expand_path(notes_dir)
        self.cache.invalidate(GRAPH_STATS_CACHE, directory)
        self.cache.invalidate(GRAPH_STATS_CONTEXT_CACHE, directory)


def _build_stats(
    notes: list[NoteMetadata],
    contents: list[str | None],
    index: TitleIndex,
    *,
    include_context: bool,
    context_length: int,
) -> NoteGraphStats:
    """Resolve every link and assemble the stats. Pure; no I/O."""
    forward_links: dict[str, list[str]] = {}
    backlinks: dict[str, list[BacklinkEntry]] = {}
    backlink_pairs: set[tuple[str, str]] = set()  # (target title, source path)
    connection_pairs: set[tuple[str, str]] = set()  # (source path, target path)
    dangling: dict[str, dict[str, DanglingSource]] = {}
    total_mentions = 0

    for note, content in zip(notes, contents):
        targets: list[str] = []
        forward_links[note.path] = targets
        if content is None:
            continue

        links = parse_wikilinks(content)
        total_mentions += len(links)

        for link in links:
            target_note = index.resolve(link.target)

            if target_note is None:
                sources = dangling.setdefault(link.target, {})
                source = sources.get(note.path)
                if source is None:
                    sources[note.path] = DanglingSource(
                        note_id=note.id, note_path=note.path, note_title=note.title, count=1
                    )
                else:
                    source.count += 1
                continue

            target_title = target_note.title
            if target_title not in targets:
                targets.append(target_title)

            connection_pairs.add((note.path, target_note.path))

            if (target_title, note.path) not in backlink_pairs:
                backlink_pairs.add((target_title, note.path))
                entry = BacklinkEntry(
                    note_id=note.id,
                    note_path=note.path,
                    note_title=note.title,
                    alias=link.alias,
                )
                if include_context:
                    entry.context = extract_context(content, link, context_length)
                backlinks.setdefault(target_title, []).append(entry)

    dangling_links = [
        DanglingLink(target=target, sources=list(sources.values()))
        for target, sources in dangling.items()
    ]

    orphan_notes = [
        note.path
        for note in notes
        if not forward_links.get(note.path) and note.title not in backlinks
    ]

    return NoteGraphStats(
        note_count=len(notes),
        unique_connections=len(connection_pairs),
        total_mentions=total_mentions,
        dangling_links=dangling_links,
        orphan_notes=orphan_notes,
        backlinks=backlinks,
        forward_links=forward_links,
        note_metadata=notes,
        alias_collisions=list(index.collisions),
    )
