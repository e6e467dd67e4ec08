"""Bulk rewriting of wikilink targets to one canonical spelling.

Used to act on a similar-link cluster: every [[variant]] in the notes
directory becomes [[Canonical|variant]] (or [[Canonical]]), keeping any
section and existing alias.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import TYPE_CHECKING

from .analyzer import collect_markdown_files
from .config import expand_path
from .models import MergeLinkRequest, MergeLinkResult, MergePreview, MergePreviewMatch

if TYPE_CHECKING:
    from .analyzer import GraphAnalyzer

log = logging.getLogger(__name__)


def build_replacement_regex(targets: list[str]) -> re.Pattern[str]:
    """Compile a pattern matching wikilinks to any of targets.

    Groups: 1 = target, 2 = section (optional), 3 = alias (optional).

    Raises:
        ValueError: If targets is empty.
    """
    if not targets:
        raise ValueError("At least one target is required")

    # Longest first so a target that prefixes another cannot shadow it
    alternatives = "|".join(re.escape(t) for t in sorted(targets, key=len, reverse=True))
    return re.compile(rf"\[\[({alternatives})(?:#([^\]|]+))?(?:\|([^\]]+))?\]\]")


def _rewrite(match: re.Match[str], new_target: str, preserve_as_alias: bool) -> str:
    original_target, section, existing_alias = match.group(1), match.group(2), match.group(3)

    section_part = f"#{section}" if section else ""
    if existing_alias:
        alias_part = f"|{existing_alias}"
    elif preserve_as_alias and original_target != new_target:
        alias_part = f"|{original_target}"
    else:
        alias_part = ""

    return f"[[{new_target}{section_part}{alias_part}]]"


def replace_links_in_file(
    file_path: str | os.PathLike[str],
    old_targets: list[str],
    new_target: str,
    preserve_as_alias: bool,
) -> int:
    """Rewrite matching links in one file.

    Returns:
        Number of links replaced (the file is only written when > 0).

    Raises:
        OSError: If the file cannot be read or written.
    """
    path = Path(file_path)
    content = path.read_text(encoding="utf-8")
    pattern = build_replacement_regex(old_targets)

    new_content, count = pattern.subn(
        lambda m: _rewrite(m, new_target, preserve_as_alias), content
    )
    if count:
        path.write_text(new_content, encoding="utf-8")
    return count


def merge_similar_links(
    notes_dir: str | os.PathLike[str],
    request: MergeLinkRequest,
    analyzer: GraphAnalyzer | None = None,
) -> MergeLinkResult:
    """Rewrite request.old_targets to request.new_target across all notes.

    Per-file failures are collected in the result and do not stop the run.
    When an analyzer is given, its cached stats for the directory are
    invalidated before and after the rewrite.
    """
    result = MergeLinkResult()
    if not request.old_targets:
        return result

    directory = expand_path(notes_dir)
    if analyzer is not None:
        analyzer.invalidate_graph_cache(directory)

    for file_path in collect_markdown_files(directory):
        try:
            count = replace_links_in_file(
                file_path, request.old_targets, request.new_target, request.preserve_as_alias
            )
        except (OSError, UnicodeDecodeError) as e:
            log.warning("Failed to merge links in %s: %s", file_path, e)
            result.errors[file_path] = str(e)
            continue

        if count:
            result.files_modified += 1
            result.links_replaced += count
            result.modified_files.append(file_path)

    if result.files_modified and analyzer is not None:
        analyzer.invalidate_graph_cache(directory)

    log.debug(
        "Merged %d link(s) into %r across %d file(s)",
        result.links_replaced,
        request.new_target,
        result.files_modified,
    )
    return result


def preview_merge(
    notes_dir: str | os.PathLike[str], request: MergeLinkRequest
) -> list[MergePreview]:
    """Show what merge_similar_links would change, without writing anything."""
    if not request.old_targets:
        return []

    pattern = build_replacement_regex(request.old_targets)
    previews: list[MergePreview] = []

    for file_path in collect_markdown_files(expand_path(notes_dir)):
        try:
            content = Path(file_path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            log.debug("Skipping %s in merge preview: %s", file_path, e)
            continue

        matches = [
            MergePreviewMatch(
                original=match.group(0),
                replaced=_rewrite(match, request.new_target, request.preserve_as_alias),
                line=line_number,
            )
            for line_number, line in enumerate(content.split("\n"), start=1)
            for match in pattern.finditer(line)
        ]
        if matches:
            previews.append(MergePreview(file_path=file_path, matches=matches))

    return previews
