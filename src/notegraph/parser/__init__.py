"""Wikilink parsing, front matter metadata and title resolution."""

from .metadata import NoteFrontmatter, extract_aliases, extract_note_metadata, metadata_from_content
from .title_index import TitleIndex
from .wikilinks import (
    WIKILINK_PATTERN,
    count_mentions,
    extract_context,
    extract_unique_targets,
    find_links_to_note,
    is_same_note,
    normalize_note_title,
    parse_wikilinks,
)

__all__ = [
    "WIKILINK_PATTERN",
    "parse_wikilinks",
    "extract_unique_targets",
    "count_mentions",
    "find_links_to_note",
    "extract_context",
    "normalize_note_title",
    "is_same_note",
    "NoteFrontmatter",
    "extract_aliases",
    "extract_note_metadata",
    "metadata_from_content",
    "TitleIndex",
]
