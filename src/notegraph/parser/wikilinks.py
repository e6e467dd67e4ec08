"""Wikilink extraction with position tracking."""

import re

from ..models import LinkPosition, ParsedWikilink

# Pattern for [[target#section|alias]] syntax
# - target: required, cannot contain ], | or #
# - #section: optional
# - |alias: optional display text
WIKILINK_PATTERN = re.compile(r"\[\[([^\]|#]+)(?:#([^\]|]+))?(?:\|([^\]]+))?\]\]")

_NEWLINES = re.compile(r"\n+")
_WHITESPACE = re.compile(r"\s+")
_MD_SUFFIX = re.compile(r"\.md$", re.IGNORECASE)
_SEPARATORS = re.compile(r"[-_]")


def _strip_optional(value: str | None) -> str | None:
    return value.strip() if value is not None else None


def parse_wikilinks(content: str) -> list[ParsedWikilink]:
    """Extract every wikilink occurrence from markdown content.

    Scans line by line so links never span lines and the line number is
    known without a second pass.

    Args:
        content: Markdown content.

    Returns:
        Parsed links in document order, duplicates included.
    """
    results: list[ParsedWikilink] = []
    line_start = 0

    for line_number, line in enumerate(content.split("\n")):
        for match in WIKILINK_PATTERN.finditer(line):
            raw = match.group(0)
            start = line_start + match.start()
            results.append(
                ParsedWikilink(
                    raw=raw,
                    target=match.group(1).strip(),
                    section=_strip_optional(match.group(2)),
                    alias=_strip_optional(match.group(3)),
                    position=LinkPosition(start=start, end=start + len(raw), line=line_number),
                )
            )
        line_start += len(line) + 1

    return results


def extract_unique_targets(content: str) -> list[str]:
    """Return link targets without duplicates, in first-seen order."""
    return list(dict.fromkeys(link.target for link in parse_wikilinks(content)))


def count_mentions(content: str) -> int:
    """Count wikilink occurrences, duplicates included."""
    return len(parse_wikilinks(content))


def find_links_to_note(content: str, target_note: str) -> list[ParsedWikilink]:
    """Return the links in content whose target matches target_note (case-insensitive)."""
    wanted = target_note.lower().strip()
    return [link for link in parse_wikilinks(content) if link.target.lower().strip() == wanted]


def extract_context(content: str, link: ParsedWikilink, context_length: int = 50) -> str:
    """Return the text around a link on a single line.

    Args:
        content: The content the link was parsed from.
        link: The link.
        context_length: Characters to keep on each side.

    Returns:
        Context with ``...`` where it was cut and newlines collapsed.
    """
    start = max(0, link.position.start - context_length)
    end = min(len(content), link.position.end + context_length)

    context = content[start:end]
    if start > 0:
        context = "..." + context.lstrip()
    if end < len(content):
        context = context.rstrip() + "..."

    return _NEWLINES.sub(" ", context).strip()


def normalize_note_title(title: str) -> str:
    """Normalize a title, filename or link target for comparison.

    Lowercases, trims, drops a trailing .md, turns - and _ into spaces and
    collapses runs of whitespace.
    """
    normalized = _MD_SUFFIX.sub("", title.lower().strip())
    normalized = _SEPARATORS.sub(" ", normalized)
    return _WHITESPACE.sub(" ", normalized)


def is_same_note(title1: str, title2: str) -> bool:
    return normalize_note_title(title1) == normalize_note_title(title2)
