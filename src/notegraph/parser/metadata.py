"""Note identity from YAML front matter.

Front matter is arbitrary YAML, so only the fields the graph needs are
decoded, and anything of an unexpected type is dropped rather than trusted.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import frontmatter
from pydantic import BaseModel, Field, field_validator

from ..models import NoteMetadata

log = logging.getLogger(__name__)


def extract_aliases(data: dict[str, Any]) -> list[str]:
    """Read aliases from front matter data.

    ``aliases`` takes precedence over ``alias`` when it is present and
    non-empty. List entries that are not strings, or are blank, are dropped.
    A single string is treated as a one-element list.
    """
    raw = data.get("aliases") or data.get("alias")
    if not raw:
        return []

    if isinstance(raw, list):
        return [a for a in raw if isinstance(a, str) and a.strip()]
    if isinstance(raw, str):
        return [raw]
    return []


class NoteFrontmatter(BaseModel):
    """The subset of front matter the graph engine consumes."""

    id: str | None = None
    title: str | None = None
    aliases: list[str] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str | None:
        # Numeric ids (e.g. 202401011200) are common in zettelkasten vaults
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return str(value)
        if isinstance(value, str) and value.strip():
            return value
        return None

    @field_validator("title", mode="before")
    @classmethod
    def _coerce_title(cls, value: Any) -> str | None:
        if isinstance(value, str) and value.strip():
            return value
        return None

    @classmethod
    def from_data(cls, data: dict[str, Any]) -> NoteFrontmatter:
        return cls(id=data.get("id"), title=data.get("title"), aliases=extract_aliases(data))


def _basename(path: str) -> str:
    name = os.path.basename(path)
    return name[:-3] if name.endswith(".md") else name


def metadata_from_content(path: str, content: str) -> NoteMetadata:
    """Build NoteMetadata for a file from its raw content.

    Malformed front matter degrades to filename-derived defaults.
    """
    basename = _basename(path)

    try:
        post = frontmatter.loads(content)
        data = post.metadata if isinstance(post.metadata, dict) else {}
    except Exception as e:
        log.debug("Unreadable front matter in %s: %s", path, e)
        data = {}

    fields = NoteFrontmatter.from_data(data)
    return NoteMetadata(
        id=fields.id or basename,
        title=fields.title or basename,
        path=path,
        basename=basename,
        aliases=fields.aliases,
    )


def extract_note_metadata(path: str | Path) -> NoteMetadata:
    """Read a note file and return its metadata.

    Unreadable files fall back to the filename for both title and id.
    """
    path_str = os.fspath(path)
    try:
        content = Path(path_str).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        log.debug("Cannot read %s for metadata: %s", path_str, e)
        basename = _basename(path_str)
        return NoteMetadata(id=basename, title=basename, path=path_str, basename=basename)

    return metadata_from_content(path_str, content)
