"""Title/alias index for resolving wikilink targets to notes.

Enables resolution of [[Title]], [[filename]], [[id]] and [[Alias]] links.
Titles are kept apart from the other keys so that a note literally titled
"X" always wins over another note that merely declares "X" as an alias.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..models import AliasCollision, NoteMetadata
from .wikilinks import normalize_note_title

log = logging.getLogger(__name__)


class TitleIndex:
    """Normalized lookup from titles, filenames, ids and aliases to notes."""

    def __init__(self) -> None:
        self._titles: dict[str, NoteMetadata] = {}
        self._keys: dict[str, NoteMetadata] = {}
        self.collisions: list[AliasCollision] = []

    @classmethod
    def build(cls, notes: Iterable[NoteMetadata]) -> TitleIndex:
        """Build an index from notes in registration order.

        When two notes claim the same key, the later one wins and the
        collision is recorded.
        """
        index = cls()
        for note in notes:
            index.add(note)
        return index

    def add(self, note: NoteMetadata) -> None:
        self._register(self._titles, note.title, note)

        self._register(self._keys, note.basename, note)
        if note.id != note.basename:
            self._register(self._keys, note.id, note)
        for alias in note.aliases:
            self._register(self._keys, alias, note)

    def _register(self, table: dict[str, NoteMetadata], raw_key: str, note: NoteMetadata) -> None:
        key = normalize_note_title(raw_key).strip()
        if not key:
            return

        previous = table.get(key)
        if previous is not None and previous.path != note.path:
            log.debug("Key %r moved from %s to %s", key, previous.path, note.path)
            self.collisions.append(
                AliasCollision(key=key, previous_path=previous.path, winning_path=note.path)
            )
        table[key] = note

    def resolve(self, target: str) -> NoteMetadata | None:
        """Resolve a link target to a note, or None if it is dangling.

        Section and alias parts must already be stripped from target.
        """
        key = normalize_note_title(target).strip()
        if not key:
            return None
        return self._titles.get(key) or self._keys.get(key)

    def __contains__(self, target: object) -> bool:
        return isinstance(target, str) and self.resolve(target) is not None

    def __len__(self) -> int:
        return len(set(self._titles) | set(self._keys))
