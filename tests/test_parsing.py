"""Tests for wikilink parsing, front matter metadata and the title index."""

from pathlib import Path

import pytest

from notegraph.models import NoteMetadata
from notegraph.parser import (
    TitleIndex,
    count_mentions,
    extract_aliases,
    extract_context,
    extract_note_metadata,
    extract_unique_targets,
    find_links_to_note,
    is_same_note,
    metadata_from_content,
    normalize_note_title,
    parse_wikilinks,
)


def _note(path: str, title: str, *, id: str | None = None, aliases=None) -> NoteMetadata:
    basename = Path(path).stem
    return NoteMetadata(
        id=id or basename,
        title=title,
        path=path,
        basename=basename,
        aliases=aliases or [],
    )


# ─────────────────────────────────────────────────────────────────────────────
# Wikilinks
# ─────────────────────────────────────────────────────────────────────────────


class TestParseWikilinks:
    """parse_wikilinks() extraction."""

    def test_plain_link(self):
        links = parse_wikilinks("See [[Project Ideas]] for more.")
        assert len(links) == 1
        link = links[0]
        assert link.raw == "[[Project Ideas]]"
        assert link.target == "Project Ideas"
        assert link.section is None
        assert link.alias is None
        assert link.position.start == 4
        assert link.position.end == 4 + len("[[Project Ideas]]")
        assert link.position.line == 0

    def test_section_and_alias(self):
        [link] = parse_wikilinks("[[Target#Heading|shown text]]")
        assert link.target == "Target"
        assert link.section == "Heading"
        assert link.alias == "shown text"

    def test_alias_only(self):
        [link] = parse_wikilinks("[[Target|shown]]")
        assert link.target == "Target"
        assert link.section is None
        assert link.alias == "shown"

    def test_parts_are_trimmed(self):
        [link] = parse_wikilinks("[[  Target  # Heading | shown ]]")
        assert link.target == "Target"
        assert link.section == "Heading"
        assert link.alias == "shown"

    def test_positions_across_lines(self):
        content = "first line\nsecond [[A]] and [[B]]\n[[C]]"
        links = parse_wikilinks(content)

        assert [link.target for link in links] == ["A", "B", "C"]
        assert [link.position.line for link in links] == [1, 1, 2]
        for link in links:
            assert content[link.position.start : link.position.end] == link.raw

    def test_duplicates_are_kept(self):
        links = parse_wikilinks("[[A]] [[A]] [[a]]")
        assert len(links) == 3

    def test_no_links(self):
        assert parse_wikilinks("No links here, just [single] brackets.") == []
        assert parse_wikilinks("") == []

    def test_links_do_not_span_lines(self):
        assert parse_wikilinks("[[broken\nlink]]") == []


class TestLinkHelpers:
    """Helpers built on the wikilink pattern."""

    def test_extract_unique_targets_keeps_first_seen_order(self):
        content = "[[B]] then [[A]] then [[B|again]]"
        assert extract_unique_targets(content) == ["B", "A"]

    def test_count_mentions_counts_duplicates(self):
        assert count_mentions("[[A]] [[A#x]] [[B|b]]") == 3
        assert count_mentions("nothing") == 0

    def test_links_never_span_lines(self):
        content = "see [[Alpha\nBeta]] here"
        assert count_mentions(content) == 0
        assert extract_unique_targets(content) == []

    def test_find_links_to_note_is_case_insensitive(self):
        content = "[[Alpha]] [[alpha|a]] [[Beta]]"
        matches = find_links_to_note(content, "ALPHA")
        assert [m.raw for m in matches] == ["[[Alpha]]", "[[alpha|a]]"]


class TestExtractContext:
    """extract_context() windows."""

    def test_context_marks_both_cuts(self):
        content = "x" * 100 + " before [[Target]] after " + "y" * 100
        [link] = parse_wikilinks(content)
        context = extract_context(content, link, context_length=10)

        assert context.startswith("...")
        assert context.endswith("...")
        assert "[[Target]]" in context

    def test_context_without_cuts(self):
        content = "See [[Target]] here"
        [link] = parse_wikilinks(content)
        assert extract_context(content, link, context_length=50) == "See [[Target]] here"

    def test_context_collapses_newlines(self):
        content = "above\n\n[[Target]]\n\nbelow"
        [link] = parse_wikilinks(content)
        context = extract_context(content, link, context_length=50)
        assert "\n" not in context
        assert context == "above [[Target]] below"


class TestNormalizeNoteTitle:
    """normalize_note_title() rules."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Project Ideas", "project ideas"),
            ("  Project   Ideas  ", "project ideas"),
            ("project-ideas", "project ideas"),
            ("project_ideas.md", "project ideas"),
            ("Notes.MD", "notes"),
            ("a - b", "a b"),
        ],
    )
    def test_normalization(self, raw, expected):
        assert normalize_note_title(raw) == expected

    def test_is_same_note(self):
        assert is_same_note("Machine-Learning", "machine learning")
        assert not is_same_note("Machine Learning", "Machine Learnings")


# ─────────────────────────────────────────────────────────────────────────────
# Front matter
# ─────────────────────────────────────────────────────────────────────────────


class TestExtractAliases:
    """extract_aliases() precedence and filtering."""

    def test_aliases_list(self):
        assert extract_aliases({"aliases": ["ML", "Machine Learning"]}) == [
            "ML",
            "Machine Learning",
        ]

    def test_aliases_list_drops_non_strings_and_blanks(self):
        assert extract_aliases({"aliases": ["ML", 3, None, "  ", ""]}) == ["ML"]

    def test_singular_alias(self):
        assert extract_aliases({"alias": "ML"}) == ["ML"]

    def test_aliases_takes_precedence(self):
        assert extract_aliases({"aliases": ["A"], "alias": "B"}) == ["A"]

    def test_empty_aliases_falls_back_to_alias(self):
        assert extract_aliases({"aliases": [], "alias": "B"}) == ["B"]

    def test_missing_or_wrong_type(self):
        assert extract_aliases({}) == []
        assert extract_aliases({"aliases": {"a": 1}}) == []


class TestNoteMetadata:
    """metadata_from_content() / extract_note_metadata()."""

    def test_front_matter_fields(self):
        content = "---\nid: n-1\ntitle: Project Ideas\naliases: [Ideas]\n---\nBody"
        meta = metadata_from_content("/notes/project-ideas.md", content)

        assert meta.id == "n-1"
        assert meta.title == "Project Ideas"
        assert meta.basename == "project-ideas"
        assert meta.path == "/notes/project-ideas.md"
        assert meta.aliases == ["Ideas"]

    def test_defaults_without_front_matter(self):
        meta = metadata_from_content("/notes/plain.md", "Just text")
        assert meta.id == "plain"
        assert meta.title == "plain"
        assert meta.aliases == []

    def test_numeric_id_is_stringified(self):
        meta = metadata_from_content("/notes/z.md", "---\nid: 202401011200\n---\n")
        assert meta.id == "202401011200"

    def test_wrong_types_fall_back(self):
        content = "---\nid: true\ntitle: [not, a, string]\n---\n"
        meta = metadata_from_content("/notes/odd.md", content)
        assert meta.id == "odd"
        assert meta.title == "odd"

    def test_malformed_front_matter_degrades(self):
        content = "---\ntitle: [unclosed\n---\nBody"
        meta = metadata_from_content("/notes/broken.md", content)
        assert meta.title == "broken"
        assert meta.id == "broken"

    def test_extract_from_file(self, tmp_path):
        path = tmp_path / "alpha.md"
        path.write_text("---\ntitle: Alpha Note\n---\n", encoding="utf-8")

        meta = extract_note_metadata(path)
        assert meta.title == "Alpha Note"
        assert meta.path == str(path)

    def test_unreadable_file_uses_filename(self, tmp_path):
        meta = extract_note_metadata(tmp_path / "missing.md")
        assert meta.title == "missing"
        assert meta.id == "missing"


# ─────────────────────────────────────────────────────────────────────────────
# Title index
# ─────────────────────────────────────────────────────────────────────────────


class TestTitleIndex:
    """Resolution by title, basename, id and alias."""

    def test_resolves_all_key_kinds(self):
        note = _note("/n/ml-notes.md", "Machine Learning", id="n-42", aliases=["ML"])
        index = TitleIndex.build([note])

        assert index.resolve("Machine Learning") is note
        assert index.resolve("machine-learning") is note
        assert index.resolve("ml-notes") is note
        assert index.resolve("ml_notes.md") is note
        assert index.resolve("n-42") is note
        assert index.resolve("ml") is note
        assert index.resolve("Deep Learning") is None

    def test_title_beats_alias(self):
        titled = _note("/n/z.md", "Python")
        aliased = _note("/n/a.md", "Snake Language", aliases=["Python"])

        # Registration order must not matter for a literal title
        assert TitleIndex.build([titled, aliased]).resolve("python") is titled
        assert TitleIndex.build([aliased, titled]).resolve("python") is titled

    def test_alias_collision_last_writer_wins(self):
        first = _note("/n/a.md", "A", aliases=["shared"])
        second = _note("/n/b.md", "B", aliases=["shared"])
        index = TitleIndex.build([first, second])

        assert index.resolve("shared") is second
        assert len(index.collisions) == 1
        collision = index.collisions[0]
        assert collision.key == "shared"
        assert collision.previous_path == "/n/a.md"
        assert collision.winning_path == "/n/b.md"

    def test_same_note_reregistering_is_not_a_collision(self):
        # Title and basename normalize to the same key
        note = _note("/n/project-ideas.md", "Project Ideas", aliases=["project ideas"])
        index = TitleIndex.build([note])
        assert index.collisions == []

    def test_blank_keys_are_ignored(self):
        note = _note("/n/a.md", "A", aliases=["  "])
        index = TitleIndex.build([note])
        assert index.resolve("   ") is None
        assert index.resolve("") is None

    def test_contains_and_len(self):
        index = TitleIndex.build([_note("/n/a.md", "Alpha", aliases=["First"])])
        assert "alpha" in index
        assert "first" in index
        assert "beta" not in index
        assert len(index) == 3  # alpha, a, first
