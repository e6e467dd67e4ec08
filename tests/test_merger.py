"""Tests for merging dangling link spellings into one target."""

import os

import pytest

from conftest import write_note
from notegraph.merger import (
    build_replacement_regex,
    merge_similar_links,
    preview_merge,
    replace_links_in_file,
)
from notegraph.models import MergeLinkRequest


class TestReplacementRegex:
    """build_replacement_regex() matching."""

    def test_requires_targets(self):
        with pytest.raises(ValueError):
            build_replacement_regex([])

    def test_escapes_special_characters(self):
        pattern = build_replacement_regex(["C++ (lang)"])
        assert pattern.search("[[C++ (lang)]]")
        assert not pattern.search("[[C (lang)]]")

    def test_longest_alternative_wins(self):
        pattern = build_replacement_regex(["ML", "ML Ops"])
        match = pattern.search("[[ML Ops]]")
        assert match is not None
        assert match.group(1) == "ML Ops"

    def test_does_not_match_prefix_of_other_target(self):
        pattern = build_replacement_regex(["ML"])
        assert pattern.search("[[MLOps]]") is None


class TestReplaceLinksInFile:
    """Rewriting a single file."""

    def test_preserves_old_spelling_as_alias(self, tmp_path):
        path = tmp_path / "a.md"
        path.write_text("See [[machine-learning]] and [[ML]].", encoding="utf-8")

        count = replace_links_in_file(path, ["machine-learning", "ML"], "Machine Learning", True)

        assert count == 2
        assert path.read_text(encoding="utf-8") == (
            "See [[Machine Learning|machine-learning]] and [[Machine Learning|ML]]."
        )

    def test_without_alias(self, tmp_path):
        path = tmp_path / "a.md"
        path.write_text("[[ML]]", encoding="utf-8")

        replace_links_in_file(path, ["ML"], "Machine Learning", False)
        assert path.read_text(encoding="utf-8") == "[[Machine Learning]]"

    def test_keeps_section_and_existing_alias(self, tmp_path):
        path = tmp_path / "a.md"
        path.write_text("[[ML#Intro|read this]] [[ML#Intro]]", encoding="utf-8")

        replace_links_in_file(path, ["ML"], "Machine Learning", True)
        assert path.read_text(encoding="utf-8") == (
            "[[Machine Learning#Intro|read this]] [[Machine Learning#Intro|ML]]"
        )

    def test_unchanged_file_is_not_written(self, tmp_path):
        path = tmp_path / "a.md"
        path.write_text("[[Other]]", encoding="utf-8")
        os.utime(path, (0, 0))

        assert replace_links_in_file(path, ["ML"], "Machine Learning", True) == 0
        assert path.stat().st_mtime == 0


class TestMergeSimilarLinks:
    """Directory-wide merge."""

    def test_merge_across_files(self, notes_dir):
        a = write_note(notes_dir, "a.md", "[[machine-learning]] [[Machine learnings]]")
        b = write_note(notes_dir, "sub/b.md", "[[Machine learnings]]")
        write_note(notes_dir, "c.md", "[[Unrelated]]")

        result = merge_similar_links(
            notes_dir,
            MergeLinkRequest(
                old_targets=["machine-learning", "Machine learnings"],
                new_target="Machine Learning",
            ),
        )

        assert result.files_modified == 2
        assert result.links_replaced == 3
        assert sorted(result.modified_files) == sorted([str(a), str(b)])
        assert result.errors == {}
        assert "[[Machine Learning|Machine learnings]]" in b.read_text(encoding="utf-8")

    def test_empty_request_is_noop(self, notes_dir):
        write_note(notes_dir, "a.md", "[[ML]]")
        result = merge_similar_links(notes_dir, MergeLinkRequest(old_targets=[], new_target="X"))
        assert result.files_modified == 0
        assert result.links_replaced == 0

    def test_unreadable_file_is_reported(self, notes_dir):
        write_note(notes_dir, "good.md", "[[ML]]")
        bad = notes_dir / "bad.md"
        bad.write_bytes(b"\xff\xfe [[ML]] \xc3\x28")

        result = merge_similar_links(
            notes_dir, MergeLinkRequest(old_targets=["ML"], new_target="Machine Learning")
        )

        assert result.files_modified == 1
        assert list(result.errors) == [str(bad)]

    @pytest.mark.asyncio
    async def test_merge_resolves_dangling_links_after_cache_invalidation(self, notes_dir, analyzer):
        write_note(notes_dir, "ml.md", title="Machine Learning")
        write_note(notes_dir, "a.md", "[[ML basics]]")

        before = await analyzer.analyze_note_graph(notes_dir)
        assert [d.target for d in before.dangling_links] == ["ML basics"]

        merge_similar_links(
            notes_dir,
            MergeLinkRequest(old_targets=["ML basics"], new_target="Machine Learning"),
            analyzer=analyzer,
        )

        after = await analyzer.analyze_note_graph(notes_dir)
        assert after.dangling_links == []
        assert "Machine Learning" in after.backlinks


class TestPreviewMerge:
    """Dry-run previews."""

    def test_preview_reports_lines_without_writing(self, notes_dir):
        original = "intro\n[[ML]] and\n[[ML|ml]]"
        path = write_note(notes_dir, "a.md", original)

        [preview] = preview_merge(
            notes_dir, MergeLinkRequest(old_targets=["ML"], new_target="Machine Learning")
        )

        assert preview.file_path == str(path)
        assert [(m.line, m.original, m.replaced) for m in preview.matches] == [
            (2, "[[ML]]", "[[Machine Learning|ML]]"),
            (3, "[[ML|ml]]", "[[Machine Learning|ml]]"),
        ]
        assert path.read_text(encoding="utf-8") == original

    def test_no_matches(self, notes_dir):
        write_note(notes_dir, "a.md", "[[Other]]")
        request = MergeLinkRequest(old_targets=["ML"], new_target="Machine Learning")
        assert preview_merge(notes_dir, request) == []
