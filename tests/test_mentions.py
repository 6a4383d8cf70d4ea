"""
Tests for mention parsing.

Covers:
- parse: active tag at the cursor
- extract_mentions / resolve_mentions / resolve_recipients
- split_segments for rendering
"""

import pytest

from domains.collab_hub.core.mentions import (
    build_name_index,
    extract_mentions,
    parse,
    resolve_mentions,
    resolve_recipients,
    split_segments,
)
from domains.collab_hub.core.models import User

from conftest import ALICE, BOB, CAROL

DIRECTORY = [ALICE, BOB, CAROL]


class TestParse:
    """Tests for the active tag at the cursor."""

    def test_tag_up_to_cursor(self):
        active = parse("ping @al", 8)
        assert active.tag == "al"
        assert active.tag_start_offset == 5
        assert active.is_active

    def test_tag_stops_at_cursor_not_end_of_word(self):
        """Only the characters between '@' and the cursor count."""
        active = parse("ping @alice", 8)
        assert active.tag == "al"

    def test_bare_at_is_empty_tag(self):
        active = parse("hi @", 4)
        assert active.tag == ""
        assert active.tag_start_offset == 3

    def test_whitespace_between_at_and_cursor(self):
        active = parse("@alice hello", 12)
        assert active.tag is None
        assert active.tag_start_offset is None
        assert not active.is_active

    def test_no_at_sign(self):
        assert parse("plain text", 5).tag is None

    def test_empty_text(self):
        assert parse("", 0).tag is None

    def test_cursor_before_at(self):
        assert parse("hi @bob", 2).tag is None

    def test_cursor_is_clamped(self):
        active = parse("@bo", 99)
        assert active.tag == "bo"
        assert parse("@bo", -5).tag is None

    def test_nearest_at_wins(self):
        active = parse("@a@b", 4)
        assert active.tag == "b"
        assert active.tag_start_offset == 2

    def test_escaped_at_is_not_a_trigger(self):
        assert parse(r"mail \@bob", 10).tag is None

    def test_newline_ends_tag(self):
        assert parse("@bob\nnext", 9).tag is None


class TestExtractMentions:
    """Tests for left-to-right mention extraction."""

    def test_offsets_include_at_sign(self):
        tokens = extract_mentions("hi @Bob and @Carol-Ann!")
        assert [t.raw_tag for t in tokens] == ["Bob", "Carol-Ann"]
        assert tokens[0].start_offset == 3
        assert tokens[0].end_offset == 7
        assert tokens[1].start_offset == 12

    def test_unresolved_by_default(self):
        tokens = extract_mentions("@Bob")
        assert tokens[0].resolved_user_id is None
        assert not tokens[0].is_resolved

    def test_underscore_and_digits(self):
        tokens = extract_mentions("@dan_lee2 ok")
        assert tokens[0].raw_tag == "dan_lee2"

    def test_bare_at_is_not_a_mention(self):
        assert extract_mentions("email me @ home") == []

    def test_escaped_at_skipped(self):
        tokens = extract_mentions(r"\@Bob @Alice")
        assert [t.raw_tag for t in tokens] == ["Alice"]

    def test_empty(self):
        assert extract_mentions("") == []


class TestResolve:
    """Tests for resolving tags against a directory snapshot."""

    def test_case_insensitive(self):
        tokens = resolve_mentions("@bob @ALICE", DIRECTORY)
        assert [t.resolved_user_id for t in tokens] == ["u2", "u1"]

    def test_unknown_tag_stays_unresolved(self):
        tokens = resolve_mentions("@Zed", DIRECTORY)
        assert tokens[0].resolved_user_id is None

    def test_duplicate_display_name_first_wins(self):
        twin = User(id="u9", display_name="bob")
        tokens = resolve_mentions("@Bob", [BOB, twin])
        assert tokens[0].resolved_user_id == "u2"
        tokens = resolve_mentions("@Bob", [twin, BOB])
        assert tokens[0].resolved_user_id == "u9"

    def test_entries_without_name_ignored(self):
        index = build_name_index([User(id="u8", display_name=""), ALICE])
        assert list(index) == ["alice"]


class TestResolveRecipients:
    """Tests for notification recipients."""

    def test_excludes_author(self):
        assert resolve_recipients("@Alice @Bob", DIRECTORY, author_id="u1") == ["u2"]

    def test_deduplicates_in_first_seen_order(self):
        text = "@Carol-Ann @bob @Bob @carol-ann"
        assert resolve_recipients(text, DIRECTORY) == ["u3", "u2"]

    def test_unknown_tags_ignored(self):
        assert resolve_recipients("@nobody please", DIRECTORY) == []

    def test_only_self_mention(self):
        assert resolve_recipients("note to @alice", DIRECTORY, author_id="u1") == []


class TestSplitSegments:
    """Tests for render segments."""

    @pytest.mark.parametrize(
        "text",
        [
            "@Bob please review",
            "ping @al and @Bob, thanks",
            "no mentions at all",
            "@a@b",
            r"escaped \@Bob stays text",
        ],
    )
    def test_concatenation_restores_text(self, text):
        segments = split_segments(text, DIRECTORY)
        assert "".join(s.text for s in segments) == text

    def test_mention_segments_carry_token(self):
        segments = split_segments("hi @Bob and @Zed", DIRECTORY)
        mentions = [s for s in segments if s.is_mention]
        assert [s.text for s in mentions] == ["@Bob", "@Zed"]
        assert mentions[0].token.resolved_user_id == "u2"
        assert mentions[1].token.resolved_user_id is None

    def test_offsets_are_contiguous(self):
        segments = split_segments("a @Bob b", DIRECTORY)
        assert [s.start_offset for s in segments] == [0, 2, 6]

    def test_without_directory_all_unresolved(self):
        segments = split_segments("@Bob")
        assert segments[0].is_mention
        assert segments[0].token.resolved_user_id is None

    def test_empty_text(self):
        assert split_segments("") == []
