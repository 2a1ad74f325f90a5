"""Unit tests for grep expression parsing."""

import pytest
from pydantic import ValidationError

from specgrep.grep.models import GrepKind, ParsedGrepTags, ParsedGrepTitle
from specgrep.grep.parser import parse_grep, parse_tags_grep, parse_title_grep


class TestParseTitleGrep:
    """Test title expression parsing."""

    def test_none_is_empty(self) -> None:
        """None produces an empty title filter."""
        parsed = parse_title_grep(None)
        assert parsed == ParsedGrepTitle()
        assert parsed.is_empty

    def test_empty_string_is_empty(self) -> None:
        assert parse_title_grep("").is_empty
        assert parse_title_grep("   ").is_empty

    def test_single_word(self) -> None:
        parsed = parse_title_grep("login")
        assert parsed.words == ("login",)
        assert parsed.negated_words == ()

    def test_semicolon_separates_words_in_order(self) -> None:
        """Words keep their input order and are trimmed."""
        parsed = parse_title_grep(" login ; sign up;checkout ")
        assert parsed.words == ("login", "sign up", "checkout")
        assert parsed.negated_words == ()

    def test_negated_word(self) -> None:
        """A leading '-' moves the word to negated_words without the prefix."""
        parsed = parse_title_grep("-slow")
        assert parsed.words == ()
        assert parsed.negated_words == ("slow",)

    def test_mixed_words(self) -> None:
        parsed = parse_title_grep("login; -slow; signup; - flaky ")
        assert parsed.words == ("login", "signup")
        assert parsed.negated_words == ("slow", "flaky")

    def test_inner_dash_is_not_negation(self) -> None:
        parsed = parse_title_grep("sign-up")
        assert parsed.words == ("sign-up",)

    def test_stray_separators_are_skipped(self) -> None:
        parsed = parse_title_grep(";;login;;  ;")
        assert parsed.words == ("login",)

    def test_bare_dash_is_dropped(self) -> None:
        parsed = parse_title_grep("-; login")
        assert parsed.words == ("login",)
        assert parsed.negated_words == ()

    def test_duplicates_are_preserved(self) -> None:
        parsed = parse_title_grep("login;login")
        assert parsed.words == ("login", "login")

    @pytest.mark.parametrize(
        "raw",
        ["a;b;c", " a ; b ", "one word; two words ;three"],
    )
    def test_words_equal_split_tokens(self, raw: str) -> None:
        """Without negation, words are the trimmed non-empty ';' tokens."""
        expected = tuple(t.strip() for t in raw.split(";") if t.strip())
        parsed = parse_title_grep(raw)
        assert parsed.words == expected
        assert parsed.negated_words == ()


class TestParseTagsGrep:
    """Test tag expression parsing."""

    def test_none_is_empty(self) -> None:
        parsed = parse_tags_grep(None)
        assert parsed == ParsedGrepTags()
        assert parsed.is_empty

    def test_single_tag(self) -> None:
        parsed = parse_tags_grep("smoke")
        assert parsed.tags == (("smoke",),)
        assert parsed.inverted_tags == ()

    def test_comma_separates_alternatives(self) -> None:
        parsed = parse_tags_grep("smoke,critical")
        assert parsed.tags == (("smoke", "critical"),)

    def test_plus_separates_groups(self) -> None:
        parsed = parse_tags_grep("a,b+c")
        assert parsed.tags == (("a", "b"), ("c",))
        assert parsed.inverted_tags == ()

    def test_negated_tag_is_global(self) -> None:
        """Negated tags are lifted out of their group."""
        parsed = parse_tags_grep("smoke+-flaky")
        assert parsed.tags == (("smoke",),)
        assert parsed.inverted_tags == ("flaky",)

    def test_negation_inside_group_is_lifted(self) -> None:
        """'a+-b,c' excludes b everywhere rather than within its group."""
        parsed = parse_tags_grep("a+-b,c")
        assert parsed.tags == (("a",), ("c",))
        assert parsed.inverted_tags == ("b",)

    def test_only_negated_tags(self) -> None:
        parsed = parse_tags_grep("-slow,-flaky")
        assert parsed.tags == ()
        assert parsed.inverted_tags == ("slow", "flaky")
        assert not parsed.is_empty

    def test_whitespace_is_trimmed(self) -> None:
        parsed = parse_tags_grep(" smoke , critical + - flaky ")
        assert parsed.tags == (("smoke", "critical"),)
        assert parsed.inverted_tags == ("flaky",)

    def test_malformed_input_degrades_gracefully(self) -> None:
        parsed = parse_tags_grep(",,smoke,++,+ ,critical,")
        assert parsed.tags == (("smoke",), ("critical",))

    def test_only_separators_is_empty(self) -> None:
        assert parse_tags_grep("+,+ , +").is_empty

    def test_untagged_is_kept_literally(self) -> None:
        parsed = parse_tags_grep("smoke,untagged")
        assert parsed.tags == (("smoke", "untagged"),)

    @pytest.mark.parametrize(
        "raw",
        ["-a", "a,-b", "-a+b", "a+-b,c+-d", "x,-y+-z,w"],
    )
    def test_negated_tags_never_appear_in_groups(self, raw: str) -> None:
        parsed = parse_tags_grep(raw)
        negated = {
            token.strip()[1:].strip()
            for group in raw.split("+")
            for token in group.split(",")
            if token.strip().startswith("-")
        }
        assert set(parsed.inverted_tags) == negated
        for group in parsed.tags:
            assert not any(tag.startswith("-") for tag in group)
            assert not negated.intersection(group)


class TestParseGrep:
    """Test the combined parser."""

    def test_empty(self) -> None:
        parsed = parse_grep(None, None)
        assert parsed.kind is GrepKind.EMPTY
        assert parsed.is_empty

    def test_defaults_are_empty(self) -> None:
        assert parse_grep().kind is GrepKind.EMPTY

    def test_title_only(self) -> None:
        parsed = parse_grep("login", None)
        assert parsed.kind is GrepKind.TITLE
        assert parsed.title.words == ("login",)
        assert parsed.tags.is_empty

    def test_tags_only(self) -> None:
        parsed = parse_grep(None, "smoke")
        assert parsed.kind is GrepKind.TAGS
        assert parsed.title.is_empty

    def test_both(self) -> None:
        parsed = parse_grep("login", "smoke")
        assert parsed.kind is GrepKind.BOTH

    def test_negation_only_counts_as_content(self) -> None:
        assert parse_grep("-slow", None).kind is GrepKind.TITLE
        assert parse_grep(None, "-flaky").kind is GrepKind.TAGS

    def test_non_string_input_is_stringified(self) -> None:
        """Numbers coming from config files are treated as text."""
        parsed = parse_grep(42, None)  # type: ignore[arg-type]
        assert parsed.title.words == ("42",)

    def test_parsed_grep_is_immutable(self) -> None:
        parsed = parse_grep("login", "smoke")
        with pytest.raises(ValidationError):
            parsed.title = parse_title_grep("other")  # type: ignore[misc]
