"""Parser for grep title expressions and tag expressions.

Title expressions are ``;``-separated substrings::

    "login; signup; -slow"   ->  words=("login", "signup"), negated=("slow",)

Tag expressions are ``+``-joined AND groups of ``,``-separated alternatives::

    "smoke,critical+api+-flaky"
        ->  tags=(("smoke", "critical"), ("api",)), inverted=("flaky",)

A ``-`` prefix on a tag always excludes it globally, even when written inside
a group: ``"a+-b,c"`` means "a AND c, and never b".

The parser never raises. Empty fragments produced by stray separators are
skipped, so the worst case is an empty filter that matches everything.
"""

from typing import Any

from specgrep.grep.models import ParsedGrep, ParsedGrepTags, ParsedGrepTitle

TITLE_SEPARATOR = ";"
TAG_GROUP_SEPARATOR = "+"
TAG_ALTERNATIVE_SEPARATOR = ","
NEGATION_PREFIX = "-"


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _split_negation(token: str) -> tuple[str, bool]:
    """Strip a leading '-' and report whether it was there."""
    if token.startswith(NEGATION_PREFIX):
        return token[len(NEGATION_PREFIX) :].strip(), True
    return token, False


def parse_title_grep(grep: str | None) -> ParsedGrepTitle:
    """Parse a ';'-separated title expression.

    Args:
        grep: Raw title expression, e.g. "login; -slow". None means no filter.

    Returns:
        ParsedGrepTitle with positive and negated substrings in input order.
    """
    words: list[str] = []
    negated_words: list[str] = []

    for token in _as_text(grep).split(TITLE_SEPARATOR):
        token = token.strip()
        if not token:
            continue

        word, negated = _split_negation(token)
        if not word:
            continue

        if negated:
            negated_words.append(word)
        else:
            words.append(word)

    return ParsedGrepTitle(words=tuple(words), negated_words=tuple(negated_words))


def parse_tags_grep(grep_tags: str | None) -> ParsedGrepTags:
    """Parse a tag expression into AND groups and inverted tags.

    Args:
        grep_tags: Raw tag expression, e.g. "smoke,critical+-flaky".
            None means no filter.

    Returns:
        ParsedGrepTags; groups that only held negated tags are dropped.
    """
    groups: list[tuple[str, ...]] = []
    inverted_tags: list[str] = []

    for raw_group in _as_text(grep_tags).split(TAG_GROUP_SEPARATOR):
        alternatives: list[str] = []

        for raw_tag in raw_group.split(TAG_ALTERNATIVE_SEPARATOR):
            raw_tag = raw_tag.strip()
            if not raw_tag:
                continue

            tag, negated = _split_negation(raw_tag)
            if not tag:
                continue

            if negated:
                inverted_tags.append(tag)
            else:
                alternatives.append(tag)

        if alternatives:
            groups.append(tuple(alternatives))

    return ParsedGrepTags(tags=tuple(groups), inverted_tags=tuple(inverted_tags))


def parse_grep(
    grep: str | None = None, grep_tags: str | None = None
) -> ParsedGrep:
    """Parse a title expression and a tag expression into one filter.

    Example:
        >>> parsed = parse_grep("login", "smoke+-flaky")
        >>> parsed.title.words
        ('login',)
        >>> parsed.tags.tags, parsed.tags.inverted_tags
        ((('smoke',),), ('flaky',))
    """
    return ParsedGrep(
        title=parse_title_grep(grep),
        tags=parse_tags_grep(grep_tags),
    )
