"""Decide whether a test should run under a parsed grep filter."""

from collections.abc import Iterable, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from specgrep.grep.models import (
    UNTAGGED,
    GrepKind,
    ParsedGrep,
    ParsedGrepTags,
    ParsedGrepTitle,
)


def _title_has_negated_word(title: ParsedGrepTitle, text: str) -> bool:
    return any(word.lower() in text for word in title.negated_words)


def _title_matches(title: ParsedGrepTitle, text: str) -> bool:
    if not title.words:
        return True
    return any(word.lower() in text for word in title.words)


def _group_matches(group: Sequence[str], tags: frozenset[str]) -> bool:
    for alternative in group:
        if alternative == UNTAGGED:
            if not tags:
                return True
        elif alternative in tags:
            return True
    return False


def _tags_match(
    parsed_tags: ParsedGrepTags, tags: frozenset[str], grep_untagged: bool
) -> bool:
    if parsed_tags.is_empty:
        return True

    if not tags:
        # Untagged candidates pass on request, or when every group asks for them
        return grep_untagged or (
            bool(parsed_tags.tags)
            and all(UNTAGGED in group for group in parsed_tags.tags)
        )

    return all(_group_matches(group, tags) for group in parsed_tags.tags)


def should_test_run(
    parsed: ParsedGrep,
    title: str | None = None,
    effective_tags: Iterable[str] | None = None,
    grep_untagged: bool = False,
    required_tags: Iterable[str] | None = None,
) -> bool:
    """Check whether a test (or suite) passes the grep filter.

    Evaluation order:
    1. Any required tag forces the test to run.
    2. A negated title word found in the title excludes it.
    3. An inverted tag found in the effective tags excludes it.
    4. Otherwise the title and tag filters that carry content must both match.
       Title words are case-insensitive substrings; tags match exactly, AND
       across groups and OR within a group. Untagged candidates only pass a
       tag filter when ``grep_untagged`` is set or the filter asks for
       ``untagged``.

    Args:
        parsed: Filter built by parse_grep
        title: Full test or suite title. None is treated as an empty title.
        effective_tags: Tags of the test including those of enclosing suites
        grep_untagged: Let untagged tests through an active tag filter
        required_tags: The test's own required tags

    Returns:
        True if the test should run
    """
    if frozenset(required_tags or ()):
        return True

    text = (title or "").lower()
    tags = frozenset(effective_tags or ())

    if _title_has_negated_word(parsed.title, text):
        return False

    if tags.intersection(parsed.tags.inverted_tags):
        return False

    kind = parsed.kind
    if kind is GrepKind.EMPTY:
        return True
    if kind is GrepKind.TITLE:
        return _title_matches(parsed.title, text)
    if kind is GrepKind.TAGS:
        return _tags_match(parsed.tags, tags, grep_untagged)
    return _title_matches(parsed.title, text) and _tags_match(
        parsed.tags, tags, grep_untagged
    )


class Candidate(BaseModel):
    """A test or suite considered for a run.

    ``effective_tags`` always contains the candidate's own ``tags``.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    tags: frozenset[str] = Field(default_factory=frozenset)
    effective_tags: frozenset[str] = Field(default_factory=frozenset)
    required_tags: frozenset[str] = Field(default_factory=frozenset)

    @model_validator(mode="before")
    @classmethod
    def include_own_tags(cls, data: Any) -> Any:
        if isinstance(data, dict):
            own = set(data.get("tags") or ())
            inherited = set(data.get("effective_tags") or ())
            data = {**data, "effective_tags": own | inherited}
        return data

    def should_run(self, parsed: ParsedGrep, grep_untagged: bool = False) -> bool:
        """Evaluate this candidate against a parsed filter."""
        return should_test_run(
            parsed,
            self.title,
            self.effective_tags,
            grep_untagged=grep_untagged,
            required_tags=self.required_tags,
        )


def filter_candidates(
    parsed: ParsedGrep,
    candidates: Iterable[Candidate],
    grep_untagged: bool = False,
) -> list[Candidate]:
    """Keep the candidates that should run, preserving order."""
    return [c for c in candidates if c.should_run(parsed, grep_untagged)]
