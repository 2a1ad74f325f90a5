"""Value objects produced by the grep expression parser."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

# Tag alternative that matches candidates without any effective tags
UNTAGGED = "untagged"


class GrepKind(StrEnum):
    """Which parts of a parsed grep carry content."""

    EMPTY = "empty"
    TITLE = "title"
    TAGS = "tags"
    BOTH = "both"


class ParsedGrepTitle(BaseModel):
    """Title filter: OR of substrings, minus any negated substring."""

    model_config = ConfigDict(frozen=True)

    words: tuple[str, ...] = Field(
        default=(), description="Substrings, any of which selects a title"
    )
    negated_words: tuple[str, ...] = Field(
        default=(), description="Substrings, any of which excludes a title"
    )

    @property
    def is_empty(self) -> bool:
        return not self.words and not self.negated_words


class ParsedGrepTags(BaseModel):
    """Tag filter: AND of OR-groups, minus any inverted tag.

    ``tags=(("smoke", "critical"), ("api",))`` selects candidates tagged
    (smoke OR critical) AND api.
    """

    model_config = ConfigDict(frozen=True)

    tags: tuple[tuple[str, ...], ...] = Field(
        default=(), description="AND groups of alternative tags"
    )
    inverted_tags: tuple[str, ...] = Field(
        default=(), description="Tags that exclude a candidate"
    )

    @property
    def is_empty(self) -> bool:
        return not self.tags and not self.inverted_tags


class ParsedGrep(BaseModel):
    """Combined title and tag filter handed to the evaluator."""

    model_config = ConfigDict(frozen=True)

    title: ParsedGrepTitle = Field(default_factory=ParsedGrepTitle)
    tags: ParsedGrepTags = Field(default_factory=ParsedGrepTags)

    @property
    def kind(self) -> GrepKind:
        """Discriminate the four filter variants."""
        has_title = not self.title.is_empty
        has_tags = not self.tags.is_empty
        if has_title and has_tags:
            return GrepKind.BOTH
        if has_title:
            return GrepKind.TITLE
        if has_tags:
            return GrepKind.TAGS
        return GrepKind.EMPTY

    @property
    def is_empty(self) -> bool:
        return self.kind is GrepKind.EMPTY
