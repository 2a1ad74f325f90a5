"""Grep expression parser and match evaluator."""

from specgrep.grep.matcher import Candidate, filter_candidates, should_test_run
from specgrep.grep.models import (
    UNTAGGED,
    GrepKind,
    ParsedGrep,
    ParsedGrepTags,
    ParsedGrepTitle,
)
from specgrep.grep.parser import parse_grep, parse_tags_grep, parse_title_grep

__all__ = [
    "UNTAGGED",
    "Candidate",
    "GrepKind",
    "ParsedGrep",
    "ParsedGrepTags",
    "ParsedGrepTitle",
    "filter_candidates",
    "parse_grep",
    "parse_tags_grep",
    "parse_title_grep",
    "should_test_run",
]
