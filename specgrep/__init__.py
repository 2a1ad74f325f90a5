"""specgrep - select tests and spec files by title and tag expressions."""

from specgrep.grep import (
    GrepKind,
    ParsedGrep,
    ParsedGrepTags,
    ParsedGrepTitle,
    parse_grep,
    should_test_run,
)

__version__ = "1.0.0"

__all__ = [
    "__version__",
    "GrepKind",
    "ParsedGrep",
    "ParsedGrepTags",
    "ParsedGrepTitle",
    "parse_grep",
    "should_test_run",
]
