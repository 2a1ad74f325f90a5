"""Extract test names and effective tags from spec source text.

The spec filtering workflow only needs two things from a spec file: the names
of its suites and tests, and the tags that apply to each test. Both are
described by small protocols so that other spec formats can be plugged in.
The default implementation reads YAML spec files:

    suite: Authentication
    tags: [auth]
    required_tags: [critical]
    tests:
      - name: user login flow
        tags: [smoke]
      - suite: Password reset
        tags: slow
        tests:
          - name: sends reset email

Suite tags and required tags are inherited by every nested test. A test's full
title is its suite names and its own name joined by single spaces, e.g.
"Authentication Password reset sends reset email".
"""

import logging
from collections.abc import Iterator, Mapping
from typing import Any, Protocol, TypeAlias

from pydantic import BaseModel, ConfigDict, Field

from specgrep.core.exceptions import ExtractionError
from specgrep.grep.matcher import Candidate
from specgrep.loader.parser import YAMLParser

logger = logging.getLogger(__name__)

# title, node, location, own tags, effective tags, required tags
_WalkedTest: TypeAlias = tuple[
    str, Mapping[str, Any], str, frozenset[str], frozenset[str], frozenset[str]
]


class SpecNames(BaseModel):
    """Suite and test names declared in one spec file, in source order."""

    model_config = ConfigDict(frozen=True)

    suite_names: tuple[str, ...] = ()
    test_names: tuple[str, ...] = ()

    @property
    def all_names(self) -> tuple[str, ...]:
        return self.suite_names + self.test_names


class EffectiveTags(BaseModel):
    """Tags that apply to one test, including those of enclosing suites."""

    model_config = ConfigDict(frozen=True)

    effective_tags: frozenset[str] = Field(default_factory=frozenset)
    required_tags: frozenset[str] = Field(default_factory=frozenset)


class NameExtractor(Protocol):
    """Returns the suite and test names declared in spec source text.

    Raises a LoaderError subclass when the source cannot be understood.
    """

    def extract_test_names(self, source_text: str) -> SpecNames: ...


class TagExtractor(Protocol):
    """Maps each full test title in spec source text to its effective tags.

    Raises a LoaderError subclass when the source cannot be understood.
    """

    def extract_effective_tags(self, source_text: str) -> dict[str, EffectiveTags]: ...


def _line_of(node: Any) -> int | None:
    lc = getattr(node, "lc", None)
    if lc is None or lc.line is None:
        return None
    return lc.line + 1


def _error(node: Any, location: str, message: str) -> ExtractionError:
    return ExtractionError(f"{location}: {message}", line=_line_of(node))


def _read_tags(node: Mapping[str, Any], key: str, location: str) -> frozenset[str]:
    value = node.get(key)
    if value is None:
        return frozenset()
    if isinstance(value, str):
        values = [value]
    elif isinstance(value, list):
        values = value
    else:
        raise _error(node, location, f"'{key}' must be a string or a list of strings")

    tags = set()
    for tag in values:
        if not isinstance(tag, str) or not tag.strip():
            raise _error(node, location, f"'{key}' contains an invalid tag {tag!r}")
        tags.add(tag.strip())
    return frozenset(tags)


def _read_name(node: Mapping[str, Any], key: str, location: str) -> str:
    value = node.get(key)
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        raise _error(node, location, f"'{key}' must be a string")
    name = str(value).strip()
    if not name:
        raise _error(node, location, f"'{key}' must not be empty")
    return name


class YAMLSpecExtractor:
    """Name and tag extraction for YAML spec files."""

    def __init__(self, parser: YAMLParser | None = None) -> None:
        self.parser = parser or YAMLParser()

    def extract_test_names(self, source_text: str) -> SpecNames:
        """Collect suite and test names in source order.

        Raises:
            ParseError: If the source is not valid YAML
            ExtractionError: If the document is not a valid spec
        """
        root = self._load(source_text)
        suite_names: list[str] = []
        test_names: list[str] = []

        for kind, name, _node in self._walk_names(root):
            if kind == "suite":
                suite_names.append(name)
            else:
                test_names.append(name)

        return SpecNames(suite_names=tuple(suite_names), test_names=tuple(test_names))

    def extract_effective_tags(self, source_text: str) -> dict[str, EffectiveTags]:
        """Map each full test title to its effective and required tags.

        Raises:
            ParseError: If the source is not valid YAML
            ExtractionError: If the document is not a valid spec, or two tests
                share a full title
        """
        return {
            candidate.title: EffectiveTags(
                effective_tags=candidate.effective_tags,
                required_tags=candidate.required_tags,
            )
            for candidate in self.extract_candidates(source_text)
        }

    def extract_candidates(self, source_text: str) -> list[Candidate]:
        """Build one Candidate per test, in source order.

        Raises:
            ParseError: If the source is not valid YAML
            ExtractionError: If the document is not a valid spec, or two tests
                share a full title
        """
        root = self._load(source_text)
        candidates: list[Candidate] = []
        seen: set[str] = set()

        titles = [_read_name(root, "suite", "spec")] if "suite" in root else []
        walk = self._walk_tests(
            root,
            titles,
            _read_tags(root, "tags", "spec"),
            _read_tags(root, "required_tags", "spec"),
            "spec",
        )

        for title, item, location, tags, effective, required in walk:
            if title in seen:
                raise _error(item, location, f"duplicate test title '{title}'")
            seen.add(title)
            candidates.append(
                Candidate(
                    title=title,
                    tags=tags,
                    effective_tags=effective,
                    required_tags=required,
                )
            )

        logger.debug("Extracted %d tests", len(candidates))
        return candidates

    def _load(self, source_text: str) -> Mapping[str, Any]:
        root = self.parser.parse_string(source_text)
        if not isinstance(root, Mapping):
            raise ExtractionError("spec document must be a mapping")
        return root

    def _children(
        self, suite: Mapping[str, Any], location: str
    ) -> Iterator[tuple[Mapping[str, Any], str]]:
        tests = suite.get("tests")
        if tests is None:
            return
        if not isinstance(tests, list):
            raise _error(suite, location, "'tests' must be a list")

        for index, item in enumerate(tests):
            item_location = f"{location}.tests[{index}]"
            if not isinstance(item, Mapping):
                raise _error(tests, item_location, "entry must be a mapping")
            if "suite" not in item and "name" not in item:
                raise _error(item, item_location, "entry needs a 'name' or a 'suite'")
            yield item, item_location

    def _walk_tests(
        self,
        suite: Mapping[str, Any],
        titles: list[str],
        inherited: frozenset[str],
        inherited_required: frozenset[str],
        location: str,
    ) -> Iterator[_WalkedTest]:
        for item, item_location in self._children(suite, location):
            tags = _read_tags(item, "tags", item_location)
            required = inherited_required | _read_tags(
                item, "required_tags", item_location
            )

            if "suite" in item:
                name = _read_name(item, "suite", item_location)
                yield from self._walk_tests(
                    item, titles + [name], inherited | tags, required, item_location
                )
            else:
                name = _read_name(item, "name", item_location)
                title = " ".join(titles + [name])
                yield title, item, item_location, tags, inherited | tags, required

    def _walk_names(
        self, suite: Mapping[str, Any], location: str = "spec"
    ) -> Iterator[tuple[str, str, Mapping[str, Any]]]:
        if "suite" in suite:
            yield "suite", _read_name(suite, "suite", location), suite

        for item, item_location in self._children(suite, location):
            if "suite" in item:
                yield from self._walk_names(item, item_location)
            else:
                yield "test", _read_name(item, "name", item_location), item


_default_extractor = YAMLSpecExtractor()


def extract_test_names(source_text: str) -> SpecNames:
    """Suite and test names of a YAML spec."""
    return _default_extractor.extract_test_names(source_text)


def extract_effective_tags(source_text: str) -> dict[str, EffectiveTags]:
    """Effective and required tags per full test title of a YAML spec."""
    return _default_extractor.extract_effective_tags(source_text)
