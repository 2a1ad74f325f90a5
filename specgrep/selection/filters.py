"""Per-spec-file filtering.

A spec file survives when at least one of its tests could run under the grep
filter. Files whose names or tags cannot be extracted are always kept so that
a filtering problem never silently drops tests from a run.
"""

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

from specgrep.core.exceptions import LoaderError
from specgrep.grep.matcher import should_test_run
from specgrep.grep.parser import parse_grep
from specgrep.loader.extractors import (
    NameExtractor,
    TagExtractor,
    YAMLSpecExtractor,
)

logger = logging.getLogger(__name__)


class SpecFilter:
    """Decide which spec files contain tests matching a grep or tag filter.

    When both expressions are given, the title expression decides at file
    level and the tag expression is left to per-test filtering at run time.

    Example:
        >>> spec_filter = SpecFilter(grep_tags="smoke+-flaky")
        >>> spec_filter.filter_specs(spec_files)
    """

    def __init__(
        self,
        grep: str | None = None,
        grep_tags: str | None = None,
        name_extractor: NameExtractor | None = None,
        tag_extractor: TagExtractor | None = None,
        max_parallel: int = 8,
    ) -> None:
        """Initialize spec filter.

        Args:
            grep: Title expression, e.g. "login; -slow"
            grep_tags: Tag expression, e.g. "smoke,critical+-flaky"
            name_extractor: Source of suite/test names, defaults to YAML specs
            tag_extractor: Source of effective tags, defaults to YAML specs
            max_parallel: Maximum number of spec files processed at once
        """
        default_extractor = YAMLSpecExtractor()
        self.grep = grep
        self.grep_tags = grep_tags
        self.name_extractor = name_extractor or default_extractor
        self.tag_extractor = tag_extractor or default_extractor
        self.max_parallel = max(1, max_parallel)

        if grep:
            self.parsed = parse_grep(grep, None)
        else:
            self.parsed = parse_grep(None, grep_tags)

    @property
    def is_active(self) -> bool:
        """True when there is an expression to filter by."""
        return not self.parsed.is_empty

    def spec_matches(self, spec_file: Path) -> bool:
        """Check whether a single spec file should be part of the run.

        Never raises for unreadable or malformed specs; those are kept.
        """
        if not self.is_active:
            return True

        try:
            text = spec_file.read_text(encoding="utf-8")
            if self.grep:
                return self._names_match(spec_file, text)
            return self._tags_match(spec_file, text)
        except (LoaderError, OSError, UnicodeDecodeError) as e:
            logger.debug("Extraction failed for %s", spec_file, exc_info=True)
            logger.error(
                "Could not determine test names in file %s: %s. "
                "Will run it to let the grep filter the tests",
                spec_file,
                e,
            )
            return True

    def _names_match(self, spec_file: Path, text: str) -> bool:
        names = self.name_extractor.extract_test_names(text)
        logger.debug(
            "Spec file %s suite and test names: %s", spec_file, names.all_names
        )
        return any(should_test_run(self.parsed, name) for name in names.all_names)

    def _tags_match(self, spec_file: Path, text: str) -> bool:
        test_tags = self.tag_extractor.extract_effective_tags(text)
        logger.debug("Spec file %s effective test tags: %s", spec_file, test_tags)
        return any(
            should_test_run(
                self.parsed,
                None,
                tags.effective_tags,
                grep_untagged=False,
                required_tags=tags.required_tags,
            )
            for tags in test_tags.values()
        )

    async def afilter_specs(self, spec_files: Sequence[Path]) -> list[Path]:
        """Filter spec files concurrently, keeping their original order."""
        semaphore = asyncio.Semaphore(self.max_parallel)

        async def check(spec_file: Path) -> bool:
            async with semaphore:
                return await asyncio.to_thread(self.spec_matches, spec_file)

        results = await asyncio.gather(*(check(path) for path in spec_files))
        return [path for path, keep in zip(spec_files, results) if keep]

    def filter_specs(self, spec_files: Sequence[Path]) -> list[Path]:
        """Synchronous wrapper around afilter_specs.

        Not usable from a running event loop, where ``asyncio.run`` raises
        RuntimeError.
        """
        if not spec_files:
            return []
        return asyncio.run(self.afilter_specs(spec_files))
