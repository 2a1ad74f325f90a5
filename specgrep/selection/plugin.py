"""Spec selection entry point for test runners.

``grep_plugin`` is called once before a run with the runner settings. It
reports the active grep options and, when ``grepFilterSpecs`` is enabled,
narrows ``spec_pattern`` down to the spec files that contain matching tests.
Per-test filtering is left to the runner.
"""

import asyncio
import logging
from pathlib import Path

from pydantic import BaseModel, Field

from specgrep.core.exceptions import ConfigurationError
from specgrep.core.logging import correlation_context
from specgrep.core.settings import GrepOptions, SpecGrepSettings
from specgrep.loader.discovery import find_spec_files
from specgrep.loader.extractors import NameExtractor, TagExtractor
from specgrep.selection.filters import SpecFilter

logger = logging.getLogger(__name__)


class SpecSelection(BaseModel):
    """Outcome of spec pre-filtering."""

    spec_files: list[Path] = Field(default_factory=list)
    discovered: int = Field(default=0, description="Spec files found on disk")
    filtered: bool = Field(
        default=False, description="Whether a grep expression was applied"
    )
    fallback: bool = Field(
        default=False,
        description="Filtering eliminated every spec, so all were kept",
    )


def log_grep_options(options: GrepOptions) -> None:
    """Report the grep options in effect for this run."""
    if options.grep:
        logger.info('specgrep: tests with "%s" in their names', options.grep.strip())

    if options.grep_tags:
        logger.info('specgrep: filtering using tag(s) "%s"', options.grep_tags)

    if options.grep_burn:
        logger.info("specgrep: running filtered tests %d times", options.grep_burn)

    if options.grep_untagged:
        logger.info("specgrep: running untagged tests")

    if options.grep_omit_filtered:
        logger.info("specgrep: will omit filtered tests")


async def aselect_specs(
    settings: SpecGrepSettings,
    options: GrepOptions | None = None,
    name_extractor: NameExtractor | None = None,
    tag_extractor: TagExtractor | None = None,
) -> SpecSelection:
    """Discover spec files and keep those with tests matching the grep options.

    When filtering eliminates every spec, all discovered specs are returned
    and ``fallback`` is set; run-time filtering still applies per test.

    Args:
        settings: Runner settings with spec patterns
        options: Grep options, defaults to those in ``settings.env``
        name_extractor: Optional custom name extraction service
        tag_extractor: Optional custom tag extraction service

    Returns:
        SpecSelection with the spec files to run
    """
    options = options or settings.grep_options()
    folder = options.integration_folder

    logger.debug("specPattern %s", settings.spec_pattern)
    logger.debug("excludeSpecPattern %s", settings.exclude_spec_pattern)
    logger.debug("integrationFolder %s", folder)

    spec_files = find_spec_files(
        settings.spec_pattern, folder, settings.exclude_spec_pattern
    )
    logger.debug("found %d spec files", len(spec_files))

    spec_filter = SpecFilter(
        grep=options.grep,
        grep_tags=options.grep_tags,
        name_extractor=name_extractor,
        tag_extractor=tag_extractor,
        max_parallel=settings.parallel_workers,
    )

    if not spec_filter.is_active:
        logger.debug("no grep expression, keeping all %d specs", len(spec_files))
        return SpecSelection(spec_files=spec_files, discovered=len(spec_files))

    if options.grep:
        logger.info('specgrep: filtering specs using "%s" in the title', options.grep)
    logger.debug("parsed grep %s", spec_filter.parsed)

    grepped_specs = await spec_filter.afilter_specs(spec_files)

    if options.grep:
        logger.debug('found grep "%s" in %d specs', options.grep, len(grepped_specs))
    else:
        logger.debug(
            'found grep tags "%s" in %d specs', options.grep_tags, len(grepped_specs)
        )

    if grepped_specs:
        return SpecSelection(
            spec_files=grepped_specs, discovered=len(spec_files), filtered=True
        )

    logger.warning("grep and/or grepTags has eliminated all specs")
    if options.grep:
        logger.warning("grep: %s", options.grep)
    if options.grep_tags:
        logger.warning("grepTags: %s", options.grep_tags)
    logger.warning("Will leave all specs to run to filter at run-time")

    return SpecSelection(
        spec_files=spec_files,
        discovered=len(spec_files),
        filtered=True,
        fallback=True,
    )


def select_specs(
    settings: SpecGrepSettings,
    options: GrepOptions | None = None,
    name_extractor: NameExtractor | None = None,
    tag_extractor: TagExtractor | None = None,
) -> SpecSelection:
    """Synchronous wrapper around aselect_specs.

    Runs its own event loop with ``asyncio.run``, so it raises RuntimeError
    when called from a running loop. Async callers await aselect_specs.
    """
    return asyncio.run(
        aselect_specs(settings, options, name_extractor, tag_extractor)
    )


def grep_plugin(
    settings: SpecGrepSettings,
    name_extractor: NameExtractor | None = None,
    tag_extractor: TagExtractor | None = None,
) -> SpecGrepSettings:
    """Apply the grep options in ``settings.env`` before a run.

    Args:
        settings: Runner settings
        name_extractor: Optional custom name extraction service
        tag_extractor: Optional custom tag extraction service

    Returns:
        Settings whose ``spec_pattern`` lists the selected spec files when
        spec pre-filtering narrowed the run, otherwise ``settings`` unchanged

    Raises:
        ConfigurationError: If no spec pattern is configured or a grep option
            is invalid
        RuntimeError: If spec pre-filtering is enabled and the plugin is
            called from a running event loop. Spec files are filtered with
            ``asyncio.run``; async runners await aselect_specs instead
    """
    if not settings.env:
        return settings

    if not settings.spec_pattern:
        raise ConfigurationError(
            "specgrep requires spec_pattern to locate spec files"
        )

    with correlation_context():
        options = settings.grep_options()
        logger.debug("runner env %s", settings.env)
        log_grep_options(options)

        if not options.grep_filter_specs:
            return settings

        selection = select_specs(settings, options, name_extractor, tag_extractor)

    if not selection.filtered or selection.fallback:
        return settings

    return settings.model_copy(
        update={"spec_pattern": [str(path) for path in selection.spec_files]}
    )
