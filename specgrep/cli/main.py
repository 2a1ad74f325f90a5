"""Main CLI entry point for specgrep."""

import json
import sys
from pathlib import Path
from typing import Any

import click

from specgrep import __version__
from specgrep.core.exceptions import SpecGrepError
from specgrep.core.logging import configure_logging_from_settings
from specgrep.core.settings import SpecGrepSettings, get_settings
from specgrep.grep import filter_candidates, parse_grep
from specgrep.loader import YAMLSpecExtractor
from specgrep.selection import log_grep_options, select_specs

EXIT_SUCCESS = 0
EXIT_FAILURE = 1  # Nothing matched
EXIT_ERROR = 2  # Invalid config, unreadable spec, etc.

GREP_HELP = (
    "Title filter. Separate alternatives with ';', prefix with '-' to exclude. "
    'Example: --grep="login; -slow"'
)
TAGS_HELP = (
    "Tag filter. Join AND groups with '+', separate alternatives with ',', "
    "prefix with '-' to exclude. Use 'untagged' to select tests without tags. "
    'Example: --tags="smoke,critical+-flaky"'
)


class ConfigContext:
    """Context object to hold configuration state."""

    def __init__(self) -> None:
        self.config_file: Path | None = None
        self.verbose: bool = False

    def settings(self, **overrides: Any) -> SpecGrepSettings:
        """Build settings from the config file, environment and CLI overrides."""
        overrides = {k: v for k, v in overrides.items() if v not in (None, [], {})}
        return get_settings(config_file=self.config_file, **overrides)

    def setup_logging(self, settings: SpecGrepSettings) -> None:
        configure_logging_from_settings(
            settings, level="DEBUG" if self.verbose else None
        )


pass_config = click.make_pass_decorator(ConfigContext, ensure=True)


@click.group(invoke_without_command=True)
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, path_type=Path),
    help="Path to specgrep.config.yaml configuration file",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable debug logging",
)
@click.version_option(version=__version__, prog_name="specgrep")
@click.pass_context
def cli(ctx: click.Context, config_file: Path | None, verbose: bool) -> None:
    """specgrep - select tests and spec files by title and tag expressions.

    Examples:

      # Show how an expression is parsed
      specgrep parse --tags="smoke,critical+-flaky"

      # List spec files containing tests about login
      specgrep select --spec-pattern="specs/**/*.yaml" --grep=login

      # List the tests of one spec that would run
      specgrep list specs/auth.yaml --tags=smoke --untagged
    """
    ctx.ensure_object(ConfigContext)
    config_ctx = ctx.obj
    config_ctx.config_file = config_file
    config_ctx.verbose = verbose

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command(name="version")
def version_cmd() -> None:
    """Show specgrep version information."""
    click.echo(f"specgrep v{__version__}")
    click.echo(f"Python: {sys.version.split()[0]}")
    click.echo(f"Platform: {sys.platform}")


@cli.command(name="parse")
@click.option("--grep", type=str, help=GREP_HELP)
@click.option("--tags", type=str, help=TAGS_HELP)
def parse_cmd(grep: str | None, tags: str | None) -> None:
    """Print the parsed form of a title and/or tag expression as JSON.

    Examples:

      specgrep parse --grep="login; -slow"

      specgrep parse --tags="a,b+c+-flaky"
    """
    parsed = parse_grep(grep, tags)
    output = {"kind": parsed.kind.value, **parsed.model_dump(mode="json")}
    click.echo(json.dumps(output, indent=2))


@cli.command(name="select")
@click.option("--grep", type=str, help=GREP_HELP)
@click.option("--tags", type=str, help=TAGS_HELP)
@click.option(
    "--spec-pattern",
    "-s",
    "spec_patterns",
    multiple=True,
    help="Glob pattern locating spec files (repeatable)",
)
@click.option(
    "--exclude",
    "-e",
    "exclude_patterns",
    multiple=True,
    help="Glob pattern of spec files to skip (repeatable)",
)
@click.option(
    "--integration-folder",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Base directory spec patterns are resolved against",
)
@click.option(
    "--parallel",
    type=int,
    help="Number of spec files processed concurrently",
)
@pass_config
def select_cmd(
    config_ctx: ConfigContext,
    grep: str | None,
    tags: str | None,
    spec_patterns: tuple[str, ...],
    exclude_patterns: tuple[str, ...],
    integration_folder: Path | None,
    parallel: int | None,
) -> None:
    """Print the spec files that contain tests matching the filter.

    When the filter matches no spec at all, every spec is printed so that a
    run is never left empty.

    Examples:

      specgrep select -s "specs/**/*.yaml" --grep="checkout"

      specgrep select -s "specs/**/*.yaml" -e "**/legacy/**" --tags=smoke

    Exit Codes:

      0 - Spec files printed
      2 - Error occurred (invalid config, no spec pattern, etc.)
    """
    try:
        env: dict[str, Any] = {}
        if grep:
            env["grep"] = grep
        if tags:
            env["grepTags"] = tags
        if integration_folder:
            env["grepIntegrationFolder"] = str(integration_folder)

        settings = config_ctx.settings(
            spec_pattern=list(spec_patterns),
            exclude_spec_pattern=list(exclude_patterns),
            parallel_workers=parallel,
            env=env,
        )
        config_ctx.setup_logging(settings)

        if not settings.spec_pattern:
            raise click.UsageError("No spec pattern given (use --spec-pattern)")

        options = settings.grep_options()
        log_grep_options(options)
        selection = select_specs(settings, options)

    except SpecGrepError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_ERROR)

    for spec_file in selection.spec_files:
        click.echo(str(spec_file))

    if config_ctx.verbose:
        summary = f"{len(selection.spec_files)} of {selection.discovered} spec files"
        if selection.fallback:
            summary += " (filter matched nothing, keeping all)"
        click.echo(summary, err=True)


@cli.command(name="list")
@click.argument(
    "spec_file", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option("--grep", type=str, help=GREP_HELP)
@click.option("--tags", type=str, help=TAGS_HELP)
@click.option(
    "--untagged",
    is_flag=True,
    help="Also run tests without tags when a tag filter is active",
)
@click.option(
    "--burn",
    type=click.IntRange(min=1),
    help="Number of times each matching test would be repeated",
)
@pass_config
def list_cmd(
    config_ctx: ConfigContext,
    spec_file: Path,
    grep: str | None,
    tags: str | None,
    untagged: bool,
    burn: int | None,
) -> None:
    """List the tests of SPEC_FILE that would run under the filter.

    SPEC_FILE is the path to a YAML spec definition.

    Examples:

      specgrep list specs/auth.yaml --grep=login

      specgrep list specs/auth.yaml --tags="smoke+-flaky" --untagged

    Exit Codes:

      0 - At least one test matches
      1 - No tests match the specified criteria
      2 - Error occurred (unreadable or malformed spec)
    """
    try:
        settings = config_ctx.settings()
        config_ctx.setup_logging(settings)

        text = spec_file.read_text(encoding="utf-8")
        candidates = YAMLSpecExtractor().extract_candidates(text)

    except (SpecGrepError, OSError, UnicodeDecodeError) as e:
        click.echo(f"Error: {spec_file}: {e}", err=True)
        sys.exit(EXIT_ERROR)

    parsed = parse_grep(grep, tags)
    selected = filter_candidates(parsed, candidates, grep_untagged=untagged)

    if not selected:
        click.echo("No tests match the specified criteria.", err=True)
        sys.exit(EXIT_FAILURE)

    click.echo(f"Spec: {spec_file}")
    click.echo(f"Tests ({len(selected)}/{len(candidates)}):")
    for candidate in selected:
        tags_str = ", ".join(sorted(candidate.effective_tags)) or "no tags"
        repeat = f" x{burn}" if burn else ""
        click.echo(f"  - {candidate.title} [{tags_str}]{repeat}")


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
