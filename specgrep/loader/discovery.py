"""Spec file discovery."""

import glob
import logging
from collections.abc import Iterable
from pathlib import Path

from pathspec import PathSpec

logger = logging.getLogger(__name__)


def _patterns(value: str | Iterable[str] | None) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


def _exclude_spec(exclude: list[str], folder: Path) -> PathSpec | None:
    """Compile exclude globs relative to the integration folder.

    Every pattern is anchored at the folder, so ``*`` never crosses a
    directory separator: "*.yaml" excludes top-level specs only, while
    "**/*.yaml" excludes them at any depth.
    """
    lines = []
    for pattern in exclude:
        if Path(pattern).is_absolute():
            absolute = Path(pattern).resolve()
            if not absolute.is_relative_to(folder):
                logger.debug("Ignoring exclude pattern outside %s: %s", folder, pattern)
                continue
            pattern = absolute.relative_to(folder).as_posix()
        lines.append(pattern if pattern.startswith("/") else f"/{pattern}")

    if not lines:
        return None
    return PathSpec.from_lines("gitwildmatch", lines)


def find_spec_files(
    spec_pattern: str | Iterable[str],
    integration_folder: str | Path | None = None,
    exclude_spec_pattern: str | Iterable[str] | None = None,
) -> list[Path]:
    """Expand spec glob patterns into absolute spec file paths.

    Relative patterns are resolved against the integration folder; ``**``
    matches any number of directories. Exclude patterns use the same glob
    syntax and are matched against the path relative to the integration
    folder; absolute exclude patterns inside the folder are accepted too.
    Files outside the integration folder are never excluded.

    Args:
        spec_pattern: One glob pattern or several, e.g. "specs/**/*.yaml"
        integration_folder: Base directory, defaults to the current directory
        exclude_spec_pattern: Pattern(s) removed from the result

    Returns:
        Sorted, de-duplicated absolute paths of matching files
    """
    folder = Path(integration_folder or Path.cwd()).resolve()
    exclude = _exclude_spec(_patterns(exclude_spec_pattern), folder)
    found: set[Path] = set()

    for pattern in _patterns(spec_pattern):
        for match in glob.glob(pattern, root_dir=folder, recursive=True):
            path = (folder / match).resolve()
            if not path.is_file():
                continue
            if (
                exclude is not None
                and path.is_relative_to(folder)
                and exclude.match_file(path.relative_to(folder).as_posix())
            ):
                logger.debug("Excluded spec file %s", path)
                continue
            found.add(path)

    return sorted(found)
