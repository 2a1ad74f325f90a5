"""YAML parser with ruamel.yaml for line number tracking."""

from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.error import MarkedYAMLError

from specgrep.core.exceptions import ParseError


class YAMLParser:
    """Round-trip YAML parser; parsed nodes keep their source line numbers.

    Safe to share between threads: every load gets its own ruamel.yaml
    instance, since YAML objects keep reader state while loading.
    """

    def _new_yaml(self) -> YAML:
        yaml = YAML()
        yaml.preserve_quotes = True
        return yaml

    def parse_file(self, file_path: str | Path) -> Any:
        """Parse YAML file with error handling.

        Args:
            file_path: Path to YAML file

        Returns:
            Parsed YAML document

        Raises:
            ParseError: If the file is missing, unreadable or not valid YAML
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise ParseError(f"File not found: {file_path}")

        try:
            content = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ParseError(f"Failed to read YAML file {file_path}: {e}") from e

        return self.parse_string(content, source=str(file_path))

    def parse_string(self, content: str, source: str | None = None) -> Any:
        """Parse YAML from string.

        Args:
            content: YAML content as string
            source: Optional file name used in error messages

        Returns:
            Parsed YAML document

        Raises:
            ParseError: If the content is empty or not valid YAML
        """
        where = f" in {source}" if source else ""

        try:
            data = self._new_yaml().load(content)
        except MarkedYAMLError as e:
            line = e.problem_mark.line + 1 if e.problem_mark else None
            column = e.problem_mark.column + 1 if e.problem_mark else None
            raise ParseError(
                f"YAML parsing error{where} at line {line}, column {column}: "
                f"{e.problem}"
            ) from e
        except Exception as e:
            raise ParseError(f"Failed to parse YAML content{where}: {e}") from e

        if data is None:
            raise ParseError(f"Empty YAML content{where}")

        return data
