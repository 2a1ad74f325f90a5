"""specgrep configuration management.

Configuration is loaded from multiple sources with the following priority
(highest to lowest):
1. Explicit overrides (CLI arguments)
2. Environment variables (with SPECGREP_ prefix)
3. Configuration file (specgrep.config.yaml, searched upwards from cwd)
4. Default values

The grep options themselves live in the ``env`` mapping, the same way a test
runner hands its plugins a free-form environment object. They are read with
:class:`GrepOptions`, which accepts camelCase, kebab-case and snake_case keys.

Example usage:
    from specgrep.core.settings import get_settings

    settings = get_settings(env={"grepTags": "smoke+-flaky"})
    options = settings.grep_options()
    print(options.grep_tags)

Environment variable support:
    SPECGREP_PARALLEL_WORKERS=8
    SPECGREP_SPEC_PATTERN='["specs/**/*.yaml"]'
    SPECGREP_ENV='{"grep": "login", "grepFilterSpecs": true}'
    SPECGREP_LOGGING__LEVEL=DEBUG
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from specgrep.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAMES = ["specgrep.config.yaml", "specgrep.config.yml"]

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _find_config_file(start_dir: Path | None = None) -> Path | None:
    """Find configuration file by searching current directory and parents.

    Args:
        start_dir: Directory to start search from.
            Defaults to current working directory.

    Returns:
        Path to config file if found, None otherwise.
    """
    search_dir = start_dir or Path.cwd()

    # Limit search depth to prevent infinite loops
    for _ in range(10):
        for filename in CONFIG_FILE_NAMES:
            config_path = search_dir / filename
            if config_path.exists():
                return config_path

        parent = search_dir.parent
        if parent == search_dir:
            break
        search_dir = parent

    return None


def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Load configuration from a YAML file.

    Unreadable or malformed files are logged and treated as empty.
    """
    try:
        with open(config_path) as f:
            config = yaml.safe_load(f) or {}
            return config if isinstance(config, dict) else {}
    except yaml.YAMLError as e:
        logger.warning("Failed to parse config file %s: %s", config_path, e)
        return {}
    except OSError as e:
        logger.warning("Failed to read config file %s: %s", config_path, e)
        return {}


def _configuration_error(
    prefix: str, error: PydanticValidationError
) -> ConfigurationError:
    errors = []
    for item in error.errors():
        loc = ".".join(str(x) for x in item["loc"])
        errors.append(f"{loc}: {item['msg']}")
    return ConfigurationError(prefix + ":\n  " + "\n  ".join(errors))


def _as_pattern_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    return [str(item) for item in value if str(item).strip()]


class GrepOptions(BaseModel):
    """Grep options recognized by the spec filtering workflow.

    Values are coerced the way a loosely typed runner environment expects:
    a falsy ``grep``/``grepTags``/``grepBurn`` means "not set", and a
    non-string grep (for example a number from a YAML file) is stringified.
    """

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    grep: str | None = Field(
        default=None,
        description="Title filter: ';'-separated substrings, '-' prefix negates",
    )
    grep_tags: str | None = Field(
        default=None,
        validation_alias=AliasChoices("grep_tags", "grepTags", "grep-tags"),
        description="Tag filter: '+' joins AND groups, ',' separates alternatives",
    )
    grep_burn: int | None = Field(
        default=None,
        ge=1,
        validation_alias=AliasChoices("grep_burn", "grepBurn", "grep-burn", "burn"),
        description="Repeat count for matched tests (informational)",
    )
    grep_untagged: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "grep_untagged", "grepUntagged", "grep-untagged"
        ),
        description="Run untagged tests when a tag filter is active",
    )
    grep_omit_filtered: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "grep_omit_filtered", "grepOmitFiltered", "grep-omit-filtered"
        ),
        description="Omit filtered tests from runner output (informational)",
    )
    grep_filter_specs: bool = Field(
        default=False,
        validation_alias=AliasChoices("grep_filter_specs", "grepFilterSpecs"),
        description="Pre-filter whole spec files before the run",
    )
    grep_integration_folder: Path | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "grep_integration_folder", "grepIntegrationFolder"
        ),
        description="Base directory for spec discovery (defaults to cwd)",
    )

    @field_validator("grep", "grep_tags", mode="before")
    @classmethod
    def stringify_expression(cls, v: Any) -> str | None:
        """Treat falsy values as unset and stringify everything else."""
        if not v:
            return None
        return str(v)

    @field_validator("grep_burn", mode="before")
    @classmethod
    def ignore_zero_burn(cls, v: Any) -> Any:
        """A zero or empty burn count means the option is not set."""
        return v or None

    @property
    def integration_folder(self) -> Path:
        """Folder spec patterns are resolved against."""
        return self.grep_integration_folder or Path.cwd()


class LoggingSettings(BaseModel):
    """Logging configuration settings."""

    level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_output: bool | None = Field(
        default=None,
        description="Output logs as JSON. None auto-detects from the terminal",
    )
    file: str | None = Field(
        default=None,
        description="Log file path (optional)",
    )
    module_levels: dict[str, str] = Field(
        default_factory=dict,
        description="Per-module log levels, e.g. {'specgrep.loader': 'DEBUG'}",
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid Python logging level."""
        upper_v = v.upper()
        if upper_v not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}"
            )
        return upper_v


class SpecGrepSettings(BaseSettings):
    """Main specgrep configuration settings.

    Example:
        settings = SpecGrepSettings(
            spec_pattern="specs/**/*.yaml",
            env={"grep": "login", "grepFilterSpecs": True},
        )
        print(settings.spec_pattern)  # ['specs/**/*.yaml']
    """

    model_config = SettingsConfigDict(
        env_prefix="SPECGREP_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    spec_pattern: list[str] | str = Field(
        default_factory=list,
        description="Glob pattern(s) locating spec files",
    )
    exclude_spec_pattern: list[str] | str = Field(
        default_factory=list,
        description="Glob pattern(s) removed from the discovered spec files",
    )
    parallel_workers: int = Field(
        default=8,
        ge=1,
        le=64,
        description="Spec files read and filtered concurrently (1-64)",
    )
    env: dict[str, Any] = Field(
        default_factory=dict,
        description="Runner environment carrying the grep options",
    )

    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("spec_pattern", "exclude_spec_pattern", mode="after")
    @classmethod
    def normalize_patterns(cls, v: Any) -> list[str]:
        """Accept a single pattern or a list of patterns."""
        return _as_pattern_list(v)

    @model_validator(mode="before")
    @classmethod
    def load_from_config_file(cls, data: dict[str, Any]) -> dict[str, Any]:
        """Merge values from specgrep.config.yaml beneath the provided data."""
        if data.get("_skip_file_loading"):
            data.pop("_skip_file_loading", None)
            return data

        config_path = _find_config_file()
        if not config_path:
            return data

        file_config = _load_yaml_config(config_path)
        if not file_config:
            return data

        logger.debug("Loaded configuration from %s", config_path)
        merged = {**file_config, **data}

        # Nested sections merge key by key
        for section in ["env", "logging"]:
            file_section = file_config.get(section)
            data_section = data.get(section)
            if isinstance(file_section, dict):
                merged[section] = {
                    **file_section,
                    **(data_section if isinstance(data_section, dict) else {}),
                }

        return merged

    def grep_options(self) -> GrepOptions:
        """Read the grep options out of the runner environment.

        Raises:
            ConfigurationError: If an option has an invalid value.
        """
        try:
            return GrepOptions.model_validate(self.env)
        except PydanticValidationError as e:
            raise _configuration_error("Invalid grep options", e) from e


def get_settings(
    config_file: Path | None = None,
    **overrides: Any,
) -> SpecGrepSettings:
    """Get specgrep settings instance.

    Args:
        config_file: Optional explicit path to configuration file. When given,
            the upward search for specgrep.config.yaml is skipped.
        **overrides: Explicit configuration overrides.

    Returns:
        Configured SpecGrepSettings instance.

    Raises:
        ConfigurationError: If the config file is missing or a value is invalid.

    Example:
        settings = get_settings(spec_pattern="specs/*.yaml", parallel_workers=4)
    """
    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        file_config = _load_yaml_config(config_file)
        merged = {**file_config, **overrides}
        if isinstance(file_config.get("env"), dict) and isinstance(
            overrides.get("env"), dict
        ):
            merged["env"] = {**file_config["env"], **overrides["env"]}
        overrides = {"_skip_file_loading": True, **merged}

    try:
        return SpecGrepSettings(**overrides)
    except PydanticValidationError as e:
        raise _configuration_error("Invalid configuration", e) from e

