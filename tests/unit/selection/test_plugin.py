"""Unit tests for spec selection and the runner plugin entry point."""

import logging
from pathlib import Path

import pytest

from specgrep.core.exceptions import ConfigurationError
from specgrep.core.settings import GrepOptions, SpecGrepSettings
from specgrep.loader.extractors import SpecNames
from specgrep.selection.plugin import (
    SpecSelection,
    aselect_specs,
    grep_plugin,
    log_grep_options,
    select_specs,
)

SPEC_TEMPLATE = """
suite: {suite}
tests:
  - name: {name}
    tags: [{tag}]
"""


def make_settings(**kwargs) -> SpecGrepSettings:
    return SpecGrepSettings(_skip_file_loading=True, **kwargs)


@pytest.fixture
def five_specs(write_spec, tmp_path) -> Path:
    """Five spec files, none of them about payments."""
    for index in range(5):
        write_spec(
            f"specs/spec{index}.yaml",
            SPEC_TEMPLATE.format(suite=f"Suite {index}", name="works", tag="smoke"),
        )
    return tmp_path


def names(paths: list[Path]) -> list[str]:
    return [path.name for path in paths]


class TestSelectSpecs:
    """Test discovery plus filtering."""

    def test_without_expression_keeps_everything(self, five_specs, caplog):
        settings = make_settings(
            spec_pattern="specs/*.yaml",
            env={"grepIntegrationFolder": str(five_specs)},
        )

        selection = select_specs(settings)

        assert selection.discovered == 5
        assert len(selection.spec_files) == 5
        assert not selection.filtered
        assert not selection.fallback
        assert "eliminated all specs" not in caplog.text

    def test_filters_by_title(self, write_spec, tmp_path):
        login = SPEC_TEMPLATE.format(suite="A", name="login", tag="x")
        search = SPEC_TEMPLATE.format(suite="B", name="search", tag="x")
        write_spec("specs/a.yaml", login)
        write_spec("specs/b.yaml", search)
        settings = make_settings(spec_pattern=["specs/*.yaml"])
        options = GrepOptions(grep="login", grep_integration_folder=tmp_path)

        selection = select_specs(settings, options)

        assert names(selection.spec_files) == ["a.yaml"]
        assert selection.discovered == 2
        assert selection.filtered
        assert not selection.fallback

    def test_exclude_pattern(self, five_specs):
        settings = make_settings(
            spec_pattern="specs/*.yaml",
            exclude_spec_pattern="specs/spec0.yaml",
            env={"grepTags": "smoke", "grepIntegrationFolder": str(five_specs)},
        )

        selection = select_specs(settings)

        assert selection.discovered == 4
        assert "spec0.yaml" not in names(selection.spec_files)

    def test_total_elimination_falls_back(self, five_specs, caplog):
        settings = make_settings(
            spec_pattern="specs/*.yaml",
            env={"grep": "payments", "grepIntegrationFolder": str(five_specs)},
        )

        with caplog.at_level(logging.WARNING):
            selection = select_specs(settings)

        assert len(selection.spec_files) == 5
        assert selection.filtered
        assert selection.fallback
        assert caplog.messages == [
            "grep and/or grepTags has eliminated all specs",
            "grep: payments",
            "Will leave all specs to run to filter at run-time",
        ]

    def test_total_elimination_by_tags(self, five_specs, caplog):
        settings = make_settings(
            spec_pattern="specs/*.yaml",
            env={"grepTags": "payments", "grepIntegrationFolder": str(five_specs)},
        )

        with caplog.at_level(logging.WARNING):
            selection = select_specs(settings)

        assert selection.fallback
        assert "grepTags: payments" in caplog.messages

    def test_custom_extractor(self, five_specs):
        class OnlyFirst:
            def extract_test_names(self, source_text):
                if "Suite 0" in source_text:
                    return SpecNames(test_names=("special",))
                return SpecNames(test_names=("other",))

        settings = make_settings(
            spec_pattern="specs/*.yaml",
            env={"grep": "special", "grepIntegrationFolder": str(five_specs)},
        )

        selection = select_specs(settings, name_extractor=OnlyFirst())

        assert names(selection.spec_files) == ["spec0.yaml"]

    @pytest.mark.anyio
    async def test_aselect_specs(self, five_specs):
        settings = make_settings(
            spec_pattern="specs/*.yaml",
            env={"grep": "Suite 3", "grepIntegrationFolder": str(five_specs)},
        )

        selection = await aselect_specs(settings)

        assert isinstance(selection, SpecSelection)
        assert names(selection.spec_files) == ["spec3.yaml"]

    @pytest.mark.anyio
    @pytest.mark.filterwarnings("ignore::RuntimeWarning")
    async def test_select_specs_inside_running_loop(self, five_specs):
        settings = make_settings(
            spec_pattern="specs/*.yaml",
            env={"grep": "Suite 3", "grepIntegrationFolder": str(five_specs)},
        )

        with pytest.raises(RuntimeError, match="running event loop"):
            select_specs(settings)


class TestGrepPlugin:
    """Test the plugin entry point."""

    def test_empty_env_returns_settings(self):
        settings = make_settings()

        assert grep_plugin(settings) is settings

    def test_missing_spec_pattern(self):
        settings = make_settings(env={"grep": "login"})

        with pytest.raises(ConfigurationError, match="spec_pattern"):
            grep_plugin(settings)

    def test_invalid_option(self):
        settings = make_settings(spec_pattern="*.yaml", env={"grepBurn": "many"})

        with pytest.raises(ConfigurationError, match="Invalid grep options"):
            grep_plugin(settings)

    def test_without_filter_specs_only_logs(self, five_specs, caplog):
        settings = make_settings(
            spec_pattern="specs/*.yaml",
            env={"grep": "Suite 1", "grepIntegrationFolder": str(five_specs)},
        )

        with caplog.at_level(logging.INFO):
            result = grep_plugin(settings)

        assert result is settings
        assert 'specgrep: tests with "Suite 1" in their names' in caplog.messages

    def test_filter_specs_narrows_pattern(self, five_specs):
        settings = make_settings(
            spec_pattern="specs/*.yaml",
            env={
                "grep": "Suite 1; Suite 4",
                "grepFilterSpecs": True,
                "grepIntegrationFolder": str(five_specs),
            },
        )

        result = grep_plugin(settings)

        assert result is not settings
        assert [Path(p).name for p in result.spec_pattern] == [
            "spec1.yaml",
            "spec4.yaml",
        ]
        assert settings.spec_pattern == ["specs/*.yaml"]

    def test_filter_specs_fallback_keeps_pattern(self, five_specs):
        settings = make_settings(
            spec_pattern="specs/*.yaml",
            env={
                "grepTags": "payments",
                "grepFilterSpecs": "true",
                "grepIntegrationFolder": str(five_specs),
            },
        )

        assert grep_plugin(settings) is settings

    @pytest.mark.anyio
    @pytest.mark.filterwarnings("ignore::RuntimeWarning")
    async def test_filter_specs_inside_running_loop(self, five_specs):
        settings = make_settings(
            spec_pattern="specs/*.yaml",
            env={
                "grep": "Suite 1",
                "grepFilterSpecs": True,
                "grepIntegrationFolder": str(five_specs),
            },
        )

        with pytest.raises(RuntimeError, match="running event loop"):
            grep_plugin(settings)


class TestLogGrepOptions:
    """Test reporting of the active options."""

    def test_logs_every_option(self, caplog):
        options = GrepOptions.model_validate(
            {
                "grep": " login ",
                "grepTags": "smoke",
                "grepBurn": 3,
                "grepUntagged": True,
                "grepOmitFiltered": True,
            }
        )

        with caplog.at_level(logging.INFO):
            log_grep_options(options)

        assert caplog.messages == [
            'specgrep: tests with "login" in their names',
            'specgrep: filtering using tag(s) "smoke"',
            "specgrep: running filtered tests 3 times",
            "specgrep: running untagged tests",
            "specgrep: will omit filtered tests",
        ]

    def test_logs_nothing_when_unset(self, caplog):
        with caplog.at_level(logging.INFO):
            log_grep_options(GrepOptions())

        assert caplog.messages == []
