"""Spec file selection workflow."""

from specgrep.selection.filters import SpecFilter
from specgrep.selection.plugin import (
    SpecSelection,
    aselect_specs,
    grep_plugin,
    log_grep_options,
    select_specs,
)

__all__ = [
    "SpecFilter",
    "SpecSelection",
    "aselect_specs",
    "grep_plugin",
    "log_grep_options",
    "select_specs",
]
