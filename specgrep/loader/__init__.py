"""Spec file loading: discovery, YAML parsing and name/tag extraction."""

from specgrep.loader.discovery import find_spec_files
from specgrep.loader.extractors import (
    EffectiveTags,
    NameExtractor,
    SpecNames,
    TagExtractor,
    YAMLSpecExtractor,
    extract_effective_tags,
    extract_test_names,
)
from specgrep.loader.parser import YAMLParser

__all__ = [
    "EffectiveTags",
    "NameExtractor",
    "SpecNames",
    "TagExtractor",
    "YAMLParser",
    "YAMLSpecExtractor",
    "extract_effective_tags",
    "extract_test_names",
    "find_spec_files",
]
