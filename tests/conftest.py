"""Shared pytest fixtures for specgrep tests."""

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from specgrep.core.logging import reset_logging


@pytest.fixture(autouse=True)
def reset_logging_state() -> Iterator[None]:
    """Keep logging configuration from leaking between tests."""
    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to the fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def specs_dir(fixtures_dir: Path) -> Path:
    """Return path to the YAML spec fixtures.

    Contains auth.yaml, checkout.yaml, nested/search.yaml and broken.yaml
    (invalid YAML).
    """
    return fixtures_dir / "specs"


@pytest.fixture
def write_spec(tmp_path: Path) -> Callable[[str, str], Path]:
    """Return a helper writing a spec file below tmp_path."""

    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def anyio_backend() -> str:
    """Run anyio-marked tests on asyncio, the event loop specgrep targets."""
    return "asyncio"
