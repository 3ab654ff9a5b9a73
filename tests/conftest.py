"""Pytest configuration and fixtures for TypeGraph CLI tests."""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator, List

import pytest

from typegraph_cli.sources import SourceFile


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch):
    """Point the config file at a temporary location for every test."""
    monkeypatch.setattr("typegraph_cli.config.BASE_DIR", tmp_path / "home")
    monkeypatch.setattr("typegraph_cli.config.CONFIG_FILE", tmp_path / "home" / "config.toml")


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Undo the handler the CLI callback installs so caplog keeps working."""
    yield
    package_logger = logging.getLogger("typegraph_cli")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_project_path() -> Path:
    """Get path to sample C# test project."""
    return Path(__file__).parent / "fixtures" / "sample_project"


@pytest.fixture
def make_sources() -> Callable[..., List[SourceFile]]:
    """Build in-memory sources from ``{"File.cs": "code"}`` mappings."""

    def _make(files: Dict[str, str]) -> List[SourceFile]:
        return [SourceFile(path=Path(name), text=text) for name, text in files.items()]

    return _make


@pytest.fixture
def write_cs(temp_dir: Path) -> Callable[[str, str], Path]:
    """Write a C# file below ``temp_dir`` and return its path."""

    def _write(relative: str, text: str) -> Path:
        path = temp_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write
