"""Input file collection: ``.cs`` files, directories and ``.zip`` archives."""

from __future__ import annotations

import logging
import tempfile
import zipfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Union

from . import config
from .errors import InputError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class SourceFile:
    path: Path
    text: str


def collect_source_paths(paths: Iterable[PathLike], extract_dir: Path) -> List[Path]:
    """Expand inputs into an ordered list of ``.cs`` files.

    Directories are walked recursively (sorted, build and VCS directories
    skipped); archives are extracted below *extract_dir*.  Duplicates are
    dropped case-insensitively, keeping the first occurrence.
    """
    found: Dict[str, Path] = {}

    def _add(path: Path) -> None:
        key = str(path.resolve()).casefold()
        if key not in found:
            found[key] = path

    for index, raw in enumerate(paths):
        path = Path(raw)
        if not path.exists():
            raise InputError(f"Path does not exist: {path}")
        if path.is_dir():
            for file_path in _walk_directory(path):
                _add(file_path)
        elif path.suffix.lower() in config.SUPPORTED_EXTENSIONS:
            _add(path)
        elif path.suffix.lower() in config.ARCHIVE_EXTENSIONS:
            target = extract_dir / f"{index}_{path.stem}"
            for file_path in _extract_archive(path, target):
                _add(file_path)
        else:
            raise InputError(f"Unsupported input (expected .cs, .zip or a directory): {path}")

    if not found:
        raise InputError("No C# source files found in the given paths")
    return list(found.values())


def read_source(path: Path) -> SourceFile:
    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise InputError(f"Cannot read {path}: {exc}") from exc
    return SourceFile(path=path, text=text)


@contextmanager
def load_sources(paths: Iterable[PathLike]) -> Iterator[List[SourceFile]]:
    """Yield the readable source set; extracted archives are removed on exit."""
    with tempfile.TemporaryDirectory(prefix="typegraph-") as tmp:
        files = collect_source_paths(paths, Path(tmp))
        sources = [read_source(p) for p in files]
        logger.debug("Loaded %d source files", len(sources))
        yield sources


def _walk_directory(root: Path) -> List[Path]:
    result: List[Path] = []
    for ext in sorted(config.SUPPORTED_EXTENSIONS):
        for file_path in sorted(root.rglob(f"*{ext}")):
            if any(part in config.SKIP_DIRS for part in file_path.relative_to(root).parts):
                continue
            if file_path.is_file():
                result.append(file_path)
    return result


def _extract_archive(archive: Path, target: Path) -> List[Path]:
    try:
        with zipfile.ZipFile(archive) as zf:
            zf.extractall(target)
    except (zipfile.BadZipFile, OSError) as exc:
        raise InputError(f"Cannot extract archive {archive}: {exc}") from exc
    logger.debug("Extracted %s into %s", archive, target)
    return _walk_directory(target)
